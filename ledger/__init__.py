"""Service layer for the debt ledger: accounts, creditors/debtors, payments and statements."""
