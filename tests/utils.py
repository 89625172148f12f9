DEFAULT_TEST_PASSWORD = 'secret1'


def login(client, username, password=DEFAULT_TEST_PASSWORD):
    return client.post('/api/auth/login', json={'username': username, 'password': password})


def sample_items():
    return [
        {'reason': 'Rent advance', 'amount': 5000, 'status': 'pending'},
        {'reason': 'School fees', 'amount': 2500, 'status': 'partial'},
        {'reason': 'Phone', 'amount': 1000, 'status': 'paid'},
    ]
