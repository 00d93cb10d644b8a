from conftest import tee_item


def test_create_customer(moderator_client):
    r = moderator_client.post('/api/customers', json={'name': 'Rahim', 'phone': '01700000000', 'city': 'Dhaka'})
    assert r.status_code == 201
    customer = r.get_json()
    assert customer['total_orders'] == 0
    assert customer['city'] == 'Dhaka'


def test_required_fields(moderator_client):
    r = moderator_client.post('/api/customers', json={'phone': '017'})
    assert r.get_json()['error'] == 'Name is required'
    r = moderator_client.post('/api/customers', json={'name': 'Rahim'})
    assert r.get_json()['error'] == 'Phone is required'


def test_phone_is_unique(moderator_client, customer):
    r = moderator_client.post('/api/customers', json={'name': 'Other', 'phone': '01700000000'})
    assert r.status_code == 400
    assert r.get_json()['error'] == 'Customer with this phone number already exists'

    other = moderator_client.post('/api/customers', json={'name': 'Other', 'phone': '01900000000'}).get_json()
    r = moderator_client.put(f"/api/customers/{other['id']}", json={'phone': '01700000000'})
    assert r.status_code == 400


def test_update_ignores_total_orders(moderator_client, customer):
    r = moderator_client.put(f"/api/customers/{customer['id']}", json={'name': 'Rahim Uddin', 'total_orders': 50})
    assert r.status_code == 200
    assert r.get_json()['name'] == 'Rahim Uddin'
    assert r.get_json()['total_orders'] == 0


def test_search(moderator_client, customer):
    moderator_client.post('/api/customers', json={'name': 'Karim', 'phone': '01811111111'})
    assert [c['name'] for c in moderator_client.get('/api/customers?q=0170').get_json()] == ['Rahim']
    assert len(moderator_client.get('/api/customers').get_json()) == 2


def test_missing_customer(moderator_client):
    r = moderator_client.get('/api/customers/77')
    assert r.status_code == 404
    assert r.get_json()['error'] == 'Customer not found'


def test_customer_with_orders_cannot_be_deleted(moderator_client, tee, customer):
    moderator_client.post('/api/orders', json={
        'customer_id': customer['id'], 'address': 'A', 'items': [tee_item(tee)],
    })
    r = moderator_client.delete(f"/api/customers/{customer['id']}")
    assert r.status_code == 400
    assert r.get_json()['error'] == 'Customer has orders and cannot be deleted'


def test_delete_customer(moderator_client, customer):
    assert moderator_client.delete(f"/api/customers/{customer['id']}").status_code == 200
    assert moderator_client.get(f"/api/customers/{customer['id']}").status_code == 404
