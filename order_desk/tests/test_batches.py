import pytest

from conftest import tee_item


@pytest.fixture
def order_ids(moderator_client, tee, customer):
    ids = []
    for _ in range(2):
        r = moderator_client.post('/api/orders', json={
            'customer_id': customer['id'], 'address': 'A', 'items': [tee_item(tee, qty=1)],
        })
        ids.append(r.get_json()['id'])
    return ids


def test_create_batch(admin_client, order_ids):
    r = admin_client.post('/api/batches', json={
        'created_by': 'admin', 'note': 'Morning pickup', 'order_ids': order_ids + [order_ids[0]],
    })
    assert r.status_code == 201
    batch = r.get_json()
    assert batch['order_ids'] == order_ids
    assert batch['note'] == 'Morning pickup'


def test_create_batch_validation(admin_client, order_ids):
    r = admin_client.post('/api/batches', json={'order_ids': order_ids})
    assert r.status_code == 400
    assert r.get_json()['error'] == 'Created by is required'

    r = admin_client.post('/api/batches', json={'created_by': 'admin', 'order_ids': [order_ids[0], 999]})
    assert r.status_code == 400
    assert r.get_json()['error'] == 'Invalid order reference'
    assert r.get_json()['order_ids'] == [999]
    assert admin_client.get('/api/batches').get_json() == []


def test_update_batch(admin_client, moderator_client, order_ids):
    batch = admin_client.post('/api/batches', json={'created_by': 'admin', 'order_ids': order_ids}).get_json()

    r = moderator_client.put(f"/api/batches/{batch['id']}", json={'note': 'Evening'})
    assert r.get_json()['order_ids'] == order_ids
    assert r.get_json()['note'] == 'Evening'

    r = moderator_client.put(f"/api/batches/{batch['id']}", json={'order_ids': [order_ids[1]]})
    assert r.get_json()['order_ids'] == [order_ids[1]]


def test_delete_batch(admin_client, order_ids):
    batch = admin_client.post('/api/batches', json={'created_by': 'admin', 'order_ids': order_ids}).get_json()
    assert admin_client.delete(f"/api/batches/{batch['id']}").status_code == 200
    r = admin_client.get(f"/api/batches/{batch['id']}")
    assert r.status_code == 404
    assert r.get_json()['error'] == 'Batch not found'


def test_deleted_order_leaves_batches(admin_client, order_ids):
    batch = admin_client.post('/api/batches', json={'created_by': 'admin', 'order_ids': order_ids}).get_json()
    admin_client.delete(f"/api/orders/{order_ids[0]}")
    assert admin_client.get(f"/api/batches/{batch['id']}").get_json()['order_ids'] == [order_ids[1]]
