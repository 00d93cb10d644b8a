import pytest

from conftest import tee_item


def test_default_settings(moderator_client):
    settings = moderator_client.get('/api/settings').get_json()
    assert settings['delivery_charges'] == {'inside_dhaka': 60, 'sub_dhaka': 60, 'outside_dhaka': 120}
    assert settings['packing_status']['enabled'] is True


def test_admin_updates_delivery_charges(admin_client, moderator_client, tee, customer):
    r = admin_client.put('/api/settings', json={'delivery_charges': {'outside_dhaka': 150}})
    assert r.status_code == 200
    assert r.get_json()['delivery_charges']['outside_dhaka'] == 150
    assert r.get_json()['delivery_charges']['inside_dhaka'] == 60

    order = moderator_client.post('/api/orders', json={
        'customer_id': customer['id'], 'address': 'A', 'items': [tee_item(tee)],
        'delivery_type': 'outside_dhaka',
    }).get_json()
    assert order['delivery_charge_bdt'] == 150


@pytest.mark.parametrize('payload', [
    {'favourite_color': 'blue'},
    {'delivery_charges': {'inside_dhaka': -1}},
    {'delivery_charges': {'mars': 10}},
    {'delivery_charges': 'cheap'},
    {'packing_status': 'on'},
])
def test_invalid_settings(admin_client, payload):
    assert admin_client.put('/api/settings', json=payload).status_code == 400


def test_settings_change_is_audited(admin_client):
    admin_client.put('/api/settings', json={'company_name': 'Shop BD'})
    logs = admin_client.get('/api/audit?q=settings').get_json()
    assert logs[0]['message'] == 'Settings changed: company_name'


def test_public_tracking(client, container, tee, customer):
    order = container.order_service.create_order(
        customer_id=customer['id'], items=[tee_item(tee)], address='A', delivery_charge=60, advance=500,
    )
    container.order_service.update_order(order['id'], {'pathao_tracking_code': 'PTH-9'})

    r = client.get(f"/api/track/{order['id']}")
    assert r.status_code == 200
    view = r.get_json()
    assert view['status'] == 'pending'
    assert view['due'] == 460
    assert view['pathao_tracking_code'] == 'PTH-9'
    assert view['packing_message'] == 'Your order is being packed with care!'
    assert view['company_name'] == 'Order Desk'
    assert 'customer_phone' not in view
    assert view['items'][0] == {
        'product_name': 'Tee', 'image_url': None, 'color': 'Black', 'size': 'M', 'qty': 2, 'price': 450,
    }


def test_tracking_hides_packing_message_once_shipped(client, container, tee, customer):
    order = container.order_service.create_order(customer_id=customer['id'], items=[tee_item(tee)], address='A')
    container.order_service.update_order(order['id'], {'status': 'shipped'})
    assert 'packing_message' not in client.get(f"/api/track/{order['id']}").get_json()


def test_tracking_unknown_order(client):
    r = client.get('/api/track/12345')
    assert r.status_code == 404
