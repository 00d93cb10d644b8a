import json
import os
import threading

import pytest

from conftest import tee_item
from order_desk.errors import (
    CustomerNotFoundError,
    InsufficientStockError,
    OrderNotFoundError,
    ProductReferenceError,
    ValidationError,
)


def _orders_on_disk(container):
    with open(os.path.join(container.data_dir, 'orders.json'), encoding='utf-8') as f:
        return json.load(f)


def _stock(container, product_id, color, size):
    return container.product_repo.get_product(product_id).find_group(color).quantity_for(size)


def test_create_order_computes_totals(container, tee, customer):
    container.customer_repo.increment_order_count(customer['id'], 3)

    order = container.order_service.create_order(
        customer_id=customer['id'],
        items=[tee_item(tee)],
        address='House 1, Road 2',
        delivery_charge=60,
        advance=500,
        user='admin@example.com',
    )

    assert order['total_amount'] == 960
    assert order['due_bdt'] == 460
    assert order['total_items'] == 2
    assert order['items'][0]['line_total'] == 900
    assert order['customer_name'] == 'Rahim'
    assert container.customer_repo.get_customer(customer['id']).total_orders == 4

    stored = _orders_on_disk(container)[str(order['id'])]
    assert stored['total_amount'] == '960'
    assert stored['items'][0]['sell_price_bdt_snapshot'] == '450'


def test_insufficient_stock_writes_nothing(container, tee, customer):
    container.customer_repo.increment_order_count(customer['id'], 3)

    with pytest.raises(InsufficientStockError) as exc:
        container.order_service.create_order(
            customer_id=customer['id'],
            items=[tee_item(tee, size='L', qty=2)],
            address='House 1',
        )

    assert exc.value.available_qty == 1
    assert _orders_on_disk(container) == {}
    assert container.customer_repo.get_customer(customer['id']).total_orders == 3


def test_caller_totals_are_ignored(container, tee, customer):
    item = tee_item(tee, qty=1)
    item['total_amount'] = 1
    order = container.order_service.create_order(
        customer_id=customer['id'], items=[item], address='A', delivery_charge=60
    )
    assert order['total_amount'] == 510


def test_missing_price_uses_product_price(container, tee, customer):
    item = tee_item(tee, qty=1)
    del item['sell_price_bdt_snapshot']
    order = container.order_service.create_order(customer_id=customer['id'], items=[item], address='A')
    assert order['items'][0]['sell_price_bdt_snapshot'] == 450


def test_legacy_items_skip_the_gate(container, mug, customer):
    item = {'product_id': mug['id'], 'product_name_snapshot': 'Mug', 'qty': 500, 'price': 150}
    order = container.order_service.create_order(customer_id=customer['id'], items=[item], address='A')
    assert order['total_items'] == 500


@pytest.mark.parametrize('kwargs,message', [
    ({'items': []}, 'Order items are required'),
    ({'items': [{'product_id': 1, 'qty': 1}]}, 'Each item must have product_id, product_name_snapshot, and qty'),
    ({'address': '  '}, 'Delivery address is required'),
    ({'customer_id': None}, 'Customer ID is required'),
    ({'advance': -5}, 'advance_bdt cannot be negative'),
])
def test_validation_runs_before_any_write(container, tee, customer, kwargs, message):
    args = {
        'customer_id': customer['id'],
        'items': [tee_item(tee)],
        'address': 'A',
    }
    args.update(kwargs)
    with pytest.raises(ValidationError) as exc:
        container.order_service.create_order(**args)
    assert exc.value.message == message
    assert _orders_on_disk(container) == {}


def test_unknown_references(container, tee, customer):
    with pytest.raises(CustomerNotFoundError):
        container.order_service.create_order(customer_id=999, items=[tee_item(tee)], address='A')

    bad = tee_item(tee)
    bad['product_id'] = 999
    with pytest.raises(ProductReferenceError):
        container.order_service.create_order(customer_id=customer['id'], items=[bad], address='A')
    assert _orders_on_disk(container) == {}


def test_customer_created_from_phone(container, tee):
    order = container.order_service.create_order(
        items=[tee_item(tee, qty=1)],
        address='A',
        customer_data={'name': 'Karim', 'phone': '01811111111'},
    )
    customer = container.customer_repo.find_by_phone('01811111111')
    assert order['customer_id'] == customer.id
    assert customer.total_orders == 1


def test_failed_order_does_not_leave_new_customer(container, tee):
    with pytest.raises(InsufficientStockError):
        container.order_service.create_order(
            items=[tee_item(tee, size='L', qty=5)],
            address='A',
            customer_data={'name': 'Karim', 'phone': '01811111111'},
        )
    assert container.customer_repo.find_by_phone('01811111111') is None


def test_update_replaces_items_and_keeps_delivery(container, tee, customer):
    order = container.order_service.create_order(
        customer_id=customer['id'], items=[tee_item(tee)], address='A', delivery_charge=60
    )

    updated = container.order_service.update_order(order['id'], {
        'items': [tee_item(tee, size='L', qty=1), tee_item(tee, qty=1)],
    })

    assert [i['size_snapshot'] for i in updated['items']] == ['L', 'M']
    assert [i['id'] for i in updated['items']] == [1, 2]
    assert updated['delivery_charge_bdt'] == 60
    assert updated['total_amount'] == 960
    assert container.customer_repo.get_customer(customer['id']).total_orders == 1


def test_update_rejected_keeps_stored_order(container, tee, customer):
    order = container.order_service.create_order(
        customer_id=customer['id'], items=[tee_item(tee)], address='A'
    )
    with pytest.raises(InsufficientStockError):
        container.order_service.update_order(order['id'], {'items': [tee_item(tee, size='L', qty=3)]})

    stored = container.order_service.get_order_view(order['id'])
    assert stored['items'][0]['size_snapshot'] == 'M'
    assert stored['total_amount'] == 900


def test_update_recomputes_due_from_advance(container, tee, customer):
    order = container.order_service.create_order(
        customer_id=customer['id'], items=[tee_item(tee)], address='A', delivery_charge=60
    )
    updated = container.order_service.update_order(order['id'], {'advance_bdt': 1000, 'status': 'confirmed'})
    assert updated['due_bdt'] == -40
    assert updated['status'] == 'confirmed'


def test_update_rejects_empty_items(container, tee, customer):
    order = container.order_service.create_order(customer_id=customer['id'], items=[tee_item(tee)], address='A')
    with pytest.raises(ValidationError):
        container.order_service.update_order(order['id'], {'items': []})


def test_update_and_delete_unknown_order(container):
    with pytest.raises(OrderNotFoundError):
        container.order_service.update_order(42, {'status': 'shipped'})
    with pytest.raises(OrderNotFoundError):
        container.order_service.delete_order(42)


def test_delete_removes_order_from_batches(container, tee, customer):
    order = container.order_service.create_order(customer_id=customer['id'], items=[tee_item(tee)], address='A')
    batch = container.batch_service.create_batch({'created_by': 'admin', 'order_ids': [order['id']]})

    container.order_service.delete_order(order['id'])

    assert _orders_on_disk(container) == {}
    assert container.batch_service.get_batch(batch['id']).order_ids == []


def test_stock_accounting_when_enabled(container, tee, customer):
    container.order_service.decrement_stock = True
    order = container.order_service.create_order(
        customer_id=customer['id'], items=[tee_item(tee, qty=2)], address='A'
    )
    assert _stock(container, tee['id'], 'Black', 'M') == 3

    container.order_service.update_order(order['id'], {'items': [tee_item(tee, qty=5)]})
    assert _stock(container, tee['id'], 'Black', 'M') == 0

    container.order_service.update_order(order['id'], {'status': 'cancelled'})
    assert _stock(container, tee['id'], 'Black', 'M') == 5

    container.order_service.update_order(order['id'], {'status': 'pending'})
    assert _stock(container, tee['id'], 'Black', 'M') == 0

    container.order_service.delete_order(order['id'])
    assert _stock(container, tee['id'], 'Black', 'M') == 5


def test_stock_untouched_by_default(container, tee, customer):
    container.order_service.create_order(customer_id=customer['id'], items=[tee_item(tee, qty=2)], address='A')
    assert _stock(container, tee['id'], 'Black', 'M') == 5


def test_concurrent_orders_for_the_last_unit(container, tee, customer):
    container.order_service.decrement_stock = True
    start = threading.Barrier(8)
    outcomes = []
    outcomes_lock = threading.Lock()

    def submit():
        start.wait(5)
        try:
            container.order_service.create_order(
                customer_id=customer['id'], items=[tee_item(tee, size='L', qty=1)], address='A'
            )
            outcome = 'ok'
        except InsufficientStockError:
            outcome = 'rejected'
        with outcomes_lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=submit) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(30)

    assert sorted(outcomes) == ['ok'] + ['rejected'] * 7
    assert len(_orders_on_disk(container)) == 1
    assert _stock(container, tee['id'], 'Black', 'L') == 0
    assert container.customer_repo.get_customer(customer['id']).total_orders == 1


def test_repeated_updates_replace_items_every_time(container, tee, customer):
    order = container.order_service.create_order(
        customer_id=customer['id'], items=[tee_item(tee)], address='A', delivery_charge=60
    )

    sequence = [
        [tee_item(tee, qty=1), tee_item(tee, size='L', qty=1), tee_item(tee, qty=2)],
        [tee_item(tee, size='L', qty=1)],
        [tee_item(tee, qty=3), tee_item(tee, qty=1)],
    ]
    for items in sequence:
        updated = container.order_service.update_order(order['id'], {'items': items})
        assert [i['id'] for i in updated['items']] == list(range(1, len(items) + 1))
        assert [i['qty'] for i in updated['items']] == [i['qty'] for i in items]

    stored = _orders_on_disk(container)[str(order['id'])]
    assert len(stored['items']) == 2
    assert updated['total_amount'] == 4 * 450 + 60
