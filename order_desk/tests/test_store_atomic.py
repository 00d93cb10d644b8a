import threading

import pytest

from order_desk.errors import OrderNotFoundError, TransientStoreError
from order_desk.models.entities import Customer
from order_desk.repositories import (
    CustomerRepository,
    IAuditRepository,
    IDictRepository,
    IListRepository,
    IOrderRepository,
    IProductRepository,
    ISettingsRepository,
    IUserRepository,
    SettingsRepository,
)
from order_desk.repositories.base import STORE_CONFIG, _store_lock, atomic, configure_store, with_retry


@pytest.fixture
def customers(tmp_path):
    return CustomerRepository(str(tmp_path))


def test_failed_unit_restores_every_file(tmp_path, customers):
    settings = SettingsRepository(str(tmp_path))
    customers.save_customer(Customer(id=0, name='A', phone='1'))

    with pytest.raises(RuntimeError):
        with atomic():
            customers.increment_order_count(1, 5)
            settings.save({'company_name': 'Changed'})
            raise RuntimeError('boom')

    assert customers.get_customer(1).total_orders == 0
    assert settings.load()['company_name'] == 'Order Desk'


def test_nested_units_join_the_outer_one(customers):
    customers.save_customer(Customer(id=0, name='A', phone='1'))

    with pytest.raises(ValueError):
        with atomic():
            with atomic():
                customers.increment_order_count(1)
            customers.increment_order_count(1)
            raise ValueError('late failure')

    assert customers.get_customer(1).total_orders == 0


def test_successful_unit_keeps_writes(customers):
    with atomic():
        customers.save_customer(Customer(id=0, name='A', phone='1'))
        customers.increment_order_count(1)
    assert customers.get_customer(1).total_orders == 1


def test_busy_store_raises_transient_error():
    acquired = threading.Event()
    release = threading.Event()

    def holder():
        with _store_lock:
            acquired.set()
            release.wait(5)

    t = threading.Thread(target=holder)
    t.start()
    acquired.wait(5)
    try:
        with pytest.raises(TransientStoreError):
            with atomic(timeout=0.05):
                pass
    finally:
        release.set()
        t.join()


def test_with_retry_retries_transient_errors_only():
    calls = []

    def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise TransientStoreError('busy')
        return 'done'

    assert with_retry(flaky, max_retries=3, delay=0) == 'done'
    assert len(calls) == 3

    def missing():
        calls.append(1)
        raise OrderNotFoundError(1)

    calls.clear()
    with pytest.raises(OrderNotFoundError):
        with_retry(missing, max_retries=3, delay=0)
    assert len(calls) == 1


def test_with_retry_gives_up(caplog):
    def always_busy():
        raise TransientStoreError('busy')

    with pytest.raises(TransientStoreError):
        with_retry(always_busy, max_retries=2, delay=0)
    assert 'Giving up after 2 attempts' in caplog.text


@pytest.mark.parametrize('max_retries', [0, -2])
def test_with_retry_always_runs_the_operation_once(max_retries):
    calls = []
    assert with_retry(lambda: calls.append(1) or 'done', max_retries=max_retries, delay=0) == 'done'
    assert calls == [1]


def test_configured_retries_never_drop_below_one():
    saved = dict(STORE_CONFIG)
    try:
        configure_store(retries=0)
        assert STORE_CONFIG['retries'] == 1
        assert with_retry(lambda: 'done') == 'done'
    finally:
        STORE_CONFIG.update(saved)


def test_repositories_satisfy_their_contracts(container):
    assert isinstance(container.product_repo, IProductRepository)
    assert isinstance(container.order_repo, IOrderRepository)
    assert isinstance(container.user_repo, IUserRepository)
    assert isinstance(container.settings_repo, ISettingsRepository)
    assert isinstance(container.order_repo, IDictRepository)
    assert isinstance(container.audit_repo, IListRepository)
    assert isinstance(container.audit_repo, IAuditRepository)
