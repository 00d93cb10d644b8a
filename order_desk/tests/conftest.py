import pytest

from order_desk.app_container import AppContainer
from order_desk.main import create_app
from order_desk.performance_logger import configure_profiling
from order_desk.repositories.base import STORE_CONFIG, configure_store


@pytest.fixture
def app(tmp_path):
    saved = dict(STORE_CONFIG)
    app = create_app({
        'DATA_DIR': str(tmp_path / 'data'),
        'LOGS_DIR': str(tmp_path / 'logs'),
        'SECRET_KEY': 'test-secret',
        'PROFILING': False,
        'PRODUCTION': False,
    })
    app.config['TESTING'] = True
    configure_store(retry_delay=0.01)
    yield app
    STORE_CONFIG.update(saved)
    configure_profiling(enabled=True)
    AppContainer.reset_instance()


@pytest.fixture
def container(app):
    return app.extensions['order_desk']


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c


def login(client, email, role, password='admin123'):
    r = client.post('/api/auth/login', json={'email': email, 'password': password, 'role': role})
    assert r.status_code == 200, r.get_json()
    return r


@pytest.fixture
def admin_client(app):
    c = app.test_client()
    login(c, 'admin@example.com', 'admin')
    return c


@pytest.fixture
def moderator_client(app):
    c = app.test_client()
    login(c, 'moderator@example.com', 'moderator')
    return c


@pytest.fixture
def tee(container):
    """Tee: Black {M: 5, L: 1}, Red {S: 0}; sells at 450."""
    return container.catalog_service.create_product({
        'name': 'Tee',
        'code': 'TEE-01',
        'base_price_bdt': 200,
        'sell_price_bdt': 450,
        'variant_groups': [
            {'color': 'Black', 'sizes': ['M', 'L'], 'quantities': {'M': 5, 'L': 1}},
            {'color': 'Red', 'sizes': ['S'], 'quantities': {'S': 0}},
        ],
    })


@pytest.fixture
def mug(container):
    """Legacy product without variant groups."""
    return container.catalog_service.create_product({
        'name': 'Mug',
        'code': 'MUG-01',
        'base_price_bdt': 80,
        'sell_price_bdt': 150,
    })


@pytest.fixture
def customer(container):
    created = container.customer_service.create_customer({
        'name': 'Rahim',
        'phone': '01700000000',
        'city': 'Dhaka',
    })
    return created


def tee_item(product, color='Black', size='M', qty=2, price=450):
    return {
        'product_id': product['id'],
        'product_name_snapshot': product['name'],
        'color_snapshot': color,
        'size_snapshot': size,
        'qty': qty,
        'sell_price_bdt_snapshot': price,
    }
