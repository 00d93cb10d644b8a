# ==============================================================================
# REPOSITORY LAYER - Data access
# ==============================================================================
# This layer hides the persistence mechanism (JSON files today).
# Swapping the store only touches this package and app_container.py.
#
# STRUCTURE:
# ├── interfaces.py           → Protocols (contracts)
# ├── base.py                 → JSON base classes, atomic(), with_retry()
# ├── product_repository.py   → products.json
# ├── customer_repository.py  → customers.json
# ├── order_repository.py     → orders.json (items embedded)
# ├── batch_repository.py     → batches.json
# ├── user_repository.py      → users.json
# ├── audit_repository.py     → audit.json
# └── settings_repository.py  → settings.json
# ==============================================================================

from .interfaces import (
    IRepository,
    IDictRepository,
    IListRepository,
    IProductRepository,
    ICustomerRepository,
    IOrderRepository,
    IBatchRepository,
    IUserRepository,
    IAuditRepository,
    ISettingsRepository,
)

from .base import (
    BaseRepository,
    DictRepository,
    ListRepository,
    STORE_CONFIG,
    atomic,
    configure_store,
    with_retry,
)
from .product_repository import ProductRepository
from .customer_repository import CustomerRepository
from .order_repository import OrderRepository
from .batch_repository import BatchRepository
from .user_repository import UserRepository
from .audit_repository import AuditRepository
from .settings_repository import SettingsRepository, DEFAULT_SETTINGS

__all__ = [
    # Interfaces
    'IRepository',
    'IDictRepository',
    'IListRepository',
    'IProductRepository',
    'ICustomerRepository',
    'IOrderRepository',
    'IBatchRepository',
    'IUserRepository',
    'IAuditRepository',
    'ISettingsRepository',

    # Base classes and unit of work
    'BaseRepository',
    'DictRepository',
    'ListRepository',
    'STORE_CONFIG',
    'atomic',
    'configure_store',
    'with_retry',

    # JSON implementations
    'ProductRepository',
    'CustomerRepository',
    'OrderRepository',
    'BatchRepository',
    'UserRepository',
    'AuditRepository',
    'SettingsRepository',
    'DEFAULT_SETTINGS',
]
