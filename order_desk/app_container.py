# ==============================================================================
# DEPENDENCY CONTAINER
# ==============================================================================
# Single place where repositories and services are built and wired:
#   - services receive their repositories, never build them
#   - tests point the container at a temporary data directory
#   - a different store only changes the repository imports below
#
# Every property is lazy; nothing touches the disk until first use.
# ==============================================================================

import os
from typing import Optional

# ═══════════════════════════════════════════════════════════════════════════════
# REPOSITORIES - persistence layer (JSON files)
# ═══════════════════════════════════════════════════════════════════════════════
from order_desk.repositories import (
    AuditRepository,
    BatchRepository,
    CustomerRepository,
    OrderRepository,
    ProductRepository,
    SettingsRepository,
    UserRepository,
)

# ═══════════════════════════════════════════════════════════════════════════════
# SERVICES - business layer
# ═══════════════════════════════════════════════════════════════════════════════
from order_desk.services import (
    AuditService,
    AvailabilityService,
    BatchService,
    CatalogService,
    CustomerService,
    OrderService,
    SettingsService,
    UserService,
)

DEFAULT_DATA_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'data')


class AppContainer:
    """
    Application dependency container (singleton).

    Usage:
        container = AppContainer(data_dir='/var/lib/order_desk')
        container.order_service.create_order(...)
    """

    _instance: Optional['AppContainer'] = None

    def __new__(cls, data_dir: str = None, decrement_stock: bool = False):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, data_dir: str = None, decrement_stock: bool = False):
        """
        Args:
            data_dir: Directory holding the JSON collections
            decrement_stock: Enables stock reservation on orders
        """
        if self._initialized:
            return

        self._data_dir = data_dir or DEFAULT_DATA_DIR
        self.decrement_stock = decrement_stock
        self._clear()
        self._initialized = True

    def _clear(self) -> None:
        self._product_repo: Optional[ProductRepository] = None
        self._customer_repo: Optional[CustomerRepository] = None
        self._order_repo: Optional[OrderRepository] = None
        self._batch_repo: Optional[BatchRepository] = None
        self._user_repo: Optional[UserRepository] = None
        self._audit_repo: Optional[AuditRepository] = None
        self._settings_repo: Optional[SettingsRepository] = None

        self._audit_service: Optional[AuditService] = None
        self._availability_service: Optional[AvailabilityService] = None
        self._catalog_service: Optional[CatalogService] = None
        self._customer_service: Optional[CustomerService] = None
        self._order_service: Optional[OrderService] = None
        self._batch_service: Optional[BatchService] = None
        self._settings_service: Optional[SettingsService] = None
        self._user_service: Optional[UserService] = None

    @property
    def data_dir(self) -> str:
        return self._data_dir

    # =========================================================================
    # REPOSITORIES
    # =========================================================================

    @property
    def product_repo(self) -> ProductRepository:
        if self._product_repo is None:
            self._product_repo = ProductRepository(self._data_dir)
        return self._product_repo

    @property
    def customer_repo(self) -> CustomerRepository:
        if self._customer_repo is None:
            self._customer_repo = CustomerRepository(self._data_dir)
        return self._customer_repo

    @property
    def order_repo(self) -> OrderRepository:
        if self._order_repo is None:
            self._order_repo = OrderRepository(self._data_dir)
        return self._order_repo

    @property
    def batch_repo(self) -> BatchRepository:
        if self._batch_repo is None:
            self._batch_repo = BatchRepository(self._data_dir)
        return self._batch_repo

    @property
    def user_repo(self) -> UserRepository:
        if self._user_repo is None:
            self._user_repo = UserRepository(self._data_dir)
        return self._user_repo

    @property
    def audit_repo(self) -> AuditRepository:
        if self._audit_repo is None:
            self._audit_repo = AuditRepository(self._data_dir)
        return self._audit_repo

    @property
    def settings_repo(self) -> SettingsRepository:
        if self._settings_repo is None:
            self._settings_repo = SettingsRepository(self._data_dir)
        return self._settings_repo

    # =========================================================================
    # SERVICES
    # =========================================================================

    @property
    def audit_service(self) -> AuditService:
        if self._audit_service is None:
            self._audit_service = AuditService(self.audit_repo)
        return self._audit_service

    @property
    def availability_service(self) -> AvailabilityService:
        if self._availability_service is None:
            self._availability_service = AvailabilityService(self.product_repo)
        return self._availability_service

    @property
    def catalog_service(self) -> CatalogService:
        if self._catalog_service is None:
            self._catalog_service = CatalogService(self.product_repo, self.audit_service)
        return self._catalog_service

    @property
    def customer_service(self) -> CustomerService:
        if self._customer_service is None:
            self._customer_service = CustomerService(
                self.customer_repo,
                self.order_repo,
                self.audit_service
            )
        return self._customer_service

    @property
    def order_service(self) -> OrderService:
        if self._order_service is None:
            self._order_service = OrderService(
                self.order_repo,
                self.customer_repo,
                self.product_repo,
                self.availability_service,
                customer_service=self.customer_service,
                batch_repo=self.batch_repo,
                audit_service=self.audit_service,
                decrement_stock=self.decrement_stock,
            )
        return self._order_service

    @property
    def batch_service(self) -> BatchService:
        if self._batch_service is None:
            self._batch_service = BatchService(self.batch_repo, self.order_repo, self.audit_service)
        return self._batch_service

    @property
    def settings_service(self) -> SettingsService:
        if self._settings_service is None:
            self._settings_service = SettingsService(self.settings_repo, self.audit_service)
        return self._settings_service

    @property
    def user_service(self) -> UserService:
        if self._user_service is None:
            self._user_service = UserService(self.user_repo, self.audit_service)
        return self._user_service

    # =========================================================================
    # UTILITIES
    # =========================================================================

    def reset(self) -> None:
        """Drops every cached instance (repositories re-open their files)."""
        self._clear()

    @classmethod
    def get_instance(cls, data_dir: str = None, decrement_stock: bool = False) -> 'AppContainer':
        """
        Args:
            data_dir: Only used on the first call
            decrement_stock: Only used on the first call
        """
        if cls._instance is None:
            return cls(data_dir, decrement_stock)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Discards the singleton (tests, reconfiguration)."""
        if cls._instance is not None:
            cls._instance.reset()
            cls._instance = None


def get_container(data_dir: str = None, decrement_stock: bool = False) -> AppContainer:
    """Global container accessor."""
    return AppContainer.get_instance(data_dir, decrement_stock)
