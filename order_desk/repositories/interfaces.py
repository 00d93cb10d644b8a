# ==============================================================================
# REPOSITORY INTERFACES
# ==============================================================================
#
# Protocols every repository implements. Services depend on these
# contracts, not on the JSON classes, so:
#
# 1. A different store (SQL, key-value) only needs new implementations
#    wired in app_container.py.
# 2. Tests can hand services any object that satisfies the protocol.
#
# Every write method is expected to be called inside atomic() when it
# is part of a multi-record mutation.
#
# ==============================================================================

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable


# ==============================================================================
# BASE INTERFACES
# ==============================================================================

@runtime_checkable
class IRepository(Protocol):
    """Minimal contract shared by all repositories."""

    file_path: str


@runtime_checkable
class IDictRepository(IRepository, Protocol):
    """
    Keyed collections.
    Used by: products, customers, orders, batches, users, settings.
    """

    def get_all(self) -> Dict[str, Any]:
        ...

    def get_by_id(self, record_id: Any) -> Optional[Dict[str, Any]]:
        ...

    def save_all(self, data: Dict[str, Any]) -> None:
        ...

    def update(self, record_id: Any, record_data: Dict[str, Any]) -> None:
        ...

    def delete(self, record_id: Any) -> Optional[Dict[str, Any]]:
        ...


@runtime_checkable
class IListRepository(IRepository, Protocol):
    """
    Append-style collections.
    Used by: audit.
    """

    def get_all(self) -> List[Dict[str, Any]]:
        ...

    def save_all(self, data: List[Dict[str, Any]]) -> None:
        ...


# ==============================================================================
# DOMAIN INTERFACES
# ==============================================================================

@runtime_checkable
class IProductRepository(Protocol):
    """Catalog access. Returns Product entities."""

    def list_products(self, include_inactive: bool = True) -> List[Any]:
        ...

    def get_product(self, product_id: Any) -> Optional[Any]:
        ...

    def find_by_code(self, code: str) -> Optional[Any]:
        ...

    def save_product(self, product: Any) -> Any:
        ...

    def delete_product(self, product_id: Any) -> bool:
        ...

    def adjust_stock(self, product_id: Any, color: str, size: str, delta: int) -> None:
        ...


@runtime_checkable
class ICustomerRepository(Protocol):
    """Customer access. Returns Customer entities."""

    def list_customers(self) -> List[Any]:
        ...

    def get_customer(self, customer_id: Any) -> Optional[Any]:
        ...

    def find_by_phone(self, phone: str) -> Optional[Any]:
        ...

    def save_customer(self, customer: Any) -> Any:
        ...

    def delete_customer(self, customer_id: Any) -> bool:
        ...

    def increment_order_count(self, customer_id: Any, delta: int = 1) -> int:
        ...


@runtime_checkable
class IOrderRepository(Protocol):
    """Order access. Items are stored inside their order."""

    def list_orders(self) -> List[Any]:
        ...

    def get_order(self, order_id: Any) -> Optional[Any]:
        ...

    def save_order(self, order: Any) -> Any:
        ...

    def replace_items(self, order_id: Any, items: List[Any]) -> List[Any]:
        ...

    def delete_order(self, order_id: Any) -> bool:
        ...


@runtime_checkable
class IBatchRepository(Protocol):
    """Batch access."""

    def list_batches(self) -> List[Any]:
        ...

    def get_batch(self, batch_id: Any) -> Optional[Any]:
        ...

    def save_batch(self, batch: Any) -> Any:
        ...

    def delete_batch(self, batch_id: Any) -> bool:
        ...

    def remove_order_everywhere(self, order_id: Any) -> int:
        ...


@runtime_checkable
class IUserRepository(Protocol):
    """Dashboard accounts keyed by email."""

    def get_user(self, email: str) -> Optional[Any]:
        ...

    def create_user(self, email: str, password_hash: str, role: str) -> Any:
        ...


@runtime_checkable
class IAuditRepository(Protocol):

    def load(self) -> List[Dict[str, Any]]:
        ...

    def log(
        self,
        log_type: str,
        user: str,
        message: str,
        related_id: str,
        details: Dict[str, Any]
    ) -> None:
        ...


@runtime_checkable
class ISettingsRepository(Protocol):
    """Business settings (single document)."""

    def load(self) -> Dict[str, Any]:
        ...

    def save(self, settings: Dict[str, Any]) -> None:
        ...
