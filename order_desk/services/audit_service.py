# ==============================================================================
# AUDIT SERVICE
# ==============================================================================
# Centralizes audit logging: readable messages and event categories.
# Callers invoke these helpers inside the same atomic() block as the
# mutation, so a rolled-back change leaves no audit entry behind.
# ==============================================================================

from decimal import Decimal
from typing import Any, Dict, List

from order_desk.models.entities import AuditType, money_to_number
from order_desk.repositories.audit_repository import AuditRepository


class AuditService:
    """
    Records and queries the audit trail.

    Categories: ORDER, PRODUCT, CUSTOMER, BATCH, SYSTEM
    """

    TYPE_ORDER = AuditType.ORDER.value
    TYPE_PRODUCT = AuditType.PRODUCT.value
    TYPE_CUSTOMER = AuditType.CUSTOMER.value
    TYPE_BATCH = AuditType.BATCH.value
    TYPE_SYSTEM = AuditType.SYSTEM.value

    def __init__(self, audit_repo: AuditRepository):
        """
        Args:
            audit_repo: Audit repository
        """
        self.audit_repo = audit_repo

    # =========================================================================
    # EVENT LOGGING
    # =========================================================================

    def log(
        self,
        log_type: str,
        user: str,
        message: str,
        related_id: Any = '',
        details: Dict[str, Any] = None
    ) -> None:
        """
        Records a generic event.

        Args:
            log_type: Event category
            user: Who performed the action
            message: Human readable message
            related_id: Id of the touched record
            details: Extra structured data
        """
        self.audit_repo.log(log_type, user, message, str(related_id or ''), details)

    # -------------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------------

    def log_order_created(
        self,
        user: str,
        order_id: int,
        customer_name: str,
        total: Decimal,
        total_items: int
    ) -> None:
        message = f"Order #{order_id} created for {customer_name} - Total: ৳{total} - {total_items} items"
        self.log(
            self.TYPE_ORDER,
            user,
            message,
            order_id,
            {'total': money_to_number(total), 'total_items': total_items}
        )

    def log_order_updated(
        self,
        user: str,
        order_id: int,
        changed_fields: List[str],
        total: Decimal = None
    ) -> None:
        """
        Args:
            changed_fields: Names of the fields the patch touched
            total: Total after recomputation
        """
        fields = ', '.join(changed_fields) if changed_fields else 'no fields'
        message = f"Order #{order_id} updated ({fields})"
        if total is not None:
            message += f" - Total: ৳{total}"
        self.log(
            self.TYPE_ORDER,
            user,
            message,
            order_id,
            {'fields': list(changed_fields), 'total': money_to_number(total)}
        )

    def log_order_status_change(self, user: str, order_id: int, old_status: str, new_status: str) -> None:
        message = f"Order #{order_id}: {old_status} → {new_status}"
        self.log(
            self.TYPE_ORDER,
            user,
            message,
            order_id,
            {'from': old_status, 'to': new_status}
        )

    def log_order_deleted(self, user: str, order_id: int) -> None:
        self.log(self.TYPE_ORDER, user, f"Order #{order_id} deleted", order_id)

    def log_stock_adjusted(self, user: str, order_id: int, direction: str, cells: List[Dict[str, Any]]) -> None:
        """
        Args:
            direction: 'reserved' or 'released'
            cells: [{product_id, color, size, qty}]
        """
        desc = ', '.join(f"{c['qty']}x #{c['product_id']} ({c['color']}, {c['size']})" for c in cells)
        self.log(
            self.TYPE_ORDER,
            user,
            f"Stock {direction} for order #{order_id}: {desc}",
            order_id,
            {'direction': direction, 'cells': cells}
        )

    # -------------------------------------------------------------------------
    # Catalog
    # -------------------------------------------------------------------------

    def log_product_created(self, user: str, product_id: int, name: str, code: str) -> None:
        self.log(self.TYPE_PRODUCT, user, f"Product created: {name} ({code})", product_id)

    def log_product_updated(self, user: str, product_id: int, name: str, code: str, changes: Dict[str, Any] = None) -> None:
        self.log(
            self.TYPE_PRODUCT,
            user,
            f"Product updated: {name} ({code})",
            product_id,
            {'changes': changes or {}}
        )

    def log_product_deleted(self, user: str, product_id: int, name: str, code: str) -> None:
        self.log(self.TYPE_PRODUCT, user, f"Product deleted: {name} ({code})", product_id)

    # -------------------------------------------------------------------------
    # Customers
    # -------------------------------------------------------------------------

    def log_customer_created(self, user: str, customer_id: int, name: str, phone: str) -> None:
        self.log(self.TYPE_CUSTOMER, user, f"Customer created: {name} ({phone})", customer_id)

    def log_customer_updated(self, user: str, customer_id: int, name: str) -> None:
        self.log(self.TYPE_CUSTOMER, user, f"Customer updated: {name}", customer_id)

    def log_customer_deleted(self, user: str, customer_id: int, name: str) -> None:
        self.log(self.TYPE_CUSTOMER, user, f"Customer deleted: {name}", customer_id)

    # -------------------------------------------------------------------------
    # Batches
    # -------------------------------------------------------------------------

    def log_batch_created(self, user: str, batch_id: int, order_count: int) -> None:
        self.log(
            self.TYPE_BATCH,
            user,
            f"Batch #{batch_id} created with {order_count} orders",
            batch_id,
            {'order_count': order_count}
        )

    def log_batch_updated(self, user: str, batch_id: int, order_count: int) -> None:
        self.log(
            self.TYPE_BATCH,
            user,
            f"Batch #{batch_id} updated ({order_count} orders)",
            batch_id,
            {'order_count': order_count}
        )

    def log_batch_deleted(self, user: str, batch_id: int) -> None:
        self.log(self.TYPE_BATCH, user, f"Batch #{batch_id} deleted", batch_id)

    # -------------------------------------------------------------------------
    # System
    # -------------------------------------------------------------------------

    def log_user_login(self, user: str) -> None:
        self.log(self.TYPE_SYSTEM, user, f"Login: {user}")

    def log_user_logout(self, user: str) -> None:
        self.log(self.TYPE_SYSTEM, user, f"Logout: {user}")

    def log_settings_changed(self, user: str, keys: List[str]) -> None:
        self.log(
            self.TYPE_SYSTEM,
            user,
            f"Settings changed: {', '.join(keys)}",
            details={'keys': keys}
        )

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_recent_logs(self, limit: int = 100) -> List[Dict[str, Any]]:
        return self.audit_repo.load()[:limit]

    def search_logs(
        self,
        query: str = '',
        log_type: str = None,
        related_id: str = None,
        limit: int = None
    ) -> List[Dict[str, Any]]:
        return self.audit_repo.search_logs(query, log_type, related_id, limit)
