# ==============================================================================
# MODEL LAYER - Domain data structures
# ==============================================================================
# Dataclasses independent of the persistence mechanism (JSON files today).
# ==============================================================================

from .entities import (
    # Users
    User,
    UserRole,

    # Catalog
    Product,
    VariantGroup,

    # Customers
    Customer,

    # Orders
    Order,
    OrderItem,
    OrderStatus,
    ORDER_STATUSES,
    COURIER_FIELDS,

    # Batches
    Batch,

    # Audit
    AuditLog,
    AuditType,

    # Money
    to_decimal,
    money_to_json,
    money_to_number,
    utc_now,
)

__all__ = [
    'User',
    'UserRole',
    'Product',
    'VariantGroup',
    'Customer',
    'Order',
    'OrderItem',
    'OrderStatus',
    'ORDER_STATUSES',
    'COURIER_FIELDS',
    'Batch',
    'AuditLog',
    'AuditType',
    'to_decimal',
    'money_to_json',
    'money_to_number',
    'utc_now',
]
