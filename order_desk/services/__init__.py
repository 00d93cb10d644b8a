# ==============================================================================
# SERVICE LAYER - Business logic
# ==============================================================================
# PRINCIPLES:
# 1. Services orchestrate repositories and apply business rules
# 2. Routes only call services and serialize results
# 3. Services depend on repository interfaces, not on JSON files
# 4. Every multi-record mutation runs inside repositories.base.atomic()
#
# STRUCTURE:
# ├── availability_service.py → Variant stock gate
# ├── order_totals.py         → Subtotal/total/due arithmetic
# ├── order_service.py        → Order mutation coordinator
# ├── catalog_service.py      → Products and variant groups
# ├── customer_service.py     → Customers, find-or-create by phone
# ├── batch_service.py        → Fulfillment batches
# ├── settings_service.py     → Business settings, delivery charges
# ├── user_service.py         → Login, default accounts
# └── audit_service.py        → Audit trail
# ==============================================================================

from order_desk.services.availability_service import (
    AvailabilityService,
    StockCheckResult,
    check_availability,
)
from order_desk.services.order_totals import OrderTotals, calculate_totals
from order_desk.services.order_service import OrderService
from order_desk.services.catalog_service import CatalogService
from order_desk.services.customer_service import CustomerService
from order_desk.services.batch_service import BatchService
from order_desk.services.settings_service import SettingsService
from order_desk.services.user_service import UserService
from order_desk.services.audit_service import AuditService

__all__ = [
    'AvailabilityService',
    'StockCheckResult',
    'check_availability',
    'OrderTotals',
    'calculate_totals',
    'OrderService',
    'CatalogService',
    'CustomerService',
    'BatchService',
    'SettingsService',
    'UserService',
    'AuditService',
]
