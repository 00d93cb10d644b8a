# ==============================================================================
# ORDER SERVICE - Mutation coordinator
# ==============================================================================
# Every order create/update/delete follows the same path:
#
#   1. Validate the draft (shape, required fields) before any I/O.
#   2. Inside one atomic() unit:
#        a. resolve the customer
#        b. run the stock gate for every item against live stock
#        c. replace the whole item set (never patched item by item)
#        d. recompute subtotal/total/due from the items
#        e. write the order, the customer counter and the audit entry
#   3. Reload the order and return it.
#
# If anything in step 2 raises, every file touched is restored and the
# caller sees the error; the whole call can be retried safely.
#
# STOCK ACCOUNTING (decrement_stock=True):
# Items of a non-cancelled order hold stock. Creating reserves, cancelling
# or deleting releases, replacing items releases the old set before the
# new one is checked and reserved. Off by default.
# ==============================================================================

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from order_desk.errors import (
    CustomerNotFoundError,
    OrderNotFoundError,
    ValidationError,
)
from order_desk.models.entities import (
    COURIER_FIELDS,
    ORDER_STATUSES,
    Customer,
    Order,
    OrderItem,
    OrderStatus,
    money_to_number,
    to_decimal,
    utc_now,
)
from order_desk.performance_logger import profile_function
from order_desk.repositories.base import atomic, with_retry
from order_desk.services.order_totals import calculate_totals

logger = logging.getLogger(__name__)

ITEMS_REQUIRED = "Each item must have product_id, product_name_snapshot, and qty"

# Optional text fields accepted on create and update; blank means None.
PASSTHROUGH_FIELDS = COURIER_FIELDS + ('estimated_delivery_date', 'last_synced_at')


# ==============================================================================
# DRAFT PARSING
# ==============================================================================

def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _money(value: Any, field: str) -> Decimal:
    try:
        amount = to_decimal(value)
    except ValueError:
        raise ValidationError(f"Invalid amount for {field}", field)
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative", field)
    return amount


def _status(value: Any) -> str:
    status = (_clean(value) or '').lower()
    if status not in ORDER_STATUSES:
        raise ValidationError(
            f"Invalid status '{value}'. Allowed: {', '.join(sorted(ORDER_STATUSES))}",
            'status'
        )
    return status


def parse_item(raw: Any) -> OrderItem:
    """
    Builds the canonical OrderItem from one submitted item.

    Accepts 'quantity' for 'qty' and 'price' for 'sell_price_bdt_snapshot'.
    A missing price is filled from the live product later.

    Raises:
        ValidationError: malformed item
    """
    if not isinstance(raw, dict):
        raise ValidationError(ITEMS_REQUIRED, 'items')

    product_id = raw.get('product_id')
    name = _clean(raw.get('product_name_snapshot'))
    qty = raw.get('qty', raw.get('quantity'))
    if not product_id or not name or not qty:
        raise ValidationError(ITEMS_REQUIRED, 'items')

    try:
        product_id = int(product_id)
    except (TypeError, ValueError):
        raise ValidationError("Item product_id must be an integer", 'items')

    if isinstance(qty, bool) or not isinstance(qty, (int, str)):
        raise ValidationError("Item qty must be a positive integer", 'items')
    try:
        qty = int(qty)
    except ValueError:
        raise ValidationError("Item qty must be a positive integer", 'items')
    if qty <= 0:
        raise ValidationError("Item qty must be a positive integer", 'items')

    price = raw.get('sell_price_bdt_snapshot', raw.get('price'))
    price = _money(price, 'sell_price_bdt_snapshot') if price not in (None, '') else None

    return OrderItem(
        product_id=product_id,
        product_name_snapshot=name,
        qty=qty,
        sell_price_bdt_snapshot=price,
        image_url_snapshot=_clean(raw.get('image_url_snapshot')),
        color_snapshot=_clean(raw.get('color_snapshot')),
        size_snapshot=_clean(raw.get('size_snapshot')),
    )


def parse_items(raw_items: Any) -> List[OrderItem]:
    """
    Raises:
        ValidationError: not a non-empty list, or a malformed item
    """
    if not raw_items or not isinstance(raw_items, list):
        raise ValidationError("Order items are required", 'items')
    return [parse_item(raw) for raw in raw_items]


# ==============================================================================
# SERVICE
# ==============================================================================

class OrderService:
    """
    Coordinates order mutations.

    Responsibilities:
    - Draft validation
    - Stock gate (AvailabilityService) before any write
    - Totals via calculate_totals, never trusted from the caller
    - Atomic persistence of order, items, customer counter and audit
    - Optional stock reservation/release
    """

    def __init__(
        self,
        order_repo,
        customer_repo,
        product_repo,
        availability_service,
        customer_service=None,
        batch_repo=None,
        audit_service=None,
        decrement_stock: bool = False
    ):
        """
        Args:
            order_repo: IOrderRepository
            customer_repo: ICustomerRepository
            product_repo: IProductRepository
            availability_service: AvailabilityService
            customer_service: Used to find or create a customer by phone
            batch_repo: IBatchRepository, cleaned up on delete
            audit_service: AuditService (optional)
            decrement_stock: Enables stock reservation/release
        """
        self.order_repo = order_repo
        self.customer_repo = customer_repo
        self.product_repo = product_repo
        self.availability = availability_service
        self.customer_service = customer_service
        self.batch_repo = batch_repo
        self.audit_service = audit_service
        self.decrement_stock = decrement_stock

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_order(self, order_id: Any) -> Order:
        """
        Raises:
            OrderNotFoundError
        """
        order = self.order_repo.get_order(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def get_order_view(self, order_id: Any) -> Dict[str, Any]:
        order = self.get_order(order_id)
        return self.to_view(order, self.customer_repo.get_customer(order.customer_id))

    def list_orders(self, status: str = None, query: str = None) -> List[Dict[str, Any]]:
        """
        Orders newest first.

        Args:
            status: Exact status filter
            query: Case-insensitive match on customer name/phone or tracking code
        """
        customers = {c.id: c for c in self.customer_repo.list_customers()}
        status = (status or '').strip().lower()
        query = (query or '').strip().lower()

        views = []
        for order in self.order_repo.list_orders():
            if status and order.status != status:
                continue
            customer = customers.get(order.customer_id)
            if query:
                haystack = [
                    customer.name if customer else '',
                    customer.phone if customer else '',
                    order.pathao_tracking_code or '',
                    str(order.id),
                ]
                if not any(query in h.lower() for h in haystack):
                    continue
            views.append(self.to_view(order, customer))
        return views

    def check_items(self, raw_items: Any) -> List[Dict[str, Any]]:
        """Dry-run stock check, writes nothing."""
        return self.availability.dry_run(parse_items(raw_items))

    # =========================================================================
    # CREATE
    # =========================================================================

    @profile_function(name="Create order")
    def create_order(
        self,
        customer_id: Any = None,
        items: Any = None,
        address: str = None,
        delivery_charge: Any = 0,
        advance: Any = 0,
        status: str = OrderStatus.PENDING.value,
        courier_fields: Dict[str, Any] = None,
        customer_data: Dict[str, Any] = None,
        user: str = None
    ) -> Dict[str, Any]:
        """
        Creates an order with its items.

        Args:
            customer_id: Owning customer
            items: Submitted line items (list of dicts)
            address: Delivery address
            delivery_charge: Delivery charge, already resolved by the caller
            advance: Advance payment
            status: Initial status
            courier_fields: Optional pass-through fields (PASSTHROUGH_FIELDS)
            customer_data: {name, phone, ...} used when customer_id is absent
            user: Acting user, for the audit trail

        Returns:
            The persisted order view

        Raises:
            ValidationError, CustomerNotFoundError, ProductReferenceError,
            BusinessRuleError, TransientStoreError
        """
        if not customer_id and not (customer_data and customer_data.get('phone')):
            raise ValidationError("Customer ID is required", 'customer_id')
        parsed = parse_items(items)
        address = _clean(address)
        if not address:
            raise ValidationError("Delivery address is required", 'address')
        delivery = _money(delivery_charge, 'delivery_charge_bdt')
        advance_amount = _money(advance, 'advance_bdt')
        status = _status(status or OrderStatus.PENDING.value)
        extra = {name: _clean((courier_fields or {}).get(name)) for name in PASSTHROUGH_FIELDS}

        def run() -> int:
            with atomic():
                customer = self._resolve_customer(customer_id, customer_data, user)
                self.availability.ensure_items_available(parsed)
                self._fill_prices(parsed)
                totals = calculate_totals(parsed, delivery, advance_amount)

                order = Order(
                    id=0,
                    customer_id=customer.id,
                    address=address,
                    status=status,
                    delivery_charge_bdt=delivery,
                    advance_bdt=advance_amount,
                    due_bdt=totals.due,
                    total_amount=totals.total,
                    total_items=totals.total_items,
                    items=list(parsed),
                    **extra
                )
                self.order_repo.save_order(order)
                self.customer_repo.increment_order_count(customer.id)

                if self._holds_stock(order):
                    self._adjust_stock(order, order.items, -1, user)

                if self.audit_service:
                    self.audit_service.log_order_created(
                        user, order.id, customer.name, totals.total, totals.total_items
                    )
                return order.id

        order_id = with_retry(run)
        logger.info("Order %s created by %s", order_id, user or 'system')
        return self.get_order_view(order_id)

    # =========================================================================
    # UPDATE
    # =========================================================================

    @profile_function(name="Update order")
    def update_order(self, order_id: Any, patch: Dict[str, Any], user: str = None) -> Dict[str, Any]:
        """
        Applies a partial update.

        Recognized keys: items, delivery_charge_bdt, advance_bdt, address,
        status and PASSTHROUGH_FIELDS. Omitted keys keep their stored value.
        Totals are always recomputed from the (new or stored) items.

        Raises:
            OrderNotFoundError, ValidationError, ProductReferenceError,
            BusinessRuleError, TransientStoreError
        """
        patch = patch or {}

        new_items = None
        if patch.get('items') is not None:
            new_items = parse_items(patch['items'])
        delivery = None
        if patch.get('delivery_charge_bdt') is not None:
            delivery = _money(patch['delivery_charge_bdt'], 'delivery_charge_bdt')
        advance = None
        if patch.get('advance_bdt') is not None:
            advance = _money(patch['advance_bdt'], 'advance_bdt')
        new_status = _status(patch['status']) if patch.get('status') is not None else None
        address = None
        if 'address' in patch:
            address = _clean(patch['address'])
            if not address:
                raise ValidationError("Delivery address is required", 'address')

        def run() -> Order:
            with atomic():
                order = self.get_order(order_id)
                old_status = order.status
                old_items = list(order.items)

                held_before = self._holds_stock(order)
                if new_status is not None:
                    order.status = new_status
                held_after = self._holds_stock(order)
                items_changed = new_items is not None
                final_items = new_items if items_changed else old_items

                if held_before and (items_changed or not held_after):
                    self._adjust_stock(order, old_items, +1, user)

                if items_changed or (held_after and not held_before):
                    self.availability.ensure_items_available(final_items)

                if items_changed:
                    self._fill_prices(new_items)
                    order.items = self.order_repo.replace_items(order.id, new_items)

                if held_after and (items_changed or not held_before):
                    self._adjust_stock(order, final_items, -1, user)

                if delivery is not None:
                    order.delivery_charge_bdt = delivery
                if advance is not None:
                    order.advance_bdt = advance
                if address is not None:
                    order.address = address
                for name in PASSTHROUGH_FIELDS:
                    if name in patch:
                        setattr(order, name, _clean(patch[name]))

                totals = calculate_totals(order.items, order.delivery_charge_bdt, order.advance_bdt)
                order.total_amount = totals.total
                order.total_items = totals.total_items
                order.due_bdt = totals.due
                order.updated_at = utc_now()
                self.order_repo.save_order(order)

                if self.audit_service:
                    changed = sorted(patch.keys())
                    self.audit_service.log_order_updated(user, order.id, changed, totals.total)
                    if new_status is not None and new_status != old_status:
                        self.audit_service.log_order_status_change(user, order.id, old_status, new_status)
                return order

        order = with_retry(run)
        return self.get_order_view(order.id)

    # =========================================================================
    # DELETE
    # =========================================================================

    @profile_function(name="Delete order")
    def delete_order(self, order_id: Any, user: str = None) -> None:
        """
        Deletes an order, its items and its batch memberships.

        Raises:
            OrderNotFoundError, TransientStoreError
        """
        def run() -> None:
            with atomic():
                order = self.get_order(order_id)
                if self._holds_stock(order):
                    self._adjust_stock(order, order.items, +1, user)
                self.order_repo.delete_order(order.id)
                if self.batch_repo is not None:
                    self.batch_repo.remove_order_everywhere(order.id)
                if self.audit_service:
                    self.audit_service.log_order_deleted(user, order.id)

        with_retry(run)

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _resolve_customer(self, customer_id: Any, customer_data: Optional[Dict[str, Any]], user: str) -> Customer:
        if customer_id:
            customer = self.customer_repo.get_customer(customer_id)
            if customer is None:
                raise CustomerNotFoundError(customer_id)
            return customer
        if self.customer_service is None:
            raise ValidationError("Customer ID is required", 'customer_id')
        return self.customer_service.find_or_create_by_phone(customer_data, user=user)

    def _fill_prices(self, items: List[OrderItem]) -> None:
        """Snapshots the live price for items submitted without one."""
        for item in items:
            if item.sell_price_bdt_snapshot is None:
                product = self.product_repo.get_product(item.product_id)
                item.sell_price_bdt_snapshot = product.price_for(item.color_snapshot)

    def _holds_stock(self, order: Order) -> bool:
        return self.decrement_stock and not order.is_cancelled

    def _adjust_stock(self, order: Order, items: List[OrderItem], sign: int, user: str) -> None:
        cells = []
        for item in items:
            if not item.color_snapshot or not item.size_snapshot:
                continue
            self.product_repo.adjust_stock(
                item.product_id, item.color_snapshot, item.size_snapshot, sign * item.qty
            )
            cells.append({
                'product_id': item.product_id,
                'color': item.color_snapshot,
                'size': item.size_snapshot,
                'qty': item.qty,
            })
        if cells and self.audit_service:
            direction = 'reserved' if sign < 0 else 'released'
            self.audit_service.log_stock_adjusted(user, order.id, direction, cells)

    # =========================================================================
    # VIEW
    # =========================================================================

    @staticmethod
    def to_view(order: Order, customer: Optional[Customer]) -> Dict[str, Any]:
        """
        API shape of an order: numbers instead of money strings, customer
        fields flattened in, plus delivery_charge/delivery_address aliases.
        """
        view = {
            'id': order.id,
            'customer_id': order.customer_id,
            'customer_name': customer.name if customer else '',
            'customer_phone': customer.phone if customer else '',
        }
        for name in ('address', 'city', 'zone', 'area', 'postal_code', 'country', 'email', 'website'):
            view[f'customer_{name}'] = getattr(customer, name, '') if customer else ''

        view['items'] = [
            {
                'id': item.id,
                'product_id': item.product_id,
                'product_name_snapshot': item.product_name_snapshot,
                'image_url_snapshot': item.image_url_snapshot,
                'color_snapshot': item.color_snapshot,
                'size_snapshot': item.size_snapshot,
                'qty': item.qty,
                'sell_price_bdt_snapshot': money_to_number(item.sell_price_bdt_snapshot),
                'line_total': money_to_number(item.line_total),
            }
            for item in order.items
        ]
        view.update({
            'status': order.status,
            'address': order.address,
            'delivery_charge_bdt': money_to_number(order.delivery_charge_bdt),
            'advance_bdt': money_to_number(order.advance_bdt),
            'due_bdt': money_to_number(order.due_bdt),
            'total_amount': money_to_number(order.total_amount),
            'total_items': order.total_items,
            'delivery_charge': money_to_number(order.delivery_charge_bdt),
            'delivery_address': order.address,
        })
        for name in PASSTHROUGH_FIELDS:
            view[name] = getattr(order, name)
        view['created_at'] = order.created_at
        view['updated_at'] = order.updated_at
        return view

    def tracking_view(self, order_id: Any, packing_message: Optional[str] = None) -> Dict[str, Any]:
        """
        Public tracking page data. Leaves out customer contact details
        and the internal audit fields.

        Args:
            order_id: Order to show
            packing_message: Shown while the order is still being prepared

        Raises:
            OrderNotFoundError
        """
        order = self.get_order(order_id)
        view = {
            'id': order.id,
            'status': order.status,
            'items': [
                {
                    'product_name': item.product_name_snapshot,
                    'image_url': item.image_url_snapshot,
                    'color': item.color_snapshot,
                    'size': item.size_snapshot,
                    'qty': item.qty,
                    'price': money_to_number(item.sell_price_bdt_snapshot),
                }
                for item in order.items
            ],
            'total_items': order.total_items,
            'total_amount': money_to_number(order.total_amount),
            'delivery_charge': money_to_number(order.delivery_charge_bdt),
            'advance': money_to_number(order.advance_bdt),
            'due': money_to_number(order.due_bdt),
            'pathao_status': order.pathao_status,
            'pathao_tracking_code': order.pathao_tracking_code,
            'estimated_delivery_date': order.estimated_delivery_date,
            'created_at': order.created_at,
        }
        if packing_message and order.status in (OrderStatus.PENDING.value, OrderStatus.PROCESSING.value):
            view['packing_message'] = packing_message
        return view
