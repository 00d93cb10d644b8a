# ==============================================================================
# DOMAIN ENTITIES - Dataclass definitions
# ==============================================================================
# Each entity represents one business concept and knows how to convert
# itself to and from the dict shape stored in the JSON collections.
# Money is always Decimal in memory and a string on disk (integer Taka,
# no float accumulation). The API layer renders numbers via money_to_number.
# ==============================================================================

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional, Union


# ==============================================================================
# ENUMERATIONS
# ==============================================================================

class UserRole(str, Enum):
    """Dashboard roles."""
    ADMIN = "admin"
    MODERATOR = "moderator"


class OrderStatus(str, Enum):
    """Order status labels. No transition graph is enforced."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class AuditType(str, Enum):
    """Audit event categories."""
    ORDER = "ORDER"
    PRODUCT = "PRODUCT"
    CUSTOMER = "CUSTOMER"
    BATCH = "BATCH"
    SYSTEM = "SYSTEM"


ORDER_STATUSES = frozenset(s.value for s in OrderStatus)


# ==============================================================================
# MONEY HELPERS
# ==============================================================================

MoneyLike = Union[Decimal, int, float, str, None]


def to_decimal(value: MoneyLike, default: str = '0') -> Decimal:
    """
    Converts a wire/disk value to Decimal.

    Floats go through str() so 450.0 becomes Decimal('450.0') and not
    the binary expansion.

    Raises:
        ValueError: if the value is not numeric
    """
    if value is None or value == '':
        return Decimal(default)
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid amount: {value!r}")
    try:
        result = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return result


def money_to_json(value: Decimal) -> str:
    """Disk representation of an amount."""
    return str(value)


def money_to_number(value: Optional[Decimal]) -> Union[int, float, None]:
    """API representation: int when integral, float otherwise."""
    if value is None:
        return None
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _optional_money(value: MoneyLike) -> Optional[Decimal]:
    if value is None or value == '':
        return None
    return to_decimal(value)


# ==============================================================================
# USERS
# ==============================================================================

@dataclass
class User:
    """
    Dashboard account.

    Attributes:
        id: Numeric identity
        email: Login email (lower-cased)
        password_hash: werkzeug hash, never plain text
        role: Role granted by this account
    """
    id: int
    email: str
    password_hash: str
    role: UserRole = UserRole.MODERATOR
    created_at: str = ''

    def __post_init__(self):
        if not self.created_at:
            self.created_at = utc_now()

    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'email': self.email,
            'password': self.password_hash,
            'role': self.role.value if isinstance(self.role, Enum) else self.role,
            'created_at': self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'User':
        try:
            role = UserRole(data.get('role', 'moderator'))
        except ValueError:
            role = UserRole.MODERATOR
        return cls(
            id=data.get('id', 0),
            email=data.get('email', ''),
            password_hash=data.get('password', ''),
            role=role,
            created_at=data.get('created_at', ''),
        )


# ==============================================================================
# CATALOG
# ==============================================================================

@dataclass
class VariantGroup:
    """
    Color-specific bundle of sizes and per-size stock.

    Attributes:
        color: Color label, matched case-insensitively
        sizes: Ordered size labels offered for this color
        quantities: size -> stock count; a size without entry has no stock
        sell_price_override: Replaces the product sell price for this color
        image_url: Replaces the product image for this color
    """
    color: str
    sizes: List[str] = field(default_factory=list)
    quantities: Dict[str, int] = field(default_factory=dict)
    sell_price_override: Optional[Decimal] = None
    image_url: Optional[str] = None
    id: int = 0

    def matches_color(self, color: str) -> bool:
        return self.color.strip().lower() == (color or '').strip().lower()

    def has_size(self, size: str) -> bool:
        return size in self.sizes

    def quantity_for(self, size: str) -> int:
        """Stock for a size, missing entries count as zero."""
        return int(self.quantities.get(size, 0) or 0)

    @property
    def total_stock(self) -> int:
        return sum(self.quantity_for(s) for s in self.sizes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'color': self.color,
            'sizes': list(self.sizes),
            'quantities': dict(self.quantities),
            'sell_price_override': (
                money_to_json(self.sell_price_override)
                if self.sell_price_override is not None else None
            ),
            'image_url': self.image_url,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VariantGroup':
        return cls(
            id=data.get('id', 0),
            color=data.get('color', ''),
            sizes=list(data.get('sizes') or []),
            quantities=dict(data.get('quantities') or {}),
            sell_price_override=_optional_money(data.get('sell_price_override')),
            image_url=data.get('image_url'),
        )


@dataclass
class Product:
    """
    Catalog product. Stock lives in the variant groups.

    Attributes:
        id: Numeric identity
        name: Display name
        code: Unique product code
        base_price_bdt: Purchase cost
        sell_price_bdt: Default selling price
        is_active: Hidden from order forms when False
        variant_groups: Color/size/stock bundles (empty for legacy rows)
    """
    id: int
    name: str
    code: str
    base_price_bdt: Decimal = Decimal('0')
    sell_price_bdt: Decimal = Decimal('0')
    description: str = ''
    image_url: str = ''
    source_link: str = ''
    is_active: bool = True
    variant_groups: List[VariantGroup] = field(default_factory=list)
    created_at: str = ''
    updated_at: str = ''

    def __post_init__(self):
        if not self.created_at:
            self.created_at = utc_now()
        if not self.updated_at:
            self.updated_at = self.created_at

    @property
    def has_variants(self) -> bool:
        return bool(self.variant_groups)

    def find_group(self, color: str) -> Optional[VariantGroup]:
        """Variant group for a color (case-insensitive) or None."""
        for group in self.variant_groups:
            if group.matches_color(color):
                return group
        return None

    def price_for(self, color: str = None) -> Decimal:
        """Sell price honoring the color override."""
        group = self.find_group(color) if color else None
        if group and group.sell_price_override is not None:
            return group.sell_price_override
        return self.sell_price_bdt

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'code': self.code,
            'description': self.description,
            'base_price_bdt': money_to_json(self.base_price_bdt),
            'sell_price_bdt': money_to_json(self.sell_price_bdt),
            'image_url': self.image_url,
            'source_link': self.source_link,
            'is_active': self.is_active,
            'variant_groups': [g.to_dict() for g in self.variant_groups],
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Product':
        return cls(
            id=data.get('id', 0),
            name=data.get('name', ''),
            code=data.get('code', ''),
            description=data.get('description') or '',
            base_price_bdt=to_decimal(data.get('base_price_bdt')),
            sell_price_bdt=to_decimal(data.get('sell_price_bdt')),
            image_url=data.get('image_url') or '',
            source_link=data.get('source_link') or '',
            is_active=bool(data.get('is_active', True)),
            variant_groups=[VariantGroup.from_dict(g) for g in data.get('variant_groups', [])],
            created_at=data.get('created_at', ''),
            updated_at=data.get('updated_at', ''),
        )


# ==============================================================================
# CUSTOMERS
# ==============================================================================

CUSTOMER_OPTIONAL_FIELDS = (
    'email', 'address', 'city', 'zone', 'area', 'postal_code', 'country', 'website'
)


@dataclass
class Customer:
    """
    Customer record. The phone number is the natural key used by the
    order form to find or create the customer.
    """
    id: int
    name: str
    phone: str
    email: str = ''
    address: str = ''
    city: str = ''
    zone: str = ''
    area: str = ''
    postal_code: str = ''
    country: str = ''
    website: str = ''
    total_orders: int = 0
    created_at: str = ''
    updated_at: str = ''

    def __post_init__(self):
        if not self.created_at:
            self.created_at = utc_now()
        if not self.updated_at:
            self.updated_at = self.created_at

    def to_dict(self) -> Dict[str, Any]:
        d = {'id': self.id, 'name': self.name, 'phone': self.phone}
        for name in CUSTOMER_OPTIONAL_FIELDS:
            d[name] = getattr(self, name)
        d['total_orders'] = self.total_orders
        d['created_at'] = self.created_at
        d['updated_at'] = self.updated_at
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Customer':
        optional = {name: data.get(name) or '' for name in CUSTOMER_OPTIONAL_FIELDS}
        return cls(
            id=data.get('id', 0),
            name=data.get('name', ''),
            phone=data.get('phone', ''),
            total_orders=int(data.get('total_orders', 0) or 0),
            created_at=data.get('created_at', ''),
            updated_at=data.get('updated_at', ''),
            **optional
        )


# ==============================================================================
# ORDERS
# ==============================================================================

@dataclass
class OrderItem:
    """
    Line item frozen at order time. Later catalog edits never touch it.

    Attributes:
        product_id: Product the snapshot was taken from
        product_name_snapshot: Product name at order time
        image_url_snapshot: Image at order time
        color_snapshot: Selected color (None for legacy items)
        size_snapshot: Selected size (None for legacy items)
        qty: Quantity ordered
        sell_price_bdt_snapshot: Unit price at order time
    """
    product_id: int
    product_name_snapshot: str
    qty: int
    sell_price_bdt_snapshot: Decimal
    image_url_snapshot: Optional[str] = None
    color_snapshot: Optional[str] = None
    size_snapshot: Optional[str] = None
    id: int = 0

    @property
    def line_total(self) -> Decimal:
        return self.sell_price_bdt_snapshot * self.qty

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'product_id': self.product_id,
            'product_name_snapshot': self.product_name_snapshot,
            'image_url_snapshot': self.image_url_snapshot,
            'color_snapshot': self.color_snapshot,
            'size_snapshot': self.size_snapshot,
            'qty': self.qty,
            'sell_price_bdt_snapshot': money_to_json(self.sell_price_bdt_snapshot),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OrderItem':
        return cls(
            id=data.get('id', 0),
            product_id=data.get('product_id', 0),
            product_name_snapshot=data.get('product_name_snapshot', ''),
            image_url_snapshot=data.get('image_url_snapshot'),
            color_snapshot=data.get('color_snapshot'),
            size_snapshot=data.get('size_snapshot'),
            qty=int(data.get('qty', 0) or 0),
            sell_price_bdt_snapshot=to_decimal(data.get('sell_price_bdt_snapshot')),
        )


# Opaque courier data stored as given.
COURIER_FIELDS = (
    'pathao_city_name',
    'pathao_zone_name',
    'pathao_area_name',
    'pathao_tracking_code',
    'pathao_status',
)


@dataclass
class Order:
    """
    Customer order. total_amount, total_items and due_bdt are derived
    by the order service and never taken from the caller.
    """
    id: int
    customer_id: int
    address: str
    status: str = OrderStatus.PENDING.value
    delivery_charge_bdt: Decimal = Decimal('0')
    advance_bdt: Decimal = Decimal('0')
    due_bdt: Decimal = Decimal('0')
    total_amount: Decimal = Decimal('0')
    total_items: int = 0
    items: List[OrderItem] = field(default_factory=list)
    pathao_city_name: Optional[str] = None
    pathao_zone_name: Optional[str] = None
    pathao_area_name: Optional[str] = None
    pathao_tracking_code: Optional[str] = None
    pathao_status: Optional[str] = None
    estimated_delivery_date: Optional[str] = None
    last_synced_at: Optional[str] = None
    created_at: str = ''
    updated_at: str = ''

    def __post_init__(self):
        if not self.created_at:
            self.created_at = utc_now()
        if not self.updated_at:
            self.updated_at = self.created_at

    @property
    def is_cancelled(self) -> bool:
        return self.status == OrderStatus.CANCELLED.value

    def to_dict(self) -> Dict[str, Any]:
        d = {
            'id': self.id,
            'customer_id': self.customer_id,
            'status': self.status,
            'address': self.address,
            'delivery_charge_bdt': money_to_json(self.delivery_charge_bdt),
            'advance_bdt': money_to_json(self.advance_bdt),
            'due_bdt': money_to_json(self.due_bdt),
            'total_amount': money_to_json(self.total_amount),
            'total_items': self.total_items,
            'items': [item.to_dict() for item in self.items],
        }
        for name in COURIER_FIELDS:
            d[name] = getattr(self, name)
        d['estimated_delivery_date'] = self.estimated_delivery_date
        d['last_synced_at'] = self.last_synced_at
        d['created_at'] = self.created_at
        d['updated_at'] = self.updated_at
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Order':
        courier = {name: data.get(name) for name in COURIER_FIELDS}
        return cls(
            id=data.get('id', 0),
            customer_id=data.get('customer_id', 0),
            address=data.get('address', ''),
            status=data.get('status', OrderStatus.PENDING.value),
            delivery_charge_bdt=to_decimal(data.get('delivery_charge_bdt')),
            advance_bdt=to_decimal(data.get('advance_bdt')),
            due_bdt=to_decimal(data.get('due_bdt')),
            total_amount=to_decimal(data.get('total_amount')),
            total_items=int(data.get('total_items', 0) or 0),
            items=[OrderItem.from_dict(i) for i in data.get('items', [])],
            estimated_delivery_date=data.get('estimated_delivery_date'),
            last_synced_at=data.get('last_synced_at'),
            created_at=data.get('created_at', ''),
            updated_at=data.get('updated_at', ''),
            **courier
        )


# ==============================================================================
# BATCHES
# ==============================================================================

@dataclass
class Batch:
    """Named group of order ids for fulfillment/export."""
    id: int
    created_by: str
    note: str = ''
    order_ids: List[int] = field(default_factory=list)
    created_at: str = ''

    def __post_init__(self):
        if not self.created_at:
            self.created_at = utc_now()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'note': self.note,
            'created_by': self.created_by,
            'order_ids': list(self.order_ids),
            'created_at': self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Batch':
        return cls(
            id=data.get('id', 0),
            created_by=data.get('created_by', ''),
            note=data.get('note') or '',
            order_ids=list(data.get('order_ids') or []),
            created_at=data.get('created_at', ''),
        )


# ==============================================================================
# AUDIT
# ==============================================================================

@dataclass
class AuditLog:
    """
    Audit entry.

    Attributes:
        type: Event category (ORDER, PRODUCT, ...)
        user: Who performed the action
        message: Human readable description
        timestamp: When it happened
        related_id: Id of the touched record
        details: Extra structured data
    """
    type: str
    user: str
    message: str
    timestamp: str = ''
    related_id: str = ''
    details: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = utc_now()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type,
            'user': self.user,
            'message': self.message,
            'timestamp': self.timestamp,
            'related_id': self.related_id,
            'details': self.details
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AuditLog':
        return cls(
            type=data.get('type', ''),
            user=data.get('user', ''),
            message=data.get('message', ''),
            timestamp=data.get('timestamp', ''),
            related_id=data.get('related_id', ''),
            details=data.get('details', {})
        )
