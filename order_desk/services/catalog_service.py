# ==============================================================================
# CATALOG SERVICE
# ==============================================================================
# Product CRUD. Variant groups (color, sizes, per-size stock) are embedded
# in the product; an update carrying variant_groups replaces them all.
# ==============================================================================

import logging
from typing import Any, Dict, List

from order_desk.errors import ConflictError, NotFoundError, ValidationError
from order_desk.models.entities import Product, VariantGroup, money_to_number, to_decimal, utc_now
from order_desk.repositories.base import atomic, with_retry

logger = logging.getLogger(__name__)

_TEXT_FIELDS = ('description', 'image_url', 'source_link')


def _required_money(data: Dict[str, Any], key: str, message: str):
    value = data.get(key)
    if value is None or value == '':
        raise ValidationError(message, key)
    return _money(value, key)


def _money(value: Any, key: str):
    try:
        amount = to_decimal(value)
    except ValueError:
        raise ValidationError(f"Invalid amount for {key}", key)
    if amount < 0:
        raise ValidationError(f"{key} cannot be negative", key)
    return amount


def parse_variant_groups(raw_groups: Any) -> List[VariantGroup]:
    """
    Validates submitted variant groups.

    Raises:
        ValidationError: missing color, sizes not a list, bad quantities
    """
    if raw_groups is None:
        return []
    if not isinstance(raw_groups, list):
        raise ValidationError("Variant groups must be an array", 'variant_groups')

    groups = []
    for raw in raw_groups:
        if not isinstance(raw, dict):
            raise ValidationError("Variant group color is required", 'variant_groups')
        color = str(raw.get('color') or '').strip()
        if not color:
            raise ValidationError("Variant group color is required", 'variant_groups')
        sizes = raw.get('sizes')
        if not isinstance(sizes, list):
            raise ValidationError("Variant group sizes must be an array", 'variant_groups')
        sizes = [str(s).strip() for s in sizes if str(s).strip()]

        quantities = raw.get('quantities') or {}
        if not isinstance(quantities, dict):
            raise ValidationError("Variant group quantities must be an object", 'variant_groups')
        clean_quantities = {}
        for size, qty in quantities.items():
            if size not in sizes:
                raise ValidationError(
                    f"Quantity given for size '{size}' which is not in sizes for color '{color}'",
                    'variant_groups'
                )
            if isinstance(qty, bool) or not isinstance(qty, int) or qty < 0:
                raise ValidationError(
                    f"Quantity for '{color}' / '{size}' must be a non-negative integer",
                    'variant_groups'
                )
            clean_quantities[size] = qty

        override = raw.get('sell_price_override')
        groups.append(VariantGroup(
            color=color,
            sizes=sizes,
            quantities=clean_quantities,
            sell_price_override=_money(override, 'sell_price_override') if override not in (None, '') else None,
            image_url=(str(raw.get('image_url') or '').strip() or None),
        ))
    return groups


class CatalogService:
    """Product management."""

    def __init__(self, product_repo, audit_service=None):
        """
        Args:
            product_repo: IProductRepository
            audit_service: AuditService (optional)
        """
        self.product_repo = product_repo
        self.audit_service = audit_service

    # =========================================================================
    # QUERIES
    # =========================================================================

    def list_products(self, include_inactive: bool = True, query: str = None) -> List[Dict[str, Any]]:
        products = self.product_repo.list_products(include_inactive)
        if query:
            q = query.strip().lower()
            products = [p for p in products if q in p.name.lower() or q in p.code.lower()]
        products.reverse()
        return [self.to_view(p) for p in products]

    def get_product(self, product_id: Any) -> Product:
        """
        Raises:
            NotFoundError
        """
        product = self.product_repo.get_product(product_id)
        if product is None:
            raise NotFoundError('Product not found')
        return product

    def get_product_view(self, product_id: Any) -> Dict[str, Any]:
        return self.to_view(self.get_product(product_id))

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def create_product(self, data: Dict[str, Any], user: str = None) -> Dict[str, Any]:
        """
        Creates a product.

        Args:
            data: name, code, base_price_bdt, sell_price_bdt, description,
                  image_url, source_link, is_active, variant_groups
            user: Acting user

        Raises:
            ValidationError, ConflictError
        """
        data = data or {}
        name = str(data.get('name') or '').strip()
        if not name:
            raise ValidationError("Product name is required", 'name')
        code = str(data.get('code') or '').strip()
        if not code:
            raise ValidationError("Product code is required", 'code')
        base_price = _required_money(data, 'base_price_bdt', "Base price is required")
        sell_price = _required_money(data, 'sell_price_bdt', "Sell price is required")
        groups = parse_variant_groups(data.get('variant_groups'))

        product = Product(
            id=0,
            name=name,
            code=code,
            base_price_bdt=base_price,
            sell_price_bdt=sell_price,
            is_active=bool(data.get('is_active', True)),
            variant_groups=groups,
            **{k: str(data.get(k) or '').strip() for k in _TEXT_FIELDS}
        )

        def run() -> Product:
            with atomic():
                if self.product_repo.find_by_code(code):
                    raise ConflictError("Product code already exists")
                self.product_repo.save_product(product)
                if self.audit_service:
                    self.audit_service.log_product_created(user, product.id, name, code)
                return product

        return self.to_view(with_retry(run))

    def update_product(self, product_id: Any, data: Dict[str, Any], user: str = None) -> Dict[str, Any]:
        """
        Partial update; variant_groups, when present, replaces every group.

        Raises:
            NotFoundError, ValidationError, ConflictError
        """
        data = data or {}
        groups = parse_variant_groups(data['variant_groups']) if data.get('variant_groups') is not None else None

        def run() -> Product:
            with atomic():
                product = self.get_product(product_id)
                changes = {}

                if 'name' in data:
                    name = str(data.get('name') or '').strip()
                    if not name:
                        raise ValidationError("Product name is required", 'name')
                    product.name = name
                    changes['name'] = name
                if 'code' in data:
                    code = str(data.get('code') or '').strip()
                    if not code:
                        raise ValidationError("Product code is required", 'code')
                    existing = self.product_repo.find_by_code(code)
                    if existing and existing.id != product.id:
                        raise ConflictError("Product code already exists")
                    product.code = code
                    changes['code'] = code
                for key in ('base_price_bdt', 'sell_price_bdt'):
                    if data.get(key) is not None:
                        setattr(product, key, _money(data[key], key))
                        changes[key] = money_to_number(getattr(product, key))
                for key in _TEXT_FIELDS:
                    if key in data:
                        setattr(product, key, str(data.get(key) or '').strip())
                        changes[key] = getattr(product, key)
                if 'is_active' in data:
                    product.is_active = bool(data['is_active'])
                    changes['is_active'] = product.is_active
                if groups is not None:
                    product.variant_groups = groups
                    changes['variant_groups'] = len(groups)

                product.updated_at = utc_now()
                self.product_repo.save_product(product)
                if self.audit_service:
                    self.audit_service.log_product_updated(user, product.id, product.name, product.code, changes)
                return product

        return self.to_view(with_retry(run))

    def delete_product(self, product_id: Any, user: str = None) -> None:
        """
        Order items keep their snapshots, so deleting a product never
        touches placed orders.

        Raises:
            NotFoundError
        """
        def run() -> None:
            with atomic():
                product = self.get_product(product_id)
                self.product_repo.delete_product(product.id)
                if self.audit_service:
                    self.audit_service.log_product_deleted(user, product.id, product.name, product.code)

        with_retry(run)

    # =========================================================================
    # VIEW
    # =========================================================================

    @staticmethod
    def to_view(product: Product) -> Dict[str, Any]:
        view = product.to_dict()
        view['base_price_bdt'] = money_to_number(product.base_price_bdt)
        view['sell_price_bdt'] = money_to_number(product.sell_price_bdt)
        view['variant_groups'] = []
        for group in product.variant_groups:
            g = group.to_dict()
            g['sell_price_override'] = money_to_number(group.sell_price_override)
            g['total_stock'] = group.total_stock
            view['variant_groups'].append(g)
        view['total_stock'] = sum(g.total_stock for g in product.variant_groups)
        return view
