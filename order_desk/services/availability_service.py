# ==============================================================================
# AVAILABILITY SERVICE - Variant stock gate
# ==============================================================================
# Decides whether a (product, color, size, qty) request can be served from
# the product's per-size stock map.
#
# RULES:
# 1. No color or size on the request, or a product without variant groups
#    → legacy item, always available (no stock ceiling).
# 2. Color is matched case-insensitively against the variant groups.
# 3. The size must belong to the matched group's size list.
# 4. A size without a quantities entry has zero stock.
#
# check_availability() is pure and never raises for stock problems; it
# returns a StockCheckResult. AvailabilityService turns failures into
# BusinessRuleError subclasses for the order coordinator.
# ==============================================================================

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from order_desk.errors import (
    BusinessRuleError,
    InsufficientStockError,
    ProductReferenceError,
    SizeNotAvailableError,
    VariantNotFoundError,
)
from order_desk.models.entities import OrderItem, Product

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StockCheckResult:
    """
    Outcome of one availability check.

    Attributes:
        available: True when the requested quantity can be served
        available_qty: Stock of the cell, None for legacy items
        reason: Actionable message when not available
        outcome: ok | legacy | variant_not_found | size_not_available | insufficient
    """
    available: bool
    available_qty: Optional[int]
    reason: Optional[str] = None
    outcome: str = 'ok'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'available': self.available,
            'available_quantity': self.available_qty,
            'reason': self.reason,
            'outcome': self.outcome,
        }


_ERRORS = {
    'variant_not_found': VariantNotFoundError,
    'size_not_available': SizeNotAvailableError,
    'insufficient': InsufficientStockError,
}


def check_availability(
    product: Product,
    color: Optional[str],
    size: Optional[str],
    requested_qty: int
) -> StockCheckResult:
    """
    Checks one request against the product's live stock.

    Args:
        product: Product with its variant groups
        color: Requested color (None for legacy items)
        size: Requested size (None for legacy items)
        requested_qty: Quantity wanted

    Returns:
        StockCheckResult
    """
    if not product.has_variants or not color or not size:
        return StockCheckResult(available=True, available_qty=None, outcome='legacy')

    group = product.find_group(color)
    if group is None:
        return StockCheckResult(
            available=False,
            available_qty=0,
            reason=f"Color '{color}' not found for product",
            outcome='variant_not_found',
        )

    if not group.has_size(size):
        return StockCheckResult(
            available=False,
            available_qty=0,
            reason=f"Size '{size}' not available for color '{color}'",
            outcome='size_not_available',
        )

    available_qty = group.quantity_for(size)
    if requested_qty > available_qty:
        return StockCheckResult(
            available=False,
            available_qty=available_qty,
            reason=f"Only {available_qty} items available for {product.name} ({color}, {size})",
            outcome='insufficient',
        )

    return StockCheckResult(available=True, available_qty=available_qty)


def raise_for_result(
    result: StockCheckResult,
    product_id: Any,
    color: str = None,
    size: str = None
) -> None:
    """Raises the BusinessRuleError matching a failed result."""
    if result.available:
        return
    error_cls = _ERRORS.get(result.outcome, BusinessRuleError)
    raise error_cls(
        result.reason,
        product_id=product_id,
        color=color,
        size=size,
        available_qty=result.available_qty or 0,
    )


class AvailabilityService:
    """
    Runs the stock gate against the live catalog.

    Reads products through the repository on every call, so a check made
    inside atomic() sees the state the surrounding mutation will write on.
    """

    def __init__(self, product_repo):
        """
        Args:
            product_repo: IProductRepository
        """
        self.product_repo = product_repo

    def _load_product(self, product_id: Any) -> Product:
        product = self.product_repo.get_product(product_id)
        if product is None:
            raise ProductReferenceError(product_id)
        return product

    def ensure_items_available(self, items: Iterable[OrderItem]) -> None:
        """
        Hard gate: raises on the first item that cannot be served.

        Quantities of items repeating the same (product, color, size) are
        summed before checking.

        Raises:
            ProductReferenceError: dangling product id
            BusinessRuleError: first failing item
        """
        requested: Dict[tuple, int] = {}
        first_item: Dict[tuple, OrderItem] = {}
        for item in items:
            key = _cell_key(item)
            requested[key] = requested.get(key, 0) + item.qty
            first_item.setdefault(key, item)

        for key, qty in requested.items():
            item = first_item[key]
            product = self._load_product(item.product_id)
            result = check_availability(product, item.color_snapshot, item.size_snapshot, qty)
            if not result.available:
                logger.info(
                    "Stock gate rejected product=%s color=%s size=%s qty=%s: %s",
                    item.product_id, item.color_snapshot, item.size_snapshot, qty, result.reason
                )
                raise_for_result(result, item.product_id, item.color_snapshot, item.size_snapshot)

    def dry_run(self, items: Iterable[OrderItem]) -> List[Dict[str, Any]]:
        """
        Per-item results without raising on stock problems.

        Each item is checked against the summed quantity of its cell, so the
        report agrees with ensure_items_available().
        """
        items = list(items)
        requested: Dict[tuple, int] = {}
        for item in items:
            key = _cell_key(item)
            requested[key] = requested.get(key, 0) + item.qty

        report = []
        for item in items:
            product = self._load_product(item.product_id)
            result = check_availability(
                product, item.color_snapshot, item.size_snapshot, requested[_cell_key(item)]
            )
            entry = result.to_dict()
            entry.update({
                'product_id': item.product_id,
                'color': item.color_snapshot,
                'size': item.size_snapshot,
                'qty': item.qty,
            })
            report.append(entry)
        return report


def _cell_key(item: OrderItem) -> tuple:
    return (
        str(item.product_id),
        (item.color_snapshot or '').strip().lower(),
        item.size_snapshot or '',
    )
