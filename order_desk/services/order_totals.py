# ==============================================================================
# ORDER TOTALS
# ==============================================================================
# Pure arithmetic over line items. Decimal only, no I/O.
#
#   subtotal = Σ unit price × qty
#   total    = subtotal + delivery charge
#   due      = total - advance      (may be negative, never clamped)
# ==============================================================================

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable

from order_desk.models.entities import MoneyLike, money_to_number, to_decimal


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    total: Decimal
    due: Decimal
    total_items: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'subtotal': money_to_number(self.subtotal),
            'total': money_to_number(self.total),
            'due': money_to_number(self.due),
            'total_items': self.total_items,
        }


def calculate_totals(
    items: Iterable[Any],
    delivery_charge: MoneyLike,
    advance: MoneyLike
) -> OrderTotals:
    """
    Computes subtotal, total and due for a set of line items.

    Args:
        items: Objects with sell_price_bdt_snapshot and qty (OrderItem)
        delivery_charge: Delivery charge, already resolved by the caller
        advance: Amount paid in advance

    Returns:
        OrderTotals
    """
    subtotal = Decimal('0')
    total_items = 0
    for item in items:
        subtotal += to_decimal(item.sell_price_bdt_snapshot) * item.qty
        total_items += item.qty

    total = subtotal + to_decimal(delivery_charge)
    due = total - to_decimal(advance)
    return OrderTotals(subtotal=subtotal, total=total, due=due, total_items=total_items)
