# ==============================================================================
# ORDER REPOSITORY
# ==============================================================================
# Encapsulates all access to orders.json
# Items are embedded in their order; replace_items swaps the whole set
# in one write so an order can never end up with a half-replaced list.
# ==============================================================================

import os
from typing import Any, List, Optional

from order_desk.models.entities import Order, OrderItem, utc_now
from .base import DictRepository


class OrderRepository(DictRepository):
    """
    Order repository.

    Data format in orders.json:
    {
        "1": {
            "id": 1, "customer_id": 3, "status": "pending",
            "total_amount": "960", "due_bdt": "460", ...,
            "items": [{"id": 1, "product_id": 1, "qty": 2, ...}]
        }
    }
    """

    def __init__(self, base_path: str):
        super().__init__(os.path.join(base_path, 'orders.json'))

    def list_orders(self) -> List[Order]:
        """All orders, newest first."""
        orders = [Order.from_dict(o) for o in self.values()]
        orders.reverse()
        return orders

    def get_order(self, order_id: Any) -> Optional[Order]:
        data = self.get_by_id(order_id)
        return Order.from_dict(data) if data else None

    def save_order(self, order: Order) -> Order:
        """
        Inserts or replaces an order and numbers its items.

        Returns:
            The stored order
        """
        with self._file_lock:
            if not order.id:
                order.id = self.next_id()
            _number_items(order.items)
            self.update(order.id, order.to_dict())
        return order

    def replace_items(self, order_id: Any, items: List[OrderItem]) -> List[OrderItem]:
        """
        Deletes every item of the order and stores the given ones.

        Raises:
            KeyError: if the order does not exist
        """
        with self._file_lock:
            data = self.get_by_id(order_id)
            if data is None:
                raise KeyError(order_id)
            for item in items:
                item.id = 0
            _number_items(items)
            data['items'] = [item.to_dict() for item in items]
            data['updated_at'] = utc_now()
            self.update(order_id, data)
        return items

    def delete_order(self, order_id: Any) -> bool:
        return self.delete(order_id) is not None


def _number_items(items: List[OrderItem]) -> None:
    next_id = max([item.id for item in items] + [0]) + 1
    for item in items:
        if not item.id:
            item.id = next_id
            next_id += 1
