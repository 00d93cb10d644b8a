# ==============================================================================
# CUSTOMER REPOSITORY
# ==============================================================================
# Encapsulates all access to customers.json ({customer_id: {...}}).
# ==============================================================================

import os
from typing import Any, List, Optional

from order_desk.models.entities import Customer, utc_now
from .base import DictRepository


class CustomerRepository(DictRepository):
    """Customer repository keyed by numeric id; phone is unique."""

    def __init__(self, base_path: str):
        super().__init__(os.path.join(base_path, 'customers.json'))

    def list_customers(self) -> List[Customer]:
        return [Customer.from_dict(c) for c in self.values()]

    def get_customer(self, customer_id: Any) -> Optional[Customer]:
        data = self.get_by_id(customer_id)
        return Customer.from_dict(data) if data else None

    def find_by_phone(self, phone: str) -> Optional[Customer]:
        phone = (phone or '').strip()
        for data in self.get_all().values():
            if (data.get('phone') or '').strip() == phone:
                return Customer.from_dict(data)
        return None

    def save_customer(self, customer: Customer) -> Customer:
        with self._file_lock:
            if not customer.id:
                customer.id = self.next_id()
            self.update(customer.id, customer.to_dict())
        return customer

    def delete_customer(self, customer_id: Any) -> bool:
        return self.delete(customer_id) is not None

    def increment_order_count(self, customer_id: Any, delta: int = 1) -> int:
        """
        Adds delta to the customer's total_orders.

        Args:
            customer_id: Customer id
            delta: Amount to add (negative to decrement, floored at 0)

        Returns:
            New counter value

        Raises:
            KeyError: if the customer does not exist
        """
        with self._file_lock:
            data = self.get_by_id(customer_id)
            if data is None:
                raise KeyError(customer_id)
            data['total_orders'] = max(0, int(data.get('total_orders', 0) or 0) + delta)
            data['updated_at'] = utc_now()
            self.update(customer_id, data)
            return data['total_orders']
