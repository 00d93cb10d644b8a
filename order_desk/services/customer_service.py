# ==============================================================================
# CUSTOMER SERVICE
# ==============================================================================
# Customer CRUD. Phone is the natural key: unique, and used by the order
# form to find or create the customer on submission.
# ==============================================================================

import logging
from typing import Any, Dict, List

from order_desk.errors import ConflictError, NotFoundError, ValidationError
from order_desk.models.entities import CUSTOMER_OPTIONAL_FIELDS, Customer, utc_now
from order_desk.repositories.base import atomic, with_retry

logger = logging.getLogger(__name__)

DUPLICATE_PHONE = "Customer with this phone number already exists"


def _text(value: Any) -> str:
    return str(value or '').strip()


class CustomerService:
    """Customer management."""

    def __init__(self, customer_repo, order_repo=None, audit_service=None):
        """
        Args:
            customer_repo: ICustomerRepository
            order_repo: IOrderRepository, guards deletion of customers with orders
            audit_service: AuditService (optional)
        """
        self.customer_repo = customer_repo
        self.order_repo = order_repo
        self.audit_service = audit_service

    def list_customers(self, query: str = None) -> List[Dict[str, Any]]:
        """Newest first, optional match on name/phone/email."""
        customers = self.customer_repo.list_customers()
        if query:
            q = query.strip().lower()
            customers = [
                c for c in customers
                if q in c.name.lower() or q in c.phone.lower() or q in c.email.lower()
            ]
        customers.reverse()
        return [c.to_dict() for c in customers]

    def get_customer(self, customer_id: Any) -> Customer:
        """
        Raises:
            NotFoundError
        """
        customer = self.customer_repo.get_customer(customer_id)
        if customer is None:
            raise NotFoundError('Customer not found')
        return customer

    def _build(self, data: Dict[str, Any]) -> Customer:
        name = _text(data.get('name'))
        if not name:
            raise ValidationError("Name is required", 'name')
        phone = _text(data.get('phone'))
        if not phone:
            raise ValidationError("Phone is required", 'phone')
        return Customer(
            id=0,
            name=name,
            phone=phone,
            **{k: _text(data.get(k)) for k in CUSTOMER_OPTIONAL_FIELDS}
        )

    def create_customer(self, data: Dict[str, Any], user: str = None) -> Dict[str, Any]:
        """
        Raises:
            ValidationError, ConflictError
        """
        customer = self._build(data or {})

        def run() -> Customer:
            with atomic():
                if self.customer_repo.find_by_phone(customer.phone):
                    raise ConflictError(DUPLICATE_PHONE)
                self.customer_repo.save_customer(customer)
                if self.audit_service:
                    self.audit_service.log_customer_created(user, customer.id, customer.name, customer.phone)
                return customer

        return with_retry(run).to_dict()

    def find_or_create_by_phone(self, data: Dict[str, Any], user: str = None) -> Customer:
        """
        Returns the customer owning data['phone'], creating it from data
        when none exists. Meant to run inside the caller's atomic() unit.

        Raises:
            ValidationError: missing phone, or missing name for a new customer
        """
        data = data or {}
        phone = _text(data.get('phone'))
        if not phone:
            raise ValidationError("Phone is required", 'customer_phone')

        with atomic():
            existing = self.customer_repo.find_by_phone(phone)
            if existing is not None:
                return existing
            customer = self._build(data)
            self.customer_repo.save_customer(customer)
            if self.audit_service:
                self.audit_service.log_customer_created(user, customer.id, customer.name, customer.phone)
            logger.info("Customer %s created from order draft", customer.id)
            return customer

    def update_customer(self, customer_id: Any, data: Dict[str, Any], user: str = None) -> Dict[str, Any]:
        """
        Partial update. total_orders is never taken from the caller.

        Raises:
            NotFoundError, ValidationError, ConflictError
        """
        data = data or {}

        def run() -> Customer:
            with atomic():
                customer = self.get_customer(customer_id)
                if 'name' in data:
                    name = _text(data.get('name'))
                    if not name:
                        raise ValidationError("Name is required", 'name')
                    customer.name = name
                if 'phone' in data:
                    phone = _text(data.get('phone'))
                    if not phone:
                        raise ValidationError("Phone is required", 'phone')
                    other = self.customer_repo.find_by_phone(phone)
                    if other is not None and other.id != customer.id:
                        raise ConflictError(DUPLICATE_PHONE)
                    customer.phone = phone
                for key in CUSTOMER_OPTIONAL_FIELDS:
                    if key in data:
                        setattr(customer, key, _text(data.get(key)))
                customer.updated_at = utc_now()
                self.customer_repo.save_customer(customer)
                if self.audit_service:
                    self.audit_service.log_customer_updated(user, customer.id, customer.name)
                return customer

        return with_retry(run).to_dict()

    def delete_customer(self, customer_id: Any, user: str = None) -> None:
        """
        Raises:
            NotFoundError, ConflictError: the customer still has orders
        """
        def run() -> None:
            with atomic():
                customer = self.get_customer(customer_id)
                if self.order_repo is not None:
                    if any(o.customer_id == customer.id for o in self.order_repo.list_orders()):
                        raise ConflictError("Customer has orders and cannot be deleted")
                self.customer_repo.delete_customer(customer.id)
                if self.audit_service:
                    self.audit_service.log_customer_deleted(user, customer.id, customer.name)

        with_retry(run)
