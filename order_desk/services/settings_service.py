# ==============================================================================
# SETTINGS SERVICE
# ==============================================================================
# Business settings editable at runtime (admin only). The delivery charge
# table lives here; the HTTP layer resolves a charge from the delivery
# type and hands the number to the order service.
# ==============================================================================

from decimal import Decimal
from typing import Any, Dict

from order_desk.errors import ValidationError
from order_desk.models.entities import to_decimal
from order_desk.repositories.base import atomic, with_retry
from order_desk.repositories.settings_repository import DEFAULT_SETTINGS

DELIVERY_TYPES = ('inside_dhaka', 'sub_dhaka', 'outside_dhaka')


class SettingsService:
    """Reads and validates business settings."""

    def __init__(self, settings_repo, audit_service=None):
        """
        Args:
            settings_repo: ISettingsRepository
            audit_service: AuditService (optional)
        """
        self.settings_repo = settings_repo
        self.audit_service = audit_service

    def get_settings(self) -> Dict[str, Any]:
        return self.settings_repo.load()

    def update_settings(self, data: Dict[str, Any], user: str = None) -> Dict[str, Any]:
        """
        Merges known keys into the stored settings.

        Raises:
            ValidationError: unknown key or invalid delivery charge
        """
        data = data or {}
        unknown = [k for k in data if k not in DEFAULT_SETTINGS]
        if unknown:
            raise ValidationError(f"Unknown settings: {', '.join(sorted(unknown))}", unknown[0])

        if 'delivery_charges' in data:
            charges = data['delivery_charges']
            if not isinstance(charges, dict):
                raise ValidationError("delivery_charges must be an object", 'delivery_charges')
            for key, value in charges.items():
                if key not in DELIVERY_TYPES:
                    raise ValidationError(f"Unknown delivery type '{key}'", 'delivery_charges')
                try:
                    amount = to_decimal(value)
                except ValueError:
                    raise ValidationError(f"Invalid delivery charge for {key}", 'delivery_charges')
                if amount < 0:
                    raise ValidationError(f"Delivery charge for {key} cannot be negative", 'delivery_charges')

        if 'packing_status' in data and not isinstance(data['packing_status'], dict):
            raise ValidationError("packing_status must be an object", 'packing_status')

        def run() -> Dict[str, Any]:
            with atomic():
                stored = self.settings_repo.get_all()
                for key, value in data.items():
                    if isinstance(value, dict) and isinstance(stored.get(key), dict):
                        stored[key].update(value)
                    else:
                        stored[key] = value
                self.settings_repo.save(stored)
                if self.audit_service:
                    self.audit_service.log_settings_changed(user, sorted(data.keys()))
                return self.settings_repo.load()

        return with_retry(run)

    def resolve_delivery_charge(self, delivery_type: str) -> Decimal:
        """
        Delivery charge for a delivery type.

        sub_dhaka falls back to the inside_dhaka charge when not configured.

        Raises:
            ValidationError: unknown delivery type
        """
        delivery_type = (delivery_type or '').strip().lower()
        if delivery_type not in DELIVERY_TYPES:
            raise ValidationError(f"Invalid delivery type '{delivery_type}'", 'delivery_type')
        charges = self.settings_repo.get_delivery_charges()
        value = charges.get(delivery_type)
        if value is None and delivery_type == 'sub_dhaka':
            value = charges.get('inside_dhaka')
        return to_decimal(value)

    def packing_message(self) -> str:
        packing = self.get_settings().get('packing_status') or {}
        return packing.get('message', '') if packing.get('enabled', True) else ''
