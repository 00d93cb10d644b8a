# ==============================================================================
# SETTINGS REPOSITORY
# ==============================================================================
# Encapsulates all access to settings.json
# Business settings are one JSON document; missing keys fall back to
# DEFAULT_SETTINGS so an empty file is a valid configuration.
# ==============================================================================

import copy
import os
from typing import Any, Dict

from .base import DictRepository


DEFAULT_SETTINGS: Dict[str, Any] = {
    'company_name': 'Order Desk',
    'support_phone': '',
    'support_email': '',
    'order_tracking_base_url': '',
    'default_store_id': None,
    'delivery_charges': {
        'inside_dhaka': 60,
        'sub_dhaka': 60,
        'outside_dhaka': 120,
    },
    'packing_status': {
        'enabled': True,
        'message': 'Your order is being packed with care!',
    },
}


def _merge(defaults: Dict[str, Any], stored: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(defaults)
    for key, value in stored.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class SettingsRepository(DictRepository):
    """
    Business settings.

    Data format in settings.json:
    {
        "company_name": "Order Desk",
        "delivery_charges": {"inside_dhaka": 60, "outside_dhaka": 120},
        ...
    }
    """

    def __init__(self, base_path: str):
        """
        Args:
            base_path: Data directory
        """
        super().__init__(os.path.join(base_path, 'settings.json'))

    def load(self) -> Dict[str, Any]:
        """
        Returns:
            Stored settings merged over DEFAULT_SETTINGS
        """
        return _merge(DEFAULT_SETTINGS, self.get_all())

    def save(self, settings: Dict[str, Any]) -> None:
        self.save_all(settings)

    def get_delivery_charges(self) -> Dict[str, Any]:
        return self.load().get('delivery_charges', {})
