# ==============================================================================
# PRODUCT REPOSITORY
# ==============================================================================
# Encapsulates all access to products.json
# Products are stored as {product_id: {...}} with their variant groups
# embedded, so replacing a product's groups is a single write.
# ==============================================================================

import logging
import os
from typing import Any, List, Optional

from order_desk.models.entities import Product
from .base import DictRepository

logger = logging.getLogger(__name__)


class ProductRepository(DictRepository):
    """
    Catalog repository.

    Data format in products.json:
    {
        "1": {
            "id": 1, "name": "Tee", "code": "TEE-01",
            "sell_price_bdt": "450", ...,
            "variant_groups": [
                {"id": 1, "color": "Black", "sizes": ["M", "L"],
                 "quantities": {"M": 5, "L": 1}, ...}
            ]
        }
    }
    """

    def __init__(self, base_path: str):
        """
        Args:
            base_path: Data directory
        """
        super().__init__(os.path.join(base_path, 'products.json'))

    def list_products(self, include_inactive: bool = True) -> List[Product]:
        products = [Product.from_dict(p) for p in self.values()]
        if not include_inactive:
            products = [p for p in products if p.is_active]
        return products

    def get_product(self, product_id: Any) -> Optional[Product]:
        data = self.get_by_id(product_id)
        return Product.from_dict(data) if data else None

    def find_by_code(self, code: str) -> Optional[Product]:
        """Exact code lookup (codes are unique)."""
        for data in self.get_all().values():
            if data.get('code') == code:
                return Product.from_dict(data)
        return None

    def save_product(self, product: Product) -> Product:
        """
        Inserts or replaces a product, allocating ids where missing.

        Returns:
            The stored product (with ids filled in)
        """
        with self._file_lock:
            if not product.id:
                product.id = self.next_id()
            next_group_id = max([g.id for g in product.variant_groups] + [0]) + 1
            for group in product.variant_groups:
                if not group.id:
                    group.id = next_group_id
                    next_group_id += 1
            self.update(product.id, product.to_dict())
        return product

    def delete_product(self, product_id: Any) -> bool:
        return self.delete(product_id) is not None

    def adjust_stock(self, product_id: Any, color: str, size: str, delta: int) -> None:
        """
        Adds delta to the stock of one (color, size) cell.

        Missing products or cells are skipped, stock never drops below zero.
        """
        with self._file_lock:
            product = self.get_product(product_id)
            group = product.find_group(color) if product else None
            if group is None or not group.has_size(size):
                logger.warning(
                    "Stock adjustment skipped: product=%s color=%s size=%s",
                    product_id, color, size
                )
                return
            group.quantities[size] = max(0, group.quantity_for(size) + delta)
            self.update(product.id, product.to_dict())
