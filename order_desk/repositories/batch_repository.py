# ==============================================================================
# BATCH REPOSITORY
# ==============================================================================
# Encapsulates all access to batches.json ({batch_id: {...}}).
# ==============================================================================

import os
from typing import Any, List, Optional

from order_desk.models.entities import Batch
from .base import DictRepository


class BatchRepository(DictRepository):

    def __init__(self, base_path: str):
        super().__init__(os.path.join(base_path, 'batches.json'))

    def list_batches(self) -> List[Batch]:
        """All batches, newest first."""
        batches = [Batch.from_dict(b) for b in self.values()]
        batches.reverse()
        return batches

    def get_batch(self, batch_id: Any) -> Optional[Batch]:
        data = self.get_by_id(batch_id)
        return Batch.from_dict(data) if data else None

    def save_batch(self, batch: Batch) -> Batch:
        with self._file_lock:
            if not batch.id:
                batch.id = self.next_id()
            self.update(batch.id, batch.to_dict())
        return batch

    def delete_batch(self, batch_id: Any) -> bool:
        return self.delete(batch_id) is not None

    def remove_order_everywhere(self, order_id: Any) -> int:
        """
        Drops an order id from every batch that references it.

        Returns:
            Number of batches touched
        """
        order_id = int(order_id)
        touched = 0
        with self._file_lock:
            data = self.get_all()
            for record in data.values():
                ids = record.get('order_ids') or []
                if order_id in ids:
                    record['order_ids'] = [i for i in ids if i != order_id]
                    touched += 1
            if touched:
                self.save_all(data)
        return touched
