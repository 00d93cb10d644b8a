# ==============================================================================
# BATCH SERVICE
# ==============================================================================
# Batches group order ids for fulfillment/export. Every id must point at
# an existing order; duplicates collapse, first occurrence wins.
# ==============================================================================

from typing import Any, Dict, List

from order_desk.errors import NotFoundError, OrderReferenceError, ValidationError
from order_desk.models.entities import Batch
from order_desk.repositories.base import atomic, with_retry


def _normalize_ids(raw_ids: Any) -> List[int]:
    if raw_ids is None:
        return []
    if not isinstance(raw_ids, list):
        raise ValidationError("order_ids must be an array", 'order_ids')
    ids = []
    for raw in raw_ids:
        try:
            order_id = int(raw)
        except (TypeError, ValueError):
            raise OrderReferenceError([raw])
        if order_id not in ids:
            ids.append(order_id)
    return ids


class BatchService:
    """Batch management."""

    def __init__(self, batch_repo, order_repo, audit_service=None):
        """
        Args:
            batch_repo: IBatchRepository
            order_repo: IOrderRepository, used to validate references
            audit_service: AuditService (optional)
        """
        self.batch_repo = batch_repo
        self.order_repo = order_repo
        self.audit_service = audit_service

    def list_batches(self) -> List[Dict[str, Any]]:
        return [b.to_dict() for b in self.batch_repo.list_batches()]

    def get_batch(self, batch_id: Any) -> Batch:
        """
        Raises:
            NotFoundError
        """
        batch = self.batch_repo.get_batch(batch_id)
        if batch is None:
            raise NotFoundError('Batch not found')
        return batch

    def _check_references(self, order_ids: List[int]) -> None:
        missing = [i for i in order_ids if self.order_repo.get_by_id(i) is None]
        if missing:
            raise OrderReferenceError(missing)

    def create_batch(self, data: Dict[str, Any], user: str = None) -> Dict[str, Any]:
        """
        Args:
            data: {created_by, note, order_ids}

        Raises:
            ValidationError, OrderReferenceError
        """
        data = data or {}
        created_by = str(data.get('created_by') or '').strip()
        if not created_by:
            raise ValidationError("Created by is required", 'created_by')
        order_ids = _normalize_ids(data.get('order_ids'))

        def run() -> Batch:
            with atomic():
                self._check_references(order_ids)
                batch = Batch(
                    id=0,
                    created_by=created_by,
                    note=str(data.get('note') or '').strip(),
                    order_ids=order_ids,
                )
                self.batch_repo.save_batch(batch)
                if self.audit_service:
                    self.audit_service.log_batch_created(user or created_by, batch.id, len(order_ids))
                return batch

        return with_retry(run).to_dict()

    def update_batch(self, batch_id: Any, data: Dict[str, Any], user: str = None) -> Dict[str, Any]:
        """
        Updates the note and, when order_ids is given, replaces the whole set.

        Raises:
            NotFoundError, OrderReferenceError
        """
        data = data or {}
        order_ids = _normalize_ids(data['order_ids']) if 'order_ids' in data else None

        def run() -> Batch:
            with atomic():
                batch = self.get_batch(batch_id)
                if 'note' in data:
                    batch.note = str(data.get('note') or '').strip()
                if order_ids is not None:
                    self._check_references(order_ids)
                    batch.order_ids = order_ids
                self.batch_repo.save_batch(batch)
                if self.audit_service:
                    self.audit_service.log_batch_updated(user, batch.id, len(batch.order_ids))
                return batch

        return with_retry(run).to_dict()

    def delete_batch(self, batch_id: Any, user: str = None) -> None:
        """
        Raises:
            NotFoundError
        """
        def run() -> None:
            with atomic():
                batch = self.get_batch(batch_id)
                self.batch_repo.delete_batch(batch.id)
                if self.audit_service:
                    self.audit_service.log_batch_deleted(user, batch.id)

        with_retry(run)
