# ==============================================================================
# AUDIT REPOSITORY
# ==============================================================================
# Encapsulates all access to audit.json
# The audit trail is a list, newest entry first: [{log1}, {log2}, ...]
# Entries written inside atomic() roll back with the mutation they describe.
# ==============================================================================

import os
from typing import Any, Dict, List

from order_desk.models.entities import AuditLog
from .base import ListRepository


class AuditRepository(ListRepository):
    """
    Audit trail repository.

    Data format in audit.json:
    [
        {
            "type": "ORDER",
            "user": "admin@example.com",
            "message": "Order #12 created",
            "timestamp": "2024-01-01T10:00:00+00:00",
            "related_id": "12",
            "details": {...}
        }
    ]
    """

    # Cap to keep the file small
    MAX_LOGS = 10000

    def __init__(self, base_path: str):
        """
        Args:
            base_path: Data directory
        """
        super().__init__(os.path.join(base_path, 'audit.json'))

    def load(self) -> List[Dict[str, Any]]:
        """
        Returns:
            Every entry, newest first
        """
        return sorted(
            self.get_all(),
            key=lambda x: x.get('timestamp', ''),
            reverse=True
        )

    def save(self, logs: List[Dict[str, Any]]) -> None:
        """Stores logs, keeping only the newest MAX_LOGS."""
        if len(logs) > self.MAX_LOGS:
            logs = logs[:self.MAX_LOGS]
        self.save_all(logs)

    def log(
        self,
        log_type: str,
        user: str,
        message: str,
        related_id: str = '',
        details: Dict[str, Any] = None
    ) -> None:
        """
        Appends an audit event.

        Args:
            log_type: Event category (ORDER, PRODUCT, CUSTOMER, BATCH, SYSTEM)
            user: Who performed the action
            message: Human readable message
            related_id: Id of the touched record
            details: Extra structured data
        """
        entry = AuditLog(
            type=log_type,
            user=user or 'system',
            message=message,
            related_id=str(related_id or ''),
            details=details or {},
        )
        with self._file_lock:
            logs = self.get_all()
            logs.insert(0, entry.to_dict())
            self.save(logs)

    def search_logs(
        self,
        query: str = '',
        log_type: str = None,
        related_id: str = None,
        limit: int = None
    ) -> List[Dict[str, Any]]:
        """
        Filters the trail.

        Args:
            query: Free text matched against type, user, message and related_id
            log_type: Exact type
            related_id: Exact related id
            limit: Maximum number of entries returned

        Returns:
            Matching entries, newest first
        """
        logs = self.load()

        if log_type:
            logs = [log for log in logs if log.get('type') == log_type]

        if related_id is not None:
            logs = [log for log in logs if str(log.get('related_id', '')) == str(related_id)]

        if query:
            query_lower = query.lower()
            logs = [
                log for log in logs
                if any(
                    query_lower in str(log.get(k, '')).lower()
                    for k in ('type', 'user', 'message', 'related_id')
                )
            ]

        return logs[:limit] if limit else logs
