# ==============================================================================
# BASE REPOSITORY - Shared JSON file access and the atomic unit of work
# ==============================================================================
# Every collection lives in its own JSON file. Writes go to a temp file and
# are swapped in with os.replace. A single process-wide re-entrant lock
# guards all files, and atomic() turns a block of writes over several
# files into one all-or-nothing unit:
#
#   with atomic():
#       orders.save_order(order)
#       customers.increment_order_count(customer_id)
#
# The first write to each file inside the block journals the file's
# previous bytes; if the block raises, every journaled file is restored
# before the exception propagates. Nested atomic() blocks join the
# outermost one.
# ==============================================================================

import json
import logging
import os
import threading
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Optional, TypeVar

from order_desk.errors import TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Tunables, overridden by create_app() from ORDER_DESK_STORE_* variables.
STORE_CONFIG = {
    'lock_timeout': 5.0,
    'retries': 3,
    'retry_delay': 0.2,
}

_store_lock = threading.RLock()
_tx_state = threading.local()


def configure_store(**options: Any) -> None:
    """Updates STORE_CONFIG with known keys only. At least one attempt is always made."""
    for key, value in options.items():
        if key in STORE_CONFIG and value is not None:
            STORE_CONFIG[key] = value
    STORE_CONFIG['retries'] = max(1, int(STORE_CONFIG['retries']))


def _active_journal() -> Optional[Dict[str, Optional[bytes]]]:
    return getattr(_tx_state, 'journal', None)


def _restore(journal: Dict[str, Optional[bytes]]) -> None:
    for path, original in journal.items():
        if original is None:
            if os.path.exists(path):
                os.remove(path)
            continue
        temp_path = path + '.rollback'
        with open(temp_path, 'wb') as f:
            f.write(original)
        os.replace(temp_path, path)


@contextmanager
def atomic(timeout: float = None):
    """
    Runs the enclosed writes as a single all-or-nothing unit.

    Args:
        timeout: Seconds to wait for the store lock (STORE_CONFIG default)

    Raises:
        TransientStoreError: if the lock could not be acquired in time
    """
    timeout = STORE_CONFIG['lock_timeout'] if timeout is None else timeout
    if not _store_lock.acquire(timeout=timeout):
        raise TransientStoreError('Store is busy. Please try again in a moment.')

    outer = _active_journal() is None
    if outer:
        _tx_state.journal = {}
    try:
        yield
    except BaseException:
        if outer:
            journal = _tx_state.journal
            logger.warning("Rolling back %d file(s) after failed unit of work", len(journal))
            _restore(journal)
        raise
    finally:
        if outer:
            _tx_state.journal = None
        _store_lock.release()


def with_retry(
    operation: Callable[[], T],
    max_retries: int = None,
    delay: float = None
) -> T:
    """
    Runs operation, retrying only on TransientStoreError.

    A failed attempt inside atomic() has been fully rolled back, so
    re-running the whole operation cannot double-apply anything.

    Args:
        operation: Zero-argument callable
        max_retries: Total attempts (STORE_CONFIG default)
        delay: Base backoff in seconds, multiplied by the attempt number

    Returns:
        Whatever operation returns
    """
    max_retries = max(1, STORE_CONFIG['retries'] if max_retries is None else max_retries)
    delay = STORE_CONFIG['retry_delay'] if delay is None else delay

    for attempt in range(1, max_retries + 1):
        try:
            return operation()
        except TransientStoreError as e:
            if attempt >= max_retries:
                logger.error("Giving up after %d attempts: %s", attempt, e)
                raise
            logger.warning("Store attempt %d/%d failed, retrying: %s", attempt, max_retries, e)
            time.sleep(delay * attempt)

    raise TransientStoreError('Store is busy. Please try again in a moment.')


class BaseRepository(ABC):
    """
    Abstract base for every repository.
    Reads and writes one JSON file under the shared store lock.
    """

    _file_lock = _store_lock

    def __init__(self, file_path: str):
        """
        Args:
            file_path: Absolute path of the JSON file
        """
        self.file_path = file_path
        self._ensure_file_exists()

    def _ensure_file_exists(self) -> None:
        """Creates the file with empty data if missing."""
        directory = os.path.dirname(self.file_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with self._file_lock:
            if not os.path.exists(self.file_path):
                self._write_raw(self._empty_data())

    @abstractmethod
    def _empty_data(self) -> Any:
        """Empty structure for this collection (dict, list...)."""

    def _read_raw(self) -> Any:
        """
        Reads and parses the JSON file.

        Returns:
            Parsed data, or the empty structure if the file is missing
        """
        with self._file_lock:
            try:
                with open(self.file_path, 'r', encoding='utf-8') as f:
                    return json.load(f)
            except FileNotFoundError:
                return self._empty_data()
            except json.JSONDecodeError:
                logger.error("Corrupt JSON in %s, treating as empty", self.file_path)
                return self._empty_data()

    def _journal_original(self) -> None:
        journal = _active_journal()
        if journal is None or self.file_path in journal:
            return
        if os.path.exists(self.file_path):
            with open(self.file_path, 'rb') as f:
                journal[self.file_path] = f.read()
        else:
            journal[self.file_path] = None

    def _write_raw(self, data: Any) -> None:
        """
        Serializes data to the JSON file (temp file + os.replace).

        Raises:
            OSError: on write failure
        """
        with self._file_lock:
            self._journal_original()
            temp_path = self.file_path + '.tmp'
            try:
                with open(temp_path, 'w', encoding='utf-8') as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                os.replace(temp_path, self.file_path)
            except Exception:
                if os.path.exists(temp_path):
                    os.remove(temp_path)
                raise


class DictRepository(BaseRepository):
    """
    Collection stored as a JSON object keyed by the record id.

    Example: orders.json -> {"1": {...}, "2": {...}}
    """

    def _empty_data(self) -> Dict:
        return {}

    def get_all(self) -> Dict[str, Any]:
        data = self._read_raw()
        return data if isinstance(data, dict) else {}

    def get_by_id(self, record_id: Any) -> Optional[Dict[str, Any]]:
        """
        Args:
            record_id: Id as int or str

        Returns:
            Record or None
        """
        return self.get_all().get(str(record_id))

    def save_all(self, data: Dict[str, Any]) -> None:
        self._write_raw(data)

    def update(self, record_id: Any, record_data: Dict[str, Any]) -> None:
        """Inserts or replaces one record."""
        with self._file_lock:
            data = self.get_all()
            data[str(record_id)] = record_data
            self._write_raw(data)

    def delete(self, record_id: Any) -> Optional[Dict[str, Any]]:
        """
        Returns:
            Removed record or None if it did not exist
        """
        with self._file_lock:
            data = self.get_all()
            removed = data.pop(str(record_id), None)
            if removed is not None:
                self._write_raw(data)
            return removed

    def next_id(self) -> int:
        """Next integer id (max + 1)."""
        ids = []
        for key in self.get_all().keys():
            try:
                ids.append(int(key))
            except (TypeError, ValueError):
                continue
        return max(ids) + 1 if ids else 1

    def values(self) -> List[Dict[str, Any]]:
        """Records ordered by numeric id."""
        data = self.get_all()
        return [data[k] for k in sorted(data.keys(), key=_id_sort_key)]


def _id_sort_key(key: str):
    try:
        return (0, int(key))
    except (TypeError, ValueError):
        return (1, key)


class ListRepository(BaseRepository):
    """
    Collection stored as a JSON list.

    Example: audit.json -> [{...}, {...}]
    """

    def _empty_data(self) -> List:
        return []

    def get_all(self) -> List[Dict[str, Any]]:
        data = self._read_raw()
        return data if isinstance(data, list) else []

    def save_all(self, data: List[Dict[str, Any]]) -> None:
        self._write_raw(data)
