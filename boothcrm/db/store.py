"""
Record Store - Collection Persistence
Whole-collection load/save semantics over two swappable backends:
in-process memory, or one JSON snapshot file per collection.

Every write is a read-modify-write of the full collection, held under a
per-collection lock so only one writer touches a collection at a time.
Cross-process writers are not supported.
"""

import copy
import json
import logging
import os
import tempfile
import threading
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from boothcrm.config import config
from boothcrm.errors import ConflictError, NotFoundError, StorageError

logger = logging.getLogger(__name__)

# Text fields covered by the case-insensitive `search` of list()
SEARCH_FIELDS = ('name', 'surname', 'email', 'company')

Patch = Union[Dict[str, Any], Callable[[Dict[str, Any]], Dict[str, Any]]]


def new_id() -> str:
    """Collision-resistant record id."""
    return uuid.uuid4().hex


def _normalize(value: Any) -> Any:
    return value.strip().lower() if isinstance(value, str) else value


def _matches_search(record: Dict[str, Any], needle: str) -> bool:
    for field in SEARCH_FIELDS:
        value = record.get(field)
        if isinstance(value, str) and needle in value.lower():
            return True
    return False


class RecordStore:
    """
    Base store. Subclasses supply _load() and _save(); everything else
    (ids, filtering, pagination, not-found handling, write serialization)
    lives here.
    """

    def __init__(self):
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # -- backend primitives ---------------------------------------------------

    def _load(self, collection: str) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def _save(self, collection: str, records: List[Dict[str, Any]]) -> None:
        raise NotImplementedError

    def _write_lock(self, collection: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(collection, threading.Lock())

    # -- contract -------------------------------------------------------------

    def snapshot(self, collection: str) -> List[Dict[str, Any]]:
        """Full contents of a collection at one point in time."""
        return self._load(collection)

    def append(
        self,
        collection: str,
        record: Dict[str, Any],
        unique_on: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Store a new record and return it with its assigned id.

        With unique_on, a record whose value for that field already exists
        (trimmed, case-insensitive) is rejected with ConflictError.
        """
        stored = dict(record)
        stored['id'] = new_id()

        with self._write_lock(collection):
            records = self._load(collection)
            if unique_on:
                wanted = _normalize(stored.get(unique_on))
                if any(_normalize(r.get(unique_on)) == wanted for r in records):
                    raise ConflictError(collection, unique_on, stored.get(unique_on))
            records.append(stored)
            self._save(collection, records)

        logger.debug(f"append: {collection} id={stored['id']}")
        return copy.deepcopy(stored)

    def list(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        search: Optional[str] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """
        Filter, search and paginate a collection.
        Returns (page_items, total_matching).
        """
        records = self._load(collection)

        if filters:
            for field, value in filters.items():
                if value is None:
                    continue
                records = [r for r in records if r.get(field) == value]

        if search:
            needle = search.strip().lower()
            if needle:
                records = [r for r in records if _matches_search(r, needle)]

        total = len(records)
        if limit is None:
            limit = config.DEFAULT_PAGE_LIMIT
        start = min(max(offset, 0), total)
        end = start + max(limit, 0)

        logger.debug(f"list: {collection} total={total} offset={start} limit={limit}")
        return records[start:end], total

    def get(self, collection: str, record_id: str) -> Dict[str, Any]:
        """Record by exact id, or NotFoundError."""
        for record in self._load(collection):
            if record.get('id') == record_id:
                return record
        raise NotFoundError(collection, record_id)

    def update(self, collection: str, record_id: str, patch: Patch) -> Dict[str, Any]:
        """
        Merge patch into the record and return the result.
        A callable patch receives the current record and is evaluated under
        the write lock, so read-then-increment updates cannot interleave.
        """
        with self._write_lock(collection):
            records = self._load(collection)
            for index, record in enumerate(records):
                if record.get('id') == record_id:
                    changes = patch(record) if callable(patch) else patch
                    updated = {**record, **changes, 'id': record_id}
                    records[index] = updated
                    self._save(collection, records)
                    logger.debug(f"update: {collection} id={record_id} fields={sorted(changes)}")
                    return copy.deepcopy(updated)
        raise NotFoundError(collection, record_id)

    def delete(self, collection: str, record_id: str) -> None:
        """Remove the record, or NotFoundError (collection left untouched)."""
        with self._write_lock(collection):
            records = self._load(collection)
            remaining = [r for r in records if r.get('id') != record_id]
            if len(remaining) == len(records):
                raise NotFoundError(collection, record_id)
            self._save(collection, remaining)
        logger.debug(f"delete: {collection} id={record_id}")


class MemoryStore(RecordStore):
    """In-process store; contents are lost on restart."""

    def __init__(self):
        super().__init__()
        self._collections: Dict[str, List[Dict[str, Any]]] = {}

    def _load(self, collection: str) -> List[Dict[str, Any]]:
        return copy.deepcopy(self._collections.get(collection, []))

    def _save(self, collection: str, records: List[Dict[str, Any]]) -> None:
        self._collections[collection] = copy.deepcopy(records)


class JsonFileStore(RecordStore):
    """
    One <collection>.json file per collection, rewritten whole on every
    mutation. Writes go to a temp file in the same directory and are moved
    over the target with os.replace, so readers see the old or the new
    snapshot, never a half-written one.
    """

    def __init__(self, data_dir: Union[str, Path]):
        super().__init__()
        self.data_dir = Path(data_dir)
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create data directory {self.data_dir}: {e}") from e

    def path_for(self, collection: str) -> Path:
        return self.data_dir / f"{collection}.json"

    def _load(self, collection: str) -> List[Dict[str, Any]]:
        path = self.path_for(collection)
        if not path.exists():
            return []
        try:
            with open(path, encoding='utf-8') as f:
                records = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read {path}: {e}")
            raise StorageError(f"Failed to read {collection}: {e}") from e
        if not isinstance(records, list):
            raise StorageError(f"Corrupt snapshot {path}: expected a JSON array")
        return records

    def _save(self, collection: str, records: List[Dict[str, Any]]) -> None:
        path = self.path_for(collection)
        fd, tmp_name = tempfile.mkstemp(dir=self.data_dir, prefix=f".{path.name}.", suffix='.tmp')
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(records, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            tmp_path.unlink(missing_ok=True)
            logger.error(f"Failed to write {path}: {e}")
            raise StorageError(f"Failed to write {collection}: {e}") from e


_store: Optional[RecordStore] = None
_store_lock = threading.Lock()


def get_store() -> RecordStore:
    """Process-wide store chosen by STORAGE_BACKEND."""
    global _store
    with _store_lock:
        if _store is None:
            if config.STORAGE_BACKEND == 'memory':
                _store = MemoryStore()
            else:
                _store = JsonFileStore(config.DATA_DIR)
            logger.info(f"Record store ready: {type(_store).__name__}")
        return _store


def resolve_store(store: Optional[RecordStore] = None) -> RecordStore:
    """The injected store if given, otherwise the process-wide one."""
    return store if store is not None else get_store()
