"""
Ledger Store: whole-set snapshots of id-keyed records.

Every mutation rewrites the complete set. Writers are serialized by the
record set's lock; the in-memory copy only changes after the snapshot
write succeeded.
"""

import copy
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Callable, Optional, Union

from .exceptions import NotFound, StorageFailure

logger = logging.getLogger(__name__)


class JsonFileSnapshot:
    def __init__(self, path: Union[str, Path], default: Callable[[], Any] = list):
        self.path = Path(path)
        self.default = default

    def load(self) -> Any:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return self.default()
        except OSError as e:
            logger.warning("Cannot read snapshot %s, starting empty: %s", self.path, e)
            return self.default()

        if not raw.strip():
            return self.default()
        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.warning("Corrupt snapshot %s, starting empty: %s", self.path, e)
            return self.default()

        if not isinstance(data, type(self.default())):
            logger.warning("Snapshot %s holds %s, starting empty", self.path, type(data).__name__)
            return self.default()
        return data

    def save(self, data: Any) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=self.path.name, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(data, fh, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except (OSError, TypeError, ValueError) as e:
            logger.error("Failed to write snapshot %s: %s", self.path, e)
            raise StorageFailure(f"Failed to write {self.path.name}") from e


class MemorySnapshot:
    """Snapshot kept in process memory; the test and offline back-end."""

    def __init__(self, initial: Any = None, default: Callable[[], Any] = list):
        self.default = default
        self._data = copy.deepcopy(initial) if initial is not None else default()

    def load(self) -> Any:
        return copy.deepcopy(self._data)

    def save(self, data: Any) -> None:
        self._data = copy.deepcopy(data)


class RecordSet:
    """Newest-first list of records keyed by ``id``."""

    def __init__(self, snapshot, lock: Optional[threading.RLock] = None):
        self.snapshot = snapshot
        self.lock = lock or threading.RLock()
        with self.lock:
            loaded = snapshot.load()
            self._records = [r for r in loaded if isinstance(r, dict) and "id" in r]
            if len(self._records) != len(loaded):
                logger.warning("Dropped %d malformed records from snapshot", len(loaded) - len(self._records))

    def all(self) -> list[dict]:
        with self.lock:
            return [dict(r) for r in self._records]

    def get(self, record_id: str) -> Optional[dict]:
        with self.lock:
            for record in self._records:
                if record["id"] == record_id:
                    return dict(record)
        return None

    def find(self, predicate: Callable[[dict], bool]) -> Optional[dict]:
        with self.lock:
            for record in self._records:
                if predicate(record):
                    return dict(record)
        return None

    def prepend(self, record: dict) -> None:
        with self.lock:
            self._commit([dict(record)] + self._records)

    def replace(self, record_id: str, record: dict) -> None:
        with self.lock:
            records = list(self._records)
            records[self._index(record_id)] = dict(record)
            self._commit(records)

    def __len__(self) -> int:
        return len(self._records)

    def _index(self, record_id: str) -> int:
        for idx, record in enumerate(self._records):
            if record["id"] == record_id:
                return idx
        raise NotFound(f"Record {record_id} not found")

    def _commit(self, records: list[dict]) -> None:
        self.snapshot.save(records)
        self._records = records
