import copy
import json
import logging
import os
import stat
import tempfile
import threading
import time
import uuid
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Tuple

from errors import InvalidPayload, ReloadReadError, ResourceNotFound, StartupError

logger = logging.getLogger(__name__)

# (mtime_ns, size) of the file the cached parse came from
Signature = Tuple[int, int]


@dataclass
class ReloadState:
    """Outcome of the most recent reload attempts, kept for observability"""

    last_reload_at: Optional[float] = None
    last_error: Optional[str] = None
    reload_count: int = 0
    failure_count: int = 0

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ReloadResult:
    ok: bool
    version: int
    error: Optional[ReloadReadError] = None


class DataStore:
    """
    Handle over the JSON data file.

    Owns the served model, a version counter that is bumped on every swap,
    and a parse cache keyed by the file's stat signature. All mutators hold
    the lock and replace the model reference in one assignment, so readers
    always see either the old or the new document, never a partial one.
    """

    def __init__(self, db_file: str, indent: int = 2):
        self.db_file = os.path.abspath(db_file)
        self.indent = indent
        self.state = ReloadState()

        self._lock = threading.RLock()
        self._data: Dict[str, Any] = {}
        self._version = 0
        self._cache: Optional[Tuple[Signature, Dict[str, Any]]] = None
        self._cache_generation = 0

    @property
    def version(self) -> int:
        return self._version

    @property
    def cache_generation(self) -> int:
        return self._cache_generation

    def load(self) -> ReloadResult:
        """Initial load at startup; creates an empty database when the file is missing"""
        if not os.path.exists(self.db_file):
            logger.warning("Database file %s not found, creating an empty one", self.db_file)
            try:
                self._persist({})
            except OSError as e:
                raise StartupError(f"Cannot create database file {self.db_file}: {e}") from e

        result = self.reload()
        if not result.ok:
            raise StartupError(f"Cannot load database file: {result.error}")
        return result

    def invalidate(self):
        """Drop the cached parse so the next read goes to disk"""
        with self._lock:
            self._cache = None
            self._cache_generation += 1

    def reload(self) -> ReloadResult:
        """Re-read the data file and swap it in; the previous model survives any failure"""
        with self._lock:
            try:
                data = self._read_file()
            except ReloadReadError as e:
                self.state.last_error = str(e)
                self.state.failure_count += 1
                return ReloadResult(ok=False, version=self._version, error=e)

            self._data = data
            self._version += 1
            self.state.last_reload_at = time.time()
            self.state.last_error = None
            self.state.reload_count += 1
            logger.debug("Loaded %s (version %d)", self.db_file, self._version)
            return ReloadResult(ok=True, version=self._version)

    def _read_file(self) -> Dict[str, Any]:
        try:
            st = os.stat(self.db_file)
            signature = (st.st_mtime_ns, st.st_size)
            if self._cache is not None and self._cache[0] == signature:
                return self._cache[1]

            with open(self.db_file, 'r', encoding='utf-8') as f:
                data = json.load(f, parse_constant=_reject_constant)
        except OSError as e:
            raise ReloadReadError(self.db_file, e.strerror or str(e)) from e
        except (ValueError, UnicodeDecodeError) as e:
            raise ReloadReadError(self.db_file, f"invalid JSON ({e})") from e

        if not isinstance(data, dict):
            raise ReloadReadError(self.db_file, "top-level value must be a JSON object")

        self._cache = (signature, data)
        return data

    # Read side

    def snapshot(self) -> Dict[str, Any]:
        """Current document; callers must treat it as read-only"""
        with self._lock:
            return self._data

    def get_resource(self, name: str) -> Any:
        data = self.snapshot()
        if name not in data:
            raise ResourceNotFound(f"Resource '{name}' not found")
        return data[name]

    def get_item(self, name: str, item_id: str) -> Dict[str, Any]:
        collection = self._collection(self.snapshot(), name)
        index = _find_index(collection, item_id)
        if index is None:
            raise ResourceNotFound(f"'{name}' has no item with id {item_id}")
        return collection[index]

    # Write side: copy, modify, persist, then swap

    def insert(self, name: str, payload: Any) -> Dict[str, Any]:
        record = _require_object(payload)
        with self._lock:
            data = copy.deepcopy(self._data)
            collection = self._collection(data, name)
            if 'id' in record:
                if _find_index(collection, str(record['id'])) is not None:
                    raise InvalidPayload(f"'{name}' already has an item with id {record['id']}")
            else:
                record = dict(record, id=_next_id(collection))
            collection.append(record)
            self._commit(data)
            return record

    def replace_item(self, name: str, item_id: str, payload: Any) -> Dict[str, Any]:
        record = _require_object(payload)
        with self._lock:
            data = copy.deepcopy(self._data)
            collection, index = self._locate(data, name, item_id)
            updated = dict(record, id=collection[index].get('id'))
            collection[index] = updated
            self._commit(data)
            return updated

    def patch_item(self, name: str, item_id: str, payload: Any) -> Dict[str, Any]:
        changes = _require_object(payload)
        with self._lock:
            data = copy.deepcopy(self._data)
            collection, index = self._locate(data, name, item_id)
            updated = dict(collection[index])
            updated.update(changes)
            updated['id'] = collection[index].get('id')
            collection[index] = updated
            self._commit(data)
            return updated

    def delete_item(self, name: str, item_id: str) -> Dict[str, Any]:
        with self._lock:
            data = copy.deepcopy(self._data)
            collection, index = self._locate(data, name, item_id)
            removed = collection.pop(index)
            self._commit(data)
            return removed

    def replace_resource(self, name: str, payload: Any) -> Any:
        with self._lock:
            data = copy.deepcopy(self._data)
            self._singular(data, name)
            data[name] = payload
            self._commit(data)
            return payload

    def patch_resource(self, name: str, payload: Any) -> Dict[str, Any]:
        changes = _require_object(payload)
        with self._lock:
            data = copy.deepcopy(self._data)
            current = self._singular(data, name)
            if not isinstance(current, dict):
                raise InvalidPayload(f"'{name}' is not an object and cannot be patched")
            current.update(changes)
            self._commit(data)
            return current

    def _commit(self, data: Dict[str, Any]):
        try:
            self._persist(data)
        except ValueError as e:
            raise InvalidPayload(f"Cannot store value: {e}") from e
        self._data = data
        self._version += 1

    def _persist(self, data: Dict[str, Any]):
        """
        Write atomically: temp file in the same directory, then rename over the target.

        Symlinks are followed so the link survives, and the target keeps its
        permission bits.
        """
        target = os.path.realpath(self.db_file)
        directory, basename = os.path.split(target)
        mode = _file_mode(target)
        fd, tmp_path = tempfile.mkstemp(prefix=f".{basename}.", suffix='.tmp', dir=directory)
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=self.indent, allow_nan=False)
                f.write('\n')
            os.chmod(tmp_path, mode)
            os.replace(tmp_path, target)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        self._cache = None

    def _collection(self, data: Dict[str, Any], name: str) -> List[Any]:
        if name not in data or not isinstance(data[name], list):
            raise ResourceNotFound(f"Collection '{name}' not found")
        return data[name]

    def _singular(self, data: Dict[str, Any], name: str) -> Any:
        if name not in data or isinstance(data[name], list):
            raise ResourceNotFound(f"Resource '{name}' not found")
        return data[name]

    def _locate(self, data: Dict[str, Any], name: str, item_id: str) -> Tuple[List[Any], int]:
        collection = self._collection(data, name)
        index = _find_index(collection, item_id)
        if index is None:
            raise ResourceNotFound(f"'{name}' has no item with id {item_id}")
        return collection, index


def _reject_constant(name: str):
    raise ValueError(f"{name} is not valid JSON")


def _file_mode(path: str) -> int:
    """Permission bits to give the rewritten file: the existing ones, else what open() would use"""
    try:
        return stat.S_IMODE(os.stat(path).st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def _find_index(collection: List[Any], item_id: str) -> Optional[int]:
    for i, item in enumerate(collection):
        if isinstance(item, dict) and 'id' in item and str(item['id']) == str(item_id):
            return i
    return None


def _next_id(collection: List[Any]):
    ids = [item.get('id') for item in collection if isinstance(item, dict) and 'id' in item]
    if all(isinstance(i, int) and not isinstance(i, bool) for i in ids):
        return max(ids, default=0) + 1
    return uuid.uuid4().hex[:8]


def _require_object(payload: Any) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise InvalidPayload("Request body must be a JSON object")
    return payload
