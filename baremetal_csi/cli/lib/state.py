"""
Local persistent record store for baremetal-csi.

Volume, AvailableCapacity and LogicalVolumeGroup records are kept in one JSON
file per kind under the state directory. Both the CLI and the volume
operations core go through this module.
"""

from __future__ import annotations

import fcntl
import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from baremetal_csi.cli.lib.config import load_config
from baremetal_csi.common.exceptions import AlreadyExists, NotFound, RecordStoreError

LOG = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)

# Serializes threads of this process; the flock on LOCK_FILE serializes
# processes sharing a state directory.
_LOCK = threading.RLock()
# Nesting depth per lock file, guarded by _LOCK.
_HELD: Dict[str, int] = {}

LOCK_FILE = ".lock"


def get_state_dir() -> Path:
    """
    Resolve the directory used for persistent state.

    Priority:
    1) `BMCSI_STATE_DIR` env var, if set
    2) `state_dir` from the config file
    3) `/var/lib/baremetal-csi` if writable
    4) `$XDG_STATE_HOME/baremetal-csi` or `~/.local/state/baremetal-csi` as fallback
    """
    env = os.environ.get("BMCSI_STATE_DIR")
    if env:
        return Path(env)

    cfg = load_config()
    if cfg.state_dir:
        return cfg.state_dir

    candidates: list[Path] = [Path("/var/lib/baremetal-csi")]
    xdg_state_home = os.environ.get("XDG_STATE_HOME")
    if xdg_state_home:
        candidates.append(Path(xdg_state_home) / "baremetal-csi")
    else:
        candidates.append(Path.home() / ".local" / "state" / "baremetal-csi")

    for candidate in candidates:
        try:
            candidate.mkdir(parents=True, exist_ok=True)
            probe = candidate / ".write_test"
            probe.write_text("ok", encoding="utf-8")
            probe.unlink(missing_ok=True)
            return candidate
        except OSError:
            continue

    return Path(".baremetal-csi-state")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _load_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    try:
        with open(path, "r", encoding="utf-8") as file:
            return json.load(file)
    except (OSError, ValueError) as e:
        raise RecordStoreError(f"Failed to read {path}: {e}")


def _atomic_write_json(path: Path, data: Any) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_fd, tmp_path = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    except OSError as e:
        raise RecordStoreError(f"Failed to write {path}: {e}")
    try:
        with os.fdopen(tmp_fd, "w", encoding="utf-8") as file:
            json.dump(data, file, indent=2, ensure_ascii=False, sort_keys=True)
            file.write("\n")
        os.replace(tmp_path, path)
    except OSError as e:
        raise RecordStoreError(f"Failed to write {path}: {e}")
    finally:
        try:
            os.unlink(tmp_path)
        except FileNotFoundError:
            pass


class RecordStore:
    """Typed CRUD over records keyed by name.

    The record kind is the pydantic model class; each class names its file
    through its ``KIND`` attribute.

    Every call holds the store lock while it touches a file. Callers that
    read one record and write another back (or write a record based on what
    they read) hold :meth:`locked` around the whole sequence, or use
    :meth:`update_with`.
    """

    def __init__(self, state_dir: Optional[Path] = None):
        self._state_dir = Path(state_dir) if state_dir else None

    @property
    def state_dir(self) -> Path:
        return self._state_dir or get_state_dir()

    def _file(self, kind: Type[BaseModel]) -> Path:
        return self.state_dir / f"{kind.KIND}.json"

    @contextmanager
    def locked(self) -> Iterator[None]:
        """
        Hold the store lock for the duration of the block.

        The lock is reentrant within a thread, so store calls made inside the
        block do not block on it.

        Raises:
            RecordStoreError: If the lock file cannot be opened or locked
        """
        with _LOCK:
            lock_path = str(self.state_dir / LOCK_FILE)
            if _HELD.get(lock_path):
                _HELD[lock_path] += 1
                try:
                    yield
                finally:
                    _HELD[lock_path] -= 1
                return

            try:
                Path(lock_path).parent.mkdir(parents=True, exist_ok=True)
                lock_file = open(lock_path, "a", encoding="utf-8")
            except OSError as e:
                raise RecordStoreError(f"Failed to open lock file {lock_path}: {e}")
            with lock_file:
                try:
                    fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
                except OSError as e:
                    raise RecordStoreError(f"Failed to lock {lock_path}: {e}")
                _HELD[lock_path] = 1
                try:
                    yield
                finally:
                    _HELD.pop(lock_path, None)
                    fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def _load_items(self, kind: Type[BaseModel]) -> Dict[str, Dict[str, Any]]:
        data = _load_json(self._file(kind), {"items": []})
        return {item["name"]: item for item in data.get("items", [])}

    def _save_items(self, kind: Type[BaseModel], items: Dict[str, Dict[str, Any]]) -> None:
        data = {"items": [items[name] for name in sorted(items)]}
        _atomic_write_json(self._file(kind), data)

    @staticmethod
    def _decode(kind: Type[RecordT], item: Dict[str, Any]) -> RecordT:
        try:
            return kind.model_validate(item["spec"])
        except (KeyError, ValidationError) as e:
            raise RecordStoreError(f"Malformed {kind.__name__} record {item.get('name')}: {e}")

    def create(self, name: str, record: BaseModel) -> BaseModel:
        """
        Persist a new record.

        Volumes without a creation timestamp get the current time.

        Raises:
            AlreadyExists: If a record of the same kind and name exists
        """
        kind = type(record)
        if "created_at" in kind.model_fields and getattr(record, "created_at") is None:
            record = record.model_copy(update={"created_at": _utc_now()})
        with self.locked():
            items = self._load_items(kind)
            if name in items:
                raise AlreadyExists(f"{kind.__name__} {name} already exists")
            items[name] = {"name": name, "spec": record.model_dump(mode="json")}
            self._save_items(kind, items)
        LOG.debug("Created %s %s", kind.__name__, name)
        return record

    def read(self, kind: Type[RecordT], name: str) -> RecordT:
        """
        Read a record by name.

        Raises:
            NotFound: If the record does not exist
        """
        with self.locked():
            items = self._load_items(kind)
        if name not in items:
            raise NotFound(f"{kind.__name__} {name} not found")
        return self._decode(kind, items[name])

    def update(self, name: str, record: BaseModel) -> BaseModel:
        """
        Replace an existing record.

        Raises:
            NotFound: If the record does not exist
        """
        kind = type(record)
        with self.locked():
            items = self._load_items(kind)
            if name not in items:
                raise NotFound(f"{kind.__name__} {name} not found")
            items[name] = {"name": name, "spec": record.model_dump(mode="json")}
            self._save_items(kind, items)
        LOG.debug("Updated %s %s", kind.__name__, name)
        return record

    def update_with(
        self, kind: Type[RecordT], name: str, change: Callable[[RecordT], Optional[RecordT]]
    ) -> Optional[RecordT]:
        """
        Read a record, apply ``change`` to it and write the result back, all
        under the store lock.

        ``change`` receives the current record and returns the record to
        write, or ``None`` to leave the stored record as it is. Exceptions
        raised by ``change`` abort the update and propagate.

        Returns:
            The written record, or ``None`` if nothing was written

        Raises:
            NotFound: If the record does not exist
        """
        with self.locked():
            current = self.read(kind, name)
            record = change(current)
            if record is None:
                return None
            return self.update(name, record)

    def delete(self, kind: Type[BaseModel], name: str) -> None:
        """
        Delete a record by name.

        Raises:
            NotFound: If the record does not exist
        """
        with self.locked():
            items = self._load_items(kind)
            if name not in items:
                raise NotFound(f"{kind.__name__} {name} not found")
            del items[name]
            self._save_items(kind, items)
        LOG.debug("Deleted %s %s", kind.__name__, name)

    def list(self, kind: Type[RecordT]) -> List[RecordT]:
        """List every record of a kind, ordered by name."""
        with self.locked():
            items = self._load_items(kind)
        return [self._decode(kind, items[name]) for name in sorted(items)]
