from __future__ import annotations

import logging
from pathlib import Path

import orjson
from filelock import FileLock

from adapters.memory.model_store import InMemoryModelStore
from domain.errors import StoreError
from domain.ports.repositories import ModelStoreRepository

logger = logging.getLogger(__name__)


def _lock_path(path: Path) -> str:
    return str(path.with_suffix(f"{path.suffix}.lock"))


class FileSystemModelStoreRepository(ModelStoreRepository):
    """Keeps an ``InMemoryModelStore`` between runs as a JSON snapshot."""

    def __init__(self, namespace: str = "activity-importer") -> None:
        self.namespace = namespace

    def load(self, path: Path) -> InMemoryModelStore:
        if not path.exists():
            logger.debug("No store snapshot at %s; starting empty", path)
            return InMemoryModelStore(namespace=self.namespace)
        with FileLock(_lock_path(path)):
            raw = path.read_bytes()
        try:
            payload = orjson.loads(raw)
            if not isinstance(payload, dict):
                raise TypeError("snapshot root must be an object")
            return InMemoryModelStore.from_dict(payload, namespace=self.namespace)
        except (orjson.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            msg = f"Invalid model store snapshot {path}: {exc}"
            raise StoreError(msg) from exc

    def save(self, store: InMemoryModelStore, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = orjson.dumps(store.to_dict(), option=orjson.OPT_INDENT_2)
        with FileLock(_lock_path(path)):
            tmp_path = path.with_suffix(f"{path.suffix}.tmp")
            tmp_path.write_bytes(payload)
            tmp_path.replace(path)
