from __future__ import annotations

from pathlib import Path
from typing import Protocol

from domain.models import ExcalidrawDocument
from domain.ports.model_store import ModelStore


class ModelStoreRepository(Protocol):
    def load(self, path: Path) -> ModelStore: ...

    def save(self, store: ModelStore, path: Path) -> None: ...


class ExcalidrawRepository(Protocol):
    def save(self, document: ExcalidrawDocument, path: Path) -> None: ...
