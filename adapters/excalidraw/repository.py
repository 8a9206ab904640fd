from __future__ import annotations

import json
from pathlib import Path

from domain.models import ExcalidrawDocument
from domain.ports.repositories import ExcalidrawRepository

SCENE_SUFFIX = ".excalidraw"


class FileSystemExcalidrawRepository(ExcalidrawRepository):
    def scene_path(self, directory: Path, source: Path) -> Path:
        """Scene file for an imported source, named after the source file."""
        return directory / f"{source.stem}{SCENE_SUFFIX}"

    def save(self, document: ExcalidrawDocument, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(document.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8"
        )
