from __future__ import annotations

import os
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from adapters.layout.grid import GridLayoutEngine, LayoutConfig
from adapters.layout.lanes import LaneLayoutEngine
from adapters.memory.model_store import InMemoryModelStore
from app.config import AppSettings, ImporterSettings, LayoutSettings, ParserSettings
from domain.models import ActivityRow
from domain.services.activity_rows import build_activity_row
from domain.services.import_activities import ActivityImportService


def _clear_actimp_env() -> None:
    for key in list(os.environ):
        if key.startswith("ACTIMP_"):
            os.environ.pop(key, None)


_clear_actimp_env()


@pytest.fixture(autouse=True)
def clear_actimp_env() -> Generator[None, None, None]:
    _clear_actimp_env()
    yield
    _clear_actimp_env()


@pytest.fixture
def store() -> InMemoryModelStore:
    return InMemoryModelStore()


@pytest.fixture
def layout_config() -> LayoutConfig:
    return LayoutConfig()


@pytest.fixture
def import_service_factory(
    layout_config: LayoutConfig,
) -> Callable[[InMemoryModelStore], ActivityImportService]:
    def _factory(target: InMemoryModelStore) -> ActivityImportService:
        return ActivityImportService(
            target,
            GridLayoutEngine(target, layout_config),
            LaneLayoutEngine(target, layout_config),
        )

    return _factory


@pytest.fixture
def example_rows() -> list[ActivityRow]:
    return [
        build_activity_row("Init", outputs=["OK"]),
        build_activity_row("Process", actor="Worker", inputs=["OK"], outputs=["Done"]),
    ]


@pytest.fixture
def app_settings(tmp_path: Path) -> AppSettings:
    return AppSettings(
        parser=ParserSettings(),
        layout=LayoutSettings(),
        importer=ImporterSettings(
            store_path=tmp_path / "store" / "model.json",
            excalidraw_dir=None,
        ),
    )


@pytest.fixture
def app_settings_factory(app_settings: AppSettings) -> Callable[..., AppSettings]:
    def _factory(**importer_overrides: object) -> AppSettings:
        return app_settings.model_copy(
            update={"importer": app_settings.importer.model_copy(update=importer_overrides)}
        )

    return _factory


@pytest.fixture
def write_text_file(tmp_path: Path) -> Callable[[str, str], Path]:
    def _write(name: str, content: str) -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write
