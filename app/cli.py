from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from adapters.excalidraw.repository import FileSystemExcalidrawRepository
from adapters.filesystem.model_store_repository import FileSystemModelStoreRepository
from app.config import AppSettings, load_settings
from app.wiring import build_action_type_of, build_import_service, build_row_source
from domain.errors import ActivityImportError
from domain.models import ActivityRow
from domain.services.activity_rows import count_top_level
from domain.services.convert_activity_graph_to_excalidraw import (
    ActivityGraphToExcalidrawConverter,
)

app = typer.Typer(no_args_is_help=True)
console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_settings(config_path: Optional[Path]) -> AppSettings:
    try:
        return load_settings(config_path)
    except (FileNotFoundError, ValidationError, ValueError) as exc:
        console.print(f"[red]Invalid configuration:[/] {exc}")
        raise typer.Exit(code=1) from exc


def _parse_rows(source: Path, settings: AppSettings) -> List[ActivityRow]:
    if not source.exists():
        console.print(f"[red]File not found:[/] {source}")
        raise typer.Exit(code=1)
    try:
        return build_row_source(source, settings).parse(source)
    except (ActivityImportError, OSError) as exc:
        console.print(f"[red]Import failed:[/] {exc}")
        raise typer.Exit(code=1) from exc


@app.command("import")
def import_activities(
    source: Path = typer.Argument(..., help="Delimited text or spreadsheet file to import."),
    store_path: Optional[Path] = typer.Option(
        None, "--store", help="Model store snapshot to import into (created when missing).",
    ),
    excalidraw_path: Optional[Path] = typer.Option(
        None, "--excalidraw", help="Write the laid-out activity as an Excalidraw scene.",
    ),
    call_behavior: Optional[List[str]] = typer.Option(
        None, "--call-behavior", help="Sub-action name to create as a call behavior action.",
    ),
    config_path: Optional[Path] = typer.Option(None, "--config", help="YAML settings file."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    _configure_logging(verbose)
    settings = _load_settings(config_path)
    rows = _parse_rows(source, settings)
    if not rows:
        console.print(f"[yellow]No activities found in {source}[/]")
        raise typer.Exit(code=0)

    store_file = store_path or settings.importer.store_path
    repository = FileSystemModelStoreRepository()
    try:
        store = repository.load(store_file)
        service = build_import_service(store, settings)
        result = service.run(rows, build_action_type_of(settings, call_behavior or []))
        repository.save(store, store_file)
    except (ActivityImportError, OSError) as exc:
        console.print(f"[red]Import failed:[/] {exc}")
        raise typer.Exit(code=1) from exc

    console.print(
        f"[green]Imported {result.rows_imported} activities[/] "
        f"({result.nodes_created} created, {result.nodes_reused} reused, "
        f"{result.orphans_dropped} orphan sub-actions dropped) into {store_file}"
    )

    scenes = FileSystemExcalidrawRepository()
    scene_path = excalidraw_path
    if scene_path is None and settings.importer.excalidraw_dir is not None:
        scene_path = scenes.scene_path(settings.importer.excalidraw_dir, source)
    if scene_path is not None:
        document = ActivityGraphToExcalidrawConverter().convert(result.graph)
        scenes.save(document, scene_path)
        console.print(f"[green]Wrote[/] {scene_path}")


@app.command("inspect")
def inspect_source(
    source: Path = typer.Argument(..., help="Delimited text or spreadsheet file to parse."),
    config_path: Optional[Path] = typer.Option(None, "--config", help="YAML settings file."),
) -> None:
    _configure_logging(False)
    settings = _load_settings(config_path)
    rows = _parse_rows(source, settings)
    if not rows:
        console.print(f"[yellow]No activities found in {source}[/]")
        raise typer.Exit(code=0)

    table = Table(title=str(source))
    for column in ("Name", "Lane", "Parent", "Inputs", "Outputs"):
        table.add_column(column)
    for row in rows:
        table.add_row(
            row.name,
            row.lane_key,
            row.parent_name,
            "; ".join(row.inputs),
            "; ".join(row.outputs),
        )
    console.print(table)
    console.print(
        f"[green]{len(rows)} activities parsed[/] ({count_top_level(rows)} top-level)"
    )


if __name__ == "__main__":
    app()
