from __future__ import annotations

import os
from pathlib import Path
from typing import Annotated, ClassVar

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from pydantic_settings.sources import PydanticBaseSettingsSource, YamlConfigSettingsSource

from adapters.layout.grid import LayoutConfig
from domain.models import Rect
from domain.services.import_activities import DEFAULT_ACTIVITY_NAME

DEFAULT_CONFIG_PATH = Path("config/importer/app.yaml")


def _split_string_list_value(raw_value: str) -> list[str]:
    raw = raw_value.strip()
    if raw.startswith("[") and raw.endswith("]"):
        raw = raw[1:-1].strip()
    if not raw:
        return []
    return [
        token for token in (part.strip().strip("'").strip('"') for part in raw.split(",")) if token
    ]


class ParserSettings(BaseModel):
    text_delimiter: str = Field(",", min_length=1, max_length=1)
    multi_value_delimiters: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: [";", ","]
    )
    action_prefix: str = "Action"
    header_scan_rows: int = Field(10, ge=1)
    encoding: str = "utf-8"

    @field_validator("multi_value_delimiters", mode="before")
    @classmethod
    def normalize_delimiters(cls, value: object) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            # one delimiter per character, in preference order
            return [char for char in value if not char.isspace()]
        return [str(item) for item in value if str(item)]


class LayoutSettings(BaseModel):
    canvas_width: int | None = 1200
    node_width: int = Field(200, gt=0)
    node_height: int = Field(80, gt=0)
    sentinel_size: int = Field(20, gt=0)
    pin_width: int = Field(20, gt=0)
    pin_height: int = Field(20, gt=0)
    pin_spacing: int = Field(5, ge=0)
    pin_unit_height: int = Field(25, ge=0)
    pin_threshold: int = Field(3, ge=0)
    column_x: int = 100
    start_y: int = 100
    y_step: int = Field(70, ge=0)
    lane_padding: int = Field(40, ge=0)
    lane_placeholder: tuple[int, int, int, int] = (150, 70, 450, 300)

    @model_validator(mode="after")
    def ensure_canvas_fits_column(self) -> "LayoutSettings":
        if self.canvas_width is not None and self.canvas_width < self.node_width:
            msg = "layout.canvas_width must be at least layout.node_width"
            raise ValueError(msg)
        return self

    def to_layout_config(self) -> LayoutConfig:
        return LayoutConfig(
            canvas_width=self.canvas_width,
            node_width=self.node_width,
            node_height=self.node_height,
            sentinel_size=self.sentinel_size,
            pin_width=self.pin_width,
            pin_height=self.pin_height,
            pin_spacing=self.pin_spacing,
            pin_unit_height=self.pin_unit_height,
            pin_threshold=self.pin_threshold,
            column_x=self.column_x,
            start_y=self.start_y,
            y_step=self.y_step,
            lane_padding=self.lane_padding,
            lane_placeholder=Rect(*self.lane_placeholder),
        )


class ImporterSettings(BaseModel):
    activity_name: str = DEFAULT_ACTIVITY_NAME
    call_behavior_actions: Annotated[list[str], NoDecode] = Field(default_factory=list)
    store_path: Path = Path("data/store/model.json")
    excalidraw_dir: Path | None = None

    @field_validator("call_behavior_actions", mode="before")
    @classmethod
    def normalize_lists(cls, value: object) -> list[str]:
        if value is None:
            return []
        if isinstance(value, list):
            normalized: list[str] = []
            for item in value:
                normalized.extend(_split_string_list_value(str(item)))
            return normalized
        return _split_string_list_value(str(value))


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="ACTIMP_", env_nested_delimiter="__")

    parser: ParserSettings = ParserSettings()
    layout: LayoutSettings = LayoutSettings()
    importer: ImporterSettings = ImporterSettings()

    _yaml_path: ClassVar[Path | None] = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        sources: list[PydanticBaseSettingsSource] = [
            init_settings,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        ]
        if cls._yaml_path:
            sources.append(YamlConfigSettingsSource(settings_cls, yaml_file=cls._yaml_path))
        return tuple(sources)


def load_settings(config_path: Path | None = None) -> AppSettings:
    env_path = os.getenv("ACTIMP_CONFIG_PATH")
    resolved_path: Path | None = None

    if config_path is not None:
        resolved_path = config_path
    elif env_path:
        resolved_path = Path(env_path)
    elif DEFAULT_CONFIG_PATH.exists():
        resolved_path = DEFAULT_CONFIG_PATH

    previous = AppSettings._yaml_path
    try:
        if resolved_path is not None:
            if not resolved_path.exists():
                msg = f"Config file not found: {resolved_path}"
                raise FileNotFoundError(msg)
            AppSettings._yaml_path = resolved_path
        return AppSettings()
    finally:
        AppSettings._yaml_path = previous
