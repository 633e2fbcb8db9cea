from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field

from dashboard_series.palette import (
    DEFAULT_PALETTE,
    EMPHASIS_COLOR,
    EMPHASIS_RADIUS,
    OTHER_COLOR,
    OTHER_LABEL,
    POINT_RADIUS,
)

ANCHOR_DATE_ENV = "DASHBOARD_SERIES_ANCHOR_DATE"


class RecordColumnsConfig(BaseModel):
    key: str = "key"
    name: str | None = "name"
    value: str = "value"
    year: str = "year"
    month: str = "month"
    date: str | None = None
    auxiliary: list[str] = Field(default_factory=list)


class EventColumnsConfig(BaseModel):
    date: str = "date"
    title: str = "title"
    entity: str | None = None


class ColumnsConfig(BaseModel):
    records: RecordColumnsConfig = Field(default_factory=RecordColumnsConfig)
    events: EventColumnsConfig = Field(default_factory=EventColumnsConfig)


class WindowConfig(BaseModel):
    size: int = Field(default=13, ge=1)
    preset: str | None = None
    label_format: str = "%Y-%m"


class GroupingConfig(BaseModel):
    top_k: int = Field(default=15, ge=0)
    palette: list[str] = Field(default_factory=lambda: list(DEFAULT_PALETTE), min_length=1)
    other_color: str = OTHER_COLOR
    other_label: str = OTHER_LABEL


class EventsConfig(BaseModel):
    # Unset means points without events follow their dataset color.
    color: str | None = None
    emphasis_color: str = EMPHASIS_COLOR
    radius: int = Field(default=POINT_RADIUS, ge=0)
    emphasis_radius: int = Field(default=EMPHASIS_RADIUS, ge=0)
    date_format: str = "%Y-%m-%d"


class ClockConfig(BaseModel):
    anchor_date: str | None = None


class OutputsConfig(BaseModel):
    tables_format: Literal["parquet", "csv"] = "csv"
    figures_format: str = "png"
    render_figure: bool = True


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    columns: ColumnsConfig = Field(default_factory=ColumnsConfig)
    window: WindowConfig = Field(default_factory=WindowConfig)
    grouping: GroupingConfig = Field(default_factory=GroupingConfig)
    events: EventsConfig = Field(default_factory=EventsConfig)
    clock: ClockConfig = Field(default_factory=ClockConfig)
    outputs: OutputsConfig = Field(default_factory=OutputsConfig)


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")


def load_config(path: Path) -> AppConfig:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    config = AppConfig.model_validate(data)
    config.clock.anchor_date = os.getenv(ANCHOR_DATE_ENV) or config.clock.anchor_date
    return config
