from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path

import pandas as pd

from dashboard_series.clock import Clock, SystemClock, anchor_from_clock, parse_anchor
from dashboard_series.config import AppConfig
from dashboard_series.features.events import Event
from dashboard_series.features.grouping import build_groups
from dashboard_series.io.read import load_events, load_records
from dashboard_series.io.write import write_payload, write_table
from dashboard_series.paths import build_output_paths
from dashboard_series.preprocess.window import MonthBucket, build_window, resolve_window_size
from dashboard_series.report.assemble import DashboardView, build_dashboard_view
from dashboard_series.viz.stacked import plot_stacked_series

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineOutputs:
    payload: Path
    table: Path
    figure: Path | None


def resolve_anchor(config: AppConfig, clock: Clock | None = None) -> date:
    if config.clock.anchor_date:
        return parse_anchor(config.clock.anchor_date)
    return anchor_from_clock(clock or SystemClock())


def resolve_buckets(config: AppConfig, anchor: date) -> tuple[MonthBucket, ...]:
    window_size = config.window.size
    if config.window.preset:
        window_size = resolve_window_size(config.window.preset, anchor)
    return build_window(anchor, window_size, label_format=config.window.label_format)


def build_view(
    records: pd.DataFrame,
    events: list[Event],
    buckets: tuple[MonthBucket, ...],
    config: AppConfig,
) -> DashboardView:
    groups = build_groups(
        records,
        buckets,
        key_column="key",
        value_column="value",
        name_column="name",
        auxiliary_columns=config.columns.records.auxiliary,
        date_column="date" if config.columns.records.date else None,
    )
    return build_dashboard_view(
        buckets,
        groups,
        events,
        config.grouping.top_k,
        palette=config.grouping.palette,
        other_color=config.grouping.other_color,
        other_label=config.grouping.other_label,
        point_color=config.events.color,
        emphasis_color=config.events.emphasis_color,
        radius=config.events.radius,
        emphasis_radius=config.events.emphasis_radius,
        date_format=config.events.date_format,
    )


def run_all(
    records_path: Path,
    out_dir: Path,
    config: AppConfig,
    *,
    events_path: Path | None = None,
    entity: str | None = None,
    clock: Clock | None = None,
) -> PipelineOutputs:
    paths = build_output_paths(out_dir)
    anchor = resolve_anchor(config, clock)
    buckets = resolve_buckets(config, anchor)
    LOGGER.info(
        "Building %d-month window ending %s", len(buckets), buckets[-1].label
    )

    records = load_records(records_path, config.columns.records)
    events: list[Event] = []
    if events_path is not None:
        events = load_events(events_path, config.columns.events, entity=entity)
    LOGGER.info("Loaded %d records and %d events", len(records), len(events))

    view = build_view(records, events, buckets, config)
    LOGGER.info(
        "Assembled %d chart series from %d groups", len(view.chart.datasets), len(view.table)
    )
    if view.chart.is_empty:
        LOGGER.info("No non-zero values inside the window")

    payload_path = write_payload(view.chart.to_payload(), paths.payloads / "chart.json")
    extension = "parquet" if config.outputs.tables_format == "parquet" else "csv"
    table_path = write_table(
        view.table,
        paths.tables / f"group_summary.{extension}",
        fmt=config.outputs.tables_format,
    )

    figure_path: Path | None = None
    if config.outputs.render_figure:
        try:
            figure_path = plot_stacked_series(
                view.chart,
                paths.figures / f"stacked_series.{config.outputs.figures_format}",
            )
        except Exception:  # pragma: no cover
            LOGGER.exception("Failed rendering stacked series figure")

    return PipelineOutputs(payload=payload_path, table=table_path, figure=figure_path)
