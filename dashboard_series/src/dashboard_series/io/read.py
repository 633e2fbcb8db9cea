from __future__ import annotations

from pathlib import Path

import pandas as pd

from dashboard_series.config import EventColumnsConfig, RecordColumnsConfig
from dashboard_series.features.events import Event, events_from_frame


def load_table(path: Path) -> pd.DataFrame:
    if path.suffix == ".parquet":
        return pd.read_parquet(path)
    if path.suffix == ".csv":
        # utf-8-sig strips BOM-prefixed headers from spreadsheet exports.
        return pd.read_csv(path, encoding="utf-8-sig")
    if path.suffix == ".json":
        return pd.read_json(path, orient="records")
    raise ValueError(f"Unsupported table file type: {path.suffix}")


def normalize_record_columns(df: pd.DataFrame, columns: RecordColumnsConfig) -> pd.DataFrame:
    """Rename configured source columns to the canonical record columns."""
    required = [columns.key, columns.value]
    if columns.date:
        required.append(columns.date)
    else:
        required.extend([columns.year, columns.month])
    missing = [source for source in required if source not in df.columns]
    if missing:
        raise ValueError(f"Missing required record columns: {', '.join(missing)}")

    rename_map = {
        columns.key: "key",
        columns.value: "value",
    }
    if columns.name and columns.name in df.columns:
        rename_map[columns.name] = "name"
    if columns.date:
        rename_map[columns.date] = "date"
    else:
        rename_map[columns.year] = "year"
        rename_map[columns.month] = "month"
    # Source columns already named like a canonical target would end up duplicated.
    shadowed = [
        target
        for source, target in rename_map.items()
        if source != target and target in df.columns and target not in rename_map
    ]
    return df.drop(columns=shadowed).rename(columns=rename_map)


def load_records(path: Path, columns: RecordColumnsConfig) -> pd.DataFrame:
    return normalize_record_columns(load_table(path), columns)


def load_events(
    path: Path,
    columns: EventColumnsConfig,
    entity: str | None = None,
) -> list[Event]:
    """Load dated events, optionally keeping only those tied to ``entity``."""
    df = load_table(path)
    for column in (columns.date, columns.title):
        if column not in df.columns:
            raise ValueError(f"Missing required event column: {column}")
    if entity is not None:
        if not columns.entity or columns.entity not in df.columns:
            raise ValueError("Filtering events by entity requires columns.events.entity")
        df = df.loc[df[columns.entity].astype(str) == str(entity)]
    return events_from_frame(df, date_column=columns.date, title_column=columns.title)
