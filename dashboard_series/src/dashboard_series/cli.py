from __future__ import annotations

from pathlib import Path

import typer

from dashboard_series.clock import SystemClock, anchor_from_clock, parse_anchor
from dashboard_series.config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from dashboard_series.logging import configure_logging
from dashboard_series.pipeline.run_all import run_all
from dashboard_series.preprocess.window import build_window, resolve_window_size

app = typer.Typer(no_args_is_help=True, add_completion=False)


def _load_app_config(config_path: Path) -> AppConfig:
    return load_config(config_path)


def _parse_anchor_option(anchor: str | None) -> str | None:
    if anchor is None:
        return None
    try:
        return parse_anchor(anchor).isoformat()
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--anchor") from exc


@app.command()
def window(
    anchor: str | None = typer.Option(None, help="Anchor date (YYYY-MM-DD); defaults to today."),
    size: int = typer.Option(13, min=1, help="Number of months in the window."),
    preset: str | None = typer.Option(
        None,
        help="Window preset: current-year, current-and-previous-year or last-N-months.",
    ),
    label_format: str = typer.Option("%Y-%m", help="strftime format for bucket labels."),
) -> None:
    """Print the month buckets of a window."""
    anchor_value = _parse_anchor_option(anchor)
    anchor_date = parse_anchor(anchor_value) if anchor_value else anchor_from_clock(SystemClock())
    window_size = size
    if preset:
        try:
            window_size = resolve_window_size(preset, anchor_date)
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_hint="--preset") from exc
    for bucket in build_window(anchor_date, window_size, label_format=label_format):
        typer.echo(bucket.label)


@app.command("run-all")
def run_all_command(
    records: Path = typer.Option(..., exists=True, readable=True, resolve_path=True),
    out: Path = typer.Option(Path("out"), resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    events: Path | None = typer.Option(
        None,
        exists=True,
        readable=True,
        resolve_path=True,
        help="Optional dated events (date, title) to overlay on the chart.",
    ),
    entity: str | None = typer.Option(
        None, help="Keep only events tied to this entity key (needs columns.events.entity)."
    ),
    anchor: str | None = typer.Option(None, help="Override the anchor date (YYYY-MM-DD)."),
    top_k: int | None = typer.Option(None, min=0, help="Override grouping.top_k."),
) -> None:
    """Build chart payload, group table and preview figure from exported records."""
    configure_logging()
    cfg = _load_app_config(config)
    anchor_value = _parse_anchor_option(anchor)
    if anchor_value:
        cfg.clock.anchor_date = anchor_value
    if top_k is not None:
        cfg.grouping.top_k = top_k
    try:
        outputs = run_all(
            records_path=records,
            out_dir=out,
            config=cfg,
            events_path=events,
            entity=entity,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    typer.echo(f"Chart payload: {outputs.payload}")
    typer.echo(f"Group table: {outputs.table}")
    if outputs.figure is not None:
        typer.echo(f"Figure: {outputs.figure}")


if __name__ == "__main__":
    app()
