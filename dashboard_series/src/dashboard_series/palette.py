from __future__ import annotations

from collections.abc import Sequence

# Ordered from the highest-ranked category to the lowest.
DEFAULT_PALETTE: tuple[str, ...] = (
    "#1E40AF",
    "#3B82F6",
    "#60A5FA",
    "#0891B2",
    "#06B6D4",
    "#059669",
    "#10B981",
    "#34D399",
    "#6366F1",
    "#8B5CF6",
    "#A855F7",
    "#C084FC",
    "#EC4899",
    "#F472B6",
    "#8B5A3C",
)

OTHER_COLOR = "#9CA3AF"
OTHER_KEY = "__other__"
OTHER_LABEL = "Other"

POINT_COLOR = "#475569"
EMPHASIS_COLOR = "#D55E00"
POINT_RADIUS = 3
EMPHASIS_RADIUS = 6


def validate_palette(palette: Sequence[str]) -> tuple[str, ...]:
    colors = tuple(str(color) for color in palette)
    if not colors:
        raise ValueError("palette must contain at least one color")
    return colors


def rank_color(rank: int, palette: Sequence[str] = DEFAULT_PALETTE) -> str:
    """Color for a rank; wraps around when there are more ranks than colors."""
    if rank < 0:
        raise ValueError(f"rank must be >= 0, got {rank!r}")
    colors = validate_palette(palette)
    return colors[rank % len(colors)]
