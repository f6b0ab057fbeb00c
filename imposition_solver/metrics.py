# imposition_solver/metrics.py
# Layout metrics:
# - grid extent (tiles plus the gaps between them)
# - residual strips left over to the right of / below the grid
# - sheet utilization (% of machine sheet area covered by tiles)
#
# These are solver-agnostic: they work for any rows x cols arrangement.

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class LayoutMetrics:
    grid_width_cm: float
    grid_height_cm: float
    waste_right_cm: float
    waste_bottom_cm: float
    residual_area_cm2: float
    utilization_percent: float


def grid_extent(cols: int, rows: int, tile_w: float, tile_h: float, gap: float) -> Tuple[float, float]:
    """Bounding box of a cols x rows grid with `gap` between neighbours (none at the edges)."""
    w = cols * tile_w + max(cols - 1, 0) * gap if cols > 0 else 0.0
    h = rows * tile_h + max(rows - 1, 0) * gap if rows > 0 else 0.0
    return w, h


def compute_residual_area(printable_w: float, printable_h: float, grid_w: float, grid_h: float) -> float:
    """
    Printable area not covered by the grid bounding box.
    Used to break ties between orientations with equal counts.
    """
    return max(printable_w * printable_h - grid_w * grid_h, 0.0)


def compute_utilization(
    items: int,
    tile_w: float,
    tile_h: float,
    sheet_w: float,
    sheet_h: float,
) -> float:
    """Tile area (bleed included) over full machine sheet area, in percent."""
    sheet_area = sheet_w * sheet_h
    if sheet_area <= 0:
        return 0.0
    return min(items * tile_w * tile_h / sheet_area * 100.0, 100.0)


def compute_layout_metrics(
    cols: int,
    rows: int,
    tile_w: float,
    tile_h: float,
    gap: float,
    printable_w: float,
    printable_h: float,
    sheet_w: float,
    sheet_h: float,
) -> LayoutMetrics:
    grid_w, grid_h = grid_extent(cols, rows, tile_w, tile_h, gap)
    return LayoutMetrics(
        grid_width_cm=grid_w,
        grid_height_cm=grid_h,
        waste_right_cm=max(printable_w - grid_w, 0.0),
        waste_bottom_cm=max(printable_h - grid_h, 0.0),
        residual_area_cm2=compute_residual_area(printable_w, printable_h, grid_w, grid_h),
        utilization_percent=compute_utilization(cols * rows, tile_w, tile_h, sheet_w, sheet_h),
    )
