# imposition_solver/solver_grid.py
# Grid imposition solver for ONE (product tile, machine sheet) pair:
# - printable area = machine sheet minus the gripper strip along the leading (top) edge
# - rows x cols grid with a fixed gap between tiles (no gap at the sheet edges)
# - both orientations are tried, the larger count wins
# - optional shrink search when nothing fits at full size
#
# This is a bounded deterministic search, not a general packer: every tile on a
# sheet has the same orientation, which is what a press operator expects.

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .metrics import LayoutMetrics, compute_layout_metrics
from .types import (
    ORIENTATIONS,
    CuttingLayout,
    LayoutCoordinate,
    LayoutData,
    oriented_dims,
)

# Float slack so a tile exactly equal to the printable area still counts as a fit.
EPS = 1e-9


@dataclass(frozen=True)
class GridParams:
    gripper_margin_cm: float = 1.0
    item_gap_cm: float = 0.2

    # Shrink search (product size only, bleed untouched)
    allow_shrink: bool = True
    max_shrink_cm: float = 1.0   # budget for shrink_width + shrink_height
    shrink_step_cm: float = 0.1


@dataclass(frozen=True)
class GridFit:
    """Best rows x cols arrangement for one machine sheet."""
    orientation: str  # "normal" | "rotated"
    cols: int
    rows: int

    # Final (possibly shrunk) trimmed product size, unrotated
    product_width_cm: float
    product_height_cm: float
    bleed_cm: float
    shrink_width_cm: float
    shrink_height_cm: float

    machine_width_cm: float
    machine_height_cm: float
    gripper_margin_cm: float
    item_gap_cm: float
    metrics: LayoutMetrics

    @property
    def items_per_sheet(self) -> int:
        return self.cols * self.rows

    @property
    def is_shrink_used(self) -> bool:
        return self.shrink_width_cm > 0 or self.shrink_height_cm > 0

    @property
    def tile_width_cm(self) -> float:
        """Tile width on the sheet (bleed included, orientation applied)."""
        return oriented_dims(self.product_width_cm + 2 * self.bleed_cm,
                             self.product_height_cm + 2 * self.bleed_cm,
                             self.orientation)[0]

    @property
    def tile_height_cm(self) -> float:
        return oriented_dims(self.product_width_cm + 2 * self.bleed_cm,
                             self.product_height_cm + 2 * self.bleed_cm,
                             self.orientation)[1]

    @property
    def printable_width_cm(self) -> float:
        return self.machine_width_cm

    @property
    def printable_height_cm(self) -> float:
        return self.machine_height_cm - self.gripper_margin_cm


def printable_area(machine_w: float, machine_h: float, gripper: float) -> Tuple[float, float]:
    return machine_w, machine_h - gripper


def fit_count(printable: float, tile: float, gap: float) -> int:
    """How many tiles of length `tile` fit along `printable` with `gap` between them."""
    if tile <= 0 or printable <= 0:
        return 0
    return max(int(math.floor((printable + gap) / (tile + gap) + EPS)), 0)


def _fit_once(
    machine_w: float,
    machine_h: float,
    product_w: float,
    product_h: float,
    bleed: float,
    shrink_w: float,
    shrink_h: float,
    params: GridParams,
) -> GridFit:
    """Evaluate both orientations and keep the better one (count, then residual, then normal)."""
    pw, ph = printable_area(machine_w, machine_h, params.gripper_margin_cm)
    gap = params.item_gap_cm
    tile_w = product_w + 2 * bleed
    tile_h = product_h + 2 * bleed

    best_key = None
    best: Optional[GridFit] = None
    for idx, orientation in enumerate(ORIENTATIONS):
        tw, th = oriented_dims(tile_w, tile_h, orientation)
        cols = fit_count(pw, tw, gap)
        rows = fit_count(ph, th, gap)
        if cols == 0 or rows == 0:
            cols, rows = 0, 0
        m = compute_layout_metrics(cols, rows, tw, th, gap, pw, ph, machine_w, machine_h)
        key = (-(cols * rows), round(m.residual_area_cm2, 6), idx)
        if best_key is None or key < best_key:
            best_key = key
            best = GridFit(
                orientation=orientation,
                cols=cols,
                rows=rows,
                product_width_cm=product_w,
                product_height_cm=product_h,
                bleed_cm=bleed,
                shrink_width_cm=shrink_w,
                shrink_height_cm=shrink_h,
                machine_width_cm=machine_w,
                machine_height_cm=machine_h,
                gripper_margin_cm=params.gripper_margin_cm,
                item_gap_cm=gap,
                metrics=m,
            )
    assert best is not None
    return best


def _shrink_search(
    machine_w: float,
    machine_h: float,
    product_w: float,
    product_h: float,
    bleed: float,
    baseline: int,
    params: GridParams,
) -> Optional[GridFit]:
    """
    Walk total shrink upward in fixed steps; at each total try every split between
    width and height. Return the first total that beats `baseline` (best split wins,
    earliest split on ties), or None if the budget runs out.
    """
    step = params.shrink_step_cm
    n_steps = int(math.floor(params.max_shrink_cm / step + EPS))
    for k in range(1, n_steps + 1):
        best: Optional[GridFit] = None
        for i in range(k + 1):
            sw = round(i * step, 6)
            sh = round((k - i) * step, 6)
            fw = round(product_w - sw, 6)
            fh = round(product_h - sh, 6)
            if fw <= 0 or fh <= 0:
                continue
            fit = _fit_once(machine_w, machine_h, fw, fh, bleed, sw, sh, params)
            if fit.items_per_sheet > baseline and (best is None or fit.items_per_sheet > best.items_per_sheet):
                best = fit
        if best is not None:
            return best
    return None


def solve_grid(
    machine_w: float,
    machine_h: float,
    product_w: float,
    product_h: float,
    bleed: float,
    params: Optional[GridParams] = None,
) -> Optional[GridFit]:
    """
    Best grid for the product on one machine sheet.
    Returns None ("no fit") when the tile does not fit even after the shrink budget.
    """
    params = params or GridParams()
    pw, ph = printable_area(machine_w, machine_h, params.gripper_margin_cm)
    if pw <= 0 or ph <= 0:
        return None

    base = _fit_once(machine_w, machine_h, product_w, product_h, bleed, 0.0, 0.0, params)
    if base.items_per_sheet > 0:
        return base
    if not params.allow_shrink or params.max_shrink_cm <= 0:
        return None
    return _shrink_search(machine_w, machine_h, product_w, product_h, bleed, base.items_per_sheet, params)


def tile_coordinates(fit: GridFit) -> Tuple[LayoutCoordinate, ...]:
    """Absolute tile rectangles, row-major from the top-left, below the gripper strip."""
    tw, th = fit.tile_width_cm, fit.tile_height_cm
    gap = fit.item_gap_cm
    out: List[LayoutCoordinate] = []
    for r in range(fit.rows):
        y = fit.gripper_margin_cm + r * (th + gap)
        for c in range(fit.cols):
            x = c * (tw + gap)
            out.append(LayoutCoordinate(x=x, y=y, w=tw, h=th, col=c, row=r))
    return tuple(out)


def build_layout_data(fit: GridFit, cutting: CuttingLayout) -> LayoutData:
    m = fit.metrics
    return LayoutData(
        machine_width_cm=fit.machine_width_cm,
        machine_height_cm=fit.machine_height_cm,
        gripper_margin_cm=fit.gripper_margin_cm,
        product_width_cm=fit.product_width_cm,
        product_height_cm=fit.product_height_cm,
        bleed_cm=fit.bleed_cm,
        tile_width_cm=fit.tile_width_cm,
        tile_height_cm=fit.tile_height_cm,
        cols=fit.cols,
        rows=fit.rows,
        orientation=fit.orientation,
        grid_width_cm=m.grid_width_cm,
        grid_height_cm=m.grid_height_cm,
        offset_x_cm=0.0,
        offset_y_cm=fit.gripper_margin_cm,
        waste_right_cm=m.waste_right_cm,
        waste_bottom_cm=m.waste_bottom_cm,
        coordinates=tile_coordinates(fit),
        cutting=cutting,
    )
