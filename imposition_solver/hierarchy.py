# imposition_solver/hierarchy.py
# Two-level sheet hierarchy:
# - parent sheet (as purchased) -> machine sheets (what the press bed accepts)
# - machine-sheet counts: net + makeready waste + run waste
# - parent sheets needed for the inflated total
#
# Digital presses take the sheet as-is, so the digital path is a 1x1 pass-through.

from __future__ import annotations

import math
from typing import Optional, Tuple

from .types import CuttingLayout, SheetCounts

EPS = 1e-9


def fits_press(width: float, height: float, max_w: float, max_h: float) -> Optional[Tuple[float, float]]:
    """
    Return the sheet dims in the orientation the press accepts, or None.
    The given orientation is preferred.
    """
    if width <= max_w + EPS and height <= max_h + EPS:
        return width, height
    if height <= max_w + EPS and width <= max_h + EPS:
        return height, width
    return None


def derive_cutting_layout(parent_w: float, parent_h: float, max_w: float, max_h: float) -> CuttingLayout:
    """
    Split a parent sheet into equal machine sheets no larger than the press bed.
    The parent is turned to whichever orientation needs fewer pieces (unturned on ties).
    """
    best: Optional[CuttingLayout] = None
    for rotated in (False, True):
        pw, ph = (parent_h, parent_w) if rotated else (parent_w, parent_h)
        pieces_w = max(1, math.ceil(pw / max_w - EPS))
        pieces_h = max(1, math.ceil(ph / max_h - EPS))
        mw = pw / pieces_w
        mh = ph / pieces_h
        layout = CuttingLayout(
            parent_width_cm=pw,
            parent_height_cm=ph,
            machine_width_cm=mw,
            machine_height_cm=mh,
            cuts_across=int(math.floor(pw / mw + EPS)),
            cuts_down=int(math.floor(ph / mh + EPS)),
            parent_rotated=rotated,
        )
        if best is None or layout.machine_sheets_per_parent < best.machine_sheets_per_parent:
            best = layout
    assert best is not None and best.machine_sheets_per_parent >= 1
    return best


def passthrough_layout(sheet_w: float, sheet_h: float) -> CuttingLayout:
    """Digital: the sheet is the machine sheet."""
    return CuttingLayout(
        parent_width_cm=sheet_w,
        parent_height_cm=sheet_h,
        machine_width_cm=sheet_w,
        machine_height_cm=sheet_h,
        cuts_across=1,
        cuts_down=1,
    )


def machine_sheets_required(tiles_required: int, items_per_sheet: int) -> int:
    if items_per_sheet <= 0:
        raise ValueError("items_per_sheet must be >= 1")
    return math.ceil(tiles_required / items_per_sheet)


def run_waste_sheets(net_machine_sheets: int, waste_percentage: float) -> int:
    """Proportional spoilage, rounded up. Percent value (3 == 3%)."""
    return int(math.ceil(round(net_machine_sheets * waste_percentage / 100.0, 9)))


def compute_sheet_counts(
    tiles_required: int,
    items_per_sheet: int,
    machine_sheets_per_parent: int,
    makeready_waste_sheets: int,
    waste_percentage: float,
) -> SheetCounts:
    """
    net   = ceil(tiles / items_per_sheet)
    total = net + makeready + ceil(net * waste%)
    parents = ceil(total / machine_sheets_per_parent)
    """
    if machine_sheets_per_parent < 1:
        raise ValueError("machine_sheets_per_parent must be >= 1")
    net = machine_sheets_required(tiles_required, items_per_sheet)
    run = run_waste_sheets(net, waste_percentage)
    makeready = int(makeready_waste_sheets)
    total = net + makeready + run
    return SheetCounts(
        net_machine_sheets=net,
        makeready_waste_sheets=makeready,
        run_waste_sheets=run,
        machine_sheets_per_parent=machine_sheets_per_parent,
        parent_sheets_needed=math.ceil(total / machine_sheets_per_parent),
    )


def digital_sheet_counts(tiles_required: int, items_per_sheet: int, waste_percentage: float) -> SheetCounts:
    """No parent/child split and no makeready on a digital press."""
    return compute_sheet_counts(tiles_required, items_per_sheet, 1, 0, waste_percentage)
