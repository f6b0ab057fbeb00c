# imposition_solver/validate.py
# Layout validation utilities:
# - tiles stay on the machine sheet and out of the gripper strip
# - no two tiles overlap
# - tile count matches the grid
#
# Used by the engine as a self-check on every candidate and by the tests.

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from .types import LayoutCoordinate, LayoutData

TOL = 1e-6


@dataclass(frozen=True)
class ValidationIssue:
    level: str   # "ERROR" or "WARN"
    message: str
    row: Optional[int] = None
    col: Optional[int] = None


def _fits(layout: LayoutData, c: LayoutCoordinate) -> bool:
    W, H = layout.machine_width_cm, layout.machine_height_cm
    return (
        c.x >= -TOL
        and c.y >= layout.gripper_margin_cm - TOL
        and c.right() <= W + TOL
        and c.bottom() <= H + TOL
    )


def validate_bounds(layout: LayoutData) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []
    for c in layout.coordinates:
        if c.w <= 0 or c.h <= 0:
            issues.append(ValidationIssue("ERROR", f"Non-positive tile size: {c.w}x{c.h}", c.row, c.col))
        if not _fits(layout, c):
            issues.append(
                ValidationIssue(
                    "ERROR",
                    (
                        f"Tile out of printable bounds: x={c.x}, y={c.y}, w={c.w}, h={c.h}, "
                        f"sheet={layout.machine_width_cm}x{layout.machine_height_cm}, "
                        f"gripper={layout.gripper_margin_cm}"
                    ),
                    c.row,
                    c.col,
                )
            )
    return issues


def validate_no_overlap(layout: LayoutData) -> List[ValidationIssue]:
    """
    Grid-aware overlap check: neighbours within a row must not intersect,
    and each row must start below the previous one. Linear in tile count.
    """
    issues: List[ValidationIssue] = []
    by_row: Dict[int, List[LayoutCoordinate]] = {}
    for c in layout.coordinates:
        by_row.setdefault(c.row, []).append(c)

    prev_bottom: Optional[float] = None
    for row in sorted(by_row):
        tiles = sorted(by_row[row], key=lambda t: t.x)
        for a, b in zip(tiles, tiles[1:]):
            if b.x < a.right() - TOL:
                issues.append(ValidationIssue("ERROR", f"Overlap in row {row}: col {a.col} and col {b.col}", row, b.col))
        top = min(t.y for t in tiles)
        if prev_bottom is not None and top < prev_bottom - TOL:
            issues.append(ValidationIssue("ERROR", f"Row {row} overlaps the row above", row))
        prev_bottom = max(t.bottom() for t in tiles)
    return issues


def validate_layout(layout: LayoutData) -> List[ValidationIssue]:
    """
    Validate one layout. Returns a list of issues (empty if OK).
    """
    issues = validate_bounds(layout) + validate_no_overlap(layout)
    if len(layout.coordinates) != layout.cols * layout.rows:
        issues.append(
            ValidationIssue(
                "ERROR",
                f"Tile count {len(layout.coordinates)} != cols*rows {layout.cols * layout.rows}",
            )
        )
    if not layout.coordinates:
        issues.append(ValidationIssue("WARN", "Layout has 0 tiles."))
    return issues


def raise_on_errors(issues: List[ValidationIssue]) -> None:
    errs = [i for i in issues if i.level.upper() == "ERROR"]
    if errs:
        msg = "\n".join(f"[{e.level}] row={e.row} col={e.col} :: {e.message}" for e in errs)
        raise ValueError("Validation failed:\n" + msg)
