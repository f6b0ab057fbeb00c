# imposition_solver/test_grid.py
# Grid solver tests. Run with:
#   python -m pytest imposition_solver
# or directly:
#   python -m imposition_solver.test_grid

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, List

from imposition_solver.solver_grid import GridParams, build_layout_data, fit_count, solve_grid, tile_coordinates
from imposition_solver.hierarchy import passthrough_layout
from imposition_solver.types import LayoutCoordinate
from imposition_solver.validate import raise_on_errors, validate_layout


def covered_area(coords: Iterable[LayoutCoordinate]) -> float:
    return sum(c.w * c.h for c in coords)


def check_no_overlap(coords: Iterable[LayoutCoordinate], tol: float = 1e-6) -> None:
    """
    Pairwise check, independent of the grid-aware one in validate.py.
    Touching edges (gap == 0) is allowed.
    """
    items: List[LayoutCoordinate] = list(coords)
    for i in range(len(items)):
        a = items[i]
        for b in items[i + 1:]:
            if (
                a.x < b.right() - tol
                and a.right() > b.x + tol
                and a.y < b.bottom() - tol
                and a.bottom() > b.y + tol
            ):
                raise AssertionError(f"Overlap: tile r{a.row}c{a.col} with r{b.row}c{b.col}")


def test_fit_count_with_gap() -> None:
    # (69 + 0.2) / (5.6 + 0.2) = 11.93
    assert fit_count(69.0, 5.6, 0.2) == 11
    assert fit_count(5.5, 5.6, 0.2) == 0
    assert fit_count(0.0, 5.6, 0.2) == 0


def test_exact_fit_counts() -> None:
    # 2 x 4.9 + 0.2 == 10.0 exactly
    assert fit_count(10.0, 4.9, 0.2) == 2


def test_business_card_prefers_rotated() -> None:
    fit = solve_grid(100, 70, 9, 5, 0.3, GridParams())
    assert fit is not None
    # normal: 10 x 11 = 110, rotated: 17 x 7 = 119
    assert fit.orientation == "rotated"
    assert (fit.cols, fit.rows) == (17, 7)
    assert fit.items_per_sheet == 119
    assert not fit.is_shrink_used
    assert abs(fit.tile_width_cm - 5.6) < 1e-9
    assert abs(fit.tile_height_cm - 9.6) < 1e-9
    assert 0 < fit.metrics.utilization_percent <= 100


def test_equal_counts_keep_normal_orientation() -> None:
    # square tile: both orientations identical
    fit = solve_grid(10, 11, 4.9, 4.9, 0.0, GridParams(gripper_margin_cm=1.0, item_gap_cm=0.2))
    assert fit is not None
    assert fit.items_per_sheet == 4
    assert fit.orientation == "normal"


def test_no_fit_without_shrink() -> None:
    params = GridParams(gripper_margin_cm=1.0, item_gap_cm=0.2, allow_shrink=False)
    assert solve_grid(10, 11, 10.2, 4.0, 0.0, params) is None


def test_shrink_finds_smallest_total() -> None:
    params = GridParams(gripper_margin_cm=1.0, item_gap_cm=0.2, allow_shrink=True, max_shrink_cm=1.0)
    fit = solve_grid(10, 11, 10.2, 4.0, 0.0, params)
    assert fit is not None
    assert fit.is_shrink_used
    assert abs(fit.shrink_width_cm - 0.2) < 1e-9
    assert fit.shrink_height_cm == 0
    assert abs(fit.product_width_cm - 10.0) < 1e-9
    assert fit.items_per_sheet == 2
    assert fit.shrink_width_cm + fit.shrink_height_cm <= params.max_shrink_cm + 1e-9


def test_shrink_budget_is_respected() -> None:
    params = GridParams(gripper_margin_cm=1.0, item_gap_cm=0.2, allow_shrink=True, max_shrink_cm=0.1)
    assert solve_grid(10, 11, 10.2, 4.0, 0.0, params) is None


def test_gripper_consumes_whole_sheet() -> None:
    assert solve_grid(10, 1, 1, 1, 0.0, GridParams(gripper_margin_cm=1.0)) is None


def test_coordinates_stay_below_gripper_and_do_not_overlap() -> None:
    fit = solve_grid(100, 70, 9, 5, 0.3, GridParams())
    assert fit is not None
    coords = tile_coordinates(fit)
    assert len(coords) == fit.cols * fit.rows
    assert coords[0].x == 0 and coords[0].y == 1.0
    check_no_overlap(coords)
    assert abs(covered_area(coords) / (100 * 70) * 100 - fit.metrics.utilization_percent) < 1e-9

    layout = build_layout_data(fit, passthrough_layout(100, 70))
    raise_on_errors(validate_layout(layout))
    d = layout.to_dict()
    assert d["grid"]["count"] == 119
    assert d["machine_sheet"]["gripper_margin_cm"] == 1.0
    assert d["parent_sheet_cutting"]["cutting_layout"] == "1x1"


def test_validate_layout_flags_out_of_bounds() -> None:
    fit = solve_grid(100, 70, 9, 5, 0.3, GridParams())
    assert fit is not None
    layout = build_layout_data(fit, passthrough_layout(100, 70))
    shifted = replace(layout, gripper_margin_cm=2.0)
    issues = validate_layout(shifted)
    assert any(i.level == "ERROR" for i in issues)


def main() -> None:
    print("Running grid tests...")
    test_fit_count_with_gap()
    test_exact_fit_counts()
    test_business_card_prefers_rotated()
    test_equal_counts_keep_normal_orientation()
    test_no_fit_without_shrink()
    test_shrink_finds_smallest_total()
    test_shrink_budget_is_respected()
    test_gripper_consumes_whole_sheet()
    test_coordinates_stay_below_gripper_and_do_not_overlap()
    test_validate_layout_flags_out_of_bounds()
    print("OK")


if __name__ == "__main__":
    main()
