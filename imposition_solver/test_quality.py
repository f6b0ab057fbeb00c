# imposition_solver/test_quality.py

from __future__ import annotations

from dataclasses import replace

from imposition_solver.config import resolve_input
from imposition_solver.hierarchy import compute_sheet_counts, digital_sheet_counts
from imposition_solver.quality import dedupe_warnings, evaluate_quality
from imposition_solver.sample_data import example_catalog
from imposition_solver.solver_grid import GridParams, solve_grid
from imposition_solver.types import CalculationRequest, ProductSpec, QualityWarning


def _resolved(**product_kw):
    product = ProductSpec(width_cm=9, height_cm=5, quantity=1000, **product_kw)
    return resolve_input(CalculationRequest(product=product, sheet_size_ids=(1,)), example_catalog())


def _fit():
    fit = solve_grid(100, 70, 9, 5, 0.3, GridParams())
    assert fit is not None
    return fit


def _types(warnings):
    return {w.type for w in warnings}


def test_clean_job_has_no_warnings() -> None:
    resolved = _resolved()
    counts = digital_sheet_counts(1000, 119, 5)
    assert evaluate_quality(resolved, "digital", _fit(), counts, 91.39) == ()


def test_design_warnings() -> None:
    resolved = _resolved(min_font_size_pt=5, image_dpi=150, has_folding=True)
    counts = digital_sheet_counts(1000, 119, 5)
    warnings = evaluate_quality(resolved, "digital", _fit(), counts, 91.39)
    assert _types(warnings) == {"small_text", "low_resolution", "folding_not_priced"}
    assert {w.severity for w in warnings} == {"warning", "info"}


def test_text_checks_ignored_without_text() -> None:
    resolved = _resolved(has_text=False, min_font_size_pt=4)
    counts = digital_sheet_counts(1000, 119, 5)
    assert "small_text" not in _types(evaluate_quality(resolved, "digital", _fit(), counts, 91.39))


def test_low_utilization_is_info() -> None:
    resolved = _resolved()
    counts = digital_sheet_counts(1000, 119, 5)
    warnings = evaluate_quality(resolved, "digital", _fit(), counts, 40.0)
    assert [(w.type, w.severity) for w in warnings] == [("low_utilization", "info")]


def test_shrink_warnings() -> None:
    resolved = _resolved()
    counts = digital_sheet_counts(1000, 119, 5)

    heavy = replace(_fit(), shrink_width_cm=0.6, shrink_height_cm=0.0)
    assert "excessive_shrink" in _types(evaluate_quality(resolved, "digital", heavy, counts, 91.0))

    exhausted = replace(_fit(), shrink_width_cm=0.6, shrink_height_cm=0.4)
    warnings = evaluate_quality(resolved, "digital", exhausted, counts, 20.0)
    assert "shrink_limit" in _types(warnings)
    assert any(w.severity == "danger" for w in warnings)


def test_offset_near_minimum_volume() -> None:
    resolved = _resolved()
    counts = compute_sheet_counts(1000, 119, 1, 50, 3)  # 60 sheets, minimum 500
    warnings = evaluate_quality(resolved, "offset", _fit(), counts, 91.39)
    assert _types(warnings) == {"offset_low_volume"}
    # digital is never flagged for volume
    assert evaluate_quality(resolved, "digital", _fit(), counts, 91.39) == ()


def test_dedupe_orders_by_severity() -> None:
    a = QualityWarning(type="low_utilization", severity="info", message="x")
    b = QualityWarning(type="shrink_limit", severity="danger", message="y")
    c = QualityWarning(type="small_text", severity="warning", message="z")
    out = dedupe_warnings([[a, b], [a, c], [b]])
    assert [w.type for w in out] == ["shrink_limit", "small_text", "low_utilization"]
