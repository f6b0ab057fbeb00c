# imposition_solver/debug.py
# Debug / inspection helpers:
# - one-line option summaries and cost breakdowns
# - quick console view of a whole result
# - helpful when tuning catalog prices or engine thresholds

from __future__ import annotations

from typing import Iterable

from .types import ImpositionOption, PriceCalculationResult, QualityWarning


def print_warnings(warnings: Iterable[QualityWarning], indent: str = "  ") -> None:
    for w in warnings:
        print(f"{indent}[{w.severity.upper():7s}] {w.type}: {w.message}")


def print_option(opt: ImpositionOption) -> None:
    print(
        f"#{opt.option_rank:<2d} {opt.production_method:7s} {opt.sheet_size_name:20s} "
        f"{opt.cols:3d}x{opt.rows:<3d} = {opt.items_per_sheet:4d} up  "
        f"sheets={opt.total_machine_sheets:6d} parents={opt.parent_sheets_needed:6d}  "
        f"util={opt.sheet_utilization:6.2f}%  total={opt.total_cost:>10}  "
        f"unit={opt.cost_per_unit:>8}"
    )
    print(
        f"     paper={opt.paper_cost} printing={opt.printing_cost} setup={opt.setup_cost} "
        f"waste={opt.waste_cost} finishing={opt.finishing_cost}"
    )
    if opt.is_shrink_used:
        print(f"     shrink {opt.shrink_width_cm:g} x {opt.shrink_height_cm:g} cm")
    print_warnings(opt.warnings, indent="     ")


def print_result(result: PriceCalculationResult) -> None:
    s = result.input_summary
    print(
        f"Job: {s.product_name or '(unnamed)'} {s.product_width_cm:g}x{s.product_height_cm:g} cm, "
        f"qty {s.quantity}, {s.num_pages} page(s), {s.color_front}"
        + (f" / {s.color_back}" if s.color_back else "")
    )
    print(f"Recommendation: {result.recommendation.method} - {result.recommendation.reason}")
    p = result.pricing_summary
    print(
        f"Cost {p.total_cost} ({p.cost_per_unit}/unit), margin {p.margin_percentage:g}% -> "
        f"sell {p.selling_price} ({p.selling_price_per_unit}/unit)"
    )
    if result.digital_cost is not None:
        print(f"Best digital: {result.digital_cost}")
    if result.best_offset_cost is not None:
        print(f"Best offset: {result.best_offset_cost}")
    print(f"-- Options ({len(result.options)}) --")
    for opt in result.options:
        print_option(opt)
    if result.warnings:
        print("-- Warnings --")
        print_warnings(result.warnings)
