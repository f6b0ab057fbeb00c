# imposition_solver/test_costing.py

from __future__ import annotations

from decimal import Decimal

import pytest

from imposition_solver.config import resolve_input
from imposition_solver.costing import compute_cost, finishing_line, money, resolve_sheet_price
from imposition_solver.errors import AmbiguousPaperPrice
from imposition_solver.hierarchy import compute_sheet_counts, digital_sheet_counts
from imposition_solver.sample_data import example_catalog
from imposition_solver.types import CalculationRequest, FinishingOperation, PaperType, ProductSpec


def _cards(**kw):
    request = CalculationRequest(
        product=ProductSpec(width_cm=9, height_cm=5, quantity=1000),
        paper_type_ids=(1,),
        sheet_size_ids=(1,),
        **kw,
    )
    return resolve_input(request, example_catalog())


def _lines_sum(c) -> Decimal:
    return c.paper_cost + c.printing_cost + c.setup_cost + c.waste_cost + c.finishing_cost


def test_money_rounds_half_up() -> None:
    assert money(Decimal("0.095")) == Decimal("0.10")
    assert money(2.675) == Decimal("2.68")


def test_sheet_price_per_kg() -> None:
    paper = PaperType(id=9, name="Uncoated 80g", weight_gsm=80, price_per_kg=Decimal("18.00"))
    # 0.7 m2 x 80 g/m2 = 0.056 kg
    assert resolve_sheet_price(paper, 100, 70) == Decimal("1.008")


def test_sheet_price_per_sheet_wins() -> None:
    paper = PaperType(id=9, name="X", weight_gsm=80, price_per_sheet=Decimal("2.00"), price_per_kg=Decimal("18"))
    assert resolve_sheet_price(paper, 100, 70) == Decimal("2.00")
    assert resolve_sheet_price(None, 100, 70) == 0


def test_sheet_price_ambiguous() -> None:
    paper = PaperType(id=9, name="Unpriced", weight_gsm=80)
    with pytest.raises(AmbiguousPaperPrice) as e:
        resolve_sheet_price(paper, 100, 70)
    assert e.value.paper_type_id == 9


def test_finishing_lines() -> None:
    per_piece = FinishingOperation(id=1, name="Pack", pricing_type="per_piece", cost=Decimal("0.10"))
    fixed = FinishingOperation(id=2, name="Trim", pricing_type="fixed", cost=Decimal("25"), min_cost=Decimal("40"))
    fold = FinishingOperation(id=3, name="Fold", pricing_type="per_fold", cost=Decimal("0.05"))
    per_sheet = FinishingOperation(id=4, name="Laminate", pricing_type="per_sheet", cost=Decimal("1.20"))

    assert finishing_line(per_piece, 1000, 60) == Decimal("100.00")
    assert finishing_line(fixed, 1000, 60) == Decimal("40.00")
    assert finishing_line(fold, 1000, 60, per_unit_count=2) == Decimal("100.00")
    assert finishing_line(per_sheet, 1000, 60) == Decimal("72.00")


def test_digital_cost_hits_min_charge() -> None:
    resolved = _cards()
    counts = digital_sheet_counts(resolved.tiles_required, 119, resolved.waste_percentage)
    c = compute_cost("digital", resolved, counts, Decimal("4.50"))

    assert c.printing_cost == Decimal("50.00")  # 10 color clicks = 20.00 < min charge
    assert c.setup_cost == Decimal("0.00")
    assert c.waste_cost == Decimal("4.50")
    assert c.paper_cost == Decimal("40.50")
    assert c.total_cost == Decimal("95.00")
    assert c.cost_per_unit == Decimal("0.10")
    assert c.total_cost == _lines_sum(c)


def test_offset_cost_lines() -> None:
    resolved = _cards()
    counts = compute_sheet_counts(
        resolved.tiles_required, 119, 1, resolved.makeready_waste_sheets, resolved.run_waste_percentage
    )
    assert counts.total_machine_sheets == 60
    c = compute_cost("offset", resolved, counts, Decimal("4.50"))

    assert c.printing_cost == Decimal("120.00")
    assert c.setup_cost == Decimal("900.00")  # 300 + 4 plates x 150
    assert c.waste_cost == Decimal("229.50")
    assert c.paper_cost == Decimal("40.50")
    assert c.total_cost == Decimal("1290.00")
    assert c.total_cost == _lines_sum(c)


def test_finishing_counts_flow_into_cost() -> None:
    resolved = _cards(finishing_operation_ids=(3,), finishing_counts={3: 2})
    counts = digital_sheet_counts(resolved.tiles_required, 119, resolved.waste_percentage)
    c = compute_cost("digital", resolved, counts, Decimal("4.50"))
    assert c.finishing_cost == Decimal("100.00")
    assert c.total_cost == _lines_sum(c)


def test_unknown_method_rejected() -> None:
    resolved = _cards()
    counts = digital_sheet_counts(resolved.tiles_required, 119, 5)
    with pytest.raises(ValueError):
        compute_cost("letterpress", resolved, counts, Decimal("1"))
