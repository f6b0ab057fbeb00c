# imposition_solver/test_engine.py
# End-to-end tests for calculate(): scenarios with hand-checked numbers plus
# invariants over a batch of seeded random jobs.

from __future__ import annotations

import json
import math
from decimal import Decimal

import pytest

from imposition_solver.config import resolve_input
from imposition_solver.engine import calculate
from imposition_solver.errors import AmbiguousPaperPrice, InvalidInput, NoFeasibleLayout
from imposition_solver.sample_data import RandomJobsConfig, example_catalog, generate_random_requests
from imposition_solver.types import (
    CalculationRequest,
    Catalog,
    FinishingOperation,
    PaperType,
    PricingConfiguration,
    ProductSpec,
    SheetSize,
)
from imposition_solver.utils import result_to_dict
from imposition_solver.validate import validate_layout

FULL = SheetSize(id=1, name="Full", width_cm=100, height_cm=70)
COATED = PaperType(id=1, name="Coated 300g", weight_gsm=300, price_per_sheet=Decimal("4.50"))


def _catalog(sheets=(FULL,), papers=(COATED,), ops=(), **pricing) -> Catalog:
    return Catalog(
        paper_types=tuple(papers),
        sheet_sizes=tuple(sheets),
        finishing_operations=tuple(ops),
        pricing=PricingConfiguration(**pricing),
    )


def _cards(quantity: int = 1000, **kw) -> CalculationRequest:
    product_kw = {k: kw.pop(k) for k in list(kw) if k in ("color_front", "num_pages", "bleed_cm")}
    return CalculationRequest(
        product=ProductSpec(width_cm=9, height_cm=5, quantity=quantity, name="Card", **product_kw),
        paper_type_ids=kw.pop("paper_type_ids", (1,)),
        **kw,
    )


def _lines_sum(o) -> Decimal:
    return o.paper_cost + o.printing_cost + o.setup_cost + o.waste_cost + o.finishing_cost


def test_business_cards_digital_vs_offset() -> None:
    result = calculate(_cards(), _catalog(offset_min_sheets=0))
    assert len(result.options) == 2

    digital, offset = result.options
    assert digital.production_method == "digital"
    assert digital.items_per_sheet == 119
    assert digital.orientation == "rotated"
    assert digital.total_machine_sheets == 10
    assert digital.total_cost == Decimal("95.00")
    assert digital.cost_saving_amount == Decimal("1195.00")
    assert digital.cost_saving_percent == Decimal("92.64")

    assert offset.production_method == "offset"
    assert offset.total_machine_sheets == 60
    assert offset.total_plates == 4
    assert offset.total_cost == Decimal("1290.00")

    assert result.recommendation.method == "digital"
    assert result.digital_cost == Decimal("95.00")
    assert result.best_offset_cost == Decimal("1290.00")
    assert result.pricing_summary.selling_price == Decimal("123.50")
    assert result.input_summary.bleed_cm == 0.3


def test_offset_excluded_below_minimum_volume() -> None:
    result = calculate(_cards(), _catalog())
    assert {o.production_method for o in result.options} == {"digital"}
    assert result.recommendation.method == "digital"
    assert "Offset excluded" in result.recommendation.reason
    assert result.best_offset_cost is None


def test_small_run_recommends_digital() -> None:
    result = calculate(_cards(quantity=50), _catalog(offset_min_sheets=200))
    assert all(o.production_method == "digital" for o in result.options)
    assert result.recommendation.method == "digital"


def test_tile_equal_to_printable_area_fits_once() -> None:
    request = CalculationRequest(
        product=ProductSpec(width_cm=100, height_cm=69, quantity=50, bleed_cm=0),
        allow_shrink=False,
    )
    result = calculate(request, _catalog())
    assert all(o.items_per_sheet == 1 and (o.cols, o.rows) == (1, 1) for o in result.options)


def test_sheet_without_room_after_gripper_is_dropped() -> None:
    quarter = SheetSize(id=3, name="Quarter", width_cm=50, height_cm=35, category="quarter_sheet")
    request = CalculationRequest(
        product=ProductSpec(width_cm=50, height_cm=34.1, quantity=50, bleed_cm=0),
        allow_shrink=False,
    )
    result = calculate(request, _catalog(sheets=(quarter, FULL)))
    assert {o.sheet_size_id for o in result.options} == {1}
    assert result.best.items_per_sheet == 2


def test_long_run_prefers_offset() -> None:
    result = calculate(_cards(quantity=100000), _catalog())
    best = result.best
    assert best.production_method == "offset"
    assert best.net_machine_sheets == 841
    assert best.total_machine_sheets == 917
    assert best.total_cost == Decimal("5146.50")
    assert result.digital_cost == Decimal("5746.00")
    assert result.recommendation.method == "offset"


def test_duplex_counts_impressions_and_plates() -> None:
    result = calculate(_cards(color_front="4/4", num_pages=4), _catalog(offset_min_sheets=0))
    offset = next(o for o in result.options if o.production_method == "offset")
    # 4 pages duplex -> 2 tiles per copy
    assert offset.net_machine_sheets == math.ceil(2000 / 119)
    assert offset.impressions == offset.total_machine_sheets * 2
    assert (offset.front_plates, offset.back_plates, offset.total_plates) == (4, 4, 8)


def test_utilization_breaks_cost_ties() -> None:
    wide = SheetSize(id=2, name="Wide", width_cm=104, height_cm=70)
    catalog = _catalog(sheets=(wide, FULL), offset_min_sheets=0, machine_max_width_cm=120, machine_max_height_cm=80)
    result = calculate(_cards(), catalog)
    offsets = [o for o in result.options if o.production_method == "offset"]
    assert [o.sheet_size_id for o in offsets] == [1, 2]
    assert offsets[0].total_cost == offsets[1].total_cost
    assert offsets[0].sheet_utilization > offsets[1].sheet_utilization
    # digital is offered once per paper, on the best-fitting sheet
    digital = [o for o in result.options if o.production_method == "digital"]
    assert [o.sheet_size_id for o in digital] == [1]


def test_shrink_rescues_a_tight_product() -> None:
    request = CalculationRequest(
        product=ProductSpec(width_cm=99.9, height_cm=69.5, quantity=100, bleed_cm=0),
        paper_type_ids=(1,),
    )
    result = calculate(request, _catalog())
    opt = result.best
    assert opt.is_shrink_used
    assert opt.shrink_width_cm == 0
    assert abs(opt.shrink_height_cm - 0.5) < 1e-9
    assert abs(opt.final_height_cm - 69.0) < 1e-9
    assert opt.items_per_sheet == 1


def test_no_feasible_layout_lists_attempted_sheets() -> None:
    request = CalculationRequest(
        product=ProductSpec(width_cm=99.9, height_cm=69.5, quantity=100, bleed_cm=0),
        paper_type_ids=(1,),
        allow_shrink=False,
    )
    with pytest.raises(NoFeasibleLayout) as e:
        calculate(request, _catalog())
    assert e.value.attempted_sheet_sizes == ("Full (100x70)",)


def test_tile_larger_than_every_sheet_is_invalid() -> None:
    request = CalculationRequest(product=ProductSpec(width_cm=120, height_cm=80, quantity=10))
    with pytest.raises(InvalidInput):
        calculate(request, _catalog())


def test_invalid_requests() -> None:
    with pytest.raises(InvalidInput):
        ProductSpec(width_cm=0, height_cm=5, quantity=10)
    with pytest.raises(InvalidInput):
        ProductSpec(width_cm=9, height_cm=5, quantity=0)
    with pytest.raises(InvalidInput):
        calculate(_cards(sheet_size_ids=(42,)), _catalog())
    with pytest.raises(InvalidInput):
        calculate(_cards(finishing_counts={7: 2}), _catalog())


def test_unpriced_paper() -> None:
    unpriced = PaperType(id=2, name="Mystery", weight_gsm=120)
    with pytest.raises(AmbiguousPaperPrice):
        calculate(_cards(paper_type_ids=(2,)), _catalog(papers=(COATED, unpriced)))

    result = calculate(_cards(paper_type_ids=(1, 2)), _catalog(papers=(COATED, unpriced)))
    assert {o.paper_type_id for o in result.options} == {1}
    assert "paper_price_missing" in {w.type for w in result.warnings}


def test_no_paper_selected_prices_paper_at_zero() -> None:
    result = calculate(_cards(paper_type_ids=()), _catalog())
    assert all(o.paper_cost == 0 and o.waste_cost == 0 for o in result.options)
    assert all(o.paper_type_id is None for o in result.options)
    assert "paper_not_selected" in {w.type for w in result.warnings}


def test_finishing_per_fold_uses_counts() -> None:
    fold = FinishingOperation(id=5, name="Fold", pricing_type="per_fold", cost=Decimal("0.05"))
    request = _cards(finishing_operation_ids=(5,), finishing_counts={5: 2})
    result = calculate(request, _catalog(ops=(fold,)))
    assert all(o.finishing_cost == Decimal("100.00") for o in result.options)


def test_repeated_ids_count_once() -> None:
    trim = FinishingOperation(id=2, name="Trim", pricing_type="fixed", cost=Decimal("25.00"))
    request = _cards(sheet_size_ids=(1, 1), finishing_operation_ids=(2, 2))
    result = calculate(request, _catalog(ops=(trim,), offset_min_sheets=0))
    assert sorted(o.production_method for o in result.options) == ["digital", "offset"]
    assert len({(o.production_method, o.sheet_size_id) for o in result.options}) == len(result.options)
    assert all(o.finishing_cost == Decimal("25.00") for o in result.options)
    assert result.input_summary.sheet_size_ids == (1,)


def test_failure_names_the_real_causes() -> None:
    # digital: 100x70 does not go through a 50x35 press; offset: 50 cards is far below 500 sheets
    catalog = _catalog(machine_max_width_cm=50, machine_max_height_cm=35)
    with pytest.raises(NoFeasibleLayout) as e:
        calculate(_cards(quantity=50), catalog)
    message = str(e.value)
    assert "press bed" in message
    assert "offset volume below the minimum" in message
    assert "shrink" not in message
    assert e.value.attempted_sheet_sizes == ("Full (100x70)",)


def test_failure_without_fit_mentions_shrink() -> None:
    request = CalculationRequest(
        product=ProductSpec(width_cm=99.9, height_cm=69.5, quantity=100, bleed_cm=0),
        paper_type_ids=(1,),
    )
    with pytest.raises(NoFeasibleLayout) as e:
        calculate(request, _catalog(max_shrink_cm=0.1))
    assert "even after shrink" in str(e.value)
    assert "press bed" not in str(e.value)


def test_digital_layout_built_only_for_chosen_sheet(monkeypatch) -> None:
    import imposition_solver.engine as engine

    built = []
    real = engine.build_layout_data

    def counting(fit, cutting):
        built.append((cutting.machine_width_cm, cutting.machine_height_cm))
        return real(fit, cutting)

    monkeypatch.setattr(engine, "build_layout_data", counting)

    sheets = tuple(
        SheetSize(id=i + 1, name=f"S{i + 1}", width_cm=20 + 7 * i, height_cm=20 + 4 * i) for i in range(12)
    )
    request = CalculationRequest(
        product=ProductSpec(width_cm=0.5, height_cm=0.5, quantity=1000, bleed_cm=0),
        paper_type_ids=(1,),
    )
    result = calculate(request, _catalog(sheets=sheets, offset_min_sheets=0), max_workers=1)

    digital = [o for o in result.options if o.production_method == "digital"]
    assert len(digital) == 1
    assert len(result.options) == 13
    # one layout per returned option, none for digital sheets that lost
    assert len(built) == len(result.options)


def test_requests_are_hashable() -> None:
    fold = FinishingOperation(id=5, name="Fold", pricing_type="per_fold", cost=Decimal("0.05"))
    as_mapping = _cards(finishing_operation_ids=(5,), finishing_counts={5: 2})
    as_pairs = _cards(finishing_operation_ids=(5,), finishing_counts=((5, 2),))
    assert as_mapping == as_pairs
    assert as_mapping.finishing_counts == ((5, 2),)
    assert len({as_mapping, as_pairs}) == 1

    resolved = resolve_input(as_mapping, _catalog(ops=(fold,)))
    assert hash(resolved) == hash(resolve_input(as_pairs, _catalog(ops=(fold,))))

    with pytest.raises(InvalidInput):
        _cards(finishing_operation_ids=(5,), finishing_counts=((5, 1), (5, 2)))
    with pytest.raises(InvalidInput):
        _cards(finishing_operation_ids=(5,), finishing_counts={5: -1})


def test_same_input_same_output() -> None:
    request, catalog = _cards(), _catalog(offset_min_sheets=0)
    a = json.dumps(result_to_dict(calculate(request, catalog, max_workers=1)), sort_keys=True)
    b = json.dumps(result_to_dict(calculate(request, catalog, max_workers=4)), sort_keys=True)
    assert a == b


def test_invariants_on_random_jobs() -> None:
    catalog = example_catalog()
    for request in generate_random_requests(RandomJobsConfig(seed=7, n_jobs=20), catalog):
        resolved = resolve_input(request, catalog)
        result = calculate(request, catalog)
        assert result.options

        costs = [o.total_cost for o in result.options]
        assert costs == sorted(costs)
        assert [o.option_rank for o in result.options] == list(range(1, len(result.options) + 1))

        for o in result.options:
            assert o.total_cost == _lines_sum(o)
            assert o.items_per_sheet == o.cols * o.rows == len(o.layout_data.coordinates)
            assert not [i for i in validate_layout(o.layout_data) if i.level == "ERROR"]
            assert o.net_machine_sheets * o.items_per_sheet >= resolved.tiles_required
            assert o.parent_sheets_needed * o.machine_sheets_per_parent >= o.total_machine_sheets
            assert o.shrink_width_cm + o.shrink_height_cm <= resolved.max_shrink_cm + 1e-9
            assert 0 < o.sheet_utilization <= 100
            if o.production_method == "offset":
                assert o.total_machine_sheets >= catalog.pricing.offset_min_sheets
            else:
                assert o.setup_cost == 0 and o.makeready_waste_sheets == 0
