# imposition_solver/engine.py
# Public entry point: calculate(request, catalog) -> PriceCalculationResult.
#
# Phases:
#   Validating  : resolve every effective parameter once, reject bad input
#   Enumerating : offset per eligible sheet size (x paper), digital once per paper
#   Ranking     : sort, savings, recommendation, summary
#   Done        : assemble the result  |  Failed: NoFeasibleLayout
#
# Each candidate evaluation is a pure function of the resolved input, so they may
# run on a small thread pool; ranking sorts afterwards, so completion order never
# shows up in the output.

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .config import EngineParams, ResolvedInput, resolve_input
from .costing import compute_cost, is_offset_viable, plate_counts, resolve_sheet_price
from .errors import AmbiguousPaperPrice, InvalidInput, NoFeasibleLayout
from .hierarchy import (
    compute_sheet_counts,
    derive_cutting_layout,
    digital_sheet_counts,
    fits_press,
    passthrough_layout,
)
from .logger import get_logger
from .profile import Profiler
from .quality import dedupe_warnings, evaluate_quality
from .ranking import cheapest, pricing_summary, rank_options, recommend
from .solver_grid import GridFit, GridParams, build_layout_data, solve_grid
from .types import (
    METHODS,
    CalculationRequest,
    Catalog,
    CostBreakdown,
    CuttingLayout,
    ImpositionOption,
    InputSummary,
    PaperType,
    PriceCalculationResult,
    QualityWarning,
    SheetCounts,
    SheetSize,
)
from .validate import raise_on_errors, validate_layout


@dataclass(frozen=True)
class _Task:
    method: str
    sheet: SheetSize
    paper: Optional[PaperType]


@dataclass(frozen=True)
class _Outcome:
    task: _Task
    option: Optional[ImpositionOption] = None
    skip_reason: str = ""             # "no_fit" | "press_bed" | "offset_below_minimum"
    total_machine_sheets: int = 0
    # digital: fit only; the option is built once the sheet is chosen
    fit: Optional[GridFit] = None
    cutting: Optional[CuttingLayout] = None


def _fmt(v: float) -> str:
    return f"{round(v, 2):g}"


def grid_params(resolved: ResolvedInput) -> GridParams:
    return GridParams(
        gripper_margin_cm=resolved.gripper_margin_cm,
        item_gap_cm=resolved.item_gap_cm,
        allow_shrink=resolved.allow_shrink,
        max_shrink_cm=resolved.max_shrink_cm,
        shrink_step_cm=resolved.params.shrink_step_cm,
    )


def tile_fits_sheet(resolved: ResolvedInput, sheet: SheetSize) -> bool:
    """Parent sheet physically larger than the bleed-expanded tile (either way round)."""
    tw, th = resolved.tile_width_cm, resolved.tile_height_cm
    return (tw <= sheet.width_cm and th <= sheet.height_cm) or (th <= sheet.width_cm and tw <= sheet.height_cm)


def _explain(method: str, fit: GridFit, cutting: CuttingLayout, counts: SheetCounts) -> str:
    bits = [
        f"{method.capitalize()}: {fit.cols}x{fit.rows} = {fit.items_per_sheet} up ({fit.orientation}) "
        f"on a {_fmt(cutting.machine_width_cm)}x{_fmt(cutting.machine_height_cm)} cm machine sheet"
    ]
    if method == "offset":
        bits.append(
            f"{cutting.machine_sheets_per_parent} per {_fmt(cutting.parent_width_cm)}x"
            f"{_fmt(cutting.parent_height_cm)} cm parent ({cutting.cutting_layout})"
        )
    bits.append(f"{counts.net_machine_sheets} sheets + {counts.waste_sheets} waste")
    if method == "offset":
        bits.append(f"{counts.parent_sheets_needed} parent sheets")
    if fit.is_shrink_used:
        bits.append(f"product shrunk by {_fmt(fit.shrink_width_cm)}x{_fmt(fit.shrink_height_cm)} cm")
    return "; ".join(bits)


def _build_option(
    resolved: ResolvedInput,
    task: _Task,
    cutting: CuttingLayout,
    fit: GridFit,
    counts: SheetCounts,
    cost: CostBreakdown,
) -> ImpositionOption:
    layout = build_layout_data(fit, cutting)
    raise_on_errors(validate_layout(layout))

    utilization = round(fit.metrics.utilization_percent, 2)
    if task.method == "offset":
        front, back = plate_counts(resolved.front_colors, resolved.back_colors)
    else:
        front, back = 0, 0

    return ImpositionOption(
        option_rank=0,
        production_method=task.method,
        sheet_size_id=task.sheet.id,
        sheet_size_name=task.sheet.name,
        sheet_size_category=task.sheet.category,
        sheet_width_cm=task.sheet.width_cm,
        sheet_height_cm=task.sheet.height_cm,
        paper_type_id=task.paper.id if task.paper is not None else None,
        orientation=fit.orientation,
        cols=fit.cols,
        rows=fit.rows,
        items_per_sheet=fit.items_per_sheet,
        net_machine_sheets=counts.net_machine_sheets,
        total_machine_sheets=counts.total_machine_sheets,
        machine_sheets_per_parent=counts.machine_sheets_per_parent,
        parent_sheets_needed=counts.parent_sheets_needed,
        makeready_waste_sheets=counts.makeready_waste_sheets,
        run_waste_sheets=counts.run_waste_sheets,
        waste_sheets=counts.waste_sheets,
        impressions=counts.total_machine_sheets * resolved.printed_sides,
        front_plates=front,
        back_plates=back,
        total_plates=front + back,
        sheet_utilization=utilization,
        is_shrink_used=fit.is_shrink_used,
        shrink_width_cm=fit.shrink_width_cm,
        shrink_height_cm=fit.shrink_height_cm,
        final_width_cm=fit.product_width_cm,
        final_height_cm=fit.product_height_cm,
        layout_data=layout,
        paper_cost=cost.paper_cost,
        printing_cost=cost.printing_cost,
        setup_cost=cost.setup_cost,
        waste_cost=cost.waste_cost,
        finishing_cost=cost.finishing_cost,
        total_cost=cost.total_cost,
        cost_per_unit=cost.cost_per_unit,
        warnings=evaluate_quality(resolved, task.method, fit, counts, utilization),
        explanation=_explain(task.method, fit, cutting, counts),
    )


def evaluate_offset(resolved: ResolvedInput, task: _Task) -> _Outcome:
    """Parent sheet -> machine sheets -> grid -> counts -> cost."""
    sheet = task.sheet
    cutting = derive_cutting_layout(
        sheet.width_cm, sheet.height_cm, resolved.machine_max_width_cm, resolved.machine_max_height_cm
    )
    fit = solve_grid(
        cutting.machine_width_cm,
        cutting.machine_height_cm,
        resolved.product.width_cm,
        resolved.product.height_cm,
        resolved.bleed_cm,
        grid_params(resolved),
    )
    if fit is None:
        return _Outcome(task, skip_reason="no_fit")

    counts = compute_sheet_counts(
        resolved.tiles_required,
        fit.items_per_sheet,
        cutting.machine_sheets_per_parent,
        resolved.makeready_waste_sheets,
        resolved.run_waste_percentage,
    )
    if not is_offset_viable(counts.total_machine_sheets, resolved.pricing):
        return _Outcome(task, skip_reason="offset_below_minimum", total_machine_sheets=counts.total_machine_sheets)

    price = resolve_sheet_price(task.paper, cutting.parent_width_cm, cutting.parent_height_cm)
    cost = compute_cost("offset", resolved, counts, price)
    return _Outcome(task, option=_build_option(resolved, task, cutting, fit, counts, cost))


def evaluate_digital(resolved: ResolvedInput, task: _Task) -> _Outcome:
    """
    The sheet goes through the press as-is (no parent cutting).
    Only the grid is solved here; build_digital prices the chosen sheet.
    """
    sheet = task.sheet
    dims = fits_press(
        sheet.width_cm, sheet.height_cm, resolved.machine_max_width_cm, resolved.machine_max_height_cm
    )
    if dims is None:
        return _Outcome(task, skip_reason="press_bed")

    cutting = passthrough_layout(*dims)
    fit = solve_grid(
        dims[0],
        dims[1],
        resolved.product.width_cm,
        resolved.product.height_cm,
        resolved.bleed_cm,
        grid_params(resolved),
    )
    if fit is None:
        return _Outcome(task, skip_reason="no_fit")

    return _Outcome(task, fit=fit, cutting=cutting)


def build_digital(resolved: ResolvedInput, outcome: _Outcome) -> ImpositionOption:
    fit, cutting = outcome.fit, outcome.cutting
    counts = digital_sheet_counts(resolved.tiles_required, fit.items_per_sheet, resolved.waste_percentage)
    price = resolve_sheet_price(outcome.task.paper, cutting.machine_width_cm, cutting.machine_height_cm)
    cost = compute_cost("digital", resolved, counts, price)
    return _build_option(resolved, outcome.task, cutting, fit, counts, cost)


def _evaluate(resolved: ResolvedInput, task: _Task) -> _Outcome:
    if task.method == "offset":
        return evaluate_offset(resolved, task)
    return evaluate_digital(resolved, task)


def _priceable_papers(resolved: ResolvedInput) -> Tuple[Tuple[Optional[PaperType], ...], List[QualityWarning]]:
    """
    Drop papers whose price cannot be resolved; fatal only if none remain.
    No paper selected -> a single unpriced slot.
    """
    warnings: List[QualityWarning] = []
    if not resolved.paper_types:
        warnings.append(
            QualityWarning(
                type="paper_not_selected",
                severity="info",
                message="No paper type selected; paper and waste costs are excluded",
            )
        )
        return (None,), warnings

    usable: List[PaperType] = []
    for paper in resolved.paper_types:
        try:
            resolve_sheet_price(paper, 1.0, 1.0)
        except AmbiguousPaperPrice as e:
            get_logger().warn(str(e))
            warnings.append(
                QualityWarning(
                    type="paper_price_missing",
                    severity="warning",
                    message=f"Paper '{paper.name}' skipped: no per-sheet or per-kg price",
                )
            )
            continue
        usable.append(paper)

    if not usable:
        first = resolved.paper_types[0]
        raise AmbiguousPaperPrice(
            "None of the selected paper types has a resolvable price",
            paper_type_id=first.id,
        )
    return tuple(usable), warnings


def _run(resolved: ResolvedInput, tasks: Sequence[_Task], max_workers: int) -> List[_Outcome]:
    if max_workers <= 1 or len(tasks) <= 1:
        return [_evaluate(resolved, t) for t in tasks]
    with ThreadPoolExecutor(max_workers=min(max_workers, len(tasks))) as pool:
        return list(pool.map(lambda t: _evaluate(resolved, t), tasks))


def _best_digital(resolved: ResolvedInput, outcomes: Sequence[_Outcome]) -> List[ImpositionOption]:
    """Digital is offered once per paper: keep the best-fitting sheet, then build only that one."""
    chosen = {}
    for out in outcomes:
        if out.task.method != "digital" or out.fit is None:
            continue
        sheet = out.task.sheet
        key = (
            -round(out.fit.metrics.utilization_percent, 2),
            -out.fit.items_per_sheet,
            sheet.width_cm * sheet.height_cm,
            sheet.id,
        )
        paper_key = out.task.paper.id if out.task.paper is not None else None
        if paper_key not in chosen or key < chosen[paper_key][0]:
            chosen[paper_key] = (key, out)
    return [build_digital(resolved, out) for _, out in chosen.values()]


_SKIP_REASONS = (
    ("no_fit", "no layout fits on the machine sheet"),
    ("press_bed", "sheet exceeds the press bed"),
    ("offset_below_minimum", "offset volume below the minimum"),
)


def _failure_message(outcomes: Sequence[_Outcome], allow_shrink: bool) -> str:
    seen = {o.skip_reason for o in outcomes}
    causes = [text for reason, text in _SKIP_REASONS if reason in seen]
    if "no_fit" in seen and allow_shrink:
        causes[0] += " even after shrink"
    return "No sheet size and production method can produce this job: " + "; ".join(causes)


def _offset_note(outcomes: Sequence[_Outcome], min_sheets: int) -> Optional[str]:
    below = [o.total_machine_sheets for o in outcomes if o.skip_reason == "offset_below_minimum"]
    if not below:
        return None
    return (
        f"Offset excluded: the job needs at most {max(below)} machine sheets, below the "
        f"offset minimum of {min_sheets}; offset setup cost is not justified at this volume"
    )


def calculate(
    request: CalculationRequest,
    catalog: Catalog,
    *,
    params: Optional[EngineParams] = None,
    max_workers: Optional[int] = None,
) -> PriceCalculationResult:
    """
    Price one job against a catalog snapshot.

    Raises InvalidInput, NoFeasibleLayout or AmbiguousPaperPrice (all EngineError).
    """
    log = get_logger()
    profiler = Profiler()

    with profiler.phase("validating"):
        resolved = resolve_input(request, catalog, params)
        eligible = tuple(s for s in resolved.sheet_sizes if tile_fits_sheet(resolved, s))
        if not eligible:
            raise InvalidInput(
                f"No sheet size can hold a {_fmt(resolved.tile_width_cm)}x{_fmt(resolved.tile_height_cm)} cm "
                f"tile (product plus bleed)"
            )

    with profiler.phase("enumerating"):
        papers, engine_warnings = _priceable_papers(resolved)
        tasks = [
            _Task(method=method, sheet=sheet, paper=paper)
            for paper in papers
            for sheet in eligible
            for method in METHODS
        ]
        workers = max_workers if max_workers is not None else resolved.params.max_workers
        outcomes = _run(resolved, tasks, workers)

        candidates = [o.option for o in outcomes if o.option is not None and o.option.production_method == "offset"]
        candidates += _best_digital(resolved, outcomes)
        log.info(f"{len(tasks)} evaluations -> {len(candidates)} candidates")

    if not candidates:
        attempted = [s.label for s in eligible]
        log.warn("No feasible layout on: " + ", ".join(attempted))
        raise NoFeasibleLayout(
            _failure_message(outcomes, resolved.allow_shrink),
            attempted_sheet_sizes=attempted,
        )

    with profiler.phase("ranking"):
        options = rank_options(candidates)
        recommendation = recommend(
            options,
            resolved.params.near_tie_tolerance,
            offset_note=_offset_note(outcomes, int(resolved.pricing.offset_min_sheets)),
        )
        summary = pricing_summary(options[0], resolved.quantity, resolved.margin_percentage)
        top = options[: resolved.params.warning_top_n]
        warnings = dedupe_warnings([engine_warnings] + [o.warnings for o in top])

        digital = cheapest(options, "digital")
        offset = cheapest(options, "offset")

    log.info(profiler.report())

    return PriceCalculationResult(
        input_summary=InputSummary(
            product_name=resolved.product_name,
            product_width_cm=float(resolved.product.width_cm),
            product_height_cm=float(resolved.product.height_cm),
            quantity=resolved.quantity,
            num_pages=resolved.num_pages,
            color_front=resolved.product.color_front,
            color_back=resolved.product.color_back,
            bleed_cm=resolved.bleed_cm,
            allow_shrink=resolved.allow_shrink,
            margin_percentage=resolved.margin_percentage,
            waste_percentage=resolved.waste_percentage,
            sheet_size_ids=tuple(s.id for s in resolved.sheet_sizes),
            paper_types=resolved.paper_types,
            finishing_operations=resolved.finishing_operations,
        ),
        recommendation=recommendation,
        pricing_summary=summary,
        options=options,
        warnings=warnings,
        digital_cost=digital.total_cost if digital is not None else None,
        best_offset_cost=offset.total_cost if offset is not None else None,
    )
