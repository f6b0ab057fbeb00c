# imposition_solver/ranking.py
# Option ranking and method recommendation.
#
# Order: total_cost asc, then sheet_utilization desc, then parent_sheets_needed asc,
# then a fixed key (method, sheet id, paper id, orientation) so the output never
# depends on evaluation order.

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from .costing import ZERO, money, to_decimal
from .types import ImpositionOption, PricingSummary, Recommendation


def rank_key(opt: ImpositionOption):
    return (
        opt.total_cost,
        -opt.sheet_utilization,
        opt.parent_sheets_needed,
        opt.production_method,
        opt.sheet_size_id,
        opt.paper_type_id if opt.paper_type_id is not None else -1,
        opt.orientation,
    )


def rank_options(candidates: Sequence[ImpositionOption]) -> Tuple[ImpositionOption, ...]:
    """Sort, assign option_rank 1..N and savings against the most expensive candidate."""
    if not candidates:
        return ()
    ordered = sorted(candidates, key=rank_key)
    max_cost = max(c.total_cost for c in ordered)

    out: List[ImpositionOption] = []
    for i, opt in enumerate(ordered, start=1):
        saving = max_cost - opt.total_cost
        pct = money(saving / max_cost * 100) if max_cost > 0 else ZERO
        out.append(replace(opt, option_rank=i, cost_saving_amount=money(saving), cost_saving_percent=pct))
    return tuple(out)


def cheapest(options: Sequence[ImpositionOption], method: str) -> Optional[ImpositionOption]:
    """First option of `method` in an already ranked sequence."""
    return next((o for o in options if o.production_method == method), None)


def recommend(
    options: Sequence[ImpositionOption],
    near_tie_tolerance: float,
    offset_note: Optional[str] = None,
) -> Recommendation:
    """
    One method only -> that method.
    Both -> compare the cheapest of each; within tolerance -> "both".
    """
    digital = cheapest(options, "digital")
    offset = cheapest(options, "offset")

    if digital is None and offset is None:
        raise ValueError("recommend() needs at least one option")

    if offset is None:
        reason = offset_note or "Only digital production produced a valid layout"
        return Recommendation(method="digital", reason=reason)

    if digital is None:
        return Recommendation(
            method="offset",
            reason="No digital layout is available for this job; offset is the only valid method",
        )

    d, o = digital.total_cost, offset.total_cost
    low = min(d, o)
    gap = abs(d - o) / low if low > 0 else (Decimal("0") if d == o else Decimal("1"))

    if gap < to_decimal(near_tie_tolerance):
        return Recommendation(
            method="both",
            reason=(
                f"Digital ({d}) and offset ({o}) are within {near_tie_tolerance:.0%} of each other; "
                f"choose on turnaround or finish"
            ),
        )

    if d < o:
        return Recommendation(
            method="digital",
            reason=(
                f"Digital is cheaper ({d} vs {o}): offset setup cost of {offset.setup_cost} "
                f"is not justified at {offset.total_machine_sheets} machine sheets"
            ),
        )
    return Recommendation(
        method="offset",
        reason=(
            f"Offset is cheaper ({o} vs {d}): at {digital.total_machine_sheets} sheets, "
            f"digital click charges of {digital.printing_cost} outweigh the offset setup"
        ),
    )


def pricing_summary(best: ImpositionOption, quantity: int, margin_percentage: float) -> PricingSummary:
    selling = money(best.total_cost * (1 + to_decimal(margin_percentage) / 100))
    return PricingSummary(
        total_cost=best.total_cost,
        cost_per_unit=best.cost_per_unit,
        margin_percentage=float(margin_percentage),
        selling_price=selling,
        selling_price_per_unit=money(selling / quantity),
    )
