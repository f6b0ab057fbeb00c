# imposition_solver/costing.py
# Job cost model for one candidate (sheet choice + grid + production method):
# - paper: purchased sheets x resolved sheet price (spoilage split out into waste)
# - printing: digital click charge (min charge floor) or offset run per 1000 sheets
# - setup: offset fixed setup + CTP plates; none for digital
# - waste: makeready + run waste sheets x price per machine sheet
# - finishing: per selected operation, each floored at its own min_cost
#
# Notes:
# - Every line is quantized to 0.01 before summing, so total == sum(lines) exactly.
# - Paper prices per kg are converted using the purchased sheet area and gsm.

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Tuple

from .config import ResolvedInput
from .errors import AmbiguousPaperPrice
from .types import CostBreakdown, FinishingOperation, PaperType, PricingConfiguration, SheetCounts

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(v) -> Decimal:
    """Convert numeric-like input to Decimal (floats go through str to avoid binary noise)."""
    if isinstance(v, Decimal):
        return v
    return Decimal(str(v))


def money(v) -> Decimal:
    return to_decimal(v).quantize(CENT, rounding=ROUND_HALF_UP)


def resolve_sheet_price(paper: Optional[PaperType], width_cm: float, height_cm: float) -> Decimal:
    """
    Price of one purchased sheet of the given size.
    Direct per-sheet price wins; otherwise price_per_kg x sheet weight.
    No paper selected -> 0 (paper is not priced).
    """
    if paper is None:
        return Decimal("0")
    if paper.price_per_sheet is not None:
        return to_decimal(paper.price_per_sheet)
    if paper.price_per_kg is not None and paper.weight_gsm > 0:
        area_m2 = to_decimal(width_cm) * to_decimal(height_cm) / Decimal("10000")
        kg = area_m2 * to_decimal(paper.weight_gsm) / Decimal("1000")
        return to_decimal(paper.price_per_kg) * kg
    raise AmbiguousPaperPrice(
        f"Paper type {paper.id} ({paper.name}) has neither price_per_sheet nor price_per_kg",
        paper_type_id=paper.id,
    )


def click_rate(inks: int, cfg: PricingConfiguration) -> Decimal:
    """Per-side click: mono for a single ink, color above that, nothing for a blank side."""
    if inks <= 0:
        return Decimal("0")
    if inks == 1:
        return to_decimal(cfg.digital_cost_per_click_bw)
    return to_decimal(cfg.digital_cost_per_click_color)


def plate_counts(front_colors: int, back_colors: int) -> Tuple[int, int]:
    """One plate per color separation per printed side."""
    return max(front_colors, 0), max(back_colors, 0)


def is_offset_viable(total_machine_sheets: int, cfg: PricingConfiguration) -> bool:
    return total_machine_sheets >= int(cfg.offset_min_sheets)


def finishing_line(
    op: FinishingOperation,
    quantity: int,
    total_machine_sheets: int,
    per_unit_count: int = 1,
) -> Decimal:
    if op.pricing_type == "per_piece":
        units = quantity
    elif op.pricing_type == "per_sheet":
        units = total_machine_sheets
    elif op.pricing_type in ("per_fold", "per_cut"):
        units = quantity * per_unit_count
    else:  # "fixed"
        units = 1
    amount = to_decimal(op.cost) * units
    if op.min_cost is not None:
        amount = max(amount, to_decimal(op.min_cost))
    return money(amount)


def compute_finishing_cost(
    ops: Iterable[FinishingOperation],
    counts: Iterable[Tuple[int, int]],
    quantity: int,
    total_machine_sheets: int,
) -> Decimal:
    per_unit = dict(counts)
    total = ZERO
    for op in ops:
        total += finishing_line(op, quantity, total_machine_sheets, per_unit.get(op.id, 1))
    return total


def compute_cost(
    method: str,
    resolved: ResolvedInput,
    counts: SheetCounts,
    sheet_price: Decimal,
) -> CostBreakdown:
    """
    Price one candidate. `sheet_price` is the price of one purchased sheet
    (parent for offset, the machine sheet itself for digital).
    """
    cfg = resolved.pricing
    total_sheets = counts.total_machine_sheets

    purchased = money(sheet_price * counts.parent_sheets_needed)
    waste_cost = money(sheet_price * counts.waste_sheets / counts.machine_sheets_per_parent)
    paper_cost = purchased - waste_cost

    if method == "digital":
        per_sheet = click_rate(resolved.front_colors, cfg) + click_rate(resolved.back_colors, cfg)
        printing_cost = money(max(per_sheet * total_sheets, to_decimal(cfg.digital_min_charge)))
        setup_cost = ZERO
    elif method == "offset":
        runs = math.ceil(total_sheets / 1000)
        printing_cost = money(to_decimal(cfg.offset_cost_per_1000_sheets) * runs)
        front, back = plate_counts(resolved.front_colors, resolved.back_colors)
        setup_cost = money(
            to_decimal(cfg.offset_setup_cost) + to_decimal(cfg.offset_ctp_cost_per_plate) * (front + back)
        )
    else:
        raise ValueError(f"Unknown production method: {method!r}")

    finishing_cost = compute_finishing_cost(
        resolved.finishing_operations, resolved.finishing_counts, resolved.quantity, total_sheets
    )

    total = paper_cost + printing_cost + setup_cost + waste_cost + finishing_cost
    return CostBreakdown(
        paper_cost=paper_cost,
        printing_cost=printing_cost,
        setup_cost=setup_cost,
        waste_cost=waste_cost,
        finishing_cost=finishing_cost,
        total_cost=total,
        cost_per_unit=money(total / resolved.quantity),
    )
