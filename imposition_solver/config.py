# imposition_solver/config.py
# Centralized defaults and configuration helpers.
# Keeps "magic numbers" (shrink step, tie tolerance, warning thresholds) in one place
# and merges per-call overrides with the shop configuration exactly once.

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

from .errors import InvalidInput
from .types import (
    CalculationRequest,
    Catalog,
    FinishingOperation,
    PaperType,
    PricingConfiguration,
    ProductSpec,
    SheetSize,
    parse_color_mode,
)


@dataclass(frozen=True)
class EngineParams:
    # Shrink search granularity (cm of product size removed per step)
    shrink_step_cm: float = 0.1

    # Shrink above this share of max_shrink_cm raises a warning
    shrink_warning_ratio: float = 0.5

    # Utilization thresholds (% of machine sheet area)
    low_utilization_percent: float = 50.0
    danger_utilization_percent: float = 30.0

    # Cheapest digital vs cheapest offset within this relative gap -> "both"
    near_tie_tolerance: float = 0.03

    # Offset volume within this ratio above offset_min_sheets -> info warning
    offset_marginal_ratio: float = 0.2

    # Global warnings are collected from this many top-ranked options
    warning_top_n: int = 3

    # Worker pool bound for candidate evaluation
    max_workers: int = 4

    def __post_init__(self):
        if self.shrink_step_cm <= 0:
            raise InvalidInput("shrink_step_cm must be > 0")
        if not (0 <= self.near_tie_tolerance < 1):
            raise InvalidInput("near_tie_tolerance must be in [0, 1)")
        if self.warning_top_n < 1 or self.max_workers < 1:
            raise InvalidInput("warning_top_n and max_workers must be >= 1")


DEFAULTS = EngineParams()


@dataclass(frozen=True)
class ResolvedInput:
    """
    Every effective parameter for one calculation, merged once.
    Downstream components read only this, never the request or the catalog.
    """
    product: ProductSpec
    product_name: str
    quantity: int
    num_pages: int
    front_colors: int
    back_colors: int
    printed_sides: int
    tiles_required: int

    bleed_cm: float
    tile_width_cm: float
    tile_height_cm: float

    allow_shrink: bool
    max_shrink_cm: float
    gripper_margin_cm: float
    item_gap_cm: float
    machine_max_width_cm: float
    machine_max_height_cm: float

    margin_percentage: float
    waste_percentage: float       # digital run waste
    run_waste_percentage: float   # offset run waste
    makeready_waste_sheets: int

    sheet_sizes: Tuple[SheetSize, ...]
    paper_types: Tuple[PaperType, ...]
    finishing_operations: Tuple[FinishingOperation, ...]
    finishing_counts: Tuple[Tuple[int, int], ...]   # (operation_id, per-unit count)

    pricing: PricingConfiguration
    params: EngineParams


def _lookup_all(ids, finder, kind: str):
    """Resolve ids in request order; a repeated id counts once."""
    found = []
    for i in dict.fromkeys(ids):
        item = finder(i)
        if item is None:
            raise InvalidInput(f"Unknown {kind} id: {i}")
        found.append(item)
    return tuple(found)


def resolve_input(
    request: CalculationRequest,
    catalog: Catalog,
    params: Optional[EngineParams] = None,
) -> ResolvedInput:
    """
    Merge request overrides with configuration defaults and resolve catalog ids.
    Raises InvalidInput for unknown ids or an empty sheet selection.
    """
    params = params or DEFAULTS
    cfg = catalog.pricing
    product = request.product

    if request.sheet_size_ids:
        sheets = _lookup_all(request.sheet_size_ids, catalog.sheet_size, "sheet size")
    else:
        sheets = tuple(s for s in catalog.sheet_sizes if s.is_active)
    if not sheets:
        raise InvalidInput("No sheet sizes available (catalog empty or all inactive)")

    papers = _lookup_all(request.paper_type_ids, catalog.paper_type, "paper type")
    finishing = _lookup_all(request.finishing_operation_ids, catalog.finishing_operation, "finishing operation")
    selected_ops = {f.id for f in finishing}
    for op_id, _ in request.finishing_counts:
        if op_id not in selected_ops:
            raise InvalidInput(f"Finishing count given for unselected operation id: {op_id}")

    bleed = float(product.bleed_cm if product.bleed_cm is not None else cfg.default_bleed_cm)
    front = parse_color_mode(product.color_front)[0]
    back = product.back_colors
    sides = 2 if back > 0 else 1

    return ResolvedInput(
        product=product,
        product_name=product.name,
        quantity=int(product.quantity),
        num_pages=int(product.num_pages),
        front_colors=front,
        back_colors=back,
        printed_sides=sides,
        tiles_required=int(product.quantity) * math.ceil(int(product.num_pages) / sides),
        bleed_cm=bleed,
        tile_width_cm=float(product.width_cm) + 2 * bleed,
        tile_height_cm=float(product.height_cm) + 2 * bleed,
        allow_shrink=bool(request.allow_shrink),
        max_shrink_cm=float(cfg.max_shrink_cm),
        gripper_margin_cm=float(cfg.gripper_margin_cm),
        item_gap_cm=float(cfg.item_gap_cm),
        machine_max_width_cm=float(cfg.machine_max_width_cm),
        machine_max_height_cm=float(cfg.machine_max_height_cm),
        margin_percentage=float(
            request.margin_percentage if request.margin_percentage is not None else cfg.default_margin_percentage
        ),
        waste_percentage=float(
            request.waste_percentage if request.waste_percentage is not None else cfg.default_waste_percentage
        ),
        run_waste_percentage=float(
            request.waste_percentage if request.waste_percentage is not None else cfg.run_waste_percentage
        ),
        makeready_waste_sheets=int(cfg.makeready_waste_sheets),
        sheet_sizes=sheets,
        paper_types=papers,
        finishing_operations=finishing,
        finishing_counts=request.finishing_counts,
        pricing=cfg,
        params=params,
    )
