# imposition_solver/sample_data.py
# Example catalog / request plus a seeded random job generator.
# Useful for quick CLI runs (--example) and for invariant tests over many jobs.

from __future__ import annotations

import random
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Tuple

from .types import (
    CalculationRequest,
    Catalog,
    FinishingOperation,
    PaperType,
    PricingConfiguration,
    ProductSpec,
    SheetSize,
)


def example_catalog() -> Catalog:
    """A small print-shop catalog: two papers, three parent sizes, three finishing ops."""
    return Catalog(
        paper_types=(
            PaperType(id=1, name="Coated 300g", weight_gsm=300, price_per_sheet=Decimal("4.50")),
            PaperType(id=2, name="Uncoated 80g", weight_gsm=80, price_per_kg=Decimal("18.00"), category="uncoated"),
        ),
        sheet_sizes=(
            SheetSize(id=1, name="Full 100x70", width_cm=100, height_cm=70),
            SheetSize(id=2, name="Half 70x50", width_cm=70, height_cm=50, category="half_sheet"),
            SheetSize(id=3, name="Quarter 50x35", width_cm=50, height_cm=35, category="quarter_sheet"),
        ),
        finishing_operations=(
            FinishingOperation(id=1, name="Gloss lamination", pricing_type="per_sheet", cost=Decimal("1.20"),
                               min_cost=Decimal("40.00")),
            FinishingOperation(id=2, name="Guillotine trim", pricing_type="fixed", cost=Decimal("25.00")),
            FinishingOperation(id=3, name="Folding", pricing_type="per_fold", cost=Decimal("0.05")),
        ),
        pricing=PricingConfiguration(),
    )


def example_request() -> CalculationRequest:
    """1000 business cards, 4/0 on coated board, trimmed."""
    return CalculationRequest(
        product=ProductSpec(width_cm=9, height_cm=5, quantity=1000, name="Business card", color_front="4/0"),
        paper_type_ids=(1,),
        finishing_operation_ids=(2,),
    )


@dataclass(frozen=True)
class RandomJobsConfig:
    seed: int = 123
    n_jobs: int = 25

    # product size range (cm)
    w_range: Tuple[float, float] = (3.0, 45.0)
    h_range: Tuple[float, float] = (3.0, 45.0)

    quantity_choices: Tuple[int, ...] = (50, 100, 250, 500, 1000, 2500, 5000, 20000)
    color_modes: Tuple[str, ...] = ("1/0", "1/1", "4/0", "4/4")
    max_pages: int = 4

    p_no_shrink: float = 0.3
    p_no_paper: float = 0.2


def generate_random_requests(cfg: RandomJobsConfig, catalog: Catalog) -> List[CalculationRequest]:
    """
    Random jobs against `catalog`, reproducible by seed.
    Sizes are rounded to 0.1 cm like real product sheets.
    """
    rnd = random.Random(cfg.seed)
    paper_ids = [p.id for p in catalog.paper_types]
    out: List[CalculationRequest] = []

    for i in range(cfg.n_jobs):
        w = round(rnd.uniform(*cfg.w_range), 1)
        h = round(rnd.uniform(*cfg.h_range), 1)
        product = ProductSpec(
            width_cm=w,
            height_cm=h,
            quantity=rnd.choice(cfg.quantity_choices),
            num_pages=rnd.randint(1, cfg.max_pages),
            color_front=rnd.choice(cfg.color_modes),
            name=f"J{i + 1:02d}",
        )
        papers: Tuple[int, ...] = ()
        if paper_ids and rnd.random() > cfg.p_no_paper:
            papers = (rnd.choice(paper_ids),)
        out.append(
            CalculationRequest(
                product=product,
                paper_type_ids=papers,
                allow_shrink=rnd.random() > cfg.p_no_shrink,
            )
        )
    return out
