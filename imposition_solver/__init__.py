# imposition_solver/__init__.py
"""
Imposition solver package (sheet-fed print jobs, digital vs offset).

Current state:
- Grid imposition per machine sheet with
  - both orientations (larger count wins, residual area breaks ties)
  - gripper strip and inter-item gap
  - bounded shrink search when the product does not fit at full size
- Parent sheet -> machine sheet cutting for presses smaller than the purchased sheet
- Makeready + run waste accounting and Decimal cost lines that sum exactly
- Quality warnings, deterministic ranking and a digital/offset/both recommendation
- matplotlib preview of a layout (machine sheet + parent cutting)

Entry point: calculate(request, catalog) -> PriceCalculationResult
"""

from .types import (
    ProductSpec,
    PaperType,
    SheetSize,
    FinishingOperation,
    PricingConfiguration,
    Catalog,
    CalculationRequest,
    LayoutCoordinate,
    CuttingLayout,
    LayoutData,
    QualityWarning,
    ImpositionOption,
    Recommendation,
    PricingSummary,
    InputSummary,
    PriceCalculationResult,
)

from .errors import (
    EngineError,
    InvalidInput,
    NoFeasibleLayout,
    AmbiguousPaperPrice,
)

from .config import (
    EngineParams,
    DEFAULTS,
)

from .solver_grid import (
    GridParams,
    GridFit,
    solve_grid,
)

from .engine import calculate

__all__ = [
    # types
    "ProductSpec",
    "PaperType",
    "SheetSize",
    "FinishingOperation",
    "PricingConfiguration",
    "Catalog",
    "CalculationRequest",
    "LayoutCoordinate",
    "CuttingLayout",
    "LayoutData",
    "QualityWarning",
    "ImpositionOption",
    "Recommendation",
    "PricingSummary",
    "InputSummary",
    "PriceCalculationResult",
    # errors
    "EngineError",
    "InvalidInput",
    "NoFeasibleLayout",
    "AmbiguousPaperPrice",
    # config
    "EngineParams",
    "DEFAULTS",
    # grid
    "GridParams",
    "GridFit",
    "solve_grid",
    # engine
    "calculate",
]
