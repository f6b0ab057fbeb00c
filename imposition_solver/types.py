# imposition_solver/types.py
# Core data structures for print imposition and job pricing.
# Keep this file dependency-light so it can be imported everywhere.
#
# Units: lengths in centimeters (float), money as Decimal.

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Mapping, Optional, Tuple

from .errors import InvalidInput


ORIENTATIONS = ("normal", "rotated")
METHODS = ("digital", "offset")
RECOMMENDATIONS = ("digital", "offset", "both")
SEVERITIES = ("info", "warning", "danger")
SEVERITY_ORDER = {s: i for i, s in enumerate(SEVERITIES)}
SHEET_CATEGORIES = ("quarter_sheet", "half_sheet", "full_sheet")
PAPER_CATEGORIES = ("coated", "uncoated", "cardboard", "special")
PRICING_TYPES = ("per_piece", "per_sheet", "fixed", "per_fold", "per_cut")


def parse_color_mode(mode: str) -> Tuple[int, int]:
    """
    Parse an ink mode like '4/0' -> (front_inks, back_inks).
    Front must carry at least one ink.
    """
    s = str(mode).replace(" ", "")
    if "/" not in s:
        raise InvalidInput(f"Color mode must look like '4/0', got {mode!r}")
    a, b = s.split("/", 1)
    try:
        front, back = int(a), int(b)
    except ValueError:
        raise InvalidInput(f"Color mode must look like '4/0', got {mode!r}") from None
    if front < 1 or back < 0 or front > 8 or back > 8:
        raise InvalidInput(f"Color mode out of range: {mode!r}")
    return front, back


def _require_positive(owner: str, name: str, value: float) -> None:
    if value is None or value <= 0:
        raise InvalidInput(f"{owner}: {name} must be > 0 (got {value})")


def _require_non_negative(owner: str, name: str, value: Optional[float]) -> None:
    if value is not None and value < 0:
        raise InvalidInput(f"{owner}: {name} must be >= 0 (got {value})")


# ----------------------------
# Inputs (job)
# ----------------------------

@dataclass(frozen=True)
class ProductSpec:
    """Trimmed product size, run length and design attributes of one job."""
    width_cm: float
    height_cm: float
    quantity: int
    num_pages: int = 1
    color_front: str = "4/0"
    color_back: Optional[str] = None
    bleed_cm: Optional[float] = None  # None -> configuration default
    name: str = ""

    # Design flags (feed the quality checks)
    has_text: bool = True
    min_font_size_pt: Optional[float] = None
    has_images: bool = True
    image_dpi: Optional[int] = None
    has_folding: bool = False
    has_binding: bool = False
    has_die_cutting: bool = False

    def __post_init__(self):
        _require_positive("product", "width_cm", self.width_cm)
        _require_positive("product", "height_cm", self.height_cm)
        if isinstance(self.quantity, bool) or int(self.quantity) != self.quantity or self.quantity < 1:
            raise InvalidInput(f"product: quantity must be an integer >= 1 (got {self.quantity})")
        if int(self.num_pages) != self.num_pages or self.num_pages < 1:
            raise InvalidInput(f"product: num_pages must be an integer >= 1 (got {self.num_pages})")
        _require_non_negative("product", "bleed_cm", self.bleed_cm)
        _require_non_negative("product", "min_font_size_pt", self.min_font_size_pt)
        _require_non_negative("product", "image_dpi", self.image_dpi)
        parse_color_mode(self.color_front)
        if self.color_back is not None:
            parse_color_mode(self.color_back)

    @property
    def front_colors(self) -> int:
        return parse_color_mode(self.color_front)[0]

    @property
    def back_colors(self) -> int:
        # An explicit back mode prints its leading ink count on the reverse.
        if self.color_back is not None:
            return parse_color_mode(self.color_back)[0]
        return parse_color_mode(self.color_front)[1]

    @property
    def printed_sides(self) -> int:
        return 2 if self.back_colors > 0 else 1


# ----------------------------
# Inputs (catalog, read-only)
# ----------------------------

@dataclass(frozen=True)
class PaperType:
    id: int
    name: str
    weight_gsm: float
    price_per_sheet: Optional[Decimal] = None
    price_per_kg: Optional[Decimal] = None
    category: str = "coated"
    is_active: bool = True

    def __post_init__(self):
        _require_positive(f"paper {self.id}", "weight_gsm", self.weight_gsm)
        _require_non_negative(f"paper {self.id}", "price_per_sheet", self.price_per_sheet)
        _require_non_negative(f"paper {self.id}", "price_per_kg", self.price_per_kg)
        if self.category not in PAPER_CATEGORIES:
            raise InvalidInput(f"paper {self.id}: unknown category {self.category!r}")


@dataclass(frozen=True)
class SheetSize:
    """Parent sheet as purchased."""
    id: int
    name: str
    width_cm: float
    height_cm: float
    category: str = "full_sheet"
    is_active: bool = True

    def __post_init__(self):
        _require_positive(f"sheet size {self.id}", "width_cm", self.width_cm)
        _require_positive(f"sheet size {self.id}", "height_cm", self.height_cm)
        if self.category not in SHEET_CATEGORIES:
            raise InvalidInput(f"sheet size {self.id}: unknown category {self.category!r}")

    @property
    def label(self) -> str:
        return f"{self.name} ({self.width_cm:g}x{self.height_cm:g})"


@dataclass(frozen=True)
class FinishingOperation:
    id: int
    name: str
    pricing_type: str
    cost: Decimal
    min_cost: Optional[Decimal] = None
    is_active: bool = True

    def __post_init__(self):
        if self.pricing_type not in PRICING_TYPES:
            raise InvalidInput(f"finishing {self.id}: unknown pricing_type {self.pricing_type!r}")
        _require_non_negative(f"finishing {self.id}", "cost", self.cost)
        _require_non_negative(f"finishing {self.id}", "min_cost", self.min_cost)


@dataclass(frozen=True)
class PricingConfiguration:
    """Shop-wide pricing and press settings (singleton in the catalog)."""
    # Digital
    digital_cost_per_click_bw: Decimal = Decimal("0.50")
    digital_cost_per_click_color: Decimal = Decimal("2.00")
    digital_min_charge: Decimal = Decimal("50.00")

    # Offset
    offset_ctp_cost_per_plate: Decimal = Decimal("150.00")
    offset_setup_cost: Decimal = Decimal("300.00")
    offset_cost_per_1000_sheets: Decimal = Decimal("120.00")
    offset_min_sheets: int = 500

    # Layout
    gripper_margin_cm: float = 1.0
    item_gap_cm: float = 0.2
    default_bleed_cm: float = 0.3
    max_shrink_cm: float = 1.0

    # Percentages are percent values (5 == 5%)
    default_waste_percentage: float = 5.0
    default_margin_percentage: float = 30.0

    # Quality thresholds
    min_text_size_pt: float = 6.0
    min_image_dpi: int = 300

    # Press bed and spoilage
    machine_max_width_cm: float = 100.0
    machine_max_height_cm: float = 70.0
    makeready_waste_sheets: int = 50
    run_waste_percentage: float = 3.0

    def __post_init__(self):
        for name in (
            "digital_cost_per_click_bw",
            "digital_cost_per_click_color",
            "digital_min_charge",
            "offset_ctp_cost_per_plate",
            "offset_setup_cost",
            "offset_cost_per_1000_sheets",
            "offset_min_sheets",
            "gripper_margin_cm",
            "item_gap_cm",
            "default_bleed_cm",
            "max_shrink_cm",
            "default_waste_percentage",
            "default_margin_percentage",
            "min_text_size_pt",
            "min_image_dpi",
            "makeready_waste_sheets",
            "run_waste_percentage",
        ):
            _require_non_negative("pricing configuration", name, getattr(self, name))
        _require_positive("pricing configuration", "machine_max_width_cm", self.machine_max_width_cm)
        _require_positive("pricing configuration", "machine_max_height_cm", self.machine_max_height_cm)
        if self.gripper_margin_cm >= self.machine_max_height_cm:
            raise InvalidInput("pricing configuration: gripper margin leaves no printable area")


@dataclass(frozen=True)
class Catalog:
    """Read-only catalog snapshot handed to the engine for one call."""
    paper_types: Tuple[PaperType, ...] = ()
    sheet_sizes: Tuple[SheetSize, ...] = ()
    finishing_operations: Tuple[FinishingOperation, ...] = ()
    pricing: PricingConfiguration = field(default_factory=PricingConfiguration)

    def paper_type(self, paper_id: int) -> Optional[PaperType]:
        return next((p for p in self.paper_types if p.id == paper_id), None)

    def sheet_size(self, sheet_id: int) -> Optional[SheetSize]:
        return next((s for s in self.sheet_sizes if s.id == sheet_id), None)

    def finishing_operation(self, op_id: int) -> Optional[FinishingOperation]:
        return next((f for f in self.finishing_operations if f.id == op_id), None)


@dataclass(frozen=True)
class CalculationRequest:
    """One pricing request: the product plus per-call selection filters."""
    product: ProductSpec
    paper_type_ids: Tuple[int, ...] = ()
    sheet_size_ids: Tuple[int, ...] = ()           # empty -> all active sizes
    finishing_operation_ids: Tuple[int, ...] = ()
    # per-unit folds/cuts as (operation_id, count) pairs; a mapping is accepted and normalized
    finishing_counts: Tuple[Tuple[int, int], ...] = ()
    allow_shrink: bool = True
    margin_percentage: Optional[float] = None      # None -> configuration default
    waste_percentage: Optional[float] = None       # None -> configuration default

    def __post_init__(self):
        _require_non_negative("request", "margin_percentage", self.margin_percentage)
        if self.waste_percentage is not None and not (0 <= self.waste_percentage <= 100):
            raise InvalidInput(f"request: waste_percentage must be in [0, 100] (got {self.waste_percentage})")
        object.__setattr__(self, "finishing_counts", _normalize_counts(self.finishing_counts))


def _normalize_counts(raw) -> Tuple[Tuple[int, int], ...]:
    pairs = raw.items() if isinstance(raw, Mapping) else raw
    out: Dict[int, int] = {}
    for op_id, count in pairs:
        if int(count) != count or count < 0:
            raise InvalidInput(f"request: finishing count for {op_id} must be an integer >= 0")
        if int(op_id) in out:
            raise InvalidInput(f"request: finishing count for {op_id} given twice")
        out[int(op_id)] = int(count)
    return tuple(sorted(out.items()))


# ----------------------------
# Outputs
# ----------------------------

@dataclass(frozen=True)
class LayoutCoordinate:
    """One tile on the machine sheet (top-left origin, includes bleed)."""
    x: float
    y: float
    w: float
    h: float
    col: int
    row: int

    def right(self) -> float:
        return self.x + self.w

    def bottom(self) -> float:
        return self.y + self.h


@dataclass(frozen=True)
class CuttingLayout:
    """How one parent sheet is split into machine sheets."""
    parent_width_cm: float
    parent_height_cm: float
    machine_width_cm: float
    machine_height_cm: float
    cuts_across: int
    cuts_down: int
    parent_rotated: bool = False

    @property
    def machine_sheets_per_parent(self) -> int:
        return self.cuts_across * self.cuts_down

    @property
    def cutting_layout(self) -> str:
        return f"{self.cuts_across}x{self.cuts_down}"


@dataclass(frozen=True)
class SheetCounts:
    net_machine_sheets: int
    makeready_waste_sheets: int
    run_waste_sheets: int
    machine_sheets_per_parent: int
    parent_sheets_needed: int

    @property
    def waste_sheets(self) -> int:
        return self.makeready_waste_sheets + self.run_waste_sheets

    @property
    def total_machine_sheets(self) -> int:
        return self.net_machine_sheets + self.waste_sheets


@dataclass(frozen=True)
class LayoutData:
    """Absolute tile geometry for downstream rendering."""
    machine_width_cm: float
    machine_height_cm: float
    gripper_margin_cm: float
    product_width_cm: float
    product_height_cm: float
    bleed_cm: float
    tile_width_cm: float
    tile_height_cm: float
    cols: int
    rows: int
    orientation: str
    grid_width_cm: float
    grid_height_cm: float
    offset_x_cm: float
    offset_y_cm: float
    waste_right_cm: float
    waste_bottom_cm: float
    coordinates: Tuple[LayoutCoordinate, ...]
    cutting: CuttingLayout

    def to_dict(self) -> Dict[str, object]:
        """Nested shape consumed by the layout renderer."""
        return {
            "machine_sheet": {
                "width_cm": self.machine_width_cm,
                "height_cm": self.machine_height_cm,
                "gripper_margin_cm": self.gripper_margin_cm,
            },
            "item": {
                "product_width_cm": self.product_width_cm,
                "product_height_cm": self.product_height_cm,
                "bleed_cm": self.bleed_cm,
                "total_width_cm": self.tile_width_cm,
                "total_height_cm": self.tile_height_cm,
            },
            "grid": {
                "cols": self.cols,
                "rows": self.rows,
                "count": self.cols * self.rows,
                "orientation": self.orientation,
                "width_cm": self.grid_width_cm,
                "height_cm": self.grid_height_cm,
                "offset_x": self.offset_x_cm,
                "offset_y": self.offset_y_cm,
            },
            "coordinates": [
                {"x": c.x, "y": c.y, "w": c.w, "h": c.h, "col": c.col, "row": c.row}
                for c in self.coordinates
            ],
            "waste": {"right_cm": self.waste_right_cm, "bottom_cm": self.waste_bottom_cm},
            "parent_sheet_cutting": {
                "parent_width_cm": self.cutting.parent_width_cm,
                "parent_height_cm": self.cutting.parent_height_cm,
                "cuts_across": self.cutting.cuts_across,
                "cuts_down": self.cutting.cuts_down,
                "machine_sheets_per_parent": self.cutting.machine_sheets_per_parent,
                "cutting_layout": self.cutting.cutting_layout,
            },
        }


@dataclass(frozen=True)
class CostBreakdown:
    paper_cost: Decimal
    printing_cost: Decimal
    setup_cost: Decimal
    waste_cost: Decimal
    finishing_cost: Decimal
    total_cost: Decimal
    cost_per_unit: Decimal


@dataclass(frozen=True)
class QualityWarning:
    type: str
    severity: str  # "info" | "warning" | "danger"
    message: str

    def __post_init__(self):
        if self.severity not in SEVERITIES:
            raise ValueError(f"QualityWarning.severity must be one of {SEVERITIES}")


@dataclass(frozen=True)
class ImpositionOption:
    option_rank: int
    production_method: str  # "digital" | "offset"

    # Sheet reference
    sheet_size_id: int
    sheet_size_name: str
    sheet_size_category: str
    sheet_width_cm: float
    sheet_height_cm: float
    paper_type_id: Optional[int]

    # Grid
    orientation: str
    cols: int
    rows: int
    items_per_sheet: int

    # Sheet hierarchy
    net_machine_sheets: int
    total_machine_sheets: int
    machine_sheets_per_parent: int
    parent_sheets_needed: int
    makeready_waste_sheets: int
    run_waste_sheets: int
    waste_sheets: int
    impressions: int
    front_plates: int
    back_plates: int
    total_plates: int

    # Layout
    sheet_utilization: float
    is_shrink_used: bool
    shrink_width_cm: float
    shrink_height_cm: float
    final_width_cm: float
    final_height_cm: float
    layout_data: LayoutData

    # Costs
    paper_cost: Decimal
    printing_cost: Decimal
    setup_cost: Decimal
    waste_cost: Decimal
    finishing_cost: Decimal
    total_cost: Decimal
    cost_per_unit: Decimal
    cost_saving_amount: Decimal = Decimal("0.00")
    cost_saving_percent: Decimal = Decimal("0.00")

    warnings: Tuple[QualityWarning, ...] = ()
    explanation: str = ""


@dataclass(frozen=True)
class Recommendation:
    method: str  # "digital" | "offset" | "both"
    reason: str

    def __post_init__(self):
        if self.method not in RECOMMENDATIONS:
            raise ValueError(f"Recommendation.method must be one of {RECOMMENDATIONS}")


@dataclass(frozen=True)
class PricingSummary:
    total_cost: Decimal
    cost_per_unit: Decimal
    margin_percentage: float
    selling_price: Decimal
    selling_price_per_unit: Decimal


@dataclass(frozen=True)
class InputSummary:
    """Normalized echo of what was actually priced."""
    product_name: str
    product_width_cm: float
    product_height_cm: float
    quantity: int
    num_pages: int
    color_front: str
    color_back: Optional[str]
    bleed_cm: float
    allow_shrink: bool
    margin_percentage: float
    waste_percentage: float
    sheet_size_ids: Tuple[int, ...]
    paper_types: Tuple[PaperType, ...]
    finishing_operations: Tuple[FinishingOperation, ...]


@dataclass(frozen=True)
class PriceCalculationResult:
    input_summary: InputSummary
    recommendation: Recommendation
    pricing_summary: PricingSummary
    options: Tuple[ImpositionOption, ...]
    warnings: Tuple[QualityWarning, ...] = ()
    digital_cost: Optional[Decimal] = None
    best_offset_cost: Optional[Decimal] = None

    @property
    def best(self) -> ImpositionOption:
        return self.options[0]


# ----------------------------
# Helper utilities
# ----------------------------

def oriented_dims(w: float, h: float, orientation: str) -> Tuple[float, float]:
    if orientation == "rotated":
        return h, w
    return w, h
