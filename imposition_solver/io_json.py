# imposition_solver/io_json.py
# Load a pricing job (request + catalog snapshot) from JSON into our dataclasses.
#
# Expected JSON shape:
# {
#   "request": {
#     "product_name": "Business card", "product_width_cm": 9, "product_height_cm": 5,
#     "quantity": 1000, "color_front": "4/0", "paper_type_id": 1,
#     "sheet_size_ids": [1, 2], "finishing_operation_ids": [3], ...
#   },
#   "catalog": {
#     "paper_types": [{"id": 1, "name": "Coated 300", "weight_gsm": 300, "price_per_sheet": 4.5}],
#     "sheet_sizes": [{"id": 1, "name": "Full", "width_cm": 100, "height_cm": 70}],
#     "finishing_operations": [{"id": 3, "name": "Lamination", "pricing_type": "per_sheet", "cost": 1.2}],
#     "pricing_configuration": {"offset_min_sheets": 500, ...}
#   }
# }
#
# Unknown keys are rejected (typos would otherwise be priced silently with defaults).

from __future__ import annotations

import json
from dataclasses import fields
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Set, Tuple

from .errors import InvalidInput
from .types import (
    CalculationRequest,
    Catalog,
    FinishingOperation,
    PaperType,
    PricingConfiguration,
    ProductSpec,
    SheetSize,
)

# Bookkeeping columns a catalog export may carry; accepted and ignored.
_RECORD_EXTRAS = {"description", "created_at", "updated_at"}

# Request keys that belong to the quote record, not the calculation.
_REQUEST_EXTRAS = {"customer_id", "notes"}

_PRODUCT_KEYS = {
    "product_name": "name",
    "product_width_cm": "width_cm",
    "product_height_cm": "height_cm",
    "quantity": "quantity",
    "num_pages": "num_pages",
    "color_front": "color_front",
    "color_back": "color_back",
    "bleed_cm": "bleed_cm",
    "has_text": "has_text",
    "min_font_size": "min_font_size_pt",
    "has_images": "has_images",
    "image_dpi": "image_dpi",
    "has_folding": "has_folding",
    "has_binding": "has_binding",
    "has_die_cutting": "has_die_cutting",
}

_SELECTION_KEYS = {
    "paper_type_id",
    "paper_type_ids",
    "sheet_size_ids",
    "finishing_operation_ids",
    "finishing_counts",
    "allow_shrink",
    "margin_percentage",
    "waste_percentage",
}

_DECIMAL_FIELDS = {
    "price_per_sheet",
    "price_per_kg",
    "cost",
    "min_cost",
    "digital_cost_per_click_bw",
    "digital_cost_per_click_color",
    "digital_min_charge",
    "offset_ctp_cost_per_plate",
    "offset_setup_cost",
    "offset_cost_per_1000_sheets",
}


def _check_keys(where: str, data: Mapping[str, Any], allowed: Iterable[str], required: Iterable[str] = ()) -> None:
    if not isinstance(data, Mapping):
        raise InvalidInput(f"{where}: expected an object, got {type(data).__name__}")
    allowed_set: Set[str] = set(allowed)
    unknown = sorted(set(data) - allowed_set)
    if unknown:
        raise InvalidInput(f"{where}: unknown field(s) {unknown}")
    missing = sorted(k for k in required if data.get(k) is None)
    if missing:
        raise InvalidInput(f"{where}: missing required field(s) {missing}")


def _convert(name: str, value: Any) -> Any:
    if value is None:
        return None
    if name in _DECIMAL_FIELDS:
        try:
            return Decimal(str(value))
        except ArithmeticError:
            raise InvalidInput(f"{name}: not a number: {value!r}") from None
    return value


def _record(cls, where: str, data: Mapping[str, Any], required: Iterable[str]):
    names = [f.name for f in fields(cls)]
    _check_keys(where, data, set(names) | _RECORD_EXTRAS, required)
    kwargs = {k: _convert(k, v) for k, v in data.items() if k in names}
    try:
        return cls(**kwargs)
    except InvalidInput:
        raise
    except (TypeError, ValueError) as e:
        raise InvalidInput(f"{where}: {e}") from None


def _ids(where: str, value: Any) -> Tuple[int, ...]:
    if value is None:
        return ()
    if not isinstance(value, (list, tuple)):
        raise InvalidInput(f"{where}: expected a list of ids")
    try:
        return tuple(int(v) for v in value)
    except (TypeError, ValueError):
        raise InvalidInput(f"{where}: ids must be integers") from None


def request_from_dict(data: Mapping[str, Any]) -> CalculationRequest:
    """
    Build a CalculationRequest from the flat request object.
    Required: product_width_cm, product_height_cm, quantity.
    """
    _check_keys(
        "request",
        data,
        set(_PRODUCT_KEYS) | _SELECTION_KEYS | _REQUEST_EXTRAS,
        required=("product_width_cm", "product_height_cm", "quantity"),
    )
    product_kwargs: Dict[str, Any] = {}
    for key, attr in _PRODUCT_KEYS.items():
        if key in data and data[key] is not None:
            product_kwargs[attr] = data[key]
    try:
        product = ProductSpec(**product_kwargs)
    except InvalidInput:
        raise
    except (TypeError, ValueError) as e:
        raise InvalidInput(f"request: {e}") from None

    if "paper_type_id" in data and "paper_type_ids" in data:
        raise InvalidInput("request: give either paper_type_id or paper_type_ids, not both")
    if data.get("paper_type_id") is not None:
        papers: Tuple[int, ...] = (int(data["paper_type_id"]),)
    else:
        papers = _ids("paper_type_ids", data.get("paper_type_ids"))

    counts_raw = data.get("finishing_counts") or {}
    if not isinstance(counts_raw, Mapping):
        raise InvalidInput("finishing_counts: expected an object of {operation_id: count}")
    try:
        counts = tuple((int(k), int(v)) for k, v in counts_raw.items())
    except (TypeError, ValueError):
        raise InvalidInput("finishing_counts: keys and values must be integers") from None

    kwargs: Dict[str, Any] = {
        "product": product,
        "paper_type_ids": papers,
        "sheet_size_ids": _ids("sheet_size_ids", data.get("sheet_size_ids")),
        "finishing_operation_ids": _ids("finishing_operation_ids", data.get("finishing_operation_ids")),
        "finishing_counts": counts,
    }
    for key in ("allow_shrink", "margin_percentage", "waste_percentage"):
        if data.get(key) is not None:
            kwargs[key] = data[key]
    return CalculationRequest(**kwargs)


def catalog_from_dict(data: Mapping[str, Any]) -> Catalog:
    _check_keys(
        "catalog",
        data,
        {"paper_types", "sheet_sizes", "finishing_operations", "pricing_configuration"},
        required=("sheet_sizes",),
    )
    papers = tuple(
        _record(PaperType, f"paper_types[{i}]", d, ("id", "name", "weight_gsm"))
        for i, d in enumerate(data.get("paper_types") or [])
    )
    sheets = tuple(
        _record(SheetSize, f"sheet_sizes[{i}]", d, ("id", "name", "width_cm", "height_cm"))
        for i, d in enumerate(data.get("sheet_sizes") or [])
    )
    ops = tuple(
        _record(FinishingOperation, f"finishing_operations[{i}]", d, ("id", "name", "pricing_type", "cost"))
        for i, d in enumerate(data.get("finishing_operations") or [])
    )
    cfg_raw = dict(data.get("pricing_configuration") or {})
    cfg_raw.pop("id", None)
    pricing = _record(PricingConfiguration, "pricing_configuration", cfg_raw, ())
    return Catalog(paper_types=papers, sheet_sizes=sheets, finishing_operations=ops, pricing=pricing)


def job_from_dict(data: Mapping[str, Any]) -> Tuple[CalculationRequest, Catalog]:
    _check_keys("job", data, {"request", "catalog"}, required=("request", "catalog"))
    return request_from_dict(data["request"]), catalog_from_dict(data["catalog"])


def load_job_json(path: str | Path, *, catalog_path: Optional[str | Path] = None) -> Tuple[CalculationRequest, Catalog]:
    """
    Load a job from JSON.
    - With `catalog_path`, the job file may hold just the request object
      and the catalog comes from the second file.
    """
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)

    if catalog_path is None:
        return job_from_dict(data)

    with Path(catalog_path).open("r", encoding="utf-8") as f:
        catalog = catalog_from_dict(json.load(f))
    request_data = data["request"] if isinstance(data, Mapping) and "request" in data else data
    return request_from_dict(request_data), catalog
