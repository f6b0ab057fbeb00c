# imposition_solver/utils.py
# Small utilities used across the project:
# - timing context manager
# - JSON-friendly conversion of results (Decimal -> float, dataclasses -> dicts)
# - JSON export of a full PriceCalculationResult

from __future__ import annotations

import json
import time
from contextlib import contextmanager
from dataclasses import fields, is_dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterator

from .types import ImpositionOption, LayoutData, PriceCalculationResult

# Coordinates come out of float arithmetic; 4 decimals (0.1 micron) is plenty for output.
FLOAT_DIGITS = 4


@contextmanager
def timer(label: str = "timer") -> Iterator[Dict[str, float]]:
    """
    Usage:
      with timer("calculate") as t:
          ...
      print(t["seconds"])
    """
    t0 = time.perf_counter()
    payload: Dict[str, float] = {}
    try:
        yield payload
    finally:
        payload["seconds"] = time.perf_counter() - t0


def _to_jsonable(obj: Any) -> Any:
    """Convert dataclasses, Decimals and other objects to JSON-serializable structures."""
    if isinstance(obj, LayoutData):
        return _to_jsonable(obj.to_dict())
    if is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: _to_jsonable(getattr(obj, f.name)) for f in fields(obj)}
    if isinstance(obj, dict):
        return {str(k): _to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_to_jsonable(x) for x in obj]
    if isinstance(obj, Decimal):
        return float(obj)
    if isinstance(obj, float):
        return round(obj, FLOAT_DIGITS)
    if isinstance(obj, Path):
        return str(obj)
    return obj


def option_to_dict(opt: ImpositionOption) -> Dict[str, Any]:
    """One option, layout_data in its nested renderer shape."""
    return _to_jsonable(opt)


def result_to_dict(result: PriceCalculationResult) -> Dict[str, Any]:
    """
    Convert a PriceCalculationResult to a JSON-friendly dict.
    Same result in -> byte-identical json.dumps out.
    """
    return {
        "input_summary": _to_jsonable(result.input_summary),
        "recommendation": _to_jsonable(result.recommendation),
        "pricing_summary": _to_jsonable(result.pricing_summary),
        "digital_cost": _to_jsonable(result.digital_cost),
        "best_offset_cost": _to_jsonable(result.best_offset_cost),
        "options": [option_to_dict(o) for o in result.options],
        "warnings": _to_jsonable(result.warnings),
    }


def save_result_json(result: PriceCalculationResult, path: str | Path, *, indent: int = 2) -> None:
    """Save the full result (options + layouts + costs) for debugging/integration."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(result_to_dict(result), f, ensure_ascii=False, indent=indent)
