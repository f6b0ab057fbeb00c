# imposition_solver/io_csv.py
# CSV export helpers:
# - one row per ranked option (for quoting spreadsheets)
# - tile coordinates of one option (for prepress verification)
#
# (Drawings are handled in plotting.py.)

from __future__ import annotations

import csv
from pathlib import Path

from .types import ImpositionOption, PriceCalculationResult

OPTION_FIELDS = [
    "option_rank",
    "production_method",
    "sheet_size_id",
    "sheet_size_name",
    "paper_type_id",
    "orientation",
    "cols",
    "rows",
    "items_per_sheet",
    "machine_sheets_per_parent",
    "net_machine_sheets",
    "waste_sheets",
    "total_machine_sheets",
    "parent_sheets_needed",
    "impressions",
    "total_plates",
    "sheet_utilization",
    "is_shrink_used",
    "final_width_cm",
    "final_height_cm",
    "paper_cost",
    "printing_cost",
    "setup_cost",
    "waste_cost",
    "finishing_cost",
    "total_cost",
    "cost_per_unit",
    "cost_saving_amount",
    "cost_saving_percent",
    "warnings",
]


def export_options_csv(result: PriceCalculationResult, path: str | Path) -> None:
    """
    Write ranked options into a CSV file.
    Money columns keep their two-decimal Decimal text; warnings are joined by '; '.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=OPTION_FIELDS)
        w.writeheader()
        for opt in result.options:
            row = {name: getattr(opt, name) for name in OPTION_FIELDS if name != "warnings"}
            row["paper_type_id"] = opt.paper_type_id if opt.paper_type_id is not None else ""
            row["is_shrink_used"] = int(bool(opt.is_shrink_used))
            row["warnings"] = "; ".join(f"{x.severity}:{x.type}" for x in opt.warnings)
            w.writerow(row)


def export_coordinates_csv(option: ImpositionOption, path: str | Path) -> None:
    """
    Tile rectangles of one option on its machine sheet.
    Coordinates are in cm from the top-left corner; the gripper strip is above y=gripper.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=["row", "col", "x", "y", "w", "h"])
        w.writeheader()
        for c in option.layout_data.coordinates:
            w.writerow(
                {
                    "row": c.row,
                    "col": c.col,
                    "x": round(c.x, 4),
                    "y": round(c.y, 4),
                    "w": round(c.w, 4),
                    "h": round(c.h, 4),
                }
            )
