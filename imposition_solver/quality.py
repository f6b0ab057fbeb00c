# imposition_solver/quality.py
# Quality warnings for one candidate.
# Warnings annotate options; they never remove them.
#
# Severity: info < warning < danger
# - danger is reserved for layouts that are producible but sit at the physical limits.

from __future__ import annotations

from typing import Iterable, List, Tuple

from .config import ResolvedInput
from .solver_grid import GridFit
from .types import SEVERITY_ORDER, QualityWarning, SheetCounts

EPS = 1e-6


def _design_warnings(resolved: ResolvedInput) -> List[QualityWarning]:
    cfg = resolved.pricing
    product = resolved.product
    out: List[QualityWarning] = []

    if product.has_text and product.min_font_size_pt is not None:
        if product.min_font_size_pt < cfg.min_text_size_pt:
            out.append(
                QualityWarning(
                    type="small_text",
                    severity="warning",
                    message=(
                        f"Smallest type is {product.min_font_size_pt:g} pt, "
                        f"below the {cfg.min_text_size_pt:g} pt minimum"
                    ),
                )
            )

    if product.has_images and product.image_dpi is not None:
        if product.image_dpi < cfg.min_image_dpi:
            out.append(
                QualityWarning(
                    type="low_resolution",
                    severity="warning",
                    message=f"Images are {product.image_dpi} dpi, below the {cfg.min_image_dpi} dpi minimum",
                )
            )

    if product.has_folding and not any(op.pricing_type == "per_fold" for op in resolved.finishing_operations):
        out.append(
            QualityWarning(
                type="folding_not_priced",
                severity="info",
                message="Product needs folding but no fold operation is selected",
            )
        )
    return out


def _layout_warnings(resolved: ResolvedInput, fit: GridFit, utilization: float) -> List[QualityWarning]:
    params = resolved.params
    max_shrink = resolved.max_shrink_cm
    out: List[QualityWarning] = []

    if fit.is_shrink_used:
        used = fit.shrink_width_cm + fit.shrink_height_cm
        if used > params.shrink_warning_ratio * max_shrink + EPS:
            out.append(
                QualityWarning(
                    type="excessive_shrink",
                    severity="warning",
                    message=(
                        f"Product shrunk by {fit.shrink_width_cm:g} x {fit.shrink_height_cm:g} cm, "
                        f"more than {params.shrink_warning_ratio:.0%} of the {max_shrink:g} cm allowance"
                    ),
                )
            )
        if used >= max_shrink - EPS and utilization < params.danger_utilization_percent:
            out.append(
                QualityWarning(
                    type="shrink_limit",
                    severity="danger",
                    message=(
                        f"Shrink allowance exhausted and only {utilization:.1f}% of the sheet is used"
                    ),
                )
            )

    if utilization < params.low_utilization_percent:
        out.append(
            QualityWarning(
                type="low_utilization",
                severity="info",
                message=f"Only {utilization:.1f}% of the machine sheet is covered",
            )
        )
    return out


def _volume_warnings(resolved: ResolvedInput, method: str, counts: SheetCounts) -> List[QualityWarning]:
    if method != "offset":
        return []
    min_sheets = int(resolved.pricing.offset_min_sheets)
    limit = min_sheets * (1 + resolved.params.offset_marginal_ratio)
    if counts.total_machine_sheets <= limit:
        return [
            QualityWarning(
                type="offset_low_volume",
                severity="info",
                message=(
                    f"{counts.total_machine_sheets} machine sheets is close to the offset minimum "
                    f"of {min_sheets}; digital may be cheaper at this volume"
                ),
            )
        ]
    return []


def evaluate_quality(
    resolved: ResolvedInput,
    method: str,
    fit: GridFit,
    counts: SheetCounts,
    utilization: float,
) -> Tuple[QualityWarning, ...]:
    warnings = (
        _design_warnings(resolved)
        + _layout_warnings(resolved, fit, utilization)
        + _volume_warnings(resolved, method, counts)
    )
    return tuple(warnings)


def dedupe_warnings(groups: Iterable[Iterable[QualityWarning]]) -> Tuple[QualityWarning, ...]:
    """Union keeping first occurrence; most severe first, then by type."""
    seen = set()
    out: List[QualityWarning] = []
    for group in groups:
        for w in group:
            key = (w.type, w.severity, w.message)
            if key in seen:
                continue
            seen.add(key)
            out.append(w)
    return tuple(sorted(out, key=lambda w: (-SEVERITY_ORDER[w.severity], w.type, w.message)))
