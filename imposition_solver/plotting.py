# imposition_solver/plotting.py
# Minimal matplotlib visualization of one imposition option:
# - machine sheet with the gripper strip and every tile (bleed shaded around the trim box)
# - optional second panel: how the parent sheet is cut into machine sheets

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import matplotlib.pyplot as plt
from matplotlib.patches import Rectangle

from .types import CuttingLayout, ImpositionOption


@dataclass(frozen=True)
class PlotStyle:
    show_bleed: bool = True
    show_labels: bool = True
    show_parent: bool = True
    font_size: int = 7
    padding_cm: float = 2.0
    tile_color: Tuple[float, float, float] = (0.55, 0.75, 0.9)
    bleed_color: Tuple[float, float, float] = (0.9, 0.6, 0.6)
    gripper_color: Tuple[float, float, float] = (0.7, 0.7, 0.7)


def _option_title(opt: ImpositionOption) -> str:
    bits = [
        f"#{opt.option_rank} {opt.production_method}",
        opt.sheet_size_name,
        f"{opt.cols}x{opt.rows}={opt.items_per_sheet} ({opt.orientation})",
        f"util {opt.sheet_utilization:.1f}%",
        f"total {opt.total_cost}",
    ]
    return " | ".join(bits)


def plot_option(opt: ImpositionOption, ax: Optional[plt.Axes] = None, style: Optional[PlotStyle] = None) -> plt.Axes:
    """
    Draw the machine sheet of one option.
    y grows downward (gripper edge at the top), matching layout coordinates.
    """
    style = style or PlotStyle()
    layout = opt.layout_data
    if ax is None:
        _, ax = plt.subplots(figsize=(8, 6))

    W, H = layout.machine_width_cm, layout.machine_height_cm
    ax.add_patch(Rectangle((0, 0), W, H, fill=False, linewidth=1.2))
    if layout.gripper_margin_cm > 0:
        ax.add_patch(
            Rectangle((0, 0), W, layout.gripper_margin_cm, facecolor=style.gripper_color, edgecolor="none")
        )

    bleed = layout.bleed_cm
    for c in layout.coordinates:
        if style.show_bleed and bleed > 0:
            ax.add_patch(Rectangle((c.x, c.y), c.w, c.h, facecolor=style.bleed_color, edgecolor="none"))
            ax.add_patch(
                Rectangle(
                    (c.x + bleed, c.y + bleed),
                    c.w - 2 * bleed,
                    c.h - 2 * bleed,
                    facecolor=style.tile_color,
                    edgecolor="black",
                    linewidth=0.5,
                )
            )
        else:
            ax.add_patch(
                Rectangle((c.x, c.y), c.w, c.h, facecolor=style.tile_color, edgecolor="black", linewidth=0.5)
            )
        if style.show_labels:
            ax.text(
                c.x + c.w / 2,
                c.y + c.h / 2,
                f"{c.row + 1}.{c.col + 1}",
                ha="center",
                va="center",
                fontsize=style.font_size,
            )

    pad = style.padding_cm
    ax.set_xlim(-pad, W + pad)
    ax.set_ylim(H + pad, -pad)
    ax.set_aspect("equal", adjustable="box")
    ax.set_title(_option_title(opt), fontsize=9)
    ax.tick_params(labelsize=style.font_size)
    return ax


def plot_parent_cutting(cutting: CuttingLayout, ax: Optional[plt.Axes] = None, style: Optional[PlotStyle] = None) -> plt.Axes:
    """Parent sheet split into cuts_across x cuts_down machine sheets."""
    style = style or PlotStyle()
    if ax is None:
        _, ax = plt.subplots(figsize=(6, 4.5))

    PW, PH = cutting.parent_width_cm, cutting.parent_height_cm
    ax.add_patch(Rectangle((0, 0), PW, PH, fill=False, linewidth=1.2))
    for i in range(cutting.cuts_across):
        for j in range(cutting.cuts_down):
            x = i * cutting.machine_width_cm
            y = j * cutting.machine_height_cm
            ax.add_patch(
                Rectangle(
                    (x, y),
                    cutting.machine_width_cm,
                    cutting.machine_height_cm,
                    fill=False,
                    linestyle="--",
                    linewidth=0.8,
                )
            )

    pad = style.padding_cm
    ax.set_xlim(-pad, PW + pad)
    ax.set_ylim(PH + pad, -pad)
    ax.set_aspect("equal", adjustable="box")
    ax.set_title(
        f"Parent {PW:g}x{PH:g} cm -> {cutting.cutting_layout} "
        f"({cutting.machine_sheets_per_parent} machine sheets)",
        fontsize=9,
    )
    ax.tick_params(labelsize=style.font_size)
    return ax


def plot_option_figure(opt: ImpositionOption, style: Optional[PlotStyle] = None) -> plt.Figure:
    style = style or PlotStyle()
    with_parent = style.show_parent and opt.machine_sheets_per_parent > 1
    if with_parent:
        fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(13, 5))
        plot_option(opt, ax1, style)
        plot_parent_cutting(opt.layout_data.cutting, ax2, style)
    else:
        fig, ax = plt.subplots(figsize=(8, 6))
        plot_option(opt, ax, style)
    fig.tight_layout()
    return fig


def save_option_png(opt: ImpositionOption, path: str, style: Optional[PlotStyle] = None, dpi: int = 150) -> None:
    """Save the layout preview of one option to PNG."""
    fig = plot_option_figure(opt, style=style)
    fig.savefig(path, dpi=dpi, bbox_inches="tight")
    plt.close(fig)
