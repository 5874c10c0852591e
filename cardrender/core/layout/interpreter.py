"""
Fit Procedure Interpreter
=========================

Executes fit procedures from Python against a live document. The document is
reached through the ``LiveDocument`` protocol; ``cardrender.core.rendering.live``
provides the Playwright implementation for a mounted subtree.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

from cardrender.config.logging import get_logger
from cardrender.core.layout.procedures import (
    BottomReserveProcedure,
    TitleFitProcedure,
    ViewportFitProcedure,
)

logger = get_logger(__name__)

FITS = "fits"
AT_FLOOR = "floor"
GUARD_HIT = "guard"
NO_TARGET = "missing"


class LiveDocument(Protocol):
    """Measurement and mutation primitives a fit procedure needs."""

    async def measure_title_width(self, selectors: Sequence[str]) -> Optional[float]:
        ...

    async def set_title_font_size(self, selectors: Sequence[str], size_px: int) -> None:
        ...

    async def measure_content_height(self, selectors: Sequence[str]) -> Optional[float]:
        ...

    async def apply_scale(self, selectors: Sequence[str], scale: float) -> None:
        ...

    async def clear_scale(self, selectors: Sequence[str]) -> None:
        ...

    async def read_bottom_reserve(self) -> float:
        ...

    async def apply_bottom_reserve(self, procedure: BottomReserveProcedure) -> None:
        ...


@dataclass(frozen=True)
class TitleFitResult:
    font_size: Optional[int]
    iterations: int
    outcome: str


@dataclass(frozen=True)
class ViewportFitResult:
    scale: float
    content_height: Optional[float]
    budget: float


async def run_title_fit(document: LiveDocument, procedure: TitleFitProcedure) -> TitleFitResult:
    """
    Shrink the title from ``initial_size`` until it fits.

    Fitting, reaching the floor, and hitting the guard are all terminal
    states; none of them is an error. The search is linear and restarts from
    ``initial_size`` on every run, so a second run at the floor ends at the
    same size.

    Args:
        document: Live document to measure and mutate
        procedure: Title fit parameters

    Returns:
        TitleFitResult with the final size and how the loop ended
    """
    size = procedure.initial_size
    width = await document.measure_title_width(procedure.selectors)
    if width is None:
        return TitleFitResult(font_size=None, iterations=0, outcome=NO_TARGET)

    await document.set_title_font_size(procedure.selectors, size)
    width = await document.measure_title_width(procedure.selectors) or 0.0

    guard = 0
    while width > procedure.width_budget and size > procedure.min_size and guard < procedure.guard_limit:
        size -= procedure.step
        await document.set_title_font_size(procedure.selectors, size)
        width = await document.measure_title_width(procedure.selectors) or 0.0
        guard += 1

    if width <= procedure.width_budget:
        outcome = FITS
    elif size <= procedure.min_size:
        outcome = AT_FLOOR
    else:
        outcome = GUARD_HIT

    logger.debug("Title fit finished", font_size=size, iterations=guard, outcome=outcome)
    return TitleFitResult(font_size=size, iterations=guard, outcome=outcome)


async def run_viewport_fit(
    document: LiveDocument, procedure: ViewportFitProcedure, settle: bool = True
) -> ViewportFitResult:
    """
    Shrink the content wrapper uniformly when it overflows the height budget.

    A previous shrink is cleared when the content fits again. The applied
    scale is always within ``[procedure.min_scale, 1.0]``.
    """
    if settle and procedure.settle_ms > 0:
        await asyncio.sleep(procedure.settle_ms / 1000)

    reserved = await document.read_bottom_reserve()
    budget = procedure.budget_for(reserved)
    height = await document.measure_content_height(procedure.selectors)
    if height is None:
        return ViewportFitResult(scale=1.0, content_height=None, budget=budget)

    scale = procedure.scale_for(height, reserved)
    if scale < 1.0:
        await document.apply_scale(procedure.selectors, scale)
    else:
        await document.clear_scale(procedure.selectors)

    logger.debug("Viewport fit finished", content_height=height, budget=budget, scale=scale)
    return ViewportFitResult(scale=scale, content_height=height, budget=budget)
