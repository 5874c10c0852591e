"""
Fit Procedures
==============

Declarative descriptions of the title-fit, viewport-fit, and bottom-reserve
routines. The same records are executed from Python against a live page
(``interpreter``) and lowered to inline script text for static documents
(``scripts``), so both environments share one set of constants.
"""

from dataclasses import dataclass
from typing import Tuple

from cardrender.models.schemas import TitleConfig

TITLE_SELECTORS: Tuple[str, ...] = (
    ".js-title-text",
    ".main-title",
    ".content-wrapper h1",
    "h1",
)
WRAPPER_SELECTORS: Tuple[str, ...] = (".content-wrapper", ".main-container")
CONTAINER_SELECTOR = ".main-container"

TITLE_WIDTH_BUDGET = 1700
TITLE_STEP = 1
TITLE_GUARD_LIMIT = 100
VIEWPORT_HEIGHT_BUDGET = 1040
VIEWPORT_MIN_SCALE = 0.6
FIT_SETTLE_MS = 50
LAYOUT_CHANGE_EVENT = "p2v:layout-change"
RESERVE_DATA_KEY = "p2vBottomReserved"


@dataclass(frozen=True)
class TitleFitProcedure:
    """Shrink the main title one step at a time until it fits the width budget."""

    initial_size: int
    min_size: int
    width_budget: int = TITLE_WIDTH_BUDGET
    step: int = TITLE_STEP
    guard_limit: int = TITLE_GUARD_LIMIT
    selectors: Tuple[str, ...] = TITLE_SELECTORS

    @classmethod
    def from_title_config(cls, config: TitleConfig) -> "TitleFitProcedure":
        return cls(initial_size=config.initial_font_size, min_size=config.min_font_size)


@dataclass(frozen=True)
class ViewportFitProcedure:
    """Uniformly shrink the content wrapper when it overflows the height budget."""

    height_budget: int = VIEWPORT_HEIGHT_BUDGET
    min_scale: float = VIEWPORT_MIN_SCALE
    selectors: Tuple[str, ...] = WRAPPER_SELECTORS
    settle_ms: int = FIT_SETTLE_MS

    def budget_for(self, bottom_reserved: float) -> float:
        return max(0.0, self.height_budget - max(0.0, bottom_reserved))

    def scale_for(self, content_height: float, bottom_reserved: float) -> float:
        """
        Scale to apply for a measured content height.

        Returns 1.0 when the content fits, otherwise the ratio of budget to
        height floored at ``min_scale``.
        """
        budget = self.budget_for(bottom_reserved)
        if content_height <= 0 or content_height <= budget:
            return 1.0
        return max(self.min_scale, budget / content_height)


@dataclass(frozen=True)
class BottomReserveProcedure:
    """Pad the bottom of the container so a footer strip stays clear."""

    reserve_px: int
    selector: str = CONTAINER_SELECTOR
    data_key: str = RESERVE_DATA_KEY
    event_name: str = LAYOUT_CHANGE_EVENT
