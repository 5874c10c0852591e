"""
Layout Fitting
==============

Deterministic layout plans plus the title and viewport fit procedures,
runnable from Python against a live page or lowered to inline script text.
"""

from cardrender.core.layout.calculator import compute_layout, compute_title_config
from cardrender.core.layout.procedures import (
    BottomReserveProcedure,
    TitleFitProcedure,
    ViewportFitProcedure,
)
from cardrender.core.layout.scripts import build_layout_script

__all__ = [
    "compute_layout",
    "compute_title_config",
    "TitleFitProcedure",
    "ViewportFitProcedure",
    "BottomReserveProcedure",
    "build_layout_script",
]
