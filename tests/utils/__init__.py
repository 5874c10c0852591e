"""
Test Utilities
==============

Fakes and helpers shared across the suite.
"""

from .fakes import *
