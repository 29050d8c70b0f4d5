"""
Configuration for the slicer: environment settings and per-call options.
"""

from .config import Settings, settings
from .slice_settings import ExtractionStrategy, PivotCorrect, RatioFilter, SliceOptions

__all__ = ['Settings', 'settings', 'ExtractionStrategy', 'PivotCorrect', 'RatioFilter', 'SliceOptions']
