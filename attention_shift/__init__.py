"""Threshold ISI analysis for the visual attention-shifting task."""

from .errors import DataFormatError, EmptyGroupWarning, InsufficientDataError

__version__ = "0.1.0"

__all__ = ["DataFormatError", "EmptyGroupWarning", "InsufficientDataError", "__version__"]
