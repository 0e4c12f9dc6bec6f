"""Utility modules."""

from .choice import CandidatePicker
from .logging_setup import setup_logging

__all__ = [
    "CandidatePicker",
    "setup_logging",
]
