"""API routes."""

from .breakpoints import breakpoints_bp
from .rules import rules_bp
from .lab_results import lab_results_bp

__all__ = [
    "breakpoints_bp",
    "rules_bp",
    "lab_results_bp",
]
