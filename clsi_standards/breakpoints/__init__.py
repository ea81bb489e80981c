"""Breakpoint interpretation, version comparison and standard lookup."""

from .interpreter import (
    interpret,
    calculate_confidence,
    check_measurement,
    describe_measurement,
    interpretation_notes,
)
from .comparator import (
    BreakpointChange,
    BreakpointComparison,
    compare_breakpoint_versions,
)
from .service import BreakpointStandardService, validate_bounds

__all__ = [
    "interpret",
    "calculate_confidence",
    "check_measurement",
    "describe_measurement",
    "interpretation_notes",
    "BreakpointChange",
    "BreakpointComparison",
    "compare_breakpoint_versions",
    "BreakpointStandardService",
    "validate_bounds",
]
