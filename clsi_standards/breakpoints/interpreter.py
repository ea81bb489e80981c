"""Breakpoint interpretation: raw measurement -> S/I/R.

Disk diffusion reports a zone diameter in mm, where a larger zone means a
more susceptible organism. MIC methods report a concentration in µg/mL,
where a smaller value means a more susceptible organism, so every threshold
comparison is mirrored between the two.

Reference: CLSI M100, Performance Standards for Antimicrobial Susceptibility
Testing.
"""

import math

from ..exceptions import InvalidMeasurementError
from ..models import BreakpointStandard, Confidence, SensitivityResult

# Disk diffusion margin (mm) from the deciding boundary
DISK_HIGH_MARGIN_MM = 3
DISK_MEDIUM_MARGIN_MM = 1

# MIC ratio (value / boundary) cutoffs
MIC_SUSCEPTIBLE_HIGH_RATIO = 0.5
MIC_SUSCEPTIBLE_MEDIUM_RATIO = 0.8
MIC_RESISTANT_HIGH_RATIO = 2.0
MIC_RESISTANT_MEDIUM_RATIO = 1.5

INTERMEDIATE_ADVISORY = (
    "Intermediate results may require clinical correlation and "
    "consideration of alternative therapy."
)


def check_measurement(test_value) -> float:
    """Return the value as a float, rejecting non-finite and negative readings.

    Raises:
        InvalidMeasurementError: If the value is not a usable measurement
    """
    try:
        value = float(test_value)
    except (TypeError, ValueError):
        raise InvalidMeasurementError(f"Test value is not numeric: {test_value!r}")
    if not math.isfinite(value):
        raise InvalidMeasurementError(f"Test value must be finite, got {test_value!r}")
    if value < 0:
        raise InvalidMeasurementError(f"Test value cannot be negative, got {test_value!r}")
    return value


def _interpret_disk(standard: BreakpointStandard, value: float) -> SensitivityResult:
    if standard.susceptible_min is not None and value >= standard.susceptible_min:
        return SensitivityResult.SUSCEPTIBLE
    if standard.resistant_max is not None:
        if value <= standard.resistant_max:
            return SensitivityResult.RESISTANT
        return SensitivityResult.INTERMEDIATE
    if standard.intermediate_min is not None:
        if value < standard.intermediate_min:
            return SensitivityResult.RESISTANT
        return SensitivityResult.INTERMEDIATE
    return SensitivityResult.RESISTANT


def _interpret_mic(standard: BreakpointStandard, value: float) -> SensitivityResult:
    if standard.susceptible_max is not None and value <= standard.susceptible_max:
        return SensitivityResult.SUSCEPTIBLE
    if standard.resistant_min is not None:
        if value >= standard.resistant_min:
            return SensitivityResult.RESISTANT
        return SensitivityResult.INTERMEDIATE
    if standard.intermediate_max is not None:
        if value > standard.intermediate_max:
            return SensitivityResult.RESISTANT
        return SensitivityResult.INTERMEDIATE
    return SensitivityResult.RESISTANT


def interpret(standard: BreakpointStandard, test_value: float) -> SensitivityResult:
    """Map a raw test value to S/I/R using the standard's cutoffs.

    Disk diffusion: S at or above susceptible_min, R at or below
    resistant_max (or below intermediate_min when no resistant bound is
    set), I in between. MIC: S at or below susceptible_max, R at or above
    resistant_min (or above intermediate_max), I in between. A standard
    with no usable bound at all interprets everything outside S as R.

    Raises:
        InvalidMeasurementError: If the value is non-finite or negative
    """
    value = check_measurement(test_value)
    if standard.is_mic:
        return _interpret_mic(standard, value)
    return _interpret_disk(standard, value)


def _margin_confidence(margin: float) -> Confidence:
    if margin >= DISK_HIGH_MARGIN_MM:
        return Confidence.HIGH
    if margin >= DISK_MEDIUM_MARGIN_MM:
        return Confidence.MEDIUM
    return Confidence.LOW


def calculate_confidence(
    standard: BreakpointStandard,
    test_value: float,
    result: SensitivityResult,
) -> Confidence:
    """Score how far the value sits from the boundary that decided it.

    Disk diffusion uses the margin in mm; MIC uses the ratio of the value to
    the boundary. Intermediate results are low confidence; S or R results
    with no boundary to measure against default to medium.
    """
    value = float(test_value)

    if not standard.is_mic:
        if result == SensitivityResult.SUSCEPTIBLE and standard.susceptible_min:
            return _margin_confidence(value - standard.susceptible_min)
        if result == SensitivityResult.RESISTANT:
            if standard.intermediate_min:
                return _margin_confidence(standard.intermediate_min - value)
            if standard.resistant_max:
                return _margin_confidence(standard.resistant_max - value)
    else:
        if result == SensitivityResult.SUSCEPTIBLE and standard.susceptible_max:
            ratio = value / standard.susceptible_max
            if ratio <= MIC_SUSCEPTIBLE_HIGH_RATIO:
                return Confidence.HIGH
            if ratio <= MIC_SUSCEPTIBLE_MEDIUM_RATIO:
                return Confidence.MEDIUM
            return Confidence.LOW
        if result == SensitivityResult.RESISTANT:
            boundary = standard.intermediate_max or standard.resistant_min
            if boundary:
                ratio = value / boundary
                if ratio >= MIC_RESISTANT_HIGH_RATIO:
                    return Confidence.HIGH
                if ratio >= MIC_RESISTANT_MEDIUM_RATIO:
                    return Confidence.MEDIUM
                return Confidence.LOW

    if result == SensitivityResult.INTERMEDIATE:
        return Confidence.LOW
    return Confidence.MEDIUM


def format_value(value: float) -> str:
    """Render 18.0 as "18" and 0.25 as "0.25"."""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return f"{value:g}"


def describe_measurement(standard: BreakpointStandard, test_value: float) -> str:
    if standard.is_mic:
        return f"MIC: {format_value(test_value)} µg/mL"
    return f"Zone diameter: {format_value(test_value)}mm"


def interpretation_notes(
    standard: BreakpointStandard,
    test_value: float,
    result: SensitivityResult,
) -> list[str]:
    """Build the note fragments for an interpreted result."""
    notes = []
    if standard.notes:
        notes.append(f"Standard notes: {standard.notes}")
    if result == SensitivityResult.INTERMEDIATE:
        notes.append(INTERMEDIATE_ADVISORY)
    notes.append(describe_measurement(standard, test_value))
    return notes
