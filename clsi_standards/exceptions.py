"""Exceptions raised by the CLSI standards services."""


class CLSIStandardsError(Exception):
    """Base class for domain errors."""


class InvalidBreakpointError(CLSIStandardsError):
    """Breakpoint bounds are inconsistent with the test method."""


class DuplicateStandardError(CLSIStandardsError):
    """A standard already exists for this microorganism/drug/year/method."""


class LabResultNotFoundError(CLSIStandardsError):
    """No lab result exists with the requested id."""


class LabResultValidationError(CLSIStandardsError):
    """A lab result request is missing required fields."""


class InvalidMeasurementError(CLSIStandardsError):
    """A test value is not a finite, non-negative measurement."""
