"""CLSI breakpoint interpretation and expert rule validation."""

from .models import (
    TestMethod,
    SensitivityResult,
    Confidence,
    RuleType,
    RuleState,
    ValidationStatus,
    BreakpointStandard,
    ExpertRule,
    LabResult,
)
from .exceptions import (
    CLSIStandardsError,
    InvalidBreakpointError,
    DuplicateStandardError,
    LabResultNotFoundError,
    LabResultValidationError,
)
from .interpretation import InterpretationResult, InterpretationService
from .lab_results import LabResultService
from .services import Services, create_services

__version__ = "0.1.0"

__all__ = [
    "TestMethod",
    "SensitivityResult",
    "Confidence",
    "RuleType",
    "RuleState",
    "ValidationStatus",
    "BreakpointStandard",
    "ExpertRule",
    "LabResult",
    "CLSIStandardsError",
    "InvalidBreakpointError",
    "DuplicateStandardError",
    "LabResultNotFoundError",
    "LabResultValidationError",
    "InterpretationResult",
    "InterpretationService",
    "LabResultService",
    "Services",
    "create_services",
]
