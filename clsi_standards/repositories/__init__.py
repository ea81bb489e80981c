"""Storage for breakpoint standards, expert rules and lab results."""

from .base import (
    BreakpointStandardRepository,
    ExpertRuleRepository,
    LabResultRepository,
)
from .sqlite import (
    StandardsDatabase,
    SqliteBreakpointStandardRepository,
    SqliteExpertRuleRepository,
    SqliteLabResultRepository,
)

__all__ = [
    "BreakpointStandardRepository",
    "ExpertRuleRepository",
    "LabResultRepository",
    "StandardsDatabase",
    "SqliteBreakpointStandardRepository",
    "SqliteExpertRuleRepository",
    "SqliteLabResultRepository",
]
