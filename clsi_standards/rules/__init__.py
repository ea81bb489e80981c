"""Expert rules engine for interpreted susceptibility results.

Rule conditions are parsed into a small expression tree and evaluated
deterministically against the test context. The engine decides the final
S/I/R; the service layer manages the stored rule set.
"""

from .conditions import (
    ConditionError,
    ConditionSyntaxError,
    ConditionEvaluationError,
    parse_condition,
    evaluate_condition,
)
from .schemas import RuleEvaluationContext, RuleEvaluationResult, ValidationResult
from .engine import ExpertRulesEngine
from .service import ExpertRuleService

__all__ = [
    "ConditionError",
    "ConditionSyntaxError",
    "ConditionEvaluationError",
    "parse_condition",
    "evaluate_condition",
    "RuleEvaluationContext",
    "RuleEvaluationResult",
    "ValidationResult",
    "ExpertRulesEngine",
    "ExpertRuleService",
]
