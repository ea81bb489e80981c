"""Schemas for the expert rules engine.

- RuleEvaluationContext: the interpreted test result a rule set runs over
- RuleEvaluationResult: the outcome of one rule
- ValidationResult: the aggregate outcome of the whole rule set
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..models import Confidence, RuleType, SensitivityResult, TestMethod


@dataclass
class RuleEvaluationContext:
    """What a rule condition can see. Never persisted."""
    microorganism_id: str
    drug_id: str
    test_value: float
    test_method: TestMethod
    interpreted_result: SensitivityResult
    year: int | None = None
    additional_data: dict[str, Any] = field(default_factory=dict)

    def effective_year(self) -> int:
        return self.year if self.year is not None else datetime.now().year

    def as_mapping(self) -> dict[str, Any]:
        """Field values for condition evaluation and action placeholders."""
        mapping = dict(self.additional_data)
        mapping.update({
            "microorganism_id": self.microorganism_id,
            "drug_id": self.drug_id,
            "test_value": float(self.test_value),
            "test_method": self.test_method,
            "interpreted_result": self.interpreted_result,
            "year": self.effective_year(),
        })
        return mapping


@dataclass
class RuleEvaluationResult:
    """Outcome of evaluating one expert rule."""
    rule_id: str
    rule_name: str
    rule_type: RuleType
    priority: int
    triggered: bool
    confidence: Confidence = Confidence.LOW
    action: str = ""
    message: str = ""
    recommendation: str | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "rule_type": self.rule_type.value,
            "priority": self.priority,
            "triggered": self.triggered,
            "confidence": self.confidence.value,
            "action": self.action,
            "message": self.message,
            "recommendation": self.recommendation,
            "error": self.error,
        }


@dataclass
class ValidationResult:
    """Aggregate outcome of running the applicable rule set.

    ``is_valid`` only reflects evaluation errors. Triggered rules are
    normal, informative output and never make a result invalid.
    """
    final_result: SensitivityResult
    triggered_rules: list[RuleEvaluationResult] = field(default_factory=list)
    evaluated_rules: list[RuleEvaluationResult] = field(default_factory=list)
    overridden_by: str | None = None
    requires_review: bool = False
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def triggered_rule_ids(self) -> list[str]:
        return [r.rule_id for r in self.triggered_rules]

    def overriding_rule(self) -> RuleEvaluationResult | None:
        for rule in self.triggered_rules:
            if rule.rule_id == self.overridden_by:
                return rule
        return None

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "final_result": self.final_result.value,
            "overridden_by": self.overridden_by,
            "requires_review": self.requires_review,
            "triggered_rules": [r.to_dict() for r in self.triggered_rules],
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "recommendations": list(self.recommendations),
        }
