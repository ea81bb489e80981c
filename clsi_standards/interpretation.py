"""Interpret a measurement and run expert rules over it.

Resolves the breakpoint standard (exact year or latest), maps the value to
S/I/R, then lets the expert rules engine confirm or override the result.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from .breakpoints.interpreter import (
    calculate_confidence,
    check_measurement,
    interpret,
    interpretation_notes,
)
from .breakpoints.service import BreakpointStandardService
from .models import (
    BreakpointStandard,
    Confidence,
    SensitivityResult,
    TestMethod,
    ValidationStatus,
)
from .rules.engine import ExpertRulesEngine
from .rules.schemas import RuleEvaluationContext, ValidationResult

logger = logging.getLogger(__name__)


@dataclass
class InterpretationResult:
    """Final interpretation with the standard and rules that produced it."""
    result: SensitivityResult
    raw_result: SensitivityResult
    standard: BreakpointStandard
    confidence: Confidence
    notes: str
    breakpoint_reference: str
    validation: ValidationResult
    test_value: float = 0.0
    notes_list: list[str] = field(default_factory=list, repr=False)

    @property
    def overridden(self) -> bool:
        return self.validation.overridden_by is not None

    def suggested_status(self) -> ValidationStatus:
        """Status to write onto a lab result carrying this interpretation."""
        if (
            self.validation.is_valid
            and self.confidence == Confidence.HIGH
            and not self.validation.requires_review
        ):
            return ValidationStatus.VALIDATED
        return ValidationStatus.REQUIRES_REVIEW

    def to_dict(self) -> dict[str, Any]:
        return {
            "interpretation": self.result.value,
            "short_code": self.result.short_code,
            "raw_interpretation": self.raw_result.value,
            "confidence": self.confidence.value,
            "test_value": self.test_value,
            "notes": self.notes,
            "breakpoint_reference": self.breakpoint_reference,
            "breakpoint_standard": self.standard.to_dict(),
            "suggested_status": self.suggested_status().value,
            "validation": self.validation.to_dict(),
        }


class InterpretationService:
    """Combine breakpoint lookup, interpretation and expert rules."""

    def __init__(
        self,
        breakpoint_service: BreakpointStandardService,
        rules_engine: ExpertRulesEngine,
    ):
        self.breakpoints = breakpoint_service
        self.engine = rules_engine

    def interpret_and_validate(
        self,
        microorganism_id: str,
        drug_id: str,
        test_value: float,
        method: TestMethod | str,
        year: int | None = None,
        additional_data: dict[str, Any] | None = None,
    ) -> InterpretationResult | None:
        """Interpret a raw measurement.

        Args:
            microorganism_id: Opaque microorganism reference
            drug_id: Opaque drug reference
            test_value: Zone diameter (mm) or MIC (µg/mL)
            method: Test method
            year: Pin a standard year; latest active year when None
            additional_data: Extra fields visible to rule conditions

        Returns:
            InterpretationResult, or None if no standard applies

        Raises:
            InvalidMeasurementError: If test_value is non-finite or negative
        """
        value = check_measurement(test_value)
        method = TestMethod(method)
        standard = self.breakpoints.resolve(microorganism_id, drug_id, method, year)
        if standard is None:
            logger.info(
                f"No breakpoint standard for {microorganism_id}/{drug_id} "
                f"{method.value}" + (f" in {year}" if year is not None else "")
            )
            return None

        raw = interpret(standard, value)
        confidence = calculate_confidence(standard, value, raw)

        context = RuleEvaluationContext(
            microorganism_id=microorganism_id,
            drug_id=drug_id,
            test_value=value,
            test_method=method,
            interpreted_result=raw,
            year=standard.year,
            additional_data=dict(additional_data or {}),
        )
        validation = self.engine.validate_result(context)

        overriding = validation.overriding_rule()
        if overriding is not None:
            confidence = overriding.confidence

        notes = interpretation_notes(standard, value, raw)
        notes.extend(rule.message for rule in validation.triggered_rules)

        return InterpretationResult(
            result=validation.final_result,
            raw_result=raw,
            standard=standard,
            confidence=confidence,
            notes=" ".join(notes),
            breakpoint_reference=standard.reference(),
            validation=validation,
            test_value=value,
            notes_list=notes,
        )
