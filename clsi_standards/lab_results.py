"""Lab result intake, auto-validation and reviewer sign-off."""

import logging
from collections import Counter
from datetime import datetime

from .exceptions import CLSIStandardsError, LabResultNotFoundError, LabResultValidationError
from .interpretation import InterpretationService
from .models import LabResult, RuleType, TestMethod, ValidationStatus
from .repositories.base import LabResultRepository

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("sample_id", "microorganism_id", "drug_id", "test_method", "raw_result", "technician")


class LabResultService:
    """Store lab results and write interpretations back onto them."""

    def __init__(
        self,
        lab_result_repository: LabResultRepository,
        interpretation_service: InterpretationService,
    ):
        self.lab_results = lab_result_repository
        self.interpretation = interpretation_service

    def get_all_lab_results(self) -> list[LabResult]:
        return self.lab_results.find_all()

    def get_lab_result(self, result_id: str) -> LabResult:
        """Raises LabResultNotFoundError for an unknown id."""
        lab_result = self.lab_results.find_by_id(result_id)
        if lab_result is None:
            raise LabResultNotFoundError(f"Lab result not found: {result_id}")
        return lab_result

    def get_lab_results_by_status(self, status: ValidationStatus | str) -> list[LabResult]:
        return self.lab_results.find_by_validation_status(ValidationStatus(status))

    def get_pending_validation_results(self) -> list[LabResult]:
        return self.get_lab_results_by_status(ValidationStatus.PENDING)

    def get_results_requiring_review(self) -> list[LabResult]:
        return self.get_lab_results_by_status(ValidationStatus.REQUIRES_REVIEW)

    def get_validated_results(self) -> list[LabResult]:
        return self.get_lab_results_by_status(ValidationStatus.VALIDATED)

    def create_lab_result(self, **data) -> LabResult:
        """Store a new result and auto-validate it.

        Raises:
            LabResultValidationError: If a required field is missing or the
                test method is unknown
        """
        missing = [name for name in REQUIRED_FIELDS if data.get(name) in (None, "")]
        if missing:
            raise LabResultValidationError(f"Missing required fields: {', '.join(missing)}")

        try:
            TestMethod(data["test_method"])
        except ValueError as e:
            raise LabResultValidationError(f"Unknown test method: {data['test_method']}") from e

        test_date = data.get("test_date")
        if isinstance(test_date, str):
            try:
                test_date = datetime.fromisoformat(test_date)
            except ValueError as e:
                raise LabResultValidationError(f"Invalid test_date: {test_date}") from e

        lab_result = LabResult.create(
            sample_id=data["sample_id"],
            microorganism_id=data["microorganism_id"],
            drug_id=data["drug_id"],
            test_method=data["test_method"],
            raw_result=data["raw_result"],
            technician=data["technician"],
            test_date=test_date,
            instrument_id=data.get("instrument_id"),
            comments=data.get("comments"),
        )
        self.lab_results.save(lab_result)
        return self.auto_validate_result(lab_result.id, year=data.get("year"))

    def auto_validate_result(self, result_id: str, year: int | None = None) -> LabResult:
        """Interpret the raw result and record the outcome on the lab result.

        Results that cannot be interpreted (a value that is not a finite,
        non-negative number, or no applicable standard) go to manual review.
        """
        lab_result = self.get_lab_result(result_id)

        value = lab_result.numeric_value()
        if value is None:
            return self._mark_for_review(
                lab_result, f"Raw result is not a valid measurement: {lab_result.raw_result!r}"
            )

        outcome = self.interpretation.interpret_and_validate(
            lab_result.microorganism_id,
            lab_result.drug_id,
            value,
            lab_result.test_method,
            year=year,
        )
        if outcome is None:
            return self._mark_for_review(
                lab_result,
                f"No breakpoint standard for {lab_result.microorganism_id}/"
                f"{lab_result.drug_id} {lab_result.test_method.value}",
            )

        validation = outcome.validation
        qc_failed = any(r.rule_type == RuleType.QUALITY_CONTROL for r in validation.triggered_rules)

        lab_result.interpretation = outcome.result
        lab_result.breakpoint_used = outcome.breakpoint_reference
        lab_result.expert_rules_applied = validation.triggered_rule_ids
        lab_result.validation_status = outcome.suggested_status()
        lab_result.validation_comments = "; ".join(
            validation.errors + validation.warnings + validation.recommendations
        ) or None
        lab_result.quality_control_passed = validation.is_valid and not qc_failed
        lab_result.report_date = datetime.now()

        self.lab_results.update(lab_result)
        logger.info(
            f"Auto-validated lab result {lab_result.id}: "
            f"{outcome.result.short_code} ({lab_result.validation_status.value})"
        )
        return lab_result

    def _mark_for_review(self, lab_result: LabResult, reason: str) -> LabResult:
        lab_result.interpretation = None
        lab_result.breakpoint_used = None
        lab_result.expert_rules_applied = []
        lab_result.validation_status = ValidationStatus.REQUIRES_REVIEW
        lab_result.validation_comments = f"Auto-validation failed: {reason}"
        lab_result.quality_control_passed = False
        self.lab_results.update(lab_result)
        logger.warning(f"Lab result {lab_result.id} requires review: {reason}")
        return lab_result

    def validate_lab_result(
        self,
        result_id: str,
        reviewed_by: str,
        comments: str | None = None,
    ) -> LabResult:
        """Reviewer sign-off."""
        lab_result = self.get_lab_result(result_id)
        lab_result.validation_status = ValidationStatus.VALIDATED
        lab_result.reviewed_by = reviewed_by
        if comments:
            lab_result.validation_comments = comments
        lab_result.report_date = lab_result.report_date or datetime.now()
        self.lab_results.update(lab_result)
        logger.info(f"Lab result {result_id} validated by {reviewed_by}")
        return lab_result

    def reject_lab_result(self, result_id: str, reviewed_by: str, reason: str) -> LabResult:
        lab_result = self.get_lab_result(result_id)
        lab_result.validation_status = ValidationStatus.REJECTED
        lab_result.reviewed_by = reviewed_by
        lab_result.validation_comments = reason
        self.lab_results.update(lab_result)
        logger.info(f"Lab result {result_id} rejected by {reviewed_by}: {reason}")
        return lab_result

    def bulk_validate_results(self, result_ids: list[str], reviewed_by: str) -> dict:
        """Re-run auto-validation and sign off each result.

        One failing id never stops the rest of the batch.
        """
        successful = 0
        failed = 0
        errors = []

        for result_id in result_ids:
            try:
                self.auto_validate_result(result_id)
                self.validate_lab_result(result_id, reviewed_by)
                successful += 1
            except CLSIStandardsError as e:
                failed += 1
                errors.append(f"Result {result_id}: {e}")

        return {"successful": successful, "failed": failed, "errors": errors}

    def get_statistics(self) -> dict:
        results = self.lab_results.find_all()
        total = len(results)
        passed = sum(1 for r in results if r.quality_control_passed)

        return {
            "total_results": total,
            "results_by_method": dict(Counter(r.test_method.value for r in results)),
            "results_by_interpretation": dict(Counter(
                r.interpretation.short_code for r in results if r.interpretation
            )),
            "validation_stats": dict(Counter(r.validation_status.value for r in results)),
            "quality_control_stats": {
                "passed": passed,
                "failed": total - passed,
                "percentage": round(passed / total * 100, 1) if total else 0.0,
            },
        }
