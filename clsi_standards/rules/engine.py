"""Expert Rules Engine.

Runs the prioritized expert rule set over an interpreted susceptibility
result and decides the final S/I/R.

Decision Flow:
1. Gather candidate rules (microorganism+drug, microorganism only, drug
   only, global rules for the year), drop retired rules and rules for
   other years, deduplicate by id
2. Order by priority, highest first; ties keep lookup order
3. Evaluate each condition. A broken condition is recorded against its
   own rule and never stops the batch
4. Any triggered rule whose type is in the override policy (intrinsic
   resistance by default) forces RESISTANT
5. Other triggered rules are advisory: warnings, recommendations, and a
   review flag for QC / phenotype rules

Reference: CLSI M100 Appendix B (intrinsic resistance) and CLSI expert
rules guidance.
"""

import logging
import re
from enum import Enum

from ..config import Config
from ..breakpoints.interpreter import format_value
from ..models import Confidence, ExpertRule, RuleType, SensitivityResult
from ..repositories.base import ExpertRuleRepository
from .conditions import ConditionError, evaluate_condition, snake_case
from .schemas import RuleEvaluationContext, RuleEvaluationResult, ValidationResult

logger = logging.getLogger(__name__)

RECOMMENDATIONS = {
    RuleType.INTRINSIC_RESISTANCE: "Consider intrinsic resistance pattern. Review organism identification.",
    RuleType.ACQUIRED_RESISTANCE: "Possible acquired resistance. Consider additional testing or alternative therapy.",
    RuleType.EXCEPTIONAL_PHENOTYPE: "Exceptional phenotype. Confirm organism identification and repeat testing before reporting.",
    RuleType.QUALITY_CONTROL: "Review test procedure and quality control measures.",
    RuleType.PHENOTYPE_CONFIRMATION: "Perform confirmatory testing to verify phenotype.",
    RuleType.REPORTING_GUIDANCE: "Follow institutional reporting guidelines.",
}

_PLACEHOLDER_RE = re.compile(r"\{(\w+)\}")


def _parse_rule_types(values) -> frozenset[RuleType]:
    return frozenset(RuleType(v) for v in values)


class ExpertRulesEngine:
    """Apply expert rules to an interpreted result.

    Holds no per-call state, so one engine can serve concurrent requests.
    """

    def __init__(
        self,
        rule_repository: ExpertRuleRepository,
        override_rule_types=None,
        review_rule_types=None,
        clear_margin: float | None = None,
    ):
        self.rules = rule_repository
        self.override_rule_types = _parse_rule_types(
            Config.OVERRIDE_RULE_TYPES if override_rule_types is None else override_rule_types
        )
        self.review_rule_types = _parse_rule_types(
            Config.REVIEW_RULE_TYPES if review_rule_types is None else review_rule_types
        )
        self.clear_margin = Config.RULE_CLEAR_MARGIN if clear_margin is None else clear_margin

    def get_applicable_rules(
        self,
        microorganism_id: str,
        drug_id: str,
        year: int,
    ) -> list[ExpertRule]:
        """Union the four scoped lookups, filter, dedupe and order by priority."""
        candidates = [
            *self.rules.find_by_microorganism_and_drug(microorganism_id, drug_id, year),
            *self.rules.find_by_microorganism(microorganism_id),
            *self.rules.find_by_drug(drug_id),
            *self.rules.find_by_year(year),
        ]

        seen = set()
        applicable = []
        for rule in candidates:
            if rule.id in seen:
                continue
            seen.add(rule.id)
            if rule.is_active and rule.applies_to_year(year):
                applicable.append(rule)

        # sorted() is stable, so equal priorities keep lookup order
        return sorted(applicable, key=lambda r: r.priority, reverse=True)

    def format_action(self, rule: ExpertRule, context: RuleEvaluationContext) -> str:
        """Fill ``{field}`` placeholders in the rule action from the context."""
        mapping = context.as_mapping()

        def replace(match: re.Match) -> str:
            key = match.group(1)
            if key in mapping:
                value = mapping[key]
            elif snake_case(key) in mapping:
                value = mapping[snake_case(key)]
            else:
                return match.group(0)
            if isinstance(value, Enum):
                return str(value.value)
            if isinstance(value, float):
                return format_value(value)
            return str(value)

        return _PLACEHOLDER_RE.sub(replace, rule.action)

    def evaluate_rule(
        self,
        rule: ExpertRule,
        context: RuleEvaluationContext,
    ) -> RuleEvaluationResult:
        """Evaluate one rule. Condition failures are captured, not raised."""
        result = RuleEvaluationResult(
            rule_id=rule.id,
            rule_name=rule.name,
            rule_type=rule.rule_type,
            priority=rule.priority,
            triggered=False,
        )

        try:
            evaluation = evaluate_condition(rule.condition, context.as_mapping())
        except ConditionError as e:
            logger.warning(f"Error evaluating rule {rule.id} ({rule.name}): {e}")
            result.error = str(e)
            result.message = f"Rule evaluation error: {e}"
            return result

        if not evaluation.result:
            return result

        action = self.format_action(rule, context)
        result.triggered = True
        result.action = action
        result.message = f"{rule.name}: {action}"
        result.recommendation = RECOMMENDATIONS.get(rule.rule_type)
        result.confidence = (
            Confidence.HIGH if evaluation.is_clear(self.clear_margin) else Confidence.LOW
        )
        return result

    def validate_result(self, context: RuleEvaluationContext) -> ValidationResult:
        """Run the applicable rule set and aggregate the outcome.

        Args:
            context: Interpreted result to validate

        Returns:
            ValidationResult with the final interpretation and audit trail
        """
        year = context.effective_year()
        rules = self.get_applicable_rules(context.microorganism_id, context.drug_id, year)

        validation = ValidationResult(final_result=context.interpreted_result)

        for rule in rules:
            evaluation = self.evaluate_rule(rule, context)
            validation.evaluated_rules.append(evaluation)

            if evaluation.error:
                validation.errors.append(f"Rule {rule.id} ({rule.name}): {evaluation.error}")
                continue
            if not evaluation.triggered:
                continue

            validation.triggered_rules.append(evaluation)

            if evaluation.rule_type == RuleType.REPORTING_GUIDANCE:
                validation.recommendations.append(evaluation.message)
            else:
                validation.warnings.append(evaluation.message)

            if evaluation.rule_type in self.review_rule_types:
                validation.requires_review = True

            if (
                evaluation.rule_type in self.override_rule_types
                and validation.final_result != SensitivityResult.RESISTANT
            ):
                validation.final_result = SensitivityResult.RESISTANT
                validation.overridden_by = rule.id
                logger.info(
                    f"Rule {rule.id} ({rule.name}) overrides "
                    f"{context.interpreted_result.value} -> resistant"
                )

        if validation.errors:
            validation.requires_review = True

        logger.debug(
            f"Validated {context.microorganism_id}/{context.drug_id}: "
            f"{len(rules)} rules, {len(validation.triggered_rules)} triggered, "
            f"final={validation.final_result.value}"
        )
        return validation
