"""Expert rule administration: create, update, retire, statistics."""

import logging
from collections import Counter

from ..models import ExpertRule, RuleState, RuleType
from ..repositories.base import ExpertRuleRepository
from .conditions import parse_condition

logger = logging.getLogger(__name__)

# Fields an update may change; scope, type and year are part of the rule's identity
UPDATABLE_FIELDS = ("name", "description", "condition", "action", "priority", "notes")


class ExpertRuleService:
    """CRUD over expert rules with eager condition validation."""

    def __init__(self, rule_repository: ExpertRuleRepository):
        self.rules = rule_repository

    def get_all_expert_rules(self) -> list[ExpertRule]:
        return self.rules.find_all()

    def get_expert_rule_by_id(self, rule_id: str) -> ExpertRule | None:
        return self.rules.find_by_id(rule_id)

    def get_rules_by_type(
        self,
        rule_type: RuleType | str | None = None,
        year: int | None = None,
    ) -> list[ExpertRule]:
        if not rule_type:
            rules = self.rules.find_all()
            if year is not None:
                rules = [r for r in rules if r.year == year]
            return rules
        return self.rules.find_by_type(RuleType(rule_type), year)

    def create_expert_rule(
        self,
        name: str,
        description: str,
        rule_type: RuleType | str,
        condition: str,
        action: str,
        priority: int = 0,
        year: int | None = None,
        microorganism_id: str | None = None,
        drug_id: str | None = None,
        source_reference: str | None = None,
        notes: str | None = None,
    ) -> ExpertRule:
        """Create and store a rule.

        Raises:
            ConditionSyntaxError: If the condition cannot be parsed
            ValueError: If rule_type is unknown
        """
        parse_condition(condition)
        rule = ExpertRule.create(
            name=name,
            description=description,
            rule_type=rule_type,
            condition=condition,
            action=action,
            priority=priority,
            year=year,
            microorganism_id=microorganism_id,
            drug_id=drug_id,
            source_reference=source_reference,
            notes=notes,
        )
        return self.rules.save(rule)

    def update_expert_rule(self, rule_id: str, **updates) -> ExpertRule | None:
        """Update mutable fields in place. Returns None for an unknown id.

        ``state`` or ``is_active`` may also be passed to retire or
        reactivate the rule.

        Raises:
            ConditionSyntaxError: If a new condition cannot be parsed
            ValueError: If an update names a field that cannot change
        """
        existing = self.rules.find_by_id(rule_id)
        if existing is None:
            return None

        if "is_active" in updates:
            is_active = updates.pop("is_active")
            updates["state"] = RuleState.ACTIVE if is_active else RuleState.RETIRED
        if "state" in updates:
            existing.state = RuleState(updates.pop("state"))

        unknown = set(updates) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")

        if updates.get("condition") is not None:
            parse_condition(updates["condition"])

        for name, value in updates.items():
            if value is None:
                continue
            setattr(existing, name, int(value) if name == "priority" else value)

        return self.rules.update(existing)

    def retire_expert_rule(self, rule_id: str) -> ExpertRule | None:
        """Soft delete: the rule stays stored but never fires again."""
        rule = self.update_expert_rule(rule_id, state=RuleState.RETIRED)
        if rule is not None:
            logger.info(f"Retired expert rule {rule_id}")
        return rule

    def get_rule_statistics(self) -> dict:
        rules = self.rules.find_all()
        by_type = Counter(r.rule_type.value for r in rules)
        by_year = Counter(r.year for r in rules if r.year is not None)
        return {
            "total_rules": len(rules),
            "rules_by_type": dict(by_type),
            "rules_by_year": dict(sorted(by_year.items())),
            "active_rules": sum(1 for r in rules if r.is_active),
        }
