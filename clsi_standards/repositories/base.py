"""Abstract base classes for standards, rules and lab result storage."""

from abc import ABC, abstractmethod

from ..models import (
    BreakpointStandard,
    ExpertRule,
    LabResult,
    RuleType,
    ValidationStatus,
)


class BreakpointStandardRepository(ABC):
    """Storage for year-versioned breakpoint standards."""

    @abstractmethod
    def find_by_id(self, standard_id: str) -> BreakpointStandard | None:
        pass

    @abstractmethod
    def find_by_microorganism_and_drug(
        self,
        microorganism_id: str,
        drug_id: str,
        year: int | None = None,
    ) -> list[BreakpointStandard]:
        """Active standards for the pair, optionally restricted to one year.

        Returns:
            Standards ordered by year descending
        """
        pass

    @abstractmethod
    def find_historical_versions(
        self,
        microorganism_id: str,
        drug_id: str,
    ) -> list[BreakpointStandard]:
        """Every version of the pair, active or not, ordered by year ascending."""
        pass

    @abstractmethod
    def find_by_year(self, year: int) -> list[BreakpointStandard]:
        pass

    @abstractmethod
    def find_all(self) -> list[BreakpointStandard]:
        pass

    @abstractmethod
    def save(self, standard: BreakpointStandard) -> BreakpointStandard:
        pass

    @abstractmethod
    def update(self, standard: BreakpointStandard) -> BreakpointStandard:
        pass


class ExpertRuleRepository(ABC):
    """Storage for expert rules.

    Lookups return active and retired rules alike. Deciding which rules
    may fire is the rules engine's job.
    """

    @abstractmethod
    def find_by_id(self, rule_id: str) -> ExpertRule | None:
        pass

    @abstractmethod
    def find_by_microorganism_and_drug(
        self,
        microorganism_id: str,
        drug_id: str,
        year: int | None = None,
    ) -> list[ExpertRule]:
        pass

    @abstractmethod
    def find_by_microorganism(self, microorganism_id: str) -> list[ExpertRule]:
        """Rules scoped to the microorganism with no drug restriction."""
        pass

    @abstractmethod
    def find_by_drug(self, drug_id: str) -> list[ExpertRule]:
        """Rules scoped to the drug with no microorganism restriction."""
        pass

    @abstractmethod
    def find_by_year(self, year: int) -> list[ExpertRule]:
        """Global rules (no microorganism or drug scope) for a year."""
        pass

    @abstractmethod
    def find_by_type(self, rule_type: RuleType, year: int | None = None) -> list[ExpertRule]:
        pass

    @abstractmethod
    def find_all(self) -> list[ExpertRule]:
        pass

    @abstractmethod
    def save(self, rule: ExpertRule) -> ExpertRule:
        pass

    @abstractmethod
    def update(self, rule: ExpertRule) -> ExpertRule:
        pass


class LabResultRepository(ABC):
    """Storage for lab results."""

    @abstractmethod
    def find_by_id(self, result_id: str) -> LabResult | None:
        pass

    @abstractmethod
    def find_all(self) -> list[LabResult]:
        pass

    @abstractmethod
    def find_by_validation_status(self, status: ValidationStatus) -> list[LabResult]:
        pass

    @abstractmethod
    def save(self, lab_result: LabResult) -> LabResult:
        pass

    @abstractmethod
    def update(self, lab_result: LabResult) -> LabResult:
        pass
