"""Breakpoint standard resolution and administration.

Standards are versioned by year. Interpretation normally uses the latest
active year for a microorganism/drug/method; an explicit year pins an
older version for retrospective work.
"""

import logging
from collections import Counter

from ..exceptions import InvalidBreakpointError
from ..models import BREAKPOINT_FIELDS, BreakpointStandard, TestMethod
from ..repositories.base import BreakpointStandardRepository
from .comparator import BreakpointChange, BreakpointComparison, compare_breakpoint_versions

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = BREAKPOINT_FIELDS + ("notes", "source_document", "is_active")

# Boundaries from least to most susceptible value; the two lists mirror each other
_DISK_ORDER = (
    "resistant_min", "resistant_max",
    "intermediate_min", "intermediate_max",
    "susceptible_min", "susceptible_max",
)
_MIC_ORDER = (
    "susceptible_min", "susceptible_max",
    "intermediate_min", "intermediate_max",
    "resistant_min", "resistant_max",
)


def validate_bounds(standard: BreakpointStandard) -> None:
    """Check that the boundaries are ordered correctly for the test method.

    Disk diffusion boundaries rise from resistant to susceptible, MIC
    boundaries rise from susceptible to resistant. Within one category
    min <= max; across categories the ranges must not touch.

    Raises:
        InvalidBreakpointError: If no boundary is set or the order is wrong
    """
    order = _MIC_ORDER if standard.is_mic else _DISK_ORDER
    present = [(name, getattr(standard, name)) for name in order if getattr(standard, name) is not None]

    if not present:
        raise InvalidBreakpointError("A breakpoint standard needs at least one boundary")

    for name, value in present:
        if value < 0:
            raise InvalidBreakpointError(f"{name} must not be negative, got {value}")

    for (low_name, low), (high_name, high) in zip(present, present[1:]):
        same_category = low_name.split("_")[0] == high_name.split("_")[0]
        if low > high or (not same_category and low == high):
            raise InvalidBreakpointError(
                f"Invalid {standard.method.value} breakpoints: "
                f"{low_name}={low} must be below {high_name}={high}"
            )


class BreakpointStandardService:
    """Lookup, version comparison and CRUD for breakpoint standards."""

    def __init__(self, standard_repository: BreakpointStandardRepository):
        self.standards = standard_repository

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def get_latest_breakpoint(
        self,
        microorganism_id: str,
        drug_id: str,
        method: TestMethod | str | None = None,
    ) -> BreakpointStandard | None:
        """Return the active standard with the highest year, or None.

        When two standards share the latest year and method, the first one
        returned by the repository wins and a warning is logged.
        """
        candidates = self.standards.find_by_microorganism_and_drug(microorganism_id, drug_id)
        if method:
            wanted = TestMethod(method)
            candidates = [s for s in candidates if s.method == wanted]
        if not candidates:
            return None

        latest_year = max(s.year for s in candidates)
        at_latest = [s for s in candidates if s.year == latest_year]

        duplicates = [m for m, n in Counter(s.method for s in at_latest).items() if n > 1]
        for dup_method in duplicates:
            logger.warning(
                f"Multiple {dup_method.value} standards for {microorganism_id}/{drug_id} "
                f"in {latest_year}; using the first one found"
            )

        return at_latest[0]

    def find_for_year(
        self,
        microorganism_id: str,
        drug_id: str,
        year: int,
        method: TestMethod | str,
    ) -> BreakpointStandard | None:
        wanted = TestMethod(method)
        for standard in self.standards.find_by_microorganism_and_drug(microorganism_id, drug_id, year):
            if standard.method == wanted:
                return standard
        return None

    def resolve(
        self,
        microorganism_id: str,
        drug_id: str,
        method: TestMethod | str,
        year: int | None = None,
    ) -> BreakpointStandard | None:
        """Exact-year lookup when a year is given, latest otherwise."""
        if year is not None:
            return self.find_for_year(microorganism_id, drug_id, year, method)
        return self.get_latest_breakpoint(microorganism_id, drug_id, method)

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def get_all_breakpoint_standards(self) -> list[BreakpointStandard]:
        return self.standards.find_all()

    def get_breakpoint_standard(self, standard_id: str) -> BreakpointStandard | None:
        return self.standards.find_by_id(standard_id)

    def find_breakpoints(
        self,
        microorganism_id: str | None = None,
        drug_id: str | None = None,
        year: int | None = None,
        method: TestMethod | str | None = None,
        include_inactive: bool = False,
    ) -> list[BreakpointStandard]:
        """Filter standards by any combination of scope fields."""
        if microorganism_id and drug_id and not include_inactive:
            results = self.standards.find_by_microorganism_and_drug(microorganism_id, drug_id, year)
        elif year is not None and not include_inactive:
            results = self.standards.find_by_year(year)
        else:
            results = self.standards.find_all()

        wanted = TestMethod(method) if method else None
        return [
            s for s in results
            if (microorganism_id is None or s.microorganism_id == microorganism_id)
            and (drug_id is None or s.drug_id == drug_id)
            and (year is None or s.year == int(year))
            and (wanted is None or s.method == wanted)
            and (include_inactive or s.is_active)
        ]

    def get_available_years(self) -> list[int]:
        return sorted({s.year for s in self.standards.find_all() if s.is_active}, reverse=True)

    def get_standards_by_year(self, year: int) -> list[BreakpointStandard]:
        return self.standards.find_by_year(year)

    # ------------------------------------------------------------------
    # Version history
    # ------------------------------------------------------------------

    def compare_breakpoint_versions(
        self,
        microorganism_id: str,
        drug_id: str,
        method: TestMethod | str | None = None,
    ) -> list[BreakpointComparison]:
        history = self.standards.find_historical_versions(microorganism_id, drug_id)
        return compare_breakpoint_versions(history, method)

    def list_changes(
        self,
        microorganism_id: str,
        drug_id: str,
        method: TestMethod | str | None = None,
    ) -> list[BreakpointChange]:
        comparisons = self.compare_breakpoint_versions(microorganism_id, drug_id, method)
        return [change for comparison in comparisons for change in comparison.changes]

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def create_breakpoint_standard(
        self,
        microorganism_id: str,
        drug_id: str,
        year: int,
        method: TestMethod | str,
        breakpoints: dict[str, float | None] | None = None,
        notes: str | None = None,
        source_document: str | None = None,
    ) -> BreakpointStandard:
        """Validate and store a new standard.

        Raises:
            InvalidBreakpointError: If the boundaries are missing or misordered
            DuplicateStandardError: If the year/method already exists for the pair
        """
        try:
            standard = BreakpointStandard.create(
                microorganism_id=microorganism_id,
                drug_id=drug_id,
                year=year,
                method=method,
                breakpoints=breakpoints,
                notes=notes,
                source_document=source_document,
            )
        except ValueError as e:
            raise InvalidBreakpointError(str(e)) from e

        validate_bounds(standard)
        return self.standards.save(standard)

    def update_breakpoint_standard(self, standard_id: str, **updates) -> BreakpointStandard | None:
        """Update boundaries, notes, source or active flag.

        Returns None when the id is unknown.

        Raises:
            InvalidBreakpointError: On an identity field or misordered boundaries
        """
        standard = self.standards.find_by_id(standard_id)
        if standard is None:
            return None

        unknown = set(updates) - set(UPDATABLE_FIELDS)
        if unknown:
            raise InvalidBreakpointError(f"Cannot update fields: {sorted(unknown)}")

        for name, value in updates.items():
            if name in BREAKPOINT_FIELDS and value is not None:
                value = float(value)
            elif name == "is_active":
                value = bool(value)
            setattr(standard, name, value)

        validate_bounds(standard)
        updated = self.standards.update(standard)
        logger.info(f"Updated breakpoint standard {standard_id}: {sorted(updates)}")
        return updated

    def deactivate_breakpoint_standard(self, standard_id: str) -> BreakpointStandard | None:
        return self.update_breakpoint_standard(standard_id, is_active=False)
