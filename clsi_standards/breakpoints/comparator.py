"""Breakpoint version comparison.

Diffs consecutive years of a standard to report what changed, for
compliance and audit reporting. This is informational only: nothing is
merged or resolved.
"""

from dataclasses import dataclass, field
from typing import Any

from ..models import BreakpointStandard, TestMethod

CATEGORIES = ("susceptible", "intermediate", "resistant")


@dataclass
class BreakpointChange:
    """One changed field group between two consecutive years."""
    year: int
    change_type: str  # susceptible, intermediate, resistant, notes
    old_value: Any
    new_value: Any
    description: str

    def to_dict(self) -> dict:
        return {
            "year": self.year,
            "change_type": self.change_type,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "description": self.description,
        }


@dataclass
class BreakpointComparison:
    """Version history of one microorganism/drug/method."""
    microorganism_id: str
    drug_id: str
    method: TestMethod
    standards: list[BreakpointStandard] = field(default_factory=list)
    changes: list[BreakpointChange] = field(default_factory=list)

    @property
    def years(self) -> list[int]:
        return [s.year for s in self.standards]

    def to_dict(self) -> dict:
        return {
            "microorganism_id": self.microorganism_id,
            "drug_id": self.drug_id,
            "method": self.method.value,
            "years": self.years,
            "standards": [s.to_dict() for s in self.standards],
            "changes": [c.to_dict() for c in self.changes],
        }


def _format_bound(value: float | None) -> str:
    if value is None:
        return "None"
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


def detect_changes(standards: list[BreakpointStandard]) -> list[BreakpointChange]:
    """Compare each standard with the one before it.

    ``standards`` must already be sorted ascending by year.
    """
    changes = []

    for prev, curr in zip(standards, standards[1:]):
        for category in CATEGORIES:
            old_min, old_max = prev.bounds(category)
            new_min, new_max = curr.bounds(category)
            if (old_min, old_max) == (new_min, new_max):
                continue
            changes.append(BreakpointChange(
                year=curr.year,
                change_type=category,
                old_value={"min": old_min, "max": old_max},
                new_value={"min": new_min, "max": new_max},
                description=(
                    f"{category.capitalize()} breakpoint changed from "
                    f"{_format_bound(old_min)}-{_format_bound(old_max)} to "
                    f"{_format_bound(new_min)}-{_format_bound(new_max)}"
                ),
            ))

        if prev.notes != curr.notes:
            changes.append(BreakpointChange(
                year=curr.year,
                change_type="notes",
                old_value=prev.notes,
                new_value=curr.notes,
                description="Notes updated",
            ))

    return changes


def compare_breakpoint_versions(
    standards: list[BreakpointStandard],
    method: TestMethod | str | None = None,
) -> list[BreakpointComparison]:
    """Group standards by method and diff each group year over year.

    Args:
        standards: All versions of one microorganism/drug pair
        method: Optional filter to a single test method

    Returns:
        One BreakpointComparison per method, in order of first appearance
    """
    wanted = TestMethod(method) if method else None

    grouped: dict[TestMethod, list[BreakpointStandard]] = {}
    for standard in standards:
        if wanted and standard.method != wanted:
            continue
        grouped.setdefault(standard.method, []).append(standard)

    comparisons = []
    for group_method, group in grouped.items():
        ordered = sorted(group, key=lambda s: s.year)
        first = ordered[0]
        comparisons.append(BreakpointComparison(
            microorganism_id=first.microorganism_id,
            drug_id=first.drug_id,
            method=group_method,
            standards=ordered,
            changes=detect_changes(ordered),
        ))

    return comparisons
