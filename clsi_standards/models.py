"""Data models for breakpoint standards, expert rules and lab results."""

import json
import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


def _generate_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _parse_datetime(val: Any) -> datetime | None:
    if val is None:
        return None
    if isinstance(val, datetime):
        return val
    return datetime.fromisoformat(val)


def _iso(val: datetime | None) -> str | None:
    return val.isoformat() if val else None


class TestMethod(str, Enum):
    """Susceptibility test method."""
    __test__ = False  # not a pytest test class

    DISK_DIFFUSION = "disk_diffusion"          # Zone diameter, mm
    BROTH_MICRODILUTION = "broth_microdilution"  # MIC, µg/mL
    AGAR_DILUTION = "agar_dilution"            # MIC, µg/mL
    ETEST = "etest"                            # Gradient strip MIC, µg/mL

    @property
    def is_mic(self) -> bool:
        """True for every method that reports a minimum inhibitory concentration."""
        return self != TestMethod.DISK_DIFFUSION


class SensitivityResult(str, Enum):
    """S/I/R interpretation of a susceptibility measurement."""
    SUSCEPTIBLE = "susceptible"
    INTERMEDIATE = "intermediate"
    RESISTANT = "resistant"

    @property
    def short_code(self) -> str:
        return self.value[0].upper()

    @classmethod
    def parse(cls, value: "SensitivityResult | str") -> "SensitivityResult":
        """Accept enum members, full values ("resistant") or short codes ("R")."""
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        for member in cls:
            if text in (member.value, member.short_code.lower()):
                return member
        raise ValueError(f"Unknown sensitivity result: {value!r}")


class Confidence(str, Enum):
    """How far a result sits from the boundary that decided it."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RuleType(str, Enum):
    """Category of expert rule."""
    INTRINSIC_RESISTANCE = "intrinsic_resistance"
    ACQUIRED_RESISTANCE = "acquired_resistance"
    EXCEPTIONAL_PHENOTYPE = "exceptional_phenotype"
    PHENOTYPE_CONFIRMATION = "phenotype_confirmation"
    QUALITY_CONTROL = "quality_control"
    REPORTING_GUIDANCE = "reporting_guidance"


class RuleState(str, Enum):
    """Expert rule lifecycle. Retiring a rule is the soft delete."""
    ACTIVE = "active"
    RETIRED = "retired"


class ValidationStatus(str, Enum):
    """Lab result review status."""
    PENDING = "pending"
    VALIDATED = "validated"
    REJECTED = "rejected"
    REQUIRES_REVIEW = "requires_review"


BREAKPOINT_FIELDS = (
    "susceptible_min",
    "susceptible_max",
    "intermediate_min",
    "intermediate_max",
    "resistant_min",
    "resistant_max",
)


@dataclass
class BreakpointStandard:
    """A year-versioned set of S/I/R cutoffs for one organism-drug-method."""
    id: str
    microorganism_id: str
    drug_id: str
    year: int
    method: TestMethod
    susceptible_min: float | None = None
    susceptible_max: float | None = None
    intermediate_min: float | None = None
    intermediate_max: float | None = None
    resistant_min: float | None = None
    resistant_max: float | None = None
    notes: str | None = None
    source_document: str | None = None
    is_active: bool = True
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def create(
        cls,
        microorganism_id: str,
        drug_id: str,
        year: int,
        method: TestMethod | str,
        breakpoints: dict[str, float | None] | None = None,
        notes: str | None = None,
        source_document: str | None = None,
    ) -> "BreakpointStandard":
        """Build a new standard with a generated id."""
        breakpoints = breakpoints or {}
        unknown = set(breakpoints) - set(BREAKPOINT_FIELDS)
        if unknown:
            raise ValueError(f"Unknown breakpoint fields: {sorted(unknown)}")
        return cls(
            id=_generate_id("bp"),
            microorganism_id=microorganism_id,
            drug_id=drug_id,
            year=int(year),
            method=TestMethod(method),
            notes=notes,
            source_document=source_document,
            **breakpoints,
        )

    @property
    def is_mic(self) -> bool:
        return self.method.is_mic

    def bounds(self, category: str) -> tuple[float | None, float | None]:
        """Return the (min, max) pair for susceptible/intermediate/resistant."""
        return getattr(self, f"{category}_min"), getattr(self, f"{category}_max")

    def reference(self) -> str:
        """Human-readable reference written onto lab results."""
        ref = f"CLSI {self.year} {self.method.value}"
        if self.source_document:
            ref += f" ({self.source_document})"
        return ref

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "microorganism_id": self.microorganism_id,
            "drug_id": self.drug_id,
            "year": self.year,
            "method": self.method.value,
            **{name: getattr(self, name) for name in BREAKPOINT_FIELDS},
            "notes": self.notes,
            "source_document": self.source_document,
            "is_active": self.is_active,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    @classmethod
    def from_row(cls, row) -> "BreakpointStandard":
        """Create from a sqlite3.Row."""
        return cls(
            id=row["id"],
            microorganism_id=row["microorganism_id"],
            drug_id=row["drug_id"],
            year=int(row["year"]),
            method=TestMethod(row["method"]),
            **{name: row[name] for name in BREAKPOINT_FIELDS},
            notes=row["notes"],
            source_document=row["source_document"],
            is_active=bool(row["is_active"]),
            created_at=_parse_datetime(row["created_at"]),
            updated_at=_parse_datetime(row["updated_at"]),
        )


@dataclass
class ExpertRule:
    """A prioritized conditional policy over interpreted results.

    ``condition`` is expression text such as
    ``interpretedResult == "susceptible" && testValue < 14``. ``action`` is
    the advisory text, with ``{field}`` placeholders filled from the
    evaluation context. A ``year`` of None applies the rule to every year.
    """
    id: str
    name: str
    description: str
    rule_type: RuleType
    condition: str
    action: str
    priority: int = 0
    year: int | None = None
    microorganism_id: str | None = None
    drug_id: str | None = None
    source_reference: str | None = None
    notes: str | None = None
    state: RuleState = RuleState.ACTIVE
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def create(
        cls,
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
    ) -> "ExpertRule":
        return cls(
            id=_generate_id("rule"),
            name=name,
            description=description,
            rule_type=RuleType(rule_type),
            condition=condition,
            action=action,
            priority=int(priority),
            year=int(year) if year is not None else None,
            microorganism_id=microorganism_id,
            drug_id=drug_id,
            source_reference=source_reference,
            notes=notes,
        )

    @property
    def is_active(self) -> bool:
        return self.state == RuleState.ACTIVE

    def applies_to_year(self, year: int) -> bool:
        return self.year is None or self.year == year

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "rule_type": self.rule_type.value,
            "condition": self.condition,
            "action": self.action,
            "priority": self.priority,
            "year": self.year,
            "microorganism_id": self.microorganism_id,
            "drug_id": self.drug_id,
            "source_reference": self.source_reference,
            "notes": self.notes,
            "state": self.state.value,
            "is_active": self.is_active,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    @classmethod
    def from_row(cls, row) -> "ExpertRule":
        year = row["year"]
        return cls(
            id=row["id"],
            name=row["name"],
            description=row["description"] or "",
            rule_type=RuleType(row["rule_type"]),
            condition=row["condition_expr"],
            action=row["action_expr"],
            priority=int(row["priority"] or 0),
            year=int(year) if year is not None else None,
            microorganism_id=row["microorganism_id"],
            drug_id=row["drug_id"],
            source_reference=row["source_reference"],
            notes=row["notes"],
            state=RuleState(row["state"]),
            created_at=_parse_datetime(row["created_at"]),
            updated_at=_parse_datetime(row["updated_at"]),
        )


@dataclass
class LabResult:
    """A susceptibility test result and its validation trail."""
    id: str
    sample_id: str
    microorganism_id: str
    drug_id: str
    test_method: TestMethod
    raw_result: str
    technician: str
    test_date: datetime = field(default_factory=datetime.now)
    interpretation: SensitivityResult | None = None
    breakpoint_used: str | None = None
    expert_rules_applied: list[str] = field(default_factory=list)
    validation_status: ValidationStatus = ValidationStatus.PENDING
    validation_comments: str | None = None
    reviewed_by: str | None = None
    report_date: datetime | None = None
    instrument_id: str | None = None
    quality_control_passed: bool = False
    comments: str | None = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def create(
        cls,
        sample_id: str,
        microorganism_id: str,
        drug_id: str,
        test_method: TestMethod | str,
        raw_result: str | float,
        technician: str,
        test_date: datetime | None = None,
        instrument_id: str | None = None,
        comments: str | None = None,
    ) -> "LabResult":
        return cls(
            id=_generate_id("lab"),
            sample_id=sample_id,
            microorganism_id=microorganism_id,
            drug_id=drug_id,
            test_method=TestMethod(test_method),
            raw_result=str(raw_result),
            technician=technician,
            test_date=test_date or datetime.now(),
            instrument_id=instrument_id,
            comments=comments,
        )

    def numeric_value(self) -> float | None:
        """Parse raw_result as a measurement.

        Returns None unless it is a finite, non-negative number; "inf",
        "nan" and negative readings are not measurements.
        """
        try:
            value = float(self.raw_result.strip())
        except (AttributeError, ValueError):
            return None
        if not math.isfinite(value) or value < 0:
            return None
        return value

    def is_validated(self) -> bool:
        return self.validation_status == ValidationStatus.VALIDATED

    def needs_review(self) -> bool:
        return self.validation_status == ValidationStatus.REQUIRES_REVIEW

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "sample_id": self.sample_id,
            "microorganism_id": self.microorganism_id,
            "drug_id": self.drug_id,
            "test_method": self.test_method.value,
            "raw_result": self.raw_result,
            "interpretation": self.interpretation.short_code if self.interpretation else None,
            "breakpoint_used": self.breakpoint_used,
            "expert_rules_applied": list(self.expert_rules_applied),
            "validation_status": self.validation_status.value,
            "validation_comments": self.validation_comments,
            "technician": self.technician,
            "reviewed_by": self.reviewed_by,
            "test_date": _iso(self.test_date),
            "report_date": _iso(self.report_date),
            "instrument_id": self.instrument_id,
            "quality_control_passed": self.quality_control_passed,
            "comments": self.comments,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    @classmethod
    def from_row(cls, row) -> "LabResult":
        rules_json = row["expert_rules_applied"]
        try:
            rules = json.loads(rules_json) if rules_json else []
        except json.JSONDecodeError:
            rules = []

        interpretation = row["interpretation"]
        return cls(
            id=row["id"],
            sample_id=row["sample_id"],
            microorganism_id=row["microorganism_id"],
            drug_id=row["drug_id"],
            test_method=TestMethod(row["test_method"]),
            raw_result=row["raw_result"],
            technician=row["technician"],
            test_date=_parse_datetime(row["test_date"]),
            interpretation=SensitivityResult.parse(interpretation) if interpretation else None,
            breakpoint_used=row["breakpoint_used"],
            expert_rules_applied=rules,
            validation_status=ValidationStatus(row["validation_status"]),
            validation_comments=row["validation_comments"],
            reviewed_by=row["reviewed_by"],
            report_date=_parse_datetime(row["report_date"]),
            instrument_id=row["instrument_id"],
            quality_control_passed=bool(row["quality_control_passed"]),
            comments=row["comments"],
            created_at=_parse_datetime(row["created_at"]),
            updated_at=_parse_datetime(row["updated_at"]),
        )
