"""SQLite-backed repositories for standards, rules and lab results."""

import json
import logging
import os
import sqlite3
from datetime import datetime
from pathlib import Path

from ..exceptions import DuplicateStandardError
from ..models import (
    BREAKPOINT_FIELDS,
    BreakpointStandard,
    ExpertRule,
    LabResult,
    RuleType,
    ValidationStatus,
)
from .base import (
    BreakpointStandardRepository,
    ExpertRuleRepository,
    LabResultRepository,
)

logger = logging.getLogger(__name__)


class StandardsDatabase:
    """SQLite database holding standards, rules and lab results."""

    def __init__(self, db_path: str | Path):
        self.db_path = os.path.expanduser(str(db_path))

        # Ensure directory exists
        db_dir = os.path.dirname(self.db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

        self._init_db()

    def _init_db(self) -> None:
        """Initialize database schema."""
        schema_path = Path(__file__).parent.parent / "schema.sql"
        with open(schema_path) as f:
            schema = f.read()

        with self.connect() as conn:
            conn.executescript(schema)

    def connect(self) -> sqlite3.Connection:
        """Get database connection with row factory."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn


class SqliteBreakpointStandardRepository(BreakpointStandardRepository):
    """Breakpoint standards in the ``breakpoint_standards`` table."""

    def __init__(self, database: StandardsDatabase):
        self.database = database

    def _query(self, sql: str, params: tuple = ()) -> list[BreakpointStandard]:
        with self.database.connect() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [BreakpointStandard.from_row(row) for row in rows]

    def find_by_id(self, standard_id: str) -> BreakpointStandard | None:
        found = self._query("SELECT * FROM breakpoint_standards WHERE id = ?", (standard_id,))
        return found[0] if found else None

    def find_by_microorganism_and_drug(
        self,
        microorganism_id: str,
        drug_id: str,
        year: int | None = None,
    ) -> list[BreakpointStandard]:
        sql = """
            SELECT * FROM breakpoint_standards
            WHERE microorganism_id = ? AND drug_id = ? AND is_active = 1
        """
        params: list = [microorganism_id, drug_id]
        if year is not None:
            sql += " AND year = ?"
            params.append(int(year))
        sql += " ORDER BY year DESC, method"
        return self._query(sql, tuple(params))

    def find_historical_versions(
        self,
        microorganism_id: str,
        drug_id: str,
    ) -> list[BreakpointStandard]:
        return self._query(
            """
            SELECT * FROM breakpoint_standards
            WHERE microorganism_id = ? AND drug_id = ?
            ORDER BY year ASC, method
            """,
            (microorganism_id, drug_id),
        )

    def find_by_year(self, year: int) -> list[BreakpointStandard]:
        return self._query(
            """
            SELECT * FROM breakpoint_standards
            WHERE year = ? AND is_active = 1
            ORDER BY microorganism_id, drug_id, method
            """,
            (int(year),),
        )

    def find_all(self) -> list[BreakpointStandard]:
        return self._query(
            "SELECT * FROM breakpoint_standards ORDER BY year DESC, microorganism_id, drug_id"
        )

    def save(self, standard: BreakpointStandard) -> BreakpointStandard:
        """Insert a new standard.

        Raises:
            DuplicateStandardError: If the microorganism/drug/year/method
                key is already taken
        """
        try:
            with self.database.connect() as conn:
                conn.execute(
                    """
                    INSERT INTO breakpoint_standards (
                        id, microorganism_id, drug_id, year, method,
                        susceptible_min, susceptible_max, intermediate_min,
                        intermediate_max, resistant_min, resistant_max,
                        notes, source_document, is_active, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        standard.id, standard.microorganism_id, standard.drug_id,
                        standard.year, standard.method.value,
                        *(getattr(standard, name) for name in BREAKPOINT_FIELDS),
                        standard.notes, standard.source_document,
                        1 if standard.is_active else 0,
                        standard.created_at.isoformat(), standard.updated_at.isoformat(),
                    ),
                )
                conn.commit()
        except sqlite3.IntegrityError as e:
            raise DuplicateStandardError(
                f"Standard already exists for {standard.microorganism_id}/"
                f"{standard.drug_id} {standard.year} {standard.method.value}"
            ) from e

        logger.info(
            f"Saved breakpoint standard {standard.id} "
            f"({standard.microorganism_id}/{standard.drug_id} {standard.year} {standard.method.value})"
        )
        return standard

    def update(self, standard: BreakpointStandard) -> BreakpointStandard:
        """Update mutable fields. Identity fields are left untouched."""
        standard.updated_at = datetime.now()
        with self.database.connect() as conn:
            conn.execute(
                """
                UPDATE breakpoint_standards SET
                    susceptible_min = ?, susceptible_max = ?,
                    intermediate_min = ?, intermediate_max = ?,
                    resistant_min = ?, resistant_max = ?,
                    notes = ?, source_document = ?, is_active = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    *(getattr(standard, name) for name in BREAKPOINT_FIELDS),
                    standard.notes, standard.source_document,
                    1 if standard.is_active else 0,
                    standard.updated_at.isoformat(), standard.id,
                ),
            )
            conn.commit()
        return standard


class SqliteExpertRuleRepository(ExpertRuleRepository):
    """Expert rules in the ``expert_rules`` table."""

    _ORDER = " ORDER BY priority DESC, created_at ASC"

    def __init__(self, database: StandardsDatabase):
        self.database = database

    def _query(self, sql: str, params: tuple = ()) -> list[ExpertRule]:
        with self.database.connect() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [ExpertRule.from_row(row) for row in rows]

    def find_by_id(self, rule_id: str) -> ExpertRule | None:
        found = self._query("SELECT * FROM expert_rules WHERE id = ?", (rule_id,))
        return found[0] if found else None

    def find_by_microorganism_and_drug(
        self,
        microorganism_id: str,
        drug_id: str,
        year: int | None = None,
    ) -> list[ExpertRule]:
        sql = "SELECT * FROM expert_rules WHERE microorganism_id = ? AND drug_id = ?"
        params: list = [microorganism_id, drug_id]
        if year is not None:
            sql += " AND (year = ? OR year IS NULL)"
            params.append(int(year))
        return self._query(sql + self._ORDER, tuple(params))

    def find_by_microorganism(self, microorganism_id: str) -> list[ExpertRule]:
        return self._query(
            "SELECT * FROM expert_rules WHERE microorganism_id = ? AND drug_id IS NULL"
            + self._ORDER,
            (microorganism_id,),
        )

    def find_by_drug(self, drug_id: str) -> list[ExpertRule]:
        return self._query(
            "SELECT * FROM expert_rules WHERE drug_id = ? AND microorganism_id IS NULL"
            + self._ORDER,
            (drug_id,),
        )

    def find_by_year(self, year: int) -> list[ExpertRule]:
        return self._query(
            """
            SELECT * FROM expert_rules
            WHERE (year = ? OR year IS NULL)
              AND microorganism_id IS NULL AND drug_id IS NULL
            """
            + self._ORDER,
            (int(year),),
        )

    def find_by_type(self, rule_type: RuleType, year: int | None = None) -> list[ExpertRule]:
        sql = "SELECT * FROM expert_rules WHERE rule_type = ?"
        params: list = [RuleType(rule_type).value]
        if year is not None:
            sql += " AND year = ?"
            params.append(int(year))
        return self._query(sql + self._ORDER, tuple(params))

    def find_all(self) -> list[ExpertRule]:
        return self._query("SELECT * FROM expert_rules" + self._ORDER)

    def save(self, rule: ExpertRule) -> ExpertRule:
        with self.database.connect() as conn:
            conn.execute(
                """
                INSERT INTO expert_rules (
                    id, name, description, rule_type, microorganism_id, drug_id,
                    condition_expr, action_expr, priority, year, source_reference,
                    notes, state, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    rule.id, rule.name, rule.description, rule.rule_type.value,
                    rule.microorganism_id, rule.drug_id, rule.condition, rule.action,
                    rule.priority, rule.year, rule.source_reference, rule.notes,
                    rule.state.value, rule.created_at.isoformat(), rule.updated_at.isoformat(),
                ),
            )
            conn.commit()

        logger.info(f"Saved expert rule {rule.id} ({rule.name})")
        return rule

    def update(self, rule: ExpertRule) -> ExpertRule:
        rule.updated_at = datetime.now()
        with self.database.connect() as conn:
            conn.execute(
                """
                UPDATE expert_rules SET
                    name = ?, description = ?, condition_expr = ?, action_expr = ?,
                    priority = ?, notes = ?, state = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    rule.name, rule.description, rule.condition, rule.action,
                    rule.priority, rule.notes, rule.state.value,
                    rule.updated_at.isoformat(), rule.id,
                ),
            )
            conn.commit()
        return rule


class SqliteLabResultRepository(LabResultRepository):
    """Lab results in the ``lab_results`` table."""

    def __init__(self, database: StandardsDatabase):
        self.database = database

    def _query(self, sql: str, params: tuple = ()) -> list[LabResult]:
        with self.database.connect() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [LabResult.from_row(row) for row in rows]

    def find_by_id(self, result_id: str) -> LabResult | None:
        found = self._query("SELECT * FROM lab_results WHERE id = ?", (result_id,))
        return found[0] if found else None

    def find_all(self) -> list[LabResult]:
        return self._query("SELECT * FROM lab_results ORDER BY test_date DESC")

    def find_by_validation_status(self, status: ValidationStatus) -> list[LabResult]:
        return self._query(
            "SELECT * FROM lab_results WHERE validation_status = ? ORDER BY test_date DESC",
            (ValidationStatus(status).value,),
        )

    @staticmethod
    def _row_values(lab_result: LabResult) -> dict:
        return {
            "interpretation": (
                lab_result.interpretation.short_code if lab_result.interpretation else None
            ),
            "expert_rules_applied": json.dumps(lab_result.expert_rules_applied),
            "report_date": (
                lab_result.report_date.isoformat() if lab_result.report_date else None
            ),
        }

    def save(self, lab_result: LabResult) -> LabResult:
        values = self._row_values(lab_result)
        with self.database.connect() as conn:
            conn.execute(
                """
                INSERT INTO lab_results (
                    id, sample_id, microorganism_id, drug_id, test_method,
                    raw_result, interpretation, breakpoint_used, expert_rules_applied,
                    validation_status, validation_comments, technician, reviewed_by,
                    test_date, report_date, instrument_id, quality_control_passed,
                    comments, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    lab_result.id, lab_result.sample_id, lab_result.microorganism_id,
                    lab_result.drug_id, lab_result.test_method.value, lab_result.raw_result,
                    values["interpretation"], lab_result.breakpoint_used,
                    values["expert_rules_applied"], lab_result.validation_status.value,
                    lab_result.validation_comments, lab_result.technician,
                    lab_result.reviewed_by, lab_result.test_date.isoformat(),
                    values["report_date"], lab_result.instrument_id,
                    1 if lab_result.quality_control_passed else 0, lab_result.comments,
                    lab_result.created_at.isoformat(), lab_result.updated_at.isoformat(),
                ),
            )
            conn.commit()

        logger.info(f"Saved lab result {lab_result.id} for sample {lab_result.sample_id}")
        return lab_result

    def update(self, lab_result: LabResult) -> LabResult:
        lab_result.updated_at = datetime.now()
        values = self._row_values(lab_result)
        with self.database.connect() as conn:
            conn.execute(
                """
                UPDATE lab_results SET
                    raw_result = ?, interpretation = ?, breakpoint_used = ?,
                    expert_rules_applied = ?, validation_status = ?,
                    validation_comments = ?, reviewed_by = ?, report_date = ?,
                    quality_control_passed = ?, comments = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    lab_result.raw_result, values["interpretation"],
                    lab_result.breakpoint_used, values["expert_rules_applied"],
                    lab_result.validation_status.value, lab_result.validation_comments,
                    lab_result.reviewed_by, values["report_date"],
                    1 if lab_result.quality_control_passed else 0,
                    lab_result.comments, lab_result.updated_at.isoformat(), lab_result.id,
                ),
            )
            conn.commit()
        return lab_result
