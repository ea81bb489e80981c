"""Wire repositories, engine and services together over one database."""

from dataclasses import dataclass

from .breakpoints.service import BreakpointStandardService
from .config import config
from .interpretation import InterpretationService
from .lab_results import LabResultService
from .repositories.sqlite import (
    SqliteBreakpointStandardRepository,
    SqliteExpertRuleRepository,
    SqliteLabResultRepository,
    StandardsDatabase,
)
from .rules.engine import ExpertRulesEngine
from .rules.service import ExpertRuleService


@dataclass
class Services:
    database: StandardsDatabase
    breakpoints: BreakpointStandardService
    rules: ExpertRuleService
    engine: ExpertRulesEngine
    interpretation: InterpretationService
    lab_results: LabResultService


def create_services(db_path: str | None = None, **engine_options) -> Services:
    """Build the service graph.

    Args:
        db_path: SQLite database path (default from config)
        **engine_options: Passed to ExpertRulesEngine (override_rule_types,
            review_rule_types, clear_margin)
    """
    database = StandardsDatabase(db_path or config.get_db_path())

    standard_repo = SqliteBreakpointStandardRepository(database)
    rule_repo = SqliteExpertRuleRepository(database)
    lab_repo = SqliteLabResultRepository(database)

    breakpoints = BreakpointStandardService(standard_repo)
    engine = ExpertRulesEngine(rule_repo, **engine_options)
    interpretation = InterpretationService(breakpoints, engine)

    return Services(
        database=database,
        breakpoints=breakpoints,
        rules=ExpertRuleService(rule_repo),
        engine=engine,
        interpretation=interpretation,
        lab_results=LabResultService(lab_repo, interpretation),
    )
