"""Shared fixtures: a fresh SQLite-backed service graph per test."""

import pytest

from clsi_standards.models import BreakpointStandard, TestMethod
from clsi_standards.seed import seed_all
from clsi_standards.services import create_services


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "standards.db")


@pytest.fixture
def services(db_path):
    """Empty database with all services wired."""
    return create_services(db_path)


@pytest.fixture
def seeded_services(services):
    """Database loaded with the reference standards and expert rules."""
    seed_all(services.breakpoints, services.rules)
    return services


@pytest.fixture
def disk_standard():
    """Disk diffusion: S >= 17, I 14-16, R <= 13."""
    return BreakpointStandard.create(
        microorganism_id="escherichia_coli",
        drug_id="AMP",
        year=2024,
        method=TestMethod.DISK_DIFFUSION,
        breakpoints={
            "susceptible_min": 17,
            "intermediate_min": 14,
            "intermediate_max": 16,
            "resistant_max": 13,
        },
        notes="Zone diameter interpretive criteria",
    )


@pytest.fixture
def mic_standard():
    """MIC: S <= 2, I 4, R >= 8."""
    return BreakpointStandard.create(
        microorganism_id="pseudomonas_aeruginosa",
        drug_id="MEM",
        year=2024,
        method=TestMethod.BROTH_MICRODILUTION,
        breakpoints={
            "susceptible_max": 2,
            "intermediate_min": 4,
            "intermediate_max": 4,
            "resistant_min": 8,
        },
    )
