"""Tests for breakpoint standard lookup and administration."""

import logging
from unittest.mock import Mock

import pytest

from clsi_standards.breakpoints.service import BreakpointStandardService
from clsi_standards.exceptions import DuplicateStandardError, InvalidBreakpointError
from clsi_standards.models import BreakpointStandard, TestMethod
from clsi_standards.repositories.base import BreakpointStandardRepository

DISK = {"susceptible_min": 17, "intermediate_min": 14, "intermediate_max": 16, "resistant_max": 13}
MIC = {"susceptible_max": 8, "intermediate_min": 16, "intermediate_max": 16, "resistant_min": 32}


@pytest.fixture
def service(services):
    return services.breakpoints


def add(service, year, method=TestMethod.DISK_DIFFUSION, breakpoints=None, drug_id="AMP"):
    return service.create_breakpoint_standard(
        microorganism_id="escherichia_coli",
        drug_id=drug_id,
        year=year,
        method=method,
        breakpoints=breakpoints or (DISK if method == TestMethod.DISK_DIFFUSION else MIC),
    )


class TestLatestBreakpoint:

    def test_latest_is_max_year(self, service):
        add(service, 2022)
        latest = add(service, 2024)
        add(service, 2023)

        found = service.get_latest_breakpoint("escherichia_coli", "AMP")
        assert found.id == latest.id
        assert service.get_latest_breakpoint("escherichia_coli", "AMP").id == found.id

    def test_method_filter(self, service):
        add(service, 2024, TestMethod.DISK_DIFFUSION)
        mic_2023 = add(service, 2023, TestMethod.BROTH_MICRODILUTION)

        found = service.get_latest_breakpoint("escherichia_coli", "AMP", "broth_microdilution")
        assert found.id == mic_2023.id

    def test_not_found(self, service):
        add(service, 2024)
        assert service.get_latest_breakpoint("escherichia_coli", "VAN") is None
        assert service.get_latest_breakpoint("escherichia_coli", "AMP", TestMethod.ETEST) is None

    def test_inactive_standards_skipped(self, service):
        older = add(service, 2023)
        newest = add(service, 2024)
        service.deactivate_breakpoint_standard(newest.id)

        assert service.get_latest_breakpoint("escherichia_coli", "AMP").id == older.id

    def test_duplicate_latest_year_takes_first_and_warns(self, caplog):
        first = BreakpointStandard.create("escherichia_coli", "AMP", 2024, "disk_diffusion", DISK)
        second = BreakpointStandard.create("escherichia_coli", "AMP", 2024, "disk_diffusion", DISK)
        repo = Mock(spec=BreakpointStandardRepository)
        repo.find_by_microorganism_and_drug.return_value = [first, second]

        with caplog.at_level(logging.WARNING):
            found = BreakpointStandardService(repo).get_latest_breakpoint("escherichia_coli", "AMP")

        assert found is first
        assert "Multiple disk_diffusion standards" in caplog.text

    def test_find_for_year(self, service):
        old = add(service, 2018)
        add(service, 2024)

        assert service.find_for_year("escherichia_coli", "AMP", 2018, "disk_diffusion").id == old.id
        assert service.find_for_year("escherichia_coli", "AMP", 2019, "disk_diffusion") is None

    def test_resolve(self, service):
        old = add(service, 2018)
        new = add(service, 2024)

        assert service.resolve("escherichia_coli", "AMP", "disk_diffusion").id == new.id
        assert service.resolve("escherichia_coli", "AMP", "disk_diffusion", year=2018).id == old.id


class TestListing:

    def test_available_years_descending(self, service):
        add(service, 2018)
        add(service, 2024)
        add(service, 2024, TestMethod.BROTH_MICRODILUTION)
        add(service, 2021)

        assert service.get_available_years() == [2024, 2021, 2018]

    def test_find_breakpoints_filters(self, service):
        add(service, 2024)
        add(service, 2024, TestMethod.BROTH_MICRODILUTION)
        add(service, 2024, drug_id="CIP")
        add(service, 2018)

        assert len(service.find_breakpoints(drug_id="AMP")) == 3
        assert len(service.find_breakpoints(year=2024)) == 3
        assert len(service.find_breakpoints(
            microorganism_id="escherichia_coli", drug_id="AMP", year=2024, method="disk_diffusion"
        )) == 1

    def test_find_breakpoints_inactive(self, service):
        standard = add(service, 2024)
        service.deactivate_breakpoint_standard(standard.id)

        assert service.find_breakpoints(drug_id="AMP") == []
        assert len(service.find_breakpoints(drug_id="AMP", include_inactive=True)) == 1

    def test_standards_by_year(self, service):
        add(service, 2024)
        add(service, 2018)
        assert [s.year for s in service.get_standards_by_year(2018)] == [2018]


class TestVersionHistory:

    def test_compare_reads_history(self, service):
        add(service, 2018, breakpoints={"susceptible_min": 21, "resistant_max": 15})
        add(service, 2024, breakpoints={"susceptible_min": 26, "resistant_max": 21})

        changes = service.list_changes("escherichia_coli", "AMP")
        assert [c.change_type for c in changes] == ["susceptible", "resistant"]

    def test_history_includes_inactive_versions(self, service):
        old = add(service, 2018, breakpoints={"susceptible_min": 21, "resistant_max": 15})
        add(service, 2024, breakpoints={"susceptible_min": 26, "resistant_max": 21})
        service.deactivate_breakpoint_standard(old.id)

        comparisons = service.compare_breakpoint_versions("escherichia_coli", "AMP")
        assert comparisons[0].years == [2018, 2024]

    def test_single_version_has_no_changes(self, service):
        add(service, 2024)
        assert service.list_changes("escherichia_coli", "AMP") == []


class TestAdministration:

    def test_create_round_trip(self, service):
        created = add(service, 2024)
        stored = service.get_breakpoint_standard(created.id)

        assert stored.susceptible_min == 17
        assert stored.resistant_max == 13
        assert stored.susceptible_max is None
        assert stored.method == TestMethod.DISK_DIFFUSION

    def test_duplicate_rejected(self, service):
        add(service, 2024)
        with pytest.raises(DuplicateStandardError):
            add(service, 2024)

    @pytest.mark.parametrize("method,breakpoints", [
        (TestMethod.DISK_DIFFUSION, {"susceptible_min": 13, "resistant_max": 17}),
        (TestMethod.DISK_DIFFUSION, {"susceptible_min": 17, "intermediate_min": 16, "intermediate_max": 14}),
        (TestMethod.DISK_DIFFUSION, {"susceptible_min": 15, "resistant_max": 15}),
        (TestMethod.BROTH_MICRODILUTION, {"susceptible_max": 32, "resistant_min": 8}),
        (TestMethod.BROTH_MICRODILUTION, {"susceptible_max": -1}),
        (TestMethod.DISK_DIFFUSION, {}),
        (TestMethod.DISK_DIFFUSION, {"susceptible_minimum": 17}),
    ])
    def test_invalid_bounds_rejected(self, service, method, breakpoints):
        with pytest.raises(InvalidBreakpointError):
            service.create_breakpoint_standard(
                microorganism_id="escherichia_coli",
                drug_id="AMP",
                year=2024,
                method=method,
                breakpoints=breakpoints,
            )

    def test_update(self, service):
        standard = add(service, 2024)
        updated = service.update_breakpoint_standard(standard.id, susceptible_min=18, notes="Revised")

        assert updated.susceptible_min == 18
        stored = service.get_breakpoint_standard(standard.id)
        assert stored.susceptible_min == 18
        assert stored.notes == "Revised"

    def test_update_unknown_id(self, service):
        assert service.update_breakpoint_standard("bp-missing", notes="x") is None

    def test_identity_fields_immutable(self, service):
        standard = add(service, 2024)
        with pytest.raises(InvalidBreakpointError):
            service.update_breakpoint_standard(standard.id, year=2025)

    def test_update_validates_bounds(self, service):
        standard = add(service, 2024)
        with pytest.raises(InvalidBreakpointError):
            service.update_breakpoint_standard(standard.id, resistant_max=20)
        assert service.get_breakpoint_standard(standard.id).resistant_max == 13
