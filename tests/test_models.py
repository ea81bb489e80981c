"""Tests for data models."""

import pytest

from clsi_standards.models import (
    BreakpointStandard,
    ExpertRule,
    LabResult,
    RuleState,
    RuleType,
    SensitivityResult,
    TestMethod,
    ValidationStatus,
)


class TestSensitivityResult:

    @pytest.mark.parametrize("value,expected", [
        ("S", SensitivityResult.SUSCEPTIBLE),
        ("i", SensitivityResult.INTERMEDIATE),
        ("resistant", SensitivityResult.RESISTANT),
        (" Susceptible ", SensitivityResult.SUSCEPTIBLE),
        (SensitivityResult.RESISTANT, SensitivityResult.RESISTANT),
    ])
    def test_parse(self, value, expected):
        assert SensitivityResult.parse(value) == expected

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            SensitivityResult.parse("X")

    def test_short_code(self):
        assert [r.short_code for r in SensitivityResult] == ["S", "I", "R"]


class TestTestMethod:

    def test_is_mic(self):
        assert not TestMethod.DISK_DIFFUSION.is_mic
        assert TestMethod.BROTH_MICRODILUTION.is_mic
        assert TestMethod.AGAR_DILUTION.is_mic
        assert TestMethod.ETEST.is_mic


class TestBreakpointStandard:

    def test_create(self, disk_standard):
        assert disk_standard.id.startswith("bp-")
        assert disk_standard.method == TestMethod.DISK_DIFFUSION
        assert disk_standard.bounds("intermediate") == (14, 16)
        assert disk_standard.bounds("susceptible") == (17, None)
        assert disk_standard.is_active

    def test_unknown_breakpoint_field(self):
        with pytest.raises(ValueError):
            BreakpointStandard.create("org", "drug", 2024, "disk_diffusion", {"s_min": 17})

    def test_reference(self, disk_standard, mic_standard):
        assert mic_standard.reference() == "CLSI 2024 broth_microdilution"
        disk_standard.source_document = "CLSI M100-S34"
        assert disk_standard.reference() == "CLSI 2024 disk_diffusion (CLSI M100-S34)"

    def test_to_dict(self, disk_standard):
        data = disk_standard.to_dict()
        assert data["method"] == "disk_diffusion"
        assert data["susceptible_min"] == 17
        assert data["resistant_min"] is None


class TestExpertRule:

    def test_lifecycle_and_years(self):
        rule = ExpertRule.create(
            name="Any year",
            description="",
            rule_type="reporting_guidance",
            condition="true == true",
            action="noop",
        )
        assert rule.is_active
        assert rule.applies_to_year(2018)
        assert rule.applies_to_year(2030)

        rule.year = 2024
        assert rule.applies_to_year(2024)
        assert not rule.applies_to_year(2023)

        rule.state = RuleState.RETIRED
        assert not rule.is_active
        assert rule.to_dict()["is_active"] is False
        assert rule.rule_type == RuleType.REPORTING_GUIDANCE


class TestLabResult:

    def make(self, raw_result):
        return LabResult.create(
            sample_id="S-001",
            microorganism_id="escherichia_coli",
            drug_id="AMP",
            test_method="disk_diffusion",
            raw_result=raw_result,
            technician="jdoe",
        )

    @pytest.mark.parametrize("raw,expected", [
        ("18", 18.0),
        (" 0.25 ", 0.25),
        (16, 16.0),
        ("no growth", None),
        ("", None),
        ("inf", None),
        ("nan", None),
        ("-4", None),
    ])
    def test_numeric_value(self, raw, expected):
        assert self.make(raw).numeric_value() == expected

    def test_defaults(self):
        lab_result = self.make("18")
        assert lab_result.validation_status == ValidationStatus.PENDING
        assert lab_result.interpretation is None
        assert not lab_result.is_validated()

    def test_to_dict_uses_short_code(self):
        lab_result = self.make("18")
        lab_result.interpretation = SensitivityResult.INTERMEDIATE
        lab_result.validation_status = ValidationStatus.REQUIRES_REVIEW

        data = lab_result.to_dict()
        assert data["interpretation"] == "I"
        assert data["validation_status"] == "requires_review"
        assert lab_result.needs_review()
