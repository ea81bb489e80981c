"""Tests for the REST API using the Flask test client."""

import pytest

from clsi_standards.dashboard import create_app
from clsi_standards.seed import seed_all


@pytest.fixture
def app(db_path):
    app = create_app({"TESTING": True, "CLSI_DB_PATH": db_path, "CLSI_API_KEY": ""})
    seed_all(app.services.breakpoints, app.services.rules)
    return app


@pytest.fixture
def client(app):
    return app.test_client()


class TestBreakpointEndpoints:

    def test_list(self, client):
        response = client.get("/api/breakpoints?microorganism_id=escherichia_coli&drug_id=AMP")

        assert response.status_code == 200
        assert response.get_json()["count"] == 2

    def test_latest(self, client):
        response = client.get("/api/breakpoints/latest?microorganism_id=escherichia_coli&drug_id=CIP")

        assert response.status_code == 200
        assert response.get_json()["standard"]["year"] == 2024

    def test_latest_not_found(self, client):
        response = client.get("/api/breakpoints/latest?microorganism_id=escherichia_coli&drug_id=VAN")
        assert response.status_code == 404

    def test_latest_missing_params(self, client):
        response = client.get("/api/breakpoints/latest?drug_id=AMP")

        assert response.status_code == 400
        assert "microorganism_id" in response.get_json()["error"]

    def test_years(self, client):
        assert client.get("/api/breakpoints/years").get_json()["years"] == [2024, 2018]

    def test_compare(self, client):
        response = client.get("/api/breakpoints/compare?microorganism_id=escherichia_coli&drug_id=CIP")

        comparisons = response.get_json()["comparisons"]
        assert len(comparisons) == 1
        assert comparisons[0]["years"] == [2018, 2024]
        assert len(comparisons[0]["changes"]) == 3

    def test_create(self, client):
        response = client.post("/api/breakpoints", json={
            "microorganism_id": "klebsiella_pneumoniae",
            "drug_id": "MEM",
            "year": 2024,
            "method": "disk_diffusion",
            "breakpoints": {"susceptible_min": 23, "intermediate_min": 20,
                            "intermediate_max": 22, "resistant_max": 19},
        })

        assert response.status_code == 201
        assert response.get_json()["standard"]["susceptible_min"] == 23

    def test_create_duplicate(self, client):
        response = client.post("/api/breakpoints", json={
            "microorganism_id": "escherichia_coli",
            "drug_id": "AMP",
            "year": 2024,
            "method": "disk_diffusion",
            "breakpoints": {"susceptible_min": 17},
        })
        assert response.status_code == 400

    def test_create_invalid_bounds(self, client):
        response = client.post("/api/breakpoints", json={
            "microorganism_id": "klebsiella_pneumoniae",
            "drug_id": "MEM",
            "year": 2024,
            "method": "broth_microdilution",
            "breakpoints": {"susceptible_max": 8, "resistant_min": 1},
        })
        assert response.status_code == 400

    def test_update(self, client, app):
        standard = app.services.breakpoints.get_latest_breakpoint("escherichia_coli", "AMP", "disk_diffusion")

        response = client.patch(f"/api/breakpoints/{standard.id}", json={"notes": "Revised"})
        assert response.status_code == 200
        assert response.get_json()["standard"]["notes"] == "Revised"

        assert client.patch("/api/breakpoints/bp-missing", json={"notes": "x"}).status_code == 404
        assert client.get("/api/breakpoints/bp-missing").status_code == 404


class TestInterpretEndpoint:

    def test_interpret(self, client):
        response = client.post("/api/interpret", json={
            "microorganism_id": "escherichia_coli",
            "drug_id": "AMP",
            "test_value": 20,
            "method": "disk_diffusion",
        })

        data = response.get_json()
        assert response.status_code == 200
        assert data["interpretation"] == "susceptible"
        assert data["confidence"] == "high"
        assert data["validation"]["is_valid"] is True

    def test_interpret_override(self, client):
        data = client.post("/api/interpret", json={
            "microorganism_id": "escherichia_coli",
            "drug_id": "AMP",
            "test_value": 4,
            "method": "broth_microdilution",
        }).get_json()

        assert data["interpretation"] == "resistant"
        assert data["raw_interpretation"] == "susceptible"
        assert data["validation"]["overridden_by"] is not None

    def test_interpret_not_found(self, client):
        response = client.post("/api/interpret", json={
            "microorganism_id": "escherichia_coli",
            "drug_id": "AMP",
            "test_value": 20,
            "method": "disk_diffusion",
            "year": 2010,
        })
        assert response.status_code == 404

    def test_interpret_bad_input(self, client):
        assert client.post("/api/interpret", json={"drug_id": "AMP"}).status_code == 400
        response = client.post("/api/interpret", json={
            "microorganism_id": "escherichia_coli",
            "drug_id": "AMP",
            "test_value": 20,
            "method": "microscopy",
        })
        assert response.status_code == 400

    @pytest.mark.parametrize("value", ["inf", "nan", -4])
    def test_interpret_impossible_measurement(self, client, value):
        response = client.post("/api/interpret", json={
            "microorganism_id": "escherichia_coli",
            "drug_id": "CIP",
            "test_value": value,
            "method": "disk_diffusion",
        })

        assert response.status_code == 400
        assert response.get_json()["success"] is False


class TestExpertRuleEndpoints:

    def test_list_and_filter(self, client):
        assert client.get("/api/expert-rules").get_json()["count"] == 6
        assert client.get("/api/expert-rules?rule_type=quality_control").get_json()["count"] == 1

    def test_create(self, client):
        response = client.post("/api/expert-rules", json={
            "name": "Klebsiella Ampicillin Intrinsic Resistance",
            "rule_type": "intrinsic_resistance",
            "condition": 'interpretedResult == "S"',
            "action": "Report ampicillin as resistant",
            "priority": 9,
            "microorganism_id": "klebsiella_pneumoniae",
            "drug_id": "AMP",
        })

        assert response.status_code == 201
        assert response.get_json()["rule"]["state"] == "active"

    def test_create_bad_condition(self, client):
        response = client.post("/api/expert-rules", json={
            "name": "Broken",
            "rule_type": "quality_control",
            "condition": "testValue <",
            "action": "noop",
        })

        assert response.status_code == 400
        assert "Invalid condition" in response.get_json()["error"]

    def test_create_deeply_nested_condition(self, client):
        response = client.post("/api/expert-rules", json={
            "name": "Nested",
            "rule_type": "quality_control",
            "condition": "(" * 300 + "testValue > 1" + ")" * 300,
            "action": "noop",
        })

        assert response.status_code == 400
        assert "nested" in response.get_json()["error"]

    def test_statistics(self, client):
        data = client.get("/api/expert-rules/statistics").get_json()

        assert data["total_rules"] == 6
        assert data["active_rules"] == 6

    def test_retire_and_update(self, client, app):
        rule = app.services.rules.get_rules_by_type("quality_control")[0]

        response = client.delete(f"/api/expert-rules/{rule.id}")
        assert response.get_json()["rule"]["state"] == "retired"

        response = client.patch(f"/api/expert-rules/{rule.id}", json={"priority": 1})
        assert response.get_json()["rule"]["priority"] == 1

        assert client.patch("/api/expert-rules/rule-missing", json={"priority": 1}).status_code == 404
        assert client.delete("/api/expert-rules/rule-missing").status_code == 404

    def test_validate(self, client):
        response = client.post("/api/expert-rules/validate", json={
            "microorganism_id": "staphylococcus_aureus",
            "drug_id": "VAN",
            "test_value": 17,
            "test_method": "disk_diffusion",
            "interpreted_result": "S",
            "year": 2024,
        })

        data = response.get_json()
        assert response.status_code == 200
        assert data["requires_review"] is True
        assert data["triggered_rules"][0]["rule_type"] == "quality_control"

    def test_validate_rejects_non_finite_value(self, client):
        response = client.post("/api/expert-rules/validate", json={
            "microorganism_id": "staphylococcus_aureus",
            "drug_id": "VAN",
            "test_value": "inf",
            "test_method": "broth_microdilution",
            "interpreted_result": "S",
        })

        assert response.status_code == 400


class TestLabResultEndpoints:

    def create(self, client, raw_result="20"):
        return client.post("/api/lab-results", json={
            "sample_id": "S-001",
            "microorganism_id": "escherichia_coli",
            "drug_id": "AMP",
            "test_method": "disk_diffusion",
            "raw_result": raw_result,
            "technician": "jdoe",
        })

    def test_create_and_get(self, client):
        response = self.create(client)

        assert response.status_code == 201
        lab_result = response.get_json()["lab_result"]
        assert lab_result["interpretation"] == "S"
        assert lab_result["validation_status"] == "validated"

        fetched = client.get(f"/api/lab-results/{lab_result['id']}").get_json()
        assert fetched["lab_result"]["id"] == lab_result["id"]

    def test_create_missing_fields(self, client):
        response = client.post("/api/lab-results", json={"sample_id": "S-001"})
        assert response.status_code == 400

    def test_not_found(self, client):
        assert client.get("/api/lab-results/lab-missing").status_code == 404
        response = client.post("/api/lab-results/lab-missing/validate", json={"reviewed_by": "r"})
        assert response.status_code == 404

    def test_validate_and_reject(self, client):
        result_id = self.create(client, raw_result="no growth").get_json()["lab_result"]["id"]

        assert client.post(f"/api/lab-results/{result_id}/validate", json={}).status_code == 400
        response = client.post(f"/api/lab-results/{result_id}/validate", headers={"X-User": "reviewer"})
        assert response.get_json()["lab_result"]["validation_status"] == "validated"

        assert client.post(f"/api/lab-results/{result_id}/reject", json={"reviewed_by": "r"}).status_code == 400
        response = client.post(f"/api/lab-results/{result_id}/reject", json={
            "reviewed_by": "reviewer", "reason": "Contaminated plate",
        })
        assert response.get_json()["lab_result"]["validation_status"] == "rejected"

    def test_list_and_statistics(self, client):
        self.create(client)
        self.create(client, raw_result="no growth")

        assert client.get("/api/lab-results").get_json()["count"] == 2
        assert client.get("/api/lab-results?status=requires_review").get_json()["count"] == 1

        stats = client.get("/api/lab-results/statistics").get_json()
        assert stats["total_results"] == 2
        assert stats["quality_control_stats"]["passed"] == 1

    def test_bulk_validate(self, client):
        result_id = self.create(client, raw_result="15").get_json()["lab_result"]["id"]

        data = client.post("/api/lab-results/bulk-validate", json={
            "result_ids": [result_id, "lab-missing"],
            "reviewed_by": "reviewer",
        }).get_json()

        assert data["successful"] == 1
        assert data["failed"] == 1
        assert data["success"] is False


class TestApiKey:

    @pytest.fixture
    def secured_client(self, db_path):
        app = create_app({"TESTING": True, "CLSI_DB_PATH": db_path, "CLSI_API_KEY": "secret"})
        return app.test_client()

    def test_missing_key(self, secured_client):
        response = secured_client.get("/api/breakpoints/years")
        assert response.status_code == 401

    def test_header_key(self, secured_client):
        response = secured_client.get("/api/breakpoints/years", headers={"X-API-Key": "secret"})
        assert response.status_code == 200

    def test_query_key(self, secured_client):
        assert secured_client.get("/api/breakpoints/years?key=secret").status_code == 200

    def test_health_is_open(self, secured_client):
        assert secured_client.get("/health").status_code == 200
