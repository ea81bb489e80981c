"""Tests for the command line runner."""

from unittest.mock import patch

import pytest

from clsi_standards.runner import main
from clsi_standards.services import create_services
from clsi_standards.seed import BREAKPOINT_STANDARDS, EXPERT_RULES


@pytest.fixture
def seeded_db(db_path):
    assert main(["--db-path", db_path, "seed"]) == 0
    return db_path


class TestRunner:

    def test_init_db(self, db_path, tmp_path):
        assert main(["--db-path", db_path, "init-db"]) == 0
        assert (tmp_path / "standards.db").exists()

    def test_seed_is_idempotent(self, db_path, capsys):
        main(["--db-path", db_path, "seed"])
        first = capsys.readouterr().out
        main(["--db-path", db_path, "seed"])
        second = capsys.readouterr().out

        assert f"Created {len(BREAKPOINT_STANDARDS)} standards, {len(EXPERT_RULES)} rules" in first
        assert "Created 0 standards, 0 rules" in second

    def test_interpret(self, seeded_db, capsys):
        code = main([
            "--db-path", seeded_db, "interpret", "escherichia_coli", "AMP", "4",
            "--method", "broth_microdilution",
        ])

        out = capsys.readouterr().out
        assert code == 0
        assert "RESISTANT (R)" in out
        assert "overridden by" in out

    def test_interpret_unknown(self, seeded_db, capsys):
        assert main(["--db-path", seeded_db, "interpret", "unknown", "AMP", "20"]) == 1
        assert "No breakpoint standard" in capsys.readouterr().out

    def test_compare(self, seeded_db, capsys):
        assert main(["--db-path", seeded_db, "compare", "escherichia_coli", "CIP"]) == 0
        assert "Susceptible breakpoint changed from 21-None to 26-None" in capsys.readouterr().out

    def test_rules(self, seeded_db, capsys):
        assert main(["--db-path", seeded_db, "rules", "--type", "quality_control"]) == 0
        assert "Vancomycin Disk Diffusion QC" in capsys.readouterr().out

        assert main(["--db-path", seeded_db, "rules", "--stats"]) == 0
        assert "Total rules:   6" in capsys.readouterr().out

    def test_serve_builds_services_over_db_path_only(self, db_path):
        with patch("flask.Flask.run") as run, patch(
            "clsi_standards.dashboard.app.create_services", wraps=create_services
        ) as build:
            assert main(["--db-path", db_path, "serve", "--port", "5050"]) == 0

        build.assert_called_once_with(db_path)
        run.assert_called_once_with(host="127.0.0.1", port=5050, debug=False)

    def test_interpret_rejects_non_finite_value(self, seeded_db, capsys):
        assert main(["--db-path", seeded_db, "interpret", "escherichia_coli", "CIP", "inf"]) == 1
        assert "must be finite" in capsys.readouterr().out
