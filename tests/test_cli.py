"""
Tests for the bft-manifest command.
"""

import json

from bft_manifest.cli import EXIT_INVALID, EXIT_LOAD_FAILED, EXIT_OK, main
from bft_manifest.loader import save_manifest

INVALID_MANIFEST = """
entities:
  - name: Student
    estimated_rows: 0
  - name: Student
    estimated_rows: 10
"""


class TestValidManifest:
    def test_text_report(self, university_path, capsys):
        assert main([str(university_path)]) == EXIT_OK

        out = capsys.readouterr().out
        assert "✓ Manifest is valid" in out
        assert "Table: department_financial" in out
        assert "Total:            182,000" in out
        assert "Placeholder rows: +2000 (Class: 1200, Professor: 800)" in out

    def test_table_filter(self, university_path, capsys):
        assert main([str(university_path), "--table", "faculty_roster"]) == EXIT_OK

        out = capsys.readouterr().out
        assert "Table: faculty_roster" in out
        assert "department_financial" not in out

    def test_json_report(self, university_ops_path, capsys):
        assert main([str(university_ops_path), "--json"]) == EXIT_OK

        data = json.loads(capsys.readouterr().out)
        assert data["errors"] == []
        monthly = data["tables"]["monthly_operations"]
        assert monthly["rows"] == 96
        assert monthly["total"] == 96
        assert "2 independent row groups (UNION ALL)" in monthly["breakdown"]

    def test_unknown_table(self, university_path, capsys):
        assert main([str(university_path), "--table", "nope"]) == EXIT_LOAD_FAILED
        assert "Unknown table: nope" in capsys.readouterr().err

    def test_metric_outside_grain_still_estimates(self, manifest, tmp_path, capsys):
        """A metric whose home is not in the grain does not block estimates."""
        manifest.get_table("student_advising").metrics.append("salary")
        path = tmp_path / "manifest.yaml"
        save_manifest(manifest, path)

        assert main([str(path), "--table", "student_advising"]) == EXIT_OK
        assert "Total:            120,000" in capsys.readouterr().out


class TestInvalidManifest:
    def test_errors_printed_and_no_estimates(self, tmp_path, capsys):
        path = tmp_path / "invalid.yaml"
        path.write_text(INVALID_MANIFEST)

        assert main([str(path)]) == EXIT_INVALID

        out = capsys.readouterr().out
        assert "2 error(s)" in out
        assert "[positive-cardinality]" in out
        assert "[no-duplicates]" in out
        assert "Table:" not in out

    def test_json_errors(self, tmp_path, capsys):
        path = tmp_path / "invalid.yaml"
        path.write_text(INVALID_MANIFEST)

        assert main([str(path), "--json"]) == EXIT_INVALID

        data = json.loads(capsys.readouterr().out)
        assert [e["rule"] for e in data["errors"]] == [
            "no-duplicates",
            "positive-cardinality",
        ]
        assert data["errors"][1]["path"] == "entities.Student.estimated_rows"


class TestLoadFailure:
    def test_missing_file(self, tmp_path, capsys):
        assert main([str(tmp_path / "missing.yaml")]) == EXIT_LOAD_FAILED
        assert "Error:" in capsys.readouterr().err

    def test_not_a_mapping(self, tmp_path, capsys):
        path = tmp_path / "list.yaml"
        path.write_text("- one\n- two\n")
        assert main([str(path)]) == EXIT_LOAD_FAILED
