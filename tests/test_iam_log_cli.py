"""Tests for IAM Log Report CLI."""

import json

import pytest
from click.testing import CliRunner
from openpyxl import load_workbook

from tools.iam_log_report.cli import main

SAMPLE_LOG = "\n".join(
    [
        "2024-01-01 06:00:00 INFO Batch started",
        "========= Included Users Based on LETZTES_AENDERUNGSDATUM =========",
        "User alice@x.com | Frau Muster, Alice included based on LETZTES_AENDERUNGSDATUM: 2024-01-01 10:00",
        "========= Ignorierte Nutzer von Mandanten =========",
        "Organization: Acme",
        "Ignorierter Nutzer: bob@x.com | Herrn Beispiel, Bob | LETZTES_AENDERUNGSDATUM:,ERFASSUNGSZEITPUNKT: 2024-01-01",
        "========= Mandanten mit einem Benutzer =========",
        "Geschäftspartner: Globex",
        "Benutzer: carol@x.com | Frau Test, Carol",
        "========= Users Added to Hauptverantwortlicher Group =========",
        "Benutzer: dave@x.com | DN: uid=dave,ou=Benutzer",
        "2024-01-01 06:05:00 INFO Batch finished",
    ]
)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def log_file(tmp_path):
    path = tmp_path / "batch.log"
    path.write_text(SAMPLE_LOG, encoding="utf-8")
    return path


class TestCli:
    """Test iam-log-report command."""

    def test_writes_workbook(self, runner, log_file, tmp_path):
        """Test the default run writes all six sheets."""
        output = tmp_path / "report.xlsx"

        result = runner.invoke(main, [str(log_file), "--output", str(output)])

        assert result.exit_code == 0, result.output
        assert output.exists()

        workbook = load_workbook(output)
        assert len(workbook.sheetnames) == 6
        assert workbook["Ignored users"]["A2"].value == "Acme"
        assert workbook["Single-user tenants"]["A2"].value == "Globex"
        assert workbook["Group-added users"]["B2"].value == "uid=dave,ou=Benutzer"
        assert workbook["Multi-user tenants"].auto_filter.ref is None

    def test_default_output_name(self, runner, log_file):
        """Test the workbook name defaults to log_analysis.xlsx."""
        with runner.isolated_filesystem():
            result = runner.invoke(main, [str(log_file)])

            assert result.exit_code == 0, result.output
            workbook = load_workbook("log_analysis.xlsx")
            assert workbook.sheetnames[0] == "Included (by last-change-date)"

    def test_json_output(self, runner, log_file):
        """Test --json prints the report tables."""
        result = runner.invoke(main, [str(log_file), "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)

        assert len(data) == 6
        included = data["Included (by last-change-date)"]["rows"]
        assert included == [
            {
                "Email": "alice@x.com",
                "Salutation": "Frau",
                "Name": "Muster, Alice",
                "Timestamp": "2024-01-01 10:00",
            }
        ]
        ignored = data["Ignored users"]["rows"][0]
        assert ignored["LastChangeDate"] is None
        assert ignored["CaptureTimestamp"] == "2024-01-01"

    def test_rejects_non_log_file(self, runner, tmp_path):
        """Test files without .log suffix are refused."""
        path = tmp_path / "batch.txt"
        path.write_text(SAMPLE_LOG)

        result = runner.invoke(main, [str(path), "--output", str(tmp_path / "out.xlsx")])

        assert result.exit_code == 1
        assert "valid .log file" in result.output
        assert not (tmp_path / "out.xlsx").exists()

    def test_unreadable_log(self, runner, tmp_path):
        """Test undecodable input is reported and nothing is written."""
        path = tmp_path / "batch.log"
        path.write_bytes(b"\xff\xfe\xfa")
        output = tmp_path / "out.xlsx"

        result = runner.invoke(main, [str(path), "--output", str(output)])

        assert result.exit_code == 1
        assert "Could not read log file" in result.output
        assert not output.exists()

    def test_missing_log(self, runner, tmp_path):
        """Test click rejects a missing input file."""
        result = runner.invoke(main, [str(tmp_path / "missing.log")])
        assert result.exit_code == 2

    def test_unwritable_output(self, runner, log_file, tmp_path):
        """Test a workbook save failure exits with an error."""
        output = tmp_path / "missing" / "report.xlsx"

        result = runner.invoke(main, [str(log_file), "--output", str(output)])

        assert result.exit_code == 1
        assert "Failed to write" in result.output

    def test_empty_log(self, runner, tmp_path):
        """Test a log without records still writes header-only sheets."""
        path = tmp_path / "empty.log"
        path.write_text("")
        output = tmp_path / "out.xlsx"

        result = runner.invoke(main, [str(path), "--output", str(output)])

        assert result.exit_code == 0, result.output
        workbook = load_workbook(output)
        assert all(ws.max_row == 1 for ws in workbook.worksheets)
