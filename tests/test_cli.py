"""Tests for the command line interface."""

import json

import pytest
from typer.testing import CliRunner

from timetable_engine.cli import EXIT_CAPACITY, app

runner = CliRunner()


@pytest.fixture
def input_file(tmp_path, sample_document):
    path = tmp_path / "input.json"
    path.write_text(json.dumps(sample_document), encoding="utf-8")
    return path


class TestCli:
    def test_analyze(self, input_file):
        result = runner.invoke(app, ["analyze", str(input_file)])
        assert result.exit_code == 0
        assert "Laboratories" in result.output

    def test_analyze_insufficient(self, tmp_path, sample_document):
        sample_document["resources"] = [{"name": "LAB-1", "type": "laboratory"}]
        path = tmp_path / "small.json"
        path.write_text(json.dumps(sample_document), encoding="utf-8")

        result = runner.invoke(app, ["analyze", str(path)])
        assert result.exit_code == EXIT_CAPACITY

    def test_generate(self, input_file, tmp_path):
        output = tmp_path / "result.json"
        excel_dir = tmp_path / "xlsx"

        result = runner.invoke(
            app,
            ["generate", str(input_file), "-o", str(output), "--excel", str(excel_dir),
             "--store", str(tmp_path / "runs")],
        )

        assert result.exit_code == 0, result.output
        document = json.loads(output.read_text(encoding="utf-8"))
        assert document["success"] is True
        assert list(excel_dir.glob("timetable_*.xlsx"))
        assert list((tmp_path / "runs").glob("*.json"))

    def test_generate_invalid_input(self, tmp_path, sample_document):
        sample_document["lectureAssignments"][0]["hoursPerWeek"] = "lots"
        path = tmp_path / "bad.json"
        path.write_text(json.dumps(sample_document), encoding="utf-8")

        result = runner.invoke(app, ["generate", str(path), "-o", str(tmp_path / "o.json")])
        assert result.exit_code == 1
