"""Tests for the alertshape CLI.

Uses typer.testing.CliRunner for isolated CLI testing.
"""

from __future__ import annotations

import json

import pytest
import yaml
from typer.testing import CliRunner

from alertshape.cli import app
from alertshape.codec import load_rule
from alertshape.matcher import check_simple_condition

runner = CliRunner()


@pytest.fixture
def simple_file(tmp_path, simple_rule):
    path = tmp_path / "simple.yaml"
    path.write_text(yaml.safe_dump(simple_rule))
    return path


@pytest.fixture
def advanced_file(tmp_path, simple_rule):
    simple_rule["data"][2]["model"]["conditions"][0]["unloadEvaluator"] = {
        "params": [70],
        "type": "lt",
    }
    path = tmp_path / "advanced.json"
    path.write_text(json.dumps(simple_rule))
    return path


@pytest.fixture
def invalid_file(tmp_path):
    path = tmp_path / "invalid.yaml"
    path.write_text(yaml.safe_dump({"title": "no data"}))
    return path


# =========================================================================
# App structure
# =========================================================================


class TestAppStructure:
    def test_app_has_all_commands(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("check", "explain", "template", "schema"):
            assert command in result.output

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert "check" in result.output


# =========================================================================
# check
# =========================================================================


class TestCheck:
    def test_simple_rule(self, simple_file):
        result = runner.invoke(app, ["check", str(simple_file)])
        assert result.exit_code == 0
        assert f"{simple_file}: simple" in result.output

    def test_advanced_rule(self, advanced_file):
        result = runner.invoke(app, ["check", str(advanced_file)])
        assert result.exit_code == 1
        assert "advanced (unload_evaluator" in result.output

    def test_invalid_rule(self, invalid_file):
        result = runner.invoke(app, ["check", str(invalid_file)])
        assert result.exit_code == 2
        assert "Invalid rule document" in result.output

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["check", str(tmp_path / "nope.yaml")])
        assert result.exit_code == 2
        assert "Rule file not found" in result.output

    def test_deeply_nested_file(self, tmp_path):
        path = tmp_path / "deep.json"
        path.write_text("[" * 100000 + "]" * 100000)
        result = runner.invoke(app, ["check", str(path)])
        assert result.exit_code == 2
        assert "Could not parse" in result.output

    def test_mixed_files_report_worst(self, simple_file, advanced_file, invalid_file):
        result = runner.invoke(app, ["check", str(simple_file), str(advanced_file), str(invalid_file)])
        assert result.exit_code == 2
        assert "simple" in result.output
        assert "advanced" in result.output

    def test_simple_and_advanced(self, simple_file, advanced_file):
        result = runner.invoke(app, ["check", str(simple_file), str(advanced_file)])
        assert result.exit_code == 1

    def test_quiet(self, simple_file, advanced_file):
        result = runner.invoke(app, ["check", "--quiet", str(simple_file), str(advanced_file)])
        assert result.exit_code == 1
        assert "simple" not in result.output
        assert "advanced" not in result.output

    def test_verbose_logs_checks(self, simple_file):
        result = runner.invoke(app, ["--verbose", "check", str(simple_file)])
        assert result.exit_code == 0
        assert "shape.checked" in result.output


# =========================================================================
# explain
# =========================================================================


class TestExplain:
    def test_simple_rule(self, simple_file):
        result = runner.invoke(app, ["explain", str(simple_file)])
        assert result.exit_code == 0
        assert "Rule: High CPU" in result.output
        assert "Queries: 1 data, 2 expression" in result.output
        assert "FAIL" not in result.output
        assert "simple: WHEN mean OF A IS gt (80)" in result.output

    def test_advanced_rule(self, advanced_file):
        result = runner.invoke(app, ["explain", str(advanced_file)])
        assert result.exit_code == 1
        assert "[FAIL] no unload evaluator" in result.output
        assert "[  ok] reducer mode is strict" in result.output
        assert "advanced: threshold condition 0 has an unload evaluator" in result.output

    def test_later_checks_are_skipped(self, tmp_path, simple_rule):
        simple_rule["data"][0]["refId"] = "X"
        path = tmp_path / "rule.yaml"
        path.write_text(yaml.safe_dump(simple_rule))
        result = runner.invoke(app, ["explain", str(path)])
        assert result.exit_code == 1
        assert "[FAIL] data query is A" in result.output
        assert "[skip] reducer mode is strict" in result.output

    def test_invalid_rule(self, invalid_file):
        result = runner.invoke(app, ["explain", str(invalid_file)])
        assert result.exit_code == 2
        assert "Error:" in result.output


# =========================================================================
# template / schema
# =========================================================================


class TestTemplate:
    def test_template_is_simple(self, tmp_path):
        result = runner.invoke(app, ["template", "--datasource", "prom", "--threshold", "90"])
        assert result.exit_code == 0
        path = tmp_path / "rule.yaml"
        path.write_text(result.output)
        doc = load_rule(path)
        assert doc.condition == "C"
        assert doc.data_queries[0].datasource_uid == "prom"
        assert check_simple_condition(doc.data_queries, doc.expression_queries).ok

    def test_template_json_range(self):
        result = runner.invoke(
            app,
            ["template", "-f", "json", "-e", "within_range", "--threshold", "1", "--threshold", "5"],
        )
        assert result.exit_code == 0
        doc = json.loads(result.output)
        evaluator = doc["data"][2]["model"]["conditions"][0]["evaluator"]
        assert evaluator == {"params": [1.0, 5.0], "type": "within_range"}

    def test_template_json_ends_with_newline(self):
        result = runner.invoke(app, ["template", "-f", "json"])
        assert result.exit_code == 0
        assert result.output.endswith("}\n")

    def test_template_default_datasource_from_env(self, monkeypatch):
        monkeypatch.setenv("ALERTSHAPE_DEFAULT_DATASOURCE", "loki-main")
        result = runner.invoke(app, ["template", "-f", "json"])
        assert json.loads(result.output)["data"][0]["datasourceUid"] == "loki-main"

    def test_template_window_from_env(self, monkeypatch):
        monkeypatch.setenv("ALERTSHAPE_DEFAULT_WINDOW_SECONDS", "300")
        result = runner.invoke(app, ["template", "-f", "json"])
        assert json.loads(result.output)["data"][0]["relativeTimeRange"] == {"from": 300, "to": 0}

    def test_template_invalid_evaluator(self):
        result = runner.invoke(app, ["template", "-e", "bigger"])
        assert result.exit_code == 2
        assert "Invalid evaluator" in result.output

    def test_template_invalid_format(self):
        result = runner.invoke(app, ["template", "-f", "toml"])
        assert result.exit_code == 2


class TestSchema:
    def test_print_json(self):
        result = runner.invoke(app, ["schema"])
        assert result.exit_code == 0
        assert "# Rule Schema v1.0" in result.output
        assert '"$defs"' in result.output

    def test_print_yaml(self):
        result = runner.invoke(app, ["schema", "-f", "yaml"])
        assert result.exit_code == 0
        assert "$defs:" in result.output

    def test_export(self, tmp_path):
        result = runner.invoke(app, ["schema", "-o", str(tmp_path)])
        assert result.exit_code == 0
        assert (tmp_path / "rule.v1.0.schema.json").exists()


# =========================================================================
# configuration errors
# =========================================================================


class TestConfigErrors:
    def test_unknown_log_formatter(self, monkeypatch, simple_file):
        monkeypatch.setenv("ALERTSHAPE_LOG_FORMATTER", "bogus")
        result = runner.invoke(app, ["check", str(simple_file)])
        assert result.exit_code == 2
        assert "Error: Unknown log formatter: 'bogus'" in result.output

    def test_unknown_log_level(self, monkeypatch, simple_file):
        monkeypatch.setenv("ALERTSHAPE_LOG_LEVEL", "LOUD")
        result = runner.invoke(app, ["check", str(simple_file)])
        assert result.exit_code == 2
        assert "Error: Unknown log level: 'LOUD'" in result.output

    def test_bad_integer(self, monkeypatch):
        monkeypatch.setenv("ALERTSHAPE_DEFAULT_WINDOW_SECONDS", "ten minutes")
        result = runner.invoke(app, ["template"])
        assert result.exit_code == 2
        assert "is not a valid integer" in result.output
