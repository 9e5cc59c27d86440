# tests/cli/test_cli.py
"""Tests for the signalflow CLI."""

import json
import logging
from pathlib import Path
from typing import Any

import pytest
import yaml
from typer.testing import CliRunner

runner = CliRunner()


@pytest.fixture(autouse=True)
def _restore_root_logger():
    # The CLI callback reconfigures logging onto the runner's captured stderr
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


def _write_settings(tmp_path: Path, data: dict[str, Any]) -> Path:
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


def _json_block(output: str) -> Any:
    """Extract the pretty-printed JSON document from mixed CLI output."""
    lines = output.splitlines()
    start = next(i for i, line in enumerate(lines) if line in ("{", "["))
    end = max(i for i, line in enumerate(lines) if line in ("}", "]"))
    return json.loads("\n".join(lines[start : end + 1]))


PLUGIN_STAGES = [
    {"id": "double", "kind": "plugin", "pluginPath": "tests.fixtures.stage_plugins:double"},
    {"id": "again", "kind": "plugin", "pluginPath": "tests.fixtures.stage_plugins:double", "dependsOn": ["double"]},
]


class TestCLIBasics:
    def test_version_flag(self) -> None:
        from signalflow import __version__
        from signalflow.cli import app

        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert f"signalflow version {__version__}" in result.output

    def test_help_lists_commands(self) -> None:
        from signalflow.cli import app

        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        for command in ("replay", "validate", "run"):
            assert command in result.output

    def test_missing_env_file(self, tmp_path: Path) -> None:
        from signalflow.cli import app

        result = runner.invoke(app, ["--env-file", str(tmp_path / "absent.env"), "validate"])

        assert result.exit_code == 1
        assert ".env file not found" in result.output


class TestValidateCommand:
    def test_valid_pipeline(self, tmp_path: Path) -> None:
        from signalflow.cli import app

        path = _write_settings(
            tmp_path,
            {"pipeline": {"name": "alpha", "version": "2", "stages": PLUGIN_STAGES}, "scoring": {"threshold": 0.7}},
        )

        result = runner.invoke(app, ["--no-dotenv", "validate", "-s", str(path)])

        assert result.exit_code == 0, result.output
        assert "Pipeline 'alpha@2' is valid." in result.output
        assert "Stages: 2" in result.output
        assert "Edges: 1" in result.output
        assert "Roots: double" in result.output
        assert "Sinks: again" in result.output
        assert "Topology hash:" in result.output
        assert "Scoring config hash:" in result.output

    def test_graph_errors_listed(self, tmp_path: Path) -> None:
        from signalflow.cli import app

        path = _write_settings(
            tmp_path,
            {"pipeline": {"stages": [{"id": "a", "dependsOn": ["b"]}, {"id": "b", "dependsOn": ["a"]}]}},
        )

        result = runner.invoke(app, ["--no-dotenv", "validate", "-s", str(path)])

        assert result.exit_code == 1
        assert "Pipeline graph errors:" in result.output
        assert "cycle" in result.output

    def test_missing_settings_file(self, tmp_path: Path) -> None:
        from signalflow.cli import app

        result = runner.invoke(app, ["--no-dotenv", "validate", "-s", str(tmp_path / "nope.yaml")])

        assert result.exit_code == 1
        assert "Settings file not found" in result.output

    def test_invalid_settings_values(self, tmp_path: Path) -> None:
        from signalflow.cli import app

        path = _write_settings(tmp_path, {"concurrency": {"max_workers": 0}})

        result = runner.invoke(app, ["--no-dotenv", "validate", "-s", str(path)])

        assert result.exit_code == 1
        assert "Configuration errors:" in result.output
        assert "concurrency.max_workers" in result.output


class TestRunCommand:
    def test_dag_run(self, tmp_path: Path) -> None:
        from signalflow.cli import app

        path = _write_settings(tmp_path, {"pipeline": {"stages": PLUGIN_STAGES}})
        payload = tmp_path / "input.json"
        payload.write_text("5")

        result = runner.invoke(app, ["--no-dotenv", "run", "-s", str(path), "-i", str(payload)])

        assert result.exit_code == 0, result.output
        assert _json_block(result.output) == {"payload": 20}

    def test_linear_run_with_stage_metadata(self, tmp_path: Path) -> None:
        from signalflow.cli import app

        path = _write_settings(tmp_path, {"pipeline": {"stages": PLUGIN_STAGES}})
        payload = tmp_path / "input.json"
        payload.write_text("3")

        result = runner.invoke(app, ["--no-dotenv", "run", "-s", str(path), "-i", str(payload), "--linear", "--stages"])

        assert result.exit_code == 0, result.output
        output = _json_block(result.output)
        assert output["payload"] == 12
        assert [stage["stage_id"] for stage in output["stages"]] == ["double", "again"]
        assert output["stages"][0]["status"] == "success"

    def test_internal_stage_cannot_run(self, tmp_path: Path) -> None:
        from signalflow.cli import app

        path = _write_settings(tmp_path, {"pipeline": {"stages": [{"id": "ingest"}]}})
        payload = tmp_path / "input.json"
        payload.write_text("{}")

        result = runner.invoke(app, ["--no-dotenv", "run", "-s", str(path), "-i", str(payload)])

        assert result.exit_code == 1
        assert "Internal stage 'ingest' has no registered handler" in result.output

    def test_stage_failure(self, tmp_path: Path) -> None:
        from signalflow.cli import app

        path = _write_settings(
            tmp_path,
            {"pipeline": {"stages": [{"id": "x", "kind": "plugin", "pluginPath": "tests.fixtures.stage_plugins:explode"}]}},
        )
        payload = tmp_path / "input.json"
        payload.write_text("1")

        result = runner.invoke(app, ["--no-dotenv", "run", "-s", str(path), "-i", str(payload)])

        assert result.exit_code == 1
        assert "Error during pipeline execution: RuntimeError: plugin exploded" in result.output

    def test_invalid_input_json(self, tmp_path: Path) -> None:
        from signalflow.cli import app

        path = _write_settings(tmp_path, {"pipeline": {"stages": PLUGIN_STAGES}})
        payload = tmp_path / "input.json"
        payload.write_text("{not json")

        result = runner.invoke(app, ["--no-dotenv", "run", "-s", str(path), "-i", str(payload)])

        assert result.exit_code == 1
        assert "not valid JSON" in result.output


class TestReplayCommand:
    @pytest.fixture
    def settings_path(self, tmp_path: Path, seeded_store_url: str) -> Path:
        return _write_settings(
            tmp_path,
            {
                "pipeline": {"name": "alpha", "entrypoint": "tests.fixtures.replay_pipelines:drifted_pipeline"},
                "store": {"url": seeded_store_url},
            },
        )

    def test_report_output(self, settings_path: Path) -> None:
        from signalflow.cli import app

        result = runner.invoke(app, ["--no-dotenv", "replay", "--id", "sig-raw", "-s", str(settings_path)])

        assert result.exit_code == 0, result.output
        assert "REPLAY RESULT" in result.output
        assert "decision changed: approve → reject" in result.output
        assert "Read-only replay; no DB writes performed" in result.output

    def test_json_output(self, settings_path: Path) -> None:
        from signalflow.cli import app

        result = runner.invoke(app, ["--no-dotenv", "replay", "--signal-id", "sig-raw", "-s", str(settings_path), "--json"])

        assert result.exit_code == 0, result.output
        data = _json_block(result.output)
        assert data["signal_id"] == "sig-raw"
        assert data["comparison"]["decision_changed"] is True

    def test_signal_not_found(self, settings_path: Path) -> None:
        from signalflow.cli import app

        result = runner.invoke(app, ["--no-dotenv", "replay", "--id", "sig-missing", "-s", str(settings_path)])

        assert result.exit_code == 1
        assert "Signal not found: sig-missing" in result.output

    def test_pipeline_failure(self, tmp_path: Path, seeded_store_url: str) -> None:
        from signalflow.cli import app

        path = _write_settings(
            tmp_path,
            {
                "pipeline": {"entrypoint": "tests.fixtures.replay_pipelines:broken_pipeline"},
                "store": {"url": seeded_store_url},
            },
        )

        result = runner.invoke(app, ["--no-dotenv", "replay", "--id", "sig-raw", "-s", str(path)])

        assert result.exit_code == 1
        assert "Replay failed: ZeroDivisionError: scoring blew up" in result.output

    def test_store_not_configured(self, tmp_path: Path) -> None:
        from signalflow.cli import app

        path = _write_settings(tmp_path, {"pipeline": {"entrypoint": "tests.fixtures.replay_pipelines:echo_pipeline"}})

        result = runner.invoke(app, ["--no-dotenv", "replay", "--id", "sig-raw", "-s", str(path)])

        assert result.exit_code == 1
        assert "Error: Signal store not configured" in result.output

    def test_store_url_from_environment(self, tmp_path: Path, seeded_store_url: str, monkeypatch: pytest.MonkeyPatch) -> None:
        from signalflow.cli import app

        path = _write_settings(tmp_path, {"pipeline": {"entrypoint": "tests.fixtures.replay_pipelines:echo_pipeline"}})
        monkeypatch.setenv("SIGNALFLOW_STORE__URL", seeded_store_url)

        result = runner.invoke(app, ["--no-dotenv", "replay", "--id", "sig-structured", "-s", str(path)])

        assert result.exit_code == 0, result.output
        assert "Input Source: reconstructed" in result.output
