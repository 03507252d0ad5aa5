"""Tests for the codementor command line."""

import json

import pytest
from typer.testing import CliRunner

from codementor import __version__
from codementor.cli import app
from codementor.config import EngineConfig

runner = CliRunner()

CODE = "def run(expr, price):\n    total = price * 42\n    return eval(expr)\n"


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    """No user or project config leaks into the commands."""
    monkeypatch.setattr("pathlib.Path.home", lambda: tmp_path / "home")
    monkeypatch.chdir(tmp_path)
    for name in EngineConfig.__dataclass_fields__:
        monkeypatch.delenv(f"CODEMENTOR_{name.upper()}", raising=False)


@pytest.fixture
def source(tmp_path):
    path = tmp_path / "app.py"
    path.write_text(CODE)
    return path


class TestAnalyzeCommand:
    """codementor analyze"""

    def test_json_output(self, source):
        result = runner.invoke(app, ["analyze", str(source), "--json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["status"] == "ok"
        assert data["language"] == "python"
        assert [p["kind"] for p in data["patterns"]] == ["magic-number", "eval-usage"]

    def test_gentle_mode(self, source):
        result = runner.invoke(app, ["analyze", str(source), "--json", "--mode", "gentle"])
        assert result.exit_code == 0
        assert [p["kind"] for p in json.loads(result.stdout)["patterns"]] == ["eval-usage"]

    def test_rich_output(self, source):
        result = runner.invoke(app, ["analyze", str(source)])
        assert result.exit_code == 0
        assert "CODEMENTOR" in result.output
        assert "Security" in result.output

    def test_unsupported_language(self, tmp_path):
        path = tmp_path / "main.rb"
        path.write_text("x = 42\n")
        result = runner.invoke(app, ["analyze", str(path)])
        assert result.exit_code == 0
        assert "not supported" in result.output

    def test_record_suppresses_next_run(self, source, tmp_path):
        cache_dir = str(tmp_path / "cache")
        first = runner.invoke(app, ["analyze", str(source), "--json", "--record", "--cache-dir", cache_dir])
        second = runner.invoke(app, ["analyze", str(source), "--json", "--cache-dir", cache_dir])
        assert first.exit_code == second.exit_code == 0
        data = json.loads(second.stdout)
        assert data["patterns"] == []
        assert data["suppressed"] == 2

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["analyze", str(tmp_path / "nope.py")])
        assert result.exit_code != 0

    def test_invalid_config(self, source, tmp_path):
        config = tmp_path / "bad.toml"
        config.write_text('mode = "loud"\n')
        result = runner.invoke(app, ["analyze", str(source), "-c", str(config)])
        assert result.exit_code == 1
        assert "Error" in result.output


class TestCacheCommands:
    """codementor cache-info / cache-clear"""

    def test_info_in_memory(self):
        result = runner.invoke(app, ["cache-info"])
        assert result.exit_code == 0
        assert "In memory" in result.output

    def test_info_and_clear(self, source, tmp_path):
        cache_dir = str(tmp_path / "cache")
        runner.invoke(app, ["analyze", str(source), "--record", "--cache-dir", cache_dir])

        info = runner.invoke(app, ["cache-info", "--cache-dir", cache_dir])
        assert info.exit_code == 0
        assert "Entries: 2" in info.output

        cleared = runner.invoke(app, ["cache-clear", "--cache-dir", cache_dir])
        assert cleared.exit_code == 0
        assert "Notification cache cleared" in cleared.output

        after = runner.invoke(app, ["cache-info", "--cache-dir", cache_dir])
        assert "Entries: 0" in after.output

    def test_clear_without_store(self):
        result = runner.invoke(app, ["cache-clear"])
        assert result.exit_code == 0
        assert "No persistent cache configured" in result.output


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output
