"""Integration tests for livelist CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from livelist.cli import cli


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Return a fresh tmp dir as project root."""
    return tmp_path


@pytest.fixture
def initialized(runner: CliRunner, project_dir: Path) -> Path:
    result = runner.invoke(cli, ["init", "--project-root", str(project_dir)])
    assert result.exit_code == 0
    return project_dir


def _write_main(project_dir: Path, items: list[dict]) -> None:
    (project_dir / "snapshots" / "main.json").write_text(json.dumps(items))


def _sync(runner: CliRunner, project_dir: Path, *extra: str):
    return runner.invoke(
        cli, ["sync", "--project-root", str(project_dir), "--list", "main", *extra],
    )


class TestInit:
    def test_creates_livelist_dir(self, runner: CliRunner, project_dir: Path) -> None:
        result = runner.invoke(cli, ["init", "--project-root", str(project_dir)])
        assert result.exit_code == 0
        assert (project_dir / ".livelist").is_dir()

    def test_creates_config_yaml(self, initialized: Path) -> None:
        config = yaml.safe_load((initialized / ".livelist" / "config.yaml").read_text())
        assert config["min_poll_interval"] == 15
        assert config["lists"][0]["id"] == "main"

    def test_creates_empty_snapshot(self, initialized: Path) -> None:
        assert (initialized / "snapshots" / "main.json").read_text() == "[]\n"

    def test_refuses_existing(self, runner: CliRunner, initialized: Path) -> None:
        result = runner.invoke(cli, ["init", "--project-root", str(initialized)])
        assert result.exit_code == 1
        assert "already exists" in result.output


class TestSync:
    def test_empty_snapshot(self, runner: CliRunner, initialized: Path) -> None:
        result = _sync(runner, initialized)
        assert result.exit_code == 0
        assert "List main:" in result.output
        assert "Inserted: 0" in result.output

    def test_inserts(self, runner: CliRunner, initialized: Path) -> None:
        _write_main(initialized, [{"id": "a", "sort_time": 1}, {"id": "b", "sort_time": 2}])
        result = _sync(runner, initialized)
        assert result.exit_code == 0
        assert "Inserted: 2" in result.output
        assert "Live items: 2 / 20" in result.output

    def test_dry_run(self, runner: CliRunner, initialized: Path) -> None:
        _write_main(initialized, [{"id": "a", "sort_time": 1}])
        result = _sync(runner, initialized, "--dry-run")
        assert result.exit_code == 0
        assert "[dry run]" in result.output
        show = runner.invoke(cli, ["show", "--project-root", str(initialized), "--list", "main"])
        assert "List main is empty." in show.output

    def test_validation_failure(self, runner: CliRunner, initialized: Path) -> None:
        _write_main(initialized, [{"id": "a", "sort_time": 0}])
        result = _sync(runner, initialized)
        assert result.exit_code == 1
        assert "Validation failed" in result.output

    def test_explicit_snapshot(self, runner: CliRunner, initialized: Path) -> None:
        other = initialized / "other.json"
        other.write_text(json.dumps({"items": [{"id": "x", "sort_time": 3}]}))
        result = _sync(runner, initialized, "--snapshot", str(other))
        assert result.exit_code == 0
        assert "Inserted: 1" in result.output

    def test_unknown_list(self, runner: CliRunner, initialized: Path) -> None:
        result = runner.invoke(
            cli, ["sync", "--project-root", str(initialized), "--list", "nope"],
        )
        assert result.exit_code != 0

    def test_missing_config(self, runner: CliRunner, project_dir: Path) -> None:
        result = _sync(runner, project_dir)
        assert result.exit_code != 0


class TestShow:
    def test_lists_items(self, runner: CliRunner, initialized: Path) -> None:
        _write_main(initialized, [{"id": "a", "sort_time": 1}])
        _sync(runner, initialized)
        result = runner.invoke(cli, ["show", "--project-root", str(initialized), "--list", "main"])
        assert result.exit_code == 0
        assert "a  sort=1  update=1" in result.output

    def test_json(self, runner: CliRunner, initialized: Path) -> None:
        _write_main(initialized, [{"id": "a", "sort_time": 1, "title": "Hi"}])
        _sync(runner, initialized)
        result = runner.invoke(
            cli, ["show", "--project-root", str(initialized), "--list", "main", "--json"],
        )
        data = json.loads(result.output)
        assert data[0]["id"] == "a"
        assert data[0]["payload"] == {"title": "Hi"}


class TestStatus:
    def test_no_database(self, runner: CliRunner, initialized: Path) -> None:
        result = runner.invoke(cli, ["status", "--project-root", str(initialized)])
        assert result.exit_code == 1
        assert "No database found" in result.output

    def test_after_sync(self, runner: CliRunner, initialized: Path) -> None:
        _write_main(initialized, [{"id": "a", "sort_time": 1}])
        _sync(runner, initialized)
        result = runner.invoke(cli, ["status", "--project-root", str(initialized)])
        assert result.exit_code == 0
        assert "main:" in result.output
        assert "Live items: 1 / 20" in result.output
        assert "Recent flushes (1)" in result.output


class TestExport:
    def test_writes_html(self, runner: CliRunner, initialized: Path) -> None:
        _write_main(initialized, [{"id": "a", "sort_time": 1, "title": "Hello"}])
        _sync(runner, initialized)
        out = initialized / "page.html"
        result = runner.invoke(
            cli,
            ["export", "--project-root", str(initialized), "--list", "main", "--output", str(out)],
        )
        assert result.exit_code == 0
        html = out.read_text()
        assert 'id="a"' in html
        assert "Hello" in html

    def test_stdout(self, runner: CliRunner, initialized: Path) -> None:
        result = runner.invoke(cli, ["export", "--project-root", str(initialized), "--list", "main"])
        assert result.exit_code == 0
        assert 'id="main"' in result.output
