"""CLI and entrypoint tests."""

from __future__ import annotations

import re
import runpy
from pathlib import Path

import pytest
from typer.testing import CliRunner

from buildwatch.cli import _run, app
from buildwatch.config import Config


def _add(runner: CliRunner, data_dir: Path, *args: str) -> str:
    result = runner.invoke(app, ["add", *args, "--data-dir", str(data_dir)])
    assert result.exit_code == 0, result.output
    match = re.search(r"\(([0-9a-f]{32})\)", result.output)
    assert match is not None
    return match.group(1)


def test_cli_run_invokes_asyncio_run(monkeypatch, tmp_path: Path) -> None:
    called: dict[str, object] = {}

    def fake_asyncio_run(coro) -> None:  # type: ignore[no-untyped-def]
        called["name"] = coro.cr_code.co_name
        coro.close()

    monkeypatch.setattr("buildwatch.cli.asyncio.run", fake_asyncio_run)
    runner = CliRunner()
    result = runner.invoke(app, ["--data-dir", str(tmp_path), "--interval", "5"])
    assert result.exit_code == 0
    assert called["name"] == "_run"


def test_cli_run_rejects_short_interval(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["--data-dir", str(tmp_path), "--interval", "0.5"])
    assert result.exit_code != 0


def test_cli_manages_projects(tmp_path: Path) -> None:
    runner = CliRunner()
    first = _add(runner, tmp_path, "Nightly", "--url", "https://ci/job/nightly")
    second = _add(runner, tmp_path, "--url", "https://ci/job/docs", "--ignore-for-summary")

    listed = runner.invoke(app, ["list", "--data-dir", str(tmp_path)])
    assert listed.exit_code == 0
    lines = [line for line in listed.output.splitlines() if line.strip()]
    assert "Nightly" in lines[0]
    assert "not_built" in lines[0]
    assert "Project 0 [ignored]" in lines[1]

    updated = runner.invoke(
        app,
        ["update", second, "--title", "Docs", "--include-in-summary", "--data-dir", str(tmp_path)],
    )
    assert updated.exit_code == 0
    assert "Updated Docs" in updated.output

    moved = runner.invoke(app, ["move", second, "0", "--data-dir", str(tmp_path)])
    assert moved.exit_code == 0
    lines = moved.output.splitlines()
    assert lines[0].startswith(" 0. Docs ")
    assert "[ignored]" not in lines[0]
    assert lines[1].startswith(" 1. Nightly")

    removed = runner.invoke(app, ["remove", first, "--data-dir", str(tmp_path)])
    assert removed.exit_code == 0
    assert "Removed Nightly" in removed.output

    listed = runner.invoke(app, ["list", "--data-dir", str(tmp_path)])
    assert "Nightly" not in listed.output

    purged = runner.invoke(
        app, ["purge", "--older-than-hours", "0", "--data-dir", str(tmp_path)]
    )
    assert purged.exit_code == 0
    assert "Purged 1 projects" in purged.output


def test_cli_list_without_projects(tmp_path: Path) -> None:
    result = CliRunner().invoke(app, ["list", "--data-dir", str(tmp_path)])
    assert result.exit_code == 0
    assert "No projects." in result.output


def test_cli_reports_service_errors(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["remove", "f" * 32, "--data-dir", str(tmp_path)])
    assert result.exit_code == 1
    assert "not found" in result.output


@pytest.mark.asyncio
async def test_run_closes_services_when_startup_fails(monkeypatch, tmp_path: Path) -> None:
    called: dict[str, object] = {}

    class FakeContainer:
        @classmethod
        async def create(cls, config: Config) -> FakeContainer:
            called["config"] = config
            return cls()

        def start(self) -> None:
            called["started"] = True
            raise RuntimeError("boom")

        async def close(self) -> None:
            called["closed"] = True

    monkeypatch.setattr("buildwatch.services.container.ServiceContainer", FakeContainer)
    config = Config(data_dir=tmp_path)

    with pytest.raises(RuntimeError, match="boom"):
        await _run(config)

    assert called["config"] is config
    assert called["started"] is True
    assert called["closed"] is True


def test_python_module_entrypoint_invokes_cli_app(monkeypatch) -> None:
    called = {"count": 0}

    def fake_app() -> None:
        called["count"] += 1

    monkeypatch.setattr("buildwatch.cli.app", fake_app)
    runpy.run_module("buildwatch.__main__", run_name="__main__")
    assert called["count"] == 1
