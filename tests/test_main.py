# ABOUTME: Tests for the CLI entry point
# ABOUTME: Exercises help, logging-status and a harvest run against a mocked wiki API

import json

import pytest
from asyncclick.testing import CliRunner

from wiki_harvest.main import app


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for name in ["WIKI_HARVEST_LOG_MODE", "WIKI_HARVEST_SECONDARY_LOCALE"]:
        monkeypatch.delenv(name, raising=False)
    return tmp_path


def test_app_is_callable():
    assert callable(app)


@pytest.mark.asyncio
async def test_help():
    runner = CliRunner()
    result = await runner.invoke(app, ["--help"])

    assert result.exit_code == 0
    assert "Wiki Harvest" in result.output
    assert "harvest" in result.output


@pytest.mark.asyncio
async def test_logging_status():
    runner = CliRunner()
    result = await runner.invoke(app, ["logging-status"])

    assert result.exit_code == 0
    assert "Logging Configuration" in result.output


@pytest.mark.asyncio
async def test_harvest_writes_records(isolated_cwd, httpx_mock, page_factory, envelope_factory):
    entries_path = isolated_cwd / "entries.json"
    entries_path.write_text(json.dumps([{"id": "lycaon", "source_ref": 28, "display_name": "Lycaon"}]))
    output_path = isolated_cwd / "agents.json"
    httpx_mock.add_response(json=envelope_factory(page_factory(page_id="28")))

    runner = CliRunner()
    result = await runner.invoke(
        app,
        ["--json", "harvest", str(entries_path), "--output", str(output_path), "--primary-only", "--delay-ms", "0"],
    )

    assert result.exit_code == 0, result.output
    records = json.loads(output_path.read_text(encoding="utf-8"))
    assert [record["id"] for record in records] == ["lycaon"]
    assert records[0]["specialty"] == "stun"


@pytest.mark.asyncio
async def test_harvest_below_success_rate_fails(isolated_cwd, httpx_mock):
    entries_path = isolated_cwd / "entries.json"
    entries_path.write_text(json.dumps([{"id": "lycaon", "source_ref": 28}]))
    output_path = isolated_cwd / "agents.json"
    httpx_mock.add_response(status_code=500, is_reusable=True)

    runner = CliRunner()
    result = await runner.invoke(
        app,
        [
            "--json",
            "harvest",
            str(entries_path),
            "--output",
            str(output_path),
            "--primary-only",
            "--delay-ms",
            "0",
            "--max-retries",
            "1",
        ],
    )

    assert result.exit_code == 1
    assert json.loads(output_path.read_text(encoding="utf-8")) == []
