"""End-to-end tests for the reviewload CLI."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from typer.testing import CliRunner

from reviewload import __version__
from reviewload.cli.app import app

if TYPE_CHECKING:
    from tests.conftest import ServiceHandle

runner = CliRunner()

FAST_ARGS = [
    "--teams",
    "2",
    "--users",
    "4",
    "--prs",
    "2",
    "--stage",
    "0.4s:2",
    "--stage",
    "0.3s:0",
    "--tick-interval",
    "0.1",
    "--pause",
    "0.01",
    "--health-retries",
    "3",
    "--health-delay",
    "0.01",
]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("REVIEWLOAD_BASE_URL", "BASE_URL", "REVIEWLOAD_TIMEOUT", "REVIEWLOAD_PAUSE"):
        monkeypatch.delenv(name, raising=False)


class TestAppBasics:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"reviewload {__version__}" in result.output

    def test_help_lists_run(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "run" in result.output

    def test_run_help(self):
        result = runner.invoke(app, ["run", "--help"])
        assert result.exit_code == 0
        assert "--stage" in result.output
        assert "--threshold" in result.output


class TestRunCommand:
    @pytest.mark.timeout(60)
    def test_passing_run_exits_zero(self, sync_review_service: ServiceHandle):
        result = runner.invoke(app, ["run", "--base-url", sync_review_service.base_url, *FAST_ARGS])
        assert result.exit_code == 0, result.output
        assert sync_review_service.service.calls["/team/add"] == 2
        assert sync_review_service.service.calls["/team/deactivateMembers"] > 0

    @pytest.mark.timeout(60)
    def test_base_url_from_env(
        self,
        sync_review_service: ServiceHandle,
        monkeypatch: pytest.MonkeyPatch,
    ):
        monkeypatch.setenv("REVIEWLOAD_BASE_URL", sync_review_service.base_url)
        result = runner.invoke(app, ["run", *FAST_ARGS])
        assert result.exit_code == 0, result.output
        assert sync_review_service.service.calls["/health"] >= 1

    @pytest.mark.timeout(60)
    def test_real_errors_exit_one(self, sync_review_service: ServiceHandle):
        sync_review_service.service.deactivate_status = 500
        result = runner.invoke(app, ["run", "--base-url", sync_review_service.base_url, *FAST_ARGS])
        assert result.exit_code == 1

    @pytest.mark.timeout(60)
    def test_threshold_override_relaxes_gate(self, sync_review_service: ServiceHandle):
        sync_review_service.service.deactivate_status = 500
        result = runner.invoke(
            app,
            [
                "run",
                "--base-url",
                sync_review_service.base_url,
                *FAST_ARGS,
                "--threshold",
                "real_errors=rate<=1",
                "--threshold",
                "http_req_failed=rate<=1",
            ],
        )
        assert result.exit_code == 0, result.output

    @pytest.mark.timeout(30)
    def test_unready_service_exits_one(self, sync_review_service: ServiceHandle):
        sync_review_service.service.health_status = 503
        result = runner.invoke(app, ["run", "--base-url", sync_review_service.base_url, *FAST_ARGS])
        assert result.exit_code == 1
        assert sync_review_service.service.calls["/team/add"] == 0

    def test_invalid_stage_exits_one(self):
        result = runner.invoke(app, ["run", "--stage", "forever"])
        assert result.exit_code == 1

    def test_invalid_threshold_exits_one(self):
        result = runner.invoke(app, ["run", "--threshold", "latency=avg<1"])
        assert result.exit_code == 1
