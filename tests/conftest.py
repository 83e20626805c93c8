"""Shared test fixtures for the reviewload test suite."""

from __future__ import annotations

import asyncio
import socket
import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import pytest
from aiohttp import web

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator


# =============================================================================
# Pytest configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-apply markers based on test directory structure."""
    for item in items:
        test_path = str(item.fspath)
        if "/unit/" in test_path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
        elif "/e2e/" in test_path:
            item.add_marker(pytest.mark.e2e)


# =============================================================================
# Network utilities
# =============================================================================


def _get_free_port() -> int:
    """Find an available port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


# =============================================================================
# Fake review service
# =============================================================================


def _raw_text(body: bytes, status: int) -> web.Response:
    return web.Response(body=body, status=status, content_type="text/plain", charset="utf-8")


@dataclass
class FakeReviewService:
    """Mutable behaviour knobs and call log of the fake review service.

    Attributes:
        unready_polls: Health polls answered with 503 before answering 200.
        health_status: Status once ready (set to 503 to never become ready).
        existing_teams: Team names answered with 409.
        failing_team_indices: Team indices (from ``load-test-team-<i>-``)
            answered with 500.
        pr_status: Status of ``/pullRequest/create``.
        deactivate_status: Status of ``/team/deactivateMembers``.
        deactivate_echo: Team name echoed back; None echoes the request.
        deactivate_body: Bytes answered on a non-200 deactivate status.
        reviewers: Reviewers returned by ``/pullRequest/get``.
        get_status: Status of ``/pullRequest/get``.
        get_body: Raw body of ``/pullRequest/get``; None returns JSON.
            Bytes are sent undecoded as UTF-8 text.
        reassign_status: Status of ``/pullRequest/reassign``.
        reassign_echo: PR id echoed back; None echoes the request.
        reassign_body: Bytes answered on a non-200, non-409 reassign status.
        delay: Seconds every workflow handler sleeps before answering.
        reassign_delay: Extra seconds ``/pullRequest/reassign`` sleeps.
    """

    unready_polls: int = 0
    health_status: int = 200
    existing_teams: set[str] = field(default_factory=set)
    failing_team_indices: set[int] = field(default_factory=set)
    pr_status: int = 201
    deactivate_status: int = 200
    deactivate_echo: str | None = None
    deactivate_body: bytes | None = None
    reviewers: list[str] = field(default_factory=lambda: ["load-user-0-1", "load-user-0-2"])
    get_status: int = 200
    get_body: str | bytes | None = None
    reassign_status: int = 200
    reassign_echo: str | None = None
    reassign_body: bytes | None = None
    delay: float = 0.0
    reassign_delay: float = 0.0
    calls: Counter[str] = field(default_factory=Counter)
    payloads: dict[str, list[dict[str, object]]] = field(default_factory=dict)

    def _log(self, path: str, payload: dict[str, object] | None = None) -> None:
        self.calls[path] += 1
        if payload is not None:
            self.payloads.setdefault(path, []).append(payload)

    async def health(self, request: web.Request) -> web.Response:
        self._log("/health")
        if self.unready_polls > 0:
            self.unready_polls -= 1
            return web.json_response({"status": "starting"}, status=503)
        return web.json_response({"status": "ok"}, status=self.health_status)

    async def add_team(self, request: web.Request) -> web.Response:
        payload = await request.json()
        self._log("/team/add", payload)
        name = payload["team_name"]
        index = int(name.split("-")[3])
        if index in self.failing_team_indices:
            return web.json_response({"error": {"code": "INTERNAL"}}, status=500)
        if name in self.existing_teams:
            return web.json_response({"error": {"code": "TEAM_EXISTS"}}, status=409)
        self.existing_teams.add(name)
        return web.json_response({"team": payload}, status=201)

    async def create_pr(self, request: web.Request) -> web.Response:
        payload = await request.json()
        self._log("/pullRequest/create", payload)
        return web.json_response({"pr": payload}, status=self.pr_status)

    async def set_active(self, request: web.Request) -> web.Response:
        payload = await request.json()
        self._log("/users/setIsActive", payload)
        return web.json_response({"user": payload})

    async def deactivate(self, request: web.Request) -> web.Response:
        payload = await request.json()
        self._log("/team/deactivateMembers", payload)
        await asyncio.sleep(self.delay)
        if self.deactivate_status != 200:
            if self.deactivate_body is not None:
                return _raw_text(self.deactivate_body, self.deactivate_status)
            return web.Response(text="internal failure", status=self.deactivate_status)
        name = self.deactivate_echo or payload["team_name"]
        return web.json_response({"team": {"team_name": name, "members": []}})

    async def get_pr(self, request: web.Request) -> web.Response:
        pr_id = request.query.get("pull_request_id", "")
        self._log("/pullRequest/get", {"pull_request_id": pr_id})
        await asyncio.sleep(self.delay)
        if isinstance(self.get_body, bytes):
            return _raw_text(self.get_body, self.get_status)
        if self.get_body is not None:
            return web.Response(text=self.get_body, status=self.get_status)
        body = {
            "pr": {
                "pull_request_id": pr_id,
                "status": "OPEN",
                "assigned_reviewers": list(self.reviewers),
            }
        }
        return web.json_response(body, status=self.get_status)

    async def reassign(self, request: web.Request) -> web.Response:
        payload = await request.json()
        self._log("/pullRequest/reassign", payload)
        await asyncio.sleep(self.delay + self.reassign_delay)
        if self.reassign_status == 409:
            return web.json_response({"error": {"code": "NOT_ASSIGNED"}}, status=409)
        if self.reassign_status != 200:
            if self.reassign_body is not None:
                return _raw_text(self.reassign_body, self.reassign_status)
            return web.Response(text="boom", status=self.reassign_status)
        pr_id = self.reassign_echo or payload["pull_request_id"]
        return web.json_response(
            {"pr": {"pull_request_id": pr_id, "assigned_reviewers": []}, "replaced_by": "x"}
        )

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/health", self.health)
        app.router.add_post("/team/add", self.add_team)
        app.router.add_post("/pullRequest/create", self.create_pr)
        app.router.add_post("/users/setIsActive", self.set_active)
        app.router.add_post("/team/deactivateMembers", self.deactivate)
        app.router.add_get("/pullRequest/get", self.get_pr)
        app.router.add_post("/pullRequest/reassign", self.reassign)
        return app


@dataclass
class ServiceHandle:
    """A running fake service and the URL it listens on."""

    service: FakeReviewService
    base_url: str


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
async def review_service() -> AsyncIterator[ServiceHandle]:
    """Fake review service running in the test's event loop."""
    service = FakeReviewService()
    port = _get_free_port()
    runner = web.AppRunner(service.create_app())
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    yield ServiceHandle(service=service, base_url=f"http://127.0.0.1:{port}")
    await runner.cleanup()


@pytest.fixture
def sync_review_service() -> Iterator[ServiceHandle]:
    """Fake review service running in a background thread.

    For tests where the code under test calls ``asyncio.run`` itself.
    """
    service = FakeReviewService()
    port = _get_free_port()
    started = threading.Event()
    loop_holder: list[asyncio.AbstractEventLoop] = []

    def _thread_target() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        runner = web.AppRunner(service.create_app())
        loop.run_until_complete(runner.setup())
        site = web.TCPSite(runner, "127.0.0.1", port)
        loop.run_until_complete(site.start())
        loop_holder.append(loop)
        started.set()
        loop.run_forever()
        loop.run_until_complete(runner.cleanup())
        loop.close()

    thread = threading.Thread(target=_thread_target, daemon=True)
    thread.start()
    started.wait(timeout=5.0)

    yield ServiceHandle(service=service, base_url=f"http://127.0.0.1:{port}")

    if loop_holder:
        loop_holder[0].call_soon_threadsafe(loop_holder[0].stop)
    thread.join(timeout=5.0)


@pytest.fixture
def unused_base_url() -> str:
    """URL of a port nothing listens on."""
    return f"http://127.0.0.1:{_get_free_port()}"
