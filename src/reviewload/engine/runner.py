"""Top-level run controller: readiness, provisioning, load, teardown, verdict."""

from __future__ import annotations

import asyncio
import logging
import sys
import time
from typing import TYPE_CHECKING

import aiohttp

from reviewload._internal.errors import SetupError
from reviewload._internal.logging import get_logger, setup_logging
from reviewload.engine.session import LoadSession
from reviewload.fixtures import FixturePlan, new_run_id, provision
from reviewload.http_client import HttpClient
from reviewload.metrics.models import RunResult
from reviewload.metrics.registry import MetricRegistry
from reviewload.metrics.store import ProgressStore
from reviewload.metrics.thresholds import (
    DEFAULT_THRESHOLDS,
    evaluate_thresholds,
    validate_thresholds,
)
from reviewload.patterns.staged import DEFAULT_STAGES, StagedPattern

if TYPE_CHECKING:
    import random
    from collections.abc import Awaitable, Callable, Sequence

    from reviewload._internal.config import HarnessConfig
    from reviewload.fixtures import FixtureSet
    from reviewload.metrics.models import ProgressSnapshot
    from reviewload.metrics.thresholds import Threshold
    from reviewload.patterns.staged import Stage

logger = get_logger("engine.runner")


def _install_uvloop() -> None:
    """Use uvloop as the event loop policy when it is installed."""
    if sys.platform == "win32":
        return

    try:
        import uvloop

        uvloop.install()
        logger.debug("uvloop installed as event loop policy")
    except ImportError:
        logger.debug("uvloop not available, using default asyncio event loop")


async def wait_for_ready(
    client: HttpClient,
    *,
    retries: int = 30,
    retry_delay: float = 1.0,
    timeout: float = 5.0,
) -> bool:
    """Poll ``GET /health`` until it answers 200.

    Args:
        client: Open client pointed at the service.
        retries: Maximum number of polls.
        retry_delay: Seconds to sleep between polls.
        timeout: Timeout of a single poll in seconds.

    Returns:
        True once the service answered 200, False if it never did.
    """
    poll_timeout = aiohttp.ClientTimeout(total=timeout)
    for attempt in range(1, retries + 1):
        try:
            resp = await client.get("/health", name="Health", timeout=poll_timeout)
            resp.release()
            if resp.status == 200:
                logger.info("Service is ready")
                return True
        except (aiohttp.ClientError, TimeoutError) as exc:
            logger.debug("Health poll failed: %s", exc)
        logger.info("Waiting for service... (%d/%d)", attempt, retries)
        if attempt < retries:
            await asyncio.sleep(retry_delay)
    return False


async def _log_teardown(fixtures: FixtureSet) -> None:
    logger.info(
        "Teardown complete: teams=%d, prs=%d",
        len(fixtures.teams),
        len(fixtures.pull_requests),
    )


class LoadTestRunner:
    """Runs one complete load test against the review service.

    Lifecycle: wait for ``/health`` -> provision fixtures -> load phase ->
    teardown hook -> threshold evaluation.  Setup failures (service never
    ready, no team provisioned) end the run before any load traffic and are
    reported through ``RunResult.setup_error``.

    Attributes:
        config: Harness configuration.
        registry: Metric registry of this run.
        run_id: Suffix used to name this run's fixtures.
        on_snapshot: Callback receiving each progress snapshot; may be
            replaced before :meth:`run` (the CLI points it at its live view).
    """

    def __init__(
        self,
        config: HarnessConfig,
        *,
        plan: FixturePlan | None = None,
        stages: Sequence[Stage] = DEFAULT_STAGES,
        thresholds: Sequence[Threshold] = DEFAULT_THRESHOLDS,
        teardown: Callable[[FixtureSet], Awaitable[None]] | None = None,
        tick_interval: float = 1.0,
        on_snapshot: Callable[[ProgressSnapshot], None] | None = None,
        run_id: str | None = None,
        rng: random.Random | None = None,
        handle_signals: bool = True,
        log_level: int = logging.INFO,
        json_logs: bool = False,
    ) -> None:
        """Initialize the runner.

        Args:
            config: Base URL, timeouts and pacing.
            plan: Shape of the fixture dataset.  Defaults to 10 teams,
                200 users and 10 pull requests.
            stages: Load profile.
            thresholds: Pass/fail criteria evaluated at the end.
            teardown: Async hook called with the fixtures after the load phase.
            tick_interval: Seconds between concurrency adjustments.
            on_snapshot: Callback invoked with each progress snapshot.
            run_id: Fixture name suffix; generated when omitted.
            rng: Random source for fixture selection.
            handle_signals: Install SIGINT/SIGTERM handlers during the load phase.
            log_level: Logging level.
            json_logs: Emit JSON log lines.

        Raises:
            ConfigError: If stages are empty or a threshold targets an
                unknown metric or aggregate.
        """
        self.config = config
        self.plan = plan or FixturePlan()
        self.pattern = StagedPattern(stages)
        self.thresholds = list(thresholds)
        self.registry = MetricRegistry()
        self.run_id = run_id or new_run_id()
        validate_thresholds(self.thresholds, self.registry)

        self._teardown = teardown or _log_teardown
        self._tick_interval = tick_interval
        self.on_snapshot = on_snapshot
        self._rng = rng
        self._handle_signals = handle_signals
        self._log_level = log_level
        self._json_logs = json_logs

    def run(self) -> RunResult:
        """Execute the run and block until it completes."""
        setup_logging(level=self._log_level, json_format=self._json_logs)
        _install_uvloop()
        return asyncio.run(self.run_async())

    async def run_async(self) -> RunResult:
        """Execute the run inside the current event loop.

        Raises:
            EngineError: If the load session fails unrecoverably.
        """
        logger.info(
            "Starting load test: base_url=%s, run_id=%s, pattern=%s",
            self.config.base_url,
            self.run_id,
            self.pattern.describe(),
            extra={"run_id": self.run_id},
        )
        start_time = time.monotonic()

        try:
            fixtures = await self._setup()
        except SetupError as exc:
            logger.error("Setup failed: %s", exc, extra={"run_id": self.run_id})  # noqa: TRY400
            return self._result(start_time, fixtures=None, setup_error=str(exc))

        store = ProgressStore()
        session = LoadSession(
            fixtures,
            self.registry,
            self.pattern,
            base_url=self.config.base_url,
            pause_seconds=self.config.pause_seconds,
            request_timeout=self.config.request_timeout,
            tick_interval=self._tick_interval,
            store=store,
            on_snapshot=self.on_snapshot,
            rng=self._rng,
            handle_signals=self._handle_signals,
        )
        await session.run()

        try:
            await self._teardown(fixtures)
        except Exception:
            logger.warning("Teardown hook failed", exc_info=True)

        result = self._result(start_time, fixtures=fixtures, store=store)
        logger.info(
            "Load test completed: duration=%.1fs, thresholds=%d/%d passed, verdict=%s",
            result.duration_seconds,
            sum(t.passed for t in result.thresholds),
            len(result.thresholds),
            "PASS" if result.passed else "FAIL",
            extra={"run_id": self.run_id},
        )
        return result

    async def _setup(self) -> FixtureSet:
        async with HttpClient(
            base_url=self.config.base_url,
            timeout=self.config.request_timeout,
        ) as client:
            ready = await wait_for_ready(
                client,
                retries=self.config.health_retries,
                retry_delay=self.config.health_retry_delay,
                timeout=self.config.health_timeout,
            )
            if not ready:
                msg = f"Service at {self.config.base_url} never became ready"
                raise SetupError(msg)
            return await provision(client, self.plan, self.run_id)

    def _result(
        self,
        start_time: float,
        *,
        fixtures: FixtureSet | None,
        store: ProgressStore | None = None,
        setup_error: str | None = None,
    ) -> RunResult:
        end_time = time.monotonic()
        thresholds = (
            [] if setup_error is not None else evaluate_thresholds(self.thresholds, self.registry)
        )
        return RunResult(
            run_id=self.run_id,
            base_url=self.config.base_url,
            start_time=start_time,
            end_time=end_time,
            duration_seconds=end_time - start_time,
            pattern_description=self.pattern.describe(),
            fixtures=fixtures,
            snapshots=store.get_all() if store is not None else [],
            summary=self.registry.summary(),
            thresholds=thresholds,
            setup_error=setup_error,
        )
