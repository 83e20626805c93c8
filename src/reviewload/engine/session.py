"""Load phase: ramp virtual callers and run the workflows."""

from __future__ import annotations

import asyncio
import random
import signal
import sys
import time
from enum import Enum, auto
from typing import TYPE_CHECKING

from reviewload._internal.errors import EngineError
from reviewload._internal.logging import get_logger
from reviewload.engine._caller_utils import pause, pick, shutdown_callers
from reviewload.engine.scheduler import Scheduler
from reviewload.http_client import HttpClient
from reviewload.metrics.models import ProgressSnapshot
from reviewload.metrics.registry import REAL_ERRORS
from reviewload.metrics.store import ProgressStore
from reviewload.workflows import deactivate_team_members, reassign_reviewer

if TYPE_CHECKING:
    from collections.abc import Callable

    from reviewload.fixtures import FixtureSet
    from reviewload.metrics.registry import MetricRegistry
    from reviewload.patterns.base import LoadPattern

logger = get_logger("engine.session")


class SessionState(Enum):
    """State machine for a load session."""

    CREATED = auto()
    RUNNING = auto()
    STOPPING = auto()
    COMPLETED = auto()
    FAILED = auto()


class LoadSession:
    """Drives virtual callers through the workflows along a concurrency pattern.

    Every tick the scheduler hands out a target concurrency.  Scaling up
    spawns caller tasks; scaling down retires the most recently spawned
    callers (LIFO).  A retired caller is no longer counted as active; it
    finishes its in-flight call and exits.  When the pattern is exhausted
    all callers are retired and the session waits for them.

    State machine: CREATED -> RUNNING -> STOPPING -> COMPLETED
                                      -> FAILED (on error)

    Args:
        fixtures: Read-only fixtures to draw teams and PRs from.
        registry: Registry receiving every outcome.
        pattern: Concurrency pattern to follow.
        base_url: Service under test.
        pause_seconds: Pause after each workflow call.
        request_timeout: Timeout for workflow requests, in seconds.
        tick_interval: Seconds between concurrency adjustments.
        duration_seconds: Length handed to the pattern.  Defaults to the
            pattern's own ``total_duration`` (staged and composite patterns).
        store: Where per-tick progress snapshots go.
        on_snapshot: Optional callback invoked with each snapshot.
        rng: Random source for fixture selection.
        handle_signals: Install SIGINT/SIGTERM handlers for graceful stop.
    """

    def __init__(
        self,
        fixtures: FixtureSet,
        registry: MetricRegistry,
        pattern: LoadPattern,
        *,
        base_url: str,
        pause_seconds: float = 0.2,
        request_timeout: float = 30.0,
        tick_interval: float = 1.0,
        duration_seconds: float | None = None,
        store: ProgressStore | None = None,
        on_snapshot: Callable[[ProgressSnapshot], None] | None = None,
        rng: random.Random | None = None,
        handle_signals: bool = True,
    ) -> None:
        self._fixtures = fixtures
        self._team_names = fixtures.team_names
        self._pr_ids = fixtures.pull_request_ids
        self._registry = registry
        self._pattern = pattern
        self._base_url = base_url
        self._pause_seconds = pause_seconds
        self._request_timeout = request_timeout
        self._tick_interval = tick_interval
        self._duration_seconds = duration_seconds
        self._store = store if store is not None else ProgressStore()
        self._on_snapshot = on_snapshot
        self._rng = rng or random.Random()  # noqa: S311
        self._handle_signals = handle_signals

        self._state = SessionState.CREATED
        self._callers: list[tuple[int, asyncio.Event, asyncio.Task[None]]] = []
        self._retiring: list[tuple[int, asyncio.Event, asyncio.Task[None]]] = []
        self._next_caller_id = 0
        self._iterations = 0
        self._stop_event = asyncio.Event()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def active_caller_count(self) -> int:
        """Number of callers that are neither retired nor finished."""
        return len(self._callers)

    @property
    def iterations(self) -> int:
        return self._iterations

    @property
    def store(self) -> ProgressStore:
        return self._store

    async def run(self) -> list[ProgressSnapshot]:
        """Run the load phase to completion.

        Returns:
            The per-tick progress snapshots.

        Raises:
            EngineError: If the session loop fails.
        """
        scheduler = Scheduler(self._pattern, self._duration_hint(), self._tick_interval)
        self._state = SessionState.RUNNING
        logger.info(
            "Starting load phase: teams=%d, prs=%d, pattern=%s",
            len(self._team_names),
            len(self._pr_ids),
            self._pattern.describe(),
        )
        if not self._team_names:
            logger.warning("No teams available; callers will idle")

        if self._handle_signals:
            self._install_signal_handlers()

        start_time = time.monotonic()

        try:
            for command in scheduler.iter_commands():
                if self._stop_event.is_set():
                    break

                target_time = start_time + command.elapsed_seconds
                now = time.monotonic()
                if target_time > now:
                    await asyncio.sleep(target_time - now)

                if self._stop_event.is_set():
                    break

                self._scale_callers(command.target_concurrency)
                self._snapshot(
                    elapsed=time.monotonic() - start_time,
                    target=command.target_concurrency,
                )

        except Exception as exc:
            self._state = SessionState.FAILED
            logger.exception("Load session failed")
            raise EngineError("Load session failed") from exc
        finally:
            if self._state != SessionState.FAILED:
                self._state = SessionState.STOPPING
            await shutdown_callers([*self._callers, *self._retiring])
            self._callers.clear()
            self._retiring.clear()
            if self._handle_signals:
                self._remove_signal_handlers()

        self._state = SessionState.COMPLETED
        logger.info(
            "Load phase completed: duration=%.1fs, iterations=%d",
            time.monotonic() - start_time,
            self._iterations,
        )
        return self._store.get_all()

    async def stop(self) -> None:
        """Request a graceful stop after the current tick."""
        if self._state == SessionState.RUNNING:
            logger.info("Graceful shutdown requested")
            self._state = SessionState.STOPPING
            self._stop_event.set()

    def _duration_hint(self) -> float:
        if self._duration_seconds is not None:
            return self._duration_seconds
        total = getattr(self._pattern, "total_duration", None)
        if total is None:
            msg = f"duration_seconds is required for pattern {self._pattern.describe()!r}"
            raise EngineError(msg)
        return float(total)

    def _snapshot(self, elapsed: float, target: int) -> None:
        passes, fails = self._registry.rate_counts(REAL_ERRORS)
        snapshot = ProgressSnapshot(
            timestamp=time.monotonic(),
            elapsed_seconds=elapsed,
            target_callers=target,
            active_callers=self.active_caller_count,
            iterations=self._iterations,
            workflow_calls=passes + fails,
            real_errors=passes,
        )
        self._store.append(snapshot)
        if self._on_snapshot is not None:
            self._on_snapshot(snapshot)
        logger.debug(
            "Tick %.1fs: target=%d, active=%d, calls=%d, real_errors=%d",
            elapsed,
            target,
            snapshot.active_callers,
            snapshot.workflow_calls,
            snapshot.real_errors,
        )

    async def _run_virtual_caller(self, caller_id: int, retire: asyncio.Event) -> None:
        """Repeat iterations until the caller is retired."""
        async with HttpClient(
            base_url=self._base_url,
            metric_callback=self._registry.record_request,
            timeout=self._request_timeout,
        ) as client:
            while not retire.is_set():
                try:
                    await self._iteration(client, retire)
                except asyncio.CancelledError:
                    raise
                except Exception:
                    logger.debug("Iteration failed for caller %d", caller_id, exc_info=True)

    async def _iteration(self, client: HttpClient, retire: asyncio.Event) -> None:
        """One pass: deactivate a random team, then reassign on a random PR."""
        team_name = pick(self._rng, self._team_names)
        if team_name is None:
            await pause(retire, self._pause_seconds)
            return

        await deactivate_team_members(client, self._registry, team_name)
        await pause(retire, self._pause_seconds)

        pr_id = pick(self._rng, self._pr_ids)
        if pr_id is not None and not retire.is_set():
            await reassign_reviewer(client, self._registry, pr_id)
        await pause(retire, self._pause_seconds)

        self._iterations += 1

    def _scale_callers(self, target: int) -> None:
        """Spawn or retire callers so exactly *target* are active."""
        self._retiring = [c for c in self._retiring if not c[2].done()]
        self._callers = [c for c in self._callers if not c[2].done()]
        current = self.active_caller_count

        if target > current:
            for _ in range(target - current):
                caller_id = self._next_caller_id
                self._next_caller_id += 1
                retire = asyncio.Event()
                task = asyncio.create_task(
                    self._run_virtual_caller(caller_id, retire),
                    name=f"virtual-caller-{caller_id}",
                )
                self._callers.append((caller_id, retire, task))

        elif target < current:
            # Most recently spawned first
            for _ in range(current - target):
                caller = self._callers.pop()
                caller[1].set()
                self._retiring.append(caller)

    def _install_signal_handlers(self) -> None:
        """Turn SIGINT/SIGTERM into a graceful stop."""
        loop = asyncio.get_running_loop()

        def _signal_handler() -> None:
            logger.info("Signal received, initiating graceful shutdown")
            self._state = SessionState.STOPPING
            self._stop_event.set()

        if sys.platform != "win32":
            loop.add_signal_handler(signal.SIGINT, _signal_handler)
            loop.add_signal_handler(signal.SIGTERM, _signal_handler)
        else:
            # Windows doesn't support add_signal_handler
            signal.signal(signal.SIGINT, lambda _s, _f: _signal_handler())
            signal.signal(signal.SIGTERM, lambda _s, _f: _signal_handler())

    def _remove_signal_handlers(self) -> None:
        if sys.platform != "win32":
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)
        else:
            signal.signal(signal.SIGINT, signal.default_int_handler)
            signal.signal(signal.SIGTERM, signal.SIG_DFL)
