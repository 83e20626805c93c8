"""aiohttp client that reports one RequestMetric per request."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import aiohttp

if TYPE_CHECKING:
    from collections.abc import Callable

    MetricCallback = Callable[["RequestMetric"], None]


@dataclass(frozen=True)
class RequestMetric:
    """Timing and outcome of a single HTTP request.

    Attributes:
        timestamp: Monotonic time the request was sent.
        name: Logical request name, e.g. ``DeactivateTeamMembers``.
        method: HTTP method.
        url: Full request URL.
        status_code: Response status, 0 when no response arrived.
        latency_ms: Time until the response headers arrived.
        error: ``"<ExceptionType>: <message>"`` when the request raised.
    """

    timestamp: float
    name: str
    method: str
    url: str
    status_code: int
    latency_ms: float
    error: str | None = None

    @property
    def failed(self) -> bool:
        """No response, or a 4xx/5xx response."""
        return self.error is not None or self.status_code == 0 or self.status_code >= 400


class HttpClient:
    """Instrumented wrapper around one ``aiohttp.ClientSession``.

    Use as an async context manager.  Every request that completes or raises
    is reported to *metric_callback*; a request cancelled mid-flight is not,
    since it never produced an answer.  Exceptions propagate unchanged.

    Args:
        base_url: Prefix for every request path.
        headers: Headers sent with every request.
        metric_callback: Receives a RequestMetric per request.
        timeout: Total timeout per request in seconds.
        pool_size: Connection limit of the session.
    """

    def __init__(
        self,
        base_url: str,
        headers: dict[str, str] | None = None,
        metric_callback: MetricCallback | None = None,
        timeout: float = 30.0,
        pool_size: int = 100,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.headers = dict(headers or {})
        self._report = metric_callback
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._pool_size = pool_size
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> HttpClient:
        self._session = aiohttp.ClientSession(
            headers=self.headers,
            timeout=self._timeout,
            connector=aiohttp.TCPConnector(limit=self._pool_size),
        )
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        session, self._session = self._session, None
        if session is not None:
            await session.close()

    async def get(
        self, path: str, *, name: str | None = None, **kwargs: Any
    ) -> aiohttp.ClientResponse:
        return await self.request("GET", path, name=name, **kwargs)

    async def post(
        self, path: str, *, name: str | None = None, **kwargs: Any
    ) -> aiohttp.ClientResponse:
        return await self.request("POST", path, name=name, **kwargs)

    async def request(
        self,
        method: str,
        path: str,
        *,
        name: str | None = None,
        **kwargs: Any,
    ) -> aiohttp.ClientResponse:
        """Send *method* to ``base_url + path`` and report its timing.

        Args:
            method: HTTP method.
            path: Path appended to the base URL.
            name: Logical name in the metric; defaults to *path*.
            **kwargs: Passed through to ``aiohttp.ClientSession.request``.

        Raises:
            RuntimeError: If the client is not open.
        """
        if self._session is None:
            msg = "HttpClient must be used as an async context manager"
            raise RuntimeError(msg)

        url = self.base_url + path
        sent = time.monotonic()
        try:
            resp = await self._session.request(method, url, **kwargs)
        except Exception as exc:
            self._emit(sent, name or path, method, url, 0, f"{type(exc).__name__}: {exc}")
            raise
        self._emit(sent, name or path, method, url, resp.status, None)
        return resp

    def _emit(
        self,
        sent: float,
        name: str,
        method: str,
        url: str,
        status: int,
        error: str | None,
    ) -> None:
        if self._report is None:
            return
        self._report(
            RequestMetric(
                timestamp=sent,
                name=name,
                method=method,
                url=url,
                status_code=status,
                latency_ms=(time.monotonic() - sent) * 1000,
                error=error,
            )
        )
