"""Configuration loading for reviewload."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass

from reviewload._internal.errors import ConfigError

DEFAULT_BASE_URL = "http://localhost:8080"

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")


@dataclass(frozen=True)
class HarnessConfig:
    """Global harness configuration.

    Attributes:
        base_url: Base URL of the service under test.
        request_timeout: Total timeout in seconds for workflow requests.
        pause_seconds: Pause a virtual caller takes after each workflow call.
        health_retries: How many times ``GET /health`` is polled before giving up.
        health_retry_delay: Seconds between health polls.
        health_timeout: Timeout in seconds for a single health poll.
    """

    base_url: str = DEFAULT_BASE_URL
    request_timeout: float = 30.0
    pause_seconds: float = 0.2
    health_retries: int = 30
    health_retry_delay: float = 1.0
    health_timeout: float = 5.0


def _read_float(name: str, default: str) -> float:
    raw = os.environ.get(name, default)
    try:
        return float(raw)
    except ValueError:
        msg = f"{name} must be a number, got: {raw!r}"
        raise ConfigError(msg) from None


def load_config() -> HarnessConfig:
    """Load configuration from environment variables with defaults.

    Environment variables:
        REVIEWLOAD_BASE_URL: Base URL of the service (``BASE_URL`` is
            accepted as a fallback).
        REVIEWLOAD_TIMEOUT: Request timeout in seconds (default: 30.0).
        REVIEWLOAD_PAUSE: Pause after each workflow call (default: 0.2).

    Returns:
        Populated HarnessConfig instance.

    Raises:
        ConfigError: If an environment variable has an invalid value.
    """
    timeout = _read_float("REVIEWLOAD_TIMEOUT", "30.0")
    if timeout <= 0:
        msg = f"REVIEWLOAD_TIMEOUT must be positive, got: {timeout}"
        raise ConfigError(msg)

    pause = _read_float("REVIEWLOAD_PAUSE", "0.2")
    if pause < 0:
        msg = f"REVIEWLOAD_PAUSE must be non-negative, got: {pause}"
        raise ConfigError(msg)

    base_url = (
        os.environ.get("REVIEWLOAD_BASE_URL")
        or os.environ.get("BASE_URL")
        or DEFAULT_BASE_URL
    )

    return HarnessConfig(
        base_url=base_url,
        request_timeout=timeout,
        pause_seconds=pause,
    )


def parse_duration(text: str) -> float:
    """Parse a k6-style duration such as ``30s``, ``2m`` or ``1m30s``.

    A bare number is read as seconds.

    Args:
        text: Duration string.

    Returns:
        Duration in seconds.

    Raises:
        ConfigError: If *text* is not a valid positive duration.
    """
    value = text.strip().lower()
    try:
        seconds = float(value)
    except ValueError:
        pos = 0
        seconds = 0.0
        for match in _DURATION_PART.finditer(value):
            if match.start() != pos:
                break
            amount = float(match.group(1))
            unit = match.group(2)
            if unit == "ms":
                seconds += amount / 1000.0
            elif unit == "s":
                seconds += amount
            elif unit == "m":
                seconds += amount * 60.0
            else:
                seconds += amount * 3600.0
            pos = match.end()
        if pos == 0 or pos != len(value):
            msg = f"Invalid duration: {text!r}"
            raise ConfigError(msg) from None

    if seconds <= 0:
        msg = f"Duration must be positive, got: {text!r}"
        raise ConfigError(msg)
    return seconds
