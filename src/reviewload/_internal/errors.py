"""Custom exception hierarchy for reviewload."""

from __future__ import annotations


class ReviewLoadError(Exception):
    """Base exception for all reviewload errors.

    All custom exceptions raised by the harness inherit from this class,
    making it easy to catch any reviewload-specific error with a single
    except clause.
    """


class ConfigError(ReviewLoadError):
    """Raised when configuration is invalid or missing.

    Examples:
        - An environment variable has an invalid value.
        - A stage spec or threshold expression cannot be parsed.
    """


class SetupError(ReviewLoadError):
    """Raised when the run cannot reach its load phase.

    Examples:
        - The service never answered ``GET /health`` with 200.
        - Not a single team could be provisioned.
    """


class EngineError(ReviewLoadError):
    """Raised when the load session fails unrecoverably."""
