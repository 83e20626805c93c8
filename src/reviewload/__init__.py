"""reviewload: staged load tests for the PR reviewer service."""

from __future__ import annotations

from reviewload.engine.runner import LoadTestRunner, wait_for_ready
from reviewload.fixtures import FixturePlan, FixtureSet, PullRequest, Team, provision
from reviewload.http_client import HttpClient, RequestMetric
from reviewload.metrics.models import OutcomeRecord, RunResult
from reviewload.metrics.registry import MetricRegistry
from reviewload.metrics.thresholds import DEFAULT_THRESHOLDS, Threshold
from reviewload.patterns.staged import DEFAULT_STAGES, Stage, StagedPattern
from reviewload.workflows import deactivate_team_members, reassign_reviewer

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_STAGES",
    "DEFAULT_THRESHOLDS",
    "FixturePlan",
    "FixtureSet",
    "HttpClient",
    "LoadTestRunner",
    "MetricRegistry",
    "OutcomeRecord",
    "PullRequest",
    "RequestMetric",
    "RunResult",
    "Stage",
    "StagedPattern",
    "Team",
    "Threshold",
    "deactivate_team_members",
    "provision",
    "reassign_reviewer",
    "wait_for_ready",
]
