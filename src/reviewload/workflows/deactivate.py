"""Deactivate-team-members workflow driver."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import aiohttp

from reviewload.metrics.models import OutcomeRecord
from reviewload.metrics.registry import DEACTIVATE_TEAM
from reviewload.workflows._common import (
    CHECK_DURATION_MS,
    OK,
    logger,
    nested,
    parse_json,
    preview,
)

if TYPE_CHECKING:
    from reviewload.http_client import HttpClient
    from reviewload.metrics.registry import MetricRegistry

REQUEST_NAME = "DeactivateTeamMembers"


async def deactivate_team_members(
    client: HttpClient,
    registry: MetricRegistry,
    team_name: str,
) -> OutcomeRecord:
    """Deactivate every member of *team_name* and record the outcome.

    Classification is status-only: 200 is a success, anything else
    (including a transport error or timeout, reported as status 0) is a real
    error.  Whether the body echoes the team name back is a check; a failed
    check is reported but does not change the classification.

    Args:
        client: Instrumented client for the service under test.
        registry: Registry receiving the outcome and check results.
        team_name: Team to deactivate.

    Returns:
        The recorded OutcomeRecord.
    """
    start = time.monotonic()
    status = 0
    body = ""
    try:
        resp = await client.post(
            "/team/deactivateMembers",
            name=REQUEST_NAME,
            json={"team_name": team_name},
        )
        status = resp.status
        body = await resp.text(errors="replace")
    except (aiohttp.ClientError, TimeoutError) as exc:
        body = f"{type(exc).__name__}: {exc}"
    duration_ms = (time.monotonic() - start) * 1000

    record = OutcomeRecord(
        workflow_name=DEACTIVATE_TEAM,
        duration_ms=duration_ms,
        success=status == OK,
        real_error=status != OK,
        status_code=status,
    )
    registry.record_outcome(record)

    checks = [
        registry.check("deactivate status is 200", status == OK),
        registry.check("deactivate duration < 300ms", duration_ms < CHECK_DURATION_MS),
        registry.check(
            "deactivate response contains team",
            nested(parse_json(body), "team", "team_name") == team_name,
        ),
    ]
    if not all(checks) and status != OK:
        logger.error("DeactivateTeamMembers failed: %d - %s", status, preview(body))

    return record
