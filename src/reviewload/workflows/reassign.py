"""Reassign-reviewer workflow driver."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import aiohttp

from reviewload.metrics.models import OutcomeRecord
from reviewload.metrics.registry import REASSIGN_REVIEWER
from reviewload.workflows._common import (
    CHECK_DURATION_MS,
    CONFLICT,
    OK,
    logger,
    nested,
    parse_json,
    preview,
)

if TYPE_CHECKING:
    from reviewload.http_client import HttpClient
    from reviewload.metrics.registry import MetricRegistry

FETCH_NAME = "GetPR"
REQUEST_NAME = "ReassignReviewer"


async def _fetch_reviewers(client: HttpClient, pr_id: str) -> list[str] | None:
    """Return the PR's assigned reviewers, or None if the read failed."""
    try:
        resp = await client.get(
            "/pullRequest/get",
            name=FETCH_NAME,
            params={"pull_request_id": pr_id},
        )
        if resp.status != OK:
            resp.release()
            return None
        data = parse_json(await resp.text(errors="replace"))
    except (aiohttp.ClientError, TimeoutError):
        logger.debug("Fetching PR %s failed", pr_id, exc_info=True)
        return None
    if not isinstance(data, dict):
        return None
    reviewers = nested(data, "pr", "assigned_reviewers")
    if not isinstance(reviewers, list):
        return []
    return [str(r) for r in reviewers]


async def reassign_reviewer(
    client: HttpClient,
    registry: MetricRegistry,
    pr_id: str,
) -> OutcomeRecord | None:
    """Replace the first assigned reviewer of *pr_id* and record the outcome.

    The PR is read first.  A failed or unparsable read is not a
    reassignment outcome, so nothing is recorded and None is returned.  A PR
    without reviewers has nothing to reassign and counts as a success.
    Otherwise the first reviewer is named as the one to remove and the
    service picks the replacement:

    - 200: success
    - 409: success; another caller won the race on the same PR
    - anything else, transport errors included: real error

    Duration is measured from the start of the read.  The body check (the
    response names the same PR) never changes the classification.

    Returns:
        The recorded OutcomeRecord, or None if the read failed.
    """
    start = time.monotonic()
    reviewers = await _fetch_reviewers(client, pr_id)
    if reviewers is None:
        return None

    if not reviewers:
        record = OutcomeRecord(
            workflow_name=REASSIGN_REVIEWER,
            duration_ms=(time.monotonic() - start) * 1000,
            success=True,
            real_error=False,
            status_code=OK,
        )
        registry.record_outcome(record)
        return record

    status = 0
    body = ""
    try:
        resp = await client.post(
            "/pullRequest/reassign",
            name=REQUEST_NAME,
            json={"pull_request_id": pr_id, "old_user_id": reviewers[0]},
        )
        status = resp.status
        body = await resp.text(errors="replace")
    except (aiohttp.ClientError, TimeoutError) as exc:
        body = f"{type(exc).__name__}: {exc}"
    duration_ms = (time.monotonic() - start) * 1000

    accepted = status in (OK, CONFLICT)
    record = OutcomeRecord(
        workflow_name=REASSIGN_REVIEWER,
        duration_ms=duration_ms,
        success=accepted,
        real_error=not accepted,
        status_code=status,
    )
    registry.record_outcome(record)

    checks = [
        registry.check("reassign status is 200 or 409", accepted),
        registry.check("reassign duration < 300ms", duration_ms < CHECK_DURATION_MS),
        registry.check(
            "reassign response contains PR",
            status == CONFLICT or nested(parse_json(body), "pr", "pull_request_id") == pr_id,
        ),
    ]
    if not all(checks) and status != CONFLICT:
        logger.error("ReassignReviewer failed: %d - %s", status, preview(body))

    return record
