"""Idempotent fixture provisioning against the service under test.

Provisioning runs once, before any load.  It creates teams, then pull
requests authored by the first member of the first team, then activates a
slice of users.  Every create call accepts 201 (created) and 409 (already
exists) alike: a 409 means an earlier attempt already created the fixture,
so the intended name and membership are used as-is.
"""

from __future__ import annotations

import itertools
import time
from dataclasses import dataclass

import aiohttp

from reviewload._internal.errors import ConfigError, SetupError
from reviewload._internal.logging import get_logger
from reviewload.http_client import HttpClient

logger = get_logger("fixtures")

_CREATED = 201
_CONFLICT = 409
_ACCEPTED_CREATE = frozenset({_CREATED, _CONFLICT})

_PROCESS_START_MS = int(time.time() * 1000)
_run_counter = itertools.count(1)


def new_run_id() -> str:
    """Return a run id unique across runs and within this process.

    The id joins the process start time in epoch milliseconds with a
    process-wide monotonic counter, e.g. ``1760861100123-1``.  Two processes
    started in the same millisecond are the only collision window.
    """
    return f"{_PROCESS_START_MS}-{next(_run_counter)}"


@dataclass(frozen=True)
class Team:
    """A provisioned team.

    Attributes:
        name: Team name, unique per run.
        member_user_ids: Member user ids; the first one authors pull requests.
    """

    name: str
    member_user_ids: tuple[str, ...]


@dataclass(frozen=True)
class PullRequest:
    """A provisioned pull request."""

    id: str
    author_user_id: str


@dataclass(frozen=True)
class FixtureSet:
    """Everything provisioning produced.  Read-only for the rest of the run."""

    teams: tuple[Team, ...] = ()
    pull_requests: tuple[PullRequest, ...] = ()

    @property
    def team_names(self) -> tuple[str, ...]:
        return tuple(team.name for team in self.teams)

    @property
    def pull_request_ids(self) -> tuple[str, ...]:
        return tuple(pr.id for pr in self.pull_requests)


@dataclass(frozen=True)
class FixturePlan:
    """Shape of the dataset to provision.

    Attributes:
        teams: Number of teams to create.
        total_users: User budget divided evenly between teams.
        pull_requests: Number of pull requests to create.
        activate_teams: How many teams get their members activated.
        activate_members: Per activated team, members ``1 .. n-1`` are
            activated (member 0 is the author and is left alone).
    """

    teams: int = 10
    total_users: int = 200
    pull_requests: int = 10
    activate_teams: int = 5
    activate_members: int = 10

    def __post_init__(self) -> None:
        if self.teams < 1:
            msg = f"teams must be >= 1, got {self.teams}"
            raise ConfigError(msg)
        if self.total_users < self.teams:
            msg = f"total_users ({self.total_users}) must be >= teams ({self.teams})"
            raise ConfigError(msg)
        if self.pull_requests < 0:
            msg = f"pull_requests must be >= 0, got {self.pull_requests}"
            raise ConfigError(msg)

    @property
    def users_per_team(self) -> int:
        return self.total_users // self.teams


def team_name(team_idx: int, run_id: str) -> str:
    return f"load-test-team-{team_idx}-{run_id}"


def user_id(team_idx: int, member_idx: int) -> str:
    return f"load-user-{team_idx}-{member_idx}"


def pull_request_id(pr_idx: int, run_id: str) -> str:
    return f"load-pr-{pr_idx}-{run_id}"


async def _post_status(client: HttpClient, path: str, payload: dict[str, object]) -> int:
    """POST *payload* and return the status, or 0 if the request failed."""
    try:
        resp = await client.post(path, json=payload)
    except (aiohttp.ClientError, TimeoutError) as exc:
        logger.warning("POST %s failed: %s", path, exc)
        return 0
    resp.release()
    return resp.status


async def _create_teams(client: HttpClient, plan: FixturePlan, run_id: str) -> list[Team]:
    teams: list[Team] = []
    per_team = plan.users_per_team
    for team_idx in range(plan.teams):
        name = team_name(team_idx, run_id)
        members = [
            {"user_id": user_id(team_idx, i), "username": f"LoadUser{team_idx}-{i}"}
            for i in range(per_team)
        ]
        status = await _post_status(client, "/team/add", {"team_name": name, "members": members})
        if status in _ACCEPTED_CREATE:
            teams.append(Team(name=name, member_user_ids=tuple(m["user_id"] for m in members)))
        else:
            logger.warning("Team %s not provisioned (status %d)", name, status)
    return teams


async def _create_pull_requests(
    client: HttpClient,
    plan: FixturePlan,
    run_id: str,
    author: str,
) -> list[PullRequest]:
    prs: list[PullRequest] = []
    for pr_idx in range(plan.pull_requests):
        pr_id = pull_request_id(pr_idx, run_id)
        status = await _post_status(
            client,
            "/pullRequest/create",
            {
                "pull_request_id": pr_id,
                "pull_request_name": f"Load test PR {pr_idx}",
                "author_id": author,
            },
        )
        if status in _ACCEPTED_CREATE:
            prs.append(PullRequest(id=pr_id, author_user_id=author))
        else:
            logger.warning("Pull request %s not provisioned (status %d)", pr_id, status)
    return prs


async def _activate_users(client: HttpClient, plan: FixturePlan, teams: list[Team]) -> None:
    for team in teams[: plan.activate_teams]:
        last = min(len(team.member_user_ids), plan.activate_members)
        for member in team.member_user_ids[1:last]:
            try:
                resp = await client.post(
                    "/users/setIsActive",
                    json={"user_id": member, "is_active": True},
                )
            except (aiohttp.ClientError, TimeoutError):
                logger.debug("Activation of %s skipped", member, exc_info=True)
                continue
            resp.release()


async def provision(client: HttpClient, plan: FixturePlan, run_id: str) -> FixtureSet:
    """Create teams, pull requests and active users for a run.

    Args:
        client: Open client pointed at the service under test.
        plan: Shape of the dataset.
        run_id: Suffix that makes team and PR names unique to this run.

    Returns:
        FixtureSet holding every team and PR that was created or already
        existed.  Teams and PRs that got any other answer are left out.

    Raises:
        SetupError: If not a single team could be provisioned.
    """
    logger.info("Provisioning fixtures: run_id=%s", run_id)

    teams = await _create_teams(client, plan, run_id)
    if not teams:
        msg = "Could not provision any team"
        raise SetupError(msg)

    prs = await _create_pull_requests(client, plan, run_id, teams[0].member_user_ids[0])
    await _activate_users(client, plan, teams)

    logger.info(
        "Provisioning complete: teams=%d, users_per_team=%d, total_users=%d, prs=%d",
        len(teams),
        plan.users_per_team,
        len(teams) * plan.users_per_team,
        len(prs),
    )
    return FixtureSet(teams=tuple(teams), pull_requests=tuple(prs))
