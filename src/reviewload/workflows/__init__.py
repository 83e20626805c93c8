"""Workflow drivers exercised by every virtual caller."""

from __future__ import annotations

from reviewload.metrics.models import OutcomeRecord
from reviewload.workflows.deactivate import deactivate_team_members
from reviewload.workflows.reassign import reassign_reviewer

__all__ = [
    "OutcomeRecord",
    "deactivate_team_members",
    "reassign_reviewer",
]
