"""Concurrency patterns for reviewload.

All patterns implement :class:`LoadPattern` and yield
``(elapsed_seconds, target)`` tuples via :meth:`LoadPattern.iter_concurrency`.
Load profiles are written as :class:`Stage` sequences and run through
:class:`StagedPattern`, which chains ramps and holds.
"""

from __future__ import annotations

from reviewload.patterns.base import LoadPattern
from reviewload.patterns.composite import CompositePattern
from reviewload.patterns.constant import ConstantPattern
from reviewload.patterns.ramp import RampPattern
from reviewload.patterns.staged import DEFAULT_STAGES, Stage, StagedPattern

__all__ = [
    "DEFAULT_STAGES",
    "CompositePattern",
    "ConstantPattern",
    "LoadPattern",
    "RampPattern",
    "Stage",
    "StagedPattern",
]
