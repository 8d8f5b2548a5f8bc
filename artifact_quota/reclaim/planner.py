"""
Eviction planning: how much must go, and in which order.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Tuple

from ..models import Artifact, RemoveDirection


@dataclass(frozen=True)
class Quota:
    """Limit, pending addition and current usage, all in bytes."""

    limit: int
    pending_size: int
    existing_size: int

    @property
    def deficit(self) -> int:
        """Bytes that must be freed for the pending upload to fit."""
        return max(0, self.pending_size + self.existing_size - self.limit)

    def available_headroom(self, deleted_size: int) -> int:
        return self.limit - self.existing_size + deleted_size


@dataclass(frozen=True)
class EvictionPlan:
    """Candidates in eviction order. The executor decides how many to consume."""

    candidates: Tuple[Artifact, ...]
    deficit: int
    direction: RemoveDirection

    def __iter__(self) -> Iterator[Artifact]:
        return iter(self.candidates)

    def __len__(self) -> int:
        return len(self.candidates)

    def __bool__(self) -> bool:
        return bool(self.candidates)


def plan_eviction(
    artifacts: Iterable[Artifact],
    quota: Quota,
    direction: RemoveDirection,
) -> EvictionPlan:
    """Order the inventory for eviction.

    Returns an empty plan when nothing needs to be freed. Otherwise every
    artifact is sorted by creation time, ascending for ``oldest`` and
    descending for ``newest``; unknown creation times count as epoch 0 and
    ties keep inventory order.
    """
    direction = RemoveDirection(direction)
    deficit = quota.deficit
    if deficit <= 0:
        return EvictionPlan(candidates=(), deficit=0, direction=direction)

    ordered = sorted(
        artifacts,
        key=lambda artifact: artifact.created_timestamp,
        reverse=direction is RemoveDirection.NEWEST,
    )
    return EvictionPlan(candidates=tuple(ordered), deficit=deficit, direction=direction)
