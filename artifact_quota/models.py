"""
Typed records for the remote artifact pool.

Remote payloads are translated into these records at the API boundary;
nothing past the client handles raw JSON.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from .errors import ConfigurationError

T = TypeVar("T")


class RemoveDirection(str, Enum):
    """Which end of the age ordering is evicted first."""

    OLDEST = "oldest"
    NEWEST = "newest"


class Namespace(BaseModel):
    """The owner/repository pair whose artifact pool is managed."""

    model_config = ConfigDict(frozen=True)

    owner: str = Field(..., min_length=1)
    repo: str = Field(..., min_length=1)

    @classmethod
    def parse(cls, value: str) -> "Namespace":
        """Parse an ``owner/repo`` string.

        Raises:
            ConfigurationError: If the value is not exactly two non-empty parts
        """
        parts = (value or "").strip().split("/")
        if len(parts) != 2 or not all(p.strip() for p in parts):
            raise ConfigurationError(
                f"Invalid repository '{value}', expected 'owner/repo'"
            )
        return cls(owner=parts[0].strip(), repo=parts[1].strip())

    def __str__(self) -> str:
        return f"{self.owner}/{self.repo}"


class Run(BaseModel):
    """A workflow run grouping zero or more artifacts."""

    model_config = ConfigDict(frozen=True)

    run_id: int
    workflow_id: Optional[int] = None
    name: str = ""
    status: Optional[str] = None
    conclusion: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "Run":
        return cls(
            run_id=payload["id"],
            workflow_id=payload.get("workflow_id"),
            name=payload.get("name") or "",
            status=payload.get("status"),
            conclusion=payload.get("conclusion"),
        )


class Artifact(BaseModel):
    """Snapshot of a stored artifact at listing time.

    Deletion is addressed by ``name`` within ``run_id``, never through
    this object.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    name: str = ""
    size: int = Field(0, ge=0)
    created_at: Optional[datetime] = None
    run_id: int
    workflow_id: Optional[int] = None
    expired: bool = False

    @property
    def created_timestamp(self) -> float:
        """Creation time as a POSIX timestamp; unknown ages sort as epoch 0."""
        if self.created_at is None:
            return 0.0
        return self.created_at.timestamp()

    @classmethod
    def from_api(cls, payload: Dict[str, Any], run: Run) -> "Artifact":
        return cls(
            id=payload["id"],
            name=payload.get("name") or "",
            size=payload.get("size_in_bytes") or 0,
            created_at=payload.get("created_at"),
            run_id=run.run_id,
            workflow_id=run.workflow_id,
            expired=bool(payload.get("expired", False)),
        )


@dataclass
class Page(Generic[T]):
    """One page of a listing and whether the server has more."""

    items: List[T] = field(default_factory=list)
    has_next: bool = False
