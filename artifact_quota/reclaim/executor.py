"""
Eviction execution.

Walks an :class:`EvictionPlan` in order, deleting victims until the freed
size covers the deficit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import partial
from typing import Dict, List

import structlog

from ..errors import ArtifactNotFoundError, DeletionError, RemoteError
from ..integrations.github import ActionsClient
from ..integrations.resilient import ResilientClient
from ..models import Artifact, Namespace
from .planner import EvictionPlan, Quota

logger = structlog.get_logger()


@dataclass
class EvictionReport:
    """What an eviction run removed.

    ``deleted_size`` is the running total checked against the deficit. It
    includes unnamed artifacts that were skipped when those are counted;
    ``reclaimed_size`` only covers artifacts actually deleted.
    """

    deficit: int = 0
    deleted_artifacts: List[Artifact] = field(default_factory=list)
    skipped_artifacts: List[Artifact] = field(default_factory=list)
    deleted_size: int = 0

    @property
    def deleted_count(self) -> int:
        return len(self.deleted_artifacts)

    @property
    def reclaimed_size(self) -> int:
        return sum(artifact.size for artifact in self.deleted_artifacts)

    @property
    def satisfied(self) -> bool:
        return self.deleted_size >= self.deficit

    def by_run(self) -> Dict[int, List[Artifact]]:
        """Deleted artifacts grouped by owning run, in deletion order."""
        grouped: Dict[int, List[Artifact]] = {}
        for artifact in self.deleted_artifacts:
            grouped.setdefault(artifact.run_id, []).append(artifact)
        return grouped

    def available_headroom(self, quota: Quota) -> int:
        return quota.available_headroom(self.deleted_size)

    def to_dict(self) -> Dict[str, object]:
        return {
            "deficit": self.deficit,
            "deleted_count": self.deleted_count,
            "deleted_size": self.deleted_size,
            "reclaimed_size": self.reclaimed_size,
            "skipped_count": len(self.skipped_artifacts),
            "deleted_artifacts": [
                {
                    "id": a.id,
                    "name": a.name,
                    "size": a.size,
                    "run_id": a.run_id,
                    "workflow_id": a.workflow_id,
                }
                for a in self.deleted_artifacts
            ],
        }


class EvictionExecutor:
    """Greedy, sequential deletion of planned victims."""

    def __init__(
        self,
        client: ActionsClient,
        remote: ResilientClient,
        namespace: Namespace,
        count_unnamed: bool = True,
    ):
        """
        Args:
            client: Raw remote client used for deletes
            remote: Retry wrapper every delete goes through
            namespace: Repository the artifacts belong to
            count_unnamed: Whether the size of an unnamed (undeletable)
                candidate still counts toward the deficit
        """
        self.client = client
        self.remote = remote
        self.namespace = namespace
        self.count_unnamed = count_unnamed

    async def _delete(self, candidate: Artifact) -> None:
        """Resolve ``candidate`` by name inside its run, then delete each match by id.

        The lookup and every delete are retried separately, so a delete
        that succeeded on the server but failed in transit is not looked
        up again.

        Raises:
            ArtifactNotFoundError: If the run no longer holds the name
        """
        artifact_ids = await self.remote.call(
            "find_artifact",
            partial(self.client.find_artifact_ids, self.namespace, candidate.run_id, candidate.name),
        )
        if not artifact_ids:
            raise ArtifactNotFoundError(
                f"Artifact '{candidate.name}' not found in run {candidate.run_id}",
                status_code=404,
            )
        for artifact_id in artifact_ids:
            await self.remote.call(
                "delete_artifact",
                partial(self.client.delete_artifact_by_id, self.namespace, artifact_id),
            )

    async def execute(self, plan: EvictionPlan, quota: Quota) -> EvictionReport:
        """Delete candidates in plan order until the deficit is covered.

        A candidate counts toward the running total only once its delete
        has returned.

        Raises:
            DeletionError: If a delete fails; carries the partial report
        """
        report = EvictionReport(deficit=plan.deficit)
        if plan.deficit <= 0:
            return report

        log = logger.bind(namespace=str(self.namespace), deficit=plan.deficit)

        for candidate in plan:
            if candidate.name:
                try:
                    await self._delete(candidate)
                except RemoteError as e:
                    raise DeletionError(
                        f"Failed to delete artifact '{candidate.name}' "
                        f"of run {candidate.run_id}: {e.message}",
                        report=report,
                    ) from e
                report.deleted_artifacts.append(candidate)
                report.deleted_size += candidate.size
                log.info(
                    "artifact_deleted",
                    name=candidate.name,
                    run_id=candidate.run_id,
                    size=candidate.size,
                )
            else:
                report.skipped_artifacts.append(candidate)
                log.warning(
                    "artifact_unnamed_skipped",
                    artifact_id=candidate.id,
                    run_id=candidate.run_id,
                    size=candidate.size,
                    counted=self.count_unnamed,
                )
                if self.count_unnamed:
                    report.deleted_size += candidate.size

            if report.deleted_size >= plan.deficit:
                break

        log.info(
            "eviction_finished",
            deleted=report.deleted_count,
            deleted_size=report.deleted_size,
            satisfied=report.satisfied,
        )
        return report
