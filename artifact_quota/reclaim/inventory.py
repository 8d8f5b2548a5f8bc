"""
Inventory collection across all runs of a namespace.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import partial
from typing import Iterator, List

import structlog

from ..errors import RemoteError
from ..integrations.github import ActionsClient
from ..integrations.resilient import ResilientClient
from ..models import Artifact, Namespace, Run

logger = structlog.get_logger()


@dataclass
class Inventory:
    """Artifacts currently stored, in run order then listing order."""

    artifacts: List[Artifact] = field(default_factory=list)
    runs: List[Run] = field(default_factory=list)
    failed_runs: List[int] = field(default_factory=list)

    @property
    def total_size(self) -> int:
        return sum(artifact.size for artifact in self.artifacts)

    def __iter__(self) -> Iterator[Artifact]:
        return iter(self.artifacts)

    def __len__(self) -> int:
        return len(self.artifacts)


async def collect_inventory(
    namespace: Namespace,
    client: ActionsClient,
    remote: ResilientClient,
) -> Inventory:
    """Enumerate every run in ``namespace`` and list its artifacts.

    Runs are listed one after another. A run whose listing still fails after
    the remote client's retries is left out with a warning; failing to list
    the runs themselves is fatal.

    Expired artifacts no longer occupy storage and are not inventoried.

    Args:
        namespace: Repository whose artifacts are collected
        client: Raw remote client
        remote: Retry/pagination wrapper

    Returns:
        Inventory of live artifacts, each tagged with its run and workflow
    """
    log = logger.bind(namespace=str(namespace))
    inventory = Inventory()

    async for run in remote.paginate("list_runs", partial(client.list_runs_page, namespace)):
        inventory.runs.append(run)

    log.info("runs_listed", runs=len(inventory.runs))

    for run in inventory.runs:
        try:
            listed = [
                artifact
                async for artifact in remote.paginate(
                    "list_artifacts", partial(client.list_artifacts_page, namespace, run)
                )
            ]
        except RemoteError as e:
            log.warning(
                "run_listing_failed",
                run_id=run.run_id,
                workflow_id=run.workflow_id,
                error=e.message,
            )
            inventory.failed_runs.append(run.run_id)
            continue

        for artifact in listed:
            if artifact.expired:
                log.debug("artifact_expired_ignored", run_id=run.run_id, name=artifact.name)
                continue
            inventory.artifacts.append(artifact)

    log.info(
        "inventory_collected",
        artifacts=len(inventory),
        total_size=inventory.total_size,
        failed_runs=len(inventory.failed_runs),
    )
    return inventory
