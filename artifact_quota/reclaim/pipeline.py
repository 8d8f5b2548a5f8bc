"""
End-to-end reclamation: estimate, check, collect, plan, evict.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import structlog

from ..config import ReclaimConfig, format_size
from ..errors import QuotaExceededError
from ..integrations.github import ActionsClient
from ..integrations.resilient import ResilientClient
from .estimator import SizeEstimate, estimate_pending_size
from .executor import EvictionExecutor, EvictionReport
from .inventory import Inventory, collect_inventory
from .planner import EvictionPlan, Quota, plan_eviction

logger = structlog.get_logger()


@dataclass
class ReclaimResult:
    """Everything a completed reclamation decided and did."""

    estimate: SizeEstimate
    inventory: Inventory
    quota: Quota
    plan: EvictionPlan
    report: EvictionReport

    @property
    def available_headroom(self) -> int:
        return self.report.available_headroom(self.quota)


def create_remote(config: ReclaimConfig) -> ResilientClient:
    return ResilientClient(
        max_retries=config.max_retries,
        retries_enabled=config.retries_enabled,
        page_size=config.page_size,
    )


async def run_reclaim(
    config: ReclaimConfig,
    client: ActionsClient,
    remote: Optional[ResilientClient] = None,
) -> ReclaimResult:
    """Free enough space in the artifact pool for the pending upload.

    The pending size is checked against the limit before anything is
    listed. Fatal errors propagate; deletes already executed stay done.

    Args:
        config: Validated configuration
        client: Remote artifact API
        remote: Retry wrapper, built from ``config`` when omitted

    Returns:
        ReclaimResult with the estimate, inventory, plan and report
    """
    remote = remote or create_remote(config)
    log = logger.bind(namespace=str(config.namespace))

    estimate = await estimate_pending_size(
        declared_size=config.request_size,
        fixed_size=config.reserved_size,
        paths=config.upload_paths,
        compression_level=config.compression_level,
    )
    if estimate.size > config.limit:
        raise QuotaExceededError(
            f"Total size of artifacts to upload exceeds the limit: "
            f"{format_size(estimate.size)} > {format_size(config.limit)}"
        )
    log.info(
        "pending_size_estimated",
        size=format_size(estimate.size),
        mode=estimate.mode,
        missing_paths=len(estimate.missing_paths),
    )

    inventory = await collect_inventory(config.namespace, client, remote)
    log.info("existing_size_computed", size=format_size(inventory.total_size))

    quota = Quota(
        limit=config.limit,
        pending_size=estimate.size,
        existing_size=inventory.total_size,
    )
    plan = plan_eviction(inventory.artifacts, quota, config.remove_direction)

    if plan:
        log.info(
            "eviction_required",
            required=format_size(quota.deficit),
            candidates=len(plan),
            direction=plan.direction.value,
        )
        executor = EvictionExecutor(
            client, remote, config.namespace, count_unnamed=config.count_unnamed
        )
        report = await executor.execute(plan, quota)
    else:
        log.info("eviction_not_required")
        report = EvictionReport()

    result = ReclaimResult(
        estimate=estimate,
        inventory=inventory,
        quota=quota,
        plan=plan,
        report=report,
    )
    log.info(
        "reclaim_summary",
        deleted=report.deleted_count,
        freed=format_size(report.deleted_size),
        available=format_size(result.available_headroom),
        runs={run_id: len(items) for run_id, items in report.by_run().items()},
    )
    return result
