"""
Quota reclamation engine.

Flow:
1. Estimate: size of the pending upload (declared, fixed or measured)
2. Check: fail when the upload alone exceeds the limit
3. Collect: every live artifact across all runs
4. Plan: order candidates by age when a deficit exists
5. Evict: delete in order until the deficit is covered
"""

from .estimator import SizeEstimate, estimate_pending_size, measure_archive_size
from .executor import EvictionExecutor, EvictionReport
from .inventory import Inventory, collect_inventory
from .pipeline import ReclaimResult, run_reclaim
from .planner import EvictionPlan, Quota, plan_eviction

__all__ = [
    "SizeEstimate",
    "estimate_pending_size",
    "measure_archive_size",
    "Inventory",
    "collect_inventory",
    "Quota",
    "EvictionPlan",
    "plan_eviction",
    "EvictionExecutor",
    "EvictionReport",
    "ReclaimResult",
    "run_reclaim",
]
