"""Tests for eviction planning."""

import pytest

from artifact_quota.models import RemoveDirection
from artifact_quota.reclaim.planner import Quota, plan_eviction


class TestQuota:
    @pytest.mark.parametrize(
        "limit,pending,existing,deficit",
        [
            (1000, 300, 800, 100),
            (1000, 200, 800, 0),
            (1000, 0, 0, 0),
            (1000, 100, 500, 0),
        ],
    )
    def test_deficit(self, limit, pending, existing, deficit):
        assert Quota(limit, pending, existing).deficit == deficit

    def test_headroom_matches_remaining_usage(self):
        quota = Quota(limit=1000, pending_size=300, existing_size=800)
        deleted = 400
        assert quota.available_headroom(deleted) == 1000 - (800 - deleted)


class TestPlanEviction:
    def test_no_deficit_gives_empty_plan(self, make_artifact):
        artifacts = [make_artifact(1, 100), make_artifact(2, 100)]
        plan = plan_eviction(artifacts, Quota(1000, 100, 200), RemoveDirection.OLDEST)

        assert not plan
        assert len(plan) == 0
        assert plan.deficit == 0

    def test_oldest_sorts_ascending(self, make_artifact):
        artifacts = [make_artifact(1, 10, minutes=30), make_artifact(2, 10, minutes=10), make_artifact(3, 10, minutes=20)]
        plan = plan_eviction(artifacts, Quota(10, 10, 30), RemoveDirection.OLDEST)

        assert [a.id for a in plan] == [2, 3, 1]
        timestamps = [a.created_timestamp for a in plan]
        assert timestamps == sorted(timestamps)

    def test_newest_sorts_descending(self, make_artifact):
        artifacts = [make_artifact(1, 10, minutes=30), make_artifact(2, 10, minutes=10), make_artifact(3, 10, minutes=20)]
        plan = plan_eviction(artifacts, Quota(10, 10, 30), "newest")

        assert [a.id for a in plan] == [1, 3, 2]
        assert plan.direction is RemoveDirection.NEWEST

    def test_unknown_age_is_evicted_first_when_oldest(self, make_artifact):
        artifacts = [make_artifact(1, 10, minutes=5), make_artifact(2, 10, minutes=None)]
        plan = plan_eviction(artifacts, Quota(10, 10, 20), RemoveDirection.OLDEST)
        assert [a.id for a in plan] == [2, 1]

    def test_unknown_age_is_evicted_last_when_newest(self, make_artifact):
        artifacts = [make_artifact(1, 10, minutes=None), make_artifact(2, 10, minutes=5)]
        plan = plan_eviction(artifacts, Quota(10, 10, 20), RemoveDirection.NEWEST)
        assert [a.id for a in plan] == [2, 1]

    @pytest.mark.parametrize("direction", list(RemoveDirection))
    def test_ties_keep_inventory_order(self, direction, make_artifact):
        artifacts = [make_artifact(i, 10, minutes=0) for i in (5, 3, 9, 1)]
        plan = plan_eviction(artifacts, Quota(10, 10, 40), direction)
        assert [a.id for a in plan] == [5, 3, 9, 1]

    def test_plan_holds_full_inventory(self, make_artifact):
        artifacts = [make_artifact(i, 100, minutes=i) for i in range(5)]
        plan = plan_eviction(artifacts, Quota(500, 1, 500), RemoveDirection.OLDEST)

        assert plan.deficit == 1
        assert len(plan) == 5
