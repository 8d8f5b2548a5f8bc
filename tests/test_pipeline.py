"""End-to-end tests for the reclaim pipeline with a fake remote."""

import pytest
from structlog.testing import capture_logs

from artifact_quota.errors import ConfigurationError, DeletionError, QuotaExceededError
from artifact_quota.integrations.resilient import ResilientClient
from artifact_quota.models import RemoveDirection
from artifact_quota.reclaim.estimator import MODE_MEASURED
from artifact_quota.reclaim.pipeline import create_remote, run_reclaim


@pytest.fixture
def client(fake_client, make_run, make_artifact):
    """Two runs holding one 400-byte artifact each, run 1's being older."""
    return fake_client({
        make_run(1, 10): [make_artifact(1, 400, minutes=1, run_id=1, workflow_id=10)],
        make_run(2, 20): [make_artifact(2, 400, minutes=2, run_id=2, workflow_id=20)],
    })


@pytest.mark.asyncio
async def test_evicts_oldest_until_pending_upload_fits(client, make_config, remote):
    config = make_config(limit=1000, request_size=300)

    with capture_logs() as logs:
        result = await run_reclaim(config, client, remote)

    assert result.quota.deficit == 100
    assert client.deleted == [(1, "artifact-1")]
    assert result.report.deleted_size == 400
    assert result.available_headroom == 600
    summary = [e for e in logs if e["event"] == "reclaim_summary"][0]
    assert summary["deleted"] == 1
    assert summary["runs"] == {1: 1}


@pytest.mark.asyncio
async def test_newest_direction(client, make_config, remote):
    config = make_config(limit=800, request_size=50, remove_direction=RemoveDirection.NEWEST)

    result = await run_reclaim(config, client, remote)

    assert [a.id for a in result.report.deleted_artifacts] == [2]


@pytest.mark.asyncio
async def test_pending_larger_than_limit_fails_before_listing(client, make_config, remote):
    config = make_config(limit=1000, request_size=1200)

    with pytest.raises(QuotaExceededError) as exc_info:
        await run_reclaim(config, client, remote)

    assert "exceeds the limit" in exc_info.value.message
    assert client.calls == []


@pytest.mark.asyncio
async def test_nothing_deleted_when_it_fits(client, make_config, remote):
    config = make_config(limit=1000, request_size=200)

    result = await run_reclaim(config, client, remote)

    assert not result.plan
    assert result.report.deleted_count == 0
    assert client.deleted == []
    assert result.available_headroom == 200


@pytest.mark.asyncio
async def test_missing_upload_path_is_dropped(make_config, remote, tmp_path, fake_client):
    present = tmp_path / "out.bin"
    present.write_bytes(b"x" * 100)
    client = fake_client()
    config = make_config(upload_paths=["/missing/path", str(present)])

    result = await run_reclaim(config, client, remote)

    assert result.estimate.mode == MODE_MEASURED
    assert result.estimate.missing_paths == ["/missing/path"]
    assert result.estimate.size > 100


@pytest.mark.asyncio
async def test_failed_run_is_excluded_and_reclaim_completes(client, make_config, remote, failing):
    client.failing_runs[2] = failing("500 after retries")
    config = make_config(limit=500, request_size=200)

    result = await run_reclaim(config, client, remote)

    assert result.inventory.failed_runs == [2]
    assert result.quota.existing_size == 400
    assert client.deleted == [(1, "artifact-1")]


@pytest.mark.asyncio
async def test_delete_failure_aborts(client, make_config, remote, failing):
    client.failing_deletes["artifact-1"] = failing("403 forbidden")
    config = make_config(limit=800, request_size=100)

    with pytest.raises(DeletionError):
        await run_reclaim(config, client, remote)

    assert client.deleted == []


@pytest.mark.asyncio
async def test_invalid_compression_level_fails_before_listing(client, make_config, remote):
    # model_copy skips validation, so the estimator sees the bad level
    config = make_config(request_size=10).model_copy(update={"compression_level": 12})

    with pytest.raises(ConfigurationError):
        await run_reclaim(config, client, remote)
    assert client.calls == []


def test_create_remote_uses_config(make_config):
    remote = create_remote(make_config(request_size=1, max_retries=2, retries_enabled=False, page_size=10))

    assert isinstance(remote, ResilientClient)
    assert (remote.max_retries, remote.retries_enabled, remote.page_size) == (2, False, 10)
