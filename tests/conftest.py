"""Test configuration and fixtures."""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest
import structlog

from artifact_quota.config import ReclaimConfig
from artifact_quota.errors import RemoteError
from artifact_quota.integrations.github import ActionsClient
from artifact_quota.integrations.resilient import ResilientClient
from artifact_quota.models import Artifact, Namespace, Page, RemoveDirection, Run

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeActionsClient(ActionsClient):
    """In-memory runs and artifacts with scriptable failures."""

    def __init__(self, runs: Optional[Dict[Run, List[Artifact]]] = None):
        self.runs: Dict[Run, List[Artifact]] = runs or {}
        self.list_runs_error: Optional[Exception] = None
        self.failing_runs: Dict[int, Exception] = {}
        self.failing_deletes: Dict[str, Exception] = {}
        self.calls: List[tuple] = []
        self.deleted: List[tuple] = []
        self.resolved: Dict[int, tuple] = {}

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return None

    async def list_runs_page(self, namespace, page, per_page):
        self.calls.append(("list_runs", page))
        if self.list_runs_error is not None:
            raise self.list_runs_error
        runs = list(self.runs)
        start = (page - 1) * per_page
        items = runs[start:start + per_page]
        return Page(items=items, has_next=start + per_page < len(runs))

    async def list_artifacts_page(self, namespace, run, page, per_page):
        self.calls.append(("list_artifacts", run.run_id, page))
        if run.run_id in self.failing_runs:
            raise self.failing_runs[run.run_id]
        artifacts = self.runs[run]
        start = (page - 1) * per_page
        items = artifacts[start:start + per_page]
        return Page(items=items, has_next=start + per_page < len(artifacts))

    async def find_artifact_ids(self, namespace, run_id, name):
        self.calls.append(("find_artifact", run_id, name))
        artifact_id = 1000 + len(self.resolved)
        self.resolved[artifact_id] = (run_id, name)
        return [artifact_id]

    async def delete_artifact_by_id(self, namespace, artifact_id):
        run_id, name = self.resolved[artifact_id]
        self.calls.append(("delete_artifact", run_id, name))
        if name in self.failing_deletes:
            raise self.failing_deletes[name]
        self.deleted.append((run_id, name))

    @property
    def list_calls(self) -> List[tuple]:
        return [c for c in self.calls if c[0].startswith("list")]


class FakeClock:
    """Records requested sleeps instead of waiting."""

    def __init__(self):
        self.sleeps: List[float] = []

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


@pytest.fixture
def namespace() -> Namespace:
    return Namespace(owner="testorg", repo="test-repo")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def remote(clock) -> ResilientClient:
    return ResilientClient(max_retries=3, page_size=2, sleep=clock.sleep)


@pytest.fixture
def make_artifact():
    """Factory for artifacts created ``minutes`` after BASE_TIME (None = unknown age)."""

    def _make(
        artifact_id: int,
        size: int,
        minutes: Optional[int] = 0,
        name: Optional[str] = None,
        run_id: int = 1,
        workflow_id: int = 10,
    ) -> Artifact:
        return Artifact(
            id=artifact_id,
            name=f"artifact-{artifact_id}" if name is None else name,
            size=size,
            created_at=None if minutes is None else BASE_TIME + timedelta(minutes=minutes),
            run_id=run_id,
            workflow_id=workflow_id,
        )

    return _make


@pytest.fixture
def make_run():
    def _make(run_id: int, workflow_id: int = 10) -> Run:
        return Run(run_id=run_id, workflow_id=workflow_id, name=f"run-{run_id}")

    return _make


@pytest.fixture
def fake_client():
    """Factory for in-memory clients keyed by run."""
    return FakeActionsClient


@pytest.fixture
def failing():
    """Factory for non-retryable remote errors."""

    def _make(message: str = "boom") -> RemoteError:
        return RemoteError(message, status_code=400)

    return _make


@pytest.fixture
def make_config(namespace):
    def _make(**overrides) -> ReclaimConfig:
        defaults = {
            "namespace": namespace,
            "token": "test-token",
            "limit": 1000,
            "remove_direction": RemoveDirection.OLDEST,
        }
        defaults.update(overrides)
        return ReclaimConfig(**defaults)

    return _make
