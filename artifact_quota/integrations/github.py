"""
GitHub Actions artifact API client.

Thin translation layer: one method per REST call, HTTP failures mapped to
the error taxonomy, JSON payloads turned into :class:`Run` and
:class:`Artifact` records before they leave this module.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, TypeVar

import httpx
import structlog

from ..config import DEFAULT_API_URL
from ..errors import (
    RateLimitedError,
    RemoteError,
    TransientRemoteError,
)
from ..models import Artifact, Namespace, Page, Run

logger = structlog.get_logger()

T = TypeVar("T")

API_VERSION = "2022-11-28"
DEFAULT_RATE_LIMIT_DELAY = 60.0


class ActionsClient(ABC):
    """Remote run and artifact operations used by the reclaim engine."""

    @abstractmethod
    async def list_runs_page(
        self, namespace: Namespace, page: int, per_page: int
    ) -> Page[Run]:
        """List one page of workflow runs in the namespace."""
        pass

    @abstractmethod
    async def list_artifacts_page(
        self, namespace: Namespace, run: Run, page: int, per_page: int
    ) -> Page[Artifact]:
        """List one page of artifacts belonging to a run."""
        pass

    @abstractmethod
    async def find_artifact_ids(self, namespace: Namespace, run_id: int, name: str) -> List[int]:
        """Ids of the artifacts called ``name`` in run ``run_id``."""
        pass

    @abstractmethod
    async def delete_artifact_by_id(self, namespace: Namespace, artifact_id: int) -> None:
        """Delete one artifact. Deleting an artifact that is already gone succeeds."""
        pass


def _retry_after(response: httpx.Response, now: Callable[[], float] = time.time) -> float:
    """Server-suggested delay in seconds for a rate-limited response."""
    retry_after = response.headers.get("retry-after")
    if retry_after is not None:
        try:
            return max(0.0, float(retry_after))
        except ValueError:
            pass
    reset = response.headers.get("x-ratelimit-reset")
    if reset is not None:
        try:
            return max(0.0, float(reset) - now())
        except ValueError:
            pass
    return DEFAULT_RATE_LIMIT_DELAY


def raise_for_status(response: httpx.Response) -> None:
    """Map an error response onto the remote error classes."""
    status = response.status_code
    if status < 400:
        return

    description = f"{response.request.method} {response.request.url.path} returned {status}"
    rate_limited = status == 429 or (
        status == 403
        and (
            response.headers.get("x-ratelimit-remaining") == "0"
            or "retry-after" in response.headers
        )
    )
    if rate_limited:
        raise RateLimitedError(description, retry_after=_retry_after(response), status_code=status)
    if status >= 500:
        raise TransientRemoteError(description, status_code=status)
    raise RemoteError(f"{description}: {response.text[:200]}", status_code=status)


class GitHubActionsClient(ActionsClient):
    """Client for the GitHub Actions REST API.

    Usage:
        async with GitHubActionsClient(token) as client:
            page = await client.list_runs_page(namespace, 1, 50)
    """

    def __init__(
        self,
        token: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.client = httpx.AsyncClient(
            base_url=self.api_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": API_VERSION,
            },
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> "GitHubActionsClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _request(
        self, method: str, path: str, params: Optional[Dict[str, Any]] = None
    ) -> httpx.Response:
        try:
            response = await self.client.request(method, path, params=params)
        except httpx.TransportError as e:
            raise TransientRemoteError(f"{method} {path} failed: {e}") from e
        raise_for_status(response)
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Dict[str, Any]:
        try:
            return response.json()
        except ValueError as e:
            raise RemoteError(
                f"Malformed JSON from {response.request.url.path}",
                status_code=response.status_code,
            ) from e

    @staticmethod
    def _translate(response: httpx.Response, build: Callable[[], T]) -> T:
        """Run a payload translation, reporting malformed records as remote errors."""
        try:
            return build()
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise RemoteError(
                f"Malformed payload from {response.request.url.path}: {e}",
                status_code=response.status_code,
            ) from e

    async def list_runs_page(
        self, namespace: Namespace, page: int, per_page: int
    ) -> Page[Run]:
        response = await self._request(
            "GET",
            f"/repos/{namespace}/actions/runs",
            params={"page": page, "per_page": per_page},
        )
        payload = self._json(response)
        runs = self._translate(
            response, lambda: [Run.from_api(item) for item in payload.get("workflow_runs", [])]
        )
        return Page(items=runs, has_next="next" in response.links)

    async def list_artifacts_page(
        self, namespace: Namespace, run: Run, page: int, per_page: int
    ) -> Page[Artifact]:
        response = await self._request(
            "GET",
            f"/repos/{namespace}/actions/runs/{run.run_id}/artifacts",
            params={"page": page, "per_page": per_page},
        )
        payload = self._json(response)
        artifacts = self._translate(
            response, lambda: [Artifact.from_api(item, run) for item in payload.get("artifacts", [])]
        )
        return Page(items=artifacts, has_next="next" in response.links)

    async def find_artifact_ids(self, namespace: Namespace, run_id: int, name: str) -> List[int]:
        response = await self._request(
            "GET",
            f"/repos/{namespace}/actions/runs/{run_id}/artifacts",
            params={"name": name},
        )
        payload = self._json(response)
        return self._translate(
            response,
            lambda: [
                int(item["id"]) for item in payload.get("artifacts", []) if item.get("name") == name
            ],
        )

    async def delete_artifact_by_id(self, namespace: Namespace, artifact_id: int) -> None:
        """Delete one artifact; an id the server no longer knows is already gone."""
        try:
            await self._request("DELETE", f"/repos/{namespace}/actions/artifacts/{artifact_id}")
        except RemoteError as e:
            if e.status_code != 404:
                raise
            logger.debug("artifact_already_deleted", artifact_id=artifact_id)
            return
        logger.debug("artifact_delete_request", artifact_id=artifact_id)
