"""
Retry, backoff and pagination around remote calls.

``ResilientClient`` wraps any coroutine-returning callable. It knows nothing
about HTTP: the inner client translates responses into
:class:`RateLimitedError` / :class:`TransientRemoteError` and this layer
decides whether to wait and try again.
"""

from __future__ import annotations

import asyncio
from functools import partial
from typing import AsyncIterator, Awaitable, Callable, Optional, TypeVar

import structlog

from ..errors import ConfigurationError, RateLimitedError, TransientRemoteError
from ..models import Page

logger = structlog.get_logger()

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 5
DEFAULT_PAGE_SIZE = 50
MAX_BACKOFF_SECONDS = 30.0


class ResilientClient:
    """Executes remote operations with bounded retries.

    Rate-limit signals are honoured by sleeping the server-suggested delay;
    transient failures back off exponentially. With retries disabled every
    failure surfaces on the first attempt.
    """

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retries_enabled: bool = True,
        page_size: int = DEFAULT_PAGE_SIZE,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        backoff_base: float = 2.0,
    ):
        """
        Args:
            max_retries: Retries allowed per call after the first attempt
            retries_enabled: When False, failures are never retried
            page_size: Items requested per page by :meth:`paginate`
            sleep: Awaitable sleep, replaced in tests by a fake clock
            backoff_base: Base of the exponential backoff for transient errors
        """
        if max_retries < 0:
            raise ConfigurationError(f"max_retries must be >= 0, got {max_retries}")
        if page_size < 1:
            raise ConfigurationError(f"page_size must be >= 1, got {page_size}")
        self.max_retries = max_retries
        self.retries_enabled = retries_enabled
        self.page_size = page_size
        self.sleep = sleep or asyncio.sleep
        self.backoff_base = backoff_base

    def _can_retry(self, attempt: int) -> bool:
        return self.retries_enabled and attempt < self.max_retries

    async def call(self, operation: str, fn: Callable[[], Awaitable[T]]) -> T:
        """Run ``fn`` until it succeeds or retries are exhausted.

        Args:
            operation: Name used in diagnostic events
            fn: Zero-argument callable returning a fresh awaitable per attempt

        Returns:
            Whatever ``fn`` resolves to
        """
        attempt = 0
        while True:
            try:
                return await fn()
            except RateLimitedError as e:
                if not self._can_retry(attempt):
                    raise
                delay = max(0.0, e.retry_after)
                logger.warning(
                    "remote_rate_limited",
                    operation=operation,
                    attempt=attempt + 1,
                    max_retries=self.max_retries,
                    retry_after=delay,
                )
            except TransientRemoteError as e:
                if not self._can_retry(attempt):
                    raise
                delay = min(self.backoff_base**attempt, MAX_BACKOFF_SECONDS)
                logger.warning(
                    "remote_retry",
                    operation=operation,
                    attempt=attempt + 1,
                    max_retries=self.max_retries,
                    delay=delay,
                    error=e.message,
                )

            attempt += 1
            await self.sleep(delay)

    async def paginate(
        self,
        operation: str,
        fetch_page: Callable[[int, int], Awaitable[Page[T]]],
    ) -> AsyncIterator[T]:
        """Yield items across pages until the server reports no more.

        Args:
            operation: Name used in diagnostic events
            fetch_page: Called as ``fetch_page(page_number, page_size)``,
                page numbers start at 1
        """
        page_number = 1
        while True:
            page = await self.call(operation, partial(fetch_page, page_number, self.page_size))
            for item in page.items:
                yield item
            if not page.has_next or not page.items:
                break
            page_number += 1
