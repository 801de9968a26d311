"""Caller-side retry and timeout wrapper around a storage client.

The write sink adapter never retries on its own. Callers that want retries
wrap the client before handing it over.

Only failures raised before a request reached the server are retried: server
selection timing out means no write was sent. A timeout, network error or
dropped connection after the request went out is ambiguous (the write may
already have been applied) so it surfaces immediately. Retrying those safely
needs a server-side transaction id, which is what pymongo's own
``retryWrites`` does.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any

import structlog
from pymongo.errors import ServerSelectionTimeoutError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from mongo_sink.config.models import RetryConfig
from mongo_sink.sinks.base import WriteClient

logger = structlog.get_logger()

_RETRYABLE = (ServerSelectionTimeoutError,)


class RetryingWriteClient:
    """Wraps a :class:`WriteClient` with tenacity retries and a per-call timeout."""

    def __init__(
        self,
        client: WriteClient,
        retry: RetryConfig | None = None,
        *,
        timeout_seconds: float | None = None,
    ) -> None:
        self._client = client
        self._retry = retry or RetryConfig(enabled=True)
        self._timeout = timeout_seconds

    @property
    def wrapped(self) -> WriteClient:
        return self._client

    def _before_sleep(self, state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        logger.warning(
            "write_client.retrying",
            attempt=state.attempt_number,
            error=str(exc),
        )

    async def _call(self, fn: Callable[[], Awaitable[Any]]) -> Any:
        cfg = self._retry
        attempts = cfg.max_attempts if cfg.enabled else 1
        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential_jitter(
                initial=cfg.initial_wait_seconds,
                max=cfg.max_wait_seconds,
                jitter=cfg.multiplier if cfg.jitter else 0,
            ),
            retry=retry_if_exception_type(_RETRYABLE),
            before_sleep=self._before_sleep,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                if self._timeout is None:
                    return await fn()
                return await asyncio.wait_for(fn(), timeout=self._timeout)
        return None  # pragma: no cover

    async def insert_one(self, document: Mapping[str, Any]) -> Any:
        return await self._call(lambda: self._client.insert_one(document))

    async def insert_many(
        self, documents: Sequence[Mapping[str, Any]], ordered: bool = True
    ) -> Any:
        return await self._call(
            lambda: self._client.insert_many(documents, ordered=ordered)
        )

    async def update_one(
        self, filter: Mapping[str, Any], update: Mapping[str, Any]
    ) -> Any:
        return await self._call(lambda: self._client.update_one(filter, update))

    async def update_many(
        self, filter: Mapping[str, Any], update: Mapping[str, Any]
    ) -> Any:
        return await self._call(lambda: self._client.update_many(filter, update))

    async def delete_one(self, filter: Mapping[str, Any]) -> Any:
        return await self._call(lambda: self._client.delete_one(filter))

    async def delete_many(self, filter: Mapping[str, Any]) -> Any:
        return await self._call(lambda: self._client.delete_many(filter))
