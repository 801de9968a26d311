"""Backpressure-respecting write sink adapter.

Drains a sequence of write intents one at a time: the next intent is pulled
only after the client has acknowledged (or failed) the previous write, so a
producer can never outpace the database.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable, Iterable
from typing import Any

import structlog

from mongo_sink.errors import (
    UpstreamFailure,
    ValidationFailure,
    WriteSinkError,
    classify_error,
)
from mongo_sink.intents import (
    DeleteMany,
    DeleteOne,
    InsertMany,
    InsertOne,
    UpdateMany,
    UpdateOne,
    WriteIntent,
    intent_kind,
)
from mongo_sink.sinks.base import WriteClient
from mongo_sink.sinks.results import Completed, Completion, Failed, WriteResult

logger = structlog.get_logger()

ResultCallback = Callable[[WriteResult], Awaitable[None] | None]
IntentSource = AsyncIterable[WriteIntent] | Iterable[WriteIntent]


async def _from_iterable(items: Iterable[Any]) -> AsyncIterator[Any]:
    for item in items:
        yield item


def as_async_iterator(source: AsyncIterable[Any] | Iterable[Any]) -> AsyncIterator[Any]:
    """Adapt a sync or async iterable to an async iterator."""
    if isinstance(source, AsyncIterable):
        return aiter(source)
    return _from_iterable(source)


async def _close_upstream(upstream: AsyncIterator[WriteIntent]) -> None:
    aclose = getattr(upstream, "aclose", None)
    if aclose is not None:
        await aclose()


class WriteSinkAdapter:
    """Translates write intents into single, sequential client calls.

    Concurrency is fixed at one outstanding write per instance. A second
    ``run`` on the same adapter while one is active raises ``RuntimeError``.
    """

    def __init__(
        self,
        client: WriteClient,
        *,
        ordered: bool = True,
        on_result: ResultCallback | None = None,
        sink_id: str = "mongo",
    ) -> None:
        self._client = client
        self._ordered = ordered
        self._on_result = on_result
        self._sink_id = sink_id
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def run(self, intents: IntentSource) -> Completion:
        """Apply every intent in order and return the terminal outcome."""
        if self._running:
            msg = f"Write sink '{self._sink_id}' is already running"
            raise RuntimeError(msg)
        self._running = True

        upstream = as_async_iterator(intents)
        acknowledged = 0
        logger.debug("write_sink.started", sink_id=self._sink_id)
        try:
            while True:
                try:
                    intent = await anext(upstream)
                except StopAsyncIteration:
                    break
                except Exception as exc:
                    err = UpstreamFailure(f"Intent source failed: {exc}")
                    err.__cause__ = exc
                    return self._failed(err, acknowledged)

                try:
                    raw = await self._dispatch(intent)
                except Exception as exc:
                    err = classify_error(exc, intent, ordered=self._ordered_for(intent))
                    return self._failed(err, acknowledged)

                result = WriteResult(
                    intent=intent,
                    raw=raw,
                    acknowledged=getattr(raw, "acknowledged", True),
                )
                acknowledged += 1
                logger.debug(
                    "write_sink.write",
                    sink_id=self._sink_id,
                    op=intent_kind(intent),
                    position=acknowledged - 1,
                )

                if self._on_result is not None:
                    try:
                        forwarded = self._on_result(result)
                        if inspect.isawaitable(forwarded):
                            await forwarded
                    except Exception as exc:
                        err = WriteSinkError(
                            f"Result consumer failed: {exc}", intent=intent
                        )
                        err.__cause__ = exc
                        return self._failed(err, acknowledged)
        except asyncio.CancelledError:
            logger.warning(
                "write_sink.cancelled",
                sink_id=self._sink_id,
                acknowledged=acknowledged,
            )
            raise
        finally:
            self._running = False
            await _close_upstream(upstream)

        logger.info(
            "write_sink.completed",
            sink_id=self._sink_id,
            acknowledged=acknowledged,
        )
        return Completed(acknowledged=acknowledged)

    def _ordered_for(self, intent: Any) -> bool:
        if isinstance(intent, InsertMany) and intent.ordered is not None:
            return intent.ordered
        return self._ordered

    async def _dispatch(self, intent: Any) -> Any:
        match intent:
            case InsertOne(document=document):
                return await self._client.insert_one(document)
            case InsertMany(documents=documents):
                if not documents:
                    return None
                return await self._client.insert_many(
                    list(documents), ordered=self._ordered_for(intent)
                )
            case UpdateOne(filter=flt, update=update):
                return await self._client.update_one(flt, update)
            case UpdateMany(filter=flt, update=update):
                return await self._client.update_many(flt, update)
            case DeleteOne(filter=flt):
                return await self._client.delete_one(flt)
            case DeleteMany(filter=flt):
                return await self._client.delete_many(flt)
            case _:
                msg = f"Unsupported write intent: {type(intent).__name__}"
                raise ValidationFailure(msg, intent=intent)

    def _failed(self, err: WriteSinkError, acknowledged: int) -> Failed:
        logger.error(
            "write_sink.failed",
            sink_id=self._sink_id,
            error_type=type(err).__name__,
            op=intent_kind(err.intent) if err.intent is not None else None,
            position=acknowledged,
            error=str(err),
        )
        return Failed(cause=err, acknowledged=acknowledged)
