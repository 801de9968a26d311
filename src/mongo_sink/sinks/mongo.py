"""MongoDB sink stages.

Each factory binds a collection (or any :class:`WriteClient`) and returns a
coroutine function that drains an upstream source of raw payloads and
resolves to a single :class:`Completion`::

    sink = insert_one(collection)
    completion = await sink(documents)

    completion = await insert_many(collection, ordered=False)(grouped(documents, 2))
"""

from __future__ import annotations

from collections.abc import (
    AsyncIterable,
    AsyncIterator,
    Awaitable,
    Callable,
    Iterable,
    Mapping,
    Sequence,
)
from typing import Any, TypeVar

from mongo_sink.intents import (
    DeleteMany,
    DeleteOne,
    DocumentUpdate,
    InsertMany,
    InsertOne,
    UpdateMany,
    UpdateOne,
    WriteIntent,
)
from mongo_sink.sinks.adapter import (
    ResultCallback,
    WriteSinkAdapter,
    as_async_iterator,
)
from mongo_sink.sinks.base import WriteClient
from mongo_sink.sinks.results import Completion

T = TypeVar("T")
Source = AsyncIterable[Any] | Iterable[Any]
Sink = Callable[[Source], Awaitable[Completion]]


async def grouped(source: Source, size: int) -> AsyncIterator[list[T]]:
    """Batch *source* into lists of *size* items; the last batch may be shorter."""
    if size < 1:
        msg = f"Batch size must be >= 1, got {size}"
        raise ValueError(msg)
    batch: list[T] = []
    async for item in as_async_iterator(source):
        batch.append(item)
        if len(batch) >= size:
            yield batch
            batch = []
    if batch:
        yield batch


def _stage(
    client: WriteClient,
    to_intent: Callable[[Any], WriteIntent],
    *,
    sink_id: str,
    ordered: bool = True,
    on_result: ResultCallback | None = None,
) -> Sink:
    adapter = WriteSinkAdapter(
        client, ordered=ordered, on_result=on_result, sink_id=sink_id
    )

    async def _intents(source: Source) -> AsyncIterator[WriteIntent]:
        async for item in as_async_iterator(source):
            yield to_intent(item)

    async def sink(source: Source) -> Completion:
        return await adapter.run(_intents(source))

    return sink


def _as_update(item: DocumentUpdate) -> tuple[Mapping[str, Any], Mapping[str, Any]]:
    if not isinstance(item, DocumentUpdate):
        msg = f"Update sinks expect DocumentUpdate items, got {type(item).__name__}"
        raise TypeError(msg)
    return item.filter, item.update


def insert_one(
    client: WriteClient,
    *,
    sink_id: str = "mongo.insert_one",
    on_result: ResultCallback | None = None,
) -> Sink:
    """Sink that inserts each upstream document with ``insert_one``."""
    return _stage(client, InsertOne, sink_id=sink_id, on_result=on_result)


def insert_many(
    client: WriteClient,
    *,
    ordered: bool = True,
    sink_id: str = "mongo.insert_many",
    on_result: ResultCallback | None = None,
) -> Sink:
    """Sink that inserts each upstream batch with a single ``insert_many``.

    With ``ordered=False`` the server keeps applying the rest of a batch
    after one document fails.
    """

    def to_intent(batch: Sequence[Mapping[str, Any]]) -> WriteIntent:
        return InsertMany(list(batch), ordered=ordered)

    return _stage(
        client, to_intent, sink_id=sink_id, ordered=ordered, on_result=on_result
    )


def update_one(
    client: WriteClient,
    *,
    sink_id: str = "mongo.update_one",
    on_result: ResultCallback | None = None,
) -> Sink:
    """Sink that applies each upstream :class:`DocumentUpdate` with ``update_one``."""
    return _stage(
        client,
        lambda item: UpdateOne(*_as_update(item)),
        sink_id=sink_id,
        on_result=on_result,
    )


def update_many(
    client: WriteClient,
    *,
    sink_id: str = "mongo.update_many",
    on_result: ResultCallback | None = None,
) -> Sink:
    return _stage(
        client,
        lambda item: UpdateMany(*_as_update(item)),
        sink_id=sink_id,
        on_result=on_result,
    )


def delete_one(
    client: WriteClient,
    *,
    sink_id: str = "mongo.delete_one",
    on_result: ResultCallback | None = None,
) -> Sink:
    """Sink that deletes the first match of each upstream filter."""
    return _stage(client, DeleteOne, sink_id=sink_id, on_result=on_result)


def delete_many(
    client: WriteClient,
    *,
    sink_id: str = "mongo.delete_many",
    on_result: ResultCallback | None = None,
) -> Sink:
    return _stage(client, DeleteMany, sink_id=sink_id, on_result=on_result)
