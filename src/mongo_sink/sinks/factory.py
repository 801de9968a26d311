"""Sink factory — maps WriteMode to sink stage constructors."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from mongo_sink.config.models import SinkConfig, WriteMode
from mongo_sink.sinks import mongo
from mongo_sink.sinks.adapter import ResultCallback
from mongo_sink.sinks.base import WriteClient
from mongo_sink.sinks.mongo import Sink, Source, grouped
from mongo_sink.sinks.results import Completion
from mongo_sink.sinks.retry import RetryingWriteClient

_STAGE_REGISTRY: dict[WriteMode, Callable[..., Sink]] = {
    WriteMode.INSERT_ONE: mongo.insert_one,
    WriteMode.INSERT_MANY: mongo.insert_many,
    WriteMode.UPDATE_ONE: mongo.update_one,
    WriteMode.UPDATE_MANY: mongo.update_many,
    WriteMode.DELETE_ONE: mongo.delete_one,
    WriteMode.DELETE_MANY: mongo.delete_many,
}


def wrap_client(config: SinkConfig, client: WriteClient) -> WriteClient:
    """Apply the configured retry policy and call timeout, if any."""
    if config.retry.enabled or config.timeout_seconds is not None:
        return RetryingWriteClient(
            client, config.retry, timeout_seconds=config.timeout_seconds
        )
    return client


def create_sink(
    config: SinkConfig,
    client: WriteClient,
    *,
    on_result: ResultCallback | None = None,
) -> Sink:
    """Create a sink stage from configuration.

    ``insert_many`` sinks accept single documents here and batch them by
    ``config.batch_size`` before writing.
    """
    factory = _STAGE_REGISTRY.get(config.mode)
    if factory is None:
        msg = f"Unknown write mode: {config.mode}"
        raise ValueError(msg)

    client = wrap_client(config, client)
    kwargs: dict[str, Any] = {"sink_id": config.sink_id, "on_result": on_result}
    if config.mode == WriteMode.INSERT_MANY:
        stage = factory(client, ordered=config.ordered, **kwargs)

        async def batched(source: Source) -> Completion:
            return await stage(grouped(source, config.batch_size))

        return batched
    return factory(client, **kwargs)
