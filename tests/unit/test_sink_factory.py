"""Unit tests for the sink factory."""

from __future__ import annotations

import pytest

from mongo_sink.config.models import MongoConfig, RetryConfig, SinkConfig, WriteMode
from mongo_sink.intents import DocumentUpdate
from mongo_sink.sinks.factory import create_sink, wrap_client
from mongo_sink.sinks.results import Completed
from mongo_sink.sinks.retry import RetryingWriteClient


def _config(**kwargs) -> SinkConfig:
    return SinkConfig(mongo=MongoConfig(database="app", collection="c"), **kwargs)


class TestWrapClient:
    def test_plain_client_when_no_retry_or_timeout(self, collection):
        assert wrap_client(_config(), collection) is collection

    def test_wraps_when_retry_enabled(self, collection):
        wrapped = wrap_client(_config(retry=RetryConfig(enabled=True)), collection)
        assert isinstance(wrapped, RetryingWriteClient)
        assert wrapped.wrapped is collection

    def test_wraps_when_timeout_set(self, collection):
        assert isinstance(
            wrap_client(_config(timeout_seconds=1.5), collection), RetryingWriteClient
        )


@pytest.mark.asyncio
class TestCreateSink:
    async def test_insert_one_mode(self, collection):
        sink = create_sink(_config(), collection)

        completion = await sink([{"value": i} for i in range(3)])

        assert completion == Completed(acknowledged=3)
        assert collection.op_names() == ["insert_one"] * 3

    async def test_insert_many_mode_batches_by_config(self, collection):
        sink = create_sink(
            _config(mode=WriteMode.INSERT_MANY, batch_size=4, ordered=False), collection
        )

        completion = await sink([{"value": i} for i in range(10)])

        assert completion == Completed(acknowledged=3)
        assert [len(args[0]) for _, args, _ in collection.calls] == [4, 4, 2]
        assert all(kwargs == {"ordered": False} for _, _, kwargs in collection.calls)

    async def test_update_many_mode(self, seeded_collection):
        sink = create_sink(_config(mode=WriteMode.UPDATE_MANY), seeded_collection)

        await sink([DocumentUpdate({"value": {"$lt": 3}}, {"$set": {"low": True}})])

        assert sorted(d["value"] for d in seeded_collection.find({"low": True})) == [0, 1, 2]

    async def test_delete_one_mode(self, seeded_collection):
        sink = create_sink(_config(mode=WriteMode.DELETE_ONE), seeded_collection)

        await sink([{"value": 0}])

        assert len(seeded_collection.find()) == 9

    async def test_result_callback_is_forwarded(self, collection):
        seen = []
        sink = create_sink(_config(sink_id="cb"), collection, on_result=seen.append)

        await sink([{"value": 1}, {"value": 2}])

        assert len(seen) == 2
