"""Unit tests for the MongoDB health probe."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from mongo_sink.config.models import MongoConfig
from mongo_sink.observability.health import Status, check_mongodb

CONFIG = MongoConfig(database="app", collection="numbers")


def _client(collections: list[str] | None = None, ping_error: Exception | None = None) -> MagicMock:
    client = MagicMock()
    client.admin.command = AsyncMock(side_effect=ping_error)
    client.__getitem__.return_value.list_collection_names = AsyncMock(
        return_value=collections or []
    )
    return client


@pytest.mark.asyncio
class TestCheckMongodb:
    async def test_healthy_with_existing_collection(self):
        client = _client(["numbers", "other"])

        result = await check_mongodb(client, CONFIG)

        assert result.status == Status.HEALTHY
        assert result.healthy
        assert result.detail == "app.numbers"
        client.admin.command.assert_awaited_once_with("ping")
        client.__getitem__.assert_called_with("app")

    async def test_healthy_before_collection_exists(self):
        result = await check_mongodb(_client([]), CONFIG)

        assert result.healthy
        assert "not created yet" in result.detail

    async def test_unreachable_server_is_unhealthy(self):
        client = _client(ping_error=ServerSelectionTimeoutError("no servers found"))

        result = await check_mongodb(client, CONFIG)

        assert result.status == Status.UNHEALTHY
        assert not result.healthy
        assert "no servers found" in result.detail
