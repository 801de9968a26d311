"""Connection bootstrap: build an async MongoDB client from config."""

from __future__ import annotations

from typing import Any

import structlog
from pymongo import AsyncMongoClient
from pymongo.asynchronous.collection import AsyncCollection

from mongo_sink.config.models import MongoConfig

logger = structlog.get_logger()


def create_client(config: MongoConfig, **kwargs: Any) -> AsyncMongoClient[Any]:
    """Create an ``AsyncMongoClient``; no I/O happens until the first operation."""
    options: dict[str, Any] = {
        "appname": config.app_name,
        "serverSelectionTimeoutMS": config.server_selection_timeout_ms,
    }
    if config.username:
        options["username"] = config.username
        options["authSource"] = config.auth_source
    if config.password is not None:
        options["password"] = config.password.get_secret_value()
    options.update(kwargs)
    logger.debug(
        "mongo_client.created",
        database=config.database,
        collection=config.collection,
    )
    return AsyncMongoClient(config.uri, **options)


def get_collection(
    client: AsyncMongoClient[Any], config: MongoConfig
) -> AsyncCollection[Any]:
    """Resolve the target collection named in *config*."""
    return client[config.database][config.collection]
