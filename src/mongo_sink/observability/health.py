"""Health probe for the target MongoDB deployment."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

import structlog

from mongo_sink.config.models import MongoConfig

logger = structlog.get_logger()


class Status(StrEnum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


@dataclass
class ComponentHealth:
    name: str
    status: Status = Status.UNKNOWN
    detail: str = ""

    @property
    def healthy(self) -> bool:
        return self.status == Status.HEALTHY


async def check_mongodb(client: Any, config: MongoConfig) -> ComponentHealth:
    """Ping the server and report whether the target collection exists."""
    try:
        await client.admin.command("ping")
        names = await client[config.database].list_collection_names()
    except Exception as exc:
        logger.warning("health.mongodb_unreachable", error=str(exc))
        return ComponentHealth(name="mongodb", status=Status.UNHEALTHY, detail=str(exc))

    target = f"{config.database}.{config.collection}"
    detail = target if config.collection in names else f"{target} (not created yet)"
    return ComponentHealth(name="mongodb", status=Status.HEALTHY, detail=detail)
