"""Backpressure-respecting MongoDB write sinks for asyncio pipelines."""

from mongo_sink.errors import (
    PartialBatchFailure,
    TransportFailure,
    UpstreamFailure,
    ValidationFailure,
    WriteSinkError,
)
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
from mongo_sink.sinks.adapter import WriteSinkAdapter
from mongo_sink.sinks.results import Completed, Completion, Failed, WriteResult

__version__ = "0.1.0"

__all__ = [
    "Completed",
    "Completion",
    "DeleteMany",
    "DeleteOne",
    "DocumentUpdate",
    "Failed",
    "InsertMany",
    "InsertOne",
    "PartialBatchFailure",
    "TransportFailure",
    "UpdateMany",
    "UpdateOne",
    "UpstreamFailure",
    "ValidationFailure",
    "WriteIntent",
    "WriteResult",
    "WriteSinkAdapter",
    "WriteSinkError",
]
