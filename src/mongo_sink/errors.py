"""Write-sink failure taxonomy and driver error classification."""

from __future__ import annotations

import asyncio
from typing import Any

from bson.errors import InvalidDocument
from pymongo.errors import (
    AutoReconnect,
    BulkWriteError,
    ConnectionFailure,
    InvalidOperation,
    NetworkTimeout,
    ServerSelectionTimeoutError,
    WriteError,
)


class WriteSinkError(Exception):
    """Base class for every failure that terminates a sink run."""

    def __init__(self, message: str, *, intent: Any = None) -> None:
        super().__init__(message)
        self.intent = intent


class TransportFailure(WriteSinkError):
    """The client reported a network or protocol level error."""


class ValidationFailure(WriteSinkError):
    """The client rejected a document, filter or update as malformed."""


class PartialBatchFailure(WriteSinkError):
    """An unordered batch insert failed for some of its documents."""

    def __init__(
        self,
        message: str,
        *,
        intent: Any = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, intent=intent)
        self.details = details or {}

    @property
    def write_errors(self) -> list[dict[str, Any]]:
        return list(self.details.get("writeErrors", []))


class UpstreamFailure(WriteSinkError):
    """The intent source raised while being drained."""


_TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (
    ConnectionFailure,
    ServerSelectionTimeoutError,
    NetworkTimeout,
    AutoReconnect,
    asyncio.TimeoutError,
    OSError,
)

_VALIDATION_ERRORS: tuple[type[BaseException], ...] = (
    WriteError,
    InvalidDocument,
    InvalidOperation,
    TypeError,
    ValueError,
)


def classify_error(
    exc: BaseException, intent: Any = None, *, ordered: bool = True
) -> WriteSinkError:
    """Map a driver exception onto the sink failure taxonomy.

    ``ordered`` only matters for ``BulkWriteError``: an unordered batch may
    have applied some documents, so it becomes a ``PartialBatchFailure``.
    The original exception is chained as ``__cause__``.
    """
    if isinstance(exc, WriteSinkError):
        return exc

    err: WriteSinkError
    if isinstance(exc, BulkWriteError):
        if ordered:
            err = ValidationFailure(f"Ordered batch rejected: {exc}", intent=intent)
        else:
            err = PartialBatchFailure(
                f"Unordered batch partially failed: {exc}",
                intent=intent,
                details=dict(exc.details or {}),
            )
    # WriteError subclasses OperationFailure, check validation first
    elif isinstance(exc, _VALIDATION_ERRORS):
        err = ValidationFailure(str(exc) or type(exc).__name__, intent=intent)
    elif isinstance(exc, _TRANSPORT_ERRORS):
        err = TransportFailure(str(exc) or type(exc).__name__, intent=intent)
    else:
        err = WriteSinkError(str(exc) or type(exc).__name__, intent=intent)
    err.__cause__ = exc
    return err
