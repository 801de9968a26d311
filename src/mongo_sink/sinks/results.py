"""Per-intent results and terminal completion values."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from mongo_sink.errors import WriteSinkError
from mongo_sink.intents import WriteIntent


@dataclass(frozen=True)
class WriteResult:
    """Outcome of one intent the client returned from.

    ``acknowledged`` mirrors the driver result: it is false for writes issued
    with an unacknowledged (``w=0``) write concern.
    """

    intent: WriteIntent
    raw: Any = None
    acknowledged: bool = True


@dataclass(frozen=True)
class Completed:
    """Every intent was written.

    ``acknowledged`` counts intents whose client call returned, including
    ``w=0`` writes the server never confirmed, so on :class:`Failed` it is
    also the position of the failing intent.
    """

    acknowledged: int = 0

    @property
    def ok(self) -> Literal[True]:
        return True


@dataclass(frozen=True)
class Failed:
    """The run stopped at the first failure; remaining intents were abandoned."""

    cause: WriteSinkError
    acknowledged: int = 0

    @property
    def ok(self) -> Literal[False]:
        return False


Completion = Completed | Failed
