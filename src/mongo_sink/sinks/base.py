"""Storage client protocol.

Any object exposing these six coroutines can back a write sink.
``pymongo``'s ``AsyncCollection`` satisfies it without adaptation.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class WriteClient(Protocol):
    """Capability set a write sink dispatches intents to."""

    async def insert_one(self, document: Mapping[str, Any]) -> Any:
        """Insert a single document."""
        ...

    async def insert_many(
        self, documents: Sequence[Mapping[str, Any]], ordered: bool = True
    ) -> Any:
        """Insert a batch of documents, in order."""
        ...

    async def update_one(
        self, filter: Mapping[str, Any], update: Mapping[str, Any]
    ) -> Any:
        """Apply *update* to the first document matching *filter*."""
        ...

    async def update_many(
        self, filter: Mapping[str, Any], update: Mapping[str, Any]
    ) -> Any:
        """Apply *update* to every document matching *filter*."""
        ...

    async def delete_one(self, filter: Mapping[str, Any]) -> Any:
        """Delete the first document matching *filter*."""
        ...

    async def delete_many(self, filter: Mapping[str, Any]) -> Any:
        """Delete every document matching *filter*."""
        ...
