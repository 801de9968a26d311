"""Write intents: the closed set of mutations a write sink can apply."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

Document = Mapping[str, Any]


@dataclass(frozen=True)
class InsertOne:
    document: Document


@dataclass(frozen=True)
class InsertMany:
    """A batch insert; ``ordered=None`` defers to the adapter's default."""

    documents: Sequence[Document]
    ordered: bool | None = None


@dataclass(frozen=True)
class UpdateOne:
    filter: Document
    update: Document


@dataclass(frozen=True)
class UpdateMany:
    filter: Document
    update: Document


@dataclass(frozen=True)
class DeleteOne:
    filter: Document


@dataclass(frozen=True)
class DeleteMany:
    filter: Document


WriteIntent = InsertOne | InsertMany | UpdateOne | UpdateMany | DeleteOne | DeleteMany


@dataclass(frozen=True)
class DocumentUpdate:
    """Filter + update pair consumed by the update sink stages."""

    filter: Document
    update: Document


_OPS: dict[str, type] = {
    "insert_one": InsertOne,
    "insert_many": InsertMany,
    "update_one": UpdateOne,
    "update_many": UpdateMany,
    "delete_one": DeleteOne,
    "delete_many": DeleteMany,
}


def intent_kind(intent: object) -> str:
    """Return the snake_case op name for an intent (used in logs)."""
    for name, cls in _OPS.items():
        if type(intent) is cls:
            return name
    return type(intent).__name__


def _require(data: Mapping[str, Any], key: str, what: str) -> Any:
    if key not in data:
        msg = f"{what} requires a '{key}' field"
        raise ValueError(msg)
    value = data[key]
    if key == "documents":
        if not isinstance(value, list):
            msg = f"'{key}' must be a list of objects"
            raise ValueError(msg)
    elif not isinstance(value, Mapping):
        msg = f"'{key}' must be an object"
        raise ValueError(msg)
    return value


def update_from_dict(
    data: Mapping[str, Any], what: str = "update payload"
) -> DocumentUpdate:
    """Build a :class:`DocumentUpdate` from ``{"filter": {...}, "update": {...}}``.

    Both keys are required; an empty ``filter`` must be spelled out.
    """
    return DocumentUpdate(
        _require(data, "filter", what), _require(data, "update", what)
    )


def intent_from_dict(data: Mapping[str, Any]) -> WriteIntent:
    """Build an intent from its JSON form, e.g. ``{"op": "delete_one", "filter": {...}}``."""
    op = data.get("op")
    if op not in _OPS:
        msg = f"Unknown write op: {op!r} (expected one of {sorted(_OPS)})"
        raise ValueError(msg)
    what = f"{op} intent"

    if op == "insert_one":
        return InsertOne(_require(data, "document", what))
    if op == "insert_many":
        ordered = data.get("ordered")
        if ordered is not None and not isinstance(ordered, bool):
            msg = "'ordered' must be a boolean"
            raise ValueError(msg)
        return InsertMany(list(_require(data, "documents", what)), ordered=ordered)
    if op in ("update_one", "update_many"):
        update = update_from_dict(data, what)
        return _OPS[op](update.filter, update.update)
    if op == "delete_one":
        return DeleteOne(_require(data, "filter", what))
    return DeleteMany(_require(data, "filter", what))
