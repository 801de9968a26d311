"""Shared fixtures: an in-memory stand-in for an async MongoDB collection."""

from __future__ import annotations

import asyncio
import copy
import itertools
import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any

import pytest
import structlog
from pymongo.errors import BulkWriteError, DuplicateKeyError
from pymongo.results import DeleteResult, InsertManyResult, InsertOneResult, UpdateResult

_MISSING = object()


def _matches(doc: Mapping[str, Any], flt: Mapping[str, Any]) -> bool:
    for field, cond in flt.items():
        value = doc.get(field, _MISSING)
        if isinstance(cond, Mapping):
            for op, operand in cond.items():
                if value is _MISSING:
                    return False
                if op == "$eq" and not value == operand:
                    return False
                if op == "$gte" and not value >= operand:
                    return False
                if op == "$gt" and not value > operand:
                    return False
                if op == "$lt" and not value < operand:
                    return False
                if op == "$lte" and not value <= operand:
                    return False
        elif value is _MISSING or value != cond:
            return False
    return True


def _apply_update(doc: dict[str, Any], update: Mapping[str, Any]) -> None:
    for op, fields in update.items():
        if op == "$set":
            doc.update(fields)
        elif op == "$inc":
            for k, v in fields.items():
                doc[k] = doc.get(k, 0) + v
        elif op == "$unset":
            for k in fields:
                doc.pop(k, None)
        else:
            msg = f"unsupported update operator {op}"
            raise ValueError(msg)


class FakeCollection:
    """Implements the six write coroutines plus ``find`` over a list of dicts.

    Every write call records itself in ``calls`` and tracks how many calls
    are in flight at once; ``delay`` makes each call suspend so overlapping
    calls would be visible. ``failures`` maps an op name to an exception
    raised on the next call of that op.
    """

    def __init__(self, *, delay: float = 0.0) -> None:
        self.docs: list[dict[str, Any]] = []
        self.calls: list[tuple[str, tuple[Any, ...], dict[str, Any]]] = []
        self.delay = delay
        self.failures: dict[str, BaseException] = {}
        self.in_flight = 0
        self.max_in_flight = 0
        self._ids = itertools.count(1)

    async def _enter(self, op: str, *args: Any, **kwargs: Any) -> None:
        self.calls.append((op, args, kwargs))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            else:
                await asyncio.sleep(0)
        except BaseException:
            self.in_flight -= 1
            raise
        exc = self.failures.pop(op, None)
        if exc is not None:
            self.in_flight -= 1
            raise exc

    def _exit(self) -> None:
        self.in_flight -= 1

    def _insert(self, document: Mapping[str, Any]) -> Any:
        doc = copy.deepcopy(dict(document))
        doc.setdefault("_id", next(self._ids))
        if any(d["_id"] == doc["_id"] for d in self.docs):
            msg = f"E11000 duplicate key error dup key: {{ _id: {doc['_id']!r} }}"
            raise DuplicateKeyError(msg, 11000)
        self.docs.append(doc)
        return doc["_id"]

    async def insert_one(self, document: Mapping[str, Any]) -> InsertOneResult:
        await self._enter("insert_one", document)
        try:
            return InsertOneResult(self._insert(document), True)
        finally:
            self._exit()

    async def insert_many(
        self, documents: Sequence[Mapping[str, Any]], ordered: bool = True
    ) -> InsertManyResult:
        await self._enter("insert_many", documents, ordered=ordered)
        try:
            if not documents:
                msg = "documents must be a non-empty list"
                raise TypeError(msg)
            inserted: list[Any] = []
            errors: list[dict[str, Any]] = []
            for index, document in enumerate(documents):
                try:
                    inserted.append(self._insert(document))
                except DuplicateKeyError as exc:
                    errors.append({"index": index, "code": 11000, "errmsg": str(exc)})
                    if ordered:
                        break
            if errors:
                raise BulkWriteError(
                    {
                        "writeErrors": errors,
                        "writeConcernErrors": [],
                        "nInserted": len(inserted),
                    }
                )
            return InsertManyResult(inserted, True)
        finally:
            self._exit()

    def _update(self, flt: Mapping[str, Any], update: Mapping[str, Any], *, many: bool) -> UpdateResult:
        matched = 0
        for doc in self.docs:
            if _matches(doc, flt):
                _apply_update(doc, update)
                matched += 1
                if not many:
                    break
        return UpdateResult({"n": matched, "nModified": matched, "ok": 1.0}, True)

    async def update_one(self, filter: Mapping[str, Any], update: Mapping[str, Any]) -> UpdateResult:
        await self._enter("update_one", filter, update)
        try:
            return self._update(filter, update, many=False)
        finally:
            self._exit()

    async def update_many(self, filter: Mapping[str, Any], update: Mapping[str, Any]) -> UpdateResult:
        await self._enter("update_many", filter, update)
        try:
            return self._update(filter, update, many=True)
        finally:
            self._exit()

    def _delete(self, flt: Mapping[str, Any], *, many: bool) -> DeleteResult:
        kept: list[dict[str, Any]] = []
        removed = 0
        for doc in self.docs:
            if _matches(doc, flt) and (many or removed == 0):
                removed += 1
            else:
                kept.append(doc)
        self.docs = kept
        return DeleteResult({"n": removed, "ok": 1.0}, True)

    async def delete_one(self, filter: Mapping[str, Any]) -> DeleteResult:
        await self._enter("delete_one", filter)
        try:
            return self._delete(filter, many=False)
        finally:
            self._exit()

    async def delete_many(self, filter: Mapping[str, Any]) -> DeleteResult:
        await self._enter("delete_many", filter)
        try:
            return self._delete(filter, many=True)
        finally:
            self._exit()

    def find(self, flt: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        return [copy.deepcopy(d) for d in self.docs if _matches(d, flt or {})]

    def op_names(self) -> list[str]:
        return [name for name, _, _ in self.calls]


@pytest.fixture
def make_collection() -> Callable[..., FakeCollection]:
    return FakeCollection


@pytest.fixture
def collection() -> FakeCollection:
    return FakeCollection()


@pytest.fixture
def seeded_collection() -> FakeCollection:
    """Collection pre-loaded with ``{"value": i}`` for i in 0..9."""
    coll = FakeCollection()
    for i in range(10):
        coll._insert({"value": i})
    return coll


@pytest.fixture(autouse=True)
def _reset_logging():
    """CLI commands configure structlog against the runner's streams; undo that."""
    yield
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()
