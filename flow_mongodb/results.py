"""Normalized outcome of a single CRUD call."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, List, Optional

from pymongo.results import DeleteResult, InsertManyResult, InsertOneResult, UpdateResult

from .utils import serialize_id


@dataclass
class OperationResult:
    """Counts are ``None`` when the operation does not produce them or the
    write was not acknowledged; otherwise they are non-negative integers."""

    acknowledged: bool = True
    inserted_ids: List[Any] = field(default_factory=list)
    deleted_count: Optional[int] = None
    matched_count: Optional[int] = None
    modified_count: Optional[int] = None
    upserted_id: Any = None
    count: Optional[int] = None
    documents: Optional[Iterator[dict]] = None

    @property
    def inserted_id(self) -> Any:
        return self.inserted_ids[0] if self.inserted_ids else None

    # ------------------------------------------------------------------
    # Driver result mapping
    # ------------------------------------------------------------------

    @classmethod
    def from_insert_one(cls, result: InsertOneResult) -> "OperationResult":
        return cls(acknowledged=result.acknowledged, inserted_ids=[serialize_id(result.inserted_id)])

    @classmethod
    def from_insert_many(cls, result: InsertManyResult) -> "OperationResult":
        return cls(
            acknowledged=result.acknowledged,
            inserted_ids=[serialize_id(value) for value in result.inserted_ids],
        )

    @classmethod
    def from_update(cls, result: UpdateResult) -> "OperationResult":
        # The driver refuses to expose counts of unacknowledged writes.
        if not result.acknowledged:
            return cls(acknowledged=False)
        return cls(
            acknowledged=True,
            matched_count=max(result.matched_count, 0),
            modified_count=max(result.modified_count or 0, 0),
            upserted_id=serialize_id(result.upserted_id),
        )

    @classmethod
    def from_delete(cls, result: DeleteResult) -> "OperationResult":
        if not result.acknowledged:
            return cls(acknowledged=False)
        return cls(acknowledged=True, deleted_count=max(result.deleted_count, 0))

    @classmethod
    def empty_insert(cls) -> "OperationResult":
        return cls(acknowledged=True, inserted_ids=[])
