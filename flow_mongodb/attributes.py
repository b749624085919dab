"""Attributes reported alongside each component's output payload."""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict

from .results import OperationResult


class OperationAttributes(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    collection: str
    acknowledged: bool = True


class InsertAttributes(OperationAttributes):
    inserted_ids: List[Any] = []
    document: Any = None


class FindAttributes(OperationAttributes):
    query: Any = None


class UpdateAttributes(OperationAttributes):
    matched_count: Optional[int] = None
    modified_count: Optional[int] = None
    upserted_id: Any = None
    query: Any = None
    document: Any = None


class DeleteAttributes(OperationAttributes):
    deleted_count: Optional[int] = None
    query: Any = None


class CountAttributes(OperationAttributes):
    count: Optional[int] = None
    query: Any = None


def insert_attributes(collection: str, result: OperationResult, document: Any) -> InsertAttributes:
    return InsertAttributes(
        collection=collection,
        acknowledged=result.acknowledged,
        inserted_ids=list(result.inserted_ids),
        document=document,
    )


def find_attributes(collection: str, result: OperationResult, query: Any) -> FindAttributes:
    return FindAttributes(collection=collection, acknowledged=result.acknowledged, query=query)


def update_attributes(collection: str, result: OperationResult, query: Any, document: Any) -> UpdateAttributes:
    return UpdateAttributes(
        collection=collection,
        acknowledged=result.acknowledged,
        matched_count=result.matched_count,
        modified_count=result.modified_count,
        upserted_id=result.upserted_id,
        query=query,
        document=document,
    )


def delete_attributes(collection: str, result: OperationResult, query: Any) -> DeleteAttributes:
    return DeleteAttributes(
        collection=collection,
        acknowledged=result.acknowledged,
        deleted_count=result.deleted_count,
        query=query,
    )


def count_attributes(collection: str, result: OperationResult, query: Any) -> CountAttributes:
    return CountAttributes(collection=collection, acknowledged=result.acknowledged, count=result.count, query=query)
