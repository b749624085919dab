"""One CRUD call against a collection, from dynamic input to ``OperationResult``."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Mapping, Optional

from bson.errors import BSONError
from loguru import logger
from pymongo.collection import Collection
from pymongo.errors import ConnectionFailure, PyMongoError

from .codec import DocumentCodec
from .errors import MongoConnectionError, OperationError, UnsupportedDocumentError
from .filters import FilterResolver, is_usable
from .results import OperationResult
from .utils import has_update_operators

UPDATE_DOCUMENT = "Update document"


class OperationExecutor:
    """Normalizes input, resolves filters and dispatches to the driver.

    ``query`` arguments are already evaluated filter expressions; ``payload``
    is what the filter falls back to when ``query`` holds nothing.
    """

    def __init__(self, collection: Collection, codec: Optional[DocumentCodec] = None) -> None:
        self.collection = collection
        self.codec = codec or DocumentCodec()
        self._required_filter = FilterResolver(self.codec)
        self._match_all_filter = FilterResolver(self.codec, match_all_when_empty=True)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def insert(self, value: Any) -> OperationResult:
        documents = self.codec.normalize(value)
        if isinstance(documents, list):
            if not documents:
                logger.debug("insert: empty document list, nothing to store in {name}", name=self._name)
                return OperationResult.empty_insert()
            with self._driver_errors("insert"):
                result = self.collection.insert_many(documents)
            logger.debug("insert: stored {count} documents in {name}", count=len(documents), name=self._name)
            return OperationResult.from_insert_many(result)

        with self._driver_errors("insert"):
            result = self.collection.insert_one(documents)
        logger.debug("insert: stored one document in {name}", name=self._name)
        return OperationResult.from_insert_one(result)

    def find(
        self,
        query: Any = None,
        payload: Any = None,
        *,
        projection: Optional[Mapping[str, Any]] = None,
        limit: int = 0,
        expression: Any = None,
        match_all: bool = False,
    ) -> OperationResult:
        filter_doc = self._resolve_filter(query, payload, expression, match_all)
        with self._driver_errors("find"):
            cursor = self.collection.find(filter_doc, projection, limit=limit)
        return OperationResult(documents=self._iterate("find", cursor))

    def update(
        self,
        query: Any = None,
        document: Any = None,
        payload: Any = None,
        *,
        many: bool = False,
        upsert: bool = False,
        expression: Any = None,
    ) -> OperationResult:
        # Without an explicit update document the payload is the update and
        # the filter has to be configured.
        if is_usable(document):
            update_value, fallback = document, payload
        else:
            update_value, fallback = payload, None

        filter_doc = self._required_filter.resolve(query, fallback, expression=expression)
        update_doc = self.codec.normalize(update_value, UPDATE_DOCUMENT)
        if isinstance(update_doc, list):
            raise UnsupportedDocumentError(update_value, UPDATE_DOCUMENT, "An update must be a single document.")

        if has_update_operators(update_doc):
            method = self.collection.update_many if many else self.collection.update_one
        elif many:
            raise OperationError("update", "updating many documents requires update operators such as $set")
        else:
            method = self.collection.replace_one

        with self._driver_errors("update"):
            result = method(filter_doc, update_doc, upsert=upsert)
        return OperationResult.from_update(result)

    def delete(
        self,
        query: Any = None,
        payload: Any = None,
        *,
        many: bool = False,
        expression: Any = None,
    ) -> OperationResult:
        filter_doc = self._required_filter.resolve(query, payload, expression=expression)
        with self._driver_errors("delete"):
            if many:
                result = self.collection.delete_many(filter_doc)
            else:
                result = self.collection.delete_one(filter_doc)
        return OperationResult.from_delete(result)

    def count(
        self,
        query: Any = None,
        payload: Any = None,
        *,
        expression: Any = None,
        match_all: bool = False,
    ) -> OperationResult:
        filter_doc = self._resolve_filter(query, payload, expression, match_all)
        with self._driver_errors("count"):
            total = self.collection.count_documents(filter_doc)
        return OperationResult(count=max(int(total), 0))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve_filter(self, query: Any, payload: Any, expression: Any, match_all: bool) -> dict:
        # Reads only match everything when the caller asked for it.
        resolver = self._match_all_filter if match_all else self._required_filter
        return resolver.resolve(query, payload, expression=expression)

    @property
    def _name(self) -> str:
        return getattr(self.collection, "full_name", self.collection.name)

    def _iterate(self, operation: str, cursor: Iterable[Mapping[str, Any]]) -> Iterator[dict]:
        # Cursors fetch lazily, so driver errors can also surface while iterating.
        with self._driver_errors(operation):
            yield from cursor

    @contextmanager
    def _driver_errors(self, operation: str) -> Iterator[None]:
        try:
            yield
        except ConnectionFailure as exc:
            raise MongoConnectionError(self._name, str(exc)) from exc
        except PyMongoError as exc:
            raise OperationError(operation, str(exc)) from exc
        except (BSONError, TypeError, ValueError) as exc:
            raise OperationError(operation, str(exc)) from exc
