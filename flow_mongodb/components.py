"""Pipeline components exposing MongoDB CRUD operations to the host flow engine.

Each component goes through ``UNINITIALIZED -> READY -> DISPOSED``:

    registry = ClientRegistry()
    delete = Delete(
        connection=ConnectionConfiguration(database="shop"),
        collection="orders",
        registry=registry,
        query="{ status: 'cancelled' }",
        many=True,
    )
    delete.initialize()
    message = delete.apply(Message(payload=None))
    delete.dispose()

Components built from equal connection configurations share one client
through the registry.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional

from loguru import logger

from .attributes import (
    count_attributes,
    delete_attributes,
    find_attributes,
    insert_attributes,
    update_attributes,
)
from .client_manager import ClientHandle, ClientRegistry
from .codec import DocumentCodec, DocumentShape, classify
from .connection import ConnectionConfiguration, client_factory
from .errors import ConfigurationError, IllegalStateError
from .evaluation import DefaultEvaluator, DynamicValue, Evaluator, Message, evaluate_once
from .executor import OperationExecutor
from .settings import ConnectorSettings


class ComponentState(str, Enum):
    UNINITIALIZED = "UNINITIALIZED"
    READY = "READY"
    DISPOSED = "DISPOSED"


def _dynamic(value: Any) -> Optional[DynamicValue]:
    return None if value is None else DynamicValue.of(value)


def _expression(value: Optional[DynamicValue]) -> Optional[str]:
    return None if value is None else value.expression


class MongoComponent(ABC):
    """Shared lifecycle and configuration of every MongoDB component."""

    def __init__(
        self,
        *,
        connection: Optional[ConnectionConfiguration] = None,
        collection: Optional[str] = None,
        registry: Optional[ClientRegistry] = None,
        evaluator: Optional[Evaluator] = None,
        connector_settings: Optional[ConnectorSettings] = None,
        codec: Optional[DocumentCodec] = None,
    ) -> None:
        self.connection = connection
        self.collection = collection
        self.registry = registry
        self.evaluator: Evaluator = evaluator or DefaultEvaluator()
        self.connector_settings = connector_settings
        self.codec = codec or DocumentCodec()
        self._state = ComponentState.UNINITIALIZED
        self._handle: Optional[ClientHandle] = None
        self._executor: Optional[OperationExecutor] = None

    @property
    def state(self) -> ComponentState:
        return self._state

    @property
    def name(self) -> str:
        return type(self).__name__

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        if self._state is ComponentState.READY:
            return
        if self._state is ComponentState.DISPOSED:
            raise IllegalStateError(self.name, self._state.value)

        if not self.collection or not self.collection.strip():
            raise ConfigurationError(f"{self.name}: MongoDB collection must not be empty")
        if self.connection is None:
            raise ConfigurationError(f"{self.name}: MongoDB connection configuration is required")
        if self.registry is None:
            raise ConfigurationError(f"{self.name}: a ClientRegistry is required")

        key = self.connection.connection_key()
        try:
            handle = self.registry.acquire(key, client_factory(self.connection, self.connector_settings))
        except Exception:
            logger.exception("{component}: initialize failed for {key}", component=self.name, key=key)
            raise

        self._handle = handle
        self._executor = OperationExecutor(handle.collection(self.collection), self.codec)
        self._state = ComponentState.READY
        logger.debug("{component}: ready on {key}/{collection}", component=self.name, key=key, collection=self.collection)

    def apply(self, message: Message) -> Message:
        if self._state is not ComponentState.READY or self._executor is None:
            raise IllegalStateError(self.name, self._state.value)
        return self._apply(self._executor, message)

    def dispose(self) -> None:
        """Release the shared client. Safe to call more than once."""

        handle, self._handle = self._handle, None
        self._executor = None
        self._state = ComponentState.DISPOSED
        if handle is not None and self.registry is not None:
            self.registry.release(handle.key)

    @abstractmethod
    def _apply(self, executor: OperationExecutor, message: Message) -> Message:
        """Run the operation for one message on a READY component."""


class Insert(MongoComponent):
    """Inserts one document, or many when the input is a list.

    The payload of the result is the inserted id, or the list of ids in
    input order. Without a document expression the input payload is inserted.
    """

    def __init__(self, *, document: Any = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.document = _dynamic(document)

    def _apply(self, executor: OperationExecutor, message: Message) -> Message:
        if self.document is None or self.document.is_blank():
            value = message.payload
        else:
            value = self.evaluator.evaluate(self.document, message)

        result = executor.insert(value)
        payload = result.inserted_ids if classify(value) is DocumentShape.SEQUENCE else result.inserted_id
        attributes = insert_attributes(self.collection, result, value)
        return Message(payload=payload, attributes=attributes.model_dump())


class Find(MongoComponent):
    """Returns the documents matching the query filter as a list.

    Without a query filter the input payload is used as filter. When neither
    holds a filter the lookup fails unless ``match_all`` is set.
    """

    def __init__(
        self,
        *,
        query: Any = None,
        projection: Any = None,
        limit: int = 0,
        match_all: Optional[bool] = False,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.query = _dynamic(query)
        self.projection = _dynamic(projection)
        self.limit = limit
        self.match_all = bool(match_all)

    def _apply(self, executor: OperationExecutor, message: Message) -> Message:
        query = evaluate_once(self.evaluator, self.query, message)
        projection = evaluate_once(self.evaluator, self.projection, message)
        if projection is not None:
            projection = self.codec.normalize_one(projection, "Projection")

        result = executor.find(
            query,
            message.payload,
            projection=projection,
            limit=self.limit,
            expression=_expression(self.query),
            match_all=self.match_all,
        )
        documents = list(result.documents or [])
        attributes = find_attributes(self.collection, result, query)
        return Message(payload=documents, attributes=attributes.model_dump())


class Update(MongoComponent):
    """Updates (or replaces) one or many documents; the payload is the modified count."""

    def __init__(
        self,
        *,
        query: Any = None,
        document: Any = None,
        many: Optional[bool] = False,
        upsert: Optional[bool] = False,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.query = _dynamic(query)
        self.document = _dynamic(document)
        self.many = bool(many)
        self.upsert = bool(upsert)

    def _apply(self, executor: OperationExecutor, message: Message) -> Message:
        query = evaluate_once(self.evaluator, self.query, message)
        document = evaluate_once(self.evaluator, self.document, message)

        result = executor.update(
            query,
            document,
            message.payload,
            many=self.many,
            upsert=self.upsert,
            expression=_expression(self.query),
        )
        attributes = update_attributes(self.collection, result, query, document)
        return Message(payload=result.modified_count, attributes=attributes.model_dump())


class Delete(MongoComponent):
    """Deletes one document, or all matching ones when ``many`` is set.

    Without a query filter the input payload is used as filter.
    """

    def __init__(self, *, query: Any = None, many: Optional[bool] = False, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.query = _dynamic(query)
        self.many = bool(many)

    def _apply(self, executor: OperationExecutor, message: Message) -> Message:
        query = evaluate_once(self.evaluator, self.query, message)
        result = executor.delete(query, message.payload, many=self.many, expression=_expression(self.query))
        attributes = delete_attributes(self.collection, result, query)
        return Message(payload=result.deleted_count, attributes=attributes.model_dump())


class Count(MongoComponent):
    def __init__(self, *, query: Any = None, match_all: Optional[bool] = False, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.query = _dynamic(query)
        self.match_all = bool(match_all)

    def _apply(self, executor: OperationExecutor, message: Message) -> Message:
        query = evaluate_once(self.evaluator, self.query, message)
        result = executor.count(
            query,
            message.payload,
            expression=_expression(self.query),
            match_all=self.match_all,
        )
        attributes = count_attributes(self.collection, result, query)
        return Message(payload=result.count, attributes=attributes.model_dump())
