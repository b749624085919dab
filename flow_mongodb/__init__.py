"""MongoDB CRUD operations as pluggable flow pipeline components.

Example usage from a host pipeline:

    from flow_mongodb import ClientRegistry, ConnectionConfiguration, Insert, Message

    registry = ClientRegistry()
    insert = Insert(
        connection=ConnectionConfiguration(host="mongo", database="shop"),
        collection="customers",
        registry=registry,
    )
    insert.initialize()
    inserted_id = insert.apply(Message(payload={"name": "John", "age": 23})).payload
    insert.dispose()
"""

__version__ = "0.1.0"

from .client_manager import ClientHandle, ClientRegistry
from .codec import DocumentCodec, DocumentShape, classify
from .components import ComponentState, Count, Delete, Find, Insert, MongoComponent, Update
from .connection import ConnectionConfiguration, ConnectionKey, client_factory
from .errors import (
    ConfigurationError,
    DocumentParseError,
    FilterRequiredError,
    FlowMongoError,
    IllegalStateError,
    MongoConnectionError,
    OperationError,
    ScriptEvaluationError,
    UnsupportedDocumentError,
)
from .evaluation import DefaultEvaluator, DynamicValue, Evaluator, Message
from .executor import OperationExecutor
from .filters import FilterResolver
from .results import OperationResult
from .settings import ConnectorSettings, settings
from .typing import Document, Pair

__all__ = [
    "__version__",
    "ClientHandle",
    "ClientRegistry",
    "DocumentCodec",
    "DocumentShape",
    "classify",
    "ComponentState",
    "MongoComponent",
    "Insert",
    "Find",
    "Update",
    "Delete",
    "Count",
    "ConnectionConfiguration",
    "ConnectionKey",
    "client_factory",
    "FlowMongoError",
    "UnsupportedDocumentError",
    "DocumentParseError",
    "FilterRequiredError",
    "MongoConnectionError",
    "OperationError",
    "ScriptEvaluationError",
    "IllegalStateError",
    "ConfigurationError",
    "DefaultEvaluator",
    "DynamicValue",
    "Evaluator",
    "Message",
    "OperationExecutor",
    "FilterResolver",
    "OperationResult",
    "ConnectorSettings",
    "settings",
    "Document",
    "Pair",
]
