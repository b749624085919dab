"""Domain-level errors for the MongoDB flow components."""

from __future__ import annotations

from typing import Any, Optional


class FlowMongoError(Exception):
    """Base error for everything raised by flow_mongodb."""


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    return type(value).__name__


class UnsupportedDocumentError(FlowMongoError):
    """Raised when a value cannot be turned into a MongoDB document."""

    def __init__(self, value: Any, kind: str = "Document", detail: Optional[str] = None) -> None:
        self.value = value
        self.kind = kind
        self.type_name = _type_name(value)
        message = f"{kind} with type=[{self.type_name}] is not supported."
        if value is None:
            message += " Did you mean an empty document ({})?"
        if detail:
            message += f" {detail}"
        super().__init__(message)


class DocumentParseError(FlowMongoError):
    """Raised when document text is not valid JSON (or relaxed shell syntax)."""

    def __init__(self, text: str, kind: str = "Document", detail: Optional[str] = None) -> None:
        self.text = text
        self.kind = kind
        message = f"{kind} could not be parsed from text=[{text}]"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class FilterRequiredError(FlowMongoError):
    """Raised when neither the configured filter nor the payload is usable."""

    def __init__(self, expression: Any = None) -> None:
        self.expression = expression
        super().__init__(
            f"Query filter expression=[{expression}] evaluated to an empty value "
            "and no usable payload was available to use as filter"
        )


class MongoConnectionError(FlowMongoError):
    """Raised when a client cannot be created or the server cannot be reached."""

    def __init__(self, key: Any, detail: str) -> None:
        self.key = key
        self.detail = detail
        super().__init__(f"Could not connect using {key}: {detail}")


class OperationError(FlowMongoError):
    """Raised when the driver reports a failure during a CRUD operation."""

    def __init__(self, operation: str, detail: str) -> None:
        self.operation = operation
        self.detail = detail
        super().__init__(f"MongoDB {operation} failed: {detail}")


class ScriptEvaluationError(OperationError):
    """Raised when a dynamic expression cannot be evaluated."""

    def __init__(self, expression: Any, detail: str) -> None:
        self.expression = expression
        super().__init__("evaluate", f"expression=[{expression}] {detail}")


class IllegalStateError(FlowMongoError):
    """Raised when a component is used outside of its READY state."""

    def __init__(self, component: str, state: str) -> None:
        self.component = component
        self.state = state
        if state == "UNINITIALIZED":
            hint = "call initialize() first"
        elif state == "DISPOSED":
            hint = "it has been disposed and cannot be initialized again"
        else:
            hint = "it is not ready"
        super().__init__(f"{component} cannot be used in state {state}; {hint}")


class ConfigurationError(FlowMongoError):
    """Raised when a component is initialized with an invalid configuration."""
