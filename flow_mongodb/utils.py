from typing import Any, Mapping

from bson import ObjectId


def serialize_id(value: Any) -> Any:
    """Generated ObjectIds are reported as hex strings, custom ids unchanged."""
    if isinstance(value, ObjectId):
        return str(value)
    return value


def has_update_operators(document: Mapping[str, Any]) -> bool:
    return any(key.startswith("$") for key in document)
