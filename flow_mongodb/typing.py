"""Lightweight typing helpers shared by the codec and the components."""

from typing import Any, Dict, Mapping, NamedTuple


class Pair(NamedTuple):
    """A single key/value pair, normalized into a one-field document."""

    key: str
    value: Any


Document = Dict[str, Any]
MongoDocument = Mapping[str, Any]
