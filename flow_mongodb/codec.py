"""Normalization of dynamic input values into MongoDB documents.

Every value handed to a component (a JSON string, a mapping, a single
``Pair``, a pydantic model or a list of any of those) is classified exactly
once into a ``DocumentShape`` and converted by the matching handler:

    >>> codec = DocumentCodec()
    >>> codec.normalize("{name: 'John', age: 23}")
    {'name': 'John', 'age': 23}
    >>> codec.normalize([Pair("name", "Anton"), {"name": "Olav"}])
    [{'name': 'Anton'}, {'name': 'Olav'}]

Strict (extended) JSON goes through ``bson.json_util`` so ``{"$oid": ...}``
and friends become BSON types; relaxed mongo-shell text with unquoted keys
and single quotes is read with a PyYAML safe loader whose implicit types are
limited to the JSON scalars, so `NO`, `012` or `2020-01-01` stay text.
"""

from __future__ import annotations

import json
import re
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Union

import yaml
from bson import json_util
from bson.errors import BSONError
from pydantic import BaseModel

from .errors import DocumentParseError, UnsupportedDocumentError
from .typing import Document, Pair

TEXT_TYPES = (str, bytes, bytearray)
SEQUENCE_TYPES = (list, tuple)


class ShellSyntaxLoader(yaml.SafeLoader):
    """Safe loader that only infers JSON scalars from plain (unquoted) text."""

    yaml_implicit_resolvers: Dict[str, list] = {}


ShellSyntaxLoader.add_implicit_resolver(
    "tag:yaml.org,2002:null", re.compile(r"^null$"), ["n"]
)
ShellSyntaxLoader.add_implicit_resolver(
    "tag:yaml.org,2002:bool", re.compile(r"^(?:true|false)$"), list("tf")
)
ShellSyntaxLoader.add_implicit_resolver(
    "tag:yaml.org,2002:int", re.compile(r"^-?(?:0|[1-9][0-9]*)$"), list("-0123456789")
)
ShellSyntaxLoader.add_implicit_resolver(
    "tag:yaml.org,2002:float",
    re.compile(r"^-?(?:0|[1-9][0-9]*)(?:\.[0-9]+(?:[eE][-+]?[0-9]+)?|[eE][-+]?[0-9]+)$"),
    list("-0123456789"),
)


class DocumentShape(str, Enum):
    NULL = "null"
    TEXT = "text"
    PAIR = "pair"
    MODEL = "model"
    MAPPING = "mapping"
    SEQUENCE = "sequence"
    UNSUPPORTED = "unsupported"


def classify(value: Any) -> DocumentShape:
    """Return the shape of ``value``; ``Pair`` is checked before plain tuples."""

    if value is None:
        return DocumentShape.NULL
    if isinstance(value, TEXT_TYPES):
        return DocumentShape.TEXT
    if isinstance(value, Pair):
        return DocumentShape.PAIR
    if isinstance(value, BaseModel):
        return DocumentShape.MODEL
    if isinstance(value, Mapping):
        return DocumentShape.MAPPING
    if isinstance(value, SEQUENCE_TYPES):
        return DocumentShape.SEQUENCE
    return DocumentShape.UNSUPPORTED


class DocumentCodec:
    """Stateless converter from dynamic values to ``Document`` objects."""

    def __init__(self) -> None:
        self._handlers: Dict[DocumentShape, Callable[[Any, str], Document]] = {
            DocumentShape.TEXT: self._from_text,
            DocumentShape.PAIR: self._from_pair,
            DocumentShape.MODEL: self._from_model,
            DocumentShape.MAPPING: self._from_mapping,
        }

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def normalize(self, value: Any, kind: str = "Document") -> Union[Document, List[Document]]:
        """Return one document, or a list of documents when ``value`` is a sequence."""

        if classify(value) is DocumentShape.SEQUENCE:
            return self.normalize_many(value, kind)
        return self.normalize_one(value, kind)

    def normalize_many(self, value: Any, kind: str = "Document") -> List[Document]:
        """Always return a list; a single document becomes a list of one."""

        if classify(value) is DocumentShape.SEQUENCE:
            return [self.normalize_one(item, kind) for item in value]
        return [self.normalize_one(value, kind)]

    def normalize_one(self, value: Any, kind: str = "Document") -> Document:
        handler = self._handlers.get(classify(value))
        if handler is None:
            raise UnsupportedDocumentError(value, kind)
        return handler(value, kind)

    # ------------------------------------------------------------------
    # Shape handlers
    # ------------------------------------------------------------------

    def _from_text(self, value: Union[str, bytes, bytearray], kind: str) -> Document:
        if isinstance(value, (bytes, bytearray)):
            try:
                text = bytes(value).decode("utf-8")
            except UnicodeDecodeError as exc:
                raise DocumentParseError(repr(value), kind, str(exc)) from exc
        else:
            text = value

        try:
            parsed = json_util.loads(text)
        except json.JSONDecodeError:
            parsed = self._parse_relaxed(text, kind)
        except (BSONError, TypeError, ValueError) as exc:
            raise DocumentParseError(text, kind, str(exc)) from exc

        if not isinstance(parsed, Mapping):
            type_name = "null" if parsed is None else type(parsed).__name__
            raise DocumentParseError(text, kind, f"expected a document, got {type_name}")
        return self._from_mapping(parsed, kind)

    @staticmethod
    def _parse_relaxed(text: str, kind: str) -> Any:
        try:
            return yaml.load(text, Loader=ShellSyntaxLoader)
        except yaml.YAMLError as exc:
            raise DocumentParseError(text, kind, str(exc).replace("\n", " ")) from exc

    def _from_pair(self, pair: Pair, kind: str) -> Document:
        if not isinstance(pair.key, str):
            raise UnsupportedDocumentError(
                pair, kind, f"Field names must be text, got key type=[{type(pair.key).__name__}]."
            )
        return {pair.key: self._normalize_value(pair.value, kind)}

    def _from_model(self, model: BaseModel, kind: str) -> Document:
        return self._from_mapping(model.model_dump(by_alias=True), kind)

    def _from_mapping(self, mapping: Mapping[Any, Any], kind: str) -> Document:
        document: Document = {}
        for key, value in mapping.items():
            if not isinstance(key, str):
                raise UnsupportedDocumentError(
                    mapping, kind, f"Field names must be text, got key type=[{type(key).__name__}]."
                )
            document[key] = self._normalize_value(value, kind)
        return document

    def _normalize_value(self, value: Any, kind: str) -> Any:
        # Text and scalars nested inside a document are field values, not documents.
        shape = classify(value)
        if shape is DocumentShape.PAIR:
            return self._from_pair(value, kind)
        if shape is DocumentShape.MODEL:
            return self._from_model(value, kind)
        if shape is DocumentShape.MAPPING:
            return self._from_mapping(value, kind)
        if shape is DocumentShape.SEQUENCE:
            return [self._normalize_value(item, kind) for item in value]
        return value
