"""Query filter resolution shared by the read, update and delete components.

The configured filter wins when it holds something; otherwise the fallback
(usually the message payload) is used as filter. ``None``, blank text and an
empty mapping are all considered "nothing", whether they come from a blank
configuration or from an expression that evaluated to empty.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from loguru import logger

from .codec import DocumentCodec
from .errors import FilterRequiredError, UnsupportedDocumentError
from .typing import Document

QUERY_FILTER = "Query filter"


def is_usable(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (bytes, bytearray)):
        return bool(bytes(value).strip())
    if isinstance(value, Mapping):
        return bool(value)
    return True


class FilterResolver:
    def __init__(self, codec: Optional[DocumentCodec] = None, *, match_all_when_empty: bool = False) -> None:
        self.codec = codec or DocumentCodec()
        self.match_all_when_empty = match_all_when_empty

    def resolve(self, configured_filter: Any, fallback_payload: Any, *, expression: Any = None) -> Document:
        """Return the effective filter document.

        ``configured_filter`` is the already evaluated filter expression and
        ``expression`` its source text, used only for error reporting.
        """

        query = self._to_filter(configured_filter)
        if query:
            return query

        query = self._to_filter(fallback_payload)
        if query:
            logger.debug("filter: expression={expression} is empty, using payload as filter", expression=expression)
            return query

        if self.match_all_when_empty:
            return {}

        raise FilterRequiredError(expression)

    def _to_filter(self, value: Any) -> Document:
        # Text such as "{}" is only known to be empty once parsed.
        if not is_usable(value):
            return {}
        query = self.codec.normalize(value, QUERY_FILTER)
        if isinstance(query, list):
            raise UnsupportedDocumentError(value, QUERY_FILTER, "A filter must be a single document.")
        return query
