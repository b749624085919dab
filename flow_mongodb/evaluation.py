"""The seam between configured component properties and the host's script engine."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from .errors import ScriptEvaluationError

_SCRIPT = re.compile(r"^#\[(?P<body>.*)\]$", re.DOTALL)
_PAYLOAD_SCRIPTS = {"message.payload()", "payload"}


@dataclass
class Message:
    """A message flowing through the host pipeline."""

    payload: Any = None
    attributes: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DynamicValue:
    """A component property that is either a literal or an expression.

    Expressions are ``#[...]`` text handed to the host's script engine, or a
    Python callable receiving the current ``Message``.
    """

    value: Any = None

    @classmethod
    def of(cls, value: Any) -> "DynamicValue":
        return value if isinstance(value, DynamicValue) else cls(value)

    @property
    def script(self) -> Optional[str]:
        if isinstance(self.value, str):
            match = _SCRIPT.match(self.value.strip())
            if match:
                return match.group("body").strip()
        return None

    def is_blank(self) -> bool:
        if self.value is None:
            return True
        if isinstance(self.value, str):
            return not self.value.strip() or self.script == ""
        return False

    @property
    def expression(self) -> str:
        """Source text used in error messages."""
        if callable(self.value):
            return getattr(self.value, "__qualname__", repr(self.value))
        return str(self.value)


@runtime_checkable
class Evaluator(Protocol):
    def evaluate(self, value: DynamicValue, message: Message) -> Any:
        ...


class DefaultEvaluator:
    """Resolves literals, callables and the payload expressions.

    Any other script text needs the host's script engine, plugged in through
    the ``Evaluator`` protocol.
    """

    def evaluate(self, value: DynamicValue, message: Message) -> Any:
        if value.is_blank():
            return None
        if callable(value.value):
            try:
                return value.value(message)
            except Exception as exc:
                raise ScriptEvaluationError(value.expression, f"raised {type(exc).__name__}: {exc}") from exc
        script = value.script
        if script is None:
            return value.value
        if script in _PAYLOAD_SCRIPTS:
            return message.payload
        raise ScriptEvaluationError(value.expression, "cannot be evaluated without a script engine")


def evaluate_once(
    evaluator: Evaluator,
    value: Optional[DynamicValue],
    message: Message,
) -> Any:
    """Evaluate an optional property; absent and blank properties yield ``None``."""
    if value is None or value.is_blank():
        return None
    return evaluator.evaluate(value, message)

