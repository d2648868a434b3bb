"""
Display formatting for values produced by a snippet.

Values cross the process boundary in a small JSON encoding (see
``sandbox.protocol``); ``decode_value`` turns that encoding back into host
objects and ``format_value`` renders them the way the practice console shows
them. Engine objects arrive already serialized by the engine, so their text
is shown exactly as the engine wrote it.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

TAG = "$sandbox"


class _Undefined:
    _instance: "_Undefined | None" = None

    def __new__(cls) -> "_Undefined":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __bool__(self) -> bool:
        return False


UNDEFINED = _Undefined()


class ScriptFunction:
    """Marker for a function value created inside the engine."""

    def __call__(self, *_args: object, **_kwargs: object) -> None:
        raise TypeError("Script functions cannot be called from the host")

    def __repr__(self) -> str:
        return "ScriptFunction()"


@dataclass(frozen=True)
class ScriptPrimitive:
    """Number, boolean, bigint or symbol, already converted to text by the engine."""

    text: str

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class ScriptJson:
    """An engine object already serialized by the engine with 2-space indentation."""

    text: str

    def __str__(self) -> str:
        return self.text


class OpaqueObject:
    """An engine object that could not be serialized (cycles, bigint members)."""

    def __repr__(self) -> str:
        return "OpaqueObject()"


def decode_value(encoded: Any) -> Any:
    """Map the child's wire encoding of one value back to a host value."""
    if not isinstance(encoded, Mapping) or TAG not in encoded:
        return encoded

    kind = encoded.get(TAG)
    if kind == "undefined":
        return UNDEFINED
    if kind == "function":
        return ScriptFunction()
    if kind == "primitive":
        return ScriptPrimitive(str(encoded.get("text", "")))
    if kind == "json":
        text = encoded.get("text")
        if text is None:
            return UNDEFINED
        return ScriptJson(str(text))
    return OpaqueObject()


def _number_text(value: int | float) -> str:
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


def format_value(value: Any) -> str:
    """Render ``value`` as console text; never raises."""
    if value is None:
        return "null"
    if value is UNDEFINED:
        return "undefined"
    if isinstance(value, str):
        return value
    if callable(value):
        return "[Function]"
    if isinstance(value, (ScriptPrimitive, ScriptJson)):
        return value.text
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return _number_text(value)
    try:
        return json.dumps(value, indent=2, ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError, RecursionError):
        return "[Object]"


def format_write(arguments: list[Any]) -> str:
    """Join one console call's arguments the way ``console.log`` prints them."""
    return " ".join(format_value(decode_value(argument)) for argument in arguments)
