"""Conversions between numbers, booleans and strings."""

from __future__ import annotations

import re
from typing import Any

__all__ = ["lexical_cast"]

_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(
    r"\s*([+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan))",
    re.IGNORECASE,
)


def _to_int(value: Any) -> int:
    if not isinstance(value, str):
        raise TypeError(f"cannot convert {type(value).__name__} to int")
    match = _INT_PREFIX.match(value)
    if match is None:
        raise ValueError(f"no integer at the start of {value!r}")
    return int(match.group(1))


def _to_float(value: Any) -> float:
    if not isinstance(value, str):
        raise TypeError(f"cannot convert {type(value).__name__} to float")
    match = _FLOAT_PREFIX.match(value)
    if match is None:
        raise ValueError(f"no number at the start of {value!r}")
    return float(match.group(1))


def _to_bool(value: Any) -> bool:
    if not isinstance(value, int):
        raise TypeError(f"cannot convert {type(value).__name__} to bool")
    return bool(value)


def _to_str(value: Any) -> str:
    if isinstance(value, bool):
        return str(int(value))
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return "%f" % value
    raise TypeError(f"cannot convert {type(value).__name__} to str")


_CONVERTERS = {int: _to_int, float: _to_float, bool: _to_bool, str: _to_str}


def lexical_cast(value: Any, to: type) -> Any:
    """Convert ``value`` to the type ``to``.

    Strings become numbers by reading their longest leading numeric prefix
    (leading whitespace allowed, trailing text ignored); integers become
    booleans by truth; numbers become strings, floats with six decimals and
    booleans as ``"1"``/``"0"``. A value already of type ``to`` is returned
    unchanged.
    """
    if type(value) is to:
        return value
    converter = _CONVERTERS.get(to)
    if converter is None:
        raise TypeError(f"no conversion to {getattr(to, '__name__', to)!r}")
    return converter(value)