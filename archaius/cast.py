"""Lenient conversion of configuration values to concrete types."""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Mapping, TypeVar

T = TypeVar("T")

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_WORDS = frozenset({"0", "f", "F", "FALSE", "false", "False"})
_ZERO_DECIMAL = re.compile(r"(.*)\.0+")


class CastError(ValueError):
    """Raised when a value cannot be converted to the requested type."""


def _fail(value: Any, target: str) -> CastError:
    return CastError(f"unable to cast {value!r} of type {type(value).__name__} to {target}")


def _trim_zero_decimal(text: str) -> str:
    match = _ZERO_DECIMAL.fullmatch(text)
    return match.group(1) if match else text


def _parse_int(text: str) -> int:
    """Parse an integer the way a base-detecting 64-bit parser does."""
    body = text
    negative = False
    if body.startswith(("+", "-")):
        negative = body[0] == "-"
        body = body[1:]
    if not body or not body[0].isdigit() or body != body.strip():
        raise CastError(f"invalid integer syntax: {text!r}")
    try:
        if body[:2].lower() in ("0x", "0b", "0o"):
            number = int(body, 0)
        elif len(body) > 1 and body[0] == "0":
            number = int(body, 8)
        else:
            number = int(body, 10)
    except ValueError as exc:
        raise CastError(f"invalid integer syntax: {text!r}") from exc
    if negative:
        number = -number
    if not _INT64_MIN <= number <= _INT64_MAX:
        raise CastError(f"integer out of range: {text!r}")
    return number


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise _fail(value, "int")
        return int(value)
    if value is None:
        return 0
    if isinstance(value, str):
        return _parse_int(_trim_zero_decimal(value))
    raise _fail(value, "int")


def _signed(bits: int) -> Callable[[Any], int]:
    modulus = 1 << bits
    half = 1 << (bits - 1)

    def convert(value: Any) -> int:
        number = _to_int(value) % modulus
        return number - modulus if number >= half else number

    return convert


def _unsigned(bits: int) -> Callable[[Any], int]:
    mask = (1 << bits) - 1

    def convert(value: Any) -> int:
        number = _to_int(value)
        if number < 0:
            raise CastError("unable to cast negative value")
        return number & mask

    return convert


def _to_float(value: Any) -> float:
    if isinstance(value, (bool, int, float)):
        return float(value)
    if value is None:
        return 0.0
    if isinstance(value, str):
        if not value or value != value.strip():
            raise _fail(value, "float64")
        try:
            return float(value)
        except ValueError as exc:
            raise _fail(value, "float64") from exc
    raise _fail(value, "float64")


def _format_float(number: float) -> str:
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "+Inf" if number > 0 else "-Inf"
    text = format(Decimal(repr(number)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _to_string(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _format_float(value)
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if value is None:
        return ""
    if isinstance(value, BaseException):
        return str(value)
    raise _fail(value, "string")


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        if value in _TRUE_WORDS:
            return True
        if value in _FALSE_WORDS:
            return False
    raise _fail(value, "bool")


def _lenient(convert: Callable[[Any], T], value: Any, default: T) -> T:
    try:
        return convert(value)
    except CastError:
        return default


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def _map_key(key: Any) -> str:
    return key if isinstance(key, str) else _lenient(_to_string, key, str(key))


def _json_object(text: str, target: str) -> dict[str, Any]:
    try:
        decoded = json.loads(text)
    except ValueError as exc:
        raise _fail(text, target) from exc
    if not isinstance(decoded, dict):
        raise _fail(text, target)
    return decoded


def _to_string_map(value: Any) -> dict[str, Any]:
    if isinstance(value, Mapping):
        return {_map_key(key): item for key, item in value.items()}
    if isinstance(value, str):
        return _json_object(value, "map[string]interface{}")
    raise _fail(value, "map[string]interface{}")


def _to_string_map_bool(value: Any) -> dict[str, bool]:
    if isinstance(value, Mapping):
        return {_map_key(key): _lenient(_to_bool, item, False) for key, item in value.items()}
    if isinstance(value, str):
        decoded = _json_object(value, "map[string]bool")
        if not all(isinstance(item, bool) for item in decoded.values()):
            raise _fail(value, "map[string]bool")
        return decoded
    raise _fail(value, "map[string]bool")


def _string_list(value: Any) -> list[str]:
    if _is_sequence(value):
        return [_lenient(_to_string, item, "") for item in value]
    return [_lenient(_to_string, value, "")]


def _to_string_map_string_slice(value: Any) -> dict[str, list[str]]:
    if isinstance(value, Mapping):
        return {_to_string(key): _string_list(item) for key, item in value.items()}
    if isinstance(value, str):
        decoded = _json_object(value, "map[string][]string")
        result: dict[str, list[str]] = {}
        for key, item in decoded.items():
            if not _is_sequence(item) or not all(isinstance(part, str) for part in item):
                raise _fail(value, "map[string][]string")
            result[key] = list(item)
        return result
    raise _fail(value, "map[string][]string")


def _to_slice(value: Any) -> list[Any]:
    if _is_sequence(value):
        return list(value)
    raise _fail(value, "[]interface{}")


def _to_bool_slice(value: Any) -> list[bool]:
    if _is_sequence(value):
        return [_to_bool(item) for item in value]
    raise _fail(value, "[]bool")


def _to_string_slice(value: Any) -> list[str]:
    if _is_sequence(value):
        return [_lenient(_to_string, item, "") for item in value]
    if isinstance(value, str):
        return value.split()
    return [_to_string(value)]


def _to_int_slice(value: Any) -> list[int]:
    if _is_sequence(value):
        return [_to_int(item) for item in value]
    raise _fail(value, "[]int")


@dataclass(frozen=True)
class Value:
    """A configuration value, or the error met while looking it up.

    Every conversion raises the stored error when there is one.
    """

    value: Any = None
    error: BaseException | None = None

    def _convert(self, convert: Callable[[Any], T]) -> T:
        if self.error is not None:
            raise self.error
        return convert(self.value)

    def to_int64(self) -> int:
        return self._convert(_signed(64))

    def to_int32(self) -> int:
        return self._convert(_signed(32))

    def to_int16(self) -> int:
        return self._convert(_signed(16))

    def to_int8(self) -> int:
        return self._convert(_signed(8))

    def to_int(self) -> int:
        return self._convert(_signed(64))

    def to_uint(self) -> int:
        return self._convert(_unsigned(64))

    def to_uint64(self) -> int:
        return self._convert(_unsigned(64))

    def to_uint32(self) -> int:
        return self._convert(_unsigned(32))

    def to_uint16(self) -> int:
        return self._convert(_unsigned(16))

    def to_uint8(self) -> int:
        return self._convert(_unsigned(8))

    def to_string(self) -> str:
        return self._convert(_to_string)

    def to_string_map_string_slice(self) -> dict[str, list[str]]:
        return self._convert(_to_string_map_string_slice)

    def to_string_map_bool(self) -> dict[str, bool]:
        return self._convert(_to_string_map_bool)

    def to_string_map(self) -> dict[str, Any]:
        return self._convert(_to_string_map)

    def to_slice(self) -> list[Any]:
        return self._convert(_to_slice)

    def to_bool_slice(self) -> list[bool]:
        return self._convert(_to_bool_slice)

    def to_string_slice(self) -> list[str]:
        return self._convert(_to_string_slice)

    def to_int_slice(self) -> list[int]:
        return self._convert(_to_int_slice)

    def to_bool(self) -> bool:
        return self._convert(_to_bool)

    def to_float64(self) -> float:
        return self._convert(_to_float)