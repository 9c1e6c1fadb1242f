"""Named serializers used to encode and decode payloads."""

from __future__ import annotations

import dataclasses
import json
from typing import Any, Protocol

JSON_ENCODER = "application/json"


class SerializerError(Exception):
    """Raised when a payload cannot be encoded or decoded."""


class Serializer(Protocol):
    def encode(self, obj: Any) -> bytes: ...

    def decode(self, data: bytes | str) -> Any: ...


def _default(obj: Any) -> Any:
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    raise TypeError(f"object of type {type(obj).__name__} is not JSON serializable")


class JSONSerializer:
    """Compact JSON serializer; dataclass instances are encoded as objects."""

    def encode(self, obj: Any) -> bytes:
        try:
            text = json.dumps(obj, default=_default, separators=(",", ":"), ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise SerializerError(str(exc)) from exc
        return text.encode("utf-8")

    def decode(self, data: bytes | str) -> Any:
        try:
            return json.loads(data)
        except (TypeError, ValueError) as exc:
            raise SerializerError(str(exc)) from exc


AVAILABLE_SERIALIZERS: dict[str, Serializer] = {JSON_ENCODER: JSONSerializer()}


def _lookup(serializer_type: str) -> Serializer:
    try:
        return AVAILABLE_SERIALIZERS[serializer_type]
    except KeyError:
        raise SerializerError(f"serializer {serializer_type} not available") from None


def encode(serializer_type: str, obj: Any) -> bytes:
    """Encode ``obj`` with the serializer registered under ``serializer_type``."""
    return _lookup(serializer_type).encode(obj)


def decode(serializer_type: str, data: bytes | str) -> Any:
    """Decode ``data`` with the serializer registered under ``serializer_type``."""
    return _lookup(serializer_type).decode(data)