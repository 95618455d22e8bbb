"""Firestore typed-value codec and camelCase/snake_case key transformation.

Firestore's REST API wraps every field in a typed envelope
(``{"stringValue": "x"}``, ``{"integerValue": "3"}``, ...).  Documents are
persisted with camelCase keys (``createdAt``, ``isCompleted``) while the
models work with snake_case.  ``to_document_fields`` and ``from_document``
run both steps::

    model.to_api_dict() -> to_document_fields()   (outgoing)
    from_document()     -> from_api_response()    (incoming)
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Any

_CAMEL_TO_SNAKE = re.compile(r"(?<=[a-z0-9])([A-Z])")
_SNAKE_TO_CAMEL = re.compile(r"_([a-z])")


def _rekey(data: Any, convert: Callable[[str], str]) -> Any:
    if isinstance(data, dict):
        return {convert(key): _rekey(value, convert) for key, value in data.items()}
    if isinstance(data, list):
        return [_rekey(item, convert) for item in data]
    return data


def decamelize(data: Any) -> Any:
    """Recursively rename dict keys from camelCase to snake_case."""
    return _rekey(data, lambda key: _CAMEL_TO_SNAKE.sub(r"_\1", key).lower())


def camelize(data: Any) -> Any:
    """Recursively rename dict keys from snake_case to camelCase."""
    return _rekey(data, lambda key: _SNAKE_TO_CAMEL.sub(lambda m: m.group(1).upper(), key))


# --------------------------------------------------------------------------- #
#  Firestore values
# --------------------------------------------------------------------------- #


def encode_value(value: Any) -> dict[str, Any]:
    """Wrap a plain Python value in a Firestore typed-value envelope."""
    if value is None:
        return {"nullValue": None}
    # bool must be checked before int: bool is an int subclass.
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    raise TypeError(f"Cannot encode {type(value).__name__} as a Firestore value")


def encode_fields(data: dict[str, Any]) -> dict[str, Any]:
    """Encode a flat or nested dict as a Firestore ``fields`` object."""
    return {key: encode_value(value) for key, value in data.items()}


def decode_value(value: dict[str, Any]) -> Any:
    """Unwrap a Firestore typed-value envelope."""
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "stringValue" in value:
        return value["stringValue"]
    if "timestampValue" in value:
        return value["timestampValue"]
    if "arrayValue" in value:
        return [decode_value(v) for v in value["arrayValue"].get("values", [])]
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields", {}))
    raise ValueError(f"Unsupported Firestore value: {sorted(value)}")


def decode_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """Decode a Firestore ``fields`` object into a plain dict."""
    return {key: decode_value(value) for key, value in fields.items()}


def decode_document(document: dict[str, Any]) -> dict[str, Any]:
    """Decode a Firestore document resource into a plain dict.

    The document id is taken from the resource ``name`` when the stored
    fields do not carry one.
    """
    data = decode_fields(document.get("fields", {}))
    if "id" not in data and "name" in document:
        data["id"] = document["name"].rsplit("/", 1)[-1]
    return data


def to_document_fields(data: dict[str, Any]) -> dict[str, Any]:
    """Model dict (snake_case) to a Firestore ``fields`` object (camelCase)."""
    return encode_fields(camelize(data))


def from_document(document: dict[str, Any]) -> dict[str, Any]:
    """Firestore document resource to a snake_case dict for ``from_api_response``.

    Raises:
        ValueError: If a field holds a value type the models cannot use
            (geo points, references, bytes).
    """
    return decamelize(decode_document(document))
