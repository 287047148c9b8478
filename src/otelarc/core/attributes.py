"""Attribute flattening and precedence merging.

Converts OTLP ``KeyValue`` / ``AnyValue`` structures into plain Python
values. Nested arrays and key/value lists stay nested (one level at a time);
nothing is collapsed into dotted paths.
"""

import base64
import json
import math
from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any

from opentelemetry.proto.common.v1.common_pb2 import AnyValue, KeyValue

from otelarc.core.models import AttributeSet, AttributeValue

SERVICE_NAME_KEY = "service.name"


def any_value_to_python(value: AnyValue) -> AttributeValue:
    """Convert a single OTLP AnyValue to a Python attribute value.

    Unset or unknown value kinds become None instead of raising, so a newer
    or malformed producer degrades one field rather than the whole batch.
    """
    kind = value.WhichOneof("value")
    if kind == "string_value":
        return value.string_value
    if kind == "bool_value":
        return value.bool_value
    if kind == "int_value":
        return value.int_value
    if kind == "double_value":
        return value.double_value
    if kind == "bytes_value":
        return bytes(value.bytes_value)
    if kind == "array_value":
        return [any_value_to_python(item) for item in value.array_value.values]
    if kind == "kvlist_value":
        return attributes_to_map(value.kvlist_value.values)
    return None


def attributes_to_map(key_values: Iterable[KeyValue]) -> AttributeSet:
    """Convert a repeated KeyValue field into an AttributeSet.

    Args:
        key_values: Attributes as carried on resources, spans, points or logs.

    Returns:
        Mapping of attribute key to converted value. A key repeated in the
        input keeps its last value.
    """
    return {kv.key: any_value_to_python(kv.value) for kv in key_values}


def merge_attributes(
    base: Mapping[str, Any], override: Mapping[str, Any]
) -> AttributeSet:
    """Merge two attribute sets; keys in ``override`` win.

    Neither input is modified.
    """
    return {**base, **override}


def service_name(resource_attrs: Mapping[str, Any]) -> str:
    """Return the resource's ``service.name`` or an empty string."""
    value = resource_attrs.get(SERVICE_NAME_KEY)
    return value if isinstance(value, str) else ""


def _format_double(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    # Positional notation without trailing zeros: 3.0 -> "3", 1e-07 -> "0.0000001"
    return format(Decimal(repr(value)).normalize(), "f")


def _json_default(obj: Any) -> Any:
    if isinstance(obj, bytes):
        return base64.b64encode(obj).decode("ascii")
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def any_value_as_string(value: AnyValue) -> str:
    """Render any AnyValue as a string.

    Strings pass through verbatim, scalars use their canonical text form,
    bytes are base64 and arrays / key-value lists become compact JSON.
    """
    kind = value.WhichOneof("value")
    if kind is None:
        return ""
    if kind == "string_value":
        return value.string_value
    if kind == "bool_value":
        return "true" if value.bool_value else "false"
    if kind == "int_value":
        return str(value.int_value)
    if kind == "double_value":
        return _format_double(value.double_value)
    if kind == "bytes_value":
        return base64.b64encode(value.bytes_value).decode("ascii")
    return json.dumps(
        any_value_to_python(value),
        default=_json_default,
        separators=(",", ":"),
        sort_keys=True,
    )
