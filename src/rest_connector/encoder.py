"""
Parameter value encoder.

Walks a JSON-decoded argument value against its type schema and flattens it
into parameter items: a key path (object field names and array placeholders)
plus the string values found at that path. The formatter then renders the
items following the OpenAPI 3.1 serialization rules.
"""

import datetime
import json
import logging
import math
import uuid
from typing import Any, Optional, Sequence, Tuple

from .exceptions import InvalidEnumValue, RequiredValueMissing, SchemaMismatch
from .models import (
    ArrayType,
    NamedType,
    NullableType,
    ObjectType,
    ScalarKind,
    ScalarType,
    TypeRegistry,
)
from .parameter import EMPTY_KEY, Key, ParameterItem, ParameterItems

logger = logging.getLogger(__name__)

FieldPath = Tuple[Any, ...]

# integral floats below this bound are exact, so they are rendered as integers
_MAX_EXACT_FLOAT = 2**53


def value_kind(value: Any) -> str:
    """Name the JSON kind of a runtime value, for error messages."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def format_float(value: float) -> str:
    """Format a float with the shortest representation that round-trips.

    Integral values drop the fraction: ``3.0`` is rendered as ``3``.
    """
    if value.is_integer() and abs(value) < _MAX_EXACT_FLOAT:
        return str(int(value))
    return repr(value)


def json_text(value: Any) -> str:
    """Marshal a value to compact JSON; strings are returned unquoted."""
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)


def stringify_scalar(value: Any) -> str:
    """String form of a value that has no type schema."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return format_float(value)
    if isinstance(value, (int, str)):
        return str(value)
    return json_text(value)


def _single(value: str) -> ParameterItems:
    return ParameterItems([ParameterItem((), [value])])


def _add_element(results: ParameterItems, index: int, element_items: ParameterItems) -> None:
    # scalar elements accumulate under the placeholder key, composite
    # elements are keyed by their index
    for item in element_items:
        if item.keys:
            results.add((Key(index=index),) + item.keys, item.values)
        else:
            results.add((EMPTY_KEY,), item.values)


class ParameterEncoder:
    """Encodes argument values into parameter items.

    The encoder holds no per-request state, so one instance can serve
    concurrent requests.
    """

    def __init__(self, registry: Optional[TypeRegistry] = None):
        self.registry = registry or TypeRegistry()

    def encode(
        self, type_schema: Any, value: Any, field_path: Sequence[Any] = ()
    ) -> ParameterItems:
        """Encode a value.

        Args:
            type_schema: Type schema of the value
            value: JSON-decoded runtime value
            field_path: Path of the value, used in error messages

        Returns:
            ParameterItems in schema order

        Raises:
            RequiredValueMissing: If a non-nullable value is absent
            SchemaMismatch: If the value shape does not match the schema
            InvalidEnumValue: If a value is not in the enum's allowed set
        """
        return self._encode(type_schema, value, tuple(field_path))

    def _encode(self, type_schema: Any, value: Any, field_path: FieldPath) -> ParameterItems:
        if isinstance(type_schema, NullableType):
            if value is None:
                return ParameterItems()
            return self._encode(type_schema.underlying, value, field_path)

        if value is None:
            raise RequiredValueMissing(field_path)

        if isinstance(type_schema, NamedType):
            resolved = self.registry.resolve(type_schema.name)
            if resolved is None:
                logger.debug(
                    "unknown type %s at %s, encoding the value opaquely",
                    type_schema.name,
                    field_path,
                )
                return self._encode_opaque(value)
            type_schema = resolved

        if isinstance(type_schema, ScalarType):
            return _single(self.encode_scalar(type_schema, value, field_path))
        if isinstance(type_schema, ArrayType):
            return self._encode_array(type_schema, value, field_path)
        if isinstance(type_schema, ObjectType):
            return self._encode_object(type_schema, value, field_path)

        raise SchemaMismatch(field_path, "a type schema", type(type_schema).__name__)

    def _encode_array(self, array_type: ArrayType, value: Any, field_path: FieldPath) -> ParameterItems:
        if not isinstance(value, (list, tuple)):
            raise SchemaMismatch(field_path, "array", value_kind(value))

        results = ParameterItems()
        for index, element in enumerate(value):
            element_items = self._encode(array_type.items, element, field_path + (index,))
            _add_element(results, index, element_items)
        return results

    def _encode_object(self, object_type: ObjectType, value: Any, field_path: FieldPath) -> ParameterItems:
        if not isinstance(value, dict):
            raise SchemaMismatch(field_path, "object", value_kind(value))
        if not object_type.fields:
            return self.encode_arbitrary(value)

        results = ParameterItems()
        for name, field_type in object_type.fields.items():
            field_items = self._encode(field_type, value.get(name), field_path + (name,))
            results.extend(field_items, prefix=(Key(name),))
        return results

    def encode_arbitrary(self, value: Any) -> ParameterItems:
        """Decompose a free-form value without a schema."""
        results = ParameterItems()
        if isinstance(value, dict):
            for name, field_value in value.items():
                if field_value is not None:
                    results.extend(self.encode_arbitrary(field_value), prefix=(Key(str(name)),))
        elif isinstance(value, (list, tuple)):
            for index, element in enumerate(value):
                if element is not None:
                    _add_element(results, index, self.encode_arbitrary(element))
        else:
            results.add((), [stringify_scalar(value)])
        return results

    def _encode_opaque(self, value: Any) -> ParameterItems:
        if isinstance(value, (dict, list, tuple)):
            return _single(json_text(value))
        return _single(stringify_scalar(value))

    def encode_scalar(self, scalar: ScalarType, value: Any, field_path: Sequence[Any] = ()) -> str:
        """Convert a scalar value to its canonical string form."""
        field_path = tuple(field_path)
        kind = scalar.kind

        if kind == ScalarKind.BOOLEAN:
            return _encode_boolean(value, field_path)
        if kind in (ScalarKind.INTEGER, ScalarKind.UNIX_TIME):
            return _encode_integer(value, field_path, kind)
        if kind == ScalarKind.FLOAT:
            return _encode_float(value, field_path)
        if kind == ScalarKind.JSON:
            return json_text(value)
        if kind == ScalarKind.ENUM:
            if not isinstance(value, str):
                raise SchemaMismatch(field_path, "string", value_kind(value))
            if scalar.one_of is not None and value not in scalar.one_of:
                raise InvalidEnumValue(field_path, value, scalar.one_of)
            return value
        if kind == ScalarKind.UUID:
            return _encode_uuid(value, field_path)
        if kind == ScalarKind.DATE and isinstance(value, datetime.date):
            if isinstance(value, datetime.datetime):
                value = value.date()
            return value.isoformat()
        if kind == ScalarKind.DATE_TIME and isinstance(value, datetime.date):
            return value.isoformat()

        if not isinstance(value, str):
            raise SchemaMismatch(field_path, kind.value, value_kind(value))
        return value


def _encode_boolean(value: Any, field_path: FieldPath) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower()
    raise SchemaMismatch(field_path, "boolean", value_kind(value))


def _encode_integer(value: Any, field_path: FieldPath, kind: ScalarKind) -> str:
    if isinstance(value, bool):
        raise SchemaMismatch(field_path, "integer", "boolean")
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, str):
        try:
            return str(int(value.strip()))
        except ValueError:
            pass
    if kind == ScalarKind.UNIX_TIME and isinstance(value, datetime.datetime):
        return str(int(value.timestamp()))
    raise SchemaMismatch(field_path, "integer", value_kind(value))


def _encode_float(value: Any, field_path: FieldPath) -> str:
    if isinstance(value, bool):
        raise SchemaMismatch(field_path, "number", "boolean")
    if isinstance(value, int):
        return str(value)

    number = value
    if isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            raise SchemaMismatch(field_path, "number", "string")
    if not isinstance(number, float):
        raise SchemaMismatch(field_path, "number", value_kind(value))
    if not math.isfinite(number):
        raise SchemaMismatch(field_path, "finite number", repr(number))
    return format_float(number)


def _encode_uuid(value: Any, field_path: FieldPath) -> str:
    if isinstance(value, uuid.UUID):
        return str(value)
    if not isinstance(value, str):
        raise SchemaMismatch(field_path, "uuid", value_kind(value))
    try:
        uuid.UUID(value)
    except ValueError:
        raise SchemaMismatch(field_path, "uuid", repr(value))
    return value
