"""
Request body builder.

Serializes the ``body`` argument of an operation according to the declared
content type: JSON, URL-encoded form, multipart form, plain text or raw
bytes.
"""

import hashlib
import json
import logging
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from urllib3.fields import RequestField
from urllib3.filepost import encode_multipart_formdata

from .data_uri import decode_data_uri
from .encoder import ParameterEncoder, stringify_scalar, value_kind
from .exceptions import (
    BodyEncodingError,
    RequiredBodyMissing,
    RequiredValueMissing,
    SchemaMismatch,
    UnsupportedContentType,
)
from .formatter import encode_query, format_header_value, format_key, format_query_entries
from .models import (
    ArrayType,
    EncodingDirective,
    EncodingStyle,
    NamedType,
    NullableType,
    ObjectType,
    RequestBody,
    ScalarKind,
    ScalarType,
    TypeRegistry,
)
from .parameter import ParameterItems

logger = logging.getLogger(__name__)

BODY_ARGUMENT = "body"

FORM_URLENCODED = "application/x-www-form-urlencoded"
MULTIPART_FORM = "multipart/form-data"
OCTET_STREAM = "application/octet-stream"

_DEEP_OBJECT = EncodingDirective(style=EncodingStyle.DEEP_OBJECT, explode=True)


class EncodedBody(NamedTuple):
    content: bytes
    content_type: str


def media_type_of(content_type: str) -> str:
    """Strip parameters from a content type: ``text/plain; charset=utf-8`` -> ``text/plain``."""
    return content_type.split(";", 1)[0].strip().lower()


def is_json_content_type(content_type: str) -> bool:
    media_type = media_type_of(content_type)
    return media_type == "application/json" or media_type.endswith("+json")


def is_nullable(type_schema: Any) -> bool:
    return type_schema is None or isinstance(type_schema, NullableType)


class BodyBuilder:
    """Builds request bodies from runtime argument values."""

    def __init__(self, registry: Optional[TypeRegistry] = None):
        self.registry = registry or TypeRegistry()
        self.encoder = ParameterEncoder(self.registry)

    def resolve(self, type_schema: Any) -> Any:
        """Unwrap nullable wrappers and named references."""
        while True:
            if isinstance(type_schema, NullableType):
                type_schema = type_schema.underlying
            elif isinstance(type_schema, NamedType):
                resolved = self.registry.resolve(type_schema.name)
                if resolved is None:
                    return None
                type_schema = resolved
            else:
                return type_schema

    def build(
        self,
        request_body: RequestBody,
        value: Any,
        arguments: Optional[Dict[str, Any]] = None,
    ) -> Optional[EncodedBody]:
        """Serialize a request body.

        Args:
            request_body: Body declaration of the operation
            value: The runtime body value
            arguments: All operation arguments, used to fill per-part
                multipart headers

        Returns:
            EncodedBody, or None when the body is optional and absent

        Raises:
            RequiredBodyMissing: If a non-nullable body has no value
            UnsupportedContentType: If no encoder handles the content type
            BodyEncodingError: If the value cannot be serialized
        """
        if value is None:
            if is_nullable(request_body.type):
                return None
            raise RequiredBodyMissing()

        arguments = arguments or {}
        content_type = request_body.content_type
        media_type = media_type_of(content_type)

        if is_json_content_type(content_type):
            return EncodedBody(self._encode_json(value), content_type)
        if media_type == FORM_URLENCODED:
            content = self.build_form_urlencoded(request_body, value)
            return EncodedBody(content.encode("utf-8"), content_type)
        if media_type == MULTIPART_FORM:
            return self.build_multipart(request_body, value, arguments)
        if media_type.startswith("text/"):
            text = value if isinstance(value, str) else stringify_scalar(value)
            return EncodedBody(text.encode("utf-8"), content_type)
        if media_type == OCTET_STREAM:
            return EncodedBody(self._decode_binary(value, (BODY_ARGUMENT,)), content_type)

        raise UnsupportedContentType(content_type)

    def _encode_json(self, value: Any) -> bytes:
        try:
            return json.dumps(value, ensure_ascii=False).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise BodyEncodingError(f"failed to encode JSON body: {e}")

    def _decode_binary(self, value: Any, field_path: Tuple[Any, ...]) -> bytes:
        if isinstance(value, bytes):
            return value
        if not isinstance(value, str):
            raise SchemaMismatch(field_path, "data uri string", value_kind(value))
        return decode_data_uri(value).data

    def _body_fields(self, request_body: RequestBody, value: Any) -> List[Tuple[str, Any]]:
        """List (field name, field type) pairs of an object body.

        Declared fields come first in schema order; a free-form body lists
        the runtime keys with no type.
        """
        if not isinstance(value, dict):
            raise SchemaMismatch((BODY_ARGUMENT,), "object", value_kind(value))

        body_type = self.resolve(request_body.type)
        if isinstance(body_type, ObjectType) and body_type.fields:
            return list(body_type.fields.items())
        return [(name, None) for name in value]

    def _encode_field(self, field_type: Any, value: Any, field_path: Tuple[Any, ...]) -> ParameterItems:
        if field_type is None:
            return self.encoder.encode_arbitrary(value)
        return self.encoder.encode(field_type, value, field_path)

    def build_form_urlencoded(self, request_body: RequestBody, value: Any) -> str:
        """Render an object body as ``application/x-www-form-urlencoded``.

        Every top-level field is serialized with the query rules of its
        encoding directive (form, exploded by default).
        """
        chunks = []
        for name, field_type in self._body_fields(request_body, value):
            field_value = value.get(name)
            if field_value is None and is_nullable(field_type):
                continue

            directive = request_body.encoding.get(name) or EncodingDirective(name=name)
            items = self._encode_field(field_type, field_value, (BODY_ARGUMENT, name))
            chunk = encode_query(
                format_query_entries(name, directive, items), directive.allow_reserved
            )
            if chunk:
                chunks.append(chunk)
        return "&".join(chunks)

    def build_multipart(
        self, request_body: RequestBody, value: Any, arguments: Dict[str, Any]
    ) -> EncodedBody:
        """Render an object body as ``multipart/form-data``.

        Binary fields become file parts, objects and arrays a single JSON part
        unless their directive asks for decomposition, scalars text parts.
        """
        parts: List[RequestField] = []
        for name, field_type in self._body_fields(request_body, value):
            field_value = value.get(name)
            field_path = (BODY_ARGUMENT, name)
            if field_value is None:
                if is_nullable(field_type):
                    continue
                raise RequiredValueMissing(field_path)

            directive = request_body.encoding.get(name) or EncodingDirective(name=name)
            headers = self._part_headers(directive, arguments)
            parts.extend(
                self._multipart_fields(name, field_type, field_value, directive, headers, field_path)
            )

        boundary = multipart_boundary(parts)
        content, content_type = encode_multipart_formdata(parts, boundary=boundary)
        logger.debug("built multipart body with %d parts", len(parts))
        return EncodedBody(content, content_type)

    def _multipart_fields(
        self,
        name: str,
        field_type: Any,
        value: Any,
        directive: EncodingDirective,
        headers: Dict[str, str],
        field_path: Tuple[Any, ...],
    ) -> List[RequestField]:
        resolved = self.resolve(field_type)
        part_type = directive.content_type[0] if directive.content_type else None

        if _is_binary(resolved):
            return [self._file_field(name, value, headers, part_type, field_path)]

        # arrays of files are written as one file part per element
        if isinstance(resolved, ArrayType) and _is_binary(self.resolve(resolved.items)):
            if not isinstance(value, (list, tuple)):
                raise SchemaMismatch(field_path, "array", value_kind(value))
            fields = []
            for index, element in enumerate(value):
                if element is None:
                    if is_nullable(resolved.items):
                        continue
                    raise RequiredValueMissing(field_path + (index,))
                fields.append(
                    self._file_field(
                        f"{name}[]", element, headers, part_type, field_path + (index,), filename=name
                    )
                )
            return fields

        composite = isinstance(resolved, (ArrayType, ObjectType)) or (
            resolved is None and isinstance(value, (dict, list))
        )
        if composite and not self._decompose(directive):
            try:
                data = json.dumps(value, ensure_ascii=False)
            except (TypeError, ValueError) as e:
                raise BodyEncodingError(f"{name}: failed to encode JSON part: {e}")
            return [_request_field(name, data, headers, part_type or "application/json")]

        if composite:
            items = self._encode_field(field_type, value, field_path)
            fields = []
            for item in items:
                key = format_key(name, _DEEP_OBJECT, item.keys)
                for item_value in item.values:
                    fields.append(_request_field(key, item_value, headers, part_type))
            return fields

        if resolved is None:
            return [_request_field(name, stringify_scalar(value), headers, part_type)]

        items = self.encoder.encode(field_type, value, field_path)
        return [
            _request_field(name, item_value, headers, part_type)
            for item in items
            for item_value in item.values
        ]

    def _file_field(
        self,
        name: str,
        value: Any,
        headers: Dict[str, str],
        part_type: Optional[str],
        field_path: Tuple[Any, ...],
        filename: Optional[str] = None,
    ) -> RequestField:
        if isinstance(value, str) and value.startswith("data:"):
            data_uri = decode_data_uri(value)
            data, media_type = data_uri.data, data_uri.media_type
        else:
            data, media_type = self._decode_binary(value, field_path), None
        return _request_field(
            name, data, headers, part_type or media_type or OCTET_STREAM, filename=filename or name
        )

    @staticmethod
    def _decompose(directive: EncodingDirective) -> bool:
        """Composite values are split into bracket-keyed parts when the
        directive uses deepObject or its content types exclude JSON."""
        if directive.style == EncodingStyle.DEEP_OBJECT:
            return True
        if not directive.content_type:
            return False
        return not any(is_json_content_type(ct) for ct in directive.content_type)

    def _part_headers(self, directive: EncodingDirective, arguments: Dict[str, Any]) -> Dict[str, str]:
        headers = {}
        for header_name, parameter in directive.headers.items():
            argument = arguments.get(parameter.argument)
            # part headers are optional, an absent argument drops the header
            if header_name.lower() == "content-type" or argument is None:
                continue
            items = self.encoder.encode(parameter.type, argument, (parameter.argument,))
            header_value = format_header_value(parameter, items)
            if header_value:
                headers[header_name] = header_value
        return headers


def _is_binary(type_schema: Any) -> bool:
    return isinstance(type_schema, ScalarType) and type_schema.kind == ScalarKind.BINARY


def _request_field(
    name: str,
    data: Any,
    headers: Dict[str, str],
    content_type: Optional[str],
    filename: Optional[str] = None,
) -> RequestField:
    field = RequestField(name=name, data=data, filename=filename, headers=dict(headers))
    field.make_multipart(content_type=content_type)
    return field


def multipart_boundary(fields: List[RequestField]) -> str:
    """Derive the multipart boundary from the rendered parts.

    Identical parts always give the same boundary, which keeps multipart
    bodies byte-for-byte reproducible.
    """
    digest = hashlib.sha256()
    for field in fields:
        digest.update(field.render_headers().encode("utf-8"))
        data = field.data
        digest.update(data if isinstance(data, bytes) else str(data).encode("utf-8"))
    return digest.hexdigest()[:32]
