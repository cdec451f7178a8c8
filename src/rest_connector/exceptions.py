"""
Exception hierarchy for request encoding and execution.
"""

from typing import Any, Iterable, Optional


def format_field_path(path: Iterable[Any]) -> str:
    """Render a field path as ``name.field[0].child``."""
    rendered = ""
    for segment in path:
        if isinstance(segment, int):
            rendered += f"[{segment}]"
        elif rendered:
            rendered += f".{segment}"
        else:
            rendered = str(segment)
    return rendered


class ConnectorError(Exception):
    """Base exception for connector errors."""
    pass


class EncodingError(ConnectorError):
    """Raised when an argument value cannot be encoded.

    The message is qualified with the dotted path of the offending field so
    callers can tell which argument was malformed.
    """

    def __init__(self, field_path: Iterable[Any], reason: str):
        self.field_path = tuple(field_path)
        self.reason = reason
        path = format_field_path(self.field_path)
        super().__init__(f"{path}: {reason}" if path else reason)


class RequiredValueMissing(EncodingError):
    """Raised when a non-nullable field or parameter has no value."""

    def __init__(self, field_path: Iterable[Any]):
        super().__init__(field_path, "value is required")


class RequiredBodyMissing(RequiredValueMissing):
    """Raised when a non-nullable request body is not supplied."""

    def __init__(self):
        super().__init__(["body"])


class SchemaMismatch(EncodingError):
    """Raised when a value does not have the shape its schema declares."""

    def __init__(self, field_path: Iterable[Any], expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(field_path, f"expected {expected}, got {actual}")


class InvalidEnumValue(EncodingError):
    """Raised when a value is not one of the allowed enum values."""

    def __init__(self, field_path: Iterable[Any], value: Any, allowed: Iterable[str]):
        self.value = value
        self.allowed = list(allowed)
        super().__init__(
            field_path, f"the value must be one of {self.allowed}, got {value!r}"
        )


class BodyEncodingError(ConnectorError):
    """Raised when the request body cannot be serialized."""
    pass


class ConfigurationError(ConnectorError):
    """Raised when the connector schema declares something unsupported."""
    pass


class UnsupportedContentType(ConfigurationError):
    """Raised for request body content types without an encoder."""

    def __init__(self, content_type: str):
        self.content_type = content_type
        super().__init__(f"unsupported content type {content_type}")


class UnsupportedLocation(ConfigurationError):
    """Raised when a parameter location cannot carry the encoded value."""
    pass


class SchemaLoadError(ConnectorError):
    """Raised when the connector schema cannot be loaded or is invalid."""
    pass


class OperationNotFound(ConnectorError):
    """Raised when an operation name is not declared in the schema."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"operation {name} does not exist")


class UpstreamError(ConnectorError):
    """Raised when the remote server answers with an error status."""

    def __init__(self, status_code: int, message: str, details: Optional[Any] = None):
        super().__init__(f"{status_code} {message}".strip())
        self.status_code = status_code
        self.details = details
