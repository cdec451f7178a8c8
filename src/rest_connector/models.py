"""
Data models for the connector schema.

The schema is produced by an external translation step (OpenAPI v2/v3 or
hand-written YAML) and is treated as read-only once loaded.
"""

from enum import Enum
from types import MappingProxyType
from typing import Annotated, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import OperationNotFound


class ScalarKind(str, Enum):
    """Representation kinds of scalar values."""

    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"
    DATE = "date"
    DATE_TIME = "date-time"
    UUID = "uuid"
    BYTES = "bytes"
    BINARY = "binary"
    ENUM = "enum"
    JSON = "json"
    UNIX_TIME = "unix-time"


class ParameterLocation(str, Enum):
    QUERY = "query"
    HEADER = "header"
    PATH = "path"
    COOKIE = "cookie"
    FORM_FIELD = "formField"


class EncodingStyle(str, Enum):
    FORM = "form"
    SPACE_DELIMITED = "spaceDelimited"
    PIPE_DELIMITED = "pipeDelimited"
    DEEP_OBJECT = "deepObject"


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class ScalarType(FrozenModel):
    """A scalar value of a given representation kind."""

    type: Literal["scalar"] = "scalar"
    kind: ScalarKind = ScalarKind.STRING
    one_of: Optional[Tuple[str, ...]] = Field(None, alias="oneOf")


class ObjectType(FrozenModel):
    """An object with named fields, in declaration order.

    A field is optional when its schema is a NullableType.
    """

    type: Literal["object"] = "object"
    description: Optional[str] = None
    fields: Dict[str, "TypeSchema"] = Field(default_factory=dict)


class ArrayType(FrozenModel):
    type: Literal["array"] = "array"
    items: "TypeSchema"


class NullableType(FrozenModel):
    type: Literal["nullable"] = "nullable"
    underlying: "TypeSchema"


class NamedType(FrozenModel):
    """A reference to a registered scalar or object type."""

    type: Literal["named"] = "named"
    name: str


TypeSchema = Annotated[
    Union[ScalarType, ObjectType, ArrayType, NullableType, NamedType],
    Field(discriminator="type"),
]


class TypeRegistry:
    """Read-only lookup of named scalar and object types.

    Built once when the schema is loaded and shared by every encoder call.
    """

    def __init__(
        self,
        scalar_types: Optional[Dict[str, ScalarType]] = None,
        object_types: Optional[Dict[str, ObjectType]] = None,
    ):
        self.scalar_types = MappingProxyType(dict(scalar_types or {}))
        self.object_types = MappingProxyType(dict(object_types or {}))

    def resolve(self, name: str) -> Optional[Union[ScalarType, ObjectType]]:
        """Resolve a type name.

        Names that are not registered but match a scalar kind (``integer``,
        ``date-time``...) resolve to an inline scalar of that kind.

        Args:
            name: Name referenced by a NamedType

        Returns:
            The registered type, or None when the name is unknown
        """
        if name in self.scalar_types:
            return self.scalar_types[name]
        if name in self.object_types:
            return self.object_types[name]
        try:
            return ScalarType(kind=ScalarKind(name))
        except ValueError:
            return None


class EncodingDirective(FrozenModel):
    """Serialization metadata of a parameter or body field."""

    name: str = ""
    location: ParameterLocation = Field(ParameterLocation.QUERY, alias="in")
    style: EncodingStyle = EncodingStyle.FORM
    explode: Optional[bool] = None
    allow_reserved: bool = Field(False, alias="allowReserved")
    content_type: Tuple[str, ...] = Field((), alias="contentType")
    headers: Dict[str, "RequestParameter"] = Field(default_factory=dict)
    argument_name: Optional[str] = Field(None, alias="argumentName")

    @property
    def is_exploded(self) -> bool:
        if self.explode is None:
            return self.style == EncodingStyle.FORM
        return self.explode

    @property
    def argument(self) -> str:
        """Name of the operation argument that supplies the value."""
        return self.argument_name or self.name


class RequestParameter(EncodingDirective):
    """A URL, header or cookie parameter of an operation."""

    name: str
    type: TypeSchema


class RequestBody(FrozenModel):
    content_type: str = Field("application/json", alias="contentType")
    type: Optional[TypeSchema] = None
    encoding: Dict[str, EncodingDirective] = Field(default_factory=dict)


class RetryPolicy(FrozenModel):
    """Retry settings. ``delay`` is in milliseconds."""

    times: int = 0
    delay: int = 0
    http_status: Optional[Tuple[int, ...]] = Field(None, alias="httpStatus")


class APIKeyScheme(FrozenModel):
    type: Literal["apiKey"] = "apiKey"
    name: str
    location: ParameterLocation = Field(ParameterLocation.HEADER, alias="in")
    value: Optional[str] = None


class HTTPAuthScheme(FrozenModel):
    type: Literal["http"] = "http"
    scheme: str = "bearer"
    header: str = "Authorization"
    value: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None


class OAuth2Scheme(FrozenModel):
    """OAuth2 or OpenID Connect scheme with a pre-issued access token."""

    type: Literal["oauth2", "openIdConnect"] = "oauth2"
    header: str = "Authorization"
    value: Optional[str] = None


SecurityScheme = Annotated[
    Union[APIKeyScheme, HTTPAuthScheme, OAuth2Scheme],
    Field(discriminator="type"),
]

SecurityRequirement = Dict[str, List[str]]


class ServerConfig(FrozenModel):
    id: Optional[str] = None
    url: str
    headers: Dict[str, str] = Field(default_factory=dict)
    timeout: Optional[float] = None
    retry: Optional[RetryPolicy] = None


class ConnectorSettings(FrozenModel):
    servers: List[ServerConfig] = Field(default_factory=list)
    headers: Dict[str, str] = Field(default_factory=dict)
    timeout: Optional[float] = None
    retry: Optional[RetryPolicy] = None
    security_schemes: Dict[str, SecurityScheme] = Field(
        default_factory=dict, alias="securitySchemes"
    )
    security: List[SecurityRequirement] = Field(default_factory=list)


class Operation(FrozenModel):
    """A REST operation resolved by the schema translator."""

    url: str
    method: str = "get"
    description: Optional[str] = None
    headers: Dict[str, str] = Field(default_factory=dict)
    parameters: List[RequestParameter] = Field(default_factory=list)
    request_body: Optional[RequestBody] = Field(None, alias="requestBody")
    security: Optional[List[SecurityRequirement]] = None
    timeout: Optional[float] = None
    retry: Optional[RetryPolicy] = None


class ConnectorSchema(FrozenModel):
    """The complete connector schema.

    ``functions`` are read operations and ``procedures`` are write
    operations; both are assembled the same way.
    """

    settings: ConnectorSettings = Field(default_factory=ConnectorSettings)
    scalar_types: Dict[str, ScalarType] = Field(default_factory=dict, alias="scalarTypes")
    object_types: Dict[str, ObjectType] = Field(default_factory=dict, alias="objectTypes")
    functions: Dict[str, Operation] = Field(default_factory=dict)
    procedures: Dict[str, Operation] = Field(default_factory=dict)

    def get_operation(self, name: str) -> Operation:
        if name in self.functions:
            return self.functions[name]
        if name in self.procedures:
            return self.procedures[name]
        raise OperationNotFound(name)

    def build_registry(self) -> TypeRegistry:
        return TypeRegistry(self.scalar_types, self.object_types)


for _model in (
    ObjectType,
    ArrayType,
    NullableType,
    EncodingDirective,
    RequestParameter,
    RequestBody,
    Operation,
    ConnectorSchema,
):
    _model.model_rebuild()
