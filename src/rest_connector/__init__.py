"""REST connector: encodes typed operation arguments into HTTP requests."""

from .assembler import RequestAssembler, RequestDescriptor
from .body import BodyBuilder, EncodedBody
from .client import HTTPClient, UpstreamResponse
from .config import load_schema
from .encoder import ParameterEncoder
from .exceptions import ConnectorError
from .models import ConnectorSchema, EncodingDirective, TypeRegistry
from .parameter import ParameterItems

__version__ = "0.1.0"
__all__ = [
    "BodyBuilder",
    "ConnectorError",
    "ConnectorSchema",
    "EncodedBody",
    "EncodingDirective",
    "HTTPClient",
    "ParameterEncoder",
    "ParameterItems",
    "RequestAssembler",
    "RequestDescriptor",
    "TypeRegistry",
    "UpstreamResponse",
    "load_schema",
]
