"""
Request assembler.

Turns an operation and its resolved arguments into a RequestDescriptor:
the literal method, URL, headers and body to send, plus the timeout and
retry policy of the call.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict
from requests.structures import CaseInsensitiveDict

from .body import BODY_ARGUMENT, BodyBuilder
from .encoder import ParameterEncoder
from .exceptions import ConfigurationError
from .formatter import (
    encode_query,
    format_cookie_value,
    format_header_value,
    format_query_entries,
    substitute_path,
)
from .models import (
    ConnectorSchema,
    Operation,
    ParameterLocation,
    RetryPolicy,
    ServerConfig,
)
from .security import inject_security

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_RETRY_DELAY = 1000
DEFAULT_RETRY_STATUSES = (429, 500, 502, 503)

SENSITIVE_HEADER = re.compile(r"auth|key|secret|token", re.IGNORECASE)


class RequestDescriptor(BaseModel):
    """A fully assembled HTTP request."""

    model_config = ConfigDict(frozen=True)

    method: str
    url: str
    headers: Dict[str, str] = {}
    body: Optional[bytes] = None
    content_type: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    retry: RetryPolicy = RetryPolicy()


def mask_headers(headers: Dict[str, str]) -> Dict[str, str]:
    """Copy of the headers with credentials replaced by ``***``."""
    return {
        name: "***" if SENSITIVE_HEADER.search(name) or name.lower() == "cookie" else value
        for name, value in headers.items()
    }


def join_url(base: str, path: str) -> str:
    if not base:
        return path
    if not path:
        return base
    return base.rstrip("/") + "/" + path.lstrip("/")


def _first(*values: Any, default: Any = None) -> Any:
    for value in values:
        if value:
            return value
    return default


class RequestAssembler:
    """Assembles requests for the operations of a connector schema."""

    def __init__(self, schema: ConnectorSchema):
        self.schema = schema
        self.registry = schema.build_registry()
        self.encoder = ParameterEncoder(self.registry)
        self.body_builder = BodyBuilder(self.registry)

    def select_server(self, server_id: Optional[str] = None) -> Optional[ServerConfig]:
        servers = self.schema.settings.servers
        if server_id is None:
            return servers[0] if servers else None
        for server in servers:
            if server.id == server_id:
                return server
        raise ConfigurationError(f"server {server_id} does not exist")

    def assemble(
        self,
        operation: Operation,
        arguments: Optional[Dict[str, Any]] = None,
        server_id: Optional[str] = None,
    ) -> RequestDescriptor:
        """Build the request descriptor of an operation call.

        Args:
            operation: Operation from the schema
            arguments: JSON-decoded argument values by name; the request
                body is read from the ``body`` argument
            server_id: Server to target, defaults to the first server

        Returns:
            RequestDescriptor

        Raises:
            EncodingError: If an argument cannot be encoded
            BodyEncodingError: If the body cannot be serialized
            ConfigurationError: If the schema cannot express the request
        """
        arguments = arguments or {}
        settings = self.schema.settings
        server = self.select_server(server_id)

        path, _, template_query = operation.url.partition("?")
        query_chunks = [template_query] if template_query else []
        parameter_headers: Dict[str, str] = {}
        cookies: List[str] = []

        def parameters_in(location: ParameterLocation):
            for parameter in operation.parameters:
                if parameter.location == location:
                    value = arguments.get(parameter.argument)
                    items = self.encoder.encode(parameter.type, value, (parameter.argument,))
                    yield parameter, items

        # formField parameters are fields of the body argument, built below
        for parameter, items in parameters_in(ParameterLocation.PATH):
            path = substitute_path(path, parameter.name, parameter, items)

        for parameter, items in parameters_in(ParameterLocation.QUERY):
            entries = format_query_entries(parameter.name, parameter, items)
            chunk = encode_query(entries, parameter.allow_reserved)
            if chunk:
                query_chunks.append(chunk)

        for parameter, items in parameters_in(ParameterLocation.HEADER):
            header_value = format_header_value(parameter, items)
            if header_value is not None:
                parameter_headers[parameter.name] = header_value

        for parameter, items in parameters_in(ParameterLocation.COOKIE):
            cookie = format_cookie_value(parameter.name, parameter, items)
            if cookie:
                cookies.append(cookie)

        # static headers first, parameter headers override them
        headers = CaseInsensitiveDict()
        static_sources = [settings.headers, server.headers if server else {}, operation.headers]
        for source in static_sources:
            for name, value in source.items():
                if value:
                    headers[name] = value
        headers.update(parameter_headers)

        body = None
        content_type = None
        if operation.request_body is not None:
            encoded = self.body_builder.build(
                operation.request_body, arguments.get(BODY_ARGUMENT), arguments
            )
            if encoded is not None:
                body, content_type = encoded
                headers["Content-Type"] = content_type

        security_query: List[Tuple[str, str]] = []
        requirements = operation.security if operation.security is not None else settings.security
        inject_security(requirements, settings.security_schemes, headers, security_query, cookies)
        if security_query:
            query_chunks.append(encode_query(security_query))

        if cookies:
            existing = headers.get("Cookie")
            headers["Cookie"] = "; ".join(([existing] if existing else []) + cookies)

        url = self._resolve_url(path, server)
        if query_chunks:
            url = f"{url}?{'&'.join(query_chunks)}"

        descriptor = RequestDescriptor(
            method=operation.method.upper(),
            url=url,
            headers=dict(headers),
            body=body,
            content_type=content_type,
            timeout=self.resolve_timeout(operation, server),
            retry=self.resolve_retry(operation, server),
        )
        logger.debug(
            "assembled request %s %s headers=%s",
            descriptor.method,
            descriptor.url,
            mask_headers(descriptor.headers),
        )
        return descriptor

    def _resolve_url(self, path: str, server: Optional[ServerConfig]) -> str:
        if re.match(r"^https?://", path, re.IGNORECASE):
            return path
        if server is None:
            raise ConfigurationError(f"no server configured for relative url {path}")
        return join_url(server.url, path)

    def resolve_timeout(self, operation: Operation, server: Optional[ServerConfig]) -> float:
        return _first(
            operation.timeout,
            server.timeout if server else None,
            self.schema.settings.timeout,
            default=DEFAULT_TIMEOUT,
        )

    def resolve_retry(self, operation: Operation, server: Optional[ServerConfig]) -> RetryPolicy:
        """Merge retry policies field by field; the first non-zero value wins."""
        policies = [
            policy
            for policy in (
                operation.retry,
                server.retry if server else None,
                self.schema.settings.retry,
            )
            if policy is not None
        ]
        return RetryPolicy(
            times=_first(*(p.times for p in policies), default=0),
            delay=_first(*(p.delay for p in policies), default=DEFAULT_RETRY_DELAY),
            http_status=_first(*(p.http_status for p in policies), default=DEFAULT_RETRY_STATUSES),
        )
