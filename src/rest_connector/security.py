"""
Security scheme injection.

Only one security requirement is honored: the first one whose schemes all
carry a configured credential. The remaining requirements are ignored, so
alternative (OR) requirements work but not every OpenAPI combination does.
"""

import base64
import logging
from typing import Dict, List, MutableMapping, Optional, Tuple

from .exceptions import UnsupportedLocation
from .models import (
    APIKeyScheme,
    HTTPAuthScheme,
    OAuth2Scheme,
    ParameterLocation,
    SecurityRequirement,
)

logger = logging.getLogger(__name__)


def http_credential(scheme: HTTPAuthScheme) -> Optional[str]:
    """Render the Authorization value of an http scheme.

    Basic credentials are built from username and password when no
    pre-encoded value is configured.
    """
    name = scheme.scheme
    if name.lower() in ("bearer", "basic"):
        name = name.lower().capitalize()

    value = scheme.value
    if not value and name == "Basic" and scheme.username:
        raw = f"{scheme.username}:{scheme.password or ''}"
        value = base64.b64encode(raw.encode("utf-8")).decode("ascii")
    if not value:
        return None
    return f"{name} {value}"


def is_configured(scheme) -> bool:
    if isinstance(scheme, HTTPAuthScheme):
        return http_credential(scheme) is not None
    return bool(scheme.value)


def select_requirement(
    requirements: List[SecurityRequirement], schemes: Dict[str, object]
) -> Optional[SecurityRequirement]:
    """Pick the first non-empty requirement whose schemes are all configured."""
    for requirement in requirements:
        if not requirement:
            continue
        if all(name in schemes and is_configured(schemes[name]) for name in requirement):
            return requirement
    return None


def inject_security(
    requirements: List[SecurityRequirement],
    schemes: Dict[str, object],
    headers: MutableMapping[str, str],
    query: List[Tuple[str, str]],
    cookies: List[str],
) -> Optional[SecurityRequirement]:
    """Apply credentials of the selected requirement.

    Headers are overwritten, query entries and cookies are appended.

    Returns:
        The requirement that was applied, or None

    Raises:
        UnsupportedLocation: If an apiKey scheme targets a path or form field
    """
    requirement = select_requirement(requirements, schemes)
    if requirement is None:
        if requirements:
            logger.debug("no configured credential for security %s", requirements)
        return None

    for name in requirement:
        scheme = schemes[name]
        if isinstance(scheme, HTTPAuthScheme):
            headers[scheme.header] = http_credential(scheme)
        elif isinstance(scheme, OAuth2Scheme):
            headers[scheme.header] = f"Bearer {scheme.value}"
        elif isinstance(scheme, APIKeyScheme):
            if scheme.location == ParameterLocation.HEADER:
                headers[scheme.name] = scheme.value
            elif scheme.location == ParameterLocation.QUERY:
                query.append((scheme.name, scheme.value))
            elif scheme.location == ParameterLocation.COOKIE:
                cookies.append(f"{scheme.name}={scheme.value}")
            else:
                raise UnsupportedLocation(
                    f"unsupported location for apiKey scheme {name}: {scheme.location.value}"
                )
    return requirement
