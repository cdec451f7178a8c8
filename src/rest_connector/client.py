"""
HTTP execution of assembled requests.
"""

import base64
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

from .assembler import RequestDescriptor, mask_headers
from .body import is_json_content_type, media_type_of
from .exceptions import UpstreamError

logger = logging.getLogger(__name__)

MIN_RETRY_DELAY = 100


@dataclass
class UpstreamResponse:
    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    data: Any = None


def decode_content(content: bytes, content_type: str) -> Any:
    """Decode a response payload: JSON to Python values, text to str and
    anything else to a base64 string."""
    if not content:
        return None
    if is_json_content_type(content_type):
        return json.loads(content)
    if media_type_of(content_type).startswith("text/"):
        return content.decode("utf-8", errors="replace")
    return base64.b64encode(content).decode("ascii")


def _error_details(response: requests.Response) -> Optional[Dict[str, Any]]:
    if not response.content:
        return None
    if is_json_content_type(response.headers.get("Content-Type", "")):
        try:
            return {"error": response.json()}
        except ValueError:
            pass
    return {"error": response.text}


class HTTPClient:
    """Sends request descriptors with a requests session.

    Responses with a status listed in the retry policy are retried; network
    errors are not.
    """

    def __init__(self, session: Optional[requests.Session] = None):
        self.session = session or requests.Session()

    def _request(self, descriptor: RequestDescriptor) -> requests.Response:
        try:
            return self.session.request(
                descriptor.method,
                descriptor.url,
                headers=descriptor.headers,
                data=descriptor.body,
                timeout=descriptor.timeout,
            )
        except requests.RequestException as e:
            raise UpstreamError(500, f"failed to execute the request: {e}")

    def send(self, descriptor: RequestDescriptor) -> UpstreamResponse:
        """Execute a request.

        Raises:
            UpstreamError: If the request fails or the server answers with
                an error status
        """
        retry = descriptor.retry
        retry_statuses = retry.http_status or ()
        delay = max(retry.delay, MIN_RETRY_DELAY) / 1000

        attempt = 0
        while True:
            response = self._request(descriptor)
            if (
                response.ok
                or response.status_code not in retry_statuses
                or attempt >= retry.times
            ):
                break
            attempt += 1
            logger.debug(
                "received %s from %s, retry %d of %d",
                response.status_code,
                descriptor.url,
                attempt,
                retry.times,
            )
            time.sleep(delay)

        if response.status_code >= 400:
            logger.debug(
                "request %s %s failed with %s, headers=%s",
                descriptor.method,
                descriptor.url,
                response.status_code,
                mask_headers(descriptor.headers),
            )
            raise UpstreamError(response.status_code, response.reason or "", _error_details(response))

        content_type = response.headers.get("Content-Type", "")
        try:
            data = decode_content(response.content, content_type)
        except ValueError as e:
            raise UpstreamError(response.status_code, f"failed to decode response: {e}")
        return UpstreamResponse(response.status_code, dict(response.headers), data)
