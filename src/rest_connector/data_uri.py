"""
Decoding of data URIs used to pass file content through JSON arguments.
"""

import base64
import binascii
from dataclasses import dataclass, field
from typing import Dict
from urllib.parse import unquote_to_bytes

from .exceptions import BodyEncodingError


@dataclass
class DataURI:
    data: bytes
    media_type: str = ""
    parameters: Dict[str, str] = field(default_factory=dict)


def _b64decode(value: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise BodyEncodingError(f"illegal base64 data: {e}")


def decode_data_uri(value: str) -> DataURI:
    """Decode ``data:<media type>[;k=v...][;base64],<data>``.

    A value without the ``data:`` prefix is decoded as plain base64.

    Raises:
        BodyEncodingError: If the value is not a valid data URI or base64 string
    """
    if not value.startswith("data:"):
        return DataURI(data=_b64decode(value))

    header, sep, payload = value[len("data:"):].partition(",")
    if not sep or not payload:
        raise BodyEncodingError(f"invalid data uri: {value[:32]}")

    tokens = [token.strip() for token in header.split(";")]
    if tokens[-1] == "base64":
        data = _b64decode(payload)
        tokens.pop()
    else:
        if tokens[-1] == "ascii":
            tokens.pop()
        data = unquote_to_bytes(payload)

    media_type = tokens[0].lower() if tokens else ""
    parameters = {}
    for token in tokens[1:]:
        name, _, param_value = token.partition("=")
        if name:
            parameters[name.strip().lower()] = param_value.strip().strip('"')

    return DataURI(data=data, media_type=media_type, parameters=parameters)
