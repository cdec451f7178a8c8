"""
Serialization formatter.

Renders parameter items into query entries, header values, cookies and path
segments following the OpenAPI 3.1 serialization rules:
https://swagger.io/docs/specification/serialization/
"""

from typing import Iterable, List, Optional, Sequence, Tuple
from urllib.parse import quote, urlencode

from .exceptions import UnsupportedLocation
from .models import EncodingDirective, EncodingStyle
from .parameter import Key, ParameterItem, ParameterItems, keys_to_string

RESERVED_CHARACTERS = ":/?#[]@!$&'()*+,;="

QueryEntry = Tuple[str, str]


def format_key(name: str, directive: EncodingDirective, keys: Sequence[Key]) -> str:
    """Render the wire key of a parameter item.

    Form style objects omit the parameter name (``role=admin``), every other
    key component is bracketed (``id[role][]``, ``items[0][id]``). Trailing
    placeholders are dropped unless the style is deepObject, which keeps
    explicit ``[]`` array markers and renders a trailing index as ``[]``.

    Args:
        name: Parameter name, may be empty
        directive: Encoding directive of the parameter
        keys: Key path of the item

    Returns:
        str: The rendered key
    """
    keys = list(keys)
    if directive.style != EncodingStyle.DEEP_OBJECT:
        while keys and keys[-1].is_empty:
            keys.pop()

    parts = []
    omit_name = (
        directive.style == EncodingStyle.FORM
        and bool(keys)
        and not keys[0].is_empty
        and not keys[0].is_index
    )
    if name and not omit_name:
        parts.append(name)
    for position, key in enumerate(keys):
        if not parts:
            parts.append(str(key))
        elif (
            key.is_index
            and position == len(keys) - 1
            and directive.style == EncodingStyle.DEEP_OBJECT
        ):
            parts.append("[]")
        else:
            parts.append(f"[{key}]")
    return "".join(parts)


def format_query_entries(
    name: str, directive: EncodingDirective, items: Iterable
) -> List[QueryEntry]:
    """Render parameter items as ordered (key, value) query entries."""
    entries: List[QueryEntry] = []
    for item in items:
        if not item.values:
            continue

        # deepObject has no non-exploded form
        if directive.is_exploded or directive.style == EncodingStyle.DEEP_OBJECT:
            key = format_key(name, directive, item.keys)
            entries.extend((key, value) for value in item.values)
        elif directive.style == EncodingStyle.SPACE_DELIMITED:
            entries.append((name, " ".join(item.values)))
        elif directive.style == EncodingStyle.PIPE_DELIMITED:
            entries.append((name, "|".join(item.values)))
        else:
            path = format_key("", directive, item.keys)
            values = [path, *item.values] if path else item.values
            entries.append((name, ",".join(values)))
    return entries


def encode_query(entries: Iterable[QueryEntry], allow_reserved: bool = False) -> str:
    """Percent-encode query entries.

    With ``allow_reserved`` the reserved characters are written as is.
    """
    if not allow_reserved:
        return urlencode(list(entries))

    return "&".join(
        f"{quote(key, safe=RESERVED_CHARACTERS)}={quote(value, safe=RESERVED_CHARACTERS)}"
        for key, value in entries
    )


def format_header_value(directive: EncodingDirective, items: ParameterItems) -> Optional[str]:
    """Collapse parameter items into a single header value."""
    default = items.find_default()
    if default is not None:
        return ",".join(default.values)
    if not len(items):
        return None

    if directive.is_exploded:
        return ",".join(
            f"{keys_to_string(item.keys)}={','.join(item.values)}" for item in items
        )

    values = []
    for item in items:
        key = keys_to_string(item.keys)
        for value in item.values:
            values.extend((key, value))
    return ",".join(values)


def format_cookie_value(
    name: str, directive: EncodingDirective, items: ParameterItems
) -> Optional[str]:
    """Render parameter items as ``key=value`` cookie pairs.

    Values are percent-encoded before the form delimiters are added, so
    ``tags=a,b`` keeps its commas while a literal ``;`` becomes ``%3B``.
    """
    quoted = ParameterItems(
        ParameterItem(item.keys, [quote(value, safe="") for value in item.values])
        for item in items
    )
    entries = format_query_entries(name, directive, quoted)
    if not entries:
        return None
    return "; ".join(f"{key}={value}" for key, value in entries)


def substitute_path(
    path: str, name: str, directive: EncodingDirective, items: ParameterItems
) -> str:
    """Replace the ``{name}`` placeholder of a URL path template.

    Raises:
        UnsupportedLocation: If the value has no plain (unkeyed) form
    """
    if not len(items):
        return path

    default = items.find_default()
    if default is None or len(items) > 1:
        raise UnsupportedLocation(
            f"{name}: object values cannot be substituted into the URL path"
        )

    safe = RESERVED_CHARACTERS if directive.allow_reserved else ""
    value = ",".join(quote(v, safe=safe) for v in default.values)
    return path.replace("{" + name + "}", value)
