"""Tests for the OpenAPI serialization formatter."""

import pytest

from rest_connector.encoder import ParameterEncoder
from rest_connector.exceptions import UnsupportedLocation
from rest_connector.formatter import (
    RESERVED_CHARACTERS,
    encode_query,
    format_cookie_value,
    format_header_value,
    format_key,
    format_query_entries,
    substitute_path,
)
from rest_connector.models import ArrayType, EncodingDirective, EncodingStyle, ObjectType, ScalarType
from rest_connector.parameter import EMPTY_KEY, Key, ParameterItem, ParameterItems


def directive(style: EncodingStyle = EncodingStyle.FORM, explode=None, **kwargs) -> EncodingDirective:
    return EncodingDirective(name="id", style=style, explode=explode, **kwargs)


def items(keys, values) -> ParameterItems:
    return ParameterItems([ParameterItem(tuple(Key(k) for k in keys), list(values))])


def render(d: EncodingDirective, parameter_items: ParameterItems) -> str:
    """Render entries without escaping, to compare with the documented forms."""
    return "&".join(f"{k}={v}" for k, v in format_query_entries("id", d, parameter_items))


ARRAY = items([""], ["3", "4", "5"])


@pytest.mark.parametrize(
    "style,explode,expected",
    [
        (EncodingStyle.FORM, True, "id=3&id=4&id=5"),
        (EncodingStyle.FORM, False, "id=3,4,5"),
        (EncodingStyle.SPACE_DELIMITED, True, "id=3&id=4&id=5"),
        (EncodingStyle.SPACE_DELIMITED, False, "id=3 4 5"),
        (EncodingStyle.PIPE_DELIMITED, True, "id=3&id=4&id=5"),
        (EncodingStyle.PIPE_DELIMITED, False, "id=3|4|5"),
        (EncodingStyle.DEEP_OBJECT, True, "id[]=3&id[]=4&id[]=5"),
        (EncodingStyle.DEEP_OBJECT, False, "id[]=3&id[]=4&id[]=5"),
    ],
)
def test_array_style_matrix(style, explode, expected):
    """Test the style/explode matrix for an array value."""
    assert render(directive(style, explode), ARRAY) == expected


def test_single_scalar():
    """Test that a scalar renders under the parameter name."""
    assert render(directive(), items([], ["3"])) == "id=3"
    assert render(directive(explode=False), items([], ["3"])) == "id=3"


@pytest.mark.parametrize(
    "style,explode,expected",
    [
        (EncodingStyle.FORM, False, "id=role,admin"),
        (EncodingStyle.FORM, True, "role=admin"),
        (EncodingStyle.DEEP_OBJECT, True, "id[role]=admin"),
    ],
)
def test_object_key_nesting(style, explode, expected):
    """Test rendering of an object field key."""
    assert render(directive(style, explode), items(["role"], ["admin"])) == expected


def test_nested_array_of_objects():
    """Test keys of objects nested in arrays."""
    keys = ["role", "", "user", ""]

    assert render(directive(explode=True), items(keys, ["admin"])) == "role[][user]=admin"
    assert (
        render(directive(explode=True), items(keys, ["admin", "anonymous"]))
        == "role[][user]=admin&role[][user]=anonymous"
    )
    assert render(directive(explode=False), items(keys, ["admin"])) == "id=role[][user],admin"
    assert (
        render(directive(EncodingStyle.DEEP_OBJECT, True), items(keys, ["admin", "anonymous"]))
        == "id[role][][user][]=admin&id[role][][user][]=anonymous"
    )


def test_format_key():
    """Test key rendering for empty names and placeholders."""
    form = directive()
    deep = directive(EncodingStyle.DEEP_OBJECT, True)

    assert format_key("id", form, ()) == "id"
    assert format_key("id", form, (EMPTY_KEY,)) == "id"
    assert format_key("id", deep, (EMPTY_KEY,)) == "id[]"
    assert format_key("", deep, (Key("a"), Key("b"))) == "a[b]"
    assert format_key("filter", deep, (Key("tags"), EMPTY_KEY)) == "filter[tags][]"
    assert format_key("items", deep, (Key(index=0), Key("id"))) == "items[0][id]"
    assert format_key("items", deep, (Key("ids"), Key(index=2))) == "items[ids][]"
    assert format_key("items", form, (Key(index=1), Key("id"))) == "items[1][id]"


def test_deep_object_array_of_objects():
    """Test that each object element keeps its own index."""
    schema = ArrayType(
        items=ObjectType(fields={"price": ScalarType(kind="string"), "quantity": ScalarType(kind="integer")})
    )
    parameter_items = ParameterEncoder().encode(
        schema, [{"price": "p1", "quantity": 1}, {"price": "p2", "quantity": 2}]
    )
    entries = format_query_entries(
        "line_items", directive(EncodingStyle.DEEP_OBJECT, True), parameter_items
    )

    assert "&".join(f"{k}={v}" for k, v in entries) == (
        "line_items[0][price]=p1&line_items[0][quantity]=1"
        "&line_items[1][price]=p2&line_items[1][quantity]=2"
    )
    assert encode_query(entries).startswith("line_items%5B0%5D%5Bprice%5D=p1&")


def test_empty_items_produce_no_entries():
    """Test that empty values are skipped."""
    assert format_query_entries("id", directive(), ParameterItems()) == []


def test_encode_query_escapes_by_default():
    """Test standard query escaping."""
    value = RESERVED_CHARACTERS
    encoded = encode_query([("q", value)])

    assert encoded.startswith("q=")
    for char in ":/?#[]@!$&'()*+,;=":
        assert char not in encoded[2:]


def test_encode_query_allow_reserved():
    """Test that reserved characters pass through with allowReserved."""
    value = ":/?#[]@!$&'()*+,;="
    assert encode_query([("q", value)], allow_reserved=True) == f"q={value}"


def test_encode_query_allow_reserved_still_escapes_others():
    """Test that non-reserved unsafe characters are still escaped."""
    assert encode_query([("q", "a b")], allow_reserved=True) == "q=a%20b"


def test_encode_query_brackets_in_keys():
    """Test that bracket keys are percent-encoded by default."""
    assert encode_query([("id[]", "3")]) == "id%5B%5D=3"


def test_header_value_scalar_and_array():
    """Test header values of scalars and arrays."""
    assert format_header_value(directive(), items([], ["5"])) == "5"
    assert format_header_value(directive(), items([""], ["3", "4", "5"])) == "3,4,5"


def test_header_value_object():
    """Test header values of objects."""
    parameter_items = ParameterItems(
        [
            ParameterItem((Key("role"),), ["admin"]),
            ParameterItem((Key("first"),), ["Alex"]),
        ]
    )

    assert format_header_value(directive(explode=False), parameter_items) == "role,admin,first,Alex"
    assert format_header_value(directive(explode=True), parameter_items) == "role=admin,first=Alex"


def test_header_value_empty():
    """Test that an empty value produces no header."""
    assert format_header_value(directive(), ParameterItems()) is None


def test_cookie_value():
    """Test cookie rendering."""
    assert format_cookie_value("session", directive(), items([], ["abc"])) == "session=abc"
    assert format_cookie_value("session", directive(), ParameterItems()) is None


def test_cookie_value_escapes_delimiters():
    """Test that cookie values cannot break out of their pair."""
    assert format_cookie_value("session", directive(), items([], ["a;b,c"])) == "session=a%3Bb%2Cc"
    assert (
        format_cookie_value("tags", directive(explode=False), items([""], ["x,y", "z"]))
        == "tags=x%2Cy,z"
    )


def test_substitute_path():
    """Test path placeholder substitution."""
    d = directive()
    assert substitute_path("/pets/{id}", "id", d, items([], ["5"])) == "/pets/5"
    assert substitute_path("/pets/{id}", "id", d, items([""], ["3", "4"])) == "/pets/3,4"
    assert substitute_path("/files/{id}", "id", d, items([], ["a/b"])) == "/files/a%2Fb"


def test_substitute_path_allow_reserved():
    """Test that reserved characters are kept with allowReserved."""
    d = directive(allow_reserved=True)
    assert substitute_path("/files/{id}", "id", d, items([], ["a/b"])) == "/files/a/b"


def test_substitute_path_rejects_objects():
    """Test that object values cannot be substituted into a path."""
    with pytest.raises(UnsupportedLocation):
        substitute_path("/pets/{id}", "id", directive(), items(["role"], ["admin"]))
