"""Tests for connector schema loading."""

import json
from pathlib import Path

import pytest
import yaml

from rest_connector.config import load_schema, parse_document, render_env
from rest_connector.exceptions import OperationNotFound, SchemaLoadError
from rest_connector.models import (
    APIKeyScheme,
    HTTPAuthScheme,
    NamedType,
    ObjectType,
    ParameterLocation,
    ScalarKind,
)

FIXTURE = Path(__file__).parent / "fixtures" / "petstore.yaml"


def test_load_yaml_fixture():
    """Test loading the petstore schema from a YAML file."""
    schema = load_schema(FIXTURE, environ={"PETSTORE_API_KEY": "k123"})

    assert list(schema.functions) == ["findPets", "getPet"]
    assert list(schema.procedures) == ["addPet"]
    assert schema.settings.servers[0].url == "https://petstore.example.com/v1/"

    api_key = schema.settings.security_schemes["api_key"]
    assert isinstance(api_key, APIKeyScheme)
    assert api_key.location == ParameterLocation.HEADER
    assert api_key.value == "k123"
    assert isinstance(schema.settings.security_schemes["bearer"], HTTPAuthScheme)

    status = schema.scalar_types["Status"]
    assert status.kind == ScalarKind.ENUM
    assert status.one_of == ("available", "pending", "sold")

    find_pets = schema.get_operation("findPets")
    assert find_pets.parameters[1].name == "tags"
    assert find_pets.parameters[1].explode is False
    assert find_pets.parameters[2].location == ParameterLocation.HEADER
    assert isinstance(schema.get_operation("addPet").request_body.type, NamedType)


def test_load_json_string():
    """Test loading a schema from a JSON string."""
    content = json.dumps({"functions": {"ping": {"url": "https://api.example.com/ping"}}})
    schema = load_schema(content)

    assert schema.get_operation("ping").method == "get"


def test_load_dict_matches_yaml():
    """Test that a dict and its YAML file load the same schema."""
    with open(FIXTURE) as f:
        document = yaml.safe_load(f)

    environ = {"PETSTORE_TOKEN": "t"}
    assert load_schema(document, environ=environ) == load_schema(FIXTURE, environ=environ)


def test_registry_from_schema():
    """Test that the schema builds a registry of its named types."""
    registry = load_schema(FIXTURE, environ={}).build_registry()

    assert isinstance(registry.resolve("Pet"), ObjectType)
    assert registry.resolve("Status").kind == ScalarKind.ENUM
    assert registry.resolve("date-time").kind == ScalarKind.DATE_TIME
    assert registry.resolve("Unknown") is None


def test_operation_not_found():
    """Test that unknown operations are reported."""
    schema = load_schema(FIXTURE, environ={})
    with pytest.raises(OperationNotFound):
        schema.get_operation("deletePet")


def test_render_env():
    """Test environment templates."""
    environ = {"HOST": "example.com", "PORT": "8080"}

    assert render_env("https://{{HOST}}:{{PORT}}", environ) == "https://example.com:8080"
    assert render_env("{{MISSING:-fallback}}", environ) == "fallback"
    assert render_env("{{ MISSING }}", environ) == ""
    assert render_env({"a": ["{{HOST}}", 1]}, environ) == {"a": ["example.com", 1]}


def test_templates_only_apply_to_settings():
    """Test that operation urls are not rendered."""
    schema = load_schema(
        {"functions": {"op": {"url": "https://{{HOST}}/items"}}}, environ={"HOST": "x"}
    )
    assert schema.get_operation("op").url == "https://{{HOST}}/items"


@pytest.mark.parametrize(
    "source",
    [
        "key: [unclosed",
        "- just\n- a list\n",
        {"functions": {"op": {"method": "get"}}},
        {"settings": {"securitySchemes": {"x": {"type": "mutualTLS"}}}},
    ],
)
def test_invalid_schemas(source):
    """Test that malformed schemas raise SchemaLoadError."""
    with pytest.raises(SchemaLoadError):
        load_schema(source)


def test_missing_file():
    """Test that unreadable files raise SchemaLoadError."""
    with pytest.raises(SchemaLoadError):
        load_schema(Path("does-not-exist.yaml"))


def test_parse_document_prefers_json():
    """Test that JSON content is parsed before YAML."""
    assert parse_document('{"a": 1}') == {"a": 1}
    assert parse_document("a: 1") == {"a": 1}
