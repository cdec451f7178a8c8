"""
Loading of connector schemas from YAML or JSON.
"""

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml
from pydantic import ValidationError

from .exceptions import SchemaLoadError
from .models import ConnectorSchema

logger = logging.getLogger(__name__)

ENV_TEMPLATE = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*(?::-(.*?))?\s*\}\}")


def render_env(value: Any, environ: Optional[Mapping[str, str]] = None) -> Any:
    """Resolve ``{{VAR}}`` and ``{{VAR:-default}}`` templates in string values.

    Lists and dicts are walked recursively. Unset variables without a
    default render as an empty string.
    """
    environ = os.environ if environ is None else environ

    if isinstance(value, str):
        def replace(match: re.Match) -> str:
            name, default = match.group(1), match.group(2)
            resolved = environ.get(name)
            if resolved is None:
                if default is None:
                    logger.debug("environment variable %s is not set", name)
                return default or ""
            return resolved

        return ENV_TEMPLATE.sub(replace, value)
    if isinstance(value, list):
        return [render_env(item, environ) for item in value]
    if isinstance(value, dict):
        return {key: render_env(item, environ) for key, item in value.items()}
    return value


def parse_document(content: str) -> Dict[str, Any]:
    """Parse JSON, falling back to YAML.

    Raises:
        SchemaLoadError: If the content is neither
    """
    try:
        return json.loads(content)
    except json.JSONDecodeError:
        try:
            return yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise SchemaLoadError(f"Failed to parse schema: {e}")


def load_schema(
    source: Union[str, dict, Path], environ: Optional[Mapping[str, str]] = None
) -> ConnectorSchema:
    """
    Load and validate a connector schema.

    Args:
        source: Schema as a JSON/YAML string, dictionary, or Path object
        environ: Variables used to render templates in ``settings``,
            defaults to the process environment

    Returns:
        ConnectorSchema: The validated schema

    Raises:
        SchemaLoadError: If the schema cannot be read, parsed or validated
    """
    if isinstance(source, dict):
        document = source
    else:
        if isinstance(source, Path):
            try:
                content = source.read_text()
            except OSError as e:
                raise SchemaLoadError(f"Failed to read schema file: {e}")
        else:
            content = source
        document = parse_document(content)

    if not isinstance(document, dict):
        raise SchemaLoadError("Schema must be a mapping")

    document = dict(document)
    if "settings" in document:
        document["settings"] = render_env(document["settings"], environ)

    try:
        schema = ConnectorSchema.model_validate(document)
    except ValidationError as e:
        raise SchemaLoadError(f"Invalid connector schema: {e}")

    logger.debug(
        "loaded schema with %d functions and %d procedures",
        len(schema.functions),
        len(schema.procedures),
    )
    return schema
