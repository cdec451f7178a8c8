"""
Command-line interface for the REST connector.
"""

import base64
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import typer

from .assembler import RequestAssembler, RequestDescriptor
from .client import HTTPClient
from .config import load_schema
from .exceptions import ConnectorError
from .models import ConnectorSchema

app = typer.Typer(help="Build and send REST requests from a connector schema")


@app.callback()
def configure(
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level, e.g. DEBUG or INFO"),
) -> None:
    """Build and send REST requests from a connector schema."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load(schema_file: Path) -> ConnectorSchema:
    try:
        return load_schema(schema_file)
    except ConnectorError as e:
        typer.echo(f"Error loading {schema_file}: {str(e)}", err=True)
        raise typer.Exit(1)


def _load_arguments(args: Optional[str], args_file: Optional[Path]) -> Dict[str, Any]:
    """Read operation arguments from a JSON string or file.

    Raises:
        typer.Exit: If the arguments are not a JSON object
    """
    try:
        if args_file is not None:
            arguments = json.loads(args_file.read_text())
        elif args:
            arguments = json.loads(args)
        else:
            arguments = {}
    except (OSError, ValueError) as e:
        typer.echo(f"Error reading arguments: {str(e)}", err=True)
        raise typer.Exit(1)

    if not isinstance(arguments, dict):
        typer.echo("Error reading arguments: expected a JSON object", err=True)
        raise typer.Exit(1)
    return arguments


def descriptor_to_dict(descriptor: RequestDescriptor) -> Dict[str, Any]:
    """JSON-friendly form of a descriptor; binary bodies are base64 encoded."""
    result = descriptor.model_dump(mode="json", exclude={"body"})
    body = descriptor.body
    if body is not None:
        try:
            result["body"] = body.decode("utf-8")
        except UnicodeDecodeError:
            result["body"] = base64.b64encode(body).decode("ascii")
            result["body_encoding"] = "base64"
    return result


def _assemble(
    schema_file: Path,
    operation_name: str,
    args: Optional[str],
    args_file: Optional[Path],
    server: Optional[str],
) -> RequestDescriptor:
    schema = _load(schema_file)
    arguments = _load_arguments(args, args_file)
    try:
        operation = schema.get_operation(operation_name)
        return RequestAssembler(schema).assemble(operation, arguments, server_id=server)
    except ConnectorError as e:
        typer.echo(f"Error: {str(e)}", err=True)
        raise typer.Exit(1)


@app.command()
def operations(
    schema_file: Path = typer.Argument(..., help="Path to the connector schema (YAML or JSON)"),
) -> None:
    """List the functions and procedures of a schema."""
    schema = _load(schema_file)
    for kind, entries in (("function", schema.functions), ("procedure", schema.procedures)):
        for name, operation in entries.items():
            line = f"{kind}\t{name}\t{operation.method.upper()} {operation.url}"
            if operation.description:
                line += f"\t{operation.description}"
            typer.echo(line)


@app.command()
def build(
    schema_file: Path = typer.Argument(..., help="Path to the connector schema (YAML or JSON)"),
    operation_name: str = typer.Argument(..., help="Name of the function or procedure"),
    args: Optional[str] = typer.Option(None, "--args", "-a", help="Arguments as a JSON object"),
    args_file: Optional[Path] = typer.Option(None, "--args-file", help="File with the arguments JSON"),
    server: Optional[str] = typer.Option(None, "--server", "-s", help="ID of the server to target"),
) -> None:
    """Print the assembled request without sending it."""
    descriptor = _assemble(schema_file, operation_name, args, args_file, server)
    typer.echo(json.dumps(descriptor_to_dict(descriptor), indent=2))


@app.command()
def send(
    schema_file: Path = typer.Argument(..., help="Path to the connector schema (YAML or JSON)"),
    operation_name: str = typer.Argument(..., help="Name of the function or procedure"),
    args: Optional[str] = typer.Option(None, "--args", "-a", help="Arguments as a JSON object"),
    args_file: Optional[Path] = typer.Option(None, "--args-file", help="File with the arguments JSON"),
    server: Optional[str] = typer.Option(None, "--server", "-s", help="ID of the server to target"),
) -> None:
    """Send the request and print the decoded response."""
    descriptor = _assemble(schema_file, operation_name, args, args_file, server)
    try:
        response = HTTPClient().send(descriptor)
    except ConnectorError as e:
        typer.echo(f"Error: {str(e)}", err=True)
        details = getattr(e, "details", None)
        if details:
            typer.echo(json.dumps(details, indent=2), err=True)
        raise typer.Exit(1)

    if isinstance(response.data, str):
        typer.echo(response.data)
    else:
        typer.echo(json.dumps(response.data, indent=2))


def main():
    """Entry point for the CLI."""
    app()
