from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any

import click

from schemaservice.cli.output import display_errors, display_schema
from schemaservice.config import ConfigError, ServiceConfig
from schemaservice.core.errors import format_exception
from schemaservice.core.json import JSONDecodeError
from schemaservice.core.version import SCHEMASERVICE_VERSION
from schemaservice.documents import JSONDocument
from schemaservice.registry import SchemaRegistry
from schemaservice.schemas import ResolvedSchema

if sys.version_info < (3, 11):
    from tomli import TOMLDecodeError
else:
    from tomllib import TOMLDecodeError

__all__ = ["schemaservice"]

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@click.group(context_settings=CONTEXT_SETTINGS)  # type: ignore[untyped-decorator]
@click.option(  # type: ignore[untyped-decorator]
    "--config-file",
    "config_file",
    help="The path to `schemaservice.toml` file to use for configuration",
    metavar="PATH",
    type=str,
)
@click.option("-v", "--verbose", is_flag=True, help="Log schema loading and invalidation details")  # type: ignore[untyped-decorator]
@click.version_option(SCHEMASERVICE_VERSION, prog_name="schemaservice")  # type: ignore[untyped-decorator]
@click.pass_context  # type: ignore[untyped-decorator]
def schemaservice(ctx: click.Context, config_file: str | None, verbose: bool) -> None:
    """Resolve JSON Schemas for documents."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    try:
        if config_file is not None:
            config = ServiceConfig.from_path(config_file)
        else:
            config = ServiceConfig.discover()
    except FileNotFoundError:
        click.secho(f"❌  Failed to load configuration file from {config_file}", fg="red", bold=True, err=True)
        click.echo("\nThe configuration file does not exist", err=True)
        ctx.exit(1)
    except PermissionError:
        click.secho(f"❌  Failed to load configuration file from {config_file}", fg="red", bold=True, err=True)
        click.echo("\nPermission denied", err=True)
        ctx.exit(1)
    except (TOMLDecodeError, ConfigError) as exc:
        click.secho(
            f"❌  Failed to load configuration file{f' from {config_file}' if config_file else ''}",
            fg="red",
            bold=True,
            err=True,
        )
        if isinstance(exc, TOMLDecodeError):
            detail = "The configuration file content is not valid TOML"
        else:
            detail = "The loaded configuration is incorrect"
        click.echo(f"\n{detail}\n\n{exc}", err=True)
        ctx.exit(1)
    ctx.obj = config


def _to_resource(value: str) -> str:
    """Local paths are turned into `file` URIs, everything else is used as is."""
    if "://" in value:
        return value
    return Path(value).absolute().as_uri()


async def _resolve(
    registry: SchemaRegistry, resource: str, document: JSONDocument | None, schema_id: str | None
) -> ResolvedSchema | None:
    try:
        if schema_id is not None:
            registry.register_external_schema(schema_id)
            return await registry.get_resolved_schema(schema_id)
        return await registry.get_schema_for_resource(resource, document)
    finally:
        registry.dispose()


@schemaservice.command(short_help="Resolve the schema that applies to a resource.")  # type: ignore[untyped-decorator]
@click.argument("resource", type=str)  # type: ignore[untyped-decorator]
@click.option(  # type: ignore[untyped-decorator]
    "--document",
    "document_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Read the document content to honour its `$schema` property",
)
@click.option("--schema", "schema_id", type=str, help="Resolve this schema instead of the associated one")  # type: ignore[untyped-decorator]
@click.option(  # type: ignore[untyped-decorator]
    "--section",
    type=str,
    help="Only show the subschema for a `/`-separated path inside the document",
)
@click.pass_obj  # type: ignore[untyped-decorator]
def resolve(
    config: ServiceConfig, resource: str, document_path: str | None, schema_id: str | None, section: str | None
) -> None:
    """Resolve the schema for RESOURCE and print it as JSON."""
    resource = _to_resource(resource)
    document = None
    if document_path is not None:
        try:
            document = JSONDocument.from_text(Path(document_path).read_text(encoding="utf-8"))
        except JSONDecodeError as exc:
            raise click.ClickException(f"Unable to parse {document_path}: {format_exception(exc)}") from None

    registry = config.create_registry()
    resolved = asyncio.run(_resolve(registry, resource, document, schema_id))
    if resolved is None:
        click.secho(f"No schema is associated with {resource}", fg="yellow", err=True)
        raise click.exceptions.Exit(1)
    display_errors(resolved.errors)
    content: Any = resolved.schema
    if section is not None:
        content = resolved.get_section([segment for segment in section.split("/") if segment])
        if content is None:
            raise click.ClickException(f"No section `{section}` in the resolved schema")
    display_schema(content)


@schemaservice.command(short_help="List registered schema identifiers.")  # type: ignore[untyped-decorator]
@click.option("--scheme", "schemes", multiple=True, help="Only list identifiers with this URI scheme")  # type: ignore[untyped-decorator]
@click.pass_obj  # type: ignore[untyped-decorator]
def ids(config: ServiceConfig, schemes: tuple[str, ...]) -> None:
    """List the identifiers of registered schemas."""
    registry = config.create_registry()
    try:
        scheme_filter = (lambda scheme: scheme in schemes) if schemes else None
        for schema_id in registry.get_registered_schema_ids(scheme_filter):
            click.echo(schema_id)
    finally:
        registry.dispose()
