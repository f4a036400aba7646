from __future__ import annotations

from typing import Any

import click

from schemaservice.core import json


def display_errors(errors: list[str]) -> None:
    """Print resolution problems to stderr, one per line."""
    for error in errors:
        click.secho(f"⚠️  {error}", fg="yellow", err=True)


def display_schema(schema: Any) -> None:
    click.echo(json.dumps(schema, indent=True))
