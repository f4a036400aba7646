from __future__ import annotations

import json
import os
import sys
from dataclasses import dataclass, field
from functools import lru_cache
from os import PathLike
from pathlib import Path
from string import Template
from typing import TYPE_CHECKING, Any

from schemaservice.config._error import ConfigError
from schemaservice.core.jsonschema import JsonSchema
from schemaservice.core.loaders import DEFAULT_RESPONSE_TIMEOUT

if sys.version_info < (3, 11):
    import tomli
else:
    import tomllib as tomli

if TYPE_CHECKING:
    from jsonschema.protocols import Validator

    from schemaservice.registry import SchemaContributions, SchemaRegistry

__all__ = ["ConfigError", "SchemaConfig", "ServiceConfig", "CONFIG_FILE_NAME"]

CONFIG_FILE_NAME = "schemaservice.toml"


@lru_cache
def get_validator() -> Validator:
    import jsonschema.validators

    with (Path(__file__).absolute().parent / "schema.json").open() as fd:
        schema = json.loads(fd.read())
    return jsonschema.validators.Draft202012Validator(schema)


def resolve_env(value: str) -> str:
    """Substitute `${VAR}` placeholders with environment variables."""
    try:
        return Template(value).substitute(os.environ)
    except ValueError:
        raise ConfigError(f"Invalid placeholder in string: `{value}`") from None
    except KeyError:
        raise ConfigError(f"Missing environment variable: `{value}`") from None


@dataclass
class SchemaConfig:
    """A schema declared in the configuration file."""

    uri: str
    file_match: list[str] = field(default_factory=list)
    content: JsonSchema | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SchemaConfig:
        return cls(uri=data["uri"], file_match=list(data.get("file-match", [])), content=data.get("content"))


@dataclass
class ServiceConfig:
    request_timeout: float = DEFAULT_RESPONSE_TIMEOUT
    wait_for_schema: float | None = None
    headers: dict[str, str] = field(default_factory=dict)
    schemas: list[SchemaConfig] = field(default_factory=list)
    config_path: str | None = None

    @classmethod
    def discover(cls) -> ServiceConfig:
        """Discover the configuration file.

        Search for `schemaservice.toml` in the current directory and then in each parent directory,
        stopping when a directory containing a '.git' folder is encountered or the filesystem root is reached.
        If a config file is found, load it; otherwise, return a default configuration.
        """
        current_dir = os.getcwd()

        while True:
            candidate = os.path.join(current_dir, CONFIG_FILE_NAME)
            if os.path.isfile(candidate):
                return cls.from_path(candidate)

            # Stop searching if we've reached a git repository root
            if os.path.isdir(os.path.join(current_dir, ".git")):
                break

            parent = os.path.dirname(current_dir)
            if parent == current_dir:
                break
            current_dir = parent
        return cls()

    @classmethod
    def from_path(cls, path: PathLike | str) -> ServiceConfig:
        """Load configuration from a file path."""
        with open(path, encoding="utf-8") as fd:
            config = cls.from_str(fd.read())
            config.config_path = str(Path(path).resolve())
            return config

    @classmethod
    def from_str(cls, data: str) -> ServiceConfig:
        """Parse configuration from a TOML string."""
        parsed = tomli.loads(data)
        return cls.from_dict(parsed)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ServiceConfig:
        """Create a config instance from a dictionary."""
        from jsonschema.exceptions import ValidationError

        try:
            get_validator().validate(data)
        except ValidationError as exc:
            raise ConfigError.from_validation_error(exc) from None
        return cls(
            request_timeout=data.get("request-timeout", DEFAULT_RESPONSE_TIMEOUT),
            wait_for_schema=data.get("wait-for-schema"),
            headers={name: resolve_env(value) for name, value in data.get("headers", {}).items()},
            schemas=[SchemaConfig.from_dict(entry) for entry in data.get("schemas", [])],
        )

    def to_contributions(self) -> SchemaContributions:
        from schemaservice.registry import SchemaAssociation, SchemaContributions

        contributions = SchemaContributions()
        for schema in self.schemas:
            if schema.content is not None:
                contributions.schemas[schema.uri] = schema.content
            if schema.file_match:
                contributions.schema_associations.append(
                    SchemaAssociation(pattern=list(schema.file_match), uris=[schema.uri])
                )
        return contributions

    def create_registry(self) -> SchemaRegistry:
        """Create a registry that fetches schemas with the configured transport options."""
        from schemaservice.core.loaders import SchemaFetcher
        from schemaservice.registry import SchemaRegistry

        fetcher = SchemaFetcher(
            timeout=self.request_timeout, headers=self.headers, wait_for_schema=self.wait_for_schema
        )
        registry = SchemaRegistry(fetch=fetcher)
        registry.add_dispose_callback(fetcher.close)
        registry.set_schema_contributions(self.to_contributions())
        for schema in self.schemas:
            if schema.content is None:
                # Schemas without inline content are fetched on first use, but still listed
                registry.register_external_schema(schema.uri)
        return registry
