import json
import textwrap

import pytest
from click.testing import CliRunner

from schemaservice.cli import schemaservice
from schemaservice.config import CONFIG_FILE_NAME

CONFIG = """
[[schemas]]
uri = "https://example.com/data.json"
file-match = ["*.data.json"]

[schemas.content]
type = "object"

[schemas.content.properties.name]
"$ref" = "#/definitions/name"

[schemas.content.definitions.name]
type = "string"
"""


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    # Keep configuration discovery inside the temporary directory
    (tmp_path / ".git").mkdir()
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def cli(workdir):
    runner = CliRunner()

    def invoke(*args):
        return runner.invoke(schemaservice, list(args), catch_exceptions=False)

    return invoke


@pytest.fixture
def config(workdir):
    def inner(content=CONFIG):
        (workdir / CONFIG_FILE_NAME).write_text(textwrap.dedent(content), encoding="utf-8")

    return inner


def test_resolve_associated_schema(cli, config):
    config()

    result = cli("resolve", "record.data.json")

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == {
        "type": "object",
        "properties": {"name": {"type": "string"}},
        "definitions": {"name": {"type": "string"}},
    }


@pytest.mark.parametrize("section", ["name", "properties/name", "/name/"])
def test_resolve_section(cli, config, section):
    config()

    result = cli("resolve", "record.data.json", "--section", section)

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == {"type": "string"}


def test_resolve_missing_section(cli, config):
    config()

    result = cli("resolve", "record.data.json", "--section", "missing")

    assert result.exit_code == 1
    assert "No section `missing` in the resolved schema" in result.output


def test_no_associated_schema(cli, workdir):
    result = cli("resolve", "record.json")

    assert result.exit_code == 1
    assert f"No schema is associated with {(workdir / 'record.json').as_uri()}" in result.output


def test_schema_from_document(cli, workdir):
    (workdir / "schemas").mkdir()
    (workdir / "schemas" / "record.json").write_text('{"type": "array", "items": {"type": "integer"}}')
    (workdir / "record.json").write_text('{\n  // Comments are allowed\n  "$schema": "schemas/record.json",\n}')

    result = cli("resolve", "record.json", "--document", "record.json")

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == {"type": "array", "items": {"type": "integer"}}


def test_invalid_document(cli, workdir):
    (workdir / "record.json").write_text("{")

    result = cli("resolve", "record.json", "--document", "record.json")

    assert result.exit_code == 1
    assert "Unable to parse record.json" in result.output


def test_explicit_schema(cli, workdir):
    schema = workdir / "explicit.json"
    schema.write_text('{"definitions": {"id": {"type": "integer"}}, "properties": {"id": {"$ref": "#/definitions/id"}}}')

    result = cli("resolve", "anything.yaml", "--schema", schema.as_uri(), "--section", "id")

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == {"type": "integer"}


def test_resolution_errors_are_reported(cli, config):
    config(
        """
        [[schemas]]
        uri = "https://example.com/broken.json"
        file-match = ["*.json"]

        [schemas.content.properties.name]
        "$ref" = "#/definitions/missing"
        """
    )

    result = cli("resolve", "record.json")

    assert result.exit_code == 0, result.output
    assert "$ref '/definitions/missing' in 'https://example.com/broken.json' can not be resolved." in result.output


def test_load_errors_are_reported(cli, workdir):
    missing = workdir / "missing.json"

    result = cli("resolve", "record.json", "--schema", missing.as_uri())

    assert result.exit_code == 0, result.output
    assert f"Unable to load schema from '{missing}': File not found: {missing}." in result.output


def test_ids(cli, config):
    config(
        """
        [[schemas]]
        uri = "https://example.com/a.json"
        content = true

        [[schemas]]
        uri = "file:///schemas/b.json"
        file-match = ["*.b.json"]
        """
    )

    result = cli("ids")

    assert result.exit_code == 0, result.output
    assert result.stdout.splitlines() == ["https://example.com/a.json", "file:///schemas/b.json"]
    result = cli("ids", "--scheme", "file")
    assert result.stdout.splitlines() == ["file:///schemas/b.json"]


def test_explicit_config_file(cli, workdir):
    path = workdir / "custom.toml"
    path.write_text('[[schemas]]\nuri = "https://example.com/a.json"\ncontent = {}\n')

    result = cli("--config-file", str(path), "ids")

    assert result.exit_code == 0, result.output
    assert result.stdout.splitlines() == ["https://example.com/a.json"]


def test_missing_config_file(cli):
    result = cli("--config-file", "missing.toml", "ids")

    assert result.exit_code == 1
    assert "Failed to load configuration file from missing.toml" in result.output
    assert "The configuration file does not exist" in result.output


@pytest.mark.parametrize(
    ("content", "expected"),
    [
        ("request-timeout = ", "The configuration file content is not valid TOML"),
        ("request-timeout = -1", "The loaded configuration is incorrect"),
    ],
)
def test_invalid_config(cli, config, content, expected):
    config(content)

    result = cli("ids")

    assert result.exit_code == 1
    assert "Failed to load configuration file" in result.output
    assert expected in result.output


def test_version(cli):
    result = cli("--version")

    assert result.exit_code == 0
    assert result.output.startswith("schemaservice, version ")
