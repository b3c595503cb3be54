# tests/test_cli.py
"""
Tests for the confenv command line.

Covers:
    - get / exists on paths and sequences
    - dump as JSON, TOML and KEY=VALUE lines
    - set printing export/unset lines
    - search by name and value patterns
    - --env-file and domain errors
"""

import json
import pytest
import toml
from click.testing import CliRunner

from confenv.cli import cli


ENV = {
    "CONFENVCLI_DB_HOST": "localhost",
    "CONFENVCLI_DB_PORT": "5432",
    "CONFENVCLI_NODE_1": "10.10.10.02",
    "CONFENVCLI_NODE_2": "10.10.10.03",
}


@pytest.fixture
def run():
    runner = CliRunner()
    def invoke(*args, env=ENV):
        return runner.invoke(cli, ["-d", "confenvcli", *args], env=env)
    return invoke


def test_get(run):
    result = run("get", "db.host")
    assert result.exit_code == 0
    assert json.loads(result.output) == "localhost"


def test_get_sequence(run):
    result = run("get", "node")
    assert json.loads(result.output) == ["10.10.10.02", "10.10.10.03"]


def test_get_missing(run):
    assert run("get", "nope").exit_code == 1


def test_exists(run):
    ok = run("exists", "db.port")
    assert ok.exit_code == 0 and ok.output.strip() == "true"
    missing = run("exists", "db.user")
    assert missing.exit_code == 1 and missing.output.strip() == "false"


def test_dump_json(run):
    result = run("dump")
    assert json.loads(result.output) == {
        "db": {"host": "localhost", "port": "5432"},
        "node": ["10.10.10.02", "10.10.10.03"],
    }


def test_dump_toml(run):
    result = run("dump", "--format", "toml")
    assert toml.loads(result.output)["db"] == {"host": "localhost", "port": "5432"}


def test_dump_env(run):
    result = run("dump", "--format", "env")
    assert result.output.splitlines() == [
        "CONFENVCLI_DB_HOST=localhost",
        "CONFENVCLI_DB_PORT=5432",
        "CONFENVCLI_NODE_1=10.10.10.02",
        "CONFENVCLI_NODE_2=10.10.10.03",
    ]


def test_set_prints_exports(run):
    result = run("set", "server", '{"node": ["a", "b c"]}')
    assert result.exit_code == 0
    assert result.output.splitlines() == [
        "export CONFENVCLI_SERVER_NODE_1=a",
        "export CONFENVCLI_SERVER_NODE_2='b c'",
    ]


def test_set_prints_unsets(run):
    result = run("set", "node", '["z"]')
    assert result.output.splitlines() == [
        "unset CONFENVCLI_NODE_2",
        "export CONFENVCLI_NODE_1=z",
    ]


def test_set_plain_string(run):
    result = run("set", "db.user", "root")
    assert result.output.strip() == "export CONFENVCLI_DB_USER=root"


def test_search(run):
    result = run("search", "--key", "*DB*")
    assert json.loads(result.output) == {
        "CONFENVCLI_DB_HOST": "localhost",
        "CONFENVCLI_DB_PORT": "5432",
    }
    by_value = run("search", "--val", "10.10.10.0[2]", "-i")
    assert json.loads(by_value.output) == {"CONFENVCLI_NODE_1": "10.10.10.02"}


def test_search_requires_pattern(run):
    assert run("search").exit_code == 1


def test_env_file(run, tmp_path):
    path = tmp_path / "app.env"
    path.write_text("CONFENVCLI_DB_USER=admin\n")
    result = run("--env-file", str(path), "get", "db.user")
    assert json.loads(result.output) == "admin"


def test_invalid_domain():
    result = CliRunner().invoke(cli, ["-d", "__", "dump"])
    assert result.exit_code == 1
    assert "Error" in result.output
