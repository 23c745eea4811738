"""Fixtures for CLI tests."""

import pytest
from click.testing import CliRunner

from flowdesk.cli import cli


@pytest.fixture
def cli_env(mock_env, monkeypatch, tmp_path):
    """Point the CLI at a fresh sqlite file."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'cli.db'}")
    return tmp_path


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def invoke(runner, cli_env):
    """Invoke the CLI with the test environment."""

    def _invoke(*args, **kwargs):
        return runner.invoke(cli, list(args), **kwargs)

    return _invoke


@pytest.fixture
def seeded_db(invoke):
    """Database with schema and sample data."""
    result = invoke("init-db", "--sample-data")
    assert result.exit_code == 0, result.output
    return result
