"""Unit tests for the dealstack CLI against a file-backed SQLite database."""

from __future__ import annotations

import pytest
from typer.testing import CliRunner

from dealstack.cli import app
from dealstack.config import reset_config

runner = CliRunner()


@pytest.fixture
def sqlite_file(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}")
    reset_config()
    result = runner.invoke(app, ["init"])
    assert result.exit_code == 0, result.output


def test_init_reports_success(sqlite_file):
    result = runner.invoke(app, ["init", "--drop"])

    assert result.exit_code == 0
    assert "Database initialized" in result.output


def test_create_user_rejects_duplicate_email(sqlite_file):
    args = ["create-user", "sam@dealstack.test", "--name", "Sam", "--role", "manager", "--password", "pw"]

    first = runner.invoke(app, args)
    second = runner.invoke(app, args)

    assert first.exit_code == 0, first.output
    assert "Created manager sam@dealstack.test in org=test-org" in first.output
    assert second.exit_code == 1
    assert "already exists" in second.output


def test_stats_on_empty_database(sqlite_file):
    result = runner.invoke(app, ["stats", "--org", "acme"])

    assert result.exit_code == 0, result.output
    assert "org=acme" in result.output
    assert "Total Customers" in result.output
    assert "$0.00" in result.output
