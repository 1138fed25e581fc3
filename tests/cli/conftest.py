"""Fixtures for CLI interface tests."""

from __future__ import annotations

import json
import os
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner, Result

from fieldflow.cli import cli


@pytest.fixture
def cli_in_project(tmp_path: Path, cli_runner: CliRunner) -> Generator[tuple[CliRunner, Path], None, None]:
    """Initialize a fieldflow project in tmp_path and return (runner, project_root)."""
    original_cwd = os.getcwd()
    os.chdir(str(tmp_path))
    result = cli_runner.invoke(cli, ["init"])
    assert result.exit_code == 0
    yield cli_runner, tmp_path
    os.chdir(original_cwd)


def as_json(result: Result) -> Any:
    """Parse the JSON a ``--json`` command printed, failing loudly on a bad exit."""
    assert result.exit_code == 0, result.output
    return json.loads(result.output)


def create_workflow(runner: CliRunner, customer_id: str = "cust-acme", *extra: str) -> str:
    """Run ``fieldflow create`` and return the new workflow id."""
    return as_json(runner.invoke(cli, ["create", customer_id, *extra, "--json"]))["id"]


def move(runner: CliRunner, workflow_id: str, *stages: str) -> None:
    """Advance through *stages* without running handoff rules."""
    for stage in stages:
        result = runner.invoke(cli, ["advance", workflow_id, stage, "--no-handoff"])
        assert result.exit_code == 0, result.output
