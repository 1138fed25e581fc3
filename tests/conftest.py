"""Shared pytest fixtures for fieldflow tests."""

from __future__ import annotations

from collections.abc import Generator

import pytest
from click.testing import CliRunner

from fieldflow.base import SequentialIds
from fieldflow.catalog import HandoffRuleTable, RoleCatalog, StageCatalog, build_default_catalogs
from fieldflow.engine import WorkflowEngine
from fieldflow.logging import teardown_logging
from fieldflow.roles import RoleManager
from tests._helpers import FakeClock


@pytest.fixture(scope="session")
def catalogs() -> tuple[StageCatalog, RoleCatalog, HandoffRuleTable]:
    """Built-in catalogs. Read-only, so shared across the session."""
    return build_default_catalogs()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def engine(clock: FakeClock, catalogs: tuple[StageCatalog, RoleCatalog, HandoffRuleTable]) -> WorkflowEngine:
    stages, roles, _rules = catalogs
    return WorkflowEngine(stages, roles, clock=clock, id_factory=SequentialIds())


@pytest.fixture
def manager(engine: WorkflowEngine, catalogs: tuple[StageCatalog, RoleCatalog, HandoffRuleTable]) -> RoleManager:
    _stages, roles, rules = catalogs
    return RoleManager(engine, roles, rules)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Click CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def _close_log_handlers() -> Generator[None, None, None]:
    """Detach file handlers a test attached so they never outlive its tmp_path."""
    yield
    teardown_logging()
