"""Project discovery, config files, and the Pipeline facade.

Convention-based discovery: each project has a ``.fieldflow/`` directory
containing ``config.json`` (settings overrides), ``state.json`` (persisted
workflows, users, notifications, handoff requests), ``context.md`` (the
generated pulse summary) and ``fieldflow.log``.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from pathlib import Path
from typing import Any, TypedDict

from fieldflow.base import Clock, IdFactory
from fieldflow.catalog import build_default_catalogs
from fieldflow.engine import WorkflowEngine
from fieldflow.roles import RoleManager
from fieldflow.settings import WorkflowSettings
from fieldflow.snapshot import dump_state, load_state

logger = logging.getLogger(__name__)


class ProjectConfig(TypedDict, total=False):
    """Shape of .fieldflow/config.json."""

    version: int
    workflow: dict[str, Any]


# ---------------------------------------------------------------------------
# Convention-based discovery
# ---------------------------------------------------------------------------

FIELDFLOW_DIR_NAME = ".fieldflow"
CONFIG_FILENAME = "config.json"
STATE_FILENAME = "state.json"
SUMMARY_FILENAME = "context.md"


def find_fieldflow_root(start: Path | None = None) -> Path:
    """Walk up from start (default cwd) looking for .fieldflow/ directory.

    Returns the .fieldflow/ directory path (not the project root).
    """
    current = (start or Path.cwd()).resolve()
    for parent in [current, *current.parents]:
        candidate = parent / FIELDFLOW_DIR_NAME
        if candidate.is_dir():
            return candidate
    msg = f"No {FIELDFLOW_DIR_NAME}/ directory found in {current} or any parent"
    raise FileNotFoundError(msg)


def read_config(fieldflow_dir: Path) -> ProjectConfig:
    """Read .fieldflow/config.json. Returns defaults if missing or corrupt."""
    defaults = ProjectConfig(version=1)
    config_path = fieldflow_dir / CONFIG_FILENAME
    if not config_path.exists():
        return defaults
    try:
        result = json.loads(config_path.read_text())
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read %s, using defaults: %s", config_path, exc)
        return defaults
    if not isinstance(result, dict):
        logger.warning("%s is not a JSON object, using defaults", config_path)
        return defaults
    return ProjectConfig(**result)  # type: ignore[typeddict-item]


def write_config(fieldflow_dir: Path, config: dict[str, Any] | ProjectConfig) -> None:
    """Write .fieldflow/config.json."""
    write_atomic(fieldflow_dir / CONFIG_FILENAME, json.dumps(config, indent=2) + "\n")


def write_atomic(path: Path, content: str) -> None:
    """Write content to path atomically via temp file + os.replace()."""
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        tmp.write_text(content, encoding="utf-8")
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(OSError):
            tmp.unlink()
        raise


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class Pipeline:
    """Catalogs, settings, engine and role manager wired together.

    ``Pipeline()`` is a fresh in-memory pipeline. ``Pipeline.from_project()``
    additionally reads config overrides and persisted state from a
    ``.fieldflow/`` directory, and ``save()`` writes state back.
    """

    def __init__(
        self,
        fieldflow_dir: Path | None = None,
        *,
        settings: WorkflowSettings | None = None,
        clock: Clock | None = None,
        id_factory: IdFactory | None = None,
    ) -> None:
        self.fieldflow_dir = fieldflow_dir
        self.stages, self.roles, self.rules = build_default_catalogs()
        self.settings = settings or WorkflowSettings()
        self.engine = WorkflowEngine(self.stages, self.roles, self.settings, clock=clock, id_factory=id_factory)
        self.manager = RoleManager(self.engine, self.roles, self.rules)

    @classmethod
    def from_project(cls, fieldflow_dir: Path, *, clock: Clock | None = None) -> Pipeline:
        config = read_config(fieldflow_dir)
        pipeline = cls(fieldflow_dir, settings=WorkflowSettings.from_config(config), clock=clock)
        pipeline.load()
        return pipeline

    @property
    def state_path(self) -> Path:
        if self.fieldflow_dir is None:
            msg = "Pipeline has no project directory"
            raise RuntimeError(msg)
        return self.fieldflow_dir / STATE_FILENAME

    def load(self) -> None:
        """Load persisted state if the project has any; a missing file means an empty pipeline."""
        path = self.state_path
        if not path.exists():
            return
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            msg = f"Corrupt state file {path}: {exc}"
            raise ValueError(msg) from exc
        load_state(data, self.engine, self.manager)

    def save(self) -> None:
        state = dump_state(self.engine, self.manager)
        write_atomic(self.state_path, json.dumps(state, indent=2) + "\n")
        logger.debug("Saved state to %s", self.state_path)
