"""Shared CLI helpers.

Provides ``get_pipeline()``, ``refresh()`` and the error/logging wrapper so
that ``cli.py`` and the ``cli_commands/*.py`` modules can use them without
circular imports.
"""

from __future__ import annotations

import json as json_mod
import logging
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, NoReturn

import click

from fieldflow.core import FIELDFLOW_DIR_NAME, SUMMARY_FILENAME, Pipeline, find_fieldflow_root
from fieldflow.errors import FieldflowError
from fieldflow.logging import setup_logging
from fieldflow.summary import write_summary

logger = logging.getLogger("fieldflow.cli")


def get_pipeline() -> Pipeline:
    """Discover .fieldflow/ and return a Pipeline loaded from its state."""
    try:
        fieldflow_dir = find_fieldflow_root()
    except FileNotFoundError:
        click.echo(f"No {FIELDFLOW_DIR_NAME}/ found. Run 'fieldflow init' first.", err=True)
        sys.exit(1)
    setup_logging(fieldflow_dir)
    try:
        return Pipeline.from_project(fieldflow_dir)
    except (FieldflowError, ValueError) as e:
        click.echo(f"Error loading {FIELDFLOW_DIR_NAME}/: {e}", err=True)
        sys.exit(1)


def refresh(pipeline: Pipeline) -> None:
    """Persist state and regenerate context.md after mutations."""
    pipeline.save()
    if pipeline.fieldflow_dir is not None:
        write_summary(pipeline, pipeline.fieldflow_dir / SUMMARY_FILENAME)


def fail(message: str, as_json: bool = False) -> NoReturn:
    if as_json:
        click.echo(json_mod.dumps({"error": message}))
    else:
        click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def echo_json(data: Any) -> None:
    click.echo(json_mod.dumps(data, indent=2, default=str))


def parse_fields(fields: tuple[str, ...], as_json: bool = False) -> dict[str, Any]:
    """Parse repeated ``key=value`` options. Values that parse as JSON keep their type."""
    result: dict[str, Any] = {}
    for f in fields:
        if "=" not in f:
            fail(f"Invalid field format: {f} (expected key=value)", as_json)
        k, v = f.split("=", 1)
        try:
            result[k] = json_mod.loads(v)
        except json_mod.JSONDecodeError:
            result[k] = v
    return result


@contextmanager
def command_errors(as_json: bool = False) -> Iterator[None]:
    """Log the running command and turn domain errors into exit code 1."""
    ctx = click.get_current_context(silent=True)
    command = ctx.info_name if ctx is not None else "?"
    params = dict(ctx.params) if ctx is not None else {}
    start = time.monotonic()
    try:
        yield
    except (FieldflowError, ValueError) as e:
        logger.warning(
            "cli_error",
            extra={"command": command, "args_data": params, "error": str(e)},
        )
        fail(str(e), as_json)
    duration_ms = round((time.monotonic() - start) * 1000, 1)
    logger.info("cli_command", extra={"command": command, "args_data": params, "duration_ms": duration_ms})
