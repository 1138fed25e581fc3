"""CLI for the fieldflow pipeline tracker.

Convention-based: discovers .fieldflow/ by walking up from cwd.

Usage:
    fieldflow init                                   # Initialize .fieldflow/ in cwd
    fieldflow stages --phase 3                       # Browse the stage catalog
    fieldflow create cust-42 -p high                 # Start a workflow
    fieldflow advance <id> lead_validation           # Move to a next stage
    fieldflow show <id>                              # Progress and history
    fieldflow dashboard                              # Pipeline-wide overview
    fieldflow user-create u1 "Ada" sales_manager     # Register a user
    fieldflow handoff <id> lead_validation lead_scoring -f validated_contact=true
    fieldflow queue                                  # Handoffs waiting on approval
    fieldflow my-dashboard u1                        # One user's work
"""

from __future__ import annotations

from pathlib import Path

import click

from fieldflow import __version__
from fieldflow.cli_commands import catalog as catalog_commands
from fieldflow.cli_commands import people as people_commands
from fieldflow.cli_commands import workflows as workflow_commands
from fieldflow.core import (
    CONFIG_FILENAME,
    FIELDFLOW_DIR_NAME,
    SUMMARY_FILENAME,
    Pipeline,
    read_config,
    write_config,
)
from fieldflow.logging import setup_logging
from fieldflow.settings import WorkflowSettings
from fieldflow.summary import write_summary


@click.group()
@click.version_option(version=__version__, prog_name="fieldflow")
def cli() -> None:
    """Fieldflow — field-service pipeline from lead to long-term service."""


@cli.command()
def init() -> None:
    """Initialize .fieldflow/ in the current directory."""
    cwd = Path.cwd()
    fieldflow_dir = cwd / FIELDFLOW_DIR_NAME

    if fieldflow_dir.exists():
        click.echo(f"{FIELDFLOW_DIR_NAME}/ already exists in {cwd}")
        # Still make sure a config file is present
        if not (fieldflow_dir / CONFIG_FILENAME).exists():
            write_config(fieldflow_dir, read_config(fieldflow_dir))
        return

    fieldflow_dir.mkdir()
    write_config(fieldflow_dir, {"version": 1, "workflow": WorkflowSettings().to_config()})
    setup_logging(fieldflow_dir).info("project_init", extra={"command": "init", "args_data": {"path": str(cwd)}})

    pipeline = Pipeline(fieldflow_dir)
    pipeline.save()
    write_summary(pipeline, fieldflow_dir / SUMMARY_FILENAME)

    click.echo(f"Initialized {FIELDFLOW_DIR_NAME}/ in {cwd}")
    click.echo(f"  Config: {fieldflow_dir / CONFIG_FILENAME}")
    click.echo("\nNext: fieldflow user-create <id> <name> <role>")


catalog_commands.register(cli)
workflow_commands.register(cli)
people_commands.register(cli)


if __name__ == "__main__":
    cli()
