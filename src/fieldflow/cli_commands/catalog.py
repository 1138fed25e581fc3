"""CLI commands for the built-in catalogs: stages, stage-info, roles, role-info, handoff-rules, validate-catalog."""

from __future__ import annotations

import json as json_mod
import sys
from pathlib import Path
from typing import Any, NoReturn

import click

from fieldflow.catalog import HandoffRuleTable, RoleCatalog, StageCatalog, build_default_catalogs
from fieldflow.catalog_data import HANDOFF_RULES, MANAGER_ROLES, ROLE_TABLE, STAGE_TABLE
from fieldflow.cli_common import command_errors, echo_json


@click.command("stages")
@click.option("--phase", type=click.IntRange(1, 7), default=None, help="Only stages in this phase")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def stages_cmd(phase: int | None, as_json: bool) -> None:
    """List pipeline stages grouped by phase."""
    stages, _roles, _rules = build_default_catalogs()
    defs = stages.stages_in_phase(phase) if phase else stages.list_stages()
    if as_json:
        echo_json([sd.to_dict() for sd in defs])
        return
    current_phase = 0
    for sd in defs:
        if sd.phase != current_phase:
            current_phase = sd.phase
            click.echo(f"\n{current_phase}. {stages.phase_name(current_phase)}")
        click.echo(f"  {sd.id:<26} {sd.name:<28} [{sd.responsible_role}]")


@click.command("stage-info")
@click.argument("stage_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def stage_info(stage_id: str, as_json: bool) -> None:
    """Show one stage: next actions, owner, and handoff rules touching it."""
    stages, _roles, rules = build_default_catalogs()
    with command_errors(as_json):
        sd = stages.definition(stage_id)
    inbound = [r for r in rules.list_rules() if r.to_stage == sd.id]
    outbound = [r for r in rules.list_rules() if r.from_stage == sd.id]
    if as_json:
        data = sd.to_dict()
        data["phase_name"] = stages.phase_name(sd.phase)
        data["inbound_rules"] = [r.to_dict() for r in inbound]
        data["outbound_rules"] = [r.to_dict() for r in outbound]
        echo_json(data)
        return

    click.echo(f"{sd.name} ({sd.id}) — phase {sd.phase}: {stages.phase_name(sd.phase)}")
    click.echo(f"  {sd.description}")
    click.echo(f"  Owner: {sd.responsible_role}")
    if sd.estimated_duration:
        click.echo(f"  Estimated duration: {sd.estimated_duration}")
    if sd.required_fields:
        click.echo(f"  Required fields: {', '.join(sd.required_fields)}")
    if sd.next_actions:
        click.echo("\n  Next stages:")
        for n in sd.next_actions:
            click.echo(f"    -> {n}")
    else:
        click.echo("\n  No next stages (terminal)")
    for label, group in (("Inbound handoffs", inbound), ("Outbound handoffs", outbound)):
        if group:
            click.echo(f"\n  {label}:")
            for r in group:
                mode = "auto" if r.auto_handoff else "approval"
                req = f" (requires: {', '.join(r.required_fields)})" if r.required_fields else ""
                click.echo(f"    {r.from_stage} -> {r.to_stage}  {r.from_role} -> {r.to_role} [{mode}]{req}")


@click.command("roles")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def roles_cmd(as_json: bool) -> None:
    """List roles with their departments."""
    _stages, roles, _rules = build_default_catalogs()
    if as_json:
        echo_json([rd.to_dict() for rd in roles.list_roles()])
        return
    for rd in roles.list_roles():
        click.echo(f"  {rd.id:<24} {rd.name:<26} {rd.department}")


@click.command("role-info")
@click.argument("role_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def role_info(role_id: str, as_json: bool) -> None:
    """Show one role's permissions and approving manager role."""
    _stages, roles, _rules = build_default_catalogs()
    with command_errors(as_json):
        rd = roles.definition(role_id)
    manager = roles.manager_role_for(rd.id)
    if as_json:
        data = rd.to_dict()
        data["manager_role"] = str(manager) if manager else None
        echo_json(data)
        return
    perms = rd.permissions
    click.echo(f"{rd.name} ({rd.id}) — {rd.department}")
    click.echo(f"  Dashboard: {rd.dashboard}")
    click.echo(f"  Manager role: {manager or '(none)'}")
    click.echo(f"  Can assign: {'yes' if perms.can_assign else 'no'}")
    for label, group in (("View", perms.can_view), ("Edit", perms.can_edit), ("Advance", perms.can_advance)):
        click.echo(f"  {label}: {', '.join(sorted(group)) if group else '(none)'}")


@click.command("handoff-rules")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def handoff_rules(as_json: bool) -> None:
    """List handoff rules."""
    _stages, _roles, rules = build_default_catalogs()
    if as_json:
        echo_json([r.to_dict() for r in rules.list_rules()])
        return
    for r in rules.list_rules():
        mode = "auto" if r.auto_handoff else "approval"
        req = f" requires: {', '.join(r.required_fields)}" if r.required_fields else ""
        click.echo(f"  {r.from_stage} -> {r.to_stage}  ({r.from_role} -> {r.to_role}) [{mode}]{req}")


@click.command("validate-catalog")
@click.argument("path", required=False, type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def validate_catalog(path: Path | None, as_json: bool) -> None:
    """Validate the built-in catalogs, or a catalog JSON file.

    The file may hold any of the keys ``stages``, ``roles``, ``manager_roles``
    and ``handoff_rules``; missing keys fall back to the built-in tables.
    """
    raw: dict[str, Any] = {}
    if path is not None:
        try:
            raw = json_mod.loads(path.read_text(encoding="utf-8"))
        except (json_mod.JSONDecodeError, OSError) as e:
            _report_invalid([f"cannot read {path}: {e}"], as_json)
        if not isinstance(raw, dict):
            _report_invalid([f"{path} must contain a JSON object"], as_json)

    try:
        stages = StageCatalog.from_dicts(raw.get("stages", STAGE_TABLE))
        roles = RoleCatalog.from_dicts(
            raw.get("roles", ROLE_TABLE), stages=stages, manager_roles=raw.get("manager_roles", MANAGER_ROLES)
        )
        rules = HandoffRuleTable.from_dicts(raw.get("handoff_rules", HANDOFF_RULES), stages=stages, roles=roles)
    except (KeyError, TypeError, ValueError) as e:
        _report_invalid([str(e)], as_json)

    counts = {"stages": len(stages), "roles": len(roles), "handoff_rules": len(rules)}
    if as_json:
        echo_json({"valid": True, "errors": [], **counts})
        return
    click.echo(f"Catalog OK: {counts['stages']} stages, {counts['roles']} roles, {counts['handoff_rules']} handoff rules")


def _report_invalid(errors: list[str], as_json: bool) -> NoReturn:
    if as_json:
        click.echo(json_mod.dumps({"valid": False, "errors": errors}, indent=2))
    else:
        for e in errors:
            click.echo(f"Invalid catalog: {e}", err=True)
    sys.exit(1)


def register(cli: click.Group) -> None:
    """Register catalog commands with the CLI group."""
    cli.add_command(stages_cmd)
    cli.add_command(stage_info)
    cli.add_command(roles_cmd)
    cli.add_command(role_info)
    cli.add_command(handoff_rules)
    cli.add_command(validate_catalog)
