"""CLI commands for workflows: create, advance, show, next, list, block, unblock, priority, dashboard."""

from __future__ import annotations

import click

from fieldflow.cli_common import command_errors, echo_json, get_pipeline, parse_fields, refresh
from fieldflow.errors import PermissionDeniedError, WorkflowNotFoundError

_PRIORITIES = click.Choice(["low", "normal", "high", "urgent"])
_SEVERITIES = click.Choice(["low", "medium", "high", "critical"])


@click.command()
@click.argument("customer_id")
@click.option("--priority", "-p", type=_PRIORITIES, default="normal", help="Workflow priority")
@click.option("--field", "-f", multiple=True, help="Initial data as key=value (repeatable)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def create(customer_id: str, priority: str, field: tuple[str, ...], as_json: bool) -> None:
    """Start a workflow for a customer at the first stage."""
    data = parse_fields(field, as_json)
    pipeline = get_pipeline()
    with command_errors(as_json):
        workflow_id = pipeline.engine.create_workflow(customer_id, data, priority=priority)
    refresh(pipeline)
    workflow = pipeline.engine.get_workflow(workflow_id)
    if as_json:
        echo_json(workflow.to_dict())
        return
    click.echo(f"Created {workflow.id} for {customer_id} at {workflow.current_stage}")
    click.echo(f"Next: fieldflow next {workflow.id}")


@click.command()
@click.argument("workflow_id")
@click.argument("target_stage")
@click.option("--field", "-f", multiple=True, help="Completion data as key=value (repeatable)")
@click.option("--notes", "-n", default="", help="Notes for the history entry")
@click.option("--as-user", "user_id", default=None, help="Check that this user may advance the workflow")
@click.option("--no-handoff", is_flag=True, help="Only move the stage; do not run the handoff rule")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def advance(
    workflow_id: str,
    target_stage: str,
    field: tuple[str, ...],
    notes: str,
    user_id: str | None,
    no_handoff: bool,
    as_json: bool,
) -> None:
    """Move a workflow to one of its next stages."""
    data = parse_fields(field, as_json)
    pipeline = get_pipeline()
    handoff = None
    with command_errors(as_json):
        if no_handoff:
            if user_id is not None and not pipeline.manager.can_user_advance_workflow(user_id, workflow_id, target_stage):
                raise PermissionDeniedError(user_id, pipeline.engine.get_workflow(workflow_id).current_stage)
            pipeline.engine.advance_workflow(workflow_id, target_stage, data, notes)
        else:
            handoff = pipeline.manager.advance_with_handoff(workflow_id, target_stage, data, notes, user_id=user_id)
    refresh(pipeline)
    workflow = pipeline.engine.get_workflow(workflow_id)
    if as_json:
        echo_json({"workflow": workflow.to_dict(), "handoff": handoff})
        return
    click.echo(f"Advanced {workflow.id} to {workflow.current_stage}")
    if workflow.milestones and workflow.milestones[-1].stage == workflow.current_stage:
        click.echo(f"  Milestone reached: {workflow.milestones[-1].name}")
    if handoff is not None:
        if handoff["awaiting_approval"]:
            click.echo(f"  Handoff awaiting approval: {handoff['request_id']}")
        else:
            click.echo(f"  Handed off to {handoff['to_user']}")


@click.command()
@click.argument("workflow_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def show(workflow_id: str, as_json: bool) -> None:
    """Show a workflow's progress, milestones, blockers, and history."""
    pipeline = get_pipeline()
    with command_errors(as_json):
        progress = pipeline.engine.get_workflow_progress(workflow_id)
        if progress is None:
            raise WorkflowNotFoundError(workflow_id)
        workflow = pipeline.engine.get_workflow(workflow_id)
    if as_json:
        echo_json({**progress, "stage_history": [t.to_dict() for t in workflow.stage_history], "data": workflow.data})
        return

    click.echo(f"{workflow.id}  customer {workflow.customer_id}  [{workflow.priority}]")
    click.echo(
        f"  Stage: {progress['current_stage_name']} ({workflow.current_stage}), "
        f"phase {progress['phase']}/{progress['total_phases']} {progress['phase_name']}"
    )
    click.echo(f"  Progress: {progress['progress_percentage']:.0f}%")
    click.echo(f"  Assigned: {workflow.assigned_to} ({progress['assigned_role']['name']})")
    if progress["estimated_completion"]:
        click.echo(f"  Estimated completion: {progress['estimated_completion']}")
    if progress["milestones"]:
        click.echo("\n  Milestones:")
        for m in progress["milestones"]:
            click.echo(f"    {m['name']} ({m['stage']}) at {m['completed_at']}")
    if progress["blockers"]:
        click.echo("\n  Open blockers:")
        for b in progress["blockers"]:
            click.echo(f"    {b['id']} [{b['severity']}] {b['description']}")
    click.echo("\n  History:")
    for t in workflow.stage_history:
        src = t.from_stage or "(start)"
        took = f" after {t.duration_seconds / 3600:.1f}h" if t.duration_seconds is not None else ""
        notes = f" — {t.notes}" if t.notes else ""
        click.echo(f"    {t.timestamp.isoformat(timespec='seconds')} {src} -> {t.to_stage}{took}{notes}")


@click.command("next")
@click.argument("workflow_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def next_cmd(workflow_id: str, as_json: bool) -> None:
    """List the stages a workflow can move to next."""
    pipeline = get_pipeline()
    with command_errors(as_json):
        actions = pipeline.engine.get_next_actions(workflow_id)
    if as_json:
        echo_json(actions)
        return
    if not actions:
        click.echo("No next stages.")
        return
    for a in actions:
        duration = f" (~{a['estimated_duration']})" if a["estimated_duration"] else ""
        click.echo(f"  {a['stage']:<26} {a['name']:<28} [{a['responsible_role']}]{duration}")


@click.command("list")
@click.option("--stage", default=None, help="Only workflows at this stage")
@click.option("--role", default=None, help="Only workflows assigned to this role")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_workflows(stage: str | None, role: str | None, as_json: bool) -> None:
    """List workflows, optionally filtered by stage or assigned role."""
    pipeline = get_pipeline()
    engine = pipeline.engine
    with command_errors(as_json):
        workflows = engine.list_workflows()
        if stage is not None:
            by_stage = {w.id for w in engine.get_workflows_by_stage(stage)}
            workflows = [w for w in workflows if w.id in by_stage]
        if role is not None:
            by_role = {w.id for w in engine.get_workflows_by_role(role)}
            workflows = [w for w in workflows if w.id in by_role]
    if as_json:
        echo_json([w.to_dict() for w in workflows])
        return
    if not workflows:
        click.echo("No workflows.")
        return
    for w in workflows:
        flag = " [blocked]" if w.open_blockers else ""
        click.echo(f"  {w.id:<16} {w.customer_id:<16} {w.current_stage:<26} {w.priority:<7} {w.assigned_to}{flag}")


@click.command()
@click.argument("workflow_id")
@click.argument("description")
@click.option("--severity", "-s", type=_SEVERITIES, default="medium", help="Blocker severity")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def block(workflow_id: str, description: str, severity: str, as_json: bool) -> None:
    """Record a blocker on a workflow."""
    pipeline = get_pipeline()
    with command_errors(as_json):
        blocker = pipeline.engine.add_blocker(workflow_id, description, severity)
    refresh(pipeline)
    if as_json:
        echo_json(blocker.to_dict())
        return
    click.echo(f"Added blocker {blocker.id} to {workflow_id}")


@click.command()
@click.argument("workflow_id")
@click.argument("blocker_id")
@click.option("--resolution", "-r", default="", help="How the blocker was resolved")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def unblock(workflow_id: str, blocker_id: str, resolution: str, as_json: bool) -> None:
    """Resolve a blocker."""
    pipeline = get_pipeline()
    with command_errors(as_json):
        blocker = pipeline.engine.resolve_blocker(workflow_id, blocker_id, resolution)
    refresh(pipeline)
    if as_json:
        echo_json(blocker.to_dict())
        return
    click.echo(f"Resolved blocker {blocker.id} on {workflow_id}")


@click.command()
@click.argument("workflow_id")
@click.argument("priority", type=_PRIORITIES)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def priority(workflow_id: str, priority: str, as_json: bool) -> None:
    """Change a workflow's priority."""
    pipeline = get_pipeline()
    with command_errors(as_json):
        workflow = pipeline.engine.set_priority(workflow_id, priority)
    refresh(pipeline)
    if as_json:
        echo_json(workflow.to_dict())
        return
    click.echo(f"{workflow.id} priority: {workflow.priority}")


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def dashboard(as_json: bool) -> None:
    """Pipeline-wide counts, deadlines, blockers, and bottlenecks."""
    pipeline = get_pipeline()
    view = pipeline.engine.generate_dashboard()
    if as_json:
        echo_json(view)
        return

    avg = view["average_completion_seconds"]
    click.echo(f"Workflows: {view['total_workflows']}")
    click.echo(f"Average completion: {f'{avg / 86400:.1f} days' if avg is not None else 'n/a'}")
    if view["stage_distribution"]:
        click.echo("\nBy stage:")
        for stage_id, count in view["stage_distribution"].items():
            click.echo(f"  {stage_id:<26} {count}")
    if view["role_workload"]:
        click.echo("\nBy role:")
        for role_id, count in view["role_workload"].items():
            click.echo(f"  {role_id:<26} {count}")
    if view["bottlenecks"]:
        click.echo("\nBottlenecks:")
        for b in view["bottlenecks"]:
            click.echo(f"  {b['stage']} ({b['workflow_count']} workflows, owner {b['responsible_role']})")
    if view["blocked_workflows"]:
        click.echo(f"\nBlocked: {', '.join(view['blocked_workflows'])}")
    if view["overdue_workflows"]:
        click.echo(f"Overdue: {', '.join(view['overdue_workflows'])}")
    if view["upcoming_deadlines"]:
        click.echo("\nUpcoming deadlines:")
        for d in view["upcoming_deadlines"]:
            click.echo(f"  {d['workflow_id']} {d['customer_id']} in {d['days_remaining']}d [{d['current_stage']}]")


def register(cli: click.Group) -> None:
    """Register workflow commands with the CLI group."""
    cli.add_command(create)
    cli.add_command(advance)
    cli.add_command(show)
    cli.add_command(next_cmd)
    cli.add_command(list_workflows)
    cli.add_command(block)
    cli.add_command(unblock)
    cli.add_command(priority)
    cli.add_command(dashboard)
