"""CLI commands for users and handoffs: user-create, users, deactivate, assign, handoff,
approve-handoff, reject-handoff, requests, queue, workload, my-dashboard, notifications, read-notification.
"""

from __future__ import annotations

import click

from fieldflow.cli_common import command_errors, echo_json, fail, get_pipeline, parse_fields, refresh
from fieldflow.types.handoff import HandoffResult


def _echo_handoff(result: HandoffResult) -> None:
    if result["awaiting_approval"]:
        click.echo(f"Handoff request {result['request_id']} created for {result['workflow_id']}; awaiting approval")
    else:
        src = result["from_user"] or "(unassigned)"
        click.echo(f"Handed off {result['workflow_id']}: {src} -> {result['to_user']}")


@click.command("user-create")
@click.argument("user_id")
@click.argument("name")
@click.argument("role")
@click.option("--email", default="", help="Email address")
@click.option("--department", default=None, help="Department (default: the role's department)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def user_create(user_id: str, name: str, role: str, email: str, department: str | None, as_json: bool) -> None:
    """Register a user in a role."""
    pipeline = get_pipeline()
    with command_errors(as_json):
        user = pipeline.manager.create_user(user_id, name, role, email, department)
    refresh(pipeline)
    if as_json:
        echo_json(user.to_dict())
        return
    click.echo(f"Created user {user.id}: {user.name} ({user.role})")


@click.command("users")
@click.option("--role", default=None, help="Only users in this role")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def users_cmd(role: str | None, as_json: bool) -> None:
    """List users with their workloads."""
    pipeline = get_pipeline()
    with command_errors(as_json):
        users = pipeline.manager.list_users(role)
    if as_json:
        echo_json([u.to_dict() for u in users])
        return
    if not users:
        click.echo("No users.")
        return
    for u in users:
        status = "" if u.active else " [inactive]"
        click.echo(f"  {u.id:<14} {u.name:<22} {u.role:<24} {u.workload} workflows{status}")


@click.command()
@click.argument("user_id")
@click.option("--reactivate", is_flag=True, help="Mark the user active again")
def deactivate(user_id: str, reactivate: bool) -> None:
    """Stop routing new workflows to a user."""
    pipeline = get_pipeline()
    with command_errors():
        user = pipeline.manager.set_user_active(user_id, reactivate)
    refresh(pipeline)
    click.echo(f"{user.id} is now {'active' if user.active else 'inactive'}")


@click.command()
@click.argument("workflow_id")
@click.argument("user_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def assign(workflow_id: str, user_id: str, as_json: bool) -> None:
    """Assign a workflow to a user."""
    pipeline = get_pipeline()
    with command_errors(as_json):
        workflow = pipeline.manager.assign_workflow(workflow_id, user_id)
    refresh(pipeline)
    if as_json:
        echo_json(workflow.to_dict())
        return
    click.echo(f"Assigned {workflow.id} to {user_id}")


@click.command()
@click.argument("workflow_id")
@click.argument("from_stage")
@click.argument("to_stage")
@click.option("--field", "-f", multiple=True, help="Handoff data as key=value (repeatable)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def handoff(workflow_id: str, from_stage: str, to_stage: str, field: tuple[str, ...], as_json: bool) -> None:
    """Hand a workflow over for the edge FROM_STAGE -> TO_STAGE."""
    data = parse_fields(field, as_json)
    pipeline = get_pipeline()
    with command_errors(as_json):
        result = pipeline.manager.execute_handoff(workflow_id, from_stage, to_stage, data)
    refresh(pipeline)
    if as_json:
        echo_json(result)
        return
    _echo_handoff(result)


@click.command("approve-handoff")
@click.argument("request_id")
@click.option("--to-user", default=None, help="Recipient (default: least-loaded user of the target role)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def approve_handoff(request_id: str, to_user: str | None, as_json: bool) -> None:
    """Approve a pending handoff request."""
    pipeline = get_pipeline()
    with command_errors(as_json):
        result = pipeline.manager.approve_handoff(request_id, to_user)
    refresh(pipeline)
    if as_json:
        echo_json(result)
        return
    _echo_handoff(result)


@click.command("reject-handoff")
@click.argument("request_id")
@click.option("--reason", "-r", default="", help="Why the handoff was rejected")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def reject_handoff(request_id: str, reason: str, as_json: bool) -> None:
    """Reject a pending handoff request."""
    pipeline = get_pipeline()
    with command_errors(as_json):
        request = pipeline.manager.reject_handoff(request_id, reason)
    refresh(pipeline)
    if as_json:
        echo_json(request.to_dict())
        return
    click.echo(f"Rejected handoff request {request.id}")


@click.command("requests")
@click.option("--status", type=click.Choice(["pending", "approved", "rejected"]), default=None, help="Filter by status")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def requests_cmd(status: str | None, as_json: bool) -> None:
    """List handoff requests."""
    pipeline = get_pipeline()
    requests = pipeline.manager.list_handoff_requests(status)
    if as_json:
        echo_json([r.to_dict() for r in requests])
        return
    if not requests:
        click.echo("No handoff requests.")
        return
    for r in requests:
        click.echo(f"  {r.id:<18} {r.workflow_id:<16} {r.from_stage} -> {r.to_stage}  [{r.status}]")


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def queue(as_json: bool) -> None:
    """Workflows sitting before an approval-gated handoff, longest wait first."""
    pipeline = get_pipeline()
    entries = pipeline.manager.get_handoff_queue()
    if as_json:
        echo_json(entries)
        return
    if not entries:
        click.echo("Handoff queue is empty.")
        return
    for e in entries:
        hours = e["waiting_seconds"] / 3600
        click.echo(
            f"  {e['workflow_id']:<16} {e['from_stage']} -> {e['to_stage']}  "
            f"({e['from_role']} -> {e['to_role']}) [{e['priority']}] waiting {hours:.1f}h"
        )


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def workload(as_json: bool) -> None:
    """Per-role user counts, workloads, and overload."""
    pipeline = get_pipeline()
    report = pipeline.manager.get_role_workload_report()
    if as_json:
        echo_json(report)
        return
    if not report:
        click.echo("No users.")
        return
    for role_id, w in report.items():
        over = f", {w['overloaded']} overloaded" if w["overloaded"] else ""
        click.echo(
            f"  {role_id:<24} {w['user_count']} users, {w['total_workflows']} workflows, "
            f"avg {w['average_workload']:.1f}{over}"
        )


@click.command("my-dashboard")
@click.argument("user_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def my_dashboard(user_id: str, as_json: bool) -> None:
    """One user's workflows, urgency breakdown, and unread notifications."""
    pipeline = get_pipeline()
    view = pipeline.manager.get_user_dashboard(user_id)
    if view is None:
        fail(f"User '{user_id}' not found", as_json)
    if as_json:
        echo_json(view)
        return
    user = view["user"]
    counts = view["workload"]
    click.echo(f"{user['name']} ({user['id']}) — {user['role']}, {user['department']}")
    click.echo(
        f"  Workflows: {counts['total']} | Overdue: {counts['overdue']} | "
        f"Urgent: {counts['urgent']} | Blocked: {counts['blocked']}"
    )
    for p in view["workflows"]:
        click.echo(f"    {p['workflow_id']:<16} {p['current_stage']:<26} {p['progress_percentage']:.0f}%")
    perf = view["performance"]
    click.echo(f"  Completed: {perf['completed_workflows']} | Last active: {perf['last_active']}")
    if view["notifications"]:
        click.echo(f"  Unread notifications: {len(view['notifications'])}")


@click.command()
@click.argument("user_id")
@click.option("--all", "show_all", is_flag=True, help="Include read notifications")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def notifications(user_id: str, show_all: bool, as_json: bool) -> None:
    """List a user's notifications (unread by default)."""
    pipeline = get_pipeline()
    manager = pipeline.manager
    with command_errors(as_json):
        manager.get_user(user_id)
    items = manager.notifications.list_for(user_id) if show_all else manager.get_unread_notifications(user_id)
    if as_json:
        echo_json([n.to_dict() for n in items])
        return
    if not items:
        click.echo("No notifications.")
        return
    for n in items:
        mark = " " if n.read else "*"
        click.echo(f" {mark} {n.id:<14} {n.type:<24} {n.data.get('workflow_id', '')}")


@click.command("read-notification")
@click.argument("user_id")
@click.argument("notification_id")
def read_notification(user_id: str, notification_id: str) -> None:
    """Mark a notification as read."""
    pipeline = get_pipeline()
    with command_errors():
        pipeline.manager.mark_notification_read(user_id, notification_id)
    refresh(pipeline)
    click.echo(f"Marked {notification_id} read")


def register(cli: click.Group) -> None:
    """Register user and handoff commands with the CLI group."""
    cli.add_command(user_create)
    cli.add_command(users_cmd)
    cli.add_command(deactivate)
    cli.add_command(assign)
    cli.add_command(handoff)
    cli.add_command(approve_handoff)
    cli.add_command(reject_handoff)
    cli.add_command(requests_cmd)
    cli.add_command(queue)
    cli.add_command(workload)
    cli.add_command(my_dashboard)
    cli.add_command(notifications)
    cli.add_command(read_notification)
