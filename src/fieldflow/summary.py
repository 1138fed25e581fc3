"""Pre-computed pipeline summary.

Renders a compact markdown "Pipeline Pulse" from the current pipeline state
so that a reader gets the whole picture in a single file read.
"""

from __future__ import annotations

import contextlib
import os
import re
import tempfile
from pathlib import Path

from fieldflow.catalog_data import TOTAL_PHASES
from fieldflow.core import Pipeline

# Matches C0/C1 control characters except tab/newline (which we handle separately)
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")

MAX_LISTED = 10


def _sanitize(text: str) -> str:
    """Make untrusted text safe for a single markdown line."""
    text = _CONTROL_CHARS_RE.sub("", text)
    text = " ".join(text.replace("\r", " ").replace("\n", " ").split())
    if len(text) > 200:
        text = text[:197] + "..."
    return text


def _more(count: int) -> str:
    return f"- ... and {count - MAX_LISTED} more" if count > MAX_LISTED else ""


def generate_summary(pipeline: Pipeline) -> str:
    """Generate the context.md summary from current pipeline state."""
    engine = pipeline.engine
    manager = pipeline.manager
    now = engine.clock()
    now_iso = now.isoformat(timespec="seconds")
    dashboard = engine.generate_dashboard()

    lines: list[str] = []
    lines.append(f"# Pipeline Pulse (auto-generated {now_iso})")
    lines.append("")

    pending = manager.list_handoff_requests("pending")
    avg = dashboard["average_completion_seconds"]
    avg_str = f"{avg / 86400:.1f}d" if avg is not None else "n/a"
    lines.append("## Vitals")
    lines.append(
        f"Workflows: {dashboard['total_workflows']} | Blocked: {len(dashboard['blocked_workflows'])} | "
        f"Overdue: {len(dashboard['overdue_workflows'])} | Pending handoffs: {len(pending)} | "
        f"Avg completion: {avg_str}"
    )
    lines.append("")

    # -- Phase distribution
    if dashboard["total_workflows"]:
        lines.append("## By Phase")
        for phase in range(1, TOTAL_PHASES + 1):
            stage_ids = [str(sd.id) for sd in pipeline.stages.stages_in_phase(phase)]
            counts = {s: dashboard["stage_distribution"].get(s, 0) for s in stage_ids}
            total = sum(counts.values())
            if not total:
                continue
            detail = ", ".join(f"{s} {c}" for s, c in counts.items() if c)
            lines.append(f"- {phase}. {pipeline.stages.phase_name(phase)}: {total} ({detail})")
        lines.append("")

    if dashboard["bottlenecks"]:
        lines.append("## Bottlenecks")
        for b in dashboard["bottlenecks"]:
            lines.append(f"- {b['stage_name']} ({b['stage']}): {b['workflow_count']} workflows, owner {b['responsible_role']}")
        lines.append("")

    if dashboard["blocked_workflows"]:
        lines.append(f"## Blocked ({len(dashboard['blocked_workflows'])})")
        for wid in dashboard["blocked_workflows"][:MAX_LISTED]:
            workflow = engine.get_workflow(wid)
            top = workflow.open_blockers[0]
            lines.append(
                f'- {wid} [{workflow.current_stage}] {top.severity}: "{_sanitize(top.description)}"'
                + (f" (+{len(workflow.open_blockers) - 1})" if len(workflow.open_blockers) > 1 else "")
            )
        if more := _more(len(dashboard["blocked_workflows"])):
            lines.append(more)
        lines.append("")

    if dashboard["overdue_workflows"]:
        lines.append(f"## Overdue ({len(dashboard['overdue_workflows'])})")
        for wid in dashboard["overdue_workflows"][:MAX_LISTED]:
            workflow = engine.get_workflow(wid)
            lines.append(f"- {wid} {_sanitize(workflow.customer_id)} [{workflow.current_stage}] -> {workflow.assigned_to}")
        if more := _more(len(dashboard["overdue_workflows"])):
            lines.append(more)
        lines.append("")

    if dashboard["upcoming_deadlines"]:
        lines.append("## Upcoming Deadlines")
        deadlines = sorted(dashboard["upcoming_deadlines"], key=lambda d: d["days_remaining"])
        for d in deadlines[:MAX_LISTED]:
            lines.append(f"- {d['workflow_id']} {_sanitize(d['customer_id'])} [{d['current_stage']}] in {d['days_remaining']}d")
        if more := _more(len(deadlines)):
            lines.append(more)
        lines.append("")

    if pending:
        lines.append(f"## Pending Handoffs ({len(pending)})")
        for r in pending[:MAX_LISTED]:
            lines.append(f"- {r.id} {r.workflow_id}: {r.from_stage} -> {r.to_stage} ({_sanitize(r.reason)})")
        if more := _more(len(pending)):
            lines.append(more)
        lines.append("")

    overloaded = {role: w for role, w in manager.get_role_workload_report().items() if w["overloaded"]}
    if overloaded:
        lines.append("## Overloaded Roles")
        for role, w in overloaded.items():
            lines.append(
                f"- {w['role_name']} ({role}): {w['overloaded']}/{w['user_count']} users over "
                f"{engine.settings.overload_threshold}, avg {w['average_workload']:.1f}"
            )
        lines.append("")

    if not dashboard["total_workflows"]:
        lines.append("No workflows yet. Start one with: fieldflow create <customer-id>")
        lines.append("")

    return "\n".join(lines)


def write_summary(pipeline: Pipeline, output_path: str | Path) -> None:
    """Generate and write the summary atomically (write-temp then rename)."""
    summary = generate_summary(pipeline)
    output = Path(output_path)
    fd, tmp_name = tempfile.mkstemp(dir=output.parent, suffix=".tmp", prefix=".context_")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(summary)
        os.replace(tmp_name, str(output))
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise
