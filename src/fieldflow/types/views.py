"""TypedDicts for WorkflowEngine query results."""

from __future__ import annotations

from typing import Any, NewType, TypedDict

ISOTimestamp = NewType("ISOTimestamp", str)


class NextAction(TypedDict):
    stage: str
    name: str
    description: str
    responsible_role: str
    estimated_duration: str


class RoleInfo(TypedDict):
    id: str
    name: str
    department: str
    dashboard: str


class ProgressView(TypedDict):
    workflow_id: str
    customer_id: str
    current_stage: str
    current_stage_name: str
    phase: int
    phase_name: str
    completed_phases: int
    total_phases: int
    progress_percentage: float
    priority: str
    estimated_completion: ISOTimestamp | None
    next_actions: list[NextAction]
    milestones: list[dict[str, Any]]
    blockers: list[dict[str, Any]]
    assigned_to: str
    assigned_role: RoleInfo


class DeadlineInfo(TypedDict):
    workflow_id: str
    customer_id: str
    days_remaining: int
    current_stage: str


class BottleneckInfo(TypedDict):
    stage: str
    stage_name: str
    workflow_count: int
    responsible_role: str


class DashboardView(TypedDict):
    total_workflows: int
    stage_distribution: dict[str, int]
    role_workload: dict[str, int]
    blocked_workflows: list[str]
    overdue_workflows: list[str]
    upcoming_deadlines: list[DeadlineInfo]
    average_completion_seconds: float | None
    bottlenecks: list[BottleneckInfo]
