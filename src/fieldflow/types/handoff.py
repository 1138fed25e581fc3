"""TypedDicts for RoleManager results: handoffs, queues, and dashboards."""

from __future__ import annotations

from typing import Any, Literal, TypedDict

from fieldflow.types.views import ISOTimestamp, ProgressView


class HandoffResult(TypedDict):
    """Outcome of a handoff attempt.

    ``handoff_type`` is ``"automatic"`` when the workflow was reassigned, or
    ``"manual"`` when a pending request now awaits approval.
    """

    success: bool
    handoff_type: Literal["automatic", "manual"]
    workflow_id: str
    from_user: str | None
    to_user: str | None
    request_id: str | None
    awaiting_approval: bool


class HandoffQueueEntry(TypedDict):
    workflow_id: str
    customer_id: str
    from_stage: str
    to_stage: str
    from_role: str
    to_role: str
    priority: str
    waiting_seconds: float


class RoleWorkload(TypedDict):
    role: str
    role_name: str
    user_count: int
    total_workflows: int
    average_workload: float
    overloaded: int


class UserSummary(TypedDict):
    id: str
    name: str
    role: str
    department: str


class WorkloadCounts(TypedDict):
    total: int
    overdue: int
    urgent: int
    blocked: int


class UserPerformance(TypedDict):
    completed_workflows: int
    average_completion_seconds: float
    last_active: ISOTimestamp


class UserDashboardView(TypedDict):
    user: UserSummary
    workload: WorkloadCounts
    workflows: list[ProgressView]
    overdue: list[str]
    urgent: list[str]
    blocked: list[str]
    performance: UserPerformance
    notifications: list[dict[str, Any]]
