"""Mutable domain entities: workflows, users, notifications, handoff requests.

Entities hold ``datetime`` values internally and serialize them as ISO
strings in ``to_dict()``; ``from_dict()`` is the exact inverse and is used to
restore CLI state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from fieldflow.base import _parse_iso, _to_iso
from fieldflow.catalog import PermissionSet

Priority = Literal["low", "normal", "high", "urgent"]
Severity = Literal["low", "medium", "high", "critical"]
HandoffStatus = Literal["pending", "approved", "rejected"]

VALID_PRIORITIES: frozenset[str] = frozenset({"low", "normal", "high", "urgent"})
VALID_SEVERITIES: frozenset[str] = frozenset({"low", "medium", "high", "critical"})


def _required_dt(ts: str) -> datetime:
    dt = _parse_iso(ts)
    if dt is None:
        msg = "timestamp is required"
        raise ValueError(msg)
    return dt


# ---------------------------------------------------------------------------
# Workflow and its parts
# ---------------------------------------------------------------------------


@dataclass
class StageTransition:
    from_stage: str | None
    to_stage: str
    timestamp: datetime
    notes: str = ""
    # Seconds spent in from_stage; None for the creation entry.
    duration_seconds: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "from_stage": self.from_stage,
            "to_stage": self.to_stage,
            "timestamp": _to_iso(self.timestamp),
            "notes": self.notes,
            "duration_seconds": self.duration_seconds,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> StageTransition:
        return cls(
            from_stage=raw.get("from_stage"),
            to_stage=raw["to_stage"],
            timestamp=_required_dt(raw["timestamp"]),
            notes=raw.get("notes", ""),
            duration_seconds=raw.get("duration_seconds"),
        )


@dataclass
class Milestone:
    name: str
    stage: str
    completed_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "stage": self.stage, "completed_at": _to_iso(self.completed_at)}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Milestone:
        return cls(name=raw["name"], stage=raw["stage"], completed_at=_required_dt(raw["completed_at"]))


@dataclass
class Blocker:
    id: str
    description: str
    severity: Severity
    created_at: datetime
    resolved: bool = False
    resolution: str | None = None
    resolved_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "severity": self.severity,
            "created_at": _to_iso(self.created_at),
            "resolved": self.resolved,
            "resolution": self.resolution,
            "resolved_at": _to_iso(self.resolved_at),
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Blocker:
        return cls(
            id=raw["id"],
            description=raw["description"],
            severity=raw.get("severity", "medium"),
            created_at=_required_dt(raw["created_at"]),
            resolved=bool(raw.get("resolved", False)),
            resolution=raw.get("resolution"),
            resolved_at=_parse_iso(raw.get("resolved_at")),
        )


@dataclass
class Workflow:
    id: str
    customer_id: str
    current_stage: str
    created_at: datetime
    updated_at: datetime
    # Role id, or a user id once a specific user holds the workflow.
    assigned_to: str
    assigned_role: str
    next_actions: list[str] = field(default_factory=list)
    priority: Priority = "normal"
    data: dict[str, Any] = field(default_factory=dict)
    stage_history: list[StageTransition] = field(default_factory=list)
    milestones: list[Milestone] = field(default_factory=list)
    blockers: list[Blocker] = field(default_factory=list)
    estimated_completion: datetime | None = None

    @property
    def open_blockers(self) -> list[Blocker]:
        return [b for b in self.blockers if not b.resolved]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "current_stage": self.current_stage,
            "created_at": _to_iso(self.created_at),
            "updated_at": _to_iso(self.updated_at),
            "assigned_to": self.assigned_to,
            "assigned_role": self.assigned_role,
            "next_actions": list(self.next_actions),
            "priority": self.priority,
            "data": dict(self.data),
            "stage_history": [t.to_dict() for t in self.stage_history],
            "milestones": [m.to_dict() for m in self.milestones],
            "blockers": [b.to_dict() for b in self.blockers],
            "estimated_completion": _to_iso(self.estimated_completion),
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Workflow:
        return cls(
            id=raw["id"],
            customer_id=raw["customer_id"],
            current_stage=raw["current_stage"],
            created_at=_required_dt(raw["created_at"]),
            updated_at=_required_dt(raw["updated_at"]),
            assigned_to=raw["assigned_to"],
            assigned_role=raw["assigned_role"],
            next_actions=list(raw.get("next_actions", [])),
            priority=raw.get("priority", "normal"),
            data=dict(raw.get("data", {})),
            stage_history=[StageTransition.from_dict(t) for t in raw.get("stage_history", [])],
            milestones=[Milestone.from_dict(m) for m in raw.get("milestones", [])],
            blockers=[Blocker.from_dict(b) for b in raw.get("blockers", [])],
            estimated_completion=_parse_iso(raw.get("estimated_completion")),
        )


# ---------------------------------------------------------------------------
# Users, notifications, handoff requests
# ---------------------------------------------------------------------------


@dataclass
class User:
    id: str
    name: str
    role: str
    email: str
    department: str
    # Snapshot of the role's permissions at creation time.
    permissions: PermissionSet
    created_at: datetime
    last_active: datetime
    active: bool = True
    # Insertion-ordered set of workflow ids (dict keys).
    assigned_workflows: dict[str, None] = field(default_factory=dict)
    completed_workflows: int = 0
    average_completion_seconds: float = 0.0

    @property
    def workload(self) -> int:
        return len(self.assigned_workflows)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role,
            "email": self.email,
            "department": self.department,
            "permissions": self.permissions.to_dict(),
            "active": self.active,
            "created_at": _to_iso(self.created_at),
            "last_active": _to_iso(self.last_active),
            "assigned_workflows": list(self.assigned_workflows),
            "completed_workflows": self.completed_workflows,
            "average_completion_seconds": self.average_completion_seconds,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> User:
        return cls(
            id=raw["id"],
            name=raw["name"],
            role=raw["role"],
            email=raw.get("email", ""),
            department=raw.get("department", ""),
            permissions=PermissionSet.from_dict(raw.get("permissions", {})),
            active=bool(raw.get("active", True)),
            created_at=_required_dt(raw["created_at"]),
            last_active=_required_dt(raw["last_active"]),
            assigned_workflows=dict.fromkeys(raw.get("assigned_workflows", [])),
            completed_workflows=int(raw.get("completed_workflows", 0)),
            average_completion_seconds=float(raw.get("average_completion_seconds", 0.0)),
        )


@dataclass
class Notification:
    id: str
    user_id: str
    type: str
    data: dict[str, Any]
    created_at: datetime
    read: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type,
            "data": dict(self.data),
            "created_at": _to_iso(self.created_at),
            "read": self.read,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Notification:
        return cls(
            id=raw["id"],
            user_id=raw["user_id"],
            type=raw["type"],
            data=dict(raw.get("data", {})),
            created_at=_required_dt(raw["created_at"]),
            read=bool(raw.get("read", False)),
        )


@dataclass
class HandoffRequest:
    id: str
    workflow_id: str
    from_stage: str
    to_stage: str
    from_user: str | None
    requested_at: datetime
    data: dict[str, Any] = field(default_factory=dict)
    status: HandoffStatus = "pending"
    reason: str = ""
    decided_at: datetime | None = None
    to_user: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "workflow_id": self.workflow_id,
            "from_stage": self.from_stage,
            "to_stage": self.to_stage,
            "from_user": self.from_user,
            "requested_at": _to_iso(self.requested_at),
            "data": dict(self.data),
            "status": self.status,
            "reason": self.reason,
            "decided_at": _to_iso(self.decided_at),
            "to_user": self.to_user,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> HandoffRequest:
        return cls(
            id=raw["id"],
            workflow_id=raw["workflow_id"],
            from_stage=raw["from_stage"],
            to_stage=raw["to_stage"],
            from_user=raw.get("from_user"),
            requested_at=_required_dt(raw["requested_at"]),
            data=dict(raw.get("data", {})),
            status=raw.get("status", "pending"),
            reason=raw.get("reason", ""),
            decided_at=_parse_iso(raw.get("decided_at")),
            to_user=raw.get("to_user"),
        )
