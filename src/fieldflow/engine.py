"""WorkflowEngine -- stage transitions, history, milestones, blockers, dashboards.

The engine owns every Workflow for its full lifecycle: workflows are created
here, only ever move along catalog edges, and are never deleted. All
mutations happen under ``engine.lock``; the role manager takes the same lock
so that operations spanning a workflow and its users apply atomically.
"""

from __future__ import annotations

import logging
import math
import threading
from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any

from fieldflow.base import Clock, IdFactory, _now, _to_iso, new_id
from fieldflow.catalog import RoleCatalog, StageCatalog
from fieldflow.catalog_data import TOTAL_PHASES
from fieldflow.errors import BlockerNotFoundError, InvalidTransitionError, WorkflowNotFoundError
from fieldflow.models import VALID_PRIORITIES, VALID_SEVERITIES, Blocker, Milestone, StageTransition, Workflow
from fieldflow.settings import WorkflowSettings
from fieldflow.stores import WorkflowStore
from fieldflow.types.views import (
    BottleneckInfo,
    DashboardView,
    DeadlineInfo,
    ISOTimestamp,
    NextAction,
    ProgressView,
    RoleInfo,
)

logger = logging.getLogger(__name__)

_SECONDS_PER_DAY = 86400


def find_bottlenecks(distribution: Mapping[str, int], factor: float) -> list[str]:
    """Stages holding more than *factor* times the mean count of occupied stages.

    Stages with zero workflows do not count toward the mean. Order follows
    *distribution*.
    """
    occupied = {stage: count for stage, count in distribution.items() if count > 0}
    if not occupied:
        return []
    mean = sum(occupied.values()) / len(occupied)
    return [stage for stage, count in occupied.items() if count > mean * factor]


class WorkflowEngine:
    """Creates and advances workflows over the stage catalog."""

    def __init__(
        self,
        stages: StageCatalog,
        roles: RoleCatalog,
        settings: WorkflowSettings | None = None,
        *,
        store: WorkflowStore | None = None,
        clock: Clock | None = None,
        id_factory: IdFactory | None = None,
    ) -> None:
        self.stages = stages
        self.roles = roles
        self.settings = settings or WorkflowSettings()
        self.store = store if store is not None else WorkflowStore()
        self.clock: Clock = clock or _now
        self.id_factory: IdFactory = id_factory or new_id
        self.lock = threading.RLock()

    # -- Internals ----------------------------------------------------------

    def _generate_id(self, prefix: str) -> str:
        candidate = self.id_factory(prefix)
        while candidate in self.store:
            candidate = new_id(prefix)
        return candidate

    def _estimate_completion(self, stage_id: str) -> datetime:
        return self.clock() + timedelta(days=self.settings.estimate_days(stage_id))

    @staticmethod
    def _time_in_stage(workflow: Workflow, stage_id: str, now: datetime) -> float | None:
        """Seconds since the workflow last entered *stage_id* (most recent history entry)."""
        for entry in reversed(workflow.stage_history):
            if entry.to_stage == stage_id:
                return (now - entry.timestamp).total_seconds()
        return None

    # -- Lifecycle ----------------------------------------------------------

    def create_workflow(
        self,
        customer_id: str,
        initial_data: dict[str, Any] | None = None,
        *,
        priority: str = "normal",
    ) -> str:
        """Create a workflow at the initial stage and return its id."""
        if priority not in VALID_PRIORITIES:
            msg = f"Invalid priority '{priority}'. Valid priorities: {', '.join(sorted(VALID_PRIORITIES))}"
            raise ValueError(msg)
        with self.lock:
            initial = self.stages.definition(self.stages.initial_stage)
            now = self.clock()
            workflow = Workflow(
                id=self._generate_id("wf"),
                customer_id=customer_id,
                current_stage=str(initial.id),
                created_at=now,
                updated_at=now,
                assigned_to=str(initial.responsible_role),
                assigned_role=str(initial.responsible_role),
                next_actions=[str(s) for s in initial.next_actions],
                priority=priority,  # type: ignore[arg-type]
                data=dict(initial_data or {}),
                estimated_completion=self._estimate_completion(initial.id),
            )
            workflow.stage_history.append(
                StageTransition(from_stage=None, to_stage=workflow.current_stage, timestamp=now, notes="Workflow created")
            )
            self.store.put_workflow(workflow)
        logger.info("Created workflow %s for customer %s", workflow.id, customer_id)
        return workflow.id

    def get_workflow(self, workflow_id: str) -> Workflow:
        workflow = self.store.get(workflow_id)
        if workflow is None:
            raise WorkflowNotFoundError(workflow_id)
        return workflow

    def list_workflows(self) -> list[Workflow]:
        return self.store.list()

    def advance_workflow(
        self,
        workflow_id: str,
        target_stage: str,
        completion_data: dict[str, Any] | None = None,
        notes: str = "",
    ) -> Workflow:
        """Move a workflow to *target_stage*, one of its current stage's next actions.

        Raises:
            WorkflowNotFoundError: Unknown workflow id.
            UnknownStageError: *target_stage* is not a catalog stage.
            InvalidTransitionError: *target_stage* is not a next action of the current stage.
        """
        with self.lock:
            workflow = self.get_workflow(workflow_id)
            target_stage = str(self.stages.definition(target_stage).id)
            allowed = [str(s) for s in self.stages.next_stages(workflow.current_stage)]
            if target_stage not in allowed:
                logger.warning(
                    "Rejected transition for %s: %s -> %s", workflow_id, workflow.current_stage, target_stage
                )
                raise InvalidTransitionError(workflow.current_stage, target_stage, allowed)

            target = self.stages.definition(target_stage)
            now = self.clock()
            from_stage = workflow.current_stage
            workflow.stage_history.append(
                StageTransition(
                    from_stage=from_stage,
                    to_stage=str(target.id),
                    timestamp=now,
                    notes=notes,
                    duration_seconds=self._time_in_stage(workflow, from_stage, now),
                )
            )
            workflow.data = {**workflow.data, **(completion_data or {})}
            workflow.current_stage = str(target.id)
            workflow.next_actions = [str(s) for s in target.next_actions]
            workflow.assigned_to = str(target.responsible_role)
            workflow.assigned_role = str(target.responsible_role)
            workflow.updated_at = now
            workflow.estimated_completion = self._estimate_completion(target.id)

            milestone = self.settings.milestone_for(workflow.current_stage)
            if milestone is not None:
                workflow.milestones.append(Milestone(name=milestone, stage=workflow.current_stage, completed_at=now))
                logger.info("Workflow %s reached milestone '%s'", workflow_id, milestone)

        logger.info(
            "Workflow %s advanced %s -> %s",
            workflow_id,
            from_stage,
            workflow.current_stage,
            extra={"workflow_id": workflow_id, "stage": workflow.current_stage},
        )
        return workflow

    def set_priority(self, workflow_id: str, priority: str) -> Workflow:
        if priority not in VALID_PRIORITIES:
            msg = f"Invalid priority '{priority}'. Valid priorities: {', '.join(sorted(VALID_PRIORITIES))}"
            raise ValueError(msg)
        with self.lock:
            workflow = self.get_workflow(workflow_id)
            workflow.priority = priority  # type: ignore[assignment]
            workflow.updated_at = self.clock()
        return workflow

    # -- Blockers -----------------------------------------------------------

    def add_blocker(self, workflow_id: str, description: str, severity: str = "medium") -> Blocker:
        """Attach an open issue to a workflow. Blockers never stop advancement."""
        if severity not in VALID_SEVERITIES:
            msg = f"Invalid severity '{severity}'. Valid severities: {', '.join(sorted(VALID_SEVERITIES))}"
            raise ValueError(msg)
        with self.lock:
            workflow = self.get_workflow(workflow_id)
            blocker_ids = {b.id for b in workflow.blockers}
            blocker_id = self.id_factory("blk")
            while blocker_id in blocker_ids:
                blocker_id = new_id("blk")
            blocker = Blocker(
                id=blocker_id,
                description=description,
                severity=severity,  # type: ignore[arg-type]
                created_at=self.clock(),
            )
            workflow.blockers.append(blocker)
        logger.info("Blocker %s added to workflow %s (%s)", blocker.id, workflow_id, severity)
        return blocker

    def resolve_blocker(self, workflow_id: str, blocker_id: str, resolution: str) -> Blocker:
        with self.lock:
            workflow = self.get_workflow(workflow_id)
            blocker = next((b for b in workflow.blockers if b.id == blocker_id), None)
            if blocker is None:
                raise BlockerNotFoundError(blocker_id)
            if blocker.resolved:
                msg = f"Blocker '{blocker_id}' is already resolved"
                raise ValueError(msg)
            blocker.resolved = True
            blocker.resolution = resolution
            blocker.resolved_at = self.clock()
        logger.info("Blocker %s on workflow %s resolved", blocker_id, workflow_id)
        return blocker

    # -- Queries ------------------------------------------------------------

    def get_next_actions(self, workflow_id: str) -> list[NextAction]:
        workflow = self.get_workflow(workflow_id)
        actions: list[NextAction] = []
        for stage_id in self.stages.next_stages(workflow.current_stage):
            sd = self.stages.definition(stage_id)
            actions.append(
                NextAction(
                    stage=str(sd.id),
                    name=sd.name,
                    description=sd.description,
                    responsible_role=str(sd.responsible_role),
                    estimated_duration=sd.estimated_duration,
                )
            )
        return actions

    def get_workflows_by_role(self, role_id: str) -> list[Workflow]:
        role = self.roles.definition(role_id).id
        return [w for w in self.store.list() if w.assigned_role == role]

    def get_workflows_by_stage(self, stage_id: str) -> list[Workflow]:
        stage = self.stages.definition(stage_id).id
        return [w for w in self.store.list() if w.current_stage == stage]

    def _role_info(self, role_id: str) -> RoleInfo:
        rd = self.roles.definition(role_id)
        return RoleInfo(id=str(rd.id), name=rd.name, department=rd.department, dashboard=rd.dashboard)

    def get_workflow_progress(self, workflow_id: str) -> ProgressView | None:
        """Progress snapshot, or None for an unknown workflow id.

        Progress counts completed phases: a workflow in phase *p* is
        ``(p - 1) / 7`` of the way through.
        """
        workflow = self.store.get(workflow_id)
        if workflow is None:
            return None
        sd = self.stages.definition(workflow.current_stage)
        completed = sd.phase - 1
        return ProgressView(
            workflow_id=workflow.id,
            customer_id=workflow.customer_id,
            current_stage=workflow.current_stage,
            current_stage_name=sd.name,
            phase=sd.phase,
            phase_name=self.stages.phase_name(sd.phase),
            completed_phases=completed,
            total_phases=TOTAL_PHASES,
            progress_percentage=completed / TOTAL_PHASES * 100,
            priority=workflow.priority,
            estimated_completion=ISOTimestamp(_to_iso(workflow.estimated_completion)) if workflow.estimated_completion else None,
            next_actions=self.get_next_actions(workflow.id),
            milestones=[m.to_dict() for m in workflow.milestones],
            blockers=[b.to_dict() for b in workflow.open_blockers],
            assigned_to=workflow.assigned_to,
            assigned_role=self._role_info(workflow.assigned_role),
        )

    def generate_dashboard(self) -> DashboardView:
        """Aggregate counts, deadlines, blockers, and bottlenecks over all workflows."""
        with self.lock:
            now = self.clock()
            window = self.settings.deadline_window_days
            stage_distribution: dict[str, int] = {}
            role_workload: dict[str, int] = {}
            blocked: list[str] = []
            overdue: list[str] = []
            upcoming: list[DeadlineInfo] = []

            workflows = self.store.list()
            for w in workflows:
                stage_distribution[w.current_stage] = stage_distribution.get(w.current_stage, 0) + 1
                role_workload[w.assigned_role] = role_workload.get(w.assigned_role, 0) + 1
                if w.open_blockers:
                    blocked.append(w.id)
                if w.estimated_completion is None:
                    continue
                days_left = (w.estimated_completion - now).total_seconds() / _SECONDS_PER_DAY
                if days_left < 0:
                    overdue.append(w.id)
                elif 0 < days_left <= window:
                    upcoming.append(
                        DeadlineInfo(
                            workflow_id=w.id,
                            customer_id=w.customer_id,
                            days_remaining=math.ceil(days_left),
                            current_stage=w.current_stage,
                        )
                    )

            bottlenecks: list[BottleneckInfo] = []
            for stage_id in find_bottlenecks(stage_distribution, self.settings.bottleneck_factor):
                sd = self.stages.definition(stage_id)
                bottlenecks.append(
                    BottleneckInfo(
                        stage=stage_id,
                        stage_name=sd.name,
                        workflow_count=stage_distribution[stage_id],
                        responsible_role=str(sd.responsible_role),
                    )
                )

            return DashboardView(
                total_workflows=len(workflows),
                stage_distribution=stage_distribution,
                role_workload=role_workload,
                blocked_workflows=blocked,
                overdue_workflows=overdue,
                upcoming_deadlines=upcoming,
                average_completion_seconds=self.average_completion_seconds(),
                bottlenecks=bottlenecks,
            )

    def average_completion_seconds(self) -> float | None:
        """Mean created->last-update time over workflows sitting in the completion stage."""
        done = [w for w in self.store.list() if w.current_stage == self.settings.completion_stage]
        if not done:
            return None
        return sum((w.updated_at - w.created_at).total_seconds() for w in done) / len(done)
