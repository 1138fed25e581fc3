"""RoleManager -- users, assignment, handoffs, notifications, and per-user dashboards.

Works on top of a WorkflowEngine and shares its lock: a handoff reads the
workflow, picks a target user, moves the workflow between two users' sets,
and emits notifications as one atomic step. Every check that can fail runs
before the first mutation, so a rejected handoff leaves no partial state.
"""

from __future__ import annotations

import logging
from typing import Any

from fieldflow.base import _to_iso, new_id
from fieldflow.catalog import HandoffRule, HandoffRuleTable, RoleCatalog
from fieldflow.engine import WorkflowEngine
from fieldflow.errors import (
    HandoffRequestNotFoundError,
    InvalidTransitionError,
    MissingFieldsError,
    NoAvailableUserError,
    NotificationNotFoundError,
    PermissionDeniedError,
    UserNotFoundError,
)
from fieldflow.models import HandoffRequest, Notification, User, Workflow
from fieldflow.stores import HandoffRequestStore, NotificationStore, UserStore
from fieldflow.types.handoff import (
    HandoffQueueEntry,
    HandoffResult,
    RoleWorkload,
    UserDashboardView,
    UserPerformance,
    UserSummary,
    WorkloadCounts,
)
from fieldflow.types.views import ISOTimestamp, ProgressView

logger = logging.getLogger(__name__)

_SECONDS_PER_DAY = 86400

NO_RULE_REASON = "Manual handoff required - no automatic rule defined"
APPROVAL_RULE_REASON = "Handoff rule requires manager approval"


def _is_missing(data: dict[str, Any], key: str) -> bool:
    return data.get(key) in (None, "")


class RoleManager:
    """Users and handoffs layered over a WorkflowEngine."""

    def __init__(
        self,
        engine: WorkflowEngine,
        roles: RoleCatalog,
        rules: HandoffRuleTable,
        *,
        users: UserStore | None = None,
        notifications: NotificationStore | None = None,
        requests: HandoffRequestStore | None = None,
    ) -> None:
        self.engine = engine
        self.roles = roles
        self.rules = rules
        self.users = users if users is not None else UserStore()
        self.notifications = notifications if notifications is not None else NotificationStore()
        self.requests = requests if requests is not None else HandoffRequestStore()

    @property
    def lock(self) -> Any:
        return self.engine.lock

    def _new_id(self, prefix: str, taken: Any) -> str:
        candidate = self.engine.id_factory(prefix)
        while candidate in taken:
            candidate = new_id(prefix)
        return candidate

    # -- Users --------------------------------------------------------------

    def create_user(
        self,
        user_id: str,
        name: str,
        role_id: str,
        email: str = "",
        department: str | None = None,
    ) -> User:
        """Register a user; the role's permission set is copied onto the user."""
        role = self.roles.definition(role_id)
        with self.lock:
            if user_id in self.users:
                msg = f"User '{user_id}' already exists"
                raise ValueError(msg)
            now = self.engine.clock()
            user = User(
                id=user_id,
                name=name,
                role=str(role.id),
                email=email,
                department=department if department is not None else role.department,
                permissions=role.permissions,
                created_at=now,
                last_active=now,
            )
            self.users.put_user(user)
        logger.info("Created user %s (%s)", user_id, role.id)
        return user

    def get_user(self, user_id: str) -> User:
        user = self.users.get(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def list_users(self, role: str | None = None, *, active_only: bool = False) -> list[User]:
        if role is not None:
            users = self.users.by_role(str(self.roles.definition(role).id))
        else:
            users = self.users.list()
        if active_only:
            users = [u for u in users if u.active]
        return users

    def set_user_active(self, user_id: str, active: bool) -> User:
        """Activate or deactivate a user. Inactive users keep their workflows but receive no new ones."""
        with self.lock:
            user = self.get_user(user_id)
            user.active = active
        logger.info("User %s %s", user_id, "activated" if active else "deactivated")
        return user

    def get_user_by_workflow(self, workflow_id: str) -> User | None:
        """The user currently holding *workflow_id*, if any."""
        for user in self.users.list():
            if workflow_id in user.assigned_workflows:
                return user
        return None

    def find_available_user(self, role_id: str) -> User | None:
        """Active user in *role_id* with the fewest assigned workflows (first registered wins ties)."""
        candidates = self.list_users(role_id, active_only=True)
        if not candidates:
            return None
        return min(candidates, key=lambda u: u.workload)

    def find_manager_for_role(self, role_id: str) -> User | None:
        manager_role = self.roles.manager_role_for(role_id)
        if manager_role is None:
            return None
        return next(iter(self.list_users(manager_role, active_only=True)), None)

    # -- Assignment ---------------------------------------------------------

    def _check_can_view(self, user: User, workflow: Workflow) -> None:
        if workflow.current_stage not in user.permissions.can_view:
            logger.warning(
                "User %s may not work on %s (stage %s)", user.id, workflow.id, workflow.current_stage
            )
            raise PermissionDeniedError(user.id, workflow.current_stage)

    def _attach(self, workflow: Workflow, user: User) -> None:
        previous = self.get_user_by_workflow(workflow.id)
        if previous is not None and previous.id != user.id:
            previous.assigned_workflows.pop(workflow.id, None)
        user.assigned_workflows[workflow.id] = None
        user.last_active = self.engine.clock()
        workflow.assigned_to = user.id
        workflow.assigned_role = user.role

    def _record_completion(self, user: User, workflow: Workflow) -> None:
        """Fold one completed stint on a workflow into the user's running completion stats."""
        now = self.engine.clock()
        sample = (now - workflow.created_at).total_seconds()
        user.completed_workflows += 1
        n = user.completed_workflows
        user.average_completion_seconds = (user.average_completion_seconds * (n - 1) + sample) / n
        user.last_active = now

    def assign_workflow(self, workflow_id: str, user_id: str) -> Workflow:
        """Give *workflow_id* to *user_id*, releasing it from any previous holder.

        Raises:
            UserNotFoundError / WorkflowNotFoundError: Unknown id.
            PermissionDeniedError: The user's role cannot view the workflow's current stage.
        """
        with self.lock:
            user = self.get_user(user_id)
            workflow = self.engine.get_workflow(workflow_id)
            self._check_can_view(user, workflow)
            self._attach(workflow, user)
            self.send_notification(
                user.id,
                "workflow_assigned",
                {"workflow_id": workflow.id, "customer_id": workflow.customer_id, "stage": workflow.current_stage},
            )
        logger.info("Assigned workflow %s to %s", workflow_id, user_id)
        return workflow

    # -- Handoffs -----------------------------------------------------------

    def execute_handoff(
        self,
        workflow_id: str,
        from_stage: str,
        to_stage: str,
        handoff_data: dict[str, Any] | None = None,
    ) -> HandoffResult:
        """Pass a workflow from the people working *from_stage* to those working *to_stage*.

        With an automatic rule for the edge, the workflow moves straight to the
        least-loaded active user of the rule's target role. Without a rule, or
        with a rule that needs approval, a pending HandoffRequest is stored and
        a manager is notified instead.

        Raises:
            UnknownStageError: Either stage id is not in the catalog.
            InvalidTransitionError: *to_stage* is not a next action of *from_stage*.
            WorkflowNotFoundError: Unknown workflow id.
            MissingFieldsError: The rule requires data found in neither the workflow nor *handoff_data*.
            NoAvailableUserError: No active user holds the rule's target role.
            PermissionDeniedError: The chosen user cannot view the workflow's current stage.
        """
        data = dict(handoff_data or {})
        stages = self.engine.stages
        with self.lock:
            source = stages.definition(from_stage)
            target = stages.definition(to_stage)
            allowed = [str(s) for s in source.next_actions]
            if target.id not in source.next_actions:
                raise InvalidTransitionError(str(source.id), str(target.id), allowed)
            workflow = self.engine.get_workflow(workflow_id)

            rule = self.rules.rule_for(source.id, target.id)
            if rule is None:
                return self._request_manual_handoff(
                    workflow, str(source.id), str(target.id), data, str(target.responsible_role), NO_RULE_REASON
                )

            merged = {**workflow.data, **data}
            missing = [f for f in rule.required_fields if _is_missing(merged, f)]
            if missing:
                logger.warning("Handoff %s -> %s for %s missing %s", source.id, target.id, workflow_id, missing)
                raise MissingFieldsError(str(source.id), str(target.id), missing)

            if not rule.auto_handoff:
                return self._request_manual_handoff(
                    workflow, str(source.id), str(target.id), data, str(rule.to_role), APPROVAL_RULE_REASON
                )

            recipient = self.find_available_user(rule.to_role)
            if recipient is None:
                raise NoAvailableUserError(str(rule.to_role))
            self._check_can_view(recipient, workflow)

            workflow.data = merged
            return self._transfer(workflow, recipient, rule)

    def _transfer(self, workflow: Workflow, recipient: User, rule: HandoffRule | None) -> HandoffResult:
        """Move *workflow* to *recipient*. Caller holds the lock and has validated everything."""
        previous = self.get_user_by_workflow(workflow.id)
        if previous is not None and previous.id != recipient.id:
            previous.assigned_workflows.pop(workflow.id, None)
            self._record_completion(previous, workflow)
        self._attach(workflow, recipient)

        template = rule.notification_template if rule is not None else ""
        if previous is not None and previous.id != recipient.id:
            self.send_notification(
                previous.id,
                "workflow_handed_off",
                {"workflow_id": workflow.id, "to_user": recipient.name, "stage": workflow.current_stage, "template": template},
            )
        self.send_notification(
            recipient.id,
            "workflow_received",
            {
                "workflow_id": workflow.id,
                "from_user": previous.name if previous is not None else "System",
                "stage": workflow.current_stage,
                "priority": workflow.priority,
                "template": template,
            },
        )
        logger.info(
            "Handed off workflow %s from %s to %s",
            workflow.id,
            previous.id if previous is not None else "-",
            recipient.id,
            extra={"workflow_id": workflow.id, "user_id": recipient.id, "stage": workflow.current_stage},
        )
        return HandoffResult(
            success=True,
            handoff_type="automatic",
            workflow_id=workflow.id,
            from_user=previous.id if previous is not None else None,
            to_user=recipient.id,
            request_id=None,
            awaiting_approval=False,
        )

    def _request_manual_handoff(
        self,
        workflow: Workflow,
        from_stage: str,
        to_stage: str,
        data: dict[str, Any],
        target_role: str,
        reason: str,
    ) -> HandoffResult:
        holder = self.get_user_by_workflow(workflow.id)
        request = HandoffRequest(
            id=self._new_id("handoff", self.requests),
            workflow_id=workflow.id,
            from_stage=from_stage,
            to_stage=to_stage,
            from_user=holder.id if holder is not None else None,
            requested_at=self.engine.clock(),
            data=data,
            reason=reason,
        )
        self.requests.put_request(request)

        manager = self.find_manager_for_role(target_role)
        if manager is not None:
            self.send_notification(manager.id, "handoff_approval_needed", request.to_dict())
        else:
            logger.warning("No manager available to approve handoff %s (role %s)", request.id, target_role)
        logger.info("Handoff request %s opened for workflow %s (%s -> %s)", request.id, workflow.id, from_stage, to_stage)
        return HandoffResult(
            success=True,
            handoff_type="manual",
            workflow_id=workflow.id,
            from_user=request.from_user,
            to_user=None,
            request_id=request.id,
            awaiting_approval=True,
        )

    def get_handoff_request(self, request_id: str) -> HandoffRequest:
        request = self.requests.get(request_id)
        if request is None:
            raise HandoffRequestNotFoundError(request_id)
        return request

    def list_handoff_requests(self, status: str | None = None) -> list[HandoffRequest]:
        requests = self.requests.list()
        if status is not None:
            requests = [r for r in requests if r.status == status]
        return requests

    def approve_handoff(self, request_id: str, to_user: str | None = None) -> HandoffResult:
        """Complete a pending manual handoff.

        The recipient is *to_user* when given, otherwise the least-loaded active
        user of the target role (the rule's ``to_role``, or the target stage's
        responsible role when no rule covers the edge).
        """
        with self.lock:
            request = self.get_handoff_request(request_id)
            if request.status != "pending":
                msg = f"Handoff request '{request_id}' is already {request.status}"
                raise ValueError(msg)
            workflow = self.engine.get_workflow(request.workflow_id)
            rule = self.rules.rule_for(request.from_stage, request.to_stage)
            if to_user is not None:
                recipient = self.get_user(to_user)
            else:
                role = rule.to_role if rule is not None else self.engine.stages.responsible_role(request.to_stage)
                found = self.find_available_user(role)
                if found is None:
                    raise NoAvailableUserError(str(role))
                recipient = found
            self._check_can_view(recipient, workflow)

            workflow.data = {**workflow.data, **request.data}
            result = self._transfer(workflow, recipient, rule)
            request.status = "approved"
            request.decided_at = self.engine.clock()
            request.to_user = recipient.id
        result["request_id"] = request_id
        logger.info("Handoff request %s approved", request_id)
        return result

    def reject_handoff(self, request_id: str, reason: str = "") -> HandoffRequest:
        with self.lock:
            request = self.get_handoff_request(request_id)
            if request.status != "pending":
                msg = f"Handoff request '{request_id}' is already {request.status}"
                raise ValueError(msg)
            request.status = "rejected"
            request.reason = reason or request.reason
            request.decided_at = self.engine.clock()
            if request.from_user is not None and request.from_user in self.users:
                self.send_notification(
                    request.from_user,
                    "handoff_rejected",
                    {"request_id": request.id, "workflow_id": request.workflow_id, "reason": reason},
                )
        logger.info("Handoff request %s rejected", request_id)
        return request

    def advance_with_handoff(
        self,
        workflow_id: str,
        target_stage: str,
        completion_data: dict[str, Any] | None = None,
        notes: str = "",
        *,
        user_id: str | None = None,
    ) -> HandoffResult | None:
        """Advance a workflow and fire the handoff rule for the edge it crossed.

        When *user_id* is given, the user must be allowed to advance the
        workflow. Returns None when no rule covers the crossed edge. Required
        fields are checked before the advance, so a missing field leaves the
        workflow where it was, as does an automatic rule with no eligible recipient.
        """
        with self.lock:
            workflow = self.engine.get_workflow(workflow_id)
            from_stage = workflow.current_stage
            if user_id is not None and not self.can_user_advance_workflow(user_id, workflow_id, target_stage):
                raise PermissionDeniedError(user_id, from_stage)
            rule = self.rules.rule_for(from_stage, target_stage) if target_stage in self.engine.stages else None
            if rule is not None:
                merged = {**workflow.data, **(completion_data or {})}
                missing = [f for f in rule.required_fields if _is_missing(merged, f)]
                if missing:
                    raise MissingFieldsError(from_stage, target_stage, missing)
                if rule.auto_handoff:
                    recipient = self.find_available_user(rule.to_role)
                    if recipient is None:
                        raise NoAvailableUserError(str(rule.to_role))
                    if target_stage not in recipient.permissions.can_view:
                        raise PermissionDeniedError(recipient.id, target_stage)
            self.engine.advance_workflow(workflow_id, target_stage, completion_data, notes)
            if rule is None:
                return None
            return self.execute_handoff(workflow_id, from_stage, target_stage)

    def can_user_advance_workflow(self, user_id: str, workflow_id: str, target_stage: str) -> bool:
        """True when the user may advance from the current stage and view *target_stage*."""
        user = self.get_user(user_id)
        workflow = self.engine.get_workflow(workflow_id)
        perms = user.permissions
        return workflow.current_stage in perms.can_advance and target_stage in perms.can_view

    # -- Notifications ------------------------------------------------------

    def send_notification(self, user_id: str, type: str, data: dict[str, Any]) -> Notification:  # noqa: A002
        with self.lock:
            self.get_user(user_id)
            notification = Notification(
                id=self._new_id("ntf", self.notifications),
                user_id=user_id,
                type=type,
                data=dict(data),
                created_at=self.engine.clock(),
            )
            self.notifications.append(notification)
        logger.debug("Notification %s sent to %s: %s", notification.id, user_id, type)
        return notification

    def get_unread_notifications(self, user_id: str) -> list[Notification]:
        return [n for n in self.notifications.list_for(user_id) if not n.read]

    def mark_notification_read(self, user_id: str, notification_id: str) -> Notification:
        with self.lock:
            notification = self.notifications.get(user_id, notification_id)
            if notification is None:
                raise NotificationNotFoundError(notification_id)
            notification.read = True
        return notification

    # -- Reports ------------------------------------------------------------

    def get_user_dashboard(self, user_id: str) -> UserDashboardView | None:
        """The user's assigned workflows with overdue/urgent/blocked breakdowns, or None."""
        with self.lock:
            user = self.users.get(user_id)
            if user is None:
                return None
            now = self.engine.clock()
            urgent_days = self.engine.settings.urgent_days
            workflows: list[ProgressView] = []
            overdue: list[str] = []
            urgent: list[str] = []
            blocked: list[str] = []
            for wid in user.assigned_workflows:
                progress = self.engine.get_workflow_progress(wid)
                if progress is None:
                    continue
                workflows.append(progress)
                workflow = self.engine.get_workflow(wid)
                if workflow.open_blockers:
                    blocked.append(wid)
                if workflow.estimated_completion is None:
                    continue
                days_left = (workflow.estimated_completion - now).total_seconds() / _SECONDS_PER_DAY
                if days_left < 0:
                    overdue.append(wid)
                if days_left <= urgent_days:
                    urgent.append(wid)

            return UserDashboardView(
                user=UserSummary(id=user.id, name=user.name, role=user.role, department=user.department),
                workload=WorkloadCounts(total=len(workflows), overdue=len(overdue), urgent=len(urgent), blocked=len(blocked)),
                workflows=workflows,
                overdue=overdue,
                urgent=urgent,
                blocked=blocked,
                performance=UserPerformance(
                    completed_workflows=user.completed_workflows,
                    average_completion_seconds=user.average_completion_seconds,
                    last_active=ISOTimestamp(_to_iso(user.last_active) or ""),
                ),
                notifications=[n.to_dict() for n in self.get_unread_notifications(user_id)],
            )

    def get_handoff_queue(self) -> list[HandoffQueueEntry]:
        """Edges awaiting a manual handoff decision, longest-waiting workflow first."""
        with self.lock:
            now = self.engine.clock()
            queue: list[HandoffQueueEntry] = []
            for workflow in self.engine.list_workflows():
                for next_stage in self.engine.stages.next_stages(workflow.current_stage):
                    rule = self.rules.rule_for(workflow.current_stage, next_stage)
                    if rule is None or rule.auto_handoff:
                        continue
                    queue.append(
                        HandoffQueueEntry(
                            workflow_id=workflow.id,
                            customer_id=workflow.customer_id,
                            from_stage=workflow.current_stage,
                            to_stage=str(next_stage),
                            from_role=str(rule.from_role),
                            to_role=str(rule.to_role),
                            priority=workflow.priority,
                            waiting_seconds=(now - workflow.updated_at).total_seconds(),
                        )
                    )
            queue.sort(key=lambda e: e["waiting_seconds"], reverse=True)
        return queue

    def get_role_workload_report(self) -> dict[str, RoleWorkload]:
        with self.lock:
            threshold = self.engine.settings.overload_threshold
            report: dict[str, RoleWorkload] = {}
            for user in self.users.list():
                stats = report.get(user.role)
                if stats is None:
                    stats = RoleWorkload(
                        role=user.role,
                        role_name=self.roles.definition(user.role).name,
                        user_count=0,
                        total_workflows=0,
                        average_workload=0.0,
                        overloaded=0,
                    )
                    report[user.role] = stats
                stats["user_count"] += 1
                stats["total_workflows"] += user.workload
                if user.workload > threshold:
                    stats["overloaded"] += 1
            for stats in report.values():
                stats["average_workload"] = stats["total_workflows"] / stats["user_count"]
        return report

