"""Whole-pipeline state as a JSON-compatible dict, and back.

The engine and role manager are in-memory; the CLI persists between runs by
dumping every store to ``.fieldflow/state.json`` and loading it on startup.
"""

from __future__ import annotations

import logging
from typing import Any

from fieldflow.engine import WorkflowEngine
from fieldflow.models import HandoffRequest, Notification, User, Workflow
from fieldflow.roles import RoleManager

logger = logging.getLogger(__name__)

STATE_VERSION = 1


def dump_state(engine: WorkflowEngine, manager: RoleManager) -> dict[str, Any]:
    with engine.lock:
        return {
            "version": STATE_VERSION,
            "workflows": [w.to_dict() for w in engine.store.list()],
            "users": [u.to_dict() for u in manager.users.list()],
            "notifications": [n.to_dict() for n in manager.notifications.list()],
            "handoff_requests": [r.to_dict() for r in manager.requests.list()],
        }


def load_state(data: dict[str, Any], engine: WorkflowEngine, manager: RoleManager) -> None:
    """Replace every store's contents with *data*.

    Stage and role ids are checked against the catalogs so a hand-edited
    state file cannot smuggle in a workflow parked on an unknown stage.

    Raises:
        ValueError: Unsupported version or an entry that fails validation.
        UnknownStageError / UnknownRoleError: An entry names an id missing from the catalogs.
    """
    version = data.get("version", STATE_VERSION)
    if version != STATE_VERSION:
        msg = f"Unsupported state version {version} (expected {STATE_VERSION})"
        raise ValueError(msg)

    try:
        workflows = [Workflow.from_dict(raw) for raw in data.get("workflows", [])]
        users = [User.from_dict(raw) for raw in data.get("users", [])]
        notifications = [Notification.from_dict(raw) for raw in data.get("notifications", [])]
        requests = [HandoffRequest.from_dict(raw) for raw in data.get("handoff_requests", [])]
    except (KeyError, TypeError) as exc:
        msg = f"Malformed state entry: {exc}"
        raise ValueError(msg) from exc

    for w in workflows:
        engine.stages.definition(w.current_stage)
        engine.roles.definition(w.assigned_role)
    for u in users:
        engine.roles.definition(u.role)

    with engine.lock:
        engine.store.clear()
        manager.users.clear()
        manager.notifications.clear()
        manager.requests.clear()
        for w in workflows:
            engine.store.put_workflow(w)
        for u in users:
            manager.users.put_user(u)
        for n in notifications:
            manager.notifications.append(n)
        for r in requests:
            manager.requests.put_request(r)

    logger.debug(
        "Loaded state: %d workflows, %d users, %d notifications, %d handoff requests",
        len(workflows),
        len(users),
        len(notifications),
        len(requests),
    )
