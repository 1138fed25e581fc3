# IMPORT CONSTRAINT: types/ modules must only import from typing, stdlib, and each other.
# NEVER import from engine.py, roles.py, or models.py -- this prevents circular imports.
"""Typed return-value contracts for the engine, role manager, and CLI."""

from __future__ import annotations

from fieldflow.types.handoff import (
    HandoffQueueEntry,
    HandoffResult,
    RoleWorkload,
    UserDashboardView,
    UserPerformance,
    UserSummary,
    WorkloadCounts,
)
from fieldflow.types.views import (
    BottleneckInfo,
    DashboardView,
    DeadlineInfo,
    ISOTimestamp,
    NextAction,
    ProgressView,
    RoleInfo,
)

__all__ = [
    "BottleneckInfo",
    "DashboardView",
    "DeadlineInfo",
    "HandoffQueueEntry",
    "HandoffResult",
    "ISOTimestamp",
    "NextAction",
    "ProgressView",
    "RoleInfo",
    "RoleWorkload",
    "UserDashboardView",
    "UserPerformance",
    "UserSummary",
    "WorkloadCounts",
]
