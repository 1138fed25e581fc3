"""Tunable workflow constants, loadable from the ``workflow`` config section.

Milestone stages, per-stage completion estimates, and dashboard thresholds
are configuration data rather than logic. Built-in defaults live in
catalog_data.py; ``.fieldflow/config.json`` may override any of them:

    {
      "workflow": {
        "milestones": {"contract_signed": "Deal Closed"},
        "stage_estimate_days": {"lead_submission": 45},
        "default_estimate_days": 30,
        "urgent_days": 3,
        "deadline_window_days": 7,
        "bottleneck_factor": 1.5,
        "overload_threshold": 5,
        "completion_stage": "maintenance_monitoring"
      }
    }

Invalid entries are logged and skipped; the default is kept.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from dataclasses import replace as _dc_replace
from typing import Any

from fieldflow.catalog_data import COMPLETION_STAGE, DEFAULT_MILESTONES, DEFAULT_STAGE_ESTIMATE_DAYS, Stage

logger = logging.getLogger(__name__)

# Upper bound on any day count; a larger value would overflow timedelta arithmetic.
MAX_DAYS = 36500


@dataclass(frozen=True)
class WorkflowSettings:
    milestones: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_MILESTONES))
    stage_estimate_days: Mapping[str, float] = field(default_factory=lambda: dict(DEFAULT_STAGE_ESTIMATE_DAYS))
    default_estimate_days: float = 30
    urgent_days: float = 3
    deadline_window_days: float = 7
    bottleneck_factor: float = 1.5
    overload_threshold: int = 5
    completion_stage: str = COMPLETION_STAGE

    def estimate_days(self, stage_id: str) -> float:
        """Days to expected completion from entry into *stage_id* (default when unlisted)."""
        return self.stage_estimate_days.get(stage_id, self.default_estimate_days)

    def milestone_for(self, stage_id: str) -> str | None:
        return self.milestones.get(stage_id)

    @classmethod
    def from_config(cls, config: Mapping[str, Any] | None) -> WorkflowSettings:
        """Build settings from a full config dict (reads its ``workflow`` key)."""
        defaults = cls()
        section = (config or {}).get("workflow")
        if section is None:
            return defaults
        if not isinstance(section, dict):
            logger.warning("config 'workflow' must be an object, got %s -- using defaults", type(section).__name__)
            return defaults

        overrides: dict[str, Any] = {}

        milestones = section.get("milestones")
        if milestones is not None:
            overrides["milestones"] = _stage_map(milestones, "milestones", _non_empty_str, defaults.milestones)

        estimates = section.get("stage_estimate_days")
        if estimates is not None:
            overrides["stage_estimate_days"] = _stage_map(
                estimates, "stage_estimate_days", _day_count, defaults.stage_estimate_days
            )

        for key, convert in (
            ("default_estimate_days", _day_count),
            ("urgent_days", _day_count),
            ("deadline_window_days", _day_count),
            ("bottleneck_factor", _non_negative),
        ):
            if key in section:
                try:
                    overrides[key] = convert(section[key])
                except (TypeError, ValueError):
                    logger.warning("Ignoring invalid config value workflow.%s=%r", key, section[key])

        if "overload_threshold" in section:
            try:
                overrides["overload_threshold"] = int(_non_negative(section["overload_threshold"]))
            except (TypeError, ValueError):
                logger.warning("Ignoring invalid config value workflow.overload_threshold=%r", section["overload_threshold"])

        if "completion_stage" in section:
            try:
                overrides["completion_stage"] = Stage(section["completion_stage"])
            except ValueError:
                logger.warning("Ignoring unknown completion_stage '%s'", section["completion_stage"])

        return _dc_replace(defaults, **overrides)

    def to_config(self) -> dict[str, Any]:
        return {
            "milestones": dict(self.milestones),
            "stage_estimate_days": dict(self.stage_estimate_days),
            "default_estimate_days": self.default_estimate_days,
            "urgent_days": self.urgent_days,
            "deadline_window_days": self.deadline_window_days,
            "bottleneck_factor": self.bottleneck_factor,
            "overload_threshold": self.overload_threshold,
            "completion_stage": str(self.completion_stage),
        }


def _non_negative(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        msg = f"expected a number, got {type(value).__name__}"
        raise TypeError(msg)
    if not math.isfinite(value) or value < 0:
        msg = f"expected a finite non-negative number, got {value}"
        raise ValueError(msg)
    return value


def _day_count(value: Any) -> float:
    days = _non_negative(value)
    if days > MAX_DAYS:
        msg = f"expected at most {MAX_DAYS} days, got {days}"
        raise ValueError(msg)
    return days


def _stage_map(raw: Any, key: str, convert: Any, fallback: Mapping[str, Any]) -> dict[str, Any]:
    """Validate a stage-keyed mapping, dropping entries with unknown stages or bad values."""
    if not isinstance(raw, dict):
        logger.warning("config workflow.%s must be an object -- using defaults", key)
        return dict(fallback)
    result: dict[str, Any] = {}
    for stage_id, value in raw.items():
        try:
            Stage(stage_id)
        except ValueError:
            logger.warning("Ignoring workflow.%s entry for unknown stage '%s'", key, stage_id)
            continue
        try:
            result[stage_id] = convert(value)
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid workflow.%s value for '%s': %r", key, stage_id, value)
    return result


def _non_empty_str(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        msg = "expected a non-empty string"
        raise ValueError(msg)
    return value.strip()
