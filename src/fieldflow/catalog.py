"""Stage, role, and handoff-rule catalogs -- parsing, validation, and lookup.

Catalogs are built once at startup from JSON-compatible tables (see
catalog_data.py) and are read-only afterwards. Stage and role ids are closed
enumerations: every id is checked against ``Stage``/``Role`` at parse time,
and every query coerces its argument back into the enum so an unknown id
fails loudly instead of falling through a dict lookup.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from fieldflow.catalog_data import (
    HANDOFF_RULES,
    INITIAL_STAGE,
    MANAGER_ROLES,
    PHASES,
    ROLE_TABLE,
    STAGE_TABLE,
    TOTAL_PHASES,
    Role,
    Stage,
)
from fieldflow.errors import UnknownRoleError, UnknownStageError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Frozen dataclasses
# ---------------------------------------------------------------------------
# Catalog entries are configuration data: frozen so they can be shared
# between workflows and users without copying, and so a user's permission
# snapshot can never drift after creation.
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StageDefinition:
    """A named step in the pipeline with its legal successors."""

    id: Stage
    phase: int
    name: str
    description: str
    next_actions: tuple[Stage, ...]
    required_fields: tuple[str, ...]
    estimated_duration: str
    responsible_role: Role

    def __post_init__(self) -> None:
        if not 1 <= self.phase <= TOTAL_PHASES:
            msg = f"Invalid phase {self.phase} for stage '{self.id}': must be between 1 and {TOTAL_PHASES}"
            raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "phase": self.phase,
            "name": self.name,
            "description": self.description,
            "next_actions": [str(s) for s in self.next_actions],
            "required_fields": list(self.required_fields),
            "estimated_duration": self.estimated_duration,
            "responsible_role": str(self.responsible_role),
        }


@dataclass(frozen=True)
class PermissionSet:
    """What a role may do, expressed as stage id sets."""

    can_view: frozenset[Stage]
    can_edit: frozenset[Stage]
    can_advance: frozenset[Stage]
    can_assign: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "can_view": sorted(self.can_view),
            "can_edit": sorted(self.can_edit),
            "can_advance": sorted(self.can_advance),
            "can_assign": self.can_assign,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> PermissionSet:
        return cls(
            can_view=frozenset(_coerce_stage(s) for s in raw.get("can_view", [])),
            can_edit=frozenset(_coerce_stage(s) for s in raw.get("can_edit", [])),
            can_advance=frozenset(_coerce_stage(s) for s in raw.get("can_advance", [])),
            can_assign=bool(raw.get("can_assign", False)),
        )


@dataclass(frozen=True)
class RoleDefinition:
    """Display metadata and permissions for a role."""

    id: Role
    name: str
    department: str
    permissions: PermissionSet
    dashboard: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "name": self.name,
            "department": self.department,
            "dashboard": self.dashboard,
            "permissions": self.permissions.to_dict(),
        }


@dataclass(frozen=True)
class HandoffRule:
    """How a workflow moves from one role's user to another's across an edge."""

    from_stage: Stage
    to_stage: Stage
    from_role: Role
    to_role: Role
    required_fields: tuple[str, ...] = ()
    auto_handoff: bool = True
    notification_template: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "from_stage": str(self.from_stage),
            "to_stage": str(self.to_stage),
            "from_role": str(self.from_role),
            "to_role": str(self.to_role),
            "required_fields": list(self.required_fields),
            "auto_handoff": self.auto_handoff,
            "notification_template": self.notification_template,
        }


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------


def _coerce_stage(value: Any) -> Stage:
    try:
        return Stage(value)
    except ValueError:
        raise UnknownStageError(str(value)) from None


def _coerce_role(value: Any) -> Role:
    try:
        return Role(value)
    except ValueError:
        raise UnknownRoleError(str(value)) from None


def _require_list(owner: str, key: str, value: Any) -> list[Any]:
    if not isinstance(value, list):
        msg = f"{owner}: '{key}' must be a list, got {type(value).__name__}"
        raise ValueError(msg)
    return value


# ---------------------------------------------------------------------------
# StageCatalog
# ---------------------------------------------------------------------------


class StageCatalog:
    """Read-only lookup over stage definitions.

    The catalog refuses to build unless the table is closed (every next
    action is a defined stage) and every stage is reachable from the
    initial stage.
    """

    def __init__(self, stages: Iterable[StageDefinition], *, initial_stage: Stage = INITIAL_STAGE) -> None:
        self._stages: dict[Stage, StageDefinition] = {}
        for sd in stages:
            if sd.id in self._stages:
                msg = f"Duplicate stage id '{sd.id}'"
                raise ValueError(msg)
            self._stages[sd.id] = sd
        self._initial = initial_stage
        errors = validate_stage_table(self._stages, initial_stage)
        if errors:
            msg = "Invalid stage catalog: " + "; ".join(errors)
            raise ValueError(msg)
        logger.debug("Stage catalog built: %d stages, initial=%s", len(self._stages), initial_stage)

    @staticmethod
    def parse_stage(raw: dict[str, Any]) -> StageDefinition:
        """Parse one stage entry from a JSON-compatible dict.

        Raises:
            ValueError: On shape errors or ids outside the closed enumerations.
            KeyError: If required keys are missing.
        """
        stage_id = raw["id"]
        try:
            sid = Stage(stage_id)
        except ValueError:
            msg = f"Stage '{stage_id}' is not a member of the stage enumeration"
            raise ValueError(msg) from None
        next_actions = _require_list(f"Stage '{stage_id}'", "next_actions", raw.get("next_actions", []))
        required = _require_list(f"Stage '{stage_id}'", "required_fields", raw.get("required_fields", []))
        try:
            role = Role(raw["responsible_role"])
        except ValueError:
            msg = f"Stage '{stage_id}': unknown responsible_role '{raw['responsible_role']}'"
            raise ValueError(msg) from None
        nexts: list[Stage] = []
        for n in next_actions:
            try:
                nexts.append(Stage(n))
            except ValueError:
                msg = f"Stage '{stage_id}': next action '{n}' is not a defined stage"
                raise ValueError(msg) from None
        return StageDefinition(
            id=sid,
            phase=int(raw["phase"]),
            name=raw["name"],
            description=raw.get("description", ""),
            next_actions=tuple(nexts),
            required_fields=tuple(required),
            estimated_duration=raw.get("estimated_duration", ""),
            responsible_role=role,
        )

    @classmethod
    def from_dicts(cls, table: list[dict[str, Any]], *, initial_stage: str = INITIAL_STAGE) -> StageCatalog:
        return cls((cls.parse_stage(raw) for raw in table), initial_stage=Stage(initial_stage))

    # -- Queries ------------------------------------------------------------

    @property
    def initial_stage(self) -> Stage:
        return self._initial

    def __contains__(self, stage_id: object) -> bool:
        return stage_id in self._stages

    def __len__(self) -> int:
        return len(self._stages)

    def definition(self, stage_id: str) -> StageDefinition:
        sid = _coerce_stage(stage_id)
        sd = self._stages.get(sid)
        if sd is None:
            raise UnknownStageError(stage_id)
        return sd

    def next_stages(self, stage_id: str) -> list[Stage]:
        return list(self.definition(stage_id).next_actions)

    def phase_of(self, stage_id: str) -> int:
        return self.definition(stage_id).phase

    def responsible_role(self, stage_id: str) -> Role:
        return self.definition(stage_id).responsible_role

    def list_stages(self) -> list[StageDefinition]:
        """All stages in table order."""
        return list(self._stages.values())

    def stages_in_phase(self, phase: int) -> list[StageDefinition]:
        return [sd for sd in self._stages.values() if sd.phase == phase]

    @staticmethod
    def phase_name(phase: int) -> str:
        if phase not in PHASES:
            msg = f"Unknown phase {phase}"
            raise ValueError(msg)
        return PHASES[phase]


def validate_stage_table(stages: dict[Stage, StageDefinition], initial_stage: Stage) -> list[str]:
    """Check closure and reachability of a stage table.

    Returns:
        List of error messages. Empty list means valid.
    """
    errors: list[str] = []
    if initial_stage not in stages:
        errors.append(f"initial stage '{initial_stage}' is not defined")

    for sd in stages.values():
        for n in sd.next_actions:
            if n not in stages:
                errors.append(f"stage '{sd.id}' lists undefined next action '{n}'")

    if initial_stage in stages:
        reachable: set[Stage] = set()
        queue: deque[Stage] = deque([initial_stage])
        while queue:
            current = queue.popleft()
            if current in reachable:
                continue
            reachable.add(current)
            sd = stages.get(current)
            if sd is None:
                continue
            queue.extend(n for n in sd.next_actions if n not in reachable)
        for s in sorted(set(stages) - reachable):
            errors.append(f"stage '{s}' is unreachable from initial stage '{initial_stage}'")

    return errors


# ---------------------------------------------------------------------------
# RoleCatalog
# ---------------------------------------------------------------------------


class RoleCatalog:
    """Read-only lookup over role definitions and the manager-role table."""

    def __init__(
        self,
        roles: Iterable[RoleDefinition],
        *,
        stages: StageCatalog,
        manager_roles: dict[str, str] | None = None,
    ) -> None:
        self._roles: dict[Role, RoleDefinition] = {}
        errors: list[str] = []
        for rd in roles:
            if rd.id in self._roles:
                errors.append(f"duplicate role id '{rd.id}'")
                continue
            perms = rd.permissions
            for s in sorted(perms.can_view | perms.can_edit | perms.can_advance):
                if s not in stages:
                    errors.append(f"role '{rd.id}' references undefined stage '{s}'")
            self._roles[rd.id] = rd

        self._managers: dict[Role, Role] = {}
        for role_id, manager_id in (manager_roles or {}).items():
            try:
                self._managers[Role(role_id)] = Role(manager_id)
            except ValueError:
                errors.append(f"manager mapping '{role_id}' -> '{manager_id}' names an unknown role")

        for sd in stages.list_stages():
            if sd.responsible_role not in self._roles:
                errors.append(f"stage '{sd.id}' is owned by undefined role '{sd.responsible_role}'")

        if errors:
            msg = "Invalid role catalog: " + "; ".join(errors)
            raise ValueError(msg)
        logger.debug("Role catalog built: %d roles", len(self._roles))

    @staticmethod
    def parse_role(raw: dict[str, Any]) -> RoleDefinition:
        role_id = raw["id"]
        try:
            rid = Role(role_id)
        except ValueError:
            msg = f"Role '{role_id}' is not a member of the role enumeration"
            raise ValueError(msg) from None
        perms_raw = raw.get("permissions", {})
        if not isinstance(perms_raw, dict):
            msg = f"Role '{role_id}': 'permissions' must be a dict, got {type(perms_raw).__name__}"
            raise ValueError(msg)
        try:
            permissions = PermissionSet.from_dict(perms_raw)
        except UnknownStageError as exc:
            msg = f"Role '{role_id}': permission lists unknown stage '{exc.stage_id}'"
            raise ValueError(msg) from None
        return RoleDefinition(
            id=rid,
            name=raw["name"],
            department=raw.get("department", ""),
            permissions=permissions,
            dashboard=raw.get("dashboard", ""),
        )

    @classmethod
    def from_dicts(
        cls,
        table: list[dict[str, Any]],
        *,
        stages: StageCatalog,
        manager_roles: dict[str, str] | None = None,
    ) -> RoleCatalog:
        return cls((cls.parse_role(raw) for raw in table), stages=stages, manager_roles=manager_roles)

    def __contains__(self, role_id: object) -> bool:
        return role_id in self._roles

    def __len__(self) -> int:
        return len(self._roles)

    def definition(self, role_id: str) -> RoleDefinition:
        rid = _coerce_role(role_id)
        rd = self._roles.get(rid)
        if rd is None:
            raise UnknownRoleError(role_id)
        return rd

    def permissions_of(self, role_id: str) -> PermissionSet:
        return self.definition(role_id).permissions

    def list_roles(self) -> list[RoleDefinition]:
        return list(self._roles.values())

    def manager_role_for(self, role_id: str) -> Role | None:
        """Role whose users approve manual handoffs into *role_id*, if any."""
        rid = self.definition(role_id).id
        return self._managers.get(rid)


# ---------------------------------------------------------------------------
# HandoffRuleTable
# ---------------------------------------------------------------------------


class HandoffRuleTable:
    """Handoff rules keyed by the ``(from_stage, to_stage)`` edge they cover."""

    def __init__(self, rules: Iterable[HandoffRule], *, stages: StageCatalog, roles: RoleCatalog) -> None:
        self._rules: dict[tuple[Stage, Stage], HandoffRule] = {}
        errors: list[str] = []
        for rule in rules:
            key = (rule.from_stage, rule.to_stage)
            if key in self._rules:
                errors.append(f"duplicate rule for {rule.from_stage}->{rule.to_stage}")
                continue
            if rule.from_stage not in stages or rule.to_stage not in stages:
                errors.append(f"rule {rule.from_stage}->{rule.to_stage} references an undefined stage")
            elif rule.to_stage not in stages.next_stages(rule.from_stage):
                errors.append(f"rule {rule.from_stage}->{rule.to_stage} covers stages that are not adjacent")
            for r in (rule.from_role, rule.to_role):
                if r not in roles:
                    errors.append(f"rule {rule.from_stage}->{rule.to_stage} references undefined role '{r}'")
            self._rules[key] = rule
        if errors:
            msg = "Invalid handoff rules: " + "; ".join(errors)
            raise ValueError(msg)
        logger.debug("Handoff rule table built: %d rules", len(self._rules))

    @staticmethod
    def parse_rule(raw: dict[str, Any]) -> HandoffRule:
        edge = f"{raw.get('from_stage')}->{raw.get('to_stage')}"
        try:
            return HandoffRule(
                from_stage=Stage(raw["from_stage"]),
                to_stage=Stage(raw["to_stage"]),
                from_role=Role(raw["from_role"]),
                to_role=Role(raw["to_role"]),
                required_fields=tuple(_require_list(f"Rule {edge}", "required_fields", raw.get("required_fields", []))),
                auto_handoff=bool(raw.get("auto_handoff", True)),
                notification_template=raw.get("notification_template", ""),
            )
        except ValueError as exc:
            msg = f"Rule {edge}: {exc}"
            raise ValueError(msg) from None

    @classmethod
    def from_dicts(cls, table: list[dict[str, Any]], *, stages: StageCatalog, roles: RoleCatalog) -> HandoffRuleTable:
        return cls((cls.parse_rule(raw) for raw in table), stages=stages, roles=roles)

    def __len__(self) -> int:
        return len(self._rules)

    def rule_for(self, from_stage: str, to_stage: str) -> HandoffRule | None:
        return self._rules.get((_coerce_stage(from_stage), _coerce_stage(to_stage)))

    def list_rules(self) -> list[HandoffRule]:
        return list(self._rules.values())


def build_default_catalogs() -> tuple[StageCatalog, RoleCatalog, HandoffRuleTable]:
    """Build the built-in stage, role, and handoff-rule catalogs."""
    stages = StageCatalog.from_dicts(STAGE_TABLE)
    roles = RoleCatalog.from_dicts(ROLE_TABLE, stages=stages, manager_roles=MANAGER_ROLES)
    rules = HandoffRuleTable.from_dicts(HANDOFF_RULES, stages=stages, roles=roles)
    logger.info(
        "Catalogs loaded: %d stages, %d roles, %d handoff rules",
        len(stages),
        len(roles),
        len(rules),
    )
    return stages, roles, rules
