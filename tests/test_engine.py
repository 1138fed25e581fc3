"""Tests for WorkflowEngine -- transitions, history, milestones, blockers, dashboards."""

from __future__ import annotations

from datetime import timedelta

import pytest

from fieldflow.base import SequentialIds
from fieldflow.catalog import HandoffRuleTable, RoleCatalog, StageCatalog
from fieldflow.engine import WorkflowEngine, find_bottlenecks
from fieldflow.errors import (
    BlockerNotFoundError,
    InvalidTransitionError,
    UnknownRoleError,
    UnknownStageError,
    WorkflowNotFoundError,
)
from fieldflow.settings import WorkflowSettings
from tests._helpers import FULL_PATH, START, TO_SALES_ASSIGNMENT, FakeClock, walk


class TestCreateWorkflow:
    def test_starts_at_initial_stage(self, engine: WorkflowEngine) -> None:
        wid = engine.create_workflow("cust-1")
        workflow = engine.get_workflow(wid)
        assert wid == "wf-1"
        assert workflow.current_stage == "lead_submission"
        assert workflow.next_actions == ["lead_validation"]
        assert workflow.assigned_to == "lead_processor"
        assert workflow.assigned_role == "lead_processor"
        assert workflow.priority == "normal"
        assert workflow.created_at == START
        assert workflow.updated_at == START

    def test_creation_history_entry(self, engine: WorkflowEngine) -> None:
        workflow = engine.get_workflow(engine.create_workflow("cust-1"))
        assert len(workflow.stage_history) == 1
        entry = workflow.stage_history[0]
        assert entry.from_stage is None
        assert entry.to_stage == "lead_submission"
        assert entry.notes == "Workflow created"
        assert entry.duration_seconds is None

    def test_estimated_completion_from_stage_estimate(self, engine: WorkflowEngine) -> None:
        workflow = engine.get_workflow(engine.create_workflow("cust-1"))
        assert workflow.estimated_completion == START + timedelta(days=45)

    def test_initial_data_and_priority(self, engine: WorkflowEngine) -> None:
        seed = {"contact_info": "ops@acme.test"}
        workflow = engine.get_workflow(engine.create_workflow("cust-1", seed, priority="high"))
        assert workflow.data == {"contact_info": "ops@acme.test"}
        assert workflow.priority == "high"
        seed["contact_info"] = "changed"
        assert workflow.data["contact_info"] == "ops@acme.test"

    def test_invalid_priority_rejected(self, engine: WorkflowEngine) -> None:
        with pytest.raises(ValueError, match="Invalid priority"):
            engine.create_workflow("cust-1", priority="whenever")
        assert engine.list_workflows() == []

    def test_ids_are_unique(self, engine: WorkflowEngine) -> None:
        ids = {engine.create_workflow(f"cust-{i}") for i in range(5)}
        assert ids == {"wf-1", "wf-2", "wf-3", "wf-4", "wf-5"}

    def test_default_id_factory(self, catalogs: tuple[StageCatalog, RoleCatalog, HandoffRuleTable]) -> None:
        stages, roles, _ = catalogs
        engine = WorkflowEngine(stages, roles)
        wid = engine.create_workflow("cust-1")
        assert wid.startswith("wf-")
        assert len(wid) == len("wf-") + 10

    def test_unknown_workflow(self, engine: WorkflowEngine) -> None:
        with pytest.raises(WorkflowNotFoundError) as exc_info:
            engine.get_workflow("wf-404")
        assert exc_info.value.entity_id == "wf-404"
        assert "Workflow 'wf-404' not found" in str(exc_info.value)


class TestAdvanceWorkflow:
    def test_moves_to_next_stage(self, engine: WorkflowEngine, clock: FakeClock) -> None:
        wid = engine.create_workflow("cust-1")
        clock.advance(hours=2)
        workflow = engine.advance_workflow(wid, "lead_validation", notes="looks real")
        assert workflow.current_stage == "lead_validation"
        assert workflow.next_actions == ["lead_scoring"]
        assert workflow.updated_at == clock.now
        last = workflow.stage_history[-1]
        assert last.from_stage == "lead_submission"
        assert last.to_stage == "lead_validation"
        assert last.notes == "looks real"
        assert last.duration_seconds == 7200

    def test_invalid_transition_leaves_workflow_untouched(self, engine: WorkflowEngine) -> None:
        wid = engine.create_workflow("cust-1")
        with pytest.raises(InvalidTransitionError) as exc_info:
            engine.advance_workflow(wid, "contract_signed")
        err = exc_info.value
        assert err.from_stage == "lead_submission"
        assert err.to_stage == "contract_signed"
        assert err.allowed == ["lead_validation"]
        assert isinstance(err, ValueError)
        workflow = engine.get_workflow(wid)
        assert workflow.current_stage == "lead_submission"
        assert len(workflow.stage_history) == 1

    def test_unknown_target_stage(self, engine: WorkflowEngine) -> None:
        wid = engine.create_workflow("cust-1")
        with pytest.raises(UnknownStageError):
            engine.advance_workflow(wid, "nowhere")

    def test_unknown_workflow(self, engine: WorkflowEngine) -> None:
        with pytest.raises(WorkflowNotFoundError):
            engine.advance_workflow("wf-404", "lead_validation")

    def test_completion_data_merges_later_keys_win(self, engine: WorkflowEngine) -> None:
        wid = engine.create_workflow("cust-1", {"a": 1, "b": 1})
        workflow = engine.advance_workflow(wid, "lead_validation", {"b": 2, "c": 3})
        assert workflow.data == {"a": 1, "b": 2, "c": 3}

    def test_assignment_falls_back_to_stage_role(self, engine: WorkflowEngine) -> None:
        wid = engine.create_workflow("cust-1")
        workflow = walk(engine, wid, ["lead_validation", "lead_scoring"])
        assert workflow.assigned_to == "sales_manager"
        assert workflow.assigned_role == "sales_manager"

    def test_history_is_contiguous_over_full_path(self, engine: WorkflowEngine, clock: FakeClock) -> None:
        wid = engine.create_workflow("cust-1")
        workflow = walk(engine, wid, FULL_PATH, clock=clock, step=timedelta(hours=1))
        history = workflow.stage_history
        assert len(history) == len(FULL_PATH) + 1
        assert history[-1].to_stage == workflow.current_stage == "maintenance_monitoring"
        for prev, entry in zip(history, history[1:], strict=False):
            assert entry.from_stage == prev.to_stage
            assert entry.duration_seconds == 3600
        timestamps = [t.timestamp for t in history]
        assert timestamps == sorted(timestamps)

    def test_branching_stage_accepts_either_successor(self, engine: WorkflowEngine) -> None:
        to_discovery = [*TO_SALES_ASSIGNMENT, "discovery_scheduled", "discovery_completed"]
        demo = engine.create_workflow("cust-demo")
        direct = engine.create_workflow("cust-direct")
        walk(engine, demo, to_discovery)
        walk(engine, direct, to_discovery)
        assert engine.advance_workflow(demo, "demo_scheduled").current_stage == "demo_scheduled"
        assert engine.advance_workflow(direct, "proposal_development").current_stage == "proposal_development"

    def test_duration_uses_most_recent_entry_on_revisit(self, engine: WorkflowEngine, clock: FakeClock) -> None:
        wid = engine.create_workflow("cust-1")
        walk(engine, wid, FULL_PATH)
        clock.advance(hours=1)
        workflow = engine.advance_workflow(wid, "supply_ordering")
        assert workflow.stage_history[-1].duration_seconds == 3600
        clock.advance(hours=2)
        workflow = engine.advance_workflow(wid, "maintenance_monitoring")
        assert workflow.stage_history[-1].duration_seconds == 7200
        clock.advance(hours=3)
        workflow = engine.advance_workflow(wid, "account_review")
        assert workflow.stage_history[-1].duration_seconds == 3 * 3600

    def test_estimated_completion_tracks_stage(self, engine: WorkflowEngine, clock: FakeClock) -> None:
        wid = engine.create_workflow("cust-1")
        clock.advance(days=1)
        workflow = engine.advance_workflow(wid, "lead_validation")
        # lead_validation has no explicit estimate: default 30 days
        assert workflow.estimated_completion == clock.now + timedelta(days=30)


class TestMilestones:
    def test_lead_qualified_at_sales_assignment(self, engine: WorkflowEngine, clock: FakeClock) -> None:
        wid = engine.create_workflow("cust-1")
        workflow = walk(engine, wid, TO_SALES_ASSIGNMENT, clock=clock, step=timedelta(minutes=30))
        assert [m.name for m in workflow.milestones] == ["Lead Qualified"]
        milestone = workflow.milestones[0]
        assert milestone.stage == "sales_assignment"
        assert milestone.completed_at == clock.now
        assert workflow.assigned_to == "sales_manager"

    def test_all_milestones_over_full_path(self, engine: WorkflowEngine) -> None:
        wid = engine.create_workflow("cust-1")
        workflow = walk(engine, wid, FULL_PATH)
        assert [m.name for m in workflow.milestones] == [
            "Lead Qualified",
            "Deal Closed",
            "Production Complete",
            "Delivery Complete",
            "Installation Complete",
            "Customer Onboarded",
        ]

    def test_milestones_follow_settings(
        self, catalogs: tuple[StageCatalog, RoleCatalog, HandoffRuleTable], clock: FakeClock
    ) -> None:
        stages, roles, _ = catalogs
        settings = WorkflowSettings(milestones={"lead_validation": "Contact Verified"})
        engine = WorkflowEngine(stages, roles, settings, clock=clock, id_factory=SequentialIds())
        wid = engine.create_workflow("cust-1")
        workflow = walk(engine, wid, TO_SALES_ASSIGNMENT)
        assert [m.name for m in workflow.milestones] == ["Contact Verified"]


class TestProgress:
    def test_new_workflow_is_at_zero(self, engine: WorkflowEngine) -> None:
        wid = engine.create_workflow("cust-1")
        progress = engine.get_workflow_progress(wid)
        assert progress is not None
        assert progress["phase"] == 1
        assert progress["completed_phases"] == 0
        assert progress["total_phases"] == 7
        assert progress["progress_percentage"] == 0.0
        assert progress["phase_name"] == "Lead Acquisition & Qualification"
        assert progress["current_stage_name"] == "Lead Submission"
        assert progress["assigned_role"]["name"] == "Lead Processor"
        assert [a["stage"] for a in progress["next_actions"]] == ["lead_validation"]

    def test_final_phase_progress(self, engine: WorkflowEngine) -> None:
        wid = engine.create_workflow("cust-1")
        walk(engine, wid, FULL_PATH)
        progress = engine.get_workflow_progress(wid)
        assert progress is not None
        assert progress["phase"] == 7
        assert progress["progress_percentage"] == pytest.approx(6 / 7 * 100)

    def test_progress_never_decreases_along_path(self, engine: WorkflowEngine) -> None:
        wid = engine.create_workflow("cust-1")
        seen: list[float] = []
        for stage in FULL_PATH:
            engine.advance_workflow(wid, stage)
            progress = engine.get_workflow_progress(wid)
            assert progress is not None
            assert 0 <= progress["progress_percentage"] <= 100
            seen.append(progress["progress_percentage"])
        assert seen == sorted(seen)

    def test_unknown_workflow_returns_none(self, engine: WorkflowEngine) -> None:
        assert engine.get_workflow_progress("wf-404") is None

    def test_only_open_blockers_listed(self, engine: WorkflowEngine) -> None:
        wid = engine.create_workflow("cust-1")
        first = engine.add_blocker(wid, "Missing site survey")
        engine.add_blocker(wid, "Credit check pending", "high")
        engine.resolve_blocker(wid, first.id, "Survey uploaded")
        progress = engine.get_workflow_progress(wid)
        assert progress is not None
        assert [b["description"] for b in progress["blockers"]] == ["Credit check pending"]


class TestNextActions:
    def test_branching_stage_lists_details(self, engine: WorkflowEngine) -> None:
        wid = engine.create_workflow("cust-1")
        walk(engine, wid, [*TO_SALES_ASSIGNMENT, "discovery_scheduled", "discovery_completed"])
        actions = engine.get_next_actions(wid)
        assert [a["stage"] for a in actions] == ["demo_scheduled", "proposal_development"]
        assert all(a["responsible_role"] == "sales_rep" for a in actions)
        assert all(a["name"] for a in actions)

    def test_unknown_workflow_raises(self, engine: WorkflowEngine) -> None:
        with pytest.raises(WorkflowNotFoundError):
            engine.get_next_actions("wf-404")


class TestBlockers:
    def test_add_blocker(self, engine: WorkflowEngine, clock: FakeClock) -> None:
        wid = engine.create_workflow("cust-1")
        blocker = engine.add_blocker(wid, "Customer on vacation")
        assert blocker.id == "blk-1"
        assert blocker.severity == "medium"
        assert blocker.created_at == clock.now
        assert blocker.resolved is False
        assert engine.get_workflow(wid).open_blockers == [blocker]

    def test_invalid_severity(self, engine: WorkflowEngine) -> None:
        wid = engine.create_workflow("cust-1")
        with pytest.raises(ValueError, match="Invalid severity"):
            engine.add_blocker(wid, "Oops", "apocalyptic")
        assert engine.get_workflow(wid).blockers == []

    def test_resolve_blocker(self, engine: WorkflowEngine, clock: FakeClock) -> None:
        wid = engine.create_workflow("cust-1")
        blocker = engine.add_blocker(wid, "Awaiting PO", "critical")
        clock.advance(hours=4)
        resolved = engine.resolve_blocker(wid, blocker.id, "PO received")
        assert resolved.resolved is True
        assert resolved.resolution == "PO received"
        assert resolved.resolved_at == clock.now
        assert engine.get_workflow(wid).open_blockers == []

    def test_resolve_twice_rejected(self, engine: WorkflowEngine) -> None:
        wid = engine.create_workflow("cust-1")
        blocker = engine.add_blocker(wid, "Awaiting PO")
        engine.resolve_blocker(wid, blocker.id, "done")
        with pytest.raises(ValueError, match="already resolved"):
            engine.resolve_blocker(wid, blocker.id, "again")

    def test_unknown_blocker(self, engine: WorkflowEngine) -> None:
        wid = engine.create_workflow("cust-1")
        with pytest.raises(BlockerNotFoundError):
            engine.resolve_blocker(wid, "blk-99", "n/a")

    def test_blockers_do_not_stop_advancement(self, engine: WorkflowEngine) -> None:
        wid = engine.create_workflow("cust-1")
        engine.add_blocker(wid, "Unverified phone number", "high")
        workflow = engine.advance_workflow(wid, "lead_validation")
        assert workflow.current_stage == "lead_validation"
        assert len(workflow.open_blockers) == 1


class TestPriority:
    def test_set_priority(self, engine: WorkflowEngine, clock: FakeClock) -> None:
        wid = engine.create_workflow("cust-1")
        clock.advance(minutes=5)
        workflow = engine.set_priority(wid, "urgent")
        assert workflow.priority == "urgent"
        assert workflow.updated_at == clock.now

    def test_invalid_priority(self, engine: WorkflowEngine) -> None:
        wid = engine.create_workflow("cust-1")
        with pytest.raises(ValueError):
            engine.set_priority(wid, "asap")


class TestQueries:
    def test_by_role(self, engine: WorkflowEngine) -> None:
        first = engine.create_workflow("cust-1")
        engine.create_workflow("cust-2")
        walk(engine, first, ["lead_validation", "lead_scoring"])
        assert [w.id for w in engine.get_workflows_by_role("sales_manager")] == [first]
        assert [w.id for w in engine.get_workflows_by_role("lead_processor")] == ["wf-2"]
        assert engine.get_workflows_by_role("account_manager") == []

    def test_by_role_unknown(self, engine: WorkflowEngine) -> None:
        with pytest.raises(UnknownRoleError):
            engine.get_workflows_by_role("astronaut")

    def test_by_stage(self, engine: WorkflowEngine) -> None:
        first = engine.create_workflow("cust-1")
        engine.create_workflow("cust-2")
        engine.advance_workflow(first, "lead_validation")
        assert [w.id for w in engine.get_workflows_by_stage("lead_submission")] == ["wf-2"]
        assert [w.id for w in engine.get_workflows_by_stage("lead_validation")] == [first]

    def test_by_stage_unknown(self, engine: WorkflowEngine) -> None:
        with pytest.raises(UnknownStageError):
            engine.get_workflows_by_stage("moon")


class TestFindBottlenecks:
    def test_flags_stage_above_mean_times_factor(self) -> None:
        assert find_bottlenecks({"a": 1, "b": 1, "c": 6}, 1.5) == ["c"]

    def test_even_distribution_has_none(self) -> None:
        assert find_bottlenecks({"a": 3, "b": 3, "c": 3}, 1.5) == []

    def test_empty_stages_excluded_from_mean(self) -> None:
        # Mean over occupied stages is 2; zeros would have dragged it to 1.
        assert find_bottlenecks({"a": 0, "b": 0, "c": 2, "d": 2}, 1.5) == []

    def test_no_workflows(self) -> None:
        assert find_bottlenecks({}, 1.5) == []


class TestDashboard:
    def test_empty(self, engine: WorkflowEngine) -> None:
        view = engine.generate_dashboard()
        assert view["total_workflows"] == 0
        assert view["stage_distribution"] == {}
        assert view["bottlenecks"] == []
        assert view["average_completion_seconds"] is None

    def test_counts_and_workload(self, engine: WorkflowEngine) -> None:
        first = engine.create_workflow("cust-1")
        engine.create_workflow("cust-2")
        walk(engine, first, ["lead_validation", "lead_scoring"])
        view = engine.generate_dashboard()
        assert view["total_workflows"] == 2
        assert view["stage_distribution"] == {"lead_scoring": 1, "lead_submission": 1}
        assert view["role_workload"] == {"sales_manager": 1, "lead_processor": 1}

    def test_blocked_workflows(self, engine: WorkflowEngine) -> None:
        first = engine.create_workflow("cust-1")
        engine.create_workflow("cust-2")
        engine.add_blocker(first, "Waiting on legal")
        assert engine.generate_dashboard()["blocked_workflows"] == [first]

    def test_upcoming_deadline_rounds_up(self, engine: WorkflowEngine, clock: FakeClock) -> None:
        wid = engine.create_workflow("cust-1")
        clock.advance(days=40.5)
        view = engine.generate_dashboard()
        assert view["upcoming_deadlines"] == [
            {"workflow_id": wid, "customer_id": "cust-1", "days_remaining": 5, "current_stage": "lead_submission"}
        ]
        assert view["overdue_workflows"] == []

    def test_deadline_outside_window_not_listed(self, engine: WorkflowEngine, clock: FakeClock) -> None:
        engine.create_workflow("cust-1")
        clock.advance(days=30)
        assert engine.generate_dashboard()["upcoming_deadlines"] == []

    def test_deadline_exactly_now_is_neither(self, engine: WorkflowEngine, clock: FakeClock) -> None:
        engine.create_workflow("cust-1")
        clock.advance(days=45)
        view = engine.generate_dashboard()
        assert view["upcoming_deadlines"] == []
        assert view["overdue_workflows"] == []

    def test_overdue(self, engine: WorkflowEngine, clock: FakeClock) -> None:
        wid = engine.create_workflow("cust-1")
        clock.advance(days=46)
        view = engine.generate_dashboard()
        assert view["overdue_workflows"] == [wid]
        assert view["upcoming_deadlines"] == []

    def test_bottleneck_reported_with_owner(self, engine: WorkflowEngine) -> None:
        ids = [engine.create_workflow(f"cust-{i}") for i in range(6)]
        engine.advance_workflow(ids[0], "lead_validation")
        walk(engine, ids[1], ["lead_validation", "lead_scoring"])
        # lead_submission 4, lead_validation 1, lead_scoring 1 -> mean 2, threshold 3
        view = engine.generate_dashboard()
        assert view["bottlenecks"] == [
            {
                "stage": "lead_submission",
                "stage_name": "Lead Submission",
                "workflow_count": 4,
                "responsible_role": "lead_processor",
            }
        ]

    def test_average_completion(self, engine: WorkflowEngine, clock: FakeClock) -> None:
        done = engine.create_workflow("cust-1")
        engine.create_workflow("cust-2")
        walk(engine, done, FULL_PATH, clock=clock, step=timedelta(hours=1))
        view = engine.generate_dashboard()
        assert view["average_completion_seconds"] == len(FULL_PATH) * 3600
        assert engine.average_completion_seconds() == len(FULL_PATH) * 3600
