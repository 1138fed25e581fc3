"""CLI tests for catalog browsing and validation commands."""

from __future__ import annotations

import json
from pathlib import Path

from click.testing import CliRunner

from fieldflow.catalog_data import HANDOFF_RULES, ROLE_TABLE, STAGE_TABLE
from fieldflow.cli import cli
from tests.cli.conftest import as_json


class TestStages:
    def test_grouped_by_phase(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["stages"])
        assert result.exit_code == 0
        assert "1. Lead Acquisition & Qualification" in result.output
        assert "7. Ongoing Customer Management" in result.output
        assert "lead_submission" in result.output

    def test_phase_filter_json(self, cli_runner: CliRunner) -> None:
        data = as_json(cli_runner.invoke(cli, ["stages", "--phase", "3", "--json"]))
        assert [s["id"] for s in data] == [
            "contract_negotiation",
            "contract_sent",
            "contract_signed",
            "payment_confirmed",
        ]

    def test_phase_out_of_range(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["stages", "--phase", "9"])
        assert result.exit_code == 2


class TestStageInfo:
    def test_branching_stage(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["stage-info", "discovery_completed"])
        assert result.exit_code == 0
        assert "-> demo_scheduled" in result.output
        assert "-> proposal_development" in result.output

    def test_rules_in_json(self, cli_runner: CliRunner) -> None:
        data = as_json(cli_runner.invoke(cli, ["stage-info", "lead_validation", "--json"]))
        assert data["phase_name"] == "Lead Acquisition & Qualification"
        assert data["inbound_rules"] == []
        assert [r["to_role"] for r in data["outbound_rules"]] == ["sales_manager"]

    def test_service_loop_next_actions(self, cli_runner: CliRunner) -> None:
        data = as_json(cli_runner.invoke(cli, ["stage-info", "maintenance_monitoring", "--json"]))
        assert "supply_ordering" in data["next_actions"]
        assert "account_review" in data["next_actions"]

    def test_approval_rule_marked(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["stage-info", "contract_sent"])
        assert "[approval]" in result.output
        assert "requires: negotiation_notes, final_terms" in result.output

    def test_unknown_stage(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["stage-info", "bogus"])
        assert result.exit_code == 1
        assert "Unknown stage 'bogus'" in result.output

    def test_unknown_stage_json(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["stage-info", "bogus", "--json"])
        assert result.exit_code == 1
        assert json.loads(result.output) == {"error": "Unknown stage 'bogus'"}


class TestRoles:
    def test_lists_all_roles(self, cli_runner: CliRunner) -> None:
        data = as_json(cli_runner.invoke(cli, ["roles", "--json"]))
        assert len(data) == len(ROLE_TABLE)
        assert {"id", "name", "department", "dashboard", "permissions"} <= set(data[0])

    def test_role_info_with_manager(self, cli_runner: CliRunner) -> None:
        data = as_json(cli_runner.invoke(cli, ["role-info", "sales_rep", "--json"]))
        assert data["manager_role"] == "sales_manager"
        assert "contract_sent" not in data["permissions"]["can_view"]

    def test_role_info_without_manager(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["role-info", "accounting"])
        assert result.exit_code == 0
        assert "Manager role: (none)" in result.output

    def test_unknown_role(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["role-info", "astronaut"])
        assert result.exit_code == 1
        assert "Unknown role 'astronaut'" in result.output


class TestHandoffRules:
    def test_lists_rules(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["handoff-rules"])
        assert result.exit_code == 0
        assert result.output.count("[approval]") == 1
        assert result.output.count("[auto]") == len(HANDOFF_RULES) - 1

    def test_json(self, cli_runner: CliRunner) -> None:
        data = as_json(cli_runner.invoke(cli, ["handoff-rules", "--json"]))
        assert [r["auto_handoff"] for r in data].count(False) == 1


class TestValidateCatalog:
    def test_builtin_catalog(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["validate-catalog"])
        assert result.exit_code == 0
        assert (
            f"Catalog OK: {len(STAGE_TABLE)} stages, {len(ROLE_TABLE)} roles, {len(HANDOFF_RULES)} handoff rules"
            in result.output
        )

    def test_non_adjacent_rule(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        bad = tmp_path / "catalog.json"
        bad.write_text(
            json.dumps(
                {
                    "handoff_rules": [
                        {
                            "from_stage": "lead_submission",
                            "to_stage": "contract_signed",
                            "from_role": "lead_processor",
                            "to_role": "contracts_admin",
                        }
                    ]
                }
            )
        )
        result = cli_runner.invoke(cli, ["validate-catalog", str(bad)])
        assert result.exit_code == 1
        assert "Invalid catalog" in result.output
        assert "not adjacent" in result.output

    def test_dangling_next_action_json(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        stages = [dict(s) for s in STAGE_TABLE]
        stages[0]["next_actions"] = ["lead_validation", "nowhere"]
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({"stages": stages}))
        result = cli_runner.invoke(cli, ["validate-catalog", str(path), "--json"])
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["valid"] is False
        assert "nowhere" in data["errors"][0]

    def test_not_an_object(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "catalog.json"
        path.write_text("[]")
        result = cli_runner.invoke(cli, ["validate-catalog", str(path)])
        assert result.exit_code == 1
        assert "must contain a JSON object" in result.output

    def test_unreadable_json(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "catalog.json"
        path.write_text("{nope")
        result = cli_runner.invoke(cli, ["validate-catalog", str(path)])
        assert result.exit_code == 1
        assert "cannot read" in result.output
