"""Tests for the decido CLI.

Covers resolve, stage, reconcile, and config commands via CliRunner,
including invalid input and error exits.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime

from typer.testing import CliRunner

from decido import __version__
from decido.cli import app
from decido.decision_log import DecisionLog
from decido.schemas.consent import (
    ConsentDecision,
    ConsentStage,
    ConsentStepMode,
    Participant,
)

# NO_COLOR=1 keeps Rich from injecting ANSI codes into the output.
# COLUMNS=200 keeps tables from wrapping.
runner = CliRunner(env={"NO_COLOR": "1", "COLUMNS": "200", "DECIDO_CONFIG": ""})


# ── Factories ──────────────────────────────────────────────────────


def _write_json(tmp_path, payload, name: str = "input.json"):
    path = tmp_path / name
    path.write_text(json.dumps(payload))
    return path


def _make_decision(**overrides) -> ConsentDecision:
    defaults = {
        "id": "d1",
        "title": "Community garden",
        "creator": Participant(id="alice", name="Alice"),
        "start_date": datetime(2025, 1, 1, tzinfo=UTC),
        "end_date": datetime(2025, 1, 5, tzinfo=UTC),
        "step_mode": ConsentStepMode.DISTINCT,
        "current_stage": ConsentStage.CLARIFICATIONS,
        "participants": [Participant(id="alice"), Participant(id="bob")],
    }
    defaults.update(overrides)
    return ConsentDecision(**defaults)


def _write_decisions(tmp_path, *decisions: ConsentDecision):
    return _write_json(
        tmp_path, [d.model_dump(mode="json") for d in decisions], "decisions.json"
    )


# ══════════════════════════════════════════════════════════════════
# App
# ══════════════════════════════════════════════════════════════════


class TestApp:
    def test_help_lists_commands(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("resolve", "stage", "reconcile", "config"):
            assert command in result.output

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"decido {__version__}" in result.output


# ══════════════════════════════════════════════════════════════════
# decido resolve
# ══════════════════════════════════════════════════════════════════


class TestResolveCommand:
    def test_majority(self, tmp_path):
        path = _write_json(tmp_path, {
            "method": "MAJORITY",
            "ballots": [
                {"value": "SUPPORT", "voter_id": "a"},
                {"value": "SUPPORT", "voter_id": "b"},
                {"value": "OPPOSE", "voter_id": "c"},
            ],
        })
        result = runner.invoke(app, ["resolve", str(path)])
        assert result.exit_code == 0
        assert "MAJORITY decision" in result.output
        assert "Approved" in result.output

    def test_weighted_score_shown(self, tmp_path):
        path = _write_json(tmp_path, {
            "method": "WEIGHTED_VOTE",
            "ballots": [
                {"value": "SUPPORT", "weight": 1},
                {"value": "WEAK_OPPOSE", "weight": 1},
            ],
        })
        result = runner.invoke(app, ["resolve", str(path)])
        assert result.exit_code == 0
        assert "Weighted score: 1" in result.output

    def test_consent_tally_shown(self, tmp_path):
        path = _write_json(tmp_path, {
            "method": "CONSENT",
            "context": {
                "objections": [
                    {"participant_id": "a", "value": "NO_OBJECTION"},
                    {"participant_id": "b", "value": "OBJECTION"},
                ],
                "total_participants": 3,
            },
        })
        result = runner.invoke(app, ["resolve", str(path)])
        assert result.exit_code == 0
        assert "Blocked" in result.output
        assert "No objection: 1" in result.output
        assert "Not voted: 1" in result.output

    def test_nuanced_ranking_table(self, tmp_path):
        path = _write_json(tmp_path, {
            "method": "NUANCED_VOTE",
            "context": {
                "scale": "3_LEVELS",
                "proposals": [{"id": "a", "title": "Plan A"}, {"id": "b", "title": "Plan B"}],
                "mentions": [
                    {"proposal_id": "a", "voter_id": "1", "mention": "GOOD"},
                    {"proposal_id": "b", "voter_id": "1", "mention": "PASSABLE"},
                ],
            },
        })
        result = runner.invoke(app, ["resolve", str(path)])
        assert result.exit_code == 0
        assert "Majority Judgment Ranking" in result.output
        assert "Plan A" in result.output

    def test_proposal_votes_table(self, tmp_path):
        path = _write_json(tmp_path, {
            "method": "MAJORITY",
            "ballots": [
                {"value": "SUPPORT", "voter_id": "1", "proposal_id": "x"},
                {"value": "SUPPORT", "voter_id": "2", "proposal_id": "y"},
            ],
            "context": {"proposals": [{"id": "x"}, {"id": "y"}]},
        })
        result = runner.invoke(app, ["resolve", str(path)])
        assert result.exit_code == 0
        assert "Proposal Votes" in result.output
        assert "Rejected" in result.output

    def test_unknown_method_exits(self, tmp_path):
        path = _write_json(tmp_path, {"method": "LOTTERY", "ballots": []})
        result = runner.invoke(app, ["resolve", str(path)])
        assert result.exit_code == 1
        assert "ConfigurationError" in result.output

    def test_precondition_violation_exits(self, tmp_path):
        path = _write_json(tmp_path, {
            "method": "MAJORITY",
            "ballots": [
                {"value": "SUPPORT", "voter_id": "a"},
                {"value": "OPPOSE", "voter_id": "a"},
            ],
        })
        result = runner.invoke(app, ["resolve", str(path)])
        assert result.exit_code == 1
        assert "PreconditionViolation" in result.output

    def test_invalid_ballot_exits(self, tmp_path):
        path = _write_json(tmp_path, {"method": "MAJORITY", "ballots": [{"value": "MAYBE"}]})
        result = runner.invoke(app, ["resolve", str(path)])
        assert result.exit_code == 1
        assert "Invalid decision file" in result.output

    def test_unreadable_file_exits(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        result = runner.invoke(app, ["resolve", str(path)])
        assert result.exit_code == 1
        assert "Cannot read" in result.output


# ══════════════════════════════════════════════════════════════════
# decido stage
# ══════════════════════════════════════════════════════════════════


class TestStageCommand:
    def test_current_stage(self):
        result = runner.invoke(app, [
            "stage",
            "--start", "2025-01-01T00:00:00+00:00",
            "--end", "2025-01-08T00:00:00+00:00",
            "--now", "2025-01-03T00:00:00+00:00",
        ])
        assert result.exit_code == 0
        assert "Consent Stages (DISTINCT)" in result.output
        assert "Current stage: AVIS" in result.output
        assert "Warning" not in result.output

    def test_merged_mode(self):
        result = runner.invoke(app, [
            "stage",
            "--start", "2025-01-01T00:00:00+00:00",
            "--end", "2025-01-10T00:00:00+00:00",
            "--mode", "MERGED",
            "--now", "2025-01-01T06:00:00+00:00",
        ])
        assert result.exit_code == 0
        assert "Current stage: CLARIFAVIS" in result.output

    def test_short_window_warns(self):
        result = runner.invoke(app, [
            "stage",
            "--start", "2025-01-01T00:00:00+00:00",
            "--end", "2025-01-03T00:00:00+00:00",
            "--now", "2025-01-02T00:00:00+00:00",
        ])
        assert result.exit_code == 0
        assert "Warning" in result.output

    def test_reversed_window_exits(self):
        result = runner.invoke(app, [
            "stage",
            "--start", "2025-01-08T00:00:00+00:00",
            "--end", "2025-01-01T00:00:00+00:00",
            "--now", "2025-01-03T00:00:00+00:00",
        ])
        assert result.exit_code == 1
        assert "ConfigurationError" in result.output

    def test_naive_now_against_aware_window_exits(self):
        result = runner.invoke(app, [
            "stage",
            "--start", "2025-01-01T00:00:00+00:00",
            "--end", "2025-01-08T00:00:00+00:00",
            "--now", "2025-01-03T00:00:00",
        ])
        assert result.exit_code == 1
        assert "ConfigurationError" in result.output

    def test_bad_date_exits(self):
        result = runner.invoke(app, [
            "stage", "--start", "yesterday", "--end", "2025-01-01T00:00:00+00:00",
        ])
        assert result.exit_code == 1
        assert "Invalid --start" in result.output


# ══════════════════════════════════════════════════════════════════
# decido reconcile
# ══════════════════════════════════════════════════════════════════


class TestReconcileCommand:
    def test_plan_table(self, tmp_path):
        path = _write_decisions(tmp_path, _make_decision())
        result = runner.invoke(
            app, ["reconcile", str(path), "--now", "2025-01-02T00:00:00+00:00"]
        )
        assert result.exit_code == 0
        assert "Reconciliation Plan" in result.output
        assert "AVIS" in result.output
        assert "1 action(s), 0 skipped, 0 failed" in result.output

    def test_closure_shows_result(self, tmp_path):
        path = _write_decisions(
            tmp_path, _make_decision(current_stage=ConsentStage.OBJECTIONS)
        )
        result = runner.invoke(
            app, ["reconcile", str(path), "--now", "2025-01-06T00:00:00+00:00"]
        )
        assert result.exit_code == 0
        assert "close" in result.output
        assert "WITHDRAWN" in result.output

    def test_failed_decision_exits(self, tmp_path):
        bad = _make_decision(
            id="bad",
            start_date=datetime(2025, 1, 5, tzinfo=UTC),
            end_date=datetime(2025, 1, 1, tzinfo=UTC),
        )
        path = _write_decisions(tmp_path, bad)
        result = runner.invoke(
            app, ["reconcile", str(path), "--now", "2025-01-02T00:00:00+00:00"]
        )
        assert result.exit_code == 1
        assert "0 action(s), 0 skipped, 1 failed" in result.output

    def test_log_writes_events(self, tmp_path):
        log_dir = tmp_path / "logs"
        config = tmp_path / "decido.toml"
        config.write_text(f'[workflow]\nlog_dir = "{log_dir.as_posix()}"\n')
        path = _write_decisions(tmp_path, _make_decision())

        result = runner.invoke(
            app,
            ["reconcile", str(path), "--now", "2025-01-02T00:00:00+00:00", "--log"],
            env={"DECIDO_CONFIG": str(config)},
        )
        assert result.exit_code == 0
        (event,) = DecisionLog(log_dir).query()
        assert event.decision_id == "d1"
        assert event.new_value == "AVIS"

    def test_invalid_file_exits(self, tmp_path):
        path = _write_json(tmp_path, [{"title": "no id"}])
        result = runner.invoke(app, ["reconcile", str(path)])
        assert result.exit_code == 1
        assert "Invalid decisions file" in result.output


# ══════════════════════════════════════════════════════════════════
# decido config
# ══════════════════════════════════════════════════════════════════


class TestConfigCommand:
    def test_show(self):
        result = runner.invoke(app, ["config", "show"])
        assert result.exit_code == 0
        assert "Workflow Configuration" in result.output
        assert "15 min" in result.output

    def test_missing_config_exits(self, tmp_path):
        result = runner.invoke(
            app, ["config", "show"], env={"DECIDO_CONFIG": str(tmp_path / "none.toml")}
        )
        assert result.exit_code == 1
        assert "Error loading config" in result.output
