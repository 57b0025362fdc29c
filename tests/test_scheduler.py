"""Tests for decido.consent.scheduler — stage computation and gates."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from decido.consent.scheduler import (
    can_amend,
    can_ask_clarification,
    can_give_opinion,
    can_object,
    compute_schedule,
    current_stage,
    effective_stage,
    mode_stages,
    stage_deadline,
    stage_windows,
)
from decido.errors import ConfigurationError
from decido.schemas.consent import (
    AmendmentAction,
    ConsentDecision,
    ConsentStage,
    ConsentStepMode,
    Participant,
)
from decido.schemas.decision import DecisionStatus

START = datetime(2025, 1, 1, tzinfo=UTC)
END = datetime(2025, 1, 5, tzinfo=UTC)
DISTINCT = ConsentStepMode.DISTINCT
MERGED = ConsentStepMode.MERGED


def _at(day: int, hour: int = 0) -> datetime:
    return datetime(2025, 1, day, hour, tzinfo=UTC)


def _make_decision(**overrides) -> ConsentDecision:
    defaults = {
        "id": "d1",
        "title": "Adopt a four-day week",
        "creator": Participant(id="alice", name="Alice"),
        "start_date": START,
        "end_date": END,
        "step_mode": DISTINCT,
        "current_stage": ConsentStage.CLARIFICATIONS,
        "initial_proposal": "Work Monday to Thursday",
        "participants": [Participant(id="alice"), Participant(id="bob")],
    }
    defaults.update(overrides)
    return ConsentDecision(**defaults)


# ══════════════════════════════════════════════════════════════════
# current_stage
# ══════════════════════════════════════════════════════════════════


class TestCurrentStage:
    @pytest.mark.parametrize(
        ("now", "expected"),
        [
            (_at(1, 12), ConsentStage.CLARIFICATIONS),
            (_at(2), ConsentStage.AVIS),
            (_at(3, 6), ConsentStage.AMENDEMENTS),
            (_at(4, 23), ConsentStage.OBJECTIONS),
            (_at(5), ConsentStage.TERMINEE),
            (_at(9), ConsentStage.TERMINEE),
        ],
    )
    def test_distinct(self, now, expected):
        assert current_stage(START, END, DISTINCT, now) == expected

    def test_merged_midpoint_is_amendements(self):
        end = _at(4)
        midpoint = START + (end - START) / 2
        assert current_stage(START, end, MERGED, midpoint) == ConsentStage.AMENDEMENTS

    def test_merged_opening_stage(self):
        assert current_stage(START, _at(4), MERGED, _at(1, 23)) == ConsentStage.CLARIFAVIS

    def test_before_start_is_first_stage(self):
        assert current_stage(START, END, DISTINCT, START - timedelta(days=3)) == (
            ConsentStage.CLARIFICATIONS
        )
        assert current_stage(START, END, MERGED, START - timedelta(days=3)) == (
            ConsentStage.CLARIFAVIS
        )

    def test_boundary_belongs_to_later_stage(self):
        assert current_stage(START, END, DISTINCT, _at(3)) == ConsentStage.AMENDEMENTS
        just_before = _at(3) - timedelta(microseconds=1)
        assert current_stage(START, END, DISTINCT, just_before) == ConsentStage.AVIS

    def test_mode_as_stored_string(self):
        assert current_stage(START, END, "DISTINCT", _at(2)) == ConsentStage.AVIS

    def test_end_before_start_raises(self):
        with pytest.raises(ConfigurationError, match="end after it starts"):
            current_stage(END, START, DISTINCT, _at(2))

    def test_empty_window_raises(self):
        with pytest.raises(ConfigurationError):
            current_stage(START, START, DISTINCT, START)

    def test_naive_now_against_aware_window_raises(self):
        with pytest.raises(ConfigurationError, match="timezone-aware and naive"):
            current_stage(START, END, DISTINCT, datetime(2025, 1, 2))

    def test_naive_end_against_aware_start_raises(self):
        with pytest.raises(ConfigurationError, match="timezone-aware and naive"):
            current_stage(START, datetime(2025, 1, 5), DISTINCT, _at(2))

    def test_all_naive_window_is_accepted(self):
        start, end, now = datetime(2025, 1, 1), datetime(2025, 1, 5), datetime(2025, 1, 2)
        assert current_stage(start, end, DISTINCT, now) == ConsentStage.AVIS

    def test_unknown_mode_raises(self):
        with pytest.raises(ConfigurationError, match="Unknown consent step mode"):
            current_stage(START, END, "STAGGERED", _at(2))

    def test_monotone_over_time(self):
        orders = []
        now = START - timedelta(hours=1)
        while now <= END + timedelta(hours=1):
            orders.append(current_stage(START, END, DISTINCT, now).order)
            now += timedelta(hours=1)
        assert orders == sorted(orders)


# ══════════════════════════════════════════════════════════════════
# Windows
# ══════════════════════════════════════════════════════════════════


class TestStageWindows:
    def test_distinct_equal_days(self):
        windows = stage_windows(START, END, DISTINCT)
        assert list(windows) == list(mode_stages(DISTINCT))
        assert windows[ConsentStage.AVIS].start == _at(2)
        assert windows[ConsentStage.AVIS].end == _at(3)
        assert windows[ConsentStage.OBJECTIONS].end == END

    def test_windows_are_contiguous(self):
        windows = list(stage_windows(START, _at(4, 7), MERGED).values())
        assert windows[0].start == START
        for previous, following in zip(windows, windows[1:]):
            assert previous.end == following.start

    def test_windows_agree_with_current_stage(self):
        # 10 microseconds over 4 stages does not divide evenly
        end = START + timedelta(microseconds=10)
        tick = timedelta(microseconds=1)
        for stage, window in stage_windows(START, end, DISTINCT).items():
            assert current_stage(START, end, DISTINCT, window.start) == stage
            assert current_stage(START, end, DISTINCT, window.end - tick) == stage
            assert window.contains(window.start)
            assert not window.contains(window.end)

    def test_compute_schedule(self):
        schedule = compute_schedule(START, END, DISTINCT, _at(2, 5))
        assert schedule.stage == ConsentStage.AVIS
        assert schedule.windows[schedule.stage].contains(_at(2, 5))

    def test_stage_deadline(self):
        assert stage_deadline(START, END, DISTINCT, ConsentStage.AMENDEMENTS) == _at(4)
        assert stage_deadline(START, END, DISTINCT, ConsentStage.TERMINEE) == END


# ══════════════════════════════════════════════════════════════════
# effective_stage
# ══════════════════════════════════════════════════════════════════


class TestEffectiveStage:
    def test_follows_the_clock(self):
        assert effective_stage(_make_decision(), _at(2)) == ConsentStage.AVIS

    def test_closed_decision_is_terminee(self):
        decision = _make_decision(status=DecisionStatus.CLOSED)
        assert effective_stage(decision, _at(2)) == ConsentStage.TERMINEE

    def test_withdrawn_is_terminee(self):
        decision = _make_decision(amendment_action=AmendmentAction.WITHDRAWN)
        assert effective_stage(decision, _at(3)) == ConsentStage.TERMINEE

    def test_stored_terminee_never_reopens(self):
        decision = _make_decision(current_stage=ConsentStage.TERMINEE)
        assert effective_stage(decision, _at(2)) == ConsentStage.TERMINEE

    @pytest.mark.parametrize("action", [AmendmentAction.KEPT, AmendmentAction.AMENDED])
    def test_override_jumps_to_objections(self, action):
        decision = _make_decision(amendment_action=action)
        assert effective_stage(decision, _at(3)) == ConsentStage.OBJECTIONS

    def test_override_still_ends_at_deadline(self):
        decision = _make_decision(amendment_action=AmendmentAction.KEPT)
        assert effective_stage(decision, END) == ConsentStage.TERMINEE

    def test_unconfigured_raises(self):
        decision = _make_decision(step_mode=None)
        with pytest.raises(ConfigurationError, match="no staging window"):
            effective_stage(decision, _at(2))


# ══════════════════════════════════════════════════════════════════
# Gates
# ══════════════════════════════════════════════════════════════════


class TestGates:
    def test_only_creator_amends_during_amendements(self):
        assert can_amend(ConsentStage.AMENDEMENTS, "alice", "alice")
        assert not can_amend(ConsentStage.AMENDEMENTS, "alice", "bob")
        assert not can_amend(ConsentStage.OBJECTIONS, "alice", "alice")

    def test_objections_only_during_objections(self):
        assert can_object(ConsentStage.OBJECTIONS)
        assert not can_object(ConsentStage.AMENDEMENTS)
        assert not can_object(None)

    def test_clarifications_distinct(self):
        assert can_ask_clarification(ConsentStage.CLARIFICATIONS, DISTINCT)
        assert can_ask_clarification(ConsentStage.AVIS, DISTINCT)
        assert not can_ask_clarification(ConsentStage.AMENDEMENTS, DISTINCT)

    def test_clarifications_merged(self):
        assert can_ask_clarification(ConsentStage.CLARIFAVIS, MERGED)
        assert not can_ask_clarification(ConsentStage.CLARIFICATIONS, MERGED)

    def test_opinions(self):
        assert can_give_opinion(ConsentStage.AVIS, DISTINCT)
        assert not can_give_opinion(ConsentStage.CLARIFICATIONS, DISTINCT)
        assert can_give_opinion(ConsentStage.CLARIFAVIS, MERGED)
