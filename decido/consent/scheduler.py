"""Consent stage scheduler.

The stage of a consent decision is derived, never authored: it is a pure
function of the decision window, the step mode, and the instant at which
it is evaluated. The window is split into equal, half-open parts, one
per stage of the mode, and the deadline moves the decision to TERMINEE.

All arithmetic is done on whole microseconds so that a boundary instant
always belongs to the later stage, and the computed windows agree with
the computed stage to the microsecond.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from decido.errors import ConfigurationError
from decido.schemas.consent import (
    AmendmentAction,
    ConsentDecision,
    ConsentStage,
    ConsentStepMode,
    StageSchedule,
    StageWindow,
)
from decido.schemas.decision import DecisionStatus

_MICROSECOND = timedelta(microseconds=1)

MODE_STAGES: dict[ConsentStepMode, tuple[ConsentStage, ...]] = {
    ConsentStepMode.MERGED: (
        ConsentStage.CLARIFAVIS,
        ConsentStage.AMENDEMENTS,
        ConsentStage.OBJECTIONS,
    ),
    ConsentStepMode.DISTINCT: (
        ConsentStage.CLARIFICATIONS,
        ConsentStage.AVIS,
        ConsentStage.AMENDEMENTS,
        ConsentStage.OBJECTIONS,
    ),
}


def mode_stages(mode: ConsentStepMode | str) -> tuple[ConsentStage, ...]:
    """Time-driven stages of a step mode, in order (TERMINEE excluded).

    Raises:
        ConfigurationError: If the mode is unknown.
    """
    try:
        return MODE_STAGES[ConsentStepMode(mode)]
    except ValueError as exc:
        raise ConfigurationError(f"Unknown consent step mode: {mode!r}") from exc


def _check_comparable(*moments: datetime) -> None:
    if len({m.tzinfo is None for m in moments}) > 1:
        raise ConfigurationError(
            "Consent window instants mix timezone-aware and naive datetimes "
            f"({', '.join(m.isoformat() for m in moments)})"
        )


def _window_microseconds(start: datetime, end: datetime) -> int:
    _check_comparable(start, end)
    duration = end - start
    if duration <= timedelta(0):
        raise ConfigurationError(
            f"Consent window must end after it starts (start={start}, end={end})"
        )
    return duration // _MICROSECOND


def current_stage(
    start: datetime,
    end: datetime,
    mode: ConsentStepMode | str,
    now: datetime,
) -> ConsentStage:
    """Stage a consent decision is in at ``now``.

    Args:
        start: Launch instant of the decision.
        end: Deadline of the decision.
        mode: MERGED (3 stages) or DISTINCT (4 stages).
        now: Instant to evaluate; never read from the clock here.

    Returns:
        The first stage of the mode before ``start``, TERMINEE from ``end``
        on, otherwise the stage whose equal share of the window holds
        ``now``.

    Raises:
        ConfigurationError: If the window is empty or reversed, the instants
            mix timezone-aware and naive datetimes, or the mode is unknown.
    """
    stages = mode_stages(mode)
    total = _window_microseconds(start, end)
    _check_comparable(start, now)

    if now < start:
        return stages[0]
    if now >= end:
        return ConsentStage.TERMINEE

    elapsed = (now - start) // _MICROSECOND
    return stages[elapsed * len(stages) // total]


def stage_windows(
    start: datetime,
    end: datetime,
    mode: ConsentStepMode | str,
) -> dict[ConsentStage, StageWindow]:
    """Each time-driven stage's ``[start, end)`` window, in workflow order.

    Raises:
        ConfigurationError: If the window is empty or reversed, or the mode
            is unknown.
    """
    stages = mode_stages(mode)
    total = _window_microseconds(start, end)
    count = len(stages)

    # Ceiling division: the first microsecond whose bucket is k
    bounds = [start + timedelta(microseconds=-(-k * total // count)) for k in range(count)]
    bounds.append(end)

    return {
        stage: StageWindow(stage=stage, start=bounds[k], end=bounds[k + 1])
        for k, stage in enumerate(stages)
    }


def compute_schedule(
    start: datetime,
    end: datetime,
    mode: ConsentStepMode | str,
    now: datetime,
) -> StageSchedule:
    """Current stage together with every stage window."""
    return StageSchedule(
        stage=current_stage(start, end, mode, now),
        windows=stage_windows(start, end, mode),
    )


def stage_deadline(
    start: datetime,
    end: datetime,
    mode: ConsentStepMode | str,
    stage: ConsentStage,
) -> datetime:
    """Instant at which ``stage`` ends; the decision deadline for TERMINEE."""
    window = stage_windows(start, end, mode).get(stage)
    return window.end if window else end


def effective_stage(decision: ConsentDecision, now: datetime) -> ConsentStage:
    """Stage of a stored decision, with the creator's overrides applied.

    A closed or withdrawn decision is TERMINEE for good. Once the creator
    kept or amended the proposal, the decision sits in OBJECTIONS until
    the deadline.

    Raises:
        ConfigurationError: If the decision has no complete window or mode.
    """
    if (
        decision.status != DecisionStatus.OPEN
        or decision.amendment_action == AmendmentAction.WITHDRAWN
        or decision.current_stage == ConsentStage.TERMINEE
    ):
        return ConsentStage.TERMINEE
    if not decision.is_configured:
        raise ConfigurationError(f"Consent decision {decision.id} has no staging window")

    stage = current_stage(decision.start_date, decision.end_date, decision.step_mode, now)
    if (
        decision.amendment_action in (AmendmentAction.KEPT, AmendmentAction.AMENDED)
        and stage.order < ConsentStage.OBJECTIONS.order
    ):
        return ConsentStage.OBJECTIONS
    return stage


# ── Participation gates ──────────────────────────────────────────


def can_amend(stage: ConsentStage | None, creator_id: str, user_id: str) -> bool:
    """Whether ``user_id`` may keep, amend, or withdraw the proposal now."""
    return creator_id == user_id and stage == ConsentStage.AMENDEMENTS


def can_object(stage: ConsentStage | None) -> bool:
    return stage == ConsentStage.OBJECTIONS


def can_ask_clarification(stage: ConsentStage | None, mode: ConsentStepMode) -> bool:
    """Clarification questions run through the opening phase(s) of the mode."""
    if mode == ConsentStepMode.MERGED:
        return stage == ConsentStage.CLARIFAVIS
    return stage in (ConsentStage.CLARIFICATIONS, ConsentStage.AVIS)


def can_give_opinion(stage: ConsentStage | None, mode: ConsentStepMode) -> bool:
    if mode == ConsentStepMode.MERGED:
        return stage == ConsentStage.CLARIFAVIS
    return stage == ConsentStage.AVIS
