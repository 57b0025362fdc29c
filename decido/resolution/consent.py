"""Objection-based consent outcome.

A consent decision passes unless someone objects: once at least one
participant has answered, NO_POSITION and missing answers count as
consent. With no active answer at all there is no quorum and the
decision resolves as WITHDRAWN (see resolve()). Withdrawn answers are
ignored.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta

from decido.schemas.consent import AmendmentAction
from decido.schemas.decision import (
    ConsentTally,
    DecisionResult,
    Objection,
    ObjectionValue,
)

DEFAULT_MIN_CONSENT_DURATION = timedelta(days=7)


def active_objections(objections: Iterable[Objection]) -> list[Objection]:
    return [o for o in objections if o.active]


def tally_objections(
    objections: Iterable[Objection], total_participants: int
) -> ConsentTally:
    """Count active answers per stance and the participants who never answered."""
    active = active_objections(objections)
    counts = {value: 0 for value in ObjectionValue}
    for objection in active:
        counts[objection.value] += 1
    return ConsentTally(
        no_objection=counts[ObjectionValue.NO_OBJECTION],
        objection=counts[ObjectionValue.OBJECTION],
        no_position=counts[ObjectionValue.NO_POSITION],
        not_voted=max(total_participants - len(active), 0),
    )


def consent_result(
    objections: Sequence[Objection],
    total_participants: int,
    amendment_action: AmendmentAction | str | None = None,
) -> tuple[DecisionResult, ConsentTally]:
    """Outcome of a consent decision from its objections.

    Returns:
        WITHDRAWN if the creator withdrew the proposal, BLOCKED if any
        active OBJECTION stands, APPROVED otherwise; together with the
        tally of answers.
    """
    if amendment_action == AmendmentAction.WITHDRAWN:
        return DecisionResult.WITHDRAWN, ConsentTally(not_voted=total_participants)

    tally = tally_objections(objections, total_participants)
    if tally.objection > 0:
        return DecisionResult.BLOCKED, tally
    return DecisionResult.APPROVED, tally


def all_participants_consented(
    objections: Sequence[Objection], total_participants: int
) -> bool:
    """Whether every participant answered NO_OBJECTION (allows closing early)."""
    active = active_objections(objections)
    if total_participants == 0 or len(active) != total_participants:
        return False
    return all(o.value == ObjectionValue.NO_OBJECTION for o in active)


def consent_conclusion(
    result: DecisionResult,
    tally: ConsentTally,
    decided_at: datetime,
    creator_name: str | None = None,
) -> str:
    """One-line conclusion recorded on a closed consent decision."""
    stamp = decided_at.strftime("%Y-%m-%d %H:%M")

    if result == DecisionResult.WITHDRAWN:
        who = creator_name or "The creator"
        return (
            f"{stamp} - {who} withdrew the proposal after the "
            "clarification and opinion phase."
        )

    if result == DecisionResult.APPROVED:
        if tally.silent == 0:
            return f"{stamp} - Decision taken by consent. 100% consent."
        return (
            f"{stamp} - Decision taken by consent. {tally.no_objection} "
            f"participant(s) consented (no objection) and {tally.silent} "
            "participant(s) did not take a position."
        )

    if result == DecisionResult.BLOCKED:
        return (
            f"{stamp} - The proposal received at least one objection and is "
            f"blocked. The decision is not taken. {tally.no_objection} "
            f"participant(s) consented (no objection), {tally.silent} did not "
            f"take a position and {tally.objection} objected."
        )

    return f"{stamp} - Decision closed: {result}."


def validate_consent_duration(
    start: datetime,
    end: datetime,
    minimum: timedelta = DEFAULT_MIN_CONSENT_DURATION,
) -> bool:
    """Whether a consent window is long enough to run every stage."""
    return end - start >= minimum
