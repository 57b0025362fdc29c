"""Advice solicitation closure.

An advice solicitation is not decided by counting anything: once every
requested opinion is in, the creator writes the final decision by hand.
This module enforces that gate and produces what the host must persist.
"""

from __future__ import annotations

import logging
from datetime import datetime

from decido.errors import PreconditionViolation
from decido.schemas.consent import DecisionUpdate
from decido.schemas.decision import DecisionResult, DecisionStatus
from decido.schemas.workflow import ActionOutcome, DecisionEvent, DecisionEventType

logger = logging.getLogger(__name__)


def check_opinions_complete(expected_opinions: int, received_opinions: int) -> None:
    """Raise unless every requested opinion has been collected."""
    if received_opinions < expected_opinions:
        raise PreconditionViolation(
            "Not every opinion has been given yet "
            f"({received_opinions}/{expected_opinions})"
        )


def finalize_advice(
    decision_id: str,
    creator_id: str,
    actor_id: str,
    status: DecisionStatus,
    expected_opinions: int,
    received_opinions: int,
    now: datetime,
    actor_name: str | None = None,
    conclusion: str = "",
) -> ActionOutcome:
    """Record the creator's final decision on an advice solicitation.

    Args:
        decision_id: The decision being closed.
        creator_id: Creator of the decision.
        actor_id: User attempting the final decision.
        status: Current stored status of the decision.
        expected_opinions: Number of participants asked for advice.
        received_opinions: Number of opinions collected so far.
        now: Instant of the final decision.
        actor_name: Display name recorded on the events.
        conclusion: Free-text conclusion written by the creator.

    Returns:
        The closing update (CLOSED, APPROVED) and the FINAL_DECISION_MADE
        and CLOSED events.

    Raises:
        PreconditionViolation: If the actor is not the creator, the decision
            is not open, or opinions are still missing.
    """
    if actor_id != creator_id:
        raise PreconditionViolation("Only the creator can make the final decision")
    if status != DecisionStatus.OPEN:
        raise PreconditionViolation(f"Decision {decision_id} is not open ({status})")
    check_opinions_complete(expected_opinions, received_opinions)

    logger.info("Advice solicitation %s finalized by %s", decision_id, actor_id)
    metadata = {"conclusion": conclusion} if conclusion else {}
    return ActionOutcome(
        decision_id=decision_id,
        update=DecisionUpdate(
            status=DecisionStatus.CLOSED,
            result=DecisionResult.APPROVED,
            decided_at=now,
        ),
        events=[
            DecisionEvent(
                decision_id=decision_id,
                type=DecisionEventType.FINAL_DECISION_MADE,
                timestamp=now,
                actor_id=actor_id,
                actor_name=actor_name,
                metadata=metadata,
            ),
            DecisionEvent(
                decision_id=decision_id,
                type=DecisionEventType.CLOSED,
                timestamp=now,
                actor_id=actor_id,
                actor_name=actor_name,
                old_value=DecisionStatus.OPEN,
                new_value=DecisionStatus.CLOSED,
                metadata={"reason": "final_decision"},
            ),
        ],
    )
