"""Creator overrides of the consent schedule.

During AMENDEMENTS the creator may cut the stage short: keep the
proposal as is, amend it, or withdraw it. Each action is one-way. Each
returns an ActionOutcome whose update is conditioned on the stored
stage still being AMENDEMENTS, so that a concurrent reconciliation run
and the override can never both win.
"""

from __future__ import annotations

import logging
from datetime import datetime

from decido.consent.scheduler import can_amend, stage_deadline
from decido.errors import PreconditionViolation
from decido.schemas.consent import (
    AmendmentAction,
    ConsentDecision,
    ConsentStage,
    DecisionUpdate,
    StageNotification,
)
from decido.schemas.decision import DecisionMethod, DecisionResult, DecisionStatus
from decido.schemas.workflow import ActionOutcome, DecisionEvent, DecisionEventType

logger = logging.getLogger(__name__)


def _check_override(decision: ConsentDecision, actor_id: str) -> None:
    if decision.method != DecisionMethod.CONSENT:
        raise PreconditionViolation("This action is reserved for consent decisions")
    if decision.status != DecisionStatus.OPEN:
        raise PreconditionViolation(f"Decision {decision.id} is not open")
    if decision.creator.id != actor_id:
        raise PreconditionViolation("Only the creator can take this action")
    if not can_amend(decision.current_stage, decision.creator.id, actor_id):
        raise PreconditionViolation(
            "This action is only possible during the AMENDEMENTS stage "
            f"(current stage: {decision.current_stage})"
        )


def _objections_notice(
    decision: ConsentDecision, proposal: str, amended: bool
) -> StageNotification:
    if not decision.is_configured:
        raise PreconditionViolation(f"Consent decision {decision.id} has no staging window")
    return StageNotification(
        decision_id=decision.id,
        title=decision.title,
        stage=ConsentStage.OBJECTIONS,
        recipients=list(decision.participants),
        stage_deadline=stage_deadline(
            decision.start_date,
            decision.end_date,
            decision.step_mode,
            ConsentStage.OBJECTIONS,
        ),
        proposal=proposal,
        amended=amended,
    )


def keep_proposal(
    decision: ConsentDecision,
    actor_id: str,
    now: datetime,
    actor_name: str | None = None,
) -> ActionOutcome:
    """Keep the initial proposal and open OBJECTIONS immediately.

    Raises:
        PreconditionViolation: Outside AMENDEMENTS, or by anyone but the creator.
    """
    _check_override(decision, actor_id)
    logger.info("Decision %s: proposal kept, moving to OBJECTIONS", decision.id)

    return ActionOutcome(
        decision_id=decision.id,
        update=DecisionUpdate(
            amendment_action=AmendmentAction.KEPT,
            consent_current_stage=ConsentStage.OBJECTIONS,
            last_notified_stage=ConsentStage.OBJECTIONS,
            expected_stage=ConsentStage.AMENDEMENTS,
        ),
        events=[
            DecisionEvent(
                decision_id=decision.id,
                type=DecisionEventType.CONSENT_PROPOSAL_KEPT,
                timestamp=now,
                actor_id=actor_id,
                actor_name=actor_name,
                old_value=ConsentStage.AMENDEMENTS,
                new_value=ConsentStage.OBJECTIONS,
            ),
        ],
        notification=_objections_notice(decision, decision.initial_proposal, amended=False),
    )


def amend_proposal(
    decision: ConsentDecision,
    actor_id: str,
    proposal: str,
    now: datetime,
    actor_name: str | None = None,
) -> ActionOutcome:
    """Replace the proposal with an amended text and open OBJECTIONS.

    Raises:
        PreconditionViolation: Outside AMENDEMENTS, by anyone but the
            creator, or with an empty amended text.
    """
    _check_override(decision, actor_id)
    text = proposal.strip()
    if not text:
        raise PreconditionViolation("The amended proposal cannot be empty")
    logger.info("Decision %s: proposal amended, moving to OBJECTIONS", decision.id)

    return ActionOutcome(
        decision_id=decision.id,
        update=DecisionUpdate(
            amendment_action=AmendmentAction.AMENDED,
            proposal=text,
            consent_current_stage=ConsentStage.OBJECTIONS,
            last_notified_stage=ConsentStage.OBJECTIONS,
            expected_stage=ConsentStage.AMENDEMENTS,
        ),
        events=[
            DecisionEvent(
                decision_id=decision.id,
                type=DecisionEventType.CONSENT_PROPOSAL_AMENDED,
                timestamp=now,
                actor_id=actor_id,
                actor_name=actor_name,
                old_value=decision.initial_proposal,
                new_value=text,
            ),
        ],
        notification=_objections_notice(decision, text, amended=True),
    )


def withdraw_proposal(
    decision: ConsentDecision,
    actor_id: str,
    now: datetime,
    actor_name: str | None = None,
) -> ActionOutcome:
    """Withdraw the proposal: the decision closes as WITHDRAWN, for good.

    No notification is sent; the decision is over.

    Raises:
        PreconditionViolation: Outside AMENDEMENTS, or by anyone but the creator.
    """
    _check_override(decision, actor_id)
    logger.info("Decision %s: proposal withdrawn, closing", decision.id)

    return ActionOutcome(
        decision_id=decision.id,
        update=DecisionUpdate(
            amendment_action=AmendmentAction.WITHDRAWN,
            status=DecisionStatus.CLOSED,
            result=DecisionResult.WITHDRAWN,
            consent_current_stage=ConsentStage.TERMINEE,
            decided_at=now,
            expected_stage=ConsentStage.AMENDEMENTS,
        ),
        events=[
            DecisionEvent(
                decision_id=decision.id,
                type=DecisionEventType.CONSENT_PROPOSAL_WITHDRAWN,
                timestamp=now,
                actor_id=actor_id,
                actor_name=actor_name,
            ),
            DecisionEvent(
                decision_id=decision.id,
                type=DecisionEventType.CLOSED,
                timestamp=now,
                actor_id=actor_id,
                actor_name=actor_name,
                old_value=DecisionStatus.OPEN,
                new_value=DecisionStatus.CLOSED,
                metadata={"reason": "proposal_withdrawn", "result": DecisionResult.WITHDRAWN},
            ),
        ],
    )
