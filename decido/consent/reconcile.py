"""Periodic reconciliation of open consent decisions.

A scheduler (cron, default every 15 minutes) recomputes the stage of
every open consent decision and persists it when it changed, notifying
the participants of the new stage. It also closes decisions whose
deadline passed, and closes early once every participant consented
during OBJECTIONS.

Planning is pure (plan_decision, plan_reconciliation). The async
ConsentStageReconciler applies a plan through host-provided store and
notifier objects. Running it twice over unchanged data does nothing the
second time; it never moves a decision back, and never reopens a
TERMINEE decision.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Protocol

from pydantic import BaseModel, Field

from decido.consent.scheduler import effective_stage, stage_deadline
from decido.errors import ConfigurationError
from decido.events import DecisionEventEmitter
from decido.resolution.consent import all_participants_consented
from decido.resolution.resolver import resolve
from decido.schemas.consent import (
    ConsentDecision,
    ConsentStage,
    DecisionUpdate,
    StageNotification,
)
from decido.schemas.decision import (
    DecisionMethod,
    DecisionStatus,
    ResolutionContext,
)
from decido.schemas.workflow import ActionOutcome, DecisionEvent, DecisionEventType
from decido.settings import WorkflowConfig

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = timedelta(minutes=15)


class ReconcileKind(StrEnum):
    """What a reconciliation step does to a decision."""

    TRANSITION = "transition"
    CLOSE = "close"


class ReconcileAction(ActionOutcome):
    """One planned change to one decision."""

    kind: ReconcileKind
    from_stage: ConsentStage | None = None
    to_stage: ConsentStage


class ReconcilePlan(BaseModel):
    """Result of planning a reconciliation run over a batch of decisions."""

    actions: list[ReconcileAction] = Field(default_factory=list)
    skipped: list[str] = Field(
        default_factory=list, description="Decisions ignored (not open, not consent, no window)"
    )
    failed: dict[str, str] = Field(
        default_factory=dict, description="Decision id → configuration error"
    )


class ReconcileReport(BaseModel):
    """Counters of an applied reconciliation run."""

    timestamp: datetime
    total: int = 0
    transitioned: int = 0
    notified: int = 0
    closed: int = 0
    skipped: int = 0
    conflicts: int = Field(
        default=0, description="Updates refused because the stored stage moved meanwhile"
    )
    failed: list[str] = Field(default_factory=list)


# ── Planning ─────────────────────────────────────────────────────


def _notification(decision: ConsentDecision, stage: ConsentStage) -> StageNotification:
    # AMENDEMENTS only concerns the creator, who must keep, amend, or withdraw
    if stage == ConsentStage.AMENDEMENTS:
        recipients = [decision.creator]
    else:
        recipients = list(decision.participants)
    return StageNotification(
        decision_id=decision.id,
        title=decision.title,
        stage=stage,
        recipients=recipients,
        stage_deadline=stage_deadline(
            decision.start_date, decision.end_date, decision.step_mode, stage
        ),
        proposal=decision.proposal or decision.initial_proposal,
        amended=decision.proposal is not None,
    )


def _stage_event(
    decision: ConsentDecision, target: ConsentStage, now: datetime
) -> DecisionEvent:
    return DecisionEvent(
        decision_id=decision.id,
        type=DecisionEventType.CONSENT_STAGE_CHANGED,
        timestamp=now,
        old_value=decision.current_stage,
        new_value=target,
    )


def _close(decision: ConsentDecision, now: datetime, reason: str) -> ReconcileAction:
    resolution = resolve(
        DecisionMethod.CONSENT,
        context=ResolutionContext(
            objections=decision.objections,
            amendment_action=decision.amendment_action,
            total_participants=len(decision.participants),
        ),
    )
    events: list[DecisionEvent] = []
    if decision.current_stage != ConsentStage.TERMINEE:
        events.append(_stage_event(decision, ConsentStage.TERMINEE, now))
    events.append(
        DecisionEvent(
            decision_id=decision.id,
            type=DecisionEventType.CLOSED,
            timestamp=now,
            old_value=DecisionStatus.OPEN,
            new_value=DecisionStatus.CLOSED,
            metadata={
                "reason": reason,
                "result": resolution.result,
                "automatic_closure": True,
            },
        )
    )
    logger.info("Decision %s: closing (%s) as %s", decision.id, reason, resolution.result)
    return ReconcileAction(
        decision_id=decision.id,
        kind=ReconcileKind.CLOSE,
        from_stage=decision.current_stage,
        to_stage=ConsentStage.TERMINEE,
        update=DecisionUpdate(
            status=DecisionStatus.CLOSED,
            result=resolution.result,
            decided_at=now,
            consent_current_stage=ConsentStage.TERMINEE,
            expected_stage=decision.current_stage,
        ),
        events=events,
    )


def plan_decision(decision: ConsentDecision, now: datetime) -> ReconcileAction | None:
    """Plan the reconciliation step for a single open consent decision.

    Returns:
        The transition or closure to apply, or None when the stored stage
        is already current.

    Raises:
        ConfigurationError: If the decision's window is malformed.
    """
    stored = decision.current_stage
    target = effective_stage(decision, now)

    if stored is not None and target.order < stored.order:
        logger.warning(
            "Decision %s: computed stage %s is behind stored %s, keeping stored",
            decision.id, target, stored,
        )
        target = stored

    if target == ConsentStage.TERMINEE:
        return _close(decision, now, reason="deadline_reached")

    if target == ConsentStage.OBJECTIONS and all_participants_consented(
        decision.objections, len(decision.participants)
    ):
        return _close(decision, now, reason="all_participants_consented")

    if target == stored:
        return None

    logger.info("Decision %s: stage transition %s -> %s", decision.id, stored, target)
    return ReconcileAction(
        decision_id=decision.id,
        kind=ReconcileKind.TRANSITION,
        from_stage=stored,
        to_stage=target,
        update=DecisionUpdate(
            consent_current_stage=target,
            last_notified_stage=target,
            expected_stage=stored,
        ),
        events=[_stage_event(decision, target, now)],
        notification=_notification(decision, target),
    )


def plan_reconciliation(
    decisions: Iterable[ConsentDecision], now: datetime
) -> ReconcilePlan:
    """Plan one reconciliation run over a snapshot of decisions.

    Decisions that are not open consent decisions, or have no window yet,
    are skipped. A malformed window is reported in ``failed`` and does not
    stop the rest of the batch.
    """
    plan = ReconcilePlan()
    for decision in decisions:
        if decision.method != DecisionMethod.CONSENT or decision.status != DecisionStatus.OPEN:
            plan.skipped.append(decision.id)
            continue
        if not decision.is_configured:
            logger.warning("Decision %s: no staging window, skipped", decision.id)
            plan.skipped.append(decision.id)
            continue
        try:
            action = plan_decision(decision, now)
        except ConfigurationError as exc:
            logger.error("Decision %s: %s", decision.id, exc)
            plan.failed[decision.id] = str(exc)
            continue
        if action is not None:
            plan.actions.append(action)
    return plan


# ── Host collaborators ───────────────────────────────────────────


class DecisionStore(Protocol):
    """Persistence the reconciler needs from the host."""

    async def list_open_consent_decisions(self) -> list[ConsentDecision]: ...

    async def apply_update(self, decision_id: str, update: DecisionUpdate) -> bool:
        """Write ``update.changes()`` if the stored stage equals
        ``update.expected_stage``; return False when the condition failed."""
        ...


class Notifier(Protocol):
    """Delivery of stage notifications (email or otherwise)."""

    async def notify(self, notification: StageNotification) -> None: ...


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ConsentStageReconciler:
    """Applies reconciliation plans against the host's store and notifier."""

    def __init__(
        self,
        store: DecisionStore,
        notifier: Notifier,
        emitter: DecisionEventEmitter | None = None,
        interval: timedelta = DEFAULT_INTERVAL,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._emitter = emitter
        self._interval = interval
        self._clock = clock

    @classmethod
    def from_config(
        cls,
        store: DecisionStore,
        notifier: Notifier,
        config: WorkflowConfig,
        emitter: DecisionEventEmitter | None = None,
    ) -> ConsentStageReconciler:
        """Build a reconciler running at the configured cadence."""
        return cls(store, notifier, emitter=emitter, interval=config.reconcile_interval)

    async def run_once(self, now: datetime | None = None) -> ReconcileReport:
        """Reconcile every open consent decision once."""
        moment = now or self._clock()
        decisions = await self._store.list_open_consent_decisions()
        plan = plan_reconciliation(decisions, moment)

        report = ReconcileReport(
            timestamp=moment,
            total=len(decisions),
            skipped=len(plan.skipped),
            failed=list(plan.failed),
        )
        for action in plan.actions:
            await self._apply(action, report)

        logger.info(
            "Reconciled %d consent decision(s): %d transitioned, %d closed, "
            "%d notified, %d conflict(s), %d failed",
            report.total, report.transitioned, report.closed,
            report.notified, report.conflicts, len(report.failed),
        )
        return report

    async def _apply(self, action: ReconcileAction, report: ReconcileReport) -> None:
        try:
            applied = await self._store.apply_update(action.decision_id, action.update)
        except Exception:
            logger.exception("Decision %s: update failed", action.decision_id)
            report.failed.append(action.decision_id)
            return

        if not applied:
            logger.info(
                "Decision %s: stage changed concurrently, update skipped",
                action.decision_id,
            )
            report.conflicts += 1
            return

        if action.kind == ReconcileKind.CLOSE:
            report.closed += 1
        else:
            report.transitioned += 1

        if self._emitter is not None:
            await self._emitter.emit_all(action.events)

        if action.notification is not None and action.notification.recipients:
            try:
                await self._notifier.notify(action.notification)
                report.notified += 1
            except Exception:
                logger.exception(
                    "Decision %s: notification for %s failed",
                    action.decision_id, action.notification.stage,
                )

    async def run_forever(self, stop: asyncio.Event | None = None) -> None:
        """Reconcile on a fixed cadence until ``stop`` is set."""
        stop = stop or asyncio.Event()
        while not stop.is_set():
            try:
                await self.run_once()
            except Exception:
                logger.exception("Reconciliation run failed")
            try:
                await asyncio.wait_for(stop.wait(), timeout=self._interval.total_seconds())
            except TimeoutError:
                pass
