"""Staged consent workflow.

Stage scheduling, creator overrides during AMENDEMENTS, and periodic
reconciliation of open consent decisions.
"""

from decido.consent.actions import amend_proposal, keep_proposal, withdraw_proposal
from decido.consent.reconcile import (
    ConsentStageReconciler,
    DecisionStore,
    Notifier,
    ReconcileAction,
    ReconcileKind,
    ReconcilePlan,
    ReconcileReport,
    plan_decision,
    plan_reconciliation,
)
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

__all__ = [
    "ConsentStageReconciler",
    "DecisionStore",
    "Notifier",
    "ReconcileAction",
    "ReconcileKind",
    "ReconcilePlan",
    "ReconcileReport",
    "amend_proposal",
    "can_amend",
    "can_ask_clarification",
    "can_give_opinion",
    "can_object",
    "compute_schedule",
    "current_stage",
    "effective_stage",
    "keep_proposal",
    "mode_stages",
    "plan_decision",
    "plan_reconciliation",
    "stage_deadline",
    "stage_windows",
    "withdraw_proposal",
]
