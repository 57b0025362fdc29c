"""Workflow output schemas.

Audit events recorded on a decision's history and the outcome record a
workflow action hands back to the host: what to write, which events to
log, and who to notify.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from decido.schemas.consent import DecisionUpdate, StageNotification


class DecisionEventType(StrEnum):
    """Kinds of entries in a decision's history."""

    CLOSED = "CLOSED"
    FINAL_DECISION_MADE = "FINAL_DECISION_MADE"
    CONSENT_STAGE_CHANGED = "CONSENT_STAGE_CHANGED"
    CONSENT_PROPOSAL_KEPT = "CONSENT_PROPOSAL_KEPT"
    CONSENT_PROPOSAL_AMENDED = "CONSENT_PROPOSAL_AMENDED"
    CONSENT_PROPOSAL_WITHDRAWN = "CONSENT_PROPOSAL_WITHDRAWN"


class DecisionEvent(BaseModel):
    """A single audit entry on a decision's history."""

    decision_id: str = Field(description="Decision the event belongs to")
    type: DecisionEventType = Field(description="Event type")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the event occurred",
    )
    actor_id: str | None = Field(
        default=None, description="Acting user, None for automatic transitions"
    )
    actor_name: str | None = None
    old_value: str | None = None
    new_value: str | None = None
    metadata: dict[str, Any] = Field(
        default_factory=dict, description="Event payload, varies by event type"
    )


class ActionOutcome(BaseModel):
    """Everything the host must do after a workflow action succeeded."""

    decision_id: str
    update: DecisionUpdate = Field(description="Fields to persist, with the write condition")
    events: list[DecisionEvent] = Field(default_factory=list)
    notification: StageNotification | None = Field(
        default=None, description="Stage notification to send, if any"
    )
