"""Staged consent schemas.

Defines the consent stages and step modes, the derived per-stage time
windows, the host's snapshot of an open consent decision, and the typed
update and notification records the workflow hands back to the host.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field

from decido.schemas.decision import (
    AmendmentAction,
    DecisionMethod,
    DecisionResult,
    DecisionStatus,
    Objection,
)


class ConsentStepMode(StrEnum):
    """How the opening phases of a consent decision are laid out.

    MERGED runs clarification questions and opinions as a single phase,
    DISTINCT gives each its own phase.
    """

    MERGED = "MERGED"
    DISTINCT = "DISTINCT"


class ConsentStage(StrEnum):
    """Phase of a staged consent decision."""

    CLARIFICATIONS = "CLARIFICATIONS"
    CLARIFAVIS = "CLARIFAVIS"
    AVIS = "AVIS"
    AMENDEMENTS = "AMENDEMENTS"
    OBJECTIONS = "OBJECTIONS"
    TERMINEE = "TERMINEE"

    @property
    def order(self) -> int:
        """Position in the workflow; both opening stages share position 0."""
        return _STAGE_ORDER[self]


_STAGE_ORDER: dict[ConsentStage, int] = {
    ConsentStage.CLARIFICATIONS: 0,
    ConsentStage.CLARIFAVIS: 0,
    ConsentStage.AVIS: 1,
    ConsentStage.AMENDEMENTS: 2,
    ConsentStage.OBJECTIONS: 3,
    ConsentStage.TERMINEE: 4,
}


class StageWindow(BaseModel):
    """Half-open time range ``[start, end)`` during which a stage is active."""

    stage: ConsentStage
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end


class StageSchedule(BaseModel):
    """Current stage of a consent decision together with every stage window."""

    stage: ConsentStage = Field(description="Stage active at the evaluated instant")
    windows: dict[ConsentStage, StageWindow] = Field(
        default_factory=dict, description="Stage → its time window, in workflow order"
    )


class Participant(BaseModel):
    """A member or external participant reachable by notifications."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str | None = None
    email: str | None = None


class ConsentDecision(BaseModel):
    """Host snapshot of a consent decision, as loaded for reconciliation."""

    id: str
    title: str = ""
    method: DecisionMethod = DecisionMethod.CONSENT
    status: DecisionStatus = DecisionStatus.OPEN
    creator: Participant
    start_date: AwareDatetime | None = Field(
        default=None, description="Launch instant, timezone-aware"
    )
    end_date: AwareDatetime | None = Field(
        default=None, description="Deadline, timezone-aware"
    )
    step_mode: ConsentStepMode | None = None
    current_stage: ConsentStage | None = Field(
        default=None, description="Stage last persisted by the host"
    )
    amendment_action: AmendmentAction | None = None
    initial_proposal: str = ""
    proposal: str | None = Field(
        default=None, description="Amended proposal text, if the creator amended"
    )
    participants: list[Participant] = Field(default_factory=list)
    objections: list[Objection] = Field(default_factory=list)

    @property
    def is_configured(self) -> bool:
        return (
            self.start_date is not None
            and self.end_date is not None
            and self.step_mode is not None
        )


class DecisionUpdate(BaseModel):
    """Explicit partial update of a decision's stored fields.

    Only the fields that are set are written. ``expected_stage`` is not a
    field to write: it is the condition the host must check before
    writing, so that a manual override and a reconciliation run never
    overwrite each other.
    """

    status: DecisionStatus | None = None
    result: DecisionResult | None = None
    decided_at: datetime | None = None
    consent_current_stage: ConsentStage | None = None
    last_notified_stage: ConsentStage | None = None
    amendment_action: AmendmentAction | None = None
    proposal: str | None = None
    expected_stage: ConsentStage | None = Field(
        default=None, description="Only apply if the stored stage still equals this"
    )

    def changes(self) -> dict[str, object]:
        """Fields to persist, without the write condition."""
        return self.model_dump(exclude_none=True, exclude={"expected_stage"})


class StageNotification(BaseModel):
    """Who must be told about a stage change, and until when the stage runs."""

    decision_id: str
    title: str = ""
    stage: ConsentStage
    recipients: list[Participant] = Field(default_factory=list)
    stage_deadline: datetime
    proposal: str = Field(default="", description="Proposal text currently in force")
    amended: bool = False
