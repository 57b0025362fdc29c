"""Decido schema definitions.

All Pydantic v2 models shared by the resolver, the stage scheduler, and
the reconciliation workflow.
"""

from decido.schemas.consent import (
    ConsentDecision,
    ConsentStage,
    ConsentStepMode,
    DecisionUpdate,
    Participant,
    StageNotification,
    StageSchedule,
    StageWindow,
)
from decido.schemas.decision import (
    AmendmentAction,
    Ballot,
    ConsentTally,
    DecisionMethod,
    DecisionResult,
    DecisionStatus,
    Mention,
    MentionScale,
    NuancedMention,
    Objection,
    ObjectionValue,
    Proposal,
    ProposalTally,
    RankedProposal,
    Resolution,
    ResolutionContext,
    VoteValue,
)
from decido.schemas.workflow import ActionOutcome, DecisionEvent, DecisionEventType

__all__ = [
    "ActionOutcome",
    "AmendmentAction",
    "Ballot",
    "ConsentDecision",
    "ConsentStage",
    "ConsentStepMode",
    "ConsentTally",
    "DecisionEvent",
    "DecisionEventType",
    "DecisionMethod",
    "DecisionResult",
    "DecisionStatus",
    "DecisionUpdate",
    "Mention",
    "MentionScale",
    "NuancedMention",
    "Objection",
    "ObjectionValue",
    "Participant",
    "Proposal",
    "ProposalTally",
    "RankedProposal",
    "Resolution",
    "ResolutionContext",
    "StageNotification",
    "StageSchedule",
    "StageWindow",
    "VoteValue",
]
