"""Decision, ballot, and resolution schemas.

Defines the governance methods a decision can use (DecisionMethod), the
stances a participant can cast (VoteValue, ObjectionValue, Mention), the
input records the resolver consumes (Ballot, Objection, NuancedMention,
Proposal, ResolutionContext), and the resolver's output (Resolution).
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field


class DecisionMethod(StrEnum):
    """Governance method configured on a decision.

    Selects the resolution rule and whether the decision is fed plain
    ballots, consent objections, proposal mentions, or advice opinions.
    """

    CONSENSUS = "CONSENSUS"
    CONSENT = "CONSENT"
    MAJORITY = "MAJORITY"
    SUPERMAJORITY = "SUPERMAJORITY"
    WEIGHTED_VOTE = "WEIGHTED_VOTE"
    ADVISORY = "ADVISORY"
    NUANCED_VOTE = "NUANCED_VOTE"
    ADVICE_SOLICITATION = "ADVICE_SOLICITATION"


class VoteValue(StrEnum):
    """Stance carried by a single ballot, from strongest support to veto."""

    STRONG_SUPPORT = "STRONG_SUPPORT"
    SUPPORT = "SUPPORT"
    WEAK_SUPPORT = "WEAK_SUPPORT"
    ABSTAIN = "ABSTAIN"
    WEAK_OPPOSE = "WEAK_OPPOSE"
    OPPOSE = "OPPOSE"
    STRONG_OPPOSE = "STRONG_OPPOSE"
    BLOCK = "BLOCK"


class ObjectionValue(StrEnum):
    """A participant's stance on the final proposal of a consent decision."""

    NO_OBJECTION = "NO_OBJECTION"
    NO_POSITION = "NO_POSITION"
    OBJECTION = "OBJECTION"


class Mention(StrEnum):
    """Ordinal grade used in nuanced (majority judgment) voting."""

    EXCELLENT = "EXCELLENT"
    VERY_GOOD = "VERY_GOOD"
    GOOD = "GOOD"
    PASSABLE = "PASSABLE"
    INSUFFICIENT = "INSUFFICIENT"
    VERY_INSUFFICIENT = "VERY_INSUFFICIENT"
    TO_REJECT = "TO_REJECT"


class MentionScale(StrEnum):
    """Number of grades offered to voters on a nuanced decision."""

    THREE_LEVELS = "3_LEVELS"
    FIVE_LEVELS = "5_LEVELS"
    SEVEN_LEVELS = "7_LEVELS"


class DecisionResult(StrEnum):
    """Final outcome of a closed decision."""

    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    BLOCKED = "BLOCKED"
    WITHDRAWN = "WITHDRAWN"


class AmendmentAction(StrEnum):
    """One-way action taken by the creator of a consent decision during AMENDEMENTS."""

    KEPT = "KEPT"
    AMENDED = "AMENDED"
    WITHDRAWN = "WITHDRAWN"


class DecisionStatus(StrEnum):
    """Lifecycle status of a decision as stored by the host."""

    DRAFT = "DRAFT"
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    IMPLEMENTED = "IMPLEMENTED"
    ARCHIVED = "ARCHIVED"


class Ballot(BaseModel):
    """One voter's recorded stance on a decision or on one of its proposals."""

    model_config = ConfigDict(frozen=True)

    value: VoteValue = Field(description="Stance cast by the voter")
    weight: float = Field(
        default=1.0,
        ge=0.0,
        allow_inf_nan=False,
        description="Non-negative, finite multiplier for weighted votes",
    )
    voter_id: str = Field(default="", description="Member or external participant id")
    proposal_id: str | None = Field(
        default=None,
        description="Proposal this ballot is cast for (multi-proposal majority only)",
    )


class Objection(BaseModel):
    """A consent-method ballot: presence or absence of a blocking disagreement."""

    model_config = ConfigDict(frozen=True)

    participant_id: str = Field(description="Participant who answered")
    value: ObjectionValue = Field(description="The participant's stance")
    withdrawn_at: AwareDatetime | None = Field(
        default=None,
        description="When the participant withdrew this answer (ignored if set)",
    )

    @property
    def active(self) -> bool:
        return self.withdrawn_at is None


class NuancedMention(BaseModel):
    """A grade given to one proposal by one voter."""

    model_config = ConfigDict(frozen=True)

    proposal_id: str = Field(description="Graded proposal")
    voter_id: str = Field(default="", description="Voter who gave the grade")
    mention: Mention = Field(description="Grade on the decision's scale")


class Proposal(BaseModel):
    """A candidate option under MAJORITY or NUANCED_VOTE."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Opaque proposal identifier")
    title: str = Field(default="", description="Display title")
    order: int = Field(default=0, description="Ordering key, lower comes first")


class ResolutionContext(BaseModel):
    """Auxiliary resolver input for methods that do not use a flat ballot list.

    Carries consent objections, nuanced proposals and mentions, the
    proposals of a multi-proposal majority vote, or the opinion counts
    of an advice solicitation.
    """

    objections: list[Objection] | None = Field(
        default=None, description="Consent objections (objection-based CONSENT)"
    )
    amendment_action: AmendmentAction | None = Field(
        default=None,
        description="Creator's amendment action on a consent decision (KEPT, AMENDED, WITHDRAWN)",
    )
    total_participants: int = Field(
        default=0, ge=0, description="Number of invited participants"
    )
    proposals: list[Proposal] | None = Field(
        default=None, description="Candidate proposals (MAJORITY or NUANCED_VOTE)"
    )
    mentions: list[NuancedMention] | None = Field(
        default=None, description="Nuanced grades (NUANCED_VOTE)"
    )
    scale: MentionScale | None = Field(
        default=None, description="Mention scale of a nuanced decision"
    )
    expected_opinions: int | None = Field(
        default=None, ge=0, description="Opinions requested (ADVICE_SOLICITATION)"
    )
    received_opinions: int | None = Field(
        default=None, ge=0, description="Opinions collected (ADVICE_SOLICITATION)"
    )


class ConsentTally(BaseModel):
    """Count of active answers on a consent decision."""

    no_objection: int = Field(default=0, ge=0)
    objection: int = Field(default=0, ge=0)
    no_position: int = Field(default=0, ge=0)
    not_voted: int = Field(default=0, ge=0)

    @property
    def silent(self) -> int:
        """Participants who did not take a position either way."""
        return self.no_position + self.not_voted


class ProposalTally(BaseModel):
    """Result of counting ballots across the proposals of a majority vote."""

    counts: dict[str, int] = Field(
        default_factory=dict, description="Proposal id → number of ballots"
    )
    winner: str | None = Field(
        default=None, description="Proposal with the most ballots, or None if tied"
    )
    is_tie: bool = Field(default=False, description="Whether first place is shared")
    tied_proposals: list[str] = Field(
        default_factory=list, description="Proposals tied for first place"
    )


class RankedProposal(BaseModel):
    """One proposal's place in a majority judgment ranking."""

    proposal_id: str
    title: str = ""
    majority_mention: Mention = Field(description="Median grade of the proposal")
    profile: dict[Mention, int] = Field(
        default_factory=dict, description="Grade → number of voters, best grade first"
    )
    mention_count: int = Field(default=0, ge=0)
    rank: int = Field(default=0, ge=0, description="1 is the winner")


class Resolution(BaseModel):
    """Outcome of resolving a decision, with the method-specific detail."""

    method: DecisionMethod
    result: DecisionResult
    consent_tally: ConsentTally | None = None
    proposal_tally: ProposalTally | None = None
    ranking: list[RankedProposal] | None = None
    weighted_score: float | None = None
