"""Vote and mention taxonomy shared by every resolution rule.

Maps each ballot value to its signed weight and to the side it leans
toward, and each mention scale to its grades. Every table is keyed by
the full enum: adding a member without extending the tables fails at
import time instead of silently counting as zero.
"""

from __future__ import annotations

from enum import StrEnum

from decido.errors import ConfigurationError, PreconditionViolation
from decido.schemas.decision import (
    DecisionResult,
    DecisionStatus,
    Mention,
    MentionScale,
    VoteValue,
)


class Side(StrEnum):
    """Which way a ballot leans in a head count."""

    SUPPORT = "support"
    OPPOSE = "oppose"
    NEUTRAL = "neutral"


VOTE_WEIGHTS: dict[VoteValue, int] = {
    VoteValue.STRONG_SUPPORT: 3,
    VoteValue.SUPPORT: 2,
    VoteValue.WEAK_SUPPORT: 1,
    VoteValue.ABSTAIN: 0,
    VoteValue.WEAK_OPPOSE: -1,
    VoteValue.OPPOSE: -2,
    VoteValue.STRONG_OPPOSE: -3,
    # A block outweighs any plausible countervailing support
    VoteValue.BLOCK: -10,
}

# BLOCK is a veto, not a vote: it sits on neither side of a head count
VOTE_SIDES: dict[VoteValue, Side] = {
    VoteValue.STRONG_SUPPORT: Side.SUPPORT,
    VoteValue.SUPPORT: Side.SUPPORT,
    VoteValue.WEAK_SUPPORT: Side.SUPPORT,
    VoteValue.ABSTAIN: Side.NEUTRAL,
    VoteValue.WEAK_OPPOSE: Side.OPPOSE,
    VoteValue.OPPOSE: Side.OPPOSE,
    VoteValue.STRONG_OPPOSE: Side.OPPOSE,
    VoteValue.BLOCK: Side.NEUTRAL,
}

# Best grade first
SCALE_MENTIONS: dict[MentionScale, tuple[Mention, ...]] = {
    MentionScale.THREE_LEVELS: (
        Mention.GOOD,
        Mention.PASSABLE,
        Mention.INSUFFICIENT,
    ),
    MentionScale.FIVE_LEVELS: (
        Mention.EXCELLENT,
        Mention.GOOD,
        Mention.PASSABLE,
        Mention.INSUFFICIENT,
        Mention.TO_REJECT,
    ),
    MentionScale.SEVEN_LEVELS: (
        Mention.EXCELLENT,
        Mention.VERY_GOOD,
        Mention.GOOD,
        Mention.PASSABLE,
        Mention.INSUFFICIENT,
        Mention.VERY_INSUFFICIENT,
        Mention.TO_REJECT,
    ),
}

RESULT_LABELS: dict[DecisionResult, str] = {
    DecisionResult.APPROVED: "Approved",
    DecisionResult.REJECTED: "Rejected",
    DecisionResult.BLOCKED: "Blocked",
    DecisionResult.WITHDRAWN: "Withdrawn",
}


def _require_exhaustive(table: dict, enum_cls: type, name: str) -> None:
    missing = [member for member in enum_cls if member not in table]
    if missing:
        raise RuntimeError(f"{name} has no entry for {', '.join(missing)}")


_require_exhaustive(VOTE_WEIGHTS, VoteValue, "VOTE_WEIGHTS")
_require_exhaustive(VOTE_SIDES, VoteValue, "VOTE_SIDES")
_require_exhaustive(SCALE_MENTIONS, MentionScale, "SCALE_MENTIONS")
_require_exhaustive(RESULT_LABELS, DecisionResult, "RESULT_LABELS")


def vote_weight(value: VoteValue) -> int:
    """Signed weight of a ballot value for weighted voting."""
    return VOTE_WEIGHTS[value]


def support_side(value: VoteValue) -> Side:
    """Side a ballot value counts toward in majority head counts."""
    return VOTE_SIDES[value]


def scale_mentions(scale: MentionScale | str) -> tuple[Mention, ...]:
    """Grades of a mention scale, best first.

    Raises:
        ConfigurationError: If the scale is not a known scale.
    """
    try:
        return SCALE_MENTIONS[MentionScale(scale)]
    except ValueError as exc:
        raise ConfigurationError(f"Unknown mention scale: {scale!r}") from exc


def mention_rank(scale: MentionScale, mention: Mention) -> int:
    """Index of a mention on its scale, 0 being the best grade.

    Raises:
        PreconditionViolation: If the mention is not offered by the scale.
    """
    mentions = scale_mentions(scale)
    try:
        return mentions.index(mention)
    except ValueError as exc:
        raise PreconditionViolation(
            f"Mention {mention} is not part of the {scale} scale"
        ) from exc


def can_user_vote(status: DecisionStatus, has_voted: bool) -> bool:
    """Whether a participant may still cast a ballot on a decision."""
    return status == DecisionStatus.OPEN and not has_voted


def result_label(result: DecisionResult | None) -> str:
    """Human-readable label for a decision result; pending when unresolved."""
    if result is None:
        return "Pending"
    return RESULT_LABELS[result]
