"""Majority judgment tallying for nuanced votes.

Each proposal is graded independently on an ordinal mention scale. A
proposal's standing is its majority mention (the median grade); ties
between proposals are broken by repeatedly removing one median grade
from each tied profile and comparing the medians that remain.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from decido.errors import PreconditionViolation
from decido.resolution.taxonomy import mention_rank, scale_mentions
from decido.schemas.decision import (
    Mention,
    MentionScale,
    NuancedMention,
    Proposal,
    RankedProposal,
)

logger = logging.getLogger(__name__)


def mention_profile(
    mentions: Iterable[Mention], scale: MentionScale
) -> dict[Mention, int]:
    """Count how many times each grade of the scale was given.

    Every grade of the scale appears in the result, best first, with a
    zero count when nobody gave it.

    Raises:
        PreconditionViolation: If a mention is not part of the scale.
    """
    profile = {mention: 0 for mention in scale_mentions(scale)}
    for mention in mentions:
        if mention not in profile:
            raise PreconditionViolation(
                f"Mention {mention} is not part of the {scale} scale"
            )
        profile[mention] += 1
    return profile


def majority_mention(mentions: Sequence[Mention], scale: MentionScale) -> Mention:
    """Median grade of a proposal.

    On an even number of grades the less favourable of the two central
    grades is taken. With no grades at all, the worst grade of the scale.
    """
    grades = scale_mentions(scale)
    if not mentions:
        return grades[-1]
    ranks = sorted(mention_rank(scale, m) for m in mentions)
    return grades[ranks[len(ranks) // 2]]


def _median_sequence(ranks: list[int], length: int, worst: int) -> tuple[int, ...]:
    """Successive medians obtained by removing the median grade each time.

    Padded with ``worst`` up to ``length`` so that a proposal with fewer
    grades never outranks a proposal with an otherwise equal profile.
    """
    remaining = sorted(ranks)
    sequence: list[int] = []
    while remaining:
        sequence.append(remaining.pop(len(remaining) // 2))
    sequence.extend([worst] * (length - len(sequence)))
    return tuple(sequence)


def rank_proposals(
    proposals: Sequence[Proposal],
    mentions: Iterable[NuancedMention],
    scale: MentionScale,
) -> list[RankedProposal]:
    """Rank proposals by majority judgment.

    Args:
        proposals: Candidate proposals of the decision.
        mentions: Every grade cast, each referencing a proposal by id.
        scale: The decision's mention scale.

    Returns:
        One RankedProposal per proposal, winner first, ranks starting at 1.
        Proposals with identical grade profiles are ordered by their
        ``order`` key, then by id.

    Raises:
        PreconditionViolation: If a mention targets an unknown proposal or
            uses a grade outside the scale.
    """
    by_proposal: dict[str, list[Mention]] = {p.id: [] for p in proposals}
    for item in mentions:
        if item.proposal_id not in by_proposal:
            raise PreconditionViolation(
                f"Mention references unknown proposal {item.proposal_id!r}"
            )
        by_proposal[item.proposal_id].append(item.mention)

    worst = len(scale_mentions(scale))
    longest = max((len(m) for m in by_proposal.values()), default=0)

    keyed: list[tuple[tuple[int, ...], Proposal, list[Mention]]] = []
    for proposal in proposals:
        grades = by_proposal[proposal.id]
        ranks = [mention_rank(scale, m) for m in grades]
        keyed.append((_median_sequence(ranks, longest, worst), proposal, grades))

    keyed.sort(key=lambda entry: (entry[0], entry[1].order, entry[1].id))

    ranking = [
        RankedProposal(
            proposal_id=proposal.id,
            title=proposal.title,
            majority_mention=majority_mention(grades, scale),
            profile=mention_profile(grades, scale),
            mention_count=len(grades),
            rank=position,
        )
        for position, (_, proposal, grades) in enumerate(keyed, start=1)
    ]
    if ranking:
        logger.debug(
            "Nuanced ranking: %s wins with %s",
            ranking[0].proposal_id, ranking[0].majority_mention,
        )
    return ranking
