"""Decision resolution rules.

Computes the final result of a decision from its ballots according to
the decision's governance method. Resolution is pure: the caller loads a
frozen snapshot of the ballots, calls resolve(), then persists the
result and logs the closure itself.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from fractions import Fraction

from decido.errors import ConfigurationError, PreconditionViolation
from decido.resolution.advice import check_opinions_complete
from decido.resolution.consent import consent_result
from decido.resolution.nuanced import rank_proposals
from decido.resolution.taxonomy import Side, support_side, vote_weight
from decido.schemas.decision import (
    Ballot,
    DecisionMethod,
    DecisionResult,
    ProposalTally,
    Resolution,
    ResolutionContext,
    VoteValue,
)

logger = logging.getLogger(__name__)

SUPERMAJORITY_THRESHOLD = Fraction(2, 3)

# Methods fed through the context instead of a flat ballot list
_MENTION_METHODS = {DecisionMethod.NUANCED_VOTE}
_OPINION_METHODS = {DecisionMethod.ADVICE_SOLICITATION}
_OBJECTION_METHODS = {DecisionMethod.CONSENT}
_PROPOSAL_METHODS = {DecisionMethod.MAJORITY, DecisionMethod.NUANCED_VOTE}


def _count_sides(ballots: list[Ballot]) -> tuple[int, int]:
    support = sum(1 for b in ballots if support_side(b.value) == Side.SUPPORT)
    oppose = sum(1 for b in ballots if support_side(b.value) == Side.OPPOSE)
    return support, oppose


def _withdrawn(method: DecisionMethod) -> Resolution:
    return Resolution(method=method, result=DecisionResult.WITHDRAWN)


# ── Per-method rules ─────────────────────────────────────────────


def _resolve_consensus(ballots: list[Ballot], context: ResolutionContext) -> Resolution:
    if not ballots:
        return _withdrawn(DecisionMethod.CONSENSUS)
    unanimous = all(b.value == VoteValue.STRONG_SUPPORT for b in ballots)
    return Resolution(
        method=DecisionMethod.CONSENSUS,
        result=DecisionResult.APPROVED if unanimous else DecisionResult.REJECTED,
    )


def _resolve_consent(ballots: list[Ballot], context: ResolutionContext) -> Resolution:
    if context.objections is not None:
        if ballots:
            raise PreconditionViolation(
                "Consent decision given both ballots and objections"
            )
        result, tally = consent_result(
            context.objections, context.total_participants, context.amendment_action
        )
        if not any(o.active for o in context.objections):
            # Nobody answered: no quorum, whatever the creator did
            result = DecisionResult.WITHDRAWN
        return Resolution(method=DecisionMethod.CONSENT, result=result, consent_tally=tally)

    if not ballots:
        return _withdrawn(DecisionMethod.CONSENT)
    values = {b.value for b in ballots}
    if VoteValue.BLOCK in values:
        result = DecisionResult.BLOCKED
    elif VoteValue.STRONG_OPPOSE in values:
        result = DecisionResult.REJECTED
    else:
        result = DecisionResult.APPROVED
    return Resolution(method=DecisionMethod.CONSENT, result=result)


def _tally_proposals(ballots: list[Ballot], context: ResolutionContext) -> ProposalTally:
    counts = {p.id: 0 for p in context.proposals or []}
    for ballot in ballots:
        if ballot.proposal_id not in counts:
            raise PreconditionViolation(
                f"Ballot references unknown proposal {ballot.proposal_id!r}"
            )
        counts[ballot.proposal_id] += 1

    max_count = max(counts.values(), default=0)
    leaders = [pid for pid, count in counts.items() if count == max_count]
    if len(leaders) == 1:
        return ProposalTally(counts=counts, winner=leaders[0])
    return ProposalTally(counts=counts, is_tie=True, tied_proposals=sorted(leaders))


def _resolve_majority(ballots: list[Ballot], context: ResolutionContext) -> Resolution:
    if not ballots:
        return _withdrawn(DecisionMethod.MAJORITY)

    if context.proposals is not None:
        tally = _tally_proposals(ballots, context)
        return Resolution(
            method=DecisionMethod.MAJORITY,
            result=DecisionResult.REJECTED if tally.is_tie else DecisionResult.APPROVED,
            proposal_tally=tally,
        )

    support, oppose = _count_sides(ballots)
    return Resolution(
        method=DecisionMethod.MAJORITY,
        result=DecisionResult.APPROVED if support > oppose else DecisionResult.REJECTED,
    )


def _resolve_supermajority(
    ballots: list[Ballot], context: ResolutionContext
) -> Resolution:
    if not ballots:
        return _withdrawn(DecisionMethod.SUPERMAJORITY)
    support, _ = _count_sides(ballots)
    reached = Fraction(support, len(ballots)) >= SUPERMAJORITY_THRESHOLD
    return Resolution(
        method=DecisionMethod.SUPERMAJORITY,
        result=DecisionResult.APPROVED if reached else DecisionResult.REJECTED,
    )


def _resolve_weighted(ballots: list[Ballot], context: ResolutionContext) -> Resolution:
    if not ballots:
        return _withdrawn(DecisionMethod.WEIGHTED_VOTE)
    score = sum(vote_weight(b.value) * b.weight for b in ballots)
    # Zero is no net support: rejected, not a tie
    return Resolution(
        method=DecisionMethod.WEIGHTED_VOTE,
        result=DecisionResult.APPROVED if score > 0 else DecisionResult.REJECTED,
        weighted_score=score,
    )


def _resolve_advisory(ballots: list[Ballot], context: ResolutionContext) -> Resolution:
    return Resolution(method=DecisionMethod.ADVISORY, result=DecisionResult.APPROVED)


def _resolve_nuanced(ballots: list[Ballot], context: ResolutionContext) -> Resolution:
    mentions = context.mentions or []
    proposals = context.proposals or []
    if not proposals or not mentions:
        return _withdrawn(DecisionMethod.NUANCED_VOTE)
    if context.scale is None:
        raise ConfigurationError("Nuanced vote has no mention scale")

    ranking = rank_proposals(proposals, mentions, context.scale)
    return Resolution(
        method=DecisionMethod.NUANCED_VOTE,
        result=DecisionResult.APPROVED,
        ranking=ranking,
    )


def _resolve_advice(ballots: list[Ballot], context: ResolutionContext) -> Resolution:
    if context.expected_opinions is None or context.received_opinions is None:
        raise PreconditionViolation(
            "Advice solicitation is closed by the creator's final decision, "
            "not by ballots"
        )
    check_opinions_complete(context.expected_opinions, context.received_opinions)
    return Resolution(
        method=DecisionMethod.ADVICE_SOLICITATION, result=DecisionResult.APPROVED
    )


_Rule = Callable[[list[Ballot], ResolutionContext], Resolution]

RULES: dict[DecisionMethod, _Rule] = {
    DecisionMethod.CONSENSUS: _resolve_consensus,
    DecisionMethod.CONSENT: _resolve_consent,
    DecisionMethod.MAJORITY: _resolve_majority,
    DecisionMethod.SUPERMAJORITY: _resolve_supermajority,
    DecisionMethod.WEIGHTED_VOTE: _resolve_weighted,
    DecisionMethod.ADVISORY: _resolve_advisory,
    DecisionMethod.NUANCED_VOTE: _resolve_nuanced,
    DecisionMethod.ADVICE_SOLICITATION: _resolve_advice,
}

_unruled = [m for m in DecisionMethod if m not in RULES]
if _unruled:
    raise RuntimeError(f"No resolution rule for {', '.join(_unruled)}")


# ── Entry point ──────────────────────────────────────────────────


def coerce_method(method: DecisionMethod | str) -> DecisionMethod:
    """Parse a stored method value.

    Raises:
        ConfigurationError: If the value is not a known method.
    """
    try:
        return DecisionMethod(method)
    except ValueError as exc:
        raise ConfigurationError(f"Unknown decision method: {method!r}") from exc


def _check_inputs(
    method: DecisionMethod, ballots: list[Ballot], context: ResolutionContext
) -> None:
    if method in _MENTION_METHODS or method in _OPINION_METHODS:
        if ballots:
            raise PreconditionViolation(f"{method} decisions do not take ballots")
    elif context.mentions:
        raise PreconditionViolation(f"{method} decisions do not take mentions")
    if context.objections is not None and method not in _OBJECTION_METHODS:
        raise PreconditionViolation(f"{method} decisions do not take objections")
    if context.proposals is not None and method not in _PROPOSAL_METHODS:
        raise PreconditionViolation(f"{method} decisions do not take proposals")

    seen: set[str] = set()
    for ballot in ballots:
        if not ballot.voter_id:
            continue
        if ballot.voter_id in seen:
            raise PreconditionViolation(
                f"Voter {ballot.voter_id!r} cast more than one ballot"
            )
        seen.add(ballot.voter_id)


def resolve(
    method: DecisionMethod | str,
    ballots: Iterable[Ballot] = (),
    context: ResolutionContext | None = None,
) -> Resolution:
    """Compute the final result of a decision.

    Args:
        method: The decision's governance method (enum or stored string).
        ballots: Finalized snapshot of the ballots cast.
        context: Objections, proposals, mentions, or opinion counts for
            methods that are not resolved from a flat ballot list.

    Returns:
        Resolution with the DecisionResult and the method-specific detail.
        WITHDRAWN when nothing was cast, except ADVISORY which is always
        APPROVED.

    Raises:
        ConfigurationError: If the method (or the nuanced scale) is unknown.
        PreconditionViolation: If the input does not match the method.
    """
    resolved_method = coerce_method(method)
    ballot_list = list(ballots)
    ctx = context or ResolutionContext()
    _check_inputs(resolved_method, ballot_list, ctx)

    resolution = RULES[resolved_method](ballot_list, ctx)
    logger.info(
        "Resolved %s decision from %d ballot(s): %s",
        resolved_method, len(ballot_list), resolution.result,
    )
    return resolution
