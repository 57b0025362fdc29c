"""Decision resolution.

Computes a decision's final result from its ballots, objections,
mentions, or collected opinions, according to its governance method.
"""

from decido.resolution.advice import finalize_advice
from decido.resolution.consent import (
    all_participants_consented,
    consent_conclusion,
    consent_result,
    tally_objections,
    validate_consent_duration,
)
from decido.resolution.nuanced import majority_mention, mention_profile, rank_proposals
from decido.resolution.resolver import coerce_method, resolve
from decido.resolution.taxonomy import (
    can_user_vote,
    result_label,
    support_side,
    vote_weight,
)

__all__ = [
    "all_participants_consented",
    "can_user_vote",
    "coerce_method",
    "consent_conclusion",
    "consent_result",
    "finalize_advice",
    "majority_mention",
    "mention_profile",
    "rank_proposals",
    "resolve",
    "result_label",
    "support_side",
    "tally_objections",
    "validate_consent_duration",
    "vote_weight",
]
