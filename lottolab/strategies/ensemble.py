"""
Ensemble voting: each sub-strategy makes its own pick, every pick is one
vote, and the final set is selected from

    votes[n] * vote_weight + raw_score[n] * raw_weight

where raw_score is the ensemble strategy's own rule score. Vote counts
below ``vote_threshold`` are dropped before weighting.
"""
import logging

from lottolab.errors import LottoLabError
from lottolab.features import empty_vector
from lottolab.strategies.selection import select

logger = logging.getLogger(__name__)


def tally_votes(sub_strategies, features, target_round, rng=None):
    """Vote vector (length 46) plus the number of sub-strategies that produced a pick."""
    votes = empty_vector()
    voters = 0
    last_error = None
    for sub in sub_strategies:
        try:
            picks = sub.predict(features, target_round, rng=rng)
        except LottoLabError as e:
            logger.warning("Sub-strategy %s failed for round %s: %s", sub.name, target_round, e)
            last_error = e
            continue
        votes[list(picks)] += 1
        voters += 1
    if voters == 0 and last_error is not None:
        raise last_error
    return votes, voters


def combine_votes(votes, raw_scores, threshold=1, vote_weight=1.0, raw_weight=0.0):
    combined = votes.copy()
    combined[combined < threshold] = 0.0
    combined *= vote_weight
    if raw_weight:
        combined += raw_scores * raw_weight
    return combined


def ensemble_select(strategy, features, target_round, rng=None):
    spec = strategy.selection
    votes, _ = tally_votes(spec.sub_strategies, features, target_round, rng=rng)
    raw = strategy.score(features, target_round) if spec.raw_weight else empty_vector()
    combined = combine_votes(votes, raw, spec.vote_threshold, spec.vote_weight, spec.raw_weight)
    return select(combined, spec.final_spec(), rng=rng)
