"""
Strategy ranking

Orders BacktestResults by a metric family, keeps different output sizes
apart (hit rates of 6-number and 10-number picks are not comparable)
and produces the live prediction for the round after the last known
one for the top strategies of each size.
"""
import logging
from dataclasses import dataclass
from enum import Enum

import numpy as np

from lottolab.config import DEFAULT_TOP_N

logger = logging.getLogger(__name__)


class RankMetric(str, Enum):
    MEAN = "mean"
    HIT3 = "hit3"
    HIT4 = "hit4"
    HIT5 = "hit5"
    HIT6 = "hit6"


def sort_key(result, metric=RankMetric.MEAN):
    metric = RankMetric(metric)
    if metric is RankMetric.MEAN:
        key = (-result.mean_hits,)
    elif metric is RankMetric.HIT6:
        key = (-result.hit6, -result.hit5, -result.mean_hits)
    else:
        # hit3 / hit4 / hit5: count of steps with hits >= k, then mean
        k = int(metric.value[-1])
        key = (-result.threshold_counts[k], -result.mean_hits)
    # name last so equal scores always come out in the same order
    return key + (result.strategy_name,)


def rank_results(results, metric=RankMetric.MEAN):
    return sorted(results, key=lambda r: sort_key(r, metric))


def partition_by_output_size(results):
    """{output_size: [results]} with sizes ascending, input order kept within a size."""
    groups = {}
    for r in results:
        groups.setdefault(r.output_size, []).append(r)
    return {size: groups[size] for size in sorted(groups)}


@dataclass(frozen=True)
class RankedStrategy:
    rank: int
    result: object
    strategy: object
    target_round: int = None
    prediction: tuple = None


def live_prediction(sequence, strategy, rng=None):
    """Predict the round after ``sequence.last_round`` from the entire sequence."""
    target_round = (sequence.last_round or 0) + 1
    try:
        return target_round, tuple(strategy.predict(sequence, target_round, rng=rng))
    except Exception as e:
        logger.warning("Live prediction failed for %s: %s", strategy.name, e)
        return target_round, None


def rank(results, strategies, sequence, metric=RankMetric.MEAN, top_n=DEFAULT_TOP_N, seed=None):
    """
    Rank within each output size and attach live predictions to the top
    ``top_n`` of every size.

    Returns:
        {output_size: [RankedStrategy, ...]} (every result, ranked; only
        the first ``top_n`` carry a prediction)
    """
    by_name = {s.name: s for s in strategies}
    rng = np.random.default_rng(seed)
    ranked = {}
    for size, group in partition_by_output_size(results).items():
        rows = []
        for pos, result in enumerate(rank_results(group, metric), 1):
            strategy = by_name.get(result.strategy_name)
            target_round, prediction = None, None
            if pos <= top_n and strategy is not None:
                target_round, prediction = live_prediction(sequence, strategy, rng=rng)
            rows.append(RankedStrategy(pos, result, strategy, target_round, prediction))
        ranked[size] = rows
    return ranked


def top_predictions(ranked, top_n=DEFAULT_TOP_N):
    """Flatten the predicted rows of a ``rank()`` mapping, size by size."""
    return [
        row for rows in ranked.values() for row in rows[:top_n] if row.prediction is not None
    ]
