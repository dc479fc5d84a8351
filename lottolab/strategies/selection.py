"""
Selection Algorithms

Turn a score vector (length 46, indexed by number) into a set of
distinct numbers:

- range_diverse: best number of each of the 5 bands, then global best
- top_n: global best, bands ignored
- sum_constrained: best-scoring subset of the top candidates whose sum
  falls in [sum_min, sum_max]; falls back to range_diverse
- ensemble_vote: see strategies.ensemble

Ties always go to the lower number. Every policy returns exactly
``output_size`` numbers sorted ascending, even when most scores are 0.
"""
import itertools
import logging
import math
import time
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache

import numpy as np

from lottolab.config import (
    BANDS,
    EXHAUSTIVE_COMBINATION_LIMIT,
    MAX_NUMBER,
    NUMBERS_PER_DRAW,
    SUM_ATTEMPTS,
    SUM_POOL_SIZE,
    SUM_TIME_BUDGET,
)
from lottolab.errors import SelectionUnsatisfiable
from lottolab.features import VECTOR_SIZE

logger = logging.getLogger(__name__)

NUMBERS = np.arange(1, MAX_NUMBER + 1)


class SelectionPolicy(str, Enum):
    RANGE_DIVERSE = "range_diverse"
    TOP_N = "top_n"
    SUM_CONSTRAINED = "sum_constrained"
    ENSEMBLE_VOTE = "ensemble_vote"


@dataclass(frozen=True)
class SelectionSpec:
    policy: SelectionPolicy = SelectionPolicy.RANGE_DIVERSE
    output_size: int = NUMBERS_PER_DRAW
    sum_min: int = None
    sum_max: int = None
    pool_size: int = SUM_POOL_SIZE
    attempts: int = SUM_ATTEMPTS
    time_budget: float = SUM_TIME_BUDGET
    sub_strategies: tuple = ()
    vote_threshold: int = 1
    vote_weight: float = 1.0
    raw_weight: float = 0.0
    final_policy: SelectionPolicy = SelectionPolicy.RANGE_DIVERSE

    def __post_init__(self):
        object.__setattr__(self, "policy", SelectionPolicy(self.policy))
        object.__setattr__(self, "final_policy", SelectionPolicy(self.final_policy))
        object.__setattr__(self, "sub_strategies", tuple(self.sub_strategies))
        if not 1 <= self.output_size <= MAX_NUMBER:
            raise ValueError(f"output_size must be in 1..{MAX_NUMBER}, got {self.output_size}")
        if SelectionPolicy.SUM_CONSTRAINED in (self.policy, self.final_policy):
            if self.sum_min is None or self.sum_max is None or self.sum_min > self.sum_max:
                raise ValueError(f"bad sum range [{self.sum_min}, {self.sum_max}]")
            if self.pool_size < self.output_size:
                raise ValueError("pool_size must be at least output_size")
        if self.policy is SelectionPolicy.ENSEMBLE_VOTE:
            if not self.sub_strategies:
                raise ValueError("ensemble_vote needs at least one sub-strategy")
            if self.final_policy is SelectionPolicy.ENSEMBLE_VOTE:
                raise ValueError("an ensemble cannot vote into another ensemble")

    @classmethod
    def range_diverse(cls, output_size=NUMBERS_PER_DRAW):
        return cls(SelectionPolicy.RANGE_DIVERSE, output_size)

    @classmethod
    def top_n(cls, n):
        return cls(SelectionPolicy.TOP_N, n)

    @classmethod
    def sum_constrained(cls, sum_min, sum_max, output_size=NUMBERS_PER_DRAW, **kwargs):
        return cls(SelectionPolicy.SUM_CONSTRAINED, output_size, sum_min=sum_min,
                   sum_max=sum_max, **kwargs)

    @classmethod
    def ensemble_vote(cls, sub_strategies, threshold=1, output_size=NUMBERS_PER_DRAW, **kwargs):
        return cls(SelectionPolicy.ENSEMBLE_VOTE, output_size,
                   sub_strategies=tuple(sub_strategies), vote_threshold=threshold, **kwargs)

    def final_spec(self):
        """The non-ensemble spec an ensemble applies to its combined scores."""
        return SelectionSpec(
            self.final_policy, self.output_size, sum_min=self.sum_min, sum_max=self.sum_max,
            pool_size=self.pool_size, attempts=self.attempts, time_budget=self.time_budget,
        )

    def label(self):
        if self.policy is SelectionPolicy.SUM_CONSTRAINED:
            return f"sum[{self.sum_min},{self.sum_max}]x{self.output_size}"
        if self.policy is SelectionPolicy.ENSEMBLE_VOTE:
            return f"vote{len(self.sub_strategies)}>={self.vote_threshold}x{self.output_size}"
        return f"{self.policy.value}x{self.output_size}"


def as_score_vector(scores):
    """Accept a 46-vector or a {number: score} mapping; missing/NaN scores rank last."""
    if isinstance(scores, dict):
        vec = np.full(VECTOR_SIZE, -np.inf)
        for n, s in scores.items():
            vec[int(n)] = s
    else:
        vec = np.array(scores, dtype=float)
        if vec.shape != (VECTOR_SIZE,):
            raise ValueError(f"score vector must have length {VECTOR_SIZE}, got {vec.shape}")
    vec = np.nan_to_num(vec, nan=-np.inf, posinf=np.finfo(float).max)
    vec[0] = -np.inf
    return vec


def rank_numbers(scores):
    """All numbers, best score first, lower number first on ties."""
    vec = as_score_vector(scores)
    order = np.lexsort((NUMBERS, -vec[1:]))
    return [int(n) for n in NUMBERS[order]]


def top_n(scores, n):
    return tuple(sorted(rank_numbers(scores)[:n]))


def band_winners(scores, bands=BANDS):
    vec = as_score_vector(scores)
    return [max(range(lo, hi + 1), key=lambda k: (vec[k], -k)) for lo, hi in bands]


def range_diverse_top_pick(scores, output_size=NUMBERS_PER_DRAW, bands=BANDS):
    """
    One winner per band, then fill from the global ranking. With fewer
    slots than bands, the strongest band winners are kept.
    """
    vec = as_score_vector(scores)
    chosen = band_winners(vec, bands)
    if output_size < len(chosen):
        chosen = sorted(chosen, key=lambda k: (-vec[k], k))[:output_size]
    for n in rank_numbers(vec):
        if len(chosen) >= output_size:
            break
        if n not in chosen:
            chosen.append(n)
    return tuple(sorted(chosen))


@lru_cache(maxsize=32)
def _combination_table(pool_len, size):
    return np.array(list(itertools.combinations(range(pool_len), size)), dtype=np.int64)


def _exhaustive_search(pool, vec, size, sum_min, sum_max):
    pool_arr = np.array(pool, dtype=np.int64)
    combos = pool_arr[_combination_table(len(pool), size)]
    sums = combos.sum(axis=1)
    valid = (sums >= sum_min) & (sums <= sum_max)
    if not valid.any():
        return None
    totals = np.where(valid, vec[combos].sum(axis=1), -np.inf)
    if np.all(np.isneginf(totals)):
        # every valid combo contains an undefined score; take the first valid one
        return tuple(int(n) for n in combos[np.argmax(valid)])
    return tuple(int(n) for n in combos[int(np.argmax(totals))])


def _sampled_search(pool, vec, size, sum_min, sum_max, attempts, rng, time_budget):
    rng = rng if rng is not None else np.random.default_rng()
    deadline = time.monotonic() + time_budget if time_budget else None
    best, best_score = None, None
    for attempt in range(int(attempts)):
        if deadline is not None and attempt % 64 == 0 and time.monotonic() > deadline:
            logger.info("Sum search hit its %.2fs budget after %d attempts", time_budget, attempt)
            break
        combo = tuple(int(n) for n in rng.choice(pool, size=size, replace=False))
        total = sum(combo)
        if sum_min <= total <= sum_max:
            score = float(sum(vec[n] for n in combo))
            if best_score is None or score > best_score:
                best, best_score = combo, score
    return best


def search_sum_range(pool, scores, size, sum_min, sum_max, attempts=SUM_ATTEMPTS, rng=None,
                     time_budget=SUM_TIME_BUDGET,
                     exhaustive_limit=EXHAUSTIVE_COMBINATION_LIMIT):
    """
    Best-scoring ``size``-subset of ``pool`` with sum in [sum_min, sum_max].
    Small pools are enumerated exhaustively (deterministic); larger ones
    are sampled ``attempts`` times within ``time_budget`` seconds.
    """
    vec = as_score_vector(scores)
    if len(pool) < size:
        raise SelectionUnsatisfiable(f"pool of {len(pool)} is smaller than {size}")
    if math.comb(len(pool), size) <= exhaustive_limit:
        best = _exhaustive_search(pool, vec, size, sum_min, sum_max)
    else:
        best = _sampled_search(pool, vec, size, sum_min, sum_max, attempts, rng, time_budget)
    if best is None:
        raise SelectionUnsatisfiable(
            f"no {size}-subset of the top {len(pool)} sums to [{sum_min}, {sum_max}]"
        )
    return best


def sum_constrained(scores, sum_min, sum_max, output_size=NUMBERS_PER_DRAW,
                    pool_size=SUM_POOL_SIZE, attempts=SUM_ATTEMPTS, rng=None,
                    time_budget=SUM_TIME_BUDGET):
    vec = as_score_vector(scores)
    pool = rank_numbers(vec)[:pool_size]
    try:
        combo = search_sum_range(pool, vec, output_size, sum_min, sum_max,
                                 attempts=attempts, rng=rng, time_budget=time_budget)
    except SelectionUnsatisfiable as e:
        logger.info("%s; falling back to range-diverse pick", e)
        return range_diverse_top_pick(vec, output_size)
    return tuple(sorted(combo))


def select(scores, spec, rng=None):
    """Apply a non-ensemble SelectionSpec to a score vector."""
    if spec.policy is SelectionPolicy.RANGE_DIVERSE:
        return range_diverse_top_pick(scores, spec.output_size)
    if spec.policy is SelectionPolicy.TOP_N:
        return top_n(scores, spec.output_size)
    if spec.policy is SelectionPolicy.SUM_CONSTRAINED:
        return sum_constrained(scores, spec.sum_min, spec.sum_max, spec.output_size,
                               pool_size=spec.pool_size, attempts=spec.attempts, rng=rng,
                               time_budget=spec.time_budget)
    raise ValueError(f"{spec.policy.value} is resolved by the strategy, not by select()")
