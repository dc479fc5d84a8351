"""
Backtesting Engine for lotto strategies

Walk-forward replay over a trailing window: for every step the strategy
sees only the draws before the target round, predicts, and is scored
against the actual draw. Never uses future data.

Each step yields either a PredictionOutcome or an EvaluationError. Failed
steps are left out of the hit histogram but still count in the
denominator of mean_hits, so strategies that fail often rank lower.
"""
import logging
import warnings
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field

import numpy as np
from scipy import stats

from lottolab.config import ALL_NUMBERS, DEFAULT_EVAL_WINDOW, NUMBERS_PER_DRAW, THRESHOLDS
from lottolab.features import FeatureCache, compute_features

logger = logging.getLogger(__name__)

MAX_HITS = NUMBERS_PER_DRAW


def count_matches(predicted, actual):
    """Count how many numbers match between a predicted set and an actual draw."""
    return len(set(predicted) & set(actual))


@dataclass(frozen=True)
class PredictionOutcome:
    round: int
    predicted: tuple
    actual: tuple
    hits: int


@dataclass(frozen=True)
class EvaluationError:
    round: int
    error_type: str
    message: str

    def __str__(self):
        return f"round {self.round}: {self.error_type}: {self.message}"


@dataclass(frozen=True)
class BacktestResult:
    strategy_name: str
    mean_hits: float
    hit_counts: dict
    threshold_counts: dict
    output_size: int
    window_size: int
    evaluated_steps: int
    step_hits: tuple = field(default=(), repr=False)
    errors: tuple = field(default=(), repr=False)

    @property
    def failed_steps(self):
        return len(self.errors)

    @property
    def hit3(self):
        return self.threshold_counts[3]

    @property
    def hit4(self):
        return self.threshold_counts[4]

    @property
    def hit5(self):
        return self.threshold_counts[5]

    @property
    def hit6(self):
        return self.threshold_counts[6]

    def histogram(self):
        """Hit-count distribution as ``n0:n1:...:n6``."""
        return ":".join(str(self.hit_counts[h]) for h in range(MAX_HITS + 1))

    def to_dict(self):
        row = {
            "strategy": self.strategy_name,
            "output_size": self.output_size,
            "mean_hits": round(self.mean_hits, 4),
            "window": self.window_size,
            "evaluated": self.evaluated_steps,
            "failed": self.failed_steps,
        }
        for k in THRESHOLDS:
            row[f"hit{k}+"] = self.threshold_counts[k]
        row["distribution"] = self.histogram()
        return row


def aggregate(strategy_name, steps, window_size, output_size):
    """Fold per-step results into a BacktestResult."""
    hit_counts = {h: 0 for h in range(MAX_HITS + 1)}
    threshold_counts = {k: 0 for k in THRESHOLDS}
    step_hits = []
    errors = []

    for step in steps:
        if isinstance(step, EvaluationError):
            errors.append(step)
            continue
        hits = step.hits
        step_hits.append(hits)
        hit_counts[hits] += 1
        for k in THRESHOLDS:
            if hits >= k:
                threshold_counts[k] += 1

    mean_hits = sum(step_hits) / window_size if window_size else 0.0
    return BacktestResult(
        strategy_name=strategy_name,
        mean_hits=mean_hits,
        hit_counts=hit_counts,
        threshold_counts=threshold_counts,
        output_size=output_size,
        window_size=window_size,
        evaluated_steps=len(step_hits),
        step_hits=tuple(step_hits),
        errors=tuple(errors),
    )


def evaluate_step(sequence, i, strategy, cache=None, rng=None):
    """
    Predict draw ``i`` of ``sequence`` from draws [0, i) and score it.
    Any failure is returned as an EvaluationError rather than raised.
    """
    target = sequence[i]
    try:
        features = cache.get(i) if cache is not None else compute_features(sequence.prefix(i))
        predicted = strategy.predict(features, target.round, rng=rng)
    except Exception as e:
        return EvaluationError(target.round, type(e).__name__, str(e))
    return PredictionOutcome(
        round=target.round,
        predicted=tuple(predicted),
        actual=target.numbers,
        hits=count_matches(predicted, target.numbers),
    )


def _window(sequence, eval_window):
    if eval_window <= 0:
        raise ValueError(f"evaluation window must be positive, got {eval_window}")
    if eval_window > len(sequence):
        warnings.warn(
            f"Evaluation window {eval_window} exceeds history of {len(sequence)} draws; "
            f"using {len(sequence)}"
        )
        return len(sequence)
    return eval_window


def run_backtest(sequence, strategy, eval_window=DEFAULT_EVAL_WINDOW, cache=None, seed=None,
                 rng=None):
    """
    Run walk-forward backtesting of one strategy over the last
    ``eval_window`` draws.

    Args:
        sequence: Full DrawSequence
        strategy: Strategy to evaluate
        eval_window: Number of trailing draws to replay
        cache: Optional FeatureCache for ``sequence`` shared between strategies
        seed: Seed for the random source of sum-constrained selection
        rng: Explicit numpy Generator (overrides ``seed``)

    Returns:
        BacktestResult
    """
    window = _window(sequence, eval_window)
    if cache is None or cache.sequence is not sequence:
        cache = FeatureCache(sequence)
    rng = rng if rng is not None else np.random.default_rng(seed)

    steps = []
    for i in range(len(sequence) - window, len(sequence)):
        step = evaluate_step(sequence, i, strategy, cache=cache, rng=rng)
        if isinstance(step, EvaluationError):
            logger.debug("%s skipped %s", strategy.name, step)
        steps.append(step)

    result = aggregate(strategy.name, steps, window, strategy.output_size)
    if result.failed_steps:
        logger.info(
            "%s: %d of %d steps failed (%s)",
            strategy.name, result.failed_steps, window, result.errors[0].error_type,
        )
    return result


def _strategy_seed(seed, index):
    return None if seed is None else seed + index


def _run_chunk(sequence, indexed_strategies, eval_window, seed):
    cache = FeatureCache(sequence)
    return [
        run_backtest(sequence, s, eval_window, cache=cache, seed=_strategy_seed(seed, idx))
        for idx, s in indexed_strategies
    ]


def run_many(sequence, strategies, eval_window=DEFAULT_EVAL_WINDOW, workers=1, seed=None,
             verbose=False):
    """
    Backtest every strategy. Results come back in input order, and a
    given seed reproduces them regardless of ``workers``.
    """
    strategies = list(strategies)
    indexed = list(enumerate(strategies))
    window = _window(sequence, eval_window)

    if verbose:
        print(f"\n{'='*60}")
        print("BACKTESTING ENGINE")
        print(f"{'='*60}")
        print(f"Total draws: {len(sequence)}")
        print(f"Test draws: {window} (rounds {sequence[len(sequence) - window].round}"
              f"-{sequence.last_round})")
        print(f"Strategies: {len(strategies)}")
        print(f"{'='*60}\n")

    if workers <= 1 or len(strategies) < 2:
        cache = FeatureCache(sequence)
        results = []
        for idx, s in indexed:
            results.append(
                run_backtest(sequence, s, window, cache=cache, seed=_strategy_seed(seed, idx))
            )
            if verbose and (idx + 1) % 100 == 0:
                print(f"  Backtested {idx + 1}/{len(strategies)} strategies...")
        logger.debug("Feature cache: %d hits, %d misses", cache.hits, cache.misses)
        return results

    n_chunks = min(len(indexed), workers * 4)
    chunks = [indexed[k::n_chunks] for k in range(n_chunks)]
    by_index = {}
    with ProcessPoolExecutor(max_workers=workers) as pool:
        futures = [
            (chunk, pool.submit(_run_chunk, sequence, chunk, window, seed)) for chunk in chunks
        ]
        for done, (chunk, future) in enumerate(futures, 1):
            for (idx, _), result in zip(chunk, future.result()):
                by_index[idx] = result
            if verbose:
                print(f"  Finished chunk {done}/{len(chunks)}")
    return [by_index[idx] for idx in range(len(strategies))]


# ── Random baseline ──────────────────────────────────────────────────────

def random_baseline(sequence, eval_window=DEFAULT_EVAL_WINDOW, output_size=NUMBERS_PER_DRAW,
                    seed=None):
    """Uniformly random picks over the same window, scored the same way."""
    window = _window(sequence, eval_window)
    rng = np.random.default_rng(seed)
    steps = []
    for i in range(len(sequence) - window, len(sequence)):
        target = sequence[i]
        picks = tuple(sorted(int(n) for n in rng.choice(ALL_NUMBERS, output_size, replace=False)))
        steps.append(PredictionOutcome(
            target.round, picks, target.numbers, count_matches(picks, target.numbers)
        ))
    return aggregate(f"random_{output_size}", steps, window, output_size)


def compare_to_baseline(result, baseline):
    """
    Welch t-test of per-step hits, strategy vs baseline. Returns None
    when either side has fewer than two evaluated steps.
    """
    a = np.asarray(result.step_hits, dtype=float)
    b = np.asarray(baseline.step_hits, dtype=float)
    if len(a) < 2 or len(b) < 2:
        return None

    t_stat, p_value = stats.ttest_ind(a, b, equal_var=False)
    diff = a.mean() - b.mean()
    se = np.sqrt(a.var(ddof=1) / len(a) + b.var(ddof=1) / len(b))
    return {
        "strategy": result.strategy_name,
        "baseline": baseline.strategy_name,
        "t_statistic": round(float(t_stat), 4),
        "p_value": round(float(p_value), 6),
        "significant_at_005": bool(p_value < 0.05),
        "significant_at_010": bool(p_value < 0.10),
        "mean_diff": round(float(diff), 4),
        "ci_95": (round(float(diff - 1.96 * se), 4), round(float(diff + 1.96 * se), 4)),
    }
