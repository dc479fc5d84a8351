"""
Rule Library

A fixed vocabulary of scoring rules. Every rule is a pure function of
the feature snapshot, the target round and its bound parameters, and
returns a contribution vector of length 46 indexed by number (slot 0 is
always 0). A strategy's score map is the plain sum of its rules'
contributions, so rules never interact beyond addition.

Rules that look at the previous draw(s) ("reference numbers") raise
InsufficientHistory on an empty prefix.
"""
import re
from dataclasses import dataclass
from enum import Enum

import numpy as np

from lottolab.config import COMPANION_WINDOW, MAX_NUMBER, MIN_NUMBER
from lottolab.errors import InsufficientHistory
from lottolab.features import VECTOR_SIZE, empty_vector, in_range

FIBONACCI = (1, 2, 3, 5, 8, 13, 21, 34)
PRIMES = (2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37, 41, 43)
NUMBER_INDEX = np.arange(VECTOR_SIZE)


class RuleKind(str, Enum):
    GAP = "gap"
    WINDOW_FREQUENCY = "window_frequency"
    MODULUS = "modulus"
    LCG = "lcg"
    LCG_REFERENCE = "lcg_reference"
    COMPLEMENT = "complement"
    OFFSET_DELTA = "offset_delta"
    DIGITAL_ROOT_MEMBERSHIP = "digital_root_membership"
    FREQUENCY_DECAY = "frequency_decay"
    PAIR_FREQUENCY = "pair_frequency"
    SEED_DISTANCE = "seed_distance"
    XOR_MAP = "xor_map"
    FIBONACCI_OFFSET = "fibonacci_offset"
    COMPANION = "companion"
    BONUS_TRACK = "bonus_track"
    PRIME_MEMBERSHIP = "prime_membership"
    COLD_WINDOW = "cold_window"

    @classmethod
    def _missing_(cls, value):
        # accept camelCase names, e.g. "offsetDelta"
        if isinstance(value, str):
            snake = re.sub(r"(?<!^)(?=[A-Z])", "_", value).lower()
            for member in cls:
                if member.value == snake:
                    return member
        return None


@dataclass(frozen=True)
class RuleContext:
    target_round: int
    features: object


@dataclass(frozen=True)
class RuleDef:
    kind: RuleKind
    fn: object
    param_names: tuple
    defaults: tuple
    needs_reference: bool

    def bind(self, params):
        """Map a positional params tuple onto keyword arguments, applying defaults."""
        params = tuple(params)
        required = len(self.param_names) - len(self.defaults)
        if not required <= len(params) <= len(self.param_names):
            raise ValueError(
                f"{self.kind.value} takes {required}-{len(self.param_names)} params "
                f"{self.param_names}, got {params}"
            )
        values = params + self.defaults[len(params) - required:]
        return dict(zip(self.param_names, values))


RULES = {}


def rule(kind, params=(), defaults=(), needs_reference=False):
    """Register a rule implementation under ``kind``."""
    def register(fn):
        RULES[kind] = RuleDef(kind, fn, tuple(params), tuple(defaults), needs_reference)
        return fn
    return register


def digital_root(n):
    n = abs(int(n))
    while n >= 10:
        n = sum(int(d) for d in str(n))
    return n


def circular_distance(a, b):
    d = np.abs(np.asarray(a) - b)
    return np.minimum(d, MAX_NUMBER - d)


def wrap(n):
    """Fold any integer into 1..45."""
    return ((int(n) - 1) % MAX_NUMBER) + 1


def _add(vec, target, amount):
    if in_range(target):
        vec[target] += amount


# ── Gap / frequency ──────────────────────────────────────────────────────

@rule(RuleKind.GAP, params=("min_ratio", "max_ratio"), defaults=(0.8, 2.5))
def gap(features, ctx, weight, min_ratio, max_ratio):
    """gap_ratio * 10 for numbers whose ratio is inside [min_ratio, max_ratio]."""
    r = features.gap_ratio
    vec = np.where((r >= min_ratio) & (r <= max_ratio), r * 10.0, 0.0) * weight
    vec[0] = 0.0
    return vec


@rule(RuleKind.WINDOW_FREQUENCY, params=("window",), defaults=(20,))
def window_frequency(features, ctx, weight, window):
    return features.window_frequency(window) * weight


@rule(RuleKind.COLD_WINDOW, params=("min_gap", "max_gap", "top"), defaults=(8, 15, 10))
def cold_window(features, ctx, weight, min_gap, max_gap, top):
    """Numbers absent for min_gap..max_gap draws, longest gap first, score top - rank."""
    vec = empty_vector()
    if features.length == 0:
        return vec
    gaps = features.current_gap
    cold = [n for n in range(MIN_NUMBER, MAX_NUMBER + 1) if min_gap <= gaps[n] <= max_gap]
    cold.sort(key=lambda n: -gaps[n])
    for rank, n in enumerate(cold):
        vec[n] += (top - rank) * weight
    return vec


@rule(RuleKind.COMPANION, params=("window",), defaults=(COMPANION_WINDOW,), needs_reference=True)
def companion(features, ctx, weight, window):
    vec = features.companion_frequency(window=window) * weight
    vec[list(features.reference_numbers)] = 0.0
    return vec


@rule(RuleKind.PAIR_FREQUENCY, params=("threshold",), needs_reference=True)
def pair_frequency(features, ctx, weight, threshold):
    """weight * (count - threshold + 1) per reference number whose pair count reaches threshold."""
    counts = features.pair_counts[list(features.reference_numbers)]
    contrib = np.where(counts >= threshold, counts - threshold + 1, 0).sum(axis=0)
    vec = contrib.astype(float) * weight
    vec[0] = 0.0
    return vec


@rule(RuleKind.BONUS_TRACK, params=("depth",), defaults=(5,), needs_reference=True)
def bonus_track(features, ctx, weight, depth):
    return features.recent_bonus_weight(depth) * weight


# ── Round arithmetic ─────────────────────────────────────────────────────

@rule(RuleKind.MODULUS, params=("divisor", "offset"), defaults=(0,))
def modulus(features, ctx, weight, divisor, offset):
    """weight where n mod divisor == (target_round + offset) mod divisor."""
    divisor = int(divisor)
    match = (NUMBER_INDEX % divisor) == ((ctx.target_round + offset) % divisor)
    vec = np.where(match, float(weight), 0.0)
    vec[0] = 0.0
    return vec


@rule(RuleKind.LCG, params=("a", "c", "count", "step"), defaults=(6, 7))
def lcg(features, ctx, weight, a, c, count, step):
    """((a * round + c + k * step) mod 45) + 1 for k in [0, count); repeats add up."""
    vec = empty_vector()
    for n in lcg_candidates(ctx.target_round, a, c, count, step):
        vec[n] += weight
    return vec


def lcg_candidates(seed, a, c, count, step):
    return [((a * seed + c + k * step) % MAX_NUMBER) + 1 for k in range(int(count))]


@rule(RuleKind.LCG_REFERENCE, params=("a", "c", "count", "step"), defaults=(1, 0),
      needs_reference=True)
def lcg_reference(features, ctx, weight, a, c, count, step):
    """Same generator seeded from each reference number instead of the round."""
    vec = empty_vector()
    for r in features.reference_numbers:
        for n in lcg_candidates(r, a, c, count, step):
            vec[n] += weight
    return vec


@rule(RuleKind.SEED_DISTANCE, params=("multiplier", "radius"))
def seed_distance(features, ctx, weight, multiplier, radius):
    """(radius + 1 - d) * weight within circular distance ``radius`` of the round seed."""
    seed = ((ctx.target_round * multiplier) % MAX_NUMBER) + 1
    dist = circular_distance(NUMBER_INDEX, seed)
    vec = np.where(dist <= radius, (radius + 1 - dist) * weight, 0.0).astype(float)
    vec[0] = 0.0
    return vec


# ── Previous-draw transforms ─────────────────────────────────────────────

@rule(RuleKind.COMPLEMENT, params=("lag",), defaults=(1,), needs_reference=True)
def complement(features, ctx, weight, lag):
    vec = empty_vector()
    for r in features.recent_numbers(lag):
        _add(vec, MAX_NUMBER + 1 - r, weight)
    return vec


def _offsets(deltas, symmetric):
    if not symmetric:
        return tuple(deltas)
    return tuple(sorted({s * d for d in deltas for s in (-1, 1)}))


@rule(RuleKind.OFFSET_DELTA, params=("deltas", "penalty_deltas", "lag", "symmetric"),
      defaults=((), 1, True), needs_reference=True)
def offset_delta(features, ctx, weight, deltas, penalty_deltas, lag, symmetric):
    """
    +weight at r +/- d for d in deltas, -weight at r +/- d for d in
    penalty_deltas. With ``symmetric=False`` only r + d is used.
    """
    vec = empty_vector()
    bonus = _offsets(deltas, symmetric)
    penalty = _offsets(penalty_deltas, symmetric)
    for r in features.recent_numbers(lag):
        for d in bonus:
            _add(vec, r + d, weight)
        for d in penalty:
            _add(vec, r + d, -weight)
    return vec


@rule(RuleKind.FREQUENCY_DECAY,
      params=("depth", "decay_base", "first_depth", "offset_scale", "penalty_scale"),
      defaults=(1, 1.0, 0.0), needs_reference=True)
def frequency_decay(features, ctx, weight, depth, decay_base, first_depth, offset_scale,
                    penalty_scale):
    """
    Complement and +/-2 offsets of each of the last ``depth`` draws, the
    draw d back weighted by ``decay_base ** (d - 1) * weight``.
    """
    vec = empty_vector()
    for d in range(int(first_depth), min(int(depth), features.length) + 1):
        w = decay_base ** (d - 1) * weight
        for r in features.recent_numbers(d):
            _add(vec, MAX_NUMBER + 1 - r, w)
            for off in (-2, 2):
                _add(vec, r + off, w * offset_scale)
            if penalty_scale:
                for off in (-1, 1):
                    _add(vec, r + off, -w * penalty_scale)
    return vec


@rule(RuleKind.XOR_MAP, params=("xor_value", "lag"), defaults=(1,), needs_reference=True)
def xor_map(features, ctx, weight, xor_value, lag):
    vec = empty_vector()
    for r in features.recent_numbers(lag):
        vec[wrap(r ^ int(xor_value))] += weight
    return vec


@rule(RuleKind.FIBONACCI_OFFSET, params=("count", "lag"), defaults=(1,), needs_reference=True)
def fibonacci_offset(features, ctx, weight, count, lag):
    """Circular +/- offsets by the first ``count`` Fibonacci numbers."""
    vec = empty_vector()
    for r in features.recent_numbers(lag):
        for f in FIBONACCI[:int(count)]:
            vec[wrap(r + f)] += weight
            vec[wrap(r - f)] += weight
    return vec


# ── Static membership ────────────────────────────────────────────────────

@rule(RuleKind.DIGITAL_ROOT_MEMBERSHIP, params=("roots",))
def digital_root_membership(features, ctx, weight, roots):
    roots = set(int(r) for r in roots)
    vec = empty_vector()
    for n in range(MIN_NUMBER, MAX_NUMBER + 1):
        if digital_root(n) in roots:
            vec[n] = weight
    return vec


@rule(RuleKind.PRIME_MEMBERSHIP)
def prime_membership(features, ctx, weight):
    vec = empty_vector()
    vec[list(PRIMES)] = weight
    return vec


# ── Dispatch ─────────────────────────────────────────────────────────────

def get_rule(kind):
    return RULES[RuleKind(kind)]


def evaluate_rule(kind, params, weight, features, target_round):
    """Contribution vector of one bound rule."""
    rd = get_rule(kind)
    kwargs = rd.bind(params)
    if rd.needs_reference and features.length == 0:
        raise InsufficientHistory(f"{rd.kind.value} needs at least one prior draw")
    ctx = RuleContext(target_round=int(target_round), features=features)
    return rd.fn(features, ctx, weight, **kwargs)


def score_delta(number, kind, params, weight, features, target_round):
    """Contribution of one bound rule to a single number."""
    return float(evaluate_rule(kind, params, weight, features, target_round)[number])
