"""
Feature Engine

Per-number signals derived from a prefix of the draw history:

- gap ratio: current gap since last occurrence / historical average gap
  (average falls back to DEFAULT_AVG_GAP with fewer than 3 gaps)
- window frequency: occurrences in the last ``w`` draws
- companion frequency: co-occurrence with the reference (latest) draw's
  numbers inside a recent window
- pair counts: unordered pair co-occurrence over the whole prefix
- recent bonus weight: decaying weight around the last few bonus numbers

All vectors are numpy arrays of length 46 indexed by number; slot 0 is
unused and always 0. A snapshot is a pure function of its prefix and is
never modified after it is built.
"""
from dataclasses import dataclass, field
from functools import cached_property

import numpy as np
import pandas as pd

from lottolab.config import (
    ALL_NUMBERS,
    BONUS_DEPTH,
    COMPANION_WINDOW,
    DEFAULT_AVG_GAP,
    MAX_NUMBER,
    MIN_GAPS_FOR_AVERAGE,
    MIN_NUMBER,
)

VECTOR_SIZE = MAX_NUMBER + 1


def _frozen(arr):
    arr.flags.writeable = False
    return arr


def empty_vector():
    return np.zeros(VECTOR_SIZE, dtype=float)


def in_range(n):
    return MIN_NUMBER <= n <= MAX_NUMBER


@dataclass(frozen=True, eq=False)
class FeatureSnapshot:
    length: int
    last_round: object
    current_gap: np.ndarray
    avg_gap: np.ndarray
    gap_ratio: np.ndarray
    occurrences: np.ndarray
    membership: np.ndarray = field(repr=False)
    numbers: np.ndarray = field(repr=False)
    bonuses: np.ndarray = field(repr=False)
    _memo: dict = field(default_factory=dict, repr=False)

    # ── Reference draws ──────────────────────────────────────────────────

    @property
    def reference_numbers(self):
        """Numbers of the most recent draw in the prefix (empty if none)."""
        return self.recent_numbers(1)

    def recent_numbers(self, lag=1):
        """Numbers of the draw ``lag`` steps back (1 = most recent), or ()."""
        if lag < 1 or lag > self.length:
            return ()
        return tuple(int(n) for n in self.numbers[-lag])

    # ── Windowed signals ─────────────────────────────────────────────────

    def window_frequency(self, window):
        """Occurrences in the last ``window`` draws; uses all draws if the window is longer."""
        window = int(window)
        key = ("window", window)
        if key not in self._memo:
            if window <= 0 or self.length == 0:
                vec = empty_vector()
            else:
                vec = self.membership[-window:].sum(axis=0).astype(float)
            self._memo[key] = _frozen(vec)
        return self._memo[key]

    def companion_frequency(self, reference=None, window=COMPANION_WINDOW):
        """
        For each number, how many of the last ``window`` draws contained it
        together with at least one reference number.
        """
        ref = tuple(self.reference_numbers if reference is None else reference)
        key = ("companion", ref, int(window))
        if key not in self._memo:
            vec = empty_vector()
            if ref and self.length and window > 0:
                recent = self.membership[-int(window):]
                mask = recent[:, list(ref)].any(axis=1)
                vec = recent[mask].sum(axis=0).astype(float)
            self._memo[key] = _frozen(vec)
        return self._memo[key]

    @cached_property
    def pair_counts(self):
        """(46, 46) symmetric co-occurrence counts over the whole prefix; diagonal is 0."""
        m = self.membership.astype(np.int64)
        counts = m.T @ m
        np.fill_diagonal(counts, 0)
        return _frozen(counts)

    def recent_bonus_weight(self, depth=BONUS_DEPTH):
        """
        For d = 1..depth draws back with bonus b: ``depth + 1 - d`` on b +/- 3
        and half of that on 46 - b.
        """
        key = ("bonus", int(depth))
        if key not in self._memo:
            vec = empty_vector()
            for d in range(1, min(int(depth), self.length) + 1):
                b = int(self.bonuses[-d])
                w = depth + 1 - d
                for t in (b - 3, b + 3):
                    if in_range(t):
                        vec[t] += w
                comp = MAX_NUMBER + 1 - b
                if in_range(comp):
                    vec[comp] += w * 0.5
            self._memo[key] = _frozen(vec)
        return self._memo[key]

    def as_frame(self, window=20):
        """Tabular view for inspection and reporting."""
        return pd.DataFrame({
            "number": ALL_NUMBERS,
            "occurrences": self.occurrences[1:].astype(int),
            "current_gap": self.current_gap[1:],
            "avg_gap": self.avg_gap[1:],
            "gap_ratio": self.gap_ratio[1:],
            f"freq_{window}": self.window_frequency(window)[1:].astype(int),
        })


def compute_features(prefix):
    """Build the FeatureSnapshot for a DrawSequence prefix."""
    length = len(prefix)
    membership = prefix.membership

    current_gap = empty_vector()
    avg_gap = np.full(VECTOR_SIZE, DEFAULT_AVG_GAP)
    gap_ratio = np.ones(VECTOR_SIZE)
    occurrences = empty_vector()

    if length:
        for n in ALL_NUMBERS:
            seen = np.flatnonzero(membership[:, n])
            occurrences[n] = len(seen)
            if len(seen) == 0:
                current_gap[n] = length
            else:
                current_gap[n] = length - seen[-1]
                gaps = np.diff(seen)
                if len(gaps) >= MIN_GAPS_FOR_AVERAGE:
                    avg_gap[n] = gaps.mean()
            gap_ratio[n] = current_gap[n] / avg_gap[n]

    for vec in (current_gap, avg_gap, gap_ratio):
        vec[0] = 0.0

    return FeatureSnapshot(
        length=length,
        last_round=prefix.last_round,
        current_gap=_frozen(current_gap),
        avg_gap=_frozen(avg_gap),
        gap_ratio=_frozen(gap_ratio),
        occurrences=_frozen(occurrences),
        membership=membership,
        numbers=prefix.numbers,
        bonuses=prefix.bonuses,
    )


class FeatureCache:
    """
    Memoizes snapshots for the prefixes of one sequence, keyed by prefix
    length. Many strategies evaluated over the same window share the same
    gap and frequency computations.
    """

    def __init__(self, sequence):
        self.sequence = sequence
        self._snapshots = {}
        self.hits = 0
        self.misses = 0

    def get(self, stop):
        snap = self._snapshots.get(stop)
        if snap is None:
            self.misses += 1
            snap = compute_features(self.sequence.prefix(stop))
            self._snapshots[stop] = snap
        else:
            self.hits += 1
        return snap

    def __len__(self):
        return len(self._snapshots)
