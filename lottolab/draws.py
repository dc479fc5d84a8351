"""
Historical Draw Store

Draw records are immutable and validated once, at construction. A
DrawSequence keeps them in ascending round order and exposes read-only
numpy views (numbers, bonus, a 1..45 membership matrix) so feature
extraction never has to iterate over rows.

Causality: anything evaluated "as of" a target round must only see
``sequence.before(target_round)`` (or ``sequence.prefix(i)``).
"""
import logging
import os
import warnings
from dataclasses import dataclass
from datetime import date, datetime

import numpy as np
import pandas as pd

from lottolab.config import CSV_PATH, MAX_NUMBER, MIN_NUMBER, NUMBERS_PER_DRAW
from lottolab.errors import DataUnavailable, InvalidDrawError, InvalidSequenceError

NUM_COLS = [f"num{i}" for i in range(1, NUMBERS_PER_DRAW + 1)]
CSV_COLUMNS = ["round", "date"] + NUM_COLS + ["bonus"]

logger = logging.getLogger(__name__)


def _to_date(value):
    """Coerce str / datetime / Timestamp to a date; missing values become None."""
    if value is None or pd.isna(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return pd.Timestamp(value).date()


def _frozen(arr):
    arr.flags.writeable = False
    return arr


@dataclass(frozen=True)
class Draw:
    """One historical result: round, 6 winning numbers, bonus number, date."""

    round: int
    numbers: tuple
    bonus: int
    date: object = None

    def __post_init__(self):
        try:
            nums = tuple(sorted(int(n) for n in self.numbers))
            round_no = int(self.round)
            bonus = int(self.bonus)
        except (TypeError, ValueError) as e:
            raise InvalidDrawError(f"malformed draw {self.round!r}: {e}") from e

        object.__setattr__(self, "numbers", nums)
        object.__setattr__(self, "round", round_no)
        object.__setattr__(self, "bonus", bonus)
        object.__setattr__(self, "date", _to_date(self.date))

        if len(nums) != NUMBERS_PER_DRAW or len(set(nums)) != NUMBERS_PER_DRAW:
            raise InvalidDrawError(
                f"round {round_no}: need {NUMBERS_PER_DRAW} distinct numbers, got {nums}"
            )
        if any(n < MIN_NUMBER or n > MAX_NUMBER for n in nums):
            raise InvalidDrawError(f"round {round_no}: numbers out of range {nums}")
        if not MIN_NUMBER <= bonus <= MAX_NUMBER:
            raise InvalidDrawError(f"round {round_no}: bonus {bonus} out of range")
        if bonus in nums:
            raise InvalidDrawError(f"round {round_no}: bonus {bonus} is a winning number")

    def as_row(self):
        row = {"round": self.round, "date": self.date}
        for col, n in zip(NUM_COLS, self.numbers):
            row[col] = n
        row["bonus"] = self.bonus
        return row


class DrawSequence:
    """
    Immutable, round-ordered store of draws.

    Rounds must be strictly increasing (gaps are allowed, duplicates are
    not). Prefixes share the parent's arrays; nothing is ever mutated
    after construction, so a sequence can be read from any number of
    workers.
    """

    def __init__(self, draws=()):
        draws = tuple(draws)
        for d in draws:
            if not isinstance(d, Draw):
                raise TypeError(f"expected Draw, got {type(d).__name__}")

        rounds = [d.round for d in draws]
        for prev, cur in zip(rounds, rounds[1:]):
            if cur == prev:
                raise InvalidSequenceError(f"duplicate round {cur}")
            if cur < prev:
                raise InvalidSequenceError(f"round {cur} follows round {prev}")

        n = len(draws)
        numbers = np.array([d.numbers for d in draws], dtype=np.int64).reshape(n, NUMBERS_PER_DRAW)
        membership = np.zeros((n, MAX_NUMBER + 1), dtype=bool)
        if n:
            membership[np.arange(n)[:, None], numbers] = True

        self._draws = draws
        self._rounds = _frozen(np.array(rounds, dtype=np.int64))
        self._numbers = _frozen(numbers)
        self._bonus = _frozen(np.array([d.bonus for d in draws], dtype=np.int64))
        self._membership = _frozen(membership)

    @classmethod
    def _prefix_of(cls, parent, stop):
        seq = cls.__new__(cls)
        seq._draws = parent._draws[:stop]
        seq._rounds = parent._rounds[:stop]
        seq._numbers = parent._numbers[:stop]
        seq._bonus = parent._bonus[:stop]
        seq._membership = parent._membership[:stop]
        return seq

    # ── Container protocol ───────────────────────────────────────────────

    def __len__(self):
        return len(self._draws)

    def __iter__(self):
        return iter(self._draws)

    def __getitem__(self, idx):
        if isinstance(idx, slice):
            start, stop, step = idx.indices(len(self))
            if step != 1:
                raise ValueError(
                    f"DrawSequence slices must keep round order (step 1), got step {step}"
                )
            if start == 0:
                return self.prefix(stop)
            return DrawSequence(self._draws[idx])
        return self._draws[idx]

    def __repr__(self):
        if not self._draws:
            return "DrawSequence([])"
        return f"DrawSequence({len(self)} draws, rounds {self.first_round}-{self.last_round})"

    # ── Array views ──────────────────────────────────────────────────────

    @property
    def draws(self):
        return self._draws

    @property
    def rounds(self):
        return self._rounds

    @property
    def numbers(self):
        """(n, 6) int array, each row sorted ascending."""
        return self._numbers

    @property
    def bonuses(self):
        return self._bonus

    @property
    def membership(self):
        """(n, 46) bool array; column k is True where number k was drawn. Column 0 is unused."""
        return self._membership

    @property
    def first_round(self):
        return int(self._rounds[0]) if len(self) else None

    @property
    def last_round(self):
        return int(self._rounds[-1]) if len(self) else None

    # ── Causal access ────────────────────────────────────────────────────

    def prefix(self, stop):
        """Draws [0, stop). Shares storage with this sequence."""
        stop = max(0, min(int(stop), len(self)))
        return DrawSequence._prefix_of(self, stop)

    def before(self, round_no):
        """All draws with round strictly less than ``round_no``."""
        stop = int(np.searchsorted(self._rounds, round_no, side="left"))
        return self.prefix(stop)

    def index_of(self, round_no):
        idx = int(np.searchsorted(self._rounds, round_no, side="left"))
        if idx < len(self) and self._rounds[idx] == round_no:
            return idx
        raise DataUnavailable(round_no, "not in sequence")

    def get(self, round_no):
        """Draw for ``round_no`` or None."""
        try:
            return self._draws[self.index_of(round_no)]
        except DataUnavailable:
            return None

    def nearest(self, round_no):
        """
        Draw with the round closest to ``round_no``; ties go to the earlier
        round. Used as the stand-in when a round is unavailable.
        """
        if not len(self):
            raise DataUnavailable(round_no, "sequence is empty")
        idx = int(np.searchsorted(self._rounds, round_no, side="left"))
        candidates = [i for i in (idx - 1, idx) if 0 <= i < len(self)]
        best = min(candidates, key=lambda i: (abs(int(self._rounds[i]) - round_no), i))
        return self._draws[best]

    def missing_rounds(self):
        """Rounds absent between the first and last stored round."""
        if len(self) < 2:
            return []
        present = set(self._rounds.tolist())
        return [r for r in range(self.first_round, self.last_round + 1) if r not in present]

    # ── Append-only growth ───────────────────────────────────────────────

    def append(self, draw):
        """Return a new sequence with ``draw`` appended."""
        return DrawSequence(self._draws + (draw,))

    def extend(self, draws):
        """Return a new sequence with ``draws`` (any order) appended."""
        extra = tuple(sorted(draws, key=lambda d: d.round))
        return DrawSequence(self._draws + extra)

    # ── pandas interop ───────────────────────────────────────────────────

    def to_frame(self):
        if not self._draws:
            return pd.DataFrame(columns=CSV_COLUMNS)
        df = pd.DataFrame([d.as_row() for d in self._draws], columns=CSV_COLUMNS)
        df["date"] = pd.to_datetime(df["date"])
        return df

    @classmethod
    def from_frame(cls, df):
        """
        Build a sequence from a DataFrame with columns round, date,
        num1..num6, bonus. Rows are sorted by round; exact duplicate rows
        are dropped with a warning, conflicting duplicates are rejected.
        """
        missing = [c for c in ["round"] + NUM_COLS + ["bonus"] if c not in df.columns]
        if missing:
            raise InvalidSequenceError(f"missing columns: {missing}")

        df = df.copy()
        if "date" not in df.columns:
            df["date"] = None
        df = df.sort_values("round", kind="mergesort").reset_index(drop=True)

        key_cols = ["round"] + NUM_COLS + ["bonus"]
        dupes = df.duplicated(subset=key_cols, keep="first")
        if dupes.any():
            warnings.warn(f"Dropping {int(dupes.sum())} duplicate draw rows")
            df = df[~dupes].reset_index(drop=True)

        draws = [
            Draw(
                round=row["round"],
                numbers=[row[c] for c in NUM_COLS],
                bonus=row["bonus"],
                date=row["date"],
            )
            for _, row in df.iterrows()
        ]
        return cls(draws)


def load_data(path=None, fetch_missing=True):
    """
    Load the draw history CSV. If the file does not exist yet, collect it
    from the results API first (when ``fetch_missing``).
    """
    path = path or CSV_PATH
    if not os.path.exists(path):
        if not fetch_missing:
            raise FileNotFoundError(path)
        from lottolab.fetcher import collect_all_data
        logger.info("No dataset at %s; collecting from the results API", path)
        sequence = collect_all_data()
        save_data(sequence, path)
        return sequence

    df = pd.read_csv(path)
    sequence = DrawSequence.from_frame(df)
    gaps = sequence.missing_rounds()
    if gaps:
        warnings.warn(
            f"{len(gaps)} rounds missing between {sequence.first_round} and {sequence.last_round}"
        )
    logger.info("Loaded %d draws from %s", len(sequence), path)
    return sequence


def save_data(sequence, path=None):
    path = path or CSV_PATH
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    df = sequence.to_frame()
    if len(df):
        df["date"] = df["date"].dt.strftime("%Y-%m-%d")
    df.to_csv(path, index=False)
    logger.info("Saved %d draws to %s", len(sequence), path)
    return path
