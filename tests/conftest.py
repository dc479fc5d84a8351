import numpy as np
import pytest

from lottolab.draws import Draw, DrawSequence


def random_sequence(n, seed=0, start_round=1):
    """n draws of 6 random numbers + a distinct bonus, consecutive rounds."""
    rng = np.random.default_rng(seed)
    draws = []
    for i in range(n):
        picks = [int(x) for x in rng.choice(np.arange(1, 46), 7, replace=False)]
        draws.append(Draw(round=start_round + i, numbers=picks[:6], bonus=picks[6]))
    return DrawSequence(draws)


def constant_number_sequence(n, fixed=7):
    """``fixed`` in every draw; the other 44 numbers rotate five at a time."""
    others = [k for k in range(1, 46) if k != fixed]
    draws = []
    for i in range(n):
        rest = [others[(5 * i + j) % 44] for j in range(5)]
        draws.append(Draw(round=i + 1, numbers=[fixed] + rest, bonus=others[(5 * i + 5) % 44]))
    return DrawSequence(draws)


def alternating_sequence(n):
    """Draws alternate between 1-6 and 7-12; bonuses cycle through 40-44."""
    draws = []
    for i in range(n):
        nums = range(1, 7) if i % 2 == 0 else range(7, 13)
        draws.append(Draw(round=i + 1, numbers=list(nums), bonus=40 + i % 5))
    return DrawSequence(draws)


def sequence_from(rows, start_round=1):
    """Build a sequence from (numbers, bonus) pairs."""
    return DrawSequence(
        Draw(round=start_round + i, numbers=nums, bonus=bonus) for i, (nums, bonus) in enumerate(rows)
    )


@pytest.fixture
def history():
    return random_sequence(120, seed=1)


@pytest.fixture
def sevens():
    return constant_number_sequence(60)


@pytest.fixture
def alternating():
    return alternating_sequence(10)
