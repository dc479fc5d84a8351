"""
Board checks for 6/45 picks

Structural checks (sum zone, odd/even, high/low, band spread, runs of
consecutive numbers, exact repeat of a recent draw) and summary stats.
Used to annotate predictions in reports; they never change a pick.
"""
import numpy as np

from lottolab.config import BANDS, MAX_NUMBER

LOW_MAX = 22


def band_of(n):
    for lo, hi in BANDS:
        if lo <= n <= hi:
            return f"{lo}-{hi}"
    raise ValueError(f"{n} is outside 1..{MAX_NUMBER}")


def band_counts(board):
    counts = {}
    for n in sorted(board):
        band = band_of(n)
        counts[band] = counts.get(band, 0) + 1
    return counts


def max_consecutive(board):
    """Length of the longest run of consecutive numbers."""
    nums = sorted(board)
    longest = current = 1 if nums else 0
    for prev, cur in zip(nums, nums[1:]):
        current = current + 1 if cur == prev + 1 else 1
        longest = max(longest, current)
    return longest


def get_historical_sum_zone(sequence, coverage=0.70):
    """Sum range covering ``coverage`` of historical draws (trimmed evenly on both sides)."""
    sums = np.sort(sequence.numbers.sum(axis=1))
    n = len(sums)
    if n == 0:
        raise ValueError("no draws to compute a sum zone from")
    trim = int(n * (1 - coverage) / 2)
    return int(sums[trim]), int(sums[n - trim - 1])


def filter_sum_rule(board, zone):
    lo, hi = zone
    s = sum(board)
    return {"name": "Sum Rule", "passed": lo <= s <= hi, "detail": f"Sum={s}, zone=[{lo},{hi}]"}


def filter_odd_even(board):
    """6-number boards should split 3/3, 4/2 or 2/4."""
    odd = sum(1 for n in board if n % 2 == 1)
    even = len(board) - odd
    passed = abs(odd - even) <= 2
    return {"name": "Odd/Even Rule", "passed": passed, "detail": f"Odd={odd}, Even={even}"}


def filter_high_low(board):
    """Low = 1-22, High = 23-45."""
    low = sum(1 for n in board if n <= LOW_MAX)
    high = len(board) - low
    passed = abs(low - high) <= 2
    return {"name": "High/Low Rule", "passed": passed, "detail": f"Low={low}, High={high}"}


def filter_group_spread(board):
    groups = band_counts(board)
    return {
        "name": "Group Spread Rule",
        "passed": len(groups) >= 3,
        "detail": f"Groups={len(groups)}: {list(groups)}",
    }


def filter_consecutive(board):
    longest = max_consecutive(board)
    return {
        "name": "Consecutive Rule",
        "passed": longest <= 2,
        "detail": f"Max consecutive={longest}",
    }


def filter_no_recent_duplicate(board, sequence, lookback=50):
    board_set = set(board)
    for draw in sequence.draws[-lookback:]:
        if board_set == set(draw.numbers):
            return {
                "name": "No Recent Duplicate",
                "passed": False,
                "detail": f"Matches round {draw.round}",
            }
    return {"name": "No Recent Duplicate", "passed": True, "detail": "No duplicate found"}


def run_all_filters(board, sequence):
    """
    Run every check on a board.
    Returns: dict with 'passed_count', 'total', 'results' list, 'all_passed' bool.
    """
    results = [
        filter_sum_rule(board, get_historical_sum_zone(sequence)),
        filter_odd_even(board),
        filter_high_low(board),
        filter_group_spread(board),
        filter_consecutive(board),
        filter_no_recent_duplicate(board, sequence),
    ]
    passed = sum(1 for r in results if r["passed"])
    return {
        "passed_count": passed,
        "total": len(results),
        "all_passed": passed == len(results),
        "results": results,
        "confidence": f"{passed}/{len(results)}",
    }


def board_stats(board):
    """Summary stats for a board."""
    odd = sum(1 for n in board if n % 2 == 1)
    low = sum(1 for n in board if n <= LOW_MAX)
    groups = band_counts(board)
    return {
        "numbers": sorted(board),
        "sum": sum(board),
        "odd_count": odd,
        "odd_even": f"{odd}/{len(board) - odd}",
        "high_low": f"{len(board) - low}/{low}",
        "group_spread": groups,
        "group_count": len(groups),
    }
