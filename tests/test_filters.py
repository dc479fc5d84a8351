import pytest

from conftest import sequence_from
from lottolab.filters import (
    band_counts,
    board_stats,
    filter_consecutive,
    filter_group_spread,
    filter_high_low,
    filter_no_recent_duplicate,
    filter_odd_even,
    filter_sum_rule,
    get_historical_sum_zone,
    max_consecutive,
    run_all_filters,
)


def test_band_counts():
    assert band_counts([1, 5, 12, 33, 44, 45]) == {"1-9": 2, "10-19": 1, "30-39": 1, "40-45": 2}


def test_max_consecutive():
    assert max_consecutive([1, 2, 3, 10, 11, 40]) == 3
    assert max_consecutive([1, 3, 5]) == 1
    assert max_consecutive([]) == 0


def test_sum_zone(history):
    lo, hi = get_historical_sum_zone(history)
    sums = sorted(history.numbers.sum(axis=1))
    assert sums[0] <= lo <= hi <= sums[-1]
    inside = sum(1 for s in sums if lo <= s <= hi)
    assert inside >= 0.7 * len(sums)


def test_sum_zone_needs_draws(history):
    with pytest.raises(ValueError):
        get_historical_sum_zone(history.prefix(0))


def test_individual_checks():
    assert filter_sum_rule([1, 2, 3, 4, 5, 6], (100, 170))["passed"] is False
    assert filter_odd_even([1, 3, 5, 7, 9, 2])["passed"] is False
    assert filter_odd_even([1, 3, 5, 2, 4, 6])["passed"] is True
    assert filter_high_low([1, 2, 3, 4, 30, 40])["passed"] is True
    assert filter_high_low([1, 2, 3, 4, 5, 40])["passed"] is False
    assert filter_group_spread([1, 2, 3, 4, 5, 6])["passed"] is False
    assert filter_consecutive([1, 2, 3, 20, 30, 40])["passed"] is False


def test_recent_duplicate():
    seq = sequence_from([([1, 2, 3, 4, 5, 6], 7), ([10, 20, 30, 40, 41, 42], 7)])
    hit = filter_no_recent_duplicate([42, 41, 40, 30, 20, 10], seq)
    assert hit["passed"] is False and "2" in hit["detail"]
    assert filter_no_recent_duplicate([1, 2, 3, 4, 5, 7], seq)["passed"] is True


def test_run_all_filters(history):
    out = run_all_filters([3, 14, 22, 27, 35, 41], history)
    assert out["total"] == 6
    assert out["confidence"] == f"{out['passed_count']}/6"
    assert out["all_passed"] == (out["passed_count"] == 6)


def test_board_stats():
    stats = board_stats([3, 14, 22, 27, 35, 41])
    assert stats["sum"] == 142
    assert stats["odd_even"] == "4/2"
    assert stats["high_low"] == "3/3"
    assert stats["group_count"] == 5
