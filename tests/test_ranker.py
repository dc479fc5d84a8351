import pytest

from lottolab.backtester import aggregate, PredictionOutcome, run_many
from lottolab.ranker import (
    RankMetric,
    live_prediction,
    partition_by_output_size,
    rank,
    rank_results,
    sort_key,
    top_predictions,
)
from lottolab.strategies.rules import RuleKind as K
from lottolab.strategies.selection import SelectionSpec
from lottolab.strategies.strategy import make_strategy


def fake_result(name, hits, output_size=6):
    steps = [PredictionOutcome(i, (), (), h) for i, h in enumerate(hits)]
    return aggregate(name, steps, len(hits), output_size)


def test_mean_metric_orders_by_mean_hits():
    a = fake_result("a", [1, 1, 1])
    b = fake_result("b", [2, 2, 2])
    assert [r.strategy_name for r in rank_results([a, b])] == ["b", "a"]


def test_hit5_metric_prefers_five_hit_count():
    steady = fake_result("steady", [3, 3, 3, 3])
    lucky = fake_result("lucky", [5, 0, 0, 0])
    assert rank_results([steady, lucky], "mean")[0].strategy_name == "steady"
    assert rank_results([steady, lucky], "hit5")[0].strategy_name == "lucky"


def test_hit3_metric_counts_three_plus_then_mean():
    often = fake_result("often", [3, 3, 0, 0])
    rare_big = fake_result("rare_big", [6, 0, 0, 0])
    tied = fake_result("tied", [3, 4, 0, 0])
    ordered = rank_results([often, rare_big, tied], RankMetric.HIT3)
    assert [r.strategy_name for r in ordered] == ["tied", "often", "rare_big"]
    assert sort_key(often, "hit3") == (-2, -1.5, "often")


def test_hit4_metric_counts_four_plus_then_mean():
    a = fake_result("a", [4, 0, 0])
    b = fake_result("b", [3, 3, 3])
    c = fake_result("c", [5, 1, 0])
    ordered = rank_results([a, b, c], "hit4")
    assert [r.strategy_name for r in ordered] == ["c", "a", "b"]


def test_hit6_metric_breaks_ties_on_hit5_then_mean():
    a = fake_result("a", [6, 0, 0])
    b = fake_result("b", [5, 5, 0])
    c = fake_result("c", [5, 5, 1])
    ordered = rank_results([a, b, c], RankMetric.HIT6)
    assert [r.strategy_name for r in ordered] == ["a", "c", "b"]


def test_equal_scores_order_by_name():
    results = [fake_result(n, [2, 2]) for n in ("zeta", "alpha", "mid")]
    assert [r.strategy_name for r in rank_results(results)] == ["alpha", "mid", "zeta"]
    assert sort_key(results[0]) == (-2.0, "zeta")


def test_unknown_metric_rejected():
    with pytest.raises(ValueError):
        rank_results([fake_result("a", [1])], "median")


def test_partition_keeps_sizes_apart():
    results = [fake_result("w", [3], 10), fake_result("a", [1]), fake_result("s", [2], 7)]
    groups = partition_by_output_size(results)
    assert list(groups) == [6, 7, 10]
    assert [r.strategy_name for r in groups[10]] == ["w"]


def test_live_prediction_targets_next_round(history):
    s = make_strategy("gap", [(K.GAP, (), 1)])
    target, picks = live_prediction(history, s)
    assert target == history.last_round + 1
    assert len(picks) == 6


def test_live_prediction_failure_returns_none(history, caplog):
    s = make_strategy("comp", [(K.COMPLEMENT, (), 1)])
    target, picks = live_prediction(history.prefix(0), s)
    assert target == 1
    assert picks is None
    assert "comp" in caplog.text


def test_rank_attaches_predictions_to_top_n(history):
    strategies = [
        make_strategy("gap", [(K.GAP, (), 1)]),
        make_strategy("hot", [(K.WINDOW_FREQUENCY, (20,), 1)]),
        make_strategy("lcg", [(K.LCG, (13, 31), 1)]),
        make_strategy("wide", [(K.GAP, (), 1)], SelectionSpec.range_diverse(10)),
    ]
    results = run_many(history, strategies, eval_window=20)
    ranked = rank(results, strategies, history, metric="mean", top_n=2)
    assert set(ranked) == {6, 10}
    six = ranked[6]
    assert [row.rank for row in six] == [1, 2, 3]
    assert all(row.prediction is not None for row in six[:2])
    assert six[2].prediction is None
    assert six[0].target_round == history.last_round + 1
    assert len(ranked[10][0].prediction) == 10

    preds = top_predictions(ranked, top_n=2)
    assert len(preds) == 3
    assert {len(p.prediction) for p in preds} == {6, 10}


def test_rank_skips_results_without_strategy(history):
    results = [fake_result("ghost", [1, 2])]
    ranked = rank(results, [], history)
    assert ranked[6][0].strategy is None
    assert ranked[6][0].prediction is None
