import numpy as np
import pytest

from conftest import sequence_from
from lottolab.draws import DrawSequence
from lottolab.errors import InsufficientHistory
from lottolab.features import compute_features
from lottolab.strategies.rules import (
    RuleKind,
    digital_root,
    evaluate_rule,
    lcg_candidates,
    score_delta,
    wrap,
)
from lottolab.strategies.selection import rank_numbers
from lottolab.strategies.strategy import RuleSpec, make_strategy

K = RuleKind

EMPTY = compute_features(DrawSequence())


def features_after(*rows):
    """Snapshot whose most recent draw is the last of ``rows`` (lists of 6 numbers)."""
    bonuses = [n for n in range(45, 0, -1)]
    pairs = []
    for nums in rows:
        bonus = next(b for b in bonuses if b not in nums)
        pairs.append((nums, bonus))
    return compute_features(sequence_from(pairs))


def nonzero(vec):
    return {int(n): float(vec[n]) for n in np.flatnonzero(vec)}


def test_camel_case_kind_names():
    assert RuleKind("offsetDelta") is K.OFFSET_DELTA
    assert RuleKind("frequencyDecay") is K.FREQUENCY_DECAY
    assert RuleKind("gap") is K.GAP
    with pytest.raises(ValueError):
        RuleKind("nope")


def test_param_count_checked_at_construction():
    with pytest.raises(ValueError):
        RuleSpec(K.LCG, (13,))
    with pytest.raises(ValueError):
        RuleSpec(K.GAP, (0.8, 2.5, 9))


def test_gap_is_gated(alternating):
    f = compute_features(alternating)
    vec = evaluate_rule(K.GAP, (0.8, 2.5), 1.0, f, 11)
    assert vec[1] == 10.0          # ratio 1.0
    assert vec[7] == 0.0           # ratio 0.5, below the gate
    assert vec[40] == pytest.approx(12.5)
    assert vec[0] == 0.0


def test_lcg_round_1208_is_fixed():
    assert lcg_candidates(1208, 13, 31, 6, 7) == [31, 38, 45, 7, 14, 21]
    first = evaluate_rule(K.LCG, (13, 31, 6, 7), 1.0, EMPTY, 1208)
    second = evaluate_rule(K.LCG, (13, 31, 6, 7), 1.0, EMPTY, 1208)
    assert np.array_equal(first, second)
    assert nonzero(first) == {7: 1.0, 14: 1.0, 21: 1.0, 31: 1.0, 38: 1.0, 45: 1.0}


def test_lcg_repeats_accumulate():
    # step 45 generates the same number every time
    vec = evaluate_rule(K.LCG, (1, 0, 3, 45), 2.0, EMPTY, 10)
    assert nonzero(vec) == {11: 6.0}


def test_lcg_reference_seeds_from_previous_draw():
    f = features_after([1, 2, 3, 4, 5, 6])
    vec = evaluate_rule(K.LCG_REFERENCE, (2, 0), 1.0, f, 99)
    assert nonzero(vec) == {3: 1.0, 5: 1.0, 7: 1.0, 9: 1.0, 11: 1.0, 13: 1.0}


def test_modulus_exact_match():
    vec = evaluate_rule(K.MODULUS, (7,), 3.0, EMPTY, 1208)   # 1208 % 7 == 4
    assert nonzero(vec) == {4: 3.0, 11: 3.0, 18: 3.0, 25: 3.0, 32: 3.0, 39: 3.0}
    shifted = evaluate_rule(K.MODULUS, (7, 1), 1.0, EMPTY, 1208)
    assert shifted[5] == 1.0 and shifted[4] == 0.0


def test_complement():
    f = features_after([1, 2, 3, 4, 5, 6])
    vec = evaluate_rule(K.COMPLEMENT, (), 2.0, f, 2)
    assert nonzero(vec) == {40: 2.0, 41: 2.0, 42: 2.0, 43: 2.0, 44: 2.0, 45: 2.0}


def test_offset_bonus_and_penalty_around_reference():
    f = features_after([10, 20, 25, 30, 35, 40])
    base = make_strategy("base", [(K.GAP, (), 1)])
    with_offsets = make_strategy(
        "offsets", [(K.GAP, (), 1), (K.OFFSET_DELTA, ((3,), (1,)), 2)]
    )
    before = base.score(f, 2)
    after = with_offsets.score(f, 2)
    assert after[13] > before[13]
    assert after[9] < before[9]
    assert after[7] - before[7] == 2.0


def test_offset_delta_one_sided():
    f = features_after([10, 20, 25, 30, 35, 40])
    vec = evaluate_rule(K.OFFSET_DELTA, ((3,), (), 1, False), 1.0, f, 2)
    assert vec[13] == 1.0 and vec[7] == 0.0


def test_offset_out_of_range_targets_are_dropped():
    f = features_after([1, 2, 3, 43, 44, 45])
    vec = evaluate_rule(K.OFFSET_DELTA, ((3,),), 1.0, f, 2)
    assert vec[0] == 0.0
    assert vec.sum() == 6.0   # 4,5,6 and 40,41,42


def test_digital_root():
    assert digital_root(9) == 9
    assert digital_root(38) == 2
    assert digital_root(45) == 9
    vec = evaluate_rule(K.DIGITAL_ROOT_MEMBERSHIP, ((9,),), 1.0, EMPTY, 1)
    assert sorted(nonzero(vec)) == [9, 18, 27, 36, 45]


def test_seed_distance_wraps_around():
    # seed = (44 * 1 % 45) + 1 = 45
    vec = evaluate_rule(K.SEED_DISTANCE, (1, 2), 1.0, EMPTY, 44)
    assert nonzero(vec) == {45: 3.0, 44: 2.0, 1: 2.0, 43: 1.0, 2: 1.0}


def test_xor_map_wraps_zero_to_45():
    assert wrap(0) == 45
    assert wrap(46) == 1
    f = features_after([5, 10, 20, 30, 40, 44])
    vec = evaluate_rule(K.XOR_MAP, (5,), 1.0, f, 2)
    # 5^5=0 -> 45, 10^5=15, 20^5=17, 30^5=27, 40^5=45, 44^5=41
    assert nonzero(vec) == {45: 2.0, 15: 1.0, 17: 1.0, 27: 1.0, 41: 1.0}


def test_fibonacci_offset_is_circular():
    f = features_after([1, 2, 3, 4, 5, 44])
    vec = evaluate_rule(K.FIBONACCI_OFFSET, (2,), 1.0, f, 2)
    for n in (45, 1, 43, 42):
        assert vec[n] >= 1.0


def test_pair_frequency(alternating):
    f = compute_features(alternating)
    vec = evaluate_rule(K.PAIR_FREQUENCY, (3,), 1.0, f, 11)
    # 8 co-occurred 5 times with each of 7, 9, 10, 11, 12: 5 * (5 - 3 + 1)
    assert vec[8] == 15.0
    assert vec[1] == 0.0
    assert evaluate_rule(K.PAIR_FREQUENCY, (6,), 1.0, f, 11)[8] == 0.0


def test_prime_membership():
    vec = evaluate_rule(K.PRIME_MEMBERSHIP, (), 2.0, EMPTY, 1)
    assert vec[2] == 2.0 and vec[43] == 2.0
    assert vec[1] == 0.0 and vec[45] == 0.0
    assert vec.sum() == 28.0


def test_cold_window_orders_by_gap(alternating):
    f = compute_features(alternating)
    # 40..45 never seen in 10 draws -> gap 10; 13..39 likewise
    vec = evaluate_rule(K.COLD_WINDOW, (8, 15, 3), 1.0, f, 11)
    assert vec[13] == 3.0
    assert vec[14] == 2.0
    assert vec[1] == 0.0


def test_frequency_decay_uses_decaying_weights():
    f = features_after([1, 2, 3, 4, 5, 6], [20, 21, 22, 23, 24, 25])
    vec = evaluate_rule(K.FREQUENCY_DECAY, (2, 0.5, 1, 0.0), 4.0, f, 3)
    assert vec[46 - 20] == 4.0     # complement of the latest draw
    assert vec[46 - 1] == 2.0      # one draw further back, halved
    with_offsets = evaluate_rule(K.FREQUENCY_DECAY, (2, 0.5), 4.0, f, 3)
    assert with_offsets[18] == 4.0  # 20 - 2


def test_frequency_decay_ranks_constant_number_first(sevens):
    f = compute_features(sevens)
    strategy = make_strategy("decay", [
        (K.WINDOW_FREQUENCY, (20,), 1),
        (K.FREQUENCY_DECAY, (3, 0.7), 1),
    ])
    scores = strategy.score(f, sevens.last_round + 1)
    assert rank_numbers(scores)[0] == 7
    assert 7 in strategy.predict(f, sevens.last_round + 1)


def test_bonus_track_and_companion_need_history():
    for kind, params in [(K.BONUS_TRACK, ()), (K.COMPANION, ()), (K.COMPLEMENT, ()),
                         (K.OFFSET_DELTA, ((3,),)), (K.FREQUENCY_DECAY, (3, 0.7))]:
        with pytest.raises(InsufficientHistory):
            evaluate_rule(kind, params, 1.0, EMPTY, 1)


def test_companion_zeroes_reference_numbers(alternating):
    f = compute_features(alternating)
    vec = evaluate_rule(K.COMPANION, (), 1.0, f, 11)
    assert vec[8] == 0.0
    assert vec[1] == 0.0


def test_rules_are_additive(history):
    f = compute_features(history)
    rules = [(K.GAP, (), 3), (K.LCG, (13, 31), 4), (K.OFFSET_DELTA, ((3,), (1,)), 2)]
    combined = make_strategy("all", rules).score(f, 121)
    parts = sum(make_strategy(str(i), [r]).score(f, 121) for i, r in enumerate(rules))
    assert np.allclose(combined, parts)


def test_score_delta_matches_vector(history):
    f = compute_features(history)
    vec = evaluate_rule(K.SEED_DISTANCE, (13, 5), 2.0, f, 121)
    assert score_delta(10, K.SEED_DISTANCE, (13, 5), 2.0, f, 121) == vec[10]
