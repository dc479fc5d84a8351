"""
Parameter Sweep

Strategies are generated from declarative grids: every point of the
Cartesian product of a grid's value lists becomes one Strategy. The
families below are the preset catalogue; ``default_strategies()`` is the
whole catalogue and ``quick_strategies()`` a small representative subset
for fast runs.

Most families share the same base score: 3 x gated gap ratio + hot
frequency over the last 20 draws.
"""
import itertools

from lottolab.strategies.rules import RuleKind
from lottolab.strategies.selection import SelectionSpec
from lottolab.strategies.strategy import RuleSpec, make_strategy

K = RuleKind


def expand_grid(grid):
    """Yield one dict per point of the Cartesian product of ``grid``'s value lists."""
    keys = list(grid)
    for values in itertools.product(*(grid[k] for k in keys)):
        yield dict(zip(keys, values))


def sweep(name_template, grid, build):
    """
    One Strategy per grid point. ``build(**point)`` returns ``(rules,
    selection)``; the name is ``name_template.format(**point)``.
    """
    strategies = []
    for point in expand_grid(grid):
        rules, selection = build(**point)
        strategies.append(make_strategy(name_template.format(**point), rules, selection))
    return strategies


# ── Rule building blocks ─────────────────────────────────────────────────

def base_rules(gap_weight=3, hot_weight=1, hot_window=20):
    rules = [RuleSpec(K.GAP, (), gap_weight)]
    if hot_weight:
        rules.append(RuleSpec(K.WINDOW_FREQUENCY, (hot_window,), hot_weight))
    return rules


def lcg_rule(weight, a=13, c=31):
    return RuleSpec(K.LCG, (a, c, 6, 7), weight)


def offset_rules(weight, offset=3, penalty=2):
    rules = [RuleSpec(K.OFFSET_DELTA, ((offset,),), weight)]
    if penalty:
        rules.append(RuleSpec(K.OFFSET_DELTA, ((), (1,)), penalty))
    return rules


def decay_rule(depth, decay, weight=5, offset_scale=0.5):
    """Depth decay starting two draws back, as used by the v6 family."""
    return RuleSpec(K.FREQUENCY_DECAY, (depth, decay, 2, offset_scale), weight)


def v6_rules(lcg_w, off_w, depth, decay, penalty=2):
    return (
        base_rules()
        + [lcg_rule(lcg_w)]
        + offset_rules(off_w, penalty=penalty)
        + [decay_rule(depth, decay)]
    )


def lcg_grid_rules(a, c):
    """Round LCG at weight 5 plus offsets and a complement-only depth decay."""
    return (
        base_rules() + [lcg_rule(5, a, c)] + offset_rules(4)
        + [RuleSpec(K.FREQUENCY_DECAY, (4, 0.7, 2, 0.0), 5)]
    )


def core_rules(lcg_w=4, off_w=4, penalty=2):
    """Base + round LCG + offsets, without depth decay."""
    return base_rules() + [lcg_rule(lcg_w)] + offset_rules(off_w, penalty=penalty)


# ── Families ─────────────────────────────────────────────────────────────

def v6_family():
    return sweep(
        "v6_l{lcg_w}_o{off_w}_d{depth}_{decay}_p{penalty}",
        {
            "lcg_w": [3, 4, 5, 6],
            "off_w": [3, 4, 5, 6],
            "depth": [3, 4, 5],
            "decay": [0.6, 0.7, 0.8, 0.9],
            "penalty": [1, 2, 3],
        },
        lambda lcg_w, off_w, depth, decay, penalty: (
            v6_rules(lcg_w, off_w, depth, decay, penalty),
            SelectionSpec.range_diverse(),
        ),
    )


def v6_seven_family():
    grid = {
        "lcg_w": [3, 4, 5, 6],
        "off_w": [3, 4, 5, 6],
        "depth": [3, 4, 5],
        "decay": [0.6, 0.7, 0.8],
    }
    ranged = sweep(
        "v6x7_l{lcg_w}_o{off_w}_d{depth}_{decay}", grid,
        lambda lcg_w, off_w, depth, decay: (
            v6_rules(lcg_w, off_w, depth, decay), SelectionSpec.range_diverse(7),
        ),
    )
    top = sweep(
        "top7_l{lcg_w}_o{off_w}_d{depth}_{decay}", grid,
        lambda lcg_w, off_w, depth, decay: (
            v6_rules(lcg_w, off_w, depth, decay), SelectionSpec.top_n(7),
        ),
    )
    return ranged + top


def lcg_family():
    return sweep(
        "lcg_{a}_{c}",
        {"a": [11, 13, 17, 19], "c": [23, 31, 37, 41]},
        lambda a, c: (lcg_grid_rules(a, c), SelectionSpec.range_diverse()),
    )


def lcg_reference_family():
    return sweep(
        "lcgref_{a}_{c}",
        {"a": [3, 7, 11], "c": [0, 13]},
        lambda a, c: (
            base_rules() + [RuleSpec(K.LCG_REFERENCE, (a, c), 3)],
            SelectionSpec.range_diverse(),
        ),
    )


def modulus_family():
    return sweep(
        "mod{divisor}",
        {"divisor": [5, 7, 9, 11, 13]},
        lambda divisor: (
            core_rules() + [RuleSpec(K.MODULUS, (divisor,), 3)],
            SelectionSpec.range_diverse(),
        ),
    )


def tracking_family():
    """Bonus-number tracking and the cold-number hunter."""
    return [
        make_strategy(
            "bonus_track",
            core_rules() + [RuleSpec(K.BONUS_TRACK, (5,), 1)],
        ),
        make_strategy(
            "cold_hunter",
            core_rules(penalty=0) + [RuleSpec(K.COLD_WINDOW, (8, 15, 10), 1)],
        ),
    ]


def xor_family():
    return sweep(
        "xor{xv}",
        {"xv": [3, 5, 7, 11, 13, 17, 21, 31, 42]},
        lambda xv: (
            base_rules() + [RuleSpec(K.XOR_MAP, (xv,), 5)], SelectionSpec.range_diverse(),
        ),
    )


def fibonacci_family():
    return sweep(
        "fib{count}_w{weight}",
        {"count": [2, 3, 4, 5], "weight": [2, 3, 4, 5]},
        lambda count, weight: (
            base_rules() + [RuleSpec(K.FIBONACCI_OFFSET, (count,), weight)],
            SelectionSpec.range_diverse(),
        ),
    )


def seed_family():
    return sweep(
        "seed{multiplier}_r{radius}",
        {"multiplier": [3, 7, 11, 13, 17, 23, 29, 37, 41], "radius": [3, 5, 7]},
        lambda multiplier, radius: (
            base_rules() + [RuleSpec(K.SEED_DISTANCE, (multiplier, radius), 2)],
            SelectionSpec.range_diverse(),
        ),
    )


def membership_family():
    primes = sweep(
        "prime_w{weight}",
        {"weight": [2, 3, 4, 5]},
        lambda weight: (
            base_rules() + [RuleSpec(K.PRIME_MEMBERSHIP, (), weight)],
            SelectionSpec.range_diverse(),
        ),
    )
    roots = sweep(
        "droot{roots}_w{weight}",
        {"roots": ["789", "123", "456"], "weight": [2, 3]},
        lambda roots, weight: (
            base_rules()
            + [RuleSpec(K.DIGITAL_ROOT_MEMBERSHIP, (tuple(int(r) for r in roots),), weight)],
            SelectionSpec.range_diverse(),
        ),
    )
    return primes + roots


def combo_family():
    """Complement + offset + round modulus combinations."""
    return sweep(
        "cmb_c{comp_w}_o{off_w}_m{divisor}",
        {"comp_w": [2, 3, 4], "off_w": [3, 4, 5], "divisor": [7, 9]},
        lambda comp_w, off_w, divisor: (
            base_rules() + [RuleSpec(K.COMPLEMENT, (), comp_w)] + offset_rules(off_w)
            + [RuleSpec(K.MODULUS, (divisor,), 2)],
            SelectionSpec.range_diverse(),
        ),
    )


def pair_family():
    pairs = sweep(
        "pair_freq_{threshold}",
        {"threshold": [4, 5, 6, 7]},
        lambda threshold: (
            base_rules() + [RuleSpec(K.PAIR_FREQUENCY, (threshold,), 1)],
            SelectionSpec.range_diverse(),
        ),
    )
    companions = sweep(
        "companion{window}_w{weight}",
        {"window": [30, 50, 100], "weight": [0.5, 1]},
        lambda window, weight: (
            base_rules() + [RuleSpec(K.COMPANION, (window,), weight)],
            SelectionSpec.range_diverse(),
        ),
    )
    return pairs + companions


SUM_RANGES = [(100, 150), (110, 160), (120, 170), (130, 180), (115, 155), (125, 165)]


def sum_family():
    return [
        make_strategy(f"sum_{lo}_{hi}", core_rules(off_w=5), SelectionSpec.sum_constrained(lo, hi))
        for lo, hi in SUM_RANGES
    ]


def wide_family():
    return sweep(
        "P{pick}_d{depth}",
        {"pick": [8, 10, 12, 15, 20], "depth": [3, 4, 5]},
        lambda pick, depth: (
            v6_rules(3, 5, depth, 0.8), SelectionSpec.top_n(pick),
        ),
    )


def voters():
    """Sub-strategies used by the ensemble meta strategies."""
    return (
        make_strategy("vote_v6", v6_rules(4, 5, 4, 0.7)),
        make_strategy("vote_bonus", core_rules() + [RuleSpec(K.BONUS_TRACK, (5,), 1)]),
        make_strategy("vote_seed", base_rules() + [RuleSpec(K.SEED_DISTANCE, (13, 5), 2)]),
        make_strategy("vote_xor", base_rules() + [RuleSpec(K.XOR_MAP, (7,), 5)]),
        make_strategy("vote_fib", base_rules() + [RuleSpec(K.FIBONACCI_OFFSET, (3,), 3)]),
    )


def ensemble_family():
    subs = voters()
    votes = sweep(
        "vote_t{threshold}",
        {"threshold": [1, 2, 3]},
        lambda threshold: (
            [RuleSpec(K.GAP, (), 2)],
            SelectionSpec.ensemble_vote(subs, threshold, vote_weight=3, raw_weight=1),
        ),
    )
    picks = sweep(
        "vote_pick{pick}",
        {"pick": [7, 8]},
        lambda pick: (
            [RuleSpec(K.GAP, (), 2)],
            SelectionSpec.ensemble_vote(subs, 1, output_size=pick, vote_weight=3,
                                        raw_weight=1, final_policy="top_n"),
        ),
    )
    summed = make_strategy(
        "vote_sum121_160", [],
        SelectionSpec.ensemble_vote(subs, 1, final_policy="sum_constrained",
                                    sum_min=121, sum_max=160, pool_size=12),
    )
    return votes + picks + [summed]


FAMILIES = (
    v6_family,
    v6_seven_family,
    lcg_family,
    lcg_reference_family,
    modulus_family,
    tracking_family,
    xor_family,
    fibonacci_family,
    seed_family,
    membership_family,
    combo_family,
    pair_family,
    sum_family,
    wide_family,
    ensemble_family,
)


def _check_unique(strategies):
    seen = set()
    for s in strategies:
        if s.name in seen:
            raise ValueError(f"duplicate strategy name {s.name!r}")
        seen.add(s.name)
    return strategies


def default_strategies():
    """The full preset catalogue."""
    strategies = []
    for family in FAMILIES:
        strategies.extend(family())
    return _check_unique(strategies)


def quick_strategies():
    """A representative handful, one or two per family."""
    subs = voters()
    return _check_unique([
        make_strategy("v6_l4_o5_d4_0.7_p2", v6_rules(4, 5, 4, 0.7, 2)),
        make_strategy("v6_l5_o4_d3_0.8_p1", v6_rules(5, 4, 3, 0.8, 1)),
        make_strategy("v6x7_l4_o5_d4_0.7", v6_rules(4, 5, 4, 0.7), SelectionSpec.range_diverse(7)),
        make_strategy("top7_l4_o5_d4_0.7", v6_rules(4, 5, 4, 0.7), SelectionSpec.top_n(7)),
        make_strategy("lcg_13_31", lcg_grid_rules(13, 31)),
        make_strategy("mod7", core_rules() + [RuleSpec(K.MODULUS, (7,), 3)]),
        *tracking_family(),
        make_strategy("xor7", base_rules() + [RuleSpec(K.XOR_MAP, (7,), 5)]),
        make_strategy("fib3_w3", base_rules() + [RuleSpec(K.FIBONACCI_OFFSET, (3,), 3)]),
        make_strategy("seed13_r5", base_rules() + [RuleSpec(K.SEED_DISTANCE, (13, 5), 2)]),
        make_strategy("prime_w3", base_rules() + [RuleSpec(K.PRIME_MEMBERSHIP, (), 3)]),
        make_strategy("pair_freq_5", base_rules() + [RuleSpec(K.PAIR_FREQUENCY, (5,), 1)]),
        make_strategy("sum_120_170", core_rules(off_w=5), SelectionSpec.sum_constrained(120, 170)),
        make_strategy("P10_d4", v6_rules(3, 5, 4, 0.8), SelectionSpec.top_n(10)),
        make_strategy(
            "vote_t2", [RuleSpec(K.GAP, (), 2)],
            SelectionSpec.ensemble_vote(subs, 2, vote_weight=3, raw_weight=1),
        ),
    ])
