"""
Strategy = an ordered list of bound rules + a selection spec.

Strategies are plain immutable data so that the parameter sweep can
generate thousands of them and ship them to worker processes.
"""
from dataclasses import dataclass

from lottolab.features import FeatureSnapshot, compute_features, empty_vector
from lottolab.strategies.rules import RuleKind, evaluate_rule, get_rule
from lottolab.strategies.selection import SelectionPolicy, SelectionSpec, select


def _freeze(value):
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


@dataclass(frozen=True)
class RuleSpec:
    kind: RuleKind
    params: tuple = ()
    weight: float = 1.0

    def __post_init__(self):
        object.__setattr__(self, "kind", RuleKind(self.kind))
        object.__setattr__(self, "params", _freeze(tuple(self.params)))
        object.__setattr__(self, "weight", float(self.weight))
        # fail at construction, not mid-backtest
        get_rule(self.kind).bind(self.params)

    def contribution(self, features, target_round):
        return evaluate_rule(self.kind, self.params, self.weight, features, target_round)

    def label(self):
        args = ",".join(str(p) for p in self.params)
        return f"{self.kind.value}({args})*{self.weight:g}"


@dataclass(frozen=True)
class Strategy:
    name: str
    rules: tuple
    selection: SelectionSpec = SelectionSpec()

    def __post_init__(self):
        object.__setattr__(self, "rules", tuple(self.rules))

    @property
    def output_size(self):
        return self.selection.output_size

    def score(self, features, target_round):
        """Per-number score vector (length 46): the sum of every rule's contribution."""
        total = empty_vector()
        for spec in self.rules:
            total += spec.contribution(features, target_round)
        return total

    def predict(self, history, target_round, rng=None):
        """
        Predicted numbers (ascending) for ``target_round`` given ``history``,
        which is a causal DrawSequence prefix or an already computed
        FeatureSnapshot of one.
        """
        features = history if isinstance(history, FeatureSnapshot) else compute_features(history)
        if self.selection.policy is SelectionPolicy.ENSEMBLE_VOTE:
            from lottolab.strategies.ensemble import ensemble_select
            return ensemble_select(self, features, target_round, rng=rng)
        return select(self.score(features, target_round), self.selection, rng=rng)

    def describe(self):
        rules = " + ".join(r.label() for r in self.rules) or "(no rules)"
        return f"{self.name}: {rules} -> {self.selection.label()}"


def make_strategy(name, rules, selection=None):
    """Build a Strategy from (kind, params, weight) tuples or RuleSpecs."""
    specs = [r if isinstance(r, RuleSpec) else RuleSpec(*r) for r in rules]
    return Strategy(name, specs, selection or SelectionSpec())
