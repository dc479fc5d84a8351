"""
Lotto Scoring Strategies

Available modules:
- rules: Fixed vocabulary of additive scoring rules (gap, lcg, offsets, decay, ...)
- strategy: RuleSpec / Strategy data types and score composition
- selection: Range-diverse, top-N and sum-constrained number selection
- ensemble: Vote-based meta selection over sub-strategies
- sweep: Declarative parameter grids and the preset strategy catalogue
"""

from .rules import RuleKind
from .selection import SelectionPolicy, SelectionSpec
from .strategy import RuleSpec, Strategy, make_strategy
from .sweep import default_strategies, quick_strategies

__all__ = [
    "RuleKind",
    "RuleSpec",
    "SelectionPolicy",
    "SelectionSpec",
    "Strategy",
    "make_strategy",
    "default_strategies",
    "quick_strategies",
]
