"""
lottolab: strategy evaluation and backtesting for 6/45 lotto draws.

Modules:
- draws: Draw records, DrawSequence store, CSV load/save
- fetcher: round-indexed results API client
- features: per-number gap / frequency / companion / bonus signals
- filters: board checks and summary stats
- strategies: rule library, selection policies, parameter sweep
- backtester: causal walk-forward replay and random baseline
- ranker: metric ranking, output-size partitions, live predictions
- report: text tables and CSV export
"""

__version__ = "0.1.0"
