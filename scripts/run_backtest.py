#!/usr/bin/env python3
"""
Batch backtest: load draws -> build strategy catalogue -> walk-forward
backtest -> rank -> report, with next-round picks for the top strategies.
"""
import argparse
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from lottolab.backtester import compare_to_baseline, random_baseline, run_many
from lottolab.config import CSV_PATH, DEFAULT_EVAL_WINDOW, DEFAULT_TOP_N, setup_logging
from lottolab.draws import load_data
from lottolab.ranker import RankMetric, rank, top_predictions
from lottolab.report import print_report, save_results
from lottolab.strategies import default_strategies, quick_strategies


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Backtest and rank lotto scoring strategies.")
    parser.add_argument("--data", default=CSV_PATH, help="draw history CSV")
    parser.add_argument("--window", type=int, default=DEFAULT_EVAL_WINDOW,
                        help="number of trailing draws to replay")
    parser.add_argument("--catalogue", choices=["quick", "full"], default="quick")
    parser.add_argument("--metric", choices=[m.value for m in RankMetric], default="hit5")
    parser.add_argument("--top", type=int, default=DEFAULT_TOP_N,
                        help="strategies per output size that get a next-round pick")
    parser.add_argument("--seed", type=int, default=None,
                        help="seed for sum-constrained search and the random baseline")
    parser.add_argument("--workers", type=int, default=1)
    parser.add_argument("--save", metavar="PATH", default=None, help="write results CSV")
    parser.add_argument("--baseline", action="store_true",
                        help="compare the best 6-number strategy to random picks")
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else None)

    print("Loading data...")
    sequence = load_data(args.data)
    print(f"Loaded {len(sequence)} draws (rounds {sequence.first_round}-{sequence.last_round})")

    strategies = quick_strategies() if args.catalogue == "quick" else default_strategies()
    results = run_many(sequence, strategies, args.window, workers=args.workers, seed=args.seed,
                       verbose=True)

    ranked = rank(results, strategies, sequence, metric=args.metric, top_n=args.top,
                  seed=args.seed)
    predictions = top_predictions(ranked, args.top)

    comparisons = []
    if args.baseline and 6 in ranked:
        best = ranked[6][0].result
        baseline = random_baseline(sequence, args.window, output_size=6, seed=args.seed)
        comparisons.append(compare_to_baseline(best, baseline))

    print_report(ranked, predictions, sequence, comparisons)

    if args.verbose:
        print("\n=== Top strategy definitions ===")
        for row in predictions:
            print(f"  {row.strategy.describe()}")

    if args.save:
        path = save_results(results, args.save)
        print(f"\nBacktest results saved to {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
