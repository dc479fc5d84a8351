"""
Text reports and CSV export for backtest rankings.
"""
import logging
import os

import pandas as pd

from lottolab.config import RESULTS_PATH
from lottolab.filters import board_stats, run_all_filters

logger = logging.getLogger(__name__)

RULE = "-" * 120
NAME_WIDTH = 40


def format_ranking_table(rows, title, limit=30):
    """
    One line per ranked strategy: rank, name, mean hits, >=5, 6, >=4, >=3
    and the 0:1:...:6 hit distribution.
    """
    lines = [
        f"=== {title} ===",
        f"{'rank':>4} | {'strategy':<{NAME_WIDTH}} | {'mean':>6} | {'5+':>3} | {'6':>2} | "
        f"{'4+':>3} | {'3+':>3} | dist",
        RULE,
    ]
    for row in rows[:limit]:
        r = row.result
        lines.append(
            f"{row.rank:>4} | {r.strategy_name:<{NAME_WIDTH}} | {r.mean_hits:6.3f} | "
            f"{r.hit5:>3} | {r.hit6:>2} | {r.hit4:>3} | {r.hit3:>3} | {r.histogram()}"
        )
    return "\n".join(lines)


def format_predictions(rows, sequence=None):
    """Next-round picks of the top strategies, optionally annotated with board checks."""
    if not rows:
        return "=== Next round ===\n(no predictions)"
    target = rows[0].target_round
    lines = [f"=== Next round ({target}) ==="]
    for row in rows:
        r = row.result
        picks = ",".join(str(n) for n in row.prediction)
        line = (
            f"{r.strategy_name} ({len(row.prediction)}): [{picks}] | "
            f"avg:{r.mean_hits:.3f} 5+:{r.hit5} 6:{r.hit6}"
        )
        if sequence is not None and len(row.prediction) == 6:
            stats = board_stats(row.prediction)
            checks = run_all_filters(row.prediction, sequence)
            line += (
                f" | sum:{stats['sum']} odd/even:{stats['odd_even']} "
                f"bands:{stats['group_count']} checks:{checks['confidence']}"
            )
        lines.append(line)
    return "\n".join(lines)


def format_baseline(comparison):
    lines = [f"=== {comparison['strategy']} vs {comparison['baseline']} ==="]
    lines.append(f"  t-statistic: {comparison['t_statistic']}")
    lines.append(f"  p-value: {comparison['p_value']}")
    lines.append(f"  Mean difference: {comparison['mean_diff']}")
    lo, hi = comparison["ci_95"]
    lines.append(f"  95% CI: ({lo}, {hi})")
    if comparison["significant_at_005"]:
        lines.append("  Significant at p < 0.05")
    elif comparison["significant_at_010"]:
        lines.append("  Marginally significant at p < 0.10")
    else:
        lines.append("  Not statistically significant")
    return "\n".join(lines)


def print_report(ranked, predictions, sequence=None, comparisons=(), limit=30):
    """
    Print ranking tables (6-number picks first, then every other output
    size), the next-round listing and any baseline comparisons.
    """
    sizes = sorted(ranked, key=lambda size: (size != 6, size))
    for size in sizes:
        print()
        print(format_ranking_table(ranked[size], f"{size}-number picks, top {limit}", limit))
    print()
    print(format_predictions(predictions, sequence))
    for comparison in comparisons:
        if comparison is not None:
            print()
            print(format_baseline(comparison))


def results_frame(results):
    return pd.DataFrame([r.to_dict() for r in results])


def save_results(results, path=None):
    """Save backtest results to CSV."""
    path = path or RESULTS_PATH
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    results_frame(results).to_csv(path, index=False)
    logger.info("Backtest results saved to %s", path)
    return path
