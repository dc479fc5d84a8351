"""
Configuration for the lotto strategy backtesting engine.

Paths, game constants and search budgets live here as module-level
constants. A few of them can be overridden through the environment:

    LOTTOLAB_DATA_DIR   directory holding lotto_results.csv
    LOTTOLAB_API_URL    round-indexed results endpoint
    LOTTOLAB_LOG_LEVEL  logging level name used by setup_logging()
"""
import logging
import os
from datetime import date

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
DATA_DIR = os.environ.get("LOTTOLAB_DATA_DIR", os.path.join(PROJECT_ROOT, "data"))
CSV_PATH = os.path.join(DATA_DIR, "lotto_results.csv")
RESULTS_PATH = os.path.join(DATA_DIR, "backtest_results.csv")

# ── Game ─────────────────────────────────────────────────────────────────

MIN_NUMBER = 1
MAX_NUMBER = 45
NUMBERS_PER_DRAW = 6
ALL_NUMBERS = list(range(MIN_NUMBER, MAX_NUMBER + 1))

# Fixed bands used by range-diverse selection
BANDS = ((1, 9), (10, 19), (20, 29), (30, 39), (40, 45))

# ── Features ─────────────────────────────────────────────────────────────

# Expected gap for a 6-of-45 draw is 45/6 = 7.5, rounded up
DEFAULT_AVG_GAP = 8.0
MIN_GAPS_FOR_AVERAGE = 3
COMPANION_WINDOW = 50
BONUS_DEPTH = 5

# ── Backtesting ──────────────────────────────────────────────────────────

DEFAULT_EVAL_WINDOW = 100
THRESHOLDS = (3, 4, 5, 6)
DEFAULT_TOP_N = 10

# ── Sum-constrained search ───────────────────────────────────────────────

SUM_POOL_SIZE = 15
SUM_ATTEMPTS = 1500
# C(20, 6): pools of up to 20 candidates are enumerated, not sampled
EXHAUSTIVE_COMBINATION_LIMIT = 38760
SUM_TIME_BUDGET = 2.0

# ── Remote results API ───────────────────────────────────────────────────

API_URL = os.environ.get(
    "LOTTOLAB_API_URL",
    "https://www.dhlottery.co.kr/common.do?method=getLottoNumber&drwNo=",
)
API_TIMEOUT = 10
FIRST_DRAW_DATE = date(2002, 12, 7)

LOG_FORMAT = "[%(name)s] %(levelname)s %(message)s"


def setup_logging(level=None):
    """Install a root handler; level defaults to LOTTOLAB_LOG_LEVEL or INFO."""
    if level is None:
        level = os.environ.get("LOTTOLAB_LOG_LEVEL", "INFO")
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    return level
