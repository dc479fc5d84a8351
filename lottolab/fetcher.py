"""
Lotto Results API Client

Fetches draw results round by round from the public results endpoint
(``API_URL + round`` returns a JSON envelope). Any failure for a round -
network error, HTTP error, bad JSON, ``returnValue != "success"`` or a
record that fails validation - means "no draw available for this round":
the fetch returns None and the caller moves on.
"""
import logging
from datetime import date, timedelta

import requests

from lottolab.config import API_TIMEOUT, API_URL, FIRST_DRAW_DATE
from lottolab.draws import Draw, DrawSequence
from lottolab.errors import DataUnavailable, InvalidDrawError

logger = logging.getLogger(__name__)

HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    "Accept": "application/json, text/html, */*",
}


def parse_result(round_no, payload):
    """Convert one API JSON payload into a Draw; raise DataUnavailable if unusable."""
    if not isinstance(payload, dict) or payload.get("returnValue") != "success":
        raise DataUnavailable(round_no, "API returned no result")
    try:
        numbers = [payload[f"drwtNo{i}"] for i in range(1, 7)]
        return Draw(
            round=round_no,
            numbers=numbers,
            bonus=payload["bnusNo"],
            date=payload.get("drwNoDate"),
        )
    except (KeyError, InvalidDrawError) as e:
        raise DataUnavailable(round_no, f"invalid record: {e}") from e


def fetch_draw(round_no, session=None, url=None, timeout=API_TIMEOUT):
    """Fetch a single round. Returns a Draw, or None if it is unavailable."""
    http = session or requests
    url = (url or API_URL) + str(round_no)
    try:
        resp = http.get(url, headers=HEADERS, timeout=timeout)
        resp.raise_for_status()
        return parse_result(round_no, resp.json())
    except (requests.RequestException, ValueError) as e:
        logger.warning("Failed to fetch round %s: %s", round_no, e)
    except DataUnavailable as e:
        logger.info("%s", e)
    return None


def estimate_latest_round(today=None):
    """Rounds are weekly since 2002-12-07 (round 1)."""
    today = today or date.today()
    weeks = (today - FIRST_DRAW_DATE) // timedelta(weeks=1)
    return weeks + 1


def find_latest_round(session=None, today=None):
    """
    Step downward from a little past the estimate and return the first
    round the API actually has. Falls back to the estimate.
    """
    estimated = estimate_latest_round(today)
    for round_no in range(estimated + 5, estimated - 11, -1):
        if fetch_draw(round_no, session=session) is not None:
            logger.info("Found latest round: %d", round_no)
            return round_no
    logger.warning("Could not confirm latest round; using estimate %d", estimated)
    return estimated


def fetch_rounds(rounds, session=None):
    """Fetch several rounds, skipping the ones that are unavailable."""
    draws = []
    skipped = []
    for round_no in rounds:
        draw = fetch_draw(round_no, session=session)
        if draw is None:
            skipped.append(round_no)
        else:
            draws.append(draw)
    if skipped:
        logger.warning("Skipped %d unavailable rounds: %s", len(skipped), skipped[:10])
    return draws


def fetch_new_draws(sequence, session=None, latest=None):
    """Draws published after ``sequence.last_round`` (up to ``latest``)."""
    if latest is None:
        latest = find_latest_round(session=session)
    start = (sequence.last_round or 0) + 1
    if start > latest:
        logger.info("Dataset is up to date (last round %s)", sequence.last_round)
        return []
    return fetch_rounds(range(start, latest + 1), session=session)


def collect_all_data(first_round=1, latest=None, session=None):
    """Collect the full history from the API into a new DrawSequence."""
    session = session or requests.Session()
    if latest is None:
        latest = find_latest_round(session=session)
    draws = fetch_rounds(range(first_round, latest + 1), session=session)
    logger.info("Collected %d of %d rounds", len(draws), latest - first_round + 1)
    return DrawSequence(draws)


def update_sequence(sequence, session=None, latest=None):
    """Return ``sequence`` extended with every newly published round."""
    new_draws = fetch_new_draws(sequence, session=session, latest=latest)
    if not new_draws:
        return sequence
    logger.info("Appending %d new draws", len(new_draws))
    return sequence.extend(new_draws)
