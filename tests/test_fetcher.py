from datetime import date

import pytest
import requests

from conftest import random_sequence
from lottolab import fetcher
from lottolab.errors import DataUnavailable


def payload(round_no, numbers=(3, 11, 19, 27, 35, 43), bonus=8):
    body = {"returnValue": "success", "drwNo": round_no, "drwNoDate": "2024-01-06",
            "bnusNo": bonus}
    for i, n in enumerate(numbers, 1):
        body[f"drwtNo{i}"] = n
    return body


class FakeResponse:
    def __init__(self, body=None, status=200, bad_json=False):
        self.body = body
        self.status = status
        self.bad_json = bad_json

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} error")

    def json(self):
        if self.bad_json:
            raise ValueError("Expecting value")
        return self.body


class FakeSession:
    """Serves draws for rounds up to ``latest``; ``broken`` rounds return HTTP 500."""

    def __init__(self, latest, broken=(), raise_for=()):
        self.latest = latest
        self.broken = set(broken)
        self.raise_for = set(raise_for)
        self.requested = []

    def get(self, url, headers=None, timeout=None):
        round_no = int(url.rsplit("=", 1)[-1])
        self.requested.append(round_no)
        if round_no in self.raise_for:
            raise requests.ConnectionError("connection reset")
        if round_no in self.broken:
            return FakeResponse(status=500)
        if round_no > self.latest:
            return FakeResponse({"returnValue": "fail"})
        return FakeResponse(payload(round_no))


def test_parse_result():
    d = fetcher.parse_result(1100, payload(1100, (43, 3, 11, 19, 27, 35)))
    assert d.round == 1100
    assert d.numbers == (3, 11, 19, 27, 35, 43)
    assert d.bonus == 8
    assert d.date == date(2024, 1, 6)


@pytest.mark.parametrize("body", [
    {"returnValue": "fail"},
    None,
    {"returnValue": "success", "drwtNo1": 1},
    payload(5, (1, 1, 2, 3, 4, 5)),
    payload(5, bonus=3),
])
def test_parse_result_rejects_unusable_payloads(body):
    with pytest.raises(DataUnavailable):
        fetcher.parse_result(5, body)


@pytest.mark.parametrize("response", [
    FakeResponse(status=500),
    FakeResponse(bad_json=True),
    FakeResponse({"returnValue": "fail"}),
])
def test_fetch_draw_failures_return_none(response):
    class OneShot:
        def get(self, url, headers=None, timeout=None):
            return response

    assert fetcher.fetch_draw(7, session=OneShot()) is None


def test_fetch_draw_network_error_returns_none():
    assert fetcher.fetch_draw(7, session=FakeSession(10, raise_for=[7])) is None


def test_fetch_draw_success():
    d = fetcher.fetch_draw(7, session=FakeSession(10))
    assert d.round == 7


def test_estimate_latest_round():
    assert fetcher.estimate_latest_round(date(2002, 12, 7)) == 1
    assert fetcher.estimate_latest_round(date(2002, 12, 13)) == 1
    assert fetcher.estimate_latest_round(date(2002, 12, 14)) == 2


def test_find_latest_round_steps_downward():
    today = date(2002, 12, 7) + (100 - 1) * (date(2002, 12, 14) - date(2002, 12, 7))
    assert fetcher.estimate_latest_round(today) == 100
    assert fetcher.find_latest_round(FakeSession(98), today=today) == 98
    assert fetcher.find_latest_round(FakeSession(103), today=today) == 103


def test_find_latest_round_falls_back_to_estimate():
    today = date(2002, 12, 7) + (50 - 1) * (date(2002, 12, 14) - date(2002, 12, 7))
    assert fetcher.find_latest_round(FakeSession(0), today=today) == 50


def test_fetch_new_draws_skips_unavailable_rounds():
    seq = random_sequence(10)
    session = FakeSession(15, broken=[12])
    new = fetcher.fetch_new_draws(seq, session=session, latest=15)
    assert [d.round for d in new] == [11, 13, 14, 15]
    assert session.requested == [11, 12, 13, 14, 15]


def test_fetch_new_draws_when_up_to_date():
    seq = random_sequence(10)
    session = FakeSession(10)
    assert fetcher.fetch_new_draws(seq, session=session, latest=10) == []
    assert session.requested == []


def test_update_sequence_appends():
    seq = random_sequence(10)
    updated = fetcher.update_sequence(seq, session=FakeSession(12), latest=12)
    assert updated.last_round == 12
    assert len(seq) == 10
    assert fetcher.update_sequence(updated, session=FakeSession(12), latest=12) is updated


def test_collect_all_data():
    seq = fetcher.collect_all_data(latest=6, session=FakeSession(6, broken=[3]))
    assert seq.rounds.tolist() == [1, 2, 4, 5, 6]
    assert seq.missing_rounds() == [3]
