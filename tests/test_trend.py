import random
from datetime import date, datetime, timedelta, timezone

import pytest

from domain.schemas import BacklinkRecord
from domain.trend import build_trend, parse_range


def link(domain, first_seen, nofollow=False):
    return BacklinkRecord(
        source_page_url=f"https://{domain}/page",
        referring_domain=domain,
        first_discovered_at=first_seen,
        is_nofollow=nofollow,
    )


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def records():
    return [
        link('a.example.com', utc(2024, 1, 10, 8)),
        link('a.example.com', utc(2024, 1, 12)),
        link('b.example.com', utc(2024, 1, 12, 23, 59)),
        link('c.example.com', utc(2024, 1, 15)),
        link('b.example.com', utc(2024, 1, 11)),
        link('undated.example.com', None),
    ]


def test_cumulative(records):
    points = build_trend(records, 'cumulative', 'all')
    assert [p.day for p in points] == [date(2024, 1, 10), date(2024, 1, 11), date(2024, 1, 12), date(2024, 1, 15)]
    assert [p.count for p in points] == [1, 2, 2, 3]


def test_daily(records):
    points = build_trend(records, 'daily', 'all')
    assert [p.count for p in points] == [1, 1, 0, 1]


def test_each_domain_is_new_exactly_once(records):
    daily = build_trend(records, 'daily', 'all')
    cumulative = build_trend(records, 'cumulative', 'all')
    dated_domains = {r.referring_domain for r in records if r.first_discovered_at}
    assert sum(p.count for p in daily) == len(dated_domains)
    assert cumulative[-1].count == len(dated_domains)


def test_attribution_ignores_input_order(records):
    shuffled = list(records)
    random.Random(7).shuffle(shuffled)

    def series(points):
        return [(p.day, p.count, p.new_domains, len(p.records)) for p in points]

    assert series(build_trend(shuffled, 'daily', 'all')) == series(build_trend(records, 'daily', 'all'))


def test_points_carry_their_records(records):
    points = build_trend(records, 'daily', 'all')
    jan_12 = next(p for p in points if p.day == date(2024, 1, 12))
    assert sorted(r.referring_domain for r in jan_12.records) == ['a.example.com', 'b.example.com']


def test_non_utc_dates_use_utc_day():
    plus_five = timezone(timedelta(hours=5))
    points = build_trend([link('a.example.com', datetime(2024, 1, 10, 2, tzinfo=plus_five))], 'daily', 'all')
    assert points[0].day == date(2024, 1, 9)


def test_window_keeps_running_total(records):
    now = utc(2024, 1, 20)
    points = build_trend(records, 'cumulative', 8, now=now)
    assert [p.day for p in points] == [date(2024, 1, 12), date(2024, 1, 15)]
    # Totals still include domains discovered before the window
    assert [p.count for p in points] == [2, 3]


def test_window_accepts_strings(records):
    now = utc(2024, 1, 20)
    assert build_trend(records, 'daily', '5', now=now) == build_trend(records, 'daily', 5, now=now)
    assert [p.day for p in build_trend(records, 'daily', '5', now=now)] == [date(2024, 1, 15)]


def test_empty_input():
    assert build_trend([], 'cumulative', 'all') == []
    assert build_trend([link('a.example.com', None)], 'daily', 'all') == []


def test_invalid_mode(records):
    with pytest.raises(ValueError):
        build_trend(records, 'weekly', 'all')


@pytest.mark.parametrize("value, expected", [('all', None), (None, None), ('30', 30), (0, 0)])
def test_parse_range(value, expected):
    assert parse_range(value) == expected


@pytest.mark.parametrize("value", ['-1', 'forever'])
def test_parse_range_rejects(value):
    with pytest.raises(ValueError):
        parse_range(value)
