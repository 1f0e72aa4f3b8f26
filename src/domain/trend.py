"""
Referring-domain discovery trend.

Builds a per-day series of newly discovered referring domains from a set of
backlink records. A domain counts as "new" exactly once: on the UTC day of
the earliest first-seen date among all of its links.
"""

from collections import defaultdict
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Set, Union

from domain.schemas import BacklinkRecord, TrendPoint

TREND_MODES = ('cumulative', 'daily')


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_range(range_days: Union[int, str, None]) -> Optional[int]:
    """
    Normalize a trailing-window argument.

    Returns None for 'all' (no filtering), otherwise a number of days.

    Raises:
        ValueError: If the value is neither 'all' nor a non-negative integer
    """
    if range_days is None or range_days == 'all':
        return None
    days = int(range_days)
    if days < 0:
        raise ValueError(f"range_days must be >= 0, got {days}")
    return days


def build_trend(
    records: Iterable[BacklinkRecord],
    mode: str = 'cumulative',
    range_days: Union[int, str] = 'all',
    now: Optional[datetime] = None
) -> List[TrendPoint]:
    """
    Build the discovery time series.

    Args:
        records: Backlink records (typically the latest snapshot of a site)
        mode: 'daily' for per-day new domains, 'cumulative' for running total
        range_days: Keep only points within this many days of now, or 'all'
        now: Reference time for the window (default: current UTC time)

    Returns:
        TrendPoint list sorted ascending by day; empty for empty input
    """
    if mode not in TREND_MODES:
        raise ValueError(f"Unknown trend mode '{mode}', expected one of {TREND_MODES}")
    window = parse_range(range_days)

    dated = [
        (record, _as_utc(record.first_discovered_at))
        for record in records
        if record.first_discovered_at is not None
    ]
    if not dated:
        return []

    # Earliest first-seen per domain decides its attribution day
    domain_first_seen: Dict[str, datetime] = {}
    for record, seen in dated:
        current = domain_first_seen.get(record.referring_domain)
        if current is None or seen < current:
            domain_first_seen[record.referring_domain] = seen

    day_records: Dict[date, List[BacklinkRecord]] = defaultdict(list)
    for record, seen in dated:
        day_records[seen.date()].append(record)

    new_domains: Dict[date, Set[str]] = defaultdict(set)
    for domain, seen in domain_first_seen.items():
        new_domains[seen.date()].add(domain)

    points = []
    running_total = 0
    for day in sorted(day_records):
        new_count = len(new_domains.get(day, ()))
        running_total += new_count
        points.append(TrendPoint(
            day=day,
            count=running_total if mode == 'cumulative' else new_count,
            new_domains=new_count,
            records=day_records[day],
        ))

    if window is None:
        return points

    now = _as_utc(now) if now is not None else datetime.now(timezone.utc)
    limit = timedelta(days=window)
    return [
        point for point in points
        if now - datetime.combine(point.day, time.min, tzinfo=timezone.utc) <= limit
    ]
