"""
Snapshot summary metrics.

The parser feeds records into SnapshotMetricsAccumulator while it builds
them, so metrics cost no extra pass over the file. calculate_snapshot_metrics
recomputes the same numbers for any stored record set.
"""

from typing import Iterable, Optional, Set
from datetime import datetime

from domain.schemas import BacklinkRecord, SnapshotMetrics


class SnapshotMetricsAccumulator:
    """Single-pass accumulator for SnapshotMetrics."""

    def __init__(self):
        self.total_links = 0
        self.dofollow_links = 0
        self.domains: Set[str] = set()
        self.dofollow_domains: Set[str] = set()
        self.earliest: Optional[datetime] = None
        self.latest: Optional[datetime] = None

    def add(self, record: BacklinkRecord):
        """Account for one record."""
        self.total_links += 1
        self.domains.add(record.referring_domain)

        if not record.is_nofollow:
            self.dofollow_links += 1
            self.dofollow_domains.add(record.referring_domain)

        first_seen = record.first_discovered_at
        if first_seen is not None:
            if self.earliest is None or first_seen < self.earliest:
                self.earliest = first_seen
            if self.latest is None or first_seen > self.latest:
                self.latest = first_seen

    def result(self) -> SnapshotMetrics:
        return SnapshotMetrics(
            total_links=self.total_links,
            total_referring_domains=len(self.domains),
            total_dofollow_links=self.dofollow_links,
            total_dofollow_referring_domains=len(self.dofollow_domains),
            earliest_first_seen=self.earliest,
            latest_first_seen=self.latest,
        )


def calculate_snapshot_metrics(records: Iterable[BacklinkRecord]) -> SnapshotMetrics:
    """
    Compute summary metrics for a record set.

    Args:
        records: Backlink records of one snapshot

    Returns:
        SnapshotMetrics (all zero / None for an empty set)
    """
    accumulator = SnapshotMetricsAccumulator()
    for record in records:
        accumulator.add(record)
    return accumulator.result()
