"""
Pydantic schemas for the canonical backlink pipeline.

Everything downstream of the parser works on these typed objects; raw
exporter rows never leave processors/backlink_parser.py.
"""

import enum
import math
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RiskLevel(enum.Enum):
    """Advisory spam/risk classification of a referring domain."""
    HEALTHY = "healthy"
    AT_RISK = "at_risk"


class BacklinkRecord(BaseModel):
    """One referring-page -> target-page link discovered in one snapshot."""
    model_config = ConfigDict(frozen=True)

    source_page_url: str
    referring_domain: str = Field(min_length=1)
    target_url: str = ''
    first_discovered_at: Optional[datetime] = None
    last_seen_at: Optional[datetime] = None
    anchor_text: Optional[str] = None
    is_nofollow: bool = False
    domain_authority_score: float = 0.0
    domain_traffic: float = 0.0
    page_traffic: float = 0.0
    external_link_count: int = 0
    language: Optional[str] = None

    @field_validator('domain_authority_score', 'domain_traffic', 'page_traffic', mode='before')
    @classmethod
    def clean_number(cls, v):
        """Missing, NaN and negative values collapse to 0."""
        if v is None:
            return 0.0
        v = float(v)
        if math.isnan(v) or math.isinf(v) or v < 0:
            return 0.0
        return v

    @field_validator('external_link_count', mode='before')
    @classmethod
    def clean_count(cls, v):
        if v is None:
            return 0
        v = float(v)
        if math.isnan(v) or math.isinf(v) or v < 0:
            return 0
        return int(v)


class SnapshotMetrics(BaseModel):
    """Summary counters stored alongside a snapshot."""
    total_links: int = 0
    total_referring_domains: int = 0
    total_dofollow_links: int = 0
    total_dofollow_referring_domains: int = 0
    earliest_first_seen: Optional[datetime] = None
    latest_first_seen: Optional[datetime] = None


class ParseResult(BaseModel):
    """Output of parsing one exported report."""
    records: List[BacklinkRecord]
    metrics: SnapshotMetrics
    field_names: List[str]


class TrendPoint(BaseModel):
    """One day of the referring-domain discovery series."""
    day: date
    count: int
    new_domains: int
    records: List[BacklinkRecord] = Field(default_factory=list)


class DomainSummary(BaseModel):
    """Per-referring-domain rollup of a record set."""
    domain: str
    authority_score: float
    traffic: float
    link_count: int
    dofollow_count: int
    external_link_count: int
    in_catalog: bool
    risk: RiskLevel
    links: List[BacklinkRecord] = Field(default_factory=list)

    @property
    def is_at_risk(self) -> bool:
        return self.risk == RiskLevel.AT_RISK
