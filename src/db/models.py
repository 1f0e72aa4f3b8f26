"""
SQLAlchemy models for the backlink intelligence store.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index, Enum, JSON, Float
from sqlalchemy.orm import relationship, declarative_base
import enum

from domain.schemas import BacklinkRecord, SnapshotMetrics

Base = declarative_base()


class SnapshotStatus(enum.Enum):
    """Import state of a snapshot."""
    PENDING = "pending"      # Snapshot row written, records still being persisted
    COMPLETE = "complete"    # Every record batch was written


class PricingType(enum.Enum):
    """Cost of placing a link on a library domain."""
    FREE = "free"
    PAID = "paid"
    UNKNOWN = "unknown"


class LinkStatus(enum.Enum):
    """Outreach progress for a library domain."""
    NOT_TRIED = "not_tried"
    SUBMITTED = "submitted"
    LIVE = "live"
    REJECTED = "rejected"
    MAINTENANCE = "maintenance"


class DomainType(enum.Enum):
    """Kind of site behind a library domain."""
    BLOG = "blog"
    DIRECTORY = "directory"
    NEWS = "news"
    FORUM = "forum"
    OTHER = "other"
    UNKNOWN = "unknown"


def _utc(value):
    # SQLite drops tzinfo; stored values are always UTC
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _naive_utc(value):
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class Site(Base):
    """A tracked site whose backlink reports get imported."""
    __tablename__ = 'sites'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    canonical_host = Column(String(255), nullable=False, unique=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    snapshots = relationship('Snapshot', back_populates='site', order_by='Snapshot.imported_at', passive_deletes=True)

    def __repr__(self):
        return f"<Site(canonical_host='{self.canonical_host}', name='{self.name}')>"


class Snapshot(Base):
    """One import of one exported report for one site."""
    __tablename__ = 'snapshots'

    id = Column(Integer, primary_key=True)
    site_id = Column(Integer, ForeignKey('sites.id', ondelete='CASCADE'), nullable=False, index=True)
    source_file_name = Column(String(500), nullable=False)
    file_format = Column(String(20), nullable=False)
    imported_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    data_cutoff_at = Column(DateTime, nullable=True)
    record_count = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=True)
    metrics = Column(JSON, nullable=False)  # SnapshotMetrics.model_dump(mode='json')
    status = Column(Enum(SnapshotStatus), nullable=False, default=SnapshotStatus.PENDING, index=True)

    # Relationships
    site = relationship('Site', back_populates='snapshots')

    __table_args__ = (
        Index('idx_snapshot_site_imported', 'site_id', 'imported_at'),
    )

    def get_metrics(self) -> SnapshotMetrics:
        return SnapshotMetrics.model_validate(self.metrics or {})

    def __repr__(self):
        return f"<Snapshot(id={self.id}, file='{self.source_file_name}', records={self.record_count}, status={self.status.value})>"


class Backlink(Base):
    """Persisted BacklinkRecord. Immutable once written."""
    __tablename__ = 'backlinks'

    id = Column(Integer, primary_key=True)
    snapshot_id = Column(Integer, ForeignKey('snapshots.id', ondelete='CASCADE'), nullable=False, index=True)
    site_id = Column(Integer, ForeignKey('sites.id', ondelete='CASCADE'), nullable=False, index=True)

    source_page_url = Column(Text, nullable=False)
    referring_domain = Column(String(255), nullable=False, index=True)
    target_url = Column(Text, nullable=False, default='')
    first_seen_at = Column(DateTime, nullable=True)
    last_seen_at = Column(DateTime, nullable=True)
    anchor_text = Column(Text, nullable=True)
    is_nofollow = Column(Integer, nullable=False, default=0)  # 0=dofollow, 1=nofollow
    domain_authority_score = Column(Float, nullable=False, default=0.0)
    domain_traffic = Column(Float, nullable=False, default=0.0)
    page_traffic = Column(Float, nullable=False, default=0.0)
    external_link_count = Column(Integer, nullable=False, default=0)
    language = Column(String(50), nullable=True)

    __table_args__ = (
        Index('idx_backlink_snapshot_domain', 'snapshot_id', 'referring_domain'),
    )

    @staticmethod
    def row_from_record(record: BacklinkRecord, snapshot_id: int, site_id: int) -> dict:
        """Column values for a bulk insert of one record."""
        return {
            'snapshot_id': snapshot_id,
            'site_id': site_id,
            'source_page_url': record.source_page_url,
            'referring_domain': record.referring_domain,
            'target_url': record.target_url,
            'first_seen_at': _naive_utc(record.first_discovered_at),
            'last_seen_at': _naive_utc(record.last_seen_at),
            'anchor_text': record.anchor_text,
            'is_nofollow': 1 if record.is_nofollow else 0,
            'domain_authority_score': record.domain_authority_score,
            'domain_traffic': record.domain_traffic,
            'page_traffic': record.page_traffic,
            'external_link_count': record.external_link_count,
            'language': record.language,
        }

    def to_record(self) -> BacklinkRecord:
        return BacklinkRecord(
            source_page_url=self.source_page_url,
            referring_domain=self.referring_domain,
            target_url=self.target_url or '',
            first_discovered_at=_utc(self.first_seen_at),
            last_seen_at=_utc(self.last_seen_at),
            anchor_text=self.anchor_text,
            is_nofollow=bool(self.is_nofollow),
            domain_authority_score=self.domain_authority_score,
            domain_traffic=self.domain_traffic,
            page_traffic=self.page_traffic,
            external_link_count=self.external_link_count,
            language=self.language,
        )

    def __repr__(self):
        return f"<Backlink(domain='{self.referring_domain}', snapshot_id={self.snapshot_id})>"


class LibraryDomain(Base):
    """Referring domain kept as a reusable outreach resource."""
    __tablename__ = 'library_domains'

    id = Column(Integer, primary_key=True)
    domain = Column(String(255), nullable=False, unique=True, index=True)
    display_name = Column(String(255), nullable=True)
    type_tags = Column(JSON, nullable=False, default=list)
    domain_type = Column(Enum(DomainType), nullable=False, default=DomainType.UNKNOWN)

    # Editable outreach fields (never touched by auto-sync once the row exists)
    pricing_type = Column(Enum(PricingType), nullable=False, default=PricingType.UNKNOWN, index=True)
    price_amount = Column(Float, nullable=True)
    currency = Column(String(10), nullable=False, default='USD')
    submission_url = Column(String(2048), nullable=True)
    contact = Column(String(255), nullable=True)
    status = Column(Enum(LinkStatus), nullable=False, default=LinkStatus.NOT_TRIED, index=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<LibraryDomain(domain='{self.domain}', status={self.status.value})>"


class ImportLog(Base):
    """Log of snapshot import attempts, successful or not."""
    __tablename__ = 'import_logs'

    id = Column(Integer, primary_key=True)

    file_name = Column(String(500), nullable=False, index=True)
    file_format = Column(String(20), nullable=True)
    site_host = Column(String(255), nullable=True, index=True)
    snapshot_id = Column(Integer, nullable=True)  # No FK: logs live in a separate database

    # Timing
    started_at = Column(DateTime, nullable=False, index=True)
    completed_at = Column(DateTime, nullable=True)
    duration_ms = Column(Integer, nullable=True)

    # Counters
    rows_parsed = Column(Integer, nullable=True)
    records_written = Column(Integer, nullable=True)
    domains_created = Column(Integer, nullable=True)

    # Status and errors
    success = Column(Integer, nullable=False, default=1, index=True)  # 1=success, 0=error
    error_message = Column(Text, nullable=True)

    context_data = Column(JSON, nullable=True)

    def __repr__(self):
        return f"<ImportLog(file='{self.file_name}', success={self.success})>"
