"""
Database connection and operations.
"""

from pathlib import Path
from datetime import datetime
from typing import Dict, List, Optional, Set

from sqlalchemy import create_engine, func, insert
from sqlalchemy.orm import sessionmaker, Session

from domain.normalize import normalize_domain
from settings import DATABASE_PATH
from .models import Base, Site, Snapshot, SnapshotStatus, Backlink, LibraryDomain


class Database:
    """Database manager for backlink snapshots and the resource library."""

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize database connection.

        Args:
            db_path: Path to SQLite database file (default: DATABASE_PATH setting)
        """
        if db_path is None:
            db_path = DATABASE_PATH

        # Ensure data directory exists
        db_file = Path(db_path)
        db_file.parent.mkdir(parents=True, exist_ok=True)

        # Create engine and session
        self.db_path = db_path
        self.engine = create_engine(f'sqlite:///{db_path}', echo=False)
        self.SessionLocal = sessionmaker(bind=self.engine)

        # Create tables if they don't exist
        Base.metadata.create_all(self.engine)

    def get_session(self) -> Session:
        """Get a new database session."""
        return self.SessionLocal()

    # ------------------------------------------------------------------
    # Generic store operations. Each one is a single call; callers own the
    # transaction (commit/rollback) around them.
    # ------------------------------------------------------------------

    @staticmethod
    def _column(model, column: str):
        attr = getattr(model, column, None)
        if attr is None or column not in model.__table__.columns:
            raise ValueError(f"{model.__name__} has no column '{column}'")
        return attr

    def insert(self, session: Session, obj):
        """Add one object and flush so it gets an ID."""
        session.add(obj)
        session.flush()
        return obj

    def bulk_insert(self, session: Session, model, rows: List[Dict]) -> int:
        """
        Insert many rows of one model with a single executemany.

        Args:
            session: Database session
            model: Mapped class
            rows: Column dicts

        Returns:
            Number of rows inserted
        """
        if not rows:
            return 0
        session.execute(insert(model), rows)
        return len(rows)

    def get(self, session: Session, model, id: int):
        """Get object by primary key, or None."""
        return session.get(model, id)

    def query_by_index(self, session: Session, model, column: str, value) -> list:
        """Get all objects whose column equals value."""
        return session.query(model).filter(self._column(model, column) == value).all()

    def update(self, session: Session, model, id: int, fields: Dict):
        """
        Set fields on the object with the given ID.

        Returns:
            Updated object, or None if it does not exist
        """
        obj = session.get(model, id)
        if obj is None:
            return None
        for key, value in fields.items():
            self._column(model, key)
            setattr(obj, key, value)
        session.flush()
        return obj

    def delete(self, session: Session, model, id: int) -> bool:
        """Delete object by ID. Returns False if it did not exist."""
        obj = session.get(model, id)
        if obj is None:
            return False
        session.delete(obj)
        session.flush()
        return True

    def delete_by_index(self, session: Session, model, column: str, value) -> int:
        """Delete every row whose column equals value. Returns the row count."""
        return (session.query(model)
                .filter(self._column(model, column) == value)
                .delete(synchronize_session=False))

    # ------------------------------------------------------------------
    # Sites and snapshots
    # ------------------------------------------------------------------

    def get_site_by_host(self, session: Session, host: str) -> Optional[Site]:
        """
        Find a site by host.

        Accepts anything normalize_domain does ('www.Example.com',
        'https://example.com/'), so lookups match how imports store the host.
        """
        canonical_host = normalize_domain(host)
        return (session.query(Site)
                .filter(func.lower(Site.canonical_host) == canonical_host)
                .first())

    def get_or_create_site(self, session: Session, canonical_host: str, name: str = None) -> Site:
        """
        Get existing site or create new one.

        Args:
            session: Database session
            canonical_host: Site host or URL (e.g. 'example.com'), normalized before use
            name: Display name (optional, defaults to the host)

        Returns:
            Site object
        """
        site = self.get_site_by_host(session, canonical_host)
        if not site:
            host = normalize_domain(canonical_host)
            site = self.insert(session, Site(canonical_host=host, name=name or host))
        return site

    def latest_snapshot(self, session: Session, site_id: int) -> Optional[Snapshot]:
        """Most recent complete snapshot of a site."""
        return (session.query(Snapshot)
                .filter(Snapshot.site_id == site_id, Snapshot.status == SnapshotStatus.COMPLETE)
                .order_by(Snapshot.imported_at.desc(), Snapshot.id.desc())
                .first())

    def get_snapshot_records(self, session: Session, snapshot_id: int) -> list:
        """Records of a snapshot as BacklinkRecord objects, in insertion order."""
        rows = (session.query(Backlink)
                .filter(Backlink.snapshot_id == snapshot_id)
                .order_by(Backlink.id)
                .all())
        return [row.to_record() for row in rows]

    def delete_site(self, session: Session, site_id: int) -> Dict[str, int]:
        """
        Delete a site with all of its snapshots and backlinks.

        Returns:
            Dict with deleted 'backlinks' and 'snapshots' counts
        """
        backlinks = self.delete_by_index(session, Backlink, 'site_id', site_id)
        snapshots = self.delete_by_index(session, Snapshot, 'site_id', site_id)
        self.delete(session, Site, site_id)
        return {'backlinks': backlinks, 'snapshots': snapshots}

    def prune_pending_snapshots(self, session: Session, site_id: Optional[int] = None) -> int:
        """
        Remove snapshots left pending by an interrupted import, with their records.

        Returns:
            Number of snapshots removed
        """
        pending = self.query_by_index(session, Snapshot, 'status', SnapshotStatus.PENDING)
        if site_id is not None:
            pending = [snapshot for snapshot in pending if snapshot.site_id == site_id]

        for snapshot in pending:
            self.delete_by_index(session, Backlink, 'snapshot_id', snapshot.id)
            session.delete(snapshot)
        session.flush()
        return len(pending)

    # ------------------------------------------------------------------
    # Resource library
    # ------------------------------------------------------------------

    def get_library_domain(self, session: Session, domain: str) -> Optional[LibraryDomain]:
        """Library entry for an exact canonical domain."""
        return session.query(LibraryDomain).filter_by(domain=domain).first()

    def library_domain_set(self, session: Session) -> Set[str]:
        """All canonical domains currently in the library."""
        return {domain for (domain,) in session.query(LibraryDomain.domain).all()}

    def library_usage(self, session: Session, domain: str) -> List[Dict]:
        """
        Sites that received backlinks from a domain.

        Counts span every stored snapshot of each site.

        Returns:
            List of dicts with 'site', 'backlinks' and 'last_seen', most links first
        """
        rows = (session.query(
                    Backlink.site_id,
                    func.count(Backlink.id),
                    func.max(Backlink.last_seen_at))
                .filter(Backlink.referring_domain == domain)
                .group_by(Backlink.site_id)
                .all())

        usage = []
        for site_id, count, last_seen in rows:
            site = session.get(Site, site_id)
            if site:
                usage.append({'site': site, 'backlinks': count, 'last_seen': last_seen})

        usage.sort(key=lambda u: (-u['backlinks'], u['site'].canonical_host))
        return usage
