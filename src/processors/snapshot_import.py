"""
Snapshot import: parse an exported report and persist it as a new snapshot.

Write order per file:
1. Snapshot row with status PENDING
2. Backlink rows in bounded batches (one commit per batch)
3. Snapshot marked COMPLETE
4. Library auto-sync (create-if-missing)

Readers only look at COMPLETE snapshots, so an import that dies halfway
leaves a PENDING snapshot that is ignored until `snapshot prune` removes it.
"""

from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from pydantic import BaseModel
from sqlalchemy.orm import Session

from db import Database, Snapshot, SnapshotStatus, Backlink
from domain.normalize import normalize_domain
from domain.schemas import SnapshotMetrics
from extractors import ParseError, detect_format
from processors.backlink_parser import parse_backlinks
from processors.import_logging import log_import
from processors.library_sync import sync_library_to_database
from settings import IMPORT_BATCH_SIZE

UNKNOWN_SITE = 'Unknown Site'


class ImportResult(BaseModel):
    """Outcome of importing one file."""
    file_name: str
    file_format: str
    site_id: int
    site_host: str
    snapshot_id: int
    record_count: int
    records_written: int
    metrics: SnapshotMetrics
    domains_created: List[str]


def parse_file_name(file_name: str) -> str:
    """
    Guess the site host from an export file name.

    Ahrefs names exports '<host>-backlinks-<mode>-<date>.csv'; everything
    before '-backlinks' is the host. Other names fall back to the stem.

    Example:
        >>> parse_file_name('www.example.com-backlinks-subdomains_2024-01-10.csv')
        'example.com'
    """
    name = Path(file_name).name
    if '-backlinks' in name:
        prefix = name.split('-backlinks')[0]
    else:
        prefix = Path(name).stem
    return normalize_domain(prefix) or UNKNOWN_SITE


def read_file(file_path) -> bytes:
    """Read a report from disk; unreadable files become a ParseError."""
    path = Path(file_path)
    try:
        return path.read_bytes()
    except OSError as e:
        raise ParseError(path.name, f"cannot read file ({e.strerror or e})")


def import_snapshot(
    db: Database,
    session: Session,
    file_path,
    site_host: Optional[str] = None,
    site_name: Optional[str] = None,
    notes: Optional[str] = None,
    batch_size: Optional[int] = None,
    progress: Optional[Callable[[int, int], None]] = None
) -> ImportResult:
    """
    Import one exported backlink report as a new snapshot.

    Args:
        db: Database instance
        session: Database session (committed once per record batch)
        file_path: Path to a .csv/.tsv/.txt or .xlsx/.xlsm report
        site_host: Canonical host of the site (default: guessed from file name)
        site_name: Display name for a newly created site
        notes: Free-text notes stored on the snapshot
        batch_size: Records per write (default: IMPORT_BATCH_SIZE setting)
        progress: Called as progress(written, total) after every batch

    Returns:
        ImportResult

    Raises:
        ParseError: If the file cannot be read or decoded; nothing is written
    """
    path = Path(file_path)
    file_format = detect_format(path.name)
    parsed = parse_backlinks(read_file(path), file_format, path.name)

    batch_size = batch_size or IMPORT_BATCH_SIZE
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")

    host = normalize_domain(site_host) if site_host else parse_file_name(path.name)
    site = db.get_or_create_site(session, host, site_name)

    now = datetime.utcnow()
    records = parsed.records
    snapshot = db.insert(session, Snapshot(
        site_id=site.id,
        source_file_name=path.name,
        file_format=file_format,
        imported_at=now,
        data_cutoff_at=now,
        record_count=len(records),
        notes=notes,
        metrics=parsed.metrics.model_dump(mode='json'),
        status=SnapshotStatus.PENDING
    ))
    session.commit()

    snapshot_id = snapshot.id
    site_id = site.id
    written = 0
    for start in range(0, len(records), batch_size):
        chunk = records[start:start + batch_size]
        db.bulk_insert(session, Backlink, [Backlink.row_from_record(r, snapshot_id, site_id) for r in chunk])
        session.commit()
        written += len(chunk)
        if progress:
            progress(written, len(records))

    db.update(session, Snapshot, snapshot_id, {'status': SnapshotStatus.COMPLETE})
    session.commit()

    created = sync_library_to_database(
        db, session,
        {record.referring_domain for record in records},
        provenance=path.name
    )
    session.commit()

    return ImportResult(
        file_name=path.name,
        file_format=file_format,
        site_id=site_id,
        site_host=site.canonical_host,
        snapshot_id=snapshot_id,
        record_count=len(records),
        records_written=written,
        metrics=parsed.metrics,
        domains_created=created
    )


def import_files(
    db: Database,
    session: Session,
    file_paths: Iterable,
    site_host: Optional[str] = None,
    site_name: Optional[str] = None,
    notes: Optional[str] = None,
    batch_size: Optional[int] = None,
    progress: Optional[Callable[[str, int, int], None]] = None,
    logs_db_path: Optional[str] = None
) -> List[ImportResult]:
    """
    Import several reports strictly one after another.

    The first file that fails aborts the rest of the queue; files imported
    before it stay imported. Every attempt is written to the import log.

    Args:
        progress: Called as progress(file_name, written, total)

    Returns:
        ImportResult per successfully imported file

    Raises:
        ParseError: For the first file that cannot be parsed
    """
    results = []
    for file_path in file_paths:
        name = Path(file_path).name
        context = {'batch_size': batch_size or IMPORT_BATCH_SIZE}

        with log_import(name, site_host=site_host, context_data=context, logs_db_path=logs_db_path) as logger:
            per_file = (lambda written, total, _name=name: progress(_name, written, total)) if progress else None
            try:
                result = import_snapshot(
                    db, session, file_path,
                    site_host=site_host,
                    site_name=site_name,
                    notes=notes,
                    batch_size=batch_size,
                    progress=per_file
                )
            except Exception:
                session.rollback()
                raise
            logger.set_result(result)

        results.append(result)

    return results
