"""
Snapshot import logging system.

Provides context manager and logger class for tracking every import attempt,
including file, site, counters, timing, and errors. Log rows go to a separate
SQLite database (LOGS_DB_PATH) so a failed import transaction never takes its
own log entry down with it.
"""

from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional
import sys
import time

from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from db.models import Base, ImportLog
from settings import LOGS_DB_PATH


class ImportLogger:
    """
    Logger for snapshot imports.

    Tracks all relevant information about one file import.
    """

    def __init__(
        self,
        file_name: str,
        file_format: Optional[str] = None,
        site_host: Optional[str] = None,
        context_data: Optional[Dict[str, Any]] = None,
        logs_db_path: Optional[str] = None
    ):
        """
        Initialize logger.

        Args:
            file_name: Name of the imported file
            file_format: 'delimited' or 'spreadsheet' when known
            site_host: Canonical host of the target site when known
            context_data: Optional metadata (batch size, notes, etc.)
            logs_db_path: Override for the logs database path
        """
        self.file_name = file_name
        self.file_format = file_format
        self.site_host = site_host
        self.context_data = context_data or {}
        self.logs_db_path = logs_db_path or LOGS_DB_PATH

        # Timing
        self.started_at = datetime.utcnow()
        self.completed_at: Optional[datetime] = None
        self.duration_ms: Optional[int] = None

        # Counters
        self.snapshot_id: Optional[int] = None
        self.rows_parsed: Optional[int] = None
        self.records_written: Optional[int] = None
        self.domains_created: Optional[int] = None

        # Status
        self.success: bool = True
        self.error_message: Optional[str] = None

    def set_result(self, result):
        """Copy counters from an ImportResult."""
        self.snapshot_id = result.snapshot_id
        self.site_host = result.site_host
        self.file_format = result.file_format
        self.rows_parsed = result.record_count
        self.records_written = result.records_written
        self.domains_created = len(result.domains_created)

    def mark_success(self):
        """Mark import as successful and calculate duration."""
        self.completed_at = datetime.utcnow()
        self.duration_ms = int((self.completed_at - self.started_at).total_seconds() * 1000)
        self.success = True

    def mark_error(self, error_message: str):
        """Mark import as failed with error message."""
        self.completed_at = datetime.utcnow()
        self.duration_ms = int((self.completed_at - self.started_at).total_seconds() * 1000)
        self.success = False
        self.error_message = error_message

    def save(self):
        """
        Save log entry to the logs database.

        Uses a retry mechanism to handle database locks. Never raises: a
        logging failure is reported on stderr and the import carries on.
        """
        engine = None
        try:
            Path(self.logs_db_path).parent.mkdir(parents=True, exist_ok=True)
            engine = create_engine(f'sqlite:///{self.logs_db_path}', echo=False)
            Base.metadata.create_all(engine, tables=[ImportLog.__table__])
        except (OSError, SQLAlchemyError) as e:
            print(f"Warning: Failed to open import log database {self.logs_db_path}: {e}", file=sys.stderr)
            if engine is not None:
                engine.dispose()
            return

        session = sessionmaker(bind=engine)()

        # Retry configuration for database locks
        max_retries = 3
        retry_delay = 0.1  # 100ms

        try:
            for attempt in range(max_retries):
                try:
                    log_entry = ImportLog(
                        file_name=self.file_name,
                        file_format=self.file_format,
                        site_host=self.site_host,
                        snapshot_id=self.snapshot_id,
                        started_at=self.started_at,
                        completed_at=self.completed_at,
                        duration_ms=self.duration_ms,
                        rows_parsed=self.rows_parsed,
                        records_written=self.records_written,
                        domains_created=self.domains_created,
                        success=1 if self.success else 0,
                        error_message=self.error_message,
                        context_data=self.context_data if self.context_data else None
                    )

                    session.add(log_entry)
                    session.commit()
                    break

                except OperationalError:
                    session.rollback()
                    if attempt < max_retries - 1:
                        time.sleep(retry_delay)
                        retry_delay *= 2  # Exponential backoff
                        continue
                    print(f"Warning: Failed to save import log after {max_retries} attempts (database locked)", file=sys.stderr)

                except Exception as e:
                    print(f"Warning: Failed to save import log: {e}", file=sys.stderr)
                    session.rollback()
                    break

        finally:
            session.close()
            engine.dispose()


@contextmanager
def log_import(
    file_name: str,
    file_format: Optional[str] = None,
    site_host: Optional[str] = None,
    context_data: Optional[Dict[str, Any]] = None,
    logs_db_path: Optional[str] = None
):
    """
    Context manager for logging one snapshot import.

    Automatically handles success/error tracking and persistence.

    Yields:
        ImportLogger instance

    Example:
        >>> with log_import('example.com-backlinks.csv') as logger:
        ...     result = import_snapshot(db, session, path)
        ...     logger.set_result(result)
    """
    logger = ImportLogger(file_name, file_format, site_host, context_data, logs_db_path)

    try:
        yield logger
        logger.mark_success()
    except Exception as e:
        logger.mark_error(str(e))
        raise
    finally:
        logger.save()


def recent_import_logs(limit: int = 20, failed_only: bool = False, logs_db_path: Optional[str] = None) -> list:
    """
    Most recent import log entries, newest first.

    Returns:
        List of ImportLog objects (detached from their session)
    """
    path = logs_db_path or LOGS_DB_PATH
    if not Path(path).exists():
        return []

    engine = create_engine(f'sqlite:///{path}', echo=False)
    Base.metadata.create_all(engine, tables=[ImportLog.__table__])
    session = sessionmaker(bind=engine, expire_on_commit=False)()
    try:
        query = session.query(ImportLog)
        if failed_only:
            query = query.filter(ImportLog.success == 0)
        entries = query.order_by(ImportLog.started_at.desc(), ImportLog.id.desc()).limit(limit).all()
        session.expunge_all()
        return entries
    finally:
        session.close()
        engine.dispose()
