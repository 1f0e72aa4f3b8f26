"""
Resource library synchronization.

Two deliberately separate write paths against the library:

- sync_library: runs at import time. Create-if-missing only; an existing
  entry is never modified, so operator edits (pricing, status, notes) are
  never clobbered by a later import.
- export_to_library: runs when an operator explicitly selects domains and
  overrides. Existing entries ARE updated here.
"""

from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from db import Database, LibraryDomain, PricingType, LinkStatus, DomainType
from domain.rollup import rollup_domains
from domain.schemas import BacklinkRecord


class CatalogConflict(Exception):
    """A catalog insert hit the unique-domain constraint (entry already exists)."""


class LibrarySelection(BaseModel):
    """Operator choice for one domain in an export to the library."""
    domain: str
    pricing_type: Optional[PricingType] = None
    status: Optional[LinkStatus] = None
    notes: Optional[str] = None


def new_library_entry(domain: str, provenance: Optional[str] = None) -> Dict:
    """
    Default field values for a domain first seen in an import.

    Args:
        domain: Canonical domain
        provenance: Source file name of the originating snapshot
    """
    return {
        'domain': domain,
        'type_tags': [],
        'domain_type': DomainType.UNKNOWN,
        'pricing_type': PricingType.UNKNOWN,
        'price_amount': None,
        'currency': 'USD',
        'submission_url': None,
        'contact': None,
        'status': LinkStatus.NOT_TRIED,
        'notes': f"Auto-imported from snapshot {provenance}" if provenance else None,
    }


def sync_library(
    discovered_domains: Iterable[str],
    catalog_lookup: Callable[[str], Optional[object]],
    catalog_insert: Callable[[Dict], None],
    provenance: Optional[str] = None
) -> List[str]:
    """
    Create library entries for domains the catalog has not seen yet.

    Existing entries are left untouched. Running twice with the same domains
    creates nothing the second time.

    Args:
        discovered_domains: Canonical domains from a snapshot
        catalog_lookup: domain -> existing entry or None
        catalog_insert: Inserts one entry dict; raises CatalogConflict if the
            domain was created concurrently
        provenance: Originating snapshot file name, recorded in the notes

    Returns:
        Domains that were created, sorted
    """
    created = []
    for domain in sorted(set(discovered_domains)):
        if not domain:
            continue
        if catalog_lookup(domain) is not None:
            continue
        try:
            catalog_insert(new_library_entry(domain, provenance))
        except CatalogConflict:
            # Someone else created it first; that entry wins
            continue
        created.append(domain)
    return created


def sync_library_to_database(
    db: Database,
    session: Session,
    discovered_domains: Iterable[str],
    provenance: Optional[str] = None
) -> List[str]:
    """
    sync_library bound to the SQLAlchemy store.

    Each insert runs in a savepoint so a unique-constraint violation only
    discards that one insert.
    """
    def lookup(domain):
        return db.get_library_domain(session, domain)

    def insert(entry):
        try:
            with session.begin_nested():
                session.add(LibraryDomain(**entry))
        except IntegrityError as e:
            raise CatalogConflict(entry['domain']) from e

    return sync_library(discovered_domains, lookup, insert, provenance)


def export_to_library(db: Database, session: Session, selections: Iterable[LibrarySelection]) -> Dict[str, int]:
    """
    Write operator-selected domains to the library with their overrides.

    Unlike sync_library this updates existing entries: pricing type, status
    and notes are set to the selection's values where given.

    Returns:
        Dict with 'created' and 'updated' counts
    """
    stats = {'created': 0, 'updated': 0}

    for selection in selections:
        overrides = {
            key: value
            for key, value in (
                ('pricing_type', selection.pricing_type),
                ('status', selection.status),
                ('notes', selection.notes),
            )
            if value is not None
        }

        existing = db.get_library_domain(session, selection.domain)
        if existing:
            overrides['updated_at'] = datetime.utcnow()
            db.update(session, LibraryDomain, existing.id, overrides)
            stats['updated'] += 1
        else:
            entry = new_library_entry(selection.domain)
            entry.update(overrides)
            db.insert(session, LibraryDomain(**entry))
            stats['created'] += 1

    return stats


def build_export_preview(
    db: Database,
    session: Session,
    records: List[BacklinkRecord],
    limit: int = 100
) -> List[Dict]:
    """
    Candidate list for an export: top domains by authority with library state.

    New domains come preselected; existing ones are shown with their current
    pricing, status and notes and are not selected.

    Args:
        db: Database instance
        session: Database session
        records: Records of the snapshot to export from
        limit: Maximum number of domains

    Returns:
        List of dicts (domain, authority_score, link_count, is_existing,
        pricing_type, status, notes, selected)
    """
    summaries = rollup_domains(records, catalog_domains=set())
    summaries.sort(key=lambda s: (-s.authority_score, s.domain))

    preview = []
    for summary in summaries[:limit]:
        existing = db.get_library_domain(session, summary.domain)
        preview.append({
            'domain': summary.domain,
            'authority_score': summary.authority_score,
            'link_count': summary.link_count,
            'is_existing': existing is not None,
            'pricing_type': existing.pricing_type if existing else PricingType.UNKNOWN,
            'status': existing.status if existing else LinkStatus.NOT_TRIED,
            'notes': (existing.notes or '') if existing else '',
            'selected': existing is None,
        })
    return preview
