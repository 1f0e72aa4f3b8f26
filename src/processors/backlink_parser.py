"""
Backlink report parser.

Resolves exporter-specific column names to the canonical BacklinkRecord
fields and accumulates snapshot metrics in the same pass. This is the only
module that touches raw, arbitrarily-shaped rows.
"""

import math
import re
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from domain.normalize import normalize_domain
from domain.schemas import BacklinkRecord, ParseResult
from domain.snapshot_metrics import SnapshotMetricsAccumulator
from extractors import get_decoder


# Header aliases per logical field, in lookup order
FIELD_ALIASES = {
    'source_page_url': ['Referring page URL', 'Referrer URL', 'Source url', 'Source URL', 'Referring URL'],
    'target_url': ['Target URL', 'Target url'],
    'first_seen': ['First seen', 'First Seen', 'first_seen'],
    'last_seen': ['Last seen', 'Last Seen', 'last_seen'],
    'authority_score': ['Domain rating', 'DR', 'DomainRating', 'Authority Score', 'Page ascore'],
    'domain_traffic': ['Domain traffic', 'Traffic'],
    'page_traffic': ['Page traffic'],
    'anchor': ['Anchor', 'Anchor text'],
    'nofollow': ['Nofollow', 'Nofollow link'],
    'external_links': ['External links', 'External links count'],
    'language': ['Language'],
}

# Non-ISO date layouts seen in exports, tried in order
DATE_FORMATS = [
    '%m/%d/%Y %H:%M:%S',
    '%m/%d/%Y %H:%M',
    '%m/%d/%Y',
    '%Y/%m/%d %H:%M:%S',
    '%Y/%m/%d',
    '%d.%m.%Y %H:%M',
    '%d.%m.%Y',
    '%b %d, %Y',
    '%d %b %Y',
]

_NON_NUMERIC = re.compile(r'[^0-9.]')
_FIRST_DIGIT = re.compile(r'\d')
_WHITESPACE = re.compile(r'\s')


def _squash(name: str) -> str:
    return _WHITESPACE.sub('', str(name)).lower()


def lookup_field(row: Dict[str, object], aliases: List[str]):
    """
    Tolerant header lookup.

    For each alias in order: try an exact key match, then compare the alias
    and each actual header with whitespace removed and case folded.

    Args:
        row: Decoded row (header -> value)
        aliases: Acceptable header names, most specific first

    Returns:
        The first non-None value found, or None
    """
    for alias in aliases:
        value = row.get(alias)
        if value is not None:
            return value

        target = _squash(alias)
        for key, value in row.items():
            if value is not None and _squash(key) == target:
                return value

    return None


def parse_number(value) -> float:
    """
    Parse an exporter number ('1,234', '62', '$5.0') to float.

    Everything except digits and '.' is stripped first. A minus sign before
    the first digit marks a negative number, which becomes 0 just like a
    negative numeric cell. Anything that still fails to parse becomes 0; the
    result is never NaN.
    """
    if value is None or isinstance(value, bool):
        return 0.0

    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value)
        first_digit = _FIRST_DIGIT.search(text)
        if first_digit is None or '-' in text[:first_digit.start()]:
            return 0.0
        cleaned = _NON_NUMERIC.sub('', text)
        try:
            number = float(cleaned)
        except ValueError:
            return 0.0

    if math.isnan(number) or math.isinf(number) or number < 0:
        return 0.0
    return number


def _parse_date_text(text: str) -> Optional[datetime]:
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def parse_date(value) -> Optional[datetime]:
    """
    Parse an exporter date. '-', blanks and garbage yield None.

    Naive values are interpreted as UTC.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if not text or text == '-':
            return None
        parsed = _parse_date_text(text)
        if parsed is None:
            return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except (OverflowError, ValueError):
        # Offset pushes the value outside datetime's range (e.g. 0001-01-01T00:00+05:00)
        return None


def parse_flag(value) -> bool:
    """Nofollow is only true for the literal 'true' (any case)."""
    return str(value).strip().lower() == 'true' if value is not None else False


def _text(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def build_record(row: Dict[str, object]) -> Optional[BacklinkRecord]:
    """
    Build a canonical record from one decoded row.

    Returns:
        BacklinkRecord, or None when the row has no usable referring URL
    """
    source_url = _text(lookup_field(row, FIELD_ALIASES['source_page_url']))
    if not source_url:
        return None

    domain = normalize_domain(source_url)
    if not domain:
        return None

    return BacklinkRecord(
        source_page_url=source_url,
        referring_domain=domain,
        target_url=_text(lookup_field(row, FIELD_ALIASES['target_url'])) or '',
        first_discovered_at=parse_date(lookup_field(row, FIELD_ALIASES['first_seen'])),
        last_seen_at=parse_date(lookup_field(row, FIELD_ALIASES['last_seen'])),
        anchor_text=_text(lookup_field(row, FIELD_ALIASES['anchor'])),
        is_nofollow=parse_flag(lookup_field(row, FIELD_ALIASES['nofollow'])),
        domain_authority_score=parse_number(lookup_field(row, FIELD_ALIASES['authority_score'])),
        domain_traffic=parse_number(lookup_field(row, FIELD_ALIASES['domain_traffic'])),
        page_traffic=parse_number(lookup_field(row, FIELD_ALIASES['page_traffic'])),
        external_link_count=int(parse_number(lookup_field(row, FIELD_ALIASES['external_links']))),
        language=_text(lookup_field(row, FIELD_ALIASES['language'])),
    )


def parse_rows(rows: Iterable[Dict[str, object]], field_names: List[str]) -> ParseResult:
    """
    Turn decoded rows into records and snapshot metrics in a single pass.

    Rows that cannot produce a record are skipped silently.
    """
    records = []
    metrics = SnapshotMetricsAccumulator()

    for row in rows:
        record = build_record(row)
        if record is None:
            continue
        records.append(record)
        metrics.add(record)

    return ParseResult(records=records, metrics=metrics.result(), field_names=field_names)


def parse_backlinks(file_bytes: bytes, file_format: str, file_name: str = '<memory>') -> ParseResult:
    """
    Parse an exported backlink report.

    Args:
        file_bytes: Raw file content
        file_format: 'delimited' or 'spreadsheet'
        file_name: Name used in error messages

    Returns:
        ParseResult with records, metrics and the file's header names

    Raises:
        ParseError: If the file cannot be decoded (nothing is returned partially)

    Example:
        >>> with open('example.com-backlinks.csv', 'rb') as f:
        ...     result = parse_backlinks(f.read(), 'delimited')
        >>> result.metrics.total_referring_domains
    """
    decoder = get_decoder(file_format)
    field_names, rows = decoder.decode(file_bytes, file_name)
    return parse_rows(rows, field_names)
