from datetime import datetime, timezone

import pytest

from domain.snapshot_metrics import calculate_snapshot_metrics
from domain.rollup import rollup_domains
from domain.trend import build_trend
from processors.backlink_parser import (
    build_record,
    lookup_field,
    parse_backlinks,
    parse_date,
    parse_flag,
    parse_number,
    parse_rows,
)
from conftest import SAMPLE_CSV


class TestAliases:

    def test_short_and_long_authority_headers_agree(self):
        short = build_record({'Referrer URL': 'https://a.example.com/x', 'DR': '62'})
        long = build_record({'Referring page URL': 'https://a.example.com/x', 'Domain rating': '62'})
        assert short.domain_authority_score == long.domain_authority_score == 62.0

    def test_header_match_ignores_whitespace_and_case(self):
        row = {'referring  page url': 'https://a.example.com/x', 'DOMAIN RATING ': '40'}
        record = build_record(row)
        assert record.referring_domain == 'a.example.com'
        assert record.domain_authority_score == 40.0

    def test_alias_order_decides(self):
        row = {'Domain rating': '10', 'DR': '90'}
        assert lookup_field(row, ['Domain rating', 'DR']) == '10'

    def test_missing_field_is_none(self):
        assert lookup_field({'Other': 'x'}, ['Anchor']) is None


class TestValueParsing:

    @pytest.mark.parametrize("value, expected", [
        ('1,234', 1234.0),
        ('62', 62.0),
        ('$5.5', 5.5),
        (17, 17.0),
        (3.25, 3.25),
        ('', 0.0),
        ('-', 0.0),
        ('n/a', 0.0),
        ('1.2.3', 0.0),
        (None, 0.0),
        (float('nan'), 0.0),
        (-4, 0.0),
        ('-5', 0.0),
        ('$-5', 0.0),
        (' -1,234', 0.0),
        ('.5', 0.5),
    ])
    def test_parse_number(self, value, expected):
        assert parse_number(value) == expected

    def test_parse_date_variants(self):
        assert parse_date('2024-01-10') == datetime(2024, 1, 10, tzinfo=timezone.utc)
        assert parse_date('2024-01-10 08:30:00') == datetime(2024, 1, 10, 8, 30, tzinfo=timezone.utc)
        assert parse_date('01/10/2024') == datetime(2024, 1, 10, tzinfo=timezone.utc)
        assert parse_date('Jan 10, 2024') == datetime(2024, 1, 10, tzinfo=timezone.utc)
        assert parse_date('-') is None
        assert parse_date('  ') is None
        assert parse_date('not a date') is None
        assert parse_date(None) is None

    def test_parse_date_converts_to_utc(self):
        assert parse_date('2024-01-10T02:00:00+05:00') == datetime(2024, 1, 9, 21, 0, tzinfo=timezone.utc)

    def test_parse_date_accepts_spreadsheet_datetimes(self):
        assert parse_date(datetime(2024, 1, 10)) == datetime(2024, 1, 10, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", ['0001-01-01T00:00:00+05:00', '9999-12-31T23:00:00-05:00'])
    def test_parse_date_out_of_range_offset(self, value):
        assert parse_date(value) is None

    def test_out_of_range_date_only_drops_the_date(self):
        data = (b"Referring page URL,First seen\n"
                b"https://a.example.com/x,0001-01-01T00:00:00+05:00\n"
                b"https://b.example.com/y,2024-01-10\n")
        records = parse_backlinks(data, 'delimited').records
        assert [r.referring_domain for r in records] == ['a.example.com', 'b.example.com']
        assert records[0].first_discovered_at is None
        assert records[1].first_discovered_at == datetime(2024, 1, 10, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value, expected", [
        ('true', True),
        ('TRUE', True),
        (' True ', True),
        ('false', False),
        ('1', False),
        ('yes', False),
        ('', False),
        (None, False),
    ])
    def test_parse_flag(self, value, expected):
        assert parse_flag(value) is expected


class TestRecords:

    def test_rows_without_referring_url_are_dropped(self):
        rows = [
            {'Referring page URL': '', 'DR': '10'},
            {'Referring page URL': '   ', 'DR': '10'},
            {'DR': '10'},
            {'Referring page URL': 'https://ok.example.com/', 'DR': '10'},
        ]
        result = parse_rows(rows, ['Referring page URL', 'DR'])
        assert [r.referring_domain for r in result.records] == ['ok.example.com']

    def test_defaults_for_missing_fields(self):
        record = build_record({'Referring page URL': 'https://a.example.com/x'})
        assert record.target_url == ''
        assert record.first_discovered_at is None
        assert record.anchor_text is None
        assert record.is_nofollow is False
        assert record.domain_authority_score == 0.0
        assert record.external_link_count == 0

    def test_metrics_match_recomputation(self):
        result = parse_backlinks(SAMPLE_CSV.encode('utf-8'), 'delimited', 'sample.csv')
        assert result.metrics == calculate_snapshot_metrics(result.records)

        m = result.metrics
        assert m.total_links == 3
        assert m.total_referring_domains == 2
        assert m.total_dofollow_links == 2
        assert m.total_dofollow_referring_domains == 2
        assert m.earliest_first_seen == datetime(2024, 1, 10, tzinfo=timezone.utc)
        assert m.latest_first_seen == datetime(2024, 1, 12, tzinfo=timezone.utc)

    def test_metrics_invariants(self):
        result = parse_backlinks(SAMPLE_CSV.encode('utf-8'), 'delimited')
        m = result.metrics
        assert m.total_links == len(result.records)
        assert m.total_referring_domains == len({r.referring_domain for r in result.records})
        assert m.total_dofollow_referring_domains <= m.total_referring_domains
        assert m.total_dofollow_links <= m.total_links

    def test_field_names_are_returned(self):
        result = parse_backlinks(SAMPLE_CSV.encode('utf-8'), 'delimited')
        assert result.field_names[0] == 'Referring page URL'
        assert 'Domain rating' in result.field_names

    def test_empty_report(self):
        result = parse_backlinks(b"Referring page URL,DR\n", 'delimited')
        assert result.records == []
        assert result.metrics.total_links == 0
        assert result.metrics.earliest_first_seen is None

    def test_unknown_format(self):
        with pytest.raises(ValueError):
            parse_backlinks(b"a,b\n", 'json')


def test_end_to_end_scenario():
    rows = [
        {'Source URL': 'https://Blog.Example.com/post', 'DR': '62', 'Nofollow': 'false', 'First seen': '2024-01-10'},
        {'Source URL': 'http://www.blog.example.com/other', 'DR': '62', 'Nofollow': 'true', 'First seen': '2024-01-10'},
    ]

    result = parse_rows(rows, ['Source URL', 'DR', 'Nofollow', 'First seen'])
    assert [r.referring_domain for r in result.records] == ['blog.example.com', 'blog.example.com']

    m = result.metrics
    assert (m.total_links, m.total_referring_domains, m.total_dofollow_links, m.total_dofollow_referring_domains) == (2, 1, 1, 1)

    points = build_trend(result.records, 'cumulative', 'all')
    assert len(points) == 1
    assert points[0].day.isoformat() == '2024-01-10'
    assert points[0].count == 1

    summaries = rollup_domains(result.records, set())
    assert len(summaries) == 1
    assert summaries[0].link_count == 2
    assert summaries[0].dofollow_count == 1
    assert summaries[0].authority_score == 62.0
