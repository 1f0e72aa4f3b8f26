import io
import zipfile
from datetime import datetime

import pytest

from extractors import DelimitedDecoder, ParseError, SpreadsheetDecoder, detect_format, get_decoder
from processors.backlink_parser import parse_backlinks


class TestDelimited:

    def test_comma_separated(self):
        data = b'Referring page URL,Domain rating\nhttps://a.example.com/x,"1,234"\n'
        field_names, rows = DelimitedDecoder().decode(data, 'a.csv')
        assert field_names == ['Referring page URL', 'Domain rating']
        assert rows == [{'Referring page URL': 'https://a.example.com/x', 'Domain rating': '1,234'}]

    def test_semicolon_separated(self):
        data = b'Source url;Page ascore;Nofollow\nhttps://a.example.com/x;12;true\nhttps://b.example.com/y;7;false\n'
        field_names, rows = DelimitedDecoder().decode(data, 'semrush.csv')
        assert field_names == ['Source url', 'Page ascore', 'Nofollow']
        assert rows[1]['Page ascore'] == '7'

    def test_byte_order_mark_is_dropped(self):
        data = '﻿Referring page URL,DR\nhttps://a.example.com/x,5\n'.encode('utf-8')
        field_names, _ = DelimitedDecoder().decode(data)
        assert field_names[0] == 'Referring page URL'

    def test_blank_rows_are_skipped(self):
        data = b'Referring page URL,DR\n\nhttps://a.example.com/x,5\n,\n'
        _, rows = DelimitedDecoder().decode(data)
        assert len(rows) == 1

    def test_invalid_utf8(self):
        with pytest.raises(ParseError) as exc:
            DelimitedDecoder().decode(b'Referring page URL\n\xff\xfe\xfa', 'broken.csv')
        assert exc.value.file_name == 'broken.csv'
        assert 'broken.csv' in str(exc.value)

    def test_empty_file(self):
        with pytest.raises(ParseError):
            DelimitedDecoder().decode(b'   \n', 'empty.csv')


class TestSpreadsheet:

    def test_first_sheet_is_read(self, make_xlsx):
        data = make_xlsx([
            ['Referring page URL', 'Domain rating', 'First seen', 'Nofollow'],
            ['https://www.a.example.com/x', 55, datetime(2024, 1, 10), 'false'],
            [None, None, None, None],
            ['https://b.example.com/y', '7', '2024-02-01', 'TRUE'],
        ])
        field_names, rows = SpreadsheetDecoder().decode(data, 'report.xlsx')
        assert field_names == ['Referring page URL', 'Domain rating', 'First seen', 'Nofollow']
        assert len(rows) == 2
        assert rows[0]['Domain rating'] == 55

    def test_spreadsheet_and_csv_produce_same_records(self, make_xlsx):
        header = ['Referring page URL', 'DR', 'First seen', 'Nofollow', 'External links']
        values = ['https://www.a.example.com/x', '55', '2024-01-10', 'true', '12']
        csv_data = (','.join(header) + '\n' + ','.join(values) + '\n').encode('utf-8')

        from_csv = parse_backlinks(csv_data, 'delimited').records
        from_xlsx = parse_backlinks(make_xlsx([header, values]), 'spreadsheet').records
        assert from_csv == from_xlsx

    def test_negative_numbers_match_csv(self, make_xlsx):
        header = ['Referring page URL', 'DR', 'Domain traffic']
        csv_data = b'Referring page URL,DR,Domain traffic\nhttps://a.example.com/x,-5,-1200\n'

        from_csv = parse_backlinks(csv_data, 'delimited').records
        from_xlsx = parse_backlinks(make_xlsx([header, ['https://a.example.com/x', -5, -1200]]), 'spreadsheet').records
        assert from_csv == from_xlsx
        assert from_xlsx[0].domain_authority_score == 0.0

    def test_truncated_sheet_xml(self, make_xlsx):
        original = make_xlsx([['Referring page URL', 'DR']] + [[f'https://site{i}.example.com/', i] for i in range(50)])

        damaged = io.BytesIO()
        with zipfile.ZipFile(io.BytesIO(original)) as source, zipfile.ZipFile(damaged, 'w') as target:
            for item in source.infolist():
                content = source.read(item.filename)
                if item.filename == 'xl/worksheets/sheet1.xml':
                    content = content[:len(content) // 2]
                target.writestr(item, content)

        with pytest.raises(ParseError) as exc:
            parse_backlinks(damaged.getvalue(), 'spreadsheet', 'truncated.xlsx')
        assert exc.value.file_name == 'truncated.xlsx'

    def test_corrupt_workbook(self):
        with pytest.raises(ParseError) as exc:
            SpreadsheetDecoder().decode(b'this is not a zip file', 'corrupt.xlsx')
        assert 'corrupt.xlsx' in str(exc.value)

    def test_header_only(self, make_xlsx):
        field_names, rows = SpreadsheetDecoder().decode(make_xlsx([['Referring page URL', 'DR']]))
        assert field_names == ['Referring page URL', 'DR']
        assert rows == []


class TestFormatDetection:

    @pytest.mark.parametrize("file_name, expected", [
        ('report.csv', 'delimited'),
        ('REPORT.TSV', 'delimited'),
        ('report.xlsx', 'spreadsheet'),
    ])
    def test_detect_format(self, file_name, expected):
        assert detect_format(file_name) == expected

    def test_unsupported_extension(self):
        with pytest.raises(ParseError):
            detect_format('report.pdf')

    def test_unknown_decoder(self):
        with pytest.raises(ValueError):
            get_decoder('xml')
