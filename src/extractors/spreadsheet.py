"""
Decoder for spreadsheet exports (XLSX).

Only the first worksheet is read. Worksheet XML is parsed lazily in
read-only mode, so corrupt sheet data only shows up while iterating rows.
"""

import io
import zipfile
import zlib
from typing import Dict, List, Tuple
from xml.etree.ElementTree import ParseError as XMLParseError

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from extractors.base import BaseDecoder, ParseError

# Errors raised by openpyxl and the zip/XML layers beneath it for damaged files
CORRUPT_SHEET_ERRORS = (XMLParseError, zipfile.BadZipFile, zlib.error, EOFError, KeyError, ValueError)


class SpreadsheetDecoder(BaseDecoder):
    """Decode the first sheet of an XLSX workbook with a header row."""

    format_name = 'spreadsheet'

    def decode(self, file_bytes: bytes, file_name: str = '<memory>') -> Tuple[List[str], List[Dict[str, object]]]:
        try:
            workbook = openpyxl.load_workbook(io.BytesIO(file_bytes), read_only=True, data_only=True)
        except (InvalidFileException, OSError) + CORRUPT_SHEET_ERRORS as e:
            raise ParseError(file_name, f"unreadable spreadsheet ({e})")

        try:
            if not workbook.worksheets:
                raise ParseError(file_name, "workbook has no sheets")
            sheet = workbook.worksheets[0]
            row_iter = sheet.iter_rows(values_only=True)

            header = next(row_iter, None)
            if header is None or self.is_blank(header):
                raise ParseError(file_name, "no header row")

            field_names = ['' if name is None else str(name).strip() for name in header]

            rows = []
            for values in row_iter:
                if self.is_blank(values):
                    continue
                rows.append(dict(zip(field_names, values)))
        except CORRUPT_SHEET_ERRORS as e:
            raise ParseError(file_name, f"corrupt worksheet data ({e})")
        finally:
            workbook.close()

        return field_names, rows
