"""
Decoder for delimited text exports (CSV/TSV).
"""

import csv
import io
from typing import Dict, List, Tuple

from extractors.base import BaseDecoder, ParseError

# Delimiters seen in Ahrefs/SEMrush exports
CANDIDATE_DELIMITERS = ',;\t'


class DelimitedDecoder(BaseDecoder):
    """Decode UTF-8 delimited text with a header row."""

    format_name = 'delimited'

    def decode(self, file_bytes: bytes, file_name: str = '<memory>') -> Tuple[List[str], List[Dict[str, object]]]:
        try:
            # utf-8-sig drops the BOM Excel puts in front of "UTF-8 CSV" exports
            text = file_bytes.decode('utf-8-sig')
        except UnicodeDecodeError as e:
            raise ParseError(file_name, f"not valid UTF-8 ({e.reason} at byte {e.start})")

        if not text.strip():
            raise ParseError(file_name, "file is empty")

        sample = text[:8192]
        try:
            dialect = csv.Sniffer().sniff(sample, delimiters=CANDIDATE_DELIMITERS)
        except csv.Error:
            dialect = csv.excel

        reader = csv.reader(io.StringIO(text, newline=''), dialect)
        try:
            header = next(reader)
        except (StopIteration, csv.Error) as e:
            raise ParseError(file_name, f"no header row ({e})")

        field_names = [name.strip() for name in header]

        rows = []
        try:
            for values in reader:
                if self.is_blank(values):
                    continue
                rows.append(dict(zip(field_names, values)))
        except csv.Error as e:
            raise ParseError(file_name, f"malformed delimited data at line {reader.line_num}: {e}")

        return field_names, rows
