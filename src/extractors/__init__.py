"""
Container decoders for exported backlink reports.

Each decoder turns one file format into (field_names, rows) where rows are
plain dicts keyed by header. Everything after decoding is format-agnostic.
"""

from pathlib import Path

from extractors.base import BaseDecoder, ParseError
from extractors.delimited import DelimitedDecoder
from extractors.spreadsheet import SpreadsheetDecoder

DECODERS = {
    DelimitedDecoder.format_name: DelimitedDecoder,
    SpreadsheetDecoder.format_name: SpreadsheetDecoder,
}

EXTENSION_FORMATS = {
    '.csv': 'delimited',
    '.tsv': 'delimited',
    '.txt': 'delimited',
    '.xlsx': 'spreadsheet',
    '.xlsm': 'spreadsheet',
}


def get_decoder(file_format: str) -> BaseDecoder:
    """Return a decoder instance for 'delimited' or 'spreadsheet'."""
    try:
        return DECODERS[file_format]()
    except KeyError:
        raise ValueError(f"Unknown file format '{file_format}', expected one of {sorted(DECODERS)}")


def detect_format(file_name: str) -> str:
    """
    Pick the file format from a file name extension.

    Raises:
        ParseError: If the extension is not supported
    """
    suffix = Path(file_name).suffix.lower()
    if suffix not in EXTENSION_FORMATS:
        raise ParseError(file_name, f"unsupported file type '{suffix or '(none)'}'")
    return EXTENSION_FORMATS[suffix]


__all__ = ['BaseDecoder', 'ParseError', 'DelimitedDecoder', 'SpreadsheetDecoder', 'get_decoder', 'detect_format']
