"""
Base class for tabular report decoders.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Tuple


class ParseError(Exception):
    """An exported report could not be decoded at all."""

    def __init__(self, file_name: str, reason: str):
        self.file_name = file_name
        self.reason = reason
        super().__init__(f"Failed to parse '{file_name}': {reason}")


class BaseDecoder(ABC):
    """Base class for all container decoders (one per file format)."""

    format_name = None

    @abstractmethod
    def decode(self, file_bytes: bytes, file_name: str = '<memory>') -> Tuple[List[str], List[Dict[str, object]]]:
        """
        Decode a file into header names and generic rows.

        Args:
            file_bytes: Raw file content
            file_name: Name used in error messages

        Returns:
            Tuple of (field_names, rows) where each row maps header -> cell value.
            Completely blank rows are skipped.

        Raises:
            ParseError: If the container cannot be decoded
        """
        pass

    @staticmethod
    def is_blank(values) -> bool:
        return all(v is None or str(v).strip() == '' for v in values)
