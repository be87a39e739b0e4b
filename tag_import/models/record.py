from __future__ import annotations

from dataclasses import dataclass

"""Record model for the catalog label/related-item importer.

A Record is one data row of the uploaded CSV after header validation and
field extraction. Rows whose ID cell is blank never become a Record.
"""

__all__ = [
    "Record",
]


@dataclass(frozen=True)
class Record:
    """One parsed CSV data row.

    ``line`` counts CSV records, header included (first data row = 2).
    ``id`` is already coerced to int; non-numeric input arrives here as 0.
    """
    line: int  # CSV record number (header = 1)
    id: int  # Catalog item identifier (0 = unparseable)
    title: str  # Sanitized Title cell
    labels_raw: str = ""  # Raw "Product Tags" cell, trimmed
    related_raw: str = ""  # Raw "Recommended Products" cell, trimmed
