from __future__ import annotations

import codecs
import io
from dataclasses import dataclass
from typing import Any, BinaryIO

import pandas as pd

from ..models.record import Record
from .normalize import parse_item_id, sanitize_text

"""CSV reader for catalog label/related-item uploads.

The upload is read raw (no header inference) with pandas, then the first
record is validated as the header and the remaining records become Record
objects.

Header rules:
- ID and Title are required.
- At least one of "Product Tags" / "Recommended Products" must be present.
- Header cells are trimmed before matching; matching is case-sensitive.

Data rows lacking the ID or Title field, or with a blank ID, are skipped
silently (no outcome is produced for them).
"""

__all__ = [
    "COL_ID",
    "COL_TITLE",
    "COL_LABELS",
    "COL_RELATED",
    "REQUIRED_COLUMNS",
    "OPTIONAL_COLUMNS",
    "CsvStructureError",
    "UnreadableInputError",
    "MissingHeaderError",
    "MissingRequiredColumnError",
    "NoOptionalColumnError",
    "ParsedCsv",
    "decode_stream",
    "read_csv_stream",
    "parse_records",
    "read_records",
]

COL_ID = "ID"
COL_TITLE = "Title"
COL_LABELS = "Product Tags"
COL_RELATED = "Recommended Products"

REQUIRED_COLUMNS: tuple[str, ...] = (COL_ID, COL_TITLE)
OPTIONAL_COLUMNS: tuple[str, ...] = (COL_LABELS, COL_RELATED)


class CsvStructureError(Exception):
    """Base class for upload-level CSV problems (no row is processed)."""


class UnreadableInputError(CsvStructureError):
    """Raised when the stream cannot be read or is not valid UTF-8."""


class MissingHeaderError(CsvStructureError):
    """Raised when the file holds no header record at all."""


class MissingRequiredColumnError(CsvStructureError):
    """Raised when ID or Title is absent from the header."""

    def __init__(self, column: str) -> None:
        self.column = column
        super().__init__(
            f'missing required column: "{column}". Required columns are: {", ".join(REQUIRED_COLUMNS)}'
        )


class NoOptionalColumnError(CsvStructureError):
    """Raised when neither "Product Tags" nor "Recommended Products" is present."""

    def __init__(self) -> None:
        quoted = ", ".join(f'"{c}"' for c in OPTIONAL_COLUMNS)
        super().__init__(f"the CSV must contain at least one of these columns: {quoted}")


@dataclass
class ParsedCsv:
    columns: list[str]
    records: list[Record]
    has_labels_column: bool
    has_related_column: bool


def decode_stream(stream: BinaryIO | bytes) -> str:
    """Read the whole upload and decode it as UTF-8, dropping a leading BOM."""
    try:
        raw = stream if isinstance(stream, (bytes, bytearray)) else stream.read()
    except OSError as e:
        raise UnreadableInputError(f"could not read the CSV file: {e}") from e
    if isinstance(raw, str):
        # text mode handle: BOM survives as U+FEFF
        return raw.removeprefix("\ufeff")
    raw = bytes(raw)
    if raw.startswith(codecs.BOM_UTF8):
        raw = raw[len(codecs.BOM_UTF8):]
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise UnreadableInputError(f"the CSV file is not valid UTF-8: {e}") from e


def read_csv_stream(stream: BinaryIO | bytes, delimiter: str = ",") -> pd.DataFrame:
    """Read an upload into a raw DataFrame (row 0 = header, cells kept as str).

    Parameters
    ----------
    stream: バイナリストリーム or bytes
    delimiter: CSV field delimiter (one character)

    Cells missing from short rows come back as NaN/None; fields beyond the
    header width are dropped.
    """
    text = decode_stream(stream)
    try:
        return pd.read_csv(
            io.StringIO(text),
            sep=delimiter,
            header=None,
            dtype=object,
            keep_default_na=False,
            quotechar='"',
            skip_blank_lines=True,
            engine="python",
            on_bad_lines=lambda bad_line: bad_line,
        )
    except pd.errors.EmptyDataError as e:
        raise MissingHeaderError("the CSV file has no header row") from e
    except pd.errors.ParserError as e:
        raise UnreadableInputError(f"could not parse the CSV file: {e}") from e


def _cell(values: list[Any], index: int | None) -> str | None:
    if index is None or index >= len(values):
        return None
    value = values[index]
    return value if isinstance(value, str) else None


def parse_records(df: pd.DataFrame) -> ParsedCsv:
    """Validate the header of a raw DataFrame and build Records.

    Steps:
    1. Row 0 is the header; its cells are trimmed
    2. Check required columns, then the optional-column rule
    3. Remaining rows become Records; rows without ID/Title or with a
       blank ID are skipped
    """
    if df.shape[0] < 1:
        raise MissingHeaderError("the CSV file has no header row")
    header = [c.strip() if isinstance(c, str) else "" for c in df.iloc[0].tolist()]

    for col in REQUIRED_COLUMNS:
        if col not in header:
            raise MissingRequiredColumnError(col)

    id_index = header.index(COL_ID)
    title_index = header.index(COL_TITLE)
    labels_index = header.index(COL_LABELS) if COL_LABELS in header else None
    related_index = header.index(COL_RELATED) if COL_RELATED in header else None

    has_labels = labels_index is not None
    has_related = related_index is not None
    if not has_labels and not has_related:
        raise NoOptionalColumnError()

    records: list[Record] = []
    for position, (_, raw) in enumerate(df.iloc[1:].iterrows(), start=2):
        values = raw.tolist()
        id_cell = _cell(values, id_index)
        title_cell = _cell(values, title_index)
        # ID / Title 欠落行は黙ってスキップ
        if id_cell is None or title_cell is None:
            continue
        if id_cell.strip() == "":
            continue

        labels_cell = _cell(values, labels_index)
        related_cell = _cell(values, related_index)
        records.append(
            Record(
                line=position,
                id=parse_item_id(id_cell),
                title=sanitize_text(title_cell),
                labels_raw=labels_cell.strip() if labels_cell is not None else "",
                related_raw=related_cell.strip() if related_cell is not None else "",
            )
        )

    return ParsedCsv(
        columns=header,
        records=records,
        has_labels_column=has_labels,
        has_related_column=has_related,
    )


def read_records(stream: BinaryIO | bytes, delimiter: str = ",") -> ParsedCsv:
    """Convenience wrapper: read_csv_stream + parse_records."""
    return parse_records(read_csv_stream(stream, delimiter=delimiter))
