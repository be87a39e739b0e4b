from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for error logging.

ErrorRecord is the structured line written to the JSON Lines error log for
every rejected upload and every failed row. ``line=-1`` marks a file-level
error (rejected before any row was read); ``item_id=None`` means no item id
applies.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Uploaded CSV file name
        line: CSV record number (header = 1). Use -1 for file-level errors
        item_id: Catalog item id of the failing row, None for file-level errors
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Human readable detail
    """
    timestamp: str  # ISO8601 UTC
    file: str
    line: int  # 不明な場合 -1
    item_id: int | None
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(file: str, line: int, item_id: int | None, error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            line=line,
            item_id=item_id,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        """Serialize to one JSON line with exactly the dataclass keys."""
        return json.dumps(asdict(self), ensure_ascii=False)
