from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

"""RowOutcome domain model and RowStatus enum.

Each Record processed by the reconciliation engine yields exactly one
RowOutcome. State transitions per row:

    pending → (not found: error) | resolved → labels → related
            → (no work: skipped) | success | error
"""

__all__ = [
    "RowStatus",
    "RowOutcome",
]


class RowStatus(Enum):
    """Terminal classification of a processed row.

    - SUCCESS: every attempted update succeeded (partial related-name
      resolution still counts as success)
    - ERROR: item not found, or an attempted update failed
    - SKIPPED: the row carried nothing to import; counted only in the total
    """
    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class RowOutcome:
    """Result of applying one Record, echoed back for reporting."""
    id: int
    title: str
    labels_raw: str
    related_raw: str
    status: RowStatus
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "labels": self.labels_raw,
            "related": self.related_raw,
            "status": self.status.value,
            "message": self.message,
        }
