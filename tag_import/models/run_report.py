from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .row_outcome import RowOutcome, RowStatus

"""Run-level result models.

RunReport is what the presentation side consumes: the accepted flag, a
human readable message, the ordered row outcomes and the summary counts.
TraceEvent carries optional diagnostics (disabled unless tracing is on).
"""

__all__ = [
    "RunCounts",
    "RunReport",
    "TraceEvent",
]


@dataclass(frozen=True)
class RunCounts:
    """Summary counts for one run. Skipped rows only appear in ``total``."""
    total: int
    success: int
    error: int

    @property
    def skipped(self) -> int:
        return self.total - self.success - self.error

    def to_dict(self) -> dict[str, int]:
        return {"total": self.total, "success": self.success, "error": self.error}


@dataclass(frozen=True)
class TraceEvent:
    """One diagnostic step (stage = parse | resolve | labels | related | row)."""
    stage: str
    detail: str


@dataclass(frozen=True)
class RunReport:
    """Aggregate result of one import run.

    ``accepted=False`` means the upload was rejected before any row was
    applied; ``outcomes`` is then empty and ``message`` says why.
    """
    accepted: bool
    message: str
    outcomes: list[RowOutcome] = field(default_factory=list)
    counts: RunCounts = field(default_factory=lambda: RunCounts(total=0, success=0, error=0))
    trace: list[TraceEvent] = field(default_factory=list)

    @staticmethod
    def rejected(message: str, trace: list[TraceEvent] | None = None) -> RunReport:
        return RunReport(accepted=False, message=message, trace=list(trace or []))

    @property
    def has_row_errors(self) -> bool:
        return any(o.status is RowStatus.ERROR for o in self.outcomes)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "accepted": self.accepted,
            "message": self.message,
            "rows": [o.to_dict() for o in self.outcomes],
            "counts": self.counts.to_dict(),
        }
        if self.trace:
            data["trace"] = [{"stage": e.stage, "detail": e.detail} for e in self.trace]
        return data
