from __future__ import annotations

from collections.abc import Sequence

from ..models.row_outcome import RowOutcome, RowStatus
from ..models.run_report import RunCounts

"""Report aggregation and summary rendering.

Folds the ordered row outcomes of a run into RunCounts and renders the two
human readable forms: the report message shown to the uploader and the
SUMMARY line written to the console log. No catalog I/O happens here.
"""


def summarize_outcomes(outcomes: Sequence[RowOutcome], total: int | None = None) -> RunCounts:
    """Count outcomes by status.

    ``total`` defaults to the number of outcomes (one outcome per record).
    Skipped rows are only part of ``total``.

    Examples:
        >>> from tag_import.models.row_outcome import RowOutcome, RowStatus
        >>> rows = [
        ...     RowOutcome(1, "A", "x", "", RowStatus.SUCCESS, "1 label(s)"),
        ...     RowOutcome(2, "B", "", "", RowStatus.SKIPPED, "nothing to import for this row"),
        ... ]
        >>> summarize_outcomes(rows)
        RunCounts(total=2, success=1, error=0)
    """
    success = sum(1 for o in outcomes if o.status is RowStatus.SUCCESS)
    error = sum(1 for o in outcomes if o.status is RowStatus.ERROR)
    return RunCounts(
        total=len(outcomes) if total is None else total,
        success=success,
        error=error,
    )


def render_summary_message(counts: RunCounts) -> str:
    """Render the report message embedding the three counts."""
    return (
        f"Import finished: {counts.success} succeeded, "
        f"{counts.error} failed, {counts.total} total."
    )


def render_summary_line(counts: RunCounts) -> str:
    """Render the SUMMARY console line.

    Format:
    SUMMARY rows={total} success={success} error={error} skipped={skipped}
    """
    return (
        f"SUMMARY rows={counts.total} "
        f"success={counts.success} "
        f"error={counts.error} "
        f"skipped={counts.skipped}"
    )
