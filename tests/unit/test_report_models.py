from __future__ import annotations

from tag_import.models import RowOutcome, RowStatus, RunCounts, RunReport, TraceEvent
from tag_import.services.trace import Tracer


def test_run_counts_skipped_is_derived():
    counts = RunCounts(total=10, success=6, error=3)
    assert counts.skipped == 1
    assert counts.to_dict() == {"total": 10, "success": 6, "error": 3}


def test_rejected_report():
    report = RunReport.rejected("bad header")
    assert report.accepted is False
    assert report.outcomes == []
    assert report.counts == RunCounts(0, 0, 0)
    assert report.has_row_errors is False


def test_report_to_dict_rows_in_order():
    rows = [
        RowOutcome(1, "A", "x", "", RowStatus.SUCCESS, "1 label(s)"),
        RowOutcome(2, "B", "", "C", RowStatus.ERROR, "not found: C"),
    ]
    report = RunReport(True, "done", rows, RunCounts(2, 1, 1), [TraceEvent("row", "line=2")])
    data = report.to_dict()
    assert [r["id"] for r in data["rows"]] == [1, 2]
    assert data["rows"][1] == {
        "id": 2,
        "title": "B",
        "labels": "",
        "related": "C",
        "status": "error",
        "message": "not found: C",
    }
    assert data["trace"] == [{"stage": "row", "detail": "line=2"}]
    assert report.has_row_errors is True


def test_disabled_tracer_collects_nothing():
    tracer = Tracer()
    tracer.add("parse", "x")
    assert tracer.events == []


def test_tracer_events_are_a_copy():
    tracer = Tracer(enabled=True)
    tracer.add("parse", "x")
    tracer.events.clear()
    assert tracer.events == [TraceEvent("parse", "x")]
