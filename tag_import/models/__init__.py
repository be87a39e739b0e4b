"""Domain models for the catalog label/related-item importer.

This package contains the domain model classes shared by the reader, the
reconciliation engine and the CLI.
"""

from .config_models import CatalogConfig, CatalogTables, ImportConfig
from .error_record import ErrorRecord
from .record import Record
from .row_outcome import RowOutcome, RowStatus
from .run_report import RunCounts, RunReport, TraceEvent

__all__ = [
    # Configuration models
    "CatalogConfig",
    "CatalogTables",
    "ImportConfig",
    # Processing models
    "ErrorRecord",
    "Record",
    "RowOutcome",
    "RowStatus",
    "RunCounts",
    "RunReport",
    "TraceEvent",
]
