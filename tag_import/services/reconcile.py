from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import BinaryIO

from ..catalog.base import CatalogError, CatalogGateway
from ..csv.normalize import sanitize_text, split_values
from ..csv.reader import CsvStructureError, UnreadableInputError, read_records
from ..logging.error_log import ErrorLogBuffer
from ..models.config_models import ImportConfig
from ..models.error_record import ErrorRecord
from ..models.record import Record
from ..models.row_outcome import RowOutcome, RowStatus
from ..models.run_report import RunReport
from .progress import ProgressTracker
from .resolver import NameResolver
from .summary import render_summary_message, summarize_outcomes
from .trace import Tracer

logger = logging.getLogger(__name__)

"""Reconciliation engine for catalog label/related-item uploads.

This module coordinates one import run:

1. process_file / process_upload: upload checks, CSV parsing and the
   run-level rejections (nothing is written to the catalog when any of
   them fires)
2. ReconciliationEngine.apply: rows in input order, each an independent
   unit of work that ends as success, error or skipped
3. Aggregation of the outcomes into a RunReport
"""

MSG_ITEM_NOT_FOUND = "item not found"
MSG_NOTHING_TO_IMPORT = "nothing to import for this row"
MSG_VARIANT_WITHOUT_PARENT = "variant has no parent item"
MESSAGE_SEPARATOR = " | "


class ProcessingError(Exception):
    """Base exception for run-level rejections raised by this module."""


class InvalidUploadError(ProcessingError):
    """Raised when the upload is missing or is not a .csv file."""


class EmptyInputError(ProcessingError):
    def __init__(self) -> None:
        super().__init__("the CSV file is empty or has no data rows")


class MissingRelationshipFieldError(ProcessingError):
    def __init__(self) -> None:
        super().__init__(
            'the CSV contains the "Recommended Products" column but no relationship field name was configured'
        )


def _error_type(exc: Exception) -> str:
    """MissingHeaderError -> MISSING_HEADER"""
    name = type(exc).__name__.removesuffix("Error")
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).upper()


class ReconciliationEngine:
    """Apply parsed records to the catalog.

    One engine = one run: the name resolution cache is owned by the engine's
    resolver and is dropped with it.
    """

    def __init__(
        self,
        catalog: CatalogGateway,
        config: ImportConfig,
        *,
        tracer: Tracer | None = None,
        error_log: ErrorLogBuffer | None = None,
        source_name: str = "upload.csv",
    ) -> None:
        self._catalog = catalog
        self._config = config
        self._tracer = tracer or Tracer(enabled=config.trace)
        self._error_log = error_log
        self._source_name = source_name
        self.resolver = NameResolver(catalog, config.visible_statuses, tracer=self._tracer)

    def apply(self, records: list[Record], has_labels: bool, has_related: bool) -> RunReport:
        """Process every record in order and build the RunReport.

        Raises:
            MissingRelationshipFieldError: related column present without a
                configured field name (checked before any row is touched)
        """
        if has_related and not self._config.relationship_field.strip():
            raise MissingRelationshipFieldError()

        outcomes: list[RowOutcome] = []
        success = 0
        errors = 0
        with ProgressTracker(len(records)) as progress:
            for record in records:
                outcome = self._process_record(record, has_labels, has_related)
                outcomes.append(outcome)
                if outcome.status is RowStatus.SUCCESS:
                    success += 1
                elif outcome.status is RowStatus.ERROR:
                    errors += 1
                self._tracer.add("row", f"line={record.line} id={record.id} status={outcome.status.value}")
                progress.advance(success=success, error=errors)

        counts = summarize_outcomes(outcomes, total=len(records))
        logger.debug(
            "run finished total=%d success=%d error=%d cached_names=%d cache_hits=%d",
            counts.total,
            counts.success,
            counts.error,
            len(self.resolver),
            self.resolver.cache_hits,
        )
        return RunReport(
            accepted=True,
            message=render_summary_message(counts),
            outcomes=outcomes,
            counts=counts,
            trace=self._tracer.events,
        )

    def _process_record(self, record: Record, has_labels: bool, has_related: bool) -> RowOutcome:
        try:
            item = self._catalog.get_item(record.id) if record.id > 0 else None
        except CatalogError as e:
            self._record_error(record, "CATALOG_READ_ERROR", str(e))
            return self._outcome(record, record.title, RowStatus.ERROR, f"catalog error: {e}")

        if item is None:
            self._record_error(record, "ITEM_NOT_FOUND", MSG_ITEM_NOT_FOUND)
            return self._outcome(record, record.title, RowStatus.ERROR, MSG_ITEM_NOT_FOUND)

        # バリエーションは親に対して更新する
        target_id = item.id
        if item.is_variant():
            if not item.parent_id:
                self._record_error(record, "VARIANT_WITHOUT_PARENT", MSG_VARIANT_WITHOUT_PARENT)
                return self._outcome(record, item.display_name(), RowStatus.ERROR, MSG_VARIANT_WITHOUT_PARENT)
            target_id = item.parent_id
            self._tracer.add("row", f"line={record.line} variation {item.id} -> parent {target_id}")

        messages: list[str] = []
        row_ok = True

        if has_labels and record.labels_raw:
            row_ok = self._apply_labels(record, target_id, messages) and row_ok

        if has_related and record.related_raw:
            row_ok = self._apply_related(record, target_id, messages) and row_ok

        if not messages:
            return self._outcome(record, item.display_name(), RowStatus.SKIPPED, MSG_NOTHING_TO_IMPORT)

        status = RowStatus.SUCCESS if row_ok else RowStatus.ERROR
        return self._outcome(record, item.display_name(), status, MESSAGE_SEPARATOR.join(messages))

    def _apply_labels(self, record: Record, target_id: int, messages: list[str]) -> bool:
        labels = [sanitize_text(v) for v in split_values(record.labels_raw, self._config.separator)]
        labels = [label for label in labels if label]
        if not labels:
            return True
        try:
            self._catalog.set_labels(target_id, labels, additive=True)
        except CatalogError as e:
            messages.append(f"labels error: {e}")
            self._record_error(record, "LABELS_ERROR", str(e))
            return False
        self._tracer.add("labels", f"item={target_id} labels={labels}")
        messages.append(f"{len(labels)} label(s)")
        return True

    def _apply_related(self, record: Record, target_id: int, messages: list[str]) -> bool:
        names = split_values(record.related_raw, self._config.separator)
        if not names:
            return True

        resolved: list[int] = []
        missing: list[str] = []
        try:
            for name in names:
                related_id = self.resolver.resolve(name)
                if related_id is None:
                    missing.append(name)
                elif related_id not in resolved:
                    resolved.append(related_id)
            if resolved:
                self._catalog.set_related_items(self._config.relationship_field, resolved, target_id)
        except CatalogError as e:
            messages.append(f"related items error: {e}")
            self._record_error(record, "RELATED_ITEMS_ERROR", str(e))
            return False

        ok = True
        if resolved:
            self._tracer.add("related", f"item={target_id} field={self._config.relationship_field} ids={resolved}")
            messages.append(f"{len(resolved)} related item(s)")
        if missing:
            messages.append("not found: " + ", ".join(missing))
            self._record_error(record, "RELATED_NOT_FOUND", ", ".join(missing))
            # 1件でも解決できていれば成功扱い
            ok = bool(resolved)
        return ok

    def _outcome(self, record: Record, title: str, status: RowStatus, message: str) -> RowOutcome:
        logger.debug("line=%d id=%d status=%s message=%s", record.line, record.id, status.value, message)
        return RowOutcome(
            id=record.id,
            title=title,
            labels_raw=record.labels_raw,
            related_raw=record.related_raw,
            status=status,
            message=message,
        )

    def _record_error(self, record: Record, error_type: str, message: str) -> None:
        if self._error_log is None:
            return
        self._error_log.append(
            ErrorRecord.create(
                file=self._source_name,
                line=record.line,
                item_id=record.id,
                error_type=error_type,
                message=message,
            )
        )


def _reject(
    exc: Exception,
    tracer: Tracer,
    error_log: ErrorLogBuffer | None,
    source_name: str,
) -> RunReport:
    logger.debug("upload rejected file=%s reason=%s", source_name, exc)
    if error_log is not None:
        error_log.append(
            ErrorRecord.create(
                file=source_name,
                line=-1,
                item_id=None,
                error_type=_error_type(exc),
                message=str(exc),
            )
        )
    return RunReport.rejected(str(exc), tracer.events)


def process_upload(
    stream: BinaryIO | bytes,
    config: ImportConfig,
    catalog: CatalogGateway,
    *,
    source_name: str = "upload.csv",
    error_log: ErrorLogBuffer | None = None,
) -> RunReport:
    """Parse an upload and apply it to the catalog.

    Run-level problems (unreadable stream, header problems, empty file,
    missing relationship field) produce ``accepted=False`` and leave the
    catalog untouched. Once those checks pass every row ends in an outcome.
    """
    tracer = Tracer(enabled=config.trace)
    try:
        parsed = read_records(stream, delimiter=config.delimiter)
        tracer.add(
            "parse",
            f"columns={parsed.columns} records={len(parsed.records)} "
            f"labels_column={parsed.has_labels_column} related_column={parsed.has_related_column}",
        )
        if not parsed.records:
            raise EmptyInputError()
        if parsed.has_related_column and not config.relationship_field.strip():
            raise MissingRelationshipFieldError()
    except (CsvStructureError, ProcessingError) as e:
        return _reject(e, tracer, error_log, source_name)

    engine = ReconciliationEngine(
        catalog,
        config,
        tracer=tracer,
        error_log=error_log,
        source_name=source_name,
    )
    return engine.apply(parsed.records, parsed.has_labels_column, parsed.has_related_column)


def process_file(
    path: str | Path,
    config: ImportConfig,
    catalog: CatalogGateway,
    *,
    error_log: ErrorLogBuffer | None = None,
) -> RunReport:
    """Run an import from a local .csv file."""
    path = Path(path)
    tracer = Tracer(enabled=config.trace)
    if not path.is_file():
        return _reject(InvalidUploadError(f"file not found: {path}"), tracer, error_log, path.name)
    if path.suffix.lower() != ".csv":
        return _reject(InvalidUploadError("the file must be a CSV (.csv)"), tracer, error_log, path.name)
    try:
        with path.open("rb") as fh:
            return process_upload(fh, config, catalog, source_name=path.name, error_log=error_log)
    except OSError as e:
        return _reject(UnreadableInputError(f"could not read the CSV file: {e}"), tracer, error_log, path.name)
