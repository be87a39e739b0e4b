from __future__ import annotations

import argparse
import dataclasses
import json
import os
import sys
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from pathlib import Path

from dotenv import load_dotenv

from tag_import.catalog.base import CatalogGateway
from tag_import.catalog.memory import InMemoryCatalog
from tag_import.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from tag_import.logging.error_log import ErrorLogBuffer
from tag_import.logging.init import log_summary, setup_logging
from tag_import.models.config_models import CatalogConfig, ImportConfig
from tag_import.models.row_outcome import RowStatus
from tag_import.models.run_report import RunReport
from tag_import.services.reconcile import process_file
from tag_import.services.summary import render_summary_line

"""CLI entrypoint.

Flow:
- Load .env and the YAML config (CLI flags override config values)
- Open the catalog (fixture JSON -> in-memory, otherwise PostgreSQL)
- Import one CSV file, flush the error log, optionally write a JSON report
- Log the SUMMARY line and map the run to an exit code
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

EXAMPLE_CSV = (
    "ID,Title,Product Tags,Recommended Products\n"
    '101,Blue Shirt,"tag1, tag2","Black Trousers, Red Shoes"\n'
    '102,Black Trousers,"sale, new","Blue Shirt"\n'
    '103,Red Shoes,"featured","Blue Shirt, Black Trousers"\n'
)


@contextmanager
def _db_connection(cfg: CatalogConfig):  # pragma: no cover (thin wrapper; needs a live database)
    """Provide a psycopg2 connection.

    Resolution order for connection parameters:
        1. DATABASE_URL / PGDSN (whole DSN)
        2. PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
        3. the ``catalog`` section of the config file
    """
    import psycopg2

    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or cfg.dsn
    if not dsn:
        host = os.getenv("PGHOST", cfg.host or "localhost")
        port = os.getenv("PGPORT", str(cfg.port) if cfg.port else "5432")
        user = os.getenv("PGUSER", cfg.user or "postgres")
        password = os.getenv("PGPASSWORD", cfg.password or "")
        database = os.getenv("PGDATABASE", cfg.database or "postgres")
        dsn = f"host={host} port={port} user={user} dbname={database}"
        if password:
            dsn += f" password={password}"

    conn = psycopg2.connect(dsn)
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def _open_catalog(cfg: ImportConfig) -> Iterator[CatalogGateway]:
    fixture = os.getenv("CATALOG_FIXTURE") or cfg.catalog.fixture
    if fixture:
        yield InMemoryCatalog.from_json(fixture)
        return

    from tag_import.catalog.postgres import PostgresCatalog

    with _db_connection(cfg.catalog) as conn:
        yield PostgresCatalog(conn, cfg.catalog.tables)


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env so that its connection settings win over the config file."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Import product labels and related items from a CSV file")
    p.add_argument("csv_path", nargs="?", type=Path, help="CSV file to import")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config path")
    p.add_argument("--delimiter", help="CSV field delimiter (overrides config)")
    p.add_argument("--separator", help="Separator inside list cells (overrides config)")
    p.add_argument("--relationship-field", help="Catalog field storing related items (overrides config)")
    p.add_argument("--report", type=Path, help="Write the JSON run report to this path")
    p.add_argument("--trace", action="store_true", help="Attach a diagnostic trace to the report")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--write-example", type=Path, metavar="PATH", help="Write an example CSV and exit")
    return p.parse_args(argv)


def _apply_overrides(cfg: ImportConfig, args: argparse.Namespace) -> ImportConfig:
    """Apply CLI flags on top of the loaded config.

    The delimiter/separator limits mirror config_schema.json.

    Raises:
        ConfigError: an override is out of range
    """
    changes: dict[str, object] = {}
    if args.delimiter is not None:
        if len(args.delimiter) != 1:
            raise ConfigError(f"--delimiter must be exactly one character: {args.delimiter!r}")
        changes["delimiter"] = args.delimiter
    if args.separator is not None:
        if not 1 <= len(args.separator) <= 5:
            raise ConfigError(f"--separator must be 1 to 5 characters: {args.separator!r}")
        changes["separator"] = args.separator
    if args.relationship_field is not None:
        changes["relationship_field"] = args.relationship_field.strip()
    if args.trace:
        changes["trace"] = True
    return dataclasses.replace(cfg, **changes) if changes else cfg


def write_example(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(EXAMPLE_CSV, encoding="utf-8")


def write_report(report: RunReport, *, output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(
        json.dumps(report.to_dict(), indent=2, ensure_ascii=False) + "\n", encoding="utf-8"
    )


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # 空リスト [] を渡されたときに sys.argv が混入しないよう None のときだけ読む
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)

    if args.debug:
        logger = setup_logging(debug=True)
        logger.debug("debug mode enabled")

    if args.write_example is not None:
        write_example(args.write_example)
        logger.info(f"example written: {args.write_example}")
        return EXIT_SUCCESS_ALL

    if args.csv_path is None:
        logger.error("no CSV file given")
        return EXIT_FATAL

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = _apply_overrides(load_config(args.config), args)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    logger.info(f"Importing {args.csv_path}")
    error_log = ErrorLogBuffer(cfg.error_log_dir)

    with ExitStack() as stack:
        try:
            catalog = stack.enter_context(_open_catalog(cfg))
        except Exception as e:
            logger.error(f"catalog: {e}")
            return EXIT_FATAL
        report = process_file(args.csv_path, cfg, catalog, error_log=error_log)

    try:
        log_path = error_log.flush()
    except OSError as e:
        logger.warning(f"could not write error log: {e}")
    else:
        if log_path is not None:
            logger.info(f"error log: {log_path}")

    if args.report is not None:
        write_report(report, output_path=args.report)
        logger.info(f"report written: {args.report}")

    if not report.accepted:
        logger.error(f"rejected: {report.message}")
        return EXIT_FATAL

    for outcome in report.outcomes:
        if outcome.status is RowStatus.ERROR:
            logger.warning(f"id={outcome.id} {outcome.message}")

    logger.info(report.message)
    summary_line = render_summary_line(report.counts)
    # log_summary が "SUMMARY " を付けるので除去
    log_summary(summary_line.removeprefix("SUMMARY "))

    if report.counts.error > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
