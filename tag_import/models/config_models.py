from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the catalog label/related-item importer.

These are the typed shapes produced by tag_import.config.loader after YAML
parsing and schema validation.
"""

DEFAULT_VISIBLE_STATUSES: tuple[str, ...] = ("active", "draft", "private")


@dataclass(frozen=True)
class CatalogTables:
    """Table names used by the PostgreSQL catalog backend."""
    items: str = "catalog_items"
    labels: str = "catalog_item_labels"
    relations: str = "catalog_item_relations"


@dataclass(frozen=True)
class CatalogConfig:
    """Catalog connection configuration.

    ``fixture`` selects the in-memory catalog loaded from a JSON file.
    Otherwise the PostgreSQL catalog is used; environment variables take
    precedence over the connection values here.
    """
    fixture: str | None = None
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None
    tables: CatalogTables = field(default_factory=CatalogTables)


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration for one import run."""
    delimiter: str = ","  # CSV field delimiter (1 char)
    separator: str = ","  # Separator inside Product Tags / Recommended Products cells
    relationship_field: str = ""  # Catalog field receiving resolved related ids
    visible_statuses: tuple[str, ...] = DEFAULT_VISIBLE_STATUSES
    trace: bool = False  # Attach TraceEvent list to the RunReport
    error_log_dir: str = "./logs"
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
