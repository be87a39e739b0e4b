# Shared pytest fixtures
from __future__ import annotations
import tempfile
from pathlib import Path
import pytest

from tag_import.catalog.base import ITEM_TYPE_PRODUCT, ITEM_TYPE_VARIATION, CatalogItem
from tag_import.catalog.memory import InMemoryCatalog
from tag_import.logging.init import reset_logging
from tag_import.models.config_models import ImportConfig

@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p

@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()

@pytest.fixture()
def sample_config_yaml() -> str:
    return """delimiter: ","
separator: ","
relationship_field: related_products
visible_statuses: [active, draft, private]
error_log_dir: ./logs
catalog:
  fixture: ./data/catalog.json
"""

@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg

CATALOG_ITEMS = [
    CatalogItem(101, "Blue Shirt", ITEM_TYPE_PRODUCT),
    CatalogItem(102, "Black Trousers", ITEM_TYPE_PRODUCT),
    CatalogItem(103, "Red Shoes", ITEM_TYPE_PRODUCT),
    CatalogItem(104, "Shirt", ITEM_TYPE_PRODUCT),
    CatalogItem(106, "Hidden Hat", ITEM_TYPE_PRODUCT, status="trash"),
    CatalogItem(107, "Draft Scarf", ITEM_TYPE_PRODUCT, status="draft"),
    CatalogItem(108, "Belt", ITEM_TYPE_PRODUCT),
    CatalogItem(201, "Blue Shirt - L", ITEM_TYPE_VARIATION, parent_id=101),
    CatalogItem(202, "Orphan Sock", ITEM_TYPE_VARIATION),
    CatalogItem(203, "Leather Belt - M", ITEM_TYPE_VARIATION, parent_id=108),
]

@pytest.fixture()
def catalog() -> InMemoryCatalog:
    return InMemoryCatalog(CATALOG_ITEMS)

@pytest.fixture()
def catalog_json(temp_workdir: Path) -> Path:
    """The same catalog as ``catalog``, as a fixture file for the CLI."""
    import json
    data = {
        "items": [
            {
                "id": i.id,
                "title": i.title,
                "type": i.item_type,
                "status": i.status,
                "parent_id": i.parent_id,
            }
            for i in CATALOG_ITEMS
        ],
    }
    path = temp_workdir / "data" / "catalog.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path

@pytest.fixture()
def import_config() -> ImportConfig:
    return ImportConfig(relationship_field="related_products")

@pytest.fixture()
def csv_file(temp_workdir: Path):
    def _make(content: str | bytes, name: str = "upload.csv") -> Path:
        path = temp_workdir / "data" / name
        if isinstance(content, str):
            content = content.encode("utf-8")
        path.write_bytes(content)
        return path
    return _make
