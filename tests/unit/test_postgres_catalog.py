from __future__ import annotations

from unittest.mock import Mock

import psycopg2
import pytest

from tag_import.catalog.base import CatalogError, LabelAssignmentError
from tag_import.models.config_models import CatalogTables


class DummyCursor:
    def __init__(self, rows: list[tuple] | None = None, fail: Exception | None = None) -> None:
        self.executed: list[tuple[str, tuple]] = []
        self.rows = rows or []
        self.fail = fail
    def __enter__(self):
        return self
    def __exit__(self, *exc):
        return False
    def execute(self, sql, params=None):
        if self.fail is not None:
            raise self.fail
        self.executed.append((sql, params))
    def fetchone(self):
        return self.rows[0] if self.rows else None
    def fetchall(self):
        return self.rows


class DummyConn:
    def __init__(self, cursor: DummyCursor) -> None:
        self.cur = cursor
        self.commits = 0
        self.rollbacks = 0
    def cursor(self):
        return self.cur
    def rollback(self):
        self.rollbacks += 1
    def __enter__(self):
        return self
    def __exit__(self, exc_type, *rest):
        if exc_type is None:
            self.commits += 1
        else:
            self.rollback()
        return False


@pytest.fixture(autouse=True)
def patch_execute_values(monkeypatch):
    import tag_import.catalog.postgres as pg
    calls = []
    def fake_execute_values(cursor, sql, rows, page_size=1000, template=None):  # noqa: D401
        calls.append((sql, list(rows)))
    monkeypatch.setattr(pg, "execute_values", fake_execute_values)
    return calls


def _catalog(cursor: DummyCursor, tables: CatalogTables | None = None):
    from tag_import.catalog.postgres import PostgresCatalog
    return PostgresCatalog(DummyConn(cursor), tables)


def test_get_item_maps_row():
    cur = DummyCursor(rows=[(201, "Blue Shirt - L", "variation", "active", 101)])
    item = _catalog(cur).get_item(201)
    assert item.id == 201 and item.is_variant() and item.parent_id == 101
    sql, params = cur.executed[0]
    assert "FROM catalog_items WHERE id = %s" in sql
    assert params == (201,)


def test_get_item_non_positive_id_skips_query():
    cur = DummyCursor()
    assert _catalog(cur).get_item(0) is None
    assert cur.executed == []


def test_get_parent_id_none_when_missing():
    assert _catalog(DummyCursor(rows=[(None,)])).get_parent_id(5) is None
    assert _catalog(DummyCursor(rows=[(7,)])).get_parent_id(5) == 7


def test_find_exact_uses_statuses_and_lowest_id():
    cur = DummyCursor(rows=[(3,)])
    assert _catalog(cur).find_exact_by_title("Hat", "product", ("active", "draft")) == 3
    sql, params = cur.executed[0]
    assert "status = ANY(%s)" in sql and "ORDER BY id LIMIT 1" in sql
    assert params == ("Hat", "product", ["active", "draft"])


def test_find_by_substring_escapes_like_wildcards():
    cur = DummyCursor()
    assert _catalog(cur).find_by_substring("50%_off", "product", ("active",)) is None
    _, params = cur.executed[0]
    assert params[0] == "%50\\%\\_off%"


def test_set_labels_inserts_and_commits(patch_execute_values):
    cur = DummyCursor(rows=[("blue",), ("red",)])
    cat = _catalog(cur)
    assert cat.set_labels(101, ["red", "blue"]) == ["blue", "red"]
    sql, rows = patch_execute_values[0]
    assert "INSERT INTO catalog_item_labels" in sql and "ON CONFLICT DO NOTHING" in sql
    assert rows == [(101, "red"), (101, "blue")]
    assert cat._conn.commits == 1
    assert not any("DELETE" in q for q, _ in cur.executed)


def test_set_labels_replace_mode_deletes_first():
    cur = DummyCursor(rows=[])
    _catalog(cur).set_labels(101, ["x"], additive=False)
    assert cur.executed[0][0].startswith("DELETE FROM catalog_item_labels")


def test_set_labels_database_error_becomes_label_error():
    cur = DummyCursor(fail=psycopg2.Error("boom"))
    cat = _catalog(cur)
    with pytest.raises(LabelAssignmentError):
        cat.set_labels(101, ["x"], additive=False)
    assert cat._conn.rollbacks == 1


def test_set_related_items_replaces_rows(patch_execute_values):
    cur = DummyCursor()
    _catalog(cur, CatalogTables(relations="rel")).set_related_items("related_products", [103, 102], 101)
    sql, params = cur.executed[0]
    assert sql.startswith("DELETE FROM rel WHERE item_id = %s AND field_name = %s")
    assert params == (101, "related_products")
    assert patch_execute_values[0][1] == [
        (101, "related_products", 0, 103),
        (101, "related_products", 1, 102),
    ]


def test_read_error_becomes_catalog_error():
    cat = _catalog(DummyCursor(fail=psycopg2.Error("down")))
    with pytest.raises(CatalogError):
        cat.get_item(1)
    # aborted トランザクションを残さない
    assert cat._conn.rollbacks == 1


def test_failed_read_does_not_poison_later_reads():
    cur = DummyCursor(rows=[(102, "Black Trousers", "product", "active", None)], fail=psycopg2.Error("statement timeout"))
    cat = _catalog(cur)
    with pytest.raises(CatalogError):
        cat.get_item(101)
    cur.fail = None
    assert cat.get_item(102).title == "Black Trousers"
    assert cat._conn.rollbacks == 1


def test_rollback_failure_is_reported():
    cat = _catalog(DummyCursor(fail=psycopg2.Error("down")))
    cat._conn.rollback = Mock(side_effect=psycopg2.InterfaceError("connection already closed"))
    with pytest.raises(CatalogError) as e:
        cat.get_item(1)
    assert "rollback failed: connection already closed" in str(e.value)


def test_invalid_table_name_rejected():
    with pytest.raises(CatalogError):
        _catalog(DummyCursor(), CatalogTables(items="items; DROP TABLE x"))
