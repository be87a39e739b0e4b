from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

import psycopg2
from psycopg2.extras import execute_values

from ..models.config_models import CatalogTables
from .base import CatalogError, CatalogGateway, CatalogItem, LabelAssignmentError

"""PostgreSQL catalog backend (psycopg2).

Expected tables (names configurable through ``catalog.tables``):

    catalog_items(id bigint primary key, title text, item_type text,
                  status text, parent_id bigint null)
    catalog_item_labels(item_id bigint, label text, primary key (item_id, label))
    catalog_item_relations(item_id bigint, field_name text, position int,
                           related_id bigint)

Each mutation runs in its own transaction (``with conn:`` commits on success
and rolls back on error), so one failing row never leaves another row's
changes half applied. A failed read rolls the connection back as well, so the
next row does not inherit an aborted transaction.
"""

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_.]*$")


def _check_identifier(name: str) -> str:
    # テーブル名は f-string で埋め込むため英数字/アンダースコアのみ許可
    if not _IDENTIFIER_RE.match(name):
        raise CatalogError(f"invalid table name: {name!r}")
    return name


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class PostgresCatalog(CatalogGateway):

    def __init__(self, conn: Any, tables: CatalogTables | None = None, page_size: int = 1000) -> None:
        tables = tables or CatalogTables()
        self._conn = conn
        self._items = _check_identifier(tables.items)
        self._labels = _check_identifier(tables.labels)
        self._relations = _check_identifier(tables.relations)
        self._page_size = page_size

    def _fetch_one(self, query: str, params: tuple[Any, ...]) -> tuple[Any, ...] | None:
        try:
            with self._conn.cursor() as cur:
                cur.execute(query, params)
                return cur.fetchone()
        except psycopg2.Error as e:
            # aborted トランザクションを残さない
            try:
                self._conn.rollback()
            except psycopg2.Error as rollback_e:
                raise CatalogError(f"{e} (rollback failed: {rollback_e})") from e
            raise CatalogError(str(e)) from e

    def get_item(self, item_id: int) -> CatalogItem | None:
        if item_id <= 0:
            return None
        row = self._fetch_one(
            f"SELECT id, title, item_type, status, parent_id FROM {self._items} WHERE id = %s",
            (item_id,),
        )
        if row is None:
            return None
        return CatalogItem(id=row[0], title=row[1] or "", item_type=row[2], status=row[3], parent_id=row[4])

    def get_parent_id(self, item_id: int) -> int | None:
        row = self._fetch_one(f"SELECT parent_id FROM {self._items} WHERE id = %s", (item_id,))
        if row is None or not row[0]:
            return None
        return int(row[0])

    def find_exact_by_title(self, title: str, item_type: str, statuses: Sequence[str]) -> int | None:
        row = self._fetch_one(
            f"SELECT id FROM {self._items} "
            "WHERE title = %s AND item_type = %s AND status = ANY(%s) "
            "ORDER BY id LIMIT 1",
            (title, item_type, list(statuses)),
        )
        return int(row[0]) if row else None

    def find_by_substring(self, fragment: str, item_type: str, statuses: Sequence[str]) -> int | None:
        row = self._fetch_one(
            f"SELECT id FROM {self._items} "
            "WHERE title LIKE %s ESCAPE '\\' AND item_type = %s AND status = ANY(%s) "
            "ORDER BY id LIMIT 1",
            ("%" + _escape_like(fragment) + "%", item_type, list(statuses)),
        )
        return int(row[0]) if row else None

    def set_labels(self, item_id: int, labels: Sequence[str], additive: bool = True) -> list[str]:
        rows = [(item_id, label) for label in labels]
        try:
            with self._conn:
                with self._conn.cursor() as cur:
                    if not additive:
                        cur.execute(f"DELETE FROM {self._labels} WHERE item_id = %s", (item_id,))
                    if rows:
                        execute_values(
                            cur,
                            f"INSERT INTO {self._labels} (item_id, label) VALUES %s "
                            "ON CONFLICT DO NOTHING",
                            rows,
                            page_size=self._page_size,
                        )
                    cur.execute(
                        f"SELECT label FROM {self._labels} WHERE item_id = %s ORDER BY label",
                        (item_id,),
                    )
                    return [r[0] for r in cur.fetchall()]
        except psycopg2.Error as e:
            raise LabelAssignmentError(str(e)) from e

    def set_related_items(self, field_name: str, related_ids: Sequence[int], item_id: int) -> None:
        rows = [(item_id, field_name, pos, rid) for pos, rid in enumerate(related_ids)]
        try:
            with self._conn:
                with self._conn.cursor() as cur:
                    cur.execute(
                        f"DELETE FROM {self._relations} WHERE item_id = %s AND field_name = %s",
                        (item_id, field_name),
                    )
                    if rows:
                        execute_values(
                            cur,
                            f"INSERT INTO {self._relations} (item_id, field_name, position, related_id) VALUES %s",
                            rows,
                            page_size=self._page_size,
                        )
        except psycopg2.Error as e:
            raise CatalogError(str(e)) from e
