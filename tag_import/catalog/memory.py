from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

from .base import (
    ITEM_TYPE_PRODUCT,
    CatalogGateway,
    CatalogItem,
    LabelAssignmentError,
)

"""In-memory catalog.

Backs dry runs (``catalog.fixture`` / CATALOG_FIXTURE) and the test suite.
Fixture JSON layout:

    {
      "items": [
        {"id": 101, "title": "Blue Shirt", "type": "product", "status": "active"},
        {"id": 201, "title": "Blue Shirt - L", "type": "variation", "parent_id": 101}
      ],
      "labels": {"101": ["sale"]},
      "related": {"101": {"related_products": [102]}}
    }

Title lookups are case-sensitive and return the lowest matching id.
"""

MAX_LABEL_LENGTH = 200


class InMemoryCatalog(CatalogGateway):

    def __init__(self, items: Iterable[CatalogItem] = ()) -> None:
        self._items: dict[int, CatalogItem] = {}
        self.labels: dict[int, list[str]] = {}
        self.related: dict[int, dict[str, list[int]]] = {}
        # title lookups performed (exact + substring)
        self.lookup_count = 0
        for item in items:
            self.add_item(item)

    @classmethod
    def from_json(cls, path: str | Path) -> InMemoryCatalog:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InMemoryCatalog:
        catalog = cls(
            CatalogItem(
                id=int(raw["id"]),
                title=str(raw.get("title", "")),
                item_type=raw.get("type", ITEM_TYPE_PRODUCT),
                status=raw.get("status", "active"),
                parent_id=int(raw["parent_id"]) if raw.get("parent_id") else None,
            )
            for raw in data.get("items", [])
        )
        for item_id, labels in data.get("labels", {}).items():
            catalog.labels[int(item_id)] = list(labels)
        for item_id, fields in data.get("related", {}).items():
            catalog.related[int(item_id)] = {name: [int(i) for i in ids] for name, ids in fields.items()}
        return catalog

    def add_item(self, item: CatalogItem) -> None:
        self._items[item.id] = item

    def get_item(self, item_id: int) -> CatalogItem | None:
        return self._items.get(item_id)

    def get_parent_id(self, item_id: int) -> int | None:
        item = self._items.get(item_id)
        if item is None:
            return None
        return item.parent_id or None

    def _candidates(self, item_type: str, statuses: Sequence[str]) -> list[CatalogItem]:
        allowed = set(statuses)
        return sorted(
            (i for i in self._items.values() if i.item_type == item_type and i.status in allowed),
            key=lambda i: i.id,
        )

    def find_exact_by_title(self, title: str, item_type: str, statuses: Sequence[str]) -> int | None:
        self.lookup_count += 1
        for item in self._candidates(item_type, statuses):
            if item.title == title:
                return item.id
        return None

    def find_by_substring(self, fragment: str, item_type: str, statuses: Sequence[str]) -> int | None:
        self.lookup_count += 1
        for item in self._candidates(item_type, statuses):
            if fragment in item.title:
                return item.id
        return None

    def set_labels(self, item_id: int, labels: Sequence[str], additive: bool = True) -> list[str]:
        if item_id not in self._items:
            raise LabelAssignmentError(f"invalid item id {item_id}")
        for label in labels:
            if not label or len(label) > MAX_LABEL_LENGTH:
                raise LabelAssignmentError(f"invalid label: {label!r}")
        current = list(self.labels.get(item_id, [])) if additive else []
        for label in labels:
            if label not in current:
                current.append(label)
        self.labels[item_id] = current
        return list(current)

    def set_related_items(self, field_name: str, related_ids: Sequence[int], item_id: int) -> None:
        self.related.setdefault(item_id, {})[field_name] = list(related_ids)
