"""
Name Resolver - maps free-text item names to catalog item ids.

Cascade (first hit wins):
| Step | Match     | Item type | Result        |
|------|-----------|-----------|---------------|
| 1    | cache     | -         | cached value  |
| 2    | exact     | product   | item id       |
| 3    | exact     | variation | parent id     |
| 4    | substring | product   | item id       |
| 5    | substring | variation | parent id     |
| 6    | -         | -         | None (cached) |

Exact matches are tried before substring matches so that "Shirt" picks the
item titled "Shirt" rather than "Shirt Blue". Variation hits resolve to the
parent because labels and related lists live on the parent item.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from ..catalog.base import ITEM_TYPE_PRODUCT, ITEM_TYPE_VARIATION, CatalogGateway
from ..csv.normalize import sanitize_text
from ..models.config_models import DEFAULT_VISIBLE_STATUSES
from .trace import Tracer

logger = logging.getLogger(__name__)


class NameResolver:
    """Resolve names against one catalog, memoizing every answer.

    The cache (case-folded name -> id or None) lives as long as the resolver;
    the reconciliation engine creates one resolver per run.
    """

    def __init__(
        self,
        catalog: CatalogGateway,
        statuses: Sequence[str] = DEFAULT_VISIBLE_STATUSES,
        tracer: Tracer | None = None,
    ) -> None:
        self._catalog = catalog
        self._statuses = tuple(statuses)
        self._tracer = tracer or Tracer(enabled=False)
        self._cache: dict[str, int | None] = {}
        self.cache_hits = 0

    def __len__(self) -> int:
        return len(self._cache)

    def resolve(self, name: str) -> int | None:
        """Return the id of the (parent) item matching ``name``, or None."""
        normalized = sanitize_text(name)
        key = normalized.casefold()

        if key in self._cache:
            self.cache_hits += 1
            cached = self._cache[key]
            self._tracer.add("resolve", f"name={normalized!r} cache_hit id={cached}")
            return cached

        if not normalized:
            # 空文字の部分一致は全件ヒットになるため検索しない
            self._cache[key] = None
            return None

        item_id, strategy = self._lookup(normalized)
        self._cache[key] = item_id
        if item_id is None:
            logger.debug("name not resolved: %r", normalized)
            self._tracer.add("resolve", f"name={normalized!r} not_found")
        else:
            self._tracer.add("resolve", f"name={normalized!r} strategy={strategy} id={item_id}")
        return item_id

    def _lookup(self, name: str) -> tuple[int | None, str | None]:
        # 2. exact title, top-level items
        item_id = self._catalog.find_exact_by_title(name, ITEM_TYPE_PRODUCT, self._statuses)
        if item_id:
            return item_id, "exact"

        # 3. exact title, variations -> parent
        parent_id = self._parent_of(
            self._catalog.find_exact_by_title(name, ITEM_TYPE_VARIATION, self._statuses)
        )
        if parent_id:
            return parent_id, "exact_variation"

        # 4. substring, top-level items
        item_id = self._catalog.find_by_substring(name, ITEM_TYPE_PRODUCT, self._statuses)
        if item_id:
            return item_id, "substring"

        # 5. substring, variations -> parent
        parent_id = self._parent_of(
            self._catalog.find_by_substring(name, ITEM_TYPE_VARIATION, self._statuses)
        )
        if parent_id:
            return parent_id, "substring_variation"

        return None, None

    def _parent_of(self, variation_id: int | None) -> int | None:
        # 親の無いバリエーションは未検出扱い (次の戦略へ進む)
        if not variation_id:
            return None
        return self._catalog.get_parent_id(variation_id)
