from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass

"""Catalog gateway interface.

The importer never talks to a storage technology directly. Everything it
needs from the catalog goes through CatalogGateway:

- fetch an item (and its parent) by id
- exact / substring title lookups, parameterized by item type and the
  visibility statuses that count as "visible"
- additive label assignment
- replacing the related-items list stored under a named field
"""

__all__ = [
    "ITEM_TYPE_PRODUCT",
    "ITEM_TYPE_VARIATION",
    "CatalogError",
    "LabelAssignmentError",
    "CatalogItem",
    "CatalogGateway",
]

ITEM_TYPE_PRODUCT = "product"
ITEM_TYPE_VARIATION = "variation"


class CatalogError(Exception):
    """Base exception for catalog read/write failures."""


class LabelAssignmentError(CatalogError):
    """Raised when the catalog refuses a label assignment."""


@dataclass(frozen=True)
class CatalogItem:
    id: int
    title: str
    item_type: str = ITEM_TYPE_PRODUCT
    status: str = "active"
    parent_id: int | None = None

    def is_variant(self) -> bool:
        return self.item_type == ITEM_TYPE_VARIATION

    def display_name(self) -> str:
        return self.title


class CatalogGateway(ABC):
    """Operations the reconciliation engine consumes from the catalog."""

    @abstractmethod
    def get_item(self, item_id: int) -> CatalogItem | None:
        """Return the item with ``item_id`` regardless of status, or None."""

    @abstractmethod
    def get_parent_id(self, item_id: int) -> int | None:
        """Return the parent id of a variant, None if it has none."""

    @abstractmethod
    def find_exact_by_title(self, title: str, item_type: str, statuses: Sequence[str]) -> int | None:
        """Return the lowest id whose title equals ``title`` exactly."""

    @abstractmethod
    def find_by_substring(self, fragment: str, item_type: str, statuses: Sequence[str]) -> int | None:
        """Return the lowest id whose title contains ``fragment``."""

    @abstractmethod
    def set_labels(self, item_id: int, labels: Sequence[str], additive: bool = True) -> list[str]:
        """Attach ``labels`` to the item and return its resulting labels.

        additive=True keeps existing labels; False replaces them.

        Raises:
            LabelAssignmentError: the catalog rejected the assignment
        """

    @abstractmethod
    def set_related_items(self, field_name: str, related_ids: Sequence[int], item_id: int) -> None:
        """Replace the related-items list stored in ``field_name`` on the item."""
