from .base import (
    ITEM_TYPE_PRODUCT,
    ITEM_TYPE_VARIATION,
    CatalogError,
    CatalogGateway,
    CatalogItem,
    LabelAssignmentError,
)
from .memory import InMemoryCatalog

__all__ = [
    "ITEM_TYPE_PRODUCT",
    "ITEM_TYPE_VARIATION",
    "CatalogError",
    "CatalogGateway",
    "CatalogItem",
    "InMemoryCatalog",
    "LabelAssignmentError",
]
