"""Field-level normalization helpers used by CSV parsing and reconciliation."""

from __future__ import annotations

import re

_TAG_RE = re.compile(r"<[^>]*>")
_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]")
_WHITESPACE_RE = re.compile(r"\s+")
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


def sanitize_text(value: str | None) -> str:
    """Strip markup and control characters, collapse whitespace, trim.

    Line breaks and tabs count as control characters and become spaces.
    """

    if not value:
        return ""
    clean = _TAG_RE.sub("", value)
    clean = _CONTROL_RE.sub(" ", clean)
    clean = _WHITESPACE_RE.sub(" ", clean)
    return clean.strip()


def parse_item_id(value: str | None) -> int:
    """Parse an ID cell the lenient way.

    Leading whitespace is ignored and the leading run of digits (with an
    optional sign) is used, so ``"12abc"`` gives 12 and ``"12.7"`` gives 12.
    Anything without leading digits gives 0, which never matches a catalog
    item and therefore surfaces as "item not found" instead of a parse error.
    """

    if value is None:
        return 0
    match = _LEADING_INT_RE.match(value)
    if match is None:
        return 0
    return int(match.group(1))


def split_values(raw: str | None, separator: str) -> list[str]:
    """Split a list cell on ``separator``, trim pieces and drop empty ones."""

    if not raw:
        return []
    if not separator:
        pieces = [raw]
    else:
        pieces = raw.split(separator)
    return [piece.strip() for piece in pieces if piece.strip()]
