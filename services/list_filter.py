"""Client-side search, category filter and recency sort for fetched lists.

The same rules serve article browsing and diagnosis history: filtering is
pure and synchronous and never goes back to the store.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, List, Optional, Sequence, Tuple, TypeVar

ALL_CATEGORIES = "All"

EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)

T = TypeVar("T")


@dataclass(frozen=True)
class FilterFields:
    """Which attributes a record type exposes to search, category and sort."""

    search_fields: Tuple[str, ...]
    category_field: str
    timestamp_field: str = "created_at"


ARTICLE_FILTER = FilterFields(search_fields=("title", "summary", "category"), category_field="category")
HISTORY_FILTER = FilterFields(search_fields=("disease_label", "summary", "treatment"), category_field="severity")


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, Enum):
        value = value.value
    return str(value).lower()


def _sort_key(value: Any) -> datetime:
    if not isinstance(value, datetime):
        return EPOCH
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def matches_category(record: Any, category: Optional[str], fields: FilterFields) -> bool:
    """True when no category is selected or the record's category equals it (case-insensitive)."""
    if not category or not category.strip() or category.strip() == ALL_CATEGORIES:
        return True
    value = _text(getattr(record, fields.category_field, None))
    return bool(value) and value == category.strip().lower()


def matches_query(record: Any, query: Optional[str], fields: FilterFields) -> bool:
    """True when the query is blank or a substring of any search field (case-insensitive)."""
    needle = (query or "").strip().lower()
    if not needle:
        return True
    return any(needle in _text(getattr(record, field, None)) for field in fields.search_fields)


def sort_by_recency(records: Iterable[T], fields: FilterFields) -> List[T]:
    """Return records newest first; missing timestamps sort as the epoch."""
    return sorted(records, key=lambda r: _sort_key(getattr(r, fields.timestamp_field, None)), reverse=True)


def filter_records(
    records: Sequence[T],
    query: Optional[str],
    category: Optional[str],
    fields: FilterFields,
) -> List[T]:
    """Produce the filtered, newest-first view of an already fetched collection."""
    kept = [r for r in records if matches_category(r, category, fields) and matches_query(r, query, fields)]
    return sort_by_recency(kept, fields)
