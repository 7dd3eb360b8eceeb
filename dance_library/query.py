"""
In-memory search, facet filtering and sorting over scanned items.

Every function here is pure: the same input always gives the same output.
"""
import unicodedata
from typing import Iterable, List, Optional, Tuple

from . import config
from .models import FacetFilters, MediaItem


def name_key(name: str) -> Tuple[str, str]:
    """Case- and accent-insensitive ordering, raw text breaking remaining ties."""
    folded = unicodedata.normalize("NFKD", name or "")
    folded = "".join(ch for ch in folded if not unicodedata.combining(ch)).casefold()
    return folded, name or ""


def matches_search(item: MediaItem, search_text: str) -> bool:
    q = (search_text or "").strip().lower()
    if not q:
        return True
    haystack = " ".join([
        item.name,
        item.description or "",
        item.dance or "",
        item.style or "",
        item.class_level or "",
    ]).lower()
    return q in haystack


def _passes_facet(value: Optional[str], allowed: Iterable[str]) -> bool:
    allowed = set(allowed or ())
    if not allowed:
        return True
    return bool(value) and value in allowed


def matches_filters(item: MediaItem, filters: Optional[FacetFilters]) -> bool:
    if filters is None:
        return True
    return (_passes_facet(item.class_level, filters.classes)
            and _passes_facet(item.dance, filters.dances)
            and _passes_facet(item.style, filters.styles))


def sort_items(items: Iterable[MediaItem], sort_mode: str = config.SORT_AZ) -> List[MediaItem]:
    """
    az:         name ascending
    recent:     added_at descending, then name descending
    mostPlayed: play_count descending, then name ascending
    The path is always the final key so the order is total.
    """
    items = list(items)
    if sort_mode == config.SORT_AZ:
        return sorted(items, key=lambda i: (name_key(i.name), i.path))
    if sort_mode == config.SORT_RECENT:
        return sorted(items, key=lambda i: (i.added_at or 0, name_key(i.name), i.path), reverse=True)
    if sort_mode == config.SORT_MOST_PLAYED:
        return sorted(items, key=lambda i: (-(i.play_count or 0), name_key(i.name), i.path))
    raise ValueError(f"Unknown sort mode: {sort_mode!r} (expected one of {', '.join(config.SORT_MODES)})")


def query(items: Iterable[MediaItem],
          search_text: str = "",
          filters: Optional[FacetFilters] = None,
          sort_mode: str = config.SORT_AZ) -> List[MediaItem]:
    """Search, filter, then sort. Empty search and empty filters keep every item."""
    selected = [i for i in items if matches_search(i, search_text) and matches_filters(i, filters)]
    return sort_items(selected, sort_mode)


def facet_values(items: Iterable[MediaItem]) -> Tuple[List[str], List[str], List[str]]:
    """Sorted unique (classes, dances, styles) present in `items`."""
    classes, dances, styles = set(), set(), set()
    for item in items:
        if item.class_level:
            classes.add(item.class_level)
        if item.dance:
            dances.add(item.dance)
        if item.style:
            styles.add(item.style)
    return sorted(classes), sorted(dances), sorted(styles)
