# src/async_mongo_query/base/options.py
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from pymongo import ASCENDING, DESCENDING

from .utils import snapshot

log = logging.getLogger(__name__)

SortSpec = Union[Mapping[str, Any], Sequence[Tuple[str, Any]]]

_DIRECTIONS = {"asc": ASCENDING, "ascending": ASCENDING,
               "desc": DESCENDING, "descending": DESCENDING}


def sort_direction(direction: Any) -> Any:
    """Maps "asc"/"desc" spellings to 1/-1; anything else passes through."""
    if isinstance(direction, str):
        return _DIRECTIONS.get(direction.lower(), direction)
    return direction


def normalize_sort(sort: SortSpec) -> Dict[str, Any]:
    """
    Accepts a mapping or PyMongo-style (field, direction) pairs and returns a
    field -> direction dict with string directions resolved to 1/-1.
    """
    if isinstance(sort, Mapping):
        return {name: sort_direction(direction) for name, direction in sort.items()}
    if isinstance(sort, (str, bytes)) or not isinstance(sort, Sequence):
        raise TypeError(
            f"sort_by requires a mapping or a list of (field, direction) pairs, "
            f"got {type(sort).__name__}"
        )
    normalized: Dict[str, Any] = {}
    for item in sort:
        if not isinstance(item, (tuple, list)) or len(item) != 2:
            raise TypeError(f"Invalid sort entry {item!r}; expected (field, direction)")
        normalized[item[0]] = sort_direction(item[1])
    return normalized


# --- Query Options ---
@dataclass
class QueryOptions:
    """Cross-cutting execution parameters collected by the builder."""

    limit: Optional[int] = None
    skip: Optional[int] = None
    sort: Dict[str, Any] = field(default_factory=dict)
    projection: Dict[str, int] = field(default_factory=dict)
    session: Any = None
    page: Optional[int] = None
    page_size: Optional[int] = None
    populated_fields: List[str] = field(default_factory=list)

    def __repr__(self) -> str:
        parts = []
        if self.limit is not None:
            parts.append(f"limit={self.limit!r}")
        if self.skip is not None:
            parts.append(f"skip={self.skip!r}")
        if self.sort:
            parts.append(f"sort={self.sort!r}")
        if self.projection:
            parts.append(f"projection={self.projection!r}")
        if self.page is not None:
            parts.append(f"page={self.page!r}")
            parts.append(f"page_size={self.page_size!r}")
        if self.populated_fields:
            parts.append(f"populated_fields={self.populated_fields!r}")
        if self.session is not None:
            parts.append("session=<bound>")
        return f"QueryOptions({', '.join(parts)})"

    def paginate(self, page: int, page_size: int) -> None:
        """Stores page state and derives skip/limit from it."""
        for name, value in (("page", page), ("page_size", page_size)):
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValueError(f"{name} must be an integer >= 1, got {value!r}")
        self.page = page
        self.page_size = page_size
        self.skip = (page - 1) * page_size
        self.limit = page_size
        log.debug(f"Pagination page={page} size={page_size} -> skip={self.skip}")

    def add_populated(self, fields: Sequence[str]) -> None:
        for name in fields:
            if name in self.populated_fields:
                log.debug(f"Field '{name}' already queued for population")
                continue
            self.populated_fields.append(name)

    def to_find_options(self, include_session: bool = True) -> Dict[str, Any]:
        """
        Options handed to ``Model.find``. Unset limit/skip and empty
        sort/projection are left out; the session is always forwarded.
        """
        native: Dict[str, Any] = {}
        if self.limit is not None:
            native["limit"] = self.limit
        if self.skip is not None:
            native["skip"] = self.skip
        if self.sort:
            native["sort"] = dict(self.sort)
        if self.projection:
            native["projection"] = dict(self.projection)
        if include_session:
            native["session"] = self.session
        return native

    def diagnostics(self) -> Dict[str, Any]:
        """Session-free copy for error context."""
        return snapshot(self.to_find_options(include_session=False))

    @property
    def has_find_modifiers(self) -> bool:
        return bool(
            self.limit is not None
            or self.skip is not None
            or self.sort
            or self.projection
            or self.populated_fields
        )
