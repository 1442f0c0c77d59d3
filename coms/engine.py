"""
Collection view engine (COMS)
=============================

This is the heart of the project. Every entity list (donors, projects,
beneficiaries, staff, events, donations) is shown through the same pipeline:

    visible = paginate(sort(search(filter(records))), page)

1) Filters  -> keep records matching every active filter (AND)
2) Search   -> keep records whose searchable text contains the query
3) Sort     -> stable merge sort on one field, ascending or descending
4) Paginate -> one fixed-size window of the sorted result

The pipeline stages are pure functions and never raise for data-shape
reasons: an unknown field is a no-op, an empty result is a valid result.

On top of them:
- `ViewState` holds the caller's view settings (filters/search/sort/page);
  changing filters, search or sort always sends you back to page 0.
- `CollectionView` binds a repository + field config + state, caches the
  sorted result until something changes, and keeps undo/redo stacks.
- `Workspace` holds one view per entity for an interactive session.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
import math

from .config import DEFAULT_PAGE_SIZE
from .dsa import merge_sort
from .fields import (ASCENDING, DATE, DESCENDING, EQUALS, MEMBER, RANGE, TEXT,
                     EntityConfig, Range, SortSpec, ENTITY_CONFIGS)
from .log import get_logger
from .query_lang import compile_filters

log = get_logger(__name__)

ALL = "All"


# ---------------- Field access / comparison ----------------
def get_field(record: Any, name: str) -> Any:
    """Read a field from a mapping or an attribute-style record (None if absent)."""
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def _has_field(records: Sequence[Any], name: str) -> bool:
    for r in records:
        if isinstance(r, Mapping):
            if name in r:
                return True
        elif hasattr(r, name):
            return True
    return False


def is_unset(value: Any) -> bool:
    """True for the "match everything" filter values: None, "", "All", open Range."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip() or value.strip() == ALL
    if isinstance(value, Range):
        return value.low is None and value.high is None
    return False


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def _parse_date(s: str) -> Optional[datetime]:
    """ISO date or date-time as a naive UTC datetime; a bare date is midnight."""
    s = s.strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def compare_values(a: Any, b: Any, mode: str = TEXT) -> int:
    """Three-way compare: numbers numerically, ISO dates by timestamp, else code-point order."""
    if _is_number(a) and _is_number(b):
        return (a > b) - (a < b)
    if mode == DATE and isinstance(a, str) and isinstance(b, str):
        da, db = _parse_date(a), _parse_date(b)
        if da is not None and db is not None:
            return (da > db) - (da < db)
    sa, sb = str(a), str(b)
    return (sa > sb) - (sa < sb)


def _equal(a: Any, b: Any) -> bool:
    if a == b:
        return True
    # "3" typed in the CLI against an integer field
    if _is_number(a) and isinstance(b, str):
        a, b = b, a
    if isinstance(a, str) and _is_number(b):
        try:
            return float(a) == b
        except ValueError:
            return False
    return False


def _in_range(value: Any, rng: Range, mode: str) -> bool:
    if value is None:
        return False
    if rng.low is not None and compare_values(value, rng.low, mode) < 0:
        return False
    if rng.high is not None and compare_values(value, rng.high, mode) > 0:
        return False
    return True


def _matches(value: Any, wanted: Any, match: Optional[str], mode: str) -> bool:
    if isinstance(wanted, Range):
        return _in_range(value, wanted, mode)
    if value is None:
        return False
    if match is None:
        match = MEMBER if isinstance(value, (list, tuple, set, frozenset)) else EQUALS
    if match == MEMBER:
        if isinstance(value, (list, tuple, set, frozenset)):
            return any(_equal(v, wanted) for v in value)
        return _equal(value, wanted)
    return _equal(value, wanted)


# ---------------- Pipeline stages ----------------
def apply_filters(records: Iterable[Any], filters: Mapping[str, Any],
                  config: Optional[EntityConfig] = None) -> List[Any]:
    """Keep records matching every active filter, preserving order.

    With a config, filters on fields it does not declare filterable are
    ignored. Without one, filters on fields no record carries are ignored.
    """
    records = list(records)
    active: List[Tuple[str, Optional[str], str, Any]] = []
    for name, wanted in (filters or {}).items():
        if is_unset(wanted):
            continue
        if config is not None:
            spec = config.field(name)
            if spec is None or spec.match is None:
                log.debug("%s: ignoring filter on unknown field %r", config.name, name)
                continue
            match = RANGE if isinstance(wanted, Range) else spec.match
            active.append((name, match, spec.compare, wanted))
        elif _has_field(records, name):
            mode = DATE if isinstance(wanted, Range) and _looks_like_date(wanted) else TEXT
            active.append((name, None, mode, wanted))
    if not active:
        return records
    return [r for r in records
            if all(_matches(get_field(r, n), w, m, c) for n, m, c, w in active)]


def _looks_like_date(rng: Range) -> bool:
    ends = [v for v in (rng.low, rng.high) if v is not None]
    return bool(ends) and all(isinstance(v, str) and _parse_date(v) is not None for v in ends)


def apply_search(records: Iterable[Any], query: Optional[str], fields: Sequence[str]) -> List[Any]:
    """Case-insensitive substring search across `fields` (blank query = no-op)."""
    records = list(records)
    q = (query or "").strip().lower()
    if not q:
        return records
    out: List[Any] = []
    for r in records:
        for f in fields:
            v = get_field(r, f)
            if v is not None and q in str(v).lower():
                out.append(r)
                break
    return out


def apply_sort(records: Iterable[Any], sort: Optional[SortSpec],
               config: Optional[EntityConfig] = None) -> List[Any]:
    """Stable sort on `sort.key`; unknown keys leave the order unchanged.

    Records missing the key sort last in both directions.
    """
    records = list(records)
    if sort is None:
        return records
    mode = TEXT
    if config is not None:
        spec = config.field(sort.key)
        if spec is None or not spec.sortable:
            log.debug("%s: ignoring sort on unknown field %r", config.name, sort.key)
            return records
        mode = spec.compare
    elif not _has_field(records, sort.key):
        return records

    key = sort.key
    sign = -1 if sort.direction == DESCENDING else 1

    def cmp(a: Any, b: Any) -> int:
        va, vb = get_field(a, key), get_field(b, key)
        if va is None or vb is None:
            return (va is None) - (vb is None)
        return sign * compare_values(va, vb, mode)

    return merge_sort(records, cmp)


def toggle_sort(current: Optional[SortSpec], key: str) -> SortSpec:
    """Same key while ascending -> descending; anything else -> ascending on `key`."""
    if current is not None and current.key == key and current.direction == ASCENDING:
        return SortSpec(key, DESCENDING)
    return SortSpec(key, ASCENDING)


def paginate(records: Sequence[Any], page_size: int, page_index: int) -> List[Any]:
    """Slice [page_index*page_size, (page_index+1)*page_size); out of range -> []."""
    if page_size <= 0 or page_index < 0:
        return []
    start = page_index * page_size
    return list(records[start:start + page_size])


def page_count(total: int, page_size: int) -> int:
    if page_size <= 0:
        return 0
    return math.ceil(total / page_size)


def build_view(records: Iterable[Any], filters: Mapping[str, Any], search: Optional[str],
               sort: Optional[SortSpec], config: Optional[EntityConfig] = None,
               search_fields: Optional[Sequence[str]] = None) -> List[Any]:
    """filter -> search -> sort, without pagination."""
    if search_fields is None:
        search_fields = config.search_fields if config is not None else ()
    rows = apply_filters(records, filters, config)
    rows = apply_search(rows, search, search_fields)
    return apply_sort(rows, sort, config)


# ---------------- View state (caller side) ----------------
def _freeze(v: Any) -> Any:
    if isinstance(v, (list, set)):
        return tuple(v)
    return v


@dataclass
class ViewState:
    """Current filters, search text, sort and page of one list."""
    filters: Dict[str, Any] = field(default_factory=dict)
    search: str = ""
    sort: Optional[SortSpec] = None
    page: int = 0

    def set_filter(self, name: str, value: Any) -> None:
        if is_unset(value):
            self.filters.pop(name, None)
        else:
            self.filters[name] = value
        self.page = 0

    def clear_filters(self) -> None:
        self.filters.clear()
        self.page = 0

    def set_search(self, query: Optional[str]) -> None:
        self.search = query or ""
        self.page = 0

    def request_sort(self, key: str) -> None:
        self.sort = toggle_sort(self.sort, key)
        self.page = 0

    def set_sort(self, sort: Optional[SortSpec]) -> None:
        self.sort = sort
        self.page = 0

    def copy(self) -> "ViewState":
        return ViewState(filters=dict(self.filters), search=self.search, sort=self.sort, page=self.page)

    def cache_key(self) -> tuple:
        """Everything that affects the sorted result (the page does not)."""
        return (tuple(sorted((k, _freeze(v)) for k, v in self.filters.items())),
                self.search.strip().lower(), self.sort)


@dataclass
class ViewResult:
    records: List[Any]
    total: int
    page: int
    page_size: int
    page_count: int
    state: ViewState


@dataclass
class CollectionView:
    """A repository seen through one set of view settings.

    `source` is a Repository (anything with `all()` and `revision`) or a plain
    sequence. Only repositories get memoized; plain sequences are recomputed
    on every read because in-place edits cannot be detected.
    """
    source: Any
    config: EntityConfig
    page_size: int = DEFAULT_PAGE_SIZE
    state: ViewState = field(init=False)

    # Stacks for undo/redo (store snapshots of the view state)
    _undo: List[ViewState] = field(default_factory=list, init=False, repr=False)
    _redo: List[ViewState] = field(default_factory=list, init=False, repr=False)
    _cache_key: Any = field(default=None, init=False, repr=False)
    _cache: List[Any] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self) -> None:
        self.state = ViewState(sort=self.config.default_sort)

    # ---------------- History (Stacks) ----------------
    def _push_history(self) -> None:
        self._undo.append(self.state.copy())
        self._redo.clear()

    def undo(self) -> bool:
        if not self._undo:
            return False
        self._redo.append(self.state.copy())
        self.state = self._undo.pop()
        return True

    def redo(self) -> bool:
        if not self._redo:
            return False
        self._undo.append(self.state.copy())
        self.state = self._redo.pop()
        return True

    # ---------------- Changing the view ----------------
    def reset(self) -> None:
        """Back to no filters, no search and the entity's default sort."""
        self._push_history()
        self.state = ViewState(sort=self.config.default_sort)

    def filter(self, name: str, value: Any) -> None:
        self._push_history()
        self.state.set_filter(name, value)

    def clear_filters(self) -> None:
        self._push_history()
        self.state.clear_filters()

    def where(self, expr: str) -> None:
        """Apply a filter expression (e.g. `status == Active and age >= 18`)."""
        compiled = compile_filters(expr, self.config)
        self._push_history()
        for name, value in compiled.items():
            self.state.set_filter(name, value)

    def search(self, query: Optional[str]) -> None:
        self._push_history()
        self.state.set_search(query)

    def sort_by(self, key: str) -> SortSpec:
        """Header-click semantics: same key toggles direction, new key starts ascending."""
        self._push_history()
        self.state.request_sort(key)
        return self.state.sort

    def set_sort(self, sort: Optional[SortSpec]) -> None:
        self._push_history()
        self.state.set_sort(sort)

    def goto(self, page: int) -> int:
        """Move to `page`, clamped to the pages that exist; returns the page shown."""
        last = max(self.page_count - 1, 0)
        self.state.page = min(max(page, 0), last)
        return self.state.page

    def next_page(self) -> int:
        return self.goto(self.state.page + 1)

    def prev_page(self) -> int:
        return self.goto(self.state.page - 1)

    # ---------------- Reading the view ----------------
    def _source_records(self) -> List[Any]:
        if hasattr(self.source, "all"):
            return self.source.all()
        return list(self.source)

    def rows(self) -> List[Any]:
        """Filtered + searched + sorted records (all pages), as a fresh list."""
        revision = getattr(self.source, "revision", None)
        key = None if revision is None else (id(self.source), revision, self.state.cache_key())
        if key is not None and key == self._cache_key:
            return list(self._cache)
        out = build_view(self._source_records(), self.state.filters, self.state.search,
                         self.state.sort, self.config)
        log.debug("%s: recomputed view (%d rows)", self.config.name, len(out))
        if key is not None:
            self._cache_key, self._cache = key, out
        return list(out)

    @property
    def total(self) -> int:
        return len(self.rows())

    @property
    def page_count(self) -> int:
        return page_count(self.total, self.page_size)

    def page_rows(self) -> List[Any]:
        return paginate(self.rows(), self.page_size, self.state.page)

    def result(self) -> ViewResult:
        rows = self.rows()
        return ViewResult(
            records=paginate(rows, self.page_size, self.state.page),
            total=len(rows),
            page=self.state.page,
            page_size=self.page_size,
            page_count=page_count(len(rows), self.page_size),
            state=self.state.copy(),
        )

    # ---------------- Output operations ----------------
    def export_csv(self, path: str) -> int:
        from .export import write_csv
        rows = self.rows()
        write_csv(rows, path, self.config.export_fields)
        return len(rows)

    def export_json(self, path: str) -> int:
        from .export import write_json
        rows = self.rows()
        write_json(rows, path)
        return len(rows)


@dataclass
class Workspace:
    """One interactive session: an organization and a view per collection."""
    org: Any
    page_size: int = DEFAULT_PAGE_SIZE
    current: str = "donors"
    views: Dict[str, CollectionView] = field(default_factory=dict, init=False)
    # Stores CLI commands (for reproducibility in reports)
    command_log: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        for name, repo in self.org.collections().items():
            self.views[name] = CollectionView(repo, ENTITY_CONFIGS[name], page_size=self.page_size)

    @property
    def view(self) -> CollectionView:
        return self.views[self.current]

    def use(self, entity: str) -> CollectionView:
        name = entity.lower().strip()
        if name not in self.views:
            raise ValueError(f"entity must be one of: {', '.join(self.views)}")
        self.current = name
        return self.views[name]
