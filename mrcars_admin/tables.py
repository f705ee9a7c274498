# tables.py
"""In-memory table model shared by every resource page.

Sorting, filtering, column visibility and pagination re-slice the rows a
loader already fetched; nothing in here talks to the backend.
"""
from math import ceil
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from mrcars_admin.utils.parsing import parse_bool, parse_int


class Column:
    def __init__(
        self,
        key: str,
        label: Optional[str] = None,
        sortable: bool = True,
        hideable: bool = True,
        render: Optional[Callable[[Any, dict], str]] = None,
    ):
        self.key = key
        self.label = label or key.replace("_", " ").title()
        self.sortable = sortable
        self.hideable = hideable
        self.render = render

    def value(self, row: dict):
        return row.get(self.key)

    def display(self, row: dict) -> str:
        v = self.value(row)
        if self.render:
            return self.render(v, row)
        if v is None:
            return ""
        if isinstance(v, bool):
            return "Yes" if v else "No"
        return str(v)

    def __repr__(self):
        return f"<Column {self.key}>"


class TableState:
    """What the admin asked for: sort, filter text, hidden columns, page, tab."""

    def __init__(self, sort=None, desc=False, q="", hidden=(), page=1, tab=None, selected=()):
        self.sort: Optional[str] = sort
        self.desc = bool(desc) if sort else False
        self.q = q or ""
        self.hidden = frozenset(hidden)
        self.page = max(1, int(page))
        self.tab = tab
        self.selected = tuple(selected)

    @classmethod
    def from_args(cls, args, default_tab=None) -> "TableState":
        getlist = getattr(args, "getlist", None)
        hidden = getlist("hide") if getlist else args.get("hide", ())
        selected = getlist("selected") if getlist else args.get("selected", ())
        return cls(
            sort=args.get("sort") or None,
            desc=parse_bool(args.get("desc")),
            q=(args.get("q") or "").strip(),
            hidden=hidden,
            page=parse_int(args.get("page"), 1, minv=1),
            tab=args.get("tab") or default_tab,
            selected=selected,
        )

    def replace(self, **changes) -> "TableState":
        fields = {
            "sort": self.sort,
            "desc": self.desc,
            "q": self.q,
            "hidden": self.hidden,
            "page": self.page,
            "tab": self.tab,
            "selected": self.selected,
        }
        fields.update(changes)
        return TableState(**fields)

    def toggled(self, key: str) -> "TableState":
        # unsorted -> ascending -> descending -> unsorted
        if self.sort != key:
            return self.replace(sort=key, desc=False, page=1)
        if not self.desc:
            return self.replace(desc=True, page=1)
        return self.replace(sort=None, desc=False, page=1)

    def visibility_toggled(self, key: str) -> "TableState":
        hidden = set(self.hidden)
        hidden.symmetric_difference_update({key})
        return self.replace(hidden=hidden)

    def to_args(self) -> Dict[str, Any]:
        """Query args that reproduce this state (for url_for)."""
        args: Dict[str, Any] = {}
        if self.sort:
            args["sort"] = self.sort
            if self.desc:
                args["desc"] = "1"
        if self.q:
            args["q"] = self.q
        if self.hidden:
            args["hide"] = sorted(self.hidden)
        if self.page > 1:
            args["page"] = self.page
        if self.tab:
            args["tab"] = self.tab
        return args


class TablePage:
    def __init__(self, rows, columns, all_columns, state, total, matched, page, pages, page_size):
        self.rows: List[dict] = rows
        self.columns: List[Column] = columns
        self.all_columns: List[Column] = all_columns
        self.state: TableState = state
        self.total = total
        self.matched = matched
        self.page = page
        self.pages = pages
        self.page_size = page_size

    @property
    def empty(self) -> bool:
        return not self.rows

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.pages


def _sort_key(v):
    if isinstance(v, bool):
        return (0, int(v), "")
    if isinstance(v, (int, float)):
        return (0, v, "")
    if isinstance(v, str):
        return (1, 0, v.lower())
    return (1, 0, str(v))


class TableView:
    def __init__(
        self,
        columns: Sequence[Column],
        filter_keys: Iterable[str] = (),
        page_size: int = 10,
        status_key: Optional[str] = None,
        row_key: str = "id",
    ):
        self.columns = list(columns)
        self.filter_keys = tuple(filter_keys)
        self.page_size = max(1, int(page_size))
        self.status_key = status_key
        self.row_key = row_key

    def column(self, key: str) -> Optional[Column]:
        for c in self.columns:
            if c.key == key:
                return c
        return None

    def visible_columns(self, state: TableState) -> List[Column]:
        return [c for c in self.columns if not (c.hideable and c.key in state.hidden)]

    def filter_rows(self, rows: List[dict], state: TableState) -> List[dict]:
        out = rows
        if state.tab and state.tab != "all" and self.status_key:
            out = [r for r in out if str(r.get(self.status_key)) == state.tab]
        needle = state.q.lower()
        if needle and self.filter_keys:
            out = [
                r for r in out
                if any(needle in str(r.get(k) or "").lower() for k in self.filter_keys)
            ]
        return out

    def sort_rows(self, rows: List[dict], state: TableState) -> List[dict]:
        col = self.column(state.sort) if state.sort else None
        if col is None or not col.sortable:
            return list(rows)
        present = [r for r in rows if col.value(r) is not None]
        missing = [r for r in rows if col.value(r) is None]
        # sorted() is stable in both directions, so equal keys keep loader order
        present = sorted(present, key=lambda r: _sort_key(col.value(r)), reverse=state.desc)
        return present + missing

    def apply(self, rows: List[dict], state: TableState) -> TablePage:
        matched = self.sort_rows(self.filter_rows(rows, state), state)
        pages = max(1, ceil(len(matched) / self.page_size))
        page = min(state.page, pages)
        start = (page - 1) * self.page_size
        return TablePage(
            rows=matched[start:start + self.page_size],
            columns=self.visible_columns(state),
            all_columns=self.columns,
            state=state,
            total=len(rows),
            matched=len(matched),
            page=page,
            pages=pages,
            page_size=self.page_size,
        )

    def selected_rows(self, rows: List[dict], ids: Iterable) -> List[dict]:
        wanted = {str(i) for i in ids}
        return [r for r in rows if str(r.get(self.row_key)) in wanted]

    def tab_counts(self, rows: List[dict], tabs: Iterable[str]) -> Dict[str, int]:
        counts = {"all": len(rows)}
        for tab in tabs:
            counts[tab] = sum(1 for r in rows if str(r.get(self.status_key)) == tab)
        return counts
