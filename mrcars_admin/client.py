# client.py
"""Query-builder client for the marketplace data backend.

Every table lives behind the backend's PostgREST-style REST surface. A
``Query`` only collects what to do (table, verb, filters, ordering); the
client turns it into exactly one HTTP request in ``execute``.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

import requests

logger = logging.getLogger(__name__)

MUTATING = ("POST", "PATCH", "DELETE")


class QueryError(Exception):
    """Raised when the backend rejects a query or cannot be reached."""

    def __init__(self, message, code=None, details=None, hint=None, status=None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details
        self.hint = hint
        self.status = status

    def __str__(self):
        return self.message


class QueryResult:
    def __init__(self, data=None, count=None):
        self.data: List[Dict[str, Any]] = data if data is not None else []
        self.count: Optional[int] = count

    def __repr__(self):
        return f"<QueryResult rows={len(self.data)} count={self.count}>"


class Query:
    def __init__(self, client: "QueryClient", table: str):
        self.client = client
        self.table = table
        self.method = "GET"
        self.columns = "*"
        self.count: Optional[str] = None
        self.head = False
        self.body: Any = None
        self.on_conflict: Optional[str] = None
        self.filters: List[Tuple[str, str, Any]] = []
        self.orders: List[Tuple[str, bool, Optional[bool]]] = []
        self.limit_n: Optional[int] = None
        self.offset_n: Optional[int] = None

    # ---------- verbs ----------
    def select(self, columns: str = "*", count: Optional[str] = None, head: bool = False):
        self.method = "HEAD" if head else "GET"
        self.columns = columns
        self.count = count
        self.head = head
        return self

    def insert(self, rows):
        self.method = "POST"
        self.body = rows if isinstance(rows, list) else [rows]
        return self

    def upsert(self, rows, on_conflict: str):
        self.insert(rows)
        self.on_conflict = on_conflict
        return self

    def update(self, values: Dict[str, Any]):
        self.method = "PATCH"
        self.body = dict(values)
        return self

    def delete(self):
        self.method = "DELETE"
        return self

    # ---------- filters ----------
    def _filter(self, column: str, op: str, value):
        self.filters.append((column, op, value))
        return self

    def eq(self, column, value):
        return self._filter(column, "eq", value)

    def neq(self, column, value):
        return self._filter(column, "neq", value)

    def gt(self, column, value):
        return self._filter(column, "gt", value)

    def gte(self, column, value):
        return self._filter(column, "gte", value)

    def lt(self, column, value):
        return self._filter(column, "lt", value)

    def lte(self, column, value):
        return self._filter(column, "lte", value)

    def like(self, column, pattern: str):
        return self._filter(column, "like", pattern)

    def ilike(self, column, pattern: str):
        return self._filter(column, "ilike", pattern)

    def is_(self, column, value):
        return self._filter(column, "is", value)

    def in_(self, column, values: Iterable):
        return self._filter(column, "in", list(values))

    # ---------- shaping ----------
    def order(self, column: str, desc: bool = False, nullsfirst: Optional[bool] = None):
        self.orders.append((column, desc, nullsfirst))
        return self

    def limit(self, n: int):
        self.limit_n = int(n)
        return self

    def offset(self, n: int):
        self.offset_n = int(n)
        return self

    def execute(self) -> QueryResult:
        return self.client.execute(self)

    def __repr__(self):
        return f"<Query {self.method} {self.table} filters={self.filters}>"


def _fmt(value) -> str:
    if value is None:
        return "null"
    if value is True:
        return "true"
    if value is False:
        return "false"
    return str(value)


def _fmt_in(values) -> str:
    parts = []
    for v in values:
        s = _fmt(v)
        if any(c in s for c in ',()"'):
            s = '"' + s.replace('"', '\\"') + '"'
        parts.append(s)
    return "(" + ",".join(parts) + ")"


def parse_content_range(header: Optional[str]) -> Optional[int]:
    """``0-9/42`` -> 42, ``*/0`` -> 0, ``*/*`` or missing -> None."""
    if not header or "/" not in header:
        return None
    total = header.rsplit("/", 1)[1].strip()
    return int(total) if total.isdigit() else None


class QueryClient:
    def __init__(self, url: Optional[str] = None, key: str = "", timeout: float = 6.0, session=None):
        self.url = url.rstrip("/") if url else None
        self.key = key
        self.timeout = timeout
        self.session = session or requests.Session()

    def init_app(self, app):
        self.url = str(app.config["DATA_API_URL"]).rstrip("/")
        self.key = app.config.get("DATA_API_KEY", "")
        self.timeout = app.config.get("DATA_API_TIMEOUT", 6)
        app.extensions["query_client"] = self

    def table(self, name: str) -> Query:
        return Query(self, name)

    def build_request(self, query: Query):
        params: List[Tuple[str, str]] = []
        headers = {
            "apikey": self.key,
            "Authorization": f"Bearer {self.key}",
            "Accept": "application/json",
        }
        prefer = []

        params.append(("select", query.columns))
        for column, op, value in query.filters:
            rendered = _fmt_in(value) if op == "in" else _fmt(value)
            params.append((column, f"{op}.{rendered}"))
        if query.orders:
            parts = []
            for column, desc, nullsfirst in query.orders:
                part = f"{column}.{'desc' if desc else 'asc'}"
                if nullsfirst is not None:
                    part += ".nullsfirst" if nullsfirst else ".nullslast"
                parts.append(part)
            params.append(("order", ",".join(parts)))
        if query.limit_n is not None:
            params.append(("limit", str(query.limit_n)))
        if query.offset_n:
            params.append(("offset", str(query.offset_n)))
        if query.on_conflict:
            params.append(("on_conflict", query.on_conflict))
            prefer.append("resolution=merge-duplicates")

        if query.count:
            prefer.append(f"count={query.count}")
        if query.method in MUTATING:
            prefer.append("return=representation")
        if prefer:
            headers["Prefer"] = ",".join(prefer)
        if query.body is not None:
            headers["Content-Type"] = "application/json"
        return query.method, params, headers, query.body

    def execute(self, query: Query) -> QueryResult:
        if query.method in ("PATCH", "DELETE") and not query.filters:
            raise QueryError(
                f"refusing unscoped {query.method} on {query.table}", code="unscoped_mutation"
            )
        if not self.url:
            raise QueryError("data backend URL is not configured", code="not_configured")

        method, params, headers, body = self.build_request(query)
        url = f"{self.url}/rest/v1/{query.table}"
        try:
            r = self.session.request(
                method, url, params=params, headers=headers, json=body, timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error("data backend unreachable (%s %s): %s", method, query.table, e)
            raise QueryError(str(e), code="upstream_unreachable") from e

        if not r.ok:
            raise self._error_from(r)

        data: List[Dict[str, Any]] = []
        if method != "HEAD" and r.content:
            try:
                payload = r.json()
            except ValueError:
                raise QueryError("invalid JSON from data backend", code="bad_response", status=r.status_code)
            data = payload if isinstance(payload, list) else [payload]
        return QueryResult(data, parse_content_range(r.headers.get("Content-Range")))

    @staticmethod
    def _error_from(r) -> QueryError:
        try:
            payload = r.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}
        message = payload.get("message") or r.text or f"HTTP {r.status_code}"
        return QueryError(
            message,
            code=payload.get("code"),
            details=payload.get("details"),
            hint=payload.get("hint"),
            status=r.status_code,
        )
