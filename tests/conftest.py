import copy
import itertools
import re

import jwt
import pytest

from mrcars_admin import create_app
from mrcars_admin.client import QueryClient, QueryError, QueryResult

JWT_SECRET = "test-secret"


def _same(a, b):
    if a is None or b is None:
        return a is b
    return a == b or str(a) == str(b)


def _like(value, pattern, flags=0):
    if value is None:
        return False
    rx = ".*".join(re.escape(p) for p in str(pattern).split("%"))
    return re.fullmatch(rx, str(value), flags | re.DOTALL) is not None


def _matches(row, filters):
    for column, op, value in filters:
        v = row.get(column)
        if op == "eq" and not _same(v, value):
            return False
        if op == "neq" and _same(v, value):
            return False
        if op in ("gt", "gte", "lt", "lte"):
            if v is None:
                return False
            if op == "gt" and not v > value:
                return False
            if op == "gte" and not v >= value:
                return False
            if op == "lt" and not v < value:
                return False
            if op == "lte" and not v <= value:
                return False
        if op == "like" and not _like(v, value):
            return False
        if op == "ilike" and not _like(v, value, re.IGNORECASE):
            return False
        if op == "is" and v is not value:
            return False
        if op == "in" and not any(_same(v, x) for x in value):
            return False
    return True


def _ordered(rows, orders):
    out = list(rows)
    for column, desc, nullsfirst in reversed(orders):
        present = [r for r in out if r.get(column) is not None]
        missing = [r for r in out if r.get(column) is None]
        present.sort(key=lambda r: r[column], reverse=desc)
        first = desc if nullsfirst is None else nullsfirst
        out = missing + present if first else present + missing
    return out


class FakeClient(QueryClient):
    """In-memory stand-in for the data backend.

    Runs the same Query objects the real client would send, against plain
    lists of dicts. ``fail`` holds table names (or ``(table, method)`` pairs)
    whose next queries raise QueryError. ``max_rows`` caps rows per response
    the way a hosted backend does.
    """

    def __init__(self, tables=None):
        super().__init__(url="http://data.test")
        self.tables = {name: [dict(r) for r in rows] for name, rows in (tables or {}).items()}
        self.queries = []
        self.fail = set()
        self.max_rows = None
        self._ids = itertools.count(1000)

    def init_app(self, app):
        app.extensions["query_client"] = self

    def seed(self, table, *rows):
        self.tables.setdefault(table, []).extend(dict(r) for r in rows)

    def rows(self, table):
        return self.tables.get(table, [])

    def row(self, table, row_id):
        for r in self.rows(table):
            if _same(r.get("id"), row_id):
                return r
        return None

    def calls(self, table=None, method=None):
        return [
            q for q in self.queries
            if (table is None or q.table == table) and (method is None or q.method == method)
        ]

    def execute(self, query):
        self.queries.append(query)
        if query.table in self.fail or (query.table, query.method) in self.fail:
            raise QueryError(f"relation {query.table} is unavailable", code="42P01", status=500)
        if query.method in ("PATCH", "DELETE") and not query.filters:
            raise QueryError(f"refusing unscoped {query.method} on {query.table}", code="unscoped_mutation")

        table = self.tables.setdefault(query.table, [])
        if query.method in ("GET", "HEAD"):
            matched = _ordered([r for r in table if _matches(r, query.filters)], query.orders)
            count = len(matched) if query.count else None
            if query.offset_n:
                matched = matched[query.offset_n:]
            if query.limit_n is not None:
                matched = matched[:query.limit_n]
            if self.max_rows is not None:
                matched = matched[:self.max_rows]
            data = [] if query.method == "HEAD" else copy.deepcopy(matched)
            return QueryResult(data, count)

        if query.method == "POST":
            out = []
            for body in query.body:
                row = dict(body)
                existing = None
                if query.on_conflict:
                    existing = next(
                        (r for r in table if _same(r.get(query.on_conflict), row.get(query.on_conflict))), None
                    )
                if existing is not None:
                    existing.update(row)
                    out.append(copy.deepcopy(existing))
                    continue
                row.setdefault("id", str(next(self._ids)))
                table.append(row)
                out.append(copy.deepcopy(row))
            return QueryResult(out)

        matched = [r for r in table if _matches(r, query.filters)]
        if query.method == "PATCH":
            for r in matched:
                r.update(copy.deepcopy(query.body))
        else:
            self.tables[query.table] = [r for r in table if not any(r is m for m in matched)]
        return QueryResult(copy.deepcopy(matched))


def make_token(role="admin", secret=JWT_SECRET, **claims):
    payload = {"sub": "admin-1", "username": "root", "role": role}
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def fake():
    return FakeClient()


@pytest.fixture
def app(fake):
    return create_app(
        test_config={
            "TESTING": True,
            "SECRET_KEY": "test",
            "JWT_SECRET": JWT_SECRET,
            "PAGE_SIZE": 10,
        },
        client=fake,
    )


@pytest.fixture
def http(app):
    return app.test_client()


@pytest.fixture
def admin(http):
    """A test client holding an admin session."""
    res = http.post("/session", json={"access_token": make_token()})
    assert res.status_code == 200
    return http
