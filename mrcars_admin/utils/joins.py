"""Batched foreign-key resolution for the page loaders.

One ``in`` query per related table followed by an in-memory map join, and
per-row counts fetched in a single query and counted here. Both page past the
backend's per-response row cap. A failed lookup is logged and the affected
rows keep their placeholder labels.
"""
import logging
from collections import Counter
from typing import Callable, Dict, Iterable, List, Optional

from mrcars_admin.client import Query, QueryClient, QueryError

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"
UNKNOWN_USER = "Unknown User"
UNKNOWN_CUSTOMER = "Unknown Customer"
NA = "N/A"


def unique_ids(rows: Iterable[dict], *keys: str) -> List:
    seen: Dict = {}
    for r in rows:
        for k in keys:
            v = r.get(k)
            if v is not None and v != "":
                seen.setdefault(v, None)
    return list(seen)


def fetch_all(query: Query) -> List[dict]:
    """Every row the query matches, paging with offset until the exact count is reached."""
    query.count = query.count or "exact"
    if not query.orders:
        query.order("id")
    res = query.execute()
    rows = list(res.data)
    while res.data and res.count is not None and len(rows) < res.count:
        res = query.offset(len(rows)).execute()
        rows.extend(res.data)
    return rows


def fetch_map(client: QueryClient, table: str, ids: Iterable, columns: str = "*", key: str = "id") -> Dict:
    ids = list(ids)
    if not ids:
        return {}
    try:
        rows = fetch_all(client.table(table).select(columns).in_(key, ids))
    except QueryError as e:
        logger.warning("lookup on %s failed, using placeholders: %s", table, e)
        return {}
    return {r.get(key): r for r in rows}


def count_by(
    client: QueryClient,
    table: str,
    key: str,
    ids: Iterable,
    refine: Optional[Callable[[Query], Query]] = None,
) -> Counter:
    ids = list(ids)
    if not ids:
        return Counter()
    q = client.table(table).select(key).in_(key, ids)
    if refine:
        q = refine(q)
    try:
        rows = fetch_all(q)
    except QueryError as e:
        logger.warning("count on %s failed, using 0: %s", table, e)
        return Counter()
    return Counter(r.get(key) for r in rows)


def count_exact(client: QueryClient, table: str, refine: Optional[Callable[[Query], Query]] = None) -> int:
    """Row count via a head request; 0 when the table cannot be read."""
    q = client.table(table).select("*", count="exact", head=True)
    if refine:
        q = refine(q)
    try:
        return q.execute().count or 0
    except QueryError as e:
        logger.warning("count on %s failed, using 0: %s", table, e)
        return 0


def fetch_row(client: QueryClient, table: str, row_id, columns: str = "*") -> Optional[dict]:
    res = client.table(table).select(columns).eq("id", row_id).limit(1).execute()
    return res.data[0] if res.data else None


def user_label(user: Optional[dict], default: str = UNKNOWN_USER) -> str:
    if not user:
        return default
    return (
        user.get("username")
        or user.get("full_name")
        or user.get("name")
        or user.get("email")
        or default
    )


def car_label(car: Optional[dict]) -> str:
    if not car:
        return UNKNOWN
    parts = [str(car.get(k)) for k in ("year", "make", "model") if car.get(k)]
    return " ".join(parts) or UNKNOWN
