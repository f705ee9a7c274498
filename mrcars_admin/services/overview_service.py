"""Dashboard counters, the 12-month chart and the recent activity feed.

Each counter is its own head request; one that fails reads 0 and the rest of
the page still renders.
"""
import logging
from datetime import date, datetime, timezone
from typing import Dict, List

from mrcars_admin.client import QueryClient, QueryError
from mrcars_admin.utils.joins import UNKNOWN_USER, count_exact, fetch_all, fetch_map, unique_ids, user_label
from mrcars_admin.utils.parsing import month_bounds, parse_datetime

logger = logging.getLogger(__name__)

CHART_MONTHS = 12
ACTIVITY_LIMIT = 10


def load_counters(client: QueryClient, today: date = None) -> Dict[str, int]:
    first, _ = month_bounds(today or date.today())
    since = first.isoformat()
    return {
        "total_users": count_exact(client, "users"),
        "active_listings": count_exact(client, "cars", lambda q: q.eq("status", "active")),
        "total_inquiries": count_exact(client, "inquiries"),
        "pending_inquiries": count_exact(client, "inquiries", lambda q: q.eq("status", "pending")),
        "total_orders": count_exact(client, "orders"),
        "month_users": count_exact(client, "users", lambda q: q.gte("created_at", since)),
        "month_listings": count_exact(client, "cars", lambda q: q.gte("created_at", since)),
        "month_orders": count_exact(client, "orders", lambda q: q.gte("created_at", since)),
    }


def chart_months(today: date = None, n: int = CHART_MONTHS) -> List[date]:
    """First day of each of the last n months, oldest first."""
    today = today or date.today()
    out = []
    y, m = today.year, today.month
    for _ in range(n):
        out.append(date(y, m, 1))
        y, m = (y - 1, 12) if m == 1 else (y, m - 1)
    return list(reversed(out))


def _rows_since(client: QueryClient, table: str, columns: str, since: str) -> List[dict]:
    try:
        return fetch_all(client.table(table).select(columns).gte("created_at", since))
    except QueryError as e:
        logger.warning("chart data for %s unavailable, using 0: %s", table, e)
        return []


def load_chart(client: QueryClient, today: date = None) -> List[dict]:
    """Per-month users, listings, orders and order revenue.

    One paged read per table over the whole window, bucketed here by month.
    """
    months = chart_months(today)
    since = datetime(months[0].year, months[0].month, 1, tzinfo=timezone.utc).isoformat()
    buckets = {
        (d.year, d.month): {"month": d.strftime("%b"), "users": 0, "listings": 0, "orders": 0, "revenue": 0.0}
        for d in months
    }

    def bucket(row):
        ts = parse_datetime(row.get("created_at"))
        return buckets.get((ts.year, ts.month)) if ts else None

    for table, field in (("users", "users"), ("cars", "listings")):
        for row in _rows_since(client, table, "created_at", since):
            b = bucket(row)
            if b is not None:
                b[field] += 1
    for row in _rows_since(client, "orders", "created_at, total_amount", since):
        b = bucket(row)
        if b is not None:
            b["orders"] += 1
            b["revenue"] += float(row.get("total_amount") or 0)
    return [buckets[(d.year, d.month)] for d in months]


def _recent(client: QueryClient, table: str, columns: str, n: int) -> List[dict]:
    try:
        return client.table(table).select(columns).order("created_at", desc=True).limit(n).execute().data
    except QueryError as e:
        logger.warning("recent %s unavailable: %s", table, e)
        return []


def load_recent_activity(client: QueryClient) -> List[dict]:
    users = _recent(client, "users", "id, username, email, created_at", 3)
    cars = _recent(client, "cars", "id, make, model, seller_id, created_at", 3)
    inquiries = _recent(client, "inquiries", "id, user_id, created_at", 2)
    orders = _recent(client, "orders", "id, user_id, total_amount, created_at", 2)
    people = fetch_map(
        client,
        "users",
        unique_ids(cars, "seller_id") + unique_ids(inquiries + orders, "user_id"),
        "id, username, email",
    )

    def actor(uid):
        u = people.get(uid)
        return user_label(u, UNKNOWN_USER), (u or {}).get("email") or ""

    items = []
    for u in users:
        items.append({
            "id": f"user_{u.get('id')}", "user_name": u.get("username") or "New User",
            "user_email": u.get("email") or "", "action": "registered as a new user",
            "target": "", "created_at": u.get("created_at"),
        })
    for c in cars:
        name, email = actor(c.get("seller_id"))
        items.append({
            "id": f"car_{c.get('id')}", "user_name": name, "user_email": email,
            "action": "created a new listing", "target": f"{c.get('make') or ''} {c.get('model') or ''}".strip(),
            "created_at": c.get("created_at"),
        })
    for i in inquiries:
        name, email = actor(i.get("user_id"))
        items.append({
            "id": f"inquiry_{i.get('id')}", "user_name": name, "user_email": email,
            "action": "submitted an inquiry", "target": "", "created_at": i.get("created_at"),
        })
    for o in orders:
        name, email = actor(o.get("user_id"))
        items.append({
            "id": f"order_{o.get('id')}", "user_name": name, "user_email": email,
            "action": "placed an order", "target": f"${o.get('total_amount')}",
            "created_at": o.get("created_at"),
        })

    epoch = datetime.min.replace(tzinfo=timezone.utc)
    items.sort(key=lambda a: parse_datetime(a["created_at"]) or epoch, reverse=True)
    return items[:ACTIVITY_LIMIT]


def load_overview(client: QueryClient, today: date = None) -> Dict:
    return {
        "counters": load_counters(client, today),
        "chart": load_chart(client, today),
        "activity": load_recent_activity(client),
    }
