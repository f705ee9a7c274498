"""Platform, section and item analytics over a trailing window of days."""
from collections import OrderedDict
from datetime import date, timedelta
from typing import Dict, List

from mrcars_admin.client import QueryClient

RANGES = (7, 30, 90)
TOP_ITEMS = 10
PLATFORM_COUNTERS = ("total_views", "total_unique_visitors", "total_inquiries", "total_new_users")


def window_start(days: int, today: date = None) -> str:
    today = today or date.today()
    return (today - timedelta(days=days)).isoformat()


def _n(v) -> float:
    return v if isinstance(v, (int, float)) and not isinstance(v, bool) else 0


def growth(series: List[float]) -> float:
    """Percent change of the last value over the one before it; 0 when undefined."""
    if len(series) < 2 or not series[-2]:
        return 0.0
    return (series[-1] - series[-2]) / series[-2] * 100


def summarize_platform(rows: List[dict]) -> Dict:
    totals = {k: sum(_n(r.get(k)) for r in rows) for k in PLATFORM_COUNTERS}
    views = [_n(r.get("total_views")) for r in rows]
    totals["avg_views_per_day"] = int(totals["total_views"] / len(rows) + 0.5) if rows else 0
    totals["views_growth"] = growth(views)
    return totals


def section_breakdown(rows: List[dict]) -> "OrderedDict[str, float]":
    out: "OrderedDict[str, float]" = OrderedDict()
    for r in rows:
        name = r.get("section_name") or "other"
        out[name] = out.get(name, 0) + _n(r.get("views"))
    return out


def top_items(rows: List[dict], n: int = TOP_ITEMS) -> List[dict]:
    agg: Dict = {}
    for r in rows:
        key = (r.get("item_type"), r.get("item_id"))
        cur = agg.setdefault(
            key,
            {
                "item_id": r.get("item_id"),
                "item_type": r.get("item_type"),
                "total_views": 0,
                "total_inquiries": 0,
                "total_shares": 0,
            },
        )
        cur["total_views"] += _n(r.get("views"))
        cur["total_inquiries"] += _n(r.get("inquiries"))
        cur["total_shares"] += _n(r.get("shares"))
    return sorted(agg.values(), key=lambda i: i["total_views"], reverse=True)[:n]


def load_analytics(client: QueryClient, days: int = 7, today: date = None) -> Dict:
    since = window_start(days, today)
    platform = (
        client.table("platform_analytics").select("*").gte("date", since).order("date").execute().data
    )
    sections = (
        client.table("section_analytics").select("*").gte("date", since).order("date").execute().data
    )
    items = (
        client.table("item_analytics").select("item_id, item_type, views, inquiries, shares")
        .gte("date", since).execute().data
    )
    return {
        "days": days,
        "since": since,
        "platform": platform,
        "summary": summarize_platform(platform),
        "sections": section_breakdown(sections),
        "top_items": top_items(items),
    }
