from datetime import datetime, timezone
from typing import Dict, List

from mrcars_admin.client import QueryClient
from mrcars_admin.forms import Form, ValidationError
from mrcars_admin.services.common import get_row, insert_row, set_status, toggle_flag, update_row
from mrcars_admin.utils.joins import UNKNOWN, UNKNOWN_USER, fetch_map, unique_ids, user_label
from mrcars_admin.utils.parsing import add_months, parse_datetime, parse_int

SUBSCRIPTION_TABS = ("all", "active", "pending", "paused", "cancelled", "expired")
MAX_GRANT_MONTHS = 24


def load_plans(client: QueryClient) -> List[dict]:
    rows = client.table("subscription_plans").select("*").order("sort_order").execute().data
    for r in rows:
        r["status"] = "active" if r.get("is_active") else "inactive"
    return rows


def load_subscriptions(client: QueryClient, plans: List[dict] = None) -> List[dict]:
    subs = client.table("user_subscriptions").select("*").order("created_at", desc=True).execute().data
    users = fetch_map(client, "users", unique_ids(subs, "user_id"), "id, username, email")
    if plans is None:
        plans_by_id = fetch_map(client, "subscription_plans", unique_ids(subs, "plan_id"))
    else:
        plans_by_id = {p.get("id"): p for p in plans}
    for s in subs:
        user = users.get(s.get("user_id"))
        s["user_name"] = user_label(user, UNKNOWN_USER)
        s["user_email"] = (user or {}).get("email")
        plan = plans_by_id.get(s.get("plan_id"))
        s["plan"] = plan
        s["plan_name"] = (plan or {}).get("name") or UNKNOWN
        s["plan_price"] = float((plan or {}).get("price") or 0)
    return subs


def subscription_stats(subs: List[dict]) -> Dict:
    active = [s for s in subs if s.get("status") == "active"]
    return {
        "active": len(active),
        "total_revenue": sum(float(s.get("amount_paid") or 0) for s in active),
        "gold_plus": sum(1 for s in active if "gold" in (s.get("plan_name") or "").lower()),
        "monthly_recurring": sum(s.get("plan_price", 0) for s in active if s.get("auto_renew")),
        "auto_renew": sum(1 for s in active if s.get("auto_renew")),
    }


def set_subscription_status(client: QueryClient, subscription_id, target: str) -> dict:
    return set_status(client, "subscription", "user_subscriptions", subscription_id, target)


def toggle_plan(client: QueryClient, plan_id) -> dict:
    return toggle_flag(client, "subscription_plans", plan_id, "is_active")


def validate_grant(data) -> Dict:
    return (
        Form(data)
        .text("user_id", required=True, label="User")
        .text("plan_id", required=True, label="Plan")
        .integer("duration_months", minv=1, maxv=MAX_GRANT_MONTHS, default=1, label="Duration")
        .text("notes")
        .validate()
    )


def grant_subscription(client: QueryClient, data, now: datetime = None) -> dict:
    """Give a user a plan for N months without payment."""
    values = validate_grant(data)
    plan = get_row(client, "subscription_plans", values["plan_id"])
    start = now or datetime.now(timezone.utc)
    end = add_months(start, values["duration_months"])
    row = insert_row(
        client,
        "user_subscriptions",
        {
            "user_id": values["user_id"],
            "plan_id": values["plan_id"],
            "status": "active",
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "auto_renew": False,
            "payment_method": "admin_granted",
            "amount_paid": 0,
        },
    )
    row.setdefault("plan_name", plan.get("name"))
    return row


def change_plan(client: QueryClient, subscription_id, plan_id) -> dict:
    if not plan_id:
        raise ValidationError({"plan_id": "Plan is required"})
    get_row(client, "subscription_plans", plan_id)
    return update_row(client, "user_subscriptions", subscription_id, {"plan_id": plan_id})


def extend_subscription(client: QueryClient, subscription_id, months) -> dict:
    n = parse_int(months, minv=1, maxv=MAX_GRANT_MONTHS)
    if n is None:
        raise ValidationError({"months": f"Months must be between 1 and {MAX_GRANT_MONTHS}"})
    sub = get_row(client, "user_subscriptions", subscription_id)
    end = parse_datetime(sub.get("end_date")) or datetime.now(timezone.utc)
    return update_row(
        client, "user_subscriptions", subscription_id, {"end_date": add_months(end, n).isoformat()}
    )
