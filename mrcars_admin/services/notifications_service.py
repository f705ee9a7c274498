import logging
from typing import List

from mrcars_admin.client import QueryClient
from mrcars_admin.services.common import delete_row, update_row

logger = logging.getLogger(__name__)

NOTIFICATION_LIMIT = 50
PRIORITIES = ("low", "medium", "high")

# notification type -> endpoint of the page that handles it
ACTION_ENDPOINTS = {
    "inquiry": "inquiries.index",
    "order": "orders.index",
    "appointment": "appointments.index",
    "user": "users.index",
    "system": "settings.index",
}
DEFAULT_ACTION = "overview.index"


def action_endpoint(kind) -> str:
    return ACTION_ENDPOINTS.get(kind, DEFAULT_ACTION)


def load_notifications(client: QueryClient) -> List[dict]:
    rows = (
        client.table("notifications")
        .select("id, title, message, type, read, data, created_at, user_id")
        .order("created_at", desc=True).limit(NOTIFICATION_LIMIT).execute().data
    )
    for r in rows:
        data = r.get("data")
        if not isinstance(data, dict):
            data = {}
        priority = data.get("priority") or "medium"
        r["priority"] = priority if priority in PRIORITIES else "medium"
        r["related_id"] = data.get("related_id")
        r["action_endpoint"] = action_endpoint(r.get("type"))
        r["read"] = bool(r.get("read"))
        r["status"] = "read" if r["read"] else "unread"
    return rows


def mark_read(client: QueryClient, notification_id) -> dict:
    return update_row(client, "notifications", notification_id, {"read": True}, touch=False)


def mark_all_read(client: QueryClient, notifications: List[dict]) -> int:
    """One scoped update over the unread ids currently shown."""
    ids = [n["id"] for n in notifications if not n.get("read") and n.get("id") is not None]
    if not ids:
        return 0
    res = client.table("notifications").update({"read": True}).in_("id", ids).execute()
    logger.info("marked %d notifications read", len(res.data))
    return len(res.data)


def delete_notification(client: QueryClient, notification_id) -> None:
    delete_row(client, "notifications", notification_id)
