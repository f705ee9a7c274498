from typing import Dict, List

from mrcars_admin.client import QueryClient
from mrcars_admin.forms import Form
from mrcars_admin.services.common import delete_row, get_row, set_status, update_row
from mrcars_admin.utils.joins import UNKNOWN_USER, fetch_map, unique_ids


def load_emergency_requests(client: QueryClient) -> List[dict]:
    rows = client.table("emergency_requests").select("*").order("created_at", desc=True).execute().data
    profiles = fetch_map(client, "profiles", unique_ids(rows, "user_id"), "id, username, name, phone")
    for r in rows:
        p = profiles.get(r.get("user_id")) or {}
        r["username"] = p.get("username")
        r["user_name"] = p.get("name") or p.get("username") or UNKNOWN_USER
        r["user_phone"] = p.get("phone")
    return rows


def set_emergency_status(client: QueryClient, request_id, target: str) -> dict:
    return set_status(client, "emergency", "emergency_requests", request_id, target)


def validate_response(data) -> Dict:
    return (
        Form(data)
        .text("admin_response", required=True, label="Response")
        .text("estimated_arrival")
        .text("contact_phone")
        .validate()
    )


def respond_to_request(client: QueryClient, request_id, data) -> dict:
    """Send the admin's reply. A first reply to a pending request accepts it."""
    values = validate_response(data)
    updates = {"admin_response": values["admin_response"]}
    for key in ("estimated_arrival", "contact_phone"):
        if values[key]:
            updates[key] = values[key]
    current = get_row(client, "emergency_requests", request_id)
    if (current.get("status") or "pending") == "pending":
        updates["status"] = "accepted"
    return update_row(client, "emergency_requests", request_id, updates)


def delete_emergency_request(client: QueryClient, request_id) -> None:
    delete_row(client, "emergency_requests", request_id)
