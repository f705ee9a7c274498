from typing import Dict, List

from mrcars_admin.client import QueryClient
from mrcars_admin.forms import Form
from mrcars_admin.services.common import delete_row, insert_row, update_row
from mrcars_admin.utils.parsing import now_iso

LOG_LIMIT = 100


def load_security_logs(client: QueryClient) -> List[dict]:
    return (
        client.table("security_logs").select("*")
        .order("created_at", desc=True).limit(LOG_LIMIT).execute().data
    )


def load_blocked_ips(client: QueryClient) -> List[dict]:
    rows = client.table("blocked_ips").select("*").order("created_at", desc=True).execute().data
    for r in rows:
        r["status"] = "active" if r.get("is_active") else "lifted"
    return rows


def security_stats(logs: List[dict], blocked: List[dict]) -> Dict[str, int]:
    return {
        "total_logs": len(logs),
        "failed_logins": sum(1 for l in logs if l.get("event_type") == "failed_login"),
        "blocked_ips": sum(1 for b in blocked if b.get("is_active")),
        "recent_alerts": sum(1 for l in logs if l.get("status") in ("blocked", "failure")),
    }


def block_prefill(log: dict) -> Dict[str, str]:
    """Block dialog values offered from a log row's action menu."""
    return {
        "ip_address": log.get("ip_address") or "",
        "reason": f"Suspicious activity: {log.get('event_type')}",
        "blocked_until": "",
    }


def validate_block(data) -> Dict:
    return (
        Form(data)
        .ip_address("ip_address")
        .text("reason", required=True)
        .date("blocked_until")
        .validate()
    )


def block_ip(client: QueryClient, data) -> dict:
    values = validate_block(data)
    return insert_row(
        client,
        "blocked_ips",
        {
            "ip_address": values["ip_address"],
            "reason": values["reason"],
            "blocked_until": values["blocked_until"] or None,
            "is_active": True,
            "created_at": now_iso(),
        },
    )


def unblock_ip(client: QueryClient, block_id) -> dict:
    return update_row(client, "blocked_ips", block_id, {"is_active": False}, touch=False)


def delete_block(client: QueryClient, block_id) -> None:
    delete_row(client, "blocked_ips", block_id)
