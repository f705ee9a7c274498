"""Conversation moderation: participants, trust flags and evasion counts."""
from typing import Dict, List

from mrcars_admin.client import QueryClient
from mrcars_admin.services.common import delete_row, set_status
from mrcars_admin.utils.joins import UNKNOWN_USER, count_by, fetch_map, unique_ids, user_label

FLAG_LEVELS = ("watch", "warning", "restricted", "banned")
CONVERSATION_TABS = ("all", "active", "archived", "blocked")


def load_conversations(client: QueryClient) -> List[dict]:
    convs = (
        client.table("conversations").select("*")
        .order("last_message_at", desc=True, nullsfirst=False)
        .execute().data
    )
    people = unique_ids(convs, "participant_1_id", "participant_2_id")
    users = fetch_map(client, "users", people, "id, username, email")
    flags = fetch_map(client, "user_flags", people, "*", key="user_id")

    ids = unique_ids(convs, "id")
    unread = count_by(client, "messages", "conversation_id", ids, lambda q: q.eq("is_read", False))
    evasions = count_by(
        client, "security_logs", "conversation_id", ids, lambda q: q.like("event_type", "%evasion%")
    )

    for c in convs:
        if not c.get("status"):
            c["status"] = "active"
        for n in (1, 2):
            uid = c.get(f"participant_{n}_id")
            c[f"participant_{n}"] = users.get(uid)
            c[f"participant_{n}_name"] = user_label(users.get(uid), UNKNOWN_USER)
            c[f"participant_{n}_flag"] = flags.get(uid)
        c["unread_count"] = unread.get(c.get("id"), 0)
        c["evasion_count"] = evasions.get(c.get("id"), 0)
        c["participants"] = f"{c['participant_1_name']} / {c['participant_2_name']}"
    return convs


def _flagged(flag) -> bool:
    return bool(flag) and flag.get("flag_level") != "watch"


def _restricted(flag) -> bool:
    return bool(flag) and bool(flag.get("messaging_restricted"))


def conversation_stats(convs: List[dict]) -> Dict[str, int]:
    return {
        "total": len(convs),
        "active": sum(1 for c in convs if c.get("status") == "active"),
        "archived": sum(1 for c in convs if c.get("status") == "archived"),
        "blocked": sum(1 for c in convs if c.get("status") == "blocked"),
        "unread": sum(c.get("unread_count", 0) for c in convs),
        "flagged_users": sum(
            1 for c in convs if _flagged(c.get("participant_1_flag")) or _flagged(c.get("participant_2_flag"))
        ),
        "restricted_users": sum(
            1 for c in convs
            if _restricted(c.get("participant_1_flag")) or _restricted(c.get("participant_2_flag"))
        ),
        "evasions": sum(c.get("evasion_count", 0) for c in convs),
    }


def load_messages(client: QueryClient, conversation_id) -> List[dict]:
    return (
        client.table("messages").select("*").eq("conversation_id", conversation_id)
        .order("created_at").execute().data
    )


def set_conversation_status(client: QueryClient, conversation_id, target: str) -> dict:
    return set_status(client, "conversation", "conversations", conversation_id, target)


def delete_conversation(client: QueryClient, conversation_id) -> None:
    delete_row(client, "conversations", conversation_id)
