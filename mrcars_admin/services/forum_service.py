from typing import List

from mrcars_admin.client import QueryClient
from mrcars_admin.services.common import delete_row, get_row, toggle_flag
from mrcars_admin.utils.joins import UNKNOWN, fetch_map, unique_ids


def load_topics(client: QueryClient) -> List[dict]:
    rows = client.table("forum_topics").select("*").order("created_at", desc=True).execute().data
    for r in rows:
        r.setdefault("is_pinned", False)
        r.setdefault("is_locked", False)
    return rows


def load_replies(client: QueryClient) -> List[dict]:
    rows = client.table("forum_replies").select("*").order("created_at", desc=True).execute().data
    topics = fetch_map(client, "forum_topics", unique_ids(rows, "topic_id"), "id, title")
    for r in rows:
        r["topic_title"] = (topics.get(r.get("topic_id")) or {}).get("title") or UNKNOWN
    return rows


def load_topic(client: QueryClient, topic_id) -> dict:
    """A topic with its replies oldest first."""
    topic = get_row(client, "forum_topics", topic_id)
    topic["replies"] = (
        client.table("forum_replies").select("*").eq("topic_id", topic_id)
        .order("created_at").execute().data
    )
    return topic


def toggle_pin(client: QueryClient, topic_id) -> dict:
    return toggle_flag(client, "forum_topics", topic_id, "is_pinned", touch=False)


def toggle_lock(client: QueryClient, topic_id) -> dict:
    return toggle_flag(client, "forum_topics", topic_id, "is_locked", touch=False)


def delete_topic(client: QueryClient, topic_id) -> None:
    delete_row(client, "forum_topics", topic_id)


def delete_reply(client: QueryClient, reply_id) -> None:
    delete_row(client, "forum_replies", reply_id)
