from flask import Blueprint, current_app, flash, redirect, render_template, request, url_for

from mrcars_admin.client import QueryError
from mrcars_admin.routes.pages import (
    back,
    client,
    confirm_action,
    confirm_page,
    day,
    load,
    page_size,
    post_action,
    render_table,
    run,
    table_state,
)
from mrcars_admin.services import forum_service as svc
from mrcars_admin.services.common import RowNotFound
from mrcars_admin.tables import Column, TableView

bp_forum = Blueprint("forum", __name__, url_prefix="/forum")

TOPIC_COLUMNS = [
    Column("title"),
    Column("category"),
    Column("is_pinned", "Pinned"),
    Column("is_locked", "Locked"),
    Column("reply_count", "Replies"),
    Column("created_at", "Created", render=day),
]
REPLY_COLUMNS = [
    Column("content", sortable=False),
    Column("topic_title", "Topic"),
    Column("created_at", "Posted", render=day),
]
TABS = [("topics", "Topics"), ("replies", "Replies")]


def topic_actions(row):
    return [
        {"label": "View topic", "url": url_for("forum.topic", row_id=row["id"]), "method": "get"},
        post_action("Unpin" if row.get("is_pinned") else "Pin", "forum.pin", row_id=row["id"]),
        post_action("Unlock" if row.get("is_locked") else "Lock", "forum.lock", row_id=row["id"]),
        confirm_action("Delete topic", "forum.delete_topic", row_id=row["id"]),
    ]


def reply_actions(row):
    return [confirm_action("Delete reply", "forum.delete_reply", row_id=row["id"])]


@bp_forum.get("/")
def index():
    tab = request.args.get("tab") if request.args.get("tab") in ("topics", "replies") else "topics"
    state = table_state(tab)
    if tab == "replies":
        rows = load(svc.load_replies, what="forum replies")
        view = TableView(REPLY_COLUMNS, filter_keys=("content",), page_size=page_size())
        actions, label = reply_actions, "Filter replies..."
    else:
        rows = load(svc.load_topics, what="forum topics")
        view = TableView(TOPIC_COLUMNS, filter_keys=("title",), page_size=page_size())
        actions, label = topic_actions, "Filter topics..."
    return render_table(view, rows, state, title="Forum", filter_label=label, row_actions=actions, tabs=TABS)


@bp_forum.get("/topics/<row_id>")
def topic(row_id):
    try:
        t = svc.load_topic(client(), row_id)
    except RowNotFound:
        flash("Topic not found", "error")
        return redirect(url_for("forum.index"))
    except QueryError as e:
        current_app.logger.error("loading topic %s failed: %s", row_id, e)
        flash(f"Error fetching topic: {e}", "error")
        return redirect(url_for("forum.index"))
    return render_template("topic.html", title=t.get("title"), topic=t,
                           actions=topic_actions(t)[1:], reply_actions=reply_actions)


@bp_forum.post("/topics/<row_id>/pin")
def pin(row_id):
    run(svc.toggle_pin, row_id, success="Topic pin updated", what="topic")
    return back("forum.index")


@bp_forum.post("/topics/<row_id>/lock")
def lock(row_id):
    run(svc.toggle_lock, row_id, success="Topic lock updated", what="topic")
    return back("forum.index")


@bp_forum.get("/topics/<row_id>/delete")
def confirm_delete_topic(row_id):
    return confirm_page(
        "Delete topic",
        "This permanently deletes the topic and its replies. This cannot be undone.",
        url_for("forum.delete_topic", row_id=row_id),
        url_for("forum.index"),
    )


@bp_forum.post("/topics/<row_id>/delete")
def delete_topic(row_id):
    run(svc.delete_topic, row_id, success="Topic deleted", what="topic")
    return back("forum.index")


@bp_forum.get("/replies/<row_id>/delete")
def confirm_delete_reply(row_id):
    return confirm_page(
        "Delete reply",
        "This permanently deletes the reply. This cannot be undone.",
        url_for("forum.delete_reply", row_id=row_id),
        url_for("forum.index", tab="replies"),
    )


@bp_forum.post("/replies/<row_id>/delete")
def delete_reply(row_id):
    run(svc.delete_reply, row_id, success="Reply deleted", what="reply")
    return back("forum.index", tab="replies")
