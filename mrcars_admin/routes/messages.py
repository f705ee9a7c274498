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
    render_table,
    run,
    status_actions,
    table_state,
)
from mrcars_admin.services import messages_service as svc
from mrcars_admin.services.common import RowNotFound, get_row
from mrcars_admin.tables import Column, TableView

bp_messages = Blueprint("messages", __name__, url_prefix="/messages")


def flags(v, row):
    levels = [
        (row.get(f"participant_{n}_flag") or {}).get("flag_level")
        for n in (1, 2)
    ]
    return ", ".join(l.upper() for l in levels if l) or "-"


COLUMNS = [
    Column("participants"),
    Column("participant_1_flag", "Flags", sortable=False, render=flags),
    Column("unread_count", "Unread"),
    Column("evasion_count", "Evasions"),
    Column("status"),
    Column("last_message_at", "Last activity", render=day),
]
TABS = [("all", "All"), ("active", "Active"), ("archived", "Archived"), ("blocked", "Blocked")]


def view():
    return TableView(COLUMNS, filter_keys=("participants",), page_size=page_size(), status_key="status")


def row_actions(row):
    return (
        [{"label": "View messages", "url": url_for("messages.detail", row_id=row["id"]), "method": "get"}]
        + status_actions("conversation", row, "messages.set_status")
        + [confirm_action("Delete conversation", "messages.delete", row_id=row["id"])]
    )


@bp_messages.get("/")
def index():
    rows = load(svc.load_conversations, what="conversations")
    v = view()
    stats = svc.conversation_stats(rows)
    return render_table(
        v, rows, table_state("all"),
        title="Messages & Inbox", filter_label="Filter participants...", row_actions=row_actions,
        tabs=TABS, tab_counts=v.tab_counts(rows, [t for t, _ in TABS[1:]]),
        summary=[
            ("Conversations", stats["total"]),
            ("Active", stats["active"]),
            ("Unread messages", stats["unread"]),
            ("Blocked", stats["blocked"]),
            ("Flagged users", stats["flagged_users"]),
            ("Restricted users", stats["restricted_users"]),
            ("Evasion attempts", stats["evasions"]),
        ],
    )


@bp_messages.get("/<row_id>")
def detail(row_id):
    try:
        conv = get_row(client(), "conversations", row_id)
        transcript = svc.load_messages(client(), row_id)
    except RowNotFound:
        flash("Conversation not found", "error")
        return redirect(url_for("messages.index"))
    except QueryError as e:
        current_app.logger.error("loading conversation %s failed: %s", row_id, e)
        flash(f"Error fetching messages: {e}", "error")
        return redirect(url_for("messages.index"))
    return render_template(
        "conversation.html", title="Conversation", conversation=conv, messages=transcript,
        actions=row_actions(conv),
    )


@bp_messages.post("/<row_id>/status")
def set_status(row_id):
    target = request.form.get("status", "")
    run(svc.set_conversation_status, row_id, target,
        success=f"Conversation status changed to {target}", what="conversation")
    return back("messages.index")


@bp_messages.get("/<row_id>/delete")
def confirm_delete(row_id):
    return confirm_page(
        "Delete conversation",
        "This permanently deletes the conversation. This cannot be undone.",
        url_for("messages.delete", row_id=row_id),
        url_for("messages.index"),
    )


@bp_messages.post("/<row_id>/delete")
def delete(row_id):
    run(svc.delete_conversation, row_id, success="Conversation deleted", what="conversation")
    return back("messages.index")
