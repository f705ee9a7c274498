from flask import Blueprint, flash, render_template, url_for

from mrcars_admin.routes.pages import back, confirm_action, confirm_page, load, post_action, run
from mrcars_admin.services import notifications_service as svc

bp_notifications = Blueprint("notifications", __name__, url_prefix="/notifications")


def row_actions(row):
    actions = [{"label": "Open", "url": url_for(row["action_endpoint"]), "method": "get"}]
    if not row.get("read"):
        actions.append(post_action("Mark as read", "notifications.mark_read", row_id=row["id"]))
    actions.append(confirm_action("Delete", "notifications.delete", row_id=row["id"]))
    return actions


@bp_notifications.get("/")
def index():
    rows = load(svc.load_notifications, what="notifications")
    return render_template(
        "notifications.html", title="Notifications", notifications=rows,
        unread=sum(1 for n in rows if not n.get("read")), row_actions=row_actions,
    )


@bp_notifications.post("/<row_id>/read")
def mark_read(row_id):
    run(svc.mark_read, row_id, success="Notification marked as read", what="notification")
    return back("notifications.index")


@bp_notifications.post("/read-all")
def mark_all_read():
    rows = load(svc.load_notifications, what="notifications")
    if not any(not n.get("read") for n in rows):
        flash("No unread notifications", "info")
        return back("notifications.index")
    run(svc.mark_all_read, rows, success="All notifications marked as read", what="notifications")
    return back("notifications.index")


@bp_notifications.get("/<row_id>/delete")
def confirm_delete(row_id):
    return confirm_page(
        "Delete notification",
        "This permanently deletes the notification.",
        url_for("notifications.delete", row_id=row_id),
        url_for("notifications.index"),
    )


@bp_notifications.post("/<row_id>/delete")
def delete(row_id):
    run(svc.delete_notification, row_id, success="Notification deleted", what="notification")
    return back("notifications.index")
