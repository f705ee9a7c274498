from flask import Blueprint, redirect, render_template, request, url_for

from mrcars_admin.routes.pages import (
    back,
    confirm_action,
    confirm_page,
    day,
    form_page,
    load,
    page_size,
    post_action,
    run,
    submit_form,
    table_state,
)
from mrcars_admin.services import security_service as svc
from mrcars_admin.tables import Column, TableView

bp_security = Blueprint("security", __name__, url_prefix="/security")

LOG_COLUMNS = [
    Column("event_type", "Event"),
    Column("status"),
    Column("ip_address", "IP"),
    Column("description", sortable=False),
    Column("created_at", "When", render=day),
]
BLOCK_COLUMNS = [
    Column("ip_address", "IP"),
    Column("reason", sortable=False),
    Column("blocked_until", "Until", render=lambda v, row: str(v)[:10] if v else "Permanent"),
    Column("status"),
    Column("created_at", "Blocked", render=day),
]
BLOCK_FIELDS = [
    {"name": "ip_address", "label": "IP address", "required": True},
    {"name": "reason", "label": "Reason", "type": "textarea", "required": True},
    {"name": "blocked_until", "label": "Block until (optional)", "type": "date"},
]


def log_actions(row):
    if not row.get("ip_address"):
        return []
    prefill = svc.block_prefill(row)
    return [{"label": "Block IP", "method": "get",
             "url": url_for("security.block", ip_address=prefill["ip_address"], reason=prefill["reason"])}]


def block_actions(row):
    actions = []
    if row.get("is_active"):
        actions.append(post_action("Unblock", "security.unblock", row_id=row["id"]))
    actions.append(confirm_action("Delete", "security.delete", row_id=row["id"]))
    return actions


@bp_security.get("/")
def index():
    state = table_state()
    size = page_size()
    logs = load(svc.load_security_logs, what="security logs")
    blocked = load(svc.load_blocked_ips, what="blocked IPs")
    stats = svc.security_stats(logs, blocked)
    sections = [
        {"title": "Security logs", "actions": log_actions, "filterable": True,
         "page": TableView(LOG_COLUMNS, filter_keys=("event_type", "ip_address"), page_size=size).apply(logs, state)},
        {"title": "Blocked IPs", "actions": block_actions,
         "page": TableView(BLOCK_COLUMNS, page_size=size).apply(blocked, state.replace(page=1, q=""))},
    ]
    return render_template(
        "sections.html", title="Security", sections=sections, state=state,
        summary=[
            ("Events", stats["total_logs"]),
            ("Failed logins", stats["failed_logins"]),
            ("Active blocks", stats["blocked_ips"]),
            ("Alerts", stats["recent_alerts"]),
        ],
        toolbar=[{"label": "Block IP", "url": url_for("security.block")}],
    )


@bp_security.route("/block", methods=["GET", "POST"])
def block():
    errors = {}
    if request.method == "POST":
        failed = submit_form(svc.block_ip, request.form, success="IP address blocked", what="block")
        if failed is None:
            return redirect(url_for("security.index"))
        errors = failed.errors
    return form_page(
        "Block IP address", BLOCK_FIELDS, url_for("security.block"), url_for("security.index"),
        values=request.form if request.method == "POST" else request.args, errors=errors,
    )


@bp_security.post("/blocks/<row_id>/unblock")
def unblock(row_id):
    run(svc.unblock_ip, row_id, success="IP address unblocked", what="block")
    return back("security.index")


@bp_security.get("/blocks/<row_id>/delete")
def confirm_delete(row_id):
    return confirm_page(
        "Delete block",
        "This removes the block record entirely. This cannot be undone.",
        url_for("security.delete", row_id=row_id),
        url_for("security.index"),
    )


@bp_security.post("/blocks/<row_id>/delete")
def delete(row_id):
    run(svc.delete_block, row_id, success="Block deleted", what="block")
    return back("security.index")
