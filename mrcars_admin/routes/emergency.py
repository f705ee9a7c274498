from flask import Blueprint, abort, flash, redirect, request, url_for

from mrcars_admin.client import QueryError
from mrcars_admin.routes.pages import (
    back,
    client,
    confirm_action,
    confirm_page,
    day,
    form_page,
    load,
    page_size,
    render_table,
    run,
    status_actions,
    submit_form,
    table_state,
)
from mrcars_admin.services import emergency_service as svc
from mrcars_admin.services.common import RowNotFound, get_row
from mrcars_admin.tables import Column, TableView

bp_emergency = Blueprint("emergency", __name__, url_prefix="/emergency")

COLUMNS = [
    Column("user_name", "Requester"),
    Column("issue_description", "Issue", sortable=False),
    Column("location"),
    Column("status"),
    Column("admin_response", "Response", sortable=False),
    Column("created_at", "Requested", render=day),
]
STATUSES = ("pending", "accepted", "in_progress", "completed", "cancelled")

RESPONSE_FIELDS = [
    {"name": "admin_response", "label": "Response", "type": "textarea", "required": True},
    {"name": "estimated_arrival", "label": "Estimated arrival"},
    {"name": "contact_phone", "label": "Contact phone"},
]


def view():
    return TableView(COLUMNS, filter_keys=("issue_description",), page_size=page_size(), status_key="status")


def row_actions(row):
    return (
        [{"label": "Respond", "url": url_for("emergency.respond", row_id=row["id"]), "method": "get"}]
        + status_actions("emergency", row, "emergency.set_status")
        + [confirm_action("Delete request", "emergency.delete", row_id=row["id"])]
    )


@bp_emergency.get("/")
def index():
    rows = load(svc.load_emergency_requests, what="emergency requests")
    v = view()
    return render_table(
        v, rows, table_state("all"),
        title="Emergency Requests", filter_label="Filter issues...", row_actions=row_actions,
        tabs=[("all", "All")] + [(s, s.replace("_", " ").title()) for s in STATUSES],
        tab_counts=v.tab_counts(rows, STATUSES),
    )


@bp_emergency.post("/<row_id>/status")
def set_status(row_id):
    target = request.form.get("status", "")
    run(svc.set_emergency_status, row_id, target,
        success=f"Emergency request status changed to {target}", what="emergency request")
    return back("emergency.index")


@bp_emergency.route("/<row_id>/respond", methods=["GET", "POST"])
def respond(row_id):
    errors = {}
    if request.method == "POST":
        failed = submit_form(svc.respond_to_request, row_id, request.form,
                             success="Response sent", what="response")
        if failed is None:
            return redirect(url_for("emergency.index"))
        errors = failed.errors
        values = request.form
    else:
        try:
            values = get_row(client(), "emergency_requests", row_id)
        except RowNotFound:
            abort(404)
        except QueryError as e:
            flash(f"Error fetching emergency request: {e}", "error")
            return redirect(url_for("emergency.index"))
    return form_page(
        "Respond to emergency request", RESPONSE_FIELDS,
        url_for("emergency.respond", row_id=row_id), url_for("emergency.index"),
        values=values, errors=errors,
    )


@bp_emergency.get("/<row_id>/delete")
def confirm_delete(row_id):
    return confirm_page(
        "Delete emergency request",
        "This permanently removes the request. This cannot be undone.",
        url_for("emergency.delete", row_id=row_id),
        url_for("emergency.index"),
    )


@bp_emergency.post("/<row_id>/delete")
def delete(row_id):
    run(svc.delete_emergency_request, row_id, success="Emergency request deleted", what="emergency request")
    return back("emergency.index")
