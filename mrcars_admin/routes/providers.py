from flask import Blueprint, redirect, request, url_for

from mrcars_admin.routes.pages import (
    back,
    confirm_action,
    confirm_page,
    day,
    form_page,
    load,
    page_size,
    post_action,
    render_table,
    run,
    table_state,
)
from mrcars_admin.services import providers_service as svc
from mrcars_admin.tables import Column, TableView

bp_providers = Blueprint("providers", __name__, url_prefix="/service-providers")

COLUMNS = [
    Column("business_name", "Business"),
    Column("service_type", "Service"),
    Column("location"),
    Column("verification"),
    Column("status"),
    Column("created_at", "Joined", render=day),
]
DECISION_FIELDS = [
    {"name": "decision", "label": "Decision", "type": "select",
     "choices": [("approve", "Approve"), ("reject", "Reject")]},
    {"name": "notes", "label": "Notes (required when rejecting)", "type": "textarea"},
]


def view():
    return TableView(COLUMNS, filter_keys=("business_name",), page_size=page_size(), status_key="verification")


def row_actions(row):
    return [
        {"label": "Review verification", "url": url_for("providers.verify", row_id=row["id"]), "method": "get"},
        post_action("Unverify" if row.get("is_verified") else "Verify", "providers.toggle_verified", row_id=row["id"]),
        post_action("Deactivate" if row.get("is_active") else "Activate", "providers.toggle_active", row_id=row["id"]),
        confirm_action("Delete provider", "providers.delete", row_id=row["id"]),
    ]


@bp_providers.get("/")
def index():
    rows = load(svc.load_providers, what="service providers")
    v = view()
    return render_table(
        v, rows, table_state("all"),
        title="Service Providers", filter_label="Filter businesses...", row_actions=row_actions,
        tabs=[("all", "All"), ("verified", "Verified"), ("unverified", "Unverified")],
        tab_counts=v.tab_counts(rows, ("verified", "unverified")),
    )


@bp_providers.post("/<row_id>/verified")
def toggle_verified(row_id):
    run(svc.toggle_verified, row_id, success="Verification status updated", what="provider")
    return back("providers.index")


@bp_providers.post("/<row_id>/active")
def toggle_active(row_id):
    run(svc.toggle_active, row_id, success="Provider status updated", what="provider")
    return back("providers.index")


@bp_providers.route("/<row_id>/verify", methods=["GET", "POST"])
def verify(row_id):
    errors = {}
    if request.method == "POST":
        decision = request.form.get("decision", "")
        done = run(svc.decide_verification, row_id, decision, request.form.get("notes", ""),
                   success="Provider verified" if decision == "approve" else "Provider rejected",
                   what="provider")
        if done:
            return redirect(url_for("providers.index"))
        if decision == "reject" and not (request.form.get("notes") or "").strip():
            errors = {"notes": "Rejection notes is required"}
    return form_page(
        "Verification decision", DECISION_FIELDS, url_for("providers.verify", row_id=row_id),
        url_for("providers.index"), values=request.form, errors=errors,
    )


@bp_providers.get("/<row_id>/delete")
def confirm_delete(row_id):
    return confirm_page(
        "Delete service provider",
        "This permanently removes the provider. This cannot be undone.",
        url_for("providers.delete", row_id=row_id),
        url_for("providers.index"),
    )


@bp_providers.post("/<row_id>/delete")
def delete(row_id):
    run(svc.delete_provider, row_id, success="Provider deleted", what="provider")
    return back("providers.index")
