from flask import Blueprint, request, url_for

from mrcars_admin.routes.pages import (
    back,
    confirm_action,
    confirm_page,
    day,
    load,
    money,
    page_size,
    render_table,
    run,
    status_actions,
    table_state,
)
from mrcars_admin.services import listings_service as svc
from mrcars_admin.statuses import RENTAL_STATUSES
from mrcars_admin.tables import Column, TableView

bp_rentals = Blueprint("rentals", __name__, url_prefix="/rentals")

COLUMNS = [
    Column("make"),
    Column("model"),
    Column("year"),
    Column("daily_rate", "Daily rate", render=money),
    Column("owner_name", "Owner"),
    Column("owner_email", "Owner email"),
    Column("availability_status", "Availability"),
    Column("created_at", "Created", render=day),
]


def view():
    return TableView(COLUMNS, filter_keys=("make",), page_size=page_size(), status_key="availability_status")


def row_actions(row):
    return status_actions("rental", row, "rentals.set_status", field="availability_status") + [
        confirm_action("Delete rental", "rentals.delete", row_id=row["id"]),
    ]


@bp_rentals.get("/")
def index():
    rows = load(svc.load_rentals, what="rental listings")
    v = view()
    return render_table(
        v, rows, table_state("all"),
        title="Rental Listings", filter_label="Filter makes...", row_actions=row_actions,
        tabs=[("all", "All")] + [(s, s.title()) for s in RENTAL_STATUSES],
        tab_counts=v.tab_counts(rows, RENTAL_STATUSES),
    )


@bp_rentals.post("/<row_id>/status")
def set_status(row_id):
    target = request.form.get("status", "")
    run(svc.set_rental_status, row_id, target, success=f"Rental marked {target}", what="rental")
    return back("rentals.index")


@bp_rentals.get("/<row_id>/delete")
def confirm_delete(row_id):
    return confirm_page(
        "Delete rental listing",
        "This permanently removes the rental listing. This cannot be undone.",
        url_for("rentals.delete", row_id=row_id),
        url_for("rentals.index"),
    )


@bp_rentals.post("/<row_id>/delete")
def delete(row_id):
    run(svc.delete_rental, row_id, success="Rental listing deleted", what="rental")
    return back("rentals.index")
