from flask import Blueprint, url_for

from mrcars_admin.routes.pages import (
    back,
    confirm_action,
    confirm_page,
    day,
    load,
    money,
    page_size,
    post_action,
    render_table,
    run,
    table_state,
)
from mrcars_admin.services import listings_service as svc
from mrcars_admin.tables import Column, TableView

bp_listings = Blueprint("listings", __name__, url_prefix="/listings")

COLUMNS = [
    Column("make"),
    Column("model"),
    Column("year"),
    Column("price", render=money),
    Column("seller_name", "Seller"),
    Column("status"),
    Column("date_added", "Listed", render=day),
]


def view():
    return TableView(COLUMNS, filter_keys=("make",), page_size=page_size())


def row_actions(row):
    label = "Deactivate" if (row.get("status") or "active") == "active" else "Activate"
    return [
        post_action(label, "listings.toggle", row_id=row["id"]),
        confirm_action("Delete listing", "listings.delete", row_id=row["id"]),
    ]


@bp_listings.get("/")
def index():
    rows = load(svc.load_listings, what="listings")
    return render_table(
        view(), rows, table_state(),
        title="Car Listings", filter_label="Filter makes...", row_actions=row_actions,
    )


@bp_listings.post("/<row_id>/toggle")
def toggle(row_id):
    run(svc.toggle_listing_status, row_id, success="Listing status updated", what="listing")
    return back("listings.index")


@bp_listings.get("/<row_id>/delete")
def confirm_delete(row_id):
    return confirm_page(
        "Delete listing",
        "This permanently removes the car listing. This cannot be undone.",
        url_for("listings.delete", row_id=row_id),
        url_for("listings.index"),
    )


@bp_listings.post("/<row_id>/delete")
def delete(row_id):
    run(svc.delete_listing, row_id, success="Listing deleted", what="listing")
    return back("listings.index")
