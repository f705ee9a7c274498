from flask import Blueprint, abort, request, url_for

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

bp_products = Blueprint("products", __name__, url_prefix="/products")

COLUMNS = [
    Column("name"),
    Column("brand"),
    Column("price", render=money),
    Column("status"),
    Column("stock"),
    Column("created_at", "Created", render=day),
]

TABS = [("tire", "Tires"), ("battery", "Batteries")]


def view():
    return TableView(COLUMNS, filter_keys=("name",), page_size=page_size())


def checked_kind(kind):
    if kind not in svc.PRODUCT_TABLES:
        abort(404)
    return kind


def actions_for(kind):
    def row_actions(row):
        return [
            post_action("Deactivate" if row.get("is_active") else "Activate",
                        "products.toggle_active", kind=kind, row_id=row["id"]),
            post_action("Mark out of stock" if row.get("in_stock") else "Mark in stock",
                        "products.toggle_stock", kind=kind, row_id=row["id"]),
            confirm_action("Delete product", "products.delete", kind=kind, row_id=row["id"]),
        ]
    return row_actions


@bp_products.get("/")
def index():
    kind = request.args.get("tab") or "tire"
    if kind not in svc.PRODUCT_TABLES:
        kind = "tire"
    rows = load(svc.load_products, kind, what=f"{kind} products")
    return render_table(
        view(), rows, table_state(kind),
        title="Parts Shop", filter_label="Filter products...", row_actions=actions_for(kind),
        tabs=TABS,
    )


@bp_products.post("/<kind>/<row_id>/active")
def toggle_active(kind, row_id):
    run(svc.toggle_product_active, checked_kind(kind), row_id, success="Product status updated", what="product")
    return back("products.index", tab=kind)


@bp_products.post("/<kind>/<row_id>/stock")
def toggle_stock(kind, row_id):
    run(svc.toggle_product_stock, checked_kind(kind), row_id, success="Stock status updated", what="product")
    return back("products.index", tab=kind)


@bp_products.get("/<kind>/<row_id>/delete")
def confirm_delete(kind, row_id):
    return confirm_page(
        "Delete product",
        "This permanently removes the product. This cannot be undone.",
        url_for("products.delete", kind=checked_kind(kind), row_id=row_id),
        url_for("products.index", tab=kind),
    )


@bp_products.post("/<kind>/<row_id>/delete")
def delete(kind, row_id):
    run(svc.delete_product, checked_kind(kind), row_id, success="Product deleted", what="product")
    return back("products.index", tab=kind)
