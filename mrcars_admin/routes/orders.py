from flask import Blueprint, request

from mrcars_admin.routes.pages import (
    back,
    day,
    load,
    money,
    page_size,
    render_table,
    run,
    status_actions,
    table_state,
)
from mrcars_admin.services import orders_service as svc
from mrcars_admin.tables import Column, TableView

bp_orders = Blueprint("orders", __name__, url_prefix="/orders")

COLUMNS = [
    Column("id", "Order"),
    Column("customer_name", "Customer"),
    Column("item_count", "Items"),
    Column("total_amount", "Total", render=money),
    Column("status"),
    Column("created_at", "Placed", render=day),
]
STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")


def view():
    return TableView(COLUMNS, filter_keys=("customer_name",), page_size=page_size(), status_key="status")


def row_actions(row):
    return status_actions("order", row, "orders.set_status")


@bp_orders.get("/")
def index():
    rows = load(svc.load_orders, what="orders")
    v = view()
    return render_table(
        v, rows, table_state("all"),
        title="Orders", filter_label="Filter customers...", row_actions=row_actions,
        tabs=[("all", "All")] + [(s, s.title()) for s in STATUSES],
        tab_counts=v.tab_counts(rows, STATUSES),
    )


@bp_orders.post("/<row_id>/status")
def set_status(row_id):
    target = request.form.get("status", "")
    run(svc.set_order_status, row_id, target, success=f"Order status changed to {target}", what="order")
    return back("orders.index")
