from flask import Blueprint, request

from mrcars_admin.routes.pages import back, day, load, page_size, render_table, run, status_actions, table_state
from mrcars_admin.services import orders_service as svc
from mrcars_admin.tables import Column, TableView

bp_inquiries = Blueprint("inquiries", __name__, url_prefix="/inquiries")


def car(v, row):
    return f"{row.get('car_year') or ''} {row.get('car_make')} {row.get('car_model')}".strip()


COLUMNS = [
    Column("car_make", "Car", render=car),
    Column("user_name", "From"),
    Column("message", sortable=False),
    Column("status"),
    Column("created_at", "Received", render=day),
]
STATUSES = ("pending", "responded", "resolved")


def view():
    return TableView(COLUMNS, filter_keys=("message",), page_size=page_size(), status_key="status")


def row_actions(row):
    return status_actions("inquiry", row, "inquiries.set_status")


@bp_inquiries.get("/")
def index():
    rows = load(svc.load_inquiries, what="inquiries")
    v = view()
    return render_table(
        v, rows, table_state("all"),
        title="Inquiries", filter_label="Filter messages...", row_actions=row_actions,
        tabs=[("all", "All")] + [(s, s.title()) for s in STATUSES],
        tab_counts=v.tab_counts(rows, STATUSES),
    )


@bp_inquiries.post("/<row_id>/status")
def set_status(row_id):
    target = request.form.get("status", "")
    run(svc.set_inquiry_status, row_id, target, success=f"Inquiry status changed to {target}", what="inquiry")
    return back("inquiries.index")
