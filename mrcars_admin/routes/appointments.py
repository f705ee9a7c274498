from flask import Blueprint, request

from mrcars_admin.routes.pages import back, load, page_size, render_table, run, status_actions, table_state
from mrcars_admin.services import orders_service as svc
from mrcars_admin.tables import Column, TableView

bp_appointments = Blueprint("appointments", __name__, url_prefix="/appointments")


def car(v, row):
    return f"{row.get('car_year') or ''} {row.get('car_make')} {row.get('car_model')}".strip()


def customer(v, row):
    phone = row.get("customer_phone")
    return v if not phone or phone == "N/A" else f"{v} ({phone})"


COLUMNS = [
    Column("car_make", "Car", render=car),
    Column("customer_name", "Customer", render=customer),
    Column("date"),
    Column("time_slot", "Time"),
    Column("status"),
]
STATUSES = ("scheduled", "completed", "cancelled")


def view():
    return TableView(COLUMNS, filter_keys=("customer_name",), page_size=page_size(), status_key="status")


def row_actions(row):
    return status_actions("appointment", row, "appointments.set_status")


@bp_appointments.get("/")
def index():
    rows = load(svc.load_appointments, what="appointments")
    v = view()
    return render_table(
        v, rows, table_state("all"),
        title="Appointments", filter_label="Filter customers...", row_actions=row_actions,
        tabs=[("all", "All")] + [(s, s.title()) for s in STATUSES],
        tab_counts=v.tab_counts(rows, STATUSES),
    )


@bp_appointments.post("/<row_id>/status")
def set_status(row_id):
    target = request.form.get("status", "")
    run(svc.set_appointment_status, row_id, target,
        success=f"Appointment status changed to {target}", what="appointment")
    return back("appointments.index")
