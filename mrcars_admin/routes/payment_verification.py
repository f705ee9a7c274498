from flask import Blueprint, abort, current_app, flash, redirect, render_template, request, url_for

from mrcars_admin.client import QueryError
from mrcars_admin.routes.pages import back, client, day, load, page_size, render_table, run, table_state
from mrcars_admin.services import payments_service as svc
from mrcars_admin.services.common import RowNotFound
from mrcars_admin.tables import Column, TableView

bp_payment_verification = Blueprint("payment_verification", __name__, url_prefix="/payment-verification")


def amount(v, row):
    try:
        return f"{float(v):,.2f} {row.get('currency') or 'USD'}"
    except (TypeError, ValueError):
        return ""


COLUMNS = [
    Column("user_name", "User"),
    Column("amount", render=amount),
    Column("gateway_name", "Gateway"),
    Column("transaction_type", "Type"),
    Column("plan_name", "Plan"),
    Column("status"),
    Column("created_at", "Submitted", render=day),
]
TABS = [("pending", "Pending"), ("completed", "Approved"), ("failed", "Rejected"), ("all", "All")]


def view():
    return TableView(COLUMNS, filter_keys=("user_name", "user_email"), page_size=page_size(), status_key="status")


def row_actions(row):
    return [{"label": "Review", "url": url_for("payment_verification.detail", row_id=row["id"]), "method": "get"}]


@bp_payment_verification.get("/")
def index():
    rows = load(svc.load_transactions, what="transactions")
    v = view()
    stats = svc.transaction_stats(rows)
    return render_table(
        v, rows, table_state("pending"),
        title="Payment Verification", filter_label="Filter by user...", row_actions=row_actions,
        tabs=TABS, tab_counts=v.tab_counts(rows, [t for t, _ in TABS[:3]]),
        summary=[
            ("Pending", stats["pending"]),
            ("Pending amount", f"${stats['pending_amount']:,.2f}"),
            ("Approved today", stats["approved_today"]),
            ("Total revenue", f"${stats['total_revenue']:,.2f}"),
        ],
    )


@bp_payment_verification.get("/<row_id>")
def detail(row_id):
    try:
        txn = svc.load_transaction(client(), row_id)
    except RowNotFound:
        abort(404)
    except QueryError as e:
        current_app.logger.error("loading transaction %s failed: %s", row_id, e)
        flash(f"Error fetching transaction: {e}", "error")
        return redirect(url_for("payment_verification.index"))
    return render_template("transaction.html", title="Review payment", txn=txn)


@bp_payment_verification.post("/<row_id>/approve")
def approve(row_id):
    run(svc.approve_payment, row_id, request.form.get("admin_notes", ""),
        success="Payment approved", what="payment")
    return back("payment_verification.index")


@bp_payment_verification.post("/<row_id>/reject")
def reject(row_id):
    if not run(svc.reject_payment, row_id, request.form.get("reason"),
               success="Payment rejected", what="payment"):
        return redirect(url_for("payment_verification.detail", row_id=row_id))
    return back("payment_verification.index")
