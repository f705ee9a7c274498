from flask import Blueprint, abort, flash, redirect, render_template, request, url_for

from mrcars_admin.client import QueryError
from mrcars_admin.routes.pages import (
    back,
    client,
    confirm_action,
    confirm_page,
    day,
    form_page,
    load,
    money,
    page_size,
    post_action,
    run,
    submit_form,
    table_state,
)
from mrcars_admin.services import payments_service as svc
from mrcars_admin.services.common import RowNotFound, get_row
from mrcars_admin.tables import Column, TableView

bp_payments = Blueprint("payments", __name__, url_prefix="/payments")

RECENT_TRANSACTIONS = 100

GATEWAY_COLUMNS = [
    Column("name"),
    Column("type"),
    Column("status"),
    Column("sort_order", "Order"),
]
BANK_COLUMNS = [
    Column("account_name", "Account name"),
    Column("bank_name", "Bank"),
    Column("account_number", "Account number"),
    Column("currency"),
    Column("is_primary", "Primary"),
    Column("status"),
]
TXN_COLUMNS = [
    Column("user_name", "User"),
    Column("amount", render=money),
    Column("gateway_name", "Gateway"),
    Column("status"),
    Column("created_at", "Created", render=day),
]

BANK_FIELDS = [
    {"name": "account_name", "label": "Account name", "required": True},
    {"name": "bank_name", "label": "Bank name", "required": True},
    {"name": "account_number", "label": "Account number", "required": True},
    {"name": "branch_name", "label": "Branch"},
    {"name": "swift_code", "label": "SWIFT code"},
    {"name": "currency", "label": "Currency", "type": "select", "choices": [(c, c) for c in svc.CURRENCIES]},
    {"name": "is_primary", "label": "Set as primary account", "type": "checkbox"},
    {"name": "is_active", "label": "Active", "type": "checkbox"},
    {"name": "instructions", "label": "Payment instructions", "type": "textarea"},
]


def gateway_actions(row):
    return [post_action("Disable" if row.get("is_enabled") else "Enable", "payments.toggle_gateway", row_id=row["id"])]


def bank_actions(row):
    return [
        {"label": "Edit", "url": url_for("payments.edit_bank", row_id=row["id"]), "method": "get"},
        post_action("Deactivate" if row.get("is_active") else "Activate", "payments.toggle_bank", row_id=row["id"]),
        confirm_action("Delete", "payments.delete_bank", row_id=row["id"]),
    ]


@bp_payments.get("/")
def index():
    state = table_state()
    size = page_size()
    gateways = load(svc.load_gateways, what="payment gateways")
    banks = load(svc.load_bank_accounts, what="bank accounts")
    txns = load(svc.load_transactions, RECENT_TRANSACTIONS, what="transactions")
    sections = [
        {"title": "Payment gateways", "actions": gateway_actions,
         "page": TableView(GATEWAY_COLUMNS, page_size=size).apply(gateways, state.replace(page=1, q=""))},
        {"title": "Bank accounts", "actions": bank_actions,
         "page": TableView(BANK_COLUMNS, filter_keys=("account_name", "bank_name"), page_size=size).apply(banks, state),
         "filterable": True},
        {"title": "Recent transactions", "actions": None,
         "page": TableView(TXN_COLUMNS, page_size=size).apply(txns, state.replace(page=1, q=""))},
    ]
    return render_template(
        "sections.html", title="Payments", sections=sections, state=state,
        toolbar=[{"label": "Add bank account", "url": url_for("payments.new_bank")}],
    )


@bp_payments.post("/gateways/<row_id>/toggle")
def toggle_gateway(row_id):
    run(svc.toggle_gateway, row_id, success="Gateway updated", what="gateway")
    return back("payments.index")


@bp_payments.route("/banks/new", methods=["GET", "POST"])
def new_bank():
    errors = {}
    if request.method == "POST":
        failed = submit_form(svc.save_bank_account, request.form, success="Bank account added", what="bank account")
        if failed is None:
            return redirect(url_for("payments.index"))
        errors = failed.errors
    return form_page(
        "Add bank account", BANK_FIELDS, url_for("payments.new_bank"), url_for("payments.index"),
        values=request.form if request.method == "POST" else {"currency": "USD", "is_active": True},
        errors=errors,
    )


@bp_payments.route("/banks/<row_id>/edit", methods=["GET", "POST"])
def edit_bank(row_id):
    errors = {}
    if request.method == "POST":
        failed = submit_form(svc.save_bank_account, request.form, row_id,
                             success="Bank account updated", what="bank account")
        if failed is None:
            return redirect(url_for("payments.index"))
        errors = failed.errors
        values = request.form
    else:
        try:
            values = get_row(client(), "bank_accounts", row_id)
        except RowNotFound:
            abort(404)
        except QueryError as e:
            flash(f"Error fetching bank account: {e}", "error")
            return redirect(url_for("payments.index"))
    return form_page(
        "Edit bank account", BANK_FIELDS, url_for("payments.edit_bank", row_id=row_id),
        url_for("payments.index"), values=values, errors=errors,
    )


@bp_payments.post("/banks/<row_id>/toggle")
def toggle_bank(row_id):
    run(svc.toggle_bank_account, row_id, success="Bank account updated", what="bank account")
    return back("payments.index")


@bp_payments.get("/banks/<row_id>/delete")
def confirm_delete_bank(row_id):
    return confirm_page(
        "Delete bank account",
        "This permanently removes the bank account. This cannot be undone.",
        url_for("payments.delete_bank", row_id=row_id),
        url_for("payments.index"),
    )


@bp_payments.post("/banks/<row_id>/delete")
def delete_bank(row_id):
    run(svc.delete_bank_account, row_id, success="Bank account deleted", what="bank account")
    return back("payments.index")
