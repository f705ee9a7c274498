from flask import Blueprint, flash, redirect, render_template, request, url_for

from mrcars_admin.routes.pages import (
    back,
    day,
    form_page,
    load,
    money,
    page_size,
    post_action,
    run,
    status_actions,
    submit_form,
    table_state,
)
from mrcars_admin.services import subscriptions_service as svc
from mrcars_admin.services import users_service
from mrcars_admin.tables import Column, TableView

bp_subscriptions = Blueprint("subscriptions", __name__, url_prefix="/subscriptions")

SUB_COLUMNS = [
    Column("user_name", "User"),
    Column("plan_name", "Plan"),
    Column("status"),
    Column("start_date", "Start", render=day),
    Column("end_date", "End", render=day),
    Column("auto_renew", "Auto renew"),
    Column("amount_paid", "Paid", render=money),
]
PLAN_COLUMNS = [
    Column("name"),
    Column("price", render=money),
    Column("billing_period", "Billing"),
    Column("status"),
    Column("sort_order", "Order"),
]
EXTEND_OPTIONS = (1, 3, 6, 12)


def sub_actions(row):
    return (
        status_actions("subscription", row, "subscriptions.set_status")
        + [{"label": "Change plan", "url": url_for("subscriptions.change_plan", row_id=row["id"]), "method": "get"}]
        + [
            {"label": f"Extend {n} month{'s' if n > 1 else ''}",
             "url": url_for("subscriptions.extend", row_id=row["id"]), "fields": {"months": n}}
            for n in EXTEND_OPTIONS
        ]
    )


def plan_actions(row):
    return [post_action("Deactivate" if row.get("is_active") else "Activate",
                        "subscriptions.toggle_plan", row_id=row["id"])]


def plan_choices(plans):
    return [(p["id"], f"{p.get('name')} - ${p.get('price')}/{p.get('billing_period') or 'month'}") for p in plans]


@bp_subscriptions.get("/")
def index():
    state = table_state("all")
    size = page_size()
    plans = load(svc.load_plans, what="subscription plans")
    subs = load(svc.load_subscriptions, plans or None, what="subscriptions")
    stats = svc.subscription_stats(subs)
    sub_view = TableView(SUB_COLUMNS, filter_keys=("user_name", "plan_name"), page_size=size, status_key="status")
    sections = [
        {"title": "Subscriptions", "actions": sub_actions, "page": sub_view.apply(subs, state),
         "filterable": True, "tabs": [(t, t.title()) for t in svc.SUBSCRIPTION_TABS],
         "tab_counts": sub_view.tab_counts(subs, svc.SUBSCRIPTION_TABS[1:])},
        {"title": "Plans", "actions": plan_actions,
         "page": TableView(PLAN_COLUMNS, page_size=size).apply(plans, state.replace(page=1, q="", tab=None))},
    ]
    return render_template(
        "sections.html", title="Subscriptions & Plans", sections=sections, state=state,
        summary=[
            ("Active subscriptions", stats["active"]),
            ("Revenue (active)", f"${stats['total_revenue']:,.2f}"),
            ("Monthly recurring", f"${stats['monthly_recurring']:,.2f}"),
            ("Gold plans", stats["gold_plus"]),
            ("Auto renewing", stats["auto_renew"]),
        ],
        toolbar=[{"label": "Grant subscription", "url": url_for("subscriptions.grant")}],
    )


@bp_subscriptions.post("/<row_id>/status")
def set_status(row_id):
    target = request.form.get("status", "")
    run(svc.set_subscription_status, row_id, target,
        success=f"Subscription status changed to {target}", what="subscription")
    return back("subscriptions.index")


@bp_subscriptions.post("/plans/<row_id>/toggle")
def toggle_plan(row_id):
    run(svc.toggle_plan, row_id, success="Plan updated", what="plan")
    return back("subscriptions.index")


@bp_subscriptions.post("/<row_id>/extend")
def extend(row_id):
    months = request.form.get("months")
    run(svc.extend_subscription, row_id, months, success=f"Extended by {months} month(s)", what="subscription")
    return back("subscriptions.index")


@bp_subscriptions.route("/grant", methods=["GET", "POST"])
def grant():
    errors = {}
    if request.method == "POST":
        failed = submit_form(svc.grant_subscription, request.form,
                             success="Subscription granted", what="subscription")
        if failed is None:
            return redirect(url_for("subscriptions.index"))
        errors = failed.errors
    users = load(users_service.load_users, what="users")
    plans = [p for p in load(svc.load_plans, what="subscription plans") if p.get("is_active")]
    fields = [
        {"name": "user_id", "label": "User", "type": "select",
         "choices": [(u["id"], f"{u.get('username')} ({u.get('email')})") for u in users]},
        {"name": "plan_id", "label": "Plan", "type": "select", "choices": plan_choices(plans)},
        {"name": "duration_months", "label": "Duration (months)", "type": "number", "min": 1,
         "max": svc.MAX_GRANT_MONTHS},
        {"name": "notes", "label": "Notes", "type": "textarea"},
    ]
    return form_page(
        "Grant subscription", fields, url_for("subscriptions.grant"), url_for("subscriptions.index"),
        values=request.form if request.method == "POST" else {"duration_months": 1}, errors=errors,
    )


@bp_subscriptions.route("/<row_id>/plan", methods=["GET", "POST"])
def change_plan(row_id):
    if request.method == "POST":
        if run(svc.change_plan, row_id, request.form.get("plan_id"), success="Plan changed", what="subscription"):
            return redirect(url_for("subscriptions.index"))
    plans = load(svc.load_plans, what="subscription plans")
    if not plans:
        flash("No plans available", "error")
        return redirect(url_for("subscriptions.index"))
    fields = [{"name": "plan_id", "label": "New plan", "type": "select", "choices": plan_choices(plans)}]
    return form_page(
        "Change plan", fields, url_for("subscriptions.change_plan", row_id=row_id),
        url_for("subscriptions.index"), values=request.form,
    )
