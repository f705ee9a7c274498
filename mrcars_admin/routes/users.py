from flask import Blueprint, abort, current_app, flash, redirect, render_template, request, url_for

from mrcars_admin.client import QueryError
from mrcars_admin.routes.pages import (
    back,
    client,
    confirm_action,
    confirm_page,
    day,
    form_page,
    load,
    page_size,
    post_action,
    render_table,
    run,
    submit_form,
    table_state,
)
from mrcars_admin.services import listings_service, users_service as svc
from mrcars_admin.services.common import RowNotFound, get_row
from mrcars_admin.tables import Column, TableView

bp_users = Blueprint("users", __name__, url_prefix="/users")

COLUMNS = [
    Column("username"),
    Column("email"),
    Column("phone"),
    Column("role"),
    Column("status"),
    Column("listing_count", "Listings"),
    Column("created_at", "Joined", render=day),
]

ROLE_CHOICES = [(r, r.title()) for r in svc.USER_ROLES]

NEW_USER_FIELDS = [
    {"name": "email", "label": "Email", "type": "email", "required": True},
    {"name": "username", "label": "Username", "required": True},
    {"name": "phone", "label": "Phone"},
    {"name": "role", "label": "Role", "type": "select", "choices": ROLE_CHOICES},
    {"name": "is_active", "label": "Active", "type": "checkbox"},
]
EDIT_USER_FIELDS = [f for f in NEW_USER_FIELDS if f["name"] != "email"]

BULK_ACTIONS = [("activate", "Activate"), ("deactivate", "Deactivate"), ("delete", "Delete")]


def view():
    return TableView(COLUMNS, filter_keys=("username", "email"), page_size=page_size())


def row_actions(row):
    active = row.get("is_active") is not False
    return [
        {"label": "View details", "url": url_for("users.detail", row_id=row["id"]), "method": "get"},
        {"label": "Edit user", "url": url_for("users.edit", row_id=row["id"]), "method": "get"},
        post_action("Suspend user" if active else "Activate user", "users.toggle", row_id=row["id"]),
        confirm_action("Delete user", "users.delete", row_id=row["id"]),
    ]


@bp_users.get("/")
def index():
    rows = load(svc.load_users, what="users")
    return render_table(
        view(), rows, table_state(),
        title="Users", filter_label="Filter by username or email...", row_actions=row_actions,
        bulk_actions=BULK_ACTIONS, bulk_url=url_for("users.bulk"),
        toolbar=[{"label": "Add user", "url": url_for("users.new")}],
    )


@bp_users.route("/new", methods=["GET", "POST"])
def new():
    errors = {}
    if request.method == "POST":
        failed = submit_form(svc.add_user, request.form, success="User created", what="user")
        if failed is None:
            return redirect(url_for("users.index"))
        errors = failed.errors
    return form_page(
        "Add user", NEW_USER_FIELDS, url_for("users.new"), url_for("users.index"),
        values=request.form if request.method == "POST" else {"role": "user", "is_active": True},
        errors=errors,
    )


@bp_users.route("/<row_id>/edit", methods=["GET", "POST"])
def edit(row_id):
    errors = {}
    if request.method == "POST":
        failed = submit_form(svc.edit_user, row_id, request.form, success="User updated", what="user")
        if failed is None:
            return redirect(url_for("users.index"))
        errors = failed.errors
        values = request.form
    else:
        try:
            values = get_row(client(), "users", row_id)
        except RowNotFound:
            abort(404)
        except QueryError as e:
            flash(f"Error fetching user: {e}", "error")
            return redirect(url_for("users.index"))
    return form_page(
        "Edit user", EDIT_USER_FIELDS, url_for("users.edit", row_id=row_id), url_for("users.index"),
        values=values, errors=errors,
    )


@bp_users.post("/<row_id>/toggle")
def toggle(row_id):
    run(svc.toggle_user_active, row_id, success="User status updated", what="user")
    return back("users.index")


@bp_users.get("/<row_id>/delete")
def confirm_delete(row_id):
    return confirm_page(
        "Delete user",
        "This permanently deletes the user account. This cannot be undone.",
        url_for("users.delete", row_id=row_id),
        url_for("users.index"),
    )


@bp_users.post("/<row_id>/delete")
def delete(row_id):
    run(svc.delete_user, row_id, success="User deleted", what="user")
    return back("users.index")


@bp_users.post("/bulk")
def bulk():
    action = request.form.get("action", "")
    ids = request.form.getlist("selected")
    run(svc.bulk_users, ids, action, success=f"Bulk {action} applied", what="users")
    return back("users.index")


# ---------- detail ----------
def listing_actions(user_id, kind):
    def actions(row):
        live = "active" if kind == "car" else "available"
        field = "status" if kind == "car" else "availability_status"
        label = "Deactivate" if (row.get(field) or live) == live else "Activate"
        return [
            post_action(label, "users.toggle_listing", row_id=user_id, kind=kind, listing_id=row["id"]),
            confirm_action("Delete", "users.delete_listing", row_id=user_id, kind=kind, listing_id=row["id"]),
        ]
    return actions


@bp_users.get("/<row_id>")
def detail(row_id):
    try:
        user = get_row(client(), "users", row_id)
        listings = svc.load_user_listings(client(), user)
    except RowNotFound:
        abort(404)
    except QueryError as e:
        current_app.logger.error("loading user %s failed: %s", row_id, e)
        flash(f"Error fetching user: {e}", "error")
        return redirect(url_for("users.index"))
    return render_template(
        "user_detail.html",
        title=user.get("username") or user.get("email"),
        user=user,
        cars=listings["cars"],
        rentals=listings["rentals"],
        car_actions=listing_actions(row_id, "car"),
        rental_actions=listing_actions(row_id, "rental"),
    )


def checked_kind(kind):
    if kind not in listings_service.LISTING_TABLES:
        abort(404)
    return kind


@bp_users.post("/<row_id>/listings/<kind>/<listing_id>/toggle")
def toggle_listing(row_id, kind, listing_id):
    run(listings_service.toggle_user_listing, checked_kind(kind), listing_id,
        success="Listing status updated", what="listing")
    return back("users.detail", row_id=row_id)


@bp_users.get("/<row_id>/listings/<kind>/<listing_id>/delete")
def confirm_delete_listing(row_id, kind, listing_id):
    return confirm_page(
        "Delete listing",
        "This permanently removes the listing. This cannot be undone.",
        url_for("users.delete_listing", row_id=row_id, kind=checked_kind(kind), listing_id=listing_id),
        url_for("users.detail", row_id=row_id),
    )


@bp_users.post("/<row_id>/listings/<kind>/<listing_id>/delete")
def delete_listing(row_id, kind, listing_id):
    run(listings_service.delete_user_listing, checked_kind(kind), listing_id,
        success="Listing deleted", what="listing")
    return back("users.detail", row_id=row_id)
