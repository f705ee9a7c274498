from flask import Blueprint, current_app, render_template, request

from mrcars_admin.routes.pages import back, client, submit_form
from mrcars_admin.services import settings_service as svc
from mrcars_admin.utils.parsing import parse_bool
from mrcars_admin.utils.responses import ok

bp_settings = Blueprint("settings", __name__, url_prefix="/settings")

TOGGLES = [
    ("enable_user_registration", "User registration"),
    ("enable_car_listings", "Car listings"),
    ("enable_rental_listings", "Rental listings"),
    ("enable_emergency_services", "Emergency services"),
    ("enable_forum", "Forum"),
    ("auto_approve_listings", "Auto-approve listings"),
    ("enable_email_notifications", "Email notifications"),
    ("enable_push_notifications", "Push notifications"),
    ("maintenance_mode", "Maintenance mode"),
]


def page(settings, errors=None):
    return render_template(
        "settings.html",
        title="Settings",
        settings=settings,
        errors=errors or {},
        toggles=TOGGLES,
        stats=svc.system_stats(client()),
        refresh_ms=current_app.config.get("STATS_REFRESH_SECONDS", 30) * 1000,
    )


@bp_settings.get("/")
def index():
    return page(svc.load_settings(client()))


@bp_settings.post("/")
def save():
    failed = submit_form(svc.save_settings, request.form, success="Settings saved successfully", what="settings")
    if failed is None:
        return back("settings.index")
    entered = {k: request.form.get(k, "") for k in svc.TEXT_SETTINGS + ("max_listings_per_user",)}
    entered.update({k: parse_bool(request.form.get(k)) for k in svc.BOOLEAN_SETTINGS})
    return page(entered, failed.errors)


@bp_settings.get("/stats")
def stats():
    return ok(svc.system_stats(client()))
