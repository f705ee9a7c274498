from flask import Blueprint, current_app, flash, render_template, request

from mrcars_admin.client import QueryError
from mrcars_admin.routes.pages import client
from mrcars_admin.services import analytics_service as svc
from mrcars_admin.utils.parsing import parse_int

bp_analytics = Blueprint("analytics", __name__, url_prefix="/analytics")


@bp_analytics.get("/")
def index():
    days = parse_int(request.args.get("days"), 7)
    if days not in svc.RANGES:
        days = 7
    try:
        data = svc.load_analytics(client(), days)
    except QueryError as e:
        current_app.logger.error("loading analytics failed: %s", e)
        flash(f"Error fetching analytics: {e}", "error")
        data = {
            "days": days, "since": svc.window_start(days), "platform": [],
            "summary": svc.summarize_platform([]), "sections": {}, "top_items": [],
        }
    return render_template("analytics.html", title="Analytics", ranges=svc.RANGES, **data)
