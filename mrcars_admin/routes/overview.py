from flask import Blueprint, render_template

from mrcars_admin.routes.pages import client
from mrcars_admin.services import overview_service as svc

bp_overview = Blueprint("overview", __name__)


@bp_overview.get("/")
def index():
    # every part of the overview degrades on its own, so there is nothing to catch here
    data = svc.load_overview(client())
    peak = max([m["revenue"] for m in data["chart"]] + [1])
    return render_template("overview.html", title="Dashboard", peak_revenue=peak, **data)
