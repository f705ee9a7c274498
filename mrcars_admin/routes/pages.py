"""Plumbing shared by the resource page blueprints.

A page GET loads rows, applies the table state from the query string and
renders. A mutation POST runs one service call, flashes the outcome and
redirects back to the page, whose next GET reloads everything.
"""
from typing import Callable, List, Optional

from flask import current_app, flash, redirect, render_template, request, url_for

from mrcars_admin.client import QueryError
from mrcars_admin.extensions import current_client
from mrcars_admin.forms import ValidationError
from mrcars_admin.services.common import RowNotFound
from mrcars_admin.services.payments_service import PartialUpdateError
from mrcars_admin.statuses import TransitionError, transitions_for
from mrcars_admin.tables import TableState, TableView


def client():
    return current_client()


# cell renderers
def money(v, row=None) -> str:
    try:
        return f"${float(v):,.2f}"
    except (TypeError, ValueError):
        return "$0.00"


def day(v, row=None) -> str:
    return str(v)[:10] if v else ""


def page_size() -> int:
    return current_app.config.get("PAGE_SIZE", 10)


def table_state(default_tab=None) -> TableState:
    return TableState.from_args(request.args, default_tab)


def table_url(state: TableState, endpoint: Optional[str] = None, **values) -> str:
    args = dict(request.view_args or {})
    args.update(values)
    args.update(state.to_args())
    return url_for(endpoint or request.endpoint, **args)


def load(loader: Callable, *args, what: str) -> list:
    """Run a loader; on failure flash the backend message and show no rows."""
    try:
        return loader(client(), *args)
    except QueryError as e:
        current_app.logger.error("loading %s failed: %s", what, e)
        flash(f"Error fetching {what}: {e}", "error")
        return []


def render_table(view: TableView, rows: List[dict], state: TableState, template="table.html", **ctx):
    return render_template(template, page=view.apply(rows, state), view=view, **ctx)


def safe_next(default: str) -> str:
    nxt = request.form.get("next") or request.args.get("next") or ""
    # only same-site paths
    if nxt.startswith("/") and not nxt.startswith("//"):
        return nxt
    return default


def back(endpoint: str, **values):
    return redirect(safe_next(url_for(endpoint, **values)))


def run(action: Callable, *args, success: str, what: str) -> bool:
    """Run one mutation and flash how it went. True when it went through."""
    try:
        action(client(), *args)
    except ValidationError as e:
        flash(f"Validation error: {e}", "error")
        return False
    except TransitionError as e:
        flash(f"Error updating {what}: {e}", "error")
        return False
    except RowNotFound as e:
        flash(f"Error updating {what}: {e}", "error")
        return False
    except PartialUpdateError as e:
        current_app.logger.error("partial update: %s", e)
        flash(f"Partially applied: {e}. Finish the remaining step by hand.", "warning")
        return False
    except QueryError as e:
        current_app.logger.error("%s failed: %s", what, e)
        flash(f"Error updating {what}: {e}", "error")
        return False
    flash(success, "success")
    return True


def status_actions(entity: str, row: dict, endpoint: str, field="status") -> List[dict]:
    """Row action menu entries for every transition offered from the row's status."""
    return [
        {"label": label, "url": url_for(endpoint, row_id=row["id"]), "fields": {"status": target}}
        for target, label in transitions_for(entity, row.get(field))
    ]


def post_action(label: str, endpoint: str, danger=False, **values) -> dict:
    return {"label": label, "url": url_for(endpoint, **values), "fields": {}, "danger": danger}


def confirm_action(label: str, endpoint: str, **values) -> dict:
    """Destructive actions open a confirm page first."""
    return {"label": label, "url": url_for(endpoint, **values), "method": "get", "danger": True}


def confirm_page(title: str, message: str, action_url: str, cancel_url: str, **ctx):
    return render_template(
        "confirm.html", title=title, message=message, action_url=action_url, cancel_url=cancel_url, **ctx
    )


def form_page(title: str, fields: List[dict], action_url: str, cancel_url: str, values=None, errors=None, **ctx):
    return render_template(
        "form.html",
        title=title,
        fields=fields,
        action_url=action_url,
        cancel_url=cancel_url,
        values=values or {},
        errors=errors or {},
        **ctx,
    )


def submit_form(action: Callable, *args, success: str, what: str):
    """Like run() but hands back a ValidationError so the dialog can re-render.

    A backend failure comes back as one with no field errors; only success
    returns None.
    """
    try:
        action(client(), *args)
    except ValidationError as e:
        flash(f"Validation error: {e}", "error")
        return e
    except (QueryError, RowNotFound) as e:
        current_app.logger.error("%s failed: %s", what, e)
        flash(f"Error saving {what}: {e}", "error")
        return ValidationError({})
    flash(success, "success")
    return None
