from functools import wraps

import jwt
from flask import Blueprint, current_app, g, request, session

from mrcars_admin.utils.responses import err, ok

SESSION_KEY = "admin_access_token"


def decode_token(token: str) -> dict:
    return jwt.decode(
        token,
        current_app.config["JWT_SECRET"],
        algorithms=[current_app.config.get("JWT_ALGO", "HS256")],
        options={"verify_sub": False},
    )


def _bearer_token():
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        return auth.split(" ", 1)[1].strip()
    return session.get(SESSION_KEY)


def require_admin(func):
    @wraps(func)
    def wrapper(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return err("missing_token", 401)
        try:
            payload = decode_token(token)
        except jwt.InvalidTokenError:
            return err("invalid_token", 401)

        if str(payload.get("role", "")).lower() != "admin":
            return err("not_admin", 403)

        g.admin = payload
        return func(*args, **kwargs)

    return wrapper


@require_admin
def _admin_gate():
    return None


def guard(bp: Blueprint) -> Blueprint:
    """Require an admin token on every view of a blueprint."""
    bp.before_request(_admin_gate)
    return bp


bp_session = Blueprint("session", __name__, url_prefix="/session")


@bp_session.post("")
def open_session():
    body = request.get_json(silent=True) or request.form
    token = (body.get("access_token") or "").strip()
    if not token:
        return err("missing_token", 400)
    try:
        payload = decode_token(token)
    except jwt.InvalidTokenError:
        return err("invalid_token", 401)
    if str(payload.get("role", "")).lower() != "admin":
        return err("not_admin", 403)
    session[SESSION_KEY] = token
    session["admin_user"] = {"id": payload.get("sub"), "username": payload.get("username")}
    current_app.logger.info("admin session opened for %s", payload.get("username") or payload.get("sub"))
    return ok({"status": "ok"})


@bp_session.post("/logout")
def close_session():
    session.pop(SESSION_KEY, None)
    session.pop("admin_user", None)
    return ok({"status": "logged_out"})
