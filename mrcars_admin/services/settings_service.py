import logging
import time
from typing import Dict, List

from mrcars_admin.client import QueryClient, QueryError
from mrcars_admin.forms import ValidationError
from mrcars_admin.utils.joins import count_exact
from mrcars_admin.utils.parsing import now_iso, parse_bool, parse_int

logger = logging.getLogger(__name__)

STARTED_AT = time.monotonic()

DEFAULT_SETTINGS = {
    "site_name": "Mr Cars Admin",
    "site_description": "Comprehensive automotive marketplace administration",
    "support_email": "admin@mrcars.com",
    "max_listings_per_user": 10,
    "enable_user_registration": True,
    "enable_car_listings": True,
    "enable_rental_listings": True,
    "enable_emergency_services": True,
    "enable_forum": True,
    "auto_approve_listings": False,
    "enable_email_notifications": True,
    "enable_push_notifications": True,
    "maintenance_mode": False,
    "maintenance_message": "We're currently performing scheduled maintenance. Please check back shortly.",
}

BOOLEAN_SETTINGS = [k for k, v in DEFAULT_SETTINGS.items() if isinstance(v, bool)]
TEXT_SETTINGS = ("site_name", "site_description", "support_email", "maintenance_message")


def setting_type(value) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    return "string"


def load_settings(client: QueryClient) -> Dict:
    """Stored settings over the defaults. Unreadable storage keeps the defaults."""
    settings = dict(DEFAULT_SETTINGS)
    try:
        rows = client.table("admin_settings").select("setting_key, setting_value, setting_type").execute().data
    except QueryError as e:
        logger.error("loading settings failed, showing defaults: %s", e)
        return settings
    for r in rows:
        key = r.get("setting_key")
        if key not in DEFAULT_SETTINGS:
            continue
        value = r.get("setting_value")
        if key in BOOLEAN_SETTINGS:
            if value is not None:
                settings[key] = parse_bool(value)
        elif value not in (None, "", 0):
            settings[key] = value
    return settings


def validate_settings(data) -> Dict:
    errors = {}
    values = {}
    for key in TEXT_SETTINGS:
        values[key] = (data.get(key) or "").strip()
    if not values["site_name"]:
        errors["site_name"] = "Site name is required"
    if not values["support_email"] or "@" not in values["support_email"]:
        errors["support_email"] = "A valid support email is required"
    n = parse_int(data.get("max_listings_per_user"), minv=1, maxv=100)
    if n is None:
        errors["max_listings_per_user"] = "Max listings per user must be between 1 and 100"
    values["max_listings_per_user"] = n
    for key in BOOLEAN_SETTINGS:
        values[key] = parse_bool(data.get(key))
    if errors:
        raise ValidationError(errors)
    return values


def save_settings(client: QueryClient, data) -> List[dict]:
    """Validate, then upsert one row per setting key."""
    values = validate_settings(data)
    stamp = now_iso()
    rows = [
        {"setting_key": k, "setting_value": v, "setting_type": setting_type(v), "updated_at": stamp}
        for k, v in values.items()
    ]
    res = client.table("admin_settings").upsert(rows, on_conflict="setting_key").execute()
    logger.info("saved %d settings", len(rows))
    return res.data


def system_stats(client: QueryClient) -> Dict:
    return {
        "total_users": count_exact(client, "users"),
        "total_listings": count_exact(client, "cars"),
        "total_orders": count_exact(client, "orders"),
        "uptime_seconds": int(time.monotonic() - STARTED_AT),
        "generated_at": now_iso(),
    }
