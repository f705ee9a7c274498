import logging
from typing import Dict, Iterable, List

from mrcars_admin.client import QueryClient, QueryError
from mrcars_admin.forms import Form, ValidationError
from mrcars_admin.services.common import delete_row, get_row, insert_row, update_row
from mrcars_admin.utils.joins import NA, count_by, unique_ids
from mrcars_admin.utils.parsing import now_iso

logger = logging.getLogger(__name__)

USER_ROLES = ("user", "moderator", "admin")
BULK_ACTIONS = ("activate", "deactivate", "delete")


def _from_profile(p: dict) -> dict:
    """Profiles rows use looser column names; map them onto the users shape."""
    row = dict(p)
    row["email"] = p.get("email") or NA
    row["username"] = p.get("username") or p.get("name") or NA
    row["phone"] = p.get("phone") or NA
    row["role"] = p.get("role") or "user"
    row["is_active"] = p.get("is_active", True) is not False
    return row


def load_users(client: QueryClient) -> List[dict]:
    """Users newest first, with car and rental listing counts.

    Deployments without a ``users`` table keep accounts in ``profiles``.
    """
    try:
        users = client.table("users").select("*").order("created_at", desc=True).execute().data
    except QueryError as e:
        logger.warning("users table unavailable (%s), falling back to profiles", e)
        profiles = client.table("profiles").select("*").order("created_at", desc=True).execute().data
        users = [_from_profile(p) for p in profiles]

    ids = unique_ids(users, "id")
    cars = count_by(client, "cars", "seller_id", ids)
    rentals = count_by(client, "rental_listings", "owner_id", ids)
    for u in users:
        u.setdefault("role", "user")
        if u.get("is_active") is None:
            u["is_active"] = True
        u["status"] = "active" if u["is_active"] else "inactive"
        u["car_count"] = cars.get(u.get("id"), 0)
        u["rental_count"] = rentals.get(u.get("id"), 0)
        u["listing_count"] = u["car_count"] + u["rental_count"]
    return users


def validate_new_user(data) -> Dict:
    return (
        Form(data)
        .email("email")
        .text("username", required=True, min_len=2)
        .text("phone")
        .choice("role", USER_ROLES, default="user")
        .boolean("is_active", default=True)
        .validate()
    )


def validate_user_edit(data) -> Dict:
    return (
        Form(data)
        .text("username", required=True, min_len=2)
        .text("phone")
        .choice("role", USER_ROLES, default="user")
        .boolean("is_active")
        .validate()
    )


def add_user(client: QueryClient, data) -> dict:
    values = validate_new_user(data)
    stamp = now_iso()
    values.update(created_at=stamp, updated_at=stamp)
    return insert_row(client, "users", values)


def edit_user(client: QueryClient, user_id, data) -> dict:
    values = validate_user_edit(data)
    return update_row(client, "users", user_id, values)


def set_user_active(client: QueryClient, user_id, active: bool) -> dict:
    return update_row(client, "users", user_id, {"is_active": bool(active)})


def toggle_user_active(client: QueryClient, user_id) -> dict:
    user = get_row(client, "users", user_id)
    return set_user_active(client, user_id, not (user.get("is_active") is not False))


def delete_user(client: QueryClient, user_id) -> None:
    delete_row(client, "users", user_id)


def bulk_users(client: QueryClient, ids: Iterable, action: str) -> int:
    """Apply one action to every selected user with a single scoped call."""
    ids = [i for i in ids if i]
    if action not in BULK_ACTIONS:
        raise ValidationError({"action": f"Unknown bulk action: {action}"})
    if not ids:
        raise ValidationError({"selected": "Select at least one user"})
    if action == "delete":
        res = client.table("users").delete().in_("id", ids).execute()
    else:
        res = (
            client.table("users")
            .update({"is_active": action == "activate", "updated_at": now_iso()})
            .in_("id", ids)
            .execute()
        )
    logger.info("bulk %s on %d users", action, len(res.data))
    return len(res.data)


def load_user_listings(client: QueryClient, user: dict) -> Dict[str, List[dict]]:
    """A user's car and rental listings.

    Older car rows carry only ``seller_name`` (email or username) instead of
    ``seller_id``, so those are tried in turn when the id finds nothing.
    """
    cars = (
        client.table("cars").select("*").eq("seller_id", user["id"])
        .order("date_added", desc=True).execute().data
    )
    for alt in (user.get("email"), user.get("username")):
        if cars or not alt or alt == NA:
            continue
        cars = (
            client.table("cars").select("*").eq("seller_name", alt)
            .order("date_added", desc=True).execute().data
        )
    rentals = (
        client.table("rental_listings").select("*").eq("owner_id", user["id"])
        .order("created_at", desc=True).execute().data
    )
    return {"cars": cars, "rentals": rentals}
