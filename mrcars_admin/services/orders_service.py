from typing import List

from mrcars_admin.client import QueryClient
from mrcars_admin.services.common import set_status
from mrcars_admin.utils.joins import (
    NA,
    UNKNOWN,
    UNKNOWN_CUSTOMER,
    UNKNOWN_USER,
    count_by,
    fetch_map,
    unique_ids,
    user_label,
)


def _attach_car(rows: List[dict], cars: dict) -> None:
    for r in rows:
        car = cars.get(r.get("car_id")) or {}
        r["car_make"] = car.get("make") or UNKNOWN
        r["car_model"] = car.get("model") or UNKNOWN
        r["car_year"] = car.get("year") or 0


# ---------- Orders ----------
def load_orders(client: QueryClient) -> List[dict]:
    orders = client.table("orders").select("*").order("created_at", desc=True).execute().data
    ids = unique_ids(orders, "id")
    items = count_by(client, "order_items", "order_id", ids)
    users = fetch_map(client, "users", unique_ids(orders, "user_id"), "id, username, email")
    for o in orders:
        o["customer_name"] = user_label(users.get(o.get("user_id")), UNKNOWN_CUSTOMER)
        o["item_count"] = items.get(o.get("id"), 0)
    return orders


def set_order_status(client: QueryClient, order_id, target: str) -> dict:
    return set_status(client, "order", "orders", order_id, target, touch=False)


# ---------- Inquiries ----------
def load_inquiries(client: QueryClient) -> List[dict]:
    rows = client.table("inquiries").select("*").order("created_at", desc=True).execute().data
    cars = fetch_map(client, "cars", unique_ids(rows, "car_id"), "id, make, model, year")
    users = fetch_map(client, "users", unique_ids(rows, "user_id"), "id, username, email")
    _attach_car(rows, cars)
    for r in rows:
        r["user_name"] = user_label(users.get(r.get("user_id")), UNKNOWN_USER)
    return rows


def set_inquiry_status(client: QueryClient, inquiry_id, target: str) -> dict:
    return set_status(client, "inquiry", "inquiries", inquiry_id, target, touch=False)


# ---------- Appointments ----------
def load_appointments(client: QueryClient) -> List[dict]:
    rows = client.table("appointments").select("*").order("date", desc=True).execute().data
    cars = fetch_map(client, "cars", unique_ids(rows, "car_id"), "id, make, model, year")
    # profiles has no phone column, so the phone stays N/A
    people = fetch_map(client, "profiles", unique_ids(rows, "user_id"), "id, full_name")
    _attach_car(rows, cars)
    for r in rows:
        person = people.get(r.get("user_id")) or {}
        r["customer_name"] = person.get("full_name") or UNKNOWN_CUSTOMER
        r["customer_phone"] = NA
    return rows


def set_appointment_status(client: QueryClient, appointment_id, target: str) -> dict:
    return set_status(client, "appointment", "appointments", appointment_id, target, touch=False)
