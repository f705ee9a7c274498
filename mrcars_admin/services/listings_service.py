from typing import List

from mrcars_admin.client import QueryClient
from mrcars_admin.services.common import delete_row, get_row, set_status, toggle_flag
from mrcars_admin.utils.joins import UNKNOWN_USER, fetch_map, unique_ids, user_label

LISTING_TABLES = {"car": ("cars", "listing", "status"), "rental": ("rental_listings", "rental", "availability_status")}
PRODUCT_TABLES = {"tire": "tire_products", "battery": "battery_products"}


# ---------- Cars ----------
def load_listings(client: QueryClient) -> List[dict]:
    cars = client.table("cars").select("*").order("date_added", desc=True).execute().data
    sellers = fetch_map(client, "users", unique_ids(cars, "seller_id"), "id, username, email")
    for car in cars:
        if not car.get("seller_name"):
            car["seller_name"] = user_label(sellers.get(car.get("seller_id")), UNKNOWN_USER)
        if not car.get("status"):
            car["status"] = "active"
    return cars


def toggle_listing_status(client: QueryClient, car_id) -> dict:
    car = get_row(client, "cars", car_id)
    target = "inactive" if (car.get("status") or "active") == "active" else "active"
    return set_status(client, "listing", "cars", car_id, target, touch=False, current=car)


def delete_listing(client: QueryClient, car_id) -> None:
    delete_row(client, "cars", car_id)


# ---------- Rentals ----------
def load_rentals(client: QueryClient) -> List[dict]:
    rentals = client.table("rental_listings").select("*").order("created_at", desc=True).execute().data
    owners = fetch_map(client, "users", unique_ids(rentals, "owner_id"), "id, username, email")
    for r in rentals:
        owner = owners.get(r.get("owner_id"))
        r["owner_name"] = user_label(owner, UNKNOWN_USER)
        r["owner_email"] = (owner or {}).get("email") or "N/A"
        if not r.get("availability_status"):
            r["availability_status"] = "available"
    return rentals


def set_rental_status(client: QueryClient, rental_id, target: str) -> dict:
    return set_status(
        client, "rental", "rental_listings", rental_id, target, field="availability_status"
    )


def delete_rental(client: QueryClient, rental_id) -> None:
    delete_row(client, "rental_listings", rental_id)


# ---------- Listings reached from the user detail page ----------
def toggle_user_listing(client: QueryClient, kind: str, listing_id) -> dict:
    """Flip a car between active/inactive or a rental between available/inactive."""
    table, entity, field = LISTING_TABLES[kind]
    row = get_row(client, table, listing_id)
    live = "active" if kind == "car" else "available"
    target = "inactive" if (row.get(field) or live) == live else live
    return set_status(client, entity, table, listing_id, target, field=field, touch=kind != "car", current=row)


def delete_user_listing(client: QueryClient, kind: str, listing_id) -> None:
    table, _, _ = LISTING_TABLES[kind]
    delete_row(client, table, listing_id)


# ---------- Parts shop ----------
def load_products(client: QueryClient, kind: str) -> List[dict]:
    rows = client.table(PRODUCT_TABLES[kind]).select("*").order("created_at", desc=True).execute().data
    for r in rows:
        r["status"] = "active" if r.get("is_active") else "inactive"
        r["stock"] = "in stock" if r.get("in_stock") else "out of stock"
    return rows


def toggle_product_active(client: QueryClient, kind: str, product_id) -> dict:
    return toggle_flag(client, PRODUCT_TABLES[kind], product_id, "is_active", touch=False)


def toggle_product_stock(client: QueryClient, kind: str, product_id) -> dict:
    return toggle_flag(client, PRODUCT_TABLES[kind], product_id, "in_stock", touch=False)


def delete_product(client: QueryClient, kind: str, product_id) -> None:
    delete_row(client, PRODUCT_TABLES[kind], product_id)
