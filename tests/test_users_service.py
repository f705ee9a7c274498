import pytest

from mrcars_admin.forms import ValidationError
from mrcars_admin.services import users_service as svc
from mrcars_admin.services.common import RowNotFound


@pytest.fixture
def users(fake):
    fake.seed(
        "users",
        {"id": "u1", "username": "john", "email": "john@x.com", "is_active": True, "created_at": "2024-03-01"},
        {"id": "u2", "username": "ann", "email": "ann@johnson.io", "is_active": True, "created_at": "2024-02-01"},
        {"id": "u3", "username": "bob", "email": "bob@x.com", "is_active": None, "created_at": "2024-01-01"},
    )
    fake.seed("cars", {"id": "c1", "seller_id": "u1"}, {"id": "c2", "seller_id": "u1"})
    fake.seed("rental_listings", {"id": "r1", "owner_id": "u2"})
    return fake


def test_load_users_counts_listings_in_batched_queries(users):
    rows = svc.load_users(users)
    by_id = {u["id"]: u for u in rows}
    assert [u["id"] for u in rows] == ["u1", "u2", "u3"]
    assert by_id["u1"]["listing_count"] == 2
    assert by_id["u2"]["rental_count"] == 1
    assert by_id["u3"]["status"] == "active"
    assert len(users.calls("cars")) == 1
    assert len(users.calls("rental_listings")) == 1


def test_load_users_falls_back_to_profiles(fake):
    fake.fail.add("users")
    fake.seed("profiles", {"id": "p1", "name": "Zoe", "created_at": "2024-01-01"})
    rows = svc.load_users(fake)
    assert rows[0]["username"] == "Zoe"
    assert rows[0]["email"] == "N/A"
    assert rows[0]["status"] == "active"


def test_suspend_only_touches_that_user(users):
    svc.toggle_user_active(users, "u1")
    rows = {u["id"]: u for u in svc.load_users(users)}
    assert rows["u1"]["status"] == "inactive"
    assert rows["u2"]["status"] == "active"
    assert rows["u3"]["status"] == "active"
    assert "updated_at" in users.row("users", "u1")


def test_add_user_validates_first(users):
    with pytest.raises(ValidationError) as exc:
        svc.add_user(users, {"email": "bad", "username": ""})
    assert set(exc.value.errors) == {"email", "username"}
    assert users.calls("users", "POST") == []


def test_add_user(users):
    row = svc.add_user(users, {"email": "New@X.com", "username": "newbie", "role": "moderator"})
    assert row["email"] == "new@x.com"
    assert row["role"] == "moderator"
    assert row["is_active"] is True
    assert users.row("users", row["id"]) is not None


def test_edit_user_keeps_email(users):
    svc.edit_user(users, "u2", {"username": "anne", "role": "admin", "is_active": "1"})
    row = users.row("users", "u2")
    assert row["username"] == "anne"
    assert row["email"] == "ann@johnson.io"


def test_delete_missing_user(users):
    with pytest.raises(RowNotFound):
        svc.delete_user(users, "nope")


def test_bulk_deactivate_is_a_single_call(users):
    n = svc.bulk_users(users, ["u1", "u2"], "deactivate")
    assert n == 2
    assert len(users.calls("users", "PATCH")) == 1
    assert users.row("users", "u3")["is_active"] is None


def test_bulk_requires_selection_and_known_action(users):
    with pytest.raises(ValidationError):
        svc.bulk_users(users, [], "delete")
    with pytest.raises(ValidationError):
        svc.bulk_users(users, ["u1"], "promote")


def test_user_listings_fall_back_to_seller_name(fake):
    fake.seed("cars", {"id": "c9", "seller_name": "legacy@x.com", "date_added": "2024-01-01"})
    out = svc.load_user_listings(fake, {"id": "u7", "email": "legacy@x.com", "username": "legacy"})
    assert [c["id"] for c in out["cars"]] == ["c9"]
    assert out["rentals"] == []


def test_load_users_keeps_every_fetched_column(fake):
    seeded = {"id": "u1", "username": "john", "created_at": "2024-01-01", "phone": "+254700000001", "country": "KE"}
    fake.seed("users", seeded)
    loaded = svc.load_users(fake)[0]
    assert set(seeded) <= set(loaded)
    assert loaded["phone"] == "+254700000001"
