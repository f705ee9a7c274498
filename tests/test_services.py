from datetime import date, datetime, timezone

import pytest

from mrcars_admin.forms import ValidationError
from mrcars_admin.services import (
    analytics_service,
    emergency_service,
    forum_service,
    listings_service,
    messages_service,
    notifications_service,
    orders_service,
    overview_service,
    providers_service,
    security_service,
    settings_service,
    subscriptions_service,
)
from mrcars_admin.statuses import TransitionError


# ---------- listings ----------
def test_listing_seller_names_resolved_in_one_lookup(fake):
    fake.seed("users", {"id": "u1", "username": "john"})
    fake.seed(
        "cars",
        {"id": "c1", "make": "Toyota", "seller_id": "u1", "date_added": "2024-01-02"},
        {"id": "c2", "make": "Mazda", "seller_id": "u1", "date_added": "2024-01-01", "status": "inactive"},
        {"id": "c3", "make": "Ford", "seller_id": "gone", "date_added": "2024-01-03"},
    )
    rows = listings_service.load_listings(fake)
    assert [r["seller_name"] for r in rows] == ["Unknown User", "john", "john"]
    assert rows[0]["status"] == "active"
    assert len(fake.calls("users")) == 1


def test_listing_toggle_flips_only_that_row(fake):
    fake.seed("cars", {"id": "c1", "status": "active"}, {"id": "c2", "status": "active"})
    listings_service.toggle_listing_status(fake, "c1")
    assert fake.row("cars", "c1")["status"] == "inactive"
    assert fake.row("cars", "c2")["status"] == "active"
    assert "updated_at" not in fake.row("cars", "c1")
    listings_service.toggle_listing_status(fake, "c1")
    assert fake.row("cars", "c1")["status"] == "active"


def test_rental_status_follows_transitions(fake):
    fake.seed("rental_listings", {"id": "r1", "availability_status": "available"})
    listings_service.set_rental_status(fake, "r1", "maintenance")
    assert fake.row("rental_listings", "r1")["availability_status"] == "maintenance"
    with pytest.raises(TransitionError):
        listings_service.set_rental_status(fake, "r1", "maintenance")


def test_user_listing_toggle_for_rentals(fake):
    fake.seed("rental_listings", {"id": "r1", "availability_status": "available"})
    listings_service.toggle_user_listing(fake, "rental", "r1")
    assert fake.row("rental_listings", "r1")["availability_status"] == "inactive"


def test_products(fake):
    fake.seed("tire_products", {"id": "t1", "is_active": True, "in_stock": False, "created_at": "2024-01-01"})
    rows = listings_service.load_products(fake, "tire")
    assert rows[0]["status"] == "active" and rows[0]["stock"] == "out of stock"
    listings_service.toggle_product_stock(fake, "tire", "t1")
    assert fake.row("tire_products", "t1")["in_stock"] is True
    listings_service.delete_product(fake, "tire", "t1")
    assert fake.rows("tire_products") == []


# ---------- orders, inquiries, appointments ----------
def test_orders_joined_with_customers_and_item_counts(fake):
    fake.seed("users", {"id": "u1", "email": "a@b.c"})
    fake.seed("orders", {"id": "o1", "user_id": "u1", "status": "pending"}, {"id": "o2", "user_id": "u9"})
    fake.seed("order_items", {"order_id": "o1"}, {"order_id": "o1"})
    rows = {r["id"]: r for r in orders_service.load_orders(fake)}
    assert rows["o1"]["customer_name"] == "a@b.c"
    assert rows["o1"]["item_count"] == 2
    assert rows["o2"]["customer_name"] == "Unknown Customer"
    assert rows["o2"]["item_count"] == 0


def test_order_transitions(fake):
    fake.seed("orders", {"id": "o1", "status": "pending"})
    orders_service.set_order_status(fake, "o1", "processing")
    with pytest.raises(TransitionError):
        orders_service.set_order_status(fake, "o1", "delivered")
    assert fake.row("orders", "o1")["status"] == "processing"


def test_inquiries_get_car_and_user(fake):
    fake.seed("cars", {"id": "c1", "make": "Toyota", "model": "Camry", "year": 2020})
    fake.seed("inquiries", {"id": "i1", "car_id": "c1", "user_id": "nobody"})
    row = orders_service.load_inquiries(fake)[0]
    assert (row["car_make"], row["car_model"], row["car_year"]) == ("Toyota", "Camry", 2020)
    assert row["user_name"] == "Unknown User"


def test_appointments_use_profile_names(fake):
    fake.seed("profiles", {"id": "u1", "full_name": "Jane Doe"})
    fake.seed("appointments", {"id": "a1", "user_id": "u1", "car_id": "c1", "date": "2024-06-01"})
    row = orders_service.load_appointments(fake)[0]
    assert row["customer_name"] == "Jane Doe"
    assert row["customer_phone"] == "N/A"
    assert row["car_make"] == "Unknown"


# ---------- emergency ----------
def test_first_response_accepts_pending_request(fake):
    fake.seed("emergency_requests", {"id": "e1", "status": "pending"})
    emergency_service.respond_to_request(fake, "e1", {"admin_response": "On our way", "estimated_arrival": "20 min"})
    row = fake.row("emergency_requests", "e1")
    assert row["status"] == "accepted"
    assert row["estimated_arrival"] == "20 min"
    assert "contact_phone" not in row


def test_response_text_is_required(fake):
    fake.seed("emergency_requests", {"id": "e1", "status": "pending"})
    with pytest.raises(ValidationError):
        emergency_service.respond_to_request(fake, "e1", {"admin_response": " "})


# ---------- messages ----------
@pytest.fixture
def inbox(fake):
    fake.seed("users", {"id": "u1", "username": "ann"}, {"id": "u2", "username": "ben"})
    fake.seed("user_flags", {"user_id": "u2", "flag_level": "warning", "messaging_restricted": True})
    fake.seed(
        "conversations",
        {"id": "k1", "participant_1_id": "u1", "participant_2_id": "u2", "last_message_at": None},
        {"id": "k2", "participant_1_id": "u1", "participant_2_id": "u3",
         "last_message_at": "2024-05-01", "status": "archived"},
    )
    fake.seed(
        "messages",
        {"id": "m1", "conversation_id": "k1", "is_read": False, "created_at": "2024-05-02"},
        {"id": "m2", "conversation_id": "k1", "is_read": True, "created_at": "2024-05-01"},
    )
    fake.seed("security_logs", {"id": "l1", "conversation_id": "k1", "event_type": "contact_evasion"})
    return fake


def test_conversations_summary(inbox):
    rows = messages_service.load_conversations(inbox)
    assert [r["id"] for r in rows] == ["k2", "k1"]
    k1 = rows[1]
    assert k1["participants"] == "ann / ben"
    assert k1["unread_count"] == 1
    assert k1["evasion_count"] == 1
    assert rows[0]["participant_2_name"] == "Unknown User"
    stats = messages_service.conversation_stats(rows)
    assert stats["archived"] == 1 and stats["active"] == 1
    assert stats["flagged_users"] == 1 and stats["restricted_users"] == 1


def test_transcript_is_oldest_first(inbox):
    assert [m["id"] for m in messages_service.load_messages(inbox, "k1")] == ["m2", "m1"]


def test_block_conversation(inbox):
    messages_service.set_conversation_status(inbox, "k1", "blocked")
    assert inbox.row("conversations", "k1")["status"] == "blocked"



def test_unread_and_evasion_counts_past_the_row_cap(fake):
    fake.max_rows = 1000
    fake.seed("conversations", {"id": "c1", "status": "active"})
    fake.seed("messages", *({"id": f"m{i:04d}", "conversation_id": "c1", "is_read": False} for i in range(1500)))
    fake.seed("security_logs", *(
        {"id": f"l{i:04d}", "conversation_id": "c1", "event_type": "phone_evasion"} for i in range(1200)
    ))
    row = messages_service.load_conversations(fake)[0]
    assert row["unread_count"] == 1500
    assert row["evasion_count"] == 1200


def test_blank_status_reads_as_active(fake):
    fake.seed("conversations", {"id": "c1", "status": None}, {"id": "c2", "status": ""})
    assert {r["status"] for r in messages_service.load_conversations(fake)} == {"active"}
    fake.seed("cars", {"id": "x1", "status": None})
    fake.seed("rental_listings", {"id": "r1", "availability_status": None})
    assert listings_service.load_listings(fake)[0]["status"] == "active"
    assert listings_service.load_rentals(fake)[0]["availability_status"] == "available"


# ---------- subscriptions ----------
def test_grant_subscription(fake):
    fake.seed("subscription_plans", {"id": "p1", "name": "Gold"})
    now = datetime(2024, 1, 31, tzinfo=timezone.utc)
    row = subscriptions_service.grant_subscription(
        fake, {"user_id": "u1", "plan_id": "p1", "duration_months": "1"}, now=now
    )
    assert row["status"] == "active"
    assert row["payment_method"] == "admin_granted"
    assert row["amount_paid"] == 0
    assert row["end_date"].startswith("2024-02-29")


def test_grant_rejects_long_durations(fake):
    with pytest.raises(ValidationError):
        subscriptions_service.grant_subscription(fake, {"user_id": "u1", "plan_id": "p1", "duration_months": "36"})


def test_extend_and_stats(fake):
    fake.seed("subscription_plans", {"id": "p1", "name": "Gold Plus", "price": 20})
    fake.seed("user_subscriptions", {
        "id": "s1", "user_id": "u1", "plan_id": "p1", "status": "active", "auto_renew": True,
        "amount_paid": 20, "end_date": "2024-03-15T00:00:00+00:00", "created_at": "2024-01-01",
    })
    subscriptions_service.extend_subscription(fake, "s1", "2")
    assert fake.row("user_subscriptions", "s1")["end_date"].startswith("2024-05-15")
    stats = subscriptions_service.subscription_stats(subscriptions_service.load_subscriptions(fake))
    assert stats == {"active": 1, "total_revenue": 20.0, "gold_plus": 1, "monthly_recurring": 20.0, "auto_renew": 1}


# ---------- security ----------
def test_block_ip_validates_address(fake):
    with pytest.raises(ValidationError):
        security_service.block_ip(fake, {"ip_address": "300.1.1.1", "reason": "spam"})
    row = security_service.block_ip(fake, {"ip_address": "10.0.0.5", "reason": "spam"})
    assert row["is_active"] is True and row["blocked_until"] is None
    security_service.unblock_ip(fake, row["id"])
    assert security_service.load_blocked_ips(fake)[0]["status"] == "lifted"


def test_block_prefill_from_log():
    values = security_service.block_prefill({"ip_address": "1.2.3.4", "event_type": "failed_login"})
    assert values["ip_address"] == "1.2.3.4"
    assert "failed_login" in values["reason"]


# ---------- forum ----------
def test_topic_with_replies(fake):
    fake.seed("forum_topics", {"id": "f1", "title": "Brakes", "created_at": "2024-01-01"})
    fake.seed(
        "forum_replies",
        {"id": "r2", "topic_id": "f1", "created_at": "2024-01-03"},
        {"id": "r1", "topic_id": "f1", "created_at": "2024-01-02"},
    )
    topic = forum_service.load_topic(fake, "f1")
    assert [r["id"] for r in topic["replies"]] == ["r1", "r2"]
    forum_service.toggle_pin(fake, "f1")
    assert fake.row("forum_topics", "f1")["is_pinned"] is True
    assert forum_service.load_replies(fake)[0]["topic_title"] == "Brakes"


# ---------- providers ----------
def test_provider_rejection_needs_notes(fake):
    fake.seed("service_providers", {"id": "sp1", "is_verified": False, "is_active": False})
    with pytest.raises(ValidationError):
        providers_service.decide_verification(fake, "sp1", "reject", "")
    providers_service.decide_verification(fake, "sp1", "approve")
    row = fake.row("service_providers", "sp1")
    assert row["is_verified"] and row["is_active"]
    assert row["verification_documents"]["status"] == "approve"


# ---------- notifications ----------
def test_notifications(fake):
    fake.seed(
        "notifications",
        {"id": "n1", "type": "order", "read": False, "data": {"priority": "high"}, "created_at": "2024-01-02"},
        {"id": "n2", "type": "weird", "read": None, "created_at": "2024-01-01"},
        {"id": "n3", "type": "user", "read": True, "created_at": "2023-12-31"},
    )
    rows = notifications_service.load_notifications(fake)
    assert rows[0]["priority"] == "high" and rows[0]["action_endpoint"] == "orders.index"
    assert rows[1]["priority"] == "medium" and rows[1]["action_endpoint"] == "overview.index"
    assert notifications_service.mark_all_read(fake, rows) == 2
    assert len(fake.calls("notifications", "PATCH")) == 1
    assert all(n["read"] for n in fake.rows("notifications"))


@pytest.mark.parametrize("data", ["urgent", ["high"], 7])
def test_notification_data_that_is_not_an_object(fake, data):
    fake.seed("notifications", {"id": "n1", "type": "order", "read": False, "data": data})
    row = notifications_service.load_notifications(fake)[0]
    assert row["priority"] == "medium"
    assert row["related_id"] is None


# ---------- analytics ----------
def test_platform_summary():
    rows = [{"total_views": 100, "total_inquiries": 1}, {"total_views": 150, "total_unique_visitors": 9}]
    s = analytics_service.summarize_platform(rows)
    assert s["total_views"] == 250
    assert s["total_unique_visitors"] == 9
    assert s["avg_views_per_day"] == 125
    assert s["views_growth"] == pytest.approx(50.0)
    assert analytics_service.summarize_platform([])["avg_views_per_day"] == 0


def test_section_breakdown_sums_every_row():
    rows = [
        {"section_name": "cars", "views": 5},
        {"section_name": "cars", "views": 7},
        {"section_name": "forum", "views": 1},
    ]
    assert dict(analytics_service.section_breakdown(rows)) == {"cars": 12, "forum": 1}


def test_top_items_limits_to_ten():
    rows = [{"item_id": str(i), "item_type": "car", "views": i} for i in range(15)]
    top = analytics_service.top_items(rows)
    assert len(top) == 10
    assert top[0]["item_id"] == "14"


def test_load_analytics_window(fake):
    fake.seed("platform_analytics", {"date": "2024-05-01", "total_views": 3}, {"date": "2024-04-01", "total_views": 99})
    data = analytics_service.load_analytics(fake, 7, today=date(2024, 5, 5))
    assert data["since"] == "2024-04-28"
    assert data["summary"]["total_views"] == 3


# ---------- overview ----------
def test_chart_buckets_by_month(fake):
    fake.seed("users", {"id": "u1", "created_at": "2024-05-03T10:00:00Z"})
    fake.seed("orders", {"id": "o1", "created_at": "2024-04-10T00:00:00Z", "total_amount": 80.5})
    chart = overview_service.load_chart(fake, today=date(2024, 5, 20))
    assert len(chart) == 12
    assert chart[-1]["users"] == 1
    assert chart[-2]["orders"] == 1 and chart[-2]["revenue"] == pytest.approx(80.5)
    assert len(fake.calls("orders")) == 1


def test_chart_counts_past_the_row_cap(fake):
    fake.max_rows = 1000
    fake.seed("users", *({"id": f"u{i:04d}", "created_at": "2024-05-10T00:00:00Z"} for i in range(1200)))
    fake.seed("orders", *(
        {"id": f"o{i:04d}", "created_at": "2024-05-11T00:00:00Z", "total_amount": 2} for i in range(1100)
    ))
    may = overview_service.load_chart(fake, today=date(2024, 6, 15))[-2]
    assert may["month"] == "May"
    assert may["users"] == 1200
    assert may["orders"] == 1100 and may["revenue"] == pytest.approx(2200)


def test_recent_activity_is_newest_first_and_capped(fake):
    fake.seed("users", *[{"id": f"u{i}", "username": f"user{i}", "created_at": f"2024-01-0{i}"} for i in range(1, 6)])
    fake.seed("cars", {"id": "c1", "make": "Kia", "model": "Rio", "seller_id": "u1", "created_at": "2024-02-01"})
    items = overview_service.load_recent_activity(fake)
    assert items[0]["action"] == "created a new listing"
    assert items[0]["user_name"] == "user1"
    assert len(items) == 4


def test_counters_degrade_to_zero(fake):
    fake.fail.add("orders")
    counters = overview_service.load_counters(fake, today=date(2024, 5, 1))
    assert counters["total_orders"] == 0


# ---------- settings ----------
def test_settings_defaults_when_storage_fails(fake):
    fake.fail.add("admin_settings")
    assert settings_service.load_settings(fake) == settings_service.DEFAULT_SETTINGS


def test_save_settings_is_one_upsert(fake):
    form = dict(settings_service.DEFAULT_SETTINGS, site_name="Mr Cars", max_listings_per_user="25", enable_forum="")
    settings_service.save_settings(fake, form)
    assert len(fake.calls("admin_settings", "POST")) == 1
    loaded = settings_service.load_settings(fake)
    assert loaded["site_name"] == "Mr Cars"
    assert loaded["max_listings_per_user"] == 25
    assert loaded["enable_forum"] is False
    settings_service.save_settings(fake, form)
    assert len(fake.rows("admin_settings")) == len(settings_service.DEFAULT_SETTINGS)


def test_settings_validation(fake):
    with pytest.raises(ValidationError) as exc:
        settings_service.save_settings(fake, {"site_name": "", "support_email": "x", "max_listings_per_user": "0"})
    assert set(exc.value.errors) == {"site_name", "support_email", "max_listings_per_user"}


# ---------- fetched columns survive the joins ----------
@pytest.mark.parametrize(
    "table, loader",
    [
        ("cars", listings_service.load_listings),
        ("rental_listings", listings_service.load_rentals),
        ("orders", orders_service.load_orders),
        ("inquiries", orders_service.load_inquiries),
        ("appointments", orders_service.load_appointments),
        ("emergency_requests", emergency_service.load_emergency_requests),
        ("conversations", messages_service.load_conversations),
        ("service_providers", providers_service.load_providers),
        ("forum_topics", forum_service.load_topics),
    ],
)
def test_loaders_keep_every_fetched_column(fake, table, loader):
    seeded = {
        "id": "r1", "created_at": "2024-01-01", "date_added": "2024-01-01", "date": "2024-01-01",
        "colour": "teal", "mileage_note": "one owner", "user_id": "u9",
    }
    fake.seed(table, seeded)
    loaded = loader(fake)[0]
    assert set(seeded) <= set(loaded)
    assert loaded["colour"] == "teal"
    assert loaded["mileage_note"] == "one owner"
