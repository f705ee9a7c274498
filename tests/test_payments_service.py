import pytest

from mrcars_admin.forms import ValidationError
from mrcars_admin.services import payments_service as svc


@pytest.fixture
def pending(fake):
    fake.seed("users", {"id": "u1", "username": "john", "email": "john@x.com"})
    fake.seed("payment_gateways", {"id": "g1", "name": "M-Pesa", "is_enabled": True, "sort_order": 1})
    fake.seed("subscription_plans", {"id": "p1", "name": "Gold"})
    fake.seed("user_subscriptions", {"id": "s1", "user_id": "u1", "plan_id": "p1", "status": "pending"})
    fake.seed(
        "payment_transactions",
        {
            "id": "t1", "user_id": "u1", "gateway_id": "g1", "amount": 49.99, "currency": "USD",
            "status": "pending", "transaction_type": "subscription", "reference_id": "s1",
            "payment_details": {"receipt": "QX12"}, "created_at": "2024-05-02",
        },
        {
            "id": "t2", "user_id": "u1", "gateway_id": "g1", "amount": 10, "currency": "USD",
            "status": "completed", "transaction_type": "listing", "created_at": "2024-05-01",
        },
    )
    return fake


def test_transactions_carry_labels(pending):
    rows = svc.load_transactions(pending)
    t1 = rows[0]
    assert t1["user_name"] == "john"
    assert t1["gateway_name"] == "M-Pesa"
    assert t1["plan_name"] == "Gold"
    assert rows[1]["plan_name"] is None
    assert len(pending.calls("users")) == 1


def test_stats():
    stats = svc.transaction_stats([
        {"status": "pending", "amount": 49.99},
        {"status": "pending", "amount": "0.01"},
        {"status": "completed", "amount": 10},
    ])
    assert stats["pending"] == 2
    assert stats["pending_amount"] == pytest.approx(50.0)
    assert stats["total_revenue"] == 10


def test_approve_completes_and_activates_subscription(pending):
    svc.approve_payment(pending, "t1", "receipt checked")
    txn = pending.row("payment_transactions", "t1")
    assert txn["status"] == "completed"
    assert txn["processed_at"]
    assert txn["payment_details"]["receipt"] == "QX12"
    assert txn["payment_details"]["admin_notes"] == "receipt checked"
    assert pending.row("user_subscriptions", "s1")["status"] == "active"


def test_approve_without_subscription_reference(pending):
    pending.row("payment_transactions", "t1").update(transaction_type="listing")
    svc.approve_payment(pending, "t1")
    assert pending.row("user_subscriptions", "s1")["status"] == "pending"


def test_partial_failure_is_reported(pending):
    pending.fail.add(("user_subscriptions", "PATCH"))
    with pytest.raises(svc.PartialUpdateError) as exc:
        svc.approve_payment(pending, "t1")
    assert exc.value.subscription_id == "s1"
    assert pending.row("payment_transactions", "t1")["status"] == "completed"
    assert pending.row("user_subscriptions", "s1")["status"] == "pending"


def test_only_pending_can_be_approved(pending):
    with pytest.raises(ValidationError):
        svc.approve_payment(pending, "t2")


@pytest.mark.parametrize("reason", [None, "", "  "])
def test_reject_requires_reason(pending, reason):
    with pytest.raises(ValidationError):
        svc.reject_payment(pending, "t1", reason)
    assert pending.row("payment_transactions", "t1")["status"] == "pending"
    assert pending.calls("payment_transactions", "PATCH") == []


def test_reject(pending):
    svc.reject_payment(pending, "t1", "Receipt does not match")
    txn = pending.row("payment_transactions", "t1")
    assert txn["status"] == "failed"
    assert txn["error_message"] == "Receipt does not match"
    assert txn["payment_details"]["rejection_reason"] == "Receipt does not match"
    assert pending.row("user_subscriptions", "s1")["status"] == "pending"


def test_bank_account_validation(fake):
    with pytest.raises(ValidationError) as exc:
        svc.save_bank_account(fake, {"account_name": "Mr Cars", "currency": "BTC"})
    assert set(exc.value.errors) == {"bank_name", "account_number", "currency"}


def test_bank_account_create_then_edit(fake):
    row = svc.save_bank_account(
        fake, {"account_name": "Mr Cars", "bank_name": "Equity", "account_number": "0012"}
    )
    assert row["is_active"] is True and row["currency"] == "USD"
    svc.save_bank_account(
        fake, {"account_name": "Mr Cars Ltd", "bank_name": "Equity", "account_number": "0012"}, row["id"]
    )
    assert fake.row("bank_accounts", row["id"])["account_name"] == "Mr Cars Ltd"


def test_toggle_gateway(pending):
    svc.toggle_gateway(pending, "g1")
    assert pending.row("payment_gateways", "g1")["is_enabled"] is False
    assert svc.load_gateways(pending)[0]["status"] == "disabled"


def test_transactions_keep_every_fetched_column(pending):
    seeded = pending.row("payment_transactions", "t1")
    seeded["gateway_reference"] = "MPX-778"
    loaded = {t["id"]: t for t in svc.load_transactions(pending)}["t1"]
    assert set(seeded) <= set(loaded)
    assert loaded["gateway_reference"] == "MPX-778"
    assert loaded["payment_details"] == {"receipt": "QX12"}
