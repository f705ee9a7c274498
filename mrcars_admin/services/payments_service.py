"""Manual payment verification plus gateway and bank account configuration."""
import logging
from datetime import datetime, timezone
from typing import Dict, List

from mrcars_admin.client import QueryClient, QueryError
from mrcars_admin.forms import Form, ValidationError, require_reason
from mrcars_admin.services.common import delete_row, get_row, insert_row, toggle_flag, update_row
from mrcars_admin.utils.joins import UNKNOWN, UNKNOWN_USER, fetch_map, unique_ids, user_label
from mrcars_admin.utils.parsing import now_iso, parse_datetime

logger = logging.getLogger(__name__)

TRANSACTION_TABS = ("pending", "completed", "failed", "all")
CURRENCIES = ("USD", "EUR", "GBP", "KES", "NGN", "ZAR")


class PartialUpdateError(RuntimeError):
    """The transaction was approved but its subscription could not be activated."""

    def __init__(self, transaction_id, subscription_id, cause: Exception):
        super().__init__(
            f"payment {transaction_id} approved but subscription {subscription_id} "
            f"was not activated: {cause}"
        )
        self.transaction_id = transaction_id
        self.subscription_id = subscription_id
        self.cause = cause


def _is_subscription_payment(txn: dict) -> bool:
    return txn.get("transaction_type") == "subscription" and bool(txn.get("reference_id"))


def load_transactions(client: QueryClient, limit=None) -> List[dict]:
    q = client.table("payment_transactions").select("*").order("created_at", desc=True)
    if limit:
        q = q.limit(limit)
    return attach_labels(client, q.execute().data)


def load_transaction(client: QueryClient, transaction_id) -> dict:
    return attach_labels(client, [get_row(client, "payment_transactions", transaction_id)])[0]


def attach_labels(client: QueryClient, txns: List[dict]) -> List[dict]:
    """User, gateway and subscription plan labels, one lookup per table."""
    users = fetch_map(client, "users", unique_ids(txns, "user_id"), "id, username, email")
    gateways = fetch_map(client, "payment_gateways", unique_ids(txns, "gateway_id"), "id, name, type")
    subs = fetch_map(
        client,
        "user_subscriptions",
        unique_ids([t for t in txns if _is_subscription_payment(t)], "reference_id"),
        "id, plan_id",
    )
    plans = fetch_map(client, "subscription_plans", unique_ids(subs.values(), "plan_id"), "id, name")

    for t in txns:
        user = users.get(t.get("user_id"))
        t["user"] = user
        t["user_name"] = user_label(user, UNKNOWN_USER)
        t["user_email"] = (user or {}).get("email")
        gw = gateways.get(t.get("gateway_id"))
        t["gateway"] = gw
        t["gateway_name"] = (gw or {}).get("name") or UNKNOWN
        t["plan_name"] = None
        if _is_subscription_payment(t):
            sub = subs.get(t["reference_id"])
            if sub:
                t["plan_name"] = (plans.get(sub.get("plan_id")) or {}).get("name") or UNKNOWN
    return txns


def transaction_stats(txns: List[dict]) -> Dict:
    today = datetime.now(timezone.utc).date()

    def approved_today(t):
        when = parse_datetime(t.get("processed_at") or t.get("updated_at"))
        return t.get("status") == "completed" and when is not None and when.date() == today

    pending = [t for t in txns if t.get("status") == "pending"]
    return {
        "pending": len(pending),
        "pending_amount": sum(float(t.get("amount") or 0) for t in pending),
        "approved_today": sum(1 for t in txns if approved_today(t)),
        "total_revenue": sum(float(t.get("amount") or 0) for t in txns if t.get("status") == "completed"),
    }


def approve_payment(client: QueryClient, transaction_id, admin_notes: str = "") -> dict:
    """Complete a pending transaction, then activate the subscription it paid for.

    Two writes; if the second fails the first stays and PartialUpdateError is
    raised so the activation can be finished by hand.
    """
    txn = get_row(client, "payment_transactions", transaction_id)
    if txn.get("status") != "pending":
        raise ValidationError({"status": f"Only pending payments can be approved (is {txn.get('status')})"})
    stamp = now_iso()
    details = dict(txn.get("payment_details") or {})
    details.update(admin_notes=(admin_notes or "").strip(), verified_by="admin", verified_at=stamp)
    updated = update_row(
        client,
        "payment_transactions",
        transaction_id,
        {"status": "completed", "processed_at": stamp, "payment_details": details},
    )
    logger.info("payment %s approved", transaction_id)

    if _is_subscription_payment(txn):
        try:
            update_row(client, "user_subscriptions", txn["reference_id"], {"status": "active"})
        except (QueryError, LookupError) as e:
            logger.error("payment %s approved, subscription %s not activated: %s",
                         transaction_id, txn["reference_id"], e)
            raise PartialUpdateError(transaction_id, txn["reference_id"], e) from e
        logger.info("subscription %s activated by payment %s", txn["reference_id"], transaction_id)
    return updated


def reject_payment(client: QueryClient, transaction_id, reason) -> dict:
    reason = require_reason(reason, "Rejection reason")
    txn = get_row(client, "payment_transactions", transaction_id)
    if txn.get("status") != "pending":
        raise ValidationError({"status": f"Only pending payments can be rejected (is {txn.get('status')})"})
    details = dict(txn.get("payment_details") or {})
    details.update(rejection_reason=reason, rejected_by="admin", rejected_at=now_iso())
    return update_row(
        client,
        "payment_transactions",
        transaction_id,
        {"status": "failed", "error_message": reason, "payment_details": details},
    )


# ---------- Configuration ----------
def load_gateways(client: QueryClient) -> List[dict]:
    rows = client.table("payment_gateways").select("*").order("sort_order").execute().data
    for r in rows:
        r["status"] = "enabled" if r.get("is_enabled") else "disabled"
    return rows


def toggle_gateway(client: QueryClient, gateway_id) -> dict:
    return toggle_flag(client, "payment_gateways", gateway_id, "is_enabled")


def load_bank_accounts(client: QueryClient) -> List[dict]:
    rows = client.table("bank_accounts").select("*").order("created_at", desc=True).execute().data
    for r in rows:
        r["status"] = "active" if r.get("is_active") else "inactive"
    return rows


def validate_bank_account(data) -> Dict:
    return (
        Form(data)
        .text("account_name", required=True)
        .text("bank_name", required=True)
        .text("account_number", required=True)
        .text("branch_name")
        .text("swift_code", max_len=11)
        .choice("currency", CURRENCIES, default="USD")
        .boolean("is_primary")
        .boolean("is_active", default=True)
        .text("instructions")
        .validate()
    )


def save_bank_account(client: QueryClient, data, bank_id=None) -> dict:
    values = validate_bank_account(data)
    if bank_id:
        return update_row(client, "bank_accounts", bank_id, values)
    return insert_row(client, "bank_accounts", values)


def toggle_bank_account(client: QueryClient, bank_id) -> dict:
    return toggle_flag(client, "bank_accounts", bank_id, "is_active")


def delete_bank_account(client: QueryClient, bank_id) -> None:
    delete_row(client, "bank_accounts", bank_id)
