from typing import List

from mrcars_admin.client import QueryClient
from mrcars_admin.forms import ValidationError, require_reason
from mrcars_admin.services.common import delete_row, toggle_flag, update_row
from mrcars_admin.utils.parsing import now_iso

DECISIONS = ("approve", "reject")


def load_providers(client: QueryClient) -> List[dict]:
    rows = client.table("service_providers").select("*").order("created_at", desc=True).execute().data
    for r in rows:
        r["verification"] = "verified" if r.get("is_verified") else "unverified"
        r["status"] = "active" if r.get("is_active") else "inactive"
    return rows


def toggle_verified(client: QueryClient, provider_id) -> dict:
    return toggle_flag(client, "service_providers", provider_id, "is_verified")


def toggle_active(client: QueryClient, provider_id) -> dict:
    return toggle_flag(client, "service_providers", provider_id, "is_active")


def decide_verification(client: QueryClient, provider_id, decision: str, notes: str = "") -> dict:
    """Approve or reject a provider's documents; rejections must carry notes."""
    if decision not in DECISIONS:
        raise ValidationError({"decision": "Choose approve or reject"})
    approve = decision == "approve"
    notes = (notes or "").strip() if approve else require_reason(notes, "Rejection notes")
    return update_row(
        client,
        "service_providers",
        provider_id,
        {
            "is_verified": approve,
            "is_active": approve,
            "verification_documents": {
                "verified_at": now_iso(),
                "verified_by": "admin",
                "status": decision,
                "notes": notes,
            },
        },
    )


def delete_provider(client: QueryClient, provider_id) -> None:
    delete_row(client, "service_providers", provider_id)
