"""Single-row mutations shared by every resource page.

Every write is one call scoped by primary key; the page reloads afterwards.
"""
import logging
from typing import Any, Dict, Optional

from mrcars_admin.client import QueryClient
from mrcars_admin.statuses import check_transition
from mrcars_admin.utils.joins import fetch_row
from mrcars_admin.utils.parsing import now_iso

logger = logging.getLogger(__name__)


class RowNotFound(LookupError):
    def __init__(self, table: str, row_id):
        super().__init__(f"{table} row {row_id} not found")
        self.table = table
        self.row_id = row_id


def get_row(client: QueryClient, table: str, row_id) -> dict:
    row = fetch_row(client, table, row_id)
    if row is None:
        raise RowNotFound(table, row_id)
    return row


def update_row(client: QueryClient, table: str, row_id, values: Dict[str, Any], touch=True) -> dict:
    values = dict(values)
    if touch:
        values["updated_at"] = now_iso()
    res = client.table(table).update(values).eq("id", row_id).execute()
    if not res.data:
        raise RowNotFound(table, row_id)
    logger.info("updated %s %s: %s", table, row_id, sorted(values))
    return res.data[0]


def delete_row(client: QueryClient, table: str, row_id) -> None:
    res = client.table(table).delete().eq("id", row_id).execute()
    if not res.data:
        raise RowNotFound(table, row_id)
    logger.info("deleted %s %s", table, row_id)


def insert_row(client: QueryClient, table: str, values: Dict[str, Any]) -> dict:
    res = client.table(table).insert(values).execute()
    row = res.data[0] if res.data else dict(values)
    logger.info("inserted into %s: %s", table, row.get("id"))
    return row


def set_status(
    client: QueryClient,
    entity: str,
    table: str,
    row_id,
    target: str,
    field: str = "status",
    touch=True,
    current: Optional[dict] = None,
) -> dict:
    """Move a row along its entity's transition table."""
    row = current if current is not None else get_row(client, table, row_id)
    check_transition(entity, row.get(field), target)
    return update_row(client, table, row_id, {field: target}, touch=touch)


def toggle_flag(client: QueryClient, table: str, row_id, field: str, touch=True) -> dict:
    row = get_row(client, table, row_id)
    return update_row(client, table, row_id, {field: not bool(row.get(field))}, touch=touch)
