# statuses.py
"""Admin status transitions per entity.

Each table maps a row's current status to the statuses an admin may move it
to, together with the menu label. Row action menus are rendered from these
tables and a posted transition that is not offered for the row's current
status is refused before anything is written.
"""
from typing import Dict, List, Tuple

Transition = Tuple[str, str]

RENTAL_STATUSES = ("available", "rented", "maintenance", "inactive")

TRANSITIONS: Dict[str, Dict[str, List[Transition]]] = {
    "listing": {
        "active": [("inactive", "Deactivate")],
        "inactive": [("active", "Activate")],
    },
    "rental": {
        current: [(s, f"Mark as {s.title()}") for s in RENTAL_STATUSES if s != current]
        for current in RENTAL_STATUSES
    },
    "order": {
        "pending": [("processing", "Mark as Processing"), ("cancelled", "Cancel Order")],
        "processing": [("shipped", "Mark as Shipped"), ("cancelled", "Cancel Order")],
        "shipped": [("delivered", "Mark as Delivered")],
    },
    "inquiry": {
        "pending": [("responded", "Mark as Responded"), ("resolved", "Mark as Resolved")],
        "responded": [("resolved", "Mark as Resolved")],
    },
    "appointment": {
        "scheduled": [("completed", "Mark as Completed"), ("cancelled", "Cancel Appointment")],
    },
    "emergency": {
        "pending": [("accepted", "Accept Request"), ("cancelled", "Cancel Request")],
        "accepted": [("in_progress", "Start Work"), ("cancelled", "Cancel Request")],
        "in_progress": [("completed", "Mark as Completed")],
    },
    "conversation": {
        "active": [("archived", "Archive"), ("blocked", "Block")],
        "archived": [("active", "Restore")],
        "blocked": [("active", "Unblock")],
    },
    "subscription": {
        "pending": [("active", "Activate")],
        "active": [("paused", "Pause"), ("cancelled", "Cancel")],
        "paused": [("active", "Resume")],
    },
}

# A row whose status is missing behaves like the entity's first status.
DEFAULT_STATUS = {
    "listing": "active",
    "rental": "available",
    "order": "pending",
    "inquiry": "pending",
    "appointment": "scheduled",
    "emergency": "pending",
    "conversation": "active",
    "subscription": "pending",
}


class TransitionError(ValueError):
    def __init__(self, entity: str, current: str, target: str):
        super().__init__(f"cannot move {entity} from '{current}' to '{target}'")
        self.entity = entity
        self.current = current
        self.target = target


def transitions_for(entity: str, current) -> List[Transition]:
    table = TRANSITIONS[entity]
    return list(table.get(current or DEFAULT_STATUS[entity], []))


def allowed_targets(entity: str, current) -> List[str]:
    return [target for target, _ in transitions_for(entity, current)]


def check_transition(entity: str, current, target: str) -> None:
    if target not in allowed_targets(entity, current):
        raise TransitionError(entity, current or DEFAULT_STATUS[entity], target)
