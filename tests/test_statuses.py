import pytest

from mrcars_admin.statuses import (
    DEFAULT_STATUS,
    TRANSITIONS,
    TransitionError,
    allowed_targets,
    check_transition,
    transitions_for,
)


def test_every_entity_has_a_default_status():
    assert set(TRANSITIONS) == set(DEFAULT_STATUS)
    for entity, default in DEFAULT_STATUS.items():
        assert default in TRANSITIONS[entity]


def test_order_flow():
    assert allowed_targets("order", "pending") == ["processing", "cancelled"]
    assert allowed_targets("order", "shipped") == ["delivered"]
    assert allowed_targets("order", "delivered") == []


def test_missing_status_behaves_like_default():
    assert transitions_for("listing", None) == transitions_for("listing", "active")


def test_rental_can_move_to_any_other_status():
    assert allowed_targets("rental", "rented") == ["available", "maintenance", "inactive"]


def test_refused_transition():
    with pytest.raises(TransitionError) as exc:
        check_transition("order", "delivered", "pending")
    assert exc.value.current == "delivered"
    assert exc.value.target == "pending"
    assert "delivered" in str(exc.value)


def test_allowed_transition_passes():
    check_transition("emergency", "accepted", "in_progress")
