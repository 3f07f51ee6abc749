"""
Order lifecycle table: transitions, advance actions, cancel rules and the buyer-facing view.
"""
import pytest

from harvest_orders.order_state import (
    BuyerStatus,
    InvalidTransitionError,
    OrderStatus,
    TRACKING_NUMBER_FIELD,
    VALID_TRANSITIONS,
    allowed_transitions,
    can_cancel,
    from_buyer_status,
    is_terminal,
    next_action_label,
    next_status,
    progress_percent,
    progress_steps,
    requires_auxiliary_input,
    status_label,
    to_buyer_status,
    validate_transition,
)

EXPECTED_TABLE = {
    "pending": ["confirmed", "cancelled"],
    "pending_payment": ["pending", "cancelled"],
    "confirmed": ["processing", "cancelled"],
    "processing": ["shipped"],
    "shipped": ["delivered"],
    "delivered": ["completed"],
    "completed": [],
    "cancelled": [],
}


@pytest.mark.parametrize("status,expected", EXPECTED_TABLE.items())
def test_allowed_transitions_match_table(status, expected):
    assert [s.value for s in allowed_transitions(status)] == expected


def test_table_covers_every_status():
    assert set(VALID_TRANSITIONS) == set(OrderStatus)


def test_terminal_states_have_no_transitions():
    assert allowed_transitions("completed") == []
    assert allowed_transitions("cancelled") == []
    assert is_terminal("completed")
    assert is_terminal("cancelled")
    assert not is_terminal("pending")


@pytest.mark.parametrize("status", ["", "PAID", "refunded", "Pending", None, "shipped "])
def test_unknown_status_permits_nothing(status):
    assert allowed_transitions(status) == []
    assert next_action_label(status) is None
    assert not can_cancel(status)


def test_allowed_transitions_is_pure():
    first = allowed_transitions("pending")
    first.append(OrderStatus.SHIPPED)
    assert allowed_transitions("pending") == allowed_transitions("pending")
    assert OrderStatus.SHIPPED not in allowed_transitions("pending")


def test_validate_transition_accepts_table_moves():
    assert validate_transition("processing", "shipped") is OrderStatus.SHIPPED
    assert validate_transition(OrderStatus.PENDING_PAYMENT, OrderStatus.PENDING) is OrderStatus.PENDING


def test_validate_transition_rejects_skips():
    with pytest.raises(InvalidTransitionError) as exc:
        validate_transition("processing", "delivered")
    assert exc.value.current == "processing"
    assert exc.value.requested == "delivered"
    assert str(exc.value) == "Cannot transition from processing to delivered"


@pytest.mark.parametrize("current", list(EXPECTED_TABLE))
@pytest.mark.parametrize("requested", list(EXPECTED_TABLE) + ["bogus"])
def test_validate_iff_in_allowed(current, requested):
    allowed = requested in EXPECTED_TABLE[current]
    if allowed:
        assert validate_transition(current, requested).value == requested
    else:
        with pytest.raises(InvalidTransitionError):
            validate_transition(current, requested)


def test_next_action_labels():
    assert next_action_label("pending") == "Confirm Order"
    assert next_action_label("confirmed") == "Start Processing"
    assert next_action_label("processing") == "Ship Order"
    assert next_action_label("shipped") == "Mark as Delivered"
    assert next_action_label("delivered") == "Complete Order"
    assert next_action_label("pending_payment") is None
    assert next_action_label("completed") is None
    assert next_action_label("cancelled") is None


def test_advance_targets_are_allowed_moves():
    for status in OrderStatus:
        target = next_status(status)
        if target is not None:
            assert target in allowed_transitions(status)


def test_tracking_number_only_when_shipping():
    field = requires_auxiliary_input("processing", "shipped")
    assert field is TRACKING_NUMBER_FIELD
    assert field.name == "tracking_number"
    assert field.required is False
    assert requires_auxiliary_input("shipped", "delivered") is None
    assert requires_auxiliary_input("pending", "shipped") is None


def test_can_cancel_farmer_statuses():
    cancellable = {s.value for s in OrderStatus if can_cancel(s.value)}
    assert cancellable == {"pending", "pending_payment", "confirmed"}


def test_can_cancel_buyer_statuses():
    cancellable = {s.value for s in BuyerStatus if can_cancel(s.value)}
    assert cancellable == {"PENDING", "CONFIRMED"}


def test_buyer_view_mapping():
    assert to_buyer_status("pending_payment") is BuyerStatus.PENDING
    assert to_buyer_status("completed") is BuyerStatus.DELIVERED
    assert to_buyer_status("SHIPPED") is BuyerStatus.SHIPPED
    assert from_buyer_status("CONFIRMED") is OrderStatus.CONFIRMED
    assert from_buyer_status("REFUNDED") is None
    assert is_terminal("REFUNDED")
    assert to_buyer_status("refunded") is BuyerStatus.REFUNDED
    assert is_terminal("refunded")
    assert is_terminal("CANCELLED")
    assert not is_terminal("DELIVERED")


def test_progress_track():
    steps = progress_steps("processing")
    assert [s["key"] for s in steps] == ["PENDING", "CONFIRMED", "PROCESSING", "SHIPPED", "DELIVERED"]
    assert [s["completed"] for s in steps] == [True, True, True, False, False]
    assert [s["current"] for s in steps] == [False, False, True, False, False]
    assert progress_percent("PENDING") == 0
    assert progress_percent("SHIPPED") == 75
    assert progress_percent("completed") == 100
    assert progress_percent("CANCELLED") == 0
    assert not any(s["completed"] for s in progress_steps("REFUNDED"))


def test_status_labels():
    assert status_label("pending_payment") == "Pending"
    assert status_label("REFUNDED") == "Refunded"
    assert status_label("refunded") == "Refunded"
    assert status_label("on_hold") == "on_hold"
