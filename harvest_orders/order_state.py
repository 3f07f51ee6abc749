"""
Order lifecycle state machine. One canonical status set and transition table;
the buyer-facing statuses are a view computed from it.
"""
from dataclasses import dataclass
from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"
    PENDING_PAYMENT = "pending_payment"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class BuyerStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


class InvalidTransitionError(Exception):
    """Raised when the table does not allow current -> requested. Nothing is sent upstream."""
    def __init__(self, current: str | None, requested: str | None):
        self.current = _raw(current)
        self.requested = _raw(requested)
        super().__init__(f"Cannot transition from {self.current} to {self.requested}")


@dataclass(frozen=True)
class FieldSpec:
    name: str
    label: str
    required: bool = False
    placeholder: str = ""


# Current status -> allowed next statuses, in display order
VALID_TRANSITIONS: dict[OrderStatus, list[OrderStatus]] = {
    OrderStatus.PENDING: [OrderStatus.CONFIRMED, OrderStatus.CANCELLED],
    OrderStatus.PENDING_PAYMENT: [OrderStatus.PENDING, OrderStatus.CANCELLED],
    OrderStatus.CONFIRMED: [OrderStatus.PROCESSING, OrderStatus.CANCELLED],
    OrderStatus.PROCESSING: [OrderStatus.SHIPPED],
    OrderStatus.SHIPPED: [OrderStatus.DELIVERED],
    OrderStatus.DELIVERED: [OrderStatus.COMPLETED],
    OrderStatus.COMPLETED: [],  # terminal
    OrderStatus.CANCELLED: [],  # terminal
}

# Single "advance" action per status: (target, button label).
# pending_payment waits on the buyer, so it has none.
ADVANCE_ACTIONS: dict[OrderStatus, tuple[OrderStatus, str]] = {
    OrderStatus.PENDING: (OrderStatus.CONFIRMED, "Confirm Order"),
    OrderStatus.CONFIRMED: (OrderStatus.PROCESSING, "Start Processing"),
    OrderStatus.PROCESSING: (OrderStatus.SHIPPED, "Ship Order"),
    OrderStatus.SHIPPED: (OrderStatus.DELIVERED, "Mark as Delivered"),
    OrderStatus.DELIVERED: (OrderStatus.COMPLETED, "Complete Order"),
}

TRACKING_NUMBER_FIELD = FieldSpec(
    name="tracking_number",
    label="Tracking Number (optional)",
    required=False,
    placeholder="Enter tracking number...",
)

# (current, requested) -> extra input carried on the same update call
AUXILIARY_INPUTS: dict[tuple[OrderStatus, OrderStatus], FieldSpec] = {
    (OrderStatus.PROCESSING, OrderStatus.SHIPPED): TRACKING_NUMBER_FIELD,
}

TO_BUYER_STATUS: dict[OrderStatus, BuyerStatus] = {
    OrderStatus.PENDING: BuyerStatus.PENDING,
    OrderStatus.PENDING_PAYMENT: BuyerStatus.PENDING,
    OrderStatus.CONFIRMED: BuyerStatus.CONFIRMED,
    OrderStatus.PROCESSING: BuyerStatus.PROCESSING,
    OrderStatus.SHIPPED: BuyerStatus.SHIPPED,
    OrderStatus.DELIVERED: BuyerStatus.DELIVERED,
    OrderStatus.COMPLETED: BuyerStatus.DELIVERED,
    OrderStatus.CANCELLED: BuyerStatus.CANCELLED,
}

# REFUNDED is set by the payment side and has no canonical counterpart.
# The order service spells it "refunded".
REFUNDED_STATUS = "refunded"

FROM_BUYER_STATUS: dict[BuyerStatus, OrderStatus] = {
    BuyerStatus.PENDING: OrderStatus.PENDING,
    BuyerStatus.CONFIRMED: OrderStatus.CONFIRMED,
    BuyerStatus.PROCESSING: OrderStatus.PROCESSING,
    BuyerStatus.SHIPPED: OrderStatus.SHIPPED,
    BuyerStatus.DELIVERED: OrderStatus.DELIVERED,
    BuyerStatus.CANCELLED: OrderStatus.CANCELLED,
}

BUYER_PROGRESS_STEPS: list[tuple[BuyerStatus, str]] = [
    (BuyerStatus.PENDING, "Order Placed"),
    (BuyerStatus.CONFIRMED, "Confirmed"),
    (BuyerStatus.PROCESSING, "Processing"),
    (BuyerStatus.SHIPPED, "Shipped"),
    (BuyerStatus.DELIVERED, "Delivered"),
]

STATUS_LABELS: dict[BuyerStatus, str] = {
    BuyerStatus.PENDING: "Pending",
    BuyerStatus.CONFIRMED: "Confirmed",
    BuyerStatus.PROCESSING: "Processing",
    BuyerStatus.SHIPPED: "Shipped",
    BuyerStatus.DELIVERED: "Delivered",
    BuyerStatus.CANCELLED: "Cancelled",
    BuyerStatus.REFUNDED: "Refunded",
}


def _raw(status) -> str | None:
    if isinstance(status, Enum):
        return status.value
    return status


def parse_status(status) -> OrderStatus | None:
    """Canonical status for a farmer-side string, or None if unrecognized."""
    if isinstance(status, OrderStatus):
        return status
    try:
        return OrderStatus(status)
    except ValueError:
        return None


def parse_buyer_status(status) -> BuyerStatus | None:
    if isinstance(status, BuyerStatus):
        return status
    try:
        return BuyerStatus(status)
    except ValueError:
        return None


def allowed_transitions(status) -> list[OrderStatus]:
    """Table row for status. Unrecognized status -> [] (nothing permitted)."""
    current = parse_status(status)
    if current is None:
        return []
    return list(VALID_TRANSITIONS[current])


def is_valid_transition(current, requested) -> bool:
    target = parse_status(requested)
    return target is not None and target in allowed_transitions(current)


def validate_transition(current, requested) -> OrderStatus:
    """Return requested as an OrderStatus, or raise InvalidTransitionError."""
    if not is_valid_transition(current, requested):
        raise InvalidTransitionError(current, requested)
    return parse_status(requested)


def next_action_label(status) -> str | None:
    action = ADVANCE_ACTIONS.get(parse_status(status))
    return action[1] if action else None


def next_status(status) -> OrderStatus | None:
    action = ADVANCE_ACTIONS.get(parse_status(status))
    return action[0] if action else None


def requires_auxiliary_input(current, requested) -> FieldSpec | None:
    return AUXILIARY_INPUTS.get((parse_status(current), parse_status(requested)))


def to_buyer_status(status) -> BuyerStatus | None:
    buyer = parse_buyer_status(status)
    if buyer is not None:
        return buyer
    if status == REFUNDED_STATUS:
        return BuyerStatus.REFUNDED
    return TO_BUYER_STATUS.get(parse_status(status))


def from_buyer_status(status) -> OrderStatus | None:
    return FROM_BUYER_STATUS.get(parse_buyer_status(status))


def _canonical(status) -> OrderStatus | None:
    canonical = parse_status(status)
    if canonical is None:
        canonical = from_buyer_status(status)
    return canonical


def can_cancel(status) -> bool:
    """
    True for pending, pending_payment, confirmed (and buyer-side PENDING, CONFIRMED).
    Read off the canonical table so both views agree.
    """
    return OrderStatus.CANCELLED in allowed_transitions(_canonical(status))


def is_terminal(status) -> bool:
    if to_buyer_status(status) is BuyerStatus.REFUNDED:
        return True
    canonical = _canonical(status)
    return canonical is not None and not VALID_TRANSITIONS[canonical]


def status_label(status) -> str:
    buyer = to_buyer_status(status)
    if buyer is None:
        return str(_raw(status))
    return STATUS_LABELS[buyer]


def _progress_index(status) -> int:
    buyer = to_buyer_status(status)
    for i, (key, _label) in enumerate(BUYER_PROGRESS_STEPS):
        if key is buyer:
            return i
    return -1


def progress_steps(status) -> list[dict]:
    index = _progress_index(status)
    return [
        {
            "key": key.value,
            "label": label,
            "completed": i <= index,
            "current": i == index,
        }
        for i, (key, label) in enumerate(BUYER_PROGRESS_STEPS)
    ]


def progress_percent(status) -> float:
    index = _progress_index(status)
    if index < 0:
        return 0.0
    return min(100.0, index / (len(BUYER_PROGRESS_STEPS) - 1) * 100)
