"""
Order actions: check the lifecycle table, then make exactly one call to the order service.
A rejected transition never reaches the network and is never retried.
"""
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from harvest_orders.api_client import OrderApiClient, OrderUpdater
from harvest_orders.metrics import (
    order_cancellations_total,
    order_transitions_rejected_total,
    order_transitions_submitted_total,
)
from harvest_orders.order_state import (
    BuyerStatus,
    InvalidTransitionError,
    OrderStatus,
    allowed_transitions,
    can_cancel,
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

logger = logging.getLogger(__name__)


class Order(BaseModel):
    """The order fields the lifecycle needs; anything else the order service sends is kept as-is."""
    model_config = ConfigDict(extra="allow")

    id: str = Field(..., description="Order id in the order service")
    status: str = Field(..., description="Current lifecycle status (farmer or buyer spelling)")
    order_number: str | None = None
    tracking_number: str | None = None
    estimated_arrival: str | None = None
    cancelled_reason: str | None = None
    cancelled_at: str | None = None
    updated_at: str | None = None


def _reject(current: str, requested: Any) -> InvalidTransitionError:
    err = InvalidTransitionError(current, requested)
    order_transitions_rejected_total.labels(
        current_state=str(err.current), requested_state=str(err.requested)
    ).inc()
    logger.warning("Rejected transition: %s", err)
    return err


def build_update_body(
    requested: OrderStatus,
    tracking_number: str | None = None,
    estimated_arrival: str | None = None,
    cancelled_reason: str | None = None,
) -> dict:
    body: dict[str, Any] = {"status": requested.value}
    if requested is OrderStatus.SHIPPED and tracking_number and tracking_number.strip():
        body["tracking_number"] = tracking_number.strip()
    if requested is OrderStatus.CANCELLED and cancelled_reason:
        body["cancelled_reason"] = cancelled_reason
    if estimated_arrival is not None:
        body["estimated_arrival"] = estimated_arrival
    return body


def submit_transition(
    client: OrderUpdater,
    order: Order,
    requested,
    tracking_number: str | None = None,
    estimated_arrival: str | None = None,
    cancelled_reason: str | None = None,
) -> Order:
    """
    Validate order.status -> requested against the table and, if allowed, send one update.
    Raises InvalidTransitionError before any call; OrderApiError propagates from the client
    unchanged (no refresh, no retry).
    """
    try:
        target = validate_transition(order.status, requested)
    except InvalidTransitionError:
        raise _reject(order.status, requested) from None

    body = build_update_body(target, tracking_number, estimated_arrival, cancelled_reason)
    data = client.update_order(order.id, body)
    order_transitions_submitted_total.labels(to_state=target.value).inc()
    logger.info("Order %s: %s -> %s", order.id, order.status, target.value)
    return Order.model_validate({**order.model_dump(), **data})


def advance(client: OrderUpdater, order: Order, tracking_number: str | None = None) -> Order:
    """Run the single forward action for the current status (e.g. pending -> confirmed)."""
    target = next_status(order.status)
    if target is None:
        raise _reject(order.status, "advance")
    return submit_transition(client, order, target, tracking_number=tracking_number)


def cancel_as_buyer(client: OrderApiClient, order: Order, reason: str) -> dict:
    if not reason or not reason.strip():
        raise ValueError("A cancellation reason is required")
    if not can_cancel(order.status):
        raise _reject(order.status, OrderStatus.CANCELLED)
    data = client.cancel_order(order.id, reason.strip())
    order_cancellations_total.labels(actor="buyer").inc()
    logger.info("Order %s cancelled by buyer", order.id)
    return data


def farmer_actions(order: Order) -> dict:
    """Derived state for the farmer order page's action panel."""
    target = next_status(order.status)
    aux = requires_auxiliary_input(order.status, target) if target else None
    return {
        "allowed_transitions": [s.value for s in allowed_transitions(order.status)],
        "next_action": next_action_label(order.status),
        "next_status": target.value if target else None,
        "can_cancel": can_cancel(order.status),
        "auxiliary_input": (
            {
                "name": aux.name,
                "label": aux.label,
                "required": aux.required,
                "placeholder": aux.placeholder,
            }
            if aux
            else None
        ),
        "is_terminal": is_terminal(order.status),
    }


def buyer_view(order: Order) -> dict:
    buyer_status = to_buyer_status(order.status)
    return {
        "status": buyer_status.value if buyer_status else order.status,
        "label": status_label(order.status),
        "steps": progress_steps(order.status),
        "progress_percent": progress_percent(order.status),
        "can_cancel": can_cancel(order.status),
        "is_cancelled": buyer_status in (BuyerStatus.CANCELLED, BuyerStatus.REFUNDED),
    }
