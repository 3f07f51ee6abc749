import asyncio

from fastapi import APIRouter, Depends, Header, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from harvest_orders.api_client import OrderApiClient, OrderApiError
from harvest_orders.order_actions import Order, advance, farmer_actions, submit_transition
from harvest_orders.order_state import InvalidTransitionError, parse_status
from harvest_orders.routes.deps import get_order_api, is_duplicate_submission, release_idempotency_key

router = APIRouter(prefix="/farmer/orders", tags=["farmer"])


class UpdateOrderBody(BaseModel):
    status: str = Field(..., description="Requested lifecycle status")
    tracking_number: str | None = Field(default=None, description="Carried along when shipping")
    estimated_arrival: str | None = Field(default=None, description="ISO datetime")
    cancelled_reason: str | None = Field(default=None, description="Carried along when cancelling")


class AdvanceOrderBody(BaseModel):
    tracking_number: str | None = Field(default=None, description="Carried along when shipping")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": "error", "message": message})


def _already_submitted(order_id: str) -> JSONResponse:
    return JSONResponse(
        status_code=200,
        content={"status": "already_submitted", "order_id": order_id},
    )


def _updated(order: Order) -> JSONResponse:
    return JSONResponse(
        status_code=200,
        content={
            "status": "success",
            "message": "Order updated successfully",
            "data": order.model_dump(mode="json"),
            "actions": farmer_actions(order),
        },
    )


async def _fetch_order(api: OrderApiClient, order_id: str) -> Order:
    data = await asyncio.to_thread(api.get_order, order_id, True)
    return Order.model_validate({"id": order_id, **data})


@router.get("")
async def list_orders(
    status: str = Query(default="all"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    api: OrderApiClient = Depends(get_order_api),
) -> JSONResponse:
    """Seller's orders, filtered by a canonical status or "all"."""
    if status != "all" and parse_status(status) is None:
        return _error(400, f"Unknown order status: {status}")
    envelope = await asyncio.to_thread(
        api.list_orders, None if status == "all" else status, page, limit, True
    )
    return JSONResponse(status_code=200, content=envelope)


@router.get("/{order_id}")
async def get_order(order_id: str, api: OrderApiClient = Depends(get_order_api)) -> JSONResponse:
    order = await _fetch_order(api, order_id)
    return JSONResponse(
        status_code=200,
        content={
            "status": "success",
            "data": order.model_dump(mode="json"),
            "actions": farmer_actions(order),
        },
    )


@router.patch("/{order_id}")
async def update_order(
    order_id: str,
    body: UpdateOrderBody,
    api: OrderApiClient = Depends(get_order_api),
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
) -> JSONResponse:
    """
    Move the order to body.status. The lifecycle table is checked first: a disallowed
    move answers 400 and nothing is sent to the order service.
    """
    scope = f"farmer_update:{order_id}"
    if await is_duplicate_submission(scope, idempotency_key):
        return _already_submitted(order_id)

    try:
        order = await _fetch_order(api, order_id)
        updated = await asyncio.to_thread(
            submit_transition,
            api,
            order,
            body.status,
            body.tracking_number,
            body.estimated_arrival,
            body.cancelled_reason,
        )
    except InvalidTransitionError as e:
        await release_idempotency_key(scope, idempotency_key)
        return _error(400, str(e))
    except OrderApiError:
        await release_idempotency_key(scope, idempotency_key)
        raise
    return _updated(updated)


@router.post("/{order_id}/advance")
async def advance_order(
    order_id: str,
    body: AdvanceOrderBody | None = None,
    api: OrderApiClient = Depends(get_order_api),
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
) -> JSONResponse:
    """Run the page's single forward action (Confirm Order, Start Processing, Ship Order, ...)."""
    scope = f"farmer_advance:{order_id}"
    if await is_duplicate_submission(scope, idempotency_key):
        return _already_submitted(order_id)

    tracking_number = body.tracking_number if body else None
    try:
        order = await _fetch_order(api, order_id)
        updated = await asyncio.to_thread(advance, api, order, tracking_number)
    except InvalidTransitionError as e:
        await release_idempotency_key(scope, idempotency_key)
        return _error(400, f"No next action for order in status {e.current}")
    except OrderApiError:
        await release_idempotency_key(scope, idempotency_key)
        raise
    return _updated(updated)
