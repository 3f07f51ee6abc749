import asyncio

from fastapi import APIRouter, Depends, Header, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from harvest_orders.api_client import OrderApiClient, OrderApiError
from harvest_orders.order_actions import Order, buyer_view, cancel_as_buyer
from harvest_orders.order_state import InvalidTransitionError, from_buyer_status, parse_status
from harvest_orders.routes.deps import get_order_api, is_duplicate_submission, release_idempotency_key

router = APIRouter(prefix="/orders", tags=["orders"])


class CancelOrderBody(BaseModel):
    reason: str = Field(..., min_length=1, description="Why the buyer is cancelling")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": "error", "message": message})


async def _fetch_order(api: OrderApiClient, order_id: str) -> Order:
    data = await asyncio.to_thread(api.get_order, order_id)
    return Order.model_validate({"id": order_id, **data})


@router.get("")
async def list_orders(
    status: str = Query(default=""),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    api: OrderApiClient = Depends(get_order_api),
) -> JSONResponse:
    """Buyer's orders. The filter may use either spelling; the order service is sent the canonical one."""
    if status:
        canonical = from_buyer_status(status) or parse_status(status)
        if canonical is None:
            return _error(400, f"Unknown order status: {status}")
        status = canonical.value
    envelope = await asyncio.to_thread(api.list_orders, status or None, page, limit)
    return JSONResponse(status_code=200, content=envelope)


@router.get("/{order_id}")
async def get_order(order_id: str, api: OrderApiClient = Depends(get_order_api)) -> JSONResponse:
    order = await _fetch_order(api, order_id)
    return JSONResponse(
        status_code=200,
        content={
            "status": "success",
            "data": order.model_dump(mode="json"),
            "view": buyer_view(order),
        },
    )


@router.post("/{order_id}/cancel")
async def cancel_order(
    order_id: str,
    body: CancelOrderBody,
    api: OrderApiClient = Depends(get_order_api),
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
) -> JSONResponse:
    """Buyer cancellation, allowed only while the order is PENDING or CONFIRMED."""
    scope = f"buyer_cancel:{order_id}"
    if await is_duplicate_submission(scope, idempotency_key):
        return JSONResponse(
            status_code=200,
            content={"status": "already_submitted", "order_id": order_id},
        )

    try:
        order = await _fetch_order(api, order_id)
        data = await asyncio.to_thread(cancel_as_buyer, api, order, body.reason)
    except InvalidTransitionError:
        await release_idempotency_key(scope, idempotency_key)
        return _error(400, "Order cannot be cancelled")
    except OrderApiError:
        await release_idempotency_key(scope, idempotency_key)
        raise
    except ValueError as e:
        await release_idempotency_key(scope, idempotency_key)
        return _error(400, str(e))
    return JSONResponse(
        status_code=200,
        content={"status": "success", "message": "Order cancelled successfully", "data": data},
    )
