from fastapi import Header

from harvest_orders.api_client import OrderApiClient, OrderApiError
from harvest_orders.metrics import duplicate_submissions_total
from harvest_orders.redis_client import claim_submission, release_submission


def extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_order_api(authorization: str | None = Header(default=None)) -> OrderApiClient:
    """Order service client acting as the caller. No token -> 401 before anything goes upstream."""
    token = extract_bearer_token(authorization)
    if token is None:
        raise OrderApiError(401, "Unauthorized")
    return OrderApiClient(token)


async def is_duplicate_submission(scope: str, idempotency_key: str | None) -> bool:
    """Only requests that send an Idempotency-Key are deduplicated."""
    if not idempotency_key:
        return False
    if await claim_submission(scope, idempotency_key):
        return False
    duplicate_submissions_total.inc()
    return True


async def release_idempotency_key(scope: str, idempotency_key: str | None) -> None:
    """Called when the request did not change the order: the same key must be usable again."""
    if idempotency_key:
        await release_submission(scope, idempotency_key)
