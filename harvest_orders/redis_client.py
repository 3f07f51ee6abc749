import redis.asyncio as redis
from harvest_orders.config import settings

_redis: redis.Redis | None = None

IDEMPOTENCY_KEY_PREFIX = "idempotency:order_action"


async def get_redis() -> redis.Redis:
    global _redis
    if _redis is None:
        _redis = redis.from_url(settings.redis_url, decode_responses=True)
    return _redis


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None


async def claim_submission(scope: str, key: str, ttl_seconds: int | None = None) -> bool:
    """
    Record an Idempotency-Key for one mutating request (scope = route + order id).
    Returns True if the key is new and the caller should go ahead,
    False if the same request was already submitted within the TTL.
    """
    r = await get_redis()
    was_set = await r.set(
        f"{IDEMPOTENCY_KEY_PREFIX}:{scope}:{key}",
        "1",
        nx=True,
        ex=ttl_seconds or settings.idempotency_ttl_seconds,
    )
    return bool(was_set)


async def release_submission(scope: str, key: str) -> None:
    """Forget a claimed Idempotency-Key so a retry of a rejected or failed request goes through."""
    r = await get_redis()
    await r.delete(f"{IDEMPOTENCY_KEY_PREFIX}:{scope}:{key}")
