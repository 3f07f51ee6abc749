import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from harvest_orders.api_client import OrderApiError, close_session
from harvest_orders.config import settings
from harvest_orders.metrics import get_metrics_bytes, get_metrics_content_type
from harvest_orders.redis_client import close_redis, get_redis
from harvest_orders.routes import buyer_orders, farmer_orders

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(message)s",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await get_redis()
    logger.info("Forwarding order actions to %s", settings.orders_api_url)
    yield
    await close_redis()
    close_session()


app = FastAPI(title="Harvest Order Actions", lifespan=lifespan)
app.include_router(farmer_orders.router)
app.include_router(buyer_orders.router)


@app.exception_handler(OrderApiError)
async def order_api_error_handler(request: Request, exc: OrderApiError) -> JSONResponse:
    """Order service errors (and missing auth) keep their status code and message."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"status": "error", "message": exc.message},
    )


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.get("/metrics")
async def metrics() -> Response:
    """Prometheus scrape endpoint: transitions submitted/rejected, cancellations, order service errors."""
    return Response(
        content=get_metrics_bytes(),
        media_type=get_metrics_content_type(),
    )
