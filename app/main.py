# app/main.py
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from app.core.config import settings
from app.api.endpoints import shop, orders, ppv, premium
from app.services.orders import InMemoryOrderStore
from app.x402.middleware import create_facilitator_client

# Configure basic logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Orders live for the lifetime of the process only
    app.state.order_store = InMemoryOrderStore()
    app.state.facilitator_client = create_facilitator_client()
    logger.info(
        f"{settings.PROJECT_NAME} ready: network={settings.NETWORK} "
        f"facilitator={settings.FACILITATOR_URL} payTo={settings.ADDRESS}"
    )
    yield


app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

app.include_router(shop.router, tags=["shop"])
app.include_router(orders.router, tags=["orders"])
app.include_router(ppv.router, tags=["ppv"])
app.include_router(premium.router, tags=["premium"])


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({duration_ms:.0f}ms)")
    return response


@app.get("/", summary="Health Check", tags=["default"])
def read_root():
    """ Basic health check endpoint. """
    logger.info("Root endpoint '/' accessed.")
    return {"status": "ok", "message": f"Welcome to {settings.PROJECT_NAME}"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
