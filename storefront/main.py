"""Main application entry point."""
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
import redis
import httpx
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

from storefront.cart import CART_COOKIE_NAME
from storefront.config import (
    API_VERSION,
    CURRENCY_CONFIG_PATH,
    DEFAULT_EURO_COEFFICIENT,
    HTTP_TIMEOUT_SECONDS,
    LOG_LEVEL,
    RATE_LIMIT_ENABLED,
    REDIS_URL,
)
from storefront.currency import CurrencyService
from storefront.database import engine, init_db
from storefront.errors import StorefrontError
from storefront.logging_config import setup_logging
from storefront.monitoring import init_profiling
from storefront.redis_rate_limiter import RedisRateLimiter
from storefront.routers import account, auth as auth_router, cart, orders, products, shipping

# Setup structured logging
setup_logging(LOG_LEVEL)
logger = logging.getLogger(__name__)

# Sync client: sessions and the rate limiter middleware
redis_client = redis.from_url(REDIS_URL, decode_responses=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    logger.info("Starting application...")

    init_db()

    RedisInstrumentor().instrument(redis_client=redis_client)
    app.state.redis_client = redis_client
    logger.info("Redis client initialized")

    http_client = httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS)
    HTTPXClientInstrumentor().instrument_client(http_client)
    app.state.http_client = http_client
    logger.info("HTTP client initialized")

    app.state.currency_service = CurrencyService(CURRENCY_CONFIG_PATH, DEFAULT_EURO_COEFFICIENT)

    init_profiling()

    logger.info("Application startup complete")

    yield

    logger.info("Shutting down application...")
    await http_client.aclose()
    redis_client.close()
    logger.info("Application shutdown complete")


app = FastAPI(
    title="Storefront",
    version=API_VERSION,
    lifespan=lifespan
)

if RATE_LIMIT_ENABLED:
    app.add_middleware(RedisRateLimiter, redis_client=redis_client)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

FastAPIInstrumentor.instrument_app(app)
SQLAlchemyInstrumentor().instrument(engine=engine)


def _error_response(request: Request, status_code: int, detail: str) -> JSONResponse:
    response = JSONResponse(status_code=status_code, content={"detail": detail})
    # A malformed cart cookie seen earlier in the request is still cleared
    if getattr(request.state, "clear_cart_cookie", False):
        response.delete_cookie(CART_COOKIE_NAME, path="/")
    return response


@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError):
    if exc.status_code >= 500:
        logger.error("Request failed", extra={
            "path": request.url.path,
            "error": exc.message,
            "error_type": type(exc).__name__
        })
    return _error_response(request, exc.status_code, exc.message)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error", extra={
        "path": request.url.path,
        "error": str(exc)
    })
    return _error_response(request, 500, "Database error")


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


app.include_router(auth_router.router)
app.include_router(products.router)
app.include_router(cart.router)
app.include_router(orders.router)
app.include_router(account.router)
app.include_router(shipping.router)


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
