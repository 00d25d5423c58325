"""
FastAPI server for the storefront order endpoint.
"""
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.api.idempotency import IdempotencyStore
from storefront.api.orders import OrderContext, set_order_context
from storefront.api.orders import router as orders_router
from storefront.api.payments import PaymentGateway, SandboxPaymentGateway
from storefront.api.repository import InMemoryOrderRepository, OrderRepository
from storefront.core.config import Settings, load_settings
from storefront.core.logging_config import setup_logging
from storefront.core.sentry_integration import init_sentry

logger = logging.getLogger(__name__)

DEV_ENVIRONMENTS = ("development", "dev", "local", "test")


def create_app(
    settings: Settings | None = None,
    gateway: PaymentGateway | None = None,
    repository: OrderRepository | None = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Loaded settings; read from the environment when omitted
        gateway: Payment gateway; the sandbox gateway when omitted
        repository: Order storage; in-memory when omitted
    """
    settings = settings or load_settings()
    setup_logging(settings.log_level)
    init_sentry(settings.sentry_dsn, environment=settings.environment)

    context = OrderContext(
        gateway=gateway or SandboxPaymentGateway(),
        repository=repository or InMemoryOrderRepository(),
        idempotency=IdempotencyStore(),
        delivery_fee_cents=settings.delivery_fee_cents,
    )
    # set immediately so the routes work even when lifespan events never fire
    set_order_context(context)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Order API starting (%s)", settings.environment)
        set_order_context(context)
        yield
        logger.info("Order API shutting down")

    app = FastAPI(
        title="Storefront Order API",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/api/docs",
        openapi_url="/api/openapi.json",
    )
    app.state.order_context = context

    if settings.environment.lower() in DEV_ENVIRONMENTS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["http://localhost:5173", "http://localhost:3000", "http://127.0.0.1:5000"],
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Content-Type", "Idempotency-Key", "Sentry-Trace", "Baggage"],
        )

    app.include_router(orders_router)

    @app.get("/")
    async def root():
        return {"service": "Storefront Order API", "version": "1.0.0", "docs": "/api/docs"}

    return app


async def run_api_server(settings: Settings | None = None, host: str = "0.0.0.0", port: int = 5000) -> None:
    app = create_app(settings)
    config = uvicorn.Config(app, host=host, port=port, log_level="info", access_log=True)
    server = uvicorn.Server(config)
    logger.info("Starting order API on http://%s:%s", host, port)
    await server.serve()


if __name__ == "__main__":
    uvicorn.run(create_app(), host="0.0.0.0", port=int(os.getenv("PORT", "5000")))
