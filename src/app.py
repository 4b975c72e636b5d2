"""Storefront FastAPI application.

Serves checkout, order history and the payment reconciliation endpoints.
Settings are read once, when the app is built: a missing secret stops the
process at startup instead of failing the first payment.

Usage:
    uvicorn app:create_app --factory --app-dir src --host 0.0.0.0 --port 8000
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ordering.api.routes import order_router
from ordering.domain import ordering
from ordering.order.store import OrderStore
from ordering.utils.db import create_db_engine, setup_db
from payments.api.routes import payment_router
from payments.gateway import build_gateway
from payments.reconciliation.coordinator import ReconciliationCoordinator
from payments.reconciliation.signature import SignatureVerifier
from shared.config import Settings
from shared.logging import configure_logging, get_logger
from shared.web import register_exception_handlers

logger = get_logger(__name__)

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# Initialized at module level so uvicorn workers share it.
ordering.init()


def build_coordinator(settings: Settings, engine=None, gateway=None) -> ReconciliationCoordinator:
    """Wire the store, gateway and verifier from one settings object."""
    if engine is None:
        engine = create_db_engine(settings.database_url)
        setup_db(engine)

    return ReconciliationCoordinator(
        store=OrderStore(engine),
        gateway=gateway if gateway is not None else build_gateway(settings),
        verifier=SignatureVerifier(settings.webhook_secret.get_secret_value()),
        currency=settings.currency,
    )


@asynccontextmanager
async def _lifespan(app: FastAPI):
    yield
    app.state.coordinator.gateway.close()
    logger.info("Payment gateway closed")


def create_app(settings: Settings | None = None, coordinator: ReconciliationCoordinator | None = None) -> FastAPI:
    if settings is None:
        settings = Settings()

    configure_logging(env=settings.env, level=settings.log_level, json_output=settings.log_json)

    app = FastAPI(
        title="Storefront API",
        description="Checkout, order history and payment reconciliation",
        lifespan=_lifespan,
    )
    app.state.settings = settings
    app.state.coordinator = coordinator if coordinator is not None else build_coordinator(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the ordering domain context for each request."""
        with ordering.domain_context():
            return await call_next(request)

    register_exception_handlers(app)

    # -----------------------------------------------------------------------
    # Routers
    # -----------------------------------------------------------------------
    app.include_router(order_router)
    app.include_router(payment_router)

    # -----------------------------------------------------------------------
    # Health / root
    # -----------------------------------------------------------------------
    @app.get("/health")
    async def health():
        return JSONResponse(
            content={
                "status": "ok",
                "env": settings.env,
                "gateway": type(app.state.coordinator.gateway).__name__,
            }
        )

    logger.info("Storefront app created", env=settings.env, gateway=settings.gateway_backend)
    return app
