"""FastAPI application for the sandbox backend."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sunyield.config import Settings, settings
from sunyield.sandbox.api.middleware.error_handler import (
    global_exception_handler,
    sandbox_error_handler,
)
from sunyield.sandbox.api.middleware.logging import StructuredLoggingMiddleware
from sunyield.sandbox.api.routes.admin import login_router as admin_login_router
from sunyield.sandbox.api.routes.admin import router as admin_router
from sunyield.sandbox.api.routes.auth import router as auth_router
from sunyield.sandbox.api.routes.coupons import admin_router as coupon_admin_router
from sunyield.sandbox.api.routes.coupons import router as coupons_router
from sunyield.sandbox.api.routes.earnings import router as earnings_router
from sunyield.sandbox.api.routes.engagement import router as engagement_router
from sunyield.sandbox.api.routes.health import router as health_router
from sunyield.sandbox.api.routes.kyc import router as kyc_router
from sunyield.sandbox.api.routes.projects import router as projects_router
from sunyield.sandbox.api.routes.subscriptions import router as subscriptions_router
from sunyield.sandbox.api.routes.wallet import router as wallet_router
from sunyield.sandbox.api.routes.withdrawal import router as withdrawal_router
from sunyield.sandbox.state import PlatformState, SandboxError, seed_demo_data
from sunyield.shared.logging import setup_logging

logger = structlog.get_logger()


def create_app(
    config: Settings | None = None,
    platform: PlatformState | None = None,
    seed: bool = False,
) -> FastAPI:
    """Build a sandbox app around ``platform`` (a fresh state when omitted)."""
    config = config or settings
    platform = platform or PlatformState(config)
    if seed:
        seed_demo_data(platform)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        setup_logging(config.log_level, json_output=not config.debug)
        logger.info(
            "sandbox_starting",
            app_name=config.app_name,
            version=config.app_version,
            projects=len(platform.projects),
        )
        yield
        logger.info("sandbox_shutting_down")

    app = FastAPI(
        title=f"{config.app_name} sandbox",
        description="In-memory stand-in for the crowd-investment platform API",
        version=config.app_version,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.platform = platform

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if config.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(StructuredLoggingMiddleware)

    app.add_exception_handler(SandboxError, sandbox_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(projects_router)
    app.include_router(subscriptions_router)
    app.include_router(wallet_router)
    app.include_router(withdrawal_router)
    app.include_router(kyc_router)
    app.include_router(engagement_router)
    app.include_router(coupons_router)
    app.include_router(earnings_router)
    app.include_router(admin_login_router)
    app.include_router(admin_router)
    app.include_router(coupon_admin_router)
    return app


app = create_app(seed=True)


def run() -> None:
    import uvicorn

    uvicorn.run(
        "sunyield.sandbox.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
