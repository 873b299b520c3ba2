from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from examforge.api.errors import register_exception_handlers
from examforge.api.router import api_router
from examforge.config import get_settings
from examforge.guard.verifier import CredentialVerifier
from examforge.logging import setup_logging
from examforge.observability.metrics import GuardMetrics
from examforge.quizzes.seed import seed_quizzes
from examforge.ratelimit.limiter import RateLimiter
from examforge.ratelimit.sweeper import RateLimitSweeper
from examforge.store.factory import create_stores

logger = structlog.get_logger()


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        stores = await create_stores(settings)
        quiz_repository = stores["quiz_repository"]
        rate_limit_store = stores["rate_limit_store"]

        if settings.quiz_seed_path:
            await seed_quizzes(quiz_repository, settings.quiz_seed_path)

        rate_limiter = RateLimiter(
            rate_limit_store,
            fail_mode=settings.rate_limit_fail_mode,
        )
        verifier = CredentialVerifier(
            quiz_repository,
            rate_limiter,
            settings.password_attempt_policy,
            scope_by_client=settings.rate_limit_scope_by_client,
        )

        sweeper = None
        if settings.rate_limit_sweep_interval_seconds > 0:
            sweeper = RateLimitSweeper(
                rate_limit_store,
                max_window_seconds=max(
                    p.window_seconds for p in settings.rate_limit_policies.values()
                ),
                interval_seconds=settings.rate_limit_sweep_interval_seconds,
            )
            sweeper.start()

        app.state.settings = settings
        app.state.quiz_repository = quiz_repository
        app.state.rate_limit_store = rate_limit_store
        app.state.rate_limiter = rate_limiter
        app.state.verifier = verifier
        app.state.metrics = GuardMetrics()
        logger.info(
            "guard_ready",
            storage=settings.storage_type.value,
            limit=verifier.policy.limit,
            window_seconds=verifier.policy.window_seconds,
        )

        yield

        if sweeper:
            await sweeper.stop()
        if stores.get("cleanup"):
            await stores["cleanup"]()

    app = FastAPI(
        title="ExamForge Password Guard",
        version="0.1.0",
        description="Rate-limited password verification for shared quizzes",
        lifespan=lifespan,
    )
    app.include_router(api_router, prefix="/api")
    register_exception_handlers(app)

    return app


app = create_app()


def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "examforge.app:app",
        host=settings.app_host,
        port=settings.app_port,
        log_config=None,
        proxy_headers=True,
        forwarded_allow_ips=settings.forwarded_allow_ips,
    )
