import math
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from kita_advisor.ai.orchestrator import AIRequestOrchestrator
from kita_advisor.api.routes import advice, analytics, health
from kita_advisor.core import settings
from kita_advisor.errors import AdvisorError, ErrorKind, RateLimitError
from kita_advisor.logger import get_logger, setup_logging
from kita_advisor.services.advisor import AdvisorService
from kita_advisor.sources import InMemoryTransactionSource, TransactionSource

logger = get_logger(__name__)

ERROR_STATUS = {
    ErrorKind.CONFIG: 500,
    ErrorKind.RATE_LIMIT: 429,
    ErrorKind.QUOTA_EXCEEDED: 503,
    ErrorKind.SAFETY_BLOCKED: 422,
    ErrorKind.NETWORK: 502,
    ErrorKind.MALFORMED_RESPONSE: 502,
}


async def advisor_error_handler(request: Request, exc: AdvisorError) -> JSONResponse:
    headers: dict[str, str] = {}
    if isinstance(exc, RateLimitError):
        headers["Retry-After"] = str(max(1, math.ceil(exc.wait_seconds)))
    logger.info("[API] %s %s -> %s: %s", request.method, request.url.path, exc.kind.value, exc)
    return JSONResponse(
        status_code=ERROR_STATUS.get(exc.kind, 500),
        content={"kind": exc.kind.value, "detail": exc.user_message},
        headers=headers,
    )


def create_app(
    config: settings.AdvisorConfig | None = None,
    source: TransactionSource | None = None,
) -> FastAPI:
    setup_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Initializing services...")
        settings.log_environment()

        advisor_config = config or settings.AdvisorConfig.from_env()
        if not advisor_config.api_key:
            logger.warning("GEMINI_API_KEY not set. AI advice will be unavailable.")

        orchestrator = AIRequestOrchestrator.from_config(advisor_config)
        advisor = AdvisorService(
            source=source or InMemoryTransactionSource(),
            orchestrator=orchestrator,
        )

        app.state.orchestrator = orchestrator
        app.state.advisor = advisor

        logger.info("Services initialized.")
        yield
        logger.info("Service shutting down.")
        await orchestrator.aclose()

    app = FastAPI(title="Kita Advisor", lifespan=lifespan)
    app.add_exception_handler(AdvisorError, advisor_error_handler)

    app.include_router(analytics.router)
    app.include_router(advice.router)
    app.include_router(health.router)

    return app


app = create_app()
