from typing import Annotated

from fastapi import APIRouter, Depends

from kita_advisor.ai.orchestrator import AIRequestOrchestrator
from kita_advisor.api.dependencies import get_orchestrator_optional
from kita_advisor.api.schemas import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(
    orchestrator: Annotated[AIRequestOrchestrator | None, Depends(get_orchestrator_optional)],
) -> HealthResponse:
    if orchestrator is None:
        return HealthResponse(status="starting", ai_configured=False)

    limiter = orchestrator.rate_limiter
    return HealthResponse(
        status="ok",
        ai_configured=orchestrator.configured,
        model=orchestrator.model,
        rate_limit_max_requests=limiter.max_requests,
        rate_limit_window_seconds=limiter.window,
        rate_limit_in_window=limiter.in_flight,
        seconds_until_reset=limiter.time_until_reset(),
    )
