from fastapi import HTTPException, Request

from kita_advisor.ai.orchestrator import AIRequestOrchestrator
from kita_advisor.services.advisor import AdvisorService


def get_advisor(request: Request) -> AdvisorService:
    advisor = getattr(request.app.state, "advisor", None)
    if not advisor:
        raise HTTPException(status_code=500, detail="Service not initialized")
    return advisor


def get_orchestrator_optional(request: Request) -> AIRequestOrchestrator | None:
    return getattr(request.app.state, "orchestrator", None)
