from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from kita_advisor.api.dependencies import get_advisor
from kita_advisor.api.schemas import AdviceRequest
from kita_advisor.models import AdviceResult
from kita_advisor.services.advisor import AdvisorService

router = APIRouter()


@router.post("/advice", response_model=list[AdviceResult])
async def advice(
    req: AdviceRequest,
    advisor: Annotated[AdvisorService, Depends(get_advisor)],
) -> list[AdviceResult]:
    try:
        return await advisor.advise(
            req.transactions,
            personas=req.personas,
            question=req.question,
            options=req.options,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
