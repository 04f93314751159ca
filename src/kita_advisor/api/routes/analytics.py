from typing import Annotated

from fastapi import APIRouter, Depends, Query

from kita_advisor.analytics.forecast import forecast
from kita_advisor.analytics.summary import summarize
from kita_advisor.analytics.transaction import analyze_transaction
from kita_advisor.api.dependencies import get_advisor
from kita_advisor.api.schemas import ForecastRequest, TransactionRequest, TransactionsRequest
from kita_advisor.models import (
    AnalyticsReport,
    FinancialSummary,
    ForecastResult,
    TransactionAnalysis,
    TransactionInsights,
)
from kita_advisor.services.advisor import AdvisorService

router = APIRouter()


@router.post("/analytics/summary", response_model=FinancialSummary)
async def summary(req: TransactionsRequest) -> FinancialSummary:
    return summarize(req.transactions)


@router.post("/analytics/insights", response_model=TransactionInsights)
async def insights(
    req: TransactionsRequest,
    advisor: Annotated[AdvisorService, Depends(get_advisor)],
) -> TransactionInsights:
    return advisor.engine.analyze(req.transactions)


@router.post("/analytics/recommendations")
async def recommendations(
    req: TransactionsRequest,
    advisor: Annotated[AdvisorService, Depends(get_advisor)],
) -> list[str]:
    return advisor.engine.recommendations_for(req.transactions)


@router.post("/analytics/forecast", response_model=ForecastResult)
async def forecast_transactions(req: ForecastRequest) -> ForecastResult:
    return forecast(req.transactions, req.days_ahead)


@router.post("/analytics/transaction", response_model=TransactionAnalysis)
async def transaction_analysis(req: TransactionRequest) -> TransactionAnalysis:
    return analyze_transaction(req.transaction)


@router.get("/users/{user_id}/analytics", response_model=AnalyticsReport)
async def user_analytics(
    user_id: str,
    advisor: Annotated[AdvisorService, Depends(get_advisor)],
    days_ahead: Annotated[int, Query(ge=0, le=3650)] = 30,
) -> AnalyticsReport:
    return await advisor.analytics(user_id, days_ahead)
