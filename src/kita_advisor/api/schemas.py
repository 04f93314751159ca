from pydantic import BaseModel, Field

from kita_advisor.models import GenerationOptions, Transaction


class TransactionsRequest(BaseModel):
    transactions: list[Transaction] = Field(default_factory=list)


class ForecastRequest(TransactionsRequest):
    days_ahead: int = Field(default=30, ge=0, le=3650)


class TransactionRequest(BaseModel):
    transaction: Transaction | None = None


class AdviceRequest(TransactionsRequest):
    personas: list[str] | None = None
    question: str | None = Field(default=None, max_length=2000)
    options: GenerationOptions | None = None


class HealthResponse(BaseModel):
    status: str
    ai_configured: bool
    model: str | None = None
    rate_limit_max_requests: int | None = None
    rate_limit_window_seconds: float | None = None
    rate_limit_in_window: int | None = None
    seconds_until_reset: float | None = None
