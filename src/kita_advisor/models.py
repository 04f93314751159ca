from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from kita_advisor.errors import ErrorKind


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class Transaction(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str | int | None = None
    # Kept as supplied; parsed to Decimal during aggregation
    amount: Decimal | int | float | str | None = None
    type: TransactionType = TransactionType.EXPENSE
    category: Optional[str] = None
    date: datetime


class CategoryTotals(BaseModel):
    total: Decimal = Decimal("0")
    count: int = 0
    type: TransactionType = TransactionType.EXPENSE


class FinancialSummary(BaseModel):
    total_income: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    net_savings: Decimal = Decimal("0")
    category_breakdown: dict[str, CategoryTotals] = Field(default_factory=dict)
    transaction_count: int = 0


class TransactionInsights(BaseModel):
    summary: FinancialSummary
    insights: list[str]
    trends: list[str]


class CategoryPrediction(BaseModel):
    category: str
    predicted_amount: Decimal
    confidence: float  # 0 to 100, density heuristic


class ForecastResult(BaseModel):
    predictions: list[CategoryPrediction] = Field(default_factory=list)
    expected_spending: Decimal = Decimal("0")
    expected_income: Decimal = Decimal("0")
    net_prediction: Decimal = Decimal("0")
    confidence_percent: float = 0.0
    period: str = ""


class TransactionAnalysis(BaseModel):
    analysis: str
    suggestions: list[str] = Field(default_factory=list)
    risk: Literal["low", "medium", "high"] = "low"
    amount: Optional[str] = None
    date: Optional[str] = None


class GenerationOptions(BaseModel):
    max_output_tokens: int = Field(default=2048, ge=1)
    temperature: float = Field(default=0.5, ge=0.0, le=2.0)
    top_p: float = Field(default=0.95, ge=0.0, le=1.0)
    top_k: int = Field(default=40, ge=1)


class AdviceResult(BaseModel):
    persona: str
    text: Optional[str] = None
    data: Optional[Any] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class AnalyticsReport(BaseModel):
    insights: TransactionInsights
    recommendations: list[str]
    forecast: ForecastResult
