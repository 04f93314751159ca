"""
Naive spending/income projection from historical daily averages.

The baseline is ``max(30, len(transactions))`` days regardless of the actual
date span, so short dense histories are under-estimated. Confidence values
are record-density heuristics capped at 95 (per category) and 90 (overall);
they are not probabilities and are only meaningful relative to each other.
"""

from collections.abc import Sequence
from decimal import Decimal

from kita_advisor.analytics.summary import summarize
from kita_advisor.models import CategoryPrediction, ForecastResult, Transaction

MIN_BASELINE_DAYS = 30
MAX_CATEGORY_CONFIDENCE = 95.0
MAX_OVERALL_CONFIDENCE = 90.0


def baseline_days(transaction_count: int) -> int:
    return max(MIN_BASELINE_DAYS, transaction_count)


def _project(total: Decimal, baseline: int, days_ahead: int) -> Decimal:
    return total * days_ahead / baseline


def forecast(transactions: Sequence[Transaction], days_ahead: int = 30) -> ForecastResult:
    if days_ahead < 0:
        raise ValueError("days_ahead must not be negative")

    period = f"{days_ahead} days"
    if not transactions:
        return ForecastResult(period=period)

    summary = summarize(transactions)
    baseline = baseline_days(summary.transaction_count)

    predictions = [
        CategoryPrediction(
            category=name,
            predicted_amount=_project(totals.total, baseline, days_ahead),
            confidence=min(MAX_CATEGORY_CONFIDENCE, totals.count / baseline * 100),
        )
        for name, totals in summary.category_breakdown.items()
    ]

    expected_spending = _project(summary.total_expenses, baseline, days_ahead)
    expected_income = _project(summary.total_income, baseline, days_ahead)

    return ForecastResult(
        predictions=predictions,
        expected_spending=expected_spending,
        expected_income=expected_income,
        net_prediction=expected_income - expected_spending,
        confidence_percent=min(
            MAX_OVERALL_CONFIDENCE,
            summary.transaction_count / MIN_BASELINE_DAYS * 100,
        ),
        period=period,
    )
