from collections.abc import Sequence
from decimal import Decimal

from kita_advisor.analytics.summary import ranked_categories, summarize
from kita_advisor.domain.amounts import ZERO, parse_amount, percent_of
from kita_advisor.domain.formatting import DEFAULT_CURRENCY, format_currency
from kita_advisor.models import FinancialSummary, Transaction, TransactionInsights, TransactionType

NO_TRANSACTIONS_INSIGHT = "No transactions to analyze"
NO_TRANSACTIONS_RECOMMENDATION = "Start tracking your transactions to get personalized recommendations"
DEFAULT_RECOMMENDATION = "Keep tracking your expenses to identify improvement opportunities"
SMALL_EXPENSES_RECOMMENDATION = (
    "Many small expenses can add up - consider consolidating purchases "
    "or setting a daily spending limit"
)
SAVINGS_RATE_RECOMMENDATION = "Try to save at least 20% of your income for financial security"
RECENT_SPENDING_TREND = "High spending activity in recent transactions"


class InsightEngine:
    """
    Turns a summary (or the raw transactions behind it) into plain-language
    insights, trend flags and recommendations. Output order is stable so the
    messages can be asserted on directly.
    """

    TOP_CATEGORY_SHARE = Decimal("0.3")
    SMALL_EXPENSE_LIMIT = Decimal("50")
    SMALL_EXPENSE_SHARE = Decimal("0.5")
    SAVINGS_RATE_TARGET = Decimal("0.2")
    RECENT_WINDOW = 7
    RECENT_SPENDING_SHARE = Decimal("0.3")

    def __init__(self, currency: str = DEFAULT_CURRENCY) -> None:
        self.currency = currency

    def _money(self, amount: Decimal) -> str:
        return format_currency(amount, self.currency)

    def insights_for(self, summary: FinancialSummary) -> list[str]:
        if summary.transaction_count == 0:
            return [NO_TRANSACTIONS_INSIGHT]

        insights: list[str] = []
        ranked = ranked_categories(summary)
        if ranked:
            name, totals = ranked[0]
            insights.append(f"Your top spending category is {name} with {self._money(totals.total)}")
            if totals.total > summary.total_expenses * self.TOP_CATEGORY_SHARE:
                share = percent_of(totals.total, summary.total_expenses)
                insights.append(f"{name} accounts for {share}% of your total expenses")

        # Zero net flow is reported on the positive path
        if summary.net_savings >= 0:
            insights.append(f"Great! You have a positive cash flow of {self._money(summary.net_savings)}")
        else:
            insights.append(f"You're spending {self._money(abs(summary.net_savings))} more than you earn")
        return insights

    def trends_for(
        self,
        transactions: Sequence[Transaction],
        summary: FinancialSummary | None = None,
    ) -> list[str]:
        if len(transactions) < self.RECENT_WINDOW:
            return []
        if summary is None:
            summary = summarize(transactions)

        recent_spending = sum(
            (
                abs(parse_amount(t.amount))
                for t in transactions[-self.RECENT_WINDOW:]
                if t.type != TransactionType.INCOME
            ),
            ZERO,
        )
        trends: list[str] = []
        if recent_spending > summary.total_expenses * self.RECENT_SPENDING_SHARE:
            trends.append(RECENT_SPENDING_TREND)
        return trends

    def recommendations_for(self, transactions: Sequence[Transaction]) -> list[str]:
        if not transactions:
            return [NO_TRANSACTIONS_RECOMMENDATION]

        summary = summarize(transactions)
        recommendations: list[str] = []

        ranked = ranked_categories(summary)
        if ranked:
            name, totals = ranked[0]
            if totals.total > summary.total_expenses * self.TOP_CATEGORY_SHARE:
                share = percent_of(totals.total, summary.total_expenses)
                recommendations.append(
                    f"Consider reducing spending on {name} - it represents {share}% of your total expenses"
                )

        small_expenses = [
            t for t in transactions
            if t.type != TransactionType.INCOME
            and abs(parse_amount(t.amount)) < self.SMALL_EXPENSE_LIMIT
        ]
        if len(small_expenses) > len(transactions) * self.SMALL_EXPENSE_SHARE:
            recommendations.append(SMALL_EXPENSES_RECOMMENDATION)

        if summary.net_savings < summary.total_income * self.SAVINGS_RATE_TARGET:
            recommendations.append(SAVINGS_RATE_RECOMMENDATION)

        return recommendations or [DEFAULT_RECOMMENDATION]

    def analyze(self, transactions: Sequence[Transaction]) -> TransactionInsights:
        summary = summarize(transactions)
        return TransactionInsights(
            summary=summary,
            insights=self.insights_for(summary),
            trends=self.trends_for(transactions, summary),
        )
