from kita_advisor.domain.amounts import parse_amount
from kita_advisor.domain.formatting import format_currency, format_date
from kita_advisor.models import Transaction, TransactionAnalysis

LARGE_AMOUNT = 1000
VERY_LARGE_AMOUNT = 5000

_CATEGORY_TIPS = (
    (("food", "dining"), "Consider meal planning to reduce food expenses"),
    (("entertainment",), "Look for free or low-cost entertainment alternatives"),
    (("shopping",), "Wait 24 hours before making non-essential purchases"),
)


def analyze_transaction(transaction: Transaction | None) -> TransactionAnalysis:
    if transaction is None:
        return TransactionAnalysis(analysis="No transaction provided")

    amount = abs(parse_amount(transaction.amount))
    flags: list[str] = []
    suggestions: list[str] = []
    risk = "low"

    if amount > LARGE_AMOUNT:
        flags.append("Large transaction amount")
        suggestions.append("Consider if this expense is necessary")
        risk = "medium"

    if amount > VERY_LARGE_AMOUNT:
        flags.append("Very large transaction")
        suggestions.append("Review this expense carefully")
        risk = "high"

    category = (transaction.category or "").lower()
    for keywords, tip in _CATEGORY_TIPS:
        if any(keyword in category for keyword in keywords):
            suggestions.append(tip)
            break

    # Saturday/Sunday
    if transaction.date.weekday() >= 5:
        flags.append("Weekend transaction")

    return TransactionAnalysis(
        analysis=", ".join(flags) or "Regular transaction",
        suggestions=suggestions,
        risk=risk,
        amount=format_currency(amount),
        date=format_date(transaction.date),
    )
