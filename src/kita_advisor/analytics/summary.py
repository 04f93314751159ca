from collections.abc import Iterable

from kita_advisor.domain.amounts import ZERO, parse_amount
from kita_advisor.models import CategoryTotals, FinancialSummary, Transaction, TransactionType

DEFAULT_CATEGORY = "Other"


def category_of(transaction: Transaction) -> str:
    return transaction.category or DEFAULT_CATEGORY


def summarize(transactions: Iterable[Transaction]) -> FinancialSummary:
    """
    Reduce transactions to income/expense totals and an expense breakdown.

    Income adds its absolute value to ``total_income``. Every other
    transaction is an expense and adds its absolute value both to
    ``total_expenses`` and to its category bucket. Buckets keep the order in
    which categories are first seen.
    """
    total_income = ZERO
    total_expenses = ZERO
    breakdown: dict[str, CategoryTotals] = {}
    count = 0

    for transaction in transactions:
        count += 1
        amount = abs(parse_amount(transaction.amount))
        if transaction.type == TransactionType.INCOME:
            total_income += amount
            continue

        total_expenses += amount
        category = category_of(transaction)
        bucket = breakdown.get(category)
        if bucket is None:
            bucket = CategoryTotals(type=TransactionType.EXPENSE)
            breakdown[category] = bucket
        bucket.total += amount
        bucket.count += 1

    return FinancialSummary(
        total_income=total_income,
        total_expenses=total_expenses,
        net_savings=total_income - total_expenses,
        category_breakdown=breakdown,
        transaction_count=count,
    )


def ranked_categories(summary: FinancialSummary) -> list[tuple[str, CategoryTotals]]:
    """Expense categories by descending total; ties keep first-seen order."""
    expense_buckets = [
        (name, totals)
        for name, totals in summary.category_breakdown.items()
        if totals.type == TransactionType.EXPENSE
    ]
    return sorted(expense_buckets, key=lambda item: item[1].total, reverse=True)
