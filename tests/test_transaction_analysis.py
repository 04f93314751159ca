from datetime import datetime

from factories import make_transaction

from kita_advisor.analytics.transaction import analyze_transaction


def test_no_transaction() -> None:
    result = analyze_transaction(None)
    assert result.analysis == "No transaction provided"
    assert result.suggestions == []
    assert result.risk == "low"


def test_regular_transaction() -> None:
    result = analyze_transaction(make_transaction(120, category="Utilities"))
    assert result.analysis == "Regular transaction"
    assert result.risk == "low"
    assert result.amount == "₱120.00"
    assert result.date == "March 6, 2024"


def test_large_and_very_large_amounts() -> None:
    medium = analyze_transaction(make_transaction(1500, category="Shopping"))
    assert medium.risk == "medium"
    assert medium.analysis == "Large transaction amount"
    assert medium.suggestions == [
        "Consider if this expense is necessary",
        "Wait 24 hours before making non-essential purchases",
    ]

    high = analyze_transaction(make_transaction("-7,500.00", category="Travel"))
    assert high.risk == "high"
    assert high.analysis == "Large transaction amount, Very large transaction"
    assert high.amount == "₱7,500.00"


def test_weekend_and_category_tip() -> None:
    saturday = datetime(2024, 3, 9, 19, 30)
    result = analyze_transaction(make_transaction(80, category="Dining Out", date=saturday))
    assert result.analysis == "Weekend transaction"
    assert result.suggestions == ["Consider meal planning to reduce food expenses"]
