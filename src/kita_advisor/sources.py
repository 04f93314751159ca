from collections.abc import Iterable, Sequence
from typing import Protocol

from kita_advisor.models import Transaction


class TransactionSource(Protocol):
    async def list_transactions(self, user_id: str) -> Sequence[Transaction]:
        """Return the user's transactions in their stored order."""
        ...


class InMemoryTransactionSource:
    def __init__(self, transactions: dict[str, Iterable[Transaction]] | None = None):
        self._transactions: dict[str, list[Transaction]] = {
            user_id: list(items) for user_id, items in (transactions or {}).items()
        }

    def add(self, user_id: str, transaction: Transaction) -> None:
        self._transactions.setdefault(user_id, []).append(transaction)

    async def list_transactions(self, user_id: str) -> Sequence[Transaction]:
        # Copies, so callers cannot mutate the stored list
        return list(self._transactions.get(user_id, []))
