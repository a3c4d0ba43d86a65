import logging
import threading
from typing import Optional

from .exceptions import InsufficientFunds
from .store import MemorySnapshot

logger = logging.getLogger(__name__)


class PointsAccount:
    """Non-negative integer balances keyed by user id, persisted as one snapshot."""

    def __init__(self, snapshot=None, lock: Optional[threading.RLock] = None):
        self.snapshot = snapshot or MemorySnapshot(default=dict)
        self.lock = lock or threading.RLock()
        with self.lock:
            self._balances = {
                user_id: value for user_id, value in self.snapshot.load().items()
                if isinstance(value, int) and value >= 0
            }

    def balance(self, user_id: str) -> int:
        with self.lock:
            return self._balances.get(user_id, 0)

    def credit(self, user_id: str, amount: int) -> int:
        _check_amount(amount)
        with self.lock:
            new_balance = self.balance(user_id) + amount
            self._set(user_id, new_balance)
            return new_balance

    def debit(self, user_id: str, amount: int) -> int:
        _check_amount(amount)
        with self.lock:
            current = self.balance(user_id)
            if amount > current:
                raise InsufficientFunds(user_id, current, amount)
            self._set(user_id, current - amount)
            return current - amount

    def _set(self, user_id: str, balance: int) -> None:
        balances = dict(self._balances)
        balances[user_id] = balance
        self.snapshot.save(balances)
        self._balances = balances


def _check_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise ValueError(f"Amount must be a non-negative integer, got {amount!r}")
