import threading
from typing import Dict, Mapping, Optional, Tuple

from errors import InsufficientFundsError, InvalidAmountError


class Ledger:
    """In-memory account balances guarded by a single lock.

    Every read and write of the balance mapping happens while ``_lock`` is
    held. Critical sections only touch the mapping: no logging, no I/O.
    """

    def __init__(self, seed: Optional[Mapping[str, float]] = None):
        self._balances: Dict[str, float] = {
            account: float(balance) for account, balance in (seed or {}).items()
        }
        self._lock = threading.Lock()

    def get_balance(self, account: str) -> Tuple[float, bool]:
        """Return ``(balance, found)``. Absent accounts yield ``(0.0, False)``."""
        with self._lock:
            if account in self._balances:
                return self._balances[account], True
        return 0.0, False

    def transfer(self, source: str, destination: str, amount: float) -> None:
        """Move ``amount`` from ``source`` to ``destination`` atomically.

        An absent source counts as a zero balance; an absent destination is
        created. Raises InvalidAmountError or InsufficientFundsError without
        touching the mapping.
        """
        # "not >" also rejects NaN
        if not amount > 0:
            raise InvalidAmountError(amount)

        with self._lock:
            available = self._balances.get(source, 0.0)
            if available < amount:
                raise InsufficientFundsError(source, available, amount)
            if source == destination:
                return
            self._balances[source] = available - amount
            self._balances[destination] = self._balances.get(destination, 0.0) + amount

    def snapshot(self) -> Dict[str, float]:
        """Copy of the balance mapping taken under the lock."""
        with self._lock:
            return dict(self._balances)

    def accounts_count(self) -> int:
        with self._lock:
            return len(self._balances)

    def total_balance(self) -> float:
        with self._lock:
            return sum(self._balances.values())
