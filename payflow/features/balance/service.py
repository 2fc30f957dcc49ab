"""Single owner of the wallet balance and the recent transaction history."""

from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Protocol

from payflow.models import TransactionRecord, UserProfile, WalletBalance
from payflow.shared.errors import BalanceInvariantError
from payflow.shared.logging import get_logger

logger = get_logger(__name__)

BalanceListener = Callable[[WalletBalance], None]


class ProfileSourceProtocol(Protocol):
    def get_profile(self) -> UserProfile: ...
    def get_transactions(self) -> list[dict[str, Any]]: ...


@dataclass
class BalanceHold:
    """Optimistic debit for one draft; released exactly once."""

    hold_id: int
    amount: Decimal
    fee: Decimal
    released: bool = field(default=False, compare=False)

    @property
    def total(self) -> Decimal:
        return self.amount + self.fee


class BalanceReconciler:
    """All balance mutations go through here; other readers subscribe."""

    def __init__(
        self,
        initial: WalletBalance | None = None,
        history_limit: int = 50,
    ):
        self._balance = initial or WalletBalance()
        self._history: list[TransactionRecord] = []
        self._history_limit = history_limit
        self._holds: dict[int, BalanceHold] = {}
        self._hold_ids = itertools.count(1)
        self._listeners: list[BalanceListener] = []
        self._lock = threading.RLock()

    @property
    def balance(self) -> WalletBalance:
        with self._lock:
            return self._balance

    @property
    def history(self) -> list[TransactionRecord]:
        with self._lock:
            return list(self._history)

    @property
    def open_holds(self) -> int:
        with self._lock:
            return len(self._holds)

    def subscribe(self, listener: BalanceListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, snapshot: WalletBalance) -> None:
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error("Error in balance listener: %s", e)

    def _set_balance(self, available: Decimal, pending: Decimal) -> WalletBalance:
        if pending < 0:
            raise BalanceInvariantError(f"Pending balance would become negative: {pending}")
        self._balance = WalletBalance(available=available, pending=pending)
        return self._balance

    def apply_optimistic(self, amount: Decimal, fee: Decimal) -> BalanceHold:
        if amount <= 0 or fee < 0:
            raise BalanceInvariantError("Hold amount must be positive and fee non-negative")
        with self._lock:
            hold = BalanceHold(hold_id=next(self._hold_ids), amount=amount, fee=fee)
            snapshot = self._set_balance(
                self._balance.available, self._balance.pending + hold.total
            )
            self._holds[hold.hold_id] = hold
        logger.debug("Applied hold %d of %s", hold.hold_id, hold.total)
        self._notify(snapshot)
        return hold

    def _release(self, hold: BalanceHold) -> None:
        if hold.released or hold.hold_id not in self._holds:
            raise BalanceInvariantError(f"Hold {hold.hold_id} was already released")
        hold.released = True
        del self._holds[hold.hold_id]

    def confirm(self, hold: BalanceHold, record: TransactionRecord) -> WalletBalance:
        with self._lock:
            self._release(hold)
            snapshot = self._set_balance(
                self._balance.available - hold.total,
                self._balance.pending - hold.total,
            )
            self._prepend_history(record)
        logger.info("Confirmed hold %d; available now %s", hold.hold_id, snapshot.available)
        self._notify(snapshot)
        return snapshot

    def rollback(self, hold: BalanceHold) -> WalletBalance:
        with self._lock:
            self._release(hold)
            snapshot = self._set_balance(
                self._balance.available,
                self._balance.pending - hold.total,
            )
        logger.info("Rolled back hold %d of %s", hold.hold_id, hold.total)
        self._notify(snapshot)
        return snapshot

    def _prepend_history(self, record: TransactionRecord) -> None:
        if record.reference:
            self._history = [
                existing
                for existing in self._history
                if existing.reference != record.reference
            ]
        self._history.insert(0, record)
        del self._history[self._history_limit:]

    def set_available(self, available: Decimal) -> WalletBalance:
        with self._lock:
            snapshot = self._set_balance(available, self._balance.pending)
        self._notify(snapshot)
        return snapshot

    def refresh(self, source: ProfileSourceProtocol) -> WalletBalance:
        """Reload the authoritative balance and history from the server."""
        profile = source.get_profile()
        entries = source.get_transactions()
        records = [TransactionRecord.from_history_entry(entry) for entry in entries]
        records.sort(key=lambda record: record.created_at, reverse=True)
        with self._lock:
            snapshot = self._set_balance(profile.balance, self._balance.pending)
            self._history = records[: self._history_limit]
        logger.info("Balance refreshed from server: %s", snapshot.available)
        self._notify(snapshot)
        return snapshot
