"""Fee lookup against the server-maintained charge directory."""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Protocol

from payflow.config import FeePolicy, PayflowConfig
from payflow.models import FeeSchedule, TransactionCategory, WithdrawalQuote, to_money
from payflow.shared.errors import FeeLookupError, classify_network_error
from payflow.shared.logging import get_logger
from payflow.shared.network import NetworkError

logger = get_logger(__name__)


class ChargeSourceProtocol(Protocol):
    def get_charges(self) -> object: ...
    def validate_withdrawal(self, amount: Decimal) -> dict: ...


class FeeResolver:
    """Resolves the fee for a category from a session-cached fee schedule.

    When no active charge matches a category the fee is zero under
    ``FeePolicy.FAIL_OPEN`` and a ``FeeLookupError`` under
    ``FeePolicy.FAIL_CLOSED``.
    """

    def __init__(
        self,
        ledger: ChargeSourceProtocol,
        config: PayflowConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.ledger = ledger
        self.config = config or PayflowConfig()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._schedule: FeeSchedule | None = None
        self._lock = threading.Lock()

    def invalidate(self) -> None:
        with self._lock:
            self._schedule = None
        logger.debug("Fee schedule cache invalidated")

    def schedule(self) -> FeeSchedule:
        with self._lock:
            now = self._clock()
            if self._schedule is not None and not self._schedule.is_stale(
                self.config.fee_cache_ttl, now
            ):
                return self._schedule

            try:
                charges = self.ledger.get_charges()
            except NetworkError as e:
                logger.error("Failed to fetch fee schedule: %s", e.message)
                raise FeeLookupError(classify_network_error(e).message) from e

            schedule = FeeSchedule.from_api_response(charges)
            schedule.fetched_at = now
            self._schedule = schedule
            logger.info(
                "Fee schedule loaded with %d categories", len(schedule.entries)
            )
            return schedule

    def resolve_fee(self, category: TransactionCategory) -> Decimal:
        fee = self.schedule().active_fee(category)
        if fee is not None:
            return fee

        if self.config.fee_policy is FeePolicy.FAIL_CLOSED:
            raise FeeLookupError(f"No active {category.charge_keyword} charge configured")

        logger.warning(
            "No active %s charge found; applying zero fee (fail-open policy)",
            category.charge_keyword,
        )
        return Decimal("0")

    def preview_withdrawal(self, amount: Decimal) -> WithdrawalQuote:
        """Ask the server for the authoritative withdrawal charge."""
        try:
            data = self.ledger.validate_withdrawal(amount)
        except NetworkError as e:
            logger.error("Withdrawal fee preview failed: %s", e.message)
            raise classify_network_error(e) from e

        data = data.get("data", data) if isinstance(data, dict) else {}
        try:
            quoted_amount = to_money(data.get("amount") or amount)
            charge = to_money(data.get("charge") or 0)
        except ValueError as e:
            logger.error("Unreadable withdrawal quote: %s", data)
            raise FeeLookupError(str(e)) from e
        return WithdrawalQuote(amount=quoted_amount, charge=charge)
