"""Recipient resolution for transfers and bank withdrawals."""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any, Callable, Protocol

from payflow.models import Recipient, RecipientKind, TransactionCategory
from payflow.shared.errors import RecipientNotFound, classify_network_error
from payflow.shared.logging import get_logger, mask_account_number
from payflow.shared.network import NetworkError
from payflow.shared.validation import (
    STORE_CODE_PATTERN,
    AccountNumberValidator,
    RecipientIdentifierValidator,
)

logger = get_logger(__name__)


class AccountLookupProtocol(Protocol):
    def resolve_account(self, account_number: str, bank_code: str) -> dict[str, Any]: ...


class RecipientResolver:
    """Turns a user-entered identifier into a ``Recipient``.

    Email and store-code recipients are treated as already resolved. Bank
    accounts go through a blocking account-resolution call whose result is
    cached per (account_number, bank_code) for the session.
    """

    def __init__(
        self,
        ledger: AccountLookupProtocol,
        clock: Callable[[], datetime] | None = None,
    ):
        self.ledger = ledger
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._bank_cache: dict[tuple[str, str], Recipient] = {}
        self._lock = threading.Lock()

    def clear(self) -> None:
        with self._lock:
            self._bank_cache.clear()

    def resolve(
        self,
        identifier: str,
        category: TransactionCategory,
        bank_code: str | None = None,
        bank_name: str | None = None,
    ) -> Recipient:
        if category is TransactionCategory.WITHDRAWAL:
            return self.resolve_bank_account(identifier, bank_code or "", bank_name)
        return self._resolve_direct(identifier)

    def _resolve_direct(self, identifier: str) -> Recipient:
        result = RecipientIdentifierValidator.validate(identifier)
        if not result.is_valid:
            raise RecipientNotFound(result.error_message)

        normalized = result.normalized_value
        kind = RecipientKind.STORE if STORE_CODE_PATTERN.match(normalized) else RecipientKind.USER
        return Recipient(
            identifier=normalized,
            display_name=normalized,
            resolved_account_ref=normalized,
            kind=kind,
        )

    def resolve_bank_account(
        self,
        account_number: str,
        bank_code: str,
        bank_name: str | None = None,
    ) -> Recipient:
        result = AccountNumberValidator.validate(account_number)
        if not result.is_valid:
            raise RecipientNotFound(result.error_message)
        if not bank_code or not bank_code.strip():
            raise RecipientNotFound("Bank code not found. Please reselect your bank.")

        normalized = result.normalized_value
        key = (normalized, bank_code.strip())

        with self._lock:
            cached = self._bank_cache.get(key)
        if cached is not None:
            return cached

        try:
            data = self.ledger.resolve_account(normalized, key[1])
        except NetworkError as e:
            logger.warning(
                "Account resolution failed for %s: %s",
                mask_account_number(normalized),
                e.message,
            )
            error = classify_network_error(e)
            if e.status_code is not None and 400 <= e.status_code < 500:
                raise RecipientNotFound(
                    e.server_message
                    or "Failed to verify account. Please check account number and try again."
                ) from e
            raise error from e

        payload = data if isinstance(data, dict) else {}
        if isinstance(payload.get("data"), dict):
            payload = payload["data"]
        account_name = str(payload.get("account_name") or "").strip()
        if not account_name:
            raise RecipientNotFound(
                "Failed to verify account. Please check account number and try again."
            )

        recipient = Recipient(
            identifier=normalized,
            display_name=account_name,
            resolved_account_ref=normalized,
            kind=RecipientKind.BANK_ACCOUNT,
            bank_code=key[1],
            bank_name=bank_name,
            resolved_at=self._clock(),
        )
        with self._lock:
            self._bank_cache[key] = recipient
        logger.info(
            "Resolved account %s to %s", mask_account_number(normalized), account_name
        )
        return recipient

    def is_stale(self, recipient: Recipient, attempt_started_at: datetime) -> bool:
        """Bank resolutions made before the current attempt must be re-verified."""
        if recipient.kind is not RecipientKind.BANK_ACCOUNT:
            return False
        if recipient.resolved_at is None:
            return True
        return recipient.resolved_at < attempt_started_at

    def reverify(self, recipient: Recipient) -> Recipient:
        with self._lock:
            self._bank_cache.pop((recipient.resolved_account_ref, recipient.bank_code or ""), None)
        return self.resolve_bank_account(
            recipient.resolved_account_ref, recipient.bank_code or "", recipient.bank_name
        )
