"""Network submission of transfer and withdrawal requests."""

from __future__ import annotations

import threading
from typing import Any, Protocol

from payflow.models import (
    TransactionCategory,
    TransactionRecord,
    TransactionStatus,
    TransferRequest,
)
from payflow.shared.errors import AlreadyInFlight, ServerError, classify_network_error
from payflow.shared.logging import get_logger
from payflow.shared.network import NetworkError

logger = get_logger(__name__)


class SubmissionLedgerProtocol(Protocol):
    def transfer(
        self,
        receiver_email: str,
        amount: Any,
        pin: str,
        description: str,
        idempotency_key: str,
    ) -> dict[str, Any]: ...

    def withdraw(
        self,
        amount: Any,
        pin: str,
        account_name: str,
        account_number: str,
        bank_code: str,
        description: str,
        idempotency_key: str,
    ) -> dict[str, Any]: ...


class TransactionSubmitter:
    """Submits requests with single-flight protection per recipient.

    Records are remembered by idempotency key, so resubmitting a request
    that already settled returns the same record without a network call.
    """

    TRANSFER_SUCCESS_MESSAGE = "transfer successful"

    def __init__(self, ledger: SubmissionLedgerProtocol):
        self.ledger = ledger
        self._in_flight: set[str] = set()
        self._settled: dict[str, TransactionRecord] = {}
        self._lock = threading.Lock()

    def in_flight(self, recipient_key: str) -> bool:
        with self._lock:
            return recipient_key in self._in_flight

    def settled_record(self, idempotency_key: str) -> TransactionRecord | None:
        with self._lock:
            return self._settled.get(idempotency_key)

    def _acquire(self, request: TransferRequest) -> TransactionRecord | None:
        key = request.recipient.single_flight_key
        with self._lock:
            settled = self._settled.get(request.idempotency_key)
            if settled is not None:
                return settled
            if key in self._in_flight:
                raise AlreadyInFlight()
            self._in_flight.add(key)
        return None

    def _release(self, request: TransferRequest) -> None:
        with self._lock:
            self._in_flight.discard(request.recipient.single_flight_key)

    def submit(self, request: TransferRequest) -> TransactionRecord:
        settled = self._acquire(request)
        if settled is not None:
            logger.info("Request already settled; returning recorded result")
            return settled

        try:
            if request.category is TransactionCategory.WITHDRAWAL:
                record = self._submit_withdrawal(request)
            else:
                record = self._submit_transfer(request)
        except NetworkError as e:
            error = classify_network_error(e)
            logger.warning(
                "%s submission failed (%s): %s",
                request.category.value,
                error.kind.value,
                e.message,
            )
            raise error from e
        finally:
            self._release(request)

        with self._lock:
            self._settled[request.idempotency_key] = record
        logger.info(
            "%s settled with reference %s (%s)",
            request.category.value,
            record.reference,
            record.status.value,
        )
        return record

    def _submit_transfer(self, request: TransferRequest) -> TransactionRecord:
        response = self.ledger.transfer(
            receiver_email=request.recipient.resolved_account_ref,
            amount=request.amount,
            pin=request.secret.reveal(),
            description=request.note,
            idempotency_key=request.idempotency_key,
        )
        message = str(response.get("message", ""))
        transaction = response.get("transaction")
        if transaction is None and message.lower() != self.TRANSFER_SUCCESS_MESSAGE:
            raise ServerError(message or "Transfer failed")

        return self._build_record(request, transaction or {}, TransactionStatus.COMPLETED)

    def _submit_withdrawal(self, request: TransferRequest) -> TransactionRecord:
        response = self.ledger.withdraw(
            amount=request.amount,
            pin=request.secret.reveal(),
            account_name=request.recipient.display_name,
            account_number=request.recipient.resolved_account_ref,
            bank_code=request.recipient.bank_code or "",
            description=request.note,
            idempotency_key=request.idempotency_key,
        )
        transaction = response.get("transaction") or response.get("data") or {}
        # Withdrawals are paid out asynchronously unless the server says otherwise.
        return self._build_record(request, transaction, TransactionStatus.PENDING)

    @staticmethod
    def _build_record(
        request: TransferRequest,
        transaction: dict[str, Any],
        default_status: TransactionStatus,
    ) -> TransactionRecord:
        payload = dict(transaction)
        payload.setdefault("amount", str(request.amount))
        payload.setdefault("type", "debit")
        if not any(
            payload.get(name)
            for name in ("senderTransactionRef", "reference", "transactionRef", "_id")
        ):
            payload["reference"] = request.idempotency_key
        record = TransactionRecord.from_api_response(
            payload,
            category=request.category,
            counterparty_identifier=request.recipient.identifier,
            default_status=default_status,
        )
        if record.status is TransactionStatus.FAILED:
            raise ServerError("The server reported the transaction as failed")
        return record
