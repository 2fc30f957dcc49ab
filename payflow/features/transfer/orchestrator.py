"""Transaction lifecycle shared by every transfer and withdrawal flow.

One orchestrator drives one draft through

    DRAFT -> VALIDATED -> (RESOLVING) -> AWAITING_SECRET -> SUBMITTING
          -> SETTLED | FAILED

Local problems (bad amount, malformed PIN, wrong state) are raised as
``PayflowError`` subclasses and leave the state untouched. Outcomes of the
submission itself are reported through ``state``, ``failure`` and
``last_error`` so callers can render them.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Callable

from payflow.config import PayflowConfig
from payflow.features.balance.service import BalanceHold, BalanceReconciler
from payflow.features.fees.service import FeeResolver
from payflow.features.recipients.service import RecipientResolver
from payflow.features.secret_gate.service import BankDetails, SecretGate
from payflow.features.transfer.strategies import CategoryStrategy, DraftFields
from payflow.features.transfer.submitter import TransactionSubmitter
from payflow.features.transfer.validators import AmountValidator
from payflow.ledger import LedgerClient
from payflow.models import (
    Recipient,
    RecipientKind,
    SecretKind,
    TransactionCategory,
    TransactionRecord,
    TransferRequest,
    WalletBalance,
    new_idempotency_key,
)
from payflow.shared.errors import (
    AlreadyInFlight,
    ErrorKind,
    InsufficientBalance,
    InvalidSecret,
    InvalidTransition,
    PayflowError,
    ServerError,
    ValidationFailed,
)
from payflow.shared.logging import get_logger
from payflow.shared.network import NetworkError

logger = get_logger(__name__)


class TransactionState(Enum):
    DRAFT = "draft"
    RESOLVING = "resolving"
    VALIDATED = "validated"
    AWAITING_SECRET = "awaiting_secret"
    SUBMITTING = "submitting"
    SETTLED = "settled"
    FAILED = "failed"
    CANCELLED = "cancelled"


EDITABLE_STATES = (TransactionState.DRAFT, TransactionState.VALIDATED)
CANCELLABLE_STATES = (
    TransactionState.DRAFT,
    TransactionState.VALIDATED,
    TransactionState.AWAITING_SECRET,
)

StateListener = Callable[[TransactionState, TransactionState], None]
PinCreatedListener = Callable[[], None]


@dataclass(frozen=True)
class ReviewSummary:
    """Read-only view rendered back to the user before secret entry."""

    category: TransactionCategory
    recipient_identifier: str
    recipient_name: str
    amount: Decimal
    fee: Decimal
    note: str

    @property
    def total(self) -> Decimal:
        return self.amount + self.fee


@dataclass(frozen=True)
class FailureInfo:
    kind: ErrorKind
    message: str
    user_message: str
    retry_allowed: bool

    @classmethod
    def from_error(cls, error: PayflowError) -> "FailureInfo":
        return cls(
            kind=error.kind,
            message=error.message,
            user_message=error.user_message,
            retry_allowed=error.retryable,
        )


class TransactionOrchestrator:
    def __init__(
        self,
        strategy: CategoryStrategy,
        ledger: LedgerClient,
        reconciler: BalanceReconciler,
        fee_resolver: FeeResolver | None = None,
        recipient_resolver: RecipientResolver | None = None,
        submitter: TransactionSubmitter | None = None,
        config: PayflowConfig | None = None,
        sender_account_id: str = "",
        pin_is_set: bool = True,
        on_state_change: StateListener | None = None,
        on_pin_created: PinCreatedListener | None = None,
    ):
        self.strategy = strategy
        self.ledger = ledger
        self.reconciler = reconciler
        self.config = config or PayflowConfig()
        self.fee_resolver = fee_resolver or FeeResolver(ledger, self.config)
        self.recipient_resolver = recipient_resolver or RecipientResolver(ledger)
        self.submitter = submitter or TransactionSubmitter(ledger)
        self.sender_account_id = sender_account_id
        self.pin_is_set = pin_is_set
        self.on_state_change = on_state_change
        self.on_pin_created = on_pin_created

        self.fields = DraftFields()
        self._state = TransactionState.DRAFT
        self._lock = threading.RLock()
        self._idempotency_key = new_idempotency_key()
        self._attempt_started_at = datetime.now(timezone.utc)
        self._amount: Decimal | None = None
        self._fee: Decimal | None = None
        self._recipient: Recipient | None = None
        self._gate: SecretGate | None = None
        self._hold: BalanceHold | None = None
        self.record: TransactionRecord | None = None
        self.failure: FailureInfo | None = None
        self.last_error: PayflowError | None = None

    @property
    def state(self) -> TransactionState:
        return self._state

    @property
    def category(self) -> TransactionCategory:
        return self.strategy.category

    @property
    def idempotency_key(self) -> str:
        return self._idempotency_key

    @property
    def gate(self) -> SecretGate | None:
        return self._gate

    @property
    def recipient(self) -> Recipient | None:
        return self._recipient

    @property
    def retry_allowed(self) -> bool:
        return (
            self._state is TransactionState.FAILED
            and self.failure is not None
            and self.failure.retry_allowed
        )

    def _transition(self, new_state: TransactionState) -> None:
        old_state = self._state
        self._state = new_state
        logger.debug(
            "%s draft: %s -> %s", self.category.value, old_state.value, new_state.value
        )
        if old_state != new_state and self.on_state_change:
            try:
                self.on_state_change(old_state, new_state)
            except Exception as e:
                logger.error("Error in state change callback: %s", e)

    def _require(self, *states: TransactionState) -> None:
        if self._state not in states:
            raise InvalidTransition(
                f"Not allowed while {self._state.value}; expected "
                + ", ".join(state.value for state in states)
            )

    # Draft editing

    def _edit(self, **changes: str | None) -> None:
        with self._lock:
            self._require(*EDITABLE_STATES)
            for name, value in changes.items():
                setattr(self.fields, name, value)
            self._invalidate()

    def _invalidate(self) -> None:
        self._amount = None
        self._fee = None
        self._recipient = None
        self._gate = None
        self.last_error = None
        self._idempotency_key = new_idempotency_key()
        if self._state is not TransactionState.DRAFT:
            self._transition(TransactionState.DRAFT)

    def set_amount(self, amount: str) -> None:
        self._edit(amount=amount)

    def set_recipient(
        self,
        identifier: str,
        bank_code: str | None = None,
        bank_name: str | None = None,
    ) -> None:
        self._edit(recipient=identifier, bank_code=bank_code, bank_name=bank_name)

    def set_note(self, note: str) -> None:
        self._edit(note=note)

    # Validation

    def _spendable(self) -> WalletBalance:
        balance = self.reconciler.balance
        return WalletBalance(available=balance.spendable, pending=Decimal("0"))

    def _fail_validation(self, message: str | None, kind: ErrorKind | None) -> None:
        kind = kind or ErrorKind.INVALID_AMOUNT
        if kind is ErrorKind.INSUFFICIENT_BALANCE:
            error: PayflowError = InsufficientBalance(message)
        else:
            error = ValidationFailed(message, kind=kind)
        self.last_error = error
        raise error

    def validate(self) -> TransactionState:
        """Check amount, recipient and fee; no submission happens here."""
        with self._lock:
            self._require(TransactionState.DRAFT, TransactionState.VALIDATED)
            if self._state is TransactionState.VALIDATED:
                return self._state

            self.last_error = None
            self._attempt_started_at = datetime.now(timezone.utc)
            balance = self._spendable()
            minimum = self.strategy.minimum(self.config)

            # Checks that need no network come first.
            precheck = AmountValidator.validate(
                self.fields.amount, balance, Decimal("0"), minimum
            )
            if not precheck.is_valid:
                self._fail_validation(precheck.error_message, precheck.error_code)
            amount: Decimal = precheck.normalized_value

            if self.strategy.requires_resolution:
                self._transition(TransactionState.RESOLVING)
            try:
                recipient = self.strategy.resolve_recipient(
                    self.recipient_resolver, self.fields
                )
                fee = self.strategy.resolve_fee(self.fee_resolver, amount)
            except PayflowError as e:
                self.last_error = e
                self._transition(TransactionState.DRAFT)
                raise
            except Exception as e:
                logger.exception("Unexpected error resolving %s draft", self.category.value)
                error = ServerError(str(e) or None)
                self.last_error = error
                self._transition(TransactionState.DRAFT)
                raise error from e

            result = AmountValidator.validate(
                self.fields.amount, self._spendable(), fee, minimum
            )
            if not result.is_valid:
                self._transition(TransactionState.DRAFT)
                self._fail_validation(result.error_message, result.error_code)

            self._amount = amount
            self._fee = fee
            self._recipient = recipient
            self._transition(TransactionState.VALIDATED)
            logger.info(
                "%s draft validated: amount=%s fee=%s", self.category.value, amount, fee
            )
            return self._state

    def review(self) -> ReviewSummary:
        """Move to secret entry after re-checking the balance."""
        with self._lock:
            if self._state is TransactionState.DRAFT:
                self.validate()
            self._require(TransactionState.VALIDATED)
            try:
                self._recheck_before_secret()
            except InsufficientBalance:
                raise
            except PayflowError as e:
                self._invalidate()
                self.last_error = e
                raise

            assert self._recipient is not None
            self._gate = self._build_gate(self._recipient)
            self._transition(TransactionState.AWAITING_SECRET)
            return self.summary()

    def _recheck_before_secret(self) -> None:
        """Balance and bank resolution must still hold before every secret entry."""
        assert self._amount is not None and self._fee is not None
        assert self._recipient is not None

        check = AmountValidator.validate_against_balance(
            self._amount, self._fee, self._spendable()
        )
        if not check.is_valid:
            self._fail_validation(check.error_message, check.error_code)

        if self.recipient_resolver.is_stale(self._recipient, self._attempt_started_at):
            try:
                self._recipient = self.recipient_resolver.reverify(self._recipient)
            except PayflowError as e:
                self.last_error = e
                raise
            except Exception as e:
                logger.exception("Unexpected error re-verifying recipient")
                error = ServerError(str(e) or None)
                self.last_error = error
                raise error from e

    def _build_gate(self, recipient: Recipient) -> SecretGate:
        challenges = self.strategy.challenges()
        bank_details = None
        if recipient.kind is RecipientKind.BANK_ACCOUNT:
            bank_details = BankDetails.from_recipient(recipient)
        return SecretGate(
            self.ledger,
            challenges=challenges,
            otp_length=self.config.otp_length,
            pin_is_set=self.pin_is_set,
            bank_details=bank_details,
        )

    def summary(self) -> ReviewSummary:
        if self._amount is None or self._fee is None or self._recipient is None:
            raise InvalidTransition("Draft has not been validated")
        return ReviewSummary(
            category=self.category,
            recipient_identifier=self._recipient.identifier,
            recipient_name=self._recipient.display_name,
            amount=self._amount,
            fee=self._fee,
            note=self.fields.note,
        )

    # Secret entry

    def create_pin(self, pin: str) -> None:
        with self._lock:
            self._require(TransactionState.AWAITING_SECRET)
            assert self._gate is not None
            self._gate.create_pin(pin)
            self.pin_is_set = True
            if self.on_pin_created:
                try:
                    self.on_pin_created()
                except Exception as e:
                    logger.error("Error in PIN created callback: %s", e)

    def request_otp(self) -> None:
        with self._lock:
            self._require(TransactionState.AWAITING_SECRET)
            assert self._gate is not None
            self._gate.request_otp()

    def submit_secret(self, secret: str) -> TransactionState:
        """Feed the next PIN/OTP; submits once every challenge is satisfied."""
        with self._lock:
            self._require(TransactionState.AWAITING_SECRET)
            assert self._gate is not None
            try:
                verified = self._gate.submit_secret(secret)
            except PayflowError as e:
                self.last_error = e
                raise
            self.last_error = None
            if not verified.complete:
                return self._state
            request, hold = self._enter_submitting()

        return self._run_submission(request, hold)

    def _enter_submitting(self) -> tuple[TransferRequest, BalanceHold]:
        assert self._gate is not None and self._recipient is not None
        assert self._amount is not None and self._fee is not None

        if self.submitter.in_flight(self._recipient.single_flight_key):
            self._gate.reset()
            error = AlreadyInFlight()
            self.last_error = error
            raise error

        request = TransferRequest(
            sender_account_id=self.sender_account_id,
            recipient=self._recipient,
            amount=self._amount,
            category=self.category,
            fee_amount=self._fee,
            secret=self._gate.take_credential(),
            idempotency_key=self._idempotency_key,
            note=self.fields.note,
        )
        hold = self.reconciler.apply_optimistic(request.amount, request.fee_amount)
        self._hold = hold
        self.failure = None
        self._transition(TransactionState.SUBMITTING)
        return request, hold

    def _run_submission(
        self, request: TransferRequest, hold: BalanceHold
    ) -> TransactionState:
        try:
            record = self.submitter.submit(request)
        except InvalidSecret as e:
            with self._lock:
                self._rollback(hold)
                assert self._gate is not None
                self._gate.reset()
                try:
                    self._recheck_before_secret()
                except PayflowError as recheck_error:
                    self._fail(recheck_error)
                    return self._state
                self.last_error = e
                self._transition(TransactionState.AWAITING_SECRET)
            logger.info("Secret rejected by server; awaiting re-entry")
            return self._state
        except PayflowError as e:
            with self._lock:
                self._rollback(hold)
                self._fail(e)
            return self._state
        except Exception as e:
            with self._lock:
                self._rollback(hold)
                self._fail(ServerError(str(e) or None))
            logger.exception("Unexpected error during %s submission", self.category.value)
            raise

        with self._lock:
            self.reconciler.confirm(hold, record)
            self._hold = None
            self.record = record
            self._gate = None
            self._transition(TransactionState.SETTLED)

        if self.config.refresh_after_settle:
            self._refresh_after_settle()
        return self._state

    def _rollback(self, hold: BalanceHold) -> None:
        self.reconciler.rollback(hold)
        self._hold = None

    def _fail(self, error: PayflowError) -> None:
        self.last_error = error
        self.failure = FailureInfo.from_error(error)
        self._transition(TransactionState.FAILED)
        logger.warning(
            "%s failed: %s (retry allowed: %s)",
            self.category.value,
            error.kind.value,
            self.failure.retry_allowed,
        )

    def _refresh_after_settle(self) -> None:
        try:
            self.reconciler.refresh(self.ledger)
        except (NetworkError, PayflowError) as e:
            logger.warning("Balance refresh after settlement failed: %s", e)

    # Recovery

    def retry(self) -> ReviewSummary:
        """Go back to secret entry after a network failure, keeping the idempotency key."""
        with self._lock:
            if not self.retry_allowed:
                raise InvalidTransition("Only network failures can be retried")
            assert self._gate is not None
            try:
                self._recheck_before_secret()
            except PayflowError as e:
                self._fail(e)
                raise
            self._gate.reset()
            self.failure = None
            self.last_error = None
            self._transition(TransactionState.AWAITING_SECRET)
            return self.summary()

    def reset_to_draft(self) -> None:
        """Return to editing after a failure; form fields are kept, resolutions are not."""
        with self._lock:
            self._require(
                TransactionState.FAILED,
                TransactionState.AWAITING_SECRET,
                TransactionState.VALIDATED,
            )
            self.recipient_resolver.clear()
            self.failure = None
            self._invalidate()

    def cancel(self) -> None:
        with self._lock:
            if self._state is TransactionState.SUBMITTING:
                raise InvalidTransition("Cannot cancel while the transaction is submitting")
            self._require(*CANCELLABLE_STATES)
            self._gate = None
            self._transition(TransactionState.CANCELLED)
            logger.info("%s draft cancelled", self.category.value)


def secret_prompt(orchestrator: TransactionOrchestrator) -> SecretKind | None:
    """Which secret the caller should ask for next, if any."""
    gate = orchestrator.gate
    if orchestrator.state is not TransactionState.AWAITING_SECRET or gate is None:
        return None
    return gate.current_challenge
