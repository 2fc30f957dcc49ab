"""PIN and OTP challenge handling for transaction confirmation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from payflow.models import Recipient, SecretCredential, SecretKind
from payflow.shared.errors import (
    InvalidSecret,
    OtpExpired,
    PinNotSet,
    classify_network_error,
)
from payflow.shared.logging import get_logger
from payflow.shared.network import NetworkError
from payflow.shared.validation import SecretFormatValidator

logger = get_logger(__name__)


class OtpLedgerProtocol(Protocol):
    def generate_otp(self) -> dict[str, Any]: ...
    def verify_otp(
        self,
        otp: str,
        account_name: str,
        account_number: str,
        bank_name: str,
        bank_code: str,
    ) -> dict[str, Any]: ...
    def set_pin(self, pin: str) -> dict[str, Any]: ...


class GateState(Enum):
    NEEDS_PIN_SETUP = "needs_pin_setup"
    AWAITING_INPUT = "awaiting_input"
    SATISFIED = "satisfied"


@dataclass(frozen=True)
class Verified:
    kind: SecretKind
    remaining: tuple[SecretKind, ...]

    @property
    def complete(self) -> bool:
        return not self.remaining


@dataclass(frozen=True)
class BankDetails:
    account_name: str
    account_number: str
    bank_name: str
    bank_code: str

    @classmethod
    def from_recipient(cls, recipient: Recipient) -> "BankDetails":
        return cls(
            account_name=recipient.display_name,
            account_number=recipient.resolved_account_ref,
            bank_name=recipient.bank_name or "",
            bank_code=recipient.bank_code or "",
        )


class SecretGate:
    """Collects the secrets that unlock one submission.

    Challenges are satisfied in order. A PIN is only format-checked here and
    travels with the submission; an OTP is issued with ``request_otp`` and
    verified against the server before the next challenge opens.
    """

    def __init__(
        self,
        ledger: OtpLedgerProtocol,
        challenges: tuple[SecretKind, ...] = (SecretKind.PIN,),
        otp_length: int = 6,
        pin_is_set: bool = True,
        bank_details: BankDetails | None = None,
    ):
        if not challenges:
            raise ValueError("At least one challenge is required")
        if SecretKind.OTP in challenges and bank_details is None:
            raise ValueError("OTP challenge requires bank details to persist")
        self.ledger = ledger
        self.challenges = tuple(challenges)
        self.otp_length = otp_length
        self.bank_details = bank_details
        self._pin_is_set = pin_is_set
        self._completed: list[SecretKind] = []
        self._credential: SecretCredential | None = None
        self._otp_requested = False

    @property
    def state(self) -> GateState:
        if not self._pin_is_set and SecretKind.PIN in self.challenges:
            return GateState.NEEDS_PIN_SETUP
        if len(self._completed) == len(self.challenges):
            return GateState.SATISFIED
        return GateState.AWAITING_INPUT

    @property
    def current_challenge(self) -> SecretKind | None:
        if len(self._completed) >= len(self.challenges):
            return None
        return self.challenges[len(self._completed)]

    @property
    def is_satisfied(self) -> bool:
        return self.state is GateState.SATISFIED

    @property
    def otp_requested(self) -> bool:
        return self._otp_requested

    def create_pin(self, pin: str) -> None:
        """Set a first PIN for accounts that have none yet."""
        result = SecretFormatValidator.validate_pin(pin)
        if not result.is_valid:
            raise InvalidSecret(result.error_message)
        try:
            self.ledger.set_pin(pin)
        except NetworkError as e:
            raise classify_network_error(e) from e
        self._pin_is_set = True
        logger.info("Transaction PIN created")

    def request_otp(self) -> None:
        if SecretKind.OTP not in self.challenges:
            raise ValueError("This flow does not use an OTP")
        try:
            self.ledger.generate_otp()
        except NetworkError as e:
            logger.warning("OTP generation failed: %s", e.message)
            raise classify_network_error(e) from e
        self._otp_requested = True
        logger.info("OTP issued for bank detail verification")

    def submit_secret(self, secret: str) -> Verified:
        if self.state is GateState.NEEDS_PIN_SETUP:
            raise PinNotSet()

        challenge = self.current_challenge
        if challenge is None:
            raise InvalidSecret("All challenges are already satisfied")

        secret = (secret or "").strip()
        if challenge is SecretKind.PIN:
            result = SecretFormatValidator.validate_pin(secret)
            if not result.is_valid:
                raise InvalidSecret(result.error_message)
            self._credential = SecretCredential(SecretKind.PIN, secret)
        else:
            self.verify_otp(secret)

        self._completed.append(challenge)
        return Verified(kind=challenge, remaining=self.challenges[len(self._completed):])

    def verify_otp(self, secret: str) -> None:
        result = SecretFormatValidator.validate_otp(secret, self.otp_length)
        if not result.is_valid:
            raise InvalidSecret(result.error_message)
        if not self._otp_requested:
            raise InvalidSecret("Request an OTP before verifying it.")

        details = self.bank_details
        assert details is not None
        try:
            self.ledger.verify_otp(
                otp=secret,
                account_name=details.account_name,
                account_number=details.account_number,
                bank_name=details.bank_name,
                bank_code=details.bank_code,
            )
        except NetworkError as e:
            error = classify_network_error(e)
            if isinstance(error, OtpExpired):
                self._otp_requested = False
            logger.warning("OTP verification failed: %s", error.kind.value)
            raise error from e
        logger.info("OTP verified; withdrawal bank details saved")

    def take_credential(self) -> SecretCredential:
        """Hand the PIN to the submitter; it is dropped after one attempt."""
        if not self.is_satisfied or self._credential is None:
            raise InvalidSecret("PIN has not been provided")
        credential = self._credential
        self._credential = None
        return credential

    def peek_credential(self) -> SecretCredential | None:
        return self._credential

    def reset(self) -> None:
        """Return to PIN entry after a rejected secret; verified OTPs stay verified."""
        self._credential = None
        self._completed = [
            kind for kind in self._completed if kind is SecretKind.OTP
        ]
