"""Error taxonomy for transfer and withdrawal flows."""

from __future__ import annotations

from enum import Enum

from payflow.shared.network import NetworkError, NetworkErrorType


class ErrorKind(Enum):
    INVALID_AMOUNT = "invalid_amount"
    BELOW_MINIMUM = "below_minimum"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    RECIPIENT_NOT_FOUND = "recipient_not_found"
    INVALID_SECRET = "invalid_secret"
    OTP_EXPIRED = "otp_expired"
    ALREADY_IN_FLIGHT = "already_in_flight"
    NETWORK_ERROR = "network_error"
    SERVER_ERROR = "server_error"
    FEE_LOOKUP = "fee_lookup"
    PIN_NOT_SET = "pin_not_set"
    INVALID_TRANSITION = "invalid_transition"


USER_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.INVALID_AMOUNT: "Please enter a valid amount.",
    ErrorKind.BELOW_MINIMUM: "The amount is below the minimum allowed for this transaction.",
    ErrorKind.INSUFFICIENT_BALANCE: "Insufficient balance for this amount and fee.",
    ErrorKind.RECIPIENT_NOT_FOUND: "Recipient not found. Please check the details and try again.",
    ErrorKind.INVALID_SECRET: "Incorrect PIN. Please check your PIN and try again.",
    ErrorKind.OTP_EXPIRED: "The OTP has expired. Please request a new one.",
    ErrorKind.ALREADY_IN_FLIGHT: "A transaction to this recipient is already being processed.",
    ErrorKind.NETWORK_ERROR: "We could not reach the server. You can retry safely.",
    ErrorKind.SERVER_ERROR: "The server could not process this transaction. Please try again later.",
    ErrorKind.FEE_LOOKUP: "Could not determine the transaction fee.",
    ErrorKind.PIN_NOT_SET: "No PIN found. Please set your PIN before making transactions.",
    ErrorKind.INVALID_TRANSITION: "This action is not available right now.",
}


def user_message(kind: ErrorKind) -> str:
    return USER_MESSAGES[kind]


class PayflowError(Exception):
    """Base class for classified transfer/withdrawal failures."""

    kind: ErrorKind = ErrorKind.SERVER_ERROR
    retryable: bool = False

    def __init__(self, message: str | None = None, *, kind: ErrorKind | None = None):
        if kind is not None:
            self.kind = kind
        self.message = message or user_message(self.kind)
        super().__init__(self.message)

    @property
    def user_message(self) -> str:
        return user_message(self.kind)


class ValidationFailed(PayflowError):
    """Local validation failure; never reaches the network."""

    kind = ErrorKind.INVALID_AMOUNT


class InsufficientBalance(PayflowError):
    kind = ErrorKind.INSUFFICIENT_BALANCE

    def __init__(self, message: str | None = None, *, server_side: bool = False):
        super().__init__(message)
        self.server_side = server_side


class FeeLookupError(PayflowError):
    kind = ErrorKind.FEE_LOOKUP


class RecipientNotFound(PayflowError):
    kind = ErrorKind.RECIPIENT_NOT_FOUND


class InvalidSecret(PayflowError):
    kind = ErrorKind.INVALID_SECRET


class OtpExpired(PayflowError):
    kind = ErrorKind.OTP_EXPIRED


class PinNotSet(PayflowError):
    kind = ErrorKind.PIN_NOT_SET


class AlreadyInFlight(PayflowError):
    kind = ErrorKind.ALREADY_IN_FLIGHT


class SubmissionNetworkError(PayflowError):
    """Timeout or connection failure with unknown outcome."""

    kind = ErrorKind.NETWORK_ERROR
    retryable = True


class ServerError(PayflowError):
    kind = ErrorKind.SERVER_ERROR


class InvalidTransition(PayflowError):
    kind = ErrorKind.INVALID_TRANSITION


class BalanceInvariantError(RuntimeError):
    """A balance hold was released twice or pending went negative."""


def _mentions(text: str, *needles: str) -> bool:
    lowered = text.lower()
    return any(needle in lowered for needle in needles)


def classify_network_error(error: NetworkError) -> PayflowError:
    """Map a transport/HTTP failure from the ledger API onto the taxonomy."""
    if error.is_transport_failure:
        return SubmissionNetworkError(error.message)

    server_message = error.server_message
    status = error.status_code

    if error.error_type != NetworkErrorType.HTTP_ERROR:
        return ServerError(error.message)

    if _mentions(server_message, "expired") and _mentions(server_message, "otp"):
        return OtpExpired(server_message)
    if _mentions(server_message, "insufficient"):
        return InsufficientBalance(server_message, server_side=True)
    if status == 401 or _mentions(server_message, "invalid pin", "incorrect pin"):
        return InvalidSecret(server_message or None)
    if _mentions(server_message, "invalid otp", "incorrect otp"):
        return InvalidSecret(server_message)
    if status == 404 or _mentions(server_message, "not found"):
        return RecipientNotFound(server_message or None)
    if status is not None and 400 <= status < 500 and _mentions(server_message, "pin"):
        return InvalidSecret(server_message)
    return ServerError(server_message or error.message)
