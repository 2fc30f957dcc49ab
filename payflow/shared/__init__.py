"""Shared utilities for payflow."""

from payflow.shared.errors import (
    AlreadyInFlight,
    BalanceInvariantError,
    ErrorKind,
    FeeLookupError,
    InsufficientBalance,
    InvalidSecret,
    InvalidTransition,
    OtpExpired,
    PayflowError,
    PinNotSet,
    RecipientNotFound,
    ServerError,
    SubmissionNetworkError,
    ValidationFailed,
    classify_network_error,
    user_message,
)
from payflow.shared.logging import (
    ContextAdapter,
    LoggingConfig,
    LogLevel,
    get_logger,
    mask_account_number,
    sanitize_dict,
    sanitize_message,
    setup_logging,
)
from payflow.shared.network import (
    NetworkClient,
    NetworkError,
    NetworkErrorType,
    RetryConfig,
    TimeoutConfig,
)
from payflow.shared.validation import (
    AccountNumberValidator,
    RecipientIdentifierValidator,
    SecretFormatValidator,
    ValidationResult,
)

__all__ = [
    "AccountNumberValidator",
    "AlreadyInFlight",
    "BalanceInvariantError",
    "ContextAdapter",
    "ErrorKind",
    "FeeLookupError",
    "InsufficientBalance",
    "InvalidSecret",
    "InvalidTransition",
    "LogLevel",
    "LoggingConfig",
    "NetworkClient",
    "NetworkError",
    "NetworkErrorType",
    "OtpExpired",
    "PayflowError",
    "PinNotSet",
    "RecipientIdentifierValidator",
    "RecipientNotFound",
    "RetryConfig",
    "SecretFormatValidator",
    "ServerError",
    "SubmissionNetworkError",
    "TimeoutConfig",
    "ValidationFailed",
    "ValidationResult",
    "classify_network_error",
    "get_logger",
    "mask_account_number",
    "sanitize_dict",
    "sanitize_message",
    "setup_logging",
    "user_message",
]
