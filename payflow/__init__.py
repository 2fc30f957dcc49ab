"""payflow - transfer and withdrawal orchestration for a wallet backend.

This package is organized into feature-based modules:
- features.transfer: Amount validation, submission and the transaction lifecycle
- features.fees: Fee schedule lookup
- features.recipients: Recipient and bank account resolution
- features.secret_gate: PIN and OTP challenges
- features.balance: Wallet balance holds and history
- shared: Shared utilities (network, logging, errors, validation)
"""

from payflow.config import FeePolicy, PayflowConfig
from payflow.features.transfer.orchestrator import (
    TransactionOrchestrator,
    TransactionState,
)
from payflow.ledger import LedgerClient
from payflow.session import PayflowSession
from payflow.shared import (
    ErrorKind,
    NetworkClient,
    NetworkError,
    NetworkErrorType,
    PayflowError,
    RetryConfig,
    TimeoutConfig,
    ValidationResult,
)

__version__ = "0.1.0"
__all__ = [
    "PayflowSession",
    "PayflowConfig",
    "FeePolicy",
    "LedgerClient",
    "TransactionOrchestrator",
    "TransactionState",
    "ErrorKind",
    "PayflowError",
    "NetworkClient",
    "NetworkError",
    "NetworkErrorType",
    "RetryConfig",
    "TimeoutConfig",
    "ValidationResult",
]
