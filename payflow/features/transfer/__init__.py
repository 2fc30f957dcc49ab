"""Transfer feature module for payflow.

This module provides the transaction lifecycle shared by transfers and
withdrawals:
- Amount validation against balance, fee and minimum
- Category strategies for transfers and bank withdrawals
- Single-flight, idempotent submission
- The orchestrating state machine
"""

from payflow.features.transfer.orchestrator import (
    FailureInfo,
    ReviewSummary,
    TransactionOrchestrator,
    TransactionState,
    secret_prompt,
)
from payflow.features.transfer.strategies import (
    CategoryStrategy,
    DraftFields,
    TransferStrategy,
    WithdrawalStrategy,
)
from payflow.features.transfer.submitter import TransactionSubmitter
from payflow.features.transfer.validators import AmountValidator

__all__ = [
    "AmountValidator",
    "CategoryStrategy",
    "DraftFields",
    "FailureInfo",
    "ReviewSummary",
    "TransactionOrchestrator",
    "TransactionState",
    "TransactionSubmitter",
    "TransferStrategy",
    "WithdrawalStrategy",
    "secret_prompt",
]
