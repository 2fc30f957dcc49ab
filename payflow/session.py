"""One signed-in user's payment session."""

from __future__ import annotations

from dataclasses import replace
from typing import Callable

from payflow.config import PayflowConfig
from payflow.features.balance.service import BalanceReconciler
from payflow.features.fees.service import FeeResolver
from payflow.features.recipients.service import RecipientResolver
from payflow.features.transfer.orchestrator import (
    StateListener,
    TransactionOrchestrator,
)
from payflow.features.transfer.strategies import (
    CategoryStrategy,
    TransferStrategy,
    WithdrawalStrategy,
)
from payflow.features.transfer.submitter import TransactionSubmitter
from payflow.ledger import LedgerClient
from payflow.models import UserProfile, WalletBalance
from payflow.shared.logging import get_logger

logger = get_logger(__name__)


class PayflowSession:
    """Shares one balance, fee cache and submitter between all drafts.

    Every page that starts a transfer or withdrawal asks the session for an
    orchestrator, so there is a single owner of the wallet balance and a
    single in-flight guard per recipient.
    """

    def __init__(
        self,
        token_provider: Callable[[], str | None],
        config: PayflowConfig | None = None,
        ledger: LedgerClient | None = None,
    ):
        self.config = config or PayflowConfig()
        self.ledger = ledger or LedgerClient(token_provider, self.config)
        self.reconciler = BalanceReconciler(history_limit=self.config.history_limit)
        self.fee_resolver = FeeResolver(self.ledger, self.config)
        self.recipient_resolver = RecipientResolver(self.ledger)
        self.submitter = TransactionSubmitter(self.ledger)
        self.profile: UserProfile | None = None

    @property
    def balance(self) -> WalletBalance:
        return self.reconciler.balance

    def sync(self) -> UserProfile:
        """Load the profile, balance and history from the server."""
        self.profile = self.ledger.get_profile()
        self.reconciler.refresh(self.ledger)
        logger.info("Session synced for %s", self.profile.email or self.profile.user_id)
        return self.profile

    def _orchestrator(
        self,
        strategy: CategoryStrategy,
        on_state_change: StateListener | None,
    ) -> TransactionOrchestrator:
        profile = self.profile
        return TransactionOrchestrator(
            strategy,
            ledger=self.ledger,
            reconciler=self.reconciler,
            fee_resolver=self.fee_resolver,
            recipient_resolver=self.recipient_resolver,
            submitter=self.submitter,
            config=self.config,
            sender_account_id=profile.user_id if profile else "",
            pin_is_set=profile.is_pin_set if profile else True,
            on_state_change=on_state_change,
            on_pin_created=self._pin_created,
        )

    def _pin_created(self) -> None:
        if self.profile is not None and not self.profile.is_pin_set:
            self.profile = replace(self.profile, is_pin_set=True)
            logger.info("PIN created; later drafts skip PIN setup")

    def new_transfer(
        self, on_state_change: StateListener | None = None
    ) -> TransactionOrchestrator:
        return self._orchestrator(TransferStrategy(), on_state_change)

    def new_withdrawal(
        self,
        save_bank_details: bool = False,
        on_state_change: StateListener | None = None,
    ) -> TransactionOrchestrator:
        return self._orchestrator(WithdrawalStrategy(save_bank_details), on_state_change)
