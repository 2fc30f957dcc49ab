"""Category-specific steps plugged into the transaction orchestrator."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from payflow.config import PayflowConfig
from payflow.features.fees.service import FeeResolver
from payflow.features.recipients.service import RecipientResolver
from payflow.models import Recipient, SecretKind, TransactionCategory


@dataclass
class DraftFields:
    """Mutable form fields of a draft."""

    amount: str = ""
    recipient: str = ""
    note: str = ""
    bank_code: str | None = None
    bank_name: str | None = None


class CategoryStrategy(Protocol):
    category: TransactionCategory

    @property
    def requires_resolution(self) -> bool: ...

    def minimum(self, config: PayflowConfig) -> Decimal | None: ...

    def resolve_recipient(
        self, resolver: RecipientResolver, fields: DraftFields
    ) -> Recipient: ...

    def resolve_fee(self, fees: FeeResolver, amount: Decimal) -> Decimal: ...

    def challenges(self) -> tuple[SecretKind, ...]: ...


class TransferStrategy:
    """Peer, store and school transfers keyed by email or store code."""

    category = TransactionCategory.TRANSFER

    @property
    def requires_resolution(self) -> bool:
        return False

    def minimum(self, config: PayflowConfig) -> Decimal | None:
        return config.transfer_minimum

    def resolve_recipient(
        self, resolver: RecipientResolver, fields: DraftFields
    ) -> Recipient:
        return resolver.resolve(fields.recipient, self.category)

    def resolve_fee(self, fees: FeeResolver, amount: Decimal) -> Decimal:
        return fees.resolve_fee(self.category)

    def challenges(self) -> tuple[SecretKind, ...]:
        return (SecretKind.PIN,)


class WithdrawalStrategy:
    """Bank withdrawals; the account must resolve before PIN entry.

    With ``save_bank_details`` the account is new to the user, so an OTP is
    verified (which persists the details server-side) before the PIN.
    """

    category = TransactionCategory.WITHDRAWAL

    def __init__(self, save_bank_details: bool = False):
        self.save_bank_details = save_bank_details

    @property
    def requires_resolution(self) -> bool:
        return True

    def minimum(self, config: PayflowConfig) -> Decimal | None:
        return config.withdrawal_minimum

    def resolve_recipient(
        self, resolver: RecipientResolver, fields: DraftFields
    ) -> Recipient:
        return resolver.resolve(
            fields.recipient,
            self.category,
            bank_code=fields.bank_code,
            bank_name=fields.bank_name,
        )

    def resolve_fee(self, fees: FeeResolver, amount: Decimal) -> Decimal:
        return fees.preview_withdrawal(amount).charge

    def challenges(self) -> tuple[SecretKind, ...]:
        if self.save_bank_details:
            return (SecretKind.OTP, SecretKind.PIN)
        return (SecretKind.PIN,)
