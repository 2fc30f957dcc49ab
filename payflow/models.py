"""Data model shared by the transfer and withdrawal flows."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any

MINOR_UNIT = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    """Convert an API or user value into a Decimal quantised to kobo."""
    if isinstance(value, Decimal):
        amount = value
    elif value is None or value == "":
        amount = Decimal("0")
    else:
        try:
            amount = Decimal(str(value))
        except InvalidOperation as e:
            raise ValueError(f"Invalid monetary value: {value!r}") from e
    return amount.quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)


def new_idempotency_key() -> str:
    return str(uuid.uuid4())


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed
        except ValueError:
            pass
    return datetime.now(timezone.utc)


class TransactionCategory(Enum):
    TRANSFER = "transfer"
    WITHDRAWAL = "withdrawal"

    @property
    def charge_keyword(self) -> str:
        """Keyword matched against charge names in the fee schedule."""
        return "transfer" if self is TransactionCategory.TRANSFER else "withdraw"


class RecipientKind(Enum):
    USER = "user"
    STORE = "store"
    BANK_ACCOUNT = "bank_account"


class TransactionDirection(Enum):
    CREDIT = "credit"
    DEBIT = "debit"


class TransactionStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"

    @classmethod
    def from_api(cls, value: Any) -> "TransactionStatus":
        normalized = str(value or "").strip().lower()
        if normalized in ("success", "successful", "completed", "complete"):
            return cls.COMPLETED
        if normalized in ("failed", "failure", "reversed", "declined"):
            return cls.FAILED
        return cls.PENDING


class SecretKind(Enum):
    PIN = "pin"
    OTP = "otp"


class SecretCredential:
    """Opaque PIN or OTP; the value never appears in repr or str."""

    __slots__ = ("kind", "_value")

    def __init__(self, kind: SecretKind, value: str):
        self.kind = kind
        self._value = value

    def reveal(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"SecretCredential(kind={self.kind.value}, value=****)"

    __str__ = __repr__

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SecretCredential):
            return NotImplemented
        return self.kind == other.kind and self._value == other._value

    def __hash__(self) -> int:
        return hash((self.kind, self._value))


@dataclass(frozen=True)
class Recipient:
    identifier: str
    display_name: str
    resolved_account_ref: str
    kind: RecipientKind
    bank_code: str | None = None
    bank_name: str | None = None
    resolved_at: datetime | None = None

    @property
    def single_flight_key(self) -> str:
        if self.kind is RecipientKind.BANK_ACCOUNT:
            return f"{self.kind.value}:{self.resolved_account_ref}:{self.bank_code}"
        return f"{self.kind.value}:{self.resolved_account_ref.lower()}"


@dataclass(frozen=True)
class FeeEntry:
    fee_amount: Decimal
    active: bool
    name: str = ""


@dataclass
class FeeSchedule:
    entries: dict[TransactionCategory, FeeEntry] = field(default_factory=dict)
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def is_stale(self, ttl_seconds: float, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return (now - self.fetched_at).total_seconds() >= ttl_seconds

    def active_fee(self, category: TransactionCategory) -> Decimal | None:
        entry = self.entries.get(category)
        if entry is None or not entry.active:
            return None
        return entry.fee_amount

    @classmethod
    def from_api_response(cls, charges: Any) -> "FeeSchedule":
        """Build from the charge directory, picking the first active charge per category."""
        if isinstance(charges, dict):
            charges = charges.get("data") or charges.get("charges") or []
        entries: dict[TransactionCategory, FeeEntry] = {}
        for charge in charges or []:
            if not isinstance(charge, dict):
                continue
            name = str(charge.get("name", ""))
            active = str(charge.get("status", "")).lower() == "active"
            for category in TransactionCategory:
                if category.charge_keyword not in name.lower():
                    continue
                current = entries.get(category)
                if current is not None and current.active:
                    continue
                entries[category] = FeeEntry(
                    fee_amount=to_money(charge.get("amount", 0)),
                    active=active,
                    name=name,
                )
        return cls(entries=entries)


@dataclass(frozen=True)
class WalletBalance:
    available: Decimal = Decimal("0")
    pending: Decimal = Decimal("0")

    @property
    def spendable(self) -> Decimal:
        return self.available - self.pending


@dataclass(frozen=True)
class TransactionRecord:
    id: str
    reference: str
    category: TransactionCategory
    direction: TransactionDirection
    amount: Decimal
    counterparty_identifier: str
    status: TransactionStatus
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_api_response(
        cls,
        data: dict[str, Any],
        category: TransactionCategory,
        counterparty_identifier: str = "",
        default_status: TransactionStatus = TransactionStatus.COMPLETED,
    ) -> "TransactionRecord":
        reference = (
            data.get("senderTransactionRef")
            or data.get("reference")
            or data.get("transactionRef")
            or data.get("_id")
            or ""
        )
        direction_value = str(data.get("type") or data.get("direction") or "debit")
        direction = (
            TransactionDirection.CREDIT
            if direction_value.lower() == "credit"
            else TransactionDirection.DEBIT
        )
        status = (
            TransactionStatus.from_api(data["status"])
            if data.get("status")
            else default_status
        )
        metadata = data.get("metadata") or {}
        return cls(
            id=str(data.get("_id") or data.get("id") or reference),
            reference=str(reference),
            category=category,
            direction=direction,
            amount=to_money(data.get("amount", 0)),
            counterparty_identifier=counterparty_identifier
            or str(metadata.get("receiverEmail") or data.get("receiverEmail") or ""),
            status=status,
            created_at=_parse_timestamp(data.get("createdAt")),
        )

    @classmethod
    def from_history_entry(cls, data: dict[str, Any]) -> "TransactionRecord":
        kind = str(data.get("transactionType") or data.get("category") or "transfer")
        category = (
            TransactionCategory.WITHDRAWAL
            if "withdraw" in kind.lower()
            else TransactionCategory.TRANSFER
        )
        return cls.from_api_response(data, category, default_status=TransactionStatus.PENDING)


@dataclass(frozen=True)
class TransferRequest:
    sender_account_id: str
    recipient: Recipient
    amount: Decimal
    category: TransactionCategory
    fee_amount: Decimal
    secret: SecretCredential
    idempotency_key: str
    note: str = ""

    @property
    def recipient_identifier(self) -> str:
        return self.recipient.identifier

    @property
    def total_debit(self) -> Decimal:
        return self.amount + self.fee_amount

    def __post_init__(self):
        if self.amount <= 0:
            raise ValueError("Transfer amount must be greater than zero")
        if self.fee_amount < 0:
            raise ValueError("Fee cannot be negative")
        if not self.idempotency_key:
            raise ValueError("Idempotency key is required")


@dataclass(frozen=True)
class UserProfile:
    user_id: str
    email: str
    balance: Decimal
    is_pin_set: bool
    withdrawal_bank: str | None = None
    withdrawal_account_number: str | None = None
    withdrawal_account_name: str | None = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "UserProfile":
        user = data.get("user") or data.get("data") or data
        wallet = user.get("wallet") or {}
        balance = wallet.get("balance", user.get("walletBalance", 0))
        return cls(
            user_id=str(user.get("_id") or user.get("id") or ""),
            email=str(user.get("email") or ""),
            balance=to_money(balance),
            is_pin_set=bool(user.get("isPinSet", False)),
            withdrawal_bank=user.get("withdrawalBank"),
            withdrawal_account_number=user.get("withdrawalAccountNumber"),
            withdrawal_account_name=user.get("withdrawalAccountName"),
        )


@dataclass(frozen=True)
class WithdrawalQuote:
    amount: Decimal
    charge: Decimal

    @property
    def total(self) -> Decimal:
        return self.amount + self.charge
