import itertools
from decimal import Decimal

import pytest

from payflow.config import PayflowConfig
from payflow.features.balance.service import BalanceReconciler
from payflow.features.fees.service import FeeResolver
from payflow.features.recipients.service import RecipientResolver
from payflow.features.transfer.submitter import TransactionSubmitter
from payflow.models import UserProfile, WalletBalance
from payflow.shared.network import NetworkError, NetworkErrorType

PAYFLOW_ENV_VARS = (
    "PAYFLOW_API_BASE_URL",
    "PAYFLOW_FEE_CACHE_TTL",
    "PAYFLOW_FEE_POLICY",
    "PAYFLOW_WITHDRAWAL_MINIMUM",
    "PAYFLOW_TRANSFER_MINIMUM",
    "PAYFLOW_LOG_LEVEL",
    "PAYFLOW_LOG_STDOUT",
    "PAYFLOW_LOG_FORMAT",
)


def http_error(status_code, message):
    return NetworkError(
        error_type=NetworkErrorType.HTTP_ERROR,
        message=f"HTTP error {status_code}: {message}",
        status_code=status_code,
        response_text=message,
        response_json={"message": message},
    )


def timeout_error(context="Transfer"):
    return NetworkError(
        error_type=NetworkErrorType.TIMEOUT,
        message=f"{context}: Connection timeout. Server may be unavailable: http://ledger.test",
    )


class FakeLedger:
    """In-memory ledger API that deduplicates by idempotency key."""

    def __init__(
        self,
        balance="10000",
        pin="1234",
        otp="123456",
        transfer_fee="50",
        withdrawal_charge="100",
        charges=None,
        accounts=None,
        is_pin_set=True,
    ):
        self.balance = Decimal(balance)
        self.pin = pin
        self.otp = otp
        self.transfer_fee = Decimal(transfer_fee)
        self.withdrawal_charge = Decimal(withdrawal_charge)
        self.charges = (
            charges
            if charges is not None
            else [
                {"name": "Transfer Charge", "amount": transfer_fee, "status": "Active"},
                {"name": "Withdrawal Fee", "amount": withdrawal_charge, "status": "Active"},
            ]
        )
        self.accounts = accounts or {("0123456789", "058"): "JOHN DOE"}
        self.is_pin_set = is_pin_set
        self.otp_issued = False
        self.calls = []
        self.failures = {}
        self.history = []
        self._processed = {}
        self._refs = itertools.count(1)

    def fail_next(self, method, error):
        self.failures.setdefault(method, []).append(error)

    def _record(self, method, **kwargs):
        self.calls.append((method, kwargs))
        queued = self.failures.get(method)
        if queued:
            raise queued.pop(0)

    def call_count(self, method):
        return sum(1 for name, _ in self.calls if name == method)

    def _debit(self, key, total, payload):
        if key in self._processed:
            return self._processed[key]
        if total > self.balance:
            raise http_error(400, "Insufficient balance")
        self.balance -= total
        self.history.insert(0, payload)
        self._processed[key] = payload
        return payload

    def transfer(self, receiver_email, amount, pin, description, idempotency_key):
        self._record(
            "transfer",
            receiver_email=receiver_email,
            amount=amount,
            description=description,
            idempotency_key=idempotency_key,
        )
        if pin != self.pin:
            raise http_error(401, "Invalid PIN")
        transaction = {
            "senderTransactionRef": f"TRF-{next(self._refs)}",
            "amount": str(amount),
            "type": "debit",
            "status": "success",
            "transactionType": "transfer",
            "receiverEmail": receiver_email,
            "createdAt": "2026-10-18T10:00:00Z",
        }
        transaction = self._debit(
            idempotency_key, Decimal(str(amount)) + self.transfer_fee, transaction
        )
        return {"message": "Transfer successful", "transaction": transaction}

    def withdraw(
        self,
        amount,
        pin,
        account_name,
        account_number,
        bank_code,
        description,
        idempotency_key,
    ):
        self._record(
            "withdraw",
            amount=amount,
            account_name=account_name,
            account_number=account_number,
            bank_code=bank_code,
            idempotency_key=idempotency_key,
        )
        if pin != self.pin:
            raise http_error(401, "Invalid PIN")
        transaction = {
            "reference": f"WDR-{next(self._refs)}",
            "amount": str(amount),
            "type": "debit",
            "status": "pending",
            "transactionType": "withdrawal",
            "createdAt": "2026-10-18T10:00:00Z",
        }
        transaction = self._debit(
            idempotency_key, Decimal(str(amount)) + self.withdrawal_charge, transaction
        )
        return {"message": "Withdrawal initiated", "transaction": transaction}

    def resolve_account(self, account_number, bank_code):
        self._record("resolve_account", account_number=account_number, bank_code=bank_code)
        name = self.accounts.get((account_number, bank_code))
        if name is None:
            raise http_error(404, "Account not found")
        return {"account_name": name, "account_number": account_number}

    def validate_withdrawal(self, amount):
        self._record("validate_withdrawal", amount=amount)
        return {"amount": str(amount), "charge": str(self.withdrawal_charge)}

    def generate_otp(self):
        self._record("generate_otp")
        self.otp_issued = True
        return {"message": "OTP sent to your email"}

    def verify_otp(self, otp, account_name, account_number, bank_name, bank_code):
        self._record(
            "verify_otp",
            account_name=account_name,
            account_number=account_number,
            bank_name=bank_name,
            bank_code=bank_code,
        )
        if otp != self.otp:
            raise http_error(400, "Invalid OTP")
        return {"message": "Bank details saved"}

    def get_charges(self):
        self._record("get_charges")
        return {"data": list(self.charges)}

    def get_profile(self):
        self._record("get_profile")
        return UserProfile(
            user_id="user-1",
            email="sender@example.com",
            balance=self.balance,
            is_pin_set=self.is_pin_set,
        )

    def get_transactions(self):
        self._record("get_transactions")
        return list(self.history)

    def set_pin(self, pin):
        self._record("set_pin")
        self.pin = pin
        self.is_pin_set = True
        return {"message": "PIN set successfully"}

    def get_banks(self):
        self._record("get_banks")
        return [{"name": "Access Bank", "code": "044"}, {"name": "GTBank", "code": "058"}]


@pytest.fixture(autouse=True)
def isolate_payflow_environment(monkeypatch, tmp_path):
    """Run tests without picking up the developer's PAYFLOW_* settings."""
    for name in PAYFLOW_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("PAYFLOW_LOG_DIR", str(tmp_path / "logs"))
    yield


@pytest.fixture
def fake_ledger():
    return FakeLedger()


@pytest.fixture
def config():
    return PayflowConfig(base_url="http://ledger.test")


@pytest.fixture
def reconciler(fake_ledger):
    return BalanceReconciler(WalletBalance(available=fake_ledger.balance))


@pytest.fixture
def fee_resolver(fake_ledger, config):
    return FeeResolver(fake_ledger, config)


@pytest.fixture
def recipient_resolver(fake_ledger):
    return RecipientResolver(fake_ledger)


@pytest.fixture
def submitter(fake_ledger):
    return TransactionSubmitter(fake_ledger)


@pytest.fixture
def ledger_factory():
    return FakeLedger


@pytest.fixture
def make_http_error():
    return http_error


@pytest.fixture
def make_timeout():
    return timeout_error
