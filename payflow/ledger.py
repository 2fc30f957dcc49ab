"""Client for the remote ledger API used by the transfer and withdrawal flows."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Callable
from urllib.parse import urlencode

from payflow.config import PayflowConfig
from payflow.models import UserProfile
from payflow.shared.logging import get_logger, mask_account_number
from payflow.shared.network import NetworkClient

logger = get_logger(__name__)

IDEMPOTENCY_HEADER = "Idempotency-Key"


def _money(value: Decimal) -> float | int:
    if value == value.to_integral_value():
        return int(value)
    return float(value)


class LedgerClient:
    """Thin wrapper over the ledger endpoints.

    Every call carries the bearer token returned by ``token_provider``.
    Login and session storage stay with the caller.
    """

    TRANSFER_ENDPOINT = "/api/transaction/transfer"
    WITHDRAW_ENDPOINT = "/api/withdrawals/withdraw"
    RESOLVE_ACCOUNT_ENDPOINT = "/api/transaction/resolveaccount"
    VALIDATE_ACCOUNT_ENDPOINT = "/api/transaction/validateaccount"
    OTP_GENERATE_ENDPOINT = "/api/otp/generate"
    OTP_VERIFY_ENDPOINT = "/api/otp/verify"
    CHARGES_ENDPOINT = "/api/charge/getallcharges"
    PROFILE_ENDPOINT = "/api/users/getuserone"
    TRANSACTIONS_ENDPOINT = "/api/transaction/getusertransaction"
    PIN_SET_ENDPOINT = "/api/pin/set"
    BANKS_ENDPOINT = "/api/bank/getallbanks"

    def __init__(
        self,
        token_provider: Callable[[], str | None],
        config: PayflowConfig | None = None,
        network_client: NetworkClient | None = None,
    ):
        self.config = config or PayflowConfig()
        self._network_client = network_client or NetworkClient(
            base_url=self.config.base_url,
            timeout_config=self.config.timeout_config,
            retry_config=self.config.retry_config,
            token_provider=token_provider,
        )

    def transfer(
        self,
        receiver_email: str,
        amount: Decimal,
        pin: str,
        description: str,
        idempotency_key: str,
    ) -> dict[str, Any]:
        logger.info("Submitting transfer of %s to %s", amount, receiver_email)
        return self._network_client.post(
            self.TRANSFER_ENDPOINT,
            context="Transfer",
            retry=False,
            headers={IDEMPOTENCY_HEADER: idempotency_key},
            json={
                "receiverEmail": receiver_email,
                "amount": _money(amount),
                "description": description or "Transfer",
                "pin": pin,
                "idempotencyKey": idempotency_key,
            },
        )

    def withdraw(
        self,
        amount: Decimal,
        pin: str,
        account_name: str,
        account_number: str,
        bank_code: str,
        description: str,
        idempotency_key: str,
    ) -> dict[str, Any]:
        logger.info(
            "Submitting withdrawal of %s to account %s",
            amount,
            mask_account_number(account_number),
        )
        return self._network_client.post(
            self.WITHDRAW_ENDPOINT,
            context="Withdrawal",
            retry=False,
            headers={IDEMPOTENCY_HEADER: idempotency_key},
            json={
                "amount": _money(amount),
                "description": description,
                "pin": pin,
                "account_name": account_name,
                "account_number": account_number,
                "bank_code": bank_code,
                "idempotencyKey": idempotency_key,
            },
        )

    def resolve_account(self, account_number: str, bank_code: str) -> dict[str, Any]:
        query = urlencode({"account_number": account_number, "bank_code": bank_code})
        return self._network_client.get(
            f"{self.RESOLVE_ACCOUNT_ENDPOINT}?{query}",
            context="Resolve bank account",
        )

    def validate_withdrawal(self, amount: Decimal) -> dict[str, Any]:
        return self._network_client.post(
            self.VALIDATE_ACCOUNT_ENDPOINT,
            context="Validate withdrawal",
            json={"amount": _money(amount)},
        )

    def generate_otp(self) -> dict[str, Any]:
        return self._network_client.post(
            self.OTP_GENERATE_ENDPOINT,
            context="Generate OTP",
            retry=False,
        )

    def verify_otp(
        self,
        otp: str,
        account_name: str,
        account_number: str,
        bank_name: str,
        bank_code: str,
    ) -> dict[str, Any]:
        return self._network_client.post(
            self.OTP_VERIFY_ENDPOINT,
            context="Verify OTP",
            retry=False,
            json={
                "otp": otp,
                "accountName": account_name,
                "accountNumber": account_number,
                "bankName": bank_name,
                "bankCode": bank_code,
            },
        )

    def get_charges(self) -> Any:
        return self._network_client.get(self.CHARGES_ENDPOINT, context="Fetch charges")

    def get_profile(self) -> UserProfile:
        data = self._network_client.get(self.PROFILE_ENDPOINT, context="Fetch profile")
        return UserProfile.from_api_response(data)

    def get_transactions(self) -> list[dict[str, Any]]:
        data = self._network_client.get(
            self.TRANSACTIONS_ENDPOINT, context="Fetch transactions"
        )
        if isinstance(data, dict):
            data = data.get("transactions") or data.get("data") or []
        return [item for item in data if isinstance(item, dict)]

    def set_pin(self, pin: str) -> dict[str, Any]:
        return self._network_client.post(
            self.PIN_SET_ENDPOINT,
            context="Set PIN",
            retry=False,
            json={"pin": pin},
        )

    def get_banks(self) -> list[dict[str, Any]]:
        data = self._network_client.get(self.BANKS_ENDPOINT, context="Fetch banks")
        if isinstance(data, dict):
            data = data.get("data") or data.get("banks") or []
        return [item for item in data if isinstance(item, dict)]
