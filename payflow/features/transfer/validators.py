"""Amount validation for transfers and withdrawals."""

from decimal import Decimal, InvalidOperation

from payflow.models import MINOR_UNIT, WalletBalance
from payflow.shared.errors import ErrorKind
from payflow.shared.validation import ValidationResult


class AmountValidator:
    """Pure checks of a user-entered amount against balance, fee and minimum."""

    MAX_DECIMAL_PLACES = 2
    # Largest amount whose minor units still fit a signed 64-bit ledger column.
    MAX_AMOUNT = Decimal(9_223_372_036_854_775_807) * MINOR_UNIT

    @staticmethod
    def parse_human_amount(value: str) -> ValidationResult:
        if value is None or not str(value).strip():
            return ValidationResult(
                is_valid=False,
                error_message="Please enter an amount.",
                error_code=ErrorKind.INVALID_AMOUNT,
            )

        raw_amount = str(value).strip().replace(",", "").replace(" ", "")

        if raw_amount.startswith("-"):
            return ValidationResult(
                is_valid=False,
                error_message="Amount must be a positive number",
                error_code=ErrorKind.INVALID_AMOUNT,
            )

        try:
            amount_decimal = Decimal(raw_amount)
        except (InvalidOperation, ValueError):
            return ValidationResult(
                is_valid=False,
                error_message="Amount must be a valid number",
                error_code=ErrorKind.INVALID_AMOUNT,
            )

        if not amount_decimal.is_finite():
            return ValidationResult(
                is_valid=False,
                error_message="Invalid numeric format (special value detected)",
                error_code=ErrorKind.INVALID_AMOUNT,
            )

        if amount_decimal <= 0:
            return ValidationResult(
                is_valid=False,
                error_message="Amount must be greater than zero",
                error_code=ErrorKind.INVALID_AMOUNT,
            )

        if amount_decimal > AmountValidator.MAX_AMOUNT:
            return ValidationResult(
                is_valid=False,
                error_message="Amount exceeds maximum allowed value",
                error_code=ErrorKind.INVALID_AMOUNT,
            )

        return ValidationResult(is_valid=True, normalized_value=amount_decimal)

    @classmethod
    def validate_decimal_places(cls, amount: Decimal) -> ValidationResult:
        exponent = amount.as_tuple().exponent
        if not isinstance(exponent, int):
            return ValidationResult(
                is_valid=False,
                error_message="Invalid numeric format",
                error_code=ErrorKind.INVALID_AMOUNT,
            )

        if max(0, -exponent) > cls.MAX_DECIMAL_PLACES and amount != amount.quantize(
            MINOR_UNIT
        ):
            return ValidationResult(
                is_valid=False,
                error_message=f"Too many decimal places. Maximum {cls.MAX_DECIMAL_PLACES} allowed",
                error_code=ErrorKind.INVALID_AMOUNT,
            )

        return ValidationResult(is_valid=True)

    @staticmethod
    def validate_minimum(amount: Decimal, minimum: Decimal | None) -> ValidationResult:
        if minimum is not None and amount < minimum:
            return ValidationResult(
                is_valid=False,
                error_message=f"The minimum amount is ₦{minimum:,}",
                error_code=ErrorKind.BELOW_MINIMUM,
            )
        return ValidationResult(is_valid=True)

    @staticmethod
    def validate_against_balance(
        amount: Decimal, fee: Decimal, balance: WalletBalance
    ) -> ValidationResult:
        total = amount + fee
        if total > balance.available:
            return ValidationResult(
                is_valid=False,
                error_message=f"Insufficient balance. ₦{total:,} needed, ₦{balance.available:,} available",
                error_code=ErrorKind.INSUFFICIENT_BALANCE,
            )
        return ValidationResult(is_valid=True)

    @classmethod
    def validate(
        cls,
        amount: str,
        balance: WalletBalance,
        fee: Decimal,
        minimum: Decimal | None = None,
    ) -> ValidationResult:
        parse_result = cls.parse_human_amount(amount)
        if not parse_result.is_valid:
            return parse_result

        parsed = parse_result.normalized_value

        decimal_result = cls.validate_decimal_places(parsed)
        if not decimal_result.is_valid:
            return decimal_result

        normalized = parsed.quantize(MINOR_UNIT)

        minimum_result = cls.validate_minimum(normalized, minimum)
        if not minimum_result.is_valid:
            return minimum_result

        balance_result = cls.validate_against_balance(normalized, fee, balance)
        if not balance_result.is_valid:
            return balance_result

        return ValidationResult(is_valid=True, normalized_value=normalized)
