"""Input validation utilities for recipient identifiers and secrets."""

import re
from dataclasses import dataclass
from typing import Any

from payflow.shared.errors import ErrorKind

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
STORE_CODE_PATTERN = re.compile(r"^[A-Za-z0-9]+/[A-Za-z0-9]+$")


@dataclass
class ValidationResult:
    is_valid: bool
    error_message: str | None = None
    normalized_value: Any = None
    error_code: ErrorKind | None = None


class AccountNumberValidator:
    ACCOUNT_NUMBER_LENGTH = 10

    @staticmethod
    def validate(value: str) -> ValidationResult:
        if not value or not value.strip():
            return ValidationResult(
                is_valid=False,
                error_message="Account number is required",
                error_code=ErrorKind.RECIPIENT_NOT_FOUND,
            )

        normalized = value.strip().replace(" ", "")

        if not normalized.isascii() or not normalized.isdigit():
            return ValidationResult(
                is_valid=False,
                error_message="Account number must contain only digits",
                error_code=ErrorKind.RECIPIENT_NOT_FOUND,
            )

        if len(normalized) != AccountNumberValidator.ACCOUNT_NUMBER_LENGTH:
            return ValidationResult(
                is_valid=False,
                error_message=f"Account number must be {AccountNumberValidator.ACCOUNT_NUMBER_LENGTH} digits",
                error_code=ErrorKind.RECIPIENT_NOT_FOUND,
            )

        return ValidationResult(is_valid=True, normalized_value=normalized)


class RecipientIdentifierValidator:
    @staticmethod
    def validate(value: str) -> ValidationResult:
        if not value or not value.strip():
            return ValidationResult(
                is_valid=False,
                error_message="Recipient is required",
                error_code=ErrorKind.RECIPIENT_NOT_FOUND,
            )

        normalized = value.strip()

        if EMAIL_PATTERN.match(normalized):
            return ValidationResult(is_valid=True, normalized_value=normalized.lower())

        if STORE_CODE_PATTERN.match(normalized):
            return ValidationResult(is_valid=True, normalized_value=normalized)

        return ValidationResult(
            is_valid=False,
            error_message="Recipient must be an email address or a store code",
            error_code=ErrorKind.RECIPIENT_NOT_FOUND,
        )


class SecretFormatValidator:
    PIN_LENGTH = 4

    @staticmethod
    def validate_digits(value: str, length: int, label: str) -> ValidationResult:
        if not value:
            return ValidationResult(
                is_valid=False,
                error_message=f"Please enter your {length}-digit {label}.",
                error_code=ErrorKind.INVALID_SECRET,
            )

        if not value.isascii() or not value.isdigit():
            return ValidationResult(
                is_valid=False,
                error_message=f"{label} must contain only numbers (0-9).",
                error_code=ErrorKind.INVALID_SECRET,
            )

        if len(value) != length:
            return ValidationResult(
                is_valid=False,
                error_message=f"{label} must be exactly {length} digits.",
                error_code=ErrorKind.INVALID_SECRET,
            )

        return ValidationResult(is_valid=True, normalized_value=value)

    @classmethod
    def validate_pin(cls, value: str) -> ValidationResult:
        return cls.validate_digits(value, cls.PIN_LENGTH, "PIN")

    @classmethod
    def validate_otp(cls, value: str, length: int = 6) -> ValidationResult:
        return cls.validate_digits(value, length, "OTP")
