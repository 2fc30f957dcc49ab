"""Tests for identifier and secret format validators."""

from payflow.shared.errors import ErrorKind
from payflow.shared.validation import (
    AccountNumberValidator,
    RecipientIdentifierValidator,
    SecretFormatValidator,
)


class TestAccountNumberValidator:
    def test_valid_account_number(self):
        result = AccountNumberValidator.validate("0123456789")
        assert result.is_valid is True
        assert result.normalized_value == "0123456789"

    def test_strips_spaces(self):
        result = AccountNumberValidator.validate(" 01234 56789 ")
        assert result.normalized_value == "0123456789"

    def test_empty(self):
        result = AccountNumberValidator.validate("")
        assert result.is_valid is False
        assert "required" in result.error_message.lower()

    def test_non_digits(self):
        result = AccountNumberValidator.validate("01234abc89")
        assert result.is_valid is False
        assert result.error_code == ErrorKind.RECIPIENT_NOT_FOUND

    def test_non_ascii_digits(self):
        result = AccountNumberValidator.validate("\u0660\u0661\u0662\u0663\u0664\u0665\u0666\u0667\u0668\u0669")
        assert result.is_valid is False
        assert result.error_code == ErrorKind.RECIPIENT_NOT_FOUND

    def test_wrong_length(self):
        result = AccountNumberValidator.validate("123456789")
        assert result.is_valid is False
        assert "10 digits" in result.error_message


class TestRecipientIdentifierValidator:
    def test_email_is_lowercased(self):
        result = RecipientIdentifierValidator.validate(" Kid@Example.com ")
        assert result.is_valid is True
        assert result.normalized_value == "kid@example.com"

    def test_store_code(self):
        result = RecipientIdentifierValidator.validate("STORE01/AGENT7")
        assert result.is_valid is True
        assert result.normalized_value == "STORE01/AGENT7"

    def test_blank(self):
        assert RecipientIdentifierValidator.validate("   ").is_valid is False

    def test_garbage(self):
        result = RecipientIdentifierValidator.validate("not a recipient")
        assert result.is_valid is False
        assert result.error_code == ErrorKind.RECIPIENT_NOT_FOUND


class TestSecretFormatValidator:
    def test_valid_pin(self):
        assert SecretFormatValidator.validate_pin("1234").is_valid is True

    def test_pin_too_short(self):
        result = SecretFormatValidator.validate_pin("123")
        assert result.is_valid is False
        assert "exactly 4 digits" in result.error_message

    def test_pin_with_letters(self):
        result = SecretFormatValidator.validate_pin("12a4")
        assert result.is_valid is False
        assert "only numbers" in result.error_message

    def test_pin_rejects_non_ascii_digits(self):
        assert SecretFormatValidator.validate_pin("١٢٣٤").is_valid is False

    def test_empty_pin(self):
        result = SecretFormatValidator.validate_pin("")
        assert result.error_code == ErrorKind.INVALID_SECRET

    def test_otp_length_is_configurable(self):
        assert SecretFormatValidator.validate_otp("123456").is_valid is True
        assert SecretFormatValidator.validate_otp("1234", length=4).is_valid is True
        assert SecretFormatValidator.validate_otp("1234").is_valid is False
