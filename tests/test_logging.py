"""Tests for log sanitisation, formatters and logger context."""

import json
import logging

from payflow.shared.logging import (
    ContextAdapter,
    HumanReadableFormatter,
    LoggingConfig,
    LogLevel,
    StructuredFormatter,
    get_logger,
    mask_account_number,
    sanitize_dict,
    sanitize_message,
)


def _record(msg, *args, context=None):
    record = logging.LogRecord(
        name="payflow.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=args,
        exc_info=None,
    )
    if context is not None:
        record.context = context
    return record


class TestSanitizeMessage:
    def test_redacts_pin(self):
        assert sanitize_message('{"pin": "1234"}') == '{"pin": "[REDACTED]"}'

    def test_redacts_otp(self):
        assert "482910" not in sanitize_message("otp=482910 submitted")

    def test_redacts_bearer_token(self):
        sanitized = sanitize_message("Authorization: Bearer eyJhbGciOi.abc.def")
        assert "eyJhbGciOi" not in sanitized
        assert "[REDACTED]" in sanitized

    def test_redacts_idempotency_key(self):
        sanitized = sanitize_message("idempotency_key=3f2a-99bc-11ee")
        assert "3f2a-99bc-11ee" not in sanitized

    def test_masks_account_numbers_on_request(self):
        assert sanitize_message("account 0123456789", preserve_accounts=False) == (
            "account ******6789"
        )
        assert sanitize_message("account 0123456789") == "account 0123456789"

    def test_empty_message(self):
        assert sanitize_message("") == ""


class TestSanitizeDict:
    def test_redacts_sensitive_keys(self):
        data = {"pin": "1234", "accessToken": "abc", "amount": 500}
        result = sanitize_dict(data)
        assert result["pin"] == "[REDACTED]"
        assert result["accessToken"] == "[REDACTED]"
        assert result["amount"] == 500

    def test_nested_values(self):
        data = {"request": {"otp": "123456", "note": "pin: 9999"}, "items": ["pin=1111", 3]}
        result = sanitize_dict(data)
        assert result["request"]["otp"] == "[REDACTED]"
        assert "9999" not in result["request"]["note"]
        assert "1111" not in result["items"][0]
        assert result["items"][1] == 3


class TestMaskAccountNumber:
    def test_keeps_last_four(self):
        assert mask_account_number("0123456789") == "******6789"

    def test_short_values_unchanged(self):
        assert mask_account_number("123") == "123"


class TestLoggingConfig:
    def test_from_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PAYFLOW_LOG_LEVEL", "debug")
        monkeypatch.setenv("PAYFLOW_LOG_STDOUT", "true")
        monkeypatch.setenv("PAYFLOW_LOG_DIR", str(tmp_path))
        config = LoggingConfig.from_environment()
        assert config.log_level == LogLevel.DEBUG
        assert config.log_to_stdout is True
        assert config.log_dir == tmp_path

    def test_unknown_level_defaults_to_info(self, monkeypatch):
        monkeypatch.setenv("PAYFLOW_LOG_LEVEL", "chatty")
        assert LoggingConfig.from_environment().log_level == LogLevel.INFO


class TestFormatters:
    def test_structured_formatter_sanitizes_context(self):
        formatter = StructuredFormatter()
        output = json.loads(
            formatter.format(_record("Submitting pin=1234", context={"pin": "1234", "amount": 5}))
        )
        assert "1234" not in output["message"]
        assert output["context"] == {"pin": "[REDACTED]", "amount": 5}
        assert output["level"] == "INFO"

    def test_human_readable_formatter_sanitizes_args(self):
        formatter = HumanReadableFormatter()
        output = formatter.format(_record("Header %s", "Bearer secret-token"))
        assert "secret-token" not in output


class TestContextAdapter:
    def test_get_logger_returns_adapter(self):
        assert isinstance(get_logger("payflow.test"), ContextAdapter)

    def test_with_context_merges(self):
        adapter = get_logger("payflow.test", {"flow": "transfer"}).with_context(step="review")
        assert adapter.extra == {"flow": "transfer", "step": "review"}

    def test_process_nests_context(self):
        adapter = get_logger("payflow.test", {"flow": "withdrawal"})
        _, kwargs = adapter.process("msg", {"extra": {"context": {"step": "otp"}}})
        assert kwargs["extra"]["context"] == {"flow": "withdrawal", "step": "otp"}
