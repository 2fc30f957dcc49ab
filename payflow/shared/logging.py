"""Centralized logging configuration for payflow.

This module provides:
- Configurable log levels (DEBUG for dev, INFO for prod)
- Sensitive data sanitization (PINs, OTPs, bearer tokens, idempotency keys)
- Structured logging with context fields
"""

from __future__ import annotations

import json
import logging
import os
import re
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any


class LogLevel(Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class LoggingConfig:
    log_level: LogLevel = LogLevel.INFO
    log_to_file: bool = True
    log_to_stdout: bool = False
    log_dir: Path | None = None
    log_filename: str = "payflow.log"
    sanitize_sensitive: bool = True
    include_context: bool = True

    @classmethod
    def from_environment(cls) -> "LoggingConfig":
        env_level = os.getenv("PAYFLOW_LOG_LEVEL", "INFO").upper()
        try:
            log_level = LogLevel(env_level)
        except ValueError:
            log_level = LogLevel.INFO

        log_to_stdout = os.getenv("PAYFLOW_LOG_STDOUT", "").lower() in (
            "1",
            "true",
            "yes",
        )

        log_dir_env = os.getenv("PAYFLOW_LOG_DIR")

        return cls(
            log_level=log_level,
            log_to_stdout=log_to_stdout,
            log_dir=Path(log_dir_env).expanduser() if log_dir_env else None,
        )


SENSITIVE_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (
        re.compile(
            r"(['\"]?(?:pin|otp|current_?pin|new_?pin)['\"]?\s*[:=]\s*['\"]?)(\d{4,8})",
            re.IGNORECASE,
        ),
        r"\1[REDACTED]",
    ),
    (
        re.compile(r"(bearer\s+)([A-Za-z0-9\-._~+/]+=*)", re.IGNORECASE),
        r"\1[REDACTED]",
    ),
    (
        re.compile(
            r"(idempotency[_-]?key['\"]?\s*[:=]\s*['\"]?)([A-Za-z0-9\-]+)",
            re.IGNORECASE,
        ),
        r"\1[REDACTED]",
    ),
    (
        re.compile(
            r"(password['\"]?\s*[:=]\s*['\"]?)([^\s'\"]+)",
            re.IGNORECASE,
        ),
        r"\1[REDACTED]",
    ),
]

ACCOUNT_NUMBER_PATTERN = re.compile(r"\b\d{10}\b")

SENSITIVE_KEYS = ("pin", "otp", "secret", "token", "password", "authorization")


def mask_account_number(account_number: str) -> str:
    if len(account_number) <= 4:
        return account_number
    return "*" * (len(account_number) - 4) + account_number[-4:]


def sanitize_message(message: str, preserve_accounts: bool = True) -> str:
    if not message:
        return message

    sanitized = message
    for pattern, replacement in SENSITIVE_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)

    if not preserve_accounts:
        sanitized = ACCOUNT_NUMBER_PATTERN.sub(
            lambda m: mask_account_number(m.group(0)), sanitized
        )

    return sanitized


def sanitize_dict(
    data: dict[str, Any], preserve_accounts: bool = True
) -> dict[str, Any]:
    result = {}
    for key, value in data.items():
        key_lower = key.lower()
        if any(sensitive in key_lower for sensitive in SENSITIVE_KEYS):
            result[key] = "[REDACTED]"
        elif isinstance(value, str):
            result[key] = sanitize_message(value, preserve_accounts)
        elif isinstance(value, dict):
            result[key] = sanitize_dict(value, preserve_accounts)
        elif isinstance(value, list):
            result[key] = [
                sanitize_dict(item, preserve_accounts)
                if isinstance(item, dict)
                else sanitize_message(str(item), preserve_accounts)
                if isinstance(item, str)
                else item
                for item in value
            ]
        else:
            result[key] = value
    return result


class StructuredFormatter(logging.Formatter):
    def __init__(
        self,
        sanitize: bool = True,
        include_context: bool = True,
        preserve_accounts: bool = True,
    ):
        super().__init__()
        self.sanitize = sanitize
        self.include_context = include_context
        self.preserve_accounts = preserve_accounts

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_context:
            log_data["module"] = record.module
            log_data["function"] = record.funcName
            log_data["line"] = record.lineno

        extra_data = getattr(record, "context", None)
        if extra_data and isinstance(extra_data, dict):
            if self.sanitize:
                extra_data = sanitize_dict(extra_data, self.preserve_accounts)
            log_data["context"] = extra_data

        if record.exc_info:
            exc_text = self.formatException(record.exc_info)
            if self.sanitize:
                exc_text = sanitize_message(exc_text, self.preserve_accounts)
            log_data["exception"] = exc_text

        if self.sanitize:
            log_data["message"] = sanitize_message(
                log_data["message"], self.preserve_accounts
            )

        try:
            return json.dumps(log_data, default=str)
        except (TypeError, ValueError):
            return f"{log_data['timestamp']} - {log_data['logger']} - {log_data['level']} - {log_data['message']}"


class HumanReadableFormatter(logging.Formatter):
    def __init__(
        self,
        sanitize: bool = True,
        preserve_accounts: bool = True,
    ):
        super().__init__(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        self.sanitize = sanitize
        self.preserve_accounts = preserve_accounts

    def format(self, record: logging.LogRecord) -> str:
        if self.sanitize and record.msg:
            record.msg = sanitize_message(str(record.msg), self.preserve_accounts)
            if record.args:
                sanitized_args = tuple(
                    sanitize_message(str(arg), self.preserve_accounts)
                    if isinstance(arg, str)
                    else arg
                    for arg in record.args
                )
                record.args = sanitized_args

        return super().format(record)


class ContextAdapter(logging.LoggerAdapter):
    def __init__(
        self,
        logger: logging.Logger,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(logger, context or {})

    def process(
        self,
        msg: str,
        kwargs: dict[str, Any],
    ) -> tuple[str, dict[str, Any]]:
        extra = kwargs.get("extra", {})
        if self.extra:
            context = {**self.extra, **extra.get("context", {})}
            extra = {**extra, "context": context}
        kwargs["extra"] = extra
        return msg, kwargs

    def with_context(self, **kwargs: Any) -> "ContextAdapter":
        new_context = {**self.extra, **kwargs}
        return ContextAdapter(self.logger, new_context)


_logging_initialized = False


def setup_logging(config: LoggingConfig | None = None) -> None:
    global _logging_initialized

    if _logging_initialized:
        return

    if config is None:
        config = LoggingConfig.from_environment()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, config.log_level.value))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    log_format = (
        "json"
        if os.getenv("PAYFLOW_LOG_FORMAT", "human").lower() == "json"
        else "human"
    )

    handlers: list[logging.Handler] = []

    if config.log_to_file:
        if config.log_dir is None:
            config.log_dir = Path.home() / ".payflow"
        config.log_dir.mkdir(parents=True, exist_ok=True)
        log_file = config.log_dir / config.log_filename

        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        if log_format == "json":
            file_handler.setFormatter(
                StructuredFormatter(
                    sanitize=config.sanitize_sensitive,
                    include_context=config.include_context,
                )
            )
        else:
            file_handler.setFormatter(
                HumanReadableFormatter(sanitize=config.sanitize_sensitive)
            )
        handlers.append(file_handler)

    if config.log_to_stdout:
        stdout_handler = logging.StreamHandler(sys.stdout)
        if log_format == "json":
            stdout_handler.setFormatter(
                StructuredFormatter(
                    sanitize=config.sanitize_sensitive,
                    include_context=config.include_context,
                )
            )
        else:
            stdout_handler.setFormatter(
                HumanReadableFormatter(sanitize=config.sanitize_sensitive)
            )
        handlers.append(stdout_handler)

    for handler in handlers:
        root_logger.addHandler(handler)

    _logging_initialized = True


def get_logger(
    name: str,
    context: dict[str, Any] | None = None,
) -> ContextAdapter:
    logger = logging.getLogger(name)
    return ContextAdapter(logger, context)


__all__ = [
    "LogLevel",
    "LoggingConfig",
    "ContextAdapter",
    "StructuredFormatter",
    "HumanReadableFormatter",
    "mask_account_number",
    "sanitize_message",
    "sanitize_dict",
    "setup_logging",
    "get_logger",
]
