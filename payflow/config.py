"""Runtime configuration for payflow."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from pathlib import Path

from payflow.shared.logging import get_logger
from payflow.shared.network import RetryConfig, TimeoutConfig

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://nodes-staging.up.railway.app"


class FeePolicy(Enum):
    """What to do when no active charge matches a category."""

    FAIL_OPEN = "fail_open"
    FAIL_CLOSED = "fail_closed"


@dataclass
class PayflowConfig:
    base_url: str = DEFAULT_BASE_URL
    timeout_config: TimeoutConfig = field(default_factory=TimeoutConfig)
    retry_config: RetryConfig = field(default_factory=RetryConfig)
    fee_cache_ttl: float = 300.0
    fee_policy: FeePolicy = FeePolicy.FAIL_OPEN
    withdrawal_minimum: Decimal | None = Decimal("1000")
    transfer_minimum: Decimal | None = None
    history_limit: int = 50
    otp_length: int = 6
    refresh_after_settle: bool = True

    @classmethod
    def from_environment(cls) -> "PayflowConfig":
        config = cls()
        config.base_url = os.getenv("PAYFLOW_API_BASE_URL", config.base_url)

        ttl = os.getenv("PAYFLOW_FEE_CACHE_TTL")
        if ttl:
            config.fee_cache_ttl = float(ttl)

        policy = os.getenv("PAYFLOW_FEE_POLICY")
        if policy:
            try:
                config.fee_policy = FeePolicy(policy.lower())
            except ValueError:
                logger.warning("Unknown fee policy %r, keeping %s", policy, config.fee_policy.value)

        minimum = os.getenv("PAYFLOW_WITHDRAWAL_MINIMUM")
        if minimum:
            config.withdrawal_minimum = Decimal(minimum)

        minimum = os.getenv("PAYFLOW_TRANSFER_MINIMUM")
        if minimum:
            config.transfer_minimum = Decimal(minimum)

        return config

    @classmethod
    def load(cls, path: str | Path) -> "PayflowConfig":
        config_file = Path(path).expanduser()
        config = cls()
        if not config_file.exists():
            return config

        with open(config_file, "r") as f:
            data = json.load(f)

        config.base_url = data.get("base_url", config.base_url)
        timeout_cfg = data.get("timeout", {})
        if timeout_cfg:
            config.timeout_config = TimeoutConfig(
                connect_timeout=timeout_cfg.get("connect_timeout", 5.0),
                read_timeout=timeout_cfg.get("read_timeout", 15.0),
                operation_timeout=timeout_cfg.get("operation_timeout", 30.0),
            )
        retry_cfg = data.get("retry", {})
        if retry_cfg:
            config.retry_config = RetryConfig(
                max_retries=retry_cfg.get("max_retries", 3),
                base_delay=retry_cfg.get("base_delay", 1.0),
                max_delay=retry_cfg.get("max_delay", 30.0),
            )
        fees_cfg = data.get("fees", {})
        if fees_cfg:
            config.fee_cache_ttl = fees_cfg.get("cache_ttl", config.fee_cache_ttl)
            config.fee_policy = FeePolicy(fees_cfg.get("policy", config.fee_policy.value))
        limits_cfg = data.get("limits", {})
        if "withdrawal_minimum" in limits_cfg:
            value = limits_cfg["withdrawal_minimum"]
            config.withdrawal_minimum = Decimal(str(value)) if value is not None else None
        if "transfer_minimum" in limits_cfg:
            value = limits_cfg["transfer_minimum"]
            config.transfer_minimum = Decimal(str(value)) if value is not None else None
        config.history_limit = data.get("history_limit", config.history_limit)
        config.otp_length = data.get("otp_length", config.otp_length)
        config.refresh_after_settle = data.get(
            "refresh_after_settle", config.refresh_after_settle
        )
        return config

    def save(self, path: str | Path) -> None:
        config_file = Path(path).expanduser()
        config_file.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "base_url": self.base_url,
            "timeout": {
                "connect_timeout": self.timeout_config.connect_timeout,
                "read_timeout": self.timeout_config.read_timeout,
                "operation_timeout": self.timeout_config.operation_timeout,
            },
            "retry": {
                "max_retries": self.retry_config.max_retries,
                "base_delay": self.retry_config.base_delay,
                "max_delay": self.retry_config.max_delay,
            },
            "fees": {
                "cache_ttl": self.fee_cache_ttl,
                "policy": self.fee_policy.value,
            },
            "limits": {
                "withdrawal_minimum": str(self.withdrawal_minimum)
                if self.withdrawal_minimum is not None
                else None,
                "transfer_minimum": str(self.transfer_minimum)
                if self.transfer_minimum is not None
                else None,
            },
            "history_limit": self.history_limit,
            "otp_length": self.otp_length,
            "refresh_after_settle": self.refresh_after_settle,
        }
        with open(config_file, "w") as f:
            json.dump(data, f, indent=2)
