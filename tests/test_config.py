"""Tests for payflow runtime configuration."""

import json
from decimal import Decimal

from payflow.config import DEFAULT_BASE_URL, FeePolicy, PayflowConfig
from payflow.shared.network import RetryConfig, TimeoutConfig


class TestPayflowConfigDefaults:
    def test_defaults(self):
        config = PayflowConfig()
        assert config.base_url == DEFAULT_BASE_URL
        assert config.fee_cache_ttl == 300.0
        assert config.fee_policy == FeePolicy.FAIL_OPEN
        assert config.withdrawal_minimum == Decimal("1000")
        assert config.transfer_minimum is None
        assert config.history_limit == 50
        assert config.otp_length == 6
        assert config.refresh_after_settle is True


class TestPayflowConfigEnvironment:
    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("PAYFLOW_API_BASE_URL", "http://ledger.local")
        monkeypatch.setenv("PAYFLOW_FEE_CACHE_TTL", "60")
        monkeypatch.setenv("PAYFLOW_FEE_POLICY", "FAIL_CLOSED")
        monkeypatch.setenv("PAYFLOW_WITHDRAWAL_MINIMUM", "500")
        monkeypatch.setenv("PAYFLOW_TRANSFER_MINIMUM", "100")

        config = PayflowConfig.from_environment()

        assert config.base_url == "http://ledger.local"
        assert config.fee_cache_ttl == 60.0
        assert config.fee_policy == FeePolicy.FAIL_CLOSED
        assert config.withdrawal_minimum == Decimal("500")
        assert config.transfer_minimum == Decimal("100")

    def test_unknown_fee_policy_keeps_default(self, monkeypatch):
        monkeypatch.setenv("PAYFLOW_FEE_POLICY", "sometimes")
        assert PayflowConfig.from_environment().fee_policy == FeePolicy.FAIL_OPEN

    def test_empty_environment_gives_defaults(self):
        assert PayflowConfig.from_environment() == PayflowConfig()


class TestPayflowConfigFile:
    def test_load_missing_file_returns_defaults(self, tmp_path):
        assert PayflowConfig.load(tmp_path / "missing.json") == PayflowConfig()

    def test_save_and_load(self, tmp_path):
        config = PayflowConfig(
            base_url="http://ledger.local",
            timeout_config=TimeoutConfig(connect_timeout=2.0, read_timeout=8.0),
            retry_config=RetryConfig(max_retries=1, base_delay=0.5),
            fee_cache_ttl=120.0,
            fee_policy=FeePolicy.FAIL_CLOSED,
            withdrawal_minimum=None,
            transfer_minimum=Decimal("50"),
            history_limit=20,
            otp_length=4,
            refresh_after_settle=False,
        )
        path = tmp_path / "nested" / "config.json"
        config.save(path)

        loaded = PayflowConfig.load(path)

        assert loaded.base_url == "http://ledger.local"
        assert loaded.timeout_config.connect_timeout == 2.0
        assert loaded.timeout_config.read_timeout == 8.0
        assert loaded.retry_config.max_retries == 1
        assert loaded.fee_cache_ttl == 120.0
        assert loaded.fee_policy == FeePolicy.FAIL_CLOSED
        assert loaded.withdrawal_minimum is None
        assert loaded.transfer_minimum == Decimal("50")
        assert loaded.history_limit == 20
        assert loaded.otp_length == 4
        assert loaded.refresh_after_settle is False

    def test_saved_file_layout(self, tmp_path):
        path = tmp_path / "config.json"
        PayflowConfig().save(path)
        data = json.loads(path.read_text())
        assert set(data) >= {"base_url", "timeout", "retry", "fees", "limits"}
        assert data["limits"]["withdrawal_minimum"] == "1000"

    def test_partial_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"fees": {"policy": "fail_closed"}}))
        config = PayflowConfig.load(path)
        assert config.fee_policy == FeePolicy.FAIL_CLOSED
        assert config.fee_cache_ttl == 300.0
