"""Tests for fee resolution and the fee schedule cache."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from payflow.config import FeePolicy, PayflowConfig
from payflow.features.fees.service import FeeResolver
from payflow.models import TransactionCategory
from payflow.shared.errors import FeeLookupError, ServerError, SubmissionNetworkError


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


class TestResolveFee:
    def test_active_transfer_charge(self, fee_resolver):
        assert fee_resolver.resolve_fee(TransactionCategory.TRANSFER) == Decimal("50.00")

    def test_no_active_transfer_charge_defaults_to_zero(self, ledger_factory, config, caplog):
        ledger = ledger_factory(
            charges=[
                {"name": "Transfer Charge", "amount": 50, "status": "Inactive"},
                {"name": "Withdrawal Fee", "amount": 100, "status": "Active"},
            ]
        )
        resolver = FeeResolver(ledger, config)

        with caplog.at_level("WARNING"):
            fee = resolver.resolve_fee(TransactionCategory.TRANSFER)

        assert fee == Decimal("0")
        assert "fail-open" in caplog.text

    def test_empty_schedule_defaults_to_zero(self, ledger_factory, config):
        resolver = FeeResolver(ledger_factory(charges=[]), config)
        assert resolver.resolve_fee(TransactionCategory.WITHDRAWAL) == Decimal("0")

    def test_fail_closed_policy_raises(self, ledger_factory):
        config = PayflowConfig(fee_policy=FeePolicy.FAIL_CLOSED)
        resolver = FeeResolver(ledger_factory(charges=[]), config)
        with pytest.raises(FeeLookupError):
            resolver.resolve_fee(TransactionCategory.TRANSFER)

    def test_unreachable_server_raises(self, fake_ledger, fee_resolver, make_timeout):
        fake_ledger.fail_next("get_charges", make_timeout("Fetch charges"))
        with pytest.raises(FeeLookupError):
            fee_resolver.resolve_fee(TransactionCategory.TRANSFER)


class TestScheduleCache:
    def test_schedule_fetched_once(self, fake_ledger, config, clock):
        resolver = FeeResolver(fake_ledger, config, clock=clock)
        resolver.resolve_fee(TransactionCategory.TRANSFER)
        clock.advance(config.fee_cache_ttl - 1)
        resolver.resolve_fee(TransactionCategory.WITHDRAWAL)
        assert fake_ledger.call_count("get_charges") == 1

    def test_refetch_after_ttl(self, fake_ledger, config, clock):
        resolver = FeeResolver(fake_ledger, config, clock=clock)
        resolver.resolve_fee(TransactionCategory.TRANSFER)
        clock.advance(config.fee_cache_ttl)
        fake_ledger.charges = [{"name": "transfer", "amount": 75, "status": "Active"}]
        assert resolver.resolve_fee(TransactionCategory.TRANSFER) == Decimal("75.00")
        assert fake_ledger.call_count("get_charges") == 2

    def test_invalidate_forces_refetch(self, fake_ledger, fee_resolver):
        fee_resolver.schedule()
        fee_resolver.invalidate()
        fee_resolver.schedule()
        assert fake_ledger.call_count("get_charges") == 2

    def test_failed_fetch_is_not_cached(self, fake_ledger, fee_resolver, make_timeout):
        fake_ledger.fail_next("get_charges", make_timeout("Fetch charges"))
        with pytest.raises(FeeLookupError):
            fee_resolver.schedule()
        assert fee_resolver.resolve_fee(TransactionCategory.TRANSFER) == Decimal("50.00")


class TestPreviewWithdrawal:
    def test_uses_server_charge(self, fee_resolver):
        quote = fee_resolver.preview_withdrawal(Decimal("2000"))
        assert quote.amount == Decimal("2000.00")
        assert quote.charge == Decimal("100.00")
        assert quote.total == Decimal("2100.00")

    def test_missing_charge_is_zero(self, fake_ledger, fee_resolver):
        fake_ledger.validate_withdrawal = lambda amount: {"data": {"amount": 2000}}
        assert fee_resolver.preview_withdrawal(Decimal("2000")).charge == Decimal("0.00")

    def test_network_failure(self, fake_ledger, fee_resolver, make_timeout):
        fake_ledger.fail_next("validate_withdrawal", make_timeout("Validate withdrawal"))
        with pytest.raises(SubmissionNetworkError):
            fee_resolver.preview_withdrawal(Decimal("2000"))

    def test_server_rejection(self, fake_ledger, fee_resolver, make_http_error):
        fake_ledger.fail_next("validate_withdrawal", make_http_error(500, "Service down"))
        with pytest.raises(ServerError):
            fee_resolver.preview_withdrawal(Decimal("2000"))

    def test_unreadable_charge(self, fake_ledger, fee_resolver):
        fake_ledger.validate_withdrawal = lambda amount: {"amount": 2000, "charge": "N/A"}
        with pytest.raises(FeeLookupError):
            fee_resolver.preview_withdrawal(Decimal("2000"))
