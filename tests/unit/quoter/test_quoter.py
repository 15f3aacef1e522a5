"""Tests for the quote/execution helper."""

from decimal import Decimal

import pytest

from simpledex.errors import (
    InsufficientBalance,
    InsufficientLiquidity,
    InsufficientLiquidityBalance,
    QuoteExpired,
    SlippageExceeded,
)
from simpledex.pool import Direction, Pool
from simpledex.quoter import (
    SWAP_A_FOR_B_SELECTOR,
    SWAP_B_FOR_A_SELECTOR,
    SwapQuoter,
    exchange_rate,
    format_units,
    price_impact_bps,
)
from tests.helpers import (
    LP,
    LP2,
    POOL_ACCOUNT,
    RECIPIENT,
    TRADER,
    USDC,
    WLD,
    make_pool,
    make_seeded_pool,
    make_wld_usdc_tokens,
)

ONE_WLD = 10**18
ONE_USDC = 10**6


def expected_out(amount_in: int, reserve_in: int, reserve_out: int) -> int:
    return amount_in * 9970 * reserve_out // (reserve_in * 10000 + amount_in * 9970)


def pool_state(quoter: SwapQuoter) -> tuple:
    return quoter.pool.get_pool_info(), quoter.pool.positions


class TestFormatting:
    """Tests for unit conversion helpers."""

    def test_format_units(self):
        assert format_units(2_467_895, 6) == Decimal("2.467895")
        assert format_units(10**18, 18) == Decimal(1)
        assert format_units(0, 6) == Decimal(0)

    def test_exchange_rate_across_decimals(self):
        wld, usdc = make_wld_usdc_tokens()
        assert exchange_rate(100 * ONE_WLD, 250 * ONE_USDC, wld, usdc) == Decimal("2.5")
        assert exchange_rate(250 * ONE_USDC, 100 * ONE_WLD, usdc, wld) == Decimal("0.4")

    def test_exchange_rate_zero_input(self):
        wld, usdc = make_wld_usdc_tokens()
        assert exchange_rate(0, 100, wld, usdc) == Decimal(0)


class TestPriceImpact:
    """Tests for price impact estimation."""

    def test_small_pool(self):
        # Price 1.0 -> 910/1100 = 0.8272...
        assert price_impact_bps(100, 90, 1000, 1000, 10**18) == 1727

    def test_drain_reports_full_impact(self):
        assert price_impact_bps(10**9, 1000, 1000, 1000, 10**18) == 10_000

    def test_never_negative(self):
        assert price_impact_bps(0, 0, 1000, 1000, 10**18) == 0

    def test_empty_pool(self):
        assert price_impact_bps(100, 0, 0, 0, 10**18) == 0


class TestGetSwapQuote:
    """Tests for quoting swaps on the helper."""

    def test_quote_wld_to_usdc(self, quoter, clock):
        quote = quoter.get_swap_quote(Direction.A_TO_B, ONE_WLD)

        expected = expected_out(ONE_WLD, 100 * ONE_WLD, 250 * ONE_USDC)
        assert quote.expected_output == expected
        assert quote.min_output == expected * 9850 // 10000
        assert quote.slippage_bps == 150
        assert quote.exchange_rate == Decimal("2.5")
        assert quote.price_impact_bps == 196
        assert quote.token_in.symbol == "WLD"
        assert quote.token_out.symbol == "USDC"
        assert (quote.reserve_in, quote.reserve_out) == (100 * ONE_WLD, 250 * ONE_USDC)
        assert quote.timestamp == clock.now
        assert quote.expires_at == clock.now + 600

    def test_quote_usdc_to_wld(self, quoter):
        quote = quoter.get_swap_quote(Direction.B_TO_A, 10 * ONE_USDC, slippage_bps=50)

        assert quote.expected_output == expected_out(10 * ONE_USDC, 250 * ONE_USDC, 100 * ONE_WLD)
        assert quote.min_output == quote.expected_output * 9950 // 10000
        assert quote.exchange_rate == Decimal("0.4")

    def test_quote_does_not_mutate(self, quoter):
        before = pool_state(quoter)
        quoter.get_swap_quote(Direction.A_TO_B, ONE_WLD)
        assert pool_state(quoter) == before

    def test_zero_slippage(self, quoter):
        quote = quoter.get_swap_quote(Direction.A_TO_B, ONE_WLD, slippage_bps=0)
        assert quote.min_output == quote.expected_output

    @pytest.mark.parametrize("slippage_bps", [-1, 10_001])
    def test_invalid_slippage(self, quoter, slippage_bps):
        with pytest.raises(ValueError):
            quoter.get_swap_quote(Direction.A_TO_B, ONE_WLD, slippage_bps=slippage_bps)

    def test_unseeded_pool(self):
        quoter = SwapQuoter(make_pool())
        with pytest.raises(InsufficientLiquidity):
            quoter.get_swap_quote(Direction.A_TO_B, 100)

    def test_expiry(self, quoter, clock):
        quote = quoter.get_swap_quote(Direction.A_TO_B, ONE_WLD)
        assert not quote.is_expired(clock.now + 600)
        assert quote.is_expired(clock.now + 601)


class TestExecuteSwap:
    """Tests for swap execution with ledger settlement."""

    def test_execute_with_quote(self, quoter, ledger):
        quote = quoter.get_swap_quote(Direction.A_TO_B, ONE_WLD)

        execution = quoter.execute_swap(Direction.A_TO_B, ONE_WLD, TRADER, quote=quote)

        out = quote.expected_output
        assert execution.amount_out == out
        assert execution.slippage_used_bps == 0
        assert execution.recipient == TRADER
        assert ledger.balance_of(WLD, TRADER) == 49 * ONE_WLD
        assert ledger.balance_of(USDC, TRADER) == 100 * ONE_USDC + out
        assert ledger.balance_of(WLD, POOL_ACCOUNT) == 101 * ONE_WLD
        assert ledger.balance_of(USDC, POOL_ACCOUNT) == 250 * ONE_USDC - out
        assert quoter.pool.reserve_a == 101 * ONE_WLD
        assert quoter.pool.reserve_b == 250 * ONE_USDC - out

    def test_balances_reported(self, quoter):
        execution = quoter.execute_swap(Direction.A_TO_B, ONE_WLD, TRADER)

        assert execution.balances_before == {
            "trader_WLD": 50 * ONE_WLD,
            "recipient_USDC": 100 * ONE_USDC,
        }
        assert execution.balances_after == {
            "trader_WLD": 49 * ONE_WLD,
            "recipient_USDC": 100 * ONE_USDC + execution.amount_out,
        }

    def test_effective_rate(self, quoter):
        execution = quoter.execute_swap(Direction.A_TO_B, ONE_WLD, TRADER)
        assert execution.effective_rate == format_units(execution.amount_out, 6)

    def test_output_to_other_recipient(self, quoter, ledger):
        execution = quoter.execute_swap(Direction.B_TO_A, 10 * ONE_USDC, TRADER, recipient=RECIPIENT)

        assert ledger.balance_of(WLD, RECIPIENT) == execution.amount_out
        assert ledger.balance_of(USDC, TRADER) == 90 * ONE_USDC
        assert ledger.balance_of(WLD, TRADER) == 50 * ONE_WLD

    def test_history(self, quoter):
        first = quoter.execute_swap(Direction.A_TO_B, ONE_WLD, TRADER)
        second = quoter.execute_swap(Direction.B_TO_A, first.amount_out, TRADER)

        assert quoter.history == [first, second]
        quoter.history.clear()
        assert len(quoter.history) == 2

    def test_expired_quote_rejected(self, quoter, clock, ledger):
        quote = quoter.get_swap_quote(Direction.A_TO_B, ONE_WLD)
        clock.advance(601)
        before = pool_state(quoter)

        with pytest.raises(QuoteExpired):
            quoter.execute_swap(Direction.A_TO_B, ONE_WLD, TRADER, quote=quote)

        assert pool_state(quoter) == before
        assert ledger.balance_of(WLD, TRADER) == 50 * ONE_WLD

    def test_mismatched_quote_rejected(self, quoter):
        quote = quoter.get_swap_quote(Direction.A_TO_B, ONE_WLD)
        with pytest.raises(ValueError):
            quoter.execute_swap(Direction.A_TO_B, 2 * ONE_WLD, TRADER, quote=quote)
        with pytest.raises(ValueError):
            quoter.execute_swap(Direction.B_TO_A, ONE_WLD, TRADER, quote=quote)

    def test_quote_with_slippage_rejected(self, quoter):
        quote = quoter.get_swap_quote(Direction.A_TO_B, ONE_WLD)
        before = pool_state(quoter)

        with pytest.raises(ValueError):
            quoter.execute_swap(Direction.A_TO_B, ONE_WLD, TRADER, slippage_bps=50, quote=quote)

        assert pool_state(quoter) == before

    @pytest.mark.parametrize("account", ["alice", "0x1234"])
    def test_non_address_accounts_rejected(self, quoter, account):
        with pytest.raises(ValueError):
            quoter.execute_swap(Direction.A_TO_B, ONE_WLD, account)
        with pytest.raises(ValueError):
            quoter.execute_swap(Direction.A_TO_B, ONE_WLD, TRADER, recipient=account)
        with pytest.raises(ValueError):
            quoter.add_liquidity(ONE_WLD, ONE_USDC, account)
        assert quoter.history == []

    def test_insufficient_balance_leaves_pool_untouched(self, quoter, ledger):
        before = pool_state(quoter)

        with pytest.raises(InsufficientBalance):
            quoter.execute_swap(Direction.A_TO_B, ONE_WLD, RECIPIENT)

        assert pool_state(quoter) == before
        assert ledger.balance_of(USDC, RECIPIENT) == 0
        assert quoter.history == []

    def test_intervening_trade_trips_slippage(self, quoter, ledger):
        quote = quoter.get_swap_quote(Direction.A_TO_B, ONE_WLD)
        quoter.execute_swap(Direction.A_TO_B, 10 * ONE_WLD, LP)
        before = pool_state(quoter)

        with pytest.raises(SlippageExceeded):
            quoter.execute_swap(Direction.A_TO_B, ONE_WLD, TRADER, quote=quote)

        assert pool_state(quoter) == before
        assert ledger.balance_of(WLD, TRADER) == 50 * ONE_WLD

    def test_small_intervening_trade_within_tolerance(self, quoter):
        quote = quoter.get_swap_quote(Direction.A_TO_B, ONE_WLD)
        quoter.execute_swap(Direction.A_TO_B, ONE_WLD // 10, LP)

        execution = quoter.execute_swap(Direction.A_TO_B, ONE_WLD, TRADER, quote=quote)

        assert execution.amount_out < quote.expected_output
        assert 0 < execution.slippage_used_bps < 150

    def test_without_ledger(self):
        quoter = SwapQuoter(make_seeded_pool(1000, 1000))

        execution = quoter.execute_swap(Direction.A_TO_B, 100, TRADER)

        assert execution.amount_out == 90
        assert execution.balances_before == {}
        assert execution.balances_after == {}


class TestLiquidityThroughHelper:
    """Tests for deposits and withdrawals that move ledger balances."""

    def test_seed_moved_tokens(self, quoter, ledger):
        assert ledger.balance_of(WLD, LP) == 900 * ONE_WLD
        assert ledger.balance_of(USDC, LP) == 2750 * ONE_USDC
        assert ledger.balance_of(WLD, POOL_ACCOUNT) == 100 * ONE_WLD
        assert ledger.balance_of(USDC, POOL_ACCOUNT) == 250 * ONE_USDC

    def test_unfunded_owner_rejected(self, quoter):
        before = pool_state(quoter)

        with pytest.raises(InsufficientBalance):
            quoter.add_liquidity(4 * ONE_WLD, 10 * ONE_USDC, LP2)

        assert pool_state(quoter) == before

    def test_full_withdrawal_returns_deposit(self, quoter, ledger):
        shares = quoter.pool.shares_of(LP)

        amounts = quoter.remove_liquidity(shares, LP)

        assert amounts == (100 * ONE_WLD, 250 * ONE_USDC)
        assert ledger.balance_of(WLD, LP) == 1000 * ONE_WLD
        assert ledger.balance_of(USDC, LP) == 3000 * ONE_USDC
        assert ledger.balance_of(WLD, POOL_ACCOUNT) == 0
        assert ledger.balance_of(USDC, POOL_ACCOUNT) == 0

    def test_withdrawal_over_balance_rejected(self, quoter, ledger):
        shares = quoter.pool.shares_of(LP)

        with pytest.raises(InsufficientLiquidityBalance):
            quoter.remove_liquidity(shares + 1, LP)

        assert ledger.balance_of(WLD, LP) == 900 * ONE_WLD

    def test_fees_accrue_to_provider(self, quoter, ledger):
        """After a round trip by a trader, the LP withdraws more value than deposited."""
        out = quoter.execute_swap(Direction.A_TO_B, 10 * ONE_WLD, TRADER).amount_out
        quoter.execute_swap(Direction.B_TO_A, out, TRADER)

        amount_a, amount_b = quoter.remove_liquidity(quoter.pool.shares_of(LP), LP)

        assert amount_a > 100 * ONE_WLD
        assert amount_b == 250 * ONE_USDC


class TestPoolHealth:
    """Tests for the monitoring snapshot."""

    def test_seeded(self, quoter):
        health = quoter.pool_health()

        assert (health.symbol_a, health.symbol_b) == ("WLD", "USDC")
        assert health.reserve_a == Decimal(100)
        assert health.reserve_b == Decimal(250)
        assert health.exchange_rate == Decimal("2.5")
        assert health.k == 100 * ONE_WLD * 250 * ONE_USDC
        assert health.is_healthy

    def test_empty(self):
        health = SwapQuoter(Pool(*make_wld_usdc_tokens())).pool_health()

        assert not health.is_healthy
        assert health.exchange_rate == Decimal(0)
        assert health.k == 0


class TestEncodeSwap:
    """Tests for on-chain calldata encoding."""

    def test_encode_a_for_b(self, quoter):
        target, calldata = quoter.encode_swap(Direction.A_TO_B, ONE_WLD, 2_000_000, RECIPIENT)

        assert target == POOL_ACCOUNT
        assert calldata.startswith(SWAP_A_FOR_B_SELECTOR)
        # selector + 3 static words
        assert len(calldata) == 10 + 3 * 64
        assert calldata[10:74] == f"{ONE_WLD:064x}"
        assert calldata[74:138] == f"{2_000_000:064x}"
        assert calldata[138:] == RECIPIENT[2:].rjust(64, "0")

    def test_selectors_differ_by_direction(self, quoter):
        _, calldata = quoter.encode_swap(Direction.B_TO_A, ONE_USDC, 0, RECIPIENT)

        assert calldata.startswith(SWAP_B_FOR_A_SELECTOR)
        assert SWAP_A_FOR_B_SELECTOR != SWAP_B_FOR_A_SELECTOR
        assert len(SWAP_A_FOR_B_SELECTOR) == 10

    def test_invalid_recipient(self, quoter):
        with pytest.raises(ValueError):
            quoter.encode_swap(Direction.A_TO_B, ONE_WLD, 0, "0x1234")
