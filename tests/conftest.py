"""Pytest configuration and fixtures."""

import pytest

from simpledex.ledger import TokenLedger
from simpledex.pool import Pool
from simpledex.quoter import SwapQuoter
from tests.helpers import (
    LP,
    POOL_ACCOUNT,
    TRADER,
    make_pool,
    make_seeded_pool,
    make_wld_usdc_tokens,
)


class FakeClock:
    """Controllable time source for quote expiry tests."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def empty_pool() -> Pool:
    """Empty A/B pool."""
    return make_pool()


@pytest.fixture
def seeded_pool() -> Pool:
    """A/B pool seeded with 1000/1000 by LP (1000 shares)."""
    return make_seeded_pool(1000, 1000)


@pytest.fixture
def ledger() -> TokenLedger:
    """Ledger funding LP and TRADER with WLD and USDC."""
    wld, usdc = make_wld_usdc_tokens()
    ledger = TokenLedger()
    ledger.mint(wld.address, LP, 1_000 * 10**18)
    ledger.mint(usdc.address, LP, 3_000 * 10**6)
    ledger.mint(wld.address, TRADER, 50 * 10**18)
    ledger.mint(usdc.address, TRADER, 100 * 10**6)
    return ledger


@pytest.fixture
def quoter(ledger: TokenLedger, clock: FakeClock) -> SwapQuoter:
    """Helper over a WLD/USDC pool seeded with 100 WLD / 250 USDC through the ledger."""
    quoter = SwapQuoter(
        Pool(*make_wld_usdc_tokens()),
        ledger=ledger,
        pool_address=POOL_ACCOUNT,
        clock=clock,
    )
    quoter.add_liquidity(100 * 10**18, 250 * 10**6, LP)
    return quoter
