"""Test helpers module for shared test utilities.

- constants: Token addresses and accounts
- factories: Pool factory functions
"""

from tests.helpers.constants import (
    LP,
    LP2,
    POOL_ACCOUNT,
    RECIPIENT,
    TOKEN_A,
    TOKEN_B,
    TRADER,
    USDC,
    WLD,
)
from tests.helpers.factories import (
    make_pool,
    make_pool_at,
    make_seeded_pool,
    make_tokens,
    make_wld_usdc_tokens,
)

__all__ = [
    # Constants
    "WLD",
    "USDC",
    "TOKEN_A",
    "TOKEN_B",
    "LP",
    "LP2",
    "TRADER",
    "RECIPIENT",
    "POOL_ACCOUNT",
    # Factories
    "make_tokens",
    "make_wld_usdc_tokens",
    "make_pool",
    "make_seeded_pool",
    "make_pool_at",
]
