"""SimpleDEX error classes.

Pool errors carry a ``kind`` matching the revert reason a caller sees from
the on-chain pool, so API clients can branch on it without parsing messages.
"""

from typing import ClassVar


class SimpleDexError(Exception):
    """Base error for SimpleDEX operations."""

    kind: ClassVar[str] = "SimpleDexError"


class PoolError(SimpleDexError):
    """A pool precondition or invariant failed. Pool state is unchanged."""

    kind: ClassVar[str] = "PoolError"


class IdenticalTokens(PoolError):
    """Both pool tokens have the same address."""

    kind = "IdenticalTokens"


class ZeroAddress(PoolError):
    """A pool token is the zero address."""

    kind = "ZeroAddress"


class InsufficientAmounts(PoolError):
    """A supplied or computed amount is zero where it must be positive."""

    kind = "InsufficientAmounts"


class InsufficientLiquidityMinted(PoolError):
    """Deposit would mint zero liquidity shares."""

    kind = "InsufficientLiquidityMinted"


class InsufficientLiquidityBalance(PoolError):
    """Owner does not hold enough shares for the withdrawal."""

    kind = "InsufficientLiquidityBalance"


class InsufficientLiquidity(PoolError):
    """Pool is not seeded, or the swap would drain the output reserve."""

    kind = "InsufficientLiquidity"


class SlippageExceeded(PoolError):
    """Swap output is below the caller's minimum."""

    kind = "SlippageExceeded"


class ReserveOverflow(PoolError):
    """Operation would push a reserve or the share supply past 2^256-1."""

    kind = "ReserveOverflow"


class QuoteExpired(SimpleDexError):
    """Quote was used after its expiry timestamp."""

    kind = "QuoteExpired"


class InsufficientBalance(SimpleDexError):
    """Account token balance is too low for the requested transfer."""

    kind = "InsufficientBalance"


class UnknownToken(SimpleDexError):
    """Token symbol or address is not one of the pool's tokens."""

    kind = "UnknownToken"
