"""Constant product AMM math.

The pool uses the constant product formula: x * y = k
with a 0.3% fee taken from the input amount before pricing.

All functions are pure and operate on integer amounts in the smallest unit
of each token. Rounding always favors the pool.
"""

from __future__ import annotations

from simpledex.constants import BPS_DENOMINATOR, FEE_MULTIPLIER
from simpledex.errors import InsufficientAmounts, InsufficientLiquidity
from simpledex.safe_int import S


def get_amount_out(
    amount_in: int,
    reserve_in: int,
    reserve_out: int,
    fee_multiplier: int = FEE_MULTIPLIER,
) -> int:
    """Calculate output amount using the constant product formula.

    Formula: amount_out = (in * 9970 * res_out) / (res_in * 10000 + in * 9970)

    Args:
        amount_in: Input token amount
        reserve_in: Reserve of input token in pool
        reserve_out: Reserve of output token in pool
        fee_multiplier: 10000 minus the fee in basis points

    Returns:
        Output token amount, rounded down

    Raises:
        InsufficientAmounts: If amount_in is zero
        InsufficientLiquidity: If either reserve is zero
    """
    if amount_in <= 0:
        raise InsufficientAmounts(f"Input amount must be positive, got {amount_in}")
    if reserve_in <= 0 or reserve_out <= 0:
        raise InsufficientLiquidity(
            f"Pool has no liquidity (reserve_in={reserve_in}, reserve_out={reserve_out})"
        )

    amount_in_with_fee = S(amount_in) * S(fee_multiplier)
    numerator = amount_in_with_fee * S(reserve_out)
    denominator = S(reserve_in) * S(BPS_DENOMINATOR) + amount_in_with_fee

    return (numerator // denominator).value


def get_amount_in(
    amount_out: int,
    reserve_in: int,
    reserve_out: int,
    fee_multiplier: int = FEE_MULTIPLIER,
) -> int:
    """Calculate the input required to receive at least amount_out.

    Formula: amount_in = (res_in * out * 10000) / ((res_out - out) * 9970) + 1

    Raises:
        InsufficientAmounts: If amount_out is zero
        InsufficientLiquidity: If either reserve is zero, or amount_out would
            take the whole output reserve
    """
    if amount_out <= 0:
        raise InsufficientAmounts(f"Output amount must be positive, got {amount_out}")
    if reserve_in <= 0 or reserve_out <= 0:
        raise InsufficientLiquidity(
            f"Pool has no liquidity (reserve_in={reserve_in}, reserve_out={reserve_out})"
        )
    if amount_out >= reserve_out:
        raise InsufficientLiquidity(
            f"Requested output {amount_out} must be below reserve {reserve_out}"
        )

    numerator = S(reserve_in) * S(amount_out) * S(BPS_DENOMINATOR)
    denominator = (S(reserve_out) - S(amount_out)) * S(fee_multiplier)

    return ((numerator // denominator) + S(1)).value


def initial_shares(amount_a: int, amount_b: int) -> int:
    """Shares minted by the first deposit: floor(sqrt(amount_a * amount_b))."""
    return (S(amount_a) * S(amount_b)).isqrt().value


def proportional_shares(
    amount_a: int,
    amount_b: int,
    reserve_a: int,
    reserve_b: int,
    total_shares: int,
) -> int:
    """Shares minted by a deposit into a seeded pool.

    Only the limiting side is credited:
    min(amount_a * total / reserve_a, amount_b * total / reserve_b).
    """
    liquidity_a = S(amount_a) * S(total_shares) // S(reserve_a)
    liquidity_b = S(amount_b) * S(total_shares) // S(reserve_b)
    return liquidity_a.min(liquidity_b).value


def withdrawal_amounts(
    shares: int,
    reserve_a: int,
    reserve_b: int,
    total_shares: int,
) -> tuple[int, int]:
    """Token amounts returned for burning shares, rounded down."""
    amount_a = S(shares) * S(reserve_a) // S(total_shares)
    amount_b = S(shares) * S(reserve_b) // S(total_shares)
    return amount_a.value, amount_b.value


def proportional_deposit(amount: int, reserve_same: int, reserve_other: int) -> int:
    """Amount of the other token that matches `amount` at the current ratio.

    Callers use this before add_liquidity so the deposit does not donate an
    imbalanced excess to the pool. Rounds up so the computed side is never
    the limiting one.

    Raises:
        InsufficientLiquidity: If the pool is not seeded
    """
    if reserve_same <= 0 or reserve_other <= 0:
        raise InsufficientLiquidity("Pool is not seeded; any ratio is accepted")
    return (S(amount) * S(reserve_other)).ceiling_div(reserve_same).value


def constant_product(reserve_a: int, reserve_b: int) -> int:
    """k = reserve_a * reserve_b."""
    return (S(reserve_a) * S(reserve_b)).value
