"""Quote and execution helper for SimpleDEX pools.

SwapQuoter previews trades against a pool (expected output, minimum output
at a slippage tolerance, price impact, expiry), executes them with that
minimum as the slippage bound, and keeps a history of executions. When a
TokenLedger is attached, the token transfers that go with each pool call are
checked up front and applied together with the pool update.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from decimal import Decimal

import structlog
from eth_abi import encode  # type: ignore[attr-defined]
from eth_utils import function_signature_to_4byte_selector

from simpledex import amm
from simpledex.config import DEFAULT_QUOTE_CONFIG, QuoteConfig
from simpledex.constants import BPS_DENOMINATOR, SIMPLE_DEX_AMOY
from simpledex.errors import QuoteExpired
from simpledex.ledger import TokenLedger, Transfer
from simpledex.models.types import is_valid_address, normalize_address
from simpledex.pool import Direction, Pool, Token
from simpledex.safe_int import S

logger = structlog.get_logger()

SWAP_A_FOR_B_SELECTOR = (
    "0x" + function_signature_to_4byte_selector("swapToken0ForToken1(uint256,uint256,address)").hex()
)
SWAP_B_FOR_A_SELECTOR = (
    "0x" + function_signature_to_4byte_selector("swapToken1ForToken0(uint256,uint256,address)").hex()
)


def format_units(amount: int, decimals: int) -> Decimal:
    """Convert a smallest-unit amount to a human-unit Decimal."""
    return Decimal(amount).scaleb(-decimals)


def exchange_rate(amount_in: int, amount_out: int, token_in: Token, token_out: Token) -> Decimal:
    """Output tokens per one input token, in human units."""
    if amount_in == 0:
        return Decimal(0)
    return format_units(amount_out, token_out.decimals) / format_units(amount_in, token_in.decimals)


def price_impact_bps(
    amount_in: int,
    amount_out: int,
    reserve_in: int,
    reserve_out: int,
    price_scale: int,
) -> int:
    """Drop in the pool's marginal price caused by a trade, in basis points.

    Clamped to [0, 10000]; a trade that would empty the output reserve
    reports 10000.
    """
    if reserve_in <= 0:
        return 0
    new_reserve_in = reserve_in + amount_in
    new_reserve_out = reserve_out - amount_out
    if new_reserve_out <= 0:
        return BPS_DENOMINATOR

    price_before = (S(reserve_out) * S(price_scale) // S(reserve_in)).value
    price_after = (S(new_reserve_out) * S(price_scale) // S(new_reserve_in)).value
    if price_before == 0 or price_after >= price_before:
        return 0

    impact = (S(price_before - price_after) * S(BPS_DENOMINATOR) // S(price_before)).value
    return min(impact, BPS_DENOMINATOR)


@dataclass(frozen=True)
class SwapQuote:
    """Preview of a swap against the pool's reserves at quote time."""

    direction: Direction
    token_in: Token
    token_out: Token
    amount_in: int
    expected_output: int
    min_output: int
    exchange_rate: Decimal
    price_impact_bps: int
    slippage_bps: int
    reserve_in: int
    reserve_out: int
    timestamp: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


@dataclass(frozen=True)
class SwapExecution:
    """Result of executing a quoted swap."""

    quote: SwapQuote
    trader: str
    recipient: str
    amount_in: int
    amount_out: int
    # Shortfall against the quoted output in basis points (negative if better)
    slippage_used_bps: int
    effective_rate: Decimal
    timestamp: float
    balances_before: dict[str, int] = field(default_factory=dict)
    balances_after: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class PoolHealth:
    """Human-readable pool state for monitoring."""

    symbol_a: str
    symbol_b: str
    reserve_a: Decimal
    reserve_b: Decimal
    total_shares: int
    # Token B per one token A
    exchange_rate: Decimal
    k: int
    is_healthy: bool


class SwapQuoter:
    """Quote, execute and track swaps and liquidity operations on a pool.

    Usage:
        quoter = SwapQuoter(pool, ledger=ledger)
        quote = quoter.get_swap_quote(Direction.A_TO_B, 10**18)
        execution = quoter.execute_swap(Direction.A_TO_B, 10**18, trader, quote=quote)
    """

    def __init__(
        self,
        pool: Pool,
        ledger: TokenLedger | None = None,
        config: QuoteConfig = DEFAULT_QUOTE_CONFIG,
        pool_address: str = SIMPLE_DEX_AMOY,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.pool = pool
        self.ledger = ledger
        self.config = config
        self.pool_address = normalize_address(pool_address)
        self._clock = clock
        self._history: list[SwapExecution] = []

    @property
    def history(self) -> list[SwapExecution]:
        """Executed swaps, oldest first."""
        return list(self._history)

    # --- Quotes ---

    def get_swap_quote(
        self,
        direction: Direction,
        amount_in: int,
        slippage_bps: int | None = None,
    ) -> SwapQuote:
        """Quote a swap on the pool's current reserves.

        Raises:
            ValueError: If slippage_bps is outside [0, 10000]
            InsufficientAmounts: If amount_in is zero
            InsufficientLiquidity: If the pool is not seeded
        """
        if slippage_bps is None:
            slippage_bps = self.config.slippage_bps
        if not 0 <= slippage_bps <= BPS_DENOMINATOR:
            raise ValueError(f"slippage_bps must be in [0, 10000], got {slippage_bps}")

        reserve_in, reserve_out = self.pool.get_reserves(direction)
        token_in, token_out = self.pool.get_tokens(direction)
        expected = Pool.quote(amount_in, reserve_in, reserve_out)
        min_output = (S(expected) * S(BPS_DENOMINATOR - slippage_bps) // S(BPS_DENOMINATOR)).value
        now = self._clock()

        quote = SwapQuote(
            direction=direction,
            token_in=token_in,
            token_out=token_out,
            amount_in=amount_in,
            expected_output=expected,
            min_output=min_output,
            exchange_rate=exchange_rate(reserve_in, reserve_out, token_in, token_out),
            price_impact_bps=price_impact_bps(
                amount_in, expected, reserve_in, reserve_out, self.config.price_scale
            ),
            slippage_bps=slippage_bps,
            reserve_in=reserve_in,
            reserve_out=reserve_out,
            timestamp=now,
            expires_at=now + self.config.quote_ttl_seconds,
        )

        logger.info(
            "swap_quote",
            token_in=token_in.symbol,
            token_out=token_out.symbol,
            amount_in=amount_in,
            expected_output=expected,
            min_output=min_output,
            price_impact_bps=quote.price_impact_bps,
        )
        return quote

    # --- Execution ---

    def execute_swap(
        self,
        direction: Direction,
        amount_in: int,
        trader: str,
        recipient: str | None = None,
        slippage_bps: int | None = None,
        quote: SwapQuote | None = None,
    ) -> SwapExecution:
        """Execute a swap bounded by a quote's minimum output.

        If no quote is given, one is taken first at slippage_bps. A supplied
        quote already fixes its tolerance, so slippage_bps must be omitted.
        The trader pays amount_in; recipient (default: trader) receives the
        output.

        Raises:
            QuoteExpired: If the supplied quote is past its expiry
            ValueError: If the supplied quote does not match direction/amount,
                is combined with slippage_bps, or an account is not an address
            InsufficientBalance: If the trader cannot pay (ledger attached)
            PoolError: Any pool rejection; pool and ledger are unchanged
        """
        trader = normalize_address(trader, validate=True)
        recipient = normalize_address(recipient, validate=True) if recipient is not None else trader

        if quote is None:
            quote = self.get_swap_quote(direction, amount_in, slippage_bps)
        else:
            if slippage_bps is not None:
                raise ValueError("slippage_bps cannot be combined with a quote")
            if quote.direction is not direction or quote.amount_in != amount_in:
                raise ValueError("Quote does not match the requested swap")
            if quote.is_expired(self._clock()):
                raise QuoteExpired(f"Quote expired at {quote.expires_at}")

        token_in, token_out = quote.token_in, quote.token_out

        with self._locked():
            before = self._balances(trader, recipient, token_in, token_out)
            if self.ledger is not None:
                reserve_in, reserve_out = self.pool.get_reserves(direction)
                preview = Pool.quote(amount_in, reserve_in, reserve_out)
                self.ledger.check(
                    self._swap_transfers(trader, recipient, token_in, token_out, amount_in, preview)
                )

            amount_out = self.pool.swap(direction, amount_in, quote.min_output, recipient)

            if self.ledger is not None:
                self.ledger.apply(
                    self._swap_transfers(trader, recipient, token_in, token_out, amount_in, amount_out)
                )
            after = self._balances(trader, recipient, token_in, token_out)

        slippage_used = 0
        if quote.expected_output > 0:
            slippage_used = (
                (quote.expected_output - amount_out) * BPS_DENOMINATOR // quote.expected_output
            )

        execution = SwapExecution(
            quote=quote,
            trader=trader,
            recipient=recipient,
            amount_in=amount_in,
            amount_out=amount_out,
            slippage_used_bps=slippage_used,
            effective_rate=exchange_rate(amount_in, amount_out, token_in, token_out),
            timestamp=self._clock(),
            balances_before=before,
            balances_after=after,
        )
        self._history.append(execution)

        logger.info(
            "swap_executed",
            token_in=token_in.symbol,
            token_out=token_out.symbol,
            amount_in=amount_in,
            amount_out=amount_out,
            expected_output=quote.expected_output,
            slippage_used_bps=slippage_used,
            recipient=recipient,
        )
        return execution

    def add_liquidity(self, amount_a: int, amount_b: int, owner: str) -> int:
        """Deposit into the pool, moving owner's tokens when a ledger is attached."""
        owner = normalize_address(owner, validate=True)
        transfers = [
            Transfer(self.pool.token_a.address, owner, self.pool_address, amount_a),
            Transfer(self.pool.token_b.address, owner, self.pool_address, amount_b),
        ]
        with self._locked():
            if self.ledger is not None:
                self.ledger.check(transfers)
            shares = self.pool.add_liquidity(amount_a, amount_b, owner)
            if self.ledger is not None:
                self.ledger.apply(transfers)

        logger.info("liquidity_deposit", owner=owner, amount_a=amount_a, amount_b=amount_b, shares=shares)
        return shares

    def remove_liquidity(self, shares: int, owner: str) -> tuple[int, int]:
        """Withdraw from the pool, paying owner when a ledger is attached."""
        owner = normalize_address(owner, validate=True)
        with self._locked():
            pool = self.pool
            if self.ledger is not None and 0 < shares <= pool.shares_of(owner):
                preview = amm.withdrawal_amounts(
                    shares, pool.reserve_a, pool.reserve_b, pool.total_shares
                )
                self.ledger.check(self._payout_transfers(owner, *preview))

            amount_a, amount_b = pool.remove_liquidity(shares, owner)

            if self.ledger is not None:
                self.ledger.apply(self._payout_transfers(owner, amount_a, amount_b))

        logger.info(
            "liquidity_withdrawal", owner=owner, shares=shares, amount_a=amount_a, amount_b=amount_b
        )
        return amount_a, amount_b

    # --- Reporting ---

    def pool_health(self) -> PoolHealth:
        info = self.pool.get_pool_info()
        token_a, token_b = self.pool.token_a, self.pool.token_b
        return PoolHealth(
            symbol_a=info.symbol_a,
            symbol_b=info.symbol_b,
            reserve_a=format_units(info.reserve_a, token_a.decimals),
            reserve_b=format_units(info.reserve_b, token_b.decimals),
            total_shares=info.total_shares,
            exchange_rate=exchange_rate(info.reserve_a, info.reserve_b, token_a, token_b),
            k=amm.constant_product(info.reserve_a, info.reserve_b),
            is_healthy=info.reserve_a > 0 and info.reserve_b > 0,
        )

    def encode_swap(
        self,
        direction: Direction,
        amount_in: int,
        min_amount_out: int,
        recipient: str,
    ) -> tuple[str, str]:
        """Encode a swap as calldata for the on-chain pool.

        Uses swapToken0ForToken1(uint256,uint256,address) or its mirror.

        Returns:
            Tuple of (pool_address, calldata)

        Raises:
            ValueError: If recipient is not a valid address
        """
        if not is_valid_address(recipient):
            raise ValueError(f"Invalid recipient address: {recipient}")

        selector = SWAP_A_FOR_B_SELECTOR if direction is Direction.A_TO_B else SWAP_B_FOR_A_SELECTOR
        encoded_args = encode(
            ["uint256", "uint256", "address"],
            [amount_in, min_amount_out, bytes.fromhex(recipient[2:])],
        )
        return self.pool_address, selector + encoded_args.hex()

    # --- Internal ---

    @contextmanager
    def _locked(self) -> Iterator[None]:
        """Hold the pool lock, then the ledger lock."""
        with self.pool.lock:
            if self.ledger is None:
                yield
            else:
                with self.ledger.lock:
                    yield

    def _swap_transfers(
        self,
        trader: str,
        recipient: str,
        token_in: Token,
        token_out: Token,
        amount_in: int,
        amount_out: int,
    ) -> list[Transfer]:
        return [
            Transfer(token_in.address, trader, self.pool_address, amount_in),
            Transfer(token_out.address, self.pool_address, recipient, amount_out),
        ]

    def _payout_transfers(self, owner: str, amount_a: int, amount_b: int) -> list[Transfer]:
        return [
            Transfer(self.pool.token_a.address, self.pool_address, owner, amount_a),
            Transfer(self.pool.token_b.address, self.pool_address, owner, amount_b),
        ]

    def _balances(
        self, trader: str, recipient: str, token_in: Token, token_out: Token
    ) -> dict[str, int]:
        if self.ledger is None:
            return {}
        return {
            f"trader_{token_in.symbol}": self.ledger.balance_of(token_in.address, trader),
            f"recipient_{token_out.symbol}": self.ledger.balance_of(token_out.address, recipient),
        }
