"""Constant product market maker pool.

The pool owns two reserves and a liquidity-share ledger. Every operation
computes all of its new values first and commits them together under the
pool lock, so a failing call never leaves a partial update behind.

Token transfers that accompany a pool operation (input pulled from the
caller, output sent to the recipient) are the caller's responsibility; see
simpledex.quoter.SwapQuoter for the off-chain helper that pairs them with a
TokenLedger.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum

import structlog

from simpledex import amm
from simpledex.constants import ZERO_ADDRESS
from simpledex.errors import (
    IdenticalTokens,
    InsufficientAmounts,
    InsufficientLiquidity,
    InsufficientLiquidityBalance,
    InsufficientLiquidityMinted,
    ReserveOverflow,
    SlippageExceeded,
    UnknownToken,
    ZeroAddress,
)
from simpledex.models.types import normalize_address
from simpledex.safe_int import S, SafeInt, Uint256Overflow

logger = structlog.get_logger()


def _checked_uint256(value: SafeInt, name: str) -> int:
    try:
        return value.to_uint256()
    except Uint256Overflow as err:
        raise ReserveOverflow(f"{name} would exceed 2^256-1") from err


@dataclass(frozen=True)
class Token:
    """An ERC-20 token as seen by the pool."""

    address: str
    symbol: str
    decimals: int = 18

    def __post_init__(self) -> None:
        object.__setattr__(self, "address", normalize_address(self.address))


class Direction(str, Enum):
    """Swap direction."""

    A_TO_B = "a_to_b"
    B_TO_A = "b_to_a"

    @property
    def reverse(self) -> Direction:
        return Direction.B_TO_A if self is Direction.A_TO_B else Direction.A_TO_B


@dataclass(frozen=True)
class PoolInfo:
    """Read-only snapshot of pool state."""

    reserve_a: int
    reserve_b: int
    total_shares: int
    symbol_a: str
    symbol_b: str


class Pool:
    """Constant product pool over two tokens.

    Permissionless: any account may add or remove its own liquidity and
    swap. Owners and recipients are Ethereum addresses, stored lowercased;
    anything else is rejected with ValueError. Reserves change only through
    add_liquidity, remove_liquidity and swap.

    Note on imbalanced deposits: add_liquidity credits shares for the
    limiting side only but keeps the full amounts in reserve. The excess is
    donated to existing liquidity providers. Callers should size deposits
    with amm.proportional_deposit first.
    """

    def __init__(self, token_a: Token, token_b: Token) -> None:
        """Create an empty pool.

        Raises:
            ZeroAddress: If either token is the zero address
            IdenticalTokens: If both tokens have the same address
        """
        if token_a.address == ZERO_ADDRESS or token_b.address == ZERO_ADDRESS:
            raise ZeroAddress("Pool tokens cannot be the zero address")
        if token_a.address == token_b.address:
            raise IdenticalTokens(f"Pool tokens must differ, got {token_a.address} twice")

        self.token_a = token_a
        self.token_b = token_b
        self._reserve_a = 0
        self._reserve_b = 0
        self._total_shares = 0
        self._shares: dict[str, int] = {}
        self._lock = threading.RLock()

    @classmethod
    def from_snapshot(
        cls,
        token_a: Token,
        token_b: Token,
        reserve_a: int,
        reserve_b: int,
        positions: dict[str, int],
    ) -> Pool:
        """Rebuild a pool from observed state, e.g. reserves read from chain.

        Raises:
            ValueError: If the snapshot breaks a pool invariant
        """
        pool = cls(token_a, token_b)
        shares = {
            normalize_address(owner, validate=True): n for owner, n in positions.items() if n
        }
        if any(n < 0 for n in shares.values()) or reserve_a < 0 or reserve_b < 0:
            raise ValueError("Snapshot amounts cannot be negative")
        seeded = reserve_a > 0 and reserve_b > 0
        if bool(shares) != seeded or (not seeded and (reserve_a or reserve_b)):
            raise ValueError(
                f"Snapshot reserves ({reserve_a}, {reserve_b}) inconsistent with "
                f"{len(shares)} liquidity positions"
            )

        pool._reserve_a = reserve_a
        pool._reserve_b = reserve_b
        pool._shares = shares
        pool._total_shares = sum(shares.values())
        return pool

    # --- Read helpers ---

    @property
    def reserve_a(self) -> int:
        return self._reserve_a

    @property
    def reserve_b(self) -> int:
        return self._reserve_b

    @property
    def total_shares(self) -> int:
        return self._total_shares

    @property
    def lock(self) -> threading.RLock:
        """Lock guarding pool state; hold it to compose pool calls atomically."""
        return self._lock

    @property
    def is_seeded(self) -> bool:
        return self._reserve_a > 0 and self._reserve_b > 0

    @property
    def k(self) -> int:
        """Constant product of the current reserves."""
        with self._lock:
            return amm.constant_product(self._reserve_a, self._reserve_b)

    @property
    def positions(self) -> dict[str, int]:
        """Copy of the share ledger (owner -> shares)."""
        with self._lock:
            return dict(self._shares)

    def shares_of(self, owner: str) -> int:
        return self._shares.get(normalize_address(owner), 0)

    def get_reserves(self, direction: Direction) -> tuple[int, int]:
        """Get reserves ordered as (reserve_in, reserve_out)."""
        with self._lock:
            if direction is Direction.A_TO_B:
                return self._reserve_a, self._reserve_b
            return self._reserve_b, self._reserve_a

    def get_tokens(self, direction: Direction) -> tuple[Token, Token]:
        """Get tokens ordered as (token_in, token_out)."""
        if direction is Direction.A_TO_B:
            return self.token_a, self.token_b
        return self.token_b, self.token_a

    def direction_for(self, token_in: str, token_out: str) -> Direction:
        """Resolve a swap direction from token symbols or addresses.

        Raises:
            UnknownToken: If the pair does not match this pool
        """
        a, b = self.token_a.address, self.token_b.address
        pair = (self._match_key(token_in), self._match_key(token_out))
        if pair == (a, b):
            return Direction.A_TO_B
        if pair == (b, a):
            return Direction.B_TO_A
        raise UnknownToken(
            f"Pair {token_in}/{token_out} is not traded by the "
            f"{self.token_a.symbol}/{self.token_b.symbol} pool"
        )

    def get_pool_info(self) -> PoolInfo:
        with self._lock:
            return PoolInfo(
                reserve_a=self._reserve_a,
                reserve_b=self._reserve_b,
                total_shares=self._total_shares,
                symbol_a=self.token_a.symbol,
                symbol_b=self.token_b.symbol,
            )

    @staticmethod
    def quote(amount_in: int, reserve_in: int, reserve_out: int) -> int:
        """Preview a swap's output for arbitrary reserves. Never mutates state."""
        return amm.get_amount_out(amount_in, reserve_in, reserve_out)

    # --- Liquidity ---

    def add_liquidity(self, amount_a: int, amount_b: int, owner: str) -> int:
        """Deposit both tokens and mint liquidity shares to owner.

        Returns:
            Number of shares minted

        Raises:
            InsufficientAmounts: If either amount is zero
            InsufficientLiquidityMinted: If the deposit is too small to mint a share
            ReserveOverflow: If a reserve or the share supply would exceed 2^256-1
            ValueError: If owner is not an address
        """
        if amount_a <= 0 or amount_b <= 0:
            raise InsufficientAmounts(
                f"Both deposit amounts must be positive (amount_a={amount_a}, amount_b={amount_b})"
            )
        owner = normalize_address(owner, validate=True)

        with self._lock:
            if self._total_shares == 0:
                minted = amm.initial_shares(amount_a, amount_b)
            else:
                minted = amm.proportional_shares(
                    amount_a, amount_b, self._reserve_a, self._reserve_b, self._total_shares
                )
            if minted == 0:
                raise InsufficientLiquidityMinted(
                    f"Deposit of ({amount_a}, {amount_b}) mints no shares"
                )

            new_reserve_a = _checked_uint256(S(self._reserve_a) + S(amount_a), "reserve_a")
            new_reserve_b = _checked_uint256(S(self._reserve_b) + S(amount_b), "reserve_b")
            new_total = _checked_uint256(S(self._total_shares) + S(minted), "total_shares")

            self._reserve_a = new_reserve_a
            self._reserve_b = new_reserve_b
            self._total_shares = new_total
            self._shares[owner] = self._shares.get(owner, 0) + minted

        logger.debug(
            "liquidity_added",
            owner=owner,
            amount_a=amount_a,
            amount_b=amount_b,
            shares_minted=minted,
            reserve_a=new_reserve_a,
            reserve_b=new_reserve_b,
        )
        return minted

    def remove_liquidity(self, shares: int, owner: str) -> tuple[int, int]:
        """Burn owner's shares and release the proportional reserves.

        Returns:
            Tuple of (amount_a, amount_b) returned to owner

        Raises:
            InsufficientAmounts: If shares is zero or either amount rounds to zero
            InsufficientLiquidityBalance: If owner holds fewer shares
            ValueError: If owner is not an address
        """
        if shares <= 0:
            raise InsufficientAmounts(f"Share amount must be positive, got {shares}")
        owner = normalize_address(owner, validate=True)

        with self._lock:
            balance = self._shares.get(owner, 0)
            if shares > balance:
                raise InsufficientLiquidityBalance(
                    f"{owner} holds {balance} shares, cannot remove {shares}"
                )

            amount_a, amount_b = amm.withdrawal_amounts(
                shares, self._reserve_a, self._reserve_b, self._total_shares
            )
            if amount_a == 0 or amount_b == 0:
                raise InsufficientAmounts(
                    f"Burning {shares} shares returns ({amount_a}, {amount_b})"
                )

            new_reserve_a = (S(self._reserve_a) - S(amount_a)).value
            new_reserve_b = (S(self._reserve_b) - S(amount_b)).value
            new_total = (S(self._total_shares) - S(shares)).value
            remaining = balance - shares

            self._reserve_a = new_reserve_a
            self._reserve_b = new_reserve_b
            self._total_shares = new_total
            if remaining:
                self._shares[owner] = remaining
            else:
                del self._shares[owner]

        logger.debug(
            "liquidity_removed",
            owner=owner,
            shares_burned=shares,
            amount_a=amount_a,
            amount_b=amount_b,
            reserve_a=new_reserve_a,
            reserve_b=new_reserve_b,
        )
        return amount_a, amount_b

    # --- Swaps ---

    def swap(
        self,
        direction: Direction,
        amount_in: int,
        min_amount_out: int,
        recipient: str,
    ) -> int:
        """Swap an exact input amount for as much output as the curve allows.

        The full input, fee included, stays in the pool.

        Returns:
            Output amount owed to recipient

        Raises:
            InsufficientAmounts: If amount_in is zero or buys nothing
            InsufficientLiquidity: If the pool is not seeded, or the output
                would take the whole output reserve
            SlippageExceeded: If the output is below min_amount_out
            ReserveOverflow: If the input reserve would exceed 2^256-1
            ValueError: If recipient is not an address
        """
        if amount_in <= 0:
            raise InsufficientAmounts(f"Input amount must be positive, got {amount_in}")
        recipient = normalize_address(recipient, validate=True)

        with self._lock:
            reserve_in, reserve_out = self.get_reserves(direction)
            if reserve_in <= 0 or reserve_out <= 0:
                raise InsufficientLiquidity("Pool is not seeded")

            amount_out = amm.get_amount_out(amount_in, reserve_in, reserve_out)
            if amount_out == 0:
                raise InsufficientAmounts(f"Input {amount_in} is too small to buy any output")
            if amount_out < min_amount_out:
                raise SlippageExceeded(
                    f"Output {amount_out} is below minimum {min_amount_out}"
                )
            if amount_out >= reserve_out:
                raise InsufficientLiquidity(
                    f"Output {amount_out} would drain reserve {reserve_out}"
                )

            new_reserve_in = _checked_uint256(S(reserve_in) + S(amount_in), "reserve_in")
            new_reserve_out = (S(reserve_out) - S(amount_out)).value

            if direction is Direction.A_TO_B:
                self._reserve_a, self._reserve_b = new_reserve_in, new_reserve_out
            else:
                self._reserve_b, self._reserve_a = new_reserve_in, new_reserve_out

        logger.debug(
            "swap",
            direction=direction.value,
            amount_in=amount_in,
            amount_out=amount_out,
            recipient=recipient,
            reserve_in=new_reserve_in,
            reserve_out=new_reserve_out,
        )
        return amount_out

    def swap_a_for_b(self, amount_in: int, min_amount_out: int, recipient: str) -> int:
        return self.swap(Direction.A_TO_B, amount_in, min_amount_out, recipient)

    def swap_b_for_a(self, amount_in: int, min_amount_out: int, recipient: str) -> int:
        return self.swap(Direction.B_TO_A, amount_in, min_amount_out, recipient)

    # --- Internal ---

    def _match_key(self, ref: str) -> str:
        """Map a symbol or address to the matching pool token's address."""
        for token in (self.token_a, self.token_b):
            if ref.upper() == token.symbol.upper():
                return token.address
        return normalize_address(ref)

    def __repr__(self) -> str:
        return (
            f"Pool({self.token_a.symbol}/{self.token_b.symbol}, "
            f"reserves=({self._reserve_a}, {self._reserve_b}), shares={self._total_shares})"
        )
