"""Off-chain token balances.

TokenLedger stands in for the ERC-20 contracts when the pool runs off-chain:
it holds per-account balances so the execution helper can check funds before
a swap and move tokens together with the pool update.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from dataclasses import dataclass

import structlog

from simpledex.errors import InsufficientBalance
from simpledex.models.types import normalize_address

logger = structlog.get_logger()


@dataclass(frozen=True)
class Transfer:
    """A single token movement between two accounts."""

    token: str
    sender: str
    receiver: str
    amount: int


class TokenLedger:
    """Balances keyed by (token address, account address)."""

    def __init__(self) -> None:
        self._balances: dict[str, dict[str, int]] = defaultdict(dict)
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def balance_of(self, token: str, account: str) -> int:
        with self._lock:
            return self._balances[normalize_address(token)].get(normalize_address(account), 0)

    def mint(self, token: str, account: str, amount: int) -> None:
        """Credit new tokens to account (faucet / test funding)."""
        if amount < 0:
            raise ValueError(f"Mint amount cannot be negative: {amount}")
        token, account = normalize_address(token), normalize_address(account)
        with self._lock:
            book = self._balances[token]
            book[account] = book.get(account, 0) + amount
        logger.debug("tokens_minted", token=token, account=account, amount=amount)

    def check(self, transfers: list[Transfer]) -> None:
        """Verify every sender can cover its total outflow per token.

        Raises:
            InsufficientBalance: If any sender is short
        """
        needed: dict[tuple[str, str], int] = defaultdict(int)
        for t in transfers:
            if t.amount < 0:
                raise ValueError(f"Transfer amount cannot be negative: {t.amount}")
            needed[(normalize_address(t.token), normalize_address(t.sender))] += t.amount

        with self._lock:
            for (token, sender), amount in needed.items():
                available = self._balances[token].get(sender, 0)
                if available < amount:
                    raise InsufficientBalance(
                        f"{sender} holds {available} of {token}, needs {amount}"
                    )

    def apply(self, transfers: list[Transfer]) -> None:
        """Apply a batch of transfers, all or nothing.

        Raises:
            InsufficientBalance: If any sender cannot cover its outflow
        """
        with self._lock:
            self.check(transfers)
            for t in transfers:
                token = normalize_address(t.token)
                sender, receiver = normalize_address(t.sender), normalize_address(t.receiver)
                book = self._balances[token]
                book[sender] -= t.amount
                book[receiver] = book.get(receiver, 0) + t.amount

    def transfer(self, token: str, sender: str, receiver: str, amount: int) -> None:
        self.apply([Transfer(token=token, sender=sender, receiver=receiver, amount=amount)])
