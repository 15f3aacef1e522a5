"""Command line entry point for SimpleDEX.

Usage:
    simpledex quote --amount-in 100 --reserve-in 1000 --reserve-out 1000
    simpledex demo --verbose
"""

from __future__ import annotations

import argparse
import logging
import sys

import structlog

from simpledex.amm import proportional_deposit
from simpledex.constants import MOCK_WLD, USDC_AMOY
from simpledex.errors import SimpleDexError
from simpledex.ledger import TokenLedger
from simpledex.pool import Direction, Pool, Token
from simpledex.quoter import SwapQuoter

logger = structlog.get_logger()

DEMO_LP = "0x00000000000000000000000000000000000000a1"
DEMO_TRADER = "0x00000000000000000000000000000000000000b2"


def configure_logging(verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
    )


def cmd_quote(args: argparse.Namespace) -> int:
    amount_out = Pool.quote(args.amount_in, args.reserve_in, args.reserve_out)
    print(amount_out)
    return 0


def print_pool(quoter: SwapQuoter) -> None:
    health = quoter.pool_health()
    print(
        f"  reserves: {health.reserve_a:f} {health.symbol_a} / {health.reserve_b:f} {health.symbol_b}"
        f"  shares: {health.total_shares}  rate: {health.exchange_rate:f}"
    )


def cmd_demo(args: argparse.Namespace) -> int:
    """Seed a WLD/USDC pool, trade both ways, top up liquidity and withdraw."""
    wld = Token(address=MOCK_WLD, symbol="WLD", decimals=18)
    usdc = Token(address=USDC_AMOY, symbol="USDC", decimals=6)
    ledger = TokenLedger()
    quoter = SwapQuoter(Pool(wld, usdc), ledger=ledger)

    ledger.mint(wld.address, DEMO_LP, 1_000 * 10**18)
    ledger.mint(usdc.address, DEMO_LP, 3_000 * 10**6)
    ledger.mint(wld.address, DEMO_TRADER, 50 * 10**18)

    print("Seeding pool with 100 WLD / 250 USDC")
    shares = quoter.add_liquidity(100 * 10**18, 250 * 10**6, DEMO_LP)
    print_pool(quoter)

    print("Swapping 10 WLD -> USDC")
    quote = quoter.get_swap_quote(Direction.A_TO_B, 10 * 10**18, args.slippage_bps)
    print(
        f"  quote: {quote.expected_output} (min {quote.min_output}), "
        f"impact {quote.price_impact_bps} bps"
    )
    execution = quoter.execute_swap(Direction.A_TO_B, 10 * 10**18, DEMO_TRADER, quote=quote)
    print(f"  received {execution.amount_out} USDC units at {execution.effective_rate}")
    print_pool(quoter)

    print("Swapping the USDC back")
    quoter.execute_swap(Direction.B_TO_A, execution.amount_out, DEMO_TRADER)
    print_pool(quoter)

    print("Adding proportional liquidity for 10 USDC")
    pool = quoter.pool
    usdc_amount = 10 * 10**6
    wld_amount = proportional_deposit(usdc_amount, pool.reserve_b, pool.reserve_a)
    shares += quoter.add_liquidity(wld_amount, usdc_amount, DEMO_LP)
    print_pool(quoter)

    print("Withdrawing all liquidity")
    amount_a, amount_b = quoter.remove_liquidity(shares, DEMO_LP)
    print(f"  returned {amount_a} WLD units and {amount_b} USDC units")
    print_pool(quoter)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="SimpleDEX constant product pool tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log pool internals")
    subparsers = parser.add_subparsers(dest="command", required=True)

    quote_parser = subparsers.add_parser("quote", help="Quote a swap against given reserves")
    quote_parser.add_argument("--amount-in", type=int, required=True)
    quote_parser.add_argument("--reserve-in", type=int, required=True)
    quote_parser.add_argument("--reserve-out", type=int, required=True)
    quote_parser.set_defaults(func=cmd_quote)

    demo_parser = subparsers.add_parser("demo", help="Run a seeded WLD/USDC session")
    demo_parser.add_argument("--slippage-bps", type=int, default=150)
    demo_parser.set_defaults(func=cmd_demo)

    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        return int(args.func(args))
    except SimpleDexError as e:
        logger.error("command_failed", error=e.kind, detail=str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
