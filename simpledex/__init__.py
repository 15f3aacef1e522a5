"""SimpleDEX - constant product market maker with quote/execution helper."""

from simpledex.pool import Direction, Pool, PoolInfo, Token
from simpledex.quoter import SwapExecution, SwapQuote, SwapQuoter

__version__ = "0.1.0"
__all__ = [
    "Direction",
    "Pool",
    "PoolInfo",
    "Token",
    "SwapExecution",
    "SwapQuote",
    "SwapQuoter",
    "__version__",
]
