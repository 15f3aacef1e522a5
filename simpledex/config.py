"""Quote and execution configuration."""

import os
from dataclasses import dataclass

from simpledex.constants import PRICE_SCALE

# Default slippage tolerance: 1.5% in basis points
DEFAULT_SLIPPAGE_BPS = 150

# Default quote lifetime: 10 minutes
DEFAULT_QUOTE_TTL_SECONDS = 10 * 60


@dataclass(frozen=True)
class QuoteConfig:
    """Centralized configuration for the quote/execution helper.

    Attributes:
        slippage_bps: Slippage tolerance applied when the caller gives none
        quote_ttl_seconds: How long a quote may be executed after issuance
        price_scale: Fixed-point scale for price impact computation (1e18)
    """

    slippage_bps: int = DEFAULT_SLIPPAGE_BPS
    quote_ttl_seconds: float = DEFAULT_QUOTE_TTL_SECONDS
    price_scale: int = PRICE_SCALE

    def __post_init__(self) -> None:
        if not 0 <= self.slippage_bps <= 10_000:
            raise ValueError(f"slippage_bps must be in [0, 10000], got {self.slippage_bps}")
        if self.quote_ttl_seconds <= 0:
            raise ValueError(f"quote_ttl_seconds must be positive, got {self.quote_ttl_seconds}")

    @classmethod
    def from_env(cls) -> "QuoteConfig":
        """Build config from SIMPLEDEX_SLIPPAGE_BPS and SIMPLEDEX_QUOTE_TTL."""
        return cls(
            slippage_bps=int(os.environ.get("SIMPLEDEX_SLIPPAGE_BPS", str(DEFAULT_SLIPPAGE_BPS))),
            quote_ttl_seconds=float(
                os.environ.get("SIMPLEDEX_QUOTE_TTL", str(DEFAULT_QUOTE_TTL_SECONDS))
            ),
        )


# Default configuration instance
DEFAULT_QUOTE_CONFIG = QuoteConfig()
