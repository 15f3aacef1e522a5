"""Pool constants for SimpleDEX.

Centralizes the fee schedule and well-known token addresses.
"""

from simpledex.models.types import is_valid_address

# Swap fee in basis points (30 = 0.3%), fixed for every pool
FEE_BPS = 30

# Basis-point denominator used for fees, slippage and price impact
BPS_DENOMINATOR = 10_000

# Multiplier applied to the input amount before pricing (10000 - 30)
FEE_MULTIPLIER = BPS_DENOMINATOR - FEE_BPS

# Price scaling factor for exchange rate and price impact (1e18)
PRICE_SCALE = 10**18

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def _validate_token_address(name: str, address: str) -> str:
    """Validate and return a token address.

    Raises:
        ValueError: If the address is invalid
    """
    if not is_valid_address(address):
        raise ValueError(f"Invalid {name} address: {address} (must be 0x + 40 hex chars)")
    return address


# Tokens of the deployed WLD/USDC pool on Polygon Amoy (lowercase)
MOCK_WLD = _validate_token_address("WLD", "0xf99885b2c5284825e735bc920e314dd01ae2e17a")
USDC_AMOY = _validate_token_address("USDC", "0x8b0180f2101c8260d49339abfee87927412494b4")
SIMPLE_DEX_AMOY = _validate_token_address("SimpleDEX", "0x869442b25732c5fcc4c2315df4d6b09229b8b051")
