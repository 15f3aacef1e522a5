"""Request and response models for the SimpleDEX HTTP API.

Amounts are serialized as decimal strings so that uint256 values survive
JSON clients that parse numbers as doubles.
"""

from pydantic import BaseModel, ConfigDict, Field

from simpledex.models.types import Address, BasisPoints, Uint256


class SwapRequest(BaseModel):
    """Body of POST /swap."""

    model_config = ConfigDict(populate_by_name=True)

    from_token: str = Field(alias="from", description="Symbol or address of the input token")
    to_token: str = Field(alias="to", description="Symbol or address of the output token")
    amount: Uint256
    recipient: Address
    trader: Address | None = Field(default=None, description="Payer; defaults to recipient")
    slippage_bps: BasisPoints | None = None


class AddLiquidityRequest(BaseModel):
    """Body of POST /liquidity/add."""

    amount_a: Uint256
    amount_b: Uint256
    owner: Address


class RemoveLiquidityRequest(BaseModel):
    """Body of POST /liquidity/remove."""

    shares: Uint256
    owner: Address


class PoolInfoResponse(BaseModel):
    pair: str
    reserve_a: str
    reserve_b: str
    reserve_a_formatted: str
    reserve_b_formatted: str
    total_shares: str
    exchange_rate: str
    k: str
    fee_bps: int
    is_healthy: bool


class QuoteResponse(BaseModel):
    from_token: str = Field(serialization_alias="from")
    to_token: str = Field(serialization_alias="to")
    amount_in: str
    expected_output: str
    expected_output_formatted: str
    min_output: str
    min_output_formatted: str
    exchange_rate: str
    price_impact_bps: int
    slippage_bps: int
    timestamp: float
    valid_until: float


class SwapResponse(BaseModel):
    success: bool = True
    amount_in: str
    amount_out: str
    amount_out_formatted: str
    expected_output: str
    slippage_used_bps: int
    effective_rate: str
    recipient: str
    timestamp: float


class AddLiquidityResponse(BaseModel):
    shares_minted: str
    owner: str


class RemoveLiquidityResponse(BaseModel):
    amount_a: str
    amount_b: str
    owner: str


class ErrorResponse(BaseModel):
    error: str
    detail: str
