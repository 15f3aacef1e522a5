"""Pydantic models and shared types for SimpleDEX."""

from simpledex.models.api import (
    AddLiquidityRequest,
    AddLiquidityResponse,
    ErrorResponse,
    PoolInfoResponse,
    QuoteResponse,
    RemoveLiquidityRequest,
    RemoveLiquidityResponse,
    SwapRequest,
    SwapResponse,
)
from simpledex.models.types import Address, BasisPoints, Uint256

__all__ = [
    # Types
    "Address",
    "BasisPoints",
    "Uint256",
    # Requests
    "SwapRequest",
    "AddLiquidityRequest",
    "RemoveLiquidityRequest",
    # Responses
    "PoolInfoResponse",
    "QuoteResponse",
    "SwapResponse",
    "AddLiquidityResponse",
    "RemoveLiquidityResponse",
    "ErrorResponse",
]
