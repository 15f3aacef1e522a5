"""API endpoints for SimpleDEX."""

from functools import lru_cache

import structlog
from fastapi import APIRouter, Depends, Query

from simpledex.config import QuoteConfig
from simpledex.constants import FEE_BPS, MOCK_WLD, USDC_AMOY
from simpledex.models.api import (
    AddLiquidityRequest,
    AddLiquidityResponse,
    PoolInfoResponse,
    QuoteResponse,
    RemoveLiquidityRequest,
    RemoveLiquidityResponse,
    SwapRequest,
    SwapResponse,
)
from simpledex.pool import Pool, Token
from simpledex.quoter import SwapQuoter, format_units

logger = structlog.get_logger()

router = APIRouter()


@lru_cache(maxsize=1)
def get_default_quoter() -> SwapQuoter:
    """Create the process-wide WLD/USDC pool and its helper.

    The pool starts empty; it is seeded through POST /liquidity/add. Token
    transfers settle on-chain, so no ledger is attached.
    """
    pool = Pool(
        Token(address=MOCK_WLD, symbol="WLD", decimals=18),
        Token(address=USDC_AMOY, symbol="USDC", decimals=6),
    )
    logger.info("pool_created", pair=f"{pool.token_a.symbol}/{pool.token_b.symbol}")
    return SwapQuoter(pool, config=QuoteConfig.from_env())


def get_quoter() -> SwapQuoter:
    """Dependency provider for the quoter instance.

    Override this in tests to inject a quoter over a prepared pool:
        app.dependency_overrides[get_quoter] = lambda: quoter
    """
    return get_default_quoter()


@router.get("/pool")
async def pool_info(quoter: SwapQuoter = Depends(get_quoter)) -> PoolInfoResponse:
    """Current reserves, share supply and health of the pool."""
    info = quoter.pool.get_pool_info()
    health = quoter.pool_health()
    return PoolInfoResponse(
        pair=f"{info.symbol_a}/{info.symbol_b}",
        reserve_a=str(info.reserve_a),
        reserve_b=str(info.reserve_b),
        reserve_a_formatted=f"{health.reserve_a:f}",
        reserve_b_formatted=f"{health.reserve_b:f}",
        total_shares=str(info.total_shares),
        exchange_rate=f"{health.exchange_rate:f}",
        k=str(health.k),
        fee_bps=FEE_BPS,
        is_healthy=health.is_healthy,
    )


@router.get("/quote", response_model_by_alias=True)
async def quote(
    from_token: str = Query(alias="from"),
    to_token: str = Query(alias="to"),
    amount: int = Query(ge=0),
    slippage_bps: int | None = Query(default=None, ge=0, le=10_000),
    quoter: SwapQuoter = Depends(get_quoter),
) -> QuoteResponse:
    """Preview a swap without executing it."""
    direction = quoter.pool.direction_for(from_token, to_token)
    q = quoter.get_swap_quote(direction, amount, slippage_bps)
    return QuoteResponse(
        from_token=q.token_in.symbol,
        to_token=q.token_out.symbol,
        amount_in=str(q.amount_in),
        expected_output=str(q.expected_output),
        expected_output_formatted=f"{format_units(q.expected_output, q.token_out.decimals):f}",
        min_output=str(q.min_output),
        min_output_formatted=f"{format_units(q.min_output, q.token_out.decimals):f}",
        exchange_rate=f"{q.exchange_rate:f}",
        price_impact_bps=q.price_impact_bps,
        slippage_bps=q.slippage_bps,
        timestamp=q.timestamp,
        valid_until=q.expires_at,
    )


@router.post("/swap")
async def swap(
    request: SwapRequest,
    quoter: SwapQuoter = Depends(get_quoter),
) -> SwapResponse:
    """Execute a swap with the quote's minimum output as slippage bound."""
    direction = quoter.pool.direction_for(request.from_token, request.to_token)
    execution = quoter.execute_swap(
        direction,
        request.amount,
        trader=request.trader or request.recipient,
        recipient=request.recipient,
        slippage_bps=request.slippage_bps,
    )
    return SwapResponse(
        amount_in=str(execution.amount_in),
        amount_out=str(execution.amount_out),
        amount_out_formatted=(
            f"{format_units(execution.amount_out, execution.quote.token_out.decimals):f}"
        ),
        expected_output=str(execution.quote.expected_output),
        slippage_used_bps=execution.slippage_used_bps,
        effective_rate=f"{execution.effective_rate:f}",
        recipient=execution.recipient,
        timestamp=execution.timestamp,
    )


@router.post("/liquidity/add")
async def add_liquidity(
    request: AddLiquidityRequest,
    quoter: SwapQuoter = Depends(get_quoter),
) -> AddLiquidityResponse:
    shares = quoter.add_liquidity(request.amount_a, request.amount_b, request.owner)
    return AddLiquidityResponse(shares_minted=str(shares), owner=request.owner.lower())


@router.post("/liquidity/remove")
async def remove_liquidity(
    request: RemoveLiquidityRequest,
    quoter: SwapQuoter = Depends(get_quoter),
) -> RemoveLiquidityResponse:
    amount_a, amount_b = quoter.remove_liquidity(request.shares, request.owner)
    return RemoveLiquidityResponse(
        amount_a=str(amount_a), amount_b=str(amount_b), owner=request.owner.lower()
    )
