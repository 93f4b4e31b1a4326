from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field

from ..config import settings
from ..core.quote.errors import (
    InsufficientLiquidity,
    InvalidAmount,
    NoLiveQuoteError,
    PricingError,
    SourceUnavailable,
    UnknownToken,
    UnsupportedChain,
)
from ..core.quote.models import Quote
from ..core.quote.orchestrator import QuoteOrchestrator
from ..middleware.logging_middleware import PROVENANCE_HEADER, SOURCE_HEADER


router = APIRouter(prefix="/quote")


@lru_cache(maxsize=1)
def get_orchestrator() -> QuoteOrchestrator:
    return QuoteOrchestrator.from_settings(settings)


class QuoteRequest(BaseModel):
    token_in: str = Field(description="Symbol or address of the input token")
    token_out: str = Field(description="Symbol or address of the output token")
    amount_in: str = Field(description="Human-readable decimal amount, e.g. '1.5'")
    chain_id: Optional[int] = Field(default=None, description="Chain id; defaults to the configured chain")
    slippage_bps: Optional[int] = Field(
        default=None,
        ge=0,
        le=settings.max_slippage_bps,
        description="Allowed slippage in basis points",
    )
    strict: Optional[bool] = Field(default=None, description="Fail instead of returning simulated figures")
    sources: Optional[List[str]] = Field(default=None, description="Restrict the fan-out to these source names")


class SwapPlanRequest(QuoteRequest):
    deadline_seconds: Optional[int] = Field(default=None, gt=0, description="Seconds until the plan expires")


class CompareRequest(BaseModel):
    token_in: str
    token_out: str
    amount_in: str
    chain_id: Optional[int] = None
    first: str = Field(description="Source name, e.g. 'pancakeswap-v3'")
    second: str = Field(description="Source name, e.g. 'uniswap-v3'")


class RouteCompareRequest(BaseModel):
    token_in: str
    via: str = Field(description="Intermediate coin for the two-hop route")
    token_out: str
    amount_in: str
    chain_id: Optional[int] = None
    source: str = Field(default="curve-3pool", description="Stable pool to price on")


def _http_error(exc: Exception) -> HTTPException:
    """404 for unknown tokens, 503 when a venue could not answer, 400 otherwise."""
    if isinstance(exc, UnknownToken):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, (NoLiveQuoteError, SourceUnavailable, InsufficientLiquidity)):
        return HTTPException(status_code=503, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


def _tag_provenance(response: Response, quote: Quote) -> None:
    response.headers[PROVENANCE_HEADER] = quote.provenance.value
    response.headers[SOURCE_HEADER] = quote.source


@router.post("")
async def post_quote(
    req: QuoteRequest,
    response: Response,
    orchestrator: QuoteOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    try:
        quote = await orchestrator.get_quote(
            req.token_in,
            req.token_out,
            req.amount_in,
            req.chain_id or settings.default_chain_id,
            req.slippage_bps,
            strict=req.strict,
            sources=req.sources,
        )
    except (InvalidAmount, UnknownToken, UnsupportedChain, NoLiveQuoteError) as exc:
        raise _http_error(exc) from exc
    _tag_provenance(response, quote)
    return {"success": True, "quote": quote.to_dict()}


@router.post("/plan")
async def post_swap_plan(
    req: SwapPlanRequest,
    response: Response,
    orchestrator: QuoteOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    try:
        quote = await orchestrator.get_quote(
            req.token_in,
            req.token_out,
            req.amount_in,
            req.chain_id or settings.default_chain_id,
            req.slippage_bps,
            strict=req.strict,
            sources=req.sources,
        )
        plan = orchestrator.build_swap_plan(quote, req.slippage_bps, req.deadline_seconds)
    except (InvalidAmount, UnknownToken, UnsupportedChain, NoLiveQuoteError) as exc:
        raise _http_error(exc) from exc
    _tag_provenance(response, quote)
    return {"success": True, "plan": plan.to_dict()}


@router.post("/compare")
async def post_compare(
    req: CompareRequest,
    orchestrator: QuoteOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    try:
        result = await orchestrator.compare_sources(
            req.token_in,
            req.token_out,
            req.amount_in,
            req.chain_id or settings.default_chain_id,
            req.first,
            req.second,
        )
    except (InvalidAmount, UnknownToken, UnsupportedChain, PricingError) as exc:
        raise _http_error(exc) from exc
    return {
        "success": True,
        "first": {"source": result.first, "amount_out": str(result.first_out)},
        "second": {"source": result.second, "amount_out": str(result.second_out)},
        "better": result.better,
        "pct_diff_bps": result.pct_diff_bps,
    }


@router.post("/compare-route")
async def post_compare_route(
    req: RouteCompareRequest,
    orchestrator: QuoteOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    try:
        result = await orchestrator.compare_stable_routes(
            req.token_in,
            req.via,
            req.token_out,
            req.amount_in,
            req.chain_id or settings.default_chain_id,
            source_name=req.source,
        )
    except (InvalidAmount, UnknownToken, UnsupportedChain, PricingError) as exc:
        raise _http_error(exc) from exc
    return {
        "success": True,
        "direct_out": str(result.direct_out),
        "indirect_out": str(result.indirect_out),
        "better": result.better.value,
        "pct_diff_bps": result.pct_diff_bps,
        "pct_diff": result.pct_diff,
    }
