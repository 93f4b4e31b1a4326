from typing import Any, Dict

from fastapi import APIRouter, Depends

from ..core.quote.orchestrator import QuoteOrchestrator
from .quote import get_orchestrator

router = APIRouter()


@router.get("/healthz")
async def health_check(orchestrator: QuoteOrchestrator = Depends(get_orchestrator)) -> Dict[str, Any]:
    """Report which sources the engine would fan out to; no venue is contacted."""

    active = {
        source.name
        for chain_id in orchestrator.tokens.chains
        for source in orchestrator.candidates(chain_id)
    }
    sources = {
        source.name: {
            "model": source.model.value,
            "chains": sorted(source.chains),
            "active": source.name in active,
        }
        for source in orchestrator.sources
    }

    return {
        "status": "healthy" if active else "degraded",
        "sources": sources,
        "simulation_fallback": orchestrator.simulation is not None,
        "strict_quotes": orchestrator.strict,
    }
