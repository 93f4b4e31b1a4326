"""Async client for the Uniswap routing API (the one the interface uses)."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Tuple

from .base import AggregatorClient, AggregatorRequest, AggregatorResponse, normalise_shares, to_decimal, to_int


def _routing_shares(payload: Dict[str, Any]) -> List[Tuple[str, Decimal]]:
    shares: List[Tuple[str, Decimal]] = []
    for entry in payload.get("routingInfo") or []:
        if not isinstance(entry, dict):
            continue
        portion = to_decimal(entry.get("portion"))
        if entry.get("protocol") and portion:
            shares.append((str(entry["protocol"]), portion))
    if shares:
        return shares

    # Newer responses only carry the pool path; weight each path by its input
    total_in = to_int(payload.get("amount")) or 0
    for path in payload.get("route") or []:
        if not isinstance(path, list) or not path or not isinstance(path[0], dict):
            continue
        first = path[0]
        amount_in = to_int(first.get("amountIn"))
        pool_type = first.get("type") or "unknown"
        if amount_in and total_in:
            shares.append((str(pool_type), Decimal(amount_in) / Decimal(total_in)))
    return shares


class UniswapRoutingClient(AggregatorClient):
    name = "uniswap-api"
    default_base_url = "https://api.uniswap.org/v1"

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        headers["origin"] = "https://app.uniswap.org"
        return headers

    async def fetch_quote(self, request: AggregatorRequest) -> AggregatorResponse:
        params = {
            "protocols": "v2,v3,mixed",
            "tokenInAddress": request.token_in.address,
            "tokenInChainId": str(request.chain_id),
            "tokenOutAddress": request.token_out.address,
            "tokenOutChainId": str(request.chain_id),
            "amount": str(request.amount_in),
            "type": "exactIn",
        }
        payload = await self._get_json("/quote", params)

        return AggregatorResponse(
            amount_out=self._require_amount(payload.get("quote"), payload),
            gas_estimate=to_int(payload.get("gasUseEstimate")),
            route=normalise_shares(_routing_shares(payload)),
            raw=payload,
        )
