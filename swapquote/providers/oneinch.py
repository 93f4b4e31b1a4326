"""Async client for the 1inch aggregation API."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Tuple

from .base import AggregatorClient, AggregatorRequest, AggregatorResponse, normalise_shares, to_decimal, to_int

# Venues the fork environment has liquidity on
DEFAULT_PROTOCOLS = "UNISWAP_V3,UNISWAP_V2,SUSHI,CURVE,BALANCER_V2"


def _first_hop_shares(protocols: Any) -> List[Tuple[str, Decimal]]:
    """1inch nests routes as ``[route][hop][split]``; the first hop of each
    route carries the venue split in percent."""
    shares: List[Tuple[str, Decimal]] = []
    if not isinstance(protocols, list):
        return shares
    for route in protocols:
        if not isinstance(route, list) or not route:
            continue
        first_hop = route[0]
        if not isinstance(first_hop, list):
            continue
        for split in first_hop:
            if not isinstance(split, dict):
                continue
            part = to_decimal(split.get("part"))
            if split.get("name") and part:
                shares.append((str(split["name"]), part))
    return shares


class OneInchClient(AggregatorClient):
    name = "1inch"
    default_base_url = "https://api.1inch.dev/swap/v5.2"

    def __init__(self, *, protocols: str = DEFAULT_PROTOCOLS, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.protocols = protocols

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        if self.api_key:
            headers["authorization"] = f"Bearer {self.api_key}"
        return headers

    async def fetch_quote(self, request: AggregatorRequest) -> AggregatorResponse:
        params: Dict[str, Any] = {
            "src": request.token_in.address,
            "dst": request.token_out.address,
            "amount": str(request.amount_in),
            "includeGas": "true",
            "includeProtocols": "true",
        }
        if self.protocols:
            params["protocols"] = self.protocols

        payload = await self._get_json(f"/{request.chain_id}/quote", params)

        # v5.0 used toTokenAmount/estimatedGas, v5.2 uses toAmount/gas
        amount = payload.get("toAmount", payload.get("toTokenAmount"))
        gas = to_int(payload.get("gas")) or to_int(payload.get("estimatedGas"))
        return AggregatorResponse(
            amount_out=self._require_amount(amount, payload),
            gas_estimate=gas,
            route=normalise_shares(_first_hop_shares(payload.get("protocols"))),
            raw=payload,
        )
