"""Async client for the KyberSwap aggregator API."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Tuple

from ..core.quote.errors import UnsupportedPair
from .base import AggregatorClient, AggregatorRequest, AggregatorResponse, normalise_shares, to_decimal, to_int

CHAIN_SLUGS: Dict[int, str] = {
    1: "ethereum",
    10: "optimism",
    25: "cronos",
    56: "bsc",
    137: "polygon",
    250: "fantom",
    324: "zksync",
    1101: "polygon-zkevm",
    8453: "base",
    42161: "arbitrum",
    43114: "avalanche",
    59144: "linea",
    1313161554: "aurora",
}


def chain_slug(chain_id: int) -> str:
    return CHAIN_SLUGS.get(chain_id, f"chain-{chain_id}")


def _route_shares(route: Any, amount_in: int) -> List[Tuple[str, Decimal]]:
    """Weight each exchange by the input it receives on the first hop of each path."""
    shares: List[Tuple[str, Decimal]] = []
    if not isinstance(route, list) or amount_in <= 0:
        return shares
    for path in route:
        if not isinstance(path, list) or not path or not isinstance(path[0], dict):
            continue
        first = path[0]
        swap_amount = to_int(first.get("swapAmount"))
        if first.get("exchange") and swap_amount:
            shares.append((str(first["exchange"]), Decimal(swap_amount) / Decimal(amount_in)))
    return shares


class KyberSwapClient(AggregatorClient):
    name = "kyberswap"
    default_base_url = "https://aggregator-api.kyberswap.com"

    def __init__(self, *, client_id: str = "swapquote", **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.client_id = client_id

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        if self.client_id:
            headers["x-client-id"] = self.client_id
        return headers

    async def fetch_quote(self, request: AggregatorRequest) -> AggregatorResponse:
        params = {
            "tokenIn": request.token_in.address,
            "tokenOut": request.token_out.address,
            "amountIn": str(request.amount_in),
            "gasInclude": "true",
        }
        payload = await self._get_json(f"/{chain_slug(request.chain_id)}/api/v1/routes", params)

        code = payload.get("code")
        if code not in (None, 0):
            raise UnsupportedPair(
                f"kyberswap returned code {code}: {payload.get('message', '')}",
                source=self.name,
            )

        # v1 nests the summary under data; the legacy encode endpoint was flat
        data = payload.get("data") if isinstance(payload.get("data"), dict) else payload
        summary = data.get("routeSummary") if isinstance(data.get("routeSummary"), dict) else {}

        amount = summary.get("amountOut", data.get("outputAmount"))
        gas = to_int(summary.get("gas")) or to_int(data.get("totalGas"))
        amount_in_usd = to_decimal(summary.get("amountInUsd", data.get("amountInUsd")))
        amount_out_usd = to_decimal(summary.get("amountOutUsd", data.get("amountOutUsd")))

        return AggregatorResponse(
            amount_out=self._require_amount(amount, payload),
            gas_estimate=gas,
            route=normalise_shares(_route_shares(summary.get("route"), request.amount_in)),
            amount_in_usd=amount_in_usd,
            amount_out_usd=amount_out_usd,
            raw=payload,
        )
