"""Async client for the 0x swap API."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional

from .base import AggregatorClient, AggregatorRequest, AggregatorResponse, normalise_shares, to_decimal, to_int


class ZeroExClient(AggregatorClient):
    """Wrapper around ``GET /swap/v1/quote``."""

    name = "0x"
    default_base_url = "https://api.0x.org"

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        if self.api_key:
            headers["0x-api-key"] = self.api_key
        return headers

    async def fetch_quote(self, request: AggregatorRequest) -> AggregatorResponse:
        params = {
            "sellToken": request.token_in.address,
            "buyToken": request.token_out.address,
            "sellAmount": str(request.amount_in),
            "slippagePercentage": str(Decimal(request.slippage_bps) / Decimal(10_000)),
            "skipValidation": "true",
        }
        payload = await self._get_json("/swap/v1/quote", params)

        shares = []
        for entry in payload.get("sources") or []:
            proportion = to_decimal(entry.get("proportion"))
            if entry.get("name") and proportion:
                shares.append((str(entry["name"]), proportion))

        amount_in_ref, amount_out_ref = self._reference_values(payload, request)
        return AggregatorResponse(
            amount_out=self._require_amount(payload.get("buyAmount"), payload),
            gas_estimate=to_int(payload.get("estimatedGas")) or to_int(payload.get("gas")),
            route=normalise_shares(shares),
            amount_in_usd=amount_in_ref,
            amount_out_usd=amount_out_ref,
            raw=payload,
        )

    @staticmethod
    def _reference_values(payload: Dict[str, Any], request: AggregatorRequest) -> tuple[Optional[Decimal], Optional[Decimal]]:
        """Value both sides through the ETH rates 0x returns alongside the quote.

        ``*TokenToEthRate`` is how many whole tokens one ETH buys. When the
        response also has ``ethToUsdRate`` the values are in USD, otherwise
        in ETH; price impact only needs them to share a unit.
        """
        sell_rate = to_decimal(payload.get("sellTokenToEthRate"))
        buy_rate = to_decimal(payload.get("buyTokenToEthRate"))
        sell_amount = to_int(payload.get("sellAmount")) or request.amount_in
        buy_amount = to_int(payload.get("buyAmount"))
        if not sell_rate or not buy_rate or buy_amount is None:
            return None, None

        eth_usd = to_decimal(payload.get("ethToUsdRate")) or Decimal("1")
        sell_whole = Decimal(sell_amount) / (Decimal(10) ** request.token_in.decimals)
        buy_whole = Decimal(buy_amount) / (Decimal(10) ** request.token_out.decimals)
        return sell_whole / sell_rate * eth_usd, buy_whole / buy_rate * eth_usd
