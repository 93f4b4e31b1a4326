"""Pricing delegated to an off-chain router (0x, 1inch, KyberSwap, Uniswap API)."""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from ....providers.base import AggregatorClient, AggregatorRequest
from ..amounts import Amount
from ..errors import SourceUnavailable, UnsupportedChain
from ..models import ComputeMode, LiquiditySource, PoolState, PricingModel, QuoteLeg, RouteHop, TokenDescriptor
from .base import PricingStrategy


class AggregatorDelegate(PricingStrategy):
    """Same ``quote`` contract as the on-chain strategies, answered over HTTP.

    Clients are looked up by source name. The chain allow-list on the
    ``LiquiditySource`` is checked before any request leaves the process.
    """

    model = PricingModel.AGGREGATOR

    def __init__(
        self,
        clients: Mapping[str, AggregatorClient],
        slippage_bps: int = 50,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(reader=None, logger=logger)
        self.clients = dict(clients)
        self.slippage_bps = slippage_bps

    async def quote(
        self,
        source: LiquiditySource,
        state: Optional[PoolState],
        amount_in: Amount,
        token_in: TokenDescriptor,
        token_out: TokenDescriptor,
    ) -> QuoteLeg:
        chain_id = token_in.chain_id
        if not source.supports(chain_id):
            raise UnsupportedChain(chain_id, source=source.name)

        if amount_in.is_zero():
            return self.zero_leg(source, token_in, token_out, ComputeMode.DELEGATED)

        client = self.clients.get(source.name)
        if client is None:
            raise SourceUnavailable(source.name, "no aggregator client configured")

        request = AggregatorRequest(
            chain_id=chain_id,
            token_in=token_in,
            token_out=token_out,
            amount_in=amount_in.value,
            slippage_bps=self.slippage_bps,
        )
        response = await self.call_venue(source, client.fetch_quote(request))

        route = tuple(
            RouteHop(
                venue=share.venue,
                token_in=token_in.symbol,
                token_out=token_out.symbol,
                proportion=share.proportion,
            )
            for share in response.route
        ) or self.direct_route(source, token_in, token_out)

        return QuoteLeg(
            source=source.name,
            amount_out=self.checked_output(source, response.amount_out),
            route=route,
            gas_estimate=response.gas_estimate,
            compute_mode=ComputeMode.DELEGATED,
            amount_in_usd=response.amount_in_usd,
            amount_out_usd=response.amount_out_usd,
        )
