"""
Balancer-style weighted pools.

Only the equal-weight two-token case is priced in-process, since it reduces
to x*y=k. Everything else goes through the vault's ``queryBatchSwap`` which
returns signed balance deltas: positive for what the vault receives,
negative for what it pays out.
"""

from __future__ import annotations

from typing import List, Optional

from ..amounts import Amount
from ..errors import PricingError
from ..models import (
    ComputeMode,
    LiquiditySource,
    PoolState,
    PricingModel,
    QuoteLeg,
    RouteHop,
    TokenDescriptor,
    WeightedPoolState,
)
from .base import BatchSwapStep, PricingStrategy
from .constant_product import constant_product_out


def build_batch_swaps(pool_ids: List[str], amount_in: int) -> List[BatchSwapStep]:
    """Chain hops so each one spends the previous hop's output.

    The vault treats an amount of 0 on a later step as "use whatever the
    previous step produced", so only the first step carries ``amount_in``.
    """
    return [
        BatchSwapStep(
            pool_id=pool_id,
            asset_in_index=index,
            asset_out_index=index + 1,
            amount=amount_in if index == 0 else 0,
        )
        for index, pool_id in enumerate(pool_ids)
    ]


class WeightedPoolStrategy(PricingStrategy):
    model = PricingModel.WEIGHTED

    async def quote(
        self,
        source: LiquiditySource,
        state: Optional[PoolState],
        amount_in: Amount,
        token_in: TokenDescriptor,
        token_out: TokenDescriptor,
    ) -> QuoteLeg:
        if amount_in.is_zero():
            return self.zero_leg(source, token_in, token_out)

        pool = self.expect_state(source, state, WeightedPoolState)
        if len(pool.assets) != len(pool.pool_ids) + 1 or not pool.pool_ids:
            raise PricingError(
                f"{source.name}: {len(pool.pool_ids)} pools cannot route {len(pool.assets)} assets",
                source=source.name,
            )

        route = tuple(
            RouteHop(venue=source.protocol, token_in=pool.assets[i], token_out=pool.assets[i + 1])
            for i in range(len(pool.pool_ids))
        )

        if pool.is_balanced_pair:
            amount_out = constant_product_out(
                amount_in.value,
                pool.balances[0],
                pool.balances[1],
                pool.swap_fee_bps,
                source=source.name,
            )
            return QuoteLeg(
                source=source.name,
                amount_out=amount_out,
                route=route,
                gas_estimate=source.params.get("gas_estimate"),
                compute_mode=ComputeMode.LOCAL,
            )

        reader = self.require_reader(source)
        swaps = build_batch_swaps(list(pool.pool_ids), amount_in.value)
        deltas = await self.call_venue(source, reader.query_batch_swap(source, swaps, pool.assets))

        out_index = len(pool.assets) - 1
        if len(deltas) <= out_index:
            raise PricingError(
                f"{source.name} returned {len(deltas)} deltas for {len(pool.assets)} assets",
                source=source.name,
            )
        out_delta = int(deltas[out_index])
        if out_delta >= 0:
            raise PricingError(
                f"{source.name} reported no output for {token_out.symbol} (delta {out_delta})",
                source=source.name,
            )

        return QuoteLeg(
            source=source.name,
            amount_out=-out_delta,
            route=route,
            gas_estimate=source.params.get("gas_estimate"),
            compute_mode=ComputeMode.DELEGATED,
        )
