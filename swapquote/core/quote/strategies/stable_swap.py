"""
Curve-style stable pools.

The StableSwap invariant is solved by the pool itself (``get_dy``); the
engine never iterates it locally. What it adds is a comparison between a
direct swap and a two-hop swap through an intermediate coin.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..amounts import Amount, bps_difference
from ..errors import PricingError
from ..models import (
    ComputeMode,
    LiquiditySource,
    PoolState,
    PricingModel,
    QuoteLeg,
    StableSwapState,
    TokenDescriptor,
)
from .base import PricingStrategy


class BetterRoute(str, Enum):
    DIRECT = "direct"
    INDIRECT = "indirect"
    EQUAL = "equal"


@dataclass(frozen=True)
class RouteComparison:
    direct_out: int
    indirect_out: int
    better: BetterRoute
    pct_diff_bps: int

    @property
    def pct_diff(self) -> str:
        """Difference as a percentage string with two decimals, e.g. ``"0.03"``."""
        whole, frac = divmod(self.pct_diff_bps, 100)
        return f"{whole}.{frac:02d}"


def compare_routes(direct_out: int, indirect_out: int) -> RouteComparison:
    """Report which of two outputs is strictly larger and by how many bps."""
    if indirect_out > direct_out:
        better = BetterRoute.INDIRECT
    elif direct_out > indirect_out:
        better = BetterRoute.DIRECT
    else:
        better = BetterRoute.EQUAL
    return RouteComparison(
        direct_out=direct_out,
        indirect_out=indirect_out,
        better=better,
        pct_diff_bps=bps_difference(direct_out, indirect_out),
    )


class StableSwapStrategy(PricingStrategy):
    model = PricingModel.STABLE_SWAP

    def _indexes(self, source: LiquiditySource, pool: StableSwapState, token_in: TokenDescriptor, token_out: TokenDescriptor):
        i = pool.index_of(token_in.address)
        j = pool.index_of(token_out.address)
        if i < 0 or j < 0:
            missing = token_in.symbol if i < 0 else token_out.symbol
            raise PricingError(f"{missing} is not a coin of {source.name}", source=source.name)
        if i == j:
            raise PricingError(f"{source.name} cannot swap {token_in.symbol} for itself", source=source.name)
        return i, j

    async def quote(
        self,
        source: LiquiditySource,
        state: Optional[PoolState],
        amount_in: Amount,
        token_in: TokenDescriptor,
        token_out: TokenDescriptor,
    ) -> QuoteLeg:
        if amount_in.is_zero():
            return self.zero_leg(source, token_in, token_out, ComputeMode.DELEGATED)

        pool = self.expect_state(source, state, StableSwapState)
        i, j = self._indexes(source, pool, token_in, token_out)
        reader = self.require_reader(source)

        amount_out = await self.call_venue(source, reader.get_dy(source, i, j, amount_in.value))
        return QuoteLeg(
            source=source.name,
            amount_out=self.checked_output(source, amount_out),
            route=self.direct_route(source, token_in, token_out),
            gas_estimate=source.params.get("gas_estimate"),
            compute_mode=ComputeMode.DELEGATED,
        )

    async def compare_via(
        self,
        source: LiquiditySource,
        state: PoolState,
        amount_in: Amount,
        token_in: TokenDescriptor,
        intermediate: TokenDescriptor,
        token_out: TokenDescriptor,
    ) -> RouteComparison:
        """Quote ``token_in -> token_out`` directly and through ``intermediate``.

        Both legs of the indirect route run on the same pool; the second leg
        spends exactly what the first returned.
        """
        direct = await self.quote(source, state, amount_in, token_in, token_out)
        first = await self.quote(source, state, amount_in, token_in, intermediate)
        second = await self.quote(
            source,
            state,
            Amount(first.amount_out, intermediate.decimals),
            intermediate,
            token_out,
        )
        comparison = compare_routes(direct.amount_out, second.amount_out)
        self.logger.info(
            "%s %s->%s direct=%s via %s=%s better=%s (%s%%)",
            source.name,
            token_in.symbol,
            token_out.symbol,
            direct.amount_out,
            intermediate.symbol,
            second.amount_out,
            comparison.better.value,
            comparison.pct_diff,
        )
        return comparison

