from __future__ import annotations

from typing import Optional

from ..amounts import Amount
from ..errors import PricingError
from ..models import (
    ComputeMode,
    ConcentratedState,
    LiquiditySource,
    PoolState,
    PricingModel,
    QuoteLeg,
    TokenDescriptor,
)
from .base import PricingStrategy

Q192 = 2 ** 192


def spot_price(sqrt_price_x96: int, decimals_in: int, decimals_out: int) -> int:
    """token1 per token0 at the current tick: ``sqrtPriceX96**2 * 10**out / (2**192 * 10**in)``, floored."""
    denominator = Q192 * 10 ** decimals_in
    return sqrt_price_x96 ** 2 * 10 ** decimals_out // denominator


def inverse_spot_price(sqrt_price_x96: int, decimals_in: int, decimals_out: int) -> int:
    """token0 per token1, the mirror of ``spot_price``.

    ``decimals_in`` and ``decimals_out`` stay token0 and token1 respectively.
    """
    scaled = sqrt_price_x96 ** 2 // 10 ** decimals_out
    if scaled == 0:
        raise PricingError(f"sqrtPriceX96 {sqrt_price_x96} is too small to invert")
    return 10 ** decimals_in * Q192 // scaled


class ConcentratedLiquidityStrategy(PricingStrategy):
    """Uniswap V3 style pools.

    The executed amount always comes from the venue's quoter; the spot price
    derived from ``sqrtPriceX96`` is attached for display only.
    """

    model = PricingModel.CONCENTRATED

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

        pool = self.expect_state(source, state, ConcentratedState)
        if pool.liquidity == 0:
            self.logger.debug("%s reports zero in-range liquidity", source.name)

        zero_for_one = pool.token0.lower() == token_in.address.lower()
        try:
            if zero_for_one:
                price = spot_price(pool.sqrt_price_x96, token_in.decimals, token_out.decimals)
            else:
                price = inverse_spot_price(pool.sqrt_price_x96, token_out.decimals, token_in.decimals)
        except PricingError:
            price = None

        reader = self.require_reader(source)
        amount_out = await self.call_venue(
            source,
            reader.quote_exact_input_single(source, token_in, token_out, pool.fee, amount_in.value),
        )
        return QuoteLeg(
            source=source.name,
            amount_out=self.checked_output(source, amount_out),
            route=self.direct_route(source, token_in, token_out),
            gas_estimate=source.params.get("gas_estimate"),
            compute_mode=ComputeMode.DELEGATED,
            spot_price=price,
        )
