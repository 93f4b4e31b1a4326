from __future__ import annotations

from typing import Optional

from ..amounts import BPS_DENOMINATOR, Amount
from ..errors import InsufficientLiquidity, PricingError
from ..models import ComputeMode, LiquiditySource, PoolState, PricingModel, QuoteLeg, ReservesState, TokenDescriptor
from .base import PricingStrategy


def constant_product_out(
    amount_in: int,
    reserve_in: int,
    reserve_out: int,
    fee_bps: int,
    source: Optional[str] = None,
) -> int:
    """x*y=k output with the fee taken from the input side, flooring like the router."""
    if amount_in == 0:
        return 0
    if reserve_in <= 0 or reserve_out <= 0:
        raise InsufficientLiquidity(
            f"Reserves ({reserve_in}, {reserve_out}) cannot fill a trade",
            source=source,
        )
    if not 0 <= fee_bps < BPS_DENOMINATOR:
        raise PricingError(f"Fee of {fee_bps} bps is out of range", source=source)

    amount_in_with_fee = amount_in * (BPS_DENOMINATOR - fee_bps) // BPS_DENOMINATOR
    return amount_in_with_fee * reserve_out // (reserve_in + amount_in_with_fee)


class ConstantProductStrategy(PricingStrategy):
    """Uniswap V2 style pools (also SushiSwap and PancakeSwap V2)."""

    model = PricingModel.CONSTANT_PRODUCT

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

        reserves = self.expect_state(source, state, ReservesState)
        amount_out = constant_product_out(
            amount_in.value,
            reserves.reserve_in,
            reserves.reserve_out,
            source.fee_bps if reserves.fee_bps is None else reserves.fee_bps,
            source=source.name,
        )
        return QuoteLeg(
            source=source.name,
            amount_out=amount_out,
            route=self.direct_route(source, token_in, token_out),
            gas_estimate=source.params.get("gas_estimate"),
            compute_mode=ComputeMode.LOCAL,
        )
