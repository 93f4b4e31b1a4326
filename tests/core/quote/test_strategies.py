"""
Tests for the pricing strategies

Local closed forms are checked against hand-computed integers; delegated
strategies are checked against a mocked venue reader.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from swapquote.core.quote.amounts import Amount
from swapquote.core.quote.errors import InsufficientLiquidity, PricingError, SourceUnavailable
from swapquote.core.quote.models import (
    ComputeMode,
    ConcentratedState,
    LiquiditySource,
    PricingModel,
    ReservesState,
    StableSwapState,
    TokenDescriptor,
    WeightedPoolState,
)
from swapquote.core.quote.strategies import (
    BatchSwapStep,
    ConcentratedLiquidityStrategy,
    ConstantProductStrategy,
    StableSwapStrategy,
    WeightedPoolStrategy,
    build_batch_swaps,
    constant_product_out,
    inverse_spot_price,
    spot_price,
)

WETH = TokenDescriptor("0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2", 1, 18, "WETH")
USDC = TokenDescriptor("0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", 1, 6, "USDC")
DAI = TokenDescriptor("0x6B175474E89094C44Da98b954EedeAC495271d0F", 1, 18, "DAI")
USDT = TokenDescriptor("0xdAC17F958D2ee523a2206206994597C13D831ec7", 1, 6, "USDT")


def make_source(name, model, protocol=None, **kwargs):
    return LiquiditySource(
        name=name,
        protocol=protocol or name,
        model=model,
        chains=frozenset({1}),
        **kwargs,
    )


def make_reader():
    reader = MagicMock()
    reader.read_pool_state = AsyncMock()
    reader.query_batch_swap = AsyncMock()
    reader.get_dy = AsyncMock()
    reader.quote_exact_input_single = AsyncMock()
    return reader


# =============================================================================
# Constant Product Tests
# =============================================================================

class TestConstantProduct:
    """Tests for the x*y=k strategy."""

    def test_formula_matches_router(self):
        """1000 in against (10000, 2000000) at 30 bps."""
        assert constant_product_out(1000, 10_000, 2_000_000, 30) == 997 * 2_000_000 // 10_997

    def test_zero_input(self):
        assert constant_product_out(0, 10_000, 2_000_000, 30) == 0

    def test_zero_input_on_empty_pool(self):
        assert constant_product_out(0, 0, 0, 30) == 0

    @pytest.mark.parametrize("reserves", [(0, 2_000_000), (10_000, 0)])
    def test_empty_reserves(self, reserves):
        with pytest.raises(InsufficientLiquidity):
            constant_product_out(1000, *reserves, 30)

    def test_fee_out_of_range(self):
        with pytest.raises(PricingError):
            constant_product_out(1000, 10_000, 2_000_000, 10_000)

    @pytest.mark.asyncio
    async def test_quote_leg(self):
        source = make_source("uniswap-v2", PricingModel.CONSTANT_PRODUCT, fee_bps=30)
        strategy = ConstantProductStrategy()

        leg = await strategy.quote(source, ReservesState(10_000, 2_000_000, 30), Amount(1000, 18), WETH, USDC)

        assert leg.source == "uniswap-v2"
        assert leg.amount_out == 181_322
        assert leg.compute_mode == ComputeMode.LOCAL
        assert leg.route[0].venue == "uniswap-v2"
        assert leg.route[0].token_in == "WETH"

    @pytest.mark.asyncio
    async def test_source_fee_applies_when_state_has_none(self):
        source = make_source("pancakeswap-v2", PricingModel.CONSTANT_PRODUCT, fee_bps=25)

        leg = await ConstantProductStrategy().quote(source, ReservesState(10_000, 2_000_000), Amount(10_000, 18), WETH, USDC)

        assert leg.amount_out == constant_product_out(10_000, 10_000, 2_000_000, 25)
        assert leg.amount_out != constant_product_out(10_000, 10_000, 2_000_000, 30)

    @pytest.mark.asyncio
    async def test_zero_amount_without_state(self):
        source = make_source("uniswap-v2", PricingModel.CONSTANT_PRODUCT)
        leg = await ConstantProductStrategy().quote(source, None, Amount(0, 18), WETH, USDC)
        assert leg.amount_out == 0

    @pytest.mark.asyncio
    async def test_wrong_state_type(self):
        source = make_source("uniswap-v2", PricingModel.CONSTANT_PRODUCT)
        with pytest.raises(PricingError):
            await ConstantProductStrategy().quote(
                source, StableSwapState(coins=()), Amount(1000, 18), WETH, USDC
            )


# =============================================================================
# Weighted Pool Tests
# =============================================================================

class TestWeightedPool:
    """Tests for the Balancer-style strategy."""

    def test_batch_swaps_thread_zero(self):
        steps = build_batch_swaps(["pool-a", "pool-b"], 5000)

        assert steps == [
            BatchSwapStep(pool_id="pool-a", asset_in_index=0, asset_out_index=1, amount=5000),
            BatchSwapStep(pool_id="pool-b", asset_in_index=1, asset_out_index=2, amount=0),
        ]

    @pytest.mark.asyncio
    async def test_balanced_pair_is_local(self):
        reader = make_reader()
        strategy = WeightedPoolStrategy(reader)
        source = make_source("balancer-v2", PricingModel.WEIGHTED)
        pool = WeightedPoolState(
            pool_ids=("pool-a",),
            assets=(WETH.address, USDC.address),
            balances=(10_000, 2_000_000),
            weights=(Decimal("0.5"), Decimal("0.5")),
            swap_fee_bps=30,
        )

        leg = await strategy.quote(source, pool, Amount(1000, 18), WETH, USDC)

        assert leg.amount_out == constant_product_out(1000, 10_000, 2_000_000, 30)
        assert leg.compute_mode == ComputeMode.LOCAL
        reader.query_batch_swap.assert_not_called()

    @pytest.mark.asyncio
    async def test_multi_hop_negates_output_delta(self):
        reader = make_reader()
        reader.query_batch_swap.return_value = [1000, 0, -5000]
        strategy = WeightedPoolStrategy(reader)
        source = make_source("balancer-v2", PricingModel.WEIGHTED)
        pool = WeightedPoolState(
            pool_ids=("pool-a", "pool-b"),
            assets=(WETH.address, DAI.address, USDC.address),
        )

        leg = await strategy.quote(source, pool, Amount(1000, 18), WETH, USDC)

        assert leg.amount_out == 5000
        assert leg.compute_mode == ComputeMode.DELEGATED
        assert len(leg.route) == 2
        swaps = reader.query_batch_swap.call_args.args[1]
        assert [step.amount for step in swaps] == [1000, 0]

    @pytest.mark.asyncio
    async def test_unweighted_single_pool_delegates(self):
        reader = make_reader()
        reader.query_batch_swap.return_value = [1000, -1800]
        strategy = WeightedPoolStrategy(reader)
        source = make_source("balancer-v2", PricingModel.WEIGHTED)
        pool = WeightedPoolState(
            pool_ids=("pool-a",),
            assets=(WETH.address, DAI.address),
            balances=(100, 200),
            weights=(Decimal("0.8"), Decimal("0.2")),
        )

        leg = await strategy.quote(source, pool, Amount(1000, 18), WETH, DAI)

        assert leg.amount_out == 1800
        reader.query_batch_swap.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_non_negative_output_delta(self):
        reader = make_reader()
        reader.query_batch_swap.return_value = [1000, 0]
        strategy = WeightedPoolStrategy(reader)
        source = make_source("balancer-v2", PricingModel.WEIGHTED)
        pool = WeightedPoolState(pool_ids=("pool-a",), assets=(WETH.address, DAI.address))

        with pytest.raises(PricingError):
            await strategy.quote(source, pool, Amount(1000, 18), WETH, DAI)

    @pytest.mark.asyncio
    async def test_mismatched_assets(self):
        strategy = WeightedPoolStrategy(make_reader())
        source = make_source("balancer-v2", PricingModel.WEIGHTED)
        pool = WeightedPoolState(pool_ids=("pool-a", "pool-b"), assets=(WETH.address, DAI.address))

        with pytest.raises(PricingError):
            await strategy.quote(source, pool, Amount(1000, 18), WETH, DAI)

    @pytest.mark.asyncio
    async def test_vault_failure_becomes_source_unavailable(self):
        reader = make_reader()
        reader.query_batch_swap.side_effect = RuntimeError("execution reverted")
        strategy = WeightedPoolStrategy(reader)
        source = make_source("balancer-v2", PricingModel.WEIGHTED)
        pool = WeightedPoolState(pool_ids=("pool-a",), assets=(WETH.address, DAI.address))

        with pytest.raises(SourceUnavailable) as exc_info:
            await strategy.quote(source, pool, Amount(1000, 18), WETH, DAI)
        assert exc_info.value.source == "balancer-v2"

    @pytest.mark.asyncio
    async def test_zero_amount(self):
        reader = make_reader()
        source = make_source("balancer-v2", PricingModel.WEIGHTED)
        leg = await WeightedPoolStrategy(reader).quote(source, None, Amount(0, 18), WETH, DAI)
        assert leg.amount_out == 0
        reader.query_batch_swap.assert_not_called()


# =============================================================================
# Stable Swap Tests
# =============================================================================

class TestStableSwap:
    """Tests for the Curve-style strategy."""

    def pool(self):
        return StableSwapState(coins=(DAI.address, USDC.address, USDT.address))

    @pytest.mark.asyncio
    async def test_delegates_to_get_dy(self):
        reader = make_reader()
        reader.get_dy.return_value = 999_500_000
        source = make_source("curve-3pool", PricingModel.STABLE_SWAP, protocol="curve")

        leg = await StableSwapStrategy(reader).quote(
            source, self.pool(), Amount(1000 * 10 ** 18, 18), DAI, USDC
        )

        assert leg.amount_out == 999_500_000
        assert leg.compute_mode == ComputeMode.DELEGATED
        reader.get_dy.assert_awaited_once_with(source, 0, 1, 1000 * 10 ** 18)

    @pytest.mark.asyncio
    async def test_token_not_in_pool(self):
        source = make_source("curve-3pool", PricingModel.STABLE_SWAP, protocol="curve")
        with pytest.raises(PricingError):
            await StableSwapStrategy(make_reader()).quote(source, self.pool(), Amount(1, 18), WETH, USDC)

    @pytest.mark.asyncio
    async def test_missing_reader(self):
        source = make_source("curve-3pool", PricingModel.STABLE_SWAP, protocol="curve")
        with pytest.raises(SourceUnavailable):
            await StableSwapStrategy().quote(source, self.pool(), Amount(1, 18), DAI, USDC)

    @pytest.mark.asyncio
    async def test_timeout_becomes_source_unavailable(self):
        reader = make_reader()
        reader.get_dy.side_effect = TimeoutError()
        source = make_source("curve-3pool", PricingModel.STABLE_SWAP, protocol="curve")

        with pytest.raises(SourceUnavailable) as exc_info:
            await StableSwapStrategy(reader).quote(source, self.pool(), Amount(1, 18), DAI, USDC)
        assert exc_info.value.category.value == "timeout"

    @pytest.mark.asyncio
    async def test_zero_amount(self):
        reader = make_reader()
        source = make_source("curve-3pool", PricingModel.STABLE_SWAP, protocol="curve")
        leg = await StableSwapStrategy(reader).quote(source, None, Amount(0, 18), DAI, USDC)
        assert leg.amount_out == 0
        reader.get_dy.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reported", [-5, "12", 1.5, True, None])
    async def test_rejects_bad_get_dy(self, reported):
        reader = make_reader()
        reader.get_dy.return_value = reported
        source = make_source("curve-3pool", PricingModel.STABLE_SWAP, protocol="curve")

        with pytest.raises(PricingError):
            await StableSwapStrategy(reader).quote(source, self.pool(), Amount(1000, 18), DAI, USDC)


# =============================================================================
# Concentrated Liquidity Tests
# =============================================================================

class TestConcentratedLiquidity:
    """Tests for the tick-based strategy."""

    def test_spot_price_at_unit_price(self):
        assert spot_price(2 ** 96, 18, 18) == 1

    def test_spot_price_scales_with_square(self):
        assert spot_price(2 ** 96 * 10, 6, 6) == 100

    def test_spot_price_decimals(self):
        assert spot_price(2 ** 96, 0, 2) == 100

    def test_inverse_spot_price(self):
        assert inverse_spot_price(2 ** 96, 0, 0) == 1
        assert inverse_spot_price(2 ** 96 * 2, 2, 0) == 25

    def test_inverse_spot_price_zero_denominator(self):
        with pytest.raises(PricingError):
            inverse_spot_price(1, 0, 18)

    @pytest.mark.asyncio
    async def test_amount_comes_from_quoter(self):
        reader = make_reader()
        reader.quote_exact_input_single.return_value = 1_995_000_000
        source = make_source("uniswap-v3", PricingModel.CONCENTRATED)
        pool = ConcentratedState(
            sqrt_price_x96=2 ** 96,
            tick=0,
            liquidity=10 ** 20,
            fee=500,
            token0=WETH.address,
            token1=USDC.address,
        )

        leg = await ConcentratedLiquidityStrategy(reader).quote(source, pool, Amount(10 ** 18, 18), WETH, USDC)

        assert leg.amount_out == 1_995_000_000
        assert leg.spot_price == spot_price(2 ** 96, 18, 6)
        assert leg.compute_mode == ComputeMode.DELEGATED
        reader.quote_exact_input_single.assert_awaited_once_with(source, WETH, USDC, 500, 10 ** 18)

    @pytest.mark.asyncio
    async def test_zero_amount(self):
        reader = make_reader()
        source = make_source("uniswap-v3", PricingModel.CONCENTRATED)
        leg = await ConcentratedLiquidityStrategy(reader).quote(source, None, Amount(0, 18), WETH, USDC)
        assert leg.amount_out == 0
        reader.quote_exact_input_single.assert_not_called()

    @pytest.mark.asyncio
    async def test_rejects_negative_quoter_output(self):
        reader = make_reader()
        reader.quote_exact_input_single.return_value = -1
        source = make_source("uniswap-v3", PricingModel.CONCENTRATED)
        pool = ConcentratedState(
            sqrt_price_x96=2 ** 96,
            tick=0,
            liquidity=10 ** 20,
            fee=500,
            token0=WETH.address,
            token1=USDC.address,
        )

        with pytest.raises(PricingError):
            await ConcentratedLiquidityStrategy(reader).quote(source, pool, Amount(10 ** 18, 18), WETH, USDC)
