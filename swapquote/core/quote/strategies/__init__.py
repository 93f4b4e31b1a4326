from .aggregator import AggregatorDelegate
from .base import BatchSwapStep, PricingStrategy, VenueStateReader
from .concentrated import ConcentratedLiquidityStrategy, inverse_spot_price, spot_price
from .constant_product import ConstantProductStrategy, constant_product_out
from .stable_swap import BetterRoute, RouteComparison, StableSwapStrategy, compare_routes
from .weighted import WeightedPoolStrategy, build_batch_swaps

__all__ = [
    "AggregatorDelegate",
    "BatchSwapStep",
    "BetterRoute",
    "ConcentratedLiquidityStrategy",
    "ConstantProductStrategy",
    "PricingStrategy",
    "RouteComparison",
    "StableSwapStrategy",
    "VenueStateReader",
    "WeightedPoolStrategy",
    "build_batch_swaps",
    "compare_routes",
    "constant_product_out",
    "inverse_spot_price",
    "spot_price",
]
