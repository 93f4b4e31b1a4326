from .base import AggregatorClient, AggregatorRequest, AggregatorResponse, RouteShare
from .kyberswap import KyberSwapClient
from .oneinch import OneInchClient
from .uniswap_routing import UniswapRoutingClient
from .zerox import ZeroExClient

__all__ = [
    "AggregatorClient",
    "AggregatorRequest",
    "AggregatorResponse",
    "RouteShare",
    "KyberSwapClient",
    "OneInchClient",
    "UniswapRoutingClient",
    "ZeroExClient",
]
