"""
Venue table and the default set of liquidity sources.

Every venue is configuration, not code: adding a fork of Uniswap V2 means
adding a ``LiquiditySource`` with ``PricingModel.CONSTANT_PRODUCT``.
"""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional

from ...config import Settings
from ..quote.models import LiquiditySource, PricingModel
from .tokens import FORK_CHAIN_ID

_MAINNET_VENUES: Dict[str, Dict[str, str]] = {
    "uniswap-v2": {
        "factory": "0x5C69bEe701ef814a2B6a3EDD4B1652CB9cc5aA6f",
        "router": "0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D",
    },
    "uniswap-v3": {
        "factory": "0x1F98431c8aD98523631AE4a59f267346ea31F984",
        "router": "0xE592427A0AEce92De3Edee1F18E0157C05861564",
        "quoter": "0xb27308f9F90D607463bb33eA1BeBb41C27CE5AB6",
    },
    "sushiswap-v2": {
        "factory": "0xC0AEe478e3658e2610c5F7A4A2E1777cE9e4f2Ac",
        "router": "0xd9e1cE17f2641f24aE83637ab66a2cca9C378B9F",
    },
    "pancakeswap-v2": {
        "factory": "0x1097053Fd2ea711dad45caCcc45EfF7548fCB362",
        "router": "0x10ED43C718714eb63d5aA57B78B54704E256024E",
    },
    "pancakeswap-v3": {
        "factory": "0x0BFbCF9fa4f9C56B0F40a671Ad40E0805A091865",
        "router": "0x13f4EA83D0bd40E75C8222255bc855a974568Dd4",
        "quoter": "0xB048Bbc1Ee6b733FFfCFb9e9CeF7375518e25997",
    },
    "curve": {
        "registry": "0x90E00ACe148ca3b23Ac1bC8C240C2a7Dd9c2d7f5",
        "factory": "0xB9fC157394Af804a3578134A6585C0dc9cc990d4",
        "3pool": "0xbEbc44782C7dB0a1A60Cb6fe97d0b483032FF1C7",
        "tricrypto2": "0xD51a44d3FaE010294C616388b506AcdA1bfAAE46",
    },
    "balancer-v2": {
        "vault": "0xBA12222222228d8Ba445958a75a0704d566BF2C8",
        "query_processor": "0xE39B5e3B6D74016b2F6A9673D7d7493B6DF549d5",
    },
    "uniswap-x": {
        "universal_router": "0x3fC91A3afd70395Cd496C647d5a6CC9D4B2b7FAD",
        "permit2": "0x000000000022D473030F116dDEE9F6B43aC78BA3",
    },
}

VENUE_TABLE: Dict[int, Dict[str, Dict[str, str]]] = {
    1: _MAINNET_VENUES,
    FORK_CHAIN_ID: _MAINNET_VENUES,
}

AGGREGATOR_CHAINS: Dict[str, frozenset] = {
    "0x": frozenset({1, 56, 137, 42161, 10, 43114, 42220, 250}),
    "1inch": frozenset({1, 56, 137, 10, 42161, 100, 43114, 250}),
    "kyberswap": frozenset({1, 56, 137, 42161, 10, 43114, 250, 25, 1313161554, 1101, 8453, 59144, 324}),
    "uniswap-api": frozenset({1, 10, 42161, 137, 56}),
}


def _chains_with(protocol: str, table: Mapping[int, Mapping[str, Mapping[str, str]]]) -> frozenset:
    return frozenset(chain for chain, venues in table.items() if protocol in venues)


def default_sources(
    settings: Optional[Settings] = None,
    table: Optional[Mapping[int, Mapping[str, Mapping[str, str]]]] = None,
) -> List[LiquiditySource]:
    """Build the configured sources in priority order (lower runs first on ties)."""
    venues = table if table is not None else VENUE_TABLE
    mainnet = venues.get(1, _MAINNET_VENUES)

    sources: List[LiquiditySource] = [
        LiquiditySource(
            name="uniswap-v2",
            protocol="uniswap-v2",
            model=PricingModel.CONSTANT_PRODUCT,
            chains=_chains_with("uniswap-v2", venues),
            addresses=mainnet["uniswap-v2"],
            fee_bps=30,
            priority=10,
        ),
        LiquiditySource(
            name="uniswap-v3",
            protocol="uniswap-v3",
            model=PricingModel.CONCENTRATED,
            chains=_chains_with("uniswap-v3", venues),
            addresses=mainnet["uniswap-v3"],
            fee_bps=5,
            priority=20,
        ),
        LiquiditySource(
            name="sushiswap-v2",
            protocol="sushiswap-v2",
            model=PricingModel.CONSTANT_PRODUCT,
            chains=_chains_with("sushiswap-v2", venues),
            addresses=mainnet["sushiswap-v2"],
            fee_bps=30,
            priority=30,
        ),
        LiquiditySource(
            name="pancakeswap-v2",
            protocol="pancakeswap-v2",
            model=PricingModel.CONSTANT_PRODUCT,
            chains=_chains_with("pancakeswap-v2", venues),
            addresses=mainnet["pancakeswap-v2"],
            fee_bps=25,
            priority=40,
        ),
        LiquiditySource(
            name="pancakeswap-v3",
            protocol="pancakeswap-v3",
            model=PricingModel.CONCENTRATED,
            chains=_chains_with("pancakeswap-v3", venues),
            addresses=mainnet["pancakeswap-v3"],
            fee_bps=5,
            priority=50,
        ),
        LiquiditySource(
            name="curve-3pool",
            protocol="curve",
            model=PricingModel.STABLE_SWAP,
            chains=_chains_with("curve", venues),
            addresses={"pool": mainnet["curve"]["3pool"]},
            priority=60,
            params={"coins": ("DAI", "USDC", "USDT")},
        ),
        LiquiditySource(
            name="curve-tricrypto2",
            protocol="curve",
            model=PricingModel.STABLE_SWAP,
            chains=_chains_with("curve", venues),
            addresses={"pool": mainnet["curve"]["tricrypto2"]},
            priority=70,
            params={"coins": ("USDT", "WBTC", "WETH")},
        ),
        LiquiditySource(
            name="balancer-v2",
            protocol="balancer-v2",
            model=PricingModel.WEIGHTED,
            chains=_chains_with("balancer-v2", venues),
            addresses=mainnet["balancer-v2"],
            priority=80,
        ),
    ]

    aggregators = [
        ("0x", "0x", "zerox_base_url", 90),
        ("1inch", "1inch", "oneinch_base_url", 100),
        ("kyberswap", "kyberswap", "kyberswap_base_url", 110),
        ("uniswap-api", "uniswap-x", "uniswap_routing_base_url", 120),
    ]
    toggles = settings.aggregator_toggles if settings is not None else {}
    for name, protocol, url_field, priority in aggregators:
        if toggles and not toggles.get(name, True):
            continue
        sources.append(
            LiquiditySource(
                name=name,
                protocol=protocol,
                model=PricingModel.AGGREGATOR,
                chains=AGGREGATOR_CHAINS[name],
                endpoint=getattr(settings, url_field) if settings is not None else None,
                priority=priority,
            )
        )

    allow = settings.source_allow_list if settings is not None else None
    if allow:
        sources = [source for source in sources if source.name in allow]
    return sources
