"""Canned figures served when no venue answers (mainnet prices circa the fork block)."""

from __future__ import annotations

from decimal import Decimal
from typing import List, Tuple

from ..quote.fallback import SimulationEntry, SimulationTable

# USD reference values, with ETH pinned to
# the 2,000 USDC the canned venue quotes assume.
REFERENCE_PRICES_USD = {
    "ETH": Decimal("2000"),
    "WETH": Decimal("2000"),
    "USDC": Decimal("1"),
    "USDT": Decimal("1"),
    "DAI": Decimal("1"),
    "WBTC": Decimal("33000"),
    "KNC": Decimal("1"),
    "CAKE": Decimal("10"),
}


def _route(*shares: Tuple[str, str]) -> Tuple[Tuple[str, Decimal], ...]:
    return tuple((venue, Decimal(proportion)) for venue, proportion in shares)


def _entries() -> List[SimulationEntry]:
    e = SimulationEntry
    entries = [
        # Constant-product forks
        e("uniswap-v2", "WETH", "USDC", "1", "2000"),
        e("uniswap-v2", "WETH", "DAI", "1", "2000"),
        e("uniswap-v2", "USDC", "WETH", "1000", "0.5"),
        e("uniswap-v2", "USDC", "DAI", "1000", "1000"),
        e("sushiswap-v2", "WETH", "USDC", "1", "2000"),
        e("sushiswap-v2", "WETH", "DAI", "1", "2000"),
        e("sushiswap-v2", "USDC", "WETH", "1000", "0.5"),
        e("sushiswap-v2", "USDC", "DAI", "1000", "1000"),
        e("pancakeswap-v2", "WETH", "USDC", "1", "2000"),
        e("pancakeswap-v2", "WETH", "CAKE", "1", "200"),
        e("pancakeswap-v2", "USDC", "WETH", "1000", "0.5"),
        e("pancakeswap-v2", "USDC", "CAKE", "1000", "100"),
        # Concentrated liquidity, 0.05% tier
        e("uniswap-v3", "WETH", "USDC", "1", "2000"),
        e("uniswap-v3", "WETH", "DAI", "1", "2000"),
        e("uniswap-v3", "USDC", "WETH", "1000", "0.5"),
        e("pancakeswap-v3", "WETH", "USDC", "1", "2000"),
        e("pancakeswap-v3", "USDC", "WETH", "1000", "0.5"),
        e("pancakeswap-v3", "WETH", "CAKE", "1", "200"),
        # Stable pools
        e("curve-3pool", "DAI", "USDC", "1000", "999.5"),
        e("curve-3pool", "USDC", "USDT", "1000", "999.8"),
        e("curve-3pool", "USDT", "DAI", "1000", "999.2"),
        e("curve-3pool", "DAI", "USDT", "1000", "999.0"),
        e("curve-tricrypto2", "USDT", "WBTC", "10000", "0.3745"),
        e("curve-tricrypto2", "WBTC", "WETH", "1", "15.2"),
        e("curve-tricrypto2", "WETH", "USDT", "10", "17500"),
        # Weighted pools
        e("balancer-v2", "WETH", "DAI", "1", "2000"),
        e("balancer-v2", "WETH", "USDC", "1", "2000"),
        e("balancer-v2", "USDC", "DAI", "1000", "999.5"),
    ]

    entries.extend(
        [
            e("0x", "WETH", "USDC", "1", "2000", 150_000,
              _route(("Uniswap_V3", "0.8"), ("Sushiswap", "0.2")), Decimal("0.05")),
            e("0x", "USDC", "DAI", "1000", "999.5", 180_000, _route(("Curve", "1")), Decimal("0.05")),
            e("0x", "WETH", "WBTC", "10", "0.6", 200_000,
              _route(("Uniswap_V3", "0.7"), ("Balancer", "0.3")), Decimal("0.10")),
            e("1inch", "WETH", "USDC", "1", "2000", 150_000, _route(("UNISWAP_V3", "0.5"), ("CURVE", "0.5"))),
            e("1inch", "USDC", "DAI", "1000", "999.5", 180_000, _route(("CURVE", "1"))),
            e("1inch", "WETH", "WBTC", "10", "0.6", 200_000,
              _route(("UNISWAP_V3", "0.5"), ("BALANCER_V2", "0.5"))),
            e("kyberswap", "WETH", "USDC", "1", "2000", 150_000,
              _route(("KyberSwap", "0.5"), ("Uniswap V3", "0.5")), Decimal("0.05")),
            e("kyberswap", "USDC", "DAI", "1000", "999.5", 180_000, _route(("Curve", "1")), Decimal("0.05")),
            e("kyberswap", "WETH", "KNC", "1", "2000", 200_000,
              _route(("KyberSwap", "0.5"), ("Uniswap V3", "0.5")), Decimal("0.10")),
            e("uniswap-api", "WETH", "USDC", "1", "2000", 150_000, _route(("v3", "0.7"), ("v2", "0.3"))),
            e("uniswap-api", "USDC", "WETH", "1000", "0.5", 150_000, _route(("v3", "0.7"), ("v2", "0.3"))),
            e("uniswap-api", "WETH", "DAI", "1", "2000", 150_000, _route(("v3", "0.7"), ("v2", "0.3"))),
        ]
    )
    return entries


def default_simulation_table() -> SimulationTable:
    return SimulationTable(_entries(), REFERENCE_PRICES_USD)
