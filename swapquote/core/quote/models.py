"""Typed models shared by the pricing strategies and the orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple, Union

from .amounts import Amount, to_display_string


class PricingModel(str, Enum):
    """How a venue turns an input amount into an output amount."""

    CONSTANT_PRODUCT = "constant_product"
    WEIGHTED = "weighted"
    STABLE_SWAP = "stable_swap"
    CONCENTRATED = "concentrated"
    AGGREGATOR = "aggregator"


class ComputeMode(str, Enum):
    LOCAL = "local"          # closed form evaluated in-process
    DELEGATED = "delegated"  # venue or API computed the figure


class Provenance(str, Enum):
    LIVE = "live"
    SIMULATED = "simulated"


class RequestPhase(str, Enum):
    """Lifecycle of a single quote request."""

    REQUESTED = "requested"
    DISPATCHED = "dispatched"
    PARTIAL_FAILURE = "partial_failure"
    ALL_FAILED = "all_failed"
    ALL_SUCCEEDED = "all_succeeded"
    RESOLVED = "resolved"


@dataclass(frozen=True)
class TokenDescriptor:
    address: str
    chain_id: int
    decimals: int
    symbol: str

    def __post_init__(self) -> None:
        if self.decimals < 0:
            raise ValueError(f"decimals must be non-negative for {self.symbol}")

    @property
    def one(self) -> int:
        """One whole token in base units."""
        return 10 ** self.decimals


@dataclass(frozen=True)
class LiquiditySource:
    """A venue or aggregator that can be asked for a price."""

    name: str
    protocol: str
    model: PricingModel
    chains: FrozenSet[int]
    addresses: Mapping[str, str] = field(default_factory=dict)
    endpoint: Optional[str] = None
    fee_bps: int = 0
    priority: int = 100
    timeout_s: Optional[float] = None
    params: Mapping[str, Any] = field(default_factory=dict)

    def supports(self, chain_id: int) -> bool:
        return chain_id in self.chains

    def lists_coins(self, *symbols: str) -> bool:
        """False when the source names its coins and any of ``symbols`` is not one of them."""
        coins = self.params.get("coins")
        if not coins:
            return True
        listed = {coin.upper() for coin in coins}
        return all(symbol.upper() in listed for symbol in symbols)


# Pool state snapshots, one per pricing model. Always fresh, never mutated.

@dataclass(frozen=True)
class ReservesState:
    reserve_in: int
    reserve_out: int
    fee_bps: Optional[int] = None   # None: use the source's configured fee


@dataclass(frozen=True)
class WeightedPoolState:
    pool_ids: Tuple[str, ...]
    assets: Tuple[str, ...]
    balances: Tuple[int, ...] = ()
    weights: Tuple[Decimal, ...] = ()
    swap_fee_bps: int = 0

    @property
    def is_single_pool(self) -> bool:
        return len(self.pool_ids) == 1 and len(self.assets) == 2

    @property
    def is_balanced_pair(self) -> bool:
        return (
            self.is_single_pool
            and len(self.balances) == 2
            and len(self.weights) == 2
            and self.weights[0] == self.weights[1]
        )


@dataclass(frozen=True)
class StableSwapState:
    coins: Tuple[str, ...]
    balances: Tuple[int, ...] = ()
    amplification: int = 0
    fee: int = 0

    def index_of(self, address: str) -> int:
        lowered = address.lower()
        for index, coin in enumerate(self.coins):
            if coin.lower() == lowered:
                return index
        return -1


@dataclass(frozen=True)
class ConcentratedState:
    sqrt_price_x96: int
    tick: int
    liquidity: int
    fee: int
    token0: str
    token1: str


PoolState = Union[ReservesState, WeightedPoolState, StableSwapState, ConcentratedState]


@dataclass(frozen=True)
class RouteHop:
    venue: str
    token_in: str
    token_out: str
    proportion: Decimal = Decimal("1")


@dataclass(frozen=True)
class QuoteLeg:
    """What one source answered for one request."""

    source: str
    amount_out: int
    route: Tuple[RouteHop, ...] = ()
    gas_estimate: Optional[int] = None
    compute_mode: ComputeMode = ComputeMode.LOCAL
    spot_price: Optional[int] = None
    amount_in_usd: Optional[Decimal] = None
    amount_out_usd: Optional[Decimal] = None
    price_impact: Optional[Decimal] = None


@dataclass(frozen=True)
class SourceFailure:
    source: str
    reason: str
    category: str


@dataclass(frozen=True)
class Quote:
    token_in: TokenDescriptor
    token_out: TokenDescriptor
    chain_id: int
    amount_in: Amount
    amount_out: Amount
    unit_price: Amount
    min_amount_out: Amount
    slippage_bps: int
    provenance: Provenance
    source: str
    route: Tuple[RouteHop, ...] = ()
    gas_estimate: Optional[int] = None
    price_impact: Optional[Decimal] = None
    compute_mode: ComputeMode = ComputeMode.LOCAL
    unavailable: Tuple[SourceFailure, ...] = ()
    warnings: Tuple[str, ...] = ()
    quoted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_live(self) -> bool:
        return self.provenance is Provenance.LIVE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chain_id": self.chain_id,
            "token_in": self.token_in.symbol,
            "token_out": self.token_out.symbol,
            "amount_in": str(self.amount_in.value),
            "amount_out": str(self.amount_out.value),
            "amount_in_display": to_display_string(self.amount_in, 6),
            "amount_out_display": to_display_string(self.amount_out, 6),
            "unit_price": to_display_string(self.unit_price, 6),
            "min_amount_out": str(self.min_amount_out.value),
            "slippage_bps": self.slippage_bps,
            "price_impact": str(self.price_impact) if self.price_impact is not None else None,
            "gas_estimate": self.gas_estimate,
            "provenance": self.provenance.value,
            "source": self.source,
            "compute_mode": self.compute_mode.value,
            "route": [
                {
                    "venue": hop.venue,
                    "token_in": hop.token_in,
                    "token_out": hop.token_out,
                    "proportion": str(hop.proportion),
                }
                for hop in self.route
            ],
            "unavailable": [
                {"source": f.source, "reason": f.reason, "category": f.category}
                for f in self.unavailable
            ],
            "warnings": list(self.warnings),
            "quoted_at": self.quoted_at.isoformat(),
        }


@dataclass(frozen=True)
class SwapPlan:
    """Quote plus the bounds an execution collaborator must submit."""

    quote: Quote
    slippage_bps: int
    deadline: int
    min_amount_out: Amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            "quote": self.quote.to_dict(),
            "slippage_bps": self.slippage_bps,
            "deadline": self.deadline,
            "min_amount_out": str(self.min_amount_out.value),
        }
