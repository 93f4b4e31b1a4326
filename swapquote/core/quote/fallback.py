"""
Simulation fallback.

When no live source answers, the orchestrator still owes the caller a
quote. This table holds reference rates per (source, pair) and scales them
to the requested size with integer arithmetic. Pairs nobody configured are
priced through a USD reference table, with unknown tokens valued at $1.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal, localcontext
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .amounts import Amount, to_base_units
from .models import RouteHop, TokenDescriptor

logger = logging.getLogger(__name__)

REFERENCE_SOURCE = "reference-prices"


@dataclass(frozen=True)
class SimulationEntry:
    """``amount_in`` of ``token_in`` buys ``amount_out`` of ``token_out`` on ``source``."""

    source: str
    token_in: str
    token_out: str
    amount_in: str
    amount_out: str
    gas_estimate: Optional[int] = None
    route: Tuple[Tuple[str, Decimal], ...] = ()
    price_impact: Optional[Decimal] = None

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.source, self.token_in.upper(), self.token_out.upper())


@dataclass(frozen=True)
class SimulatedQuote:
    source: str
    amount_out: int
    route: Tuple[RouteHop, ...] = ()
    gas_estimate: Optional[int] = None
    price_impact: Optional[Decimal] = None
    warnings: Tuple[str, ...] = field(default_factory=tuple)


class SimulationTable:
    """Read-only canned quotes, injected into the orchestrator at startup."""

    def __init__(
        self,
        entries: Iterable[SimulationEntry],
        reference_prices_usd: Optional[Mapping[str, Decimal]] = None,
    ):
        self._entries: Dict[Tuple[str, str, str], SimulationEntry] = {}
        for entry in entries:
            self._entries[entry.key] = entry
        self._prices: Dict[str, Decimal] = {
            symbol.upper(): Decimal(str(price)) for symbol, price in (reference_prices_usd or {}).items()
        }

    def __len__(self) -> int:
        return len(self._entries)

    def entry(self, source: str, token_in: str, token_out: str) -> Optional[SimulationEntry]:
        return self._entries.get((source, token_in.upper(), token_out.upper()))

    def lookup(
        self,
        token_in: TokenDescriptor,
        token_out: TokenDescriptor,
        amount_in: Amount,
        sources: Sequence[str] = (),
    ) -> SimulatedQuote:
        """Best-effort canned quote; never raises for a resolvable pair.

        ``sources`` is the caller's priority order. Direct entries win over
        inverted ones; the USD table is the last resort.
        """
        ordered = list(dict.fromkeys(list(sources) + sorted({key[0] for key in self._entries})))

        for source in ordered:
            entry = self.entry(source, token_in.symbol, token_out.symbol)
            if entry is not None:
                return self._scale_direct(entry, token_in, token_out, amount_in)

        for source in ordered:
            entry = self.entry(source, token_out.symbol, token_in.symbol)
            if entry is not None:
                return self._scale_inverse(entry, token_in, token_out, amount_in)

        return self._from_reference_prices(token_in, token_out, amount_in)

    def _scale_direct(
        self, entry: SimulationEntry, token_in: TokenDescriptor, token_out: TokenDescriptor, amount_in: Amount
    ) -> SimulatedQuote:
        ref_in = to_base_units(entry.amount_in, token_in.decimals).value
        ref_out = to_base_units(entry.amount_out, token_out.decimals).value
        return SimulatedQuote(
            source=entry.source,
            amount_out=amount_in.value * ref_out // ref_in if ref_in else 0,
            route=self._route(entry, token_in, token_out),
            gas_estimate=entry.gas_estimate,
            price_impact=entry.price_impact,
        )

    def _scale_inverse(
        self, entry: SimulationEntry, token_in: TokenDescriptor, token_out: TokenDescriptor, amount_in: Amount
    ) -> SimulatedQuote:
        # entry prices token_out -> token_in; read it backwards
        ref_out = to_base_units(entry.amount_in, token_out.decimals).value
        ref_in = to_base_units(entry.amount_out, token_in.decimals).value
        return SimulatedQuote(
            source=entry.source,
            amount_out=amount_in.value * ref_out // ref_in if ref_in else 0,
            route=self._route(entry, token_in, token_out),
            gas_estimate=entry.gas_estimate,
            warnings=(f"Inverted {entry.source} {entry.token_in}/{entry.token_out} simulation rate",),
        )

    def _from_reference_prices(
        self, token_in: TokenDescriptor, token_out: TokenDescriptor, amount_in: Amount
    ) -> SimulatedQuote:
        warnings: List[str] = []
        price_in = self._price(token_in.symbol, warnings)
        price_out = self._price(token_out.symbol, warnings)

        with localcontext() as ctx:
            ctx.prec = 80
            value = (
                Decimal(amount_in.value)
                * price_in
                * (Decimal(10) ** token_out.decimals)
                / (price_out * (Decimal(10) ** token_in.decimals))
            )
            amount_out = int(value)

        return SimulatedQuote(
            source=REFERENCE_SOURCE,
            amount_out=amount_out,
            route=(RouteHop(venue=REFERENCE_SOURCE, token_in=token_in.symbol, token_out=token_out.symbol),),
            warnings=tuple(warnings),
        )

    def _price(self, symbol: str, warnings: List[str]) -> Decimal:
        price = self._prices.get(symbol.upper())
        if price is None or price <= 0:
            # Unknown token; fall back to $1 so the caller still gets a figure
            warnings.append(f"No reference price for {symbol}; using $1 placeholder")
            logger.warning("No reference price for %s; using $1 placeholder", symbol)
            return Decimal("1")
        return price

    @staticmethod
    def _route(entry: SimulationEntry, token_in: TokenDescriptor, token_out: TokenDescriptor) -> Tuple[RouteHop, ...]:
        if not entry.route:
            return (RouteHop(venue=entry.source, token_in=token_in.symbol, token_out=token_out.symbol),)
        return tuple(
            RouteHop(venue=venue, token_in=token_in.symbol, token_out=token_out.symbol, proportion=proportion)
            for venue, proportion in entry.route
        )
