"""
Source Orchestrator

Fans a quote request out to every eligible liquidity source, bounds each
call with its own timeout, keeps whatever survives and picks the best
output. When nothing survives the simulation table answers instead, so a
caller always receives a ``Quote`` and reads ``provenance`` to tell live
figures from canned ones.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import httpx
import structlog

from ...config import Settings
from ...providers import KyberSwapClient, OneInchClient, UniswapRoutingClient, ZeroExClient
from ...providers.base import AggregatorClient
from ..registry import TokenRegistry, default_simulation_table, default_sources
from .amounts import BPS_DENOMINATOR, Amount, apply_bps, to_base_units
from .errors import (
    ErrorCategory,
    InvalidAmount,
    NoLiveQuoteError,
    PricingError,
    QuoteEngineError,
    SourceUnavailable,
    classify_error,
)
from .fallback import SimulationTable
from .models import (
    ComputeMode,
    LiquiditySource,
    PricingModel,
    Provenance,
    Quote,
    QuoteLeg,
    RequestPhase,
    SourceFailure,
    SwapPlan,
    TokenDescriptor,
)
from .strategies import (
    AggregatorDelegate,
    ConcentratedLiquidityStrategy,
    ConstantProductStrategy,
    PricingStrategy,
    RouteComparison,
    StableSwapStrategy,
    VenueStateReader,
    WeightedPoolStrategy,
    compare_routes,
)

logger = logging.getLogger(__name__)
events = structlog.stdlib.get_logger("quote")

AmountLike = Union[str, int, Amount]

PRICE_IMPACT_QUANTUM = Decimal("0.0001")
SIMULATED_WARNING = "No live source answered; figures are simulated"


@dataclass(frozen=True)
class SourceComparison:
    """Two named sources priced on the same request."""

    first: str
    second: str
    first_out: int
    second_out: int
    better: Optional[str]
    pct_diff_bps: int


def build_swap_plan(
    quote: Quote,
    slippage_bps: int,
    deadline_seconds: int,
    now: Optional[float] = None,
) -> SwapPlan:
    """Attach execution bounds to a quote.

    ``min_amount_out`` is what an executor must pass on-chain, never
    ``amount_out`` itself.
    """
    if isinstance(slippage_bps, bool) or not isinstance(slippage_bps, int) or not 0 <= slippage_bps <= BPS_DENOMINATOR:
        raise InvalidAmount(f"Slippage must be within 0..{BPS_DENOMINATOR} bps, got {slippage_bps!r}")
    if isinstance(deadline_seconds, bool) or not isinstance(deadline_seconds, int) or deadline_seconds <= 0:
        raise InvalidAmount(f"Deadline must be a positive number of seconds, got {deadline_seconds!r}")

    issued_at = int(now if now is not None else time.time())
    min_out = apply_bps(quote.amount_out.value, slippage_bps)
    return SwapPlan(
        quote=quote,
        slippage_bps=slippage_bps,
        deadline=issued_at + deadline_seconds,
        min_amount_out=Amount(min_out, quote.amount_out.decimals),
    )


def price_impact_from_usd(amount_in_usd: Optional[Decimal], amount_out_usd: Optional[Decimal]) -> Optional[Decimal]:
    """``(1 - out/in) * 100`` when both sides were valued by the same response."""
    if amount_in_usd is None or amount_out_usd is None or amount_in_usd <= 0:
        return None
    impact = (Decimal(1) - amount_out_usd / amount_in_usd) * Decimal(100)
    return impact.quantize(PRICE_IMPACT_QUANTUM)


class QuoteOrchestrator:
    """Entry point for ``get_quote`` and ``build_swap_plan``."""

    def __init__(
        self,
        sources: Sequence[LiquiditySource],
        tokens: TokenRegistry,
        strategies: Mapping[PricingModel, PricingStrategy],
        *,
        reader: Optional[VenueStateReader] = None,
        simulation: Optional[SimulationTable] = None,
        default_timeout_s: float = 5.0,
        default_slippage_bps: int = 50,
        default_deadline_seconds: int = 1200,
        strict: bool = False,
        clock: Callable[[], float] = time.time,
    ):
        self.sources = sorted(sources, key=lambda s: s.priority)
        self.tokens = tokens
        self.strategies = dict(strategies)
        self.reader = reader
        self.simulation = simulation
        self.default_timeout_s = default_timeout_s
        self.default_slippage_bps = default_slippage_bps
        self.default_deadline_seconds = default_deadline_seconds
        self.strict = strict
        self.clock = clock

        if reader is None:
            onchain = [s.name for s in self.sources if s.model is not PricingModel.AGGREGATOR]
            if onchain:
                logger.info("No venue state reader configured; skipping on-chain sources %s", onchain)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        reader: Optional[VenueStateReader] = None,
        tokens: Optional[TokenRegistry] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "QuoteOrchestrator":
        """Wire the default venues, aggregator clients and simulation table.

        Each aggregator client talks to the ``endpoint`` of its source, so a
        toggled-off or allow-listed-out aggregator gets no client at all.
        """
        timeout = settings.source_timeout_seconds
        sources = default_sources(settings)
        endpoints = {source.name: source.endpoint for source in sources if source.endpoint}
        factories: Dict[str, Callable[[str], AggregatorClient]] = {
            "0x": lambda url: ZeroExClient(
                base_url=url,
                api_key=settings.zerox_api_key,
                timeout_s=timeout,
                transport=transport,
            ),
            "1inch": lambda url: OneInchClient(
                base_url=url,
                api_key=settings.oneinch_api_key,
                timeout_s=timeout,
                transport=transport,
            ),
            "kyberswap": lambda url: KyberSwapClient(
                base_url=url,
                client_id=settings.kyberswap_client_id,
                timeout_s=timeout,
                transport=transport,
            ),
            "uniswap-api": lambda url: UniswapRoutingClient(
                base_url=url,
                timeout_s=timeout,
                transport=transport,
            ),
        }
        clients = {name: factories[name](url) for name, url in endpoints.items() if name in factories}
        strategies: Dict[PricingModel, PricingStrategy] = {
            PricingModel.CONSTANT_PRODUCT: ConstantProductStrategy(reader),
            PricingModel.WEIGHTED: WeightedPoolStrategy(reader),
            PricingModel.STABLE_SWAP: StableSwapStrategy(reader),
            PricingModel.CONCENTRATED: ConcentratedLiquidityStrategy(reader),
            PricingModel.AGGREGATOR: AggregatorDelegate(clients, slippage_bps=settings.default_slippage_bps),
        }
        return cls(
            sources,
            tokens or TokenRegistry(),
            strategies,
            reader=reader,
            simulation=default_simulation_table() if settings.enable_simulation_fallback else None,
            default_timeout_s=timeout,
            default_slippage_bps=settings.default_slippage_bps,
            default_deadline_seconds=settings.default_deadline_seconds,
            strict=settings.strict_quotes,
        )

    # ------------------------------------------------------------------
    # Input handling
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_amount(amount_in: AmountLike, token: TokenDescriptor) -> Amount:
        """Strings are human decimals; ints are already base units."""
        if isinstance(amount_in, Amount):
            if amount_in.decimals != token.decimals:
                raise InvalidAmount(
                    f"Amount has {amount_in.decimals} decimals but {token.symbol} uses {token.decimals}"
                )
            return amount_in
        if isinstance(amount_in, bool) or isinstance(amount_in, float):
            raise InvalidAmount(f"Amounts must be decimal strings or integers, got {type(amount_in).__name__}")
        if isinstance(amount_in, int):
            return Amount(amount_in, token.decimals)
        return to_base_units(amount_in, token.decimals)

    def _resolve_slippage(self, slippage_bps: Optional[int]) -> int:
        value = self.default_slippage_bps if slippage_bps is None else slippage_bps
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= BPS_DENOMINATOR:
            raise InvalidAmount(f"Slippage must be within 0..{BPS_DENOMINATOR} bps, got {value!r}")
        return value

    def candidates(
        self,
        chain_id: int,
        only: Optional[Sequence[str]] = None,
        symbols: Sequence[str] = (),
    ) -> List[LiquiditySource]:
        wanted = {name.lower() for name in only} if only else None
        picked = []
        for source in self.sources:
            if not source.supports(chain_id):
                continue
            if wanted is not None and source.name.lower() not in wanted:
                continue
            if source.model is not PricingModel.AGGREGATOR and self.reader is None:
                continue
            if symbols and not source.lists_coins(*symbols):
                continue
            picked.append(source)
        return picked

    # ------------------------------------------------------------------
    # Per-source execution
    # ------------------------------------------------------------------

    async def _run_source(
        self,
        source: LiquiditySource,
        token_in: TokenDescriptor,
        token_out: TokenDescriptor,
        amount: Amount,
    ) -> QuoteLeg:
        strategy = self.strategies.get(source.model)
        if strategy is None:
            raise SourceUnavailable(source.name, f"no strategy for {source.model.value}")

        state = None
        if source.model is not PricingModel.AGGREGATOR and not amount.is_zero():
            reader = strategy.require_reader(source)
            state = await strategy.call_venue(source, reader.read_pool_state(source, token_in, token_out))
        leg = await strategy.quote(source, state, amount, token_in, token_out)
        strategy.checked_output(source, leg.amount_out)
        return leg

    async def _dispatch(
        self,
        source: LiquiditySource,
        token_in: TokenDescriptor,
        token_out: TokenDescriptor,
        amount: Amount,
    ) -> Union[QuoteLeg, SourceFailure]:
        timeout = source.timeout_s or self.default_timeout_s
        try:
            return await asyncio.wait_for(self._run_source(source, token_in, token_out, amount), timeout=timeout)
        except asyncio.TimeoutError:
            return SourceFailure(source.name, f"timed out after {timeout}s", ErrorCategory.TIMEOUT.value)
        except QuoteEngineError as exc:
            return SourceFailure(source.name, exc.message, exc.category.value)
        except Exception as exc:
            logger.exception("Unexpected failure pricing on %s", source.name)
            return SourceFailure(source.name, str(exc) or type(exc).__name__, classify_error(exc).category.value)

    @staticmethod
    def _select(live: List[Tuple[int, LiquiditySource, QuoteLeg]]) -> Tuple[LiquiditySource, QuoteLeg]:
        """Highest output; then lower gas (unknown gas last); then configured priority."""
        _, source, leg = min(
            live,
            key=lambda item: (
                -item[2].amount_out,
                item[2].gas_estimate is None,
                item[2].gas_estimate or 0,
                item[1].priority,
                item[0],
            ),
        )
        return source, leg

    # ------------------------------------------------------------------
    # Public surface
    # ------------------------------------------------------------------

    async def get_quote(
        self,
        token_in: str,
        token_out: str,
        amount_in: AmountLike,
        chain_id: int,
        slippage_bps: Optional[int] = None,
        *,
        strict: Optional[bool] = None,
        sources: Optional[Sequence[str]] = None,
    ) -> Quote:
        """Price ``amount_in`` of ``token_in`` in ``token_out`` across every eligible source.

        Raises only for caller mistakes (``InvalidAmount``, ``UnknownToken``,
        ``UnsupportedChain``), or ``NoLiveQuoteError`` when strict mode is on
        and nothing live answered.
        """
        descriptor_in = self.tokens.resolve(token_in, chain_id)
        descriptor_out = self.tokens.resolve(token_out, chain_id)
        if descriptor_in.address.lower() == descriptor_out.address.lower():
            raise InvalidAmount(f"Cannot quote {descriptor_in.symbol} against itself")
        amount = self._parse_amount(amount_in, descriptor_in)
        slippage = self._resolve_slippage(slippage_bps)
        strict_mode = self.strict if strict is None else strict

        log = events.bind(
            quote_id=uuid.uuid4().hex[:12],
            chain_id=chain_id,
            pair=f"{descriptor_in.symbol}/{descriptor_out.symbol}",
        )
        log.debug("quote_phase", phase=RequestPhase.REQUESTED.value, amount_in=str(amount.value))

        candidates = self.candidates(chain_id, sources, symbols=(descriptor_in.symbol, descriptor_out.symbol))
        log.debug("quote_phase", phase=RequestPhase.DISPATCHED.value, sources=[s.name for s in candidates])

        results = await asyncio.gather(
            *(self._dispatch(source, descriptor_in, descriptor_out, amount) for source in candidates)
        )

        live: List[Tuple[int, LiquiditySource, QuoteLeg]] = []
        failures: List[SourceFailure] = []
        for index, (source, result) in enumerate(zip(candidates, results)):
            if isinstance(result, SourceFailure):
                failures.append(result)
            else:
                live.append((index, source, result))

        if live and failures:
            phase = RequestPhase.PARTIAL_FAILURE
        elif live:
            phase = RequestPhase.ALL_SUCCEEDED
        else:
            phase = RequestPhase.ALL_FAILED
        log.info(
            "quote_phase",
            phase=phase.value,
            live=[source.name for _, source, _ in live],
            failed={f.source: f.category for f in failures},
        )

        if live:
            _, leg = self._select(live)
            quote = self._live_quote(descriptor_in, descriptor_out, chain_id, amount, slippage, leg, failures)
        else:
            quote = self._simulated_quote(
                descriptor_in, descriptor_out, chain_id, amount, slippage, candidates, failures, strict_mode
            )

        log.info(
            "quote_phase",
            phase=RequestPhase.RESOLVED.value,
            provenance=quote.provenance.value,
            source=quote.source,
            amount_out=str(quote.amount_out.value),
        )
        return quote

    def build_swap_plan(
        self,
        quote: Quote,
        slippage_bps: Optional[int] = None,
        deadline_seconds: Optional[int] = None,
    ) -> SwapPlan:
        return build_swap_plan(
            quote,
            quote.slippage_bps if slippage_bps is None else slippage_bps,
            self.default_deadline_seconds if deadline_seconds is None else deadline_seconds,
            now=self.clock(),
        )

    async def compare_sources(
        self,
        token_in: str,
        token_out: str,
        amount_in: AmountLike,
        chain_id: int,
        first: str,
        second: str,
    ) -> SourceComparison:
        """Price the same trade on two named sources ("PancakeSwap offers better rate by x%")."""
        descriptor_in = self.tokens.resolve(token_in, chain_id)
        descriptor_out = self.tokens.resolve(token_out, chain_id)
        amount = self._parse_amount(amount_in, descriptor_in)

        by_name = {source.name: source for source in self.candidates(chain_id)}
        missing = [name for name in (first, second) if name not in by_name]
        if missing:
            raise SourceUnavailable(", ".join(missing), f"not available on chain {chain_id}")

        results = await asyncio.gather(
            self._dispatch(by_name[first], descriptor_in, descriptor_out, amount),
            self._dispatch(by_name[second], descriptor_in, descriptor_out, amount),
        )
        for result in results:
            if isinstance(result, SourceFailure):
                raise SourceUnavailable(result.source, result.reason, ErrorCategory(result.category))

        first_leg, second_leg = results
        comparison = compare_routes(first_leg.amount_out, second_leg.amount_out)
        better = {"direct": first, "indirect": second}.get(comparison.better.value)
        return SourceComparison(
            first=first,
            second=second,
            first_out=first_leg.amount_out,
            second_out=second_leg.amount_out,
            better=better,
            pct_diff_bps=comparison.pct_diff_bps,
        )

    async def compare_stable_routes(
        self,
        token_in: str,
        intermediate: str,
        token_out: str,
        amount_in: AmountLike,
        chain_id: int,
        source_name: str = "curve-3pool",
    ) -> RouteComparison:
        """Direct stable swap versus a two-hop swap through ``intermediate`` on the same pool.

        Raises ``SourceUnavailable`` when the pool is not configured, its
        reads fail or time out, and ``PricingError`` when a token is not
        one of the pool's coins.
        """
        descriptor_in = self.tokens.resolve(token_in, chain_id)
        descriptor_mid = self.tokens.resolve(intermediate, chain_id)
        descriptor_out = self.tokens.resolve(token_out, chain_id)
        amount = self._parse_amount(amount_in, descriptor_in)

        source = next((s for s in self.candidates(chain_id) if s.name == source_name), None)
        strategy = self.strategies.get(PricingModel.STABLE_SWAP)
        if source is None or source.model is not PricingModel.STABLE_SWAP or not isinstance(strategy, StableSwapStrategy):
            raise SourceUnavailable(source_name, f"no stable pool available on chain {chain_id}")

        symbols = (descriptor_in.symbol, descriptor_mid.symbol, descriptor_out.symbol)
        if not source.lists_coins(*symbols):
            raise PricingError(f"{'/'.join(symbols)} are not all coins of {source.name}", source=source.name)

        async def run() -> RouteComparison:
            reader = strategy.require_reader(source)
            state = await strategy.call_venue(source, reader.read_pool_state(source, descriptor_in, descriptor_out))
            return await strategy.compare_via(source, state, amount, descriptor_in, descriptor_mid, descriptor_out)

        timeout = source.timeout_s or self.default_timeout_s
        try:
            return await asyncio.wait_for(run(), timeout=timeout)
        except asyncio.TimeoutError:
            raise SourceUnavailable(source.name, f"timed out after {timeout}s", ErrorCategory.TIMEOUT) from None

    # ------------------------------------------------------------------
    # Quote assembly
    # ------------------------------------------------------------------

    @staticmethod
    def _unit_price(amount: Amount, amount_out: int, token_in: TokenDescriptor, token_out: TokenDescriptor) -> Amount:
        if amount.is_zero():
            return Amount(0, token_out.decimals)
        return Amount(amount_out * token_in.one // amount.value, token_out.decimals)

    def _live_quote(
        self,
        token_in: TokenDescriptor,
        token_out: TokenDescriptor,
        chain_id: int,
        amount: Amount,
        slippage: int,
        leg: QuoteLeg,
        failures: List[SourceFailure],
    ) -> Quote:
        impact = leg.price_impact
        if impact is None:
            impact = price_impact_from_usd(leg.amount_in_usd, leg.amount_out_usd)
        return Quote(
            token_in=token_in,
            token_out=token_out,
            chain_id=chain_id,
            amount_in=amount,
            amount_out=Amount(leg.amount_out, token_out.decimals),
            unit_price=self._unit_price(amount, leg.amount_out, token_in, token_out),
            min_amount_out=Amount(apply_bps(leg.amount_out, slippage), token_out.decimals),
            slippage_bps=slippage,
            provenance=Provenance.LIVE,
            source=leg.source,
            route=leg.route,
            gas_estimate=leg.gas_estimate,
            price_impact=impact,
            compute_mode=leg.compute_mode,
            unavailable=tuple(failures),
        )

    def _simulated_quote(
        self,
        token_in: TokenDescriptor,
        token_out: TokenDescriptor,
        chain_id: int,
        amount: Amount,
        slippage: int,
        candidates: List[LiquiditySource],
        failures: List[SourceFailure],
        strict_mode: bool,
    ) -> Quote:
        if strict_mode or self.simulation is None:
            raise NoLiveQuoteError(
                f"No live quote for {token_in.symbol}/{token_out.symbol} on chain {chain_id}",
                failures={f.source: f.reason for f in failures},
            )

        preferred = [s.name for s in candidates] or [s.name for s in self.sources]
        simulated = self.simulation.lookup(token_in, token_out, amount, sources=preferred)
        logger.warning(
            "Serving simulated %s/%s quote from %s (%d sources failed)",
            token_in.symbol,
            token_out.symbol,
            simulated.source,
            len(failures),
        )
        return Quote(
            token_in=token_in,
            token_out=token_out,
            chain_id=chain_id,
            amount_in=amount,
            amount_out=Amount(simulated.amount_out, token_out.decimals),
            unit_price=self._unit_price(amount, simulated.amount_out, token_in, token_out),
            min_amount_out=Amount(apply_bps(simulated.amount_out, slippage), token_out.decimals),
            slippage_bps=slippage,
            provenance=Provenance.SIMULATED,
            source=simulated.source,
            route=simulated.route,
            gas_estimate=simulated.gas_estimate,
            price_impact=simulated.price_impact,
            compute_mode=ComputeMode.LOCAL,
            unavailable=tuple(failures),
            warnings=(SIMULATED_WARNING, *simulated.warnings),
        )
