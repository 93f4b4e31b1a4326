"""Strategy contract and the venue-reader boundary strategies call through."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Optional, Protocol, Sequence, Tuple, Type, TypeVar, runtime_checkable

from ..amounts import Amount
from ..errors import ErrorCategory, PricingError, QuoteEngineError, SourceUnavailable, classify_error
from ..models import (
    ComputeMode,
    LiquiditySource,
    PoolState,
    PricingModel,
    QuoteLeg,
    RouteHop,
    TokenDescriptor,
)

T = TypeVar("T")


@dataclass(frozen=True)
class BatchSwapStep:
    """One hop handed to a weighted vault's query entry point."""

    pool_id: str
    asset_in_index: int
    asset_out_index: int
    amount: int
    user_data: bytes = b""


@runtime_checkable
class VenueStateReader(Protocol):
    """Reads on-chain venue state. Implemented outside the engine."""

    async def read_pool_state(
        self, source: LiquiditySource, token_in: TokenDescriptor, token_out: TokenDescriptor
    ) -> PoolState:
        ...

    async def query_batch_swap(
        self, source: LiquiditySource, swaps: Sequence[BatchSwapStep], assets: Sequence[str]
    ) -> Sequence[int]:
        ...

    async def get_dy(self, source: LiquiditySource, i: int, j: int, dx: int) -> int:
        ...

    async def quote_exact_input_single(
        self,
        source: LiquiditySource,
        token_in: TokenDescriptor,
        token_out: TokenDescriptor,
        fee: int,
        amount_in: int,
    ) -> int:
        ...


class PricingStrategy(ABC):
    """Turns a pool snapshot and an input amount into a ``QuoteLeg``."""

    model: PricingModel

    def __init__(self, reader: Optional[VenueStateReader] = None, logger: Optional[logging.Logger] = None):
        self.reader = reader
        self.logger = logger or logging.getLogger(__name__)

    @abstractmethod
    async def quote(
        self,
        source: LiquiditySource,
        state: Optional[PoolState],
        amount_in: Amount,
        token_in: TokenDescriptor,
        token_out: TokenDescriptor,
    ) -> QuoteLeg:
        """Price ``amount_in`` of ``token_in`` on ``source``; raises ``PricingError``."""

    def zero_leg(
        self,
        source: LiquiditySource,
        token_in: TokenDescriptor,
        token_out: TokenDescriptor,
        compute_mode: ComputeMode = ComputeMode.LOCAL,
    ) -> QuoteLeg:
        return QuoteLeg(
            source=source.name,
            amount_out=0,
            route=self.direct_route(source, token_in, token_out),
            compute_mode=compute_mode,
        )

    @staticmethod
    def direct_route(
        source: LiquiditySource, token_in: TokenDescriptor, token_out: TokenDescriptor
    ) -> Tuple[RouteHop, ...]:
        return (RouteHop(venue=source.protocol, token_in=token_in.symbol, token_out=token_out.symbol),)

    @staticmethod
    def expect_state(source: LiquiditySource, state: Optional[PoolState], kind: Type[T]) -> T:
        if not isinstance(state, kind):
            raise PricingError(
                f"{source.name} expected {kind.__name__}, got {type(state).__name__}",
                source=source.name,
            )
        return state

    @staticmethod
    def checked_output(source: LiquiditySource, value: object) -> int:
        """Venue-reported output as a non-negative int; anything else is ``SourceUnavailable``."""
        if isinstance(value, bool) or not isinstance(value, int):
            raise SourceUnavailable(source.name, f"returned a non-integer output {value!r}", ErrorCategory.CONTRACT)
        if value < 0:
            raise SourceUnavailable(source.name, f"returned a negative output {value}", ErrorCategory.CONTRACT)
        return int(value)

    def require_reader(self, source: LiquiditySource) -> VenueStateReader:
        if self.reader is None:
            raise SourceUnavailable(source.name, "no venue state reader configured")
        return self.reader

    async def call_venue(self, source: LiquiditySource, call: Awaitable[T]) -> T:
        """Await a delegated venue call, turning any failure into ``SourceUnavailable``."""
        try:
            return await call
        except SourceUnavailable:
            raise
        except QuoteEngineError as exc:
            raise SourceUnavailable(source.name, exc.message, exc.category) from exc
        except Exception as exc:
            context = classify_error(exc)
            self.logger.debug("Venue call on %s failed: %s", source.name, exc)
            raise SourceUnavailable(source.name, str(exc) or type(exc).__name__, context.category) from exc
