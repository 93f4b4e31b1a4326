"""
Quote Engine

Fixed-point amounts, the domain models and the error taxonomy. Strategies
live in ``strategies``; the fan-out lives in ``orchestrator``.
"""

from .amounts import Amount, apply_bps, bps_difference, rescale, to_base_units, to_display_string
from .errors import (
    ErrorCategory,
    InsufficientLiquidity,
    InvalidAmount,
    NoLiveQuoteError,
    ParseError,
    PricingError,
    QuoteEngineError,
    SourceUnavailable,
    UnknownToken,
    UnsupportedChain,
    classify_error,
)
from .models import (
    ComputeMode,
    LiquiditySource,
    PricingModel,
    Provenance,
    Quote,
    QuoteLeg,
    RouteHop,
    SwapPlan,
    TokenDescriptor,
)

__all__ = [
    "Amount",
    "apply_bps",
    "bps_difference",
    "rescale",
    "to_base_units",
    "to_display_string",
    "ErrorCategory",
    "InsufficientLiquidity",
    "InvalidAmount",
    "NoLiveQuoteError",
    "ParseError",
    "PricingError",
    "QuoteEngineError",
    "SourceUnavailable",
    "UnknownToken",
    "UnsupportedChain",
    "classify_error",
    "ComputeMode",
    "LiquiditySource",
    "PricingModel",
    "Provenance",
    "Quote",
    "QuoteLeg",
    "RouteHop",
    "SwapPlan",
    "TokenDescriptor",
]
