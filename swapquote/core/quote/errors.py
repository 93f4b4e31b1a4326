"""
Quote Engine Errors

Errors fall into three families:
- input errors, surfaced to the caller and never retried
- source errors, transient venue or API failures that exclude one source
- pricing errors, structural failures of a single source's math or state
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(str, Enum):
    """Categories of quote failures."""

    VALIDATION = "validation"     # Bad amount, token or chain
    NETWORK = "network"           # RPC or HTTP transport failure
    RATE_LIMIT = "rate_limit"     # Aggregator throttled us
    TIMEOUT = "timeout"           # Source exceeded its deadline
    PROVIDER = "provider"         # Aggregator returned an error body
    LIQUIDITY = "liquidity"       # Empty or exhausted pool
    CONTRACT = "contract"         # Venue call reverted or returned nonsense
    UNKNOWN = "unknown"


@dataclass
class ErrorContext:
    """Additional context about an error."""

    category: ErrorCategory = ErrorCategory.UNKNOWN
    recoverable: bool = True
    retry_after_seconds: Optional[float] = None
    source: Optional[str] = None
    chain_id: Optional[int] = None
    details: Dict[str, Any] = field(default_factory=dict)


class QuoteEngineError(Exception):
    """Base class for every error raised by the quote engine."""

    recoverable = True

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        context: Optional[ErrorContext] = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.context = context or ErrorContext(category=category, recoverable=self.recoverable)


# Input errors
class InputError(QuoteEngineError):
    """Caller supplied something the engine cannot quote."""

    recoverable = False

    def __init__(self, message: str, **details: Any):
        super().__init__(
            message,
            category=ErrorCategory.VALIDATION,
            context=ErrorContext(
                category=ErrorCategory.VALIDATION,
                recoverable=False,
                chain_id=details.pop("chain_id", None),
                details=details,
            ),
        )


class InvalidAmount(InputError):
    """Amount is negative, malformed or out of range."""


class ParseError(InvalidAmount):
    """Decimal string could not be converted to base units."""

    def __init__(self, text: str, reason: str):
        super().__init__(f"Cannot parse amount {text!r}: {reason}", text=text, reason=reason)
        self.text = text
        self.reason = reason


class UnknownToken(InputError):
    def __init__(self, token: str, chain_id: Optional[int] = None):
        super().__init__(f"Unknown token {token!r} on chain {chain_id}", token=token, chain_id=chain_id)
        self.token = token
        self.chain_id = chain_id


class UnsupportedChain(InputError):
    def __init__(self, chain_id: int, source: Optional[str] = None):
        where = f" for {source}" if source else ""
        super().__init__(f"Chain {chain_id} is not supported{where}", chain_id=chain_id, source=source)
        self.chain_id = chain_id
        self.source = source


# Source errors
class SourceError(QuoteEngineError):
    """Transient failure talking to a venue or an aggregator."""

    default_category = ErrorCategory.NETWORK

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        retry_after: Optional[float] = None,
        **details: Any,
    ):
        category = self.default_category
        super().__init__(
            message,
            category=category,
            context=ErrorContext(
                category=category,
                recoverable=True,
                retry_after_seconds=retry_after,
                source=source,
                details=details,
            ),
        )
        self.source = source
        self.retry_after = retry_after


class RpcError(SourceError):
    """Contract read failed at the transport layer."""


class SourceTimeout(SourceError):
    default_category = ErrorCategory.TIMEOUT


class RateLimited(SourceError):
    default_category = ErrorCategory.RATE_LIMIT


class HttpError(SourceError):
    default_category = ErrorCategory.PROVIDER

    def __init__(self, message: str, source: Optional[str] = None, status_code: Optional[int] = None, **details: Any):
        super().__init__(message, source=source, status_code=status_code, **details)
        self.status_code = status_code


class UnsupportedPair(SourceError):
    """Aggregator has no route for the requested pair."""

    default_category = ErrorCategory.PROVIDER


# Pricing errors
class PricingError(QuoteEngineError):
    """A single source could not produce a quote."""

    def __init__(self, message: str, source: Optional[str] = None, category: ErrorCategory = ErrorCategory.CONTRACT):
        super().__init__(
            message,
            category=category,
            context=ErrorContext(category=category, recoverable=True, source=source),
        )
        self.source = source


class InsufficientLiquidity(PricingError):
    def __init__(self, message: str = "Pool has no liquidity", source: Optional[str] = None):
        super().__init__(message, source=source, category=ErrorCategory.LIQUIDITY)


class SourceUnavailable(PricingError):
    """Wraps whatever a venue or aggregator raised so the orchestrator can exclude it."""

    def __init__(self, source: str, reason: str, category: ErrorCategory = ErrorCategory.PROVIDER):
        super().__init__(f"{source} unavailable: {reason}", source=source, category=category)
        self.reason = reason


class NoLiveQuoteError(QuoteEngineError):
    """Every live source failed and the caller asked for strict quotes."""

    recoverable = False

    def __init__(self, message: str, failures: Optional[Dict[str, str]] = None):
        super().__init__(
            message,
            category=ErrorCategory.PROVIDER,
            context=ErrorContext(
                category=ErrorCategory.PROVIDER,
                recoverable=False,
                details={"failures": dict(failures or {})},
            ),
        )
        self.failures = dict(failures or {})


def classify_error(error: BaseException) -> ErrorContext:
    """
    Classify an exception and return its error context.

    Engine errors carry their own context; anything else is matched on
    type and message.
    """
    if isinstance(error, QuoteEngineError):
        return error.context

    if isinstance(error, TimeoutError):
        return ErrorContext(category=ErrorCategory.TIMEOUT, recoverable=True)

    message = str(error).lower()

    rate_limit_patterns = ["rate limit", "too many requests", "429", "throttl", "quota exceeded"]
    if any(p in message for p in rate_limit_patterns):
        return ErrorContext(category=ErrorCategory.RATE_LIMIT, recoverable=True, retry_after_seconds=60.0)

    timeout_patterns = ["timeout", "timed out", "deadline"]
    if any(p in message for p in timeout_patterns):
        return ErrorContext(category=ErrorCategory.TIMEOUT, recoverable=True)

    network_patterns = ["connection", "network", "unreachable", "refused", "dns", "socket", "ssl"]
    if any(p in message for p in network_patterns):
        return ErrorContext(category=ErrorCategory.NETWORK, recoverable=True)

    liquidity_patterns = ["insufficient liquidity", "insufficient_liquidity", "no liquidity"]
    if any(p in message for p in liquidity_patterns):
        return ErrorContext(category=ErrorCategory.LIQUIDITY, recoverable=True)

    revert_patterns = ["revert", "execution reverted", "call exception", "out of gas"]
    if any(p in message for p in revert_patterns):
        return ErrorContext(category=ErrorCategory.CONTRACT, recoverable=True)

    return ErrorContext(category=ErrorCategory.UNKNOWN, recoverable=True)
