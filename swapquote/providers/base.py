"""Shared plumbing for off-chain aggregator quote APIs."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from ..core.quote.errors import HttpError, RateLimited, SourceTimeout, UnsupportedPair
from ..core.quote.models import TokenDescriptor

logger = logging.getLogger(__name__)

_NO_ROUTE_MARKERS = (
    "no route",
    "route not found",
    "insufficient liquidity",
    "insufficient_asset_liquidity",
    "cannot find",
    "token not supported",
    "not supported",
)


@dataclass(frozen=True)
class AggregatorRequest:
    chain_id: int
    token_in: TokenDescriptor
    token_out: TokenDescriptor
    amount_in: int
    slippage_bps: int = 50


@dataclass(frozen=True)
class RouteShare:
    """One venue's share of an aggregator route."""

    venue: str
    proportion: Decimal


@dataclass
class AggregatorResponse:
    amount_out: int
    gas_estimate: Optional[int] = None
    route: List[RouteShare] = field(default_factory=list)
    amount_in_usd: Optional[Decimal] = None
    amount_out_usd: Optional[Decimal] = None
    raw: Dict[str, Any] = field(default_factory=dict)


def to_int(value: Any) -> Optional[int]:
    """Aggregators send big integers as strings; tolerate both."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value))
    except ValueError:
        return None


def to_decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def normalise_shares(shares: Sequence[Tuple[str, Decimal]]) -> List[RouteShare]:
    """Merge duplicate venues and rescale so proportions sum to one."""
    merged: Dict[str, Decimal] = {}
    for venue, proportion in shares:
        if proportion <= 0:
            continue
        merged[venue] = merged.get(venue, Decimal("0")) + proportion
    total = sum(merged.values(), Decimal("0"))
    if total <= 0:
        return []
    return [RouteShare(venue=venue, proportion=share / total) for venue, share in merged.items()]


class AggregatorClient(ABC):
    """Thin async wrapper around one aggregator's quote endpoint."""

    name: str = "aggregator"
    default_base_url: str = ""

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout_s: float = 10.0,
        fallback_urls: Sequence[str] = (),
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        configured = base_url or self.default_base_url
        self.base_urls: List[str] = [configured.rstrip("/")]
        self.base_urls.extend(url.rstrip("/") for url in fallback_urls if url)
        self.api_key = api_key or ""
        self.timeout_s = timeout_s
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "accept": "application/json",
            "user-agent": "swapquote/0.1",
        }

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        merged_headers = {**self._headers(), **(headers or {})}
        last_error: Optional[Exception] = None

        for index, base_url in enumerate(self.base_urls):
            try:
                async with httpx.AsyncClient(
                    base_url=base_url,
                    timeout=self.timeout_s,
                    transport=self._transport,
                ) as client:
                    response = await client.request(method, path, params=params, headers=merged_headers)
                    response.raise_for_status()
                    return response
            except httpx.HTTPStatusError as exc:
                if exc.response.status_code in (404, 405) and index < len(self.base_urls) - 1:
                    last_error = exc
                    continue
                raise self._translate_status(exc) from exc
            except httpx.TimeoutException as exc:
                raise SourceTimeout(f"{self.name} timed out after {self.timeout_s}s", source=self.name) from exc
            except httpx.RequestError as exc:
                last_error = exc
                continue

        if isinstance(last_error, httpx.HTTPStatusError):
            raise self._translate_status(last_error) from last_error
        if last_error is not None:
            raise HttpError(f"{self.name} request failed: {last_error}", source=self.name) from last_error
        raise HttpError(f"All {self.name} hosts failed without providing an error response", source=self.name)

    def _translate_status(self, exc: httpx.HTTPStatusError) -> Exception:
        response = exc.response
        status = response.status_code
        body = response.text[:300]

        if status == 429:
            retry_after = to_decimal(response.headers.get("retry-after"))
            return RateLimited(
                f"{self.name} rate limited the request",
                source=self.name,
                retry_after=float(retry_after) if retry_after is not None else None,
            )
        lowered = body.lower()
        if status in (400, 404, 422) and any(marker in lowered for marker in _NO_ROUTE_MARKERS):
            return UnsupportedPair(f"{self.name} has no route: {body}", source=self.name, status_code=status)
        return HttpError(f"{self.name} returned HTTP {status}: {body}", source=self.name, status_code=status)

    async def _get_json(self, path: str, params: Dict[str, Any], headers: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        resp = await self._request("GET", path, params=params, headers=headers)
        try:
            payload = resp.json()
        except ValueError as exc:
            raise HttpError(f"{self.name} returned a non-JSON body", source=self.name) from exc
        if not isinstance(payload, dict):
            raise HttpError(f"{self.name} returned an unexpected payload", source=self.name)
        return payload

    @abstractmethod
    async def fetch_quote(self, request: AggregatorRequest) -> AggregatorResponse:
        """Ask the aggregator how much ``token_out`` the input buys."""

    def _require_amount(self, value: Any, payload: Dict[str, Any]) -> int:
        amount = to_int(value)
        if amount is None:
            logger.debug("%s payload without output amount: %s", self.name, payload)
            raise UnsupportedPair(f"{self.name} response carried no output amount", source=self.name)
        if amount < 0:
            raise UnsupportedPair(f"{self.name} reported a negative output amount {amount}", source=self.name)
        return amount
