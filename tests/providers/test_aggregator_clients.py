"""
Tests for the aggregator API clients

Every client runs against ``httpx.MockTransport`` so no request leaves the
process.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from swapquote.core.quote.amounts import Amount
from swapquote.core.quote.errors import (
    HttpError,
    PricingError,
    RateLimited,
    SourceTimeout,
    SourceUnavailable,
    UnsupportedChain,
    UnsupportedPair,
)
from swapquote.core.quote.models import ComputeMode, LiquiditySource, PricingModel, TokenDescriptor
from swapquote.core.quote.strategies import AggregatorDelegate
from swapquote.providers import (
    AggregatorRequest,
    AggregatorResponse,
    KyberSwapClient,
    OneInchClient,
    UniswapRoutingClient,
    ZeroExClient,
)

WETH = TokenDescriptor("0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2", 1, 18, "WETH")
USDC = TokenDescriptor("0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", 1, 6, "USDC")


def make_request(amount_in: int = 10 ** 18) -> AggregatorRequest:
    return AggregatorRequest(chain_id=1, token_in=WETH, token_out=USDC, amount_in=amount_in)


class Recorder:
    """MockTransport handler that remembers what it was asked."""

    def __init__(self, payload=None, status_code: int = 200, headers=None):
        self.payload = payload
        self.status_code = status_code
        self.headers = headers or {}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.payload, headers=self.headers)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


# =============================================================================
# 0x Tests
# =============================================================================

class TestZeroExClient:

    @pytest.mark.asyncio
    async def test_fetch_quote(self):
        recorder = Recorder(
            {
                "buyAmount": "1990000000",
                "estimatedGas": "150000",
                "sources": [
                    {"name": "Uniswap_V3", "proportion": "0.8"},
                    {"name": "Sushiswap", "proportion": "0.2"},
                    {"name": "Curve", "proportion": "0"},
                ],
                "sellTokenToEthRate": "1",
                "buyTokenToEthRate": "2000",
            }
        )
        client = ZeroExClient(api_key="key-123", transport=recorder.transport)

        response = await client.fetch_quote(make_request())

        assert response.amount_out == 1_990_000_000
        assert response.gas_estimate == 150_000
        assert [(share.venue, share.proportion) for share in response.route] == [
            ("Uniswap_V3", Decimal("0.8")),
            ("Sushiswap", Decimal("0.2")),
        ]
        assert response.amount_in_usd == Decimal("1")
        assert response.amount_out_usd == Decimal("0.995")

        sent = recorder.requests[0]
        assert sent.url.path == "/swap/v1/quote"
        assert sent.url.params["sellAmount"] == str(10 ** 18)
        assert sent.url.params["buyToken"] == USDC.address
        assert sent.url.params["slippagePercentage"] == "0.005"
        assert sent.headers["0x-api-key"] == "key-123"

    @pytest.mark.asyncio
    async def test_missing_buy_amount(self):
        client = ZeroExClient(transport=Recorder({"sources": []}).transport)

        with pytest.raises(UnsupportedPair):
            await client.fetch_quote(make_request())

    @pytest.mark.asyncio
    async def test_negative_buy_amount(self):
        client = ZeroExClient(transport=Recorder({"buyAmount": "-5", "sources": []}).transport)

        with pytest.raises(UnsupportedPair):
            await client.fetch_quote(make_request())

    @pytest.mark.asyncio
    async def test_rate_limited(self):
        recorder = Recorder({"reason": "Too Many Requests"}, status_code=429, headers={"retry-after": "30"})
        client = ZeroExClient(transport=recorder.transport)

        with pytest.raises(RateLimited) as exc_info:
            await client.fetch_quote(make_request())
        assert exc_info.value.retry_after == 30.0
        assert exc_info.value.source == "0x"

    @pytest.mark.asyncio
    async def test_no_route(self):
        recorder = Recorder({"reason": "INSUFFICIENT_ASSET_LIQUIDITY"}, status_code=400)
        client = ZeroExClient(transport=recorder.transport)

        with pytest.raises(UnsupportedPair):
            await client.fetch_quote(make_request())

    @pytest.mark.asyncio
    async def test_server_error(self):
        client = ZeroExClient(transport=Recorder({"reason": "oops"}, status_code=500).transport)

        with pytest.raises(HttpError) as exc_info:
            await client.fetch_quote(make_request())
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("read timed out", request=request)

        client = ZeroExClient(transport=httpx.MockTransport(handler), timeout_s=0.1)

        with pytest.raises(SourceTimeout):
            await client.fetch_quote(make_request())

    @pytest.mark.asyncio
    async def test_falls_back_to_next_host(self):
        def handler(request):
            if request.url.host == "primary.example":
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json={"buyAmount": "42"})

        client = ZeroExClient(
            base_url="https://primary.example",
            fallback_urls=["https://backup.example"],
            transport=httpx.MockTransport(handler),
        )

        response = await client.fetch_quote(make_request())

        assert response.amount_out == 42

    @pytest.mark.asyncio
    async def test_all_hosts_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = ZeroExClient(transport=httpx.MockTransport(handler))

        with pytest.raises(HttpError):
            await client.fetch_quote(make_request())


# =============================================================================
# 1inch Tests
# =============================================================================

class TestOneInchClient:

    @pytest.mark.asyncio
    async def test_fetch_quote(self):
        recorder = Recorder(
            {
                "toAmount": "1985000000",
                "gas": 180000,
                "protocols": [[[{"name": "UNISWAP_V3", "part": 50}, {"name": "CURVE", "part": 50}]]],
            }
        )
        client = OneInchClient(api_key="secret", transport=recorder.transport)

        response = await client.fetch_quote(make_request())

        assert response.amount_out == 1_985_000_000
        assert response.gas_estimate == 180_000
        assert [share.proportion for share in response.route] == [Decimal("0.5"), Decimal("0.5")]

        sent = recorder.requests[0]
        assert sent.url.path == "/swap/v5.2/1/quote"
        assert sent.url.params["amount"] == str(10 ** 18)
        assert sent.headers["authorization"] == "Bearer secret"

    @pytest.mark.asyncio
    async def test_legacy_fields(self):
        client = OneInchClient(
            transport=Recorder({"toTokenAmount": "7", "estimatedGas": "99"}).transport
        )

        response = await client.fetch_quote(make_request())

        assert response.amount_out == 7
        assert response.gas_estimate == 99
        assert response.route == []


# =============================================================================
# KyberSwap Tests
# =============================================================================

class TestKyberSwapClient:

    @pytest.mark.asyncio
    async def test_fetch_quote(self):
        recorder = Recorder(
            {
                "code": 0,
                "data": {
                    "routeSummary": {
                        "amountOut": "1990",
                        "gas": "200000",
                        "amountInUsd": "2000",
                        "amountOutUsd": "1990",
                        "route": [
                            [{"exchange": "uniswap", "swapAmount": "600"}],
                            [{"exchange": "curve", "swapAmount": "400"}],
                        ],
                    }
                },
            }
        )
        client = KyberSwapClient(transport=recorder.transport)

        response = await client.fetch_quote(make_request(amount_in=1000))

        assert response.amount_out == 1990
        assert response.gas_estimate == 200_000
        assert response.amount_in_usd == Decimal("2000")
        assert [(s.venue, s.proportion) for s in response.route] == [
            ("uniswap", Decimal("0.6")),
            ("curve", Decimal("0.4")),
        ]

        sent = recorder.requests[0]
        assert sent.url.path == "/ethereum/api/v1/routes"
        assert sent.headers["x-client-id"] == "swapquote"

    @pytest.mark.asyncio
    async def test_error_code(self):
        client = KyberSwapClient(transport=Recorder({"code": 4008, "message": "route not found"}).transport)

        with pytest.raises(UnsupportedPair):
            await client.fetch_quote(make_request())


# =============================================================================
# Uniswap Routing API Tests
# =============================================================================

class TestUniswapRoutingClient:

    @pytest.mark.asyncio
    async def test_fetch_quote(self):
        recorder = Recorder(
            {
                "amount": "1000",
                "quote": "1992000000",
                "gasUseEstimate": "120000",
                "route": [
                    [{"type": "v3-pool", "amountIn": "700"}],
                    [{"type": "v2-pool", "amountIn": "300"}],
                ],
            }
        )
        client = UniswapRoutingClient(transport=recorder.transport)

        response = await client.fetch_quote(make_request(amount_in=1000))

        assert response.amount_out == 1_992_000_000
        assert response.gas_estimate == 120_000
        assert [(s.venue, s.proportion) for s in response.route] == [
            ("v3-pool", Decimal("0.7")),
            ("v2-pool", Decimal("0.3")),
        ]
        assert response.amount_in_usd is None

        sent = recorder.requests[0]
        assert sent.url.path == "/v1/quote"
        assert sent.url.params["type"] == "exactIn"


# =============================================================================
# Aggregator Delegate Tests
# =============================================================================

class TestAggregatorDelegate:

    def source(self, name="0x", chains=frozenset({1})):
        return LiquiditySource(name=name, protocol=name, model=PricingModel.AGGREGATOR, chains=chains)

    @pytest.mark.asyncio
    async def test_unsupported_chain_makes_no_request(self):
        client = MagicMock()
        client.fetch_quote = AsyncMock()
        delegate = AggregatorDelegate({"0x": client})
        bsc_weth = TokenDescriptor(WETH.address, 56, 18, "WETH")
        bsc_usdc = TokenDescriptor(USDC.address, 56, 6, "USDC")

        with pytest.raises(UnsupportedChain):
            await delegate.quote(self.source(), None, Amount(10 ** 18, 18), bsc_weth, bsc_usdc)
        client.fetch_quote.assert_not_called()

    @pytest.mark.asyncio
    async def test_maps_route_and_gas(self):
        recorder = Recorder(
            {
                "buyAmount": "1990000000",
                "estimatedGas": "150000",
                "sources": [{"name": "Uniswap_V3", "proportion": "1"}],
            }
        )
        delegate = AggregatorDelegate({"0x": ZeroExClient(transport=recorder.transport)})

        leg = await delegate.quote(self.source(), None, Amount(10 ** 18, 18), WETH, USDC)

        assert leg.source == "0x"
        assert leg.amount_out == 1_990_000_000
        assert leg.gas_estimate == 150_000
        assert leg.compute_mode == ComputeMode.DELEGATED
        assert leg.route[0].venue == "Uniswap_V3"
        assert leg.route[0].token_out == "USDC"

    @pytest.mark.asyncio
    async def test_negative_response_rejected(self):
        client = MagicMock()
        client.fetch_quote = AsyncMock(return_value=AggregatorResponse(amount_out=-1))
        delegate = AggregatorDelegate({"0x": client})

        with pytest.raises(PricingError):
            await delegate.quote(self.source(), None, Amount(10 ** 18, 18), WETH, USDC)

    @pytest.mark.asyncio
    async def test_http_failure_becomes_source_unavailable(self):
        delegate = AggregatorDelegate(
            {"0x": ZeroExClient(transport=Recorder({"reason": "down"}, status_code=503).transport)}
        )

        with pytest.raises(SourceUnavailable) as exc_info:
            await delegate.quote(self.source(), None, Amount(10 ** 18, 18), WETH, USDC)
        assert exc_info.value.category.value == "provider"

    @pytest.mark.asyncio
    async def test_missing_client(self):
        delegate = AggregatorDelegate({})

        with pytest.raises(SourceUnavailable):
            await delegate.quote(self.source("1inch"), None, Amount(1, 18), WETH, USDC)

    @pytest.mark.asyncio
    async def test_zero_amount(self):
        client = MagicMock()
        client.fetch_quote = AsyncMock()
        delegate = AggregatorDelegate({"0x": client})

        leg = await delegate.quote(self.source(), None, Amount(0, 18), WETH, USDC)

        assert leg.amount_out == 0
        client.fetch_quote.assert_not_called()
