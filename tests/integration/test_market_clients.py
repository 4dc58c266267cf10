"""Integration tests for the Alpha Vantage clients against a mock transport"""

from datetime import date, datetime, timezone
from decimal import Decimal

import httpx
import pytest

from finpulse.domain.exceptions import RateProviderError, RateUnavailableError
from finpulse.domain.models import Money
from finpulse.infrastructure.clients.exchange_rates import AlphaVantageRateClient
from finpulse.infrastructure.clients.market_data import AlphaVantageQuoteClient

BASE_URL = "https://rates.test/query"


def rate_client(handler) -> AlphaVantageRateClient:
    return AlphaVantageRateClient(
        api_key="test-key",
        base_url=BASE_URL,
        timeout=1.0,
        transport=httpx.MockTransport(handler),
    )


def quote_client(handler) -> AlphaVantageQuoteClient:
    return AlphaVantageQuoteClient(
        api_key="test-key",
        base_url=BASE_URL,
        timeout=1.0,
        transport=httpx.MockTransport(handler),
    )


async def test_fetch_rate_success():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json={
                "Realtime Currency Exchange Rate": {
                    "1. From_Currency Code": "EUR",
                    "3. To_Currency Code": "USD",
                    "5. Exchange Rate": "1.08450000",
                    "6. Last Refreshed": "2024-01-15 14:30:01",
                }
            },
        )

    result = await rate_client(handler).fetch_rate("EUR", "USD")

    assert result.rate == Decimal("1.08450000")
    assert result.timestamp == datetime(2024, 1, 15, 14, 30, 1, tzinfo=timezone.utc)
    params = requests[0].url.params
    assert params["function"] == "CURRENCY_EXCHANGE_RATE"
    assert params["from_currency"] == "EUR"
    assert params["to_currency"] == "USD"
    assert params["apikey"] == "test-key"


async def test_fetch_rate_unknown_pair():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"Error Message": "Invalid API call."})

    with pytest.raises(RateUnavailableError):
        await rate_client(handler).fetch_rate("USD", "XYZ")


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, json={"Note": "Thank you for using Alpha Vantage! Our standard API call frequency is 5 calls per minute."}),
        httpx.Response(200, json={"Realtime Currency Exchange Rate": {"5. Exchange Rate": "0"}}),
        httpx.Response(200, json={"Realtime Currency Exchange Rate": {"5. Exchange Rate": "not-a-number"}}),
        httpx.Response(200, json={"unexpected": True}),
        httpx.Response(200, json=["not", "an", "object"]),
        httpx.Response(200, text="<html>maintenance</html>"),
        httpx.Response(503, json={}),
    ],
)
async def test_fetch_rate_provider_errors(response):
    def handler(request: httpx.Request) -> httpx.Response:
        return response

    with pytest.raises(RateProviderError):
        await rate_client(handler).fetch_rate("EUR", "USD")


async def test_fetch_rate_timeout():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(RateProviderError, match="timeout"):
        await rate_client(handler).fetch_rate("EUR", "USD")


async def test_fetch_rate_connection_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(RateProviderError, match="request failed"):
        await rate_client(handler).fetch_rate("EUR", "USD")


async def test_fetch_quote_uses_listing_currency():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"Global Quote": {"01. symbol": "VOD.L", "05. price": "71.2400"}})

    quote = await quote_client(handler).fetch_quote("VOD.L")

    assert quote == Money(amount=Decimal("71.2400"), currency="GBP")
    assert requests[0].url.params["function"] == "GLOBAL_QUOTE"
    assert requests[0].url.params["symbol"] == "VOD.L"


@pytest.mark.parametrize(
    "body",
    [{"Global Quote": {}}, {}, {"Global Quote": {"05. price": "0.0000"}}],
)
async def test_fetch_quote_without_price(body):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=body)

    assert await quote_client(handler).fetch_quote("AAPL") is None


async def test_fetch_quote_rate_limited():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"Note": "API call frequency exceeded"})

    with pytest.raises(RateProviderError):
        await quote_client(handler).fetch_quote("AAPL")


async def test_fetch_quote_http_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={})

    with pytest.raises(RateProviderError, match="500"):
        await quote_client(handler).fetch_quote("AAPL")


async def test_fetch_daily_rates():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json={
                "Meta Data": {"2. From Symbol": "EUR", "3. To Symbol": "USD"},
                "Time Series FX (Daily)": {
                    "2024-01-16": {"1. open": "1.0950", "4. close": "1.0876"},
                    "2024-01-15": {"1. open": "1.0950", "4. close": "1.0950"},
                    "2024-01-14": {"1. open": "1.0950", "4. close": "n/a"},
                    "2024-01-13": {"1. open": "1.0950"},
                    "2024-01-12": {"4. close": "0"},
                },
            },
        )

    closes = await rate_client(handler).fetch_daily_rates("EUR", "USD")

    assert closes == {date(2024, 1, 16): Decimal("1.0876"), date(2024, 1, 15): Decimal("1.0950")}
    params = requests[0].url.params
    assert params["function"] == "FX_DAILY"
    assert params["from_symbol"] == "EUR"
    assert params["to_symbol"] == "USD"
    assert params["apikey"] == "test-key"


@pytest.mark.parametrize(
    "body,error",
    [
        ({"Meta Data": {}}, RateProviderError),
        ({"Note": "API call frequency exceeded"}, RateProviderError),
        ({"Error Message": "Invalid API call."}, RateUnavailableError),
    ],
)
async def test_fetch_daily_rates_errors(body, error):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=body)

    with pytest.raises(error):
        await rate_client(handler).fetch_daily_rates("EUR", "USD")
