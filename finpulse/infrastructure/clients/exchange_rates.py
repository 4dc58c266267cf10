"""Alpha Vantage HTTP client for live and daily exchange rates"""

import logging
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Dict

import httpx

from finpulse.config import settings
from finpulse.domain.exceptions import RateProviderError, RateUnavailableError
from finpulse.domain.ports import ProviderRate
from finpulse.infrastructure.observability.metrics import rate_provider_latency_histogram

logger = logging.getLogger(__name__)


class AlphaVantageRateClient:
    """Client for the Alpha Vantage CURRENCY_EXCHANGE_RATE and FX_DAILY functions"""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key or settings.rate_api_key
        self.base_url = base_url or settings.rate_api_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    async def fetch_rate(self, from_currency: str, to_currency: str) -> ProviderRate:
        """
        Fetch the realtime rate for one currency pair.

        Raises:
            RateProviderError: On timeout, HTTP errors, rate limiting ("Note"), or malformed response
            RateUnavailableError: Provider has no data for the pair ("Error Message")
        """
        data = await self._query(
            {
                "function": "CURRENCY_EXCHANGE_RATE",
                "from_currency": from_currency,
                "to_currency": to_currency,
            },
            from_currency,
            to_currency,
        )

        try:
            payload = data["Realtime Currency Exchange Rate"]
            rate = Decimal(str(payload["5. Exchange Rate"]))
        except (KeyError, TypeError, InvalidOperation) as e:
            raise RateProviderError(f"Invalid exchange rate data: {e}") from e

        if not rate.is_finite() or rate <= 0:
            raise RateProviderError(f"Invalid exchange rate for {from_currency}/{to_currency}: {rate}")

        return ProviderRate(rate=rate, timestamp=_parse_refreshed(payload.get("6. Last Refreshed")))

    async def fetch_daily_rates(self, from_currency: str, to_currency: str) -> Dict[date, Decimal]:
        """
        Fetch daily closing rates (most recent ~100 trading days).

        Days with an unparseable or non-positive close are skipped.

        Raises:
            RateProviderError: On timeout, HTTP errors, rate limiting, or a missing time series
            RateUnavailableError: Provider has no data for the pair
        """
        data = await self._query(
            {"function": "FX_DAILY", "from_symbol": from_currency, "to_symbol": to_currency},
            from_currency,
            to_currency,
        )

        series = data.get("Time Series FX (Daily)")
        if not isinstance(series, dict):
            raise RateProviderError("Invalid historical response format from rate API")

        closes: Dict[date, Decimal] = {}
        for day, values in series.items():
            try:
                close = Decimal(str(values["4. close"]))
                closes[date.fromisoformat(day)] = close
            except (KeyError, TypeError, ValueError, InvalidOperation) as e:
                logger.warning(f"Skipping daily rate {from_currency}/{to_currency} on {day}: {e}")
                continue

        return {day: close for day, close in closes.items() if close.is_finite() and close > 0}

    async def _query(self, params: dict, from_currency: str, to_currency: str) -> dict:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                with rate_provider_latency_histogram.time():
                    response = await client.get(self.base_url, params={**params, "apikey": self.api_key})
                    response.raise_for_status()
                    data = response.json()

            except httpx.TimeoutException as e:
                raise RateProviderError(f"Rate API timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise RateProviderError(f"Rate API error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise RateProviderError(f"Rate API request failed: {e}") from e
            except ValueError as e:
                raise RateProviderError(f"Rate API returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise RateProviderError("Rate API returned a non-object body")
        if "Error Message" in data:
            raise RateUnavailableError(f"No rate for {from_currency}/{to_currency}: {data['Error Message']}")
        if "Note" in data:
            raise RateProviderError(f"Rate API limit: {data['Note']}")
        return data


def _parse_refreshed(value: str | None) -> datetime:
    """Provider timestamps are UTC wall-clock strings; fall back to now when absent"""
    if value:
        try:
            return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)
        except ValueError:
            pass
    return datetime.now(timezone.utc)
