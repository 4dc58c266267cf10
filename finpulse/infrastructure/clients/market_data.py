"""Alpha Vantage HTTP client for equity quotes"""

from decimal import Decimal, InvalidOperation

import httpx

from finpulse.config import settings
from finpulse.domain.currencies import currency_for_symbol
from finpulse.domain.exceptions import RateProviderError
from finpulse.domain.models import Money


class AlphaVantageQuoteClient:
    """Client for the Alpha Vantage GLOBAL_QUOTE function"""

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

    async def fetch_quote(self, symbol: str) -> Money | None:
        """
        Fetch the latest price for a symbol, in the listing's currency.

        Returns None when the provider has no quote for the symbol.

        Raises:
            RateProviderError: On timeout, HTTP errors, rate limiting, or malformed response
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.get(
                    self.base_url,
                    params={"function": "GLOBAL_QUOTE", "symbol": symbol, "apikey": self.api_key},
                )
                response.raise_for_status()
                data = response.json()

            except httpx.TimeoutException as e:
                raise RateProviderError(f"Quote API timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise RateProviderError(f"Quote API error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise RateProviderError(f"Quote API request failed: {e}") from e
            except ValueError as e:
                raise RateProviderError(f"Quote API returned invalid JSON: {e}") from e

        if "Note" in data:
            raise RateProviderError(f"Quote API limit: {data['Note']}")

        quote = data.get("Global Quote") or {}
        raw_price = quote.get("05. price")
        if raw_price is None:
            return None

        try:
            price = Decimal(str(raw_price))
        except InvalidOperation as e:
            raise RateProviderError(f"Invalid quote data for {symbol}: {raw_price!r}") from e

        if not price.is_finite() or price <= 0:
            return None
        return Money(amount=price, currency=currency_for_symbol(symbol))
