"""Currency conversion with a TTL rate cache and a deterministic fallback chain"""

import asyncio
import logging
import bisect
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Dict, List, Sequence, Tuple

from finpulse.domain.currencies import (
    COUNTRY_CURRENCY_MAP,
    SUPPORTED_CODES,
    SUPPORTED_CURRENCIES,
    CurrencyInfo,
    currency_for_symbol,
    fallback_rate,
    is_currency_code_format,
    normalize_currency_code,
)
from finpulse.domain.currency_risk import (
    build_exposures,
    calculate_risk_score,
    generate_hedging_opportunities,
    generate_recommendations,
    generate_volatility_metrics,
)
from finpulse.domain.exceptions import (
    InvalidCurrencyError,
    NotFoundError,
    RateProviderError,
    RateUnavailableError,
)
from finpulse.domain.models import (
    Converted,
    CurrencyExposure,
    CurrencyRiskAnalysis,
    ExchangeRate,
    HistoricalRate,
    Investment,
    Money,
    RateSource,
    RiskThresholds,
    to_decimal,
)
from finpulse.domain.ports import ExchangeRateProvider, HistoricalRateProvider
from finpulse.infrastructure.observability.logging import log_rate_fallback
from finpulse.infrastructure.observability.metrics import (
    rate_provider_failure_counter,
    record_rate_lookup,
)
from finpulse.utils.date_utils import key_dates

logger = logging.getLogger(__name__)


@dataclass
class _CachedRate:
    rate: Decimal
    fetched_at: datetime


@dataclass
class CacheStatus:
    last_updated: datetime
    next_update: datetime
    entries: int


class CurrencyConverter:
    """
    Exchange rates and conversions for a single process.

    Construct once at startup and inject it wherever amounts are converted.
    The rate cache is keyed by (from, to) and entries are fresh for
    cache_ttl_seconds after they were fetched. Concurrent refreshes of the
    same pair are last-writer-wins.

    Rate lookup never raises for valid codes:
    same currency -> internal, fresh cache -> cache, no provider -> mock,
    provider success -> api, provider exhausted -> stale-cache or fallback.
    """

    def __init__(
        self,
        provider: ExchangeRateProvider | None = None,
        cache_ttl_seconds: int = 15 * 60,
        max_retries: int = 3,
        retry_delay_seconds: float = 1.0,
        thresholds: RiskThresholds | None = None,
        clock: Callable[[], datetime] | None = None,
        history: HistoricalRateProvider | None = None,
    ):
        self._provider = provider
        self._history = history
        self._ttl = timedelta(seconds=cache_ttl_seconds)
        self._max_retries = max(1, max_retries)
        self._retry_delay = retry_delay_seconds
        self._thresholds = thresholds or RiskThresholds()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._cache: Dict[Tuple[str, str], _CachedRate] = {}
        self._last_refresh = self._clock()

    @staticmethod
    def normalize(code: str) -> str:
        return normalize_currency_code(code)

    async def get_exchange_rate(self, from_currency: str, to_currency: str) -> ExchangeRate:
        base = self.normalize(from_currency)
        quote = self.normalize(to_currency)
        now = self._clock()

        if base == quote:
            return self._rate(base, quote, Decimal("1"), now, RateSource.INTERNAL)

        key = (base, quote)
        cached = self._cache.get(key)
        if cached and now - cached.fetched_at < self._ttl:
            return self._rate(base, quote, cached.rate, cached.fetched_at, RateSource.CACHE)

        if self._provider is None:
            log_rate_fallback(base, quote, RateSource.MOCK.value, "live rate provider not configured")
            return self._rate(base, quote, fallback_rate(base, quote), now, RateSource.MOCK)

        try:
            rate = await self._fetch_with_retry(base, quote)
        except Exception as e:
            if cached:
                log_rate_fallback(base, quote, RateSource.STALE_CACHE.value, str(e))
                return self._rate(base, quote, cached.rate, cached.fetched_at, RateSource.STALE_CACHE)

            log_rate_fallback(base, quote, RateSource.FALLBACK.value, str(e))
            return self._rate(base, quote, fallback_rate(base, quote), now, RateSource.FALLBACK)

        fetched_at = self._clock()
        self._cache[key] = _CachedRate(rate=rate, fetched_at=fetched_at)
        self._last_refresh = fetched_at
        return self._rate(base, quote, rate, fetched_at, RateSource.API)

    async def convert_amount(
        self,
        amount: Decimal | int | str,
        from_currency: str,
        to_currency: str,
    ) -> Converted:
        """
        Convert amount into to_currency.

        Raises:
            InvalidCurrencyError: A code is not 3 alphabetic characters
            ValidationError: Amount is not a finite number
        """
        base = self._validated(from_currency)
        quote = self._validated(to_currency)
        original = Money(amount=amount, currency=base)

        exchange_rate = await self.get_exchange_rate(base, quote)
        converted = original.amount * exchange_rate.rate

        logger.debug(
            f"Currency conversion: {original.amount} {base} -> {converted} {quote} "
            f"(rate: {exchange_rate.rate}, source: {exchange_rate.source.value})"
        )

        return Converted(
            value=Money(amount=converted, currency=quote),
            original=original,
            rate=exchange_rate.rate,
            source=exchange_rate.source,
        )

    async def convert_many(self, requests: Sequence[Tuple[Decimal, str, str]]) -> List[Converted]:
        return list(await asyncio.gather(*(self.convert_amount(a, f, t) for a, f, t in requests)))

    async def get_multiple_rates(self, pairs: Sequence[Tuple[str, str]]) -> List[ExchangeRate]:
        return list(await asyncio.gather(*(self.get_exchange_rate(f, t) for f, t in pairs)))

    async def get_historical_rates(
        self,
        from_currency: str,
        to_currency: str,
        start: date,
        end: date,
    ) -> List[HistoricalRate]:
        """
        Closing rates on key dates between start and end inclusive.

        Each key date takes the latest provider close on or before it. Days
        the provider cannot answer use the fallback table (mock when no
        history provider is configured). Empty when start is after end.
        """
        base = self.normalize(from_currency)
        quote = self.normalize(to_currency)

        if start > end:
            return []
        if base == quote:
            return [HistoricalRate(base, quote, Decimal("1"), start, RateSource.INTERNAL)]

        closes: Dict[date, Decimal] = {}
        missing_source = RateSource.FALLBACK
        if self._history is None:
            missing_source = RateSource.MOCK
            log_rate_fallback(base, quote, missing_source.value, "historical rate provider not configured")
        else:
            try:
                closes = await self._history.fetch_daily_rates(base, quote)
            except Exception as e:
                log_rate_fallback(base, quote, missing_source.value, str(e))

        known_days = sorted(closes)
        rates = []
        for day in key_dates(start, end):
            index = bisect.bisect_right(known_days, day)
            if index:
                rate, source = closes[known_days[index - 1]], RateSource.HISTORICAL
            else:
                rate, source = fallback_rate(base, quote), missing_source
            record_rate_lookup(source.value)
            rates.append(HistoricalRate(base, quote, rate, day, source))
        return rates

    async def calculate_currency_exposure(
        self,
        investments: Sequence[Investment],
        reporting_currency: str,
    ) -> List[CurrencyExposure]:
        """Group current value by native currency, valued in reporting_currency"""
        reporting = self.normalize(reporting_currency)
        values: Dict[str, Decimal] = {}

        for investment in investments:
            value = investment.current_value
            try:
                converted = await self.convert_amount(value.amount, value.currency, reporting)
                amount = converted.value.amount
            except InvalidCurrencyError as e:
                logger.warning(f"Using unconverted value for investment {investment.id}: {e}")
                amount = value.amount
            values[investment.currency] = values.get(investment.currency, Decimal("0")) + amount

        return build_exposures(values, reporting, self._thresholds)

    async def analyze_currency_risk(
        self,
        investments: Sequence[Investment],
        reporting_currency: str,
    ) -> CurrencyRiskAnalysis:
        exposures = await self.calculate_currency_exposure(investments, reporting_currency)

        return CurrencyRiskAnalysis(
            total_exposure=exposures,
            risk_score=calculate_risk_score(exposures, self._thresholds),
            recommendations=generate_recommendations(exposures, self._thresholds),
            hedging_opportunities=generate_hedging_opportunities(exposures, self._thresholds),
            volatility_metrics=generate_volatility_metrics(exposures),
        )

    def supported_currencies(self) -> List[CurrencyInfo]:
        return list(SUPPORTED_CURRENCIES)

    def currency_info(self, code: str) -> CurrencyInfo:
        normalized = self.normalize(code)
        for info in SUPPORTED_CURRENCIES:
            if info.code == normalized:
                return info
        raise NotFoundError(f"Currency {normalized} not supported")

    def is_valid_currency_code(self, code: str) -> bool:
        return code in SUPPORTED_CODES

    def detect_currency_from_location(self, country_code: str) -> str:
        return COUNTRY_CURRENCY_MAP.get((country_code or "").strip().upper(), "USD")

    def detect_currency_from_market(self, symbol: str) -> str:
        return currency_for_symbol(symbol)

    def clear_cache(self) -> None:
        self._cache.clear()
        self._last_refresh = datetime.fromtimestamp(0, tz=timezone.utc)
        logger.info("Currency cache cleared - fresh rates will be fetched")

    def cache_status(self) -> CacheStatus:
        return CacheStatus(
            last_updated=self._last_refresh,
            next_update=self._last_refresh + self._ttl,
            entries=len(self._cache),
        )

    async def _fetch_with_retry(self, base: str, quote: str) -> Decimal:
        """
        Call the provider up to max_retries times.

        Retry strategy:
        - Linear backoff between attempts: delay * attempt (1s, 2s, ...)
        - Retries on any provider failure; unexpected errors are logged with a traceback
        - Re-raises the last error once attempts are exhausted
        """
        last_error: Exception | None = None

        for attempt in range(1, self._max_retries + 1):
            try:
                provider_rate = await self._provider.fetch_rate(base, quote)
                if provider_rate.rate <= 0:
                    raise RateProviderError(f"Non-positive rate for {base}/{quote}: {provider_rate.rate}")
                return provider_rate.rate

            except (RateProviderError, RateUnavailableError) as e:
                last_error = e
                logger.warning(f"Exchange rate fetch attempt {attempt} for {base}/{quote} failed: {e}")

            except Exception as e:
                last_error = e
                logger.exception(f"Exchange rate fetch attempt {attempt} for {base}/{quote} raised unexpectedly")

            rate_provider_failure_counter.inc()
            if attempt < self._max_retries:
                await asyncio.sleep(self._retry_delay * attempt)

        raise last_error

    def _validated(self, code: str) -> str:
        normalized = self.normalize(code)
        if not is_currency_code_format(normalized):
            raise InvalidCurrencyError(f"Currency must be a 3-letter ISO 4217 code, got {code!r}")
        return normalized

    @staticmethod
    def _rate(base: str, quote: str, rate: Decimal, timestamp: datetime, source: RateSource) -> ExchangeRate:
        record_rate_lookup(source.value)
        return ExchangeRate(
            from_currency=base,
            to_currency=quote,
            rate=to_decimal(rate),
            timestamp=timestamp,
            source=source,
        )
