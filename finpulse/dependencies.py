"""Wiring of the process-wide converter and per-session services"""

from functools import lru_cache

from sqlalchemy.orm import Session

from finpulse.config import settings
from finpulse.infrastructure.clients.exchange_rates import AlphaVantageRateClient
from finpulse.infrastructure.clients.market_data import AlphaVantageQuoteClient
from finpulse.infrastructure.database.models import Base
from finpulse.infrastructure.database.repositories import (
    DocumentPreferencesProvider,
    expense_repository,
    income_repository,
    investment_repository,
    loan_repository,
)
from finpulse.infrastructure.database.session import engine
from finpulse.infrastructure.observability.logging import setup_logging
from finpulse.services.core import FinancialCore
from finpulse.services.currency_converter import CurrencyConverter


def bootstrap() -> None:
    """Process startup: structured logging and the documents table"""
    setup_logging(settings.log_level)
    Base.metadata.create_all(bind=engine)


def get_rate_provider() -> AlphaVantageRateClient | None:
    """Live rate client, or None when no real API key is configured (mock rates)"""
    if not settings.uses_live_rates:
        return None
    return AlphaVantageRateClient()


def get_quote_provider() -> AlphaVantageQuoteClient:
    return AlphaVantageQuoteClient()


@lru_cache(maxsize=None)
def get_converter() -> CurrencyConverter:
    """The single converter (and rate cache) shared by every caller in this process"""
    provider = get_rate_provider()
    return CurrencyConverter(
        provider=provider,
        history=provider,
        cache_ttl_seconds=settings.rate_cache_ttl_seconds,
        max_retries=settings.rate_max_retries,
        retry_delay_seconds=settings.rate_retry_delay_seconds,
        thresholds=settings.risk_thresholds(),
    )


def create_core(db: Session) -> FinancialCore:
    """Financial computations over the document store bound to this session"""
    return FinancialCore(
        converter=get_converter(),
        loans=loan_repository(db),
        incomes=income_repository(db),
        expenses=expense_repository(db),
        investments=investment_repository(db),
        preferences=DocumentPreferencesProvider(db),
        thresholds=settings.risk_thresholds(),
        quote_batch_size=settings.quote_batch_size,
        quote_batch_delay_seconds=settings.quote_batch_delay_seconds,
    )
