"""Portfolio service: valuation, risk classification, and quote refresh"""

import asyncio
import logging
from decimal import Decimal
from typing import Dict, List

from finpulse.domain.currency_risk import percentage_of
from finpulse.domain.exceptions import DomainException, NotFoundError, ValidationError
from finpulse.domain.flows import EntityKind
from finpulse.domain.models import (
    CurrencyRiskAnalysis,
    Investment,
    Money,
    PortfolioSummary,
    Quoted,
    RiskThresholds,
    to_decimal,
)
from finpulse.domain.portfolio import classify_portfolio_risk, diversification_score
from finpulse.domain.ports import EntityStore, QuoteProvider
from finpulse.infrastructure.observability.metrics import quote_batch_counter
from finpulse.services.aggregation import AggregationPipeline
from finpulse.services.currency_converter import CurrencyConverter

logger = logging.getLogger(__name__)


class PortfolioService:
    def __init__(
        self,
        store: EntityStore[Investment],
        pipeline: AggregationPipeline,
        thresholds: RiskThresholds | None = None,
        quote_batch_size: int = 5,
        quote_batch_delay_seconds: float = 1.0,
    ):
        self.store = store
        self.pipeline = pipeline
        self.thresholds = thresholds or RiskThresholds()
        self.quote_batch_size = max(1, quote_batch_size)
        self.quote_batch_delay_seconds = quote_batch_delay_seconds

    @property
    def converter(self) -> CurrencyConverter:
        return self.pipeline.converter

    async def get_by_type(self, owner_id: str, investment_type: str) -> List[Investment]:
        return [i for i in await self.store.get_all(owner_id) if i.type == investment_type]

    async def get_quoted_investments(self, owner_id: str) -> List[Investment]:
        """Investments that carry a positive market quote"""
        return [
            i for i in await self.store.get_all(owner_id)
            if isinstance(i.current_price, Quoted) and i.current_price.price.amount > 0
        ]

    async def get_portfolio_summary(self, owner_id: str, reporting_currency: str) -> PortfolioSummary:
        """
        Value the portfolio in the reporting currency.

        Requirements:
        - Current value uses the quote when present, otherwise the purchase price
        - Value and cost basis converted per investment before summing
        - Gain/loss percentage is 0 when the cost basis is 0
        - Diversification and risk level come from the per-type value split
        """
        investments = await self.store.get_all(owner_id)
        aggregate = await self.pipeline.aggregate(owner_id, EntityKind.INVESTMENT, investments, reporting_currency)
        reporting = aggregate.total.currency

        total_cost = Decimal("0")
        for investment in investments:
            converted = await self.pipeline.convert(investment.cost_basis, reporting, entity_id=investment.id)
            total_cost += converted.value.amount

        total_value = aggregate.total.amount
        gain_loss = total_value - total_cost

        return PortfolioSummary(
            total_value=aggregate.total,
            total_gain_loss=Money(amount=gain_loss, currency=reporting),
            gain_loss_percentage=percentage_of(gain_loss, total_cost) if total_cost > 0 else 0.0,
            diversification_score=diversification_score(aggregate.by_category),
            risk_level=classify_portfolio_risk(aggregate.by_category, total_value, self.thresholds),
            currency_exposure=await self.converter.calculate_currency_exposure(investments, reporting),
        )

    async def get_currency_risk_analysis(self, owner_id: str, reporting_currency: str) -> CurrencyRiskAnalysis:
        investments = await self.store.get_all(owner_id)
        return await self.converter.analyze_currency_risk(investments, reporting_currency)

    async def update_current_price(self, owner_id: str, investment_id: str, price: Decimal | int | str) -> Investment:
        """
        Record a market quote in the investment's own currency.

        Raises:
            NotFoundError: Investment does not exist for this owner
            ValidationError: Price is not positive
        """
        investment = await self.store.get_by_id(owner_id, investment_id)
        if investment is None:
            raise NotFoundError(f"Investment {investment_id} not found")

        amount = to_decimal(price)
        if amount <= 0:
            raise ValidationError(f"Price must be positive, got {amount}")

        investment.current_price = Quoted(price=Money(amount=amount, currency=investment.currency))
        return await self.store.update(investment)

    async def refresh_prices(self, owner_id: str, quote_provider: QuoteProvider) -> int:
        """
        Refresh quotes for every investment with a symbol.

        Symbols are requested concurrently in batches of quote_batch_size with
        quote_batch_delay_seconds between batches. Quotes are stored in the
        investment's own currency. Returns the number of investments updated.
        """
        investments = [i for i in await self.store.get_all(owner_id) if i.symbol]
        symbols = sorted({i.symbol for i in investments})

        quotes: Dict[str, Money] = {}
        for start in range(0, len(symbols), self.quote_batch_size):
            batch = symbols[start:start + self.quote_batch_size]
            results = await asyncio.gather(*(self._fetch_quote(quote_provider, symbol) for symbol in batch))
            quote_batch_counter.inc()
            quotes.update({symbol: quote for symbol, quote in zip(batch, results) if quote is not None})

            if start + self.quote_batch_size < len(symbols):
                await asyncio.sleep(self.quote_batch_delay_seconds)

        updated = 0
        for investment in investments:
            quote = quotes.get(investment.symbol)
            if quote is None or quote.amount <= 0:
                continue
            if quote.currency != investment.currency:
                # Listing currency differs from the holding currency, e.g. VOD.L quoted in GBP
                converted = await self.pipeline.convert(quote, investment.currency, entity_id=investment.id)
                quote = converted.value
            investment.current_price = Quoted(price=quote)
            await self.store.update(investment)
            updated += 1

        logger.info(f"Refreshed {updated} of {len(investments)} quoted investments for {owner_id}")
        return updated

    @staticmethod
    async def _fetch_quote(quote_provider: QuoteProvider, symbol: str) -> Money | None:
        try:
            return await quote_provider.fetch_quote(symbol)
        except DomainException as e:
            logger.warning(f"Quote refresh failed for {symbol}: {e}")
            return None
