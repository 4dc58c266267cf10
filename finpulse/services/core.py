"""Entry point for presentation layers: the financial computations exposed per user"""

from datetime import date
from typing import Any, Callable, List

from finpulse.domain.amortization import generate_amortization_schedule
from finpulse.domain.flows import EntityKind
from finpulse.domain.models import (
    AmortizationEntry,
    CategoryBreakdown,
    CurrencyRiskAnalysis,
    DebtPayoffStrategies,
    Expense,
    Income,
    Investment,
    Loan,
    Money,
    MonthlyProjection,
    PortfolioSummary,
    RiskThresholds,
)
from finpulse.domain.ports import EntityStore, UserPreferencesProvider
from finpulse.services.aggregation import AggregationPipeline
from finpulse.services.currency_converter import CurrencyConverter
from finpulse.services.expenses import ExpenseService
from finpulse.services.income import CurrencyProjections, IncomeService, TaxImplications
from finpulse.services.loans import LoanService
from finpulse.services.portfolio import PortfolioService


class FinancialCore:
    """
    Per-user financial computations over the injected stores and converter.

    Operations that take an optional reporting currency fall back to the
    user's primary currency from preferences.
    """

    def __init__(
        self,
        converter: CurrencyConverter,
        loans: EntityStore[Loan],
        incomes: EntityStore[Income],
        expenses: EntityStore[Expense],
        investments: EntityStore[Investment],
        preferences: UserPreferencesProvider,
        thresholds: RiskThresholds | None = None,
        quote_batch_size: int = 5,
        quote_batch_delay_seconds: float = 1.0,
        today: Callable[[], date] = date.today,
    ):
        self.converter = converter
        self.preferences = preferences
        self.today = today
        self.pipeline = AggregationPipeline(converter)
        self.loans = LoanService(loans, self.pipeline, thresholds, today=today)
        self.income = IncomeService(incomes, self.pipeline, thresholds)
        self.expenses = ExpenseService(expenses, self.pipeline)
        self.portfolio = PortfolioService(
            investments,
            self.pipeline,
            thresholds,
            quote_batch_size=quote_batch_size,
            quote_batch_delay_seconds=quote_batch_delay_seconds,
        )

    async def reporting_currency(self, owner_id: str, requested: str | None = None) -> str:
        if requested:
            return CurrencyConverter.normalize(requested)
        preferences = await self.preferences.get_preferences(owner_id)
        return CurrencyConverter.normalize(preferences.primary_currency)

    def compute_amortization_schedule(self, loan: Loan | None) -> List[AmortizationEntry]:
        return generate_amortization_schedule(loan)

    async def compute_debt_payoff_strategies(
        self, owner_id: str, reporting_currency: str | None = None
    ) -> DebtPayoffStrategies:
        currency = await self.reporting_currency(owner_id, reporting_currency)
        return await self.loans.get_debt_payoff_strategies(owner_id, currency)

    async def compute_monthly_aggregate(
        self, owner_id: str, kind: EntityKind, reporting_currency: str | None = None
    ) -> Money:
        """
        Current monthly total for one entity family in the reporting currency.

        Income and expenses report their monthly equivalent, loans their
        combined monthly payment, investments their current value.
        """
        currency = await self.reporting_currency(owner_id, reporting_currency)
        entities = await self._current_entities(owner_id, kind)
        aggregate = await self.pipeline.aggregate(owner_id, kind, entities, currency)
        return aggregate.total

    async def compute_breakdown(
        self, owner_id: str, kind: EntityKind, reporting_currency: str | None = None
    ) -> List[CategoryBreakdown]:
        currency = await self.reporting_currency(owner_id, reporting_currency)
        entities = await self._current_entities(owner_id, kind)
        aggregate = await self.pipeline.aggregate(owner_id, kind, entities, currency)
        return self.pipeline.breakdown(aggregate)

    async def compute_projections(
        self, owner_id: str, kind: EntityKind, reporting_currency: str | None = None
    ) -> List[MonthlyProjection]:
        """Twelve monthly totals starting with the current month"""
        currency = await self.reporting_currency(owner_id, reporting_currency)
        entities = await self._store(kind).get_all(owner_id)
        return await self.pipeline.project(owner_id, kind, entities, currency, start=self.today())

    async def compute_portfolio_summary(self, owner_id: str, reporting_currency: str | None = None) -> PortfolioSummary:
        currency = await self.reporting_currency(owner_id, reporting_currency)
        return await self.portfolio.get_portfolio_summary(owner_id, currency)

    async def compute_currency_risk_analysis(
        self, owner_id: str, reporting_currency: str | None = None
    ) -> CurrencyRiskAnalysis:
        currency = await self.reporting_currency(owner_id, reporting_currency)
        return await self.portfolio.get_currency_risk_analysis(owner_id, currency)

    async def compute_debt_to_income_ratio(self, owner_id: str, reporting_currency: str | None = None) -> float:
        currency = await self.reporting_currency(owner_id, reporting_currency)
        monthly_income = await self.income.calculate_monthly_income(owner_id, currency)
        return await self.loans.get_debt_to_income_ratio(owner_id, monthly_income)

    async def compute_tax_implications(self, owner_id: str, home_currency: str | None = None) -> TaxImplications:
        """Domestic and foreign income, with home currency taken from preferences"""
        currency = await self.reporting_currency(owner_id, home_currency)
        return await self.income.get_tax_implications(owner_id, currency)

    async def compute_currency_specific_projections(
        self, owner_id: str, target_currency: str | None = None
    ) -> CurrencyProjections:
        currency = await self.reporting_currency(owner_id, target_currency)
        return await self.income.get_currency_specific_projections(owner_id, currency, start=self.today())

    async def _current_entities(self, owner_id: str, kind: EntityKind) -> List[Any]:
        if kind == EntityKind.INCOME:
            return await self.income.get_active_incomes(owner_id)
        if kind == EntityKind.LOAN:
            return await self.loans.get_active_loans(owner_id)
        return await self._store(kind).get_all(owner_id)

    def _store(self, kind: EntityKind) -> EntityStore:
        stores = {
            EntityKind.INCOME: self.income.store,
            EntityKind.EXPENSE: self.expenses.store,
            EntityKind.LOAN: self.loans.store,
            EntityKind.INVESTMENT: self.portfolio.store,
        }
        return stores[kind]
