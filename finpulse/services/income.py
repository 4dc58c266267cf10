"""Income service: multi-currency totals, projections, and foreign income exposure"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List

from finpulse.domain.currency_risk import assess_foreign_share_risk, percentage_of
from finpulse.domain.flows import EntityKind, native_amount
from finpulse.domain.models import (
    CategoryBreakdown,
    CurrencyExposure,
    ExchangeRate,
    Income,
    Money,
    MonthlyProjection,
    RiskThresholds,
)
from finpulse.domain.ports import EntityStore, FieldFilter
from finpulse.services.aggregation import PROJECTION_MONTHS, AggregationPipeline

ASSUMED_VOLATILITY = Decimal("0.10")  # +/-10% band for impact estimates
SIGNIFICANT_FOREIGN_SHARE = 30.0
SIGNIFICANT_FOREIGN_TAX_RATIO = Decimal("0.10")  # foreign vs domestic income

FOREIGN_INCOME_TAX_CONSIDERATIONS = (
    "Foreign income may be subject to withholding tax in the source country",
    "You may be eligible for foreign tax credits to avoid double taxation",
    "Exchange rate fluctuations affect the taxable amount in your home currency",
    "Consider the timing of currency conversion for tax optimization",
)

GENERAL_TAX_RECOMMENDATIONS = (
    "Consult with a tax professional familiar with international taxation",
    "Keep detailed records of exchange rates used for tax reporting",
    "Consider the impact of currency hedging on tax treatment",
    "Review tax treaties between countries to optimize your tax position",
)


@dataclass
class IncomeCurrencyRisk:
    currency: str
    monthly_amount: Money  # native
    converted_amount: Money  # reporting
    volatility_30d: float
    best_case: Money
    worst_case: Money


@dataclass
class ExchangeRateImpact:
    total_foreign_income: Money
    currency_risks: List[IncomeCurrencyRisk]
    recommendations: List[str]


@dataclass
class ForeignIncomeTaxNote:
    income_id: str
    monthly_amount: Money  # native
    converted_amount: Money  # home currency
    exchange_rate: Decimal
    considerations: List[str]


@dataclass
class TaxImplications:
    domestic_income: Money
    foreign_income: Money
    tax_considerations: List[ForeignIncomeTaxNote]
    general_recommendations: List[str]


@dataclass
class CurrencyProjections:
    projections: List[MonthlyProjection]
    rate_assumptions: List[ExchangeRate]  # one per foreign income currency


class IncomeService:
    def __init__(
        self,
        store: EntityStore[Income],
        pipeline: AggregationPipeline,
        thresholds: RiskThresholds | None = None,
    ):
        self.store = store
        self.pipeline = pipeline
        self.thresholds = thresholds or RiskThresholds()

    async def get_active_incomes(self, owner_id: str) -> List[Income]:
        return await self.store.get_filtered(owner_id, [FieldFilter("is_active", "==", True)])

    async def get_incomes_by_type(self, owner_id: str, income_type: str) -> List[Income]:
        return await self.store.get_filtered(owner_id, [FieldFilter("type", "==", income_type)])

    async def calculate_monthly_income(self, owner_id: str, reporting_currency: str) -> Money:
        aggregate = await self.pipeline.aggregate(
            owner_id, EntityKind.INCOME, await self.get_active_incomes(owner_id), reporting_currency
        )
        return aggregate.total

    async def calculate_annual_income(self, owner_id: str, reporting_currency: str) -> Money:
        monthly = await self.calculate_monthly_income(owner_id, reporting_currency)
        return monthly.with_amount(monthly.amount * 12)

    async def get_income_breakdown(self, owner_id: str, reporting_currency: str) -> List[CategoryBreakdown]:
        aggregate = await self.pipeline.aggregate(
            owner_id, EntityKind.INCOME, await self.get_active_incomes(owner_id), reporting_currency
        )
        return self.pipeline.breakdown(aggregate)

    async def get_income_projections(
        self,
        owner_id: str,
        reporting_currency: str,
        start: date | None = None,
        months: int = PROJECTION_MONTHS,
    ) -> List[MonthlyProjection]:
        return await self.pipeline.project(
            owner_id, EntityKind.INCOME, await self.store.get_all(owner_id), reporting_currency, start, months
        )

    async def get_income_by_currency(self, owner_id: str, reporting_currency: str) -> List[CurrencyExposure]:
        """
        Share of monthly income per native currency.

        Income in the reporting currency is low risk; a foreign share above
        50% is high, above 20% medium.
        """
        aggregate = await self.pipeline.aggregate(
            owner_id, EntityKind.INCOME, await self.get_active_incomes(owner_id), reporting_currency
        )
        reporting = aggregate.total.currency

        exposures = []
        for currency, amount in aggregate.by_currency.items():
            percentage = percentage_of(amount, aggregate.total.amount)
            exposures.append(
                CurrencyExposure(
                    currency=currency,
                    total_value=Money(amount=amount, currency=reporting),
                    percentage=percentage,
                    risk_level=assess_foreign_share_risk(
                        currency,
                        percentage,
                        reporting,
                        self.thresholds.income_foreign_high,
                        self.thresholds.income_foreign_medium,
                    ),
                )
            )
        return sorted(exposures, key=lambda e: e.percentage, reverse=True)

    async def get_exchange_rate_impact(self, owner_id: str, reporting_currency: str) -> ExchangeRateImpact:
        """Best and worst case value of each foreign income source under a 10% rate swing"""
        incomes = await self.get_active_incomes(owner_id)
        total_income = await self.calculate_monthly_income(owner_id, reporting_currency)
        reporting = total_income.currency

        foreign = [income for income in incomes if income.amount.currency != reporting]
        total_foreign = Decimal("0")
        risks = []
        recommendations = []

        for income in foreign:
            monthly = native_amount(EntityKind.INCOME, income)
            converted = (await self.pipeline.convert(monthly, reporting, entity_id=income.id)).value
            total_foreign += converted.amount

            risks.append(
                IncomeCurrencyRisk(
                    currency=monthly.currency,
                    monthly_amount=monthly,
                    converted_amount=converted,
                    volatility_30d=float(ASSUMED_VOLATILITY * 100),
                    best_case=converted.with_amount(converted.amount * (1 + ASSUMED_VOLATILITY)),
                    worst_case=converted.with_amount(converted.amount * (1 - ASSUMED_VOLATILITY)),
                )
            )

            if percentage_of(converted.amount, total_income.amount) > SIGNIFICANT_FOREIGN_SHARE:
                recommendations.append(
                    f"Consider hedging your {monthly.currency} income exposure as it represents "
                    "a significant portion of your total income."
                )

        if foreign:
            recommendations.extend(
                [
                    "Monitor exchange rates regularly to understand the impact on your income.",
                    "Consider setting up currency alerts for significant rate changes.",
                    "Diversify your income sources across different currencies if possible.",
                ]
            )

        return ExchangeRateImpact(
            total_foreign_income=Money(amount=total_foreign, currency=reporting),
            currency_risks=risks,
            recommendations=recommendations,
        )

    async def get_currency_specific_projections(
        self,
        owner_id: str,
        target_currency: str,
        start: date | None = None,
    ) -> CurrencyProjections:
        """Twelve-month projection in target_currency with the rate assumed for each foreign currency"""
        target = self.pipeline.converter.normalize(target_currency)
        incomes = await self.get_active_incomes(owner_id)

        foreign_currencies = sorted({income.amount.currency for income in incomes} - {target})
        assumptions = await self.pipeline.converter.get_multiple_rates(
            [(currency, target) for currency in foreign_currencies]
        )

        projections = await self.pipeline.project(owner_id, EntityKind.INCOME, incomes, target, start)
        return CurrencyProjections(projections=projections, rate_assumptions=assumptions)

    async def get_tax_implications(self, owner_id: str, home_currency: str) -> TaxImplications:
        """
        Split monthly income into domestic and foreign parts in home_currency.

        Requirements:
        - Income in home_currency is domestic; everything else is converted and foreign
        - Each foreign income gets the standard cross-border considerations
        - Foreign income above 10% of domestic income leads the recommendations
        """
        home = self.pipeline.converter.normalize(home_currency)
        domestic = Decimal("0")
        foreign = Decimal("0")
        notes = []

        for income in await self.get_active_incomes(owner_id):
            monthly = native_amount(EntityKind.INCOME, income)
            if monthly.currency == home:
                domestic += monthly.amount
                continue

            converted = await self.pipeline.convert(monthly, home, entity_id=income.id)
            foreign += converted.value.amount
            notes.append(
                ForeignIncomeTaxNote(
                    income_id=income.id,
                    monthly_amount=monthly,
                    converted_amount=converted.value,
                    exchange_rate=converted.rate,
                    considerations=list(FOREIGN_INCOME_TAX_CONSIDERATIONS),
                )
            )

        recommendations = list(GENERAL_TAX_RECOMMENDATIONS)
        if foreign > domestic * SIGNIFICANT_FOREIGN_TAX_RATIO:
            recommendations.insert(
                0,
                "Foreign income represents a significant portion of your total income - "
                "professional tax advice is strongly recommended",
            )

        return TaxImplications(
            domestic_income=Money(amount=domestic, currency=home),
            foreign_income=Money(amount=foreign, currency=home),
            tax_considerations=notes,
            general_recommendations=recommendations,
        )
