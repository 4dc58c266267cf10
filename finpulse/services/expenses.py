"""Expense service: multi-currency totals, spending analysis, and budget alerts"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, List, Mapping

from finpulse.domain.currency_risk import percentage_of
from finpulse.domain.flows import EntityKind
from finpulse.domain.models import CategoryBreakdown, Expense, Money, MonthlyProjection
from finpulse.domain.ports import EntityStore, FieldFilter
from finpulse.services.aggregation import PROJECTION_MONTHS, AggregationPipeline

EXPENSE_CATEGORIES = ("rent", "groceries", "utilities", "entertainment", "other")

BUDGET_DANGER = 100.0
BUDGET_WARNING = 80.0


@dataclass
class SpendingAnalysis:
    total_monthly: Money
    fixed_expenses: Money
    variable_expenses: Money
    category_breakdown: Dict[str, Decimal]
    suggestions: List[str]


@dataclass
class BudgetAlert:
    category: str
    current_amount: Money
    budget_limit: Money  # as given, in its own currency
    percentage_used: float
    alert_level: str  # info | warning | danger


@dataclass
class ExpenseProjectionSummary:
    projections: List[MonthlyProjection]
    average_monthly: Money
    total_projected: Money
    currencies_involved: List[str] = field(default_factory=list)


class ExpenseService:
    def __init__(self, store: EntityStore[Expense], pipeline: AggregationPipeline):
        self.store = store
        self.pipeline = pipeline

    async def get_by_category(self, owner_id: str, category: str) -> List[Expense]:
        return await self.store.get_filtered(owner_id, [FieldFilter("category", "==", category)])

    async def get_fixed_expenses(self, owner_id: str) -> List[Expense]:
        return await self.store.get_filtered(owner_id, [FieldFilter("is_fixed", "==", True)])

    async def get_variable_expenses(self, owner_id: str) -> List[Expense]:
        return await self.store.get_filtered(owner_id, [FieldFilter("is_fixed", "==", False)])

    async def get_monthly_total(self, owner_id: str, reporting_currency: str) -> Money:
        """Monthly equivalent of every recorded expense, fixed and variable alike"""
        aggregate = await self.pipeline.aggregate(
            owner_id, EntityKind.EXPENSE, await self.store.get_all(owner_id), reporting_currency
        )
        return aggregate.total

    async def get_annual_total(self, owner_id: str, reporting_currency: str) -> Money:
        monthly = await self.get_monthly_total(owner_id, reporting_currency)
        return monthly.with_amount(monthly.amount * 12)

    async def get_expense_breakdown(self, owner_id: str, reporting_currency: str) -> List[CategoryBreakdown]:
        aggregate = await self.pipeline.aggregate(
            owner_id, EntityKind.EXPENSE, await self.store.get_all(owner_id), reporting_currency
        )
        return self.pipeline.breakdown(aggregate)

    async def get_expense_projections(
        self,
        owner_id: str,
        reporting_currency: str,
        start: date | None = None,
        months: int = PROJECTION_MONTHS,
    ) -> List[MonthlyProjection]:
        return await self.pipeline.project(
            owner_id, EntityKind.EXPENSE, await self.store.get_all(owner_id), reporting_currency, start, months
        )

    async def get_multi_currency_projections(
        self,
        owner_id: str,
        reporting_currency: str,
        start: date | None = None,
    ) -> ExpenseProjectionSummary:
        """Projections with native amounts by currency and their conversion impact"""
        projections = await self.get_expense_projections(owner_id, reporting_currency, start)
        reporting = projections[0].amount.currency
        total = sum((p.amount.amount for p in projections), Decimal("0"))
        currencies = sorted({currency for p in projections for currency in p.original_amounts})

        return ExpenseProjectionSummary(
            projections=projections,
            average_monthly=Money(amount=total / len(projections), currency=reporting),
            total_projected=Money(amount=total, currency=reporting),
            currencies_involved=currencies,
        )

    async def get_spending_analysis(self, owner_id: str, reporting_currency: str) -> SpendingAnalysis:
        """
        Fixed versus variable spending with suggestions.

        Suggestions fire when entertainment exceeds 15% of spending, variable
        spending exceeds fixed spending, or one category exceeds 50%.
        """
        expenses = await self.store.get_all(owner_id)
        aggregate = await self.pipeline.aggregate(owner_id, EntityKind.EXPENSE, expenses, reporting_currency)
        fixed = await self.pipeline.aggregate(
            owner_id, EntityKind.EXPENSE, [e for e in expenses if e.is_fixed], reporting_currency
        )
        variable = await self.pipeline.aggregate(
            owner_id, EntityKind.EXPENSE, [e for e in expenses if not e.is_fixed], reporting_currency
        )

        total = aggregate.total.amount
        categories = {category: Decimal("0") for category in EXPENSE_CATEGORIES}
        categories.update(aggregate.by_category)

        suggestions = []
        if percentage_of(categories["entertainment"], total) > 15:
            suggestions.append(
                "Consider reducing entertainment expenses - they represent more than 15% of your total spending"
            )
        if variable.total.amount > fixed.total.amount:
            suggestions.append(
                "Your variable expenses exceed fixed expenses - look for opportunities to reduce discretionary spending"
            )
        top_category, top_amount = max(categories.items(), key=lambda item: item[1])
        if percentage_of(top_amount, total) > 50:
            suggestions.append(f"Your {top_category} expenses are very high - consider ways to optimize this category")

        return SpendingAnalysis(
            total_monthly=aggregate.total,
            fixed_expenses=fixed.total,
            variable_expenses=variable.total,
            category_breakdown=categories,
            suggestions=suggestions,
        )

    async def get_budget_alerts(
        self,
        owner_id: str,
        budget_limits: Mapping[str, Money],
        reporting_currency: str,
    ) -> List[BudgetAlert]:
        """
        Compare monthly spending per category with its budget limit.

        Limits are converted to the reporting currency before comparison.
        Usage >= 100% is danger, >= 80% warning, otherwise info. A
        non-positive limit reports 0% used and is danger once anything is spent.
        """
        aggregate = await self.pipeline.aggregate(
            owner_id, EntityKind.EXPENSE, await self.store.get_all(owner_id), reporting_currency
        )

        alerts = []
        for category, limit in budget_limits.items():
            spent = aggregate.by_category.get(category, Decimal("0"))
            converted_limit = await self.pipeline.convert(limit, reporting_currency)
            used = percentage_of(spent, converted_limit.value.amount)

            if used >= BUDGET_DANGER or (converted_limit.value.amount <= 0 and spent > 0):
                level = "danger"
            elif used >= BUDGET_WARNING:
                level = "warning"
            else:
                level = "info"

            alerts.append(
                BudgetAlert(
                    category=category,
                    current_amount=aggregate.total.with_amount(spent),
                    budget_limit=limit,
                    percentage_used=used,
                    alert_level=level,
                )
            )
        return alerts

    @staticmethod
    def budget_recommendations(alerts: List[BudgetAlert]) -> List[str]:
        recommendations = []
        danger = [a.category for a in alerts if a.alert_level == "danger"]
        warning = [a.category for a in alerts if a.alert_level == "warning"]

        if danger:
            recommendations.append(
                f"You have {len(danger)} categories over budget. "
                f"Consider reducing spending in: {', '.join(danger)}"
            )
        if warning:
            recommendations.append(
                f"Monitor spending in {len(warning)} categories approaching budget limits: {', '.join(warning)}"
            )

        if alerts:
            highest = max(alerts, key=lambda a: a.current_amount.amount)
            if highest.percentage_used > 50:
                recommendations.append(
                    f"{highest.category} is your highest expense category. Look for optimization opportunities."
                )

        if any(a.current_amount.currency != a.budget_limit.currency for a in alerts):
            recommendations.append(
                "Consider the impact of exchange rate fluctuations on your multi-currency budget categories."
            )

        return recommendations
