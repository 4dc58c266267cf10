"""Loan service: amortization, payoff strategies, and multi-currency debt analysis"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Callable, Dict, List

from finpulse.domain.amortization import (
    apply_payment,
    calculate_total_interest,
    generate_amortization_schedule,
    order_avalanche,
    order_snowball,
    payoff_months,
)
from finpulse.domain.currency_risk import assess_foreign_share_risk, percentage_of
from finpulse.domain.exceptions import NotFoundError
from finpulse.domain.flows import EntityKind
from finpulse.domain.models import (
    AmortizationEntry,
    CurrencyExposure,
    DebtPayoffStrategies,
    Loan,
    Money,
    PayoffStrategy,
    RiskLevel,
    RiskThresholds,
)
from finpulse.domain.ports import EntityStore
from finpulse.services.aggregation import PROJECTION_MONTHS, AggregationPipeline
from finpulse.utils.date_utils import first_of_month, month_starts

logger = logging.getLogger(__name__)

UPCOMING_PAYMENT_DAYS = 7
REFINANCE_RATE_THRESHOLD = Decimal("7")  # APR percent

LENDER_KEYWORDS = [
    ({"barclays", "hsbc", "lloyds", "natwest", "uk", "british", "britain"}, "GBP"),
    ({"deutsche", "commerzbank", "bnp", "paribas", "european", "europe", "euro", "germany", "france"}, "EUR"),
    ({"rbc", "scotiabank", "bmo", "canadian", "canada"}, "CAD"),
    ({"commonwealth", "westpac", "anz", "australian", "australia"}, "AUD"),
    ({"ubs", "suisse", "swiss", "switzerland"}, "CHF"),
    ({"mitsubishi", "mufg", "mizuho", "sumitomo", "japan", "japanese"}, "JPY"),
]


@dataclass
class LoanProjection:
    """Scheduled debt position at the end of one calendar month"""

    month: date
    total_debt: Money
    total_payment: Money
    currency_breakdown: Dict[str, Decimal] = field(default_factory=dict)  # native remaining debt
    exchange_rate_impact: Decimal = Decimal("0")


@dataclass
class LoanOptimization:
    high_risk_loans: List[Loan]
    currency_recommendations: List[str]
    refinancing_opportunities: List[Loan]
    strategy: str  # avalanche | snowball | currency_focused
    estimated_savings: Money


@dataclass
class DebtToIncomeAssessment:
    ratio: float
    risk_level: RiskLevel
    recommendation: str


class LoanService:
    """Loans for a single owner, valued in a caller-chosen reporting currency"""

    def __init__(
        self,
        store: EntityStore[Loan],
        pipeline: AggregationPipeline,
        thresholds: RiskThresholds | None = None,
        today: Callable[[], date] = date.today,
    ):
        self.store = store
        self.pipeline = pipeline
        self.thresholds = thresholds or RiskThresholds()
        self.today = today

    async def get_loan(self, owner_id: str, loan_id: str) -> Loan:
        loan = await self.store.get_by_id(owner_id, loan_id)
        if loan is None:
            raise NotFoundError(f"Loan {loan_id} not found")
        return loan

    async def get_active_loans(self, owner_id: str) -> List[Loan]:
        """Loans with an outstanding balance, soonest payment first"""
        loans = await self.store.get_all(owner_id)
        active = [loan for loan in loans if loan.current_balance.amount > 0]
        return sorted(active, key=lambda loan: loan.next_payment_date)

    async def get_loans_by_type(self, owner_id: str, loan_type: str) -> List[Loan]:
        loans = await self.store.get_all(owner_id)
        return [loan for loan in loans if loan.type == loan_type]

    async def get_amortization_schedule(self, owner_id: str, loan_id: str) -> List[AmortizationEntry]:
        return generate_amortization_schedule(await self.get_loan(owner_id, loan_id))

    async def get_total_debt(self, owner_id: str, reporting_currency: str) -> Money:
        """Sum of outstanding balances in the reporting currency"""
        total = Decimal("0")
        for loan in await self.get_active_loans(owner_id):
            converted = await self.pipeline.convert(loan.current_balance, reporting_currency, entity_id=loan.id)
            total += converted.value.amount
        return Money(amount=total, currency=reporting_currency)

    async def get_total_monthly_payments(self, owner_id: str, reporting_currency: str) -> Money:
        aggregate = await self.pipeline.aggregate(
            owner_id, EntityKind.LOAN, await self.get_active_loans(owner_id), reporting_currency
        )
        return aggregate.total

    async def get_debt_to_income_ratio(self, owner_id: str, monthly_income: Money) -> float:
        """
        Monthly loan payments as a percentage of monthly income.

        Payments are converted to the income's currency. Returns 0 when
        income is zero or negative.
        """
        if monthly_income.amount <= 0:
            return 0.0

        payments = await self.get_total_monthly_payments(owner_id, monthly_income.currency)
        return float(payments.amount / monthly_income.amount * 100)

    def assess_debt_to_income(self, ratio: float, monthly_income: Money) -> DebtToIncomeAssessment:
        """
        Classify a debt-to-income ratio.

        - No income recorded: medium, ask for income
        - <= 20%: low
        - <= 36%: medium
        - Otherwise: high
        """
        if monthly_income.amount <= 0:
            return DebtToIncomeAssessment(
                ratio=0.0,
                risk_level=RiskLevel.MEDIUM,
                recommendation="Add your income information to get a complete debt-to-income analysis.",
            )
        if ratio <= 20:
            return DebtToIncomeAssessment(
                ratio=ratio,
                risk_level=RiskLevel.LOW,
                recommendation="Your debt-to-income ratio is excellent. You have good financial flexibility.",
            )
        if ratio <= 36:
            return DebtToIncomeAssessment(
                ratio=ratio,
                risk_level=RiskLevel.MEDIUM,
                recommendation=(
                    "Your debt-to-income ratio is manageable but could be improved. "
                    "Consider paying down high-interest debt first."
                ),
            )
        return DebtToIncomeAssessment(
            ratio=ratio,
            risk_level=RiskLevel.HIGH,
            recommendation=(
                "Your debt-to-income ratio is high. Focus on reducing debt and increasing income "
                "to improve your financial health."
            ),
        )

    async def get_debt_payoff_strategies(self, owner_id: str, reporting_currency: str) -> DebtPayoffStrategies:
        """
        Snowball (smallest balance first) and avalanche (highest rate first) orderings.

        Interest, debt, and payments are converted to the reporting currency
        before they are combined. Both strategies share one payoff estimate:
        ceil(total debt / total monthly payments).
        """
        loans = await self.get_active_loans(owner_id)

        total_interest = Decimal("0")
        for loan in loans:
            interest = loan.current_balance.with_amount(calculate_total_interest(loan))
            converted = await self.pipeline.convert(interest, reporting_currency, entity_id=loan.id)
            total_interest += converted.value.amount

        total_debt = await self.get_total_debt(owner_id, reporting_currency)
        total_payments = await self.get_total_monthly_payments(owner_id, reporting_currency)
        months = payoff_months(total_debt.amount, total_payments.amount)
        interest_money = Money(amount=total_interest, currency=reporting_currency)

        return DebtPayoffStrategies(
            snowball=PayoffStrategy(order=order_snowball(loans), total_interest=interest_money, payoff_months=months),
            avalanche=PayoffStrategy(order=order_avalanche(loans), total_interest=interest_money, payoff_months=months),
        )

    async def make_payment(self, owner_id: str, loan_id: str, amount: Decimal | int | str) -> Loan:
        """
        Apply a payment to a stored loan.

        Raises:
            NotFoundError: Loan does not exist for this owner
            ValidationError: Payment amount is not positive
        """
        loan = await self.get_loan(owner_id, loan_id)
        updated = apply_payment(loan, amount)
        logger.info(
            f"Payment of {amount} {loan.currency} applied to loan {loan_id}: "
            f"balance {loan.current_balance.amount} -> {updated.current_balance.amount}"
        )
        return await self.store.update(updated)

    async def get_upcoming_payments(self, owner_id: str, within_days: int = UPCOMING_PAYMENT_DAYS) -> List[Loan]:
        cutoff = self.today() + timedelta(days=within_days)
        return [loan for loan in await self.get_active_loans(owner_id) if loan.next_payment_date <= cutoff]

    async def get_currency_exposure(self, owner_id: str, reporting_currency: str) -> List[CurrencyExposure]:
        """
        Share of total debt per loan currency.

        Debt in the reporting currency is low risk; foreign debt above 50%
        of the total is high, above 25% medium.
        """
        loans = await self.get_active_loans(owner_id)
        if not loans:
            return []

        values: Dict[str, Decimal] = {}
        for loan in loans:
            converted = await self.pipeline.convert(loan.current_balance, reporting_currency, entity_id=loan.id)
            values[loan.currency] = values.get(loan.currency, Decimal("0")) + converted.value.amount

        total = sum(values.values(), Decimal("0"))
        exposures = []
        for currency, value in values.items():
            percentage = percentage_of(value, total)
            exposures.append(
                CurrencyExposure(
                    currency=currency,
                    total_value=Money(amount=value, currency=reporting_currency),
                    percentage=percentage,
                    risk_level=assess_foreign_share_risk(
                        currency,
                        percentage,
                        reporting_currency,
                        self.thresholds.loan_foreign_high,
                        self.thresholds.loan_foreign_medium,
                    ),
                )
            )
        return sorted(exposures, key=lambda e: e.percentage, reverse=True)

    async def get_multi_currency_projections(
        self,
        owner_id: str,
        reporting_currency: str,
        start: date | None = None,
        months: int = PROJECTION_MONTHS,
    ) -> List[LoanProjection]:
        """
        Scheduled debt and payments for each of the next `months` months.

        Debt per month is the remaining balance after that month's scheduled
        payment (the current balance before the first payment month).
        Exchange rate impact is the converted debt minus the plain sum of
        native balances.
        """
        loans = await self.get_active_loans(owner_id)
        schedules = {loan.id: generate_amortization_schedule(loan) for loan in loans}
        rates: Dict[str, Decimal] = {}
        for loan in loans:
            if loan.currency not in rates:
                converted = await self.pipeline.convert(loan.current_balance.with_amount(1), reporting_currency)
                rates[loan.currency] = converted.value.amount

        projections = []
        for month_start in month_starts(start or self.today(), months):
            debt = Decimal("0")
            payment = Decimal("0")
            breakdown: Dict[str, Decimal] = {}

            for loan in loans:
                remaining = loan.current_balance.amount
                paid = Decimal("0")
                for entry in schedules[loan.id]:
                    entry_month = first_of_month(entry.payment_date)
                    if entry_month > month_start:
                        break
                    remaining = entry.remaining_balance
                    if entry_month == month_start:
                        paid += entry.principal_payment + entry.interest_payment

                breakdown[loan.currency] = breakdown.get(loan.currency, Decimal("0")) + remaining
                debt += remaining * rates[loan.currency]
                payment += paid * rates[loan.currency]

            projections.append(
                LoanProjection(
                    month=month_start,
                    total_debt=Money(amount=debt, currency=reporting_currency),
                    total_payment=Money(amount=payment, currency=reporting_currency),
                    currency_breakdown=breakdown,
                    exchange_rate_impact=debt - sum(breakdown.values(), Decimal("0")),
                )
            )

        return projections

    async def get_optimization_recommendations(self, owner_id: str, reporting_currency: str) -> LoanOptimization:
        """
        Refinancing candidates, currency-risk advice, and a recommended payoff strategy.

        Strategy is currency_focused while any foreign debt exposure is high
        risk; otherwise whichever of avalanche or snowball costs less interest.
        """
        loans = await self.get_active_loans(owner_id)
        exposures = await self.get_currency_exposure(owner_id, reporting_currency)
        strategies = await self.get_debt_payoff_strategies(owner_id, reporting_currency)

        high_risk_currencies = {e.currency for e in exposures if e.risk_level == RiskLevel.HIGH}
        high_risk_loans = [loan for loan in loans if loan.currency in high_risk_currencies]

        recommendations = []
        if high_risk_loans:
            recommendations.append(
                f"You have {len(high_risk_loans)} high-risk foreign currency loans. "
                "Consider refinancing them in your primary currency or hedging the exposure."
            )
        if len({loan.currency for loan in loans}) > 1:
            recommendations.append("Monitor exchange rates, as they change the real cost of your foreign currency debt.")

        refinancing = [loan for loan in loans if loan.interest_rate > REFINANCE_RATE_THRESHOLD]

        snowball_interest = strategies.snowball.total_interest.amount
        avalanche_interest = strategies.avalanche.total_interest.amount
        if high_risk_loans:
            strategy = "currency_focused"
        elif avalanche_interest <= snowball_interest:
            strategy = "avalanche"
        else:
            strategy = "snowball"

        return LoanOptimization(
            high_risk_loans=high_risk_loans,
            currency_recommendations=recommendations,
            refinancing_opportunities=refinancing,
            strategy=strategy,
            estimated_savings=Money(amount=abs(snowball_interest - avalanche_interest), currency=reporting_currency),
        )

    @staticmethod
    def detect_currency_from_lender(lender_name: str) -> str:
        """Guess a loan's currency from lender name keywords, e.g. "Barclays UK" -> GBP; USD otherwise"""
        tokens = set(re.findall(r"[a-z]+", (lender_name or "").lower()))
        for keywords, currency in LENDER_KEYWORDS:
            if tokens & keywords:
                return currency
        return "USD"
