"""Per-entity-kind rules for turning financial entities into monthly flows"""

import logging
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Tuple

from finpulse.domain.amortization import calculate_payoff_date
from finpulse.domain.models import Expense, Income, Investment, Loan, Money
from finpulse.utils.date_utils import first_of_month

logger = logging.getLogger(__name__)


class EntityKind(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"
    LOAN = "loan"
    INVESTMENT = "investment"


# (numerator, denominator) so quarterly/annual amounts divide exactly
MONTHLY_FACTORS: Dict[str, Tuple[Decimal, Decimal]] = {
    "daily": (Decimal("30.44"), Decimal("1")),  # average days per month
    "weekly": (Decimal("52"), Decimal("12")),
    "bi-weekly": (Decimal("2.17"), Decimal("1")),
    "monthly": (Decimal("1"), Decimal("1")),
    "quarterly": (Decimal("1"), Decimal("3")),
    "annually": (Decimal("1"), Decimal("12")),
}


def convert_to_monthly(amount: Decimal, frequency: str) -> Decimal:
    """
    Monthly-equivalent of a recurring amount.

    Unknown frequencies contribute 0 for every entity kind and are logged.
    """
    factors = MONTHLY_FACTORS.get((frequency or "").strip().lower())
    if factors is None:
        logger.warning(f"Unknown frequency {frequency!r}; amount {amount} counted as 0 per month")
        return Decimal("0")

    numerator, denominator = factors
    return amount * numerator / denominator


def is_included(kind: EntityKind, entity: Any) -> bool:
    """Whether an entity takes part in current-month totals"""
    if kind == EntityKind.INCOME:
        return entity.is_active
    if kind == EntityKind.LOAN:
        return entity.current_balance.amount > 0
    return True


def native_amount(kind: EntityKind, entity: Any) -> Money:
    """
    The entity's contribution in its own currency.

    Income and expenses contribute their monthly equivalent, loans their
    monthly payment, investments their current value.
    """
    if kind in (EntityKind.INCOME, EntityKind.EXPENSE):
        return entity.amount.with_amount(convert_to_monthly(entity.amount.amount, entity.frequency))
    if kind == EntityKind.LOAN:
        return entity.monthly_payment
    if kind == EntityKind.INVESTMENT:
        return entity.current_value
    raise ValueError(f"Unknown entity kind: {kind}")


def category_of(kind: EntityKind, entity: Any) -> str:
    if kind == EntityKind.EXPENSE:
        return entity.category
    return entity.type


def is_active_for_month(kind: EntityKind, entity: Any, month_start: date) -> bool:
    """
    Whether an entity contributes to the month beginning at month_start.

    - Income: start <= month_start <= end (open-ended when end is None) and active
    - Expense: same window, no active flag
    - Loan: outstanding and month_start between the next payment month and the payoff month
    - Investment: held by month_start (undated holdings always count)
    """
    if kind == EntityKind.INCOME:
        income: Income = entity
        return income.is_active and _in_window(income.start_date, income.end_date, month_start)

    if kind == EntityKind.EXPENSE:
        expense: Expense = entity
        return _in_window(expense.start_date, expense.end_date, month_start)

    if kind == EntityKind.LOAN:
        loan: Loan = entity
        if loan.current_balance.amount <= 0:
            return False
        first_due = first_of_month(loan.next_payment_date)
        last_due = first_of_month(calculate_payoff_date(loan, today=loan.next_payment_date))
        return first_due <= month_start <= last_due

    if kind == EntityKind.INVESTMENT:
        investment: Investment = entity
        return investment.purchase_date is None or investment.purchase_date <= month_start

    raise ValueError(f"Unknown entity kind: {kind}")


def _in_window(start: date, end: date | None, month_start: date) -> bool:
    return start <= month_start and (end is None or end >= month_start)
