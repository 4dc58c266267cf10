"""Loan amortization and debt payoff ordering"""

import logging
import math
from dataclasses import replace
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Sequence

from finpulse.domain.exceptions import ValidationError
from finpulse.domain.models import AmortizationEntry, Loan, to_decimal
from finpulse.utils.date_utils import add_months

logger = logging.getLogger(__name__)

MAX_SCHEDULE_MONTHS = 720  # 60 years
DEFAULT_TERM_MONTHS = 360  # used when a loan carries no term
PAID_OFF_THRESHOLD = Decimal("0.01")
CENTS = Decimal("0.01")


def _round_cents(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def monthly_rate(loan: Loan) -> Decimal:
    return loan.interest_rate / Decimal("100") / Decimal("12")


def generate_amortization_schedule(loan: Loan | None) -> List[AmortizationEntry]:
    """
    Generate the payment-by-payment schedule for a loan's remaining balance.

    Requirements:
    - Empty schedule for a missing loan, a non-positive balance, or a non-positive payment
    - First entry falls on next_payment_date, then one calendar month per entry
    - Remaining balance rounded to cents after every payment and never negative
    - Stops when the balance is within a cent of zero, or after min(term_months or 360, 720) entries
    - Stops early (without error) when the payment no longer covers the interest

    Example:
        20000 at 5.5% paying 478.66 -> first entry 91.67 interest, 386.99 principal
    """
    if loan is None:
        return []

    balance = loan.current_balance.amount
    payment = loan.monthly_payment.amount
    if balance <= 0 or payment <= 0:
        return []

    rate = monthly_rate(loan)
    max_payments = min(loan.term_months or DEFAULT_TERM_MONTHS, MAX_SCHEDULE_MONTHS)

    schedule = []
    payment_number = 1
    while balance > PAID_OFF_THRESHOLD and payment_number <= max_payments:
        interest_payment = balance * rate
        principal_payment = min(payment - interest_payment, balance)

        # Payment does not cover interest: the loan never amortizes
        if principal_payment <= 0:
            logger.warning(
                f"Loan {loan.id} payment {payment} does not cover interest {_round_cents(interest_payment)}; "
                f"schedule stops after {len(schedule)} payments"
            )
            break

        balance = max(Decimal("0"), _round_cents(balance - principal_payment))

        schedule.append(
            AmortizationEntry(
                payment_number=payment_number,
                payment_date=add_months(loan.next_payment_date, payment_number - 1),
                principal_payment=_round_cents(principal_payment),
                interest_payment=_round_cents(interest_payment),
                remaining_balance=balance,
            )
        )
        payment_number += 1

    return schedule


def calculate_total_interest(loan: Loan | None) -> Decimal:
    """Sum of scheduled interest; 0 for a missing or paid-off loan"""
    return sum(
        (entry.interest_payment for entry in generate_amortization_schedule(loan)),
        Decimal("0"),
    )


def calculate_payoff_date(loan: Loan | None, today: date | None = None) -> date:
    """Date of the final scheduled payment, or today when nothing is scheduled"""
    schedule = generate_amortization_schedule(loan)
    if schedule:
        return schedule[-1].payment_date
    return today or date.today()


def order_snowball(loans: Sequence[Loan]) -> List[Loan]:
    """Smallest balance first"""
    return sorted(loans, key=lambda loan: loan.current_balance.amount)


def order_avalanche(loans: Sequence[Loan]) -> List[Loan]:
    """Highest interest rate first"""
    return sorted(loans, key=lambda loan: loan.interest_rate, reverse=True)


def payoff_months(total_debt: Decimal, total_monthly_payments: Decimal) -> int:
    """Months to clear total_debt at the combined payment; 0 without debt or payments"""
    if total_debt <= 0 or total_monthly_payments <= 0:
        return 0
    return math.ceil(total_debt / total_monthly_payments)


def apply_payment(loan: Loan, amount: Decimal | int | str) -> Loan:
    """
    Apply a payment and advance the due date by one calendar month.

    The balance floors at 0; an overpayment never produces a negative balance.

    Raises:
        ValidationError: Payment amount is not positive
    """
    payment = to_decimal(amount)
    if payment <= 0:
        raise ValidationError(f"Payment amount must be positive, got {payment}")

    new_balance = max(Decimal("0"), loan.current_balance.amount - payment)

    return replace(
        loan,
        current_balance=loan.current_balance.with_amount(new_balance),
        next_payment_date=add_months(loan.next_payment_date, 1),
    )
