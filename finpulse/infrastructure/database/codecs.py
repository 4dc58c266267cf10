"""Pydantic document schemas translating stored payloads to and from domain entities"""

from datetime import date
from decimal import Decimal
from typing import Any, Dict, Type, TypeVar

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator

from finpulse.domain.exceptions import ValidationError
from finpulse.domain.models import (
    Expense,
    Income,
    Investment,
    Loan,
    Money,
    Quoted,
    Unquoted,
    UserPreferences,
)

D = TypeVar("D", bound="EntityDocument")


class MoneyDocument(BaseModel):
    """Stored amount; must be finite and non-negative"""

    amount: Decimal = Field(ge=0, allow_inf_nan=False)
    currency: str = Field(min_length=1)

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, value: str) -> str:
        return value.strip().upper()

    def to_domain(self) -> Money:
        return Money(amount=self.amount, currency=self.currency)

    @classmethod
    def from_domain(cls, money: Money) -> "MoneyDocument":
        return cls(amount=money.amount, currency=money.currency)


class EntityDocument(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    owner_id: str

    def to_domain(self) -> Any:
        raise NotImplementedError

    @classmethod
    def from_domain(cls: Type[D], entity: Any) -> D:
        raise NotImplementedError


class LoanDocument(EntityDocument):
    type: str = "other"
    name: str = ""
    principal: MoneyDocument
    current_balance: MoneyDocument
    interest_rate: Decimal = Field(ge=0, allow_inf_nan=False)
    term_months: int = Field(ge=0)
    monthly_payment: MoneyDocument
    start_date: date
    next_payment_date: date

    def to_domain(self) -> Loan:
        return Loan(
            id=self.id,
            owner_id=self.owner_id,
            type=self.type,
            name=self.name,
            principal=self.principal.to_domain(),
            current_balance=self.current_balance.to_domain(),
            interest_rate=self.interest_rate,
            term_months=self.term_months,
            monthly_payment=self.monthly_payment.to_domain(),
            start_date=self.start_date,
            next_payment_date=self.next_payment_date,
        )

    @classmethod
    def from_domain(cls, loan: Loan) -> "LoanDocument":
        return cls(
            id=loan.id,
            owner_id=loan.owner_id,
            type=loan.type,
            name=loan.name,
            principal=MoneyDocument.from_domain(loan.principal),
            current_balance=MoneyDocument.from_domain(loan.current_balance),
            interest_rate=loan.interest_rate,
            term_months=loan.term_months,
            monthly_payment=MoneyDocument.from_domain(loan.monthly_payment),
            start_date=loan.start_date,
            next_payment_date=loan.next_payment_date,
        )


class IncomeDocument(EntityDocument):
    type: str = "other"
    amount: MoneyDocument
    frequency: str
    start_date: date
    end_date: date | None = None
    is_active: bool = True
    source: str = ""

    def to_domain(self) -> Income:
        return Income(
            id=self.id,
            owner_id=self.owner_id,
            type=self.type,
            amount=self.amount.to_domain(),
            frequency=self.frequency,
            start_date=self.start_date,
            end_date=self.end_date,
            is_active=self.is_active,
            source=self.source,
        )

    @classmethod
    def from_domain(cls, income: Income) -> "IncomeDocument":
        return cls(
            id=income.id,
            owner_id=income.owner_id,
            type=income.type,
            amount=MoneyDocument.from_domain(income.amount),
            frequency=income.frequency,
            start_date=income.start_date,
            end_date=income.end_date,
            is_active=income.is_active,
            source=income.source,
        )


class ExpenseDocument(EntityDocument):
    category: str = "other"
    name: str = ""
    amount: MoneyDocument
    frequency: str
    start_date: date
    end_date: date | None = None
    is_fixed: bool = False

    def to_domain(self) -> Expense:
        return Expense(
            id=self.id,
            owner_id=self.owner_id,
            category=self.category,
            name=self.name,
            amount=self.amount.to_domain(),
            frequency=self.frequency,
            start_date=self.start_date,
            end_date=self.end_date,
            is_fixed=self.is_fixed,
        )

    @classmethod
    def from_domain(cls, expense: Expense) -> "ExpenseDocument":
        return cls(
            id=expense.id,
            owner_id=expense.owner_id,
            category=expense.category,
            name=expense.name,
            amount=MoneyDocument.from_domain(expense.amount),
            frequency=expense.frequency,
            start_date=expense.start_date,
            end_date=expense.end_date,
            is_fixed=expense.is_fixed,
        )


class InvestmentDocument(EntityDocument):
    type: str = "other"
    name: str = ""
    symbol: str | None = None
    quantity: Decimal = Field(ge=0, allow_inf_nan=False)
    purchase_price: MoneyDocument
    current_price: MoneyDocument | None = None
    currency: str = ""
    purchase_date: date | None = None

    def to_domain(self) -> Investment:
        # A missing or zero stored price means no quote has been recorded
        if self.current_price is None or self.current_price.amount <= 0:
            current_price = Unquoted()
        else:
            current_price = Quoted(price=self.current_price.to_domain())

        return Investment(
            id=self.id,
            owner_id=self.owner_id,
            type=self.type,
            name=self.name,
            symbol=self.symbol,
            quantity=self.quantity,
            purchase_price=self.purchase_price.to_domain(),
            current_price=current_price,
            currency=self.currency,
            purchase_date=self.purchase_date,
        )

    @classmethod
    def from_domain(cls, investment: Investment) -> "InvestmentDocument":
        current_price = None
        if isinstance(investment.current_price, Quoted):
            current_price = MoneyDocument.from_domain(investment.current_price.price)

        return cls(
            id=investment.id,
            owner_id=investment.owner_id,
            type=investment.type,
            name=investment.name,
            symbol=investment.symbol,
            quantity=investment.quantity,
            purchase_price=MoneyDocument.from_domain(investment.purchase_price),
            current_price=current_price,
            currency=investment.currency,
            purchase_date=investment.purchase_date,
        )


class PreferencesDocument(BaseModel):
    model_config = ConfigDict(extra="ignore")

    primary_currency: str = "USD"
    risk_tolerance: str = "moderate"
    locale: str = "en-US"

    def to_domain(self) -> UserPreferences:
        return UserPreferences(
            primary_currency=self.primary_currency.strip().upper(),
            risk_tolerance=self.risk_tolerance,
            locale=self.locale,
        )

    @classmethod
    def from_domain(cls, preferences: UserPreferences) -> "PreferencesDocument":
        return cls(
            primary_currency=preferences.primary_currency,
            risk_tolerance=preferences.risk_tolerance,
            locale=preferences.locale,
        )


def decode(codec: Type[BaseModel], payload: Dict[str, Any]) -> Any:
    """
    Validate a stored payload and build the domain entity.

    Raises:
        ValidationError: Payload is malformed, non-finite, or negative where it must not be
    """
    try:
        return codec.model_validate(payload).to_domain()
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid {codec.__name__} payload: {e}") from e


def encode(codec: Type[BaseModel], entity: Any) -> Dict[str, Any]:
    try:
        return codec.from_domain(entity).model_dump(mode="json")
    except pydantic.ValidationError as e:
        raise ValidationError(f"Cannot store {type(entity).__name__}: {e}") from e
