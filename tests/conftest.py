"""Pytest fixtures for testing"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Dict, Generator, Tuple

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from finpulse.domain.exceptions import RateUnavailableError
from finpulse.domain.models import Expense, Income, Investment, Loan, Money, Quoted, Unquoted
from finpulse.domain.ports import ProviderRate
from finpulse.infrastructure.database.models import Base
from finpulse.services.aggregation import AggregationPipeline
from finpulse.services.currency_converter import CurrencyConverter

OWNER_ID = "user_1"

# Test database
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class StaticRateProvider:
    """Rate provider answering from a fixed table and counting calls"""

    def __init__(self, rates: Dict[Tuple[str, str], str | float]):
        self.rates = {pair: Decimal(str(rate)) for pair, rate in rates.items()}
        self.calls = 0

    async def fetch_rate(self, from_currency: str, to_currency: str) -> ProviderRate:
        self.calls += 1
        rate = self.rates.get((from_currency, to_currency))
        if rate is None:
            raise RateUnavailableError(f"No rate for {from_currency}/{to_currency}")
        return ProviderRate(rate=rate, timestamp=datetime.now(timezone.utc))


class FakeClock:
    """Controllable UTC clock for cache TTL tests"""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def rates() -> Dict[Tuple[str, str], str]:
    """Live rates used across multi-currency scenarios"""
    return {
        ("GBP", "USD"): "1.25",
        ("EUR", "USD"): "1.1",
        ("USD", "EUR"): "0.91",
        ("USD", "GBP"): "0.8",
    }


@pytest.fixture
def rate_provider(rates) -> StaticRateProvider:
    return StaticRateProvider(rates)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def converter(rate_provider: StaticRateProvider, clock: FakeClock) -> CurrencyConverter:
    return CurrencyConverter(provider=rate_provider, retry_delay_seconds=0, clock=clock)


@pytest.fixture
def pipeline(converter: CurrencyConverter) -> AggregationPipeline:
    return AggregationPipeline(converter)


@pytest.fixture
def make_loan() -> Callable[..., Loan]:
    def _make_loan(
        loan_id: str = "loan_1",
        balance: str | int = 20000,
        currency: str = "USD",
        interest_rate: str | int = "5.5",
        monthly_payment: str | int = "478.66",
        term_months: int = 60,
        principal: str | int | None = None,
        next_payment_date: date = date(2024, 2, 1),
        loan_type: str = "personal",
        owner_id: str = OWNER_ID,
    ) -> Loan:
        return Loan(
            id=loan_id,
            owner_id=owner_id,
            type=loan_type,
            principal=Money(amount=principal if principal is not None else balance, currency=currency),
            current_balance=Money(amount=balance, currency=currency),
            interest_rate=Decimal(str(interest_rate)),
            term_months=term_months,
            monthly_payment=Money(amount=monthly_payment, currency=currency),
            start_date=date(2023, 1, 1),
            next_payment_date=next_payment_date,
            name=f"Test {loan_type} loan",
        )

    return _make_loan


@pytest.fixture
def make_income() -> Callable[..., Income]:
    def _make_income(
        income_id: str,
        amount: str | int,
        currency: str = "USD",
        frequency: str = "monthly",
        income_type: str = "salary",
        start_date: date = date(2023, 1, 1),
        end_date: date | None = None,
        is_active: bool = True,
    ) -> Income:
        return Income(
            id=income_id,
            owner_id=OWNER_ID,
            type=income_type,
            amount=Money(amount=amount, currency=currency),
            frequency=frequency,
            start_date=start_date,
            end_date=end_date,
            is_active=is_active,
        )

    return _make_income


@pytest.fixture
def make_expense() -> Callable[..., Expense]:
    def _make_expense(
        expense_id: str,
        amount: str | int,
        category: str = "other",
        currency: str = "USD",
        frequency: str = "monthly",
        is_fixed: bool = False,
        start_date: date = date(2023, 1, 1),
        end_date: date | None = None,
    ) -> Expense:
        return Expense(
            id=expense_id,
            owner_id=OWNER_ID,
            category=category,
            amount=Money(amount=amount, currency=currency),
            frequency=frequency,
            start_date=start_date,
            end_date=end_date,
            is_fixed=is_fixed,
        )

    return _make_expense


@pytest.fixture
def make_investment() -> Callable[..., Investment]:
    def _make_investment(
        investment_id: str,
        investment_type: str,
        quantity: str | int,
        purchase_price: str | int,
        current_price: str | int | None = None,
        currency: str = "USD",
        symbol: str | None = None,
    ) -> Investment:
        return Investment(
            id=investment_id,
            owner_id=OWNER_ID,
            type=investment_type,
            quantity=Decimal(str(quantity)),
            purchase_price=Money(amount=purchase_price, currency=currency),
            current_price=(
                Quoted(price=Money(amount=current_price, currency=currency))
                if current_price is not None
                else Unquoted()
            ),
            symbol=symbol,
        )

    return _make_investment


@pytest.fixture
def mixed_portfolio(make_investment) -> list[Investment]:
    """Stock, bond and crypto holdings, all in USD"""
    return [
        make_investment("aapl", "stocks", 10, 150, current_price=175, symbol="AAPL"),
        make_investment("bond", "bonds", 100, 100, current_price=102),
        make_investment("btc", "crypto", "0.5", 40000, current_price=45000, symbol="BTC"),
    ]
