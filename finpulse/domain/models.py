"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Dict, List, Union

from finpulse.domain.currencies import normalize_currency_code
from finpulse.domain.exceptions import ValidationError


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """Coerce a numeric input to a finite Decimal"""
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError) as e:
            raise ValidationError(f"Invalid numeric value: {value!r}") from e

    if not result.is_finite():
        raise ValidationError(f"Amount must be finite, got {value!r}")
    return result


class RateSource(str, Enum):
    """Where an exchange rate came from"""

    INTERNAL = "internal"
    CACHE = "cache"
    API = "api"
    STALE_CACHE = "stale-cache"
    FALLBACK = "fallback"
    MOCK = "mock"
    UNCONVERTED = "unconverted"  # conversion failed, native amount used as-is
    HISTORICAL = "historical-api"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class Money:
    """Amount in a single currency"""

    amount: Decimal
    currency: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount))
        object.__setattr__(self, "currency", normalize_currency_code(self.currency))

    def with_amount(self, amount: Decimal | int | str) -> "Money":
        return Money(amount=amount, currency=self.currency)


@dataclass(frozen=True)
class ExchangeRate:
    """Rate quoted as 1 from_currency = rate to_currency"""

    from_currency: str
    to_currency: str
    rate: Decimal
    timestamp: datetime
    source: RateSource


@dataclass(frozen=True)
class HistoricalRate:
    """Closing rate for one calendar day"""

    from_currency: str
    to_currency: str
    rate: Decimal
    day: date
    source: RateSource


@dataclass(frozen=True)
class Converted:
    """Outcome of a conversion, including which rate path produced it"""

    value: Money
    original: Money
    rate: Decimal
    source: RateSource

    @property
    def degraded(self) -> bool:
        return self.source in (
            RateSource.STALE_CACHE,
            RateSource.FALLBACK,
            RateSource.MOCK,
            RateSource.UNCONVERTED,
        )


@dataclass(frozen=True)
class Quoted:
    """Investment with a market quote"""

    price: Money

    def effective(self, fallback: Money) -> Money:
        return self.price


@dataclass(frozen=True)
class Unquoted:
    """Investment without a market quote; valued at purchase price"""

    def effective(self, fallback: Money) -> Money:
        return fallback


PricePoint = Union[Quoted, Unquoted]


@dataclass
class Loan:
    """Outstanding loan owned by a single user"""

    id: str
    owner_id: str
    type: str  # home | car | personal | other
    principal: Money
    current_balance: Money
    interest_rate: Decimal  # annual percent
    term_months: int
    monthly_payment: Money
    start_date: date
    next_payment_date: date
    name: str = ""

    def __post_init__(self) -> None:
        self.interest_rate = to_decimal(self.interest_rate)
        if self.interest_rate < 0:
            raise ValidationError("Interest rate cannot be negative")
        if self.term_months < 0:
            raise ValidationError("Term cannot be negative")
        if self.principal.amount < 0 or self.current_balance.amount < 0:
            raise ValidationError("Principal and balance cannot be negative")
        currencies = {self.principal.currency, self.current_balance.currency, self.monthly_payment.currency}
        if len(currencies) != 1:
            raise ValidationError(f"Loan {self.id} mixes currencies: {sorted(currencies)}")

    @property
    def currency(self) -> str:
        return self.current_balance.currency


@dataclass(frozen=True)
class AmortizationEntry:
    """Single payment period in an amortization schedule"""

    payment_number: int
    payment_date: date
    principal_payment: Decimal
    interest_payment: Decimal
    remaining_balance: Decimal


@dataclass
class Income:
    """Recurring income source"""

    id: str
    owner_id: str
    type: str  # salary | bonus | other
    amount: Money
    frequency: str
    start_date: date
    end_date: date | None = None
    is_active: bool = True
    source: str = ""


@dataclass
class Expense:
    """Recurring expense"""

    id: str
    owner_id: str
    category: str  # rent | groceries | utilities | entertainment | other
    amount: Money
    frequency: str
    start_date: date
    end_date: date | None = None
    is_fixed: bool = False
    name: str = ""


@dataclass
class Investment:
    """Holding of a single instrument"""

    id: str
    owner_id: str
    type: str  # one of INVESTMENT_TYPES
    quantity: Decimal
    purchase_price: Money
    current_price: PricePoint = field(default_factory=Unquoted)
    currency: str = ""  # native currency, defaults to purchase price currency
    name: str = ""
    symbol: str | None = None
    purchase_date: date | None = None

    def __post_init__(self) -> None:
        self.quantity = to_decimal(self.quantity)
        if self.quantity < 0:
            raise ValidationError("Quantity cannot be negative")
        self.currency = normalize_currency_code(self.currency or self.purchase_price.currency)

    @property
    def effective_price(self) -> Money:
        return self.current_price.effective(self.purchase_price)

    @property
    def current_value(self) -> Money:
        return Money(amount=self.effective_price.amount * self.quantity, currency=self.currency)

    @property
    def cost_basis(self) -> Money:
        return Money(
            amount=self.purchase_price.amount * self.quantity,
            currency=self.purchase_price.currency,
        )


@dataclass
class UserPreferences:
    """Per-user settings relevant to reporting"""

    primary_currency: str = "USD"
    risk_tolerance: str = "moderate"
    locale: str = "en-US"


@dataclass(frozen=True)
class RiskThresholds:
    """Tunable percentage thresholds used by risk classification"""

    crypto_high_share: float = 20.0
    crypto_medium_share: float = 5.0
    stocks_high_share: float = 80.0
    stocks_medium_share: float = 50.0
    concentration_high: float = 50.0
    concentration_medium: float = 30.0
    dominant_exposure_alert: float = 70.0
    high_risk_exposure_alert: float = 20.0
    min_currency_count: int = 3
    hedging_exposure_threshold: float = 25.0
    hedge_ratio: float = 0.5
    income_foreign_high: float = 50.0
    income_foreign_medium: float = 20.0
    loan_foreign_high: float = 50.0
    loan_foreign_medium: float = 25.0


@dataclass
class CurrencyExposure:
    """Share of total value denominated in one currency"""

    currency: str
    total_value: Money  # in reporting currency
    percentage: float
    risk_level: RiskLevel


@dataclass
class HedgingOpportunity:
    currency: str
    current_exposure: Money
    recommended_hedge: Money
    instruments: List[str]


@dataclass
class CurrencyVolatility:
    currency: str
    volatility_30d: float
    volatility_90d: float
    volatility_1y: float
    trend: str  # increasing | decreasing | stable


@dataclass
class CurrencyRiskAnalysis:
    """Output of currency risk analysis"""

    total_exposure: List[CurrencyExposure]
    risk_score: float
    recommendations: List[str]
    hedging_opportunities: List[HedgingOpportunity]
    volatility_metrics: List[CurrencyVolatility]


@dataclass
class PortfolioSummary:
    total_value: Money
    total_gain_loss: Money
    gain_loss_percentage: float
    diversification_score: float
    risk_level: RiskLevel
    currency_exposure: List[CurrencyExposure]


@dataclass
class PayoffStrategy:
    """Loan ordering with aggregate cost"""

    order: List[Loan]
    total_interest: Money
    payoff_months: int


@dataclass
class DebtPayoffStrategies:
    snowball: PayoffStrategy
    avalanche: PayoffStrategy


@dataclass
class CategoryBreakdown:
    category: str
    amount: Money
    percentage: float


@dataclass
class MonthlyProjection:
    """Projected total for one calendar month"""

    month: date  # first day of the month
    amount: Money
    original_amounts: Dict[str, Decimal] = field(default_factory=dict)  # native totals by currency

    @property
    def label(self) -> str:
        return self.month.strftime("%B %Y")

    @property
    def conversion_impact(self) -> Decimal:
        """Converted total minus the plain sum of native amounts"""
        return self.amount.amount - sum(self.original_amounts.values(), Decimal("0"))

    @property
    def conversion_impact_percentage(self) -> float:
        total_original = sum(self.original_amounts.values(), Decimal("0"))
        if total_original <= 0:
            return 0.0
        return float(self.conversion_impact / total_original * 100)
