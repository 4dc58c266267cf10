"""Interfaces for the collaborators the domain depends on"""

import operator
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Protocol, Sequence, TypeVar

from finpulse.domain.models import Money, UserPreferences

T = TypeVar("T")

_OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "in": lambda value, options: value in options,
}


@dataclass(frozen=True)
class FieldFilter:
    """Predicate on a single entity attribute, e.g. FieldFilter("is_active", "==", True)"""

    field: str
    operator: str
    value: Any

    def __post_init__(self) -> None:
        if self.operator not in _OPERATORS:
            raise ValueError(f"Unsupported filter operator: {self.operator}")

    def matches(self, entity: Any) -> bool:
        return _OPERATORS[self.operator](getattr(entity, self.field, None), self.value)


@dataclass(frozen=True)
class ProviderRate:
    """Rate as reported by an external provider"""

    rate: Decimal
    timestamp: datetime


class EntityStore(Protocol[T]):
    """Per-user collection of entities"""

    async def get_all(self, owner_id: str) -> List[T]: ...

    async def get_filtered(self, owner_id: str, predicates: Sequence[FieldFilter]) -> List[T]: ...

    async def get_by_id(self, owner_id: str, entity_id: str) -> T | None: ...

    async def create(self, entity: T) -> T: ...

    async def update(self, entity: T) -> T: ...

    async def delete(self, owner_id: str, entity_id: str) -> None: ...


class ExchangeRateProvider(Protocol):
    """
    Live exchange rate source.

    Raises:
        RateProviderError: HTTP failure, rate limit, or malformed response
        RateUnavailableError: No data for the requested pair
    """

    async def fetch_rate(self, from_currency: str, to_currency: str) -> ProviderRate: ...


class HistoricalRateProvider(Protocol):
    """
    Daily closing rates for a currency pair, keyed by day.

    Raises:
        RateProviderError: HTTP failure, rate limit, or malformed response
        RateUnavailableError: No data for the requested pair
    """

    async def fetch_daily_rates(self, from_currency: str, to_currency: str) -> Dict[date, Decimal]: ...


class UserPreferencesProvider(Protocol):
    async def get_preferences(self, user_id: str) -> UserPreferences: ...


class QuoteProvider(Protocol):
    """Market quote source; returns None when the symbol has no quote"""

    async def fetch_quote(self, symbol: str) -> Money | None: ...
