"""Multi-currency reduction of financial entities into reporting-currency totals"""

import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Sequence

from finpulse.domain.currency_risk import percentage_of
from finpulse.domain.exceptions import ValidationError
from finpulse.domain.flows import (
    EntityKind,
    category_of,
    is_active_for_month,
    is_included,
    native_amount,
)
from finpulse.domain.models import CategoryBreakdown, Converted, Money, MonthlyProjection, RateSource
from finpulse.infrastructure.observability.logging import log_aggregation
from finpulse.infrastructure.observability.metrics import record_aggregation
from finpulse.services.currency_converter import CurrencyConverter
from finpulse.utils.date_utils import month_starts

logger = logging.getLogger(__name__)

PROJECTION_MONTHS = 12


@dataclass
class Aggregate:
    """Reporting-currency reduction of one entity collection"""

    total: Money
    by_category: Dict[str, Decimal] = field(default_factory=dict)
    by_currency: Dict[str, Decimal] = field(default_factory=dict)  # native currency -> reporting amount
    native_by_currency: Dict[str, Decimal] = field(default_factory=dict)  # native currency -> native amount
    sources: Dict[RateSource, int] = field(default_factory=dict)
    entity_count: int = 0
    degraded_count: int = 0


class AggregationPipeline:
    """
    Reduces income, expense, loan and investment collections to a single
    reporting currency.

    Entities are converted one at a time through the shared converter. A
    conversion that fails for one entity falls back to that entity's
    unconverted amount; the aggregate always completes.
    """

    def __init__(self, converter: CurrencyConverter):
        self.converter = converter

    async def convert(self, amount: Money, reporting_currency: str, entity_id: str = "") -> Converted:
        """Convert one amount, substituting the native amount when conversion is impossible"""
        try:
            return await self.converter.convert_amount(amount.amount, amount.currency, reporting_currency)
        except ValidationError as e:
            logger.warning(
                f"Failed to convert {amount.currency} to {reporting_currency} for entity {entity_id}: {e}; "
                "using unconverted amount"
            )
            return Converted(
                value=Money(amount=amount.amount, currency=reporting_currency),
                original=amount,
                rate=Decimal("1"),
                source=RateSource.UNCONVERTED,
            )

    async def aggregate(
        self,
        owner_id: str,
        kind: EntityKind,
        entities: Sequence[Any],
        reporting_currency: str,
    ) -> Aggregate:
        """
        Reduce the current month's contribution of every included entity.

        Flow:
        1. Keep entities that count toward current totals (active income, outstanding loans)
        2. Take each entity's monthly-equivalent amount in its native currency
        3. Convert to the reporting currency, or fall back to the native amount
        4. Accumulate the total, category, and currency maps
        """
        start_time = time.time()
        reporting = CurrencyConverter.normalize(reporting_currency)
        result = Aggregate(total=Money(amount=Decimal("0"), currency=reporting))
        sources: Counter = Counter()
        total = Decimal("0")

        for entity in entities:
            if not is_included(kind, entity):
                continue

            native = native_amount(kind, entity)
            converted = await self.convert(native, reporting, entity_id=entity.id)
            amount = converted.value.amount

            total += amount
            category = category_of(kind, entity)
            result.by_category[category] = result.by_category.get(category, Decimal("0")) + amount
            result.by_currency[native.currency] = result.by_currency.get(native.currency, Decimal("0")) + amount
            result.native_by_currency[native.currency] = (
                result.native_by_currency.get(native.currency, Decimal("0")) + native.amount
            )
            sources[converted.source] += 1
            result.entity_count += 1
            if converted.degraded:
                result.degraded_count += 1

        result.total = Money(amount=total, currency=reporting)
        result.sources = dict(sources)

        duration_ms = (time.time() - start_time) * 1000
        record_aggregation(kind.value, sources[RateSource.UNCONVERTED])
        log_aggregation(owner_id, kind.value, reporting, result.entity_count, result.degraded_count, duration_ms)

        return result

    @staticmethod
    def breakdown(aggregate: Aggregate) -> List[CategoryBreakdown]:
        """Category shares of the total, largest first; every share is 0 when the total is 0"""
        total = aggregate.total.amount
        items = [
            CategoryBreakdown(
                category=category,
                amount=aggregate.total.with_amount(amount),
                percentage=percentage_of(amount, total),
            )
            for category, amount in aggregate.by_category.items()
        ]
        return sorted(items, key=lambda item: item.amount.amount, reverse=True)

    async def project(
        self,
        owner_id: str,
        kind: EntityKind,
        entities: Sequence[Any],
        reporting_currency: str,
        start: date | None = None,
        months: int = PROJECTION_MONTHS,
    ) -> List[MonthlyProjection]:
        """
        Project monthly totals for `months` calendar months from start's month.

        Each entity's activity window is re-evaluated against the first day
        of every projected month; inactive entities contribute 0.
        """
        start_time = time.time()
        reporting = CurrencyConverter.normalize(reporting_currency)
        converted_by_entity: Dict[str, Converted] = {}
        degraded_ids = set()
        projections = []

        for month_start in month_starts(start or date.today(), months):
            total = Decimal("0")
            original_amounts: Dict[str, Decimal] = {}

            for entity in entities:
                if not is_active_for_month(kind, entity, month_start):
                    continue

                # Monthly amounts do not vary between projected months
                if entity.id not in converted_by_entity:
                    native = native_amount(kind, entity)
                    converted_by_entity[entity.id] = await self.convert(native, reporting, entity_id=entity.id)
                converted = converted_by_entity[entity.id]

                total += converted.value.amount
                original = converted.original
                original_amounts[original.currency] = original_amounts.get(original.currency, Decimal("0")) + original.amount
                if converted.degraded:
                    degraded_ids.add(entity.id)

            projections.append(
                MonthlyProjection(
                    month=month_start,
                    amount=Money(amount=total, currency=reporting),
                    original_amounts=original_amounts,
                )
            )

        unconverted = sum(1 for c in converted_by_entity.values() if c.source == RateSource.UNCONVERTED)
        duration_ms = (time.time() - start_time) * 1000
        record_aggregation(kind.value, unconverted)
        log_aggregation(owner_id, kind.value, reporting, len(converted_by_entity), len(degraded_ids), duration_ms)

        return projections
