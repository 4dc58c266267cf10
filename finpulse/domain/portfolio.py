"""Portfolio diversification and risk classification"""

from decimal import Decimal
from typing import Mapping

from finpulse.domain.currency_risk import percentage_of
from finpulse.domain.models import RiskLevel, RiskThresholds

INVESTMENT_TYPES = (
    "stocks",
    "bonds",
    "mutual_funds",
    "etf",
    "options",
    "real_estate",
    "crypto",
    "other",
)


def diversification_score(type_values: Mapping[str, Decimal]) -> float:
    """
    Score how many investment categories hold value, 0-100.

    Example:
        stocks, bonds and crypto held -> 3 / 8 -> 37.5
    """
    non_zero_types = sum(1 for value in type_values.values() if value > 0)
    return min(non_zero_types / len(INVESTMENT_TYPES), 1.0) * 100


def classify_portfolio_risk(
    type_values: Mapping[str, Decimal],
    total_value: Decimal,
    thresholds: RiskThresholds = RiskThresholds(),
) -> RiskLevel:
    """
    Classify portfolio risk from crypto and stock concentration.

    - High: crypto > 20% or stocks > 80%
    - Medium: crypto > 5% or stocks > 50%
    - Low: otherwise
    """
    crypto_share = percentage_of(type_values.get("crypto", Decimal("0")), total_value)
    stocks_share = percentage_of(type_values.get("stocks", Decimal("0")), total_value)

    if crypto_share > thresholds.crypto_high_share or stocks_share > thresholds.stocks_high_share:
        return RiskLevel.HIGH
    if crypto_share > thresholds.crypto_medium_share or stocks_share > thresholds.stocks_medium_share:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW
