"""Currency exposure classification and risk scoring"""

from decimal import Decimal
from typing import List, Mapping

from finpulse.domain.currencies import currency_base_risk
from finpulse.domain.models import (
    CurrencyExposure,
    CurrencyVolatility,
    HedgingOpportunity,
    Money,
    RiskLevel,
    RiskThresholds,
)

HEDGING_INSTRUMENTS = [
    "Currency Forward Contracts",
    "Currency Options",
    "Currency ETFs",
    "Multi-Currency Bonds",
]


def percentage_of(amount: Decimal, total: Decimal) -> float:
    """Share of total in percent; 0 when total is not positive"""
    if total <= 0:
        return 0.0
    return float(amount / total * 100)


def assess_exposure_risk(
    currency: str,
    percentage: float,
    thresholds: RiskThresholds = RiskThresholds(),
) -> RiskLevel:
    """
    Combine the currency's base risk with a concentration penalty.

    - > concentration_high (50%): +20
    - > concentration_medium (30%): +10
    Total below 20 is low, below 40 medium, otherwise high.
    """
    if percentage > thresholds.concentration_high:
        concentration_risk = 20
    elif percentage > thresholds.concentration_medium:
        concentration_risk = 10
    else:
        concentration_risk = 0

    total_risk = currency_base_risk(currency) + concentration_risk
    if total_risk < 20:
        return RiskLevel.LOW
    if total_risk < 40:
        return RiskLevel.MEDIUM
    return RiskLevel.HIGH


def assess_foreign_share_risk(
    currency: str,
    percentage: float,
    reporting_currency: str,
    high: float,
    medium: float,
) -> RiskLevel:
    """Risk of a foreign-denominated share of income or debt; home currency is always low"""
    if currency == reporting_currency:
        return RiskLevel.LOW
    if percentage > high:
        return RiskLevel.HIGH
    if percentage > medium:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def build_exposures(
    values_by_currency: Mapping[str, Decimal],
    reporting_currency: str,
    thresholds: RiskThresholds = RiskThresholds(),
) -> List[CurrencyExposure]:
    """Turn per-currency values (already in reporting currency) into sorted exposures"""
    total = sum(values_by_currency.values(), Decimal("0"))

    exposures = []
    for currency, value in values_by_currency.items():
        percentage = percentage_of(value, total)
        exposures.append(
            CurrencyExposure(
                currency=currency,
                total_value=Money(amount=value, currency=reporting_currency),
                percentage=percentage,
                risk_level=assess_exposure_risk(currency, percentage, thresholds),
            )
        )

    return sorted(exposures, key=lambda e: e.percentage, reverse=True)


def calculate_risk_score(
    exposures: List[CurrencyExposure],
    thresholds: RiskThresholds = RiskThresholds(),
) -> float:
    """
    Score currency risk from 0 (diversified, stable) to 100.

    - Concentration: 2 points per percent above concentration_high in any currency
    - Volatility: each currency's base risk weighted by its share
    """
    score = 0.0
    for exposure in exposures:
        if exposure.percentage > thresholds.concentration_high:
            score += (exposure.percentage - thresholds.concentration_high) * 2
        score += (exposure.percentage / 100) * currency_base_risk(exposure.currency)

    return min(100.0, max(0.0, score))


def generate_recommendations(
    exposures: List[CurrencyExposure],
    thresholds: RiskThresholds = RiskThresholds(),
) -> List[str]:
    recommendations = []

    dominant = next((e for e in exposures if e.percentage > thresholds.dominant_exposure_alert), None)
    if dominant:
        recommendations.append(
            f"Consider reducing {dominant.currency} exposure (currently {dominant.percentage:.1f}%) "
            "by diversifying into other currencies."
        )

    if len(exposures) < thresholds.min_currency_count:
        recommendations.append("Consider diversifying across more currencies to reduce concentration risk.")

    risky = [
        e for e in exposures
        if e.risk_level == RiskLevel.HIGH and e.percentage > thresholds.high_risk_exposure_alert
    ]
    if risky:
        recommendations.append(
            "Consider hedging or reducing exposure to high-risk currencies: "
            f"{', '.join(e.currency for e in risky)}."
        )

    return recommendations


def generate_hedging_opportunities(
    exposures: List[CurrencyExposure],
    thresholds: RiskThresholds = RiskThresholds(),
) -> List[HedgingOpportunity]:
    hedge_ratio = Decimal(str(thresholds.hedge_ratio))
    return [
        HedgingOpportunity(
            currency=e.currency,
            current_exposure=e.total_value,
            recommended_hedge=e.total_value.with_amount(e.total_value.amount * hedge_ratio),
            instruments=list(HEDGING_INSTRUMENTS),
        )
        for e in exposures
        if e.percentage > thresholds.hedging_exposure_threshold
    ]


def generate_volatility_metrics(exposures: List[CurrencyExposure]) -> List[CurrencyVolatility]:
    """
    Volatility estimates derived from each currency's base risk.

    No historical series is consulted, so the trend is always "stable".
    """
    metrics = []
    for exposure in exposures:
        base = float(currency_base_risk(exposure.currency))
        metrics.append(
            CurrencyVolatility(
                currency=exposure.currency,
                volatility_30d=round(base * 0.5 + 2.5, 2),
                volatility_90d=round(base * 0.65 + 3.0, 2),
                volatility_1y=round(base * 0.8 + 4.0, 2),
                trend="stable",
            )
        )
    return metrics
