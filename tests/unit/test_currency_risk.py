"""Unit tests for currency exposure and risk scoring"""

from decimal import Decimal

import pytest

from finpulse.domain.currency_risk import (
    assess_exposure_risk,
    assess_foreign_share_risk,
    build_exposures,
    calculate_risk_score,
    generate_hedging_opportunities,
    generate_recommendations,
    generate_volatility_metrics,
    percentage_of,
)
from finpulse.domain.models import RiskLevel, RiskThresholds


@pytest.fixture
def balanced_exposures():
    return build_exposures(
        {"EUR": Decimal("30"), "USD": Decimal("60"), "GBP": Decimal("10")},
        "USD",
    )


def test_exposures_sorted_by_share(balanced_exposures):
    assert [e.currency for e in balanced_exposures] == ["USD", "EUR", "GBP"]
    assert [e.percentage for e in balanced_exposures] == [60.0, 30.0, 10.0]
    assert all(e.total_value.currency == "USD" for e in balanced_exposures)


def test_exposure_risk_levels(balanced_exposures):
    """Test base risk plus concentration penalty"""
    levels = {e.currency: e.risk_level for e in balanced_exposures}

    assert levels["USD"] == RiskLevel.MEDIUM  # 10 + 20 concentration
    assert levels["EUR"] == RiskLevel.LOW  # 15, exactly 30% carries no penalty
    assert levels["GBP"] == RiskLevel.MEDIUM  # 20


@pytest.mark.parametrize(
    "currency,percentage,expected",
    [
        ("CHF", 100.0, RiskLevel.MEDIUM),
        ("CHF", 10.0, RiskLevel.LOW),
        ("AUD", 40.0, RiskLevel.MEDIUM),
        ("AUD", 51.0, RiskLevel.HIGH),
        ("INR", 5.0, RiskLevel.MEDIUM),
        ("INR", 31.0, RiskLevel.HIGH),
    ],
)
def test_assess_exposure_risk(currency, percentage, expected):
    assert assess_exposure_risk(currency, percentage) == expected


def test_risk_score(balanced_exposures):
    # (60 - 50) * 2 + 0.6 * 10 + 0.3 * 15 + 0.1 * 20
    assert calculate_risk_score(balanced_exposures) == pytest.approx(32.5)


def test_risk_score_is_capped():
    exposures = build_exposures({"ZAR": Decimal("100")}, "USD")
    assert calculate_risk_score(exposures) == 100.0


def test_empty_exposures():
    assert build_exposures({}, "USD") == []
    assert calculate_risk_score([]) == 0.0
    assert generate_volatility_metrics([]) == []


def test_zero_total_gives_zero_percentages():
    exposures = build_exposures({"USD": Decimal("0"), "EUR": Decimal("0")}, "USD")
    assert [e.percentage for e in exposures] == [0.0, 0.0]


def test_no_recommendations_for_diversified_exposure(balanced_exposures):
    assert generate_recommendations(balanced_exposures) == []


def test_single_currency_recommendations():
    exposures = build_exposures({"USD": Decimal("1000")}, "USD")
    recommendations = generate_recommendations(exposures)

    assert len(recommendations) == 2
    assert "reducing USD exposure (currently 100.0%)" in recommendations[0]
    assert "more currencies" in recommendations[1]


def test_high_risk_currency_recommendation():
    exposures = build_exposures(
        {"AUD": Decimal("60"), "USD": Decimal("25"), "EUR": Decimal("15")},
        "USD",
    )
    recommendations = generate_recommendations(exposures)

    assert recommendations == ["Consider hedging or reducing exposure to high-risk currencies: AUD."]


def test_hedging_opportunities(balanced_exposures):
    """Test half of every exposure above 25% is recommended for hedging"""
    opportunities = generate_hedging_opportunities(balanced_exposures)

    assert [o.currency for o in opportunities] == ["USD", "EUR"]
    assert [o.recommended_hedge.amount for o in opportunities] == [Decimal("30"), Decimal("15")]
    assert "Currency Forward Contracts" in opportunities[0].instruments


def test_custom_thresholds_change_hedging():
    thresholds = RiskThresholds(hedging_exposure_threshold=5.0, hedge_ratio=0.25)
    exposures = build_exposures({"USD": Decimal("90"), "EUR": Decimal("10")}, "USD", thresholds)

    opportunities = generate_hedging_opportunities(exposures, thresholds)

    assert [o.recommended_hedge.amount for o in opportunities] == [Decimal("22.50"), Decimal("2.50")]


def test_volatility_metrics(balanced_exposures):
    usd = generate_volatility_metrics(balanced_exposures)[0]

    assert usd.currency == "USD"
    assert (usd.volatility_30d, usd.volatility_90d, usd.volatility_1y) == (7.5, 9.5, 12.0)
    assert usd.trend == "stable"


@pytest.mark.parametrize(
    "currency,percentage,expected",
    [
        ("USD", 90.0, RiskLevel.LOW),  # reporting currency
        ("EUR", 60.0, RiskLevel.HIGH),
        ("EUR", 30.0, RiskLevel.MEDIUM),
        ("EUR", 25.0, RiskLevel.LOW),
    ],
)
def test_foreign_share_risk(currency, percentage, expected):
    assert assess_foreign_share_risk(currency, percentage, "USD", high=50.0, medium=25.0) == expected


def test_percentage_of():
    assert percentage_of(Decimal("25"), Decimal("200")) == 12.5
    assert percentage_of(Decimal("25"), Decimal("0")) == 0.0
