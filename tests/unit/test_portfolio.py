"""Unit tests for portfolio diversification and risk classification"""

from decimal import Decimal

import pytest

from finpulse.domain.models import RiskLevel, RiskThresholds
from finpulse.domain.portfolio import INVESTMENT_TYPES, classify_portfolio_risk, diversification_score


def test_diversification_counts_held_types():
    """Test stocks, bonds and crypto -> 3 of 8 categories"""
    values = {"stocks": Decimal("1750"), "bonds": Decimal("10200"), "crypto": Decimal("22500")}
    assert diversification_score(values) == 37.5


def test_diversification_ignores_empty_types():
    assert diversification_score({"stocks": Decimal("100"), "bonds": Decimal("0")}) == 12.5
    assert diversification_score({}) == 0.0


def test_fully_diversified_portfolio():
    assert diversification_score({t: Decimal("1") for t in INVESTMENT_TYPES}) == 100.0


@pytest.mark.parametrize(
    "values,expected",
    [
        ({"crypto": Decimal("22500"), "stocks": Decimal("1750"), "bonds": Decimal("10200")}, RiskLevel.HIGH),
        ({"stocks": Decimal("85"), "bonds": Decimal("15")}, RiskLevel.HIGH),
        ({"crypto": Decimal("6"), "bonds": Decimal("94")}, RiskLevel.MEDIUM),
        ({"stocks": Decimal("60"), "bonds": Decimal("40")}, RiskLevel.MEDIUM),
        ({"crypto": Decimal("5"), "stocks": Decimal("50"), "bonds": Decimal("45")}, RiskLevel.LOW),
    ],
)
def test_classify_portfolio_risk(values, expected):
    total = sum(values.values(), Decimal("0"))
    assert classify_portfolio_risk(values, total) == expected


def test_empty_portfolio_is_low_risk():
    assert classify_portfolio_risk({}, Decimal("0")) == RiskLevel.LOW


def test_thresholds_are_tunable():
    values = {"crypto": Decimal("10"), "bonds": Decimal("90")}
    strict = RiskThresholds(crypto_high_share=8.0)

    assert classify_portfolio_risk(values, Decimal("100")) == RiskLevel.MEDIUM
    assert classify_portfolio_risk(values, Decimal("100"), strict) == RiskLevel.HIGH
