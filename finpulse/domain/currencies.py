"""Currency reference data: supported codes, classification, and fallback rates"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List


@dataclass(frozen=True)
class CurrencyInfo:
    code: str
    name: str
    symbol: str
    decimal_places: int = 2


SUPPORTED_CURRENCIES: List[CurrencyInfo] = [
    CurrencyInfo("USD", "US Dollar", "$"),
    CurrencyInfo("EUR", "Euro", "€"),
    CurrencyInfo("GBP", "British Pound Sterling", "£"),
    CurrencyInfo("JPY", "Japanese Yen", "¥", 0),
    CurrencyInfo("CHF", "Swiss Franc", "CHF"),
    CurrencyInfo("CAD", "Canadian Dollar", "C$"),
    CurrencyInfo("AUD", "Australian Dollar", "A$"),
    CurrencyInfo("CNY", "Chinese Yuan", "¥"),
    CurrencyInfo("INR", "Indian Rupee", "₹"),
    CurrencyInfo("KRW", "South Korean Won", "₩", 0),
    CurrencyInfo("SGD", "Singapore Dollar", "S$"),
    CurrencyInfo("HKD", "Hong Kong Dollar", "HK$"),
    CurrencyInfo("NOK", "Norwegian Krone", "kr"),
    CurrencyInfo("SEK", "Swedish Krona", "kr"),
    CurrencyInfo("DKK", "Danish Krone", "kr"),
    CurrencyInfo("NZD", "New Zealand Dollar", "NZ$"),
    CurrencyInfo("MXN", "Mexican Peso", "$"),
    CurrencyInfo("BRL", "Brazilian Real", "R$"),
    CurrencyInfo("RUB", "Russian Ruble", "₽"),
    CurrencyInfo("ZAR", "South African Rand", "R"),
]

SUPPORTED_CODES = frozenset(c.code for c in SUPPORTED_CURRENCIES)

# ISO 3166 alpha-2 country -> currency
COUNTRY_CURRENCY_MAP: Dict[str, str] = {
    "US": "USD", "CA": "CAD", "GB": "GBP", "DE": "EUR", "FR": "EUR", "IT": "EUR", "ES": "EUR",
    "NL": "EUR", "BE": "EUR", "AT": "EUR", "PT": "EUR", "FI": "EUR", "IE": "EUR", "LU": "EUR",
    "SI": "EUR", "SK": "EUR", "EE": "EUR", "LV": "EUR", "LT": "EUR", "MT": "EUR", "CY": "EUR",
    "JP": "JPY", "CH": "CHF", "LI": "CHF", "AU": "AUD", "CN": "CNY", "IN": "INR", "KR": "KRW",
    "SG": "SGD", "HK": "HKD", "NO": "NOK", "SE": "SEK", "DK": "DKK", "NZ": "NZD", "MX": "MXN",
    "BR": "BRL", "RU": "RUB", "ZA": "ZAR",
}

# Exchange ticker suffix -> listing currency
MARKET_SUFFIX_CURRENCY: Dict[str, str] = {
    ".L": "GBP",
    ".TO": "CAD",
    ".T": "JPY",
    ".HK": "HKD",
    ".AX": "AUD",
    ".PA": "EUR",
    ".DE": "EUR",
    ".MI": "EUR",
    ".AS": "EUR",
    ".BR": "EUR",
    ".SW": "CHF",
    ".ST": "SEK",
    ".OL": "NOK",
    ".CO": "DKK",
}

MAJOR_CURRENCIES = frozenset({"USD", "EUR", "GBP", "JPY", "CHF"})
EMERGING_CURRENCIES = frozenset({"INR", "CNY", "BRL", "RUB", "ZAR"})

# Approximate real-world rates, quoted as 1 FROM = rate TO
FALLBACK_RATES: Dict[tuple[str, str], Decimal] = {
    ("USD", "EUR"): Decimal("0.85"),
    ("USD", "GBP"): Decimal("0.73"),
    ("USD", "JPY"): Decimal("110.0"),
    ("USD", "CHF"): Decimal("0.92"),
    ("USD", "CAD"): Decimal("1.25"),
    ("USD", "AUD"): Decimal("1.35"),
    ("USD", "INR"): Decimal("87.0"),
    ("USD", "CNY"): Decimal("7.15"),
    ("USD", "KRW"): Decimal("1320.0"),
    ("USD", "SGD"): Decimal("1.35"),
    ("USD", "HKD"): Decimal("7.80"),
    ("USD", "NOK"): Decimal("10.50"),
    ("USD", "SEK"): Decimal("10.80"),
    ("USD", "DKK"): Decimal("6.85"),
    ("USD", "NZD"): Decimal("1.65"),
    ("USD", "MXN"): Decimal("17.50"),
    ("USD", "BRL"): Decimal("5.20"),
    ("USD", "RUB"): Decimal("75.0"),
    ("USD", "ZAR"): Decimal("18.50"),
    ("EUR", "USD"): Decimal("1.18"),
    ("EUR", "GBP"): Decimal("0.86"),
    ("EUR", "JPY"): Decimal("129.4"),
    ("GBP", "USD"): Decimal("1.37"),
    ("GBP", "EUR"): Decimal("1.16"),
    ("JPY", "USD"): Decimal("0.0091"),
    ("INR", "USD"): Decimal("0.0115"),
}

# Heuristic rates for pairs missing from the table (midpoints of the typical bands)
MAJOR_TO_EMERGING_RATE = Decimal("45")  # band 10 - 80
EMERGING_TO_MAJOR_RATE = Decimal("0.055")  # band 0.01 - 0.1
SIMILAR_TIER_RATE = Decimal("1")  # band 0.8 - 1.2

# Volatility-based risk score per currency, 0-100
CURRENCY_BASE_RISK: Dict[str, int] = {
    "USD": 10,
    "EUR": 15,
    "GBP": 20,
    "JPY": 12,
    "CHF": 8,
    "CAD": 18,
    "AUD": 25,
}
DEFAULT_BASE_RISK = 30


def normalize_currency_code(code: str) -> str:
    """Uppercase and trim a currency code. Never fails."""
    return (code or "").strip().upper()


def is_currency_code_format(code: str) -> bool:
    """True for 3-letter alphabetic codes, supported or not"""
    return len(code) == 3 and code.isalpha()


def fallback_rate(from_currency: str, to_currency: str) -> Decimal:
    """
    Deterministic rate used when no live or cached rate is available.

    Lookup order:
    1. Direct entry in FALLBACK_RATES
    2. Inverse of the reverse entry
    3. Tier heuristic: major -> emerging, emerging -> major, otherwise near parity
    """
    if from_currency == to_currency:
        return Decimal("1")

    direct = FALLBACK_RATES.get((from_currency, to_currency))
    if direct is not None:
        return direct

    reverse = FALLBACK_RATES.get((to_currency, from_currency))
    if reverse is not None:
        return Decimal("1") / reverse

    if from_currency in MAJOR_CURRENCIES and to_currency in EMERGING_CURRENCIES:
        return MAJOR_TO_EMERGING_RATE
    if from_currency in EMERGING_CURRENCIES and to_currency in MAJOR_CURRENCIES:
        return EMERGING_TO_MAJOR_RATE
    return SIMILAR_TIER_RATE


def currency_base_risk(currency: str) -> int:
    return CURRENCY_BASE_RISK.get(currency, DEFAULT_BASE_RISK)


def currency_for_symbol(symbol: str) -> str:
    """Listing currency from an exchange suffix, e.g. VOD.L -> GBP; US listings default to USD"""
    normalized = (symbol or "").strip().upper()
    if "." in normalized:
        suffix = normalized[normalized.rindex("."):]
        return MARKET_SUFFIX_CURRENCY.get(suffix, "USD")
    return "USD"
