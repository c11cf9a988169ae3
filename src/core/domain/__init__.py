"""
Domain models and value objects.

Contains fundamental domain entities like Currency, Deal, ConversionResult, DaySummary.
"""

from src.core.domain.conversion import (
    CommissionSource,
    ConversionResult,
    Direction,
    WithheldReason,
)
from src.core.domain.currency import (
    ALL_CURRENCIES,
    SETTLEMENT_ASSET,
    Balances,
    Currency,
    fiat_currencies,
    parse_currency,
)
from src.core.domain.day_summary import CurrencySummary, DaySummary
from src.core.domain.deal import Deal, normalize_tags

__all__ = [
    # Currency module
    "ALL_CURRENCIES",
    "SETTLEMENT_ASSET",
    "Balances",
    "Currency",
    "fiat_currencies",
    "parse_currency",
    # Conversion result
    "CommissionSource",
    "ConversionResult",
    "Direction",
    "WithheldReason",
    # Deal model
    "Deal",
    "normalize_tags",
    # Day summary
    "CurrencySummary",
    "DaySummary",
]
