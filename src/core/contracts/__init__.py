"""
Contract Validation Module

Модуль для валидации JSON контрактов Smart Exchange Desk.
"""

from .validators import (
    ContractValidator,
    DealValidator,
    LedgerValidator,
    RateFeedValidator,
    SchemaLoader,
    validate_deal,
    validate_ledger,
    validate_rate_feed,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "DealValidator",
    "LedgerValidator",
    "RateFeedValidator",
    # Functions
    "validate_deal",
    "validate_ledger",
    "validate_rate_feed",
]
