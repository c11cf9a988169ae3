"""
Core math modules для Smart Exchange Desk

Денежная арифметика, таблицы комиссий и движок конвертации.
"""

# Numerical Safeguards
from src.core.math.numerical_safeguards import (
    MONEY_PLACES,
    MONEY_QUANTUM,
    ZERO,
    is_blank,
    normalize_decimal_separator,
    parse_decimal,
    parse_positive,
    percent_of,
    round_money,
    safe_divide,
)

# Commission policy table
from src.core.math.commission_policy import (
    AUTOSYNC_V1,
    CALCULATOR_V1,
    DEFAULT_POLICY_VERSION,
    LEDGER_V1,
    POLICY_VERSIONS,
    CommissionPolicyTable,
    FeeCurrencyMode,
    FeeTier,
    PercentMode,
    UnknownPolicyVersion,
    get_policy,
)

# Commission engine
from src.core.math.commission import (
    CommissionEngine,
    calculate_conversion,
    normalize_cross_rates,
    resolve_direction,
)

__all__ = [
    # Numerical Safeguards: Constants
    "MONEY_PLACES",
    "MONEY_QUANTUM",
    "ZERO",
    # Numerical Safeguards: Parsing
    "is_blank",
    "normalize_decimal_separator",
    "parse_decimal",
    "parse_positive",
    # Numerical Safeguards: Arithmetic
    "percent_of",
    "round_money",
    "safe_divide",
    # Commission policy: Tables
    "AUTOSYNC_V1",
    "CALCULATOR_V1",
    "DEFAULT_POLICY_VERSION",
    "LEDGER_V1",
    "POLICY_VERSIONS",
    # Commission policy: Types
    "CommissionPolicyTable",
    "FeeCurrencyMode",
    "FeeTier",
    "PercentMode",
    # Commission policy: Exceptions
    "UnknownPolicyVersion",
    # Commission policy: Functions
    "get_policy",
    # Commission engine
    "CommissionEngine",
    "calculate_conversion",
    "normalize_cross_rates",
    "resolve_direction",
]
