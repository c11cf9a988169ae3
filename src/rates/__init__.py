"""Rate feed — источник курсов и фоновый опрос."""

from .poller import RatePoller, RateStatus
from .provider import (
    CoinGeckoRateProvider,
    RateProvider,
    RateSnapshot,
    StaticRateProvider,
    resolve_effective_rate,
)

__all__ = [
    "CoinGeckoRateProvider",
    "RatePoller",
    "RateProvider",
    "RateSnapshot",
    "RateStatus",
    "StaticRateProvider",
    "resolve_effective_rate",
]
