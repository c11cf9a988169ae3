"""Rate provider — курсы расчётного актива к фиатным валютам.

Провайдер возвращает RateSnapshot (1 USDT = x FIAT по каждой валюте)
или None, если источник недоступен. Потребитель обязан работать
с None сколь угодно долго, используя ручной курс оператора.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Mapping, Optional

import requests
from jsonschema import ValidationError

from src.core.contracts import validate_rate_feed
from src.core.domain.currency import Currency
from src.core.math.numerical_safeguards import parse_positive

logger = logging.getLogger(__name__)

DEFAULT_COINGECKO_URL = (
    "https://api.coingecko.com/api/v3/simple/price?ids=tether&vs_currencies=pln,eur,usd"
)


@dataclass(frozen=True)
class RateSnapshot:
    """Курсы расчётного актива на момент получения."""

    rates: Mapping[Currency, Decimal]
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    source: str = "unknown"

    def rate_for(self, currency: Currency) -> Optional[Decimal]:
        """Курс 1 USDT → currency или None."""
        return self.rates.get(currency)

    def age_seconds(self, now: Optional[datetime] = None) -> float:
        """Возраст снапшота в секундах."""
        now = now or datetime.now(timezone.utc)
        return (now - self.fetched_at).total_seconds()


class RateProvider(ABC):
    """Абстрактный источник курсов."""

    NAME: str = "base"

    @abstractmethod
    def get_rates(self) -> Optional[RateSnapshot]:
        """Текущие курсы или None (источник недоступен)."""


class StaticRateProvider(RateProvider):
    """Фиксированные курсы (демо-режим и тесты)."""

    NAME = "static"

    def __init__(self, rates: Mapping[Currency, Decimal]):
        self._rates = dict(rates)

    def get_rates(self) -> Optional[RateSnapshot]:
        return RateSnapshot(rates=dict(self._rates), source=self.NAME)


class CoinGeckoRateProvider(RateProvider):
    """Курс tether к PLN/EUR/USD из публичного API CoinGecko."""

    NAME = "coingecko"

    def __init__(self, url: str = DEFAULT_COINGECKO_URL, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self._session = session or requests.Session()

    def get_rates(self) -> Optional[RateSnapshot]:
        """Запрос курсов; ошибки сети и некорректный ответ дают None."""
        try:
            response = self._session.get(self.url, timeout=self.timeout, headers={"Accept": "application/json"})
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Failed to fetch rates from {self.NAME}: {e}")
            return None

        try:
            validate_rate_feed(payload)
        except ValidationError as e:
            logger.warning(f"Invalid rate payload from {self.NAME}: {e.message}")
            return None

        tether = payload["tether"]
        rates = {}
        for currency in (Currency.PLN, Currency.EUR, Currency.USD):
            rate = parse_positive(tether[currency.value.lower()])
            if rate is not None:
                rates[currency] = rate

        return RateSnapshot(rates=rates, source=self.NAME)


def resolve_effective_rate(
    currency: Currency,
    manual_rate: Optional[str],
    use_api: bool,
    snapshot: Optional[RateSnapshot],
) -> Optional[Decimal]:
    """Курс для расчёта: API или ручной.

    Порядок:
    1. API-курс, если включён и доступен
    2. Положительный ручной курс
    3. API-курс, если доступен (даже когда выключен)
    4. None — расчёт невозможен
    """
    api_rate = snapshot.rate_for(currency) if snapshot is not None else None

    if use_api and api_rate is not None:
        return api_rate

    manual = parse_positive(manual_rate)
    if manual is not None:
        return manual

    return api_rate
