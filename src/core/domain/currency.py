"""
Currency — валюты обменного пункта и балансы

Закрытый набор валют: один расчётный актив (крипто-нога, USDT)
и несколько фиатных валют. Все комиссионные пороги номинированы
в расчётном активе.
"""

from decimal import Decimal
from enum import Enum
from typing import Final, Iterable, Optional

from pydantic import BaseModel, Field, field_serializer


# =============================================================================
# ENUMS
# =============================================================================


class Currency(str, Enum):
    """Валюта сделки"""

    USDT = "USDT"  # Расчётный актив
    PLN = "PLN"
    EUR = "EUR"
    USD = "USD"


# Расчётный актив по умолчанию
SETTLEMENT_ASSET: Final[Currency] = Currency.USDT

# Порядок валют в сводках и экспорте
ALL_CURRENCIES: Final[tuple[Currency, ...]] = (
    Currency.PLN,
    Currency.EUR,
    Currency.USD,
    Currency.USDT,
)


def fiat_currencies(settlement_asset: Currency = SETTLEMENT_ASSET) -> tuple[Currency, ...]:
    """Все валюты, кроме расчётного актива."""
    return tuple(c for c in ALL_CURRENCIES if c != settlement_asset)


def parse_currency(value: object) -> Optional[Currency]:
    """
    Разбор кода валюты без исключений.

    Args:
        value: Currency или строка ("pln", " USDT ")

    Returns:
        Currency или None для неизвестного кода
    """
    if isinstance(value, Currency):
        return value
    if not isinstance(value, str):
        return None
    try:
        return Currency(value.strip().upper())
    except ValueError:
        return None


# =============================================================================
# BALANCES
# =============================================================================


class Balances(BaseModel):
    """
    Остатки по всем валютам (например, баланс на начало дня).

    Immutable модель (frozen=True). Пропущенные валюты равны нулю.
    """

    PLN: Decimal = Field(default=Decimal("0"), description="Остаток PLN")
    EUR: Decimal = Field(default=Decimal("0"), description="Остаток EUR")
    USD: Decimal = Field(default=Decimal("0"), description="Остаток USD")
    USDT: Decimal = Field(default=Decimal("0"), description="Остаток USDT")

    model_config = {"frozen": True}

    @field_serializer("PLN", "EUR", "USD", "USDT", when_used="json")
    def serialize_amount(self, v: Decimal) -> str:
        return format(v, "f")

    def get(self, currency: Currency) -> Decimal:
        """Остаток по валюте."""
        return getattr(self, currency.value)

    def with_amount(self, currency: Currency, amount: Decimal) -> "Balances":
        """Копия с новым остатком по одной валюте."""
        return self.model_copy(update={currency.value: amount})

    def items(self) -> Iterable[tuple[Currency, Decimal]]:
        """Пары (валюта, остаток) в каноническом порядке."""
        return ((c, self.get(c)) for c in ALL_CURRENCIES)

    @classmethod
    def uniform(cls, amount: Decimal) -> "Balances":
        """Одинаковый остаток по всем валютам."""
        return cls(**{c.value: amount for c in ALL_CURRENCIES})
