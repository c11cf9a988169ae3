"""
DaySummary — сводка дня по валютам

Производная модель: не хранится, пересчитывается из баланса
на начало дня и сделок дня при каждом чтении.
"""

from decimal import Decimal

from pydantic import BaseModel, Field

from .currency import ALL_CURRENCIES, Balances, Currency


class CurrencySummary(BaseModel):
    """
    Движение одной валюты за день.

    end = start + in - out + fee
    """

    start: Decimal = Field(..., description="Остаток на начало дня")
    incoming: Decimal = Field(..., description="Сумма входящих ног")
    outgoing: Decimal = Field(..., description="Сумма исходящих ног")
    fee: Decimal = Field(..., description="Сумма комиссий в этой валюте")
    end: Decimal = Field(..., description="Остаток на конец дня")

    model_config = {"frozen": True}


class DaySummary(BaseModel):
    """Сводка дня: по одной записи на каждую валюту."""

    day: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$", description="Ключ дня (YYYY-MM-DD)")
    deal_count: int = Field(..., ge=0, description="Количество сделок")
    currencies: dict[Currency, CurrencySummary] = Field(..., description="Сводка по валютам")

    model_config = {"frozen": True}

    def closing_balances(self) -> Balances:
        """Остатки на конец дня."""
        return Balances(**{c.value: self.currencies[c].end for c in ALL_CURRENCIES})

    def __getitem__(self, currency: Currency) -> CurrencySummary:
        return self.currencies[currency]
