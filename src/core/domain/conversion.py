"""
ConversionResult — результат расчёта обмена и комиссии

Immutable Pydantic модель, которую возвращает CommissionEngine.
Все денежные поля — Decimal ровно с двумя знаками после запятой.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from .currency import Currency


# =============================================================================
# ENUMS
# =============================================================================


class CommissionSource(str, Enum):
    """Источник комиссии (ровно один на расчёт, в порядке приоритета)"""

    MANUAL_FEE = "manual_fee"  # Ручная сумма комиссии (в расчётном активе)
    DEAL_PERCENT = "deal_percent"  # Процент на сделку
    DAILY_PERCENT = "daily_percent"  # Процент дня по умолчанию
    TIERS = "tiers"  # Встроенные пороговые правила
    NONE = "none"  # Расчёт не выполнялся


class WithheldReason(str, Enum):
    """Причина отказа от расчёта"""

    INVALID_AMOUNT = "invalid_amount"  # Пустая, неразбираемая или неположительная сумма
    INVALID_PAIR = "invalid_pair"  # Неизвестная валюта или одинаковые ноги
    RATE_UNAVAILABLE = "rate_unavailable"  # Нет курса или курс нулевой
    CROSS_RATE_UNAVAILABLE = "cross_rate_unavailable"  # Нет кросс-курса для комиссии


class Direction(str, Enum):
    """Направление обмена относительно расчётного актива"""

    SETTLEMENT_TO_FIAT = "settlement_to_fiat"
    FIAT_TO_SETTLEMENT = "fiat_to_settlement"
    FIAT_TO_FIAT = "fiat_to_fiat"


# =============================================================================
# CONVERSION RESULT
# =============================================================================


class ConversionResult(BaseModel):
    """
    Результат расчёта одной сделки.

    Инвариант: net_amount = gross_amount - fee_amount, если комиссия в валюте выдачи;
    если комиссия закреплена за расчётным активом —
    net_amount = gross_amount - fee_amount * k, где k переводит 1 единицу
    расчётного актива в валюту выдачи.

    Withheld результат (withheld=True) означает "расчёт не выполнен":
    вызывающая сторона не должна записывать его как сделку с нулевой комиссией.
    """

    gross_amount: Decimal = Field(..., description="Сумма до комиссии (в валюте выдачи)")
    fee_amount: Decimal = Field(..., description="Комиссия в fee_currency (может быть < 0 — бонус)")
    net_amount: Decimal = Field(..., description="Сумма к выдаче клиенту")
    fee_currency: Currency = Field(..., description="Валюта комиссии")
    output_currency: Optional[Currency] = Field(None, description="Валюта выдачи")
    fee_settlement: Decimal = Field(..., description="Комиссия в расчётном активе")
    source: CommissionSource = Field(..., description="Правило, определившее комиссию")
    policy_version: str = Field(..., min_length=1, description="Версия таблицы комиссий")

    withheld: bool = Field(default=False, description="Расчёт не выполнен")
    withheld_reason: Optional[WithheldReason] = Field(None, description="Причина отказа")

    model_config = {"frozen": True}

    def is_bonus(self) -> bool:
        """
        Проверка, доплачивает ли пункт клиенту.

        Returns:
            True если комиссия отрицательная
        """
        return self.fee_amount < 0

    def as_strings(self) -> dict[str, str]:
        """Денежные поля в виде строк для полей формы ("63.00")."""
        return {
            "gross_amount": str(self.gross_amount),
            "fee_amount": str(self.fee_amount),
            "net_amount": str(self.net_amount),
        }
