"""
Deal — Модель записанной сделки обмена

Immutable Pydantic модель. Deal создаётся из результата CommissionEngine
и метаданных, введённых оператором, и добавляется в журнал дня.
После записи суммы никогда не пересчитываются: допускается только
удаление или аннотация (внутренняя заметка и теги), которая создаёт копию.
"""

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_serializer, field_validator

from .conversion import ConversionResult
from .currency import Currency


def normalize_tags(tags: Iterable[str]) -> tuple[str, ...]:
    """
    Нормализация тегов заметки: trim, lower-case, без пустых и дублей.

    Порядок первого появления сохраняется.
    """
    seen: list[str] = []
    for tag in tags:
        cleaned = tag.strip().lower()
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    return tuple(seen)


# =============================================================================
# DEAL MODEL
# =============================================================================


class Deal(BaseModel):
    """
    Модель сделки обмена.

    Две ноги (вход и выдача) со своими суммами и валютами,
    курс, итоговая комиссия и операторские поля.

    Immutable модель (frozen=True).
    """

    # Идентификация
    id: str = Field(..., min_length=1, description="Уникальный идентификатор сделки")
    time: str = Field(..., pattern=r"^\d{2}:\d{2}$", description="Время сделки (HH:MM)")

    # Клиент
    client_name: str = Field(default="", description="Имя клиента")
    telegram: str = Field(default="", description="Telegram клиента")
    comment: str = Field(default="", description="Комментарий к сделке")

    # Ноги сделки
    amount_in: Decimal = Field(..., gt=0, description="Сумма, которую отдал клиент")
    currency_in: Currency = Field(..., description="Валюта входа")
    amount_out: Decimal = Field(..., gt=0, description="Сумма, выданная клиенту")
    currency_out: Currency = Field(..., description="Валюта выдачи")
    rate: Optional[Decimal] = Field(None, gt=0, description="Использованный курс")

    # Комиссия (может быть отрицательной: бонус клиенту)
    fee: Decimal = Field(..., description="Комиссия")
    fee_currency: Currency = Field(..., description="Валюта комиссии")

    # Кошельки
    from_wallet: str = Field(default="", description="Кошелёк отправителя")
    to_wallet: str = Field(default="", description="Кошелёк получателя")

    # Операторские поля
    created_by: Optional[str] = Field(None, description="Оператор, записавший сделку")
    internal_note: Optional[str] = Field(None, description="Внутренняя заметка")
    note_tags: tuple[str, ...] = Field(default=(), description="Теги заметки")

    model_config = {"frozen": True}  # Immutable

    @field_validator("currency_out")
    @classmethod
    def validate_legs_differ(cls, v: Currency, info) -> Currency:
        """Проверка, что валюты ног различаются"""
        if "currency_in" in info.data and info.data["currency_in"] == v:
            raise ValueError(f"currency_out {v.value} must differ from currency_in")
        return v

    @field_validator("client_name", "telegram", "comment", "from_wallet", "to_wallet")
    @classmethod
    def strip_text(cls, v: str) -> str:
        """Текстовые поля хранятся без пробелов по краям"""
        return v.strip()

    @field_serializer("amount_in", "amount_out", "rate", "fee", when_used="json-unless-none")
    def serialize_money(self, v: Decimal) -> str:
        """Суммы в JSON — строки без экспоненты"""
        return format(v, "f")

    @classmethod
    def record(
        cls,
        conversion: ConversionResult,
        amount_in: Decimal,
        currency_in: Currency,
        rate: Optional[Decimal],
        now: datetime,
        deal_id: Optional[str] = None,
        amount_out: Optional[Decimal] = None,
        fee: Optional[Decimal] = None,
        **metadata,
    ) -> "Deal":
        """
        Создание сделки из результата расчёта и метаданных оператора.

        Args:
            conversion: Результат CommissionEngine (не withheld)
            amount_in: Сумма входа
            currency_in: Валюта входа
            rate: Курс сделки
            now: Время записи
            deal_id: Идентификатор (default: uuid4)
            amount_out: Сумма выдачи, если оператор её исправил
            fee: Комиссия, если оператор ввёл её вручную
            **metadata: client_name, telegram, comment, wallets, created_by, internal_note

        Returns:
            Deal

        Raises:
            ValueError: Если расчёт был withheld
        """
        if conversion.withheld or conversion.output_currency is None:
            reason = conversion.withheld_reason.value if conversion.withheld_reason else "unknown"
            raise ValueError(f"Cannot record a withheld conversion ({reason})")

        internal_note = (metadata.pop("internal_note", None) or "").strip() or None

        return cls(
            id=deal_id or uuid4().hex,
            time=now.strftime("%H:%M"),
            amount_in=amount_in,
            currency_in=currency_in,
            amount_out=amount_out if amount_out is not None else conversion.net_amount,
            currency_out=conversion.output_currency,
            rate=rate,
            fee=fee if fee is not None else conversion.fee_amount,
            fee_currency=conversion.fee_currency,
            internal_note=internal_note,
            **metadata,
        )

    def with_note(self, note: Optional[str], tags: Iterable[str] = ()) -> "Deal":
        """
        Аннотация сделки: новая копия с заметкой и тегами.

        Пустая заметка удаляет её. Суммы не меняются.
        """
        cleaned = (note or "").strip() or None
        return self.model_copy(update={"internal_note": cleaned, "note_tags": normalize_tags(tags)})

    def legs(self) -> tuple[tuple[Currency, Decimal], tuple[Currency, Decimal]]:
        """
        Ноги сделки.

        Returns:
            ((currency_in, amount_in), (currency_out, amount_out))
        """
        return (self.currency_in, self.amount_in), (self.currency_out, self.amount_out)
