"""Deal form sync — автопересчёт формы новой сделки.

Каждое изменение входных полей формы (сумма, курс, пара валют,
процент дня, процент сделки, переключатель ручной комиссии)
явно вызывает CommissionEngine и перезаписывает зависимые поля:
- автоматический режим: amount_out и fee;
- ручной режим комиссии: только amount_out, введённая комиссия не трогается.

Пустая ручная комиссия возвращает форму в автоматический режим.
"""

import logging
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from decimal import Decimal
from typing import Mapping, Optional

from src.core.domain.conversion import ConversionResult
from src.core.domain.currency import Currency
from src.core.domain.deal import Deal
from src.core.math.commission import CommissionEngine
from src.core.math.numerical_safeguards import is_blank, parse_positive

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DealFormState:
    """Снимок полей формы новой сделки (строки — как ввёл оператор)."""

    amount_in: str = ""
    currency_in: Currency = Currency.USDT
    currency_out: Currency = Currency.PLN
    rate: str = ""
    deal_percent: str = ""
    daily_percent: str = ""
    cross_rates: Mapping[Currency, Decimal] = field(default_factory=dict)

    # Ручная комиссия
    manual_fee_mode: bool = False

    # Зависимые поля
    fee: str = "0.00"
    fee_currency: Currency = Currency.USDT
    amount_out: str = "0.00"


# Поля, изменение которых запускает пересчёт
TRIGGER_FIELDS = frozenset(
    {
        "amount_in",
        "currency_in",
        "currency_out",
        "rate",
        "deal_percent",
        "daily_percent",
        "cross_rates",
        "manual_fee_mode",
    }
)

_STATE_FIELDS = frozenset(f.name for f in fields(DealFormState))


@dataclass(frozen=True)
class RecomputeResult:
    """Результат пересчёта формы."""

    state: DealFormState
    conversion: ConversionResult

    # Диагностика
    changed_fields: tuple[str, ...]
    overwritten_fields: tuple[str, ...]
    details: str


class DealFormSync:
    """Состояние формы новой сделки с явным автопересчётом.

    Заменяет реактивный пересчёт UI-фреймворка: вызывающая сторона
    передаёт изменения через update()/set_manual_fee(), а флаг
    manual_fee_mode определяет, какие поля движку разрешено перезаписывать.
    """

    def __init__(self, engine: CommissionEngine, initial: Optional[DealFormState] = None):
        """
        Args:
            engine: движок комиссии (с нужной версией таблицы комиссий)
            initial: начальное состояние формы
        """
        self.engine = engine
        self._state = initial or DealFormState()
        self._last = self.recompute()

    @property
    def state(self) -> DealFormState:
        return self._state

    @property
    def conversion(self) -> ConversionResult:
        """Последний результат движка."""
        return self._last.conversion

    def update(self, **changes) -> RecomputeResult:
        """Изменение входных полей формы и пересчёт.

        Args:
            **changes: поля DealFormState (amount_in="500,00", rate="4.2", ...)

        Returns:
            RecomputeResult

        Raises:
            ValueError: если передано неизвестное поле или зависимое поле (fee, amount_out)
        """
        unknown = set(changes) - _STATE_FIELDS
        if unknown:
            raise ValueError(f"Unknown deal form fields: {sorted(unknown)}")
        derived = set(changes) - TRIGGER_FIELDS
        if derived:
            raise ValueError(f"Derived fields cannot be set directly: {sorted(derived)}; use set_manual_fee()")

        changed = tuple(sorted(name for name, value in changes.items() if getattr(self._state, name) != value))
        self._state = replace(self._state, **changes)
        return self.recompute(changed)

    def set_manual_fee(self, value: str) -> RecomputeResult:
        """Ввод комиссии оператором.

        Непустое значение включает ручной режим; пустое — возвращает автоматический.
        """
        if is_blank(value):
            self._state = replace(self._state, manual_fee_mode=False)
            return self.recompute(("fee",))

        self._state = replace(self._state, manual_fee_mode=True, fee=value.strip())
        return self.recompute(("fee",))

    def recompute(self, changed_fields: tuple[str, ...] = ()) -> RecomputeResult:
        """Вызов движка по текущему состоянию и перезапись зависимых полей."""
        state = self._state

        conversion = self.engine.convert(
            amount_in=state.amount_in,
            currency_in=state.currency_in,
            currency_out=state.currency_out,
            rate=state.rate,
            manual_fee=state.fee if state.manual_fee_mode else None,
            deal_percent=state.deal_percent,
            daily_percent=state.daily_percent,
            cross_rates=state.cross_rates,
        )

        updates = {"amount_out": str(conversion.net_amount)}
        if not state.manual_fee_mode:
            updates["fee"] = str(conversion.fee_amount)
            updates["fee_currency"] = conversion.fee_currency
        else:
            # Ручная комиссия всегда в расчётном активе
            updates["fee_currency"] = self.engine.settlement_asset

        overwritten = tuple(sorted(name for name, value in updates.items() if getattr(state, name) != value))
        self._state = replace(state, **updates)

        if conversion.withheld:
            details = f"withheld: {conversion.withheld_reason.value}"
        else:
            details = f"source={conversion.source.value}, policy={conversion.policy_version}"
        logger.debug("Deal form recomputed (%s), overwritten=%s", details, overwritten)

        self._last = RecomputeResult(
            state=self._state,
            conversion=conversion,
            changed_fields=changed_fields,
            overwritten_fields=overwritten,
            details=details,
        )
        return self._last

    def record(self, now: datetime, created_by: Optional[str] = None, **metadata) -> Deal:
        """Запись сделки из текущей формы и сброс полей сделки.

        Args:
            now: время записи
            created_by: имя оператора
            **metadata: client_name, telegram, comment, from_wallet, to_wallet, internal_note

        Returns:
            Deal

        Raises:
            ValueError: если расчёт withheld или суммы некорректны
        """
        state = self._state
        conversion = self._last.conversion
        amount_in = parse_positive(state.amount_in)
        if amount_in is None:
            raise ValueError(f"Invalid amount_in: {state.amount_in!r}")

        deal = Deal.record(
            conversion=conversion,
            amount_in=amount_in,
            currency_in=state.currency_in,
            rate=parse_positive(state.rate),
            now=now,
            created_by=created_by,
            **metadata,
        )

        self._state = replace(
            state,
            amount_in="",
            rate="",
            deal_percent="",
            manual_fee_mode=False,
        )
        self.recompute()
        return deal
