"""Ledger store — журнал сделок по дням.

Журнал — отображение "ключ дня (YYYY-MM-DD) → записи дня":
сделки в порядке добавления, баланс на начало дня, заметка дня
и процент комиссии дня. Сделки только добавляются, удаляются
или аннотируются; суммы никогда не пересчитываются.

Реализации:
- InMemoryLedgerStore — в памяти процесса;
- JsonFileLedgerStore — один JSON-документ (contracts/schema/ledger.json),
  перезаписывается после каждого изменения.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import pydantic
from jsonschema import ValidationError

from src.core.contracts import validate_ledger
from src.core.domain.currency import Balances, parse_currency
from src.core.domain.deal import Deal, normalize_tags
from src.core.math.numerical_safeguards import parse_decimal

logger = logging.getLogger(__name__)

LEDGER_SCHEMA_VERSION = "1"


# =============================================================================
# ОШИБКИ
# =============================================================================


class DealNotFound(ValueError):
    """Сделка с таким id отсутствует в журнале дня."""


class LedgerFormatError(ValueError):
    """Файл журнала повреждён или не соответствует контракту."""


# =============================================================================
# КЛЮЧ ДНЯ
# =============================================================================


def day_key(day: date | str) -> str:
    """
    Ключ дня в формате YYYY-MM-DD.

    Raises:
        ValueError: Если строка не является датой ISO
    """
    if isinstance(day, date):
        return day.isoformat()
    return date.fromisoformat(day.strip()).isoformat()


def today_key() -> str:
    """Ключ текущего дня."""
    return date.today().isoformat()


# =============================================================================
# ИНТЕРФЕЙС
# =============================================================================


class LedgerStore(ABC):
    """Контракт журнала сделок."""

    @abstractmethod
    def append_deal(self, day: date | str, deal: Deal) -> None:
        """Добавление сделки в конец журнала дня."""

    @abstractmethod
    def list_deals(self, day: date | str) -> List[Deal]:
        """Сделки дня в порядке добавления (новый список на каждый вызов)."""

    @abstractmethod
    def delete_deal(self, day: date | str, deal_id: str) -> bool:
        """Удаление сделки; False если её не было."""

    @abstractmethod
    def get_opening_balances(self, day: date | str) -> Balances:
        """Баланс на начало дня."""

    @abstractmethod
    def set_opening_balances(self, day: date | str, balances: Balances) -> None:
        """Установка баланса на начало дня."""


# =============================================================================
# IN-MEMORY
# =============================================================================


@dataclass
class _DayRecord:
    deals: List[Deal] = field(default_factory=list)
    opening_balances: Optional[Balances] = None
    note: str = ""
    daily_percent: Optional[str] = None


class InMemoryLedgerStore(LedgerStore):
    """Журнал в памяти процесса."""

    def __init__(
        self,
        default_opening_balances: Optional[Balances] = None,
        default_daily_percent: str = "",
        tag_vocabulary: Iterable[str] = (),
    ):
        """
        Args:
            default_opening_balances: баланс для дня, у которого он не задан
            default_daily_percent: процент дня по умолчанию (пусто: комиссия по порогам)
            tag_vocabulary: теги заметок, предлагаемые оператору
        """
        self.default_opening_balances = default_opening_balances or Balances()
        self.default_daily_percent = default_daily_percent
        self.tag_vocabulary = normalize_tags(tag_vocabulary)
        self._days: Dict[str, _DayRecord] = {}

    # -------------------------------------------------------------------------
    # Сделки
    # -------------------------------------------------------------------------

    def append_deal(self, day: date | str, deal: Deal) -> None:
        key = day_key(day)
        self._day(key).deals.append(deal)
        logger.info("Deal %s recorded for %s (%s %s → %s %s)", deal.id, key,
                    deal.amount_in, deal.currency_in.value, deal.amount_out, deal.currency_out.value)
        self._changed()

    def list_deals(self, day: date | str) -> List[Deal]:
        record = self._days.get(day_key(day))
        return list(record.deals) if record else []

    def get_deal(self, day: date | str, deal_id: str) -> Deal:
        """
        Raises:
            DealNotFound: если сделки нет
        """
        for deal in self.list_deals(day):
            if deal.id == deal_id:
                return deal
        raise DealNotFound(f"Deal {deal_id!r} not found for {day_key(day)}")

    def delete_deal(self, day: date | str, deal_id: str) -> bool:
        return self.delete_deals(day, [deal_id]) == 1

    def delete_deals(self, day: date | str, deal_ids: Iterable[str]) -> int:
        """Удаление нескольких сделок дня; возвращает число удалённых."""
        key = day_key(day)
        record = self._days.get(key)
        if record is None:
            return 0

        ids = set(deal_ids)
        kept = [d for d in record.deals if d.id not in ids]
        removed = len(record.deals) - len(kept)
        if removed:
            record.deals = kept
            logger.info("Deleted %d deal(s) for %s", removed, key)
            self._changed()
        return removed

    def clear_day(self, day: date | str) -> int:
        """Удаление всех сделок дня; возвращает число удалённых."""
        return self.delete_deals(day, [d.id for d in self.list_deals(day)])

    def annotate_deal(
        self,
        day: date | str,
        deal_id: str,
        note: Optional[str],
        tags: Iterable[str] = (),
    ) -> Deal:
        """
        Заметка и теги сделки (копия сделки заменяет исходную на том же месте).

        Raises:
            DealNotFound: если сделки нет
        """
        key = day_key(day)
        record = self._days.get(key)
        if record is not None:
            for index, deal in enumerate(record.deals):
                if deal.id == deal_id:
                    annotated = deal.with_note(note, tags)
                    record.deals[index] = annotated
                    self._changed()
                    return annotated
        raise DealNotFound(f"Deal {deal_id!r} not found for {key}")

    # -------------------------------------------------------------------------
    # Балансы, заметки, процент дня
    # -------------------------------------------------------------------------

    def get_opening_balances(self, day: date | str) -> Balances:
        record = self._days.get(day_key(day))
        if record is None or record.opening_balances is None:
            return self.default_opening_balances
        return record.opening_balances

    def set_opening_balances(self, day: date | str, balances: Balances) -> None:
        key = day_key(day)
        self._day(key).opening_balances = balances
        logger.info("Opening balances set for %s", key)
        self._changed()

    def get_day_note(self, day: date | str) -> str:
        record = self._days.get(day_key(day))
        return record.note if record else ""

    def set_day_note(self, day: date | str, note: str) -> None:
        self._day(day_key(day)).note = note
        self._changed()

    def get_daily_percent(self, day: date | str) -> str:
        record = self._days.get(day_key(day))
        if record is None or record.daily_percent is None:
            return self.default_daily_percent
        return record.daily_percent

    def set_daily_percent(self, day: date | str, percent: str) -> None:
        self._day(day_key(day)).daily_percent = percent.strip()
        self._changed()

    # -------------------------------------------------------------------------
    # Навигация и подсказки
    # -------------------------------------------------------------------------

    def list_days(self) -> List[str]:
        """Ключи всех дней журнала, новые первыми."""
        return sorted(self._days, reverse=True)

    def known_clients(self) -> List[str]:
        """Уникальные имена клиентов из всей истории (для подсказок)."""
        return self._unique(lambda d: d.client_name)

    def known_telegram_accounts(self) -> List[str]:
        """Уникальные Telegram-аккаунты из всей истории."""
        return self._unique(lambda d: d.telegram)

    def suggested_tags(self, prefix: str = "") -> List[str]:
        """
        Теги для заметки: сначала словарь из конфигурации, затем теги из истории.

        Args:
            prefix: начало тега, введённое оператором (без учёта регистра)
        """
        used = sorted({tag for record in self._days.values() for deal in record.deals for tag in deal.note_tags})
        needle = prefix.strip().lower()
        return [tag for tag in normalize_tags([*self.tag_vocabulary, *used]) if tag.startswith(needle)]

    def _unique(self, attr) -> List[str]:
        values = {attr(deal) for record in self._days.values() for deal in record.deals}
        return sorted(v for v in values if v)

    def _day(self, key: str) -> _DayRecord:
        return self._days.setdefault(key, _DayRecord())

    def _changed(self) -> None:
        """Хук после изменения (персистентные реализации сохраняют журнал)."""

    # -------------------------------------------------------------------------
    # Сериализация
    # -------------------------------------------------------------------------

    def to_document(self) -> Dict[str, Any]:
        """Журнал как JSON-документ (contracts/schema/ledger.json)."""
        days: Dict[str, Any] = {}
        for key in sorted(self._days):
            record = self._days[key]
            day_doc: Dict[str, Any] = {
                "deals": [deal.model_dump(mode="json") for deal in record.deals],
            }
            if record.opening_balances is not None:
                day_doc["opening_balances"] = record.opening_balances.model_dump(mode="json")
            if record.note:
                day_doc["note"] = record.note
            if record.daily_percent is not None:
                day_doc["daily_percent"] = record.daily_percent
            days[key] = day_doc
        return {"schema_version": LEDGER_SCHEMA_VERSION, "days": days}

    def load_document(self, document: Dict[str, Any]) -> None:
        """
        Замена содержимого журнала документом.

        Raises:
            LedgerFormatError: если документ не соответствует контракту
        """
        try:
            validate_ledger(document)
        except ValidationError as e:
            raise LedgerFormatError(f"Ledger document is invalid: {e.message}") from e

        days: Dict[str, _DayRecord] = {}
        for key, day_doc in document["days"].items():
            balances = day_doc.get("opening_balances")
            try:
                days[key] = _DayRecord(
                    deals=[Deal.model_validate(d) for d in day_doc["deals"]],
                    opening_balances=Balances.model_validate(balances) if balances is not None else None,
                    note=day_doc.get("note", ""),
                    daily_percent=day_doc.get("daily_percent"),
                )
            except pydantic.ValidationError as e:
                raise LedgerFormatError(f"Ledger day {key} is invalid: {e}") from e
        self._days = days


# =============================================================================
# JSON FILE
# =============================================================================


class JsonFileLedgerStore(InMemoryLedgerStore):
    """Журнал в одном JSON-файле."""

    def __init__(
        self,
        path: Path,
        default_opening_balances: Optional[Balances] = None,
        default_daily_percent: str = "",
        tag_vocabulary: Iterable[str] = (),
    ):
        super().__init__(default_opening_balances, default_daily_percent, tag_vocabulary)
        self.path = Path(path)
        if self.path.exists():
            self._load()

    def _load(self) -> None:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except json.JSONDecodeError as e:
            raise LedgerFormatError(f"Ledger file {self.path} is not valid JSON: {e}") from e
        self.load_document(document)
        logger.info("Ledger loaded from %s (%d day(s))", self.path, len(self.list_days()))

    def _changed(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self.to_document(), f, ensure_ascii=False, indent=2)


def opening_balances_from_strings(values: Dict[str, str], base: Balances) -> Balances:
    """
    Баланс из полей ввода оператора: пустое или неразбираемое значение — ноль.

    Raises:
        ValueError: если код валюты неизвестен
    """
    result = base
    for raw_currency, raw_value in values.items():
        currency = parse_currency(raw_currency)
        if currency is None:
            raise ValueError(f"Unknown currency: {raw_currency!r}")
        amount = parse_decimal(raw_value)
        result = result.with_amount(currency, amount if amount is not None else Decimal("0"))
    return result
