"""CSV export — выгрузка сделок дня.

Одна строка на сделку, разделитель ';', каждое значение в кавычках,
кавычки внутри значения удваиваются. Порядок колонок фиксирован.
"""

import csv
import io
import logging
from pathlib import Path
from typing import Iterable, List

from src.core.domain.deal import Deal
from src.ledger.store import day_key

logger = logging.getLogger(__name__)

CSV_DELIMITER = ";"

CSV_COLUMNS: tuple[str, ...] = (
    "Date",
    "Time",
    "ClientName",
    "Telegram",
    "AmountIn",
    "CurrencyIn",
    "AmountOut",
    "CurrencyOut",
    "Rate",
    "Fee",
    "FeeCurrency",
    "FromWallet",
    "ToWallet",
    "Comment",
    "InternalNote",
    "NoteTags",
    "CreatedBy",
)


def _amount(value) -> str:
    return "" if value is None else format(value, "f")


def deal_to_row(day: str, deal: Deal) -> List[str]:
    """Значения колонок для одной сделки (в порядке CSV_COLUMNS)."""
    return [
        day,
        deal.time,
        deal.client_name,
        deal.telegram,
        _amount(deal.amount_in),
        deal.currency_in.value,
        _amount(deal.amount_out),
        deal.currency_out.value,
        _amount(deal.rate),
        _amount(deal.fee),
        deal.fee_currency.value,
        deal.from_wallet,
        deal.to_wallet,
        deal.comment,
        deal.internal_note or "",
        ", ".join(deal.note_tags),
        deal.created_by or "",
    ]


def deals_to_csv(day: str, deals: Iterable[Deal]) -> str:
    """
    CSV-документ сделок дня: заголовок и по строке на сделку.

    Args:
        day: ключ дня (YYYY-MM-DD)
        deals: сделки дня в порядке журнала

    Returns:
        Текст CSV (строки разделены '\\n')
    """
    key = day_key(day)
    buffer = io.StringIO()
    writer = csv.writer(
        buffer,
        delimiter=CSV_DELIMITER,
        quotechar='"',
        quoting=csv.QUOTE_ALL,
        doublequote=True,
        lineterminator="\n",
    )
    writer.writerow(CSV_COLUMNS)
    for deal in deals:
        writer.writerow(deal_to_row(key, deal))
    return buffer.getvalue()


def export_day(day: str, deals: Iterable[Deal], directory: Path) -> Path:
    """
    Запись CSV дня в файл deals_<day>.csv.

    Returns:
        Путь к созданному файлу
    """
    key = day_key(day)
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"deals_{key}.csv"
    # BOM для Excel
    path.write_text(deals_to_csv(key, deals), encoding="utf-8-sig")
    logger.info("Exported deals for %s to %s", key, path)
    return path
