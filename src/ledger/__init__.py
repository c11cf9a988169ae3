"""Ledger — журнал сделок, сводка дня и выгрузка."""

from .export import CSV_COLUMNS, deal_to_row, deals_to_csv, export_day
from .store import (
    DealNotFound,
    InMemoryLedgerStore,
    JsonFileLedgerStore,
    LedgerFormatError,
    LedgerStore,
    day_key,
    opening_balances_from_strings,
    today_key,
)
from .summary import summarize_day, summarize_store_day

__all__ = [
    # Store
    "DealNotFound",
    "InMemoryLedgerStore",
    "JsonFileLedgerStore",
    "LedgerFormatError",
    "LedgerStore",
    "day_key",
    "opening_balances_from_strings",
    "today_key",
    # Summary
    "summarize_day",
    "summarize_store_day",
    # Export
    "CSV_COLUMNS",
    "deal_to_row",
    "deals_to_csv",
    "export_day",
]
