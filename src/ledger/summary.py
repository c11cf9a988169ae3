"""Day summary — сводка дня по валютам.

closing[c] = opening[c] + Σ in[c] − Σ out[c] + Σ fee[c]

Сводка не кэшируется: пересчитывается из журнала при каждом чтении.
Сложение коммутативно, порядок сделок не влияет на результат.
"""

from decimal import Decimal
from typing import Dict, Iterable

from src.core.domain.currency import ALL_CURRENCIES, Balances, Currency
from src.core.domain.day_summary import CurrencySummary, DaySummary
from src.core.domain.deal import Deal
from src.ledger.store import LedgerStore, day_key


def summarize_day(day: str, deals: Iterable[Deal], opening: Balances) -> DaySummary:
    """
    Сводка дня из баланса на начало и сделок.

    Args:
        day: ключ дня (YYYY-MM-DD)
        deals: сделки дня
        opening: баланс на начало дня

    Returns:
        DaySummary по всем валютам

    Examples:
        >>> opening = Balances.uniform(Decimal("1000"))
        >>> summarize_day("2024-05-01", [], opening)[Currency.PLN].end
        Decimal('1000')
    """
    incoming: Dict[Currency, Decimal] = {c: Decimal("0") for c in ALL_CURRENCIES}
    outgoing: Dict[Currency, Decimal] = {c: Decimal("0") for c in ALL_CURRENCIES}
    fees: Dict[Currency, Decimal] = {c: Decimal("0") for c in ALL_CURRENCIES}

    count = 0
    for deal in deals:
        count += 1
        (currency_in, amount_in), (currency_out, amount_out) = deal.legs()
        incoming[currency_in] += amount_in
        outgoing[currency_out] += amount_out
        fees[deal.fee_currency] += deal.fee

    currencies = {}
    for currency in ALL_CURRENCIES:
        start = opening.get(currency)
        currencies[currency] = CurrencySummary(
            start=start,
            incoming=incoming[currency],
            outgoing=outgoing[currency],
            fee=fees[currency],
            end=start + incoming[currency] - outgoing[currency] + fees[currency],
        )

    return DaySummary(day=day_key(day), deal_count=count, currencies=currencies)


def summarize_store_day(store: LedgerStore, day: str) -> DaySummary:
    """Сводка дня прямо из журнала."""
    return summarize_day(day, store.list_deals(day), store.get_opening_balances(day))
