"""Command-line access to the exchange desk: quotes, day summary and CSV export.

    python -m src.desk quote 500 USDT PLN --rate 4,20
    python -m src.desk summary --day 2024-05-01
    python -m src.desk export --day 2024-05-01 --out exports/
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from src.config import Settings, configure_logging, get_settings
from src.core.domain.currency import Currency, parse_currency
from src.core.math.commission import CommissionEngine
from src.core.math.commission_policy import POLICY_VERSIONS, UnknownPolicyVersion, get_policy
from src.ledger.export import export_day
from src.ledger.store import LedgerFormatError, today_key
from src.ledger.summary import summarize_store_day
from src.rates.provider import RateSnapshot, resolve_effective_rate

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m src.desk",
        description="Exchange desk: commission quotes, day summaries and CSV export",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    quote = sub.add_parser("quote", help="Compute client payout and commission for one deal")
    quote.add_argument("amount", help="Amount the client hands over ('500,00' and '500.00' are equal)")
    quote.add_argument("currency_in", help="Currency the client hands over (USDT, PLN, EUR, USD)")
    quote.add_argument("currency_out", help="Currency the client receives")
    quote.add_argument("--rate", default="", help="Manual rate: 1 USDT = RATE fiat")
    quote.add_argument("--fee", default=None, help="Manual fee in the settlement asset")
    quote.add_argument("--percent", default="", help="Per-deal commission percent")
    quote.add_argument("--daily-percent", default=None, help="Daily percent (default: from ledger/config)")
    quote.add_argument("--api", action="store_true", help="Use the live rate feed when available")
    quote.add_argument(
        "--policy",
        choices=sorted(POLICY_VERSIONS),
        default=None,
        help="Commission policy version (default: DESK_POLICY_VERSION)",
    )

    summary = sub.add_parser("summary", help="Print the per-currency balance summary of a day")
    summary.add_argument("--day", default=None, help="Day key YYYY-MM-DD (default: today)")

    export = sub.add_parser("export", help="Write a day's deals to deals_<day>.csv")
    export.add_argument("--day", default=None, help="Day key YYYY-MM-DD (default: today)")
    export.add_argument("--out", type=Path, default=Path("."), help="Output directory (default: .)")

    return parser


def _fiat_leg(currency_in: Currency, currency_out: Currency, settlement_asset: Currency) -> Currency:
    return currency_out if currency_in == settlement_asset else currency_in


def _live_snapshot(settings: Settings) -> Optional[RateSnapshot]:
    snapshot = settings.build_rate_provider().get_rates()
    if snapshot is None:
        logger.warning("Live rates unavailable, falling back to the manual rate")
    return snapshot


def cmd_quote(args: argparse.Namespace, settings: Settings) -> int:
    engine = settings.build_engine()
    if args.policy:
        engine = CommissionEngine(policy=get_policy(args.policy), settlement_asset=settings.SETTLEMENT_ASSET)

    currency_in = parse_currency(args.currency_in)
    currency_out = parse_currency(args.currency_out)

    snapshot = _live_snapshot(settings) if args.api else None
    rate = args.rate
    cross_rates = dict(snapshot.rates) if snapshot is not None else {}

    settlement = engine.settlement_asset
    if currency_in is not None and currency_out is not None and settlement in (currency_in, currency_out):
        effective = resolve_effective_rate(
            _fiat_leg(currency_in, currency_out, settlement), args.rate, args.api, snapshot
        )
        rate = effective if effective is not None else ""

    daily_percent = args.daily_percent
    if daily_percent is None:
        daily_percent = settings.build_ledger_store().get_daily_percent(today_key())

    result = engine.convert(
        amount_in=args.amount,
        currency_in=args.currency_in,
        currency_out=args.currency_out,
        rate=rate,
        manual_fee=args.fee,
        deal_percent=args.percent,
        daily_percent=daily_percent,
        cross_rates=cross_rates,
    )

    if result.withheld:
        print(f"Withheld: {result.withheld_reason.value}", file=sys.stderr)
        return 1

    values = result.as_strings()
    print(f"Policy:  {result.policy_version} ({result.source.value})")
    print(f"Rate:    {rate}")
    print(f"Gross:   {values['gross_amount']} {result.output_currency.value}")
    print(f"Fee:     {values['fee_amount']} {result.fee_currency.value}" + ("  (bonus)" if result.is_bonus() else ""))
    print(f"Payout:  {values['net_amount']} {result.output_currency.value}")
    return 0


def cmd_summary(args: argparse.Namespace, settings: Settings) -> int:
    store = settings.build_ledger_store()
    day = args.day or today_key()
    summary = summarize_store_day(store, day)

    print(f"Day {summary.day}: {summary.deal_count} deal(s)")
    print(f"{'':6}{'start':>16}{'in':>16}{'out':>16}{'fee':>16}{'end':>16}")
    for currency, row in summary.currencies.items():
        print(
            f"{currency.value:6}{row.start:>16}{row.incoming:>16}{row.outgoing:>16}{row.fee:>16}{row.end:>16}"
        )
    note = store.get_day_note(day)
    if note:
        print(f"Note: {note}")
    return 0


def cmd_export(args: argparse.Namespace, settings: Settings) -> int:
    store = settings.build_ledger_store()
    day = args.day or today_key()
    path = export_day(day, store.list_deals(day), args.out)
    print(path)
    return 0


COMMANDS = {
    "quote": cmd_quote,
    "summary": cmd_summary,
    "export": cmd_export,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    try:
        return COMMANDS[args.command](args, settings)
    except (UnknownPolicyVersion, LedgerFormatError) as exc:
        parser.error(str(exc))
        return 2
    except ValueError as exc:
        # Bad day key
        parser.error(f"Invalid argument: {exc}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
