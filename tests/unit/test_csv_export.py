"""
Тесты для CSV-выгрузки сделок дня
"""

import csv
import io
from decimal import Decimal

from src.core.domain import Currency, Deal
from src.ledger.export import CSV_COLUMNS, deal_to_row, deals_to_csv, export_day

DAY = "2024-05-01"


def make_deal(**overrides) -> Deal:
    data = dict(
        id="a",
        time="14:30",
        client_name="Ivan",
        telegram="@ivan",
        amount_in=Decimal("1000"),
        currency_in=Currency.USDT,
        amount_out=Decimal("4137.00"),
        currency_out=Currency.PLN,
        rate=Decimal("4.2"),
        fee=Decimal("63.00"),
        fee_currency=Currency.PLN,
        from_wallet="TXabc",
        to_wallet="",
        comment="",
        created_by="anna",
    )
    data.update(overrides)
    return Deal(**data)


class TestDealsToCsv:
    def test_header(self) -> None:
        header = deals_to_csv(DAY, []).splitlines()[0]
        assert header == ";".join(f'"{c}"' for c in CSV_COLUMNS)
        assert CSV_COLUMNS[0] == "Date"
        assert CSV_COLUMNS[-1] == "CreatedBy"

    def test_one_line_per_deal(self) -> None:
        text = deals_to_csv(DAY, [make_deal(id="a"), make_deal(id="b")])
        assert len(text.splitlines()) == 3

    def test_row_values(self) -> None:
        line = deals_to_csv(DAY, [make_deal()]).splitlines()[1]
        assert line.startswith('"2024-05-01";"14:30";"Ivan";"@ivan";"1000";"USDT";"4137.00";"PLN";"4.2";"63.00";"PLN"')
        assert line.endswith('"";"";"anna"')

    def test_every_value_quoted_and_quotes_doubled(self) -> None:
        deal = make_deal(comment='Сказал "срочно"; перезвонить')
        line = deals_to_csv(DAY, [deal]).splitlines()[1]
        assert '"Сказал ""срочно""; перезвонить"' in line

    def test_parses_back_with_csv_reader(self) -> None:
        deal = make_deal(comment='a;b"c', internal_note="note", note_tags=("важное", "проверить"))
        rows = list(csv.reader(io.StringIO(deals_to_csv(DAY, [deal])), delimiter=";"))
        record = dict(zip(rows[0], rows[1]))
        assert record["Comment"] == 'a;b"c'
        assert record["NoteTags"] == "важное, проверить"
        assert record["InternalNote"] == "note"

    def test_missing_optional_values_empty(self) -> None:
        row = deal_to_row(DAY, make_deal(rate=None, created_by=None))
        assert row[CSV_COLUMNS.index("Rate")] == ""
        assert row[CSV_COLUMNS.index("CreatedBy")] == ""

    def test_day_key_normalized(self) -> None:
        line = deals_to_csv(" 2024-05-01 ", [make_deal()]).splitlines()[1]
        assert line.startswith('"2024-05-01"')


class TestExportDay:
    def test_writes_file(self, tmp_path) -> None:
        path = export_day(DAY, [make_deal()], tmp_path / "out")
        assert path.name == "deals_2024-05-01.csv"
        content = path.read_text(encoding="utf-8-sig")
        assert content == deals_to_csv(DAY, [make_deal()])
