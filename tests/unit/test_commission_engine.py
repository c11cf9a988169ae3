"""
Тесты для CommissionEngine

Проверяет:
1. Пороговые правила USDT → FIAT и FIAT → USDT (calculator-v1)
2. Приоритет источников комиссии: ручная > сделка > день > пороги
3. Withheld-результаты вместо исключений
4. Идемпотентность, округление, эквивалентность разделителей
5. FIAT → FIAT с кросс-курсами
"""

from decimal import Decimal

import pytest

from src.core.domain import CommissionSource, Currency, Direction, WithheldReason
from src.core.math.commission import (
    CommissionEngine,
    calculate_conversion,
    normalize_cross_rates,
    resolve_direction,
)
from src.core.math.commission_policy import CALCULATOR_V1


@pytest.fixture
def engine() -> CommissionEngine:
    """Движок с таблицей по умолчанию (calculator-v1)."""
    return CommissionEngine()


# =============================================================================
# USDT → FIAT
# =============================================================================


class TestSettlementToFiatTiers:
    """Пороги USDT → FIAT без ручной комиссии и процентов"""

    @pytest.mark.parametrize("amount", ["1", "100", "1000", "1499"])
    def test_small_amount_flat_fee(self, engine, amount) -> None:
        """amount ≤ 1499 ⇒ fee == 15 × rate"""
        result = engine.convert(amount, Currency.USDT, Currency.PLN, rate="4.2")
        assert result.fee_amount == Decimal("63.00")
        assert result.fee_currency == Currency.PLN
        assert result.source == CommissionSource.TIERS

    @pytest.mark.parametrize("amount", ["1499.01", "3000", "5000"])
    def test_middle_amount_no_fee(self, engine, amount) -> None:
        """1499 < amount ≤ 5000 ⇒ fee == 0"""
        result = engine.convert(amount, Currency.USDT, Currency.PLN, rate="4")
        assert result.fee_amount == Decimal("0")
        assert result.net_amount == result.gross_amount

    def test_large_amount_bonus(self, engine) -> None:
        """amount > 5000 ⇒ fee == −0.01 × amount × rate (бонус клиенту)"""
        result = engine.convert("6000", Currency.USDT, Currency.PLN, rate="4")
        assert result.fee_amount == Decimal("-240.00")
        assert result.net_amount == Decimal("24240.00")
        assert result.is_bonus()

    def test_bonus_just_above_threshold(self, engine) -> None:
        result = engine.convert("5000.01", Currency.USDT, Currency.PLN, rate="4")
        assert result.fee_amount == Decimal("-200.00")

    def test_net_is_gross_minus_fee(self, engine) -> None:
        """Комиссия в валюте выдачи: net = gross − fee"""
        result = engine.convert("1000", Currency.USDT, Currency.PLN, rate="4.2")
        assert result.gross_amount == Decimal("4200.00")
        assert result.net_amount == Decimal("4137.00")
        assert result.net_amount == result.gross_amount - result.fee_amount
        assert result.fee_settlement == Decimal("15.00")


# =============================================================================
# FIAT → USDT
# =============================================================================


class TestFiatToSettlementTiers:
    """Пороги FIAT → USDT: база — gross = amount / rate"""

    def test_small_gross_flat_fee(self, engine) -> None:
        """gross ≤ 1000 ⇒ fee == 20"""
        result = engine.convert("2100", Currency.PLN, Currency.USDT, rate="4.2")
        assert result.gross_amount == Decimal("500.00")
        assert result.fee_amount == Decimal("20.00")
        assert result.fee_currency == Currency.USDT
        assert result.net_amount == Decimal("480.00")

    def test_gross_exactly_threshold(self, engine) -> None:
        result = engine.convert("4200", Currency.PLN, Currency.USDT, rate="4.2")
        assert result.fee_amount == Decimal("20.00")

    def test_large_gross_percent(self, engine) -> None:
        """gross > 1000 ⇒ fee == 0.02 × gross"""
        result = engine.convert("8400", Currency.PLN, Currency.USDT, rate="4.2")
        assert result.gross_amount == Decimal("2000.00")
        assert result.fee_amount == Decimal("40.00")
        assert result.net_amount == Decimal("1960.00")

    def test_missing_rate_withheld(self, engine) -> None:
        """Нет курса ⇒ fee=0, net=0, без исключения"""
        result = engine.convert("100", Currency.PLN, Currency.USDT, rate="")
        assert result.withheld
        assert result.withheld_reason == WithheldReason.RATE_UNAVAILABLE
        assert result.fee_amount == Decimal("0")
        assert result.net_amount == Decimal("0")

    def test_zero_rate_withheld(self, engine) -> None:
        result = engine.convert("100", Currency.PLN, Currency.USDT, rate="0")
        assert result.withheld_reason == WithheldReason.RATE_UNAVAILABLE


# =============================================================================
# ПРИОРИТЕТ ИСТОЧНИКОВ
# =============================================================================


class TestCommissionPriority:
    """Ровно один источник комиссии побеждает"""

    @pytest.mark.parametrize(
        "currency_in,currency_out,rate",
        [
            (Currency.USDT, Currency.PLN, "4.2"),
            (Currency.PLN, Currency.USDT, "4"),
            (Currency.USDT, Currency.EUR, "0.92"),
            (Currency.USD, Currency.USDT, "1"),
        ],
    )
    def test_manual_fee_overrides_everything(self, engine, currency_in, currency_out, rate) -> None:
        """Ручная комиссия 7.5 ⇒ fee == 7.50 при любой паре и курсе"""
        result = engine.convert(
            "1000", currency_in, currency_out, rate=rate,
            manual_fee="7.5", deal_percent="3", daily_percent="1",
        )
        assert result.fee_amount == Decimal("7.50")
        assert result.fee_currency == Currency.USDT
        assert result.source == CommissionSource.MANUAL_FEE

    def test_manual_fee_pinned_to_settlement(self, engine) -> None:
        """Ручная комиссия в USDT вычитается из фиатной выдачи по курсу"""
        result = engine.convert("1000", Currency.USDT, Currency.PLN, rate="4.2", manual_fee="7,5")
        assert result.net_amount == Decimal("4168.50")

    def test_manual_zero_fee_is_still_manual(self, engine) -> None:
        result = engine.convert("1000", Currency.USDT, Currency.PLN, rate="4", manual_fee="0")
        assert result.source == CommissionSource.MANUAL_FEE
        assert result.fee_amount == Decimal("0")
        assert result.net_amount == Decimal("4000.00")

    def test_deal_percent_beats_daily(self, engine) -> None:
        result = engine.convert(
            "1000", Currency.USDT, Currency.PLN, rate="4", deal_percent="2", daily_percent="1"
        )
        assert result.source == CommissionSource.DEAL_PERCENT
        assert result.fee_amount == Decimal("80.00")
        assert result.net_amount == Decimal("3920.00")

    def test_blank_deal_percent_falls_to_daily(self, engine) -> None:
        result = engine.convert(
            "1000", Currency.USDT, Currency.PLN, rate="4", deal_percent=" ", daily_percent="1,0"
        )
        assert result.source == CommissionSource.DAILY_PERCENT
        assert result.fee_amount == Decimal("40.00")

    def test_daily_percent_fiat_to_settlement(self, engine) -> None:
        """FIAT → USDT: процент от amount_in / rate"""
        result = engine.convert("4000", Currency.PLN, Currency.USDT, rate="4", daily_percent="1")
        assert result.fee_amount == Decimal("10.00")
        assert result.net_amount == Decimal("990.00")

    def test_garbage_percent_ignored(self, engine) -> None:
        """Неразбираемый процент считается отсутствующим"""
        result = engine.convert("1000", Currency.USDT, Currency.PLN, rate="4", deal_percent="abc")
        assert result.source == CommissionSource.TIERS


# =============================================================================
# WITHHELD
# =============================================================================


class TestWithheld:
    """Некорректный ввод даёт нулевой результат, а не исключение"""

    @pytest.mark.parametrize("amount", ["", "abc", "0", "-5", None])
    def test_invalid_amount(self, engine, amount) -> None:
        result = engine.convert(amount, Currency.USDT, Currency.PLN, rate="4")
        assert result.withheld
        assert result.withheld_reason == WithheldReason.INVALID_AMOUNT
        assert result.net_amount == Decimal("0")

    def test_same_currency(self, engine) -> None:
        result = engine.convert("100", Currency.PLN, Currency.PLN, rate="1")
        assert result.withheld_reason == WithheldReason.INVALID_PAIR

    def test_unknown_currency(self, engine) -> None:
        result = engine.convert("100", "XYZ", "PLN", rate="1")
        assert result.withheld_reason == WithheldReason.INVALID_PAIR
        assert result.output_currency == Currency.PLN

    def test_manual_fee_reported_on_withheld(self, engine) -> None:
        """Ручная комиссия видна даже без курса"""
        result = engine.convert("100", Currency.PLN, Currency.USDT, rate="", manual_fee="5")
        assert result.withheld
        assert result.fee_amount == Decimal("5.00")
        assert result.source == CommissionSource.MANUAL_FEE

    def test_not_a_bonus(self, engine) -> None:
        result = engine.convert("", Currency.USDT, Currency.PLN, rate="4")
        assert not result.is_bonus()

    def test_amount_beyond_context_precision(self, engine) -> None:
        """26-значная сумма рассчитывается без исключения"""
        result = engine.convert("99999999999999999999999999", Currency.USDT, Currency.PLN, rate="4.2")
        assert not result.withheld
        assert result.source == CommissionSource.TIERS
        assert result.net_amount > result.gross_amount > Decimal("0")
        assert result.net_amount.as_tuple().exponent == -2

    def test_amount_overflow_withheld(self, engine) -> None:
        """Переполнение экспоненты Decimal даёт withheld, а не исключение"""
        result = engine.convert("1E+999999", Currency.USDT, Currency.PLN, rate="10")
        assert result.withheld
        assert result.withheld_reason == WithheldReason.INVALID_AMOUNT
        assert result.net_amount == Decimal("0")


# =============================================================================
# ДЕТЕРМИНИЗМ И ФОРМАТ
# =============================================================================


class TestDeterminism:
    def test_idempotent(self, engine) -> None:
        """Повторный расчёт даёт побайтно одинаковый результат"""
        args = dict(amount_in="1234,56", currency_in="USDT", currency_out="EUR", rate="0.9213")
        first = engine.convert(**args)
        second = engine.convert(**args)
        assert first == second
        assert first.model_dump_json() == second.model_dump_json()

    def test_decimal_separator_equivalence(self, engine) -> None:
        comma = engine.convert("500,00", Currency.USDT, Currency.PLN, rate="4,20")
        dot = engine.convert("500.00", Currency.USDT, Currency.PLN, rate="4.20")
        assert comma == dot
        assert comma.net_amount == Decimal("2037.00")

    @pytest.mark.parametrize(
        "amount,currency_in,currency_out,rate",
        [
            ("1", Currency.USDT, Currency.PLN, "4.1234"),
            ("333.333", Currency.PLN, Currency.USDT, "3.97"),
            ("7777.77", Currency.USDT, Currency.EUR, "0.9199"),
            ("", Currency.USDT, Currency.PLN, "4"),
        ],
    )
    def test_two_fractional_digits(self, engine, amount, currency_in, currency_out, rate) -> None:
        result = engine.convert(amount, currency_in, currency_out, rate=rate)
        for value in (result.fee_amount, result.net_amount, result.gross_amount):
            assert value.as_tuple().exponent == -2
        assert all("." in v and len(v.split(".")[1]) == 2 for v in result.as_strings().values())

    def test_string_currency_codes(self, engine) -> None:
        assert engine.convert("1000", "usdt", " pln ", rate="4") == engine.convert(
            "1000", Currency.USDT, Currency.PLN, rate="4"
        )


# =============================================================================
# FIAT → FIAT
# =============================================================================


class TestFiatToFiat:
    """Кросс-конвертация: rate — 1 FIAT_in = rate FIAT_out"""

    def test_no_commission_without_percent(self, engine) -> None:
        result = engine.convert("1000", Currency.PLN, Currency.EUR, rate="0.23")
        assert result.gross_amount == Decimal("230.00")
        assert result.fee_amount == Decimal("0")
        assert result.net_amount == Decimal("230.00")

    def test_percent_with_cross_rate(self, engine) -> None:
        result = engine.convert(
            "1000", Currency.PLN, Currency.EUR, rate="0.23",
            daily_percent="1", cross_rates={Currency.EUR: Decimal("0.92")},
        )
        assert result.fee_settlement == Decimal("2.50")
        assert result.fee_amount == Decimal("2.30")
        assert result.fee_currency == Currency.EUR
        assert result.net_amount == Decimal("227.70")

    def test_percent_without_cross_rate_is_zero(self, engine) -> None:
        result = engine.convert("1000", Currency.PLN, Currency.EUR, rate="0.23", daily_percent="1")
        assert not result.withheld
        assert result.fee_amount == Decimal("0")
        assert result.net_amount == Decimal("230.00")

    def test_manual_fee_with_cross_rate(self, engine) -> None:
        result = engine.convert(
            "1000", Currency.PLN, Currency.EUR, rate="0.23",
            manual_fee="7.5", cross_rates={"EUR": "0.92"},
        )
        assert result.fee_amount == Decimal("7.50")
        assert result.net_amount == Decimal("223.10")

    def test_manual_fee_without_cross_rate_withheld(self, engine) -> None:
        result = engine.convert("1000", Currency.PLN, Currency.EUR, rate="0.23", manual_fee="7.5")
        assert result.withheld_reason == WithheldReason.CROSS_RATE_UNAVAILABLE
        assert result.fee_amount == Decimal("7.50")


# =============================================================================
# HELPERS
# =============================================================================


class TestHelpers:
    def test_resolve_direction(self) -> None:
        assert resolve_direction(Currency.USDT, Currency.PLN) == Direction.SETTLEMENT_TO_FIAT
        assert resolve_direction(Currency.EUR, Currency.USDT) == Direction.FIAT_TO_SETTLEMENT
        assert resolve_direction(Currency.EUR, Currency.PLN) == Direction.FIAT_TO_FIAT

    def test_resolve_direction_same_currency_raises(self) -> None:
        with pytest.raises(ValueError, match="must differ"):
            resolve_direction(Currency.PLN, Currency.PLN)

    def test_normalize_cross_rates_drops_invalid(self) -> None:
        rates = normalize_cross_rates({"eur": "0,92", "XYZ": "1", "PLN": "0", Currency.USD: 1.0})
        assert rates == {Currency.EUR: Decimal("0.92"), Currency.USD: Decimal("1.0")}

    def test_calculate_conversion_uses_default_policy(self) -> None:
        result = calculate_conversion("1000", "USDT", "PLN", rate="4.2")
        assert result.policy_version == CALCULATOR_V1.version
        assert result.fee_amount == Decimal("63.00")
