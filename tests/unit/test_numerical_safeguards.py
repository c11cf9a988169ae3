"""
Тесты для модуля Numerical Safeguards

Проверяет:
1. Разбор операторского ввода ('.' и ',' как десятичный разделитель)
2. NaN/Inf санитизацию
3. Безопасное деление
4. Денежное округление (round half away from zero)
"""

from decimal import Decimal

import pytest

from src.core.math.numerical_safeguards import (
    MONEY_QUANTUM,
    is_blank,
    normalize_decimal_separator,
    parse_decimal,
    parse_positive,
    percent_of,
    round_money,
    safe_divide,
)

# =============================================================================
# ТЕСТЫ РАЗБОРА ВВОДА
# =============================================================================


class TestParseDecimal:
    """Тесты для parse_decimal"""

    def test_comma_and_dot_are_equivalent(self) -> None:
        """'500,00' и '500.00' дают одно значение"""
        assert parse_decimal("500,00") == parse_decimal("500.00") == Decimal("500")

    def test_surrounding_whitespace_ignored(self) -> None:
        """Пробелы по краям игнорируются"""
        assert parse_decimal("  4,2 ") == Decimal("4.2")

    def test_blank_is_none(self) -> None:
        """Пустое поле — None"""
        assert parse_decimal("") is None
        assert parse_decimal("   ") is None
        assert parse_decimal(None) is None

    def test_garbage_is_none(self) -> None:
        """Неразбираемый ввод — None, без исключения"""
        assert parse_decimal("abc") is None
        assert parse_decimal("1,2,3") is None

    def test_nan_and_inf_are_none(self) -> None:
        """NaN/Inf не пропагируют"""
        assert parse_decimal("NaN") is None
        assert parse_decimal("inf") is None
        assert parse_decimal(float("nan")) is None
        assert parse_decimal(Decimal("Infinity")) is None

    def test_float_uses_shortest_repr(self) -> None:
        """float разбирается через str: 4.2 → Decimal('4.2')"""
        assert parse_decimal(4.2) == Decimal("4.2")

    def test_bool_rejected(self) -> None:
        """bool не считается числом"""
        assert parse_decimal(True) is None

    def test_negative_allowed(self) -> None:
        assert parse_decimal("-1,5") == Decimal("-1.5")


class TestParsePositive:
    """Тесты для parse_positive"""

    def test_positive_value(self) -> None:
        assert parse_positive("4,20") == Decimal("4.20")

    @pytest.mark.parametrize("value", ["0", "0,00", "-5", "", None, "x"])
    def test_non_positive_is_none(self, value) -> None:
        """Ноль, отрицательные и пустые значения отсутствуют"""
        assert parse_positive(value) is None


class TestBlankAndSeparator:
    def test_is_blank(self) -> None:
        assert is_blank(None)
        assert is_blank("  ")
        assert not is_blank("0")
        assert not is_blank(Decimal("0"))

    def test_only_first_comma_replaced(self) -> None:
        assert normalize_decimal_separator(" 1,5 ") == "1.5"
        assert normalize_decimal_separator("1,2,3") == "1.2,3"


# =============================================================================
# ТЕСТЫ БЕЗОПАСНОГО ДЕЛЕНИЯ
# =============================================================================


class TestSafeDivide:
    """Тесты для safe_divide"""

    def test_regular_division(self) -> None:
        assert safe_divide(Decimal("10"), Decimal("4")) == Decimal("2.5")

    def test_zero_denominator_returns_fallback(self) -> None:
        assert safe_divide(Decimal("10"), Decimal("0")) is None
        assert safe_divide(Decimal("10"), Decimal("0"), fallback=Decimal("0")) == Decimal("0")

    def test_missing_denominator_returns_fallback(self) -> None:
        assert safe_divide(Decimal("10"), None, fallback=Decimal("-1")) == Decimal("-1")


# =============================================================================
# ТЕСТЫ ОКРУГЛЕНИЯ
# =============================================================================


class TestRoundMoney:
    """Тесты для round_money"""

    def test_two_fractional_digits(self) -> None:
        """Результат всегда ровно с двумя знаками"""
        assert str(round_money("7.5")) == "7.50"
        assert str(round_money(63)) == "63.00"
        assert round_money("1.239").as_tuple().exponent == -2

    def test_half_away_from_zero(self) -> None:
        """Половина округляется от нуля для обоих знаков"""
        assert round_money("2.345") == Decimal("2.35")
        assert round_money("-2.345") == Decimal("-2.35")
        assert round_money("0.005") == Decimal("0.01")

    def test_negative_zero_normalized(self) -> None:
        """-0.001 → 0.00 (без знака минус)"""
        assert str(round_money("-0.001")) == "0.00"

    def test_more_digits_than_context_precision(self) -> None:
        """Сумма длиннее 28 значащих цифр округляется без InvalidOperation"""
        assert str(round_money("99999999999999999999999999999.995")) == "100000000000000000000000000000.00"
        assert str(round_money(Decimal("12345678901234567890123456789"))) == "12345678901234567890123456789.00"

    def test_non_numeric_raises(self) -> None:
        with pytest.raises(ValueError, match="non-numeric"):
            round_money("abc")

    def test_quantum(self) -> None:
        assert MONEY_QUANTUM == Decimal("0.01")


class TestPercentOf:
    def test_percent(self) -> None:
        assert percent_of(Decimal("1000"), Decimal("2")) == Decimal("20")
        assert percent_of(Decimal("6000"), Decimal("-1")) == Decimal("-60")
