"""
Numerical Safeguards — разбор сумм и денежное округление

Модуль обеспечивает детерминированную работу с денежными величинами:
- Разбор операторского ввода (строки с '.' или ',' как десятичным разделителем)
- NaN/Inf санитизация: невалидный ввод превращается в None, а не в исключение
- Безопасное деление с fallback при нулевом знаменателе
- Округление до копеек по правилу round half away from zero

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Деление на ноль никогда не происходит (возвращается fallback)
2. NaN/Inf никогда не пропагируют (заменяются на None)
3. "500,00" и "500.00" дают одно и то же значение
4. Все операции детерминированы и воспроизводимы (Decimal, не float)
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Final, Optional, Union

# =============================================================================
# КОНСТАНТЫ
# =============================================================================

# Количество знаков после запятой для всех денежных сумм
MONEY_PLACES: Final[int] = 2

# Шаг квантования денежных сумм
MONEY_QUANTUM: Final[Decimal] = Decimal(1).scaleb(-MONEY_PLACES)

ZERO: Final[Decimal] = Decimal("0")

Number = Union[Decimal, int, float, str]


# =============================================================================
# РАЗБОР ВВОДА
# =============================================================================


def normalize_decimal_separator(raw: str) -> str:
    """
    Приведение десятичного разделителя к точке.

    Заменяется только первая запятая: "1,5" → "1.5". Строка с несколькими
    разделителями после замены останется неразбираемой.
    """
    return raw.strip().replace(",", ".", 1)


def parse_decimal(value: Optional[Number]) -> Optional[Decimal]:
    """
    Разбор числа из операторского ввода.

    Args:
        value: Строка ("500,00", " 4.2 "), int, float или Decimal

    Returns:
        Decimal или None если значение пустое, неразбираемое, NaN или Inf

    Examples:
        >>> parse_decimal("500,00")
        Decimal('500.00')
        >>> parse_decimal("") is None
        True
        >>> parse_decimal("abc") is None
        True
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        # str() даёт кратчайшее представление float: 4.2 → "4.2"
        result = _to_decimal(str(value))
    else:
        text = normalize_decimal_separator(str(value))
        if not text:
            return None
        result = _to_decimal(text)

    if result is None or not result.is_finite():
        return None
    return result


def _to_decimal(text: str) -> Optional[Decimal]:
    try:
        return Decimal(text)
    except InvalidOperation:
        return None


def parse_positive(value: Optional[Number]) -> Optional[Decimal]:
    """
    Разбор строго положительного числа (суммы, курса).

    Returns:
        Decimal > 0 или None (ноль и отрицательные значения считаются отсутствующими)
    """
    result = parse_decimal(value)
    if result is None or result <= ZERO:
        return None
    return result


def is_blank(value: Optional[Number]) -> bool:
    """Пустое значение поля формы: None или строка из пробелов."""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


# =============================================================================
# БЕЗОПАСНОЕ ДЕЛЕНИЕ
# =============================================================================


def safe_divide(
    numerator: Decimal,
    denominator: Optional[Decimal],
    fallback: Optional[Decimal] = None,
) -> Optional[Decimal]:
    """
    Безопасное деление Decimal с защитой от нулевого и отсутствующего знаменателя.

    Args:
        numerator: Числитель
        denominator: Знаменатель (может быть None)
        fallback: Значение при делении на ноль (default: None)

    Returns:
        numerator / denominator или fallback

    Examples:
        >>> safe_divide(Decimal("10"), Decimal("4"))
        Decimal('2.5')
        >>> safe_divide(Decimal("10"), Decimal("0")) is None
        True
    """
    if denominator is None or denominator == ZERO:
        return fallback
    return numerator / denominator


# =============================================================================
# ОКРУГЛЕНИЕ
# =============================================================================


def round_money(value: Number) -> Decimal:
    """
    Округление суммы до копеек (2 знака), round half away from zero.

    Decimal.ROUND_HALF_UP округляет половину от нуля для обоих знаков:
    2.345 → 2.35, -2.345 → -2.35.

    Args:
        value: Сумма

    Returns:
        Decimal ровно с двумя знаками после запятой

    Raises:
        ValueError: Если значение не является конечным числом

    Examples:
        >>> round_money("7.5")
        Decimal('7.50')
        >>> round_money(Decimal("-15.125"))
        Decimal('-15.13')
    """
    parsed = parse_decimal(value)
    if parsed is None:
        raise ValueError(f"Cannot round non-numeric money value: {value!r}")

    # Точность с запасом на все разряды суммы и перенос при округлении
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, parsed.adjusted() + MONEY_PLACES + 2)
        rounded = parsed.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)
    # -0.00 → 0.00, чтобы вывод был побайтно стабильным
    if rounded == ZERO:
        return ZERO.quantize(MONEY_QUANTUM)
    return rounded


def percent_of(base: Decimal, percent: Decimal) -> Decimal:
    """
    Процент от суммы: base * percent / 100.

    Examples:
        >>> percent_of(Decimal("1000"), Decimal("2"))
        Decimal('20')
    """
    return base * percent / Decimal(100)
