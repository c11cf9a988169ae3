"""
CommissionEngine — расчёт обмена и комиссии обменного пункта

По входной сумме, паре валют, курсу и необязательным процентам
детерминированно вычисляет сумму к выдаче и комиссию.

Приоритет источников комиссии (выигрывает ровно один):
1. Ручная сумма комиссии (всегда в расчётном активе)
2. Процент на сделку
3. Процент дня по умолчанию
4. Пороговые правила таблицы комиссий

Gross (сумма до комиссии, в валюте выдачи):
    USDT → FIAT: amount_in * rate
    FIAT → USDT: amount_in / rate
    FIAT → FIAT: amount_in * rate

Движок никогда не выбрасывает исключений на плохой ввод: пустая сумма,
неизвестная валюта или отсутствующий курс дают withheld результат
с нулевой комиссией ("расчёт не выполнен, исправьте ввод").
"""

import logging
from decimal import Decimal, DecimalException
from typing import Mapping, Optional

from src.core.domain.conversion import (
    CommissionSource,
    ConversionResult,
    Direction,
    WithheldReason,
)
from src.core.domain.currency import SETTLEMENT_ASSET, Currency, parse_currency
from src.core.math.commission_policy import (
    CALCULATOR_V1,
    CommissionPolicyTable,
    FeeCurrencyMode,
    PercentMode,
)
from src.core.math.numerical_safeguards import (
    ZERO,
    Number,
    parse_decimal,
    parse_positive,
    percent_of,
    round_money,
    safe_divide,
)

logger = logging.getLogger(__name__)


# =============================================================================
# HELPERS
# =============================================================================


def resolve_direction(
    currency_in: Currency,
    currency_out: Currency,
    settlement_asset: Currency = SETTLEMENT_ASSET,
) -> Direction:
    """
    Направление обмена относительно расчётного актива.

    Args:
        currency_in: Валюта, которую отдаёт клиент
        currency_out: Валюта, которую получает клиент
        settlement_asset: Расчётный актив

    Returns:
        Direction

    Raises:
        ValueError: Если валюты совпадают
    """
    if currency_in == currency_out:
        raise ValueError(f"currency_in and currency_out must differ, got {currency_in.value}")

    if currency_in == settlement_asset:
        return Direction.SETTLEMENT_TO_FIAT
    if currency_out == settlement_asset:
        return Direction.FIAT_TO_SETTLEMENT
    return Direction.FIAT_TO_FIAT


def normalize_cross_rates(
    cross_rates: Optional[Mapping[object, Number]],
) -> dict[Currency, Decimal]:
    """
    Нормализация таблицы кросс-курсов (1 USDT = x FIAT).

    Неизвестные валюты и неположительные курсы отбрасываются.
    """
    if not cross_rates:
        return {}

    normalized: dict[Currency, Decimal] = {}
    for raw_currency, raw_rate in cross_rates.items():
        currency = parse_currency(raw_currency)
        rate = parse_positive(raw_rate)
        if currency is not None and rate is not None:
            normalized[currency] = rate
    return normalized


# =============================================================================
# ENGINE
# =============================================================================


class CommissionEngine:
    """
    Движок комиссии и конвертации.

    Чистая функция поверх конфигурации: таблица комиссий и расчётный актив
    задаются при создании, состояние между вызовами не хранится.
    Повторный вызов с теми же аргументами даёт идентичный результат.
    """

    def __init__(
        self,
        policy: Optional[CommissionPolicyTable] = None,
        settlement_asset: Currency = SETTLEMENT_ASSET,
    ):
        """
        Args:
            policy: Таблица комиссий (default: calculator-v1)
            settlement_asset: Расчётный актив (default: USDT)
        """
        self.policy = policy or CALCULATOR_V1
        self.settlement_asset = settlement_asset

    def convert(
        self,
        amount_in: Optional[Number],
        currency_in: object,
        currency_out: object,
        rate: Optional[Number] = None,
        manual_fee: Optional[Number] = None,
        deal_percent: Optional[Number] = None,
        daily_percent: Optional[Number] = None,
        cross_rates: Optional[Mapping[object, Number]] = None,
    ) -> ConversionResult:
        """
        Расчёт суммы к выдаче и комиссии.

        Args:
            amount_in: Сумма, которую отдаёт клиент ("500,00" эквивалентно "500.00")
            currency_in: Валюта входа
            currency_out: Валюта выдачи
            rate: Курс (1 USDT = rate FIAT; для FIAT → FIAT — 1 FIAT_in = rate FIAT_out)
            manual_fee: Ручная комиссия в расчётном активе (пустая/NaN — отсутствует)
            deal_percent: Процент на сделку
            daily_percent: Процент дня по умолчанию
            cross_rates: Кросс-курсы расчётного актива (1 USDT = x FIAT)

        Returns:
            ConversionResult (withheld=True если расчёт невозможен)
        """
        manual = parse_decimal(manual_fee)

        cur_in = parse_currency(currency_in)
        cur_out = parse_currency(currency_out)
        if cur_in is None or cur_out is None or cur_in == cur_out:
            return self._withheld(WithheldReason.INVALID_PAIR, cur_out, manual)

        amount = parse_positive(amount_in)
        if amount is None:
            return self._withheld(WithheldReason.INVALID_AMOUNT, cur_out, manual)

        rate_value = parse_positive(rate)
        if rate_value is None:
            return self._withheld(WithheldReason.RATE_UNAVAILABLE, cur_out, manual)

        try:
            return self._calculate(
                cur_in, cur_out, amount, rate_value, manual, deal_percent, daily_percent, cross_rates
            )
        except DecimalException as e:
            # Сумма за пределами экспоненты Decimal: расчёт не выполняется
            logger.warning("Conversion out of numeric range: %r", e)
            return self._withheld(WithheldReason.INVALID_AMOUNT, cur_out, manual)

    # -------------------------------------------------------------------------
    # Внутренние правила
    # -------------------------------------------------------------------------

    def _calculate(
        self,
        cur_in: Currency,
        cur_out: Currency,
        amount: Decimal,
        rate_value: Decimal,
        manual: Optional[Decimal],
        deal_percent: Optional[Number],
        daily_percent: Optional[Number],
        cross_rates: Optional[Mapping[object, Number]],
    ) -> ConversionResult:
        """Gross, комиссия и выдача для проверенных суммы, пары и курса."""
        direction = resolve_direction(cur_in, cur_out, self.settlement_asset)
        cross = normalize_cross_rates(cross_rates)

        if direction == Direction.FIAT_TO_SETTLEMENT:
            gross = amount / rate_value
            # Множитель 1 USDT → валюта выдачи
            to_output: Optional[Decimal] = Decimal(1)
        elif direction == Direction.SETTLEMENT_TO_FIAT:
            gross = amount * rate_value
            to_output = rate_value
        else:
            gross = amount * rate_value
            to_output = cross.get(cur_out)

        # 1. Комиссия в расчётном активе по приоритету источников
        if manual is not None:
            source = CommissionSource.MANUAL_FEE
            fee_settlement = round_money(manual)
        else:
            source, fee_settlement = self._resolve_fee(
                direction=direction,
                amount=amount,
                rate=rate_value,
                gross=gross,
                cross_out=cross.get(cur_out),
                deal_percent=parse_decimal(deal_percent),
                daily_percent=parse_decimal(daily_percent),
            )
            if self.policy.round_settlement_fee:
                fee_settlement = round_money(fee_settlement)

        # 2. Валюта комиссии: ручная комиссия всегда остаётся в расчётном активе
        float_to_output = (
            source != CommissionSource.MANUAL_FEE
            and self.policy.fee_currency_mode == FeeCurrencyMode.OUTPUT_LEG
        )

        if to_output is None:
            if fee_settlement != ZERO:
                # Комиссию в USDT нельзя вычесть из фиатной выдачи без кросс-курса
                return self._withheld(WithheldReason.CROSS_RATE_UNAVAILABLE, cur_out, manual)
            to_output = ZERO

        gross_rounded = round_money(gross)

        # 3. Выдача клиенту
        if float_to_output:
            fee_amount = round_money(fee_settlement * to_output)
            fee_currency = cur_out
            net = gross_rounded - fee_amount
        else:
            fee_amount = round_money(fee_settlement)
            fee_currency = self.settlement_asset
            net = round_money(gross_rounded - fee_amount * to_output)

        return ConversionResult(
            gross_amount=gross_rounded,
            fee_amount=fee_amount,
            net_amount=round_money(net),
            fee_currency=fee_currency,
            output_currency=cur_out,
            fee_settlement=round_money(fee_settlement),
            source=source,
            policy_version=self.policy.version,
        )

    def _resolve_fee(
        self,
        direction: Direction,
        amount: Decimal,
        rate: Decimal,
        gross: Decimal,
        cross_out: Optional[Decimal],
        deal_percent: Optional[Decimal],
        daily_percent: Optional[Decimal],
    ) -> tuple[CommissionSource, Decimal]:
        """Выбор источника комиссии (без ручной суммы) и расчёт в расчётном активе."""
        has_tiers = bool(self.policy.tiers_for(direction))
        percent_in_tiers = self.policy.percent_mode == PercentMode.TIER_RATE and has_tiers

        if not percent_in_tiers:
            if deal_percent is not None:
                return CommissionSource.DEAL_PERCENT, self._percent_fee(
                    direction, amount, rate, gross, cross_out, deal_percent
                )
            if daily_percent is not None:
                return CommissionSource.DAILY_PERCENT, self._percent_fee(
                    direction, amount, rate, gross, cross_out, daily_percent
                )

        context_percent = deal_percent if deal_percent is not None else daily_percent
        return CommissionSource.TIERS, self._tier_fee(direction, amount, rate, context_percent)

    def _percent_fee(
        self,
        direction: Direction,
        amount: Decimal,
        rate: Decimal,
        gross: Decimal,
        cross_out: Optional[Decimal],
        percent: Decimal,
    ) -> Decimal:
        """
        Процентная комиссия в расчётном активе.

        USDT → FIAT: percent от amount_in
        FIAT → USDT: percent от amount_in / rate
        FIAT → FIAT: percent от gross в фиате, пересчитанный по кросс-курсу;
                     без кросс-курса комиссия 0
        """
        if direction == Direction.SETTLEMENT_TO_FIAT:
            return percent_of(amount, percent)
        if direction == Direction.FIAT_TO_SETTLEMENT:
            return percent_of(amount / rate, percent)

        fee_fiat = percent_of(gross, percent)
        fee_settlement = safe_divide(fee_fiat, cross_out)
        if fee_settlement is None:
            logger.debug("No cross rate for fiat fee, falling back to zero commission")
            return ZERO
        return fee_settlement

    def _tier_fee(
        self,
        direction: Direction,
        amount: Decimal,
        rate: Decimal,
        context_percent: Optional[Decimal],
    ) -> Decimal:
        """Комиссия по порогам; база порога — сумма в расчётном активе."""
        if direction == Direction.SETTLEMENT_TO_FIAT:
            base = amount
        elif direction == Direction.FIAT_TO_SETTLEMENT:
            base = amount / rate
        else:
            # FIAT → FIAT без процента: комиссии нет
            return ZERO

        tier = self.policy.find_tier(direction, base)
        if tier is None:
            return ZERO

        percent = tier.percent
        if percent is None:
            percent = context_percent if context_percent is not None else ZERO
        return tier.flat_fee + percent_of(base, percent)

    def _withheld(
        self,
        reason: WithheldReason,
        currency_out: Optional[Currency],
        manual: Optional[Decimal],
    ) -> ConversionResult:
        """Результат "расчёт не выполнен": нули, ручная комиссия — как введена."""
        logger.debug("Conversion withheld: %s", reason.value)

        fee = round_money(manual) if manual is not None else round_money(ZERO)
        zero = round_money(ZERO)
        return ConversionResult(
            gross_amount=zero,
            fee_amount=fee,
            net_amount=zero,
            fee_currency=self.settlement_asset,
            output_currency=currency_out,
            fee_settlement=fee,
            source=CommissionSource.MANUAL_FEE if manual is not None else CommissionSource.NONE,
            policy_version=self.policy.version,
            withheld=True,
            withheld_reason=reason,
        )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def calculate_conversion(
    amount_in: Optional[Number],
    currency_in: object,
    currency_out: object,
    rate: Optional[Number] = None,
    manual_fee: Optional[Number] = None,
    deal_percent: Optional[Number] = None,
    daily_percent: Optional[Number] = None,
    cross_rates: Optional[Mapping[object, Number]] = None,
    policy: Optional[CommissionPolicyTable] = None,
) -> ConversionResult:
    """
    Расчёт обмена с таблицей комиссий по умолчанию (или переданной).

    См. CommissionEngine.convert.
    """
    engine = CommissionEngine(policy=policy)
    return engine.convert(
        amount_in=amount_in,
        currency_in=currency_in,
        currency_out=currency_out,
        rate=rate,
        manual_fee=manual_fee,
        deal_percent=deal_percent,
        daily_percent=daily_percent,
        cross_rates=cross_rates,
    )
