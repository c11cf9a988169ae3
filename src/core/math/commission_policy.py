"""
CommissionPolicy — версионированная таблица комиссионных правил

Обменный пункт исторически считал комиссию тремя способами:
- ledger-v1: форма записи сделки. Комиссия всегда в USDT,
  округляется до копеек до пересчёта в валюту выдачи.
- calculator-v1: калькулятор на главном экране. Комиссия номинируется
  в USDT, но выражается в валюте выдачи (15 USDT → 15 * rate PLN).
- autosync-v1: автозаполнение формы новой сделки. До 1000 USDT —
  фиксированные 20 USDT, выше — процент сделки или процент дня.

Какая версия считается эталонной — решение владельца пункта,
поэтому версия выбирается конфигурацией (Settings.policy_version).
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Final, Optional

from src.core.domain.conversion import Direction


# =============================================================================
# ТИПЫ
# =============================================================================


class FeeCurrencyMode(str, Enum):
    """В какой валюте выражается комиссия"""

    SETTLEMENT_ASSET = "settlement_asset"  # Всегда в расчётном активе
    OUTPUT_LEG = "output_leg"  # В валюте выдачи


class PercentMode(str, Enum):
    """Как применяется процент сделки / процент дня"""

    OVERRIDE = "override"  # Процент заменяет пороговые правила
    TIER_RATE = "tier_rate"  # Процент подставляется в порог с percent=None


class UnknownPolicyVersion(ValueError):
    """Запрошена неизвестная версия таблицы комиссий."""


@dataclass(frozen=True)
class FeeTier:
    """
    Один порог комиссии.

    База порога — сумма в расчётном активе: amount_in для USDT → FIAT,
    gross (amount_in / rate) для FIAT → USDT.

    Комиссия = flat_fee + percent% от базы.
    percent=None означает "процент из контекста" (PercentMode.TIER_RATE).
    """

    up_to: Optional[Decimal]  # Верхняя граница базы; None: без ограничения
    flat_fee: Decimal = Decimal("0")
    percent: Optional[Decimal] = Decimal("0")
    inclusive: bool = True  # base <= up_to (True) или base < up_to (False)

    def matches(self, base: Decimal) -> bool:
        """Попадает ли база в порог."""
        if self.up_to is None:
            return True
        if self.inclusive:
            return base <= self.up_to
        return base < self.up_to


@dataclass(frozen=True)
class CommissionPolicyTable:
    """Полная таблица правил одной версии."""

    version: str
    fee_currency_mode: FeeCurrencyMode
    tiers: dict[Direction, tuple[FeeTier, ...]] = field(default_factory=dict)
    percent_mode: PercentMode = PercentMode.OVERRIDE
    round_settlement_fee: bool = False

    def tiers_for(self, direction: Direction) -> tuple[FeeTier, ...]:
        """Пороги направления (пусто — комиссия 0)."""
        return self.tiers.get(direction, ())

    def find_tier(self, direction: Direction, base: Decimal) -> Optional[FeeTier]:
        """Первый порог, в который попадает база."""
        for tier in self.tiers_for(direction):
            if tier.matches(base):
                return tier
        return None


# =============================================================================
# ВСТРОЕННЫЕ ВЕРСИИ
# =============================================================================

# USDT → FIAT: до 1499 USDT включительно 15 USDT, до 5000 без комиссии, свыше 5000 бонус клиенту 1%
_SETTLEMENT_TO_FIAT_TIERS: Final[tuple[FeeTier, ...]] = (
    FeeTier(up_to=Decimal("1499"), flat_fee=Decimal("15")),
    FeeTier(up_to=Decimal("5000")),
    FeeTier(up_to=None, percent=Decimal("-1")),
)

# FIAT → USDT: gross до 1000 USDT включительно 20 USDT, выше 2%
_FIAT_TO_SETTLEMENT_TIERS: Final[tuple[FeeTier, ...]] = (
    FeeTier(up_to=Decimal("1000"), flat_fee=Decimal("20")),
    FeeTier(up_to=None, percent=Decimal("2")),
)

# Автозаполнение: строго меньше 1000 USDT фиксированные 20 USDT, дальше процент из формы
_AUTOSYNC_TIERS: Final[tuple[FeeTier, ...]] = (
    FeeTier(up_to=Decimal("1000"), flat_fee=Decimal("20"), inclusive=False),
    FeeTier(up_to=None, percent=None),
)

LEDGER_V1: Final[CommissionPolicyTable] = CommissionPolicyTable(
    version="ledger-v1",
    fee_currency_mode=FeeCurrencyMode.SETTLEMENT_ASSET,
    tiers={
        Direction.SETTLEMENT_TO_FIAT: _SETTLEMENT_TO_FIAT_TIERS,
        Direction.FIAT_TO_SETTLEMENT: _FIAT_TO_SETTLEMENT_TIERS,
    },
    round_settlement_fee=True,
)

CALCULATOR_V1: Final[CommissionPolicyTable] = CommissionPolicyTable(
    version="calculator-v1",
    fee_currency_mode=FeeCurrencyMode.OUTPUT_LEG,
    tiers={
        Direction.SETTLEMENT_TO_FIAT: _SETTLEMENT_TO_FIAT_TIERS,
        Direction.FIAT_TO_SETTLEMENT: _FIAT_TO_SETTLEMENT_TIERS,
    },
)

AUTOSYNC_V1: Final[CommissionPolicyTable] = CommissionPolicyTable(
    version="autosync-v1",
    fee_currency_mode=FeeCurrencyMode.SETTLEMENT_ASSET,
    tiers={
        Direction.SETTLEMENT_TO_FIAT: _AUTOSYNC_TIERS,
        Direction.FIAT_TO_SETTLEMENT: _AUTOSYNC_TIERS,
    },
    percent_mode=PercentMode.TIER_RATE,
)

POLICY_VERSIONS: Final[dict[str, CommissionPolicyTable]] = {
    policy.version: policy for policy in (LEDGER_V1, CALCULATOR_V1, AUTOSYNC_V1)
}

DEFAULT_POLICY_VERSION: Final[str] = CALCULATOR_V1.version


def get_policy(version: str) -> CommissionPolicyTable:
    """
    Таблица комиссий по версии.

    Args:
        version: Имя версии (например, 'ledger-v1')

    Returns:
        CommissionPolicyTable

    Raises:
        UnknownPolicyVersion: Если версия не зарегистрирована
    """
    try:
        return POLICY_VERSIONS[version]
    except KeyError:
        known = ", ".join(sorted(POLICY_VERSIONS))
        raise UnknownPolicyVersion(
            f"Unknown commission policy version {version!r} (known: {known})"
        ) from None
