"""Desk configuration loaded from environment variables (prefix DESK_) and .env"""
import logging
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.core.domain.currency import SETTLEMENT_ASSET, Balances, Currency
from src.core.math.commission import CommissionEngine
from src.core.math.commission_policy import AUTOSYNC_V1, DEFAULT_POLICY_VERSION, get_policy
from src.desk.deal_form import DealFormState, DealFormSync
from src.desk.operators import OperatorAccount, OperatorDirectory
from src.ledger.store import InMemoryLedgerStore, JsonFileLedgerStore
from src.rates.provider import CoinGeckoRateProvider

logger = logging.getLogger(__name__)

DEFAULT_NOTE_TAGS = ["важное", "проверить", "задержка", "проблема"]

# Daily percent the autosync policy starts a day with
AUTOSYNC_DAILY_PERCENT = "1.0"


class Settings(BaseSettings):
    """Desk settings; engine, store and operator directory are built from them"""

    # Commission
    POLICY_VERSION: str = Field(DEFAULT_POLICY_VERSION, description="Commission policy table version")
    SETTLEMENT_ASSET: Currency = Field(SETTLEMENT_ASSET, description="Crypto leg all tiers are denominated in")
    DEFAULT_DAILY_PERCENT: Optional[str] = Field(
        None, description="Daily commission percent offered for a new day; blank means fee tiers"
    )

    # Rate feed
    RATE_FEED_URL: str = Field(
        "https://api.coingecko.com/api/v3/simple/price?ids=tether&vs_currencies=pln,eur,usd",
        description="Public rate lookup endpoint",
    )
    RATE_POLL_INTERVAL_SEC: float = Field(60.0, gt=0, description="Rate refresh interval")
    RATE_REQUEST_TIMEOUT_SEC: float = Field(10.0, gt=0, description="HTTP timeout for one refresh")
    RATE_STALE_AFTER_SEC: float = Field(180.0, gt=0, description="Snapshot age after which rates are stale")

    # Ledger
    LEDGER_PATH: Optional[Path] = Field(None, description="JSON ledger file; in-memory when unset")
    DEFAULT_OPENING_BALANCE: Decimal = Field(
        Decimal("1000000"), description="Opening balance per currency for a day with none set"
    )

    # Operators and annotation vocabulary
    OPERATORS: List[OperatorAccount] = Field(default_factory=list, description="Operator accounts (JSON)")
    NOTE_TAGS: List[str] = Field(default_factory=lambda: list(DEFAULT_NOTE_TAGS), description="Suggested note tags")

    LOG_LEVEL: str = Field("INFO", description="Root log level for the CLI")

    model_config = SettingsConfigDict(
        env_prefix="DESK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def default_opening_balances(self) -> Balances:
        """Opening balances used when a day has none stored"""
        return Balances.uniform(self.DEFAULT_OPENING_BALANCE)

    @property
    def default_daily_percent(self) -> str:
        """Daily percent for a day with none stored; only autosync-v1 seeds one"""
        if self.DEFAULT_DAILY_PERCENT is not None:
            return self.DEFAULT_DAILY_PERCENT.strip()
        return AUTOSYNC_DAILY_PERCENT if self.POLICY_VERSION == AUTOSYNC_V1.version else ""

    def build_engine(self) -> CommissionEngine:
        """Commission engine for the configured policy version"""
        return CommissionEngine(policy=get_policy(self.POLICY_VERSION), settlement_asset=self.SETTLEMENT_ASSET)

    def build_ledger_store(self) -> InMemoryLedgerStore:
        """JSON file store when LEDGER_PATH is set, in-memory otherwise"""
        if self.LEDGER_PATH is None:
            return InMemoryLedgerStore(self.default_opening_balances, self.default_daily_percent, self.NOTE_TAGS)
        return JsonFileLedgerStore(
            self.LEDGER_PATH, self.default_opening_balances, self.default_daily_percent, self.NOTE_TAGS
        )

    def build_deal_form(self, daily_percent: Optional[str] = None) -> DealFormSync:
        """New-deal form on the configured engine, seeded with the day's percent"""
        if daily_percent is None:
            daily_percent = self.default_daily_percent
        return DealFormSync(self.build_engine(), DealFormState(daily_percent=daily_percent))

    def build_rate_provider(self) -> CoinGeckoRateProvider:
        """Rate provider for the configured feed URL"""
        return CoinGeckoRateProvider(url=self.RATE_FEED_URL, timeout=self.RATE_REQUEST_TIMEOUT_SEC)

    def build_operator_directory(self) -> OperatorDirectory:
        """Login directory from the configured accounts"""
        if not self.OPERATORS:
            logger.warning("No operator accounts configured, every login will be rejected")
        return OperatorDirectory(self.OPERATORS)


@lru_cache
def get_settings() -> Settings:
    """Process-wide settings instance"""
    return Settings()


def configure_logging(level: str = "INFO") -> None:
    """Root logging setup for command-line use"""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
