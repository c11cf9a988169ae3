"""
JSON Schema Contract Validators

Модуль для валидации JSON документов согласно формальным JSON Schema контрактам.
Использует библиотеку jsonschema для проверки соответствия данных схемам.

Схемы:
- deal.json (сделка в журнале)
- ledger.json (документ журнала по дням)
- coingecko_price.json (ответ публичного API курсов)
"""

import json
from pathlib import Path
from typing import Any, Dict

import jsonschema
from jsonschema import Draft202012Validator


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """
    Загрузчик JSON Schema файлов.

    Автоматически находит схемы в contracts/schema/ относительно корня проекта.
    """

    def __init__(self, schema_dir: Path | None = None):
        # Корень проекта: 4 уровня вверх от этого файла
        self._schema_dir = schema_dir or (
            Path(__file__).parent.parent.parent.parent / "contracts" / "schema"
        )
        if not self._schema_dir.exists():
            raise RuntimeError(f"Schema directory not found: {self._schema_dir}")

        # Кэш загруженных схем
        self._schemas: Dict[str, Dict[str, Any]] = {}

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Загрузка JSON Schema файла.

        Args:
            schema_name: Имя схемы без расширения (например, 'deal')

        Returns:
            Загруженная схема как dict

        Raises:
            FileNotFoundError: Если файл схемы не найден
            ValueError: Если файл не является валидной JSON Schema
        """
        if schema_name in self._schemas:
            return self._schemas[schema_name]

        schema_path = self._schema_dir / f"{schema_name}.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")

        with open(schema_path, "r", encoding="utf-8") as f:
            schema = json.load(f)

        # Валидируем саму схему (meta-validation)
        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"Invalid JSON Schema in {schema_name}.json: {e}")

        self._schemas[schema_name] = schema
        return schema


# Глобальный экземпляр загрузчика
_SCHEMA_LOADER = SchemaLoader()


# =============================================================================
# CONTRACT VALIDATORS
# =============================================================================


class ContractValidator:
    """
    Базовый класс для валидаторов контрактов.

    Инкапсулирует логику валидации данных против JSON Schema.
    """

    def __init__(self, schema_name: str):
        """
        Args:
            schema_name: Имя схемы для валидации
        """
        self.schema_name = schema_name
        self.schema = _SCHEMA_LOADER.load_schema(schema_name)
        self.validator = Draft202012Validator(self.schema)

    def validate(self, data: Dict[str, Any]) -> None:
        """
        Валидация данных против схемы.

        Raises:
            ValidationError: Если данные не соответствуют схеме
        """
        self.validator.validate(data)

    def is_valid(self, data: Dict[str, Any]) -> bool:
        """Проверка валидности данных без exception."""
        return self.validator.is_valid(data)

    def iter_errors(self, data: Dict[str, Any]):
        """
        Итератор по всем ошибкам валидации.

        Yields:
            ValidationError объекты для каждой найденной ошибки
        """
        return self.validator.iter_errors(data)


class DealValidator(ContractValidator):
    """Валидатор для deal контракта."""

    def __init__(self):
        super().__init__("deal")


class LedgerValidator(ContractValidator):
    """Валидатор для ledger контракта."""

    def __init__(self):
        super().__init__("ledger")


class RateFeedValidator(ContractValidator):
    """Валидатор ответа CoinGecko /simple/price."""

    def __init__(self):
        super().__init__("coingecko_price")


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def validate_deal(data: Dict[str, Any]) -> None:
    """
    Валидация сделки.

    Raises:
        ValidationError: Если данные не соответствуют схеме
    """
    DealValidator().validate(data)


def validate_ledger(data: Dict[str, Any]) -> None:
    """
    Валидация документа журнала (включая каждую сделку).

    Raises:
        ValidationError: Если данные не соответствуют схеме
    """
    LedgerValidator().validate(data)

    deal_validator = DealValidator()
    for day in data["days"].values():
        for deal in day["deals"]:
            deal_validator.validate(deal)


def validate_rate_feed(data: Dict[str, Any]) -> None:
    """
    Валидация ответа API курсов.

    Raises:
        ValidationError: Если данные не соответствуют схеме
    """
    RateFeedValidator().validate(data)
