"""
JSON Schema Contract Validators

Валидация конфигурации и внешних результатов симуляции согласно формальным
JSON Schema контрактам (Draft 2020-12, библиотека jsonschema).

Схемы:
- sector_catalog.json — версионированный каталог секторов/ресурсов/продуктов
- turn_result.json — результат одного turn
- price_recalculation_result.json — принудительный пересчёт цен акций
- governance_resolution.json — разрешение предложения совета
- trade_result.json — исполненная сделка с акциями
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

        self._schemas: Dict[str, Dict[str, Any]] = {}

    @property
    def schema_dir(self) -> Path:
        return self._schema_dir

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Загрузка JSON Schema файла (с кэшированием).

        Args:
            schema_name: Имя схемы без расширения (например, 'turn_result')

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

        # meta-validation
        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"Invalid JSON Schema in {schema_name}.json: {e}")

        self._schemas[schema_name] = schema
        return schema


_SCHEMA_LOADER = SchemaLoader()


# =============================================================================
# CONTRACT VALIDATORS
# =============================================================================


class ContractValidator:
    """
    Базовый класс валидатора контракта.

    Инкапсулирует Draft202012Validator для одной схемы.
    """

    schema_name: str = ""

    def __init__(self, schema_name: str | None = None):
        self.schema_name = schema_name or self.schema_name
        self.schema = _SCHEMA_LOADER.load_schema(self.schema_name)
        self.validator = Draft202012Validator(self.schema)

    def validate(self, data: Dict[str, Any]) -> None:
        """
        Raises:
            jsonschema.ValidationError: Если данные не соответствуют схеме
        """
        self.validator.validate(data)

    def is_valid(self, data: Dict[str, Any]) -> bool:
        return self.validator.is_valid(data)

    def iter_errors(self, data: Dict[str, Any]):
        """Итератор по всем ошибкам валидации."""
        return self.validator.iter_errors(data)


class SectorCatalogValidator(ContractValidator):
    """Каталог секторов (конфигурация ChainModel)."""

    schema_name = "sector_catalog"


class TurnResultValidator(ContractValidator):
    schema_name = "turn_result"


class PriceRecalculationResultValidator(ContractValidator):
    schema_name = "price_recalculation_result"


class GovernanceResolutionValidator(ContractValidator):
    schema_name = "governance_resolution"


class TradeResultValidator(ContractValidator):
    schema_name = "trade_result"


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def validate_sector_catalog(data: Dict[str, Any]) -> None:
    """
    Валидация каталога секторов.

    Raises:
        ValidationError: Если данные не соответствуют схеме
    """
    SectorCatalogValidator().validate(data)


def validate_turn_result(data: Dict[str, Any]) -> None:
    TurnResultValidator().validate(data)


def validate_price_recalculation_result(data: Dict[str, Any]) -> None:
    PriceRecalculationResultValidator().validate(data)


def validate_governance_resolution(data: Dict[str, Any]) -> None:
    GovernanceResolutionValidator().validate(data)


def validate_trade_result(data: Dict[str, Any]) -> None:
    TradeResultValidator().validate(data)
