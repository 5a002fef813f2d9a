"""
Contract Validation Module

Валидация JSON контрактов: конфигурация каталога и внешние результаты
симуляции (turn, пересчёт цен, governance, сделки).
"""

from .validators import (
    ContractValidator,
    GovernanceResolutionValidator,
    PriceRecalculationResultValidator,
    SchemaLoader,
    SectorCatalogValidator,
    TradeResultValidator,
    TurnResultValidator,
    validate_governance_resolution,
    validate_price_recalculation_result,
    validate_sector_catalog,
    validate_trade_result,
    validate_turn_result,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "SectorCatalogValidator",
    "TurnResultValidator",
    "PriceRecalculationResultValidator",
    "GovernanceResolutionValidator",
    "TradeResultValidator",
    # Functions
    "validate_sector_catalog",
    "validate_turn_result",
    "validate_price_recalculation_result",
    "validate_governance_resolution",
    "validate_trade_result",
]
