"""
Catalog — Модели каталога секторов, ресурсов и продуктов

Immutable Pydantic модели, описывающие производственную цепочку:
- CatalogItem: ресурс или продукт с базовой ценой
- UnitFlow: входы/выходы на один юнит-час для пары (sector, unit_type)
- SectorRule: табличные per-sector переопределения (discount, min margin)
- Sector: набор возможностей сектора

Каталог меняется только через версионированную конфигурацию
(contracts/schema/sector_catalog.json), но не через действия игроков.
"""

from enum import Enum
from typing import Dict, FrozenSet, Tuple

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# ENUMS
# =============================================================================


class UnitType(str, Enum):
    """Тип юнита внутри market entry."""

    RETAIL = "retail"
    PRODUCTION = "production"
    SERVICE = "service"
    EXTRACTION = "extraction"


# Канонический порядок типов юнитов
UNIT_TYPE_ORDER: Tuple[UnitType, ...] = (
    UnitType.RETAIL,
    UnitType.PRODUCTION,
    UnitType.SERVICE,
    UnitType.EXTRACTION,
)


class ItemKind(str, Enum):
    """Вид торгуемого объекта."""

    RESOURCE = "resource"
    PRODUCT = "product"


class CorpFocus(str, Enum):
    """Стратегический фокус корпорации (ограничивает типы юнитов)."""

    EXTRACTION = "extraction"
    PRODUCTION = "production"
    RETAIL = "retail"
    SERVICE = "service"
    DIVERSIFIED = "diversified"


FOCUS_ALLOWED_UNITS: Dict[CorpFocus, FrozenSet[UnitType]] = {
    CorpFocus.EXTRACTION: frozenset({UnitType.EXTRACTION}),
    CorpFocus.PRODUCTION: frozenset({UnitType.PRODUCTION, UnitType.EXTRACTION}),
    CorpFocus.RETAIL: frozenset({UnitType.RETAIL}),
    CorpFocus.SERVICE: frozenset({UnitType.SERVICE}),
    CorpFocus.DIVERSIFIED: frozenset(UNIT_TYPE_ORDER),
}


# =============================================================================
# ITEMS & FLOWS
# =============================================================================


class CatalogItem(BaseModel):
    """Ресурс или продукт с базовой (reference) ценой."""

    name: str = Field(..., min_length=1, description="Уникальное имя")
    kind: ItemKind = Field(..., description="resource | product")
    base_price: float = Field(..., gt=0, description="Базовая цена (USD за единицу)")

    model_config = {"frozen": True}


class FlowInput(BaseModel):
    """Потребление одного ресурса/продукта на юнит-час."""

    item: str = Field(..., min_length=1, description="Имя ресурса/продукта")
    rate: float = Field(..., ge=0, description="Количество на юнит-час")
    resold: bool = Field(
        default=False,
        description="Перепродаётся: входит и в затраты, и в выручку (retail/service)",
    )
    wholesale: bool = Field(
        default=True,
        description="К перепродаваемому входу применяются оптовые правила сектора",
    )

    model_config = {"frozen": True}

    @property
    def is_wholesale_good(self) -> bool:
        return self.resold and self.wholesale


class FlowOutput(BaseModel):
    """Выпуск одного ресурса/продукта на юнит-час."""

    item: str = Field(..., min_length=1, description="Имя ресурса/продукта")
    rate: float = Field(..., ge=0, description="Количество на юнит-час")

    model_config = {"frozen": True}


class UnitFlow(BaseModel):
    """
    Входы и выходы для пары (sector, unit_type).

    base_revenue/base_cost — плоский fallback, когда у юнита нет ни выходов
    цепочки, ни перепродаваемых входов.
    """

    sector: str = Field(..., min_length=1)
    unit_type: UnitType
    inputs: Tuple[FlowInput, ...] = Field(default=())
    outputs: Tuple[FlowOutput, ...] = Field(default=())
    labor_cost: float = Field(..., ge=0, description="Затраты на труд (USD/час)")
    base_revenue: float = Field(..., ge=0, description="Fallback выручка (USD/час)")
    base_cost: float = Field(..., ge=0, description="Fallback затраты (USD/час)")

    model_config = {"frozen": True}

    @field_validator("inputs")
    @classmethod
    def validate_unique_inputs(cls, v: Tuple[FlowInput, ...]) -> Tuple[FlowInput, ...]:
        names = [flow_input.item for flow_input in v]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate flow inputs: {names}")
        return v

    @property
    def is_chain_derived(self) -> bool:
        """True если выручка определяется ценами цепочки, а не fallback."""
        return bool(self.outputs) or any(i.resold for i in self.inputs)


class SectorRule(BaseModel):
    """
    Табличное переопределение экономики для (sector, unit_type).

    - discount: множитель оптовой закупочной цены перепродаваемых входов
    - min_margin: минимальная валовая маржа (revenue >= cost × (1 + min_margin))
    - consumption_override: фиксированный rate для перепродаваемых входов
    - revenue_on_cost_multiplier: выручка = оптовая стоимость × multiplier
    """

    discount: float = Field(default=1.0, gt=0, le=1.0)
    min_margin: float = Field(default=0.0, ge=0)
    consumption_override: float | None = Field(default=None, ge=0)
    revenue_on_cost_multiplier: float | None = Field(default=None, ge=0)

    model_config = {"frozen": True}


NEUTRAL_RULE = SectorRule()


# =============================================================================
# SECTOR
# =============================================================================


class Sector(BaseModel):
    """Сектор: имя и упорядоченный набор допустимых типов юнитов."""

    name: str = Field(..., min_length=1)
    unit_types: Tuple[UnitType, ...] = Field(..., description="Capability set")
    produces: str | None = Field(default=None, description="Производимый продукт")
    consumes: str | None = Field(default=None, description="Потребляемый ресурс")
    extracts: Tuple[str, ...] = Field(default=(), description="Добываемые ресурсы")
    demands: Tuple[str, ...] = Field(default=(), description="Потребляемые продукты")

    model_config = {"frozen": True}

    @field_validator("unit_types")
    @classmethod
    def order_unit_types(cls, v: Tuple[UnitType, ...]) -> Tuple[UnitType, ...]:
        unique = set(v)
        return tuple(ut for ut in UNIT_TYPE_ORDER if ut in unique)

    def supports(self, unit_type: UnitType) -> bool:
        return unit_type in self.unit_types
