"""
UnitEconomics — Выручка и затраты одного юнита в час

Для (sector, unit_type, region) по текущим ценам MarketPricer:

    cost    = labor + Σ input.rate × price × discount
    revenue = Σ output.rate × price + Σ по перепродаваемым входам

Правила:
- discount/consumption_override/revenue_on_cost_multiplier — из таблицы
  SectorRule (ChainModel.rule) и применяются только к оптовым товарам
  (resold и wholesale входы)
- retail/service: revenue >= cost × (1 + min_margin)
- юнит без выходов цепочки и без перепродаваемых входов → плоский fallback
  base_revenue/base_cost
- множитель региона масштабирует только выручку extraction; базовые ставки
  retail/service/production от региона не зависят
"""

from dataclasses import dataclass
from typing import Dict, Mapping

from src.core.domain.catalog import UNIT_TYPE_ORDER, UnitType
from src.core.domain.corporation import MarketEntry
from src.economy.chain_model import ChainModel
from src.economy.market_pricer import MarketPricer
from src.economy.regions import region_multiplier


# =============================================================================
# RESULT
# =============================================================================


@dataclass(frozen=True)
class UnitEconomicsResult:
    """Экономика одного юнита за час."""

    sector: str
    unit_type: UnitType
    revenue_per_hour: float
    cost_per_hour: float
    labor_cost: float
    input_cost: float
    region_multiplier: float
    is_chain_derived: bool  # False: использован плоский fallback

    @property
    def profit_per_hour(self) -> float:
        return self.revenue_per_hour - self.cost_per_hour


@dataclass(frozen=True)
class EntryEconomics:
    """Суммарная экономика market entry (все типы × количество юнитов)."""

    entry_id: int
    revenue_per_hour: float
    cost_per_hour: float
    breakdown: Dict[UnitType, UnitEconomicsResult]

    @property
    def profit_per_hour(self) -> float:
        return self.revenue_per_hour - self.cost_per_hour


# =============================================================================
# CALCULATOR
# =============================================================================


class UnitEconomics:
    """Калькулятор экономики юнитов поверх ChainModel и MarketPricer."""

    def __init__(self, chain: ChainModel, pricer: MarketPricer):
        self.chain = chain
        self.pricer = pricer

    def _price(self, name: str, prices: Mapping[str, float] | None) -> float:
        if prices is not None and name in prices:
            return prices[name]
        return self.pricer.price(name)

    def hourly_economics(
        self,
        sector: str,
        unit_type: UnitType,
        region: str,
        prices: Mapping[str, float] | None = None,
    ) -> UnitEconomicsResult:
        """
        Экономика одного юнита.

        Args:
            sector: Сектор
            unit_type: Тип юнита
            region: Код региона
            prices: Зафиксированные цены (например, MarketPricer.snapshot());
                отсутствующие имена берутся из pricer

        Returns:
            UnitEconomicsResult

        Raises:
            UnknownCatalogEntry: Неизвестный сектор/регион
            UnsupportedUnitType: Сектор не поддерживает тип юнита
        """
        unit_type = UnitType(unit_type)
        flow = self.chain.flow(sector, unit_type)
        rule = self.chain.rule(sector, unit_type)
        multiplier = region_multiplier(region)

        if not flow.is_chain_derived:
            return UnitEconomicsResult(
                sector=sector,
                unit_type=unit_type,
                revenue_per_hour=flow.base_revenue,
                cost_per_hour=flow.base_cost,
                labor_cost=flow.labor_cost,
                input_cost=0.0,
                region_multiplier=multiplier,
                is_chain_derived=False,
            )

        input_cost = 0.0
        revenue = 0.0

        # 1. Входы: оптовые товары с правилами сектора, остальное по рынку
        for flow_input in flow.inputs:
            price = self._price(flow_input.item, prices)
            if flow_input.is_wholesale_good:
                rate = (
                    rule.consumption_override
                    if rule.consumption_override is not None
                    else flow_input.rate
                )
                cost = price * rate * rule.discount
                if rule.revenue_on_cost_multiplier is not None:
                    revenue += cost * rule.revenue_on_cost_multiplier
                else:
                    revenue += price * rate
            else:
                cost = price * flow_input.rate
                if flow_input.resold:
                    revenue += cost
            input_cost += cost

        # 2. Выходы цепочки
        output_revenue = sum(
            output.rate * self._price(output.item, prices) for output in flow.outputs
        )
        if unit_type == UnitType.EXTRACTION:
            output_revenue *= multiplier
        revenue += output_revenue

        cost = flow.labor_cost + input_cost

        # 3. Пол минимальной валовой маржи
        if unit_type in (UnitType.RETAIL, UnitType.SERVICE) and rule.min_margin > 0:
            revenue = max(revenue, cost * (1 + rule.min_margin))

        return UnitEconomicsResult(
            sector=sector,
            unit_type=unit_type,
            revenue_per_hour=revenue,
            cost_per_hour=cost,
            labor_cost=flow.labor_cost,
            input_cost=input_cost,
            region_multiplier=multiplier,
            is_chain_derived=True,
        )

    def entry_economics(
        self, entry: MarketEntry, prices: Mapping[str, float] | None = None
    ) -> EntryEconomics:
        """Экономика market entry: Σ unit_economics × count по типам юнитов."""
        breakdown: Dict[UnitType, UnitEconomicsResult] = {}
        revenue = 0.0
        cost = 0.0
        for unit_type in UNIT_TYPE_ORDER:
            count = entry.count(unit_type)
            if count == 0:
                continue
            unit = self.hourly_economics(entry.sector, unit_type, entry.region, prices)
            breakdown[unit_type] = unit
            revenue += unit.revenue_per_hour * count
            cost += unit.cost_per_hour * count
        return EntryEconomics(
            entry_id=entry.entry_id,
            revenue_per_hour=revenue,
            cost_per_hour=cost,
            breakdown=breakdown,
        )
