"""
ChainModel — Каталог производственной цепочки

Статический (версионированный) каталог секторов, ресурсов, продуктов и
потоков (sector, unit_type) на юнит-час. Чистые данные + lookup, без мутаций.

Источник данных:
- ChainModel.default(): встроенный каталог (src/economy/catalog_defaults.py)
- ChainModel.from_dict(data): внешняя конфигурация, валидируется по
  contracts/schema/sector_catalog.json до построения модели

Неизвестное имя — ошибка программиста (UnknownCatalogEntry), а не
runtime-условие: каталог закрыт.
"""

from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from src.core.contracts import validate_sector_catalog
from src.core.domain.catalog import (
    NEUTRAL_RULE,
    CatalogItem,
    FlowInput,
    FlowOutput,
    ItemKind,
    Sector,
    SectorRule,
    UnitFlow,
    UnitType,
)
from src.core.domain.errors import UnknownCatalogEntry, UnsupportedUnitType
from src.economy.catalog_defaults import build_default_catalog

# Wildcard сектора в таблице правил
ANY_SECTOR = "*"


class ChainModel:
    """
    Immutable каталог производственной цепочки.

    Args:
        version: Версия каталога
        items: Ресурсы и продукты
        sectors: Секторы
        flows: Потоки для каждой пары (sector, unit_type) из capability set
        rules: Табличные правила; ключ (sector | "*", unit_type)
    """

    def __init__(
        self,
        version: str,
        items: Iterable[CatalogItem],
        sectors: Iterable[Sector],
        flows: Iterable[UnitFlow],
        rules: Mapping[Tuple[str, UnitType], SectorRule] | None = None,
    ):
        self._version = version
        self._items: Dict[str, CatalogItem] = {}
        for item in items:
            if item.name in self._items:
                raise ValueError(f"Duplicate catalog item: {item.name!r}")
            self._items[item.name] = item

        self._sectors: Dict[str, Sector] = {}
        for sector in sectors:
            if sector.name in self._sectors:
                raise ValueError(f"Duplicate sector: {sector.name!r}")
            self._sectors[sector.name] = sector

        self._flows: Dict[Tuple[str, UnitType], UnitFlow] = {}
        for flow in flows:
            key = (flow.sector, flow.unit_type)
            if key in self._flows:
                raise ValueError(f"Duplicate flow for {flow.sector}/{flow.unit_type.value}")
            self._flows[key] = flow

        self._rules: Dict[Tuple[str, UnitType], SectorRule] = dict(rules or {})

        self._check_references()

        # Индексы производителей/потребителей
        self._producers: Dict[str, List[Tuple[str, UnitType]]] = {name: [] for name in self._items}
        self._consumers: Dict[str, List[Tuple[str, UnitType]]] = {name: [] for name in self._items}
        for key, flow in self._flows.items():
            for output in flow.outputs:
                self._producers[output.item].append(key)
            for flow_input in flow.inputs:
                self._consumers[flow_input.item].append(key)

    # =========================================================================
    # CONSTRUCTION
    # =========================================================================

    @classmethod
    def default(cls) -> "ChainModel":
        """Встроенный каталог."""
        return cls.from_dict(build_default_catalog())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChainModel":
        """
        Построение каталога из конфигурации.

        Args:
            data: dict в формате sector_catalog.json

        Raises:
            jsonschema.ValidationError: Если data не соответствует схеме
            UnknownCatalogEntry: Если поток ссылается на неизвестное имя
            UnsupportedUnitType: Если поток задан для недоступного типа юнита
        """
        validate_sector_catalog(data)

        items = [
            CatalogItem(name=i["name"], kind=ItemKind.RESOURCE, base_price=i["base_price"])
            for i in data["resources"]
        ] + [
            CatalogItem(name=i["name"], kind=ItemKind.PRODUCT, base_price=i["base_price"])
            for i in data["products"]
        ]

        sectors = [
            Sector(
                name=s["name"],
                unit_types=tuple(UnitType(u) for u in s["unit_types"]),
                produces=s.get("produces"),
                consumes=s.get("consumes"),
                extracts=tuple(s.get("extracts", ())),
                demands=tuple(s.get("demands", ())),
            )
            for s in data["sectors"]
        ]

        defaults = data["unit_defaults"]
        flows = []
        for f in data["flows"]:
            unit_default = defaults[f["unit_type"]]
            flows.append(
                UnitFlow(
                    sector=f["sector"],
                    unit_type=UnitType(f["unit_type"]),
                    inputs=tuple(FlowInput(**i) for i in f["inputs"]),
                    outputs=tuple(FlowOutput(**o) for o in f["outputs"]),
                    labor_cost=f.get("labor_cost", unit_default["labor_cost"]),
                    base_revenue=f.get("base_revenue", unit_default["base_revenue"]),
                    base_cost=f.get("base_cost", unit_default["base_cost"]),
                )
            )

        rules: Dict[Tuple[str, UnitType], SectorRule] = {}
        for r in data["rules"]:
            fields = {k: v for k, v in r.items() if k not in ("sector", "unit_type")}
            rules[(r["sector"], UnitType(r["unit_type"]))] = SectorRule(**fields)

        return cls(data["version"], items, sectors, flows, rules)

    def to_dict(self) -> Dict[str, Any]:
        """Сериализация в формат sector_catalog.json."""
        flows = []
        for flow in self._flows.values():
            flows.append(
                {
                    "sector": flow.sector,
                    "unit_type": flow.unit_type.value,
                    "inputs": [i.model_dump() for i in flow.inputs],
                    "outputs": [o.model_dump() for o in flow.outputs],
                    "labor_cost": flow.labor_cost,
                    "base_revenue": flow.base_revenue,
                    "base_cost": flow.base_cost,
                }
            )
        defaults: Dict[str, Dict[str, float]] = {}
        for unit_type in UnitType:
            sample = next((f for f in self._flows.values() if f.unit_type == unit_type), None)
            defaults[unit_type.value] = {
                "labor_cost": sample.labor_cost if sample else 0.0,
                "base_revenue": sample.base_revenue if sample else 0.0,
                "base_cost": sample.base_cost if sample else 0.0,
            }
        return {
            "version": self._version,
            "resources": [
                {"name": i.name, "base_price": i.base_price}
                for i in self._items.values()
                if i.kind == ItemKind.RESOURCE
            ],
            "products": [
                {"name": i.name, "base_price": i.base_price}
                for i in self._items.values()
                if i.kind == ItemKind.PRODUCT
            ],
            "unit_defaults": defaults,
            "sectors": [
                {
                    "name": s.name,
                    "unit_types": [u.value for u in s.unit_types],
                    "produces": s.produces,
                    "consumes": s.consumes,
                    "extracts": list(s.extracts),
                    "demands": list(s.demands),
                }
                for s in self._sectors.values()
            ],
            "flows": flows,
            "rules": [
                {"sector": sector, "unit_type": unit_type.value, **rule.model_dump()}
                for (sector, unit_type), rule in self._rules.items()
            ],
        }

    def _check_references(self) -> None:
        for sector in self._sectors.values():
            for name in filter(None, (sector.produces, sector.consumes)):
                self.item(name)
            for name in sector.extracts + sector.demands:
                self.item(name)
            for unit_type in sector.unit_types:
                if (sector.name, unit_type) not in self._flows:
                    raise ValueError(
                        f"Sector {sector.name!r} supports {unit_type.value} but has no flow"
                    )

        for (sector_name, unit_type), flow in self._flows.items():
            sector = self.sector(sector_name)
            if not sector.supports(unit_type):
                raise UnsupportedUnitType(sector_name, unit_type.value)
            for flow_input in flow.inputs:
                self.item(flow_input.item)
            for output in flow.outputs:
                self.item(output.item)

        for sector_name, _ in self._rules:
            if sector_name != ANY_SECTOR:
                self.sector(sector_name)

    # =========================================================================
    # LOOKUP
    # =========================================================================

    @property
    def version(self) -> str:
        return self._version

    def sector(self, name: str) -> Sector:
        try:
            return self._sectors[name]
        except KeyError:
            raise UnknownCatalogEntry("sector", name) from None

    def item(self, name: str) -> CatalogItem:
        try:
            return self._items[name]
        except KeyError:
            raise UnknownCatalogEntry("resource/product", name) from None

    def sectors(self) -> Tuple[Sector, ...]:
        return tuple(self._sectors.values())

    def items(self) -> Mapping[str, CatalogItem]:
        return MappingProxyType(self._items)

    def can_build(self, sector: str, unit_type: UnitType) -> bool:
        return self.sector(sector).supports(unit_type)

    def flow(self, sector: str, unit_type: UnitType) -> UnitFlow:
        """
        Поток для пары (sector, unit_type).

        Raises:
            UnknownCatalogEntry: Неизвестный сектор
            UnsupportedUnitType: Сектор не поддерживает тип юнита
        """
        if not self.can_build(sector, unit_type):
            raise UnsupportedUnitType(sector, UnitType(unit_type).value)
        return self._flows[(sector, unit_type)]

    def rule(self, sector: str, unit_type: UnitType) -> SectorRule:
        """Правило сектора: точное совпадение → wildcard → нейтральное."""
        self.sector(sector)
        return self._rules.get(
            (sector, unit_type), self._rules.get((ANY_SECTOR, unit_type), NEUTRAL_RULE)
        )

    def producers_of(self, item: str) -> Tuple[Tuple[str, UnitType], ...]:
        self.item(item)
        return tuple(self._producers[item])

    def consumers_of(self, item: str) -> Tuple[Tuple[str, UnitType], ...]:
        self.item(item)
        return tuple(self._consumers[item])

    def unit_flow_totals(
        self, sector: str, counts: Mapping[UnitType, int]
    ) -> Dict[str, Tuple[float, float]]:
        """
        Суммарный вклад набора юнитов в supply/demand.

        Args:
            sector: Сектор
            counts: Количество юнитов по типам

        Returns:
            {item: (supply_per_hour, demand_per_hour)}
        """
        totals: Dict[str, List[float]] = {}
        for unit_type, count in counts.items():
            if count == 0:
                continue
            flow = self.flow(sector, unit_type)
            rule = self.rule(sector, unit_type)
            for output in flow.outputs:
                totals.setdefault(output.item, [0.0, 0.0])[0] += output.rate * count
            for flow_input in flow.inputs:
                rate = flow_input.rate
                if flow_input.is_wholesale_good and rule.consumption_override is not None:
                    rate = rule.consumption_override
                totals.setdefault(flow_input.item, [0.0, 0.0])[1] += rate * count
        return {name: (supply, demand) for name, (supply, demand) in totals.items()}
