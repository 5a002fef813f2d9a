"""
Default Sector Catalog — встроенная версия каталога производственной цепочки

Каталог описан как данные (dict), совместимые с
contracts/schema/sector_catalog.json; ChainModel.default() валидирует его так
же, как любой внешний файл конфигурации.

Стандартные rate (на юнит-час):
- production: выпуск 1.0, ресурс 0.5, продукт 0.5, электричество 0.5
- extraction: выпуск 2.0, электричество 0.25
- retail: перепродаваемый продукт 2.0
- service: перепродаваемый продукт 1.5, электричество 0.5
"""

from typing import Any, Dict, Final, List

CATALOG_VERSION: Final[str] = "2024.1"

# =============================================================================
# RATES
# =============================================================================

PRODUCTION_OUTPUT_RATE: Final[float] = 1.0
PRODUCTION_RESOURCE_CONSUMPTION: Final[float] = 0.5
PRODUCTION_PRODUCT_CONSUMPTION: Final[float] = 0.5
PRODUCTION_ELECTRICITY_CONSUMPTION: Final[float] = 0.5
EXTRACTION_OUTPUT_RATE: Final[float] = 2.0
EXTRACTION_ELECTRICITY_CONSUMPTION: Final[float] = 0.25
RETAIL_PRODUCT_CONSUMPTION: Final[float] = 2.0
SERVICE_PRODUCT_CONSUMPTION: Final[float] = 1.5
SERVICE_ELECTRICITY_CONSUMPTION: Final[float] = 0.5

RETAIL_WHOLESALE_DISCOUNT: Final[float] = 0.995
SERVICE_WHOLESALE_DISCOUNT: Final[float] = 0.995
DEFENSE_WHOLESALE_DISCOUNT: Final[float] = 0.8
DEFENSE_REVENUE_ON_COST_MULTIPLIER: Final[float] = 1.0
DEFENSE_CONSUMPTION: Final[float] = 1.0
MIN_GROSS_MARGIN: Final[float] = 0.0005

ELECTRICITY: Final[str] = "Electricity"
TECH: Final[str] = "Technology Products"
GOODS: Final[str] = "Manufactured Goods"
LOGISTICS: Final[str] = "Logistics Capacity"
STEEL: Final[str] = "Steel"


# =============================================================================
# ITEMS
# =============================================================================

RESOURCE_BASE_PRICES: Final[Dict[str, float]] = {
    "Oil": 75.0,
    "Iron Ore": 120.0,
    "Rare Earth": 9000.0,
    "Copper": 8500.0,
    "Fertile Land": 3500.0,
    "Lumber": 450.0,
    "Chemical Compounds": 2200.0,
    "Coal": 65.0,
}

PRODUCT_REFERENCE_VALUES: Final[Dict[str, float]] = {
    TECH: 5000.0,
    GOODS: 1500.0,
    ELECTRICITY: 200.0,
    "Food Products": 500.0,
    "Construction Capacity": 2500.0,
    "Pharmaceutical Products": 8000.0,
    "Defense Equipment": 15000.0,
    LOGISTICS: 1000.0,
    STEEL: 850.0,
}

# labor_cost, base_revenue, base_cost (USD/час)
UNIT_DEFAULTS: Final[Dict[str, Dict[str, float]]] = {
    "retail": {"labor_cost": 250.0, "base_revenue": 500.0, "base_cost": 300.0},
    "production": {"labor_cost": 400.0, "base_revenue": 800.0, "base_cost": 600.0},
    "service": {"labor_cost": 150.0, "base_revenue": 400.0, "base_cost": 200.0},
    "extraction": {"labor_cost": 500.0, "base_revenue": 1000.0, "base_cost": 700.0},
}


# =============================================================================
# SECTORS
# =============================================================================

# name -> (produces, consumes, extracts, retail goods, service goods)
_SECTOR_TABLE: Final[Dict[str, tuple]] = {
    "Technology": (TECH, "Rare Earth", (), (), ()),
    "Finance": (None, None, (), (TECH,), (TECH,)),
    "Healthcare": (None, None, (), ("Pharmaceutical Products",), ("Pharmaceutical Products",)),
    "Light Industry": (GOODS, None, (), (), ()),
    "Energy": (ELECTRICITY, None, ("Oil",), (), ()),
    "Retail": (None, None, (), (GOODS,), (GOODS,)),
    "Real Estate": (None, None, (), ("Construction Capacity",), ("Construction Capacity",)),
    "Transportation": (LOGISTICS, None, (), (LOGISTICS,), (LOGISTICS,)),
    "Media": (None, None, (), (TECH,), (TECH,)),
    "Telecommunications": (None, None, (), (TECH,), (TECH,)),
    "Agriculture": ("Food Products", "Fertile Land", ("Fertile Land",), ("Food Products",), ("Food Products",)),
    "Defense": ("Defense Equipment", None, (), ("Defense Equipment",), (TECH, "Defense Equipment")),
    "Hospitality": (None, None, (), ("Food Products",), ("Food Products",)),
    "Construction": ("Construction Capacity", "Lumber", (), ("Construction Capacity",), ("Construction Capacity",)),
    "Pharmaceuticals": ("Pharmaceutical Products", "Chemical Compounds", ("Chemical Compounds",), ("Pharmaceutical Products",), ("Pharmaceutical Products",)),
    "Mining": (None, None, ("Iron Ore", "Coal", "Copper", "Rare Earth"), (), ()),
    "Heavy Industry": (STEEL, "Iron Ore", (), (), ()),
    "Forestry": (None, None, ("Lumber",), (), ()),
}

# Продукты, потребляемые production-юнитами (по PRODUCTION_PRODUCT_CONSUMPTION)
_PRODUCTION_PRODUCT_DEMANDS: Final[Dict[str, tuple]] = {
    "Light Industry": (STEEL,),
    "Transportation": (STEEL,),
    "Defense": (STEEL,),
    "Construction": (STEEL,),
}

# Energy production не потребляет собственное электричество,
# Heavy Industry: повышенное потребление
_PRODUCTION_ELECTRICITY: Final[Dict[str, float]] = {
    "Energy": 0.0,
    "Heavy Industry": 0.75,
}

# Дополнительные (не перепродаваемые) входы production/extraction
_EXTRA_INPUTS: Final[Dict[tuple, tuple]] = {
    ("Energy", "production"): (("Oil", 0.3), ("Coal", 0.2), (LOGISTICS, 0.3)),
    ("Light Industry", "production"): ((LOGISTICS, 0.4),),
    ("Agriculture", "production"): ((GOODS, 0.3),),
    ("Pharmaceuticals", "production"): ((TECH, 0.25),),
    ("Defense", "production"): ((TECH, 0.4),),
    ("Construction", "production"): ((GOODS, 0.3),),
    ("Heavy Industry", "production"): (("Coal", 0.3),),
    ("Mining", "extraction"): ((GOODS, 0.35),),
}

# Секторы, чьи service-юниты перепродают только электричество
_ELECTRICITY_SERVICE_SECTORS: Final[frozenset] = frozenset({"Energy"})

# Дополнительные перепродаваемые входы service-юнитов
_EXTRA_SERVICE_GOODS: Final[Dict[str, tuple]] = {
    "Healthcare": ((TECH, 0.4),),
    "Retail": ((LOGISTICS, 0.3),),
    "Real Estate": ((LOGISTICS, 0.25),),
}


def _inp(item: str, rate: float, resold: bool = False, wholesale: bool = True) -> Dict[str, Any]:
    return {"item": item, "rate": rate, "resold": resold, "wholesale": wholesale}


def _production_flow(name: str, produces: str, consumes: str | None) -> Dict[str, Any]:
    inputs: List[Dict[str, Any]] = []
    if consumes is not None:
        inputs.append(_inp(consumes, PRODUCTION_RESOURCE_CONSUMPTION))
    for item, rate in _EXTRA_INPUTS.get((name, "production"), ()):
        inputs.append(_inp(item, rate))
    for product in _PRODUCTION_PRODUCT_DEMANDS.get(name, ()):
        inputs.append(_inp(product, PRODUCTION_PRODUCT_CONSUMPTION))
    electricity = _PRODUCTION_ELECTRICITY.get(name, PRODUCTION_ELECTRICITY_CONSUMPTION)
    if electricity > 0:
        inputs.append(_inp(ELECTRICITY, electricity))
    return {
        "sector": name,
        "unit_type": "production",
        "inputs": inputs,
        "outputs": [{"item": produces, "rate": PRODUCTION_OUTPUT_RATE}],
    }


def _extraction_flow(name: str, extracts: tuple) -> Dict[str, Any]:
    # Добывается первый ресурс из списка сектора
    inputs = [_inp(ELECTRICITY, EXTRACTION_ELECTRICITY_CONSUMPTION)]
    for item, rate in _EXTRA_INPUTS.get((name, "extraction"), ()):
        inputs.append(_inp(item, rate))
    return {
        "sector": name,
        "unit_type": "extraction",
        "inputs": inputs,
        "outputs": [{"item": extracts[0], "rate": EXTRACTION_OUTPUT_RATE}],
    }


def _retail_flow(name: str, goods: tuple) -> Dict[str, Any]:
    return {
        "sector": name,
        "unit_type": "retail",
        "inputs": [_inp(item, RETAIL_PRODUCT_CONSUMPTION, resold=True) for item in goods],
        "outputs": [],
    }


def _service_flow(name: str, goods: tuple) -> Dict[str, Any]:
    inputs = [_inp(item, SERVICE_PRODUCT_CONSUMPTION, resold=True) for item in goods]
    for item, rate in _EXTRA_SERVICE_GOODS.get(name, ()):
        inputs.append(_inp(item, rate, resold=True))
    inputs.append(
        _inp(ELECTRICITY, SERVICE_ELECTRICITY_CONSUMPTION, resold=True, wholesale=False)
    )
    return {"sector": name, "unit_type": "service", "inputs": inputs, "outputs": []}


def build_default_catalog() -> Dict[str, Any]:
    """
    Сборка встроенного каталога в формате sector_catalog.json.

    Returns:
        dict, валидный по схеме sector_catalog
    """
    sectors: List[Dict[str, Any]] = []
    flows: List[Dict[str, Any]] = []

    for name, (produces, consumes, extracts, retail_goods, service_goods) in _SECTOR_TABLE.items():
        unit_types: List[str] = []
        if retail_goods:
            unit_types.append("retail")
            flows.append(_retail_flow(name, retail_goods))
        if produces is not None:
            unit_types.append("production")
            flows.append(_production_flow(name, produces, consumes))
        if service_goods or name in _ELECTRICITY_SERVICE_SECTORS:
            unit_types.append("service")
            flows.append(_service_flow(name, service_goods))
        if extracts:
            unit_types.append("extraction")
            flows.append(_extraction_flow(name, extracts))

        demands = sorted(
            set(_PRODUCTION_PRODUCT_DEMANDS.get(name, ())) | set(retail_goods) | set(service_goods)
        )
        sectors.append(
            {
                "name": name,
                "unit_types": unit_types,
                "produces": produces,
                "consumes": consumes,
                "extracts": list(extracts),
                "demands": demands,
            }
        )

    wholesale_rule = {
        "discount": RETAIL_WHOLESALE_DISCOUNT,
        "min_margin": MIN_GROSS_MARGIN,
    }
    defense_rule = {
        "discount": DEFENSE_WHOLESALE_DISCOUNT,
        "min_margin": MIN_GROSS_MARGIN,
        "consumption_override": DEFENSE_CONSUMPTION,
        "revenue_on_cost_multiplier": DEFENSE_REVENUE_ON_COST_MULTIPLIER,
    }
    rules = [
        {"sector": "*", "unit_type": "retail", **wholesale_rule},
        {"sector": "*", "unit_type": "service", **dict(wholesale_rule, discount=SERVICE_WHOLESALE_DISCOUNT)},
        {"sector": "Defense", "unit_type": "retail", **defense_rule},
        {"sector": "Defense", "unit_type": "service", **defense_rule},
    ]

    return {
        "version": CATALOG_VERSION,
        "resources": [{"name": n, "base_price": p} for n, p in RESOURCE_BASE_PRICES.items()],
        "products": [{"name": n, "base_price": p} for n, p in PRODUCT_REFERENCE_VALUES.items()],
        "unit_defaults": {k: dict(v) for k, v in UNIT_DEFAULTS.items()},
        "sectors": sectors,
        "flows": flows,
        "rules": rules,
    }
