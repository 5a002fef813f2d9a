"""
Economy — Цепочки поставок, цены ресурсов и экономика юнитов.
"""

from src.economy.chain_model import ChainModel
from src.economy.finances import (
    DISPLAY_PERIOD_HOURS,
    PeriodFinancials,
    allocate_pro_rata,
    dividend_for,
    period_financials,
)
from src.economy.market_pricer import (
    MS_PER_HOUR,
    FlowBatch,
    MarketPricer,
    PriceQuote,
    PricingConfig,
    scarcity_factor,
)
from src.economy.regions import (
    BASE_SECTOR_CAPACITY,
    REGION_MULTIPLIERS,
    REGION_NAMES,
    capacity_tier,
    region_capacity,
    region_multiplier,
    remaining_capacity,
    validate_region,
)
from src.economy.unit_economics import EntryEconomics, UnitEconomics, UnitEconomicsResult

__all__ = [
    # Catalog
    "ChainModel",
    # Pricing
    "MS_PER_HOUR",
    "FlowBatch",
    "MarketPricer",
    "PriceQuote",
    "PricingConfig",
    "scarcity_factor",
    # Unit economics
    "EntryEconomics",
    "UnitEconomics",
    "UnitEconomicsResult",
    # Finances
    "DISPLAY_PERIOD_HOURS",
    "PeriodFinancials",
    "allocate_pro_rata",
    "dividend_for",
    "period_financials",
    # Regions
    "BASE_SECTOR_CAPACITY",
    "REGION_MULTIPLIERS",
    "REGION_NAMES",
    "capacity_tier",
    "region_capacity",
    "region_multiplier",
    "remaining_capacity",
    "validate_region",
]
