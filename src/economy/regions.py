"""
Regions — Региональные множители и ёмкость секторов

Регион — код штата США. Множитель региона:
- масштабирует выручку extraction-юнитов (UnitEconomics)
- задаёт ёмкость сектора: floor(BASE_SECTOR_CAPACITY × multiplier) юнитов

Retail/service/production базовые ставки от множителя не зависят.
"""

import math
from typing import Dict, Final, Tuple

from src.core.domain.errors import UnknownCatalogEntry

# =============================================================================
# CONSTANTS
# =============================================================================

BASE_SECTOR_CAPACITY: Final[int] = 15

DEFAULT_REGION_MULTIPLIER: Final[float] = 1.0

REGION_NAMES: Final[Dict[str, str]] = {
    "AL": "Alabama", "AK": "Alaska", "AZ": "Arizona", "AR": "Arkansas",
    "CA": "California", "CO": "Colorado", "CT": "Connecticut", "DE": "Delaware",
    "FL": "Florida", "GA": "Georgia", "HI": "Hawaii", "ID": "Idaho",
    "IL": "Illinois", "IN": "Indiana", "IA": "Iowa", "KS": "Kansas",
    "KY": "Kentucky", "LA": "Louisiana", "ME": "Maine", "MD": "Maryland",
    "MA": "Massachusetts", "MI": "Michigan", "MN": "Minnesota", "MS": "Mississippi",
    "MO": "Missouri", "MT": "Montana", "NE": "Nebraska", "NV": "Nevada",
    "NH": "New Hampshire", "NJ": "New Jersey", "NM": "New Mexico", "NY": "New York",
    "NC": "North Carolina", "ND": "North Dakota", "OH": "Ohio", "OK": "Oklahoma",
    "OR": "Oregon", "PA": "Pennsylvania", "RI": "Rhode Island", "SC": "South Carolina",
    "SD": "South Dakota", "TN": "Tennessee", "TX": "Texas", "UT": "Utah",
    "VT": "Vermont", "VA": "Virginia", "WA": "Washington", "WV": "West Virginia",
    "WI": "Wisconsin", "WY": "Wyoming",
}

# Множители по населению (1.0 – 5.0); отсутствующие → 1.0
REGION_MULTIPLIERS: Final[Dict[str, float]] = {
    # West
    "CA": 5.00, "WA": 2.50, "OR": 1.50, "NV": 1.20, "AZ": 2.40, "UT": 1.20, "CO": 2.00,
    # Southwest
    "TX": 4.50, "OK": 1.40,
    # Midwest
    "IL": 3.80, "OH": 3.50, "MI": 3.00, "IN": 2.10, "WI": 1.90, "MN": 1.80, "MO": 1.90,
    "IA": 1.10, "KS": 1.10,
    # Southeast
    "FL": 3.50, "GA": 3.30, "NC": 3.20, "VA": 2.70, "TN": 2.20, "SC": 1.70, "AL": 1.60,
    "KY": 1.50, "LA": 1.50, "MS": 1.10, "AR": 1.10,
    # Northeast
    "NY": 4.00, "PA": 3.80, "NJ": 2.90, "MA": 2.20, "MD": 1.95, "CT": 1.20,
}


# =============================================================================
# LOOKUP
# =============================================================================


def validate_region(code: str) -> str:
    """
    Raises:
        UnknownCatalogEntry: Если код региона неизвестен
    """
    if code not in REGION_NAMES:
        raise UnknownCatalogEntry("region", code)
    return code


def region_multiplier(code: str) -> float:
    validate_region(code)
    return REGION_MULTIPLIERS.get(code, DEFAULT_REGION_MULTIPLIER)


def region_capacity(code: str) -> int:
    """Максимум юнитов одного сектора в регионе для одной корпорации."""
    return math.floor(BASE_SECTOR_CAPACITY * region_multiplier(code))


def capacity_tier(code: str) -> str:
    multiplier = region_multiplier(code)
    if multiplier >= 4.0:
        return "High"
    if multiplier >= 2.0:
        return "Medium"
    return "Low"


def remaining_capacity(code: str, used_units: int) -> Tuple[int, int]:
    """
    Returns:
        (capacity, remaining)
    """
    capacity = region_capacity(code)
    return capacity, max(0, capacity - used_units)
