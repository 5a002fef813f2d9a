"""Тесты региональных множителей и ёмкости секторов."""

import pytest

from src.core.domain.errors import UnknownCatalogEntry
from src.economy.regions import (
    REGION_NAMES,
    capacity_tier,
    region_capacity,
    region_multiplier,
    remaining_capacity,
    validate_region,
)


class TestRegions:
    """Тесты lookup по коду штата."""

    def test_all_states_known(self):
        assert len(REGION_NAMES) == 50
        assert validate_region("TX") == "TX"

    def test_unknown_region(self):
        with pytest.raises(UnknownCatalogEntry):
            region_multiplier("ZZ")

    @pytest.mark.parametrize(
        "code, multiplier, capacity",
        [("CA", 5.0, 75), ("TX", 4.5, 67), ("CO", 2.0, 30), ("WY", 1.0, 15)],
    )
    def test_multiplier_and_capacity(self, code, multiplier, capacity):
        assert region_multiplier(code) == multiplier
        assert region_capacity(code) == capacity

    @pytest.mark.parametrize("code, tier", [("NY", "High"), ("CO", "Medium"), ("WY", "Low")])
    def test_capacity_tier(self, code, tier):
        assert capacity_tier(code) == tier

    def test_remaining_capacity(self):
        assert remaining_capacity("WY", 4) == (15, 11)
        assert remaining_capacity("WY", 20) == (15, 0)
