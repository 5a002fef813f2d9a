"""Тесты UnitEconomics (экономика юнита в час).

Coverage:
- Production: выручка выходов по рынку, затраты = труд + входы
- Retail/service: оптовые правила и пол минимальной маржи
- Табличные исключения сектора (Defense)
- Плоский fallback для юнитов без потоков цепочки
- Региональный множитель только для extraction
- Зафиксированные цены (snapshot) и экономика market entry
"""

import pytest

from src.core.domain.catalog import UnitType
from src.core.domain.corporation import MarketEntry
from src.core.domain.errors import UnknownCatalogEntry, UnsupportedUnitType
from src.economy.chain_model import ChainModel
from src.economy.market_pricer import MarketPricer
from src.economy.unit_economics import UnitEconomics


@pytest.fixture(scope="module")
def chain() -> ChainModel:
    return ChainModel.default()


@pytest.fixture
def economics(chain) -> UnitEconomics:
    return UnitEconomics(chain, MarketPricer(chain))


def _custom_economics() -> UnitEconomics:
    """Каталог с одним производящим и одним fallback-сектором."""
    defaults = {"labor_cost": 0.0, "base_revenue": 0.0, "base_cost": 0.0}
    chain = ChainModel.from_dict(
        {
            "version": "test.2",
            "resources": [],
            "products": [{"name": "Widget", "base_price": 1500.0}],
            "unit_defaults": {
                "retail": {"labor_cost": 250.0, "base_revenue": 500.0, "base_cost": 300.0},
                "production": dict(defaults),
                "service": dict(defaults),
                "extraction": dict(defaults),
            },
            "sectors": [
                {"name": "Widgets", "unit_types": ["production"], "produces": "Widget"},
                {"name": "Kiosks", "unit_types": ["retail"]},
            ],
            "flows": [
                {
                    "sector": "Widgets",
                    "unit_type": "production",
                    "inputs": [],
                    "outputs": [{"item": "Widget", "rate": 1.0}],
                    "labor_cost": 400.0,
                },
                {"sector": "Kiosks", "unit_type": "retail", "inputs": [], "outputs": []},
            ],
            "rules": [],
        }
    )
    return UnitEconomics(chain, MarketPricer(chain))


class TestProduction:
    """Тесты production-юнитов."""

    def test_single_output_without_inputs(self):
        """Выход 1.0 × 1500, труд 400 → revenue 1500, cost 400."""
        result = _custom_economics().hourly_economics("Widgets", UnitType.PRODUCTION, "TX")
        assert result.revenue_per_hour == 1500.0
        assert result.cost_per_hour == 400.0
        assert result.profit_per_hour == 1100.0
        assert result.is_chain_derived

    def test_light_industry_at_base_prices(self, economics):
        """400 + 0.4×1000 + 0.5×850 + 0.5×200 = 1325."""
        result = economics.hourly_economics("Light Industry", UnitType.PRODUCTION, "CA")
        assert result.revenue_per_hour == pytest.approx(1500.0)
        assert result.input_cost == pytest.approx(925.0)
        assert result.cost_per_hour == pytest.approx(1325.0)
        assert result.labor_cost == 400.0

    def test_region_does_not_scale_production(self, economics):
        ca = economics.hourly_economics("Light Industry", UnitType.PRODUCTION, "CA")
        wy = economics.hourly_economics("Light Industry", UnitType.PRODUCTION, "WY")
        assert ca.revenue_per_hour == wy.revenue_per_hour
        assert ca.region_multiplier == 5.0
        assert wy.region_multiplier == 1.0

    def test_prices_override(self, economics):
        result = economics.hourly_economics(
            "Light Industry", UnitType.PRODUCTION, "TX", prices={"Manufactured Goods": 2000.0}
        )
        assert result.revenue_per_hour == pytest.approx(2000.0)
        # Отсутствующие в snapshot имена берутся из pricer
        assert result.cost_per_hour == pytest.approx(1325.0)

    def test_input_price_rise_increases_cost(self, chain):
        pricer = MarketPricer(chain, seed_prices={"Steel": 1050.0})
        result = UnitEconomics(chain, pricer).hourly_economics(
            "Light Industry", UnitType.PRODUCTION, "TX"
        )
        assert result.cost_per_hour == pytest.approx(1425.0)


class TestRetailAndService:
    """Тесты оптовых правил retail/service."""

    def test_retail_margin_floor(self, economics):
        """cost = 250 + 1500×2×0.995 = 3235; revenue = max(3000, 3235×1.0005)."""
        result = economics.hourly_economics("Retail", UnitType.RETAIL, "NY")
        assert result.cost_per_hour == pytest.approx(3235.0)
        assert result.revenue_per_hour == pytest.approx(3236.6175)
        assert result.revenue_per_hour >= result.cost_per_hour * 1.0005 - 1e-9

    def test_finance_service(self, economics):
        """Перепродаваемое электричество без оптовой скидки."""
        result = economics.hourly_economics("Finance", UnitType.SERVICE, "NY")
        assert result.cost_per_hour == pytest.approx(7712.5)
        assert result.revenue_per_hour == pytest.approx(7716.35625)

    def test_defense_retail_rule(self, economics):
        """Defense: rate 1.0, скидка 0.8, выручка = оптовая стоимость × 1.0."""
        result = economics.hourly_economics("Defense", UnitType.RETAIL, "VA")
        assert result.input_cost == pytest.approx(12000.0)
        assert result.cost_per_hour == pytest.approx(12250.0)
        assert result.revenue_per_hour == pytest.approx(12256.125)

    def test_energy_service_resells_electricity(self, economics):
        result = economics.hourly_economics("Energy", UnitType.SERVICE, "TX")
        assert result.is_chain_derived
        assert result.cost_per_hour == pytest.approx(250.0)
        assert result.revenue_per_hour == pytest.approx(250.125)

    def test_unsupported_unit_type(self, economics):
        with pytest.raises(UnsupportedUnitType):
            economics.hourly_economics("Light Industry", UnitType.RETAIL, "TX")


class TestFallback:
    """Тесты плоского fallback."""

    def test_flat_rates(self):
        result = _custom_economics().hourly_economics("Kiosks", UnitType.RETAIL, "CA")
        assert not result.is_chain_derived
        assert result.revenue_per_hour == 500.0
        assert result.cost_per_hour == 300.0
        assert result.input_cost == 0.0


class TestExtraction:
    """Тесты extraction-юнитов и множителя региона."""

    def test_region_scales_extraction_revenue(self, economics):
        """Iron Ore 2.0 × 120 × множитель; затраты 500 + 50 + 525."""
        ca = economics.hourly_economics("Mining", UnitType.EXTRACTION, "CA")
        wy = economics.hourly_economics("Mining", UnitType.EXTRACTION, "WY")
        assert ca.revenue_per_hour == pytest.approx(1200.0)
        assert wy.revenue_per_hour == pytest.approx(240.0)
        assert ca.cost_per_hour == pytest.approx(1075.0)
        assert wy.cost_per_hour == ca.cost_per_hour

    def test_unknown_region(self, economics):
        with pytest.raises(UnknownCatalogEntry):
            economics.hourly_economics("Mining", UnitType.EXTRACTION, "ZZ")


class TestEntryEconomics:
    """Тесты экономики market entry."""

    def test_sum_over_units(self, economics):
        entry = MarketEntry(
            entry_id=1,
            corporation_id=1,
            region="CA",
            sector="Light Industry",
            unit_counts={UnitType.PRODUCTION: 3},
            created_ts_utc_ms=0,
        )
        result = economics.entry_economics(entry)
        assert result.revenue_per_hour == pytest.approx(4500.0)
        assert result.cost_per_hour == pytest.approx(3975.0)
        assert result.profit_per_hour == pytest.approx(525.0)
        assert set(result.breakdown) == {UnitType.PRODUCTION}

    def test_empty_entry(self, economics):
        entry = MarketEntry(
            entry_id=2, corporation_id=1, region="CA", sector="Retail", created_ts_utc_ms=0
        )
        result = economics.entry_economics(entry)
        assert result.revenue_per_hour == 0.0
        assert result.breakdown == {}
