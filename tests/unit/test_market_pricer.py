"""Тесты MarketPricer (цены по supply/demand).

Coverage:
- Базовая цена при нулевых потоках
- Кривая scarcity: рост с demand, потолок и пол цены
- Отклонение отрицательных агрегатов
- FlowBatch: коммутативность и применение целиком или никак
- История цен: шаг sampling и окно хранения
- Seed-цены для детерминированных сценариев
"""

import pytest

from src.core.domain.errors import SimulationValidationError, UnknownCatalogEntry
from src.economy.chain_model import ChainModel
from src.economy.market_pricer import (
    MS_PER_HOUR,
    FlowBatch,
    MarketPricer,
    PricingConfig,
    scarcity_factor,
)

T0 = 1_700_000_000_000


@pytest.fixture(scope="module")
def chain() -> ChainModel:
    return ChainModel.default()


@pytest.fixture
def pricer(chain) -> MarketPricer:
    return MarketPricer(chain)


class TestScarcityCurve:
    """Тесты функции scarcity."""

    def test_no_flow_is_neutral(self):
        assert scarcity_factor(0.0, 0.0, PricingConfig()) == 1.0

    def test_balanced_market(self):
        assert scarcity_factor(4.0, 4.0, PricingConfig()) == 1.0

    def test_capped(self):
        assert scarcity_factor(0.0, 5.0, PricingConfig()) == 10.0

    def test_monotonic_in_demand(self):
        config = PricingConfig()
        values = [scarcity_factor(2.0, d, config) for d in (0.5, 1.0, 2.0, 4.0)]
        assert values == sorted(values)

    def test_curve_exponent(self):
        assert scarcity_factor(1.0, 2.0, PricingConfig(curve_exponent=2.0)) == 4.0


class TestPrices:
    """Тесты текущих цен."""

    def test_initial_price_is_base(self, pricer):
        quote = pricer.quote("Steel")
        assert quote.current_price == 850.0
        assert quote.scarcity_factor == 1.0
        assert quote.supply == 0.0 and quote.demand == 0.0

    def test_demand_without_supply_hits_ceiling(self, pricer):
        assert pricer.record_flow("Steel", demand_delta=1.0) == 8500.0

    def test_oversupply_lowers_price(self, pricer):
        pricer.record_flow("Steel", supply_delta=2.0, demand_delta=1.0)
        assert pricer.price("Steel") == 425.0

    def test_price_floor(self, pricer):
        """Coal: 65 × 0.01 = 0.65 → пол 10.0."""
        pricer.record_flow("Coal", supply_delta=100.0, demand_delta=1.0)
        assert pricer.price("Coal") == 10.0

    def test_negative_aggregate_rejected(self, pricer):
        with pytest.raises(SimulationValidationError, match="would go negative"):
            pricer.record_flow("Oil", supply_delta=-1.0)
        assert pricer.quote("Oil").supply == 0.0

    def test_unknown_item_rejected(self, pricer):
        with pytest.raises(UnknownCatalogEntry):
            pricer.record_flow("Unobtainium", supply_delta=1.0)

    def test_float_dust_cleared(self, pricer):
        pricer.record_flow("Steel", supply_delta=0.1 + 0.2)
        pricer.record_flow("Steel", supply_delta=-0.3)
        quote = pricer.quote("Steel")
        assert quote.supply == 0.0
        assert quote.current_price == 850.0

    def test_version_increments(self, pricer):
        before = pricer.quote("Oil").version
        pricer.record_flow("Oil", supply_delta=1.0)
        assert pricer.quote("Oil").version == before + 1

    def test_snapshot_is_a_copy(self, pricer):
        snapshot = pricer.snapshot()
        pricer.record_flow("Steel", demand_delta=1.0)
        assert snapshot["Steel"] == 850.0
        assert len(snapshot) == 17


class TestFlowBatch:
    """Тесты FlowBatch."""

    def test_merge_is_commutative(self):
        a = FlowBatch()
        a.add("Steel", 1.0, 0.5)
        b = FlowBatch()
        b.add("Steel", 0.0, 0.5)
        b.add("Oil", 2.0)

        ab = FlowBatch().merge(a).merge(b)
        ba = FlowBatch().merge(b).merge(a)
        assert ab.deltas == ba.deltas
        assert ab.deltas["Steel"] == [1.0, 1.0]

    def test_add_totals_with_sign(self):
        batch = FlowBatch()
        batch.add_totals({"Steel": (1.0, 2.0)}, sign=-1)
        assert batch.deltas["Steel"] == [-1.0, -2.0]

    def test_apply_batch(self, pricer):
        batch = FlowBatch()
        batch.add("Steel", supply_delta=2.0, demand_delta=1.0)
        assert pricer.apply_batch(batch) == {"Steel": 425.0}

    def test_apply_batch_all_or_nothing(self, pricer):
        batch = FlowBatch()
        batch.add("Steel", demand_delta=1.0)
        batch.add("Oil", supply_delta=-1.0)
        with pytest.raises(SimulationValidationError):
            pricer.apply_batch(batch)
        assert pricer.quote("Steel").demand == 0.0
        assert pricer.price("Steel") == 850.0

    def test_apply_batch_unknown_item(self, pricer):
        batch = FlowBatch()
        batch.add("Steel", demand_delta=1.0)
        batch.add("Unobtainium", demand_delta=1.0)
        with pytest.raises(UnknownCatalogEntry):
            pricer.apply_batch(batch)
        assert pricer.quote("Steel").demand == 0.0


class TestHistory:
    """Тесты истории цен."""

    def test_sample_respects_interval(self, pricer):
        assert pricer.sample(T0) == 17
        assert pricer.sample(T0 + MS_PER_HOUR // 2) == 0
        assert pricer.sample(T0 + MS_PER_HOUR) == 17
        assert len(pricer.history("Steel")) == 2

    def test_history_since(self, pricer):
        pricer.sample(T0)
        pricer.sample(T0 + MS_PER_HOUR)
        samples = pricer.history("Steel", since_ts_utc_ms=T0 + 1)
        assert [s.ts_utc_ms for s in samples] == [T0 + MS_PER_HOUR]

    def test_retention_prunes_old_samples(self, chain):
        pricer = MarketPricer(chain, PricingConfig(history_retention_ms=2 * MS_PER_HOUR))
        pricer.sample(T0)
        pricer.sample(T0 + MS_PER_HOUR)
        pricer.sample(T0 + 3 * MS_PER_HOUR)
        assert [s.ts_utc_ms for s in pricer.history("Oil")] == [
            T0 + MS_PER_HOUR,
            T0 + 3 * MS_PER_HOUR,
        ]

    def test_sample_records_current_price(self, pricer):
        pricer.record_flow("Steel", demand_delta=1.0)
        pricer.sample(T0)
        assert pricer.history("Steel")[-1].price == 8500.0


class TestSeedPrices:
    """Тесты seed-цен."""

    def test_seed_overrides_base(self, chain):
        pricer = MarketPricer(chain, seed_prices={"Steel": 1000.0})
        assert pricer.price("Steel") == 1000.0
        assert pricer.quote("Steel").base_price == 1000.0
        assert pricer.price("Oil") == 75.0

    def test_unknown_seed_rejected(self, chain):
        with pytest.raises(UnknownCatalogEntry):
            MarketPricer(chain, seed_prices={"Unobtainium": 1.0})

    def test_non_positive_seed_rejected(self, chain):
        with pytest.raises(SimulationValidationError):
            MarketPricer(chain, seed_prices={"Steel": 0.0})
