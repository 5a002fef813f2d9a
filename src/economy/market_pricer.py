"""
MarketPricer — Цены ресурсов и продуктов по supply/demand

Каждый юнит production/extraction/consumption всех корпораций вносит вклад в
глобальный пул supply/demand по имени ресурса/продукта. Цена:

    scarcity = (demand / max(min_supply, supply)) ** curve_exponent
               (1.0 если supply == demand == 0; не выше max_scarcity_factor)
    price    = clamp(round(base × scarcity, 2), min_price, base × max_scarcity_factor)

Обновления инкрементальные: record_flow пересчитывает только затронутое имя.
Для параллельной обработки корпораций дельты собираются в FlowBatch
(коммутативное сложение) и применяются одним проходом apply_batch.

История цен — time-stamped samples; шаг и окно хранения задаются в конфиге.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Tuple

from src.core.domain.catalog import ItemKind
from src.core.domain.corporation import PriceSample
from src.core.domain.errors import SimulationValidationError, UnknownCatalogEntry
from src.core.math.numerical_safeguards import (
    EPS_CALC,
    EPS_MONEY,
    clamp,
    round_money,
    validate_positive,
)
from src.economy.chain_model import ChainModel

logger = logging.getLogger(__name__)

MS_PER_HOUR = 3_600_000


# =============================================================================
# CONFIG
# =============================================================================


@dataclass(frozen=True)
class PricingConfig:
    """
    Конфигурация кривой scarcity → price.

    Форма кривой и границы — параметры гейм-дизайна, а не константы формулы.
    """

    min_price: float = 10.0  # Абсолютный пол цены (USD)
    max_scarcity_factor: float = 10.0  # Потолок: base × max_scarcity_factor
    min_supply: float = 0.01  # Знаменатель при нулевом supply
    curve_exponent: float = 1.0  # 1.0: линейная зависимость от demand/supply
    history_sample_interval_ms: int = MS_PER_HOUR
    history_retention_ms: int = 30 * 24 * MS_PER_HOUR


# =============================================================================
# QUOTES & BATCHES
# =============================================================================


@dataclass(frozen=True)
class PriceQuote:
    """Снапшот агрегата по одному ресурсу/продукту."""

    name: str
    kind: ItemKind
    base_price: float
    current_price: float
    supply: float
    demand: float
    scarcity_factor: float
    version: int


@dataclass
class FlowBatch:
    """
    Коммутативный накопитель дельт supply/demand.

    Независимые воркеры собирают свои batch, затем batch объединяются через
    merge (порядок не важен) и применяются одним apply_batch.
    """

    deltas: Dict[str, List[float]] = field(default_factory=dict)

    def add(self, name: str, supply_delta: float = 0.0, demand_delta: float = 0.0) -> None:
        entry = self.deltas.setdefault(name, [0.0, 0.0])
        entry[0] += supply_delta
        entry[1] += demand_delta

    def add_totals(self, totals: Mapping[str, Tuple[float, float]], sign: int = 1) -> None:
        for name, (supply, demand) in totals.items():
            self.add(name, sign * supply, sign * demand)

    def merge(self, other: "FlowBatch") -> "FlowBatch":
        for name, (supply, demand) in other.deltas.items():
            self.add(name, supply, demand)
        return self

    def __len__(self) -> int:
        return len(self.deltas)


@dataclass
class _Aggregate:
    kind: ItemKind
    base_price: float
    supply: float = 0.0
    demand: float = 0.0
    scarcity_factor: float = 1.0
    current_price: float = 0.0
    version: int = 0
    history: List[PriceSample] = field(default_factory=list)


# =============================================================================
# PRICER
# =============================================================================


def scarcity_factor(supply: float, demand: float, config: PricingConfig) -> float:
    """
    Монотонно возрастающая функция отношения demand/supply.

    Returns:
        1.0 если supply и demand нулевые, иначе ratio ** exponent,
        ограниченный сверху max_scarcity_factor
    """
    if supply <= EPS_CALC and demand <= EPS_CALC:
        return 1.0
    ratio = demand / max(config.min_supply, supply)
    return min(ratio ** config.curve_exponent, config.max_scarcity_factor)


class MarketPricer:
    """
    Владелец глобальных агрегатов supply/demand/price.

    Все мутации проходят через API; глобального состояния нет. Инстанс
    инжектируется в UnitEconomics/TurnProcessor.
    """

    def __init__(
        self,
        chain: ChainModel,
        config: PricingConfig | None = None,
        seed_prices: Mapping[str, float] | None = None,
    ):
        """
        Args:
            chain: Каталог (закрытый набор имён)
            config: Конфигурация кривой
            seed_prices: Переопределение базовых цен (детерминированные тесты,
                сценарии). Неизвестные имена отклоняются.
        """
        self.chain = chain
        self.config = config or PricingConfig()
        self._lock = threading.Lock()
        self._aggregates: Dict[str, _Aggregate] = {}

        seeds = dict(seed_prices or {})
        for name in seeds:
            chain.item(name)
        for name, item in chain.items().items():
            base = seeds.get(name, item.base_price)
            validate_positive(base, f"seed price for {name}")
            aggregate = _Aggregate(kind=item.kind, base_price=base)
            self._recompute(aggregate)
            self._aggregates[name] = aggregate

    # =========================================================================
    # READ
    # =========================================================================

    def _aggregate(self, name: str) -> _Aggregate:
        try:
            return self._aggregates[name]
        except KeyError:
            raise UnknownCatalogEntry("resource/product", name) from None

    def price(self, name: str) -> float:
        """Текущая цена ресурса/продукта."""
        return self._aggregate(name).current_price

    def quote(self, name: str) -> PriceQuote:
        aggregate = self._aggregate(name)
        with self._lock:
            return PriceQuote(
                name=name,
                kind=aggregate.kind,
                base_price=aggregate.base_price,
                current_price=aggregate.current_price,
                supply=aggregate.supply,
                demand=aggregate.demand,
                scarcity_factor=aggregate.scarcity_factor,
                version=aggregate.version,
            )

    def snapshot(self) -> Dict[str, float]:
        """{name: current_price} — фиксированные цены для повторяемых расчётов."""
        with self._lock:
            return {name: a.current_price for name, a in self._aggregates.items()}

    def history(self, name: str, since_ts_utc_ms: int | None = None) -> Tuple[PriceSample, ...]:
        aggregate = self._aggregate(name)
        with self._lock:
            if since_ts_utc_ms is None:
                return tuple(aggregate.history)
            return tuple(s for s in aggregate.history if s.ts_utc_ms >= since_ts_utc_ms)

    # =========================================================================
    # WRITE
    # =========================================================================

    def record_flow(self, name: str, supply_delta: float = 0.0, demand_delta: float = 0.0) -> float:
        """
        Применение дельты supply/demand с инкрементальным пересчётом цены.

        Returns:
            Новая текущая цена

        Raises:
            UnknownCatalogEntry: Неизвестное имя
            SimulationValidationError: Если агрегат ушёл бы в минус
        """
        aggregate = self._aggregate(name)
        with self._lock:
            self._apply_delta(name, aggregate, supply_delta, demand_delta)
            return aggregate.current_price

    def apply_batch(self, batch: FlowBatch) -> Dict[str, float]:
        """
        Применение объединённого FlowBatch одним проходом.

        Все имена проверяются до мутации: batch применяется целиком или никак.

        Returns:
            {name: new_price} для затронутых имён
        """
        touched = {name: self._aggregate(name) for name in batch.deltas}
        with self._lock:
            for name, aggregate in touched.items():
                supply_delta, demand_delta = batch.deltas[name]
                self._check_delta(name, aggregate, supply_delta, demand_delta)
            for name, aggregate in touched.items():
                supply_delta, demand_delta = batch.deltas[name]
                self._apply_delta(name, aggregate, supply_delta, demand_delta)
            return {name: a.current_price for name, a in touched.items()}

    def sample(self, now_ts_utc_ms: int) -> int:
        """
        Запись точки истории для каждого имени с учётом шага sampling.

        Returns:
            Количество записанных samples
        """
        written = 0
        with self._lock:
            for name, aggregate in self._aggregates.items():
                last = aggregate.history[-1] if aggregate.history else None
                if (
                    last is not None
                    and now_ts_utc_ms - last.ts_utc_ms < self.config.history_sample_interval_ms
                ):
                    continue
                aggregate.history.append(
                    PriceSample(name=name, price=aggregate.current_price, ts_utc_ms=now_ts_utc_ms)
                )
                written += 1
        self.prune(now_ts_utc_ms)
        return written

    def prune(self, now_ts_utc_ms: int) -> int:
        """Удаление samples старше окна хранения."""
        cutoff = now_ts_utc_ms - self.config.history_retention_ms
        removed = 0
        with self._lock:
            for aggregate in self._aggregates.values():
                kept = [s for s in aggregate.history if s.ts_utc_ms >= cutoff]
                removed += len(aggregate.history) - len(kept)
                aggregate.history = kept
        return removed

    # =========================================================================
    # INTERNALS
    # =========================================================================

    @staticmethod
    def _check_delta(name: str, aggregate: _Aggregate, supply_delta: float, demand_delta: float) -> None:
        new_supply = aggregate.supply + supply_delta
        new_demand = aggregate.demand + demand_delta
        if new_supply < -EPS_CALC or new_demand < -EPS_CALC:
            raise SimulationValidationError(
                f"Aggregate for {name!r} would go negative: "
                f"supply={new_supply}, demand={new_demand}"
            )

    def _apply_delta(
        self, name: str, aggregate: _Aggregate, supply_delta: float, demand_delta: float
    ) -> None:
        self._check_delta(name, aggregate, supply_delta, demand_delta)
        aggregate.supply = max(0.0, aggregate.supply + supply_delta)
        aggregate.demand = max(0.0, aggregate.demand + demand_delta)
        # Накопленная float-ошибка от add/remove не должна оставлять "пыль"
        if aggregate.supply < EPS_MONEY:
            aggregate.supply = 0.0
        if aggregate.demand < EPS_MONEY:
            aggregate.demand = 0.0
        old_price = aggregate.current_price
        self._recompute(aggregate)
        logger.debug(
            "price %s: supply=%.4f demand=%.4f scarcity=%.4f price %.2f -> %.2f",
            name,
            aggregate.supply,
            aggregate.demand,
            aggregate.scarcity_factor,
            old_price,
            aggregate.current_price,
        )

    def _recompute(self, aggregate: _Aggregate) -> None:
        config = self.config
        aggregate.scarcity_factor = scarcity_factor(aggregate.supply, aggregate.demand, config)
        ceiling = max(config.min_price, aggregate.base_price * config.max_scarcity_factor)
        aggregate.current_price = clamp(
            round_money(aggregate.base_price * aggregate.scarcity_factor),
            config.min_price,
            ceiling,
        )
        aggregate.version += 1
