"""
Valuation — Цена акции корпорации

    book_value_per_share = (cash + Σ asset value юнитов) / total_shares
    unit asset value     = max(0, basis + hourly_profit × hours_per_year / discount_rate)
    trade_weighted       = Σ w_i × price_i / Σ w_i,  w_i = decay^i × sqrt(shares_i)
                           (сделки от новых к старым, в окне lookback)
    price                = fundamental_weight × book + trade_weight × trade_weighted
                           (только book, если сделок в окне нет)

Цена хранится без округления (до центов округляются только денежные суммы
сделок) и не опускается ниже min_share_price, поэтому сплит сохраняет
market cap.
Единственный side-effect: запись цены и sample в историю цены акции.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

from src.core.domain.corporation import Corporation, ShareTrade
from src.core.domain.errors import SimulationError
from src.core.math.numerical_safeguards import safe_divide, sanitize_float
from src.economy.market_pricer import MS_PER_HOUR
from src.economy.unit_economics import UnitEconomics
from src.ledger.ledger import Ledger

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIG & RESULTS
# =============================================================================


@dataclass(frozen=True)
class ValuationConfig:
    """Параметры формулы цены акции."""

    fundamental_weight: float = 0.8
    trade_weight: float = 0.2
    recency_decay: float = 0.95
    trade_lookback_ms: int = 168 * MS_PER_HOUR
    min_share_price: float = 0.01
    unit_basis_cost: float = 10_000.0  # Балансовая стоимость юнита
    npv_discount_rate: float = 0.20
    hours_per_year: float = 8760.0


@dataclass(frozen=True)
class ValuationResult:
    corporation_id: int
    old_price: float
    new_price: float
    book_value_per_share: float
    trade_weighted_price: float | None
    has_trade_history: bool


@dataclass(frozen=True)
class PriceRecalculationResult:
    """Итог пересчёта цен всех корпораций."""

    corporations_updated: int
    per_corporation: List[ValuationResult]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "corporations_updated": self.corporations_updated,
            "per_corporation": [
                {
                    "corporation_id": r.corporation_id,
                    "old_price": r.old_price,
                    "new_price": r.new_price,
                    "has_trade_history": r.has_trade_history,
                }
                for r in self.per_corporation
            ],
        }


def trade_weighted_price(trades: Sequence[ShareTrade], decay: float) -> float | None:
    """
    Взвешенная цена сделок: новые сделки и крупные объёмы весят больше.

    Returns:
        Цена или None, если сделок нет
    """
    if not trades:
        return None
    ordered = sorted(trades, key=lambda t: t.ts_utc_ms, reverse=True)
    weighted_sum = 0.0
    weight_total = 0.0
    for i, trade in enumerate(ordered):
        weight = (decay**i) * math.sqrt(trade.shares)
        weighted_sum += weight * trade.price_per_share
        weight_total += weight
    return safe_divide(weighted_sum, weight_total)


# =============================================================================
# VALUATION
# =============================================================================


class Valuation:
    """Пересчёт цены акции по фундаменталу и истории сделок."""

    def __init__(
        self,
        ledger: Ledger,
        economics: UnitEconomics,
        config: ValuationConfig | None = None,
    ):
        self.ledger = ledger
        self.economics = economics
        self.config = config or ValuationConfig()

    def asset_value(self, corporation_id: int, prices: Dict[str, float] | None = None) -> float:
        """Σ стоимость юнитов всех market entries корпорации."""
        config = self.config
        total = 0.0
        for entry in self.ledger.entries(corporation_id):
            economics = self.economics.entry_economics(entry, prices)
            for unit_type, unit in economics.breakdown.items():
                value = config.unit_basis_cost + (
                    unit.profit_per_hour * config.hours_per_year / config.npv_discount_rate
                )
                total += max(0.0, value) * entry.count(unit_type)
        return total

    def book_value_per_share(
        self, corporation: Corporation, prices: Dict[str, float] | None = None
    ) -> float:
        assets = corporation.cash + self.asset_value(corporation.corporation_id, prices)
        return assets / corporation.total_shares

    def recompute(
        self,
        corporation_id: int,
        now_ts_utc_ms: int | None = None,
        prices: Dict[str, float] | None = None,
    ) -> ValuationResult:
        """
        Пересчёт и запись цены акции.

        Args:
            corporation_id: Корпорация
            now_ts_utc_ms: Момент расчёта (граница окна сделок)
            prices: Зафиксированные цены ресурсов/продуктов

        Returns:
            ValuationResult
        """
        config = self.config
        now = self.ledger.clock() if now_ts_utc_ms is None else now_ts_utc_ms

        with self.ledger.atomic(corporation_id):
            corporation = self.ledger.corporation(corporation_id)
            book = self.book_value_per_share(corporation, prices)
            trades = self.ledger.trades(corporation_id, since_ts_utc_ms=now - config.trade_lookback_ms)
            weighted = trade_weighted_price(trades, config.recency_decay)

            if weighted is None:
                raw = book
            else:
                raw = config.fundamental_weight * book + config.trade_weight * weighted
            new_price = max(config.min_share_price, sanitize_float(raw))
            self.ledger.record_share_price(corporation_id, new_price, now)

        logger.debug(
            "valuation corporation %d: book=%.4f trade=%s price %.2f -> %.2f",
            corporation_id,
            book,
            "n/a" if weighted is None else f"{weighted:.4f}",
            corporation.share_price,
            new_price,
        )
        return ValuationResult(
            corporation_id=corporation_id,
            old_price=corporation.share_price,
            new_price=new_price,
            book_value_per_share=book,
            trade_weighted_price=weighted,
            has_trade_history=weighted is not None,
        )

    def recompute_all(
        self, now_ts_utc_ms: int | None = None, prices: Dict[str, float] | None = None
    ) -> PriceRecalculationResult:
        """Пересчёт цен всех активных корпораций по одному снапшоту цен."""
        snapshot = prices if prices is not None else self.economics.pricer.snapshot()
        results: List[ValuationResult] = []
        for corporation in self.ledger.corporations():
            try:
                results.append(self.recompute(corporation.corporation_id, now_ts_utc_ms, snapshot))
            except SimulationError:
                # Цена корпорации остаётся прежней, остальные пересчитываются
                logger.exception(
                    "valuation failed for corporation %d", corporation.corporation_id
                )
        logger.info("recalculated share prices for %d corporation(s)", len(results))
        return PriceRecalculationResult(corporations_updated=len(results), per_corporation=results)

