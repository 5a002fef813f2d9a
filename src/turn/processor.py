"""
TurnProcessor — Периодическая обработка хода симуляции

Один ход (period_id):
1. Action points: +actions_per_turn каждому пользователю, +ceo_bonus_actions CEO
2. Для каждой корпорации (параллельно, сериализовано per-corporation lock):
   a. пропуск, если last_processed_period >= period_id (идемпотентность)
   b. начисление Σ экономики entries × turn_hours одной net-проводкой
      (market_revenue / market_cost); net cost > cash отклоняется, корпорация
      попадает в insolvent_corporations; положительный net увеличивается на
      Σ boost активных corporate actions
   c. зарплата CEO раз в salary_period_ms; при cash < salary зарплата обнуляется
   d. дивиденд = operating income × pct, если operating income > 0
   e. last_processed_period = period_id
3. MarketPricer.sample(now), затем (опционально) пересчёт цен акций

Ошибка одной корпорации логируется и не прерывает ход остальных;
IntegrityError прерывает ход.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Set, Tuple

from src.core.domain.errors import InsufficientFunds, IntegrityError
from src.core.domain.transaction import TransactionType
from src.core.math.numerical_safeguards import round_money, to_cents
from src.economy.finances import allocate_pro_rata, dividend_for
from src.economy.market_pricer import MS_PER_HOUR
from src.economy.unit_economics import UnitEconomics
from src.ledger.ledger import Ledger
from src.market.valuation import PriceRecalculationResult, Valuation

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIG & RESULTS
# =============================================================================


@dataclass(frozen=True)
class TurnConfig:
    actions_per_turn: int = 2
    ceo_bonus_actions: int = 1
    turn_hours: float = 1.0  # Реальных часов экономики на один ход
    salary_period_ms: int = 96 * MS_PER_HOUR
    recompute_valuations: bool = True
    max_workers: int = 4


@dataclass
class _CorporationOutcome:
    corporation_id: int
    processed: bool = False
    skipped_already_processed: bool = False
    profit: float = 0.0
    insolvent: bool = False
    salary_paid: float = 0.0
    ceo_paid: bool = False
    salary_zeroed: bool = False
    skipped_recently_paid: bool = False
    dividends_paid: float = 0.0
    error_code: str | None = None


@dataclass(frozen=True)
class TurnResult:
    """Структурированный итог хода."""

    period_id: int
    actions_granted: int
    ceos_count: int
    corporations_processed: int
    total_profit: float
    ceos_paid: int
    total_paid: float
    salaries_zeroed: int
    skipped_recently_paid: int
    dividends_paid: float
    skipped_already_processed: int
    insolvent_corporations: List[int] = field(default_factory=list)
    failed_corporations: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "period_id": self.period_id,
            "actions_granted": self.actions_granted,
            "ceos_count": self.ceos_count,
            "corporations_processed": self.corporations_processed,
            "total_profit": self.total_profit,
            "ceos_paid": self.ceos_paid,
            "total_paid": self.total_paid,
            "salaries_zeroed": self.salaries_zeroed,
            "skipped_recently_paid": self.skipped_recently_paid,
            "dividends_paid": self.dividends_paid,
            "skipped_already_processed": self.skipped_already_processed,
            "insolvent_corporations": list(self.insolvent_corporations),
            "failed_corporations": [dict(f) for f in self.failed_corporations],
        }


# =============================================================================
# PROCESSOR
# =============================================================================


class TurnProcessor:
    """
    Оркестратор хода.

    Args:
        ledger: Ledger
        economics: UnitEconomics (и через него MarketPricer)
        valuation: Пересчёт цен акций
        config: Параметры хода
    """

    def __init__(
        self,
        ledger: Ledger,
        economics: UnitEconomics,
        valuation: Valuation,
        config: TurnConfig | None = None,
    ):
        self.ledger = ledger
        self.economics = economics
        self.pricer = economics.pricer
        self.valuation = valuation
        self.config = config or TurnConfig()
        self._lock = threading.Lock()
        self._granted_periods: Set[int] = set()

    # =========================================================================
    # TURN
    # =========================================================================

    def run_turn(self, period_id: int, now_ts_utc_ms: int) -> TurnResult:
        """
        Обработка хода period_id.

        Повторный вызов для того же period_id не начисляет ничего повторно:
        action points и корпорации пропускаются.

        Returns:
            TurnResult
        """
        actions_granted, ceos = self._grant_actions(period_id)
        prices = self.pricer.snapshot()
        corporation_ids = [c.corporation_id for c in self.ledger.corporations()]

        with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
            outcomes = list(
                pool.map(
                    lambda cid: self._process_safely(cid, period_id, now_ts_utc_ms, prices),
                    corporation_ids,
                )
            )

        self.pricer.sample(now_ts_utc_ms)
        if self.config.recompute_valuations:
            self.valuation.recompute_all(now_ts_utc_ms, prices)

        result = TurnResult(
            period_id=period_id,
            actions_granted=actions_granted,
            ceos_count=len(ceos),
            corporations_processed=sum(1 for o in outcomes if o.processed),
            total_profit=round_money(sum(o.profit for o in outcomes)),
            ceos_paid=sum(1 for o in outcomes if o.ceo_paid),
            total_paid=round_money(sum(o.salary_paid for o in outcomes)),
            salaries_zeroed=sum(1 for o in outcomes if o.salary_zeroed),
            skipped_recently_paid=sum(1 for o in outcomes if o.skipped_recently_paid),
            dividends_paid=round_money(sum(o.dividends_paid for o in outcomes)),
            skipped_already_processed=sum(1 for o in outcomes if o.skipped_already_processed),
            insolvent_corporations=sorted(o.corporation_id for o in outcomes if o.insolvent),
            failed_corporations=[
                {"corporation_id": o.corporation_id, "error_code": o.error_code}
                for o in sorted(outcomes, key=lambda o: o.corporation_id)
                if o.error_code is not None
            ],
        )
        logger.info(
            "turn %d: processed=%d profit=%.2f salaries=%.2f dividends=%.2f "
            "insolvent=%d failed=%d",
            period_id,
            result.corporations_processed,
            result.total_profit,
            result.total_paid,
            result.dividends_paid,
            len(result.insolvent_corporations),
            len(result.failed_corporations),
        )
        return result

    def recalculate_prices(self, now_ts_utc_ms: int) -> PriceRecalculationResult:
        """Немедленный пересчёт цен акций всех корпораций."""
        return self.valuation.recompute_all(now_ts_utc_ms)

    # =========================================================================
    # STEPS
    # =========================================================================

    def _grant_actions(self, period_id: int) -> Tuple[int, Set[int]]:
        ceos = {c.ceo_id for c in self.ledger.corporations() if c.ceo_id is not None}
        with self._lock:
            if period_id in self._granted_periods:
                logger.warning("actions for period %d already granted", period_id)
                return 0, ceos
            self._granted_periods.add(period_id)

        granted = 0
        for user in self.ledger.users():
            amount = self.config.actions_per_turn
            if user.user_id in ceos:
                amount += self.config.ceo_bonus_actions
            if amount > 0:
                self.ledger.grant_actions(user.user_id, amount)
                granted += amount
        return granted, ceos

    def _process_safely(
        self, corporation_id: int, period_id: int, now: int, prices: Mapping[str, float]
    ) -> _CorporationOutcome:
        try:
            return self._process_corporation(corporation_id, period_id, now, prices)
        except IntegrityError:
            raise
        except Exception as exc:
            logger.exception("turn %d failed for corporation %d", period_id, corporation_id)
            return _CorporationOutcome(
                corporation_id=corporation_id, error_code=getattr(exc, "code", "internal_error")
            )

    def _process_corporation(
        self, corporation_id: int, period_id: int, now: int, prices: Mapping[str, float]
    ) -> _CorporationOutcome:
        outcome = _CorporationOutcome(corporation_id=corporation_id)

        with self.ledger.atomic(corporation_id):
            corporation = self.ledger.corporation(corporation_id)
            if (
                corporation.last_processed_period is not None
                and corporation.last_processed_period >= period_id
            ):
                logger.warning(
                    "corporation %d already processed period %d, skipping",
                    corporation_id,
                    corporation.last_processed_period,
                )
                outcome.skipped_already_processed = True
                return outcome

            # 1. Операционный результат
            net = self._accrue(corporation_id, now, prices, outcome)

            # 2. Зарплата CEO
            self._pay_salary(corporation_id, now, outcome)

            # 3. Дивиденд
            self._pay_dividend(corporation_id, net - outcome.salary_paid, outcome)

            self.ledger.update_corporation(corporation_id, last_processed_period=period_id)
            outcome.processed = True

        logger.debug(
            "corporation %d turn %d: profit=%.2f salary=%.2f dividends=%.2f",
            corporation_id,
            period_id,
            outcome.profit,
            outcome.salary_paid,
            outcome.dividends_paid,
        )
        return outcome

    def _accrue(
        self,
        corporation_id: int,
        now: int,
        prices: Mapping[str, float],
        outcome: _CorporationOutcome,
    ) -> float:
        revenue = 0.0
        cost = 0.0
        for entry in self.ledger.entries(corporation_id):
            economics = self.economics.entry_economics(entry, prices)
            revenue += economics.revenue_per_hour * self.config.turn_hours
            cost += economics.cost_per_hour * self.config.turn_hours
        net = round_money(revenue - cost)

        if net > 0:
            description = "Net market revenue"
            actions = self.ledger.corporate_actions(corporation_id, active_at_ts_utc_ms=now)
            if actions:
                net = round_money(net * (1 + sum(a.boost for a in actions)))
                boosts = ", ".join(f"{a.label} +{a.boost:.0%}" for a in actions)
                description = f"{description} ({boosts})"
            self.ledger.credit(
                corporation_id, net, TransactionType.MARKET_REVENUE, description=description
            )
        elif net < 0:
            try:
                self.ledger.debit(
                    corporation_id, -net, TransactionType.MARKET_COST, description="Net market cost"
                )
            except InsufficientFunds as exc:
                logger.warning("corporation %d is insolvent: %s", corporation_id, exc)
                outcome.insolvent = True
                return 0.0
        outcome.profit = net
        return net

    def _pay_salary(self, corporation_id: int, now: int, outcome: _CorporationOutcome) -> None:
        corporation = self.ledger.corporation(corporation_id)
        if corporation.ceo_id is None or corporation.ceo_salary <= 0:
            return
        last_paid = corporation.last_salary_paid_ts_utc_ms
        if last_paid is not None and now - last_paid < self.config.salary_period_ms:
            outcome.skipped_recently_paid = True
            return
        if to_cents(corporation.cash) < to_cents(corporation.ceo_salary):
            self.ledger.update_corporation(corporation_id, ceo_salary=0.0)
            outcome.salary_zeroed = True
            logger.warning(
                "corporation %d cannot afford CEO salary %.2f (cash %.2f), salary set to 0",
                corporation_id,
                corporation.ceo_salary,
                corporation.cash,
            )
            return
        self.ledger.pay_user(
            corporation_id,
            corporation.ceo_id,
            corporation.ceo_salary,
            TransactionType.CEO_SALARY,
            description="CEO salary",
        )
        self.ledger.update_corporation(corporation_id, last_salary_paid_ts_utc_ms=now)
        outcome.salary_paid = corporation.ceo_salary
        outcome.ceo_paid = True

    def _pay_dividend(
        self, corporation_id: int, operating_income: float, outcome: _CorporationOutcome
    ) -> None:
        corporation = self.ledger.corporation(corporation_id)
        dividend = dividend_for(operating_income, corporation.dividend_percentage)
        if dividend <= 0:
            return
        if to_cents(corporation.cash) < to_cents(dividend):
            logger.warning(
                "corporation %d skipped dividend %.2f: cash %.2f",
                corporation_id,
                dividend,
                corporation.cash,
            )
            return
        payouts = allocate_pro_rata(dividend, self.ledger.shareholders(corporation_id))
        for user_id, amount in payouts.items():
            self.ledger.pay_user(
                corporation_id,
                user_id,
                amount,
                TransactionType.DIVIDEND,
                description=f"Dividend ({corporation.dividend_percentage:g}%)",
            )
        outcome.dividends_paid = round_money(sum(payouts.values()))
