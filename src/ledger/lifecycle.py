"""
Lifecycle — Основание, роспуск корпорации и присутствие на рынках

Операции, меняющие состав корпораций и их юнитов:
- found_corporation: создание корпорации (стоимость, капитал, структура акций)
- dissolve_corporation: ликвидация с pro-rata распределением cash
- enter_market / build_unit / abandon_entry: market entries и юниты
- activate_corporate_action: временный буст прибыли (supply rush, marketing)

Юниты вносят вклад в supply/demand: build_unit и abandon_entry передают
потоки юнитов в MarketPricer после фиксации изменений Ledger.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict

from src.core.domain.catalog import FOCUS_ALLOWED_UNITS, CorpFocus, UnitType
from src.core.domain.corporation import (
    CorporateAction,
    CorporateActionType,
    Corporation,
    MarketEntry,
)
from src.core.domain.errors import (
    CapacityExceeded,
    CorporateActionActive,
    DuplicateMarketEntry,
    FocusRestriction,
    NotAuthorized,
    UnsupportedUnitType,
)
from src.core.domain.transaction import TransactionType
from src.core.math.numerical_safeguards import round_money
from src.economy.chain_model import ChainModel
from src.economy.finances import allocate_pro_rata
from src.economy.market_pricer import MS_PER_HOUR, FlowBatch, MarketPricer
from src.economy.regions import region_capacity, validate_region
from src.ledger.ledger import Ledger

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIG
# =============================================================================


class FoundingStructure(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


@dataclass(frozen=True)
class FoundingTerms:
    """Условия основания для одной структуры."""

    founding_cost: float  # Списывается с основателя
    starting_capital: float  # Начальный cash корпорации
    public_shares: int  # Начальный float
    total_shares: int = 500_000
    initial_share_price: float = 1.00


def _default_structures() -> Dict[FoundingStructure, FoundingTerms]:
    return {
        FoundingStructure.PUBLIC: FoundingTerms(
            founding_cost=400_000.0, starting_capital=500_000.0, public_shares=100_000
        ),
        FoundingStructure.PRIVATE: FoundingTerms(
            founding_cost=500_000.0, starting_capital=300_000.0, public_shares=0
        ),
    }


@dataclass(frozen=True)
class LifecycleConfig:
    """Стоимости операций lifecycle."""

    market_entry_cost: float = 50_000.0
    market_entry_actions: int = 1
    build_unit_cost: float = 10_000.0
    build_unit_actions: int = 1
    corporate_action_base_cost: float = 500_000.0
    corporate_action_market_cap_rate: float = 0.01  # + 1% market cap
    corporate_action_duration_ms: int = 4 * MS_PER_HOUR
    corporate_action_boost: float = 0.10
    structures: Dict[FoundingStructure, FoundingTerms] = field(
        default_factory=_default_structures
    )


# =============================================================================
# LIFECYCLE
# =============================================================================


class CorporateLifecycle:
    """
    Операции основания/роспуска и управления market entries.

    Args:
        ledger: Ledger (хранилище и атомарность)
        chain: Каталог секторов
        pricer: MarketPricer для потоков юнитов
        config: Стоимости операций
    """

    def __init__(
        self,
        ledger: Ledger,
        chain: ChainModel,
        pricer: MarketPricer,
        config: LifecycleConfig | None = None,
    ):
        self.ledger = ledger
        self.chain = chain
        self.pricer = pricer
        self.config = config or LifecycleConfig()

    def _require_ceo(self, corporation: Corporation, user_id: int, action: str) -> None:
        if corporation.ceo_id != user_id:
            raise NotAuthorized(f"Only the CEO can {action} (corporation {corporation.corporation_id})")

    # =========================================================================
    # FOUNDING & DISSOLUTION
    # =========================================================================

    def found_corporation(
        self,
        founder_id: int,
        name: str,
        sector: str,
        hq_region: str,
        focus: CorpFocus = CorpFocus.DIVERSIFIED,
        structure: FoundingStructure = FoundingStructure.PUBLIC,
    ) -> Corporation:
        """
        Основание корпорации.

        Основатель платит founding_cost, становится CEO и получает
        total_shares − public_shares акций.

        Raises:
            UnknownCatalogEntry: Неизвестный сектор/регион
            InsufficientFunds: У основателя не хватает cash
        """
        self.chain.sector(sector)
        validate_region(hq_region)
        self.ledger.user(founder_id)
        terms = self.config.structures[FoundingStructure(structure)]

        corporation_id = self.ledger.next_corporation_id()
        corporation = Corporation(
            corporation_id=corporation_id,
            name=name,
            ceo_id=founder_id,
            cash=0.0,
            total_shares=terms.total_shares,
            public_shares=terms.public_shares,
            share_price=terms.initial_share_price,
            sector=sector,
            hq_region=hq_region,
            focus=CorpFocus(focus),
            created_ts_utc_ms=self.ledger.clock(),
        )

        with self.ledger.atomic(corporation_id):
            self.ledger.charge_user(
                founder_id,
                terms.founding_cost,
                TransactionType.CORPORATION_FOUNDING,
                corporation_id=corporation_id,
                description=f"Founding cost of {name}",
            )
            self.ledger.add_corporation(
                corporation, {founder_id: terms.total_shares - terms.public_shares}
            )
            self.ledger.credit(
                corporation_id,
                terms.starting_capital,
                TransactionType.CORPORATION_FOUNDING,
                description="Starting capital",
            )

        logger.info(
            "founded corporation %d %r (%s, %s) by user %d",
            corporation_id,
            name,
            sector,
            structure,
            founder_id,
        )
        return self.ledger.corporation(corporation_id)

    def dissolve_corporation(self, corporation_id: int, user_id: int) -> Dict[int, float]:
        """
        Ликвидация корпорации: cash распределяется между акционерами pro-rata,
        market entries снимаются с рынка, корпорация помечается dissolved.

        Returns:
            {user_id: payout}

        Raises:
            CorporationDissolved: Корпорация уже ликвидирована
            NotAuthorized: Если user не CEO
        """
        corporation = self.ledger.active_corporation(corporation_id)
        self._require_ceo(corporation, user_id, "dissolve the corporation")

        batch = FlowBatch()
        with self.ledger.atomic(corporation_id):
            corporation = self.ledger.corporation(corporation_id)
            holdings = self.ledger.shareholders(corporation_id)
            payouts = allocate_pro_rata(corporation.cash, holdings)
            for holder_id, amount in payouts.items():
                self.ledger.pay_user(
                    corporation_id,
                    holder_id,
                    amount,
                    TransactionType.CORPORATION_DISSOLUTION,
                    description="Liquidation distribution",
                )
            for entry in self.ledger.entries(corporation_id):
                batch.add_totals(
                    self.chain.unit_flow_totals(entry.sector, entry.unit_counts), sign=-1
                )
                self.ledger.remove_entry(entry.entry_id)
            for holder_id in holdings:
                self.ledger.transfer_shares(corporation_id, holder_id, None, holdings[holder_id])
            self.ledger.update_corporation(
                corporation_id, dissolved=True, ceo_id=None, board_member_ids=()
            )
            self.ledger.check_share_integrity(corporation_id)

        if batch:
            self.pricer.apply_batch(batch)
        logger.info(
            "dissolved corporation %d: distributed %.2f to %d holder(s)",
            corporation_id,
            sum(payouts.values()),
            len(payouts),
        )
        return payouts

    # =========================================================================
    # MARKET ENTRIES
    # =========================================================================

    def enter_market(self, corporation_id: int, user_id: int, region: str, sector: str) -> MarketEntry:
        """
        Вход корпорации на рынок (region, sector).

        Raises:
            NotAuthorized: Если user не CEO
            DuplicateMarketEntry: Запись (corporation, region, sector) уже есть
            InsufficientFunds / InsufficientActions
        """
        validate_region(region)
        self.chain.sector(sector)
        corporation = self.ledger.active_corporation(corporation_id)
        self._require_ceo(corporation, user_id, "enter new markets")

        with self.ledger.atomic(corporation_id):
            for existing in self.ledger.entries(corporation_id):
                if existing.region == region and existing.sector == sector:
                    raise DuplicateMarketEntry(
                        f"Corporation {corporation_id} already operates {sector} in {region}"
                    )
            self.ledger.debit(
                corporation_id,
                self.config.market_entry_cost,
                TransactionType.MARKET_ENTRY,
                description=f"Market entry {sector} in {region}",
            )
            self.ledger.spend_actions(user_id, self.config.market_entry_actions)
            entry = MarketEntry(
                entry_id=self.ledger.next_entry_id(),
                corporation_id=corporation_id,
                region=region,
                sector=sector,
                created_ts_utc_ms=self.ledger.clock(),
            )
            self.ledger.put_entry(entry)

        logger.info("corporation %d entered %s in %s", corporation_id, sector, region)
        return entry

    def build_unit(self, entry_id: int, user_id: int, unit_type: UnitType) -> MarketEntry:
        """
        Постройка юнита в market entry.

        Raises:
            UnsupportedUnitType: Сектор не строит этот тип юнита
            FocusRestriction: Фокус корпорации запрещает тип юнита
            CapacityExceeded: Ёмкость региона исчерпана
            InsufficientFunds / InsufficientActions
        """
        unit_type = UnitType(unit_type)
        entry = self.ledger.entry(entry_id)
        corporation = self.ledger.active_corporation(entry.corporation_id)
        self._require_ceo(corporation, user_id, "build units")

        if not self.chain.can_build(entry.sector, unit_type):
            raise UnsupportedUnitType(entry.sector, unit_type.value)
        if unit_type not in FOCUS_ALLOWED_UNITS[corporation.focus]:
            raise FocusRestriction(
                f"{corporation.focus.value} focus does not allow {unit_type.value} units"
            )

        with self.ledger.atomic(entry.corporation_id):
            entry = self.ledger.entry(entry_id)
            capacity = region_capacity(entry.region)
            if entry.total_units >= capacity:
                raise CapacityExceeded(entry.region, capacity)
            self.ledger.debit(
                entry.corporation_id,
                self.config.build_unit_cost,
                TransactionType.BUILD_UNIT,
                description=f"Build {unit_type.value} unit in {entry.sector} ({entry.region})",
            )
            self.ledger.spend_actions(user_id, self.config.build_unit_actions)
            counts = dict(entry.unit_counts)
            counts[unit_type] = counts.get(unit_type, 0) + 1
            updated = entry.model_copy(update={"unit_counts": counts})
            self.ledger.put_entry(updated)

        batch = FlowBatch()
        batch.add_totals(self.chain.unit_flow_totals(entry.sector, {unit_type: 1}))
        self.pricer.apply_batch(batch)
        logger.debug(
            "built %s unit in entry %d (%d/%d)",
            unit_type.value,
            entry_id,
            updated.total_units,
            capacity,
        )
        return updated

    def abandon_entry(self, entry_id: int, user_id: int) -> MarketEntry:
        """Снятие market entry со всеми юнитами; потоки юнитов отзываются."""
        entry = self.ledger.entry(entry_id)
        corporation = self.ledger.active_corporation(entry.corporation_id)
        self._require_ceo(corporation, user_id, "abandon markets")

        with self.ledger.atomic(entry.corporation_id):
            removed = self.ledger.remove_entry(entry_id)

        if removed.total_units:
            batch = FlowBatch()
            batch.add_totals(
                self.chain.unit_flow_totals(removed.sector, removed.unit_counts), sign=-1
            )
            self.pricer.apply_batch(batch)
        logger.info(
            "corporation %d abandoned %s in %s (%d unit(s))",
            removed.corporation_id,
            removed.sector,
            removed.region,
            removed.total_units,
        )
        return removed

    # =========================================================================
    # CORPORATE ACTIONS
    # =========================================================================

    def corporate_action_cost(self, corporation: Corporation) -> float:
        """base_cost + market_cap_rate × market cap, до центов."""
        config = self.config
        return round_money(
            config.corporate_action_base_cost
            + corporation.market_cap * config.corporate_action_market_cap_rate
        )

    def activate_corporate_action(
        self,
        corporation_id: int,
        user_id: int,
        action_type: CorporateActionType,
        now_ts_utc_ms: int | None = None,
    ) -> CorporateAction:
        """
        Покупка временного буста прибыли за cash корпорации.

        Активное действие увеличивает положительную операционную прибыль хода
        на boost; действия разных типов суммируются.

        Raises:
            NotAuthorized: Если user не CEO
            CorporateActionActive: Действие этого типа ещё активно
            InsufficientFunds: Cash корпорации меньше стоимости
        """
        action_type = CorporateActionType(action_type)
        now = self.ledger.clock() if now_ts_utc_ms is None else now_ts_utc_ms

        with self.ledger.atomic(corporation_id):
            corporation = self.ledger.active_corporation(corporation_id)
            self._require_ceo(corporation, user_id, "activate corporate actions")
            for active in self.ledger.corporate_actions(corporation_id, active_at_ts_utc_ms=now):
                if active.action_type == action_type:
                    raise CorporateActionActive(action_type.value, active.expires_ts_utc_ms)

            cost = self.corporate_action_cost(corporation)
            action = CorporateAction(
                action_id=self.ledger.next_action_id(),
                corporation_id=corporation_id,
                action_type=action_type,
                cost=cost,
                boost=self.config.corporate_action_boost,
                started_ts_utc_ms=now,
                expires_ts_utc_ms=now + self.config.corporate_action_duration_ms,
            )
            self.ledger.debit(
                corporation_id,
                cost,
                TransactionType.CORPORATE_ACTION,
                description=f"{action.label} activated",
            )
            self.ledger.add_corporate_action(action)

        logger.info(
            "corporation %d activated %s for %.2f until ts=%d",
            corporation_id,
            action_type.value,
            cost,
            action.expires_ts_utc_ms,
        )
        return action
