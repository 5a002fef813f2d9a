"""
ShareMarket — Торговля акциями, эмиссия и сплит

Операции изменяют позиции, public float и total_shares:

    buy:   public_shares → holding покупателя, cash покупателя − shares × price
    sell:  holding продавца → public_shares, cash продавца + shares × price
    issue: total_shares и public_shares += shares (не более 10% total),
           capital корпорации += shares × price
    split: total/public/все позиции × ratio, price / ratio (market cap не меняется)
    go_public: частная корпорация (public_shares == 0) выпускает начальный float
    buyback: public_shares и total_shares −= shares, capital −= shares × min(price, max)

Сделки исполняются по текущей цене; cash корпорации при buy/sell не меняется.
После каждой операции проверяется инвариант total = Σ holdings + public.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict

from src.core.domain.corporation import Corporation, ShareTrade
from src.core.domain.errors import (
    AlreadyPublic,
    CeoMustRetainShares,
    ExceedsIssuanceCap,
    InsufficientHolding,
    InsufficientPublicFloat,
    SimulationValidationError,
)
from src.core.domain.transaction import TransactionType
from src.core.math.numerical_safeguards import (
    round_money,
    validate_positive,
    validate_share_count,
)
from src.ledger.ledger import Ledger
from src.market.valuation import Valuation

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIG & RESULTS
# =============================================================================


@dataclass(frozen=True)
class ShareMarketConfig:
    issuance_cap_fraction: float = 0.10  # Доля total_shares на одну эмиссию


@dataclass(frozen=True)
class TradeResult:
    """Итог исполненной сделки."""

    corporation_id: int
    side: str
    shares: int
    price_per_share: float
    total: float  # cost для buy, revenue для sell
    new_share_price: float

    def to_dict(self) -> Dict[str, Any]:
        amount_key = "total_cost" if self.side == "buy" else "total_revenue"
        return {
            "corporation_id": self.corporation_id,
            "side": self.side,
            "shares": self.shares,
            "price_per_share": self.price_per_share,
            amount_key: self.total,
            "new_share_price": self.new_share_price,
        }


# =============================================================================
# SHARE MARKET
# =============================================================================


class ShareMarket:
    """
    Исполнение операций с акциями поверх Ledger.

    Args:
        ledger: Ledger
        valuation: Пересчёт цены после сделки
        config: Параметры эмиссии
    """

    def __init__(
        self,
        ledger: Ledger,
        valuation: Valuation,
        config: ShareMarketConfig | None = None,
    ):
        self.ledger = ledger
        self.valuation = valuation
        self.config = config or ShareMarketConfig()

    def issuance_cap(self, corporation: Corporation) -> int:
        return math.floor(corporation.total_shares * self.config.issuance_cap_fraction)

    # =========================================================================
    # TRADING
    # =========================================================================

    def buy(
        self, corporation_id: int, user_id: int, shares: int, now_ts_utc_ms: int | None = None
    ) -> TradeResult:
        """
        Покупка акций из public float по текущей цене.

        Raises:
            InsufficientPublicFloat: Float меньше запрошенного
            InsufficientFunds: У покупателя не хватает cash
        """
        validate_share_count(shares)
        now = self.ledger.clock() if now_ts_utc_ms is None else now_ts_utc_ms

        with self.ledger.atomic(corporation_id):
            corporation = self.ledger.active_corporation(corporation_id)
            if corporation.public_shares < shares:
                raise InsufficientPublicFloat(corporation_id, corporation.public_shares, shares)

            price = corporation.share_price
            total_cost = round_money(shares * price)
            self.ledger.charge_user(
                user_id,
                total_cost,
                TransactionType.SHARE_PURCHASE,
                corporation_id=corporation_id,
                description=f"Bought {shares} shares of {corporation.name}",
            )
            self.ledger.transfer_shares(corporation_id, None, user_id, shares)
            return self._complete_trade(corporation_id, user_id, "buy", shares, price, total_cost, now)

    def sell(
        self, corporation_id: int, user_id: int, shares: int, now_ts_utc_ms: int | None = None
    ) -> TradeResult:
        """
        Продажа акций в public float по текущей цене.

        Raises:
            InsufficientHolding: Позиция меньше запрошенного
            CeoMustRetainShares: CEO продаёт всю позицию
        """
        validate_share_count(shares)
        now = self.ledger.clock() if now_ts_utc_ms is None else now_ts_utc_ms

        with self.ledger.atomic(corporation_id):
            corporation = self.ledger.active_corporation(corporation_id)
            held = self.ledger.holding(corporation_id, user_id)
            if held < shares:
                raise InsufficientHolding(user_id, held, shares)
            if corporation.ceo_id == user_id and shares == held:
                raise CeoMustRetainShares(
                    f"CEO of corporation {corporation_id} cannot sell all {held} shares"
                )

            price = corporation.share_price
            total_revenue = round_money(shares * price)
            self.ledger.transfer_shares(corporation_id, user_id, None, shares)
            self.ledger.credit_user(
                user_id,
                total_revenue,
                TransactionType.SHARE_SALE,
                corporation_id=corporation_id,
                description=f"Sold {shares} shares of {corporation.name}",
            )
            return self._complete_trade(
                corporation_id, user_id, "sell", shares, price, total_revenue, now
            )

    def _complete_trade(
        self,
        corporation_id: int,
        user_id: int,
        side: str,
        shares: int,
        price: float,
        total: float,
        now: int,
    ) -> TradeResult:
        self.ledger.record_trade(
            ShareTrade(
                corporation_id=corporation_id,
                user_id=user_id,
                side=side,
                shares=shares,
                price_per_share=price,
                ts_utc_ms=now,
            )
        )
        self.ledger.check_share_integrity(corporation_id)
        valuation = self.valuation.recompute(corporation_id, now)
        logger.debug(
            "%s %d shares of corporation %d by user %d @ %.2f",
            side,
            shares,
            corporation_id,
            user_id,
            price,
        )
        return TradeResult(
            corporation_id=corporation_id,
            side=side,
            shares=shares,
            price_per_share=price,
            total=total,
            new_share_price=valuation.new_price,
        )

    # =========================================================================
    # CAPITAL ACTIONS
    # =========================================================================

    def issue(self, corporation_id: int, shares: int) -> Corporation:
        """
        Эмиссия новых акций в public float.

        Raises:
            ExceedsIssuanceCap: shares > floor(issuance_cap_fraction × total_shares)
        """
        validate_share_count(shares)
        with self.ledger.atomic(corporation_id):
            corporation = self.ledger.active_corporation(corporation_id)
            cap = self.issuance_cap(corporation)
            if shares > cap:
                raise ExceedsIssuanceCap(shares, cap)

            raised = round_money(shares * corporation.share_price)
            self.ledger.mint_public_shares(corporation_id, shares)
            self.ledger.credit(
                corporation_id,
                raised,
                TransactionType.SHARE_ISSUE,
                description=f"Issued {shares} shares at {corporation.share_price:.2f}",
            )
            self.ledger.check_share_integrity(corporation_id)
            updated = self.ledger.corporation(corporation_id)

        logger.info(
            "corporation %d issued %d shares (total %d), raised %.2f",
            corporation_id,
            shares,
            updated.total_shares,
            raised,
        )
        return updated

    def split(self, corporation_id: int, ratio: int) -> Corporation:
        """
        Сплит акций с целочисленным коэффициентом.

        Raises:
            SimulationValidationError: ratio не целое число >= 2
        """
        if isinstance(ratio, bool) or not isinstance(ratio, int) or ratio < 2:
            raise SimulationValidationError(f"Split ratio must be an integer >= 2, got {ratio!r}")

        with self.ledger.atomic(corporation_id):
            before = self.ledger.active_corporation(corporation_id)
            self.ledger.scale_shares(corporation_id, ratio)
            updated = self.ledger.update_corporation(
                corporation_id, share_price=before.share_price / ratio
            )
            self.ledger.check_share_integrity(corporation_id)

        logger.info(
            "corporation %d split %d:1, total shares %d -> %d, price %.4f -> %.4f",
            corporation_id,
            ratio,
            before.total_shares,
            updated.total_shares,
            before.share_price,
            updated.share_price,
        )
        return updated

    def go_public(self, corporation_id: int, shares: int) -> Corporation:
        """
        Листинг частной корпорации: shares новых акций выпускаются в public
        float без привлечения капитала (float продаётся через buy).

        Raises:
            AlreadyPublic: У корпорации уже есть public float
        """
        validate_share_count(shares)
        with self.ledger.atomic(corporation_id):
            corporation = self.ledger.active_corporation(corporation_id)
            if corporation.public_shares > 0:
                raise AlreadyPublic(corporation_id, corporation.public_shares)
            updated = self.ledger.mint_public_shares(corporation_id, shares)
            self.ledger.check_share_integrity(corporation_id)

        logger.info(
            "corporation %d went public with %d shares (total %d)",
            corporation_id,
            shares,
            updated.total_shares,
        )
        return updated

    def buyback(self, corporation_id: int, shares: int, max_price_per_share: float) -> Corporation:
        """
        Выкуп и погашение акций из public float за cash корпорации.

        Цена выкупа = min(текущая цена, max_price_per_share).

        Raises:
            InsufficientPublicFloat: Float меньше запрошенного
            InsufficientFunds: Cash корпорации меньше стоимости выкупа
        """
        validate_share_count(shares)
        validate_positive(max_price_per_share, "max_price_per_share")
        with self.ledger.atomic(corporation_id):
            corporation = self.ledger.active_corporation(corporation_id)
            price = min(corporation.share_price, max_price_per_share)
            cost = round_money(shares * price)
            self.ledger.retire_public_shares(corporation_id, shares)
            self.ledger.debit(
                corporation_id,
                cost,
                TransactionType.SHARE_BUYBACK,
                description=f"Bought back {shares} shares at {price:.2f}",
            )
            self.ledger.check_share_integrity(corporation_id)
            updated = self.ledger.corporation(corporation_id)

        logger.info(
            "corporation %d bought back %d shares (total %d) for %.2f",
            corporation_id,
            shares,
            updated.total_shares,
            cost,
        )
        return updated
