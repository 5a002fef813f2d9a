"""
Effects — Применение принятых предложений совета

Исчерпывающий dispatch: один handler на каждый ProposalType. Handler
вызывается внутри Ledger.atomic корпорации; BusinessRuleViolation откатывает
все изменения handler'а, и предложение помечается FAILED.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict

from pydantic import BaseModel

from src.core.domain.errors import AlreadyBoardMember, BoardFull, CooldownActive
from src.core.domain.proposal import (
    AppointMemberPayload,
    BoardSizePayload,
    BuybackSharesPayload,
    CeoNominationPayload,
    CeoSalaryChangePayload,
    DividendChangePayload,
    FocusChangePayload,
    GoPublicPayload,
    HqChangePayload,
    IssueSharesPayload,
    ProposalType,
    SectorChangePayload,
    SpecialDividendPayload,
    StockSplitPayload,
)
from src.core.domain.transaction import TransactionType
from src.core.math.numerical_safeguards import round_money
from src.economy.chain_model import ChainModel
from src.economy.finances import allocate_pro_rata
from src.economy.regions import validate_region
from src.ledger.ledger import Ledger
from src.market.share_market import ShareMarket

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EffectContext:
    """Зависимости handler'ов."""

    ledger: Ledger
    share_market: ShareMarket
    chain: ChainModel
    special_dividend_cooldown_ms: int


EffectHandler = Callable[[EffectContext, int, BaseModel, int], None]

# Типы, меняющие состав совета (после применения чистятся голоса не-членов)
BOARD_CHANGING_TYPES = frozenset(
    {ProposalType.CEO_NOMINATION, ProposalType.BOARD_SIZE, ProposalType.APPOINT_MEMBER}
)


# =============================================================================
# HANDLERS
# =============================================================================


def _ceo_nomination(ctx: EffectContext, corporation_id: int, payload: CeoNominationPayload, now: int) -> None:
    ctx.ledger.user(payload.nominee_id)
    corporation = ctx.ledger.corporation(corporation_id)
    members = tuple(m for m in corporation.board_member_ids if m != payload.nominee_id)
    ctx.ledger.update_corporation(
        corporation_id, ceo_id=payload.nominee_id, board_member_ids=members
    )


def _sector_change(ctx: EffectContext, corporation_id: int, payload: SectorChangePayload, now: int) -> None:
    ctx.chain.sector(payload.new_sector)
    ctx.ledger.update_corporation(corporation_id, sector=payload.new_sector)


def _hq_change(ctx: EffectContext, corporation_id: int, payload: HqChangePayload, now: int) -> None:
    validate_region(payload.new_region)
    ctx.ledger.update_corporation(corporation_id, hq_region=payload.new_region)


def _board_size(ctx: EffectContext, corporation_id: int, payload: BoardSizePayload, now: int) -> None:
    corporation = ctx.ledger.corporation(corporation_id)
    # CEO занимает одно место; последние назначенные теряют места первыми
    seats = payload.new_size - 1
    ctx.ledger.update_corporation(
        corporation_id,
        board_size=payload.new_size,
        board_member_ids=corporation.board_member_ids[:seats],
    )


def _appoint_member(ctx: EffectContext, corporation_id: int, payload: AppointMemberPayload, now: int) -> None:
    ctx.ledger.user(payload.appointee_id)
    corporation = ctx.ledger.corporation(corporation_id)
    if payload.appointee_id == corporation.ceo_id or payload.appointee_id in corporation.board_member_ids:
        raise AlreadyBoardMember(corporation_id, payload.appointee_id)
    if len(corporation.board_member_ids) >= corporation.board_size - 1:
        raise BoardFull(f"Board of corporation {corporation_id} has no free seats")
    ctx.ledger.update_corporation(
        corporation_id,
        board_member_ids=corporation.board_member_ids + (payload.appointee_id,),
    )


def _ceo_salary_change(ctx: EffectContext, corporation_id: int, payload: CeoSalaryChangePayload, now: int) -> None:
    ctx.ledger.update_corporation(corporation_id, ceo_salary=payload.new_salary)


def _dividend_change(ctx: EffectContext, corporation_id: int, payload: DividendChangePayload, now: int) -> None:
    ctx.ledger.update_corporation(corporation_id, dividend_percentage=payload.new_percentage)


def _special_dividend(ctx: EffectContext, corporation_id: int, payload: SpecialDividendPayload, now: int) -> None:
    """
    Выплата capital × pct / 100 пропорционально total_shares: доля
    public float остаётся у корпорации.
    """
    corporation = ctx.ledger.corporation(corporation_id)
    last_paid = corporation.special_dividend_last_paid_ts_utc_ms
    if last_paid is not None and now < last_paid + ctx.special_dividend_cooldown_ms:
        raise CooldownActive(last_paid + ctx.special_dividend_cooldown_ms)

    amount = round_money(corporation.cash * payload.capital_percentage / 100)
    payouts = allocate_pro_rata(
        amount, ctx.ledger.shareholders(corporation_id), corporation.total_shares
    )
    for user_id, payout in payouts.items():
        ctx.ledger.pay_user(
            corporation_id,
            user_id,
            payout,
            TransactionType.SPECIAL_DIVIDEND,
            description=f"Special dividend ({payload.capital_percentage}% of capital)",
        )
    paid = round_money(sum(payouts.values()))
    ctx.ledger.update_corporation(
        corporation_id,
        special_dividend_last_paid_ts_utc_ms=now,
        special_dividend_last_amount=paid,
    )
    logger.info(
        "corporation %d paid special dividend %.2f to %d holder(s)",
        corporation_id,
        paid,
        len(payouts),
    )


def _stock_split(ctx: EffectContext, corporation_id: int, payload: StockSplitPayload, now: int) -> None:
    ctx.share_market.split(corporation_id, payload.ratio)


def _focus_change(ctx: EffectContext, corporation_id: int, payload: FocusChangePayload, now: int) -> None:
    ctx.ledger.update_corporation(corporation_id, focus=payload.new_focus)


def _issue_shares(ctx: EffectContext, corporation_id: int, payload: IssueSharesPayload, now: int) -> None:
    ctx.share_market.issue(corporation_id, payload.shares)


def _go_public(ctx: EffectContext, corporation_id: int, payload: GoPublicPayload, now: int) -> None:
    ctx.share_market.go_public(corporation_id, payload.initial_public_shares)


def _buyback_shares(ctx: EffectContext, corporation_id: int, payload: BuybackSharesPayload, now: int) -> None:
    ctx.share_market.buyback(corporation_id, payload.shares, payload.max_price_per_share)


EFFECT_HANDLERS: Dict[ProposalType, EffectHandler] = {
    ProposalType.CEO_NOMINATION: _ceo_nomination,
    ProposalType.SECTOR_CHANGE: _sector_change,
    ProposalType.HQ_CHANGE: _hq_change,
    ProposalType.BOARD_SIZE: _board_size,
    ProposalType.APPOINT_MEMBER: _appoint_member,
    ProposalType.CEO_SALARY_CHANGE: _ceo_salary_change,
    ProposalType.DIVIDEND_CHANGE: _dividend_change,
    ProposalType.SPECIAL_DIVIDEND: _special_dividend,
    ProposalType.STOCK_SPLIT: _stock_split,
    ProposalType.FOCUS_CHANGE: _focus_change,
    ProposalType.ISSUE_SHARES: _issue_shares,
    ProposalType.GO_PUBLIC: _go_public,
    ProposalType.BUYBACK_SHARES: _buyback_shares,
}


def apply_effect(
    ctx: EffectContext, proposal_type: ProposalType, corporation_id: int, payload: BaseModel, now: int
) -> None:
    """
    Применение payload принятого предложения.

    Raises:
        BusinessRuleViolation: Эффект не может быть применён
    """
    EFFECT_HANDLERS[ProposalType(proposal_type)](ctx, corporation_id, payload, now)
