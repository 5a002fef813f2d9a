"""
Descriptions — Человекочитаемые описания предложений совета
"""

from typing import Callable, Dict

from pydantic import BaseModel

from src.core.domain.proposal import BoardProposal, ProposalType
from src.economy.regions import REGION_NAMES

_DESCRIBERS: Dict[ProposalType, Callable[[BaseModel], str]] = {
    ProposalType.CEO_NOMINATION: lambda p: f"Nominate user {p.nominee_id} as CEO",
    ProposalType.SECTOR_CHANGE: lambda p: f"Change sector to {p.new_sector}",
    ProposalType.HQ_CHANGE: lambda p: (
        f"Move headquarters to {REGION_NAMES.get(p.new_region, p.new_region)}"
    ),
    ProposalType.BOARD_SIZE: lambda p: f"Change board size to {p.new_size} seats",
    ProposalType.APPOINT_MEMBER: lambda p: f"Appoint user {p.appointee_id} to the board",
    ProposalType.CEO_SALARY_CHANGE: lambda p: f"Set CEO salary to ${p.new_salary:,.2f} per period",
    ProposalType.DIVIDEND_CHANGE: lambda p: f"Set dividend to {p.new_percentage:g}% of operating income",
    ProposalType.SPECIAL_DIVIDEND: lambda p: (
        f"Pay a special dividend of {p.capital_percentage:g}% of capital"
    ),
    ProposalType.STOCK_SPLIT: lambda p: f"Split stock {p.ratio}-for-1",
    ProposalType.FOCUS_CHANGE: lambda p: f"Change strategic focus to {p.new_focus.value}",
    ProposalType.ISSUE_SHARES: lambda p: f"Issue {p.shares:,} new shares",
    ProposalType.GO_PUBLIC: lambda p: f"Go public with {p.initial_public_shares:,} shares",
    ProposalType.BUYBACK_SHARES: lambda p: (
        f"Buy back {p.shares:,} shares at up to ${p.max_price_per_share:,.2f} per share"
    ),
}


def describe(proposal: BoardProposal) -> str:
    """
    Examples:
        StockSplitPayload(ratio=2) → "Split stock 2-for-1"
    """
    return _DESCRIBERS[proposal.proposal_type](proposal.payload)
