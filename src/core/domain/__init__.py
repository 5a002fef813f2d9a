"""
Domain models and value objects.

Contains fundamental domain entities like Corporation, MarketEntry,
BoardProposal, Transaction and the sector catalog types.
"""

from src.core.domain.catalog import (
    FOCUS_ALLOWED_UNITS,
    NEUTRAL_RULE,
    UNIT_TYPE_ORDER,
    CatalogItem,
    CorpFocus,
    FlowInput,
    FlowOutput,
    ItemKind,
    Sector,
    SectorRule,
    UnitFlow,
    UnitType,
)
from src.core.domain.corporation import (
    CorporateAction,
    CorporateActionType,
    Corporation,
    MarketEntry,
    PriceSample,
    Shareholder,
    ShareTrade,
    UserAccount,
)
from src.core.domain.errors import (
    BusinessRuleViolation,
    DependencyTimeout,
    IntegrityError,
    SimulationError,
    SimulationValidationError,
)
from src.core.domain.proposal import (
    BoardProposal,
    ProposalPayload,
    ProposalStatus,
    ProposalType,
    Vote,
    VoteChoice,
    parse_payload,
)
from src.core.domain.transaction import Transaction, TransactionType

__all__ = [
    # Catalog
    "FOCUS_ALLOWED_UNITS",
    "NEUTRAL_RULE",
    "UNIT_TYPE_ORDER",
    "CatalogItem",
    "CorpFocus",
    "FlowInput",
    "FlowOutput",
    "ItemKind",
    "Sector",
    "SectorRule",
    "UnitFlow",
    "UnitType",
    # Corporation
    "CorporateAction",
    "CorporateActionType",
    "Corporation",
    "MarketEntry",
    "PriceSample",
    "Shareholder",
    "ShareTrade",
    "UserAccount",
    # Errors
    "BusinessRuleViolation",
    "DependencyTimeout",
    "IntegrityError",
    "SimulationError",
    "SimulationValidationError",
    # Proposals
    "BoardProposal",
    "ProposalPayload",
    "ProposalStatus",
    "ProposalType",
    "Vote",
    "VoteChoice",
    "parse_payload",
    # Transactions
    "Transaction",
    "TransactionType",
]
