"""
BoardProposal — Модели предложений совета директоров и голосов

Payload предложения — tagged union (discriminator = "type"): один вариант на
каждый ProposalType. Governance применяет payload через исчерпывающий
dispatch по типу.

Lifecycle: ACTIVE → PASSED | FAILED (терминальные). Предложения не удаляются.
"""

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from .catalog import CorpFocus


# =============================================================================
# ENUMS
# =============================================================================


class ProposalType(str, Enum):
    """Закрытый набор типов предложений."""

    CEO_NOMINATION = "ceo_nomination"
    SECTOR_CHANGE = "sector_change"
    HQ_CHANGE = "hq_change"
    BOARD_SIZE = "board_size"
    APPOINT_MEMBER = "appoint_member"
    CEO_SALARY_CHANGE = "ceo_salary_change"
    DIVIDEND_CHANGE = "dividend_change"
    SPECIAL_DIVIDEND = "special_dividend"
    STOCK_SPLIT = "stock_split"
    FOCUS_CHANGE = "focus_change"
    ISSUE_SHARES = "issue_shares"
    GO_PUBLIC = "go_public"
    BUYBACK_SHARES = "buyback_shares"


class ProposalStatus(str, Enum):
    ACTIVE = "active"
    PASSED = "passed"
    FAILED = "failed"


class VoteChoice(str, Enum):
    AYE = "aye"
    NAY = "nay"


# =============================================================================
# PAYLOAD VARIANTS
# =============================================================================


class CeoNominationPayload(BaseModel):
    type: Literal["ceo_nomination"] = "ceo_nomination"
    nominee_id: int = Field(..., ge=1)

    model_config = {"frozen": True}


class SectorChangePayload(BaseModel):
    type: Literal["sector_change"] = "sector_change"
    new_sector: str = Field(..., min_length=1)

    model_config = {"frozen": True}


class HqChangePayload(BaseModel):
    type: Literal["hq_change"] = "hq_change"
    new_region: str = Field(..., min_length=2, max_length=2)

    model_config = {"frozen": True}


class BoardSizePayload(BaseModel):
    type: Literal["board_size"] = "board_size"
    new_size: int = Field(..., ge=3, le=7)

    model_config = {"frozen": True}


class AppointMemberPayload(BaseModel):
    type: Literal["appoint_member"] = "appoint_member"
    appointee_id: int = Field(..., ge=1)

    model_config = {"frozen": True}


class CeoSalaryChangePayload(BaseModel):
    type: Literal["ceo_salary_change"] = "ceo_salary_change"
    new_salary: float = Field(..., ge=0, le=10_000_000)

    model_config = {"frozen": True}


class DividendChangePayload(BaseModel):
    type: Literal["dividend_change"] = "dividend_change"
    new_percentage: float = Field(..., ge=0, le=100)

    model_config = {"frozen": True}


class SpecialDividendPayload(BaseModel):
    type: Literal["special_dividend"] = "special_dividend"
    capital_percentage: float = Field(..., gt=0, le=100)

    model_config = {"frozen": True}


class StockSplitPayload(BaseModel):
    type: Literal["stock_split"] = "stock_split"
    ratio: int = Field(..., ge=2, description="Целочисленный коэффициент сплита")

    model_config = {"frozen": True}


class FocusChangePayload(BaseModel):
    type: Literal["focus_change"] = "focus_change"
    new_focus: CorpFocus

    model_config = {"frozen": True}


class IssueSharesPayload(BaseModel):
    type: Literal["issue_shares"] = "issue_shares"
    shares: int = Field(..., ge=1)

    model_config = {"frozen": True}


class GoPublicPayload(BaseModel):
    """Листинг частной корпорации: новые акции выпускаются в public float."""

    type: Literal["go_public"] = "go_public"
    initial_public_shares: int = Field(..., ge=1)

    model_config = {"frozen": True}


class BuybackSharesPayload(BaseModel):
    """Выкуп акций из public float по min(текущая цена, max_price_per_share)."""

    type: Literal["buyback_shares"] = "buyback_shares"
    shares: int = Field(..., ge=1)
    max_price_per_share: float = Field(..., gt=0)

    model_config = {"frozen": True}


ProposalPayload = Annotated[
    Union[
        CeoNominationPayload,
        SectorChangePayload,
        HqChangePayload,
        BoardSizePayload,
        AppointMemberPayload,
        CeoSalaryChangePayload,
        DividendChangePayload,
        SpecialDividendPayload,
        StockSplitPayload,
        FocusChangePayload,
        IssueSharesPayload,
        GoPublicPayload,
        BuybackSharesPayload,
    ],
    Field(discriminator="type"),
]

_PAYLOAD_ADAPTER: TypeAdapter = TypeAdapter(ProposalPayload)


def parse_payload(data: dict) -> BaseModel:
    """
    Разбор payload из dict (например, из HTTP-запроса).

    Raises:
        pydantic.ValidationError: Если тип неизвестен или поле отсутствует
    """
    return _PAYLOAD_ADAPTER.validate_python(data)


# =============================================================================
# PROPOSAL & VOTE
# =============================================================================


class BoardProposal(BaseModel):
    """Предложение совета директоров."""

    proposal_id: int = Field(..., ge=1)
    corporation_id: int = Field(..., ge=1)
    proposer_id: int = Field(..., ge=1)
    payload: ProposalPayload
    status: ProposalStatus = Field(default=ProposalStatus.ACTIVE)
    created_ts_utc_ms: int = Field(..., ge=0)
    expires_ts_utc_ms: int = Field(..., ge=0)
    resolved_ts_utc_ms: int | None = Field(default=None)
    applied_ts_utc_ms: int | None = Field(
        default=None, description="Момент применения payload (только PASSED)"
    )
    failure_reason: str | None = Field(default=None)

    model_config = {"frozen": True}

    @property
    def proposal_type(self) -> ProposalType:
        return ProposalType(self.payload.type)

    @property
    def is_active(self) -> bool:
        return self.status == ProposalStatus.ACTIVE


class Vote(BaseModel):
    """Голос члена совета. Immutable после подачи."""

    proposal_id: int = Field(..., ge=1)
    voter_id: int = Field(..., ge=1)
    choice: VoteChoice
    ts_utc_ms: int = Field(..., ge=0)

    model_config = {"frozen": True}
