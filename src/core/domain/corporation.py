"""
Corporation — Модели корпорации, акционеров, пользователей и market entries

Все модели immutable (frozen); Ledger заменяет записи через model_copy(update=...).

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. total_shares = Σ shareholder.shares + public_shares (мониторинг, не коррекция)
2. cash >= 0 после каждой мутации Ledger
3. Shareholder с shares == 0 удаляется
"""

from enum import Enum
from typing import Dict, Tuple

from pydantic import BaseModel, Field, field_validator

from .catalog import CorpFocus, UnitType


# =============================================================================
# CORPORATION
# =============================================================================


class Corporation(BaseModel):
    """
    Финансовое состояние и атрибуты корпорации.

    sector/hq_region/focus/board_* изменяются только через Governance.
    """

    corporation_id: int = Field(..., ge=1)
    name: str = Field(..., min_length=1)
    ceo_id: int | None = Field(default=None, description="CEO (None — вакансия)")

    # Финансы
    cash: float = Field(..., ge=0, description="Капитал корпорации (USD)")
    total_shares: int = Field(..., ge=1, description="Всего акций")
    public_shares: int = Field(..., ge=0, description="Непроданные (float) акции")
    share_price: float = Field(..., gt=0, description="Текущая цена акции (USD)")

    # Governance-атрибуты
    board_size: int = Field(default=3, ge=3, le=7)
    board_member_ids: Tuple[int, ...] = Field(
        default=(), description="Назначенные члены совета (без CEO)"
    )
    ceo_salary: float = Field(default=100_000.0, ge=0, description="Зарплата CEO за период")
    dividend_percentage: float = Field(default=0.0, ge=0, le=100)
    special_dividend_last_paid_ts_utc_ms: int | None = Field(default=None)
    special_dividend_last_amount: float | None = Field(default=None, ge=0)

    sector: str = Field(..., min_length=1)
    hq_region: str = Field(..., min_length=2, max_length=2)
    focus: CorpFocus = Field(default=CorpFocus.DIVERSIFIED)

    # Turn bookkeeping
    last_processed_period: int | None = Field(
        default=None, description="Последний обработанный turn period"
    )
    last_salary_paid_ts_utc_ms: int | None = Field(default=None)
    created_ts_utc_ms: int = Field(..., ge=0)
    dissolved: bool = Field(default=False)

    model_config = {"frozen": True}

    @field_validator("public_shares")
    @classmethod
    def validate_public_shares(cls, v: int, info) -> int:
        total = info.data.get("total_shares")
        if total is not None and v > total:
            raise ValueError(f"public_shares ({v}) cannot exceed total_shares ({total})")
        return v

    @property
    def market_cap(self) -> float:
        return self.total_shares * self.share_price


# =============================================================================
# SHAREHOLDERS & USERS
# =============================================================================


class Shareholder(BaseModel):
    """Позиция пользователя в корпорации."""

    corporation_id: int = Field(..., ge=1)
    user_id: int = Field(..., ge=1)
    shares: int = Field(..., ge=0)

    model_config = {"frozen": True}


class UserAccount(BaseModel):
    """Наличные и action points игрока."""

    user_id: int = Field(..., ge=1)
    cash: float = Field(default=0.0, ge=0)
    actions: int = Field(default=0, ge=0)

    model_config = {"frozen": True}


# =============================================================================
# MARKET ENTRY
# =============================================================================


class MarketEntry(BaseModel):
    """
    Присутствие корпорации в (region, sector).

    Не более одной записи на (corporation, region, sector).
    """

    entry_id: int = Field(..., ge=1)
    corporation_id: int = Field(..., ge=1)
    region: str = Field(..., min_length=2, max_length=2, description="Код штата")
    sector: str = Field(..., min_length=1)
    unit_counts: Dict[UnitType, int] = Field(default_factory=dict)
    created_ts_utc_ms: int = Field(..., ge=0)

    model_config = {"frozen": True}

    @field_validator("unit_counts")
    @classmethod
    def validate_counts(cls, v: Dict[UnitType, int]) -> Dict[UnitType, int]:
        for unit_type, count in v.items():
            if count < 0:
                raise ValueError(f"Unit count for {unit_type} must be >= 0, got {count}")
        return v

    def count(self, unit_type: UnitType) -> int:
        return self.unit_counts.get(unit_type, 0)

    @property
    def total_units(self) -> int:
        return sum(self.unit_counts.values())


# =============================================================================
# SHARE TRADES & PRICE HISTORY
# =============================================================================


class ShareTrade(BaseModel):
    """Исполненная сделка с акциями (вход для trade-weighted price)."""

    corporation_id: int = Field(..., ge=1)
    user_id: int = Field(..., ge=1)
    side: str = Field(..., pattern="^(buy|sell)$")
    shares: int = Field(..., ge=1)
    price_per_share: float = Field(..., gt=0)
    ts_utc_ms: int = Field(..., ge=0)

    model_config = {"frozen": True}


class PriceSample(BaseModel):
    """Точка истории цены (акции или ресурса/продукта)."""

    name: str
    price: float = Field(..., ge=0)
    ts_utc_ms: int = Field(..., ge=0)

    model_config = {"frozen": True}


# =============================================================================
# CORPORATE ACTIONS
# =============================================================================


class CorporateActionType(str, Enum):
    SUPPLY_RUSH = "supply_rush"
    MARKETING_CAMPAIGN = "marketing_campaign"


class CorporateAction(BaseModel):
    """
    Временный буст операционной прибыли, купленный CEO.

    Активен в [started_ts_utc_ms, expires_ts_utc_ms).
    """

    action_id: int = Field(..., ge=1)
    corporation_id: int = Field(..., ge=1)
    action_type: CorporateActionType
    cost: float = Field(..., ge=0)
    boost: float = Field(..., ge=0, description="Прибавка к множителю прибыли (0.10 = +10%)")
    started_ts_utc_ms: int = Field(..., ge=0)
    expires_ts_utc_ms: int = Field(..., ge=0)

    model_config = {"frozen": True}

    def is_active(self, ts_utc_ms: int) -> bool:
        return self.started_ts_utc_ms <= ts_utc_ms < self.expires_ts_utc_ms

    @property
    def label(self) -> str:
        """Человекочитаемое имя: supply_rush → Supply Rush."""
        return self.action_type.value.replace("_", " ").title()
