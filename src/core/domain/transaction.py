"""
Transaction — Append-only запись движения денежных средств

Каждое движение cash в движке сопровождается ровно одной записью Transaction.
Это audit trail: записи не изменяются и не удаляются.
"""

from enum import Enum

from pydantic import BaseModel, Field


class TransactionType(str, Enum):
    """Тип движения средств."""

    MARKET_REVENUE = "market_revenue"
    MARKET_COST = "market_cost"
    CEO_SALARY = "ceo_salary"
    DIVIDEND = "dividend"
    SPECIAL_DIVIDEND = "special_dividend"
    SHARE_PURCHASE = "share_purchase"
    SHARE_SALE = "share_sale"
    SHARE_ISSUE = "share_issue"
    SHARE_BUYBACK = "share_buyback"
    CORPORATE_ACTION = "corporate_action"
    MARKET_ENTRY = "market_entry"
    BUILD_UNIT = "build_unit"
    CORPORATION_FOUNDING = "corporation_founding"
    CORPORATION_DISSOLUTION = "corporation_dissolution"
    ADMIN_GRANT = "admin_grant"


class Transaction(BaseModel):
    """Immutable запись движения средств."""

    transaction_id: int = Field(..., ge=1, description="Монотонный идентификатор")
    transaction_type: TransactionType
    amount: float = Field(..., ge=0, description="Сумма (USD), всегда неотрицательна")
    from_user_id: int | None = Field(default=None, description="Плательщик-пользователь")
    to_user_id: int | None = Field(default=None, description="Получатель-пользователь")
    corporation_id: int | None = Field(default=None, description="Связанная корпорация")
    description: str = Field(default="", description="Человекочитаемое описание")
    ref: str | None = Field(default=None, description="Idempotency/reference key")
    ts_utc_ms: int = Field(..., ge=0, description="Время записи (Unix ms)")

    model_config = {"frozen": True}
