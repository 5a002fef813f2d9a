"""
Market — Оценка и торговля акциями корпораций.
"""

from src.market.share_market import ShareMarket, ShareMarketConfig, TradeResult
from src.market.valuation import (
    PriceRecalculationResult,
    Valuation,
    ValuationConfig,
    ValuationResult,
    trade_weighted_price,
)

__all__ = [
    # Valuation
    "PriceRecalculationResult",
    "Valuation",
    "ValuationConfig",
    "ValuationResult",
    "trade_weighted_price",
    # Trading
    "ShareMarket",
    "ShareMarketConfig",
    "TradeResult",
]
