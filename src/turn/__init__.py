"""
Turn — Периодическая обработка хода и игровое время.
"""

from src.turn.clock import ClockConfig, GameClock, GameTime
from src.turn.processor import TurnConfig, TurnProcessor, TurnResult

__all__ = [
    "ClockConfig",
    "GameClock",
    "GameTime",
    "TurnConfig",
    "TurnProcessor",
    "TurnResult",
]
