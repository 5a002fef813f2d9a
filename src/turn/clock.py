"""
GameClock — Игровое время (год/квартал)

Один игровой квартал длится quarter_span_ms реального времени (по умолчанию
сутки), четыре квартала составляют игровой год.
"""

from dataclasses import dataclass
from typing import Final

from src.core.domain.errors import SimulationValidationError
from src.economy.market_pricer import MS_PER_HOUR

QUARTERS_PER_YEAR: Final[int] = 4


@dataclass(frozen=True)
class ClockConfig:
    quarter_span_ms: int = 24 * MS_PER_HOUR
    start_year: int = 2000


@dataclass(frozen=True)
class GameTime:
    year: int
    quarter: int  # 1..4

    @property
    def display(self) -> str:
        return f"Q{self.quarter} {self.year}"


class GameClock:
    """
    Отображение реального времени в игровое.

    Args:
        start_ts_utc_ms: Реальный момент начала Q1 start_year
        config: Длина квартала и стартовый год
    """

    def __init__(self, start_ts_utc_ms: int, config: ClockConfig | None = None):
        self.config = config or ClockConfig()
        if self.config.quarter_span_ms <= 0:
            raise SimulationValidationError("quarter_span_ms must be positive")
        self.start_ts_utc_ms = start_ts_utc_ms

    def quarters_elapsed(self, now_ts_utc_ms: int) -> int:
        return (now_ts_utc_ms - self.start_ts_utc_ms) // self.config.quarter_span_ms

    def game_time(self, now_ts_utc_ms: int) -> GameTime:
        elapsed = max(0, self.quarters_elapsed(now_ts_utc_ms))
        return GameTime(
            year=self.config.start_year + elapsed // QUARTERS_PER_YEAR,
            quarter=elapsed % QUARTERS_PER_YEAR + 1,
        )

    def set_game_time(self, year: int, quarter: int, now_ts_utc_ms: int) -> GameTime:
        """
        Сдвиг начала отсчёта так, чтобы now соответствовал началу (year, quarter).

        Raises:
            SimulationValidationError: quarter вне 1..4 или год раньше start_year
        """
        if not 1 <= quarter <= QUARTERS_PER_YEAR:
            raise SimulationValidationError(f"quarter must be in 1..4, got {quarter}")
        if year < self.config.start_year:
            raise SimulationValidationError(
                f"year must be >= {self.config.start_year}, got {year}"
            )
        elapsed = (year - self.config.start_year) * QUARTERS_PER_YEAR + (quarter - 1)
        self.start_ts_utc_ms = now_ts_utc_ms - elapsed * self.config.quarter_span_ms
        return self.game_time(now_ts_utc_ms)

    def ms_until_next_quarter(self, now_ts_utc_ms: int) -> int:
        span = self.config.quarter_span_ms
        return span - (now_ts_utc_ms - self.start_ts_utc_ms) % span
