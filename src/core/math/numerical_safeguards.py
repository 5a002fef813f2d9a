"""
Numerical Safeguards — Safe Math Primitives для денежных расчётов

Модуль обеспечивает численную устойчивость экономических расчётов:
- Безопасное деление с защитой от деления на ноль (scarcity, book value)
- NaN/Inf санитизация цен и денежных сумм
- Округление до центов и cent-exact арифметика
- Валидация денежных сумм и количеств акций

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Деление на ноль никогда не происходит (возвращается fallback)
2. NaN/Inf никогда не попадают в Ledger
3. Количество акций — только целые числа (без float-округлений)
4. Все операции детерминированы и воспроизводимы
"""

import math
from typing import Final

from src.core.domain.errors import SimulationValidationError

# =============================================================================
# EPSILON-ПАРАМЕТРЫ
# =============================================================================

# Точность денежных сумм: суммы сравниваются с точностью до доли цента
EPS_MONEY: Final[float] = 1e-9

# Epsilon для общих вычислений (scarcity ratio, веса)
EPS_CALC: Final[float] = 1e-12

CENTS_PER_DOLLAR: Final[int] = 100


# =============================================================================
# БЕЗОПАСНОЕ ДЕЛЕНИЕ
# =============================================================================


def denom_safe_unsigned(value: float, eps: float = EPS_CALC) -> float:
    """
    Беззнаковый делитель: max(abs(value), eps).

    Используется для supply в scarcity ratio и для количества акций.

    Args:
        value: Исходное значение
        eps: Минимальный абсолютный порог

    Returns:
        max(abs(value), eps)

    Raises:
        ValueError: Если eps <= 0
    """
    if eps <= 0:
        raise ValueError(f"eps must be positive, got {eps}")
    return max(abs(value), eps)


def safe_divide(
    numerator: float,
    denominator: float,
    eps: float = EPS_CALC,
    fallback: float = 0.0,
) -> float:
    """
    Безопасное деление с защитой от деления на ноль и NaN/Inf.

    Точный ноль в знаменателе возвращает fallback; малые ненулевые
    знаменатели ограничиваются снизу eps (знак сохраняется).

    Examples:
        >>> safe_divide(10.0, 2.0)
        5.0
        >>> safe_divide(10.0, 0.0, fallback=1.0)
        1.0
    """
    num_clean = sanitize_float(numerator, fallback=0.0)
    denom_raw = sanitize_float(denominator, fallback=0.0)

    if denom_raw == 0.0:
        return fallback

    denom_safe = math.copysign(denom_safe_unsigned(denom_raw, eps), denom_raw)
    return sanitize_float(num_clean / denom_safe, fallback=fallback)


# =============================================================================
# NaN/Inf САНИТИЗАЦИЯ
# =============================================================================


def is_valid_float(value: float) -> bool:
    """True если value — конечное число."""
    return isinstance(value, (int, float)) and math.isfinite(value)


def sanitize_float(value: float, fallback: float = 0.0) -> float:
    """Заменяет NaN/Inf на fallback."""
    if not is_valid_float(value):
        return fallback
    return float(value)


# =============================================================================
# ОГРАНИЧЕНИЯ
# =============================================================================


def clamp(value: float, min_value: float, max_value: float) -> float:
    """
    Ограничение значения диапазоном [min_value, max_value].

    Raises:
        ValueError: Если min_value > max_value
    """
    if min_value > max_value:
        raise ValueError(f"min_value ({min_value}) > max_value ({max_value})")
    return max(min_value, min(value, max_value))


# =============================================================================
# ДЕНЕЖНАЯ АРИФМЕТИКА
# =============================================================================


def to_cents(amount: float) -> int:
    """
    Перевод суммы в целые центы (round half away from zero).

    Examples:
        >>> to_cents(12.3456)
        1235
        >>> to_cents(-0.005)
        -1
    """
    scaled = sanitize_float(amount) * CENTS_PER_DOLLAR
    return int(math.copysign(math.floor(abs(scaled) + 0.5 + EPS_MONEY), scaled))


def from_cents(cents: int) -> float:
    """Перевод целых центов в сумму USD."""
    return cents / CENTS_PER_DOLLAR


def round_money(amount: float) -> float:
    """Округление суммы до центов."""
    return from_cents(to_cents(amount))


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def validate_positive(value: float, name: str) -> None:
    """
    Raises:
        SimulationValidationError: Если value <= 0 или NaN/Inf
    """
    if not is_valid_float(value):
        raise SimulationValidationError(f"{name} must be a valid float (not NaN/Inf), got {value}")
    if value <= 0:
        raise SimulationValidationError(f"{name} must be positive, got {value}")


def validate_non_negative(value: float, name: str) -> None:
    """
    Raises:
        SimulationValidationError: Если value < 0 или NaN/Inf
    """
    if not is_valid_float(value):
        raise SimulationValidationError(f"{name} must be a valid float (not NaN/Inf), got {value}")
    if value < 0:
        raise SimulationValidationError(f"{name} must be non-negative, got {value}")


def validate_share_count(value: int, name: str = "shares") -> None:
    """
    Количество акций — строго положительное целое.

    Raises:
        SimulationValidationError: Если value не int (bool не допускается) или value <= 0
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise SimulationValidationError(f"{name} must be an integer, got {value!r}")
    if value <= 0:
        raise SimulationValidationError(f"{name} must be positive, got {value}")
