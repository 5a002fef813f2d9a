"""
Core math modules

Денежная арифметика и численные примитивы с гарантией стабильности.
"""

from src.core.math.numerical_safeguards import (
    # Epsilon constants
    CENTS_PER_DOLLAR,
    EPS_CALC,
    EPS_MONEY,
    # Safe division
    denom_safe_unsigned,
    safe_divide,
    # NaN/Inf sanitization
    is_valid_float,
    sanitize_float,
    # Utilities
    clamp,
    # Money
    from_cents,
    round_money,
    to_cents,
    # Validation
    validate_non_negative,
    validate_positive,
    validate_share_count,
)

__all__ = [
    # Epsilon constants
    "CENTS_PER_DOLLAR",
    "EPS_CALC",
    "EPS_MONEY",
    # Safe division
    "denom_safe_unsigned",
    "safe_divide",
    # NaN/Inf sanitization
    "is_valid_float",
    "sanitize_float",
    # Utilities
    "clamp",
    # Money
    "from_cents",
    "round_money",
    "to_cents",
    # Validation
    "validate_non_negative",
    "validate_positive",
    "validate_share_count",
]
