"""
Finances — Финансовая отчётность корпорации за период

    gross_profit     = (hourly_revenue − hourly_cost) × period_hours
    operating_income = gross_profit − ceo_salary
    dividend         = operating_income × dividend_percentage / 100  (только если > 0)
    net_income       = operating_income − dividend

Распределение выплат pro-rata выполняется в целых центах (largest remainder):
сумма частей всегда равна округлённой сумме выплаты.
"""

from dataclasses import dataclass
from typing import Dict, Final, Mapping

from src.core.math.numerical_safeguards import (
    from_cents,
    round_money,
    to_cents,
    validate_non_negative,
)

# Период отображения финансовой отчётности (часы)
DISPLAY_PERIOD_HOURS: Final[int] = 96


@dataclass(frozen=True)
class PeriodFinancials:
    """Отчёт о прибылях за период."""

    period_hours: float
    revenue: float
    cost: float
    gross_profit: float
    ceo_salary: float
    operating_income: float
    dividend: float
    net_income: float


def dividend_for(operating_income: float, dividend_percentage: float) -> float:
    """
    Обыкновенный дивиденд: только из положительного operating income.

    Examples:
        >>> dividend_for(96_000.0, 10)
        9600.0
        >>> dividend_for(-5_000.0, 10)
        0.0
    """
    validate_non_negative(dividend_percentage, "dividend_percentage")
    if operating_income <= 0:
        return 0.0
    return round_money(operating_income * dividend_percentage / 100)


def period_financials(
    hourly_revenue: float,
    hourly_cost: float,
    period_hours: float = DISPLAY_PERIOD_HOURS,
    ceo_salary: float = 0.0,
    dividend_percentage: float = 0.0,
) -> PeriodFinancials:
    """Финансовая отчётность за период period_hours."""
    validate_non_negative(period_hours, "period_hours")
    validate_non_negative(ceo_salary, "ceo_salary")

    revenue = hourly_revenue * period_hours
    cost = hourly_cost * period_hours
    gross_profit = revenue - cost
    operating_income = gross_profit - ceo_salary
    dividend = dividend_for(operating_income, dividend_percentage)
    return PeriodFinancials(
        period_hours=period_hours,
        revenue=revenue,
        cost=cost,
        gross_profit=gross_profit,
        ceo_salary=ceo_salary,
        operating_income=operating_income,
        dividend=dividend,
        net_income=operating_income - dividend,
    )


def allocate_pro_rata(
    amount: float, holdings: Mapping[int, int], total_shares: int | None = None
) -> Dict[int, float]:
    """
    Распределение суммы пропорционально количеству акций (cent-exact).

    Args:
        amount: Сумма выплаты (USD)
        holdings: {user_id: shares}
        total_shares: Знаменатель доли. None — сумма holdings (вся сумма
            распределяется между держателями). Если задан и больше суммы
            holdings, доля float-акций не распределяется.

    Returns:
        {user_id: payout}; держатели с нулевой выплатой не включаются
    """
    validate_non_negative(amount, "amount")
    held = sum(holdings.values())
    denominator = held if total_shares is None else total_shares
    if denominator <= 0 or held <= 0:
        return {}
    if denominator < held:
        raise ValueError(f"total_shares ({denominator}) < held shares ({held})")

    # Распределяемая часть в центах
    pool_cents = to_cents(amount) * held // denominator

    # 1. Целые доли
    allocations: Dict[int, int] = {}
    remainders = []
    for user_id, shares in holdings.items():
        numerator = pool_cents * shares
        allocations[user_id] = numerator // held
        remainders.append((numerator % held, shares, user_id))

    # 2. Остаток центов: по наибольшему остатку, затем по размеру позиции
    leftover = pool_cents - sum(allocations.values())
    for _, _, user_id in sorted(remainders, key=lambda r: (-r[0], -r[1], r[2]))[:leftover]:
        allocations[user_id] += 1

    return {user_id: from_cents(c) for user_id, c in allocations.items() if c > 0}
