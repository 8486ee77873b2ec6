"""
Hosting price rules.

    total = (base_rate(plan) + wordpress_addon) * duration_months

Amounts are Decimal euros quantized to cents, so multi-month totals never
carry binary floating-point error.
"""
from decimal import Decimal, InvalidOperation
from typing import Dict, List

from shared.errors import InvalidInputError

CENTS = Decimal("0.01")

PLAN_RATES: Dict[str, Decimal] = {
    "basic": Decimal("2.00"),
    "pro": Decimal("3.00"),
}

WORDPRESS_ADDON = Decimal("1.00")

CURRENCY = "EUR"

MAX_DURATION_MONTHS = 120


def base_rate(plan: str) -> Decimal:
    try:
        return PLAN_RATES[plan]
    except (KeyError, TypeError):
        raise InvalidInputError(f"Unknown plan: {plan!r}") from None


def monthly_rate(plan: str, wordpress: bool) -> Decimal:
    rate = base_rate(plan)
    if wordpress:
        rate += WORDPRESS_ADDON
    return rate


def compute_total(plan: str, wordpress: bool, duration: int) -> Decimal:
    # bool is an int subclass; True months is not a duration
    if isinstance(duration, bool) or not isinstance(duration, int):
        raise InvalidInputError(f"Duration must be a whole number of months, got {duration!r}")
    if duration <= 0:
        raise InvalidInputError(f"Duration must be positive, got {duration}")

    try:
        return (monthly_rate(plan, wordpress) * duration).quantize(CENTS)
    except InvalidOperation:
        raise InvalidInputError(f"Duration is out of range: {duration}") from None


def list_plans() -> List[dict]:
    return [
        {"plan": plan, "monthly_rate": rate, "currency": CURRENCY}
        for plan, rate in PLAN_RATES.items()
    ]
