"""Fee template resolution.

Turns a class fee template into the tuition amount due for each academic
month. A template either lists explicit per-month amounts (flat totals or
itemized components) or only carries an annual amount, which is then split
evenly with the remainder absorbed by the final month so that the twelve
months always add up to the annual figure.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_FLOOR
from typing import List, Optional

from .academic_calendar import ACADEMIC_MONTH_NAMES, MONTHS_PER_SESSION
from .data_models import FeeTemplate, FlatAmount, ItemizedAmount, MonthlyAmount
from .utils import sum_amounts

ZERO = Decimal("0")


def resolve_amount(amount: MonthlyAmount) -> Decimal:
    if isinstance(amount, ItemizedAmount):
        return sum_amounts(c.amount for c in amount.components)
    if isinstance(amount, FlatAmount):
        return amount.total
    raise TypeError(f"Unsupported monthly amount: {amount!r}")


def _explicit_amount(template: FeeTemplate, month_name: str) -> Optional[MonthlyAmount]:
    # The first entry for a month wins; later duplicates are ignored.
    for entry in template.monthly_breakdown:
        if entry.month == month_name:
            return entry.amount
    return None


def _even_split(annual: Decimal, month_name: str) -> Decimal:
    base = (annual / MONTHS_PER_SESSION).to_integral_value(rounding=ROUND_FLOOR)
    if month_name == ACADEMIC_MONTH_NAMES[-1]:
        return annual - base * (MONTHS_PER_SESSION - 1)
    return base


def monthly_tuition(template: Optional[FeeTemplate], month_name: str) -> Decimal:
    """Return the tuition due for ``month_name`` under ``template``.

    Resolution order:

    1. an explicit entry for the month (itemized entries sum their components);
    2. when the template has no monthly breakdown at all, an even split of the
       flat annual amount, with March taking the remainder;
    3. zero.
    """
    if template is None:
        return ZERO
    explicit = _explicit_amount(template, month_name)
    if explicit is not None:
        return resolve_amount(explicit)
    if not template.monthly_breakdown and template.flat_annual_amount is not None:
        return _even_split(template.flat_annual_amount, month_name)
    return ZERO


def tuition_schedule(template: Optional[FeeTemplate]) -> List[Decimal]:
    """Return the tuition for all twelve academic months, April first."""
    return [monthly_tuition(template, name) for name in ACADEMIC_MONTH_NAMES]
