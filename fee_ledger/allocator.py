"""Payment allocation.

Payments are pooled and applied strictly in order: carried-over dues from the
previous session first, then the current session's months from April to
March. A month is only touched once every earlier month is fully paid.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List, Sequence, Tuple

from .academic_calendar import MONTHS_PER_SESSION
from .data_models import DUE, PAID, PARTIALLY_PAID

ZERO = Decimal("0")


def allocate(
    monthly_totals: Sequence[Decimal],
    total_paid: Decimal,
    previous_session_dues: Decimal,
) -> Tuple[List[Tuple[Decimal, str]], Decimal]:
    """Allocate ``total_paid`` over previous dues and the twelve months.

    Returns
    -------
    months: List[Tuple[Decimal, str]]
        ``(paid, status)`` for each month, in the order of ``monthly_totals``.
    previous_dues_paid: Decimal
        The part of ``total_paid`` absorbed by previous-session dues.
    """
    if len(monthly_totals) != MONTHS_PER_SESSION:
        raise ValueError(f"Expected {MONTHS_PER_SESSION} monthly totals, got {len(monthly_totals)}")

    previous_dues_paid = min(total_paid, previous_session_dues)
    tracker = max(ZERO, total_paid - previous_dues_paid)

    months: List[Tuple[Decimal, str]] = []
    shortfall = False
    for total in monthly_totals:
        if not shortfall and tracker >= total:
            months.append((total, PAID))
            tracker -= total
        elif tracker > 0:
            months.append((tracker, PARTIALLY_PAID))
            tracker = ZERO
            shortfall = True
        else:
            # Once a month is short, later months stay Due even if their total is zero.
            months.append((ZERO, DUE))
            shortfall = True
    return months, previous_dues_paid
