"""Academic calendar helpers.

The academic session runs from April 1 to March 31. Months are addressed by
their 0-based academic index: April is 0 and March is 11.
"""

from __future__ import annotations

from datetime import date
from typing import List

ACADEMIC_MONTH_NAMES: List[str] = [
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
    "January",
    "February",
    "March",
]

MONTHS_PER_SESSION = 12
SESSION_START_MONTH = 4  # April


def academic_index(dt: date) -> int:
    """Return the academic-month index (0..11) of ``dt``."""
    month = dt.month - 1  # 0=Jan
    if month >= 3:
        return month - 3
    return month + 9


def is_next_calendar_year(index: int) -> bool:
    """January, February and March fall in the calendar year after April."""
    return index >= 9


def session_start_year(as_of: date) -> int:
    """Return the calendar year in which April of the current session falls."""
    if as_of.month < SESSION_START_MONTH:
        return as_of.year - 1
    return as_of.year


def session_start_date(as_of: date) -> date:
    return date(session_start_year(as_of), SESSION_START_MONTH, 1)


def next_session_start_date(as_of: date) -> date:
    return date(session_start_year(as_of) + 1, SESSION_START_MONTH, 1)


def display_year(index: int, start_year: int) -> int:
    """Return the calendar year of academic month ``index`` in a session."""
    return start_year + 1 if is_next_calendar_year(index) else start_year


def month_name(index: int) -> str:
    return ACADEMIC_MONTH_NAMES[index]


def remaining_months_count(as_of: date) -> int:
    """Number of academic months left in the session, counting the current one.

    Twelve in April, one in March.
    """
    return MONTHS_PER_SESSION - academic_index(as_of)
