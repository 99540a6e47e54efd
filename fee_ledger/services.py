"""Recurring service charges (hostel and transport).

A service is billed from a start month onward. The start month comes from the
enrollment's explicit ``start_date`` when present. Older enrollments predate
that field, so their start is recovered from the adjustment log entry written
when the service was assigned, falling back to the admission date for students
who joined mid-session.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from .academic_calendar import academic_index, remaining_months_count
from .data_models import (
    CHARGE,
    HOSTEL,
    TRANSPORT,
    AdjustmentLogEntry,
    ServiceEnrollment,
)

logger = logging.getLogger(__name__)

SENTINEL_INDEX = 999  # never charged this session

ASSIGNMENT_KEYWORDS = {
    HOSTEL: "Hostel Assigned",
    TRANSPORT: "Transport Assigned",
}


def _logged_start(service_type: str, adjustment_logs: Iterable[AdjustmentLogEntry]) -> Optional[date]:
    keyword = ASSIGNMENT_KEYWORDS[service_type]
    matches = [log.date for log in adjustment_logs if log.reason and keyword in log.reason]
    return min(matches) if matches else None


def service_start_index(
    service: Optional[ServiceEnrollment],
    adjustment_logs: Iterable[AdjustmentLogEntry],
    admission_date: Optional[date],
    session_start: date,
) -> int:
    """Return the academic-month index from which ``service`` is billed.

    Returns ``SENTINEL_INDEX`` when the student has no active enrollment, or
    when the service only starts in a later session. A start before the
    session began bills from April (index 0).
    """
    if service is None or not service.active:
        return SENTINEL_INDEX

    start = service.start_date
    source = "enrollment"
    if start is None:
        start = _logged_start(service.service_type, adjustment_logs)
        source = "adjustment log"
    if start is None and admission_date is not None and admission_date > session_start:
        start = admission_date
        source = "admission date"
    if start is None:
        logger.debug("%s billed from session start (no start date found)", service.service_type)
        return 0

    if start < session_start:
        index = 0
    elif start >= date(session_start.year + 1, session_start.month, session_start.day):
        index = SENTINEL_INDEX
    else:
        index = academic_index(start)
    logger.debug("%s start index %s from %s (%s)", service.service_type, index, source, start)
    return index


def service_charge(service: ServiceEnrollment, index: int, start_index: int) -> Decimal:
    """Return the charge ``service`` adds to academic month ``index``."""
    if index >= start_index:
        return service.monthly_charge
    return Decimal("0")


def component_label(service: ServiceEnrollment) -> str:
    if service.label:
        return f"{service.service_type} ({service.label})"
    return service.service_type


def assignment_log_entry(service: ServiceEnrollment, assigned_on: date) -> AdjustmentLogEntry:
    """Build the audit log entry recorded when ``service`` is assigned.

    The amount is the charge for the rest of the session. The reason text
    carries the keyword that ``service_start_index`` looks for.
    """
    months_left = remaining_months_count(assigned_on)
    charge = service.monthly_charge
    if service.service_type == HOSTEL:
        target = f"Room {service.label}"
    else:
        target = service.label
    reason = f"{ASSIGNMENT_KEYWORDS[service.service_type]}: {target} ({months_left} months @ {charge})"
    return AdjustmentLogEntry(
        date=assigned_on,
        reason=reason,
        amount=charge * months_left,
        type=CHARGE,
    )
