"""Core calculation engine for the fee ledger.

This module composes the academic calendar, the fee template resolver, the
service charge calculator and the payment allocator into a month-by-month fee
statement for one student and session. The statement is recomputed from the
source records on every call and never stored. Besides ``build_ledger`` the
module offers the fee history view, a preview of how a new payment would be
applied and a per-class summary of outstanding fees.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from decimal import Decimal, getcontext
from typing import Iterable, List, Optional

from .academic_calendar import (
    ACADEMIC_MONTH_NAMES,
    display_year,
    session_start_date,
)
from .allocator import allocate
from .data_models import (
    PAID,
    SERVICE_TYPES,
    ClassFeeSummary,
    FeeComponent,
    HistoryItem,
    ItemizedAmount,
    Ledger,
    MonthlyDue,
    PaymentPreview,
    PaymentRecord,
    StudentFeeSnapshot,
)
from .errors import InvalidInput, MalformedRecord
from .services import component_label, service_charge, service_start_index
from .template import resolve_amount, tuition_schedule
from .utils import sum_amounts

getcontext().prec = 28  # increase precision for financial calculations

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def _check_amount(value: Decimal, record: str) -> None:
    if not isinstance(value, Decimal) or not value.is_finite():
        raise MalformedRecord(record, f"amount must be a finite decimal, got {value!r}")
    if value < 0:
        raise MalformedRecord(record, f"amount must not be negative, got {value}")


def validate_snapshot(snapshot: StudentFeeSnapshot) -> None:
    """Reject snapshots the ledger cannot be computed from.

    Missing optional records are fine; a missing student reference, a
    template without a class, an unknown service type, or a negative or
    non-finite amount is not.
    """
    if not snapshot.student_id:
        raise InvalidInput("A student reference is required to build a ledger")
    if snapshot.template is not None and not snapshot.class_id:
        raise InvalidInput(f"Student {snapshot.student_id}: fee template supplied without a class reference")

    template = snapshot.template
    if template is not None:
        if template.flat_annual_amount is not None:
            _check_amount(template.flat_annual_amount, "feeTemplate.flatAnnualAmount")
        for i, entry in enumerate(template.monthly_breakdown):
            if entry.month not in ACADEMIC_MONTH_NAMES:
                raise MalformedRecord(f"feeTemplate.monthlyBreakdown[{i}]", f"unknown month {entry.month!r}")
            record = f"feeTemplate.monthlyBreakdown[{i}]"
            if isinstance(entry.amount, ItemizedAmount):
                for j, component in enumerate(entry.amount.components):
                    _check_amount(component.amount, f"{record}.breakdown[{j}]")
            else:
                _check_amount(resolve_amount(entry.amount), record)
    for i, service in enumerate(snapshot.services):
        if service.service_type not in SERVICE_TYPES:
            raise MalformedRecord(f"services[{i}]", f"unknown service type {service.service_type!r}")
        _check_amount(service.monthly_charge, f"services[{i}]")
    for i, adjustment in enumerate(snapshot.adjustments):
        _check_amount(adjustment.amount, f"adjustments[{i}]")
    for i, payment in enumerate(snapshot.payments):
        _check_amount(payment.amount, f"payments[{i}]")
    if snapshot.fee_record is not None:
        _check_amount(snapshot.fee_record.previous_session_dues, "feeRecord.previousSessionDues")


def build_ledger(snapshot: StudentFeeSnapshot, as_of: Optional[date] = None) -> Ledger:
    """Compute the fee ledger for ``snapshot``.

    Parameters
    ----------
    snapshot: StudentFeeSnapshot
        Source records for one student, read at a single point in time.
    as_of: Optional[date]
        Date that selects the academic session. Defaults to today; pass it
        explicitly to get reproducible results.

    Returns
    -------
    Ledger
        Twelve monthly dues (April to March) plus annual totals, payments and
        the outstanding balance.

    Raises
    ------
    InvalidInput
        If the snapshot has no student reference.
    MalformedRecord
        If a record carries a negative or non-finite amount.
    """
    validate_snapshot(snapshot)
    as_of = as_of or date.today()
    session_start = session_start_date(as_of)

    tuition = tuition_schedule(snapshot.template)
    billed_services = []
    for service in snapshot.services:
        start_index = service_start_index(
            service, snapshot.adjustments, snapshot.admission_date, session_start
        )
        billed_services.append((service, start_index))

    monthly_totals: List[Decimal] = []
    monthly_components: List[List[FeeComponent]] = []
    for index in range(len(ACADEMIC_MONTH_NAMES)):
        total = tuition[index]
        components = []
        if total > 0:
            components.append(FeeComponent(label="Tuition", amount=total))
        for service, start_index in billed_services:
            charge = service_charge(service, index, start_index)
            if charge > 0:
                total += charge
                components.append(FeeComponent(label=component_label(service), amount=charge))
        monthly_totals.append(total)
        monthly_components.append(components)

    total_annual_fee = sum_amounts(monthly_totals)
    total_paid = sum_amounts(p.amount for p in snapshot.payments)
    fee_record = snapshot.fee_record
    previous_dues = fee_record.previous_session_dues if fee_record else ZERO

    allocations, previous_dues_paid = allocate(monthly_totals, total_paid, previous_dues)

    monthly_dues = []
    for index, (paid, status) in enumerate(allocations):
        monthly_dues.append(
            MonthlyDue(
                month=ACADEMIC_MONTH_NAMES[index],
                year=display_year(index, session_start.year),
                total=monthly_totals[index],
                paid=paid,
                status=status,
                components=monthly_components[index],
            )
        )

    total_outstanding = max(ZERO, total_annual_fee + previous_dues - total_paid)
    current_installment_due = next(
        (due.total for due in monthly_dues if due.status != PAID), ZERO
    )

    if fee_record is not None and fee_record.total_amount is not None:
        if fee_record.total_amount != total_annual_fee:
            logger.warning(
                "Student %s: recorded fee total %s differs from computed annual total %s",
                snapshot.student_id,
                fee_record.total_amount,
                total_annual_fee,
            )
    logger.debug(
        "Student %s session %s: annual %s, paid %s, outstanding %s",
        snapshot.student_id,
        session_start.year,
        total_annual_fee,
        total_paid,
        total_outstanding,
    )

    return Ledger(
        student_id=snapshot.student_id,
        session_start_year=session_start.year,
        total_annual_fee=total_annual_fee,
        total_paid=total_paid,
        previous_session_dues=previous_dues,
        previous_session_dues_paid=previous_dues_paid,
        total_outstanding=total_outstanding,
        current_installment_due=current_installment_due,
        due_date=fee_record.due_date if fee_record else None,
        monthly_dues=monthly_dues,
    )


def fee_history(snapshot: StudentFeeSnapshot) -> List[HistoryItem]:
    """Merge payments and adjustments into one list, newest first."""
    validate_snapshot(snapshot)
    items: List[HistoryItem] = []
    for payment in snapshot.payments:
        items.append(
            HistoryItem(
                date=payment.paid_date,
                item_type="payment",
                amount=payment.amount,
                description=payment.details or payment.transaction_id,
            )
        )
    for adjustment in snapshot.adjustments:
        items.append(
            HistoryItem(
                date=adjustment.date,
                item_type="adjustment",
                amount=adjustment.amount,
                description=adjustment.reason,
            )
        )
    # Stable sort keeps payments ahead of adjustments on the same day.
    items.sort(key=lambda item: item.date, reverse=True)
    return items


def preview_payment(
    snapshot: StudentFeeSnapshot, amount: Decimal, as_of: Optional[date] = None
) -> PaymentPreview:
    """Show how a payment of ``amount`` would be applied.

    The payment is added to the snapshot's payment history and the ledger is
    rebuilt; months whose paid amount grows are reported in ``paid_months``,
    those that turn ``Paid`` in ``cleared_months``.
    """
    _check_amount(amount, "payment")
    as_of = as_of or date.today()
    before = build_ledger(snapshot, as_of)
    extended = replace(
        snapshot,
        payments=snapshot.payments + (PaymentRecord(amount=amount, paid_date=as_of),),
    )
    after = build_ledger(extended, as_of)

    paid_months = []
    cleared_months = []
    for old, new in zip(before.monthly_dues, after.monthly_dues):
        if new.paid > old.paid:
            paid_months.append(new.month)
            if new.status == PAID and old.status != PAID:
                cleared_months.append(new.month)

    previous_dues_paid = after.previous_session_dues_paid - before.previous_session_dues_paid
    applied_to_months = sum_amounts(new.paid - old.paid for old, new in zip(before.monthly_dues, after.monthly_dues))
    unapplied = amount - previous_dues_paid - applied_to_months
    return PaymentPreview(
        amount=amount,
        previous_dues_paid=previous_dues_paid,
        paid_months=paid_months,
        cleared_months=cleared_months,
        unapplied=unapplied,
        ledger=after,
    )


def summarize_class(class_id: str, ledgers: Iterable[Ledger]) -> ClassFeeSummary:
    """Count defaulters and total pending fees across a class's ledgers."""
    student_count = 0
    defaulter_count = 0
    pending = ZERO
    for ledger in ledgers:
        student_count += 1
        if ledger.total_outstanding > 0:
            defaulter_count += 1
            pending += ledger.total_outstanding
    return ClassFeeSummary(
        class_id=class_id,
        student_count=student_count,
        defaulter_count=defaulter_count,
        pending_amount=pending,
    )

