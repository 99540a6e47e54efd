"""Data models for the fee ledger.

This module defines dataclasses for the source records the ledger is computed
from (fee templates, service enrollments, adjustment log entries, payments and
the fee record) and for the computed output (monthly dues and the ledger
itself). Source records are frozen: the ledger reads them and never changes
them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple, Union

HOSTEL = "Hostel"
TRANSPORT = "Transport"
SERVICE_TYPES = (HOSTEL, TRANSPORT)

PAID = "Paid"
PARTIALLY_PAID = "PartiallyPaid"
DUE = "Due"

CHARGE = "charge"
CONCESSION = "concession"


@dataclass(frozen=True)
class FeeComponent:
    """A labelled part of a month's fee (e.g. ``Tuition`` or ``Lab``)."""

    label: str
    amount: Decimal


@dataclass(frozen=True)
class FlatAmount:
    """A month whose fee is given as a single total."""

    total: Decimal


@dataclass(frozen=True)
class ItemizedAmount:
    """A month whose fee is the sum of its components."""

    components: Tuple[FeeComponent, ...]


MonthlyAmount = Union[FlatAmount, ItemizedAmount]


@dataclass(frozen=True)
class MonthlyFee:
    month: str
    amount: MonthlyAmount


@dataclass(frozen=True)
class FeeTemplate:
    """The fee template of a class.

    Attributes
    ----------
    flat_annual_amount: Optional[Decimal]
        The annual tuition. Only used to derive monthly amounts when
        ``monthly_breakdown`` is empty.
    monthly_breakdown: Tuple[MonthlyFee, ...]
        Explicit per-month amounts keyed by month name (``"April"`` ...).
    """

    flat_annual_amount: Optional[Decimal] = None
    monthly_breakdown: Tuple[MonthlyFee, ...] = ()


@dataclass(frozen=True)
class ServiceEnrollment:
    """A recurring service charge (hostel room or transport route).

    Attributes
    ----------
    service_type: str
        ``"Hostel"`` or ``"Transport"``.
    monthly_charge: Decimal
        Amount added to every month from the service start onward.
    active: bool
        Whether the student currently holds a room or route assignment. An
        inactive enrollment contributes nothing.
    label: str
        Room number or stop name, shown in the month's component list.
    start_date: Optional[date]
        Explicit billing start. When missing, the start is recovered from the
        adjustment log or the admission date.
    """

    service_type: str
    monthly_charge: Decimal
    active: bool = True
    label: str = ""
    start_date: Optional[date] = None


@dataclass(frozen=True)
class AdjustmentLogEntry:
    date: date
    reason: str
    amount: Decimal = Decimal("0")
    type: str = CHARGE  # "charge" or "concession"


@dataclass(frozen=True)
class PaymentRecord:
    amount: Decimal
    paid_date: date
    transaction_id: str = ""
    details: str = ""


@dataclass(frozen=True)
class FeeRecord:
    """The student's fee record.

    ``total_amount`` is a snapshot written when the record was created and is
    advisory only; the ledger always recomputes the annual total.
    """

    previous_session_dues: Decimal = Decimal("0")
    due_date: Optional[date] = None
    total_amount: Optional[Decimal] = None


@dataclass(frozen=True)
class StudentFeeSnapshot:
    """Everything the ledger needs for one student, read at one point in time."""

    student_id: str
    class_id: Optional[str] = None
    admission_date: Optional[date] = None
    template: Optional[FeeTemplate] = None
    services: Tuple[ServiceEnrollment, ...] = ()
    adjustments: Tuple[AdjustmentLogEntry, ...] = ()
    payments: Tuple[PaymentRecord, ...] = ()
    fee_record: Optional[FeeRecord] = None


@dataclass
class MonthlyDue:
    """One academic month of the computed statement.

    Attributes
    ----------
    month: str
        Month name, ``"April"`` through ``"March"``.
    year: int
        Calendar year the month falls in.
    total: Decimal
        Tuition plus any service charges billed for the month.
    paid: Decimal
        Portion of ``total`` covered by payments, ``0 <= paid <= total``.
    status: str
        ``"Paid"``, ``"PartiallyPaid"`` or ``"Due"``.
    components: List[FeeComponent]
        Non-zero parts of ``total`` (tuition, hostel, transport).
    """

    month: str
    year: int
    total: Decimal
    paid: Decimal
    status: str
    components: List[FeeComponent] = field(default_factory=list)

    @property
    def balance(self) -> Decimal:
        return self.total - self.paid


@dataclass
class Ledger:
    """The computed fee statement for one student and session."""

    student_id: str
    session_start_year: int
    total_annual_fee: Decimal
    total_paid: Decimal
    previous_session_dues: Decimal
    previous_session_dues_paid: Decimal
    total_outstanding: Decimal
    current_installment_due: Decimal
    due_date: Optional[date]
    monthly_dues: List[MonthlyDue]


@dataclass
class HistoryItem:
    """A payment or adjustment in the student's fee history."""

    date: date
    item_type: str  # "payment" or "adjustment"
    amount: Decimal
    description: str


@dataclass
class PaymentPreview:
    """How a prospective payment would be applied.

    ``paid_months`` lists the months that would receive money from this
    payment, ``cleared_months`` those that would become fully paid.
    """

    amount: Decimal
    previous_dues_paid: Decimal
    paid_months: List[str]
    cleared_months: List[str]
    unapplied: Decimal
    ledger: Ledger


@dataclass
class ClassFeeSummary:
    class_id: str
    student_count: int
    defaulter_count: int
    pending_amount: Decimal
