"""Output helpers for the fee ledger.

This module renders ledgers as plain text tables for the terminal and converts
them into JSON-serialisable dictionaries for the CLI export and the web API.
Dictionary keys are emitted in a fixed order so that serialising the same
ledger twice yields identical JSON.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from .data_models import ClassFeeSummary, HistoryItem, Ledger, MonthlyDue, PaymentPreview


def _number(value: Decimal) -> float:
    return float(value)


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def monthly_due_to_dict(due: MonthlyDue) -> Dict[str, Any]:
    return {
        "month": due.month,
        "year": due.year,
        "total": _number(due.total),
        "paid": _number(due.paid),
        "balance": _number(due.balance),
        "status": due.status,
        "breakdown": [
            {"component": c.label, "amount": _number(c.amount)} for c in due.components
        ],
    }


def ledger_to_dict(ledger: Ledger) -> Dict[str, Any]:
    """Convert a ledger into the output contract's dictionary shape."""
    return {
        "studentId": ledger.student_id,
        "sessionStartYear": ledger.session_start_year,
        "totalOutstanding": _number(ledger.total_outstanding),
        "currentInstallmentDue": _number(ledger.current_installment_due),
        "totalAnnualFee": _number(ledger.total_annual_fee),
        "totalPaid": _number(ledger.total_paid),
        "previousSessionDues": _number(ledger.previous_session_dues),
        "previousSessionDuesPaid": _number(ledger.previous_session_dues_paid),
        "dueDate": _iso(ledger.due_date),
        "monthlyDues": [monthly_due_to_dict(due) for due in ledger.monthly_dues],
    }


def history_to_list(items: Iterable[HistoryItem]) -> List[Dict[str, Any]]:
    return [
        {
            "date": item.date.isoformat(),
            "itemType": item.item_type,
            "amount": _number(item.amount),
            "description": item.description,
        }
        for item in items
    ]


def preview_to_dict(preview: PaymentPreview) -> Dict[str, Any]:
    return {
        "amount": _number(preview.amount),
        "previousDuesPaid": _number(preview.previous_dues_paid),
        "paidMonths": list(preview.paid_months),
        "clearedMonths": list(preview.cleared_months),
        "unapplied": _number(preview.unapplied),
        "ledger": ledger_to_dict(preview.ledger),
    }


def class_summary_to_dict(summary: ClassFeeSummary) -> Dict[str, Any]:
    return {
        "classId": summary.class_id,
        "studentCount": summary.student_count,
        "defaulterCount": summary.defaulter_count,
        "pendingAmount": _number(summary.pending_amount),
    }


def print_summary(ledger: Ledger) -> None:
    """Print the ledger totals in a human‑readable format."""
    print(f"Fee summary for {ledger.student_id} (session {ledger.session_start_year}-{ledger.session_start_year + 1})")
    print("-" * 72)
    print(f"Annual fee          : {ledger.total_annual_fee:.2f}")
    if ledger.previous_session_dues:
        print(f"Previous dues       : {ledger.previous_session_dues:.2f}")
        print(f"Previous dues paid  : {ledger.previous_session_dues_paid:.2f}")
    print(f"Total paid          : {ledger.total_paid:.2f}")
    print(f"Outstanding         : {ledger.total_outstanding:.2f}")
    print(f"Current installment : {ledger.current_installment_due:.2f}")
    if ledger.due_date:
        print(f"Due date            : {ledger.due_date.isoformat()}")
    print("-" * 72)


def print_ledger(ledger: Ledger, show_breakdown: bool = False) -> None:
    """Print the monthly dues as a simple table.

    Parameters
    ----------
    ledger: Ledger
        The ledger to print.
    show_breakdown: bool
        Whether to list each month's components under its row.
    """
    headers = ["Month", "Year", "Total", "Paid", "Balance", "Status"]
    print("\t".join(headers))
    for due in ledger.monthly_dues:
        row = [
            due.month,
            str(due.year),
            f"{due.total:.2f}",
            f"{due.paid:.2f}",
            f"{due.balance:.2f}",
            due.status,
        ]
        print("\t".join(row))
        if show_breakdown:
            for component in due.components:
                print(f"\t  {component.label}: {component.amount:.2f}")


def print_class_summary(summary: ClassFeeSummary) -> None:
    print(f"Class {summary.class_id}")
    print("=" * 72)
    print(f"Students    : {summary.student_count}")
    print(f"Defaulters  : {summary.defaulter_count}")
    print(f"Pending     : {summary.pending_amount:.2f}")
    print("=" * 72)
