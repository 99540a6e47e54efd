"""Parsing of snapshot input into data models.

Callers (the CLI, the web app, the record store) hand over plain dictionaries
shaped like the JSON input contract. This module turns them into the frozen
dataclasses the engine works on, rejecting malformed values with the path of
the offending record.
"""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional

from .academic_calendar import ACADEMIC_MONTH_NAMES
from .data_models import (
    CHARGE,
    CONCESSION,
    SERVICE_TYPES,
    AdjustmentLogEntry,
    FeeComponent,
    FeeRecord,
    FeeTemplate,
    FlatAmount,
    ItemizedAmount,
    MonthlyFee,
    PaymentRecord,
    ServiceEnrollment,
    StudentFeeSnapshot,
)
from .errors import InvalidInput, MalformedRecord
from .utils import decimal_from_value, parse_date, parse_optional_date


def _require_mapping(data: Any, record: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise MalformedRecord(record, f"expected an object, got {type(data).__name__}")
    return data


def _list_of(data: Dict[str, Any], key: str, parent: str = "") -> List[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise MalformedRecord(f"{parent}.{key}" if parent else key, "expected a list")
    return value


def parse_monthly_fee(data: Any, record: str) -> MonthlyFee:
    data = _require_mapping(data, record)
    month = data.get("month")
    if month not in ACADEMIC_MONTH_NAMES:
        raise MalformedRecord(record, f"unknown month {month!r}")
    breakdown = data.get("breakdown") or []
    if not isinstance(breakdown, list):
        raise MalformedRecord(record, "breakdown must be a list")
    if breakdown:
        components = []
        for i, item in enumerate(breakdown):
            item_record = f"{record}.breakdown[{i}]"
            item = _require_mapping(item, item_record)
            # Older templates name the label "component".
            label = item.get("label") or item.get("component") or ""
            components.append(
                FeeComponent(label=label, amount=decimal_from_value(item.get("amount", 0), item_record))
            )
        return MonthlyFee(month=month, amount=ItemizedAmount(components=tuple(components)))
    total = data.get("total")
    amount = decimal_from_value(total, record) if total is not None else Decimal("0")
    return MonthlyFee(month=month, amount=FlatAmount(total=amount))


def parse_template(data: Any) -> Optional[FeeTemplate]:
    if data is None:
        return None
    data = _require_mapping(data, "feeTemplate")
    annual = data.get("flatAnnualAmount", data.get("amount"))
    breakdown = [
        parse_monthly_fee(entry, f"feeTemplate.monthlyBreakdown[{i}]")
        for i, entry in enumerate(_list_of(data, "monthlyBreakdown", "feeTemplate"))
    ]
    return FeeTemplate(
        flat_annual_amount=decimal_from_value(annual, "feeTemplate.flatAnnualAmount") if annual is not None else None,
        monthly_breakdown=tuple(breakdown),
    )


def parse_service(data: Any, record: str) -> ServiceEnrollment:
    data = _require_mapping(data, record)
    service_type = data.get("type")
    if service_type not in SERVICE_TYPES:
        raise MalformedRecord(record, f"service type must be one of {', '.join(SERVICE_TYPES)}; got {service_type!r}")
    active = data.get("active", True)
    if not isinstance(active, bool):
        raise MalformedRecord(record, f"active must be true or false, got {active!r}")
    return ServiceEnrollment(
        service_type=service_type,
        monthly_charge=decimal_from_value(data.get("monthlyCharge", 0), record),
        active=active,
        label=str(data.get("label") or ""),
        start_date=parse_optional_date(data.get("startDate"), f"{record}.startDate"),
    )


def parse_adjustment(data: Any, record: str) -> AdjustmentLogEntry:
    data = _require_mapping(data, record)
    adj_type = data.get("type", CHARGE)
    if adj_type not in (CHARGE, CONCESSION):
        raise MalformedRecord(record, f"adjustment type must be 'charge' or 'concession'; got {adj_type!r}")
    return AdjustmentLogEntry(
        date=parse_date(data.get("date"), f"{record}.date"),
        reason=str(data.get("reason") or ""),
        amount=decimal_from_value(data.get("amount", 0), record),
        type=adj_type,
    )


def parse_payment(data: Any, record: str) -> PaymentRecord:
    data = _require_mapping(data, record)
    if "amount" not in data:
        raise MalformedRecord(record, "payment amount is required")
    return PaymentRecord(
        amount=decimal_from_value(data["amount"], record),
        paid_date=parse_date(data.get("paidDate"), f"{record}.paidDate"),
        transaction_id=str(data.get("transactionId") or ""),
        details=str(data.get("details") or ""),
    )


def parse_fee_record(data: Any) -> Optional[FeeRecord]:
    if data is None:
        return None
    data = _require_mapping(data, "feeRecord")
    total = data.get("totalAmount")
    return FeeRecord(
        previous_session_dues=decimal_from_value(data.get("previousSessionDues") or 0, "feeRecord.previousSessionDues"),
        due_date=parse_optional_date(data.get("dueDate"), "feeRecord.dueDate"),
        total_amount=decimal_from_value(total, "feeRecord.totalAmount") if total is not None else None,
    )


def parse_snapshot(data: Any) -> StudentFeeSnapshot:
    """Build a ``StudentFeeSnapshot`` from a JSON-shaped dictionary.

    Raises
    ------
    InvalidInput
        If ``studentId`` is missing.
    MalformedRecord
        If any record is malformed.
    """
    data = _require_mapping(data, "snapshot")
    student_id = data.get("studentId")
    if not student_id:
        raise InvalidInput("studentId is required")

    admission = data.get("admissionDate")
    if isinstance(admission, dict):
        admission = admission.get("date")

    return StudentFeeSnapshot(
        student_id=str(student_id),
        class_id=str(data["classId"]) if data.get("classId") else None,
        admission_date=parse_optional_date(admission, "admissionDate"),
        template=parse_template(data.get("feeTemplate")),
        services=tuple(parse_service(s, f"services[{i}]") for i, s in enumerate(_list_of(data, "services"))),
        adjustments=tuple(
            parse_adjustment(a, f"adjustments[{i}]") for i, a in enumerate(_list_of(data, "adjustments"))
        ),
        payments=tuple(parse_payment(p, f"payments[{i}]") for i, p in enumerate(_list_of(data, "payments"))),
        fee_record=parse_fee_record(data.get("feeRecord")),
    )


def load_snapshot_file(path: Path) -> StudentFeeSnapshot:
    """Read a snapshot from a JSON file."""
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f, parse_float=Decimal)
    return parse_snapshot(data)
