"""Persistence layer for the fee source records.

The ledger itself is never stored; this store keeps the records it is computed
from (students, class fee templates, service enrollments, adjustment log,
payments and fee records) and hands them to the engine as one snapshot. It
defaults to SQLite for local development, but accepts any
SQLAlchemy-compatible URL (e.g. PostgreSQL/MySQL).
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import Boolean, Column, Date, DateTime, Integer, Numeric, String, Text, create_engine, select
from sqlalchemy.orm import declarative_base, sessionmaker

from fee_ledger.data_models import (
    SERVICE_TYPES,
    AdjustmentLogEntry,
    FeeRecord,
    PaymentRecord,
    ServiceEnrollment,
    StudentFeeSnapshot,
)
from fee_ledger.errors import MalformedRecord
from fee_ledger.loader import parse_template
from fee_ledger.services import assignment_log_entry
from fee_ledger.utils import decimal_from_value

logger = logging.getLogger(__name__)

Base = declarative_base()

Amount = Numeric(12, 2)


class StudentNotFound(LookupError):
    pass


class StudentModel(Base):
    __tablename__ = "students"

    id = Column(String(64), primary_key=True)
    class_id = Column(String(64), index=True, nullable=True)
    admission_date = Column(Date, nullable=True)


class FeeTemplateModel(Base):
    __tablename__ = "fee_templates"

    class_id = Column(String(64), primary_key=True)
    template_json = Column(Text, nullable=False)


class ServiceEnrollmentModel(Base):
    __tablename__ = "service_enrollments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(String(64), index=True, nullable=False)
    service_type = Column(String(16), nullable=False)
    monthly_charge = Column(Amount, nullable=False)
    label = Column(String(255), nullable=False, default="")
    start_date = Column(Date, nullable=True)
    active = Column(Boolean, nullable=False, default=True)


class AdjustmentModel(Base):
    __tablename__ = "fee_adjustments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(String(64), index=True, nullable=False)
    date = Column(Date, nullable=False)
    reason = Column(Text, nullable=False)
    amount = Column(Amount, nullable=False)
    type = Column(String(16), nullable=False)


class PaymentModel(Base):
    __tablename__ = "fee_payments"

    id = Column(String(64), primary_key=True)
    student_id = Column(String(64), index=True, nullable=False)
    amount = Column(Amount, nullable=False)
    paid_date = Column(Date, nullable=False)
    transaction_id = Column(String(128), nullable=False, default="")
    details = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class FeeRecordModel(Base):
    __tablename__ = "fee_records"

    student_id = Column(String(64), primary_key=True)
    previous_session_dues = Column(Amount, nullable=False, default=0)
    due_date = Column(Date, nullable=True)
    total_amount = Column(Amount, nullable=True)


def _decimal(value: Any) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


class RecordStore:
    """Database-backed store of fee source records."""

    def __init__(self, url: str) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)

    def upsert_student(self, student_id: str, class_id: Optional[str], admission_date: Optional[date]) -> None:
        with self._session_factory() as session:
            row = session.get(StudentModel, student_id)
            if row is None:
                row = StudentModel(id=student_id)
                session.add(row)
            row.class_id = class_id
            row.admission_date = admission_date
            session.commit()

    def set_template(self, class_id: str, template: Dict[str, Any]) -> None:
        """Store a class template in the input contract's JSON shape."""
        parse_template(template)  # reject malformed templates before storing
        with self._session_factory() as session:
            row = session.get(FeeTemplateModel, class_id)
            if row is None:
                row = FeeTemplateModel(class_id=class_id)
                session.add(row)
            row.template_json = json.dumps(template)
            session.commit()

    def set_fee_record(
        self,
        student_id: str,
        previous_session_dues: Decimal,
        due_date: Optional[date] = None,
        total_amount: Optional[Decimal] = None,
    ) -> None:
        with self._session_factory() as session:
            row = session.get(FeeRecordModel, student_id)
            if row is None:
                row = FeeRecordModel(student_id=student_id)
                session.add(row)
            row.previous_session_dues = previous_session_dues
            row.due_date = due_date
            row.total_amount = total_amount
            session.commit()

    def add_adjustment(self, student_id: str, entry: AdjustmentLogEntry) -> None:
        decimal_from_value(entry.amount, "adjustment")
        with self._session_factory() as session:
            session.add(
                AdjustmentModel(
                    student_id=student_id,
                    date=entry.date,
                    reason=entry.reason,
                    amount=entry.amount,
                    type=entry.type,
                )
            )
            session.commit()

    def assign_service(
        self,
        student_id: str,
        service_type: str,
        monthly_charge: Decimal,
        label: str,
        assigned_on: date,
    ) -> ServiceEnrollment:
        """Assign a hostel room or transport stop to a student.

        Any current enrollment of the same type is closed, the new one starts
        on ``assigned_on`` and the assignment is written to the adjustment log.
        """
        if service_type not in SERVICE_TYPES:
            raise MalformedRecord("service", f"service type must be one of {', '.join(SERVICE_TYPES)}; got {service_type!r}")
        self._require_student(student_id)
        enrollment = ServiceEnrollment(
            service_type=service_type,
            monthly_charge=monthly_charge,
            active=True,
            label=label,
            start_date=assigned_on,
        )
        entry = assignment_log_entry(enrollment, assigned_on)
        with self._session_factory() as session:
            current = session.execute(
                select(ServiceEnrollmentModel).where(
                    ServiceEnrollmentModel.student_id == student_id,
                    ServiceEnrollmentModel.service_type == service_type,
                    ServiceEnrollmentModel.active.is_(True),
                )
            ).scalars()
            for row in current:
                row.active = False
            session.add(
                ServiceEnrollmentModel(
                    student_id=student_id,
                    service_type=service_type,
                    monthly_charge=monthly_charge,
                    label=label,
                    start_date=assigned_on,
                    active=True,
                )
            )
            session.add(
                AdjustmentModel(
                    student_id=student_id,
                    date=entry.date,
                    reason=entry.reason,
                    amount=entry.amount,
                    type=entry.type,
                )
            )
            session.commit()
        logger.info("Assigned %s %s to student %s from %s", service_type, label, student_id, assigned_on)
        return enrollment

    def record_payment(
        self,
        student_id: str,
        amount: Any,
        paid_date: date,
        transaction_id: str = "",
        details: str = "",
    ) -> str:
        """Append a payment and return its id. Payments are never edited."""
        value = decimal_from_value(amount, "payment")
        if value <= 0:
            raise MalformedRecord("payment", f"amount must be positive, got {amount!r}")
        self._require_student(student_id)
        payment_id = uuid4().hex
        with self._session_factory() as session:
            session.add(
                PaymentModel(
                    id=payment_id,
                    student_id=student_id,
                    amount=value,
                    paid_date=paid_date,
                    transaction_id=transaction_id or payment_id,
                    details=details,
                )
            )
            session.commit()
        logger.info("Recorded payment %s of %s for student %s", payment_id, value, student_id)
        return payment_id

    def class_student_ids(self, class_id: str) -> List[str]:
        with self._session_factory() as session:
            rows = session.execute(
                select(StudentModel.id).where(StudentModel.class_id == class_id).order_by(StudentModel.id)
            ).scalars()
            return list(rows)

    def load_snapshot(self, student_id: str) -> StudentFeeSnapshot:
        """Read every source record of a student within one session."""
        with self._session_factory() as session:
            student = session.get(StudentModel, student_id)
            if student is None:
                raise StudentNotFound(student_id)
            template_row = session.get(FeeTemplateModel, student.class_id) if student.class_id else None
            services = session.execute(
                select(ServiceEnrollmentModel)
                .where(
                    ServiceEnrollmentModel.student_id == student_id,
                    ServiceEnrollmentModel.active.is_(True),
                )
                .order_by(ServiceEnrollmentModel.id)
            ).scalars().all()
            adjustments = session.execute(
                select(AdjustmentModel)
                .where(AdjustmentModel.student_id == student_id)
                .order_by(AdjustmentModel.date.asc(), AdjustmentModel.id.asc())
            ).scalars().all()
            payments = session.execute(
                select(PaymentModel)
                .where(PaymentModel.student_id == student_id)
                .order_by(PaymentModel.paid_date.asc(), PaymentModel.created_at.asc())
            ).scalars().all()
            fee_record = session.get(FeeRecordModel, student_id)

            return StudentFeeSnapshot(
                student_id=student.id,
                class_id=student.class_id,
                admission_date=student.admission_date,
                template=parse_template(json.loads(template_row.template_json)) if template_row else None,
                services=tuple(
                    ServiceEnrollment(
                        service_type=row.service_type,
                        monthly_charge=_decimal(row.monthly_charge),
                        active=row.active,
                        label=row.label,
                        start_date=row.start_date,
                    )
                    for row in services
                ),
                adjustments=tuple(
                    AdjustmentLogEntry(
                        date=row.date,
                        reason=row.reason,
                        amount=_decimal(row.amount),
                        type=row.type,
                    )
                    for row in adjustments
                ),
                payments=tuple(
                    PaymentRecord(
                        amount=_decimal(row.amount),
                        paid_date=row.paid_date,
                        transaction_id=row.transaction_id,
                        details=row.details,
                    )
                    for row in payments
                ),
                fee_record=FeeRecord(
                    previous_session_dues=_decimal(fee_record.previous_session_dues),
                    due_date=fee_record.due_date,
                    total_amount=_decimal(fee_record.total_amount) if fee_record.total_amount is not None else None,
                )
                if fee_record
                else None,
            )

    def _require_student(self, student_id: str) -> None:
        with self._session_factory() as session:
            if session.get(StudentModel, student_id) is None:
                raise StudentNotFound(student_id)


def create_store_from_env(url: str | None) -> RecordStore:
    return RecordStore(url or "sqlite:///fee_records.sqlite3")
