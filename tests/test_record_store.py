from datetime import date
from decimal import Decimal

import pytest

from fee_ledger.data_models import AdjustmentLogEntry
from fee_ledger.engine import build_ledger
from fee_ledger.errors import MalformedRecord
from fee_ledger_web.record_store import RecordStore, StudentNotFound


@pytest.fixture
def store(tmp_path):
    store = RecordStore(f"sqlite:///{tmp_path / 'records.sqlite3'}")
    store.set_template("10-A", {"flatAnnualAmount": 12000})
    store.upsert_student("stu-1", "10-A", date(2023, 4, 3))
    store.set_fee_record("stu-1", Decimal("1500"), due_date=date(2024, 10, 10))
    return store


def test_load_snapshot_reads_all_records(store):
    store.record_payment("stu-1", "2000", date(2024, 5, 2), transaction_id="pay_1")
    store.add_adjustment("stu-1", AdjustmentLogEntry(date=date(2024, 6, 1), reason="Late fee", amount=Decimal("50")))
    snapshot = store.load_snapshot("stu-1")
    assert snapshot.class_id == "10-A"
    assert snapshot.admission_date == date(2023, 4, 3)
    assert snapshot.template.flat_annual_amount == Decimal("12000")
    assert snapshot.payments[0].amount == Decimal("2000")
    assert snapshot.payments[0].transaction_id == "pay_1"
    assert snapshot.adjustments[0].reason == "Late fee"
    assert snapshot.fee_record.previous_session_dues == Decimal("1500")
    assert snapshot.fee_record.due_date == date(2024, 10, 10)


def test_payments_are_appended(store):
    store.record_payment("stu-1", 1000, date(2024, 5, 2))
    store.record_payment("stu-1", 700, date(2024, 6, 2))
    ledger = build_ledger(store.load_snapshot("stu-1"), date(2024, 9, 1))
    assert ledger.total_paid == Decimal("1700")
    assert ledger.previous_session_dues_paid == Decimal("1500")
    assert ledger.monthly_dues[0].paid == Decimal("200")


def test_payment_must_be_positive(store):
    with pytest.raises(MalformedRecord):
        store.record_payment("stu-1", 0, date(2024, 5, 2))
    with pytest.raises(MalformedRecord):
        store.record_payment("stu-1", -10, date(2024, 5, 2))


def test_unknown_student(store):
    with pytest.raises(StudentNotFound):
        store.load_snapshot("nobody")
    with pytest.raises(StudentNotFound):
        store.record_payment("nobody", 100, date(2024, 5, 2))


def test_assign_service_replaces_previous_assignment(store):
    store.assign_service("stu-1", "Hostel", Decimal("400"), "7", date(2024, 6, 10))
    store.assign_service("stu-1", "Hostel", Decimal("500"), "12", date(2024, 8, 10))
    snapshot = store.load_snapshot("stu-1")
    assert len(snapshot.services) == 1
    assert snapshot.services[0].label == "12"
    assert snapshot.services[0].start_date == date(2024, 8, 10)
    reasons = [a.reason for a in snapshot.adjustments]
    assert reasons == [
        "Hostel Assigned: Room 7 (10 months @ 400)",
        "Hostel Assigned: Room 12 (8 months @ 500)",
    ]
    ledger = build_ledger(snapshot, date(2024, 9, 1))
    assert ledger.monthly_dues[3].total == Decimal("1000")
    assert ledger.monthly_dues[4].total == Decimal("1500")


def test_assign_unknown_service_type_is_rejected(store):
    with pytest.raises(MalformedRecord) as excinfo:
        store.assign_service("stu-1", "Library", Decimal("50"), "L1", date(2024, 6, 10))
    assert excinfo.value.record == "service"
    assert store.load_snapshot("stu-1").services == ()


def test_negative_adjustment_is_not_stored(store):
    with pytest.raises(MalformedRecord):
        store.add_adjustment("stu-1", AdjustmentLogEntry(date=date(2024, 6, 1), reason="Refund", amount=Decimal("-50")))
    assert store.load_snapshot("stu-1").adjustments == ()


def test_malformed_template_is_not_stored(store):
    with pytest.raises(MalformedRecord):
        store.set_template("10-B", {"flatAnnualAmount": -1})


def test_class_student_ids(store):
    store.upsert_student("stu-2", "10-A", None)
    store.upsert_student("stu-3", "9-B", None)
    assert store.class_student_ids("10-A") == ["stu-1", "stu-2"]
