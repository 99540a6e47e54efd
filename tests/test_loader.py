import json
from datetime import date
from decimal import Decimal

import pytest

from fee_ledger.data_models import FlatAmount, ItemizedAmount
from fee_ledger.errors import InvalidInput, MalformedRecord
from fee_ledger.loader import load_snapshot_file, parse_snapshot


def snapshot_data(**overrides):
    data = {
        "studentId": "stu-1",
        "classId": "10-A",
        "admissionDate": {"date": "2024-06-15"},
        "feeTemplate": {
            "flatAnnualAmount": 12000,
            "monthlyBreakdown": [
                {"month": "April", "breakdown": [{"component": "Tuition", "amount": 1000}, {"label": "Lab", "amount": 0.1}]},
                {"month": "May", "total": 900},
                {"month": "June"},
            ],
        },
        "services": [{"type": "Hostel", "monthlyCharge": 500, "active": True, "label": "12", "startDate": "2024-08-01"}],
        "adjustments": [{"date": "2024-08-01T09:30:00Z", "reason": "Hostel Assigned: Room 12 (8 months @ 500)", "amount": 4000, "type": "charge"}],
        "payments": [{"amount": "2,500", "paidDate": "2024-05-02", "transactionId": "pay_1"}],
        "feeRecord": {"previousSessionDues": 1500, "dueDate": "2024-10-10", "totalAmount": 16000},
    }
    data.update(overrides)
    return data


def test_parse_full_snapshot():
    snapshot = parse_snapshot(snapshot_data())
    assert snapshot.student_id == "stu-1"
    assert snapshot.class_id == "10-A"
    assert snapshot.admission_date == date(2024, 6, 15)

    april, may, june = snapshot.template.monthly_breakdown
    assert isinstance(april.amount, ItemizedAmount)
    assert [c.label for c in april.amount.components] == ["Tuition", "Lab"]
    assert april.amount.components[1].amount == Decimal("0.1")
    assert may.amount == FlatAmount(total=Decimal("900"))
    assert june.amount == FlatAmount(total=Decimal("0"))

    assert snapshot.services[0].start_date == date(2024, 8, 1)
    assert snapshot.adjustments[0].date == date(2024, 8, 1)
    assert snapshot.payments[0].amount == Decimal("2500")
    assert snapshot.fee_record.previous_session_dues == Decimal("1500")
    assert snapshot.fee_record.total_amount == Decimal("16000")


def test_optional_sections_may_be_missing():
    snapshot = parse_snapshot({"studentId": "stu-9"})
    assert snapshot.template is None
    assert snapshot.services == ()
    assert snapshot.payments == ()
    assert snapshot.fee_record is None


def test_missing_student_id():
    with pytest.raises(InvalidInput):
        parse_snapshot(snapshot_data(studentId=None))


def test_unknown_month_is_rejected():
    data = snapshot_data(feeTemplate={"monthlyBreakdown": [{"month": "Smarch", "total": 10}]})
    with pytest.raises(MalformedRecord) as excinfo:
        parse_snapshot(data)
    assert excinfo.value.record == "feeTemplate.monthlyBreakdown[0]"


def test_negative_payment_names_the_record():
    data = snapshot_data(payments=[{"amount": 10, "paidDate": "2024-05-01"}, {"amount": -10, "paidDate": "2024-05-02"}])
    with pytest.raises(MalformedRecord) as excinfo:
        parse_snapshot(data)
    assert excinfo.value.record == "payments[1]"


def test_bad_date_is_rejected():
    data = snapshot_data(payments=[{"amount": 10, "paidDate": "yesterday"}])
    with pytest.raises(MalformedRecord) as excinfo:
        parse_snapshot(data)
    assert excinfo.value.record == "payments[0].paidDate"


def test_unknown_service_type_is_rejected():
    with pytest.raises(MalformedRecord):
        parse_snapshot(snapshot_data(services=[{"type": "Canteen", "monthlyCharge": 10}]))


def test_boolean_amount_is_rejected():
    with pytest.raises(MalformedRecord):
        parse_snapshot(snapshot_data(payments=[{"amount": True, "paidDate": "2024-05-01"}]))


def test_non_boolean_active_flag_is_rejected():
    data = snapshot_data(services=[{"type": "Hostel", "monthlyCharge": 500, "active": "false"}])
    with pytest.raises(MalformedRecord) as excinfo:
        parse_snapshot(data)
    assert excinfo.value.record == "services[0]"


def test_active_flag_defaults_to_true():
    snapshot = parse_snapshot(snapshot_data(services=[{"type": "Transport", "monthlyCharge": 200}]))
    assert snapshot.services[0].active is True


def test_non_list_component_breakdown_is_rejected():
    data = snapshot_data(feeTemplate={"monthlyBreakdown": [{"month": "April", "breakdown": 5}]})
    with pytest.raises(MalformedRecord) as excinfo:
        parse_snapshot(data)
    assert excinfo.value.record == "feeTemplate.monthlyBreakdown[0]"


def test_non_list_field_error_names_the_full_path():
    with pytest.raises(MalformedRecord) as excinfo:
        parse_snapshot(snapshot_data(feeTemplate={"monthlyBreakdown": 5}))
    assert excinfo.value.record == "feeTemplate.monthlyBreakdown"
    with pytest.raises(MalformedRecord) as excinfo:
        parse_snapshot(snapshot_data(payments={"amount": 10}))
    assert excinfo.value.record == "payments"


def test_load_snapshot_file_keeps_decimal_precision(tmp_path):
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps({"studentId": "s", "payments": [{"amount": 0.1, "paidDate": "2024-05-01"}]}))
    assert load_snapshot_file(path).payments[0].amount == Decimal("0.1")


def test_load_snapshot_file_rejects_nan(tmp_path):
    path = tmp_path / "snapshot.json"
    path.write_text('{"studentId": "s", "payments": [{"amount": NaN, "paidDate": "2024-05-01"}]}')
    with pytest.raises(MalformedRecord):
        load_snapshot_file(path)
