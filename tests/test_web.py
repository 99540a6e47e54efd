from datetime import date
from decimal import Decimal

import pytest

from fee_ledger_web.app import create_app


@pytest.fixture
def app(tmp_path):
    app = create_app(database_url=f"sqlite:///{tmp_path / 'fees.sqlite3'}")
    app.testing = True
    store = app.config["RECORD_STORE"]
    store.set_template("10-A", {"flatAnnualAmount": 12000})
    store.upsert_student("stu-1", "10-A", date(2022, 4, 1))
    store.set_fee_record("stu-1", Decimal("0"), due_date=date(2024, 10, 10))
    store.upsert_student("stu-2", "10-A", date(2022, 4, 1))
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def test_ledger_from_posted_snapshot(client):
    response = client.post(
        "/ledger?asOf=2024-09-01",
        json={
            "studentId": "walk-in",
            "classId": "5-C",
            "feeTemplate": {"flatAnnualAmount": 12000},
            "payments": [{"amount": 2500, "paidDate": "2024-05-02"}],
        },
    )
    assert response.status_code == 200
    data = response.get_json()
    assert data["totalAnnualFee"] == 12000
    assert [m["status"] for m in data["monthlyDues"][:4]] == ["Paid", "Paid", "PartiallyPaid", "Due"]
    assert data["currentInstallmentDue"] == 1000


def test_missing_student_reference_is_a_bad_request(client):
    response = client.post("/ledger", json={"feeTemplate": {"flatAnnualAmount": 12000}})
    assert response.status_code == 400


def test_malformed_record_is_unprocessable(client):
    response = client.post(
        "/ledger",
        json={"studentId": "s", "payments": [{"amount": -5, "paidDate": "2024-05-02"}]},
    )
    assert response.status_code == 422
    assert response.get_json()["record"] == "payments[0]"


def test_non_list_component_breakdown_is_unprocessable(client):
    response = client.post(
        "/ledger",
        json={
            "studentId": "s",
            "classId": "10-A",
            "feeTemplate": {"monthlyBreakdown": [{"month": "April", "breakdown": 5}]},
        },
    )
    assert response.status_code == 422
    assert response.get_json()["record"] == "feeTemplate.monthlyBreakdown[0]"


def test_unknown_student_is_not_found(client):
    assert client.get("/students/nobody/ledger").status_code == 404


def test_record_payment_and_read_ledger(client):
    response = client.post(
        "/students/stu-1/payments",
        json={"amount": 2500, "paidDate": "2024-09-01", "transactionId": "pay_9"},
    )
    assert response.status_code == 201
    data = response.get_json()
    assert data["details"] == "Payment for April, May, June"
    assert data["ledger"]["totalPaid"] == 2500

    ledger = client.get("/students/stu-1/ledger?asOf=2024-09-01").get_json()
    assert ledger["monthlyDues"][2]["paid"] == 500
    assert ledger["totalOutstanding"] == 9500
    assert ledger["dueDate"] == "2024-10-10"


def test_zero_payment_is_rejected(client):
    response = client.post("/students/stu-1/payments", json={"amount": 0, "paidDate": "2024-09-01"})
    assert response.status_code == 422


def test_preview_does_not_record(client):
    response = client.post("/students/stu-1/payments/preview?asOf=2024-09-01", json={"amount": 1500})
    assert response.status_code == 200
    assert response.get_json()["paidMonths"] == ["April", "May"]
    history = client.get("/students/stu-1/history").get_json()
    assert history == []


def test_history_includes_service_assignment(app, client):
    app.config["RECORD_STORE"].assign_service("stu-1", "Hostel", Decimal("500"), "12", date(2024, 8, 10))
    client.post("/students/stu-1/payments", json={"amount": 1000, "paidDate": "2024-09-01"})
    history = client.get("/students/stu-1/history").get_json()
    assert [item["itemType"] for item in history] == ["payment", "adjustment"]
    assert history[1]["description"] == "Hostel Assigned: Room 12 (8 months @ 500)"

    ledger = client.get("/students/stu-1/ledger?asOf=2024-09-01").get_json()
    assert ledger["monthlyDues"][4]["total"] == 1500
    assert ledger["monthlyDues"][4]["breakdown"] == [
        {"component": "Tuition", "amount": 1000},
        {"component": "Hostel (12)", "amount": 500},
    ]


def test_class_summary(client):
    client.post("/students/stu-1/payments", json={"amount": 12000, "paidDate": "2024-09-01"})
    data = client.get("/classes/10-A/summary?asOf=2024-09-01").get_json()
    assert data == {"classId": "10-A", "studentCount": 2, "defaulterCount": 1, "pendingAmount": 12000}
