import os
from datetime import date

from flask import Flask, jsonify, request

from fee_ledger.engine import build_ledger, fee_history, preview_payment, summarize_class
from fee_ledger.errors import InvalidInput, MalformedRecord
from fee_ledger.formatter import (
    class_summary_to_dict,
    history_to_list,
    ledger_to_dict,
    preview_to_dict,
)
from fee_ledger.loader import parse_snapshot
from fee_ledger.utils import decimal_from_value, parse_optional_date
from fee_ledger_web.record_store import RecordStore, StudentNotFound, create_store_from_env


def _as_of():
    return parse_optional_date(request.args.get("asOf"), "asOf") or date.today()


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidInput("Request body must be a JSON object")
    return data


def create_app(database_url: str | None = None, store: RecordStore | None = None) -> Flask:
    app = Flask(__name__)
    app.secret_key = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    records = store or create_store_from_env(database_url or os.environ.get("FEE_LEDGER_DATABASE_URL"))
    app.config["RECORD_STORE"] = records

    @app.errorhandler(InvalidInput)
    def handle_invalid_input(exc):
        return jsonify({"message": str(exc)}), 400

    @app.errorhandler(MalformedRecord)
    def handle_malformed_record(exc):
        return jsonify({"message": str(exc), "record": exc.record}), 422

    @app.errorhandler(StudentNotFound)
    def handle_missing_student(exc):
        return jsonify({"message": f"Student {exc.args[0]} not found."}), 404

    @app.post("/ledger")
    def compute_ledger():
        """Compute a ledger from a snapshot posted by the caller."""
        snapshot = parse_snapshot(_json_body())
        return jsonify(ledger_to_dict(build_ledger(snapshot, _as_of())))

    @app.get("/students/<student_id>/ledger")
    def student_ledger(student_id):
        snapshot = records.load_snapshot(student_id)
        return jsonify(ledger_to_dict(build_ledger(snapshot, _as_of())))

    @app.get("/students/<student_id>/history")
    def student_history(student_id):
        snapshot = records.load_snapshot(student_id)
        return jsonify(history_to_list(fee_history(snapshot)))

    @app.post("/students/<student_id>/payments/preview")
    def preview_student_payment(student_id):
        data = _json_body()
        amount = decimal_from_value(data.get("amount"), "amount")
        snapshot = records.load_snapshot(student_id)
        return jsonify(preview_to_dict(preview_payment(snapshot, amount, _as_of())))

    @app.post("/students/<student_id>/payments")
    def record_student_payment(student_id):
        data = _json_body()
        amount = decimal_from_value(data.get("amount"), "amount")
        paid_date = parse_optional_date(data.get("paidDate"), "paidDate") or date.today()
        snapshot = records.load_snapshot(student_id)
        preview = preview_payment(snapshot, amount, paid_date)
        details = data.get("details") or ""
        if not details and preview.paid_months:
            details = f"Payment for {', '.join(preview.paid_months)}"
        payment_id = records.record_payment(
            student_id,
            amount,
            paid_date,
            transaction_id=data.get("transactionId") or "",
            details=details,
        )
        app.logger.info("Payment %s recorded for %s: %s", payment_id, student_id, details)
        ledger = build_ledger(records.load_snapshot(student_id), paid_date)
        return jsonify({"paymentId": payment_id, "details": details, "ledger": ledger_to_dict(ledger)}), 201

    @app.get("/classes/<class_id>/summary")
    def class_summary(class_id):
        as_of = _as_of()
        ledgers = [
            build_ledger(records.load_snapshot(student_id), as_of)
            for student_id in records.class_student_ids(class_id)
        ]
        return jsonify(class_summary_to_dict(summarize_class(class_id, ledgers)))

    return app


if __name__ == "__main__":
    print("Starting fee ledger API...")
    create_app().run(host="0.0.0.0", port=8710, debug=True)
