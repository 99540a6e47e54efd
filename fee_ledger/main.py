"""Command‑line interface for the fee ledger.

This module uses the ``click`` library to implement a multi‑command
interface. Users can compute a student's full monthly statement, view only the
totals, preview how a new payment would be applied, or summarise outstanding
fees for a class. Snapshots are read from JSON files shaped like the input
contract; results can be printed to the terminal or exported to JSON/CSV.
"""

from __future__ import annotations

import csv
import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import click

from .data_models import Ledger, StudentFeeSnapshot
from .engine import build_ledger, preview_payment, summarize_class
from .errors import LedgerError
from .formatter import (
    class_summary_to_dict,
    ledger_to_dict,
    preview_to_dict,
    print_class_summary,
    print_ledger,
    print_summary,
)
from .loader import load_snapshot_file
from .utils import decimal_from_value, parse_date

logger = logging.getLogger(__name__)


def parse_as_of(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return parse_date(value, "--as-of")
    except LedgerError as exc:
        raise click.BadParameter(str(exc))


def read_snapshot(path: str) -> StudentFeeSnapshot:
    try:
        return load_snapshot_file(Path(path))
    except json.JSONDecodeError as exc:
        raise click.ClickException(f"{path}: invalid JSON ({exc})")
    except LedgerError as exc:
        raise click.ClickException(f"{path}: {exc}")


def compute(snapshot: StudentFeeSnapshot, as_of: Optional[date]) -> Ledger:
    try:
        return build_ledger(snapshot, as_of)
    except LedgerError as exc:
        raise click.ClickException(str(exc))


def export_to_json(path: Path, data: Dict[str, Any]) -> None:
    """Export a serialised result to a JSON file."""
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, ledger: Ledger) -> None:
    """Export the monthly dues to a CSV file."""
    header = ["Month", "Year", "Total", "Paid", "Balance", "Status"]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for due in ledger.monthly_dues:
            writer.writerow(
                [
                    due.month,
                    due.year,
                    float(due.total),
                    float(due.paid),
                    float(due.balance),
                    due.status,
                ]
            )


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log calculation details")
def cli(verbose: bool) -> None:
    """Student fee ledger: monthly statements computed from fee records."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.argument("snapshot_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--as-of", "as_of", help="Date selecting the academic session (YYYY-MM-DD); defaults to today")
@click.option("--breakdown", "breakdown", is_flag=True, help="List each month's fee components")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def ledger(snapshot_path: str, as_of: Optional[str], breakdown: bool, output: Optional[str]) -> None:
    """Compute and print the full monthly statement for a student."""
    result = compute(read_snapshot(snapshot_path), parse_as_of(as_of))
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, ledger_to_dict(result))
            click.echo(f"Ledger exported to {path}")
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, result)
            click.echo(f"Ledger exported to {path}")
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
    else:
        print_summary(result)
        print_ledger(result, show_breakdown=breakdown)


@cli.command()
@click.argument("snapshot_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--as-of", "as_of", help="Date selecting the academic session (YYYY-MM-DD)")
@click.option("--json", "as_json", is_flag=True, help="Print the summary as JSON")
def summary(snapshot_path: str, as_of: Optional[str], as_json: bool) -> None:
    """Print only the totals of a student's ledger."""
    result = compute(read_snapshot(snapshot_path), parse_as_of(as_of))
    if as_json:
        data = ledger_to_dict(result)
        data.pop("monthlyDues")
        click.echo(json.dumps(data, indent=2))
    else:
        print_summary(result)


@cli.command()
@click.argument("snapshot_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--amount", "-a", "amount", required=True, help="Payment amount")
@click.option("--as-of", "as_of", help="Payment date (YYYY-MM-DD); defaults to today")
def preview(snapshot_path: str, amount: str, as_of: Optional[str]) -> None:
    """Show which months a new payment would cover."""
    try:
        value = decimal_from_value(amount, "--amount")
    except LedgerError as exc:
        raise click.BadParameter(str(exc))
    snapshot = read_snapshot(snapshot_path)
    try:
        result = preview_payment(snapshot, value, parse_as_of(as_of))
    except LedgerError as exc:
        raise click.ClickException(str(exc))
    data = preview_to_dict(result)
    data.pop("ledger")
    click.echo(json.dumps(data, indent=2))


@cli.command("class-summary")
@click.argument("class_id")
@click.argument("snapshot_paths", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--as-of", "as_of", help="Date selecting the academic session (YYYY-MM-DD)")
@click.option("--json", "as_json", is_flag=True, help="Print the summary as JSON")
def class_summary(class_id: str, snapshot_paths: Tuple[str, ...], as_of: Optional[str], as_json: bool) -> None:
    """Summarise outstanding fees across the students of a class."""
    as_of_date = parse_as_of(as_of)
    ledgers = []
    for path in snapshot_paths:
        snapshot = read_snapshot(path)
        if snapshot.class_id and snapshot.class_id != class_id:
            logger.warning("Skipping %s: student belongs to class %s", path, snapshot.class_id)
            continue
        ledgers.append(compute(snapshot, as_of_date))
    result = summarize_class(class_id, ledgers)
    if as_json:
        click.echo(json.dumps(class_summary_to_dict(result), indent=2))
    else:
        print_class_summary(result)


if __name__ == "__main__":
    cli()
