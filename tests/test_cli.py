"""
CLI Integration Tests

Drives the finance workflow end-to-end through the Typer app against a
temporary database.
"""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from eventsync_finance.api.auth import decode_access_token
from eventsync_finance.cli.main import app
from eventsync_finance.kernel.session import Role
from eventsync_finance.kernel.settings import get_settings

runner = CliRunner()

EVENT = "evt-cli"
CATEGORIES = json.dumps(
    [
        {"name": "Food", "requested_amount": 10000, "justification": "Lunch for 200 participants"},
        {"name": "Travel", "requested_amount": 5000, "justification": "Speaker flights"},
    ]
)
LEAD = ["--actor", "lead-1", "--role", "ORGANIZER"]


def invoke(db: Path, *args: str):
    return runner.invoke(app, [*args, "--db", str(db)])


@pytest.fixture
def db(tmp_path: Path) -> Path:
    db_path = tmp_path / "finance.db"
    result = runner.invoke(app, ["init", "--db", str(db_path)])
    assert result.exit_code == 0, result.output
    assert "Initialized finance database" in result.stdout
    return db_path


@pytest.fixture
def approved(db: Path) -> Path:
    """Event team with lead-1, budget Food 8000 / Travel 5000 approved"""
    result = invoke(db, "team", "assign", "--event", EVENT, "--user", "lead-1", "--lead")
    assert result.exit_code == 0, result.output

    result = invoke(db, "budget", "request", "--event", EVENT, "--categories", CATEGORIES, *LEAD)
    assert result.exit_code == 0, result.output

    result = invoke(
        db,
        "budget",
        "approve",
        "--event",
        EVENT,
        "--allocations",
        '{"Food": 8000, "Travel": 5000}',
        "--notes",
        "Food trimmed to match headcount",
    )
    assert result.exit_code == 0, result.output
    return db


def _log_expense(db: Path, amount: str = "3000", *extra: str) -> str:
    result = invoke(
        db,
        "expense",
        "log",
        "--event",
        EVENT,
        "--category",
        "Food",
        "--amount",
        amount,
        "--description",
        "Snacks",
        *LEAD,
        *extra,
    )
    assert result.exit_code == 0, result.output
    return result.stdout.split("Logged expense: ")[1].split("\n")[0]


def test_init_refuses_existing_database(db: Path) -> None:
    result = runner.invoke(app, ["init", "--db", str(db)])

    assert result.exit_code == 1
    assert "already exists" in result.output


def test_missing_database(tmp_path: Path) -> None:
    result = invoke(tmp_path / "nope.db", "budget", "list")

    assert result.exit_code == 1
    assert "Database not found" in result.output


def test_budget_lifecycle(approved: Path) -> None:
    result = invoke(approved, "budget", "show", "--event", EVENT, "--json")
    assert result.exit_code == 0, result.output
    budget = json.loads(result.stdout)
    assert budget["status"] == "PARTIALLY_APPROVED"
    assert budget["total_requested_amount"] == "15000"
    assert budget["total_allocated_amount"] == "13000"

    result = invoke(approved, "budget", "show", "--event", EVENT)
    assert "Utilization: 0.0%" in result.stdout
    assert "Food: requested 10000, allocated 8000" in result.stdout

    result = invoke(approved, "budget", "history", "--event", EVENT)
    assert "History for evt-cli (2 entries)" in result.stdout
    assert "REQUESTED → PARTIALLY_APPROVED" in result.stdout

    result = invoke(approved, "budget", "list", "--status", "PARTIALLY_APPROVED")
    assert f"{EVENT}: [PARTIALLY_APPROVED]" in result.stdout

    result = invoke(approved, "budget", "close", "--event", EVENT, "--reason", "Event wrapped")
    assert result.exit_code == 0, result.output
    assert "Status: CLOSED" in result.stdout


def test_approval_requires_notes(db: Path) -> None:
    invoke(db, "budget", "request", "--event", EVENT, "--categories", CATEGORIES)

    result = invoke(
        db, "budget", "approve", "--event", EVENT, "--allocations", '{"Food": 1}', "--notes", " "
    )

    assert result.exit_code == 1
    assert "Error:" in result.output


def test_organizer_cannot_approve(approved: Path) -> None:
    result = invoke(approved, "budget", "close", "--event", EVENT, *LEAD)

    assert result.exit_code == 1
    assert "Not authorized" in result.output


def test_amendment_flow(approved: Path) -> None:
    result = invoke(
        approved,
        "amendment",
        "request",
        "--event",
        EVENT,
        "--categories",
        '[{"name": "Prizes", "requested_amount": 2000, "justification": "Winner trophies"}]',
        "--reason",
        "Sponsor asked for prizes",
        *LEAD,
    )
    assert result.exit_code == 0, result.output
    amendment_id = result.stdout.split("Requested amendment: ")[1].split("\n")[0]

    result = invoke(approved, "amendment", "pending")
    assert amendment_id in result.stdout

    result = invoke(
        approved,
        "amendment",
        "review",
        "--event",
        EVENT,
        "--id",
        amendment_id,
        "--status",
        "APPROVED",
        "--notes",
        "Prizes approved",
        "--allocations",
        '{"Prizes": 1500}',
    )
    assert result.exit_code == 0, result.output
    assert "Allocated: 14500" in result.stdout
    assert "No pending amendments" in invoke(approved, "amendment", "pending").stdout


def test_expense_lifecycle(approved: Path) -> None:
    first = _log_expense(approved)
    second = _log_expense(approved, "250")

    result = invoke(approved, "expense", "pending")
    assert "Pending expenses (2)" in result.stdout

    result = invoke(approved, "expense", "status", "--id", first, "--status", "APPROVED")
    assert result.exit_code == 0, result.output
    assert f"Expense APPROVED: {first}" in result.stdout

    result = invoke(approved, "reimbursements")
    assert "lead-1: 3000 across 1 bill(s)" in result.stdout

    result = invoke(
        approved, "expense", "bulk", "--ids", f"{first},{second},exp-missing", "--status", "REIMBURSED"
    )
    assert "Updated 1 expense(s)" in result.stdout
    assert f"✗ {second}" in result.stdout
    assert "✗ exp-missing" in result.stdout

    result = invoke(approved, "expense", "list", "--event", EVENT, "--json", *LEAD)
    statuses = {e["expense_id"]: e["status"] for e in json.loads(result.stdout)}
    assert statuses == {first: "REIMBURSED", second: "PENDING"}


def test_changes_requested_then_resubmit(approved: Path) -> None:
    expense_id = _log_expense(approved)

    result = invoke(approved, "expense", "status", "--id", expense_id, "--status", "CHANGES_REQUESTED")
    assert result.exit_code == 1

    invoke(
        approved,
        "expense",
        "status",
        "--id",
        expense_id,
        "--status",
        "CHANGES_REQUESTED",
        "--notes",
        "Receipt is unreadable",
    )
    result = invoke(
        approved, "expense", "resubmit", "--id", expense_id, "--receipt", "https://r.example/1", *LEAD
    )

    assert result.exit_code == 0, result.output
    assert "Status: PENDING" in result.stdout


def test_reports(approved: Path, tmp_path: Path) -> None:
    expense_id = _log_expense(approved, "7600")
    invoke(approved, "expense", "status", "--id", expense_id, "--status", "APPROVED")

    rows = json.loads(invoke(approved, "report", "event-wise").stdout)
    assert rows[0]["event_id"] == EVENT
    assert rows[0]["total_spent"] == "7600"

    rows = json.loads(invoke(approved, "report", "category-wise").stdout)
    assert rows[0]["category"] == "Food"

    result = invoke(approved, "report", "over-budget")
    assert "[LOW] NEAR_BUDGET_LIMIT" in result.stdout

    output = tmp_path / "expenses.csv"
    result = invoke(approved, "report", "export", "--type", "expenses", "--output", str(output))
    assert result.exit_code == 0, result.output
    assert output.read_text().splitlines()[1].startswith(f"{expense_id},{EVENT},Food,7600")


def test_audit_commands(approved: Path) -> None:
    result = invoke(approved, "audit", "invalidate-attendance", "--id", "att-1", "--reason", "oops")
    assert result.exit_code == 1
    assert "at least 10 characters" in result.output

    result = invoke(
        approved,
        "audit",
        "invalidate-attendance",
        "--id",
        "att-1",
        "--reason",
        "Scanned at the wrong event",
        "--event",
        EVENT,
    )
    assert result.exit_code == 0, result.output
    assert "[CRITICAL]" in result.stdout

    result = invoke(
        approved, "audit", "trail", "--entity-type", "attendance", "--entity-id", "att-1", "--json"
    )
    entries = json.loads(result.stdout)
    assert [e["action_type"] for e in entries] == ["ATTENDANCE_INVALIDATED"]

    result = invoke(
        approved,
        "audit",
        "revoke-certificate",
        "--id",
        "cert-1",
        "--reason",
        "Issued to the wrong participant",
    )
    assert "Revoked certificate: cert-1" in result.stdout


def test_team_check(approved: Path) -> None:
    invoke(
        approved,
        "team",
        "assign",
        "--event",
        EVENT,
        "--user",
        "door-1",
        "--permissions",
        '{"can_manage_attendance": true}',
    )

    result = invoke(
        approved,
        "team",
        "check",
        "--event",
        EVENT,
        "--user",
        "door-1",
        "--permission",
        "can_manage_attendance",
        "--permission",
        "can_send_emails",
    )

    assert result.exit_code == 0, result.output
    assert "can_manage_attendance: ✓ allowed" in result.stdout
    assert "can_send_emails: ✗ denied" in result.stdout

    result = invoke(
        approved, "team", "check", "--event", EVENT, "--user", "ghost", "--permission", "can_edit_event"
    )
    assert "permissions unavailable" in result.stdout
    assert "can_edit_event: ✗ denied" in result.stdout

    result = invoke(approved, "team", "remove", "--event", EVENT, "--user", "door-1")
    assert "Removed door-1" in result.stdout


def _record(db: Path, direction: str, kind: str, cents: str, *extra: str) -> str:
    result = invoke(
        db,
        "ledger",
        "record",
        "--event",
        EVENT,
        "--direction",
        direction,
        "--kind",
        kind,
        "--amount-cents",
        cents,
        *LEAD,
        *extra,
    )
    assert result.exit_code == 0, result.output
    return result.stdout.split("Recorded transaction: ")[1].split("\n")[0]


def test_ledger_commands(approved: Path) -> None:
    _record(approved, "CREDIT", "SPONSORSHIP", "500000", "--metadata", '{"tier": "gold"}')
    venue = _record(approved, "DEBIT", "VENUE", "120000")

    result = invoke(approved, "ledger", "balance", "--event", EVENT, "--json", *LEAD)
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["balance_cents"] == 380000

    result = invoke(approved, "ledger", "reverse", "--id", venue, "--reason", "Venue waived the fee")
    assert result.exit_code == 0, result.output
    assert f"Reversed {venue}" in result.stdout

    result = invoke(approved, "ledger", "balance", "--event", EVENT)
    assert "Balance: 500000" in result.stdout

    result = invoke(approved, "ledger", "list", "--event", EVENT, "--json")
    entries = json.loads(result.stdout)
    assert [e["kind"] for e in entries] == ["REVERSAL", "VENUE", "SPONSORSHIP"]
    assert entries[2]["metadata"] == {"tier": "gold"}

    result = invoke(approved, "ledger", "list", "--event", EVENT, "--limit", "1")
    assert "Ledger entries (1):" in result.stdout


def test_ledger_errors(approved: Path) -> None:
    entry = _record(approved, "CREDIT", "TICKETS", "9900")
    invoke(approved, "ledger", "reverse", "--id", entry, "--reason", "Refunded")

    result = invoke(approved, "ledger", "reverse", "--id", entry, "--reason", "Refunded twice")
    assert result.exit_code == 1
    assert "already reversed" in result.output

    result = invoke(
        approved,
        "ledger",
        "record",
        "--event",
        EVENT,
        "--direction",
        "CREDIT",
        "--kind",
        "GRANT",
        "--amount-cents",
        "100",
        "--actor",
        "member-9",
        "--role",
        "ORGANIZER",
    )
    assert result.exit_code == 1

    result = invoke(approved, "ledger", "list", "--event", "evt-empty")
    assert "No ledger entries for event evt-empty" in result.stdout


def test_token_command() -> None:
    result = runner.invoke(app, ["token", "--actor", "admin-1", "--role", "ADMIN", "--name", "Ada"])

    assert result.exit_code == 0, result.output
    session = decode_access_token(result.stdout.strip(), get_settings())
    assert session.actor_id == "admin-1"
    assert session.role == Role.ADMIN


def test_token_refuses_system_role() -> None:
    result = runner.invoke(app, ["token", "--actor", "cron", "--role", "SYSTEM"])

    assert result.exit_code == 1
