"""
EventSync Finance CLI

Command-line interface for the finance ledger: budgets, amendments,
expenses, reimbursements, event ledgers, reports, audit actions and team
access.

Usage:
    eventsync-finance init --db finance.db
    eventsync-finance team assign --event evt-1 --user lead-1 --lead
    eventsync-finance budget request --event evt-1 --actor lead-1 --role ORGANIZER \\
        --categories '[{"name": "Food", "requested_amount": 10000, "justification": "Lunch"}]'
    eventsync-finance budget approve --event evt-1 --allocations '{"Food": 8000}' --notes "Trimmed"
    eventsync-finance expense log --event evt-1 --category Food --amount 3000
    eventsync-finance ledger record --event evt-1 --direction CREDIT --kind SPONSORSHIP --amount-cents 2500000
    eventsync-finance reimbursements
    eventsync-finance serve --port 8080
"""

import json
from contextlib import contextmanager
from datetime import timedelta
from pathlib import Path
from typing import Iterator, Optional

import typer
from typing_extensions import Annotated

from eventsync_finance.access.gate import PermissionGate
from eventsync_finance.access.models import PermissionKey, PermissionSet
from eventsync_finance.kernel.errors import FinanceError
from eventsync_finance.kernel.logging import configure_logging
from eventsync_finance.kernel.session import Role, Session
from eventsync_finance.kernel.settings import get_settings
from eventsync_finance.ledger import FinanceLedger
from eventsync_finance.reports.aggregates import ExportType, parse_range_bound
from eventsync_finance.transactions.models import DEFAULT_CURRENCY, Direction

# Logs go to stderr so --json output on stdout stays parseable
configure_logging()

app = typer.Typer(
    name="eventsync-finance",
    help="EventSync Finance - budgets, expenses and audit for event teams",
    add_completion=False,
)

# Sub-apps
budget_app = typer.Typer(help="Budget lifecycle commands")
amendment_app = typer.Typer(help="Budget amendment commands")
expense_app = typer.Typer(help="Expense lifecycle commands")
report_app = typer.Typer(help="Finance reports")
audit_app = typer.Typer(help="Audit log commands")
team_app = typer.Typer(help="Event team access commands")
ledger_app = typer.Typer(help="Per-event transaction ledger commands")

app.add_typer(budget_app, name="budget")
app.add_typer(amendment_app, name="amendment")
app.add_typer(expense_app, name="expense")
app.add_typer(report_app, name="report")
app.add_typer(audit_app, name="audit")
app.add_typer(team_app, name="team")
app.add_typer(ledger_app, name="ledger")

# Shared option types
DbOption = Annotated[Optional[Path], typer.Option("--db", help="Database path")]
ActorOption = Annotated[str, typer.Option("--actor", help="Acting user id")]
RoleOption = Annotated[Role, typer.Option("--role", help="Acting user's role")]
JsonOption = Annotated[bool, typer.Option("--json", help="Output as JSON")]


def get_ledger(db_path: Optional[Path] = None) -> FinanceLedger:
    """Get ledger instance"""
    db = db_path or get_settings().db_path
    if not db.exists():
        typer.echo(f"Error: Database not found: {db}", err=True)
        typer.echo(f"Run 'eventsync-finance init --db {db}' to initialize", err=True)
        raise typer.Exit(1)
    return FinanceLedger(db)


@contextmanager
def finance_errors() -> Iterator[None]:
    """Turn ledger errors into a one-line message and exit code 1"""
    try:
        yield
    except FinanceError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e


def echo_json(data: object) -> None:
    typer.echo(json.dumps(data, indent=2, default=str))


# Initialization and serving


@app.command()
def init(
    db: Annotated[Path, typer.Option(help="Database path")] = Path(".eventsync-finance.db"),
) -> None:
    """Initialize a new finance database"""
    if db.exists():
        typer.echo(f"Error: Database already exists: {db}", err=True)
        raise typer.Exit(1)

    FinanceLedger(db)
    typer.echo(f"✓ Initialized finance database: {db}")


@app.command()
def serve(
    host: Annotated[Optional[str], typer.Option("--host", help="Bind address")] = None,
    port: Annotated[Optional[int], typer.Option("--port", help="HTTP port")] = None,
    metrics_port: Annotated[
        Optional[int], typer.Option("--metrics-port", help="Prometheus /metrics port")
    ] = None,
    db: DbOption = None,
) -> None:
    """Run the REST API"""
    from eventsync_finance.api import create_app
    from eventsync_finance.kernel.metrics import start_metrics_server

    settings = get_settings()
    ledger = get_ledger(db)
    metrics_port = metrics_port or settings.metrics_port
    if metrics_port:
        start_metrics_server(metrics_port)
        typer.echo(f"✓ Metrics on :{metrics_port}/metrics")

    flask_app = create_app(ledger, settings)
    flask_app.run(host=host or settings.api_host, port=port or settings.api_port)


@app.command()
def token(
    actor_id: Annotated[str, typer.Option("--actor", help="User id (token subject)")],
    role: Annotated[Role, typer.Option("--role", help="ADMIN or ORGANIZER")] = Role.ORGANIZER,
    name: Annotated[Optional[str], typer.Option("--name", help="Display name")] = None,
    expires_minutes: Annotated[
        Optional[int], typer.Option("--expires-minutes", help="Token lifetime")
    ] = None,
) -> None:
    """Mint a bearer token for the REST API"""
    from eventsync_finance.api.auth import create_access_token

    if role == Role.SYSTEM:
        typer.echo("Error: SYSTEM tokens cannot be issued", err=True)
        raise typer.Exit(1)
    session = Session(actor_id=actor_id, role=role, name=name)
    delta = timedelta(minutes=expires_minutes) if expires_minutes else None
    typer.echo(create_access_token(session, get_settings(), delta))


# Budget commands


@budget_app.command("request")
def budget_request(
    event_id: Annotated[str, typer.Option("--event", help="Event ID")],
    categories: Annotated[
        str,
        typer.Option("--categories", help="Categories (JSON array of {name, requested_amount, justification})"),
    ],
    actor_id: ActorOption = "system",
    role: RoleOption = Role.SYSTEM,
    db: DbOption = None,
) -> None:
    """Request (or re-request) the budget for an event"""
    ledger = get_ledger(db)
    with finance_errors():
        budget = ledger.request_budget(
            Session(actor_id=actor_id, role=role), event_id, json.loads(categories)
        )

    typer.echo(f"✓ Requested budget: {budget['budget_id']}")
    typer.echo(f"  Event: {budget['event_id']}")
    typer.echo(f"  Status: {budget['status']}")
    typer.echo(f"  Requested: {budget['total_requested_amount']}")


@budget_app.command("approve")
def budget_approve(
    event_id: Annotated[str, typer.Option("--event", help="Event ID")],
    notes: Annotated[str, typer.Option("--notes", help="Approval notes")],
    allocations: Annotated[
        Optional[str],
        typer.Option("--allocations", help='Allocations (JSON object {"Food": 8000})'),
    ] = None,
    status: Annotated[
        Optional[str],
        typer.Option("--status", help="APPROVED, PARTIALLY_APPROVED or REJECTED (derived if omitted)"),
    ] = None,
    actor_id: ActorOption = "system",
    role: RoleOption = Role.SYSTEM,
    db: DbOption = None,
) -> None:
    """Decide a requested budget"""
    ledger = get_ledger(db)
    with finance_errors():
        budget = ledger.approve_budget(
            Session(actor_id=actor_id, role=role),
            event_id,
            status=status,
            allocations=json.loads(allocations) if allocations else None,
            approval_notes=notes,
        )

    typer.echo(f"✓ Budget {budget['status']}: {budget['budget_id']}")
    typer.echo(f"  Requested: {budget['total_requested_amount']}")
    typer.echo(f"  Allocated: {budget['total_allocated_amount']}")


@budget_app.command("close")
def budget_close(
    event_id: Annotated[str, typer.Option("--event", help="Event ID")],
    reason: Annotated[Optional[str], typer.Option("--reason", help="Reason for closing")] = None,
    actor_id: ActorOption = "system",
    role: RoleOption = Role.SYSTEM,
    db: DbOption = None,
) -> None:
    """Close an approved budget"""
    ledger = get_ledger(db)
    with finance_errors():
        budget = ledger.close_budget(Session(actor_id=actor_id, role=role), event_id, reason)

    typer.echo(f"✓ Closed budget: {budget['budget_id']}")
    typer.echo(f"  Status: {budget['status']}")


@budget_app.command("show")
def budget_show(
    event_id: Annotated[str, typer.Option("--event", help="Event ID")],
    actor_id: ActorOption = "system",
    role: RoleOption = Role.SYSTEM,
    db: DbOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show budget details with spend stats"""
    ledger = get_ledger(db)
    with finance_errors():
        budget = ledger.get_budget(Session(actor_id=actor_id, role=role), event_id)

    if json_output:
        echo_json(budget)
        return

    stats = budget["stats"]
    typer.echo(f"\nBudget: {budget['budget_id']}")
    typer.echo(f"  Event: {budget['event_id']}")
    typer.echo(f"  Status: {budget['status']}")
    typer.echo(f"  Requested: {budget['total_requested_amount']}")
    typer.echo(f"  Allocated: {stats['total_allocated']}")
    typer.echo(f"  Spent: {stats['total_spent']}")
    typer.echo(f"  Remaining: {stats['remaining']}")
    typer.echo(f"  Utilization: {stats['utilization']:.1f}%")

    typer.echo(f"\n  Categories ({len(budget['categories'])}):")
    for category in budget["categories"]:
        typer.echo(
            f"    {category['name']}: requested {category['requested_amount']}, "
            f"allocated {category['allocated_amount']}"
        )

    pending = [a for a in budget["amendments"] if a["status"] == "PENDING"]
    if pending:
        typer.echo(f"\n  Pending amendments: {len(pending)}")


@budget_app.command("history")
def budget_history(
    event_id: Annotated[str, typer.Option("--event", help="Event ID")],
    actor_id: ActorOption = "system",
    role: RoleOption = Role.SYSTEM,
    db: DbOption = None,
) -> None:
    """Show the budget's history trail"""
    ledger = get_ledger(db)
    with finance_errors():
        history = ledger.get_budget_history(Session(actor_id=actor_id, role=role), event_id)

    typer.echo(f"History for {event_id} ({len(history)} entries):")
    for entry in history:
        transition = (
            f"{entry.previous_status.value} → {entry.new_status.value}"
            if entry.previous_status and entry.new_status
            else ""
        )
        typer.echo(f"  {entry.timestamp.isoformat()} {entry.action.value} by {entry.performed_by} {transition}")
        if entry.note:
            typer.echo(f"    {entry.note}")


@budget_app.command("list")
def budget_list(
    status: Annotated[
        Optional[str],
        typer.Option("--status", help="Filter by status"),
    ] = None,
    actor_id: ActorOption = "system",
    role: RoleOption = Role.SYSTEM,
    db: DbOption = None,
) -> None:
    """List budgets"""
    ledger = get_ledger(db)
    with finance_errors():
        budgets = ledger.list_budgets(Session(actor_id=actor_id, role=role), status)

    if not budgets:
        typer.echo(f"No budgets{f' with status {status}' if status else ''}")
        return

    typer.echo(f"Budgets ({len(budgets)}):")
    for budget in budgets:
        typer.echo(
            f"  {budget['event_id']}: [{budget['status']}] "
            f"requested {budget['total_requested_amount']}, allocated {budget['total_allocated_amount']}"
        )


# Amendment commands


@amendment_app.command("request")
def amendment_request(
    event_id: Annotated[str, typer.Option("--event", help="Event ID")],
    categories: Annotated[str, typer.Option("--categories", help="Requested categories (JSON array)")],
    reason: Annotated[str, typer.Option("--reason", help="Why the budget must change")],
    actor_id: ActorOption = "system",
    role: RoleOption = Role.SYSTEM,
    db: DbOption = None,
) -> None:
    """Request an amendment to an approved budget"""
    ledger = get_ledger(db)
    with finance_errors():
        amendment = ledger.request_amendment(
            Session(actor_id=actor_id, role=role), event_id, json.loads(categories), reason
        )

    typer.echo(f"✓ Requested amendment: {amendment['amendment_id']}")
    typer.echo(f"  Status: {amendment['status']}")


@amendment_app.command("review")
def amendment_review(
    event_id: Annotated[str, typer.Option("--event", help="Event ID")],
    amendment_id: Annotated[str, typer.Option("--id", help="Amendment ID")],
    status: Annotated[str, typer.Option("--status", help="APPROVED or REJECTED")],
    notes: Annotated[str, typer.Option("--notes", help="Admin notes")],
    allocations: Annotated[
        Optional[str], typer.Option("--allocations", help="Allocations (JSON object)")
    ] = None,
    actor_id: ActorOption = "system",
    role: RoleOption = Role.SYSTEM,
    db: DbOption = None,
) -> None:
    """Approve or reject a pending amendment"""
    ledger = get_ledger(db)
    with finance_errors():
        budget = ledger.review_amendment(
            Session(actor_id=actor_id, role=role),
            event_id,
            amendment_id,
            status,
            admin_notes=notes,
            allocations=json.loads(allocations) if allocations else None,
        )

    typer.echo(f"✓ Amendment {status.upper()}: {amendment_id}")
    typer.echo(f"  Allocated: {budget['total_allocated_amount']}")


@amendment_app.command("pending")
def amendment_pending(
    actor_id: ActorOption = "system",
    role: RoleOption = Role.SYSTEM,
    db: DbOption = None,
) -> None:
    """List amendments awaiting review"""
    ledger = get_ledger(db)
    with finance_errors():
        amendments = ledger.list_pending_amendments(Session(actor_id=actor_id, role=role))

    if not amendments:
        typer.echo("No pending amendments")
        return

    typer.echo(f"Pending amendments ({len(amendments)}):")
    for amendment in amendments:
        typer.echo(
            f"  {amendment['amendment_id']} [{amendment['event_id']}] by "
            f"{amendment['requested_by']}: {amendment['reason']}"
        )


# Expense commands


@expense_app.command("log")
def expense_log(
    event_id: Annotated[str, typer.Option("--event", help="Event ID")],
    category: Annotated[str, typer.Option("--category", help="Budget category")],
    amount: Annotated[str, typer.Option("--amount", help="Amount spent")],
    expense_type: Annotated[
        str, typer.Option("--type", help="PERSONAL_SPEND or ADMIN_PAID")
    ] = "PERSONAL_SPEND",
    description: Annotated[str, typer.Option("--description", help="What was bought")] = "",
    receipt_url: Annotated[Optional[str], typer.Option("--receipt", help="Receipt URL")] = None,
    incurred_by: Annotated[
        Optional[str], typer.Option("--incurred-by", help="Payee (defaults to actor)")
    ] = None,
    actor_id: ActorOption = "system",
    role: RoleOption = Role.SYSTEM,
    db: DbOption = None,
) -> None:
    """Log an expense against an approved budget"""
    ledger = get_ledger(db)
    with finance_errors():
        expense = ledger.log_expense(
            Session(actor_id=actor_id, role=role),
            event_id,
            category,
            amount,
            expense_type=expense_type,
            description=description,
            receipt_url=receipt_url,
            incurred_by=incurred_by,
        )

    typer.echo(f"✓ Logged expense: {expense['expense_id']}")
    typer.echo(f"  {expense['category']}: {expense['amount']} [{expense['type']}]")
    typer.echo(f"  Status: {expense['status']}")


@expense_app.command("status")
def expense_status(
    expense_id: Annotated[str, typer.Option("--id", help="Expense ID")],
    status: Annotated[
        str, typer.Option("--status", help="APPROVED, CHANGES_REQUESTED, REJECTED or REIMBURSED")
    ],
    notes: Annotated[Optional[str], typer.Option("--notes", help="Admin notes")] = None,
    actor_id: ActorOption = "system",
    role: RoleOption = Role.SYSTEM,
    db: DbOption = None,
) -> None:
    """Update an expense's status"""
    ledger = get_ledger(db)
    with finance_errors():
        expense = ledger.update_expense_status(
            Session(actor_id=actor_id, role=role), expense_id, status, notes
        )

    typer.echo(f"✓ Expense {expense['status']}: {expense_id}")


@expense_app.command("resubmit")
def expense_resubmit(
    expense_id: Annotated[str, typer.Option("--id", help="Expense ID")],
    category: Annotated[Optional[str], typer.Option("--category", help="Corrected category")] = None,
    amount: Annotated[Optional[str], typer.Option("--amount", help="Corrected amount")] = None,
    description: Annotated[
        Optional[str], typer.Option("--description", help="Corrected description")
    ] = None,
    receipt_url: Annotated[Optional[str], typer.Option("--receipt", help="Corrected receipt URL")] = None,
    actor_id: ActorOption = "system",
    role: RoleOption = Role.SYSTEM,
    db: DbOption = None,
) -> None:
    """Resubmit an expense after changes were requested"""
    ledger = get_ledger(db)
    with finance_errors():
        expense = ledger.resubmit_expense(
            Session(actor_id=actor_id, role=role),
            expense_id,
            category=category,
            amount=amount,
            description=description,
            receipt_url=receipt_url,
        )

    typer.echo(f"✓ Resubmitted expense: {expense_id}")
    typer.echo(f"  Status: {expense['status']}")


@expense_app.command("bulk")
def expense_bulk(
    ids: Annotated[str, typer.Option("--ids", help="Comma-separated expense IDs")],
    status: Annotated[str, typer.Option("--status", help="Target status")],
    notes: Annotated[Optional[str], typer.Option("--notes", help="Admin notes")] = None,
    actor_id: ActorOption = "system",
    role: RoleOption = Role.SYSTEM,
    db: DbOption = None,
) -> None:
    """Apply one status to many expenses (best-effort)"""
    ledger = get_ledger(db)
    expense_ids = [i.strip() for i in ids.split(",") if i.strip()]
    with finance_errors():
        result = ledger.bulk_update_expenses(
            Session(actor_id=actor_id, role=role), expense_ids, status, notes
        )

    typer.echo(f"✓ Updated {len(result['updated'])} expense(s)")
    for failure in result["failed"]:
        typer.echo(f"  ✗ {failure['expense_id']}: {failure['message']}")


@expense_app.command("list")
def expense_list(
    event_id: Annotated[str, typer.Option("--event", help="Event ID")],
    actor_id: ActorOption = "system",
    role: RoleOption = Role.SYSTEM,
    db: DbOption = None,
    json_output: JsonOption = False,
) -> None:
    """List expenses for an event"""
    ledger = get_ledger(db)
    with finance_errors():
        expenses = ledger.list_expenses(Session(actor_id=actor_id, role=role), event_id)

    if json_output:
        echo_json(expenses)
        return

    if not expenses:
        typer.echo(f"No expenses for event {event_id}")
        return

    typer.echo(f"Expenses ({len(expenses)}):")
    for expense in expenses:
        typer.echo(
            f"  {expense['expense_id']}: {expense['category']} {expense['amount']} "
            f"[{expense['status']}] by {expense['incurred_by']}"
        )


@expense_app.command("pending")
def expense_pending(
    actor_id: ActorOption = "system",
    role: RoleOption = Role.SYSTEM,
    db: DbOption = None,
) -> None:
    """List expenses awaiting review"""
    ledger = get_ledger(db)
    with finance_errors():
        expenses = ledger.list_pending_expenses(Session(actor_id=actor_id, role=role))

    if not expenses:
        typer.echo("No pending expenses")
        return

    typer.echo(f"Pending expenses ({len(expenses)}):")
    for expense in expenses:
        typer.echo(
            f"  {expense['expense_id']} [{expense['event_id']}] {expense['category']} {expense['amount']}"
        )


@app.command()
def reimbursements(
    actor_id: ActorOption = "system",
    role: RoleOption = Role.SYSTEM,
    db: DbOption = None,
    json_output: JsonOption = False,
) -> None:
    """Approved personal spend awaiting payout, per payee"""
    ledger = get_ledger(db)
    with finance_errors():
        groups = ledger.pending_reimbursements_by_user(Session(actor_id=actor_id, role=role))

    if json_output:
        echo_json(groups)
        return

    if not groups:
        typer.echo("No pending reimbursements")
        return

    typer.echo(f"Pending reimbursements ({len(groups)} payee(s)):")
    for group in groups:
        typer.echo(f"  {group['user_id']}: {group['total_amount']} across {group['bill_count']} bill(s)")


# Reports


StartOption = Annotated[Optional[str], typer.Option("--start", help="ISO start date")]
EndOption = Annotated[Optional[str], typer.Option("--end", help="ISO end date")]


@report_app.command("event-wise")
def report_event_wise(
    start: StartOption = None,
    end: EndOption = None,
    actor_id: ActorOption = "system",
    role: RoleOption = Role.SYSTEM,
    db: DbOption = None,
) -> None:
    """Per-event requested, allocated and spent"""
    ledger = get_ledger(db)
    with finance_errors():
        rows = ledger.event_wise_report(
            Session(actor_id=actor_id, role=role),
            parse_range_bound(start),
            parse_range_bound(end, end=True),
        )
    echo_json(rows)


@report_app.command("category-wise")
def report_category_wise(
    start: StartOption = None,
    end: EndOption = None,
    actor_id: ActorOption = "system",
    role: RoleOption = Role.SYSTEM,
    db: DbOption = None,
) -> None:
    """Per-category allocation and spend across events"""
    ledger = get_ledger(db)
    with finance_errors():
        rows = ledger.category_wise_report(
            Session(actor_id=actor_id, role=role),
            parse_range_bound(start),
            parse_range_bound(end, end=True),
        )
    echo_json(rows)


@report_app.command("over-budget")
def report_over_budget(
    actor_id: ActorOption = "system",
    role: RoleOption = Role.SYSTEM,
    db: DbOption = None,
) -> None:
    """Over-budget and near-limit alerts"""
    ledger = get_ledger(db)
    with finance_errors():
        alerts = ledger.over_budget_alerts(Session(actor_id=actor_id, role=role))

    if not alerts:
        typer.echo("No alerts")
        return

    for alert in alerts:
        typer.echo(f"  [{alert['severity']}] {alert['type']}: {alert['message']}")


@report_app.command("export")
def report_export(
    export_type: Annotated[
        ExportType, typer.Option("--type", help="event-wise, category-wise or expenses")
    ] = ExportType.EXPENSES,
    output: Annotated[Optional[Path], typer.Option("--output", help="Write CSV to file")] = None,
    start: StartOption = None,
    end: EndOption = None,
    actor_id: ActorOption = "system",
    role: RoleOption = Role.SYSTEM,
    db: DbOption = None,
) -> None:
    """Export a report as CSV"""
    ledger = get_ledger(db)
    with finance_errors():
        text = ledger.export_csv(
            Session(actor_id=actor_id, role=role),
            export_type,
            parse_range_bound(start),
            parse_range_bound(end, end=True),
        )

    if output:
        output.write_text(text)
        typer.echo(f"✓ Exported {export_type.value} to {output}")
    else:
        typer.echo(text, nl=False)


# Audit commands


@audit_app.command("invalidate-attendance")
def audit_invalidate_attendance(
    attendance_id: Annotated[str, typer.Option("--id", help="Attendance record ID")],
    reason: Annotated[str, typer.Option("--reason", help="Reason (at least 10 characters)")],
    event_id: Annotated[Optional[str], typer.Option("--event", help="Event ID")] = None,
    actor_id: ActorOption = "system",
    role: RoleOption = Role.SYSTEM,
    db: DbOption = None,
) -> None:
    """Invalidate an attendance record"""
    ledger = get_ledger(db)
    with finance_errors():
        entry = ledger.invalidate_attendance(
            Session(actor_id=actor_id, role=role), attendance_id, reason, event_id=event_id
        )

    typer.echo(f"✓ Invalidated attendance: {attendance_id}")
    typer.echo(f"  Audit entry: {entry['audit_id']} [{entry['severity']}]")


@audit_app.command("revoke-certificate")
def audit_revoke_certificate(
    certificate_id: Annotated[str, typer.Option("--id", help="Certificate ID")],
    reason: Annotated[str, typer.Option("--reason", help="Reason (at least 10 characters)")],
    event_id: Annotated[Optional[str], typer.Option("--event", help="Event ID")] = None,
    actor_id: ActorOption = "system",
    role: RoleOption = Role.SYSTEM,
    db: DbOption = None,
) -> None:
    """Revoke a certificate"""
    ledger = get_ledger(db)
    with finance_errors():
        entry = ledger.revoke_certificate(
            Session(actor_id=actor_id, role=role), certificate_id, reason, event_id=event_id
        )

    typer.echo(f"✓ Revoked certificate: {certificate_id}")
    typer.echo(f"  Audit entry: {entry['audit_id']} [{entry['severity']}]")


@audit_app.command("trail")
def audit_trail(
    entity_type: Annotated[str, typer.Option("--entity-type", help="ATTENDANCE, CERTIFICATE, ...")],
    entity_id: Annotated[str, typer.Option("--entity-id", help="Entity ID")],
    actor_id: ActorOption = "system",
    role: RoleOption = Role.SYSTEM,
    db: DbOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show the audit trail of one entity"""
    ledger = get_ledger(db)
    with finance_errors():
        entries = ledger.get_audit_trail(
            Session(actor_id=actor_id, role=role), entity_type.upper(), entity_id
        )

    if json_output:
        echo_json(entries)
        return

    if not entries:
        typer.echo(f"No audit entries for {entity_type.upper()} {entity_id}")
        return

    for entry in entries:
        typer.echo(
            f"  {entry['created_at']} {entry['action_type']} [{entry['severity']}] "
            f"by {entry['actor_id']}: {entry['reason']}"
        )


# Team commands


@team_app.command("assign")
def team_assign(
    event_id: Annotated[str, typer.Option("--event", help="Event ID")],
    user_id: Annotated[str, typer.Option("--user", help="User to assign")],
    lead: Annotated[bool, typer.Option("--lead", help="Make the user team lead")] = False,
    permissions: Annotated[
        Optional[str],
        typer.Option("--permissions", help='Permission flags (JSON object {"can_manage_attendance": true})'),
    ] = None,
    actor_id: ActorOption = "system",
    role: RoleOption = Role.SYSTEM,
    db: DbOption = None,
) -> None:
    """Assign a user to an event team"""
    ledger = get_ledger(db)
    flags = json.loads(permissions) if permissions else {}
    permission_set = PermissionSet(
        is_team_lead=lead,
        permissions={k: v for k, v in flags.items() if k in {p.value for p in PermissionKey}},
        can_manage_team=bool(flags.get("can_manage_team", False)),
        can_manage_speakers=bool(flags.get("can_manage_speakers", False)),
        can_view_logs=bool(flags.get("can_view_logs", False)),
    )
    with finance_errors():
        ledger.assign_team_member(
            Session(actor_id=actor_id, role=role), event_id, user_id, permission_set
        )

    typer.echo(f"✓ Assigned {user_id} to {event_id}{' as team lead' if lead else ''}")


@team_app.command("remove")
def team_remove(
    event_id: Annotated[str, typer.Option("--event", help="Event ID")],
    user_id: Annotated[str, typer.Option("--user", help="User to remove")],
    actor_id: ActorOption = "system",
    role: RoleOption = Role.SYSTEM,
    db: DbOption = None,
) -> None:
    """Remove a user from an event team"""
    ledger = get_ledger(db)
    with finance_errors():
        ledger.remove_team_member(Session(actor_id=actor_id, role=role), event_id, user_id)

    typer.echo(f"✓ Removed {user_id} from {event_id}")


@team_app.command("check")
def team_check(
    event_id: Annotated[str, typer.Option("--event", help="Event ID")],
    user_id: Annotated[str, typer.Option("--user", help="User to check")],
    permission: Annotated[
        list[PermissionKey],
        typer.Option("--permission", help="Permission key (repeatable)"),
    ],
    db: DbOption = None,
) -> None:
    """Check permissions through the cached permission gate"""
    ledger = get_ledger(db)
    gate = PermissionGate(ledger.permission_loader(), user_id)
    gate.select_event(event_id)

    if gate.load_error:
        typer.echo(f"  (permissions unavailable: {gate.load_error})")
    for key in permission:
        verdict = "✓ allowed" if gate.has_permission(key) else "✗ denied"
        typer.echo(f"  {key.value}: {verdict}")


# Event ledger


@ledger_app.command("record")
def ledger_record(
    event_id: Annotated[str, typer.Option("--event", help="Event ID")],
    direction: Annotated[Direction, typer.Option("--direction", help="CREDIT (in) or DEBIT (out)")],
    kind: Annotated[str, typer.Option("--kind", help="e.g. SPONSORSHIP, VENUE, CATERING")],
    amount_cents: Annotated[int, typer.Option("--amount-cents", min=1, help="Whole cents")],
    currency: Annotated[str, typer.Option("--currency", help="Currency code")] = DEFAULT_CURRENCY,
    note: Annotated[Optional[str], typer.Option("--note", help="Free-form note")] = None,
    reason: Annotated[Optional[str], typer.Option("--reason", help="Why it was recorded")] = None,
    metadata: Annotated[
        Optional[str], typer.Option("--metadata", help='JSON object, e.g. {"invoice": "INV-7"}')
    ] = None,
    actor_id: ActorOption = "system",
    role: RoleOption = Role.SYSTEM,
    db: DbOption = None,
) -> None:
    """Record money in or out of an event's ledger"""
    ledger = get_ledger(db)
    with finance_errors():
        transaction = ledger.record_transaction(
            Session(actor_id=actor_id, role=role),
            event_id,
            direction,
            kind,
            amount_cents,
            currency=currency,
            note=note,
            reason=reason,
            metadata=json.loads(metadata) if metadata else None,
        )

    typer.echo(f"✓ Recorded transaction: {transaction['transaction_id']}")
    typer.echo(
        f"  {transaction['direction']} {transaction['amount_cents']} {transaction['currency']}"
        f" [{transaction['kind']}]"
    )


@ledger_app.command("reverse")
def ledger_reverse(
    transaction_id: Annotated[str, typer.Option("--id", help="Transaction to reverse")],
    reason: Annotated[str, typer.Option("--reason", help="Why it is reversed")],
    actor_id: ActorOption = "system",
    role: RoleOption = Role.SYSTEM,
    db: DbOption = None,
) -> None:
    """Undo a transaction with an opposite-direction REVERSAL"""
    ledger = get_ledger(db)
    with finance_errors():
        reversal = ledger.reverse_transaction(
            Session(actor_id=actor_id, role=role), transaction_id, reason
        )

    typer.echo(f"✓ Reversed {transaction_id}: {reversal['transaction_id']}")
    typer.echo(f"  {reversal['direction']} {reversal['amount_cents']} {reversal['currency']}")


@ledger_app.command("balance")
def ledger_balance(
    event_id: Annotated[str, typer.Option("--event", help="Event ID")],
    currency: Annotated[str, typer.Option("--currency", help="Currency code")] = DEFAULT_CURRENCY,
    actor_id: ActorOption = "system",
    role: RoleOption = Role.SYSTEM,
    db: DbOption = None,
    json_output: JsonOption = False,
) -> None:
    """Credits, debits and balance of an event in one currency"""
    ledger = get_ledger(db)
    with finance_errors():
        balance = ledger.get_event_balance(Session(actor_id=actor_id, role=role), event_id, currency)

    if json_output:
        echo_json(balance)
        return

    typer.echo(f"Ledger balance for {event_id} ({balance['currency']}):")
    typer.echo(f"  Credits: {balance['credits_cents']}")
    typer.echo(f"  Debits:  {balance['debits_cents']}")
    typer.echo(f"  Balance: {balance['balance_cents']}")


@ledger_app.command("list")
def ledger_list(
    event_id: Annotated[str, typer.Option("--event", help="Event ID")],
    limit: Annotated[int, typer.Option("--limit", min=1, help="Newest N entries")] = 50,
    actor_id: ActorOption = "system",
    role: RoleOption = Role.SYSTEM,
    db: DbOption = None,
    json_output: JsonOption = False,
) -> None:
    """List an event's ledger entries, newest first"""
    ledger = get_ledger(db)
    with finance_errors():
        transactions = ledger.list_transactions(
            Session(actor_id=actor_id, role=role), event_id, limit
        )

    if json_output:
        echo_json(transactions)
        return

    if not transactions:
        typer.echo(f"No ledger entries for event {event_id}")
        return

    typer.echo(f"Ledger entries ({len(transactions)}):")
    for tx in transactions:
        typer.echo(
            f"  {tx['transaction_id']}: {tx['direction']} {tx['amount_cents']} "
            f"{tx['currency']} [{tx['kind']}]"
        )


def main() -> None:
    """Main entry point"""
    app()


if __name__ == "__main__":
    main()
