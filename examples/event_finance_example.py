#!/usr/bin/env python3
"""
Event Finance Examples - An event budget from request to reimbursement

This example demonstrates:
- Assigning an event team (team lead and a plain member)
- Requesting a budget and partially approving it
- Amending an approved budget
- Logging, reviewing and reimbursing expenses
- Invalidating an attendance record with an audited reason
- Recording and reversing event ledger entries
- Over-budget alerts and replaying the log into a fresh ledger

Run:
    python examples/event_finance_example.py
"""

import json
import tempfile
from pathlib import Path

from eventsync_finance import FinanceLedger
from eventsync_finance.access.models import PermissionKey, PermissionSet
from eventsync_finance.kernel.errors import ReasonTooShort
from eventsync_finance.kernel.session import Role, Session


def print_section(title: str) -> None:
    """Print section header"""
    print(f"\n{'='*70}")
    print(f"  {title}")
    print(f"{'='*70}\n")


def main() -> None:
    admin = Session(actor_id="admin-1", role=Role.ADMIN, name="Ada")
    lead = Session(actor_id="lead-1", role=Role.ORGANIZER, name="Lee")
    volunteer = Session(actor_id="vol-1", role=Role.ORGANIZER, name="Val")
    event_id = "evt-hackathon-2025"

    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "finance.db"
        ledger = FinanceLedger(db_path)

        print_section("1. Event team")
        ledger.assign_team_member(admin, event_id, lead.actor_id, PermissionSet(is_team_lead=True))
        ledger.assign_team_member(
            admin,
            event_id,
            volunteer.actor_id,
            PermissionSet(permissions={PermissionKey.CAN_MANAGE_ATTENDANCE: True}),
        )
        for member in ledger.list_team_members(admin, event_id):
            lead_flag = " (lead)" if member["permission_set"]["is_team_lead"] else ""
            print(f"  {member['user_id']}{lead_flag}")

        print_section("2. Budget request and partial approval")
        budget = ledger.request_budget(
            lead,
            event_id,
            [
                {"name": "Food", "requested_amount": 10000, "justification": "Lunch for 200"},
                {"name": "Travel", "requested_amount": 5000, "justification": "Speaker flights"},
            ],
        )
        print(f"✓ Requested: {budget['total_requested_amount']} [{budget['status']}]")

        budget = ledger.approve_budget(
            admin,
            event_id,
            allocations={"Food": 8000, "Travel": 5000},
            approval_notes="Food trimmed to the confirmed headcount",
        )
        print(f"✓ Allocated: {budget['total_allocated_amount']} [{budget['status']}]")

        print_section("3. Amendment")
        amendment = ledger.request_amendment(
            lead,
            event_id,
            [{"name": "Prizes", "requested_amount": 2000, "justification": "Winner trophies"}],
            "Sponsor asked for a prize ceremony",
        )
        budget = ledger.review_amendment(
            admin,
            event_id,
            amendment["amendment_id"],
            "APPROVED",
            admin_notes="Trophies yes, cash prizes no",
            allocations={"Prizes": 1500},
        )
        print(f"✓ Amendment approved, allocated now {budget['total_allocated_amount']}")

        print_section("4. Expenses")
        pizza = ledger.log_expense(lead, event_id, "Food", "7400", description="Pizza night")
        coffee = ledger.log_expense(
            volunteer, event_id, "Food", "450", description="Coffee", receipt_url=None
        )
        ledger.update_expense_status(admin, pizza["expense_id"], "APPROVED")
        ledger.update_expense_status(
            admin, coffee["expense_id"], "CHANGES_REQUESTED", "Please attach the receipt"
        )
        ledger.resubmit_expense(
            volunteer, coffee["expense_id"], receipt_url="https://receipts.example/coffee.png"
        )
        ledger.update_expense_status(admin, coffee["expense_id"], "APPROVED")

        for group in ledger.pending_reimbursements_by_user(admin):
            print(f"  Owed to {group['user_id']}: {group['total_amount']} ({group['bill_count']} bill(s))")
        ledger.update_expense_status(admin, pizza["expense_id"], "REIMBURSED")

        stats = ledger.get_budget(lead, event_id)["stats"]
        print(f"  Spent {stats['total_spent']} of {stats['total_allocated']} ({stats['utilization']}%)")

        print_section("5. Audit")
        try:
            ledger.invalidate_attendance(volunteer, "att-42", "dup", event_id=event_id)
        except ReasonTooShort as e:
            print(f"✗ Refused: {e}")
        entry = ledger.invalidate_attendance(
            volunteer, "att-42", "Scanned twice from two devices", event_id=event_id
        )
        print(f"✓ {entry['action_type']} [{entry['severity']}] by {entry['actor_name']}")

        print_section("6. Event ledger")
        sponsor = ledger.record_transaction(
            lead, event_id, "CREDIT", "SPONSORSHIP", 2500000, note="Gold sponsor"
        )
        ledger.record_transaction(lead, event_id, "DEBIT", "VENUE", 800000)
        ledger.reverse_transaction(admin, sponsor["transaction_id"], "Sponsor cheque bounced")
        balance = ledger.get_event_balance(lead, event_id)
        print(
            f"  Credits {balance['credits_cents']}, debits {balance['debits_cents']},"
            f" balance {balance['balance_cents']} {balance['currency']} cents"
        )

        print_section("7. Reports")
        for alert in ledger.over_budget_alerts(admin):
            print(f"  [{alert['severity']}] {alert['message']}")
        print(ledger.export_csv(admin, "category-wise"))

        print_section("8. Replay")
        rebuilt = FinanceLedger(db_path)
        same = json.dumps(rebuilt.get_budget(admin, event_id), sort_keys=True, default=str) == json.dumps(
            ledger.get_budget(admin, event_id), sort_keys=True, default=str
        )
        print(f"  Events in log: {rebuilt.health()['events']}")
        print(f"  Rebuilt budget identical: {same}")


if __name__ == "__main__":
    main()
