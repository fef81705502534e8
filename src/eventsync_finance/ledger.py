"""
FinanceLedger - Main façade class

This is the primary interface to EventSync Finance. It hides event sourcing,
projections and command handling behind plain methods, and it is where every
operation is authorized against the caller's Session.

Example:
    >>> from eventsync_finance import FinanceLedger
    >>> from eventsync_finance.kernel.session import Role, Session
    >>> ledger = FinanceLedger("finance.db")
    >>> admin = Session(actor_id="admin-1", role=Role.ADMIN)
    >>> ledger.assign_team_member(admin, "evt-42", "lead-1", PermissionSet(is_team_lead=True))
    >>> lead = Session(actor_id="lead-1", role=Role.ORGANIZER)
    >>> ledger.request_budget(lead, "evt-42", [{"name": "Food", "requested_amount": 10000,
    ...                                         "justification": "Lunch"}])
    >>> ledger.approve_budget(admin, "evt-42", allocations={"Food": 8000}, approval_notes="Trimmed")
"""

import copy
import functools
import threading
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Iterable, TypeVar

from eventsync_finance.access.commands import AssignTeamMember, RemoveTeamMember
from eventsync_finance.access.handlers import TeamCommandHandlers
from eventsync_finance.access.models import PermissionKey, PermissionSet
from eventsync_finance.access.projections import TeamAccessRegistry
from eventsync_finance.audit.commands import (
    InvalidateAttendance,
    RecordAuditEntry,
    RevokeCertificate,
)
from eventsync_finance.audit.handlers import AuditCommandHandlers
from eventsync_finance.audit.models import ActorType, EntityType, Severity
from eventsync_finance.audit.projections import AuditTrail
from eventsync_finance.budget.commands import (
    AllocationSpec,
    ApproveBudget,
    CategoryRequestSpec,
    CloseBudget,
    RequestAmendment,
    RequestBudget,
    ReviewAmendment,
)
from eventsync_finance.budget.handlers import BudgetCommandHandlers
from eventsync_finance.budget.models import AmendmentStatus, BudgetHistory, BudgetStatus
from eventsync_finance.budget.projections import BudgetRegistry
from eventsync_finance.expense.commands import (
    BulkUpdateExpenses,
    LogExpense,
    ResubmitExpense,
    UpdateExpenseStatus,
)
from eventsync_finance.expense.handlers import ExpenseCommandHandlers, target_status
from eventsync_finance.expense.models import ExpenseStatus, ExpenseType
from eventsync_finance.expense.projections import ExpenseRegistry
from eventsync_finance.kernel.bus import InProcessBus
from eventsync_finance.kernel.errors import (
    AmendmentNotFound,
    BudgetNotFound,
    ExpenseNotFound,
    FinanceError,
    PermissionDenied,
    TransactionNotFound,
)
from eventsync_finance.kernel.event_store import SQLiteEventStore
from eventsync_finance.kernel.events import Event, StreamType
from eventsync_finance.kernel.ids import generate_id
from eventsync_finance.kernel.logging import LogOperation, get_logger
from eventsync_finance.kernel.metrics import (
    audit_entries_total,
    budget_utilization_ratio,
    budget_allocated_amount,
    budget_decisions_total,
    expense_transitions_total,
    ledger_transactions_total,
    reimbursed_amount_total,
    track_command_duration,
)
from eventsync_finance.kernel.policy import FinancePolicy
from eventsync_finance.kernel.session import Role, Session
from eventsync_finance.kernel.time import RealTimeProvider, TimeProvider
from eventsync_finance.reports.aggregates import (
    ExportType,
    category_wise_report,
    event_wise_report,
    export_csv,
    over_budget_alerts,
    utilization_percent,
)
from eventsync_finance.transactions.commands import RecordTransaction, ReverseTransaction
from eventsync_finance.transactions.handlers import TransactionCommandHandlers
from eventsync_finance.transactions.models import (
    DEFAULT_CURRENCY,
    FINANCE_TX_CREATED,
    FINANCE_TX_REVERSED,
    Direction,
)
from eventsync_finance.transactions.projections import TransactionBook

logger = get_logger(__name__)

CategoryInput = CategoryRequestSpec | dict[str, Any]
AllocationInput = Iterable[AllocationSpec | dict[str, Any]] | dict[str, Any] | None


def _categories(categories: Iterable[CategoryInput]) -> list[CategoryRequestSpec]:
    return [CategoryRequestSpec.model_validate(c) for c in categories]


def _allocations(allocations: AllocationInput) -> list[AllocationSpec]:
    """Accept [{category, amount}] or {category: amount}"""
    if allocations is None:
        return []
    if isinstance(allocations, dict):
        return [
            AllocationSpec(category=name, amount=None if amount is None else Decimal(str(amount)))
            for name, amount in allocations.items()
        ]
    return [AllocationSpec.model_validate(a) for a in allocations]


F = TypeVar("F", bound=Callable[..., Any])


def _synced(method: F) -> F:
    """Run a façade method under the ledger lock, on caught-up projections"""

    @functools.wraps(method)
    def wrapper(self: "FinanceLedger", *args: Any, **kwargs: Any) -> Any:
        with self._lock:
            self._catch_up()
            return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


class FinanceLedger:
    """
    EventSync Finance façade

    Provides a unified API for:
    - Budget lifecycle (request, approve, amend, close)
    - Expense lifecycle (log, review, resubmit, reimburse)
    - Audit log of destructive actions
    - Event team membership and permissions
    - Per-event cash ledger (credits, debits, reversals)
    - Finance reports
    """

    def __init__(
        self,
        sqlite_path: str | Path,
        policy: FinancePolicy | None = None,
        time_provider: TimeProvider | None = None,
    ) -> None:
        """
        Initialize the ledger

        Args:
            sqlite_path: Path to SQLite database
            policy: Finance policy (uses defaults if None)
            time_provider: Time provider (uses real time if None)
        """
        self.sqlite_path = Path(sqlite_path)
        self.policy = policy or FinancePolicy()
        self.time_provider = time_provider or RealTimeProvider()

        # Initialize infrastructure
        self.event_store = SQLiteEventStore(self.sqlite_path)
        self.bus = InProcessBus()
        self.budget_handlers = BudgetCommandHandlers(self.time_provider, self.policy)
        self.expense_handlers = ExpenseCommandHandlers(self.time_provider, self.policy)
        self.audit_handlers = AuditCommandHandlers(self.time_provider, self.policy)
        self.team_handlers = TeamCommandHandlers(self.time_provider)
        self.transaction_handlers = TransactionCommandHandlers(self.time_provider)

        # Initialize projections
        self.budget_registry = BudgetRegistry()
        self.expense_registry = ExpenseRegistry()
        self.audit_trail = AuditTrail()
        self.team_registry = TeamAccessRegistry()
        self.transaction_book = TransactionBook()
        for projection in (
            self.budget_registry,
            self.expense_registry,
            self.audit_trail,
            self.team_registry,
            self.transaction_book,
        ):
            self.bus.subscribe_all(projection.event_types, projection.apply_event)

        # One writer at a time: handlers read projections that _commit updates
        self._lock = threading.RLock()
        # rowid of the last event applied to the projections
        self._position = 0

        self._rebuild_projections()

    def _rebuild_projections(self) -> None:
        """Rebuild all projections from event store"""
        with self._lock:
            replayed = self._catch_up()
        logger.info("Projections rebuilt", events_replayed=replayed)

    def _catch_up(self) -> int:
        """
        Apply events committed since the last look, ours or another process's

        Projections only ever change here, in commit order, so a second
        ledger on the same file (CLI next to the server) never works from
        stale state for longer than one call.
        """
        events, self._position = self.event_store.load_events_after(self._position)
        self.bus.publish_events(events)
        return len(events)

    def _commit(self, events: list[Event]) -> list[Event]:
        """Store events and update projections"""
        try:
            for event in events:
                expected_version = event.version - 1
                self.event_store.append(event.stream_id, expected_version, [event])
        finally:
            # Also applies whatever a conflicting writer got in first
            self._catch_up()
        for event in events:
            self._observe(event)
        return events

    def _observe(self, event: Event) -> None:
        """Business metrics derived from committed events"""
        if event.stream_type == StreamType.BUDGET.value:
            budget = self.budget_registry.get(event.payload["event_id"])
            if budget is not None:
                budget_allocated_amount.labels(event_id=budget["event_id"]).set(
                    float(budget["total_allocated_amount"])
                )
            if event.event_type == "BudgetApproved":
                budget_decisions_total.labels(status=event.payload["status"]).inc()
            elif event.event_type == "BudgetRejected":
                budget_decisions_total.labels(status=BudgetStatus.REJECTED.value).inc()
        elif event.stream_type == StreamType.EXPENSE.value:
            status = target_status(event.event_type)
            if status is not None:
                expense_transitions_total.labels(status=status.value).inc()
            expense = self.expense_registry.get(event.stream_id)
            if expense is None:
                return
            if status == ExpenseStatus.REIMBURSED:
                reimbursed_amount_total.labels(expense_type=expense["type"]).inc(
                    float(expense["amount"])
                )
            budget = self.budget_registry.get(expense["event_id"])
            if budget is not None:
                stats = self._budget_stats(budget)
                budget_utilization_ratio.labels(event_id=expense["event_id"]).set(
                    float(stats["utilization"]) / 100
                )
        elif event.stream_type == StreamType.AUDIT.value:
            audit_entries_total.labels(severity=event.payload["severity"]).inc()
        elif event.stream_type == StreamType.TRANSACTION.value:
            ledger_transactions_total.labels(direction=event.payload["direction"]).inc()

    # ========== Authorization ==========

    def _require_admin(self, session: Session, operation: str) -> None:
        if not session.is_admin:
            raise PermissionDenied(session.actor_id, operation)

    def _require_team_lead(self, session: Session, event_id: str, operation: str) -> None:
        if session.is_admin:
            return
        if not self.team_registry.is_team_lead(event_id, session.actor_id):
            raise PermissionDenied(session.actor_id, operation)

    def _require_member(self, session: Session, event_id: str, operation: str) -> None:
        if session.is_admin:
            return
        if not self.team_registry.is_member(event_id, session.actor_id):
            raise PermissionDenied(session.actor_id, operation)

    def _require_permission(
        self,
        session: Session,
        event_id: str | None,
        key: PermissionKey,
        operation: str,
    ) -> None:
        if session.is_admin:
            return
        if event_id is None or not self.team_registry.has_permission(
            event_id, session.actor_id, key
        ):
            raise PermissionDenied(session.actor_id, operation)

    def _can_manage_team(self, session: Session, event_id: str) -> bool:
        if session.is_admin:
            return True
        if not self.team_registry.is_member(event_id, session.actor_id):
            return False
        return self.team_registry.permissions_for(event_id, session.actor_id).effective().can_manage_team

    def _can_view_logs(self, session: Session, event_id: str | None) -> bool:
        if session.is_admin:
            return True
        if event_id is None or not self.team_registry.is_member(event_id, session.actor_id):
            return False
        return self.team_registry.permissions_for(event_id, session.actor_id).effective().can_view_logs

    @staticmethod
    def _actor_type(session: Session) -> ActorType:
        return {
            Role.ADMIN: ActorType.ADMIN,
            Role.ORGANIZER: ActorType.ORGANIZER,
            Role.SYSTEM: ActorType.SYSTEM,
        }[session.role]

    # ========== Budget operations ==========

    @track_command_duration("request_budget")
    @_synced
    def request_budget(
        self,
        session: Session,
        event_id: str,
        categories: Iterable[CategoryInput],
    ) -> dict[str, Any]:
        """
        Request (or re-request) the budget for an event

        Args:
            session: Team lead of the event, or an admin
            event_id: Event the budget belongs to
            categories: [{name, requested_amount, justification}]

        Returns:
            Budget dict with spend stats
        """
        self._require_team_lead(session, event_id, "request a budget")
        command = RequestBudget(event_id=event_id, categories=_categories(categories))
        with LogOperation(
            logger, "request_budget", event_id=event_id, actor_id=session.actor_id
        ):
            events = self.budget_handlers.handle_request_budget(
                command, generate_id(), session.actor_id, self.budget_registry.budgets
            )
            self._commit(events)
        return self.get_budget(session, event_id)

    @track_command_duration("approve_budget")
    @_synced
    def approve_budget(
        self,
        session: Session,
        event_id: str,
        status: BudgetStatus | str | None = None,
        allocations: AllocationInput = None,
        approval_notes: str = "",
    ) -> dict[str, Any]:
        """
        Approve, partially approve or reject a REQUESTED budget

        Args:
            session: Admin
            event_id: Event whose budget is decided
            status: APPROVED, PARTIALLY_APPROVED or REJECTED; None derives it
            allocations: [{category, amount}] or {category: amount}
            approval_notes: Required, non-blank

        Returns:
            Updated budget dict
        """
        self._require_admin(session, "approve budgets")
        command = ApproveBudget(
            event_id=event_id,
            status=BudgetStatus(status) if status else None,
            allocations=_allocations(allocations),
            approval_notes=approval_notes or "",
        )
        with LogOperation(
            logger,
            "approve_budget",
            event_id=event_id,
            status=command.status.value if command.status else None,
            actor_id=session.actor_id,
        ):
            events = self.budget_handlers.handle_approve_budget(
                command, generate_id(), session.actor_id, self.budget_registry.budgets
            )
            self._commit(events)
        return self.get_budget(session, event_id)

    @track_command_duration("request_amendment")
    @_synced
    def request_amendment(
        self,
        session: Session,
        event_id: str,
        requested_categories: Iterable[CategoryInput],
        reason: str,
    ) -> dict[str, Any]:
        """
        Ask for changes to an approved budget

        Returns:
            The new PENDING amendment
        """
        self._require_team_lead(session, event_id, "request budget amendments")
        command = RequestAmendment(
            event_id=event_id,
            requested_categories=_categories(requested_categories),
            reason=reason or "",
        )
        with LogOperation(
            logger, "request_amendment", event_id=event_id, actor_id=session.actor_id
        ):
            events = self.budget_handlers.handle_request_amendment(
                command, generate_id(), session.actor_id, self.budget_registry.budgets
            )
            self._commit(events)
        amendment_id = events[0].payload["amendment_id"]
        return self._amendment(event_id, amendment_id)

    @track_command_duration("review_amendment")
    @_synced
    def review_amendment(
        self,
        session: Session,
        event_id: str,
        amendment_id: str,
        status: AmendmentStatus | str,
        admin_notes: str = "",
        allocations: AllocationInput = None,
    ) -> dict[str, Any]:
        """
        Approve or reject a PENDING amendment

        Returns:
            Updated budget dict
        """
        self._require_admin(session, "review budget amendments")
        command = ReviewAmendment(
            event_id=event_id,
            amendment_id=amendment_id,
            status=AmendmentStatus(status),
            admin_notes=admin_notes or "",
            allocations=_allocations(allocations),
        )
        with LogOperation(
            logger,
            "review_amendment",
            event_id=event_id,
            amendment_id=amendment_id,
            status=command.status.value,
            actor_id=session.actor_id,
        ):
            events = self.budget_handlers.handle_review_amendment(
                command, generate_id(), session.actor_id, self.budget_registry.budgets
            )
            self._commit(events)
        return self.get_budget(session, event_id)

    @track_command_duration("close_budget")
    @_synced
    def close_budget(
        self, session: Session, event_id: str, reason: str | None = None
    ) -> dict[str, Any]:
        """Close an approved budget; no amendments or expenses afterwards"""
        self._require_admin(session, "close budgets")
        command = CloseBudget(event_id=event_id, reason=reason)
        with LogOperation(
            logger, "close_budget", event_id=event_id, actor_id=session.actor_id
        ):
            events = self.budget_handlers.handle_close_budget(
                command, generate_id(), session.actor_id, self.budget_registry.budgets
            )
            self._commit(events)
        return self.get_budget(session, event_id)

    @_synced
    def get_budget(self, session: Session, event_id: str) -> dict[str, Any]:
        """
        Budget for an event, with spend stats

        stats: total_allocated, total_spent, remaining, utilization (%)
        """
        self._require_member(session, event_id, "view this budget")
        budget = self.budget_registry.get(event_id)
        if budget is None:
            raise BudgetNotFound(event_id)
        return {**copy.deepcopy(budget), "stats": self._budget_stats(budget)}

    def _budget_stats(self, budget: dict[str, Any]) -> dict[str, Any]:
        allocated = budget["total_allocated_amount"]
        spent = self.expense_registry.total_spent(budget["event_id"])
        return {
            "total_allocated": allocated,
            "total_spent": spent,
            "remaining": allocated - spent,
            "utilization": utilization_percent(spent, allocated),
        }

    @_synced
    def list_budgets(
        self, session: Session, status: BudgetStatus | str | None = None
    ) -> list[dict[str, Any]]:
        """Admins see every budget; organizers see the budgets of their events"""
        if status:
            budgets = self.budget_registry.list_by_status(BudgetStatus(status))
        else:
            budgets = self.budget_registry.list_all()
        if not session.is_admin:
            mine = set(self.team_registry.events_for_user(session.actor_id))
            budgets = [b for b in budgets if b["event_id"] in mine]
        return copy.deepcopy(sorted(budgets, key=lambda b: b["updated_at"], reverse=True))

    @_synced
    def list_pending_amendments(self, session: Session) -> list[dict[str, Any]]:
        self._require_admin(session, "list pending amendments")
        return copy.deepcopy(self.budget_registry.list_pending_amendments())

    @_synced
    def get_budget_history(self, session: Session, event_id: str) -> BudgetHistory:
        self._require_member(session, event_id, "view budget history")
        if self.budget_registry.get(event_id) is None:
            raise BudgetNotFound(event_id)
        return self.budget_registry.get_history(event_id)

    def _amendment(self, event_id: str, amendment_id: str) -> dict[str, Any]:
        budget = self.budget_registry.get(event_id)
        if budget is None:
            raise BudgetNotFound(event_id)
        for amendment in budget["amendments"]:
            if amendment["amendment_id"] == amendment_id:
                return {
                    **copy.deepcopy(amendment),
                    "event_id": event_id,
                    "budget_id": budget["budget_id"],
                }
        raise AmendmentNotFound(event_id, amendment_id)

    # ========== Expense operations ==========

    @track_command_duration("log_expense")
    @_synced
    def log_expense(
        self,
        session: Session,
        event_id: str,
        category: str,
        amount: Decimal | int | float | str,
        expense_type: ExpenseType | str = ExpenseType.PERSONAL_SPEND,
        description: str = "",
        receipt_url: str | None = None,
        incurred_by: str | None = None,
    ) -> dict[str, Any]:
        """
        Log an expense against an approved budget

        Args:
            session: Any team member of the event, or an admin
            incurred_by: Payee; defaults to the session's actor. Only admins
                and team leads may log on someone else's behalf.

        Returns:
            The new PENDING expense
        """
        self._require_member(session, event_id, "log expenses for this event")
        if (
            incurred_by
            and incurred_by != session.actor_id
            and not session.is_admin
            and not self.team_registry.is_team_lead(event_id, session.actor_id)
        ):
            raise PermissionDenied(session.actor_id, "log expenses on behalf of others")

        command = LogExpense(
            event_id=event_id,
            category=category,
            amount=Decimal(str(amount)),
            type=ExpenseType(expense_type),
            description=description or "",
            receipt_url=receipt_url,
            incurred_by=incurred_by,
        )
        with LogOperation(
            logger,
            "log_expense",
            event_id=event_id,
            category=category,
            amount=str(command.amount),
            actor_id=session.actor_id,
        ):
            events = self.expense_handlers.handle_log_expense(
                command, generate_id(), session.actor_id, self.budget_registry.budgets
            )
            self._commit(events)
        return copy.deepcopy(self.expense_registry.get(events[0].payload["expense_id"]))

    @track_command_duration("update_expense_status")
    @_synced
    def update_expense_status(
        self,
        session: Session,
        expense_id: str,
        status: ExpenseStatus | str,
        admin_notes: str | None = None,
    ) -> dict[str, Any]:
        """
        Admin review of an expense: approve, request changes, reject or reimburse

        Returns:
            Updated expense dict
        """
        self._require_admin(session, "update expense status")
        command = UpdateExpenseStatus(
            expense_id=expense_id, status=ExpenseStatus(status), admin_notes=admin_notes
        )
        with LogOperation(
            logger,
            "update_expense_status",
            expense_id=expense_id,
            status=command.status.value,
            actor_id=session.actor_id,
        ):
            events = self.expense_handlers.handle_update_status(
                command,
                generate_id(),
                session.actor_id,
                self.expense_registry.expenses,
                self.budget_registry.budgets,
            )
            self._commit(events)
        return copy.deepcopy(self.expense_registry.get(expense_id))

    @track_command_duration("resubmit_expense")
    @_synced
    def resubmit_expense(
        self,
        session: Session,
        expense_id: str,
        category: str | None = None,
        amount: Decimal | int | float | str | None = None,
        description: str | None = None,
        receipt_url: str | None = None,
    ) -> dict[str, Any]:
        """Payee (or admin) sends a CHANGES_REQUESTED expense back for review"""
        expense = self.expense_registry.get(expense_id)
        if expense is None:
            raise ExpenseNotFound(expense_id)
        if not session.is_admin and expense["incurred_by"] != session.actor_id:
            raise PermissionDenied(session.actor_id, "resubmit this expense")

        command = ResubmitExpense(
            expense_id=expense_id,
            category=category,
            amount=None if amount is None else Decimal(str(amount)),
            description=description,
            receipt_url=receipt_url,
        )
        with LogOperation(
            logger, "resubmit_expense", expense_id=expense_id, actor_id=session.actor_id
        ):
            events = self.expense_handlers.handle_resubmit_expense(
                command,
                generate_id(),
                session.actor_id,
                self.expense_registry.expenses,
                self.budget_registry.budgets,
            )
            self._commit(events)
        return copy.deepcopy(self.expense_registry.get(expense_id))

    @_synced
    def bulk_update_expenses(
        self,
        session: Session,
        expense_ids: list[str],
        status: ExpenseStatus | str,
        admin_notes: str | None = None,
    ) -> dict[str, list]:
        """
        Apply one status update to many expenses, best-effort

        Each expense is its own stream, so a failure on one never rolls back
        the others.

        Returns:
            {"updated": [expense dicts], "failed": [{"expense_id", "message"}]}
        """
        self._require_admin(session, "update expense status")
        command = BulkUpdateExpenses(
            expense_ids=expense_ids, status=ExpenseStatus(status), admin_notes=admin_notes
        )
        updated: list[dict[str, Any]] = []
        failed: list[dict[str, str]] = []
        for expense_id in command.expense_ids:
            try:
                updated.append(
                    self.update_expense_status(
                        session, expense_id, command.status, command.admin_notes
                    )
                )
            except FinanceError as e:
                failed.append({"expense_id": expense_id, "message": str(e)})
        logger.info(
            "Bulk expense update finished",
            status=command.status.value,
            updated=len(updated),
            failed=len(failed),
        )
        return {"updated": updated, "failed": failed}

    @_synced
    def get_expense(self, session: Session, expense_id: str) -> dict[str, Any]:
        expense = self.expense_registry.get(expense_id)
        if expense is None:
            raise ExpenseNotFound(expense_id)
        if expense["incurred_by"] != session.actor_id:
            self._require_member(session, expense["event_id"], "view this expense")
        return copy.deepcopy(expense)

    @_synced
    def list_expenses(self, session: Session, event_id: str) -> list[dict[str, Any]]:
        self._require_member(session, event_id, "view expenses for this event")
        return copy.deepcopy(self.expense_registry.list_by_event(event_id))

    @_synced
    def list_pending_expenses(self, session: Session) -> list[dict[str, Any]]:
        self._require_admin(session, "list pending expenses")
        return copy.deepcopy(self.expense_registry.list_pending())

    @_synced
    def pending_reimbursements_by_user(self, session: Session) -> list[dict[str, Any]]:
        """APPROVED personal spend grouped per payee"""
        self._require_admin(session, "view pending reimbursements")
        return copy.deepcopy(self.expense_registry.pending_reimbursements_by_user())

    # ========== Audit operations ==========

    @track_command_duration("invalidate_attendance")
    @_synced
    def invalidate_attendance(
        self,
        session: Session,
        attendance_id: str,
        reason: str,
        event_id: str | None = None,
        old_state: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Invalidate an attendance record (CRITICAL audit entry)

        Args:
            session: Admin, or a team member with can_manage_attendance
            reason: At least policy.min_destructive_reason_length characters after trimming

        Returns:
            The audit entry
        """
        self._require_permission(
            session, event_id, PermissionKey.CAN_MANAGE_ATTENDANCE, "invalidate attendance"
        )
        command = InvalidateAttendance(
            attendance_id=attendance_id, event_id=event_id, reason=reason or "", old_state=old_state
        )
        with LogOperation(
            logger,
            "invalidate_attendance",
            attendance_id=attendance_id,
            event_id=event_id,
            actor_id=session.actor_id,
        ):
            events = self.audit_handlers.handle_invalidate_attendance(
                command,
                generate_id(),
                session.actor_id,
                self._actor_type(session),
                session.display_name,
                self.audit_trail.invalidated,
            )
            self._commit(events)
        return copy.deepcopy(self.audit_trail.get(events[0].payload["audit_id"]))

    @track_command_duration("revoke_certificate")
    @_synced
    def revoke_certificate(
        self,
        session: Session,
        certificate_id: str,
        reason: str,
        event_id: str | None = None,
        old_state: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Revoke a certificate (CRITICAL audit entry)"""
        self._require_permission(
            session,
            event_id,
            PermissionKey.CAN_GENERATE_CERTIFICATES,
            "revoke certificates",
        )
        command = RevokeCertificate(
            certificate_id=certificate_id,
            event_id=event_id,
            reason=reason or "",
            old_state=old_state,
        )
        with LogOperation(
            logger,
            "revoke_certificate",
            certificate_id=certificate_id,
            event_id=event_id,
            actor_id=session.actor_id,
        ):
            events = self.audit_handlers.handle_revoke_certificate(
                command,
                generate_id(),
                session.actor_id,
                self._actor_type(session),
                session.display_name,
                self.audit_trail.invalidated,
            )
            self._commit(events)
        return copy.deepcopy(self.audit_trail.get(events[0].payload["audit_id"]))

    @_synced
    def record_audit_entry(
        self,
        session: Session,
        entity_type: EntityType | str,
        entity_id: str,
        action_type: str,
        severity: Severity | str = Severity.INFO,
        reason: str | None = None,
        event_id: str | None = None,
        old_state: dict[str, Any] | None = None,
        new_state: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Generic audit entry (admin or system)"""
        self._require_admin(session, "record audit entries")
        command = RecordAuditEntry(
            entity_type=EntityType(entity_type),
            entity_id=entity_id,
            event_id=event_id,
            action_type=action_type,
            severity=Severity(severity),
            reason=reason,
            old_state=old_state,
            new_state=new_state,
        )
        with LogOperation(
            logger,
            "record_audit_entry",
            entity_type=command.entity_type.value,
            entity_id=entity_id,
            actor_id=session.actor_id,
        ):
            events = self.audit_handlers.handle_record_audit_entry(
                command,
                generate_id(),
                session.actor_id,
                self._actor_type(session),
                session.display_name,
                self.audit_trail.invalidated,
            )
            self._commit(events)
        return copy.deepcopy(self.audit_trail.get(events[0].payload["audit_id"]))

    @_synced
    def get_audit_trail(
        self, session: Session, entity_type: EntityType | str, entity_id: str
    ) -> list[dict[str, Any]]:
        """
        Entries for one entity, newest first

        Organizers only see entries of events where they can view logs.
        """
        entries = self.audit_trail.get_trail(EntityType(entity_type), entity_id)
        if session.is_admin:
            return copy.deepcopy(entries)
        visible = [e for e in entries if self._can_view_logs(session, e["event_id"])]
        if entries and not visible:
            raise PermissionDenied(session.actor_id, "view this audit trail")
        return copy.deepcopy(visible)

    @_synced
    def list_audit_entries(
        self,
        session: Session,
        event_id: str | None = None,
        severity: Severity | str | None = None,
    ) -> list[dict[str, Any]]:
        if not self._can_view_logs(session, event_id):
            raise PermissionDenied(session.actor_id, "view audit logs")
        entries = self.audit_trail.list_entries(
            event_id=event_id, severity=Severity(severity) if severity else None
        )
        return copy.deepcopy(entries)

    # ========== Team access ==========

    @track_command_duration("assign_team_member")
    @_synced
    def assign_team_member(
        self,
        session: Session,
        event_id: str,
        user_id: str,
        permission_set: PermissionSet | dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Add a user to an event team or replace their permissions

        Admins may assign anyone; members who can manage the team may assign
        everything except team lead.
        """
        permissions = PermissionSet.model_validate(permission_set or {})
        if not self._can_manage_team(session, event_id):
            raise PermissionDenied(session.actor_id, "manage this event team")
        if permissions.is_team_lead and not session.is_admin:
            raise PermissionDenied(session.actor_id, "appoint team leads")

        command = AssignTeamMember(event_id=event_id, user_id=user_id, permission_set=permissions)
        with LogOperation(
            logger, "assign_team_member", event_id=event_id, actor_id=session.actor_id
        ):
            events = self.team_handlers.handle_assign_team_member(
                command, generate_id(), session.actor_id, self.team_registry
            )
            self._commit(events)
        return copy.deepcopy(self.team_registry.get_member(event_id, user_id))

    @_synced
    def remove_team_member(self, session: Session, event_id: str, user_id: str) -> None:
        if not self._can_manage_team(session, event_id):
            raise PermissionDenied(session.actor_id, "manage this event team")
        if self.team_registry.is_team_lead(event_id, user_id) and not session.is_admin:
            raise PermissionDenied(session.actor_id, "remove team leads")

        command = RemoveTeamMember(event_id=event_id, user_id=user_id)
        with LogOperation(
            logger, "remove_team_member", event_id=event_id, actor_id=session.actor_id
        ):
            events = self.team_handlers.handle_remove_team_member(
                command, generate_id(), session.actor_id, self.team_registry
            )
            self._commit(events)

    @_synced
    def list_team_members(self, session: Session, event_id: str) -> list[dict[str, Any]]:
        self._require_member(session, event_id, "view this event team")
        return copy.deepcopy(self.team_registry.list_members(event_id))

    @_synced
    def get_my_permissions(self, session: Session, event_id: str) -> PermissionSet:
        """
        Effective permissions of the session's actor on an event

        Raises:
            NotTeamMember: The actor has no assignment on the event
        """
        return self.team_registry.permissions_for(event_id, session.actor_id).effective()

    def permission_loader(self):
        """Loader for PermissionGate backed by this ledger"""

        def load(user_id: str, event_id: str) -> PermissionSet:
            with self._lock:
                self._catch_up()
                return self.team_registry.permissions_for(event_id, user_id)

        return load

    # ========== Event ledger ==========

    def _transaction_audit(
        self,
        session: Session,
        command_id: str,
        action_type: str,
        severity: Severity,
        transaction: dict[str, Any],
    ) -> list[Event]:
        command = RecordAuditEntry(
            entity_type=EntityType.TRANSACTION,
            entity_id=transaction["transaction_id"],
            event_id=transaction["event_id"],
            action_type=action_type,
            severity=severity,
            reason=transaction["reason"],
            new_state={
                "direction": transaction["direction"],
                "kind": transaction["kind"],
                "amount_cents": transaction["amount_cents"],
                "currency": transaction["currency"],
                "reference_transaction_id": transaction.get("reference_transaction_id"),
            },
        )
        return self.audit_handlers.handle_record_audit_entry(
            command,
            command_id,
            session.actor_id,
            self._actor_type(session),
            session.display_name,
            self.audit_trail.invalidated,
        )

    @track_command_duration("record_transaction")
    @_synced
    def record_transaction(
        self,
        session: Session,
        event_id: str,
        direction: Direction | str,
        kind: str,
        amount_cents: int,
        currency: str | None = None,
        note: str | None = None,
        reason: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Record money in (CREDIT) or out (DEBIT) of an event's ledger

        Writes an INFO audit entry (FINANCE_TX_CREATED) with the transaction.

        Args:
            session: Admin, or team lead of the event
            amount_cents: Whole cents, strictly positive
            currency: Three-letter code, INR when omitted

        Returns:
            The new transaction
        """
        self._require_team_lead(session, event_id, "record ledger transactions")
        command = RecordTransaction(
            event_id=event_id,
            direction=direction,
            kind=kind,
            amount_cents=amount_cents,
            currency=currency,
            note=note,
            reason=reason,
            metadata=metadata or {},
        )
        with LogOperation(
            logger,
            "record_transaction",
            event_id=event_id,
            direction=command.direction.value,
            amount_cents=command.amount_cents,
            actor_id=session.actor_id,
        ):
            command_id = generate_id()
            events = self.transaction_handlers.handle_record_transaction(
                command, command_id, session.actor_id, self.transaction_book
            )
            transaction = events[0].payload
            events += self._transaction_audit(
                session, command_id, FINANCE_TX_CREATED, Severity.INFO, transaction
            )
            self._commit(events)
        logger.info(
            FINANCE_TX_CREATED,
            event_id=event_id,
            transaction_id=transaction["transaction_id"],
            direction=transaction["direction"],
            kind=transaction["kind"],
            currency=transaction["currency"],
        )
        return copy.deepcopy(self.transaction_book.get(transaction["transaction_id"]))

    @track_command_duration("reverse_transaction")
    @_synced
    def reverse_transaction(
        self, session: Session, transaction_id: str, reason: str
    ) -> dict[str, Any]:
        """
        Undo a ledger entry with an opposite-direction REVERSAL

        Writes a WARNING audit entry (FINANCE_TX_REVERSED).

        Returns:
            The REVERSAL transaction
        """
        original = self.transaction_book.get(transaction_id)
        if original is None:
            raise TransactionNotFound(transaction_id)
        self._require_team_lead(session, original["event_id"], "reverse ledger transactions")

        command = ReverseTransaction(transaction_id=transaction_id, reason=reason or "")
        with LogOperation(
            logger,
            "reverse_transaction",
            event_id=original["event_id"],
            transaction_id=transaction_id,
            actor_id=session.actor_id,
        ):
            command_id = generate_id()
            events = self.transaction_handlers.handle_reverse_transaction(
                command, command_id, session.actor_id, self.transaction_book
            )
            reversal = events[0].payload
            events += self._transaction_audit(
                session, command_id, FINANCE_TX_REVERSED, Severity.WARNING, reversal
            )
            self._commit(events)
        logger.warning(
            FINANCE_TX_REVERSED,
            event_id=original["event_id"],
            transaction_id=reversal["transaction_id"],
            reversal_of=transaction_id,
            reason=reversal["reason"],
        )
        return copy.deepcopy(self.transaction_book.get(reversal["transaction_id"]))

    @_synced
    def get_event_balance(
        self, session: Session, event_id: str, currency: str = DEFAULT_CURRENCY
    ) -> dict[str, Any]:
        """event_id, currency, credits_cents, debits_cents, balance_cents"""
        self._require_team_lead(session, event_id, "view the event ledger")
        return self.transaction_book.balance(event_id, (currency or DEFAULT_CURRENCY).upper())

    @_synced
    def list_transactions(
        self, session: Session, event_id: str, limit: int = 50
    ) -> list[dict[str, Any]]:
        """Newest first, at most `limit` entries"""
        self._require_team_lead(session, event_id, "view the event ledger")
        if limit < 1:
            raise ValueError("limit must be a positive number")
        return copy.deepcopy(self.transaction_book.list_for_event(event_id, limit))

    # ========== Reports ==========

    @_synced
    def event_wise_report(
        self, session: Session, start: datetime | None = None, end: datetime | None = None
    ) -> list[dict[str, Any]]:
        self._require_admin(session, "view finance reports")
        return event_wise_report(self.budget_registry, self.expense_registry, start, end)

    @_synced
    def category_wise_report(
        self, session: Session, start: datetime | None = None, end: datetime | None = None
    ) -> list[dict[str, Any]]:
        self._require_admin(session, "view finance reports")
        return category_wise_report(self.budget_registry, self.expense_registry, start, end)

    @_synced
    def over_budget_alerts(self, session: Session) -> list[dict[str, Any]]:
        self._require_admin(session, "view finance reports")
        return over_budget_alerts(self.budget_registry, self.expense_registry, self.policy)

    @_synced
    def export_csv(
        self,
        session: Session,
        export_type: ExportType | str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> str:
        self._require_admin(session, "export finance reports")
        return export_csv(
            ExportType(export_type), self.budget_registry, self.expense_registry, start, end
        )

    # ========== Health ==========

    @_synced
    def health(self) -> dict[str, Any]:
        """Store and projection counts for readiness checks"""
        return {
            "events": self.event_store.count_events(),
            "streams": self.event_store.count_streams(),
            "budgets": len(self.budget_registry.budgets),
            "expenses": len(self.expense_registry.expenses),
            "audit_entries": len(self.audit_trail.entries),
            "transactions": len(self.transaction_book.transactions),
        }
