"""
Budget Module Handlers - Command→Event transformation

Handlers are the decision-making layer. They:
1. Load current state (from the BudgetRegistry records)
2. Check the transition table and the invariants
3. Generate events if valid
4. Return events for append to event store

Authorization is the ledger's job; handlers assume the actor may act.
"""

from eventsync_finance.budget.commands import (
    ApproveBudget,
    CloseBudget,
    RequestAmendment,
    RequestBudget,
    ReviewAmendment,
)
from eventsync_finance.budget.events import (
    AmendmentApproved,
    AmendmentRejected,
    AmendmentRequested,
    BudgetApproved,
    BudgetClosed,
    BudgetRejected,
    BudgetRequested,
    BudgetRequestUpdated,
    CategoryLine,
)
from eventsync_finance.budget.invariants import (
    derive_approval_is_full,
    validate_allocations,
    validate_amendment_pending,
    validate_category_requests,
    validate_notes_present,
)
from eventsync_finance.budget.models import (
    AmendmentStatus,
    Budget,
    BudgetStatus,
    budget_from_record,
)
from eventsync_finance.budget.transitions import (
    BudgetAction,
    action_for_decision,
    next_budget_status,
)
from eventsync_finance.kernel.errors import (
    AmendmentNotFound,
    BudgetNotFound,
    IllegalBudgetTransition,
)
from eventsync_finance.kernel.events import Event, StreamType, create_event
from eventsync_finance.kernel.ids import budget_stream_id, generate_id
from eventsync_finance.kernel.policy import FinancePolicy
from eventsync_finance.kernel.time import TimeProvider


def _lines(categories: list) -> list[CategoryLine]:
    return [
        CategoryLine(
            name=c.name.value,
            requested_amount=c.requested_amount,
            justification=c.justification.strip(),
        )
        for c in categories
    ]


class BudgetCommandHandlers:
    """
    Command handlers for the budget module

    Handlers convert commands into events. They depend on the budget
    records (keyed by event_id) for current state.
    """

    def __init__(
        self,
        time_provider: TimeProvider,
        policy: FinancePolicy,
    ) -> None:
        """
        Initialize handlers with dependencies

        Args:
            time_provider: For timestamps (injectable for testing)
            policy: Finance thresholds
        """
        self.time_provider = time_provider
        self.policy = policy

    def _load(self, event_id: str, budgets: dict) -> Budget:
        record = budgets.get(event_id)
        if record is None:
            raise BudgetNotFound(event_id)
        return budget_from_record(record)

    def _event(
        self,
        budget: Budget | None,
        event_id: str,
        event_type: str,
        command_id: str,
        actor_id: str | None,
        payload: dict,
    ) -> Event:
        return create_event(
            event_id=generate_id(),
            stream_id=budget_stream_id(event_id),
            stream_type=StreamType.BUDGET,
            event_type=event_type,
            occurred_at=self.time_provider.now(),
            command_id=command_id,
            actor_id=actor_id,
            payload=payload,
            version=(budget.version if budget else 0) + 1,
        )

    def handle_request_budget(
        self,
        command: RequestBudget,
        command_id: str,
        actor_id: str,
        budgets: dict,
    ) -> list[Event]:
        """
        Handle RequestBudget command

        Creates the budget when the event has none (DRAFT), otherwise
        replaces the categories of a REQUESTED or REJECTED budget.

        Raises:
            IllegalBudgetTransition: Budget is APPROVED, PARTIALLY_APPROVED or CLOSED
            MissingNotes: A category has a blank justification
            DuplicateCategory: A category is listed twice
        """
        now = self.time_provider.now()
        validate_category_requests(command.categories)

        record = budgets.get(command.event_id)
        if record is None:
            next_budget_status(BudgetStatus.DRAFT, BudgetAction.REQUEST)
            payload = BudgetRequested(
                budget_id=generate_id(),
                event_id=command.event_id,
                categories=_lines(command.categories),
                requested_by=actor_id,
                requested_at=now,
            ).model_dump(mode="json")
            return [
                self._event(None, command.event_id, "BudgetRequested", command_id, actor_id, payload)
            ]

        budget = budget_from_record(record)
        next_budget_status(budget.status, BudgetAction.REQUEST)
        payload = BudgetRequestUpdated(
            budget_id=budget.budget_id,
            event_id=budget.event_id,
            categories=_lines(command.categories),
            previous_status=budget.status,
            requested_by=actor_id,
            requested_at=now,
        ).model_dump(mode="json")
        return [
            self._event(budget, budget.event_id, "BudgetRequestUpdated", command_id, actor_id, payload)
        ]

    def handle_approve_budget(
        self,
        command: ApproveBudget,
        command_id: str,
        actor_id: str,
        budgets: dict,
    ) -> list[Event]:
        """
        Handle ApproveBudget command

        Validates:
        - Budget exists and is REQUESTED
        - Notes are not blank
        - For approval: at least one allocation, each non-negative and
          naming a category of the budget

        When command.status is None the outcome is derived: APPROVED if the
        resulting allocation equals the requested total, else PARTIALLY_APPROVED.
        """
        now = self.time_provider.now()
        budget = self._load(command.event_id, budgets)
        notes = validate_notes_present(command.approval_notes, "Approval notes")

        if command.status == BudgetStatus.REJECTED:
            next_budget_status(budget.status, BudgetAction.REJECT)
            payload = BudgetRejected(
                budget_id=budget.budget_id,
                event_id=budget.event_id,
                approval_notes=notes,
                rejected_by=actor_id,
                rejected_at=now,
            ).model_dump(mode="json")
            return [
                self._event(budget, budget.event_id, "BudgetRejected", command_id, actor_id, payload)
            ]

        # Fail on state before validating allocations against it
        if budget.status != BudgetStatus.REQUESTED:
            raise IllegalBudgetTransition(budget.status.value, BudgetAction.APPROVE.value)

        allocations = validate_allocations(
            command.allocations, budget.category_names(), budget.event_id
        )

        status = command.status
        if status is None:
            status = (
                BudgetStatus.APPROVED
                if derive_approval_is_full(budget, allocations)
                else BudgetStatus.PARTIALLY_APPROVED
            )
        next_budget_status(budget.status, action_for_decision(status))

        payload = BudgetApproved(
            budget_id=budget.budget_id,
            event_id=budget.event_id,
            status=status,
            allocations=allocations,
            approval_notes=notes,
            approved_by=actor_id,
            approved_at=now,
        ).model_dump(mode="json")
        return [
            self._event(budget, budget.event_id, "BudgetApproved", command_id, actor_id, payload)
        ]

    def handle_request_amendment(
        self,
        command: RequestAmendment,
        command_id: str,
        actor_id: str,
        budgets: dict,
    ) -> list[Event]:
        """
        Handle RequestAmendment command

        Only APPROVED and PARTIALLY_APPROVED budgets (policy.amendable_statuses)
        accept amendments. The reason must not be blank.
        """
        now = self.time_provider.now()
        budget = self._load(command.event_id, budgets)
        next_budget_status(budget.status, BudgetAction.REQUEST_AMENDMENT)
        if budget.status not in self.policy.amendable_statuses:
            raise IllegalBudgetTransition(
                budget.status.value, BudgetAction.REQUEST_AMENDMENT.value
            )
        reason = validate_notes_present(command.reason, "Amendment reason")
        validate_category_requests(command.requested_categories)

        payload = AmendmentRequested(
            budget_id=budget.budget_id,
            event_id=budget.event_id,
            amendment_id=generate_id(),
            requested_categories=_lines(command.requested_categories),
            reason=reason,
            requested_by=actor_id,
            requested_at=now,
        ).model_dump(mode="json")
        return [
            self._event(budget, budget.event_id, "AmendmentRequested", command_id, actor_id, payload)
        ]

    def handle_review_amendment(
        self,
        command: ReviewAmendment,
        command_id: str,
        actor_id: str,
        budgets: dict,
    ) -> list[Event]:
        """
        Handle ReviewAmendment command

        Notes are required for both outcomes. A rejection ignores any
        allocations sent with it. An approval may only allocate to categories
        the budget has or the amendment requested; requested categories new to
        the budget are added with the amendment's figures.

        Raises:
            AmendmentNotFound: Unknown amendment_id
            AmendmentAlreadyResolved: Amendment is not PENDING
        """
        now = self.time_provider.now()
        budget = self._load(command.event_id, budgets)
        next_budget_status(budget.status, BudgetAction.REVIEW_AMENDMENT)

        amendment = budget.amendment(command.amendment_id)
        if amendment is None:
            raise AmendmentNotFound(command.event_id, command.amendment_id)
        validate_amendment_pending(amendment)
        notes = validate_notes_present(command.admin_notes, "Admin notes")

        if command.status == AmendmentStatus.REJECTED:
            payload = AmendmentRejected(
                budget_id=budget.budget_id,
                event_id=budget.event_id,
                amendment_id=amendment.amendment_id,
                admin_notes=notes,
                reviewed_by=actor_id,
                reviewed_at=now,
            ).model_dump(mode="json")
            return [
                self._event(budget, budget.event_id, "AmendmentRejected", command_id, actor_id, payload)
            ]

        if command.status != AmendmentStatus.APPROVED:
            raise IllegalBudgetTransition(
                budget.status.value, f"resolve amendment as {command.status.value} on"
            )

        existing = set(budget.category_names())
        requested = {c.name.value: c for c in amendment.requested_categories}
        allocations = validate_allocations(
            command.allocations, existing | set(requested), budget.event_id
        )

        new_categories = [
            CategoryLine(
                name=name,
                requested_amount=requested[name].requested_amount,
                justification=requested[name].justification or amendment.reason,
            )
            for name in allocations
            if name not in existing
        ]

        payload = AmendmentApproved(
            budget_id=budget.budget_id,
            event_id=budget.event_id,
            amendment_id=amendment.amendment_id,
            allocations=allocations,
            new_categories=new_categories,
            admin_notes=notes,
            reviewed_by=actor_id,
            reviewed_at=now,
        ).model_dump(mode="json")
        return [
            self._event(budget, budget.event_id, "AmendmentApproved", command_id, actor_id, payload)
        ]

    def handle_close_budget(
        self,
        command: CloseBudget,
        command_id: str,
        actor_id: str,
        budgets: dict,
    ) -> list[Event]:
        """Handle CloseBudget command (APPROVED/PARTIALLY_APPROVED → CLOSED)"""
        now = self.time_provider.now()
        budget = self._load(command.event_id, budgets)
        next_budget_status(budget.status, BudgetAction.CLOSE)

        payload = BudgetClosed(
            budget_id=budget.budget_id,
            event_id=budget.event_id,
            reason=command.reason.strip() if command.reason else None,
            closed_by=actor_id,
            closed_at=now,
        ).model_dump(mode="json")
        return [
            self._event(budget, budget.event_id, "BudgetClosed", command_id, actor_id, payload)
        ]
