"""
Custom exceptions for EventSync Finance

A single hierarchy rooted at FinanceError lets every surface (façade, REST API,
CLI) tell validation problems, illegal state changes, missing records and
access failures apart without parsing messages.

Fun fact: Double-entry bookkeeping was first documented by Luca Pacioli in 1494.
He also wrote that a merchant should not go to sleep until the debits equal
the credits. Our invariants are slightly less strict about bedtime.
"""


class FinanceError(Exception):
    """Base exception for all EventSync Finance errors"""

    pass


class EventStoreError(FinanceError):
    """Base class for event store errors"""

    pass


class StreamVersionConflict(EventStoreError):
    """
    Raised when stream version doesn't match expected (optimistic locking)

    Two admins acting on the same budget at once: the second write loses and
    must reload and retry.
    """

    def __init__(
        self, stream_id: str, expected_version: int, actual_version: int
    ) -> None:
        self.stream_id = stream_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Stream {stream_id} version mismatch: "
            f"expected {expected_version}, got {actual_version}"
        )


# Validation


class InvariantViolation(FinanceError):
    """Raised when a business rule would be violated"""

    pass


class MissingNotes(InvariantViolation):
    """Raised when a decision that needs an explanation has none"""

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"{field} is required and cannot be blank")


class ReasonTooShort(InvariantViolation):
    """Raised when a destructive action carries an insufficient reason"""

    def __init__(self, length: int, minimum: int) -> None:
        self.length = length
        self.minimum = minimum
        super().__init__(
            f"Reason must be at least {minimum} characters (got {length})"
        )


class AllocationsRequired(InvariantViolation):
    """Raised when an approval carries no allocations"""

    def __init__(self) -> None:
        super().__init__("Approving a budget requires at least one allocation")


class InvalidAllocation(InvariantViolation):
    """Raised when an allocation is missing an amount or is negative"""

    def __init__(self, category: str, amount: object) -> None:
        self.category = category
        self.amount = amount
        super().__init__(
            f"Allocation for {category} must be a non-negative amount (got {amount})"
        )


class DuplicateCategory(InvariantViolation):
    """Raised when the same category appears twice in one request"""

    def __init__(self, category: str) -> None:
        self.category = category
        super().__init__(f"Category {category} listed more than once")


class CategoryNotInBudget(InvariantViolation):
    """Raised when an operation names a category the budget does not have"""

    def __init__(self, event_id: str, category: str) -> None:
        self.event_id = event_id
        self.category = category
        super().__init__(f"Category '{category}' not found in budget for event {event_id}")


class CategoryCeilingExceeded(InvariantViolation):
    """Raised when approving an expense would overrun its category allocation"""

    def __init__(
        self, category: str, amount: str, allocated: str, spent: str
    ) -> None:
        self.category = category
        self.amount = amount
        self.allocated = allocated
        self.spent = spent
        super().__init__(
            f"Expense of {amount} exceeds remaining {category} allocation "
            f"(allocated: {allocated}, spent: {spent})"
        )


class BudgetNotApproved(InvariantViolation):
    """Raised when expenses are logged against a budget that is not approved"""

    def __init__(self, event_id: str, current_status: str) -> None:
        self.event_id = event_id
        self.current_status = current_status
        super().__init__(
            f"Budget for event {event_id} is {current_status}, "
            "must be approved before logging expenses"
        )


class NotReimbursable(InvariantViolation):
    """Raised when reimbursing an expense the organization paid directly"""

    def __init__(self, expense_id: str, expense_type: str) -> None:
        self.expense_id = expense_id
        self.expense_type = expense_type
        super().__init__(
            f"Expense {expense_id} is {expense_type}; only PERSONAL_SPEND can be reimbursed"
        )


class AmendmentAlreadyResolved(InvariantViolation):
    """Raised when reviewing an amendment that already has an outcome"""

    def __init__(self, amendment_id: str, status: str) -> None:
        self.amendment_id = amendment_id
        self.status = status
        super().__init__(f"Amendment {amendment_id} is already {status}")


class EntityAlreadyInvalidated(InvariantViolation):
    """Raised when a destructive action targets an entity that already had it"""

    def __init__(self, entity_type: str, entity_id: str) -> None:
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} {entity_id} has already been invalidated")


# State machines


class IllegalTransition(FinanceError):
    """Raised when a state machine has no edge for (state, action)"""

    def __init__(self, entity: str, current_status: str, action: str) -> None:
        self.entity = entity
        self.current_status = current_status
        self.action = action
        super().__init__(f"Cannot {action} a {entity} that is {current_status}")


class IllegalBudgetTransition(IllegalTransition):
    """Raised for budget actions not allowed from the current status"""

    def __init__(self, current_status: str, action: str) -> None:
        super().__init__("budget", current_status, action)


class IllegalExpenseTransition(IllegalTransition):
    """Raised for expense actions not allowed from the current status"""

    def __init__(self, current_status: str, action: str) -> None:
        super().__init__("expense", current_status, action)


class TransactionNotReversible(IllegalTransition):
    """Raised when a ledger transaction is already reversed, or is itself a reversal"""

    def __init__(self, transaction_id: str, state: str) -> None:
        self.transaction_id = transaction_id
        super().__init__("transaction", state, "reverse")


# Lookups


class NotFound(FinanceError):
    """Base class for missing records"""

    pass


class BudgetNotFound(NotFound):
    """Raised when an event has no budget"""

    def __init__(self, event_id: str) -> None:
        self.event_id = event_id
        super().__init__(f"Budget for event {event_id} not found")


class AmendmentNotFound(NotFound):
    """Raised when an amendment does not exist on the budget"""

    def __init__(self, event_id: str, amendment_id: str) -> None:
        self.event_id = event_id
        self.amendment_id = amendment_id
        super().__init__(f"Amendment {amendment_id} not found for event {event_id}")


class ExpenseNotFound(NotFound):
    """Raised when expense does not exist"""

    def __init__(self, expense_id: str) -> None:
        self.expense_id = expense_id
        super().__init__(f"Expense {expense_id} not found")


class TransactionNotFound(NotFound):
    """Raised when a ledger transaction does not exist"""

    def __init__(self, transaction_id: str) -> None:
        self.transaction_id = transaction_id
        super().__init__(f"Transaction {transaction_id} not found")


class NotTeamMember(NotFound):
    """Raised when a user has no assignment on an event team"""

    def __init__(self, event_id: str, user_id: str) -> None:
        self.event_id = event_id
        self.user_id = user_id
        super().__init__(f"User {user_id} is not assigned to event {event_id}")


# Access


class AccessError(FinanceError):
    """Base class for authentication and authorization failures"""

    pass


class AuthenticationError(AccessError):
    """Raised when a request carries no valid credentials"""

    pass


class PermissionDenied(AccessError):
    """Raised when the session may not perform an operation"""

    def __init__(self, actor_id: str, operation: str) -> None:
        self.actor_id = actor_id
        self.operation = operation
        super().__init__(f"Not authorized to {operation}")
