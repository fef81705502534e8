"""
Finance endpoints: budgets, amendments, expenses, reimbursements, reports.
"""

from datetime import datetime

from flask import Blueprint, Response, g, request

from eventsync_finance.api.app import current_ledger, ok
from eventsync_finance.api.auth import require_session
from eventsync_finance.api.schemas import (
    AmendmentRequestBody,
    AmendmentReviewBody,
    BudgetApprovalBody,
    BudgetCloseBody,
    BudgetRequestBody,
    BulkExpenseBody,
    ExpenseBody,
    ExpenseResubmitBody,
    ExpenseStatusBody,
    allocation_dicts,
    category_dicts,
)
from eventsync_finance.reports.aggregates import ExportType, parse_range_bound

finance_bp = Blueprint("finance", __name__)


def _json() -> dict:
    return request.get_json(silent=True) or {}


def _date_arg(*names: str, end: bool = False) -> datetime | None:
    for name in names:
        value = request.args.get(name)
        if value:
            return parse_range_bound(value, end=end)
    return None


def _range() -> tuple[datetime | None, datetime | None]:
    return _date_arg("startDate", "start"), _date_arg("endDate", "end", end=True)


# ---------- Budgets ----------


@finance_bp.post("/budget/request")
@require_session
def request_budget() -> tuple[Response, int]:
    body = BudgetRequestBody.model_validate(_json())
    budget = current_ledger().request_budget(
        g.session, body.event_id, category_dicts(body.categories)
    )
    return ok(budget, "Budget request submitted", 201)


@finance_bp.get("/budget/<event_id>")
@require_session
def get_budget(event_id: str) -> tuple[Response, int]:
    return ok(current_ledger().get_budget(g.session, event_id))


@finance_bp.get("/budgets")
@require_session
def list_budgets() -> tuple[Response, int]:
    return ok(current_ledger().list_budgets(g.session, request.args.get("status") or None))


@finance_bp.put("/budget/<event_id>/approval")
@require_session
def approve_budget(event_id: str) -> tuple[Response, int]:
    body = BudgetApprovalBody.model_validate(_json())
    budget = current_ledger().approve_budget(
        g.session,
        event_id,
        status=body.status,
        allocations=allocation_dicts(body.allocations),
        approval_notes=body.approval_notes,
    )
    return ok(budget, f"Budget {budget['status'].lower().replace('_', ' ')}")


@finance_bp.put("/budget/<event_id>/close")
@require_session
def close_budget(event_id: str) -> tuple[Response, int]:
    body = BudgetCloseBody.model_validate(_json())
    return ok(current_ledger().close_budget(g.session, event_id, body.reason), "Budget closed")


@finance_bp.get("/budget/<event_id>/history")
@require_session
def budget_history(event_id: str) -> tuple[Response, int]:
    return ok(current_ledger().get_budget_history(g.session, event_id).to_list())


# ---------- Amendments ----------


@finance_bp.post("/budget/<event_id>/amendment")
@require_session
def request_amendment(event_id: str) -> tuple[Response, int]:
    body = AmendmentRequestBody.model_validate(_json())
    amendment = current_ledger().request_amendment(
        g.session, event_id, category_dicts(body.requested_categories), body.reason
    )
    return ok(amendment, "Amendment requested", 201)


@finance_bp.put("/budget/<event_id>/amendment/<amendment_id>")
@require_session
def review_amendment(event_id: str, amendment_id: str) -> tuple[Response, int]:
    body = AmendmentReviewBody.model_validate(_json())
    budget = current_ledger().review_amendment(
        g.session,
        event_id,
        amendment_id,
        body.status,
        admin_notes=body.admin_notes,
        allocations=allocation_dicts(body.allocations),
    )
    return ok(budget, f"Amendment {body.status.value.lower()}")


@finance_bp.get("/amendments/pending")
@require_session
def pending_amendments() -> tuple[Response, int]:
    return ok(current_ledger().list_pending_amendments(g.session))


# ---------- Expenses ----------


@finance_bp.post("/expense")
@require_session
def log_expense() -> tuple[Response, int]:
    body = ExpenseBody.model_validate(_json())
    expense = current_ledger().log_expense(
        g.session,
        body.event_id,
        body.category,
        body.amount,
        expense_type=body.type,
        description=body.description,
        receipt_url=body.receipt_url,
        incurred_by=body.incurred_by,
    )
    return ok(expense, "Expense logged", 201)


@finance_bp.get("/expense/<expense_id>")
@require_session
def get_expense(expense_id: str) -> tuple[Response, int]:
    return ok(current_ledger().get_expense(g.session, expense_id))


@finance_bp.put("/expense/<expense_id>/status")
@require_session
def update_expense_status(expense_id: str) -> tuple[Response, int]:
    body = ExpenseStatusBody.model_validate(_json())
    expense = current_ledger().update_expense_status(
        g.session, expense_id, body.status, body.admin_notes
    )
    return ok(expense, f"Expense {body.status.value.lower().replace('_', ' ')}")


@finance_bp.put("/expense/<expense_id>/resubmit")
@require_session
def resubmit_expense(expense_id: str) -> tuple[Response, int]:
    body = ExpenseResubmitBody.model_validate(_json())
    expense = current_ledger().resubmit_expense(
        g.session,
        expense_id,
        category=body.category,
        amount=body.amount,
        description=body.description,
        receipt_url=body.receipt_url,
    )
    return ok(expense, "Expense resubmitted")


@finance_bp.put("/expenses/bulk-update")
@require_session
def bulk_update_expenses() -> tuple[Response, int]:
    body = BulkExpenseBody.model_validate(_json())
    result = current_ledger().bulk_update_expenses(
        g.session, body.expense_ids, body.status, body.admin_notes
    )
    return ok(
        result,
        f"{len(result['updated'])} updated, {len(result['failed'])} failed",
    )


@finance_bp.get("/expenses/<event_id>")
@require_session
def list_expenses(event_id: str) -> tuple[Response, int]:
    return ok(current_ledger().list_expenses(g.session, event_id))


@finance_bp.get("/expenses/pending/all")
@require_session
def pending_expenses() -> tuple[Response, int]:
    return ok(current_ledger().list_pending_expenses(g.session))


@finance_bp.get("/reimbursements/pending")
@require_session
def pending_reimbursements() -> tuple[Response, int]:
    return ok(current_ledger().pending_reimbursements_by_user(g.session))


# ---------- Reports ----------


@finance_bp.get("/reports/event-wise")
@require_session
def event_wise() -> tuple[Response, int]:
    start, end = _range()
    return ok(current_ledger().event_wise_report(g.session, start, end))


@finance_bp.get("/reports/category-wise")
@require_session
def category_wise() -> tuple[Response, int]:
    start, end = _range()
    return ok(current_ledger().category_wise_report(g.session, start, end))


@finance_bp.get("/reports/over-budget")
@require_session
def over_budget() -> tuple[Response, int]:
    return ok(current_ledger().over_budget_alerts(g.session))


@finance_bp.get("/reports/export")
@require_session
def export() -> Response:
    export_type = ExportType(request.args.get("type", ExportType.EXPENSES.value))
    start, end = _range()
    text = current_ledger().export_csv(g.session, export_type, start, end)
    filename = f"{export_type.value}_{datetime.now().date().isoformat()}.csv"
    return Response(
        text,
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
