"""
Expense - spend logged against approved budgets

Logging, admin review, resubmission after requested changes, and
reimbursement of personal spend.
"""
