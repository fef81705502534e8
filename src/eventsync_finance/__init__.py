"""
EventSync Finance - Event-sourced finance workflow for event management

Budgets, expenses, reimbursements and the audit log of an event platform,
kept as an append-only event log with in-memory read models.

Fun fact: The word "budget" comes from the Old French "bougette", a small
leather purse. Ours is a SQLite file, but the principle stands.
"""

from eventsync_finance.ledger import FinanceLedger

__version__ = "0.1.0"
__all__ = ["FinanceLedger", "__version__"]
