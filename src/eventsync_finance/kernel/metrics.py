"""
Prometheus metrics collection for EventSync Finance.

Provides observability into event store traffic, command outcomes and the
money flowing through budgets and expenses.
"""

import time
from collections.abc import Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from prometheus_client import Counter, Gauge, Histogram, start_http_server

# Event store

events_appended_total = Counter(
    "esf_events_appended_total",
    "Total number of events appended to the event store",
    ["stream_type", "event_type"],
)

events_loaded_total = Counter(
    "esf_events_loaded_total",
    "Total number of events loaded from the event store",
    ["stream_type"],
)

stream_version_conflicts_total = Counter(
    "esf_stream_version_conflicts_total",
    "Total number of optimistic locking version conflicts",
    ["stream_type"],
)

# Commands

command_duration_seconds = Histogram(
    "esf_command_duration_seconds",
    "Duration of command processing in seconds",
    ["command_type"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

commands_processed_total = Counter(
    "esf_commands_processed_total",
    "Total number of commands processed",
    ["command_type", "status"],  # status: success, failure
)

# Money

budget_allocated_amount = Gauge(
    "esf_budget_allocated_amount",
    "Total allocated amount per event budget",
    ["event_id"],
)

budget_decisions_total = Counter(
    "esf_budget_decisions_total",
    "Budget approval decisions by outcome",
    ["status"],
)

expense_transitions_total = Counter(
    "esf_expense_transitions_total",
    "Expense status transitions by target status",
    ["status"],
)

reimbursed_amount_total = Counter(
    "esf_reimbursed_amount_total",
    "Money paid back to payees, in budget currency units",
    ["expense_type"],
)

budget_utilization_ratio = Gauge(
    "esf_budget_utilization_ratio",
    "Approved plus reimbursed spend over allocation, per event",
    ["event_id"],
)

audit_entries_total = Counter(
    "esf_audit_entries_total",
    "Audit entries recorded by severity",
    ["severity"],
)

ledger_transactions_total = Counter(
    "esf_ledger_transactions_total",
    "Event ledger entries recorded, reversals included",
    ["direction"],
)

P = ParamSpec("P")
R = TypeVar("R")


def track_command_duration(command_type: str) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Decorator to track command processing duration and outcome.

    Args:
        command_type: Type of command being processed
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            start = time.perf_counter()
            status = "success"
            try:
                return func(*args, **kwargs)
            except Exception:
                status = "failure"
                raise
            finally:
                command_duration_seconds.labels(command_type=command_type).observe(
                    time.perf_counter() - start
                )
                commands_processed_total.labels(
                    command_type=command_type, status=status
                ).inc()

        return wrapper

    return decorator


def start_metrics_server(port: int = 9090) -> None:
    """Start Prometheus metrics HTTP server on the given port."""
    start_http_server(port)
