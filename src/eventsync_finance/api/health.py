"""
Health endpoints for load balancers and orchestrators.

/health/live only says the process answers. /health/ready also proves the
ledger's SQLite file is reachable, and /health adds the read model sizes.
None of them require a bearer token.
"""

import sqlite3

from flask import Blueprint, Response, jsonify

from eventsync_finance import __version__
from eventsync_finance.api.app import current_ledger
from eventsync_finance.kernel.logging import get_logger

logger = get_logger(__name__)

health_bp = Blueprint("health", __name__)

SERVICE_NAME = "eventsync-finance"


def _not_ready(reason: str, **details: str) -> tuple[Response, int]:
    logger.error("Readiness check failed", reason=reason, **details)
    return jsonify({"status": "not_ready", "reason": reason, **details}), 503


@health_bp.get("/live")
def liveness() -> tuple[Response, int]:
    return jsonify({"status": "alive", "service": SERVICE_NAME}), 200


@health_bp.get("/ready")
def readiness() -> tuple[Response, int]:
    """200 once the event log can be queried, 503 otherwise"""
    ledger = current_ledger()
    if not ledger.sqlite_path.exists():
        return _not_ready("database_file_not_found", db_path=str(ledger.sqlite_path))
    try:
        event_count = ledger.event_store.count_events()
    except sqlite3.OperationalError as e:
        return _not_ready("database_operational_error", error=str(e))
    return jsonify({"status": "ready", "database": "accessible", "event_count": event_count}), 200


@health_bp.get("")
def detailed_health() -> tuple[Response, int]:
    """Store and registry counts; 503 ("degraded") if the store can't be read"""
    body = {"status": "healthy", "service": SERVICE_NAME, "version": __version__}
    try:
        body["ledger"] = current_ledger().health()
    except sqlite3.Error as e:
        logger.error("Ledger health check failed", error=str(e))
        body["status"] = "degraded"
        body["ledger"] = {"status": "unhealthy", "error": str(e)}
    return jsonify(body), 200 if body["status"] == "healthy" else 503
